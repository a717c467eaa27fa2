"""Service pipeline: capabilities and the default marker updaters."""

from sqlshaman.services.base import (
    ColumnInfoUpdateService,
    DbSetInfoUpdateService,
    FunctionColumnUpdater,
    ModelBuilderPatchService,
    OptionModificationService,
    ScanScope,
    ShamanService,
)
from sqlshaman.services.naming import NamingConventionService
from sqlshaman.services.updaters import (
    DEFAULT_SERVICE_TYPES,
    ColumnMarkerUpdater,
    DatabaseGeneratedMarkerUpdater,
    DecimalTypeMarkerUpdater,
    DefaultValueMarkerUpdater,
    DefaultValueSqlMarkerUpdater,
    IndexMarkerUpdater,
    KeyMarkerUpdater,
    MaxLengthMarkerUpdater,
    NavigationPropertyMarkerUpdater,
    NotMappedMarkerUpdater,
    RequiredMarkerUpdater,
    TableMarkerUpdater,
    TimestampMarkerUpdater,
    UnicodeTextMarkerUpdater,
)

__all__ = [
    # Capabilities
    "ShamanService",
    "ColumnInfoUpdateService",
    "DbSetInfoUpdateService",
    "ModelBuilderPatchService",
    "OptionModificationService",
    "FunctionColumnUpdater",
    "ScanScope",
    # Services
    "NamingConventionService",
    "DEFAULT_SERVICE_TYPES",
    "ColumnMarkerUpdater",
    "NotMappedMarkerUpdater",
    "NavigationPropertyMarkerUpdater",
    "TimestampMarkerUpdater",
    "DatabaseGeneratedMarkerUpdater",
    "KeyMarkerUpdater",
    "IndexMarkerUpdater",
    "RequiredMarkerUpdater",
    "MaxLengthMarkerUpdater",
    "DecimalTypeMarkerUpdater",
    "UnicodeTextMarkerUpdater",
    "TableMarkerUpdater",
    "DefaultValueMarkerUpdater",
    "DefaultValueSqlMarkerUpdater",
]
