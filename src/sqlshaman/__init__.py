"""sqlshaman: marker-driven table metadata and direct persistence for SQLAlchemy."""

from sqlshaman.config import ShamanConfig, load_config
from sqlshaman.core.errors import (
    ConfigError,
    ContextError,
    DirectSaveError,
    ErrorCode,
    InternalError,
    ModelError,
    ShamanError,
)
from sqlshaman.core.logging import (
    EmptyShamanLogger,
    ListShamanLogger,
    ShamanLogger,
    StructlogShamanLogger,
    configure_logging,
    get_logger,
)
from sqlshaman.direct import (
    DirectSaver,
    DirectSaverEntityStatus,
    EntityWithDirectSaverStatus,
    direct_delete,
    direct_insert,
    direct_save,
    direct_update,
)
from sqlshaman.host.context import ContextFactory, DbSetView, ShamanContext
from sqlshaman.host.database import CommandResult, DatabaseFacade
from sqlshaman.host.model_builder import ModelBuilder
from sqlshaman.host.protocols import InMemoryDatabaseAware
from sqlshaman.options import ShamanOptions
from sqlshaman.scanner.dbset import DbSet
from sqlshaman.scanner.model_info import ModelInfo
from sqlshaman.scanner.models import (
    ColumnInfo,
    DbSetInfo,
    IndexFieldInfo,
    IndexInfo,
    ValueInfo,
    ValueInfoKind,
)
from sqlshaman.scanner.naming import NamingPolicy

__version__ = "0.1.0"

__all__ = [
    # Model
    "DbSet",
    "ModelInfo",
    "DbSetInfo",
    "ColumnInfo",
    "IndexInfo",
    "IndexFieldInfo",
    "ValueInfo",
    "ValueInfoKind",
    "NamingPolicy",
    "ShamanOptions",
    # Host
    "ShamanContext",
    "ContextFactory",
    "DbSetView",
    "DatabaseFacade",
    "CommandResult",
    "ModelBuilder",
    "InMemoryDatabaseAware",
    # Direct
    "DirectSaver",
    "DirectSaverEntityStatus",
    "EntityWithDirectSaverStatus",
    "direct_delete",
    "direct_insert",
    "direct_save",
    "direct_update",
    # Errors
    "ShamanError",
    "ConfigError",
    "ContextError",
    "DirectSaveError",
    "ErrorCode",
    "InternalError",
    "ModelError",
    # Logging and config
    "ShamanLogger",
    "EmptyShamanLogger",
    "ListShamanLogger",
    "StructlogShamanLogger",
    "configure_logging",
    "get_logger",
    "ShamanConfig",
    "load_config",
]
