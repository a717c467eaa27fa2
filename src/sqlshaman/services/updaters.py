"""Default marker updaters.

``ShamanOptions.with_default_services()`` installs these in the order of
``DEFAULT_SERVICE_TYPES``. Each one reads a single marker family from the
property (or entity type) and writes the matching metadata fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlshaman.core.errors import ModelError
from sqlshaman.markers import (
    Column,
    DatabaseGenerated,
    DecimalType,
    DefaultValue,
    DefaultValueSql,
    FullTextIndex,
    Index,
    Key,
    Keyless,
    MaxLength,
    Navigation,
    NotMapped,
    Required,
    Table,
    Timestamp,
    UnicodeText,
    type_markers,
)
from sqlshaman.scanner.models import IndexMarkerOccurrence, ValueInfo, ValueInfoKind
from sqlshaman.scanner.types import collection_item_type
from sqlshaman.services.base import (
    ColumnInfoUpdateService,
    DbSetInfoUpdateService,
    ScanScope,
)

if TYPE_CHECKING:
    from sqlshaman.scanner.models import ColumnInfo, DbSetBuilder, PropertyDescriptor


class ColumnMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        marker: Column | None = prop.find(Column)
        if marker is None:
            return
        if marker.name:
            column.column_name = marker.name
        if marker.type_name:
            column.column_type = marker.type_name
        scope.logger.log(
            type(self).__name__,
            f"{scope.entity_name}.{prop.name} -> column {column.column_name}",
        )


class NotMappedMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        if prop.has(NotMapped):
            column.is_not_mapped = True


class NavigationPropertyMarkerUpdater(ColumnInfoUpdateService):
    """Marks members that reference other mapped entities.

    Explicit ``Navigation`` markers always count; otherwise a member whose type
    (or collection item type) is another DbSet entity of the context is a
    navigation.
    """

    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        if prop.has(Navigation):
            column.is_navigation = True
            return
        target = collection_item_type(prop.python_type) or prop.python_type
        if isinstance(target, type) and target in scope.entity_types:
            column.is_navigation = True


class TimestampMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        if prop.has(Timestamp):
            column.is_concurrency_token = True


class DatabaseGeneratedMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        marker: DatabaseGenerated | None = prop.find(DatabaseGenerated)
        if marker is not None:
            column.value_generated = marker.option


class KeyMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        if prop.has(Key):
            column.is_primary_key = True


class IndexMarkerUpdater(ColumnInfoUpdateService):
    """Collects index markers; the scanner groups them once all members are seen."""

    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        for marker in prop.find_all(Index):
            catalog = marker.full_text_catalog
            if isinstance(marker, FullTextIndex):
                if not catalog:
                    raise ModelError.configuration_conflict(
                        scope.entity_name, prop.name, "full-text index requires a catalog name"
                    )
            elif catalog is not None:
                raise ModelError.configuration_conflict(
                    scope.entity_name,
                    prop.name,
                    f"catalog name given for a {marker.index_type.value} marker",
                )
            scope.db_set.index_markers.append(
                IndexMarkerOccurrence(
                    marker=marker,
                    property_name=prop.name,
                    declaration_index=prop.index,
                )
            )


class RequiredMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        marker: Required | None = prop.find(Required)
        if marker is not None:
            column.is_required = marker.required


class MaxLengthMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        marker: MaxLength | None = prop.find(MaxLength)
        if marker is None:
            return
        if marker.length <= 0:
            raise ModelError.configuration_conflict(
                scope.entity_name, prop.name, f"max length must be positive, got {marker.length}"
            )
        column.max_length = marker.length


class DecimalTypeMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        marker: DecimalType | None = prop.find(DecimalType)
        if marker is None:
            return
        if marker.scale > marker.precision:
            raise ModelError.configuration_conflict(
                scope.entity_name,
                prop.name,
                f"scale {marker.scale} exceeds precision {marker.precision}",
            )
        column.precision = marker.precision
        column.scale = marker.scale


class UnicodeTextMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        marker: UnicodeText | None = prop.find(UnicodeText)
        if marker is not None:
            column.is_unicode = marker.is_unicode


class TableMarkerUpdater(DbSetInfoUpdateService):
    def update_db_set_info(self, db_set: DbSetBuilder, scope: ScanScope) -> None:
        for marker in type_markers(db_set.entity_type):
            if isinstance(marker, Table):
                db_set.explicit_table_name = marker.name
                if marker.schema:
                    db_set.explicit_schema = marker.schema
                scope.logger.log(
                    type(self).__name__, f"{scope.entity_name} -> table {marker.name}"
                )
            elif isinstance(marker, Keyless):
                db_set.is_keyless = True


class DefaultValueMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        marker: DefaultValue | None = prop.find(DefaultValue)
        if marker is None:
            return
        _check_single_default_kind(column, prop, scope, ValueInfoKind.LITERAL)
        column.default_value = ValueInfo.literal(marker.value)


class DefaultValueSqlMarkerUpdater(ColumnInfoUpdateService):
    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None:
        marker: DefaultValueSql | None = prop.find(DefaultValueSql)
        if marker is None:
            return
        _check_single_default_kind(column, prop, scope, ValueInfoKind.SQL)
        column.default_value = ValueInfo.sql(marker.sql)


def _check_single_default_kind(
    column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope, kind: ValueInfoKind
) -> None:
    has_both = prop.has(DefaultValue) and prop.has(DefaultValueSql)
    already_other = column.default_value is not None and column.default_value.kind is not kind
    if has_both or already_other:
        raise ModelError.configuration_conflict(
            scope.entity_name, prop.name, "both a literal and a SQL default value are declared"
        )


DEFAULT_SERVICE_TYPES: tuple[type, ...] = (
    ColumnMarkerUpdater,
    NotMappedMarkerUpdater,
    NavigationPropertyMarkerUpdater,
    TimestampMarkerUpdater,
    DatabaseGeneratedMarkerUpdater,
    KeyMarkerUpdater,
    IndexMarkerUpdater,
    RequiredMarkerUpdater,
    MaxLengthMarkerUpdater,
    DecimalTypeMarkerUpdater,
    UnicodeTextMarkerUpdater,
    TableMarkerUpdater,
    DefaultValueMarkerUpdater,
    DefaultValueSqlMarkerUpdater,
)

__all__ = [
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
    "DEFAULT_SERVICE_TYPES",
]
