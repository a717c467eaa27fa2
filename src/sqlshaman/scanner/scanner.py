"""Marker scanner: entity class -> ``DbSetInfo``.

For every declared member, in declaration order, the scanner seeds a
``ColumnInfo`` from the annotation and hands it to each column service of the
pipeline in list order. Entity-level services run once all members are seen.
Navigation and not-mapped members are then dropped, index markers grouped,
the table name resolved, and the result checked for name collisions.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from sqlshaman.core.errors import ModelError
from sqlshaman.markers import IndexType
from sqlshaman.scanner.accessors import ValueReader
from sqlshaman.scanner.dbset import declared_properties
from sqlshaman.scanner.models import (
    ColumnInfo,
    DbSetBuilder,
    DbSetInfo,
    IndexFieldInfo,
    IndexInfo,
    IndexMarkerOccurrence,
    PropertyDescriptor,
)
from sqlshaman.scanner.naming import host_table_name, resolve_schema, resolve_table_name
from sqlshaman.scanner.types import not_null_from_property_type, unwrap
from sqlshaman.services.base import ColumnInfoUpdateService, DbSetInfoUpdateService, ScanScope

if TYPE_CHECKING:
    from sqlshaman.options import ShamanOptions

logger = structlog.get_logger()

_SOURCE = "ModelScanner"


def iter_property_descriptors(entity_type: type) -> Iterable[PropertyDescriptor]:
    for index, (name, annotation) in enumerate(declared_properties(entity_type)):
        python_type, markers, _ = unwrap(annotation)
        yield PropertyDescriptor(
            name=name,
            annotation=annotation,
            python_type=python_type,
            markers=markers,
            declaring_type=entity_type,
            index=index,
        )


def scan_entity(
    entity_type: type,
    collection_name: str,
    *,
    context_type: type,
    options: ShamanOptions,
    entity_types: Iterable[type] = (),
    default_schema: str | None = None,
) -> DbSetInfo:
    builder = DbSetBuilder(
        entity_type=entity_type,
        collection_name=collection_name,
        default_schema=default_schema,
    )
    scope = ScanScope(
        context_type=context_type,
        options=options,
        entity_types=frozenset(entity_types),
        db_set=builder,
    )

    column_services = options.services_of(ColumnInfoUpdateService)
    for prop in iter_property_descriptors(entity_type):
        column = ColumnInfo(
            property_name=prop.name,
            column_name=prop.name,
            python_type=prop.python_type,
            column_index=prop.index,
            value_reader=ValueReader(prop.name),
            not_null=not_null_from_property_type(prop.annotation),
        )
        for service in column_services:
            service.update_column_info(column, prop, scope)
        builder.columns.append(column)

    for service in options.services_of(DbSetInfoUpdateService):
        service.update_db_set_info(builder, scope)

    table_name = resolve_table_name(
        collection_name,
        options.naming_policy,
        explicit_name=builder.explicit_table_name,
        host_name=host_table_name(entity_type),
    )
    schema = resolve_schema(default_schema, builder.explicit_schema)

    columns = [c for c in builder.columns if not (c.is_not_mapped or c.is_navigation)]
    if not builder.is_keyless and not any(c.is_primary_key for c in columns):
        _apply_key_convention(entity_type, columns)
        if not any(c.is_primary_key for c in columns):
            raise ModelError.missing_primary_key(entity_type.__name__, table_name)
    _check_columns(entity_type, table_name, columns)
    indexes = group_indexes(table_name, builder.index_markers, columns)

    options.logger.log(
        _SOURCE,
        f"{entity_type.__name__} -> {table_name} ({len(columns)} columns, {len(indexes)} indexes)",
    )
    logger.debug(
        "entity_scanned",
        entity=entity_type.__name__,
        table=table_name,
        schema=schema,
        columns=len(columns),
        indexes=len(indexes),
    )
    return DbSetInfo(
        entity_type=entity_type,
        table_name=table_name,
        schema=schema,
        columns=tuple(columns),
        indexes=indexes,
        collection_name=collection_name,
        is_keyless=builder.is_keyless,
    )


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _apply_key_convention(entity_type: type, columns: list[ColumnInfo]) -> None:
    """Host convention: ``id``, ``<entity>id`` or ``<entity>_id`` is the key."""
    entity = entity_type.__name__.lower()
    candidates = ("id", f"{entity}id", f"{_snake(entity_type.__name__)}_id")
    for candidate in candidates:
        for column in columns:
            if column.property_name.lower() == candidate:
                column.is_primary_key = True
                return


def _check_columns(entity_type: type, table_name: str, columns: list[ColumnInfo]) -> None:
    claimed: dict[str, list[str]] = {}
    for column in columns:
        claimed.setdefault(column.column_name, []).append(column.property_name)
        if column.is_primary_key and column.is_required is False:
            raise ModelError.configuration_conflict(
                entity_type.__name__,
                column.property_name,
                "primary key columns cannot be optional",
            )
    for column_name, properties in claimed.items():
        if len(properties) > 1:
            raise ModelError.duplicate_column(table_name, column_name, properties)


def _field_sort_key(occurrence: IndexMarkerOccurrence) -> tuple[bool, int, int]:
    # Explicit order first, then declaration order
    order = occurrence.marker.order
    return (order is None, order or 0, occurrence.declaration_index)


def group_indexes(
    table_name: str,
    occurrences: list[IndexMarkerOccurrence],
    columns: list[ColumnInfo],
) -> tuple[IndexInfo, ...]:
    """Group index markers by name into ``IndexInfo`` records.

    Every unnamed marker is an index of its own; markers sharing a non-empty
    name form one index whose fields follow explicit order, then declaration
    order. Groups appear in the order of their first marker.
    """
    column_names = {c.property_name: c.column_name for c in columns}
    groups: list[list[IndexMarkerOccurrence]] = []
    named: dict[str, list[IndexMarkerOccurrence]] = {}
    for occurrence in occurrences:
        if occurrence.property_name not in column_names:
            # Marker on a navigation or not-mapped member
            continue
        name = occurrence.marker.name
        if not name:
            groups.append([occurrence])
        elif name in named:
            named[name].append(occurrence)
        else:
            named[name] = [occurrence]
            groups.append(named[name])

    return tuple(_build_index(table_name, group, column_names) for group in groups)


def _build_index(
    table_name: str,
    group: list[IndexMarkerOccurrence],
    column_names: dict[str, str],
) -> IndexInfo:
    name: str = group[0].marker.name
    index_types: set[IndexType] = {o.marker.index_type for o in group}
    if len(index_types) > 1:
        kinds = ", ".join(sorted(t.value for t in index_types))
        raise ModelError.duplicate_index(table_name, name, f"mixes index kinds: {kinds}")

    catalogs: set[Any] = {o.marker.full_text_catalog for o in group} - {None}
    if len(catalogs) > 1:
        raise ModelError.configuration_conflict(
            table_name, name, f"full-text catalogs disagree: {sorted(catalogs)}"
        )

    fields: list[IndexFieldInfo] = []
    seen: set[str] = set()
    for occurrence in sorted(group, key=_field_sort_key):
        field_name = column_names[occurrence.property_name]
        if field_name in seen:
            raise ModelError.duplicate_index(table_name, name, f"field '{field_name}' repeated")
        seen.add(field_name)
        fields.append(IndexFieldInfo(field_name=field_name, order=occurrence.marker.order))

    (index_type,) = index_types
    return IndexInfo(
        index_name=name,
        fields=tuple(fields),
        index_type=index_type,
        full_text_catalog_name=catalogs.pop() if catalogs else None,
    )
