"""Metadata entities produced by the marker scanner.

Scanning produces, per entity class, one ``DbSetInfo`` holding ordered
``ColumnInfo`` and ``IndexInfo`` records. ``ColumnInfo`` is mutable only while
the service pipeline runs over it; once a ``DbSetInfo`` is assembled the
collections it exposes are tuples and nothing in the package writes to them
again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlshaman.markers import GeneratedOption, IndexType, Marker

if TYPE_CHECKING:
    from sqlshaman.scanner.accessors import ValueReader


class ValueInfoKind(str, Enum):
    LITERAL = "Literal"
    SQL = "SqlExpression"


@dataclass(frozen=True, slots=True)
class ValueInfo:
    """Default value: either a Python literal or an opaque SQL fragment."""

    kind: ValueInfoKind
    literal_value: Any = None
    sql_text: str | None = None

    def __post_init__(self) -> None:
        if self.kind is ValueInfoKind.SQL:
            if not isinstance(self.sql_text, str) or not self.sql_text:
                raise ValueError("SQL default value requires non-empty sql_text")
            if self.literal_value is not None:
                raise ValueError("SQL default value cannot carry a literal value")
        elif self.sql_text is not None:
            raise ValueError("Literal default value cannot carry sql_text")

    @classmethod
    def literal(cls, value: Any) -> ValueInfo:
        return cls(kind=ValueInfoKind.LITERAL, literal_value=value)

    @classmethod
    def sql(cls, sql_text: str) -> ValueInfo:
        return cls(kind=ValueInfoKind.SQL, sql_text=sql_text)

    def to_dict(self) -> dict[str, Any]:
        if self.kind is ValueInfoKind.SQL:
            return {"Kind": self.kind.value, "SqlText": self.sql_text}
        return {"Kind": self.kind.value, "LiteralValue": self.literal_value}


@dataclass(frozen=True, slots=True)
class PropertyDescriptor:
    """A declared member of an entity class, as seen by the service pipeline."""

    name: str
    annotation: Any
    python_type: Any
    markers: tuple[Marker, ...]
    declaring_type: type
    index: int

    def has(self, marker_type: type[Marker]) -> bool:
        return any(isinstance(m, marker_type) for m in self.markers)

    def find(self, marker_type: type[Marker]) -> Any:
        """Last marker of the given type, or None."""
        found = None
        for marker in self.markers:
            if isinstance(marker, marker_type):
                found = marker
        return found

    def find_all(self, marker_type: type[Marker]) -> list[Any]:
        return [m for m in self.markers if isinstance(m, marker_type)]


@dataclass
class ColumnInfo:
    property_name: str
    column_name: str
    python_type: Any
    column_index: int
    value_reader: ValueReader
    not_null: bool = False
    is_required: bool | None = None
    is_primary_key: bool = False
    is_unicode: bool | None = None
    default_value: ValueInfo | None = None
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None
    column_type: str | None = None
    is_not_mapped: bool = False
    is_navigation: bool = False
    is_concurrency_token: bool = False
    value_generated: GeneratedOption | None = None

    @property
    def is_nullable(self) -> bool:
        if self.is_required is not None:
            return not self.is_required
        return not (self.not_null or self.is_primary_key)

    @property
    def is_database_generated(self) -> bool:
        return self.value_generated in (GeneratedOption.IDENTITY, GeneratedOption.COMPUTED)

    @property
    def is_identity(self) -> bool:
        return self.value_generated is GeneratedOption.IDENTITY


@dataclass(frozen=True, slots=True)
class IndexFieldInfo:
    field_name: str
    order: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"FieldName": self.field_name}


@dataclass(frozen=True, slots=True)
class IndexInfo:
    index_name: str
    fields: tuple[IndexFieldInfo, ...]
    index_type: IndexType = IndexType.INDEX
    full_text_catalog_name: str | None = None

    def __post_init__(self) -> None:
        names = [f.field_name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Index {self.index_name!r} repeats a field: {names}")
        is_full_text = self.index_type is IndexType.FULL_TEXT_INDEX
        if is_full_text != (self.full_text_catalog_name is not None):
            raise ValueError("Full-text catalog name must be set exactly for full-text indexes")

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.field_name for f in self.fields)

    def to_dict(self) -> dict[str, Any]:
        """Key names follow the serialized layout used in diagnostics."""
        data: dict[str, Any] = {
            "IndexName": self.index_name,
            "Fields": [f.to_dict() for f in self.fields],
            "IndexType": self.index_type.value,
        }
        if self.full_text_catalog_name is not None:
            data["FullTextCatalogName"] = self.full_text_catalog_name
        return data


@dataclass(frozen=True)
class DbSetInfo:
    entity_type: type
    table_name: str
    schema: str | None
    columns: tuple[ColumnInfo, ...]
    indexes: tuple[IndexInfo, ...] = ()
    collection_name: str = ""
    is_keyless: bool = False

    @property
    def primary_key_columns(self) -> tuple[ColumnInfo, ...]:
        return tuple(c for c in self.columns if c.is_primary_key)

    def column(self, column_name: str) -> ColumnInfo | None:
        for col in self.columns:
            if col.column_name == column_name:
                return col
        return None

    def column_for_property(self, property_name: str) -> ColumnInfo | None:
        for col in self.columns:
            if col.property_name == property_name:
                return col
        return None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.table_name}" if self.schema else self.table_name


@dataclass
class IndexMarkerOccurrence:
    """An index marker seen on a property during one scan."""

    marker: Any
    property_name: str
    declaration_index: int


@dataclass
class DbSetBuilder:
    """Mutable state for one entity while the pipeline runs over it."""

    entity_type: type
    collection_name: str
    default_schema: str | None
    columns: list[ColumnInfo] = field(default_factory=list)
    index_markers: list[IndexMarkerOccurrence] = field(default_factory=list)
    explicit_table_name: str | None = None
    explicit_schema: str | None = None
    is_keyless: bool = False
