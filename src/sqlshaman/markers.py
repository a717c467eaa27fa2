"""Declarative markers for entity classes.

Property markers go into ``typing.Annotated`` metadata::

    @dataclass
    class Product:
        id: Annotated[int, Key(), DatabaseGenerated(GeneratedOption.IDENTITY)]
        name: Annotated[str, MaxLength(120), UniqueIndex()]
        price: Annotated[Decimal, DecimalType(18, 4), DefaultValue(0)]

Type-level markers are applied with the ``table`` and ``keyless`` class
decorators. Markers carry data only; every interpretation lives in the
service pipeline (``sqlshaman.services``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

T = TypeVar("T", bound=type)

TYPE_MARKERS_ATTR = "__shaman_markers__"


class IndexType(str, Enum):
    INDEX = "Index"
    UNIQUE_INDEX = "UniqueIndex"
    FULL_TEXT_INDEX = "FullTextIndex"


class GeneratedOption(str, Enum):
    """How the database produces a column value."""

    NONE = "none"
    IDENTITY = "identity"
    COMPUTED = "computed"


class Marker:
    """Base class for everything the scanner recognizes as a marker."""

    __slots__ = ()


# ============================================================================
# Property markers
# ============================================================================


@dataclass(frozen=True)
class Column(Marker):
    """Explicit column name and/or SQL type name."""

    name: str | None = None
    type_name: str | None = None


@dataclass(frozen=True)
class NotMapped(Marker):
    """Member is not persisted."""


@dataclass(frozen=True)
class Navigation(Marker):
    """Member is a navigation to another entity, not a column."""


@dataclass(frozen=True)
class Timestamp(Marker):
    """Row version column used as an optimistic concurrency token."""


@dataclass(frozen=True)
class DatabaseGenerated(Marker):
    option: GeneratedOption = GeneratedOption.IDENTITY


@dataclass(frozen=True)
class Key(Marker):
    """Member is part of the primary key."""


@dataclass(frozen=True)
class Index(Marker):
    """Member takes part in an index.

    Markers on several members sharing a non-empty ``name`` form one
    multi-column index, ordered by ``order`` then declaration order. An empty
    name always yields a separate single-column index.
    """

    name: str = ""
    order: int | None = None
    full_text_catalog: str | None = None

    index_type = IndexType.INDEX


@dataclass(frozen=True)
class UniqueIndex(Index):
    index_type = IndexType.UNIQUE_INDEX


@dataclass(frozen=True)
class FullTextIndex(Index):
    index_type = IndexType.FULL_TEXT_INDEX


@dataclass(frozen=True)
class Required(Marker):
    """Override nullability derived from the annotation."""

    required: bool = True


@dataclass(frozen=True)
class MaxLength(Marker):
    length: int


@dataclass(frozen=True)
class DecimalType(Marker):
    precision: int = 18
    scale: int = 2


@dataclass(frozen=True)
class UnicodeText(Marker):
    is_unicode: bool = True


@dataclass(frozen=True)
class DefaultValue(Marker):
    """Literal default value."""

    value: Any


@dataclass(frozen=True)
class DefaultValueSql(Marker):
    """Raw SQL default expression, passed through verbatim."""

    sql: str


# ============================================================================
# Type markers
# ============================================================================


@dataclass(frozen=True)
class Table(Marker):
    name: str
    schema: str | None = None


@dataclass(frozen=True)
class Keyless(Marker):
    """Entity has no primary key."""


def _add_type_marker(cls: T, marker: Marker) -> T:
    # Copy so subclasses don't write into a base class's tuple
    existing = cls.__dict__.get(TYPE_MARKERS_ATTR, ())
    setattr(cls, TYPE_MARKERS_ATTR, (*existing, marker))
    return cls


def table(name: str, schema: str | None = None):  # type: ignore[no-untyped-def]
    """Class decorator fixing the table name (and optionally schema)."""

    def decorator(cls: T) -> T:
        return _add_type_marker(cls, Table(name=name, schema=schema))

    return decorator


def keyless(cls: T) -> T:
    """Class decorator marking an entity as keyless."""
    return _add_type_marker(cls, Keyless())


def type_markers(cls: type) -> tuple[Marker, ...]:
    """Markers declared directly on ``cls`` (not inherited)."""
    return tuple(cls.__dict__.get(TYPE_MARKERS_ATTR, ()))
