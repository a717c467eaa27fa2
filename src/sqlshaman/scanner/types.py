"""Annotation helpers: unwrap ``Annotated``/``Optional`` and seed nullability."""

from __future__ import annotations

import datetime
import decimal
import types
import uuid
from collections import abc
from enum import Enum
from typing import Annotated, Any, Union, get_args, get_origin

from sqlshaman.markers import Marker

# Value-like scalars: NOT NULL unless the annotation says Optional
VALUE_TYPES: frozenset[type] = frozenset(
    {
        bool,
        int,
        float,
        complex,
        decimal.Decimal,
        uuid.UUID,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
    }
)

_COLLECTION_ORIGINS = (
    list,
    set,
    frozenset,
    tuple,
    abc.Sequence,
    abc.MutableSequence,
    abc.Collection,
    abc.Iterable,
    abc.Set,
)


def split_annotated(annotation: Any) -> tuple[Any, tuple[Marker, ...]]:
    """Return (inner annotation, markers found in Annotated metadata)."""
    markers: list[Marker] = []
    while get_origin(annotation) is Annotated:
        inner, *extras = get_args(annotation)
        markers.extend(m for m in extras if isinstance(m, Marker))
        annotation = inner
    return annotation, tuple(markers)


def is_optional(annotation: Any) -> bool:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(annotation)
    return annotation is None or annotation is type(None)


def strip_optional(annotation: Any) -> Any:
    """``X | None`` -> ``X``; other unions are returned unchanged."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def not_null_from_property_type(annotation: Any) -> bool:
    """Whether a column of this annotation is NOT NULL before any marker applies.

    Value-like scalars (numbers, bool, UUID, dates, enums) are NOT NULL; their
    Optional forms, ``str``, ``bytes`` and other reference types are nullable.
    """
    tp, _, optional = unwrap(annotation)
    if optional or not isinstance(tp, type):
        return False
    return tp in VALUE_TYPES or issubclass(tp, Enum)


def collection_item_type(annotation: Any) -> Any | None:
    """Item type of ``list[X]``/``set[X]``/``Sequence[X]``, else None."""
    if get_origin(annotation) not in _COLLECTION_ORIGINS:
        return None
    args = [a for a in get_args(annotation) if a is not Ellipsis]
    return args[0] if args else None


def unwrap(annotation: Any) -> tuple[Any, tuple[Marker, ...], bool]:
    """Return (scalar type, markers, declared optional) for an annotation.

    ``Optional[Annotated[X, ...]]`` and ``Annotated[Optional[X], ...]`` unwrap
    to the same result.
    """
    markers: list[Marker] = []
    optional = False
    while True:
        annotation, found = split_annotated(annotation)
        markers.extend(found)
        if is_optional(annotation):
            optional = True
            stripped = strip_optional(annotation)
            if stripped is annotation:
                break
            annotation = stripped
            continue
        break
    return annotation, tuple(markers), optional
