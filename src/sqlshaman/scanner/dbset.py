"""``DbSet[T]`` annotations on context classes."""

from __future__ import annotations

import typing
from typing import Any, ClassVar, Generic, TypeVar, get_args, get_origin

T = TypeVar("T")


class DbSet(Generic[T]):
    """Declares that a context exposes entity ``T`` as a collection.

    Used as a class annotation only::

        class ShopContext(ShamanContext):
            products: DbSet[Product]

    The attribute name is the collection name that table naming starts from.
    """


def _annotated_names(cls: type) -> list[str]:
    """Annotation names in declaration order, base classes first."""
    names: list[str] = []
    seen: set[str] = set()
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name in klass.__dict__.get("__annotations__", {}):
            if name not in seen:
                seen.add(name)
                names.append(name)
    return names


def resolved_hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls, include_extras=True)


def db_set_members(context_type: type) -> list[tuple[str, type]]:
    """(collection name, entity type) for every ``DbSet`` annotation."""
    hints = resolved_hints(context_type)
    members: list[tuple[str, type]] = []
    for name in _annotated_names(context_type):
        hint = hints.get(name)
        if get_origin(hint) is DbSet:
            (entity_type,) = get_args(hint)
            members.append((name, entity_type))
    return members


def declared_properties(entity_type: type) -> list[tuple[str, Any]]:
    """(name, resolved annotation) for mapped-candidate members, in order.

    ``ClassVar`` members and names starting with an underscore are skipped.
    """
    hints = resolved_hints(entity_type)
    result: list[tuple[str, Any]] = []
    for name in _annotated_names(entity_type):
        if name.startswith("_") or name not in hints:
            continue
        hint = hints[name]
        if hint is ClassVar or get_origin(hint) is ClassVar:
            continue
        result.append((name, hint))
    return result
