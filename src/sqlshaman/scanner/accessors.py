"""Per-column value accessors, bound once at scan time."""

from __future__ import annotations

from operator import attrgetter
from typing import Any


class ValueReader:
    """Reads one property from entity instances.

    The getter is built once when the column is scanned; reading a row is a
    single C-level attribute fetch with no per-call reflection.
    """

    __slots__ = ("property_name", "_getter")

    def __init__(self, property_name: str) -> None:
        self.property_name = property_name
        self._getter = attrgetter(property_name)

    def read_property_value(self, entity: Any) -> Any:
        return self._getter(entity)

    __call__ = read_property_value

    def __repr__(self) -> str:
        return f"ValueReader({self.property_name!r})"
