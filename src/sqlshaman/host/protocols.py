"""Capabilities a context may offer without inheriting from ``ShamanContext``."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class InMemoryDatabaseAware(Protocol):
    """A context that can report whether it runs against the in-memory stand-in."""

    @property
    def is_using_in_memory_database(self) -> bool: ...
