"""Per-context reentrancy guard."""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager

from sqlshaman.core.errors import ContextError


class ConcurrencyDetector:
    """Fails fast when two operations overlap on one context.

    Tracked operations and direct SQL commands both run inside
    ``critical_section()``. The guard is not reentrant: entering it while it is
    held raises ``ContextError`` instead of waiting.
    """

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._lock = threading.Lock()

    @property
    def is_in_critical_section(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def critical_section(self) -> Generator[None, None, None]:
        if not self._lock.acquire(blocking=False):
            raise ContextError.concurrent_use(self._owner)
        try:
            yield
        finally:
            self._lock.release()
