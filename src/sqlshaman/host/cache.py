"""Keyed cache of scanned models.

One entry per (context type, options identity). The cache is owned by
whoever creates contexts (usually a ``ContextFactory``); there is no
process-wide instance.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from sqlshaman.direct.saver import DirectSaver
from sqlshaman.host.model_builder import ModelBuilder
from sqlshaman.scanner.model_info import ModelInfo

if TYPE_CHECKING:
    from sqlshaman.options import ShamanOptions

logger = structlog.get_logger()

CacheKey = tuple[type, int]


@dataclass
class _Entry:
    options: ShamanOptions
    model_info: ModelInfo
    model_builder: ModelBuilder | None = None
    savers: dict[type, Any] = field(default_factory=dict)


class ModelCache:
    """Construct-once cache for ``ModelInfo`` and the patched host model.

    Concurrent first requests for one key converge on a single construction;
    requests for other keys are not blocked by it. A failed scan leaves no
    entry behind.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()
        self._key_locks: dict[CacheKey, threading.Lock] = {}

    @staticmethod
    def _key(context_type: type, options: ShamanOptions) -> CacheKey:
        # The entry holds a reference to options, so the id stays unique while cached
        return (context_type, id(options))

    def _lookup(self, key: CacheKey, options: ShamanOptions) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is not None and entry.options is options:
            return entry
        return None

    def _key_lock(self, key: CacheKey) -> threading.Lock:
        with self._lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def _entry(self, context_type: type, options: ShamanOptions) -> _Entry:
        key = self._key(context_type, options)
        entry = self._lookup(key, options)
        if entry is not None:
            return entry
        with self._key_lock(key):
            entry = self._lookup(key, options)
            if entry is None:
                entry = _Entry(options=options, model_info=ModelInfo(context_type, options))
                self._entries[key] = entry
                logger.debug("model_cache_miss", context=context_type.__name__)
            return entry

    def get_model_info(self, context_type: type, options: ShamanOptions) -> ModelInfo:
        return self._entry(context_type, options).model_info

    def get_model_builder(self, context_type: type, options: ShamanOptions) -> ModelBuilder:
        """Patched host model; built and mapped once per key from the cached ``ModelInfo``.

        Entity classes are mapped before the builder is published, so
        instances created afterwards are instrumented for the tracked session.
        """
        entry = self._entry(context_type, options)
        if entry.model_builder is not None:
            return entry.model_builder
        with self._key_lock(self._key(context_type, options)):
            if entry.model_builder is None:
                builder = ModelBuilder(entry.model_info).build()
                builder.map_entities()
                entry.model_builder = builder
            return entry.model_builder

    def get_direct_saver(
        self, context_type: type, options: ShamanOptions, entity_type: type
    ) -> DirectSaver[Any]:
        entry = self._entry(context_type, options)
        saver = entry.savers.get(entity_type)
        if saver is not None:
            return saver
        with self._key_lock(self._key(context_type, options)):
            saver = entry.savers.get(entity_type)
            if saver is None:
                saver = DirectSaver(entry.model_info.require_db_set(entity_type))
                entry.savers[entity_type] = saver
            return saver

    def invalidate(self, context_type: type | None = None) -> int:
        """Drop entries for ``context_type`` (or all). Returns how many were dropped."""
        with self._lock:
            keys = [k for k in self._entries if context_type is None or k[0] is context_type]
            for key in keys:
                del self._entries[key]
                self._key_locks.pop(key, None)
        return len(keys)

    def clear(self) -> None:
        self.invalidate()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: tuple[type, ShamanOptions]) -> bool:
        context_type, options = item
        return self._lookup(self._key(context_type, options), options) is not None
