"""Caller-assigned save status for direct persistence."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class DirectSaverEntityStatus(str, Enum):
    """What ``direct_save`` should do with an entity.

    The status is decided by the caller; nothing in sqlshaman computes it.
    """

    CLEAN = "Clean"
    MUST_BE_INSERTED = "MustBeInserted"
    MUST_BE_UPDATED = "MustBeUpdated"
    MUST_BE_REMOVED = "MustBeRemoved"


@dataclass
class EntityWithDirectSaverStatus(Generic[T]):
    item: T
    status: DirectSaverEntityStatus = DirectSaverEntityStatus.CLEAN
