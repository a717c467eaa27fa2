"""Direct persistence by primary key, bypassing the tracked session."""

from sqlshaman.direct.extensions import (
    direct_delete,
    direct_insert,
    direct_save,
    direct_update,
    is_in_memory,
)
from sqlshaman.direct.saver import DirectSaver
from sqlshaman.direct.status import DirectSaverEntityStatus, EntityWithDirectSaverStatus

__all__ = [
    "DirectSaver",
    "DirectSaverEntityStatus",
    "EntityWithDirectSaverStatus",
    "direct_delete",
    "direct_insert",
    "direct_save",
    "direct_update",
    "is_in_memory",
]
