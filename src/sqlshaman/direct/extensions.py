"""Direct-save entry points that pick the raw SQL or the in-memory path.

Against the in-memory stand-in raw SQL has nothing to run on, so these
functions fall back to the context's tracked API followed by an immediate
``save_changes()``. The choice is made per call by asking the context whether
it is ``InMemoryDatabaseAware`` and currently using the stand-in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from sqlshaman.core.errors import DirectSaveError
from sqlshaman.direct.status import DirectSaverEntityStatus, EntityWithDirectSaverStatus
from sqlshaman.host.protocols import InMemoryDatabaseAware

if TYPE_CHECKING:
    from sqlshaman.direct.saver import DirectSaver
    from sqlshaman.host.context import ShamanContext

T = TypeVar("T")


def is_in_memory(context: Any) -> bool:
    return isinstance(context, InMemoryDatabaseAware) and context.is_using_in_memory_database


def direct_insert(
    saver: DirectSaver[T], context: ShamanContext, entity: T, skip_select: bool = False
) -> None:
    if is_in_memory(context):
        context.add(entity)
        context.save_changes()
        return
    saver.insert(context, entity, skip_select=skip_select)


def direct_update(
    saver: DirectSaver[T], context: ShamanContext, entity: T, skip_select: bool = False
) -> None:
    if is_in_memory(context):
        context.update(entity)
        context.save_changes()
        return
    saver.update(context, entity, skip_select=skip_select)


def direct_delete(saver: DirectSaver[T], context: ShamanContext, entity: T) -> None:
    """Delete the row behind ``entity`` using the key values it carries."""
    if is_in_memory(context):
        context.remove(entity)
        context.save_changes()
        return
    saver.delete(context, saver.key_values(entity))


def direct_save(
    saver: DirectSaver[T],
    context: ShamanContext,
    entity: T | EntityWithDirectSaverStatus[T],
    status: DirectSaverEntityStatus | None = None,
    skip_select: bool = False,
) -> None:
    """Apply ``status`` to ``entity``.

    ``entity`` may instead be an ``EntityWithDirectSaverStatus`` carrying its
    own status, in which case ``status`` is left out.
    """
    if isinstance(entity, EntityWithDirectSaverStatus):
        if status is None:
            status = entity.status
        entity = entity.item

    if status is DirectSaverEntityStatus.CLEAN:
        return
    if status is DirectSaverEntityStatus.MUST_BE_INSERTED:
        direct_insert(saver, context, entity, skip_select=skip_select)
    elif status is DirectSaverEntityStatus.MUST_BE_UPDATED:
        direct_update(saver, context, entity, skip_select=skip_select)
    elif status is DirectSaverEntityStatus.MUST_BE_REMOVED:
        direct_delete(saver, context, entity)
    else:
        raise DirectSaveError.invalid_status(status)
