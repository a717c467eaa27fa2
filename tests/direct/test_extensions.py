"""Tests for direct_save dispatch and the in-memory fallback."""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from typing import Optional

import pytest

from sqlshaman.core.errors import DirectSaveError, ErrorCode
from sqlshaman.direct.extensions import direct_save, is_in_memory
from sqlshaman.direct.status import DirectSaverEntityStatus, EntityWithDirectSaverStatus
from sqlshaman.host.context import ShamanContext
from sqlshaman.host.database import create_shaman_engine
from sqlshaman.scanner.dbset import DbSet


@dataclass
class Ticket:
    id: int = 0
    title: str = ""
    assignee: Optional[str] = None


class HelpdeskContext(ShamanContext):
    tickets: DbSet[Ticket]


class PlainContext:
    """Context-like object without the in-memory capability."""


@pytest.fixture(params=["sql", "in_memory"])
def context(request: pytest.FixtureRequest, sqlite_url: str) -> Generator[HelpdeskContext, None, None]:
    if request.param == "in_memory":
        context = HelpdeskContext(use_in_memory_database=True)
        context.ensure_created()
        yield context
        context.close()
        return
    engine = create_shaman_engine(sqlite_url)
    context = HelpdeskContext(engine)
    context.ensure_created()
    yield context
    context.close()
    engine.dispose()


def _titles(context: HelpdeskContext) -> list[str]:
    rows = context.database.execute_reader("SELECT title FROM tickets ORDER BY id")
    return [row["title"] for row in rows]


class TestDirectSave:
    def test_insert_update_remove(self, context: HelpdeskContext) -> None:
        ticket = Ticket(id=1, title="Printer on fire")

        context.direct_save(ticket, DirectSaverEntityStatus.MUST_BE_INSERTED)
        assert _titles(context) == ["Printer on fire"]

        ticket.title = "Printer still on fire"
        context.direct_save(ticket, DirectSaverEntityStatus.MUST_BE_UPDATED)
        assert _titles(context) == ["Printer still on fire"]

        context.direct_save(ticket, DirectSaverEntityStatus.MUST_BE_REMOVED)
        assert _titles(context) == []

    def test_status_carried_by_wrapper(self, context: HelpdeskContext) -> None:
        wrapped = EntityWithDirectSaverStatus(
            Ticket(id=2, title="VPN down"), DirectSaverEntityStatus.MUST_BE_INSERTED
        )

        context.direct_save(wrapped)

        assert _titles(context) == ["VPN down"]

    def test_clean_is_a_no_op(self, context: HelpdeskContext) -> None:
        context.direct_save(EntityWithDirectSaverStatus(Ticket(id=3, title="Nothing")))
        context.direct_save(Ticket(id=3, title="Nothing"), DirectSaverEntityStatus.CLEAN)

        assert _titles(context) == []

    def test_explicit_status_overrides_wrapper(self, context: HelpdeskContext) -> None:
        wrapped = EntityWithDirectSaverStatus(Ticket(id=4, title="Override"))

        context.direct_save(wrapped, DirectSaverEntityStatus.MUST_BE_INSERTED)

        assert _titles(context) == ["Override"]

    @pytest.mark.parametrize("status", [None, "Unknown", 2])
    def test_invalid_status(self, context: HelpdeskContext, status: object) -> None:
        with pytest.raises(DirectSaveError) as exc_info:
            context.direct_save(Ticket(id=5), status)  # type: ignore[arg-type]

        assert exc_info.value.code is ErrorCode.INVALID_STATUS
        assert _titles(context) == []


class TestInMemoryDetection:
    def test_context_modes(self, context: HelpdeskContext) -> None:
        assert is_in_memory(context) is context.is_using_in_memory_database

    def test_object_without_capability(self) -> None:
        assert not is_in_memory(PlainContext())

    def test_module_function_with_saver(self, context: HelpdeskContext) -> None:
        saver = context.get_direct_saver(Ticket)

        direct_save(saver, context, Ticket(id=6, title="Direct"), DirectSaverEntityStatus.MUST_BE_INSERTED)

        assert _titles(context) == ["Direct"]
