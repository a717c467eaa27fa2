"""Engine construction and the raw-command facade used by direct saves.

This module provides:
- create_shaman_engine: engines for server URLs, SQLite files and the
  in-memory stand-in
- DatabaseFacade: positional-parameter SQL commands executed inside the
  context's concurrency guard

Outside ``begin_transaction`` every command runs in its own transaction on a
pooled connection, committed on success and rolled back on failure. The
tracked session is not touched, so its pending changes are neither flushed
nor committed by a command, and its autobegun transaction never swallows one.
Inside ``begin_transaction`` commands run on the session's connection and
share its transaction.

Two stores limit that separation. SQLite allows one writer, so a command
waits (up to ``busy_timeout``) while the session holds flushed, uncommitted
changes. The in-memory stand-in shares a single connection between the
session and commands.
"""

from __future__ import annotations

from collections.abc import Generator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import bindparam, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine
    from sqlalchemy.engine import Dialect, RowMapping
    from sqlalchemy.sql.elements import TextClause
    from sqlalchemy.sql.selectable import TextualSelect
    from sqlalchemy.types import TypeEngine

    from sqlshaman.host.context import ShamanContext

logger = structlog.get_logger()

IN_MEMORY_URL = "sqlite://"


def _configure_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
    """Configure SQLite connections for concurrent access."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA busy_timeout=30000")  # 30 second wait
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def create_shaman_engine(url: str = IN_MEMORY_URL, *, echo: bool = False) -> Engine:
    """Engine for ``url``.

    In-memory SQLite URLs get a single shared connection so every session of
    the engine sees the same database.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if _is_memory_sqlite(url):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    event.listen(engine, "connect", _configure_pragmas)
    return engine


def create_in_memory_engine(schemas: Sequence[str] = ()) -> Engine:
    """Private in-memory store standing in for the configured database.

    SQLite has no schemas, so every schema the model uses is translated away.
    """
    engine = create_shaman_engine(IN_MEMORY_URL)
    if schemas:
        engine = engine.execution_options(
            schema_translate_map={schema: None for schema in schemas}
        )
    return engine


def _is_insert(sql: str) -> bool:
    return sql.lstrip()[:6].upper() == "INSERT"


def bind_parameters(parameters: Sequence[Any]) -> dict[str, Any]:
    """Positional parameters as the ``:p0, :p1, ...`` binds used in command text."""
    return {f"p{i}": value for i, value in enumerate(parameters)}


def build_statement(
    sql: str,
    parameter_types: Sequence[TypeEngine[Any] | None] = (),
    result_types: Mapping[str, TypeEngine[Any]] | None = None,
) -> TextClause | TextualSelect:
    """``text()`` construct with typed binds and, optionally, typed result columns."""
    statement = text(sql)
    typed = [
        bindparam(f"p{i}", type_=type_) for i, type_ in enumerate(parameter_types) if type_ is not None
    ]
    if typed:
        statement = statement.bindparams(*typed)
    if result_types:
        return statement.columns(**result_types)
    return statement


@dataclass
class CommandResult:
    rowcount: int
    lastrowid: Any = None
    rows: list[RowMapping] = field(default_factory=list)


def _run(
    connection: Connection,
    statement: TextClause | TextualSelect,
    parameters: Sequence[Any],
    sql: str,
    fetch: bool,
) -> CommandResult:
    result = connection.execute(statement, bind_parameters(parameters))
    if fetch and result.returns_rows:
        rows = list(result.mappings().all())
        return CommandResult(rowcount=len(rows), rows=rows)
    lastrowid = result.lastrowid if _is_insert(sql) else None
    outcome = CommandResult(rowcount=result.rowcount, lastrowid=lastrowid)
    result.close()
    return outcome


class DatabaseFacade:
    """Raw SQL access for one context."""

    def __init__(self, context: ShamanContext) -> None:
        self._context = context
        self._in_transaction = False

    @property
    def engine(self) -> Engine:
        return self._context.engine

    @property
    def in_transaction(self) -> bool:
        """True inside ``begin_transaction``."""
        return self._in_transaction

    @property
    def dialect(self) -> Dialect:
        return self.engine.dialect

    @property
    def supports_insert_returning(self) -> bool:
        return bool(getattr(self.dialect, "insert_returning", False))

    @property
    def supports_update_returning(self) -> bool:
        return bool(getattr(self.dialect, "update_returning", False))

    def quote(self, identifier: str) -> str:
        return self.dialect.identifier_preparer.quote(identifier)

    def quote_table(self, table_name: str, schema: str | None = None) -> str:
        translate = self.engine.get_execution_options().get("schema_translate_map") or {}
        if schema in translate:
            schema = translate[schema]
        if schema:
            return f"{self.quote(schema)}.{self.quote(table_name)}"
        return self.quote(table_name)

    def execute_command(
        self,
        sql: str,
        *parameters: Any,
        fetch: bool = False,
        parameter_types: Sequence[TypeEngine[Any] | None] = (),
        result_types: Mapping[str, TypeEngine[Any]] | None = None,
    ) -> CommandResult:
        """Execute one command with ``:pN`` binds for ``parameters``.

        With ``fetch`` any rows the command returns are read before the
        command completes. ``parameter_types`` and ``result_types`` attach
        SQLAlchemy types to binds and returned columns for value conversion.
        """
        statement = build_statement(sql, parameter_types, result_types)
        context = self._context
        autocommit = not self._in_transaction
        with context.concurrency_detector.critical_section():
            if autocommit:
                with self.engine.begin() as connection:
                    outcome = _run(connection, statement, parameters, sql, fetch)
            else:
                outcome = _run(context.session.connection(), statement, parameters, sql, fetch)

        logger.debug(
            "direct_command_executed",
            context=type(context).__name__,
            sql=sql,
            rowcount=outcome.rowcount,
            autocommit=autocommit,
        )
        return outcome

    def execute_reader(
        self,
        sql: str,
        *parameters: Any,
        result_types: Mapping[str, TypeEngine[Any]] | None = None,
    ) -> list[RowMapping]:
        """Rows of a query, read in full under the concurrency guard."""
        return self.execute_command(sql, *parameters, fetch=True, result_types=result_types).rows

    def execute_non_query(self, sql: str, *parameters: Any) -> int:
        return self.execute_command(sql, *parameters).rowcount

    @contextmanager
    def begin_transaction(self) -> Generator[None, None, None]:
        """Transaction spanning direct commands and tracked operations.

        Adopts the session's transaction (beginning one if needed), so
        tracked changes made before entry are committed with it. Inside,
        ``save_changes`` flushes instead of committing. Commits on successful
        exit, rolls back on exception. Nested calls join the outer one.
        """
        if self._in_transaction:
            yield
            return
        session = self._context.session
        if not session.in_transaction():
            session.begin()
        self._in_transaction = True
        try:
            yield
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            self._in_transaction = False
