"""Direct persistence: INSERT/UPDATE/DELETE by primary key, bypassing the session.

A ``DirectSaver`` is built once per entity type from its ``DbSetInfo`` and
executed against a context's ``DatabaseFacade``. Statements use ``:pN``
positional binds and identifiers quoted by the context's dialect.

Values written and read back are converted with the same SQLAlchemy types the
host model uses for the table.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import structlog

from sqlshaman.core.errors import DirectSaveError
from sqlshaman.host.model_builder import column_type_for

if TYPE_CHECKING:
    from sqlalchemy.types import TypeEngine

    from sqlshaman.host.context import ShamanContext
    from sqlshaman.host.database import DatabaseFacade
    from sqlshaman.scanner.models import ColumnInfo, DbSetInfo

logger = structlog.get_logger()

T = TypeVar("T")


class DirectSaver(Generic[T]):
    """Parameterized SQL persistence for one entity type."""

    def __init__(self, db_set: DbSetInfo) -> None:
        self.db_set = db_set
        self._key_columns = db_set.primary_key_columns
        self._token = next((c for c in db_set.columns if c.is_concurrency_token), None)
        self._types: dict[str, TypeEngine[Any]] = {
            c.column_name: column_type_for(c) for c in db_set.columns
        }

    def __repr__(self) -> str:
        return f"DirectSaver({self.db_set.entity_type.__name__} -> {self.db_set.qualified_name})"

    def get_primary_key_columns(self) -> tuple[ColumnInfo, ...]:
        return self._key_columns

    def _require_key(self) -> tuple[ColumnInfo, ...]:
        if not self._key_columns:
            raise DirectSaveError.missing_primary_key(
                self.db_set.entity_type.__name__, self.db_set.table_name
            )
        return self._key_columns

    def key_values(self, entity: T) -> dict[str, Any]:
        """Primary-key column name -> value, read from ``entity``."""
        return {c.column_name: c.value_reader(entity) for c in self._require_key()}

    def _table(self, db: DatabaseFacade) -> str:
        return db.quote_table(self.db_set.table_name, self.db_set.schema)

    def _where_key(
        self, db: DatabaseFacade, keys: Mapping[str, Any], start: int
    ) -> tuple[str, list[Any], list[TypeEngine[Any]]]:
        clauses: list[str] = []
        params: list[Any] = []
        types: list[TypeEngine[Any]] = []
        for offset, column in enumerate(self._key_columns):
            clauses.append(f"{db.quote(column.column_name)} = :p{start + offset}")
            params.append(keys[column.column_name])
            types.append(self._types[column.column_name])
        return " AND ".join(clauses), params, types

    # Insert

    def insert(self, context: ShamanContext, entity: T, skip_select: bool = False) -> None:
        """Insert ``entity``; generated and defaulted values are read back unless skipped."""
        key_columns = self._require_key()
        db = context.database

        written: list[ColumnInfo] = []
        values: list[Any] = []
        readback: list[ColumnInfo] = []
        for column in self.db_set.columns:
            value = column.value_reader(entity)
            if column.is_concurrency_token and value is None:
                value = 1
            if column.is_database_generated or (value is None and column.default_value is not None):
                readback.append(column)
                continue
            written.append(column)
            values.append(value)

        read_back = {c.column_name for c in readback}
        missing = [
            c.column_name
            for c in key_columns
            if c.column_name not in read_back and c.value_reader(entity) is None
        ]
        if missing:
            raise DirectSaveError.missing_key_value(self.db_set.table_name, missing, [])
        if self._token is not None and self._token.value_reader(entity) is None:
            setattr(entity, self._token.property_name, 1)

        table = self._table(db)
        if written:
            names = ", ".join(db.quote(c.column_name) for c in written)
            binds = ", ".join(f":p{i}" for i in range(len(written)))
            sql = f"INSERT INTO {table} ({names}) VALUES ({binds})"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        parameter_types = [self._types[c.column_name] for c in written]

        if skip_select or not readback:
            db.execute_command(sql, *values, parameter_types=parameter_types)
            return

        if db.supports_insert_returning:
            sql += " RETURNING " + ", ".join(db.quote(c.column_name) for c in readback)
            result = db.execute_command(
                sql,
                *values,
                fetch=True,
                parameter_types=parameter_types,
                result_types=self._result_types(readback),
            )
            self._apply_row(entity, readback, result.rows[0])
            return

        result = db.execute_command(sql, *values, parameter_types=parameter_types)
        keys = {c.column_name: c.value_reader(entity) for c in key_columns}
        generated_keys = [c for c in key_columns if keys[c.column_name] is None]
        if len(generated_keys) == 1:
            keys[generated_keys[0].column_name] = result.lastrowid
        self._select_into(context, entity, readback, keys)

    # Update

    def update(self, context: ShamanContext, entity: T, skip_select: bool = False) -> int:
        """Update every non-key column of the row keyed by ``entity``.

        With a concurrency token the row must still carry the token value the
        entity was read with, otherwise ``DirectSaveError`` CONCURRENCY_CONFLICT
        is raised. Returns the affected row count.
        """
        keys = self._keys_present(self.key_values(entity))
        db = context.database

        assignments: list[str] = []
        values: list[Any] = []
        parameter_types: list[TypeEngine[Any]] = []
        for column in self.db_set.columns:
            if column.is_primary_key or column.is_database_generated or column is self._token:
                continue
            assignments.append(f"{db.quote(column.column_name)} = :p{len(values)}")
            values.append(column.value_reader(entity))
            parameter_types.append(self._types[column.column_name])

        old_token = new_token = None
        if self._token is not None:
            old_token = self._token.value_reader(entity)
            new_token = (old_token or 0) + 1
            assignments.append(f"{db.quote(self._token.column_name)} = :p{len(values)}")
            values.append(new_token)
            parameter_types.append(self._types[self._token.column_name])

        if not assignments:
            logger.debug("direct_update_nothing_to_set", table=self.db_set.table_name)
            return 0

        where, key_params, key_types = self._where_key(db, keys, len(values))
        values.extend(key_params)
        parameter_types.extend(key_types)
        if self._token is not None:
            where += f" AND {db.quote(self._token.column_name)} = :p{len(values)}"
            values.append(old_token)
            parameter_types.append(self._types[self._token.column_name])

        sql = f"UPDATE {self._table(db)} SET {', '.join(assignments)} WHERE {where}"
        rowcount = db.execute_command(sql, *values, parameter_types=parameter_types).rowcount

        if rowcount == 0:
            if self._token is not None:
                raise DirectSaveError.concurrency_conflict(self.db_set.table_name, keys)
            logger.warning("direct_update_no_rows", table=self.db_set.table_name, keys=keys)
            return 0

        if self._token is not None:
            setattr(entity, self._token.property_name, new_token)
        computed = [c for c in self.db_set.columns if c.is_database_generated and not c.is_primary_key]
        if computed and not skip_select:
            self._select_into(context, entity, computed, keys)
        return rowcount

    # Delete

    def delete(self, context: ShamanContext, key_values: Mapping[str, Any]) -> int:
        """Delete the row identified by primary-key column name -> value.

        Returns the affected row count; deleting a missing row is not an error.
        """
        keys = self._keys_present(key_values)
        db = context.database
        where, params, types = self._where_key(db, keys, 0)
        sql = f"DELETE FROM {self._table(db)} WHERE {where}"
        rowcount = db.execute_command(sql, *params, parameter_types=types).rowcount
        if rowcount == 0:
            logger.warning("direct_delete_no_rows", table=self.db_set.table_name, keys=dict(keys))
        return rowcount

    def _keys_present(self, key_values: Mapping[str, Any]) -> dict[str, Any]:
        expected = [c.column_name for c in self._require_key()]
        missing = [name for name in expected if key_values.get(name) is None]
        unexpected = [name for name in key_values if name not in expected]
        if missing or unexpected:
            raise DirectSaveError.missing_key_value(self.db_set.table_name, missing, unexpected)
        return {name: key_values[name] for name in expected}

    # Read-back

    def _result_types(self, columns: list[ColumnInfo]) -> dict[str, TypeEngine[Any]]:
        return {c.column_name: self._types[c.column_name] for c in columns}

    def _select_into(
        self,
        context: ShamanContext,
        entity: T,
        columns: list[ColumnInfo],
        keys: Mapping[str, Any],
    ) -> None:
        db = context.database
        where, params, types = self._where_key(db, keys, 0)
        names = ", ".join(db.quote(c.column_name) for c in columns)
        sql = f"SELECT {names} FROM {self._table(db)} WHERE {where}"
        rows = db.execute_command(
            sql, *params, fetch=True, parameter_types=types, result_types=self._result_types(columns)
        ).rows
        if rows:
            self._apply_row(entity, columns, rows[0])
        else:
            logger.warning("direct_readback_no_row", table=self.db_set.table_name)

    @staticmethod
    def _apply_row(entity: Any, columns: list[ColumnInfo], row: Mapping[str, Any]) -> None:
        for column in columns:
            setattr(entity, column.property_name, row[column.column_name])
