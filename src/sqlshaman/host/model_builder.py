"""Host model patch: ``ModelInfo`` -> SQLAlchemy tables and mappers.

The builder turns every scanned ``DbSetInfo`` into a ``Table`` on its own
``MetaData`` (names, types, nullability, server defaults, indexes), lets each
``ModelBuilderPatchService`` adjust the result, and maps entity classes
imperatively before the model cache hands the builder to any context.

Full-text indexes have no portable DDL; they are recorded under
``Table.info["full_text_indexes"]`` and left to provider-specific migrations.
"""

from __future__ import annotations

import datetime
import decimal
import re
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    FetchedValue,
    Float,
    Index,
    Integer,
    Interval,
    LargeBinary,
    MetaData,
    Numeric,
    SmallInteger,
    String,
    Table,
    Text,
    Time,
    Unicode,
    UnicodeText,
    Uuid,
    false,
    text,
    true,
)
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import registry

from sqlshaman.core.errors import ModelError
from sqlshaman.markers import IndexType
from sqlshaman.scanner.models import ValueInfoKind
from sqlshaman.services.base import ModelBuilderPatchService

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.types import TypeEngine

    from sqlshaman.scanner.model_info import ModelInfo
    from sqlshaman.scanner.models import ColumnInfo, DbSetInfo, IndexInfo, ValueInfo

logger = structlog.get_logger()

FULL_TEXT_INDEXES_KEY = "full_text_indexes"

_SCALAR_TYPES: dict[type, type[TypeEngine[Any]]] = {
    bool: Boolean,
    int: Integer,
    float: Float,
    decimal.Decimal: Numeric,
    bytes: LargeBinary,
    datetime.datetime: DateTime,
    datetime.date: Date,
    datetime.time: Time,
    datetime.timedelta: Interval,
    uuid.UUID: Uuid,
}

_TYPE_ARGS = re.compile(r"\(([^)]*)\)")

# Explicit Column(type_name=...) values understood without a dialect
_NAMED_TYPES: dict[str, type[TypeEngine[Any]]] = {
    "BIGINT": BigInteger,
    "INT": Integer,
    "INTEGER": Integer,
    "SMALLINT": SmallInteger,
    "BIT": Boolean,
    "BOOLEAN": Boolean,
    "FLOAT": Float,
    "REAL": Float,
    "DECIMAL": Numeric,
    "NUMERIC": Numeric,
    "MONEY": Numeric,
    "VARCHAR": String,
    "NVARCHAR": Unicode,
    "TEXT": Text,
    "NTEXT": UnicodeText,
    "DATE": Date,
    "DATETIME": DateTime,
    "DATETIME2": DateTime,
    "TIME": Time,
    "UNIQUEIDENTIFIER": Uuid,
    "UUID": Uuid,
    "VARBINARY": LargeBinary,
    "BLOB": LargeBinary,
}


def render_literal(value: Any) -> str:
    """SQL literal for a non-boolean default value.

    Booleans have no literal shared by every dialect; ``_server_default``
    hands them to SQLAlchemy as ``true()``/``false()`` instead.
    """
    if isinstance(value, bool):
        raise TypeError("boolean defaults are rendered by the dialect")
    if isinstance(value, Enum):
        # Enum columns store member names
        value = value.name
    if isinstance(value, (int, float, decimal.Decimal)):
        return str(value)
    if isinstance(value, bytes):
        return f"X'{value.hex()}'"
    if isinstance(value, (datetime.date, datetime.time)):
        value = value.isoformat()
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


def _server_default(value: ValueInfo | None) -> Any:
    if value is None:
        return None
    if value.kind is ValueInfoKind.SQL:
        return text(value.sql_text or "")
    if value.literal_value is None:
        return None
    if isinstance(value.literal_value, bool):
        return true() if value.literal_value else false()
    return text(render_literal(value.literal_value))


def column_type_for(column: ColumnInfo) -> TypeEngine[Any]:
    if column.column_type:
        named = _NAMED_TYPES.get(column.column_type.split("(")[0].strip().upper())
        if named is not None:
            return _sized(named, column)
        logger.debug(
            "column_type_not_recognized", column=column.column_name, type_name=column.column_type
        )

    tp = column.python_type
    if column.is_concurrency_token:
        return Integer()
    if isinstance(tp, type) and issubclass(tp, Enum):
        return SqlEnum(tp, length=column.max_length) if column.max_length else SqlEnum(tp)
    if tp is str:
        if column.is_unicode:
            return Unicode(column.max_length) if column.max_length else UnicodeText()
        return String(column.max_length) if column.max_length else Text()
    if tp is decimal.Decimal or column.precision is not None:
        return Numeric(column.precision or 18, column.scale or 2)
    for scalar, type_cls in _SCALAR_TYPES.items():
        if tp is scalar:
            if type_cls is LargeBinary:
                return LargeBinary(column.max_length)
            return type_cls()
    # Anything else is stored as text
    return String(column.max_length) if column.max_length else Text()


def _type_arguments(type_name: str | None) -> list[int]:
    """Integer arguments of a type name, e.g. ``DECIMAL(10, 2)`` -> [10, 2]."""
    match = _TYPE_ARGS.search(type_name or "")
    if match is None:
        return []
    return [int(arg) for arg in match.group(1).split(",") if arg.strip().isdigit()]


def _sized(type_cls: type[TypeEngine[Any]], column: ColumnInfo) -> TypeEngine[Any]:
    args = _type_arguments(column.column_type)
    if type_cls in (String, Unicode, LargeBinary):
        length = column.max_length or (args[0] if args else None)
        return type_cls(length)  # type: ignore[call-arg]
    if type_cls is Numeric:
        if column.precision is not None:
            return Numeric(column.precision, column.scale or 0)
        precision = args[0] if args else 18
        scale = args[1] if len(args) > 1 else (0 if args else 2)
        return Numeric(precision, scale)
    return type_cls()


def auto_index_name(table_name: str, index: IndexInfo) -> str:
    prefix = "UX" if index.index_type is IndexType.UNIQUE_INDEX else "IX"
    return f"{prefix}_{table_name}_{'_'.join(index.field_names)}"


class ModelBuilder:
    """SQLAlchemy model for one (context type, options) pair."""

    def __init__(self, model_info: ModelInfo) -> None:
        self.model_info = model_info
        self.metadata = MetaData()
        self.registry = registry(metadata=self.metadata)
        self._tables: dict[type, Table] = {}
        self._finalized = False
        self._mapped = False

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def build(self) -> ModelBuilder:
        """Create every table, run patch services, then finalize. Idempotent."""
        if self._finalized:
            return self
        patchers = self.model_info.options.services_of(ModelBuilderPatchService)
        for db_set in self.model_info.db_sets:
            table = self._build_table(db_set)
            for service in patchers:
                service.patch_table(db_set, table, self)
            self._tables[db_set.entity_type] = table
        self._finalized = True
        logger.debug(
            "host_model_built",
            context=self.model_info.context_type.__name__,
            tables=[t.fullname for t in self._tables.values()],
        )
        return self

    def table(self, entity_type: type) -> Table:
        if not self._finalized:
            raise ModelError.model_not_built(self.model_info.context_type.__name__)
        table = self._tables.get(entity_type)
        if table is None:
            raise ModelError.unknown_entity_type(
                self.model_info.context_type.__name__, entity_type.__name__
            )
        return table

    @property
    def tables(self) -> list[Table]:
        if not self._finalized:
            raise ModelError.model_not_built(self.model_info.context_type.__name__)
        return list(self._tables.values())

    def _build_table(self, db_set: DbSetInfo) -> Table:
        columns = [self._build_column(c) for c in db_set.columns]
        table = Table(
            db_set.table_name,
            self.metadata,
            *columns,
            schema=db_set.schema,
            info={"entity_type": db_set.entity_type, FULL_TEXT_INDEXES_KEY: []},
        )
        for index in db_set.indexes:
            if index.index_type is IndexType.FULL_TEXT_INDEX:
                table.info[FULL_TEXT_INDEXES_KEY].append(index)
                continue
            Index(
                index.index_name or auto_index_name(db_set.table_name, index),
                *(table.c[name] for name in index.field_names),
                unique=index.index_type is IndexType.UNIQUE_INDEX,
            )
        return table

    def _build_column(self, column: ColumnInfo) -> Column[Any]:
        kwargs: dict[str, Any] = {
            "primary_key": column.is_primary_key,
            "nullable": column.is_nullable,
            "info": {"property_name": column.property_name},
        }
        server_default = _server_default(column.default_value)
        if server_default is not None:
            kwargs["server_default"] = server_default
        if column.is_primary_key:
            kwargs["autoincrement"] = column.is_identity
        elif column.is_database_generated:
            kwargs.setdefault("server_default", FetchedValue())
            kwargs["server_onupdate"] = FetchedValue()
        return Column(column.column_name, column_type_for(column), **kwargs)

    def map_entities(self) -> None:
        """Map every entity class to its table for use with the tracked session.

        A class can carry only one mapping per process; an existing mapping
        onto a table with the same qualified name is reused.
        """
        if self._mapped:
            return
        for db_set in self.model_info.db_sets:
            table = self.table(db_set.entity_type)
            mapper = sa_inspect(db_set.entity_type, raiseerr=False)
            if mapper is not None:
                mapped_name = getattr(mapper.local_table, "fullname", "")
                if mapped_name != table.fullname:
                    raise ModelError.entity_already_mapped(
                        db_set.entity_type.__name__, table.fullname, mapped_name
                    )
                continue
            properties = {
                c.property_name: table.c[c.column_name]
                for c in db_set.columns
                if c.property_name != c.column_name
            }
            mapper_kwargs: dict[str, Any] = {"properties": properties}
            token = next((c for c in db_set.columns if c.is_concurrency_token), None)
            if token is not None:
                mapper_kwargs["version_id_col"] = table.c[token.column_name]
            if db_set.is_keyless:
                # Mapper needs some identity; use every column
                mapper_kwargs["primary_key"] = list(table.c)
            self.registry.map_imperatively(db_set.entity_type, table, **mapper_kwargs)
        self._mapped = True

    def create_all(self, engine: Engine) -> None:
        self.metadata.create_all(engine)

    def drop_all(self, engine: Engine) -> None:
        self.metadata.drop_all(engine)
