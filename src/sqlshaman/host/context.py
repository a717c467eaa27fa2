"""Host context: DbSet declarations, the tracked session and direct saves.

A context class declares its entity collections as annotations::

    class ShopContext(ShamanContext):
        default_schema = "shop"

        products: DbSet[Product]
        orders: DbSet[Order]

Instances own one lazily created ``sqlmodel.Session`` and one
``ConcurrencyDetector``. Tracked operations (``add``, ``remove``,
``save_changes``, ...) and direct commands both run inside the detector's
critical section, so overlapping use of one context fails fast instead of
corrupting the shared connection.
"""

from __future__ import annotations

from collections.abc import Generator, Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

import structlog
from sqlalchemy import func
from sqlalchemy import inspect as sa_inspect
from sqlmodel import Session, select

from sqlshaman.core.logging import configure_logging
from sqlshaman.direct.extensions import direct_delete, direct_insert, direct_save, direct_update
from sqlshaman.direct.status import EntityWithDirectSaverStatus
from sqlshaman.host.cache import ModelCache
from sqlshaman.host.concurrency import ConcurrencyDetector
from sqlshaman.host.database import DatabaseFacade, create_in_memory_engine, create_shaman_engine
from sqlshaman.host.protocols import InMemoryDatabaseAware
from sqlshaman.options import ShamanOptions
from sqlshaman.scanner.dbset import db_set_members

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from sqlshaman.config.models import ShamanConfig
    from sqlshaman.direct.saver import DirectSaver
    from sqlshaman.direct.status import DirectSaverEntityStatus
    from sqlshaman.host.model_builder import ModelBuilder
    from sqlshaman.scanner.model_info import ModelInfo
    from sqlshaman.scanner.models import DbSetInfo

__all__ = ["ContextFactory", "DbSetView", "InMemoryDatabaseAware", "ShamanContext"]

logger = structlog.get_logger()

T = TypeVar("T")
C = TypeVar("C", bound="ShamanContext")


class DbSetView(Generic[T]):
    """Instance-level view of a ``DbSet[T]`` member of a context."""

    def __init__(self, context: ShamanContext, entity_type: type[T], collection_name: str) -> None:
        self.context = context
        self.entity_type = entity_type
        self.collection_name = collection_name

    @property
    def info(self) -> DbSetInfo:
        return self.context.model_info.require_db_set(self.entity_type)

    def add(self, entity: T) -> None:
        self.context.add(entity)

    def remove(self, entity: T) -> None:
        self.context.remove(entity)

    def find(self, key: Any) -> T | None:
        return self.context.get(self.entity_type, key)

    def all(self) -> list[T]:
        return self.context.query(self.entity_type)

    def count(self) -> int:
        return self.context.count(self.entity_type)

    def __iter__(self) -> Iterator[T]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"DbSetView({self.collection_name}: {self.entity_type.__name__})"


class ShamanContext:
    """Base class for contexts exposing ``DbSet[...]`` collections."""

    # Schema for tables that do not name one; options may override it
    default_schema: ClassVar[str | None] = None

    @classmethod
    def configure_shaman_options(cls, options: ShamanOptions) -> None:
        """Add per-context services; runs after the default services are installed."""

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        options: ShamanOptions | None = None,
        model_cache: ModelCache | None = None,
        use_in_memory_database: bool = False,
    ) -> None:
        self._options = options if options is not None else ShamanOptions.create_shaman_options(type(self))
        self._model_cache = model_cache if model_cache is not None else ModelCache()
        self._use_in_memory_database = use_in_memory_database
        self._engine = engine
        self._owns_engine = engine is None
        self._session: Session | None = None
        self._views: dict[str, DbSetView[Any]] = {}
        self.concurrency_detector = ConcurrencyDetector(type(self).__name__)
        self.database = DatabaseFacade(self)
        # Entity instances are only tracked if their class is mapped before they are created
        self.model  # noqa: B018

    @classmethod
    def from_config(
        cls, config: ShamanConfig, *, model_cache: ModelCache | None = None
    ) -> ShamanContext:
        configure_logging(config=config.logging)
        options = ShamanOptions.create_shaman_options(cls, config)
        database = config.database
        engine = None
        if not database.use_in_memory_database:
            engine = create_shaman_engine(database.url, echo=database.echo)
        context = cls(
            engine,
            options=options,
            model_cache=model_cache,
            use_in_memory_database=database.use_in_memory_database,
        )
        context._owns_engine = True
        return context

    def __getattr__(self, name: str) -> DbSetView[Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        views = self.__dict__.get("_views")
        if views is None:
            raise AttributeError(name)
        if name not in views:
            for collection_name, entity_type in db_set_members(type(self)):
                if collection_name == name:
                    views[name] = DbSetView(self, entity_type, collection_name)
                    break
            else:
                raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return views[name]

    # Model

    @property
    def options(self) -> ShamanOptions:
        return self._options

    @property
    def model_cache(self) -> ModelCache:
        return self._model_cache

    @property
    def model_info(self) -> ModelInfo:
        return self._model_cache.get_model_info(type(self), self._options)

    @property
    def model(self) -> ModelBuilder:
        return self._model_cache.get_model_builder(type(self), self._options)

    # Connection

    @property
    def is_using_in_memory_database(self) -> bool:
        return self._use_in_memory_database

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self._use_in_memory_database:
                schemas = sorted({ds.schema for ds in self.model_info.db_sets if ds.schema})
                self._engine = create_in_memory_engine(schemas)
            else:
                self._engine = create_shaman_engine()
        return self._engine

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = Session(self.engine, expire_on_commit=False)
        return self._session

    def ensure_created(self) -> None:
        """Create every table of the model that does not exist yet."""
        with self.concurrency_detector.critical_section():
            self.model.create_all(self.engine)

    def ensure_deleted(self) -> None:
        with self.concurrency_detector.critical_section():
            self.model.drop_all(self.engine)

    # Tracked operations

    @contextmanager
    def _tracked(self) -> Generator[Session, None, None]:
        with self.concurrency_detector.critical_section():
            yield self.session

    def add(self, entity: Any) -> None:
        with self._tracked() as session:
            session.add(entity)

    def add_all(self, entities: Iterable[Any]) -> None:
        with self._tracked() as session:
            session.add_all(list(entities))

    def update(self, entity: T) -> T:
        """Attach ``entity`` as modified; returns the tracked instance."""
        with self._tracked() as session:
            return session.merge(entity)

    def remove(self, entity: Any) -> None:
        with self._tracked() as session:
            if entity not in session:
                entity = session.merge(entity)
            if sa_inspect(entity).pending:
                # Nothing stored under that key
                session.expunge(entity)
                return
            session.delete(entity)

    def get(self, entity_type: type[T], key: Any) -> T | None:
        with self._tracked() as session:
            return session.get(entity_type, key)

    def query(self, entity_type: type[T]) -> list[T]:
        with self._tracked() as session:
            return list(session.exec(select(entity_type)).all())

    def count(self, entity_type: type) -> int:
        with self._tracked() as session:
            return session.exec(select(func.count()).select_from(entity_type)).one()

    def save_changes(self) -> int:
        """Commit tracked changes. Returns the number of added, changed and removed entities.

        Inside ``database.begin_transaction()`` the changes are only flushed;
        the enclosing transaction commits them.
        """
        with self._tracked() as session:
            changed = len(session.new) + len(session.dirty) + len(session.deleted)
            if self.database.in_transaction:
                session.flush()
            else:
                session.commit()
        logger.debug("changes_saved", context=type(self).__name__, entities=changed)
        return changed

    # Direct operations

    def get_direct_saver(self, entity_type: type[T]) -> DirectSaver[T]:
        return self._model_cache.get_direct_saver(type(self), self._options, entity_type)

    def direct_insert(self, entity: Any, skip_select: bool = False) -> None:
        direct_insert(self.get_direct_saver(type(entity)), self, entity, skip_select=skip_select)

    def direct_update(self, entity: Any, skip_select: bool = False) -> None:
        direct_update(self.get_direct_saver(type(entity)), self, entity, skip_select=skip_select)

    def direct_delete(self, entity: Any) -> None:
        direct_delete(self.get_direct_saver(type(entity)), self, entity)

    def direct_delete_by_key(self, entity_type: type, key_values: dict[str, Any]) -> int:
        """Delete by primary-key column values when no entity instance is at hand."""
        return self.get_direct_saver(entity_type).delete(self, key_values)

    def direct_save(
        self,
        entity: Any,
        status: DirectSaverEntityStatus | None = None,
        skip_select: bool = False,
    ) -> None:
        item = entity.item if isinstance(entity, EntityWithDirectSaverStatus) else entity
        direct_save(self.get_direct_saver(type(item)), self, entity, status, skip_select=skip_select)

    # Lifetime

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self: C) -> C:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ContextFactory(Generic[C]):
    """Creates contexts of one type that share options and a model cache.

    Contexts made by one factory reuse the scanned model, the host model and
    the direct savers. With the in-memory stand-in they also share one store.
    """

    def __init__(
        self,
        context_type: type[C],
        engine: Engine | None = None,
        *,
        config: ShamanConfig | None = None,
        options: ShamanOptions | None = None,
        use_in_memory_database: bool | None = None,
    ) -> None:
        if config is not None:
            configure_logging(config=config.logging)
        self.context_type = context_type
        self.model_cache = ModelCache()
        self.options = (
            options
            if options is not None
            else ShamanOptions.create_shaman_options(context_type, config)
        )
        if use_in_memory_database is None:
            use_in_memory_database = bool(config and config.database.use_in_memory_database)
        self.use_in_memory_database = use_in_memory_database
        if engine is None and config is not None and not use_in_memory_database:
            engine = create_shaman_engine(config.database.url, echo=config.database.echo)
        self._engine = engine

    @property
    def model_info(self) -> ModelInfo:
        return self.model_cache.get_model_info(self.context_type, self.options)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self.use_in_memory_database:
                schemas = sorted({ds.schema for ds in self.model_info.db_sets if ds.schema})
                self._engine = create_in_memory_engine(schemas)
            else:
                self._engine = create_shaman_engine()
        return self._engine

    def create(self) -> C:
        return self.context_type(
            self.engine,
            options=self.options,
            model_cache=self.model_cache,
            use_in_memory_database=self.use_in_memory_database,
        )

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
