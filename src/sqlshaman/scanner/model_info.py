"""``ModelInfo``: scanned metadata for every DbSet of a context type."""

from __future__ import annotations

from typing import Any

import structlog

from sqlshaman.core.errors import ModelError
from sqlshaman.options import ShamanOptions
from sqlshaman.scanner.dbset import db_set_members
from sqlshaman.scanner.models import DbSetInfo
from sqlshaman.scanner.scanner import scan_entity
from sqlshaman.scanner.types import not_null_from_property_type

logger = structlog.get_logger()


class ModelInfo:
    """Immutable description of the tables behind a context type.

    Construction scans every entity exposed through ``DbSet[...]`` on
    ``context_type``. Any scan error aborts construction; on success the
    options are frozen.
    """

    def __init__(self, context_type: type, options: ShamanOptions | None = None) -> None:
        if options is None:
            options = ShamanOptions.create_shaman_options(context_type)
        self.context_type = context_type
        self.options = options
        self.default_schema: str | None = options.default_schema or getattr(
            context_type, "default_schema", None
        )

        members = db_set_members(context_type)
        entity_types = [entity_type for _, entity_type in members]
        db_sets: list[DbSetInfo] = []
        by_type: dict[type, DbSetInfo] = {}
        for collection_name, entity_type in members:
            if entity_type in by_type:
                logger.warning(
                    "duplicate_db_set_ignored",
                    context=context_type.__name__,
                    entity=entity_type.__name__,
                    collection=collection_name,
                )
                continue
            db_set = scan_entity(
                entity_type,
                collection_name,
                context_type=context_type,
                options=options,
                entity_types=entity_types,
                default_schema=self.default_schema,
            )
            db_sets.append(db_set)
            by_type[entity_type] = db_set

        self._db_sets = tuple(db_sets)
        self._by_type = by_type
        options.freeze()
        logger.debug(
            "model_info_built",
            context=context_type.__name__,
            db_sets=len(db_sets),
            services=len(options.services),
        )

    @classmethod
    def make(cls, context_type: type) -> ModelInfo:
        return cls(context_type, ShamanOptions.create_shaman_options(context_type))

    @staticmethod
    def not_null_from_property_type(annotation: Any) -> bool:
        return not_null_from_property_type(annotation)

    @property
    def db_sets(self) -> tuple[DbSetInfo, ...]:
        return self._db_sets

    def db_set(self, entity_type: type) -> DbSetInfo | None:
        return self._by_type.get(entity_type)

    def require_db_set(self, entity_type: type) -> DbSetInfo:
        db_set = self._by_type.get(entity_type)
        if db_set is None:
            raise ModelError.unknown_entity_type(self.context_type.__name__, entity_type.__name__)
        return db_set

    def __repr__(self) -> str:
        tables = ", ".join(ds.table_name for ds in self._db_sets)
        return f"ModelInfo({self.context_type.__name__}: {tables})"
