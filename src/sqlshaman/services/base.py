"""Service pipeline capabilities.

A service is any object installed in ``ShamanOptions.services``. What it can
do is decided by which of the capability base classes below it derives from;
the scanner and the host model builder query each capability with
``isinstance`` and call services in list order, so a later service can
override what an earlier one decided.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlalchemy import Table

    from sqlshaman.core.logging import ShamanLogger
    from sqlshaman.host.model_builder import ModelBuilder
    from sqlshaman.options import ShamanOptions
    from sqlshaman.scanner.models import (
        ColumnInfo,
        DbSetBuilder,
        DbSetInfo,
        PropertyDescriptor,
    )


@dataclass
class ScanScope:
    """What a service can see while one entity is being scanned."""

    context_type: type
    options: ShamanOptions
    entity_types: frozenset[type]
    db_set: DbSetBuilder

    @property
    def logger(self) -> ShamanLogger:
        return self.options.logger

    @property
    def entity_name(self) -> str:
        return self.db_set.entity_type.__name__


class ShamanService:
    """Marker base for pipeline members."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ColumnInfoUpdateService(ShamanService, ABC):
    @abstractmethod
    def update_column_info(
        self, column: ColumnInfo, prop: PropertyDescriptor, scope: ScanScope
    ) -> None: ...


class DbSetInfoUpdateService(ShamanService, ABC):
    @abstractmethod
    def update_db_set_info(self, db_set: DbSetBuilder, scope: ScanScope) -> None: ...


class ModelBuilderPatchService(ShamanService, ABC):
    """Mutates the host table built for a scanned entity."""

    @abstractmethod
    def patch_table(self, db_set: DbSetInfo, table: Table, builder: ModelBuilder) -> None: ...


class OptionModificationService(ShamanService, ABC):
    """Runs once, as soon as the service is added to the options."""

    @abstractmethod
    def modify_shaman_options(self, options: ShamanOptions) -> None: ...


ColumnUpdater = Callable[["PropertyDescriptor", "ColumnInfo"], Any]


class FunctionColumnUpdater(ColumnInfoUpdateService):
    """Adapts a plain ``(prop, column) -> None`` function into a service."""

    def __init__(self, fn: ColumnUpdater, name: str | None = None) -> None:
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "column_updater")

    def update_column_info(
        self,
        column: ColumnInfo,
        prop: PropertyDescriptor,
        scope: ScanScope,  # noqa: ARG002
    ) -> None:
        self._fn(prop, column)

    def __repr__(self) -> str:
        return f"FunctionColumnUpdater({self.name})"
