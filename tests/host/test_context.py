"""Tests for ShamanContext tracked operations and ContextFactory."""

from __future__ import annotations

import decimal
import json
import logging
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import pytest
from sqlalchemy import inspect as sa_inspect

from sqlshaman.config.models import (
    DatabaseConfig,
    LoggingConfig,
    LogOutputConfig,
    NamingConfig,
    ShamanConfig,
)
from sqlshaman.core.errors import ContextError, ErrorCode, ModelError
from sqlshaman.host.context import ContextFactory, DbSetView, ShamanContext
from sqlshaman.host.protocols import InMemoryDatabaseAware
from sqlshaman.markers import DatabaseGenerated, DecimalType, table
from sqlshaman.scanner.dbset import DbSet


@dataclass
class Customer:
    id: int = 0
    name: str = ""
    email: Optional[str] = None


@table("Orders", schema="sales")
@dataclass
class SalesOrder:
    id: Annotated[Optional[int], DatabaseGenerated()] = None
    customer_id: int = 0
    total: Annotated[decimal.Decimal, DecimalType(10, 2)] = decimal.Decimal(0)


@dataclass
class Lead:
    id: int = 0
    source: str = ""


@dataclass
class Prospect:
    id: int = 0
    name: str = ""


class SalesContext(ShamanContext):
    customers: DbSet[Customer]
    orders: DbSet[SalesOrder]


class LeadContext(ShamanContext):
    leads: DbSet[Lead]


class ProspectContext(ShamanContext):
    prospects: DbSet[Prospect]


@pytest.fixture
def factory() -> Generator[ContextFactory[SalesContext], None, None]:
    factory = ContextFactory(SalesContext, use_in_memory_database=True)
    with factory.create() as context:
        context.ensure_created()
    yield factory
    factory.dispose()


@pytest.fixture
def context(factory: ContextFactory[SalesContext]) -> Generator[SalesContext, None, None]:
    with factory.create() as context:
        yield context


class TestTrackedOperations:
    def test_add_and_save(self, context: SalesContext) -> None:
        context.add(Customer(id=1, name="Ada"))
        context.add_all([Customer(id=2, name="Grace"), Customer(id=3, name="Linus")])

        assert context.save_changes() == 3
        assert context.count(Customer) == 3
        assert context.get(Customer, 2).name == "Grace"

    def test_identity_assigned_on_save(self, context: SalesContext) -> None:
        order = SalesOrder(customer_id=1, total=decimal.Decimal("12.50"))
        context.add(order)
        context.save_changes()

        assert order.id is not None
        assert context.get(SalesOrder, order.id).total == decimal.Decimal("12.50")

    def test_remove(self, context: SalesContext) -> None:
        customer = Customer(id=1, name="Ada")
        context.add(customer)
        context.save_changes()

        context.remove(customer)

        assert context.save_changes() == 1
        assert context.count(Customer) == 0

    def test_remove_pending_entity(self, context: SalesContext) -> None:
        customer = Customer(id=1, name="Ada")
        context.add(customer)

        context.remove(customer)

        assert context.save_changes() == 0
        assert context.count(Customer) == 0

    def test_update_detached_entity(self, factory: ContextFactory[SalesContext]) -> None:
        with factory.create() as writer:
            writer.add(Customer(id=1, name="Ada"))
            writer.save_changes()

        with factory.create() as editor:
            tracked = editor.update(Customer(id=1, name="Ada Lovelace", email="ada@example.com"))
            assert editor.save_changes() == 1
            assert tracked.email == "ada@example.com"

        with factory.create() as reader:
            assert reader.get(Customer, 1).name == "Ada Lovelace"

    def test_overlapping_use_fails_fast(self, context: SalesContext) -> None:
        with context.concurrency_detector.critical_section(), pytest.raises(ContextError) as exc_info:
            context.add(Customer(id=1))

        assert exc_info.value.code is ErrorCode.CONCURRENT_USE
        context.add(Customer(id=1))
        assert context.save_changes() == 1

    def test_entities_are_mapped_when_context_is_created(self) -> None:
        with ProspectContext(use_in_memory_database=True) as context:
            assert sa_inspect(Prospect, raiseerr=False) is not None
            prospect = Prospect(id=1, name="Ada")
            context.ensure_created()

            context.add(prospect)

            assert context.save_changes() == 1
            assert context.get(Prospect, 1) is prospect

    def test_save_changes_inside_transaction_only_flushes(
        self, factory: ContextFactory[SalesContext]
    ) -> None:
        with factory.create() as context:
            with pytest.raises(RuntimeError), context.database.begin_transaction():
                context.add(Customer(id=1, name="Ada"))
                assert context.save_changes() == 1
                assert context.count(Customer) == 1
                raise RuntimeError("abort")

            assert context.count(Customer) == 0


class TestDbSetView:
    def test_view_for_collection(self, context: SalesContext) -> None:
        view = context.customers

        assert isinstance(view, DbSetView)
        assert view is context.customers
        assert view.entity_type is Customer
        assert view.info.table_name == "customers"
        assert repr(view) == "DbSetView(customers: Customer)"

    def test_view_operations(self, context: SalesContext) -> None:
        context.customers.add(Customer(id=1, name="Ada"))
        context.customers.add(Customer(id=2, name="Grace"))
        context.save_changes()

        assert context.customers.count() == 2
        assert context.customers.find(1).name == "Ada"
        assert sorted(c.name for c in context.customers) == ["Ada", "Grace"]

        context.customers.remove(context.customers.find(1))
        context.save_changes()
        assert [c.id for c in context.customers.all()] == [2]

    def test_unknown_attribute(self, context: SalesContext) -> None:
        with pytest.raises(AttributeError):
            _ = context.invoices


class TestInMemoryDatabase:
    def test_reports_in_memory_mode(self, context: SalesContext) -> None:
        assert isinstance(context, InMemoryDatabaseAware)
        assert context.is_using_in_memory_database

    def test_schema_is_translated_away(self, context: SalesContext) -> None:
        assert context.model_info.require_db_set(SalesOrder).schema == "sales"
        assert context.engine.get_execution_options()["schema_translate_map"] == {"sales": None}

    def test_factory_contexts_share_store_and_model(
        self, factory: ContextFactory[SalesContext]
    ) -> None:
        first = factory.create()
        second = factory.create()
        try:
            first.add(Customer(id=5, name="Shared"))
            first.save_changes()

            assert second.get(Customer, 5).name == "Shared"
            assert first.model_info is second.model_info
            assert first.model is second.model
            assert first.options is factory.options
        finally:
            first.close()
            second.close()

    def test_standalone_context_owns_its_engine(self) -> None:
        context = SalesContext(use_in_memory_database=True)
        context.ensure_created()
        engine = context.engine

        context.close()

        assert context._engine is None
        assert engine is not context.engine
        context.close()


@pytest.mark.usefixtures("restore_logging")
class TestFromConfig:
    def test_from_config(self, sqlite_url: str) -> None:
        config = ShamanConfig(
            database=DatabaseConfig(url=sqlite_url),
            naming=NamingConfig(table_prefix="crm_"),
        )
        with LeadContext.from_config(config) as context:
            assert not context.is_using_in_memory_database
            assert context.leads.info.table_name == "crm_leads"
            context.ensure_created()
            context.add(Lead(id=1, source="web"))
            context.save_changes()
            assert context.count(Lead) == 1

        # A class is mapped once per process; another table name is rejected
        with pytest.raises(ModelError) as exc_info:
            LeadContext(use_in_memory_database=True)

        assert exc_info.value.code is ErrorCode.ENTITY_ALREADY_MAPPED

    def test_from_config_configures_logging(self, tmp_path: Path) -> None:
        log_file = tmp_path / "shaman.log"
        config = ShamanConfig(
            logging=LoggingConfig(
                level="DEBUG",
                sqlalchemy_level="ERROR",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            ),
            database=DatabaseConfig(use_in_memory_database=True),
        )

        with SalesContext.from_config(config) as context:
            context.database.execute_reader("SELECT 1 AS one")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR
        events = [json.loads(line)["event"] for line in log_file.read_text().splitlines()]
        assert "direct_command_executed" in events

    def test_factory_from_in_memory_config(self) -> None:
        config = ShamanConfig(database=DatabaseConfig(use_in_memory_database=True))
        factory = ContextFactory(SalesContext, config=config)
        try:
            assert factory.use_in_memory_database
            with factory.create() as context:
                assert context.is_using_in_memory_database
        finally:
            factory.dispose()
