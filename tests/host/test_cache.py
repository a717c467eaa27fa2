"""Tests for the model cache."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Annotated

import pytest
from sqlalchemy import inspect as sa_inspect

from sqlshaman.core.errors import ErrorCode, ModelError
from sqlshaman.direct.saver import DirectSaver
from sqlshaman.host.cache import ModelCache
from sqlshaman.markers import MaxLength
from sqlshaman.options import ShamanOptions
from sqlshaman.scanner.dbset import DbSet
from sqlshaman.services.base import FunctionColumnUpdater


@dataclass
class Author:
    id: int = 0
    name: str = ""


@dataclass
class Broken:
    id: int = 0
    name: Annotated[str, MaxLength(0)] = ""


class LibraryContext:
    authors: DbSet[Author]


class OtherLibraryContext:
    authors: DbSet[Author]


class BrokenContext:
    items: DbSet[Broken]


@pytest.fixture
def cache() -> ModelCache:
    return ModelCache()


@pytest.fixture
def options() -> ShamanOptions:
    return ShamanOptions.create_shaman_options(LibraryContext)


class TestModelCache:
    def test_same_key_returns_same_model(self, cache: ModelCache, options: ShamanOptions) -> None:
        first = cache.get_model_info(LibraryContext, options)

        assert cache.get_model_info(LibraryContext, options) is first
        assert (LibraryContext, options) in cache
        assert len(cache) == 1

    def test_other_options_get_their_own_entry(
        self, cache: ModelCache, options: ShamanOptions
    ) -> None:
        other = ShamanOptions.create_shaman_options(LibraryContext)

        first = cache.get_model_info(LibraryContext, options)
        second = cache.get_model_info(LibraryContext, other)

        assert first is not second
        assert len(cache) == 2

    def test_model_builder_is_built_once(self, cache: ModelCache, options: ShamanOptions) -> None:
        builder = cache.get_model_builder(LibraryContext, options)

        assert builder.is_finalized
        assert cache.get_model_builder(LibraryContext, options) is builder
        assert builder.model_info is cache.get_model_info(LibraryContext, options)

    def test_direct_saver_is_cached(self, cache: ModelCache, options: ShamanOptions) -> None:
        saver = cache.get_direct_saver(LibraryContext, options, Author)

        assert isinstance(saver, DirectSaver)
        assert cache.get_direct_saver(LibraryContext, options, Author) is saver

    def test_invalidate_by_context_type(self, cache: ModelCache, options: ShamanOptions) -> None:
        other_options = ShamanOptions.create_shaman_options(OtherLibraryContext)
        cache.get_model_info(LibraryContext, options)
        cache.get_model_info(OtherLibraryContext, other_options)

        assert cache.invalidate(LibraryContext) == 1
        assert (LibraryContext, options) not in cache
        assert (OtherLibraryContext, other_options) in cache

        cache.clear()
        assert len(cache) == 0

    def test_failed_scan_is_not_cached(self, cache: ModelCache) -> None:
        options = ShamanOptions.create_shaman_options(BrokenContext)

        with pytest.raises(ModelError) as exc_info:
            cache.get_model_info(BrokenContext, options)

        assert exc_info.value.code is ErrorCode.CONFIGURATION_CONFLICT
        assert len(cache) == 0

    def test_concurrent_first_requests_converge(
        self, cache: ModelCache, options: ShamanOptions
    ) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            infos = list(pool.map(lambda _: cache.get_model_info(LibraryContext, options), range(16)))
            builders = list(
                pool.map(lambda _: cache.get_model_builder(LibraryContext, options), range(16))
            )

        assert all(info is infos[0] for info in infos)
        assert all(builder is builders[0] for builder in builders)
        assert len(cache) == 1

    def test_scan_hooks_fire_once(self, cache: ModelCache) -> None:
        calls: list[str] = []
        options = ShamanOptions.create_shaman_options(LibraryContext).with_service(
            FunctionColumnUpdater(lambda prop, column: calls.append(prop.name))
        )

        for _ in range(3):
            cache.get_model_info(LibraryContext, options)
            cache.get_model_builder(LibraryContext, options)

        assert calls == ["id", "name"]

    def test_direct_saver_built_once_under_contention(
        self, cache: ModelCache, options: ShamanOptions, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        built: list[type] = []

        def slow_saver(db_set):  # type: ignore[no-untyped-def]
            built.append(db_set.entity_type)
            time.sleep(0.02)
            return DirectSaver(db_set)

        monkeypatch.setattr("sqlshaman.host.cache.DirectSaver", slow_saver)
        with ThreadPoolExecutor(max_workers=8) as pool:
            savers = list(
                pool.map(
                    lambda _: cache.get_direct_saver(LibraryContext, options, Author), range(8)
                )
            )

        assert built == [Author]
        assert all(saver is savers[0] for saver in savers)

    def test_model_builder_maps_entities(self, cache: ModelCache, options: ShamanOptions) -> None:
        cache.get_model_builder(LibraryContext, options)
        assert sa_inspect(Author, raiseerr=False) is not None
