"""Tests for database existence helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlshaman.core.errors import ConfigError, ErrorCode
from sqlshaman.host.db_utils import create_database, database_exists, drop_database


class TestSqliteDatabases:
    def test_create_and_drop_file(self, temp_dir: Path) -> None:
        url = f"sqlite:///{temp_dir / 'nested' / 'app.db'}"
        assert not database_exists(url)

        create_database(url)
        assert database_exists(url)
        assert (temp_dir / "nested" / "app.db").exists()

        assert drop_database(url) is True
        assert not database_exists(url)
        assert drop_database(url) is False

    def test_memory_database_always_exists(self) -> None:
        assert database_exists("sqlite://")
        create_database("sqlite://")
        assert drop_database("sqlite://") is False


class TestServerDatabases:
    def test_unsupported_backend(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            database_exists("oracle://user:pw@localhost/app")

        assert exc_info.value.code is ErrorCode.CONFIG_INVALID_VALUE
