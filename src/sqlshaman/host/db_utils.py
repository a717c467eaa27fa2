"""Database existence helpers for test harnesses and first-run setup.

SQLite databases are files; server databases are created and dropped through
an AUTOCOMMIT connection to the server's maintenance database.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

from sqlshaman.core.errors import ConfigError

if TYPE_CHECKING:
    from sqlalchemy.engine import URL, Engine

logger = structlog.get_logger()

_MAINTENANCE_DATABASES = {
    "postgresql": "postgres",
    "mssql": "master",
    "mysql": None,
    "mariadb": None,
}

_EXISTS_QUERIES = {
    "postgresql": "SELECT 1 FROM pg_database WHERE datname = :name",
    "mssql": "SELECT 1 FROM sys.databases WHERE name = :name",
    "mysql": "SELECT 1 FROM information_schema.schemata WHERE schema_name = :name",
    "mariadb": "SELECT 1 FROM information_schema.schemata WHERE schema_name = :name",
}


def _sqlite_path(url: URL) -> Path | None:
    if url.database in (None, "", ":memory:"):
        return None
    return Path(url.database)


def _maintenance_engine(url: URL) -> Engine:
    backend = url.get_backend_name()
    if backend not in _MAINTENANCE_DATABASES:
        raise ConfigError.invalid_value("url", url.render_as_string(), f"unsupported backend {backend}")
    return create_engine(
        url.set(database=_MAINTENANCE_DATABASES[backend]),
        isolation_level="AUTOCOMMIT",
    )


def database_exists(url: str) -> bool:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        path = _sqlite_path(parsed)
        return path is None or path.exists()
    engine = _maintenance_engine(parsed)
    try:
        with engine.connect() as conn:
            query = _EXISTS_QUERIES[parsed.get_backend_name()]
            return conn.execute(text(query), {"name": parsed.database}).first() is not None
    finally:
        engine.dispose()


def create_database(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        path = _sqlite_path(parsed)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(parsed)
            with engine.connect():
                pass
            engine.dispose()
        logger.debug("database_created", url=parsed.render_as_string())
        return
    engine = _maintenance_engine(parsed)
    try:
        with engine.connect() as conn:
            name = conn.dialect.identifier_preparer.quote(parsed.database or "")
            conn.execute(text(f"CREATE DATABASE {name}"))
    finally:
        engine.dispose()
    logger.debug("database_created", url=parsed.render_as_string())


def drop_database(url: str) -> bool:
    """Drop the database if it exists. Returns whether anything was dropped."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        path = _sqlite_path(parsed)
        if path is None or not path.exists():
            return False
        path.unlink()
        logger.debug("database_dropped", url=parsed.render_as_string())
        return True
    if not database_exists(url):
        return False
    engine = _maintenance_engine(parsed)
    try:
        with engine.connect() as conn:
            name = conn.dialect.identifier_preparer.quote(parsed.database or "")
            conn.execute(text(f"DROP DATABASE {name}"))
    finally:
        engine.dispose()
    logger.debug("database_dropped", url=parsed.render_as_string())
    return True
