"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SQLSHAMAN__SECTION__KEY)
3. YAML file passed to load_config()
4. Built-in defaults (this file)

Environment Variable Format:
    SQLSHAMAN__<SECTION>__<KEY>=<VALUE>

Examples:
    SQLSHAMAN__LOGGING__LEVEL=DEBUG
    SQLSHAMAN__DATABASE__URL=postgresql+psycopg://localhost/app
    SQLSHAMAN__NAMING__TABLE_PREFIX=app_
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SQLSHAMAN__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        SQLSHAMAN__LOGGING__SQLALCHEMY_LEVEL: Level of the sqlalchemy.engine logger
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every direct SQL command.",
    )
    sqlalchemy_level: LogLevel = Field(
        default="WARNING",
        description="Level of the sqlalchemy.engine logger. INFO echoes all SQL.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        SQLSHAMAN__DATABASE__URL: SQLAlchemy database URL
        SQLSHAMAN__DATABASE__ECHO: Echo SQL through SQLAlchemy's own logger
        SQLSHAMAN__DATABASE__USE_IN_MEMORY_DATABASE: Use the in-memory stand-in
        SQLSHAMAN__DATABASE__DEFAULT_SCHEMA: Schema for tables without an explicit one
    """

    url: str = Field(
        default="sqlite://",
        description="SQLAlchemy database URL. Ignored when use_in_memory_database is set.",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements through the sqlalchemy.engine logger.",
    )
    use_in_memory_database: bool = Field(
        default=False,
        description="Back the context with a private in-memory store. Direct saves "
        "then go through the tracked session instead of raw SQL.",
    )
    default_schema: str | None = Field(
        default=None,
        description="Overrides the default schema declared by the context type.",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if "://" not in v:
            raise ValueError(f"Database URL must include a dialect scheme: {v}")
        return v


class NamingConfig(BaseModel):
    """Table naming convention.

    Env vars:
        SQLSHAMAN__NAMING__TABLE_PREFIX: Prefix injected into convention-derived names
        SQLSHAMAN__NAMING__SINGULAR_TABLE_NAMES: Singularize collection names
    """

    table_prefix: str = Field(
        default="",
        description="Prefix for table names derived from DbSet collection names. "
        "Explicit table markers are never prefixed.",
    )
    singular_table_names: bool = Field(
        default=False,
        description="Singularize DbSet collection names before applying the prefix.",
    )


class ShamanConfig(BaseModel):
    """Root configuration for sqlshaman.

    All settings can be configured via:
    1. Environment variables: SQLSHAMAN__SECTION__KEY
    2. A YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    naming: NamingConfig = Field(default_factory=NamingConfig)
