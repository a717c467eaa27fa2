"""Config module exports."""

from sqlshaman.config.loader import load_config
from sqlshaman.config.models import (
    DatabaseConfig,
    LoggingConfig,
    LogOutputConfig,
    NamingConfig,
    ShamanConfig,
)

__all__ = [
    "load_config",
    "ShamanConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "NamingConfig",
]
