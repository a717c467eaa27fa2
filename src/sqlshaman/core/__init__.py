"""Core module exports."""

from sqlshaman.core.errors import (
    ConfigError,
    ContextError,
    DirectSaveError,
    ErrorCode,
    InternalError,
    ModelError,
    ShamanError,
)
from sqlshaman.core.logging import (
    EmptyShamanLogger,
    ListShamanLogger,
    ShamanLogger,
    StructlogShamanLogger,
    clear_operation_id,
    configure_logging,
    get_logger,
    get_operation_id,
    set_operation_id,
)

__all__ = [
    # Errors
    "ShamanError",
    "ConfigError",
    "ContextError",
    "DirectSaveError",
    "ErrorCode",
    "InternalError",
    "ModelError",
    # Logging
    "clear_operation_id",
    "configure_logging",
    "get_logger",
    "get_operation_id",
    "set_operation_id",
    "ShamanLogger",
    "EmptyShamanLogger",
    "ListShamanLogger",
    "StructlogShamanLogger",
]
