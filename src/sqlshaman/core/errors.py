"""sqlshaman error types with typed error codes.

Error code ranges:
- 2xxx: Model (scanning and host model patching)
- 3xxx: Direct save
- 4xxx: Context
- 5xxx: Config
- 9xxx: Internal

All errors are raised synchronously at scan time or call time and are never
retried internally.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Model (2xxx)
    CONFIGURATION_CONFLICT = 2001
    DUPLICATE_COLUMN = 2002
    DUPLICATE_INDEX = 2003
    MODEL_NOT_BUILT = 2004
    UNKNOWN_ENTITY_TYPE = 2005
    ENTITY_ALREADY_MAPPED = 2006

    # Direct save (3xxx)
    INVALID_STATUS = 3001
    MISSING_PRIMARY_KEY = 3002
    MISSING_KEY_VALUE = 3003
    CONCURRENCY_CONFLICT = 3004

    # Context (4xxx)
    CONCURRENT_USE = 4001

    # Config (5xxx)
    CONFIG_PARSE_ERROR = 5001
    CONFIG_INVALID_VALUE = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ShamanError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'DUPLICATE_COLUMN')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ModelError(ShamanError):
    """Errors raised while scanning markers or patching the host model."""

    @classmethod
    def configuration_conflict(cls, entity: str, member: str, reason: str) -> "ModelError":
        return cls(
            code=ErrorCode.CONFIGURATION_CONFLICT,
            message=f"Conflicting configuration on {entity}.{member}: {reason}",
            details={"entity": entity, "member": member, "reason": reason},
        )

    @classmethod
    def duplicate_column(cls, table: str, column: str, properties: list[str]) -> "ModelError":
        return cls(
            code=ErrorCode.DUPLICATE_COLUMN,
            message=f"Column '{column}' is claimed more than once in table '{table}'",
            details={"table": table, "column": column, "properties": properties},
        )

    @classmethod
    def duplicate_index(cls, table: str, index: str, reason: str) -> "ModelError":
        return cls(
            code=ErrorCode.DUPLICATE_INDEX,
            message=f"Index '{index}' on table '{table}' is ambiguous: {reason}",
            details={"table": table, "index": index, "reason": reason},
        )

    @classmethod
    def model_not_built(cls, context: str) -> "ModelError":
        return cls(
            code=ErrorCode.MODEL_NOT_BUILT,
            message=f"Model for {context} has not been finalized yet",
            details={"context": context},
        )

    @classmethod
    def unknown_entity_type(cls, context: str, entity: str) -> "ModelError":
        return cls(
            code=ErrorCode.UNKNOWN_ENTITY_TYPE,
            message=f"{entity} is not exposed as a DbSet by {context}",
            details={"context": context, "entity": entity},
        )

    @classmethod
    def entity_already_mapped(cls, entity: str, table: str, mapped_table: str) -> "ModelError":
        return cls(
            code=ErrorCode.ENTITY_ALREADY_MAPPED,
            message=f"{entity} is already mapped to '{mapped_table}', cannot map to '{table}'",
            details={"entity": entity, "table": table, "mapped_table": mapped_table},
        )

    @classmethod
    def missing_primary_key(cls, entity: str, table: str) -> "ModelError":
        """No key marker, no key-convention property and no ``@keyless``."""
        return cls(
            code=ErrorCode.MISSING_PRIMARY_KEY,
            message=f"{entity} (table '{table}') has no primary key; "
            "mark one with Key() or use @keyless",
            details={"entity": entity, "table": table},
        )


class DirectSaveError(ShamanError):
    """Errors raised by the direct-save engine."""

    @classmethod
    def invalid_status(cls, status: Any) -> "DirectSaveError":
        return cls(
            code=ErrorCode.INVALID_STATUS,
            message=f"Unsupported direct saver entity status: {status!r}",
            details={"status": repr(status)},
        )

    @classmethod
    def missing_primary_key(cls, entity: str, table: str) -> "DirectSaveError":
        return cls(
            code=ErrorCode.MISSING_PRIMARY_KEY,
            message=f"{entity} (table '{table}') has no primary key columns",
            details={"entity": entity, "table": table},
        )

    @classmethod
    def missing_key_value(cls, table: str, missing: list[str], unexpected: list[str]) -> "DirectSaveError":
        return cls(
            code=ErrorCode.MISSING_KEY_VALUE,
            message=f"Key values for table '{table}' do not match its primary key",
            details={"table": table, "missing": missing, "unexpected": unexpected},
        )

    @classmethod
    def concurrency_conflict(cls, table: str, keys: dict[str, Any]) -> "DirectSaveError":
        return cls(
            code=ErrorCode.CONCURRENCY_CONFLICT,
            message=f"Row in '{table}' was changed or removed since it was read",
            retryable=True,
            details={"table": table, "keys": {k: repr(v) for k, v in keys.items()}},
        )


class ContextError(ShamanError):
    """Errors raised by the host context."""

    @classmethod
    def concurrent_use(cls, context: str) -> "ContextError":
        return cls(
            code=ErrorCode.CONCURRENT_USE,
            message=(
                f"A second operation started on {context} before a previous "
                "operation completed"
            ),
            details={"context": context},
        )


class ConfigError(ShamanError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class InternalError(ShamanError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
