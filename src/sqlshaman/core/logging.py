"""Structured logging and the injectable scanner log sink.

Supports:
- structlog routed through stdlib logging, console or JSON rendering
- Separate console vs file log levels per output
- Operation correlation IDs bound to the current context
- ``ShamanLogger`` sinks handed to the scanner through ``ShamanOptions``
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from sqlshaman.config.models import LoggingConfig, LogOutputConfig

_operation_id: ContextVar[str | None] = ContextVar("operation_id", default=None)


def get_operation_id() -> str | None:
    return _operation_id.get()


def set_operation_id(operation_id: str | None = None) -> str:
    """Set or generate an operation correlation ID."""
    oid = operation_id or uuid4().hex[:12]
    _operation_id.set(oid)
    return oid


def clear_operation_id() -> None:
    _operation_id.set(None)


def _add_operation_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if oid := get_operation_id():
        event_dict["operation_id"] = oid
    return event_dict


_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    _add_operation_id,  # type: ignore[list-item]
]


def _level(name: str | None, fallback: int = logging.INFO) -> int:
    return _LEVEL_MAP.get(name.upper(), fallback) if name else fallback


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog and the ``sqlalchemy`` loggers through stdlib handlers.

    ``config`` wins over ``json_format``/``level``, which only describe a
    single stderr output. Reconfiguring replaces the root handlers.
    """
    from sqlshaman.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _level(config.level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    for output in config.outputs:
        root.addHandler(_output_handler(output, root_level))

    # SQLAlchemy echoes every statement at INFO
    engine_level = _level(config.sqlalchemy_level, logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(engine_level)


def _output_handler(output: LogOutputConfig, root_level: int) -> logging.Handler:
    if output.destination == "stderr":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    elif output.destination == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a")

    if output.format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        colors = output.destination == "stderr" and sys.stderr.isatty()
        renderer = structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)

    handler.setLevel(_level(output.level, root_level))
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer, foreign_pre_chain=_SHARED_PROCESSORS
    )
    handler.setFormatter(formatter)
    return handler


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]


# ============================================================================
# Scanner log sinks
# ============================================================================


@runtime_checkable
class ShamanLogger(Protocol):
    """Line-oriented sink for scanner and pipeline diagnostics."""

    def log(self, source: str, message: str) -> None: ...


class EmptyShamanLogger:
    """Sink that drops everything. Default for ``ShamanOptions``."""

    instance: EmptyShamanLogger

    def log(self, source: str, message: str) -> None:  # noqa: ARG002
        return None


EmptyShamanLogger.instance = EmptyShamanLogger()


class StructlogShamanLogger:
    """Forwards sink lines to structlog at a fixed level."""

    def __init__(self, name: str = "sqlshaman", level: str = "debug") -> None:
        self._logger = get_logger(name)
        self._level = level.lower()

    def log(self, source: str, message: str) -> None:
        getattr(self._logger, self._level)(message, source=source)


class ListShamanLogger:
    """Collects sink lines in memory, mostly for tests and diagnostics."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def log(self, source: str, message: str) -> None:
        self.lines.append((source, message))
