"""Tests for structured logging and the scanner log sinks."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from sqlshaman.config.models import LoggingConfig, LogOutputConfig
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


class TestOperationIdCorrelation:
    """Operation ID context variable tests."""

    def setup_method(self) -> None:
        clear_operation_id()

    def test_given_operation_id_when_set_then_can_retrieve(self) -> None:
        result = set_operation_id("op-123")
        assert result == "op-123"
        assert get_operation_id() == "op-123"

    def test_given_no_id_when_set_then_generates_uuid(self) -> None:
        oid = set_operation_id()
        assert oid is not None
        assert len(oid) == 12  # uuid4().hex[:12]

    def test_given_set_id_when_clear_then_removes_id(self) -> None:
        set_operation_id("to-clear")
        clear_operation_id()
        assert get_operation_id() is None


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_given_json_format_when_log_then_valid_json_output(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        # Given
        configure_logging(json_format=True, level="INFO")
        logger = get_logger("test")

        # When
        logger.info("test message", key="value")

        # Then
        captured = capsys.readouterr()
        lines = [line for line in captured.err.strip().split("\n") if line]
        if lines:
            data = json.loads(lines[-1])
            assert data["event"] == "test message"
            assert data["key"] == "value"
            assert "timestamp" in data
            assert data["level"] == "info"

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When - config's DEBUG overrides the level="ERROR" param
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_operation_id_when_log_then_included(self, tmp_path: Path) -> None:
        log_file = tmp_path / "op.log"
        configure_logging(
            config=LoggingConfig(outputs=[LogOutputConfig(format="json", destination=str(log_file))])
        )
        set_operation_id("op-42")
        try:
            get_logger().info("with operation")
        finally:
            clear_operation_id()

        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["operation_id"] == "op-42"

    def test_given_multi_output_config_when_configure_then_logs_to_all(
        self, tmp_path: Path
    ) -> None:
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_sqlalchemy_engine_logger_is_quieted(self) -> None:
        configure_logging(level="DEBUG")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_sqlalchemy_engine_level_from_config(self) -> None:
        configure_logging(config=LoggingConfig(sqlalchemy_level="INFO"))
        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO


class TestShamanLoggerSinks:
    """Sinks handed to the scanner through options."""

    def test_sinks_satisfy_protocol(self) -> None:
        assert isinstance(EmptyShamanLogger.instance, ShamanLogger)
        assert isinstance(ListShamanLogger(), ShamanLogger)
        assert isinstance(StructlogShamanLogger(), ShamanLogger)

    def test_empty_logger_drops_lines(self) -> None:
        assert EmptyShamanLogger.instance.log("Scanner", "ignored") is None

    def test_list_logger_collects_lines(self) -> None:
        sink = ListShamanLogger()
        sink.log("Scanner", "first")
        sink.log("Pipeline", "second")
        assert sink.lines == [("Scanner", "first"), ("Pipeline", "second")]

    def test_structlog_logger_forwards_to_structlog(self, tmp_path: Path) -> None:
        log_file = tmp_path / "sink.log"
        configure_logging(
            config=LoggingConfig(
                level="DEBUG",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        StructlogShamanLogger(level="info").log("Scanner", "User -> Users")

        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "User -> Users"
        assert data["source"] == "Scanner"
        assert data["logger"] == "sqlshaman"
