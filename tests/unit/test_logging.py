"""Unit tests for structured logging utilities."""

import logging
import sys
from unittest.mock import MagicMock

import pytest
import structlog

from pgprecheck.utils.logging import (
    bind_run_context,
    clear_run_context,
    get_logger,
    log_error,
    setup_logging,
)


class TestSetupLogging:
    """Test setup_logging function."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        """Reset logging configuration around each test."""
        logging.root.handlers = []
        structlog.reset_defaults()
        yield
        logging.root.handlers = []
        structlog.reset_defaults()

    def test_defaults_to_warning_on_stderr(self):
        setup_logging()

        assert logging.root.level == logging.WARNING
        assert logging.root.handlers[0].stream is sys.stderr

    def test_stdout_output(self):
        setup_logging(output="stdout")

        assert logging.root.handlers[0].stream is sys.stdout

    def test_debug_level(self):
        setup_logging(level="DEBUG")

        assert logging.root.level == logging.DEBUG

    def test_invalid_level_defaults_to_warning(self):
        setup_logging(level="INVALID")

        assert logging.root.level == logging.WARNING

    def test_json_format_uses_json_renderer(self):
        setup_logging(format="json")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_format_uses_console_renderer(self):
        setup_logging(format="console")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


class TestGetLogger:
    """Test get_logger function."""

    def test_returns_logger(self):
        logger = get_logger(__name__)

        assert logger is not None
        assert hasattr(logger, "info")
        assert hasattr(logger, "error")


class TestLogError:
    """Test log_error helper."""

    def test_logs_error_context(self):
        logger = MagicMock()
        error = ValueError("bad value")

        log_error(logger, error, operation="precheck", host="db.example.com")

        logger.error.assert_called_once_with(
            "error_occurred",
            error_type="ValueError",
            error_message="bad value",
            host="db.example.com",
            operation="precheck",
        )

    def test_without_operation(self):
        logger = MagicMock()

        log_error(logger, RuntimeError("boom"))

        kwargs = logger.error.call_args.kwargs
        assert "operation" not in kwargs
        assert kwargs["error_type"] == "RuntimeError"


class TestRunContext:
    """Test run-wide context binding."""

    @pytest.fixture(autouse=True)
    def clean_context(self):
        clear_run_context()
        yield
        clear_run_context()

    def test_bound_fields_are_merged(self):
        bind_run_context(host="db.example.com", user="admin")

        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "x"})

        assert event == {"event": "x", "host": "db.example.com", "user": "admin"}

    def test_clear(self):
        bind_run_context(host="db.example.com")
        clear_run_context()

        assert structlog.contextvars.get_contextvars() == {}
