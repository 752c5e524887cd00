"""Tests for structured logging and query-id context."""

import asyncio
import json
import logging
import sys
import time

import pytest

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import LogContext, generate_query_id, get_context_dict, get_query_id
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
    resolve_config,
)


def make_record(msg="test", level=logging.INFO, name="test", lineno=1, exc_info=None):
    return logging.LogRecord(
        name=name, level=level, pathname="test.py",
        lineno=lineno, msg=msg, args=(), exc_info=exc_info,
    )


class TestLoggingConfig:
    """Tests for logging configuration dataclasses."""

    def test_default_config_values(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.include_caller is True
        assert config.slow_threshold_ms == 1000.0
        assert config.service_name == "equilibrio"

    def test_log_format_enum_values(self):
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"


class TestLogContext:
    """Tests for query-id context binding."""

    def test_generated_ids_unique(self):
        ids = {generate_query_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 12 for i in ids)

    def test_sets_and_clears_query_id(self):
        with LogContext(query_id="q-1"):
            assert get_query_id() == "q-1"
        assert get_query_id() == ""

    def test_auto_generates_query_id(self):
        with LogContext() as ctx:
            assert ctx.query_id
            assert get_query_id() == ctx.query_id

    def test_extras_in_context_dict(self):
        with LogContext(query_id="q-1", operation="view", page=2):
            assert get_context_dict() == {"query_id": "q-1", "operation": "view", "page": 2}
        assert get_context_dict() == {}

    def test_nested_contexts_restore_outer(self):
        with LogContext(query_id="outer", operation="reload"):
            with LogContext(query_id="inner", preset_id="preset_1"):
                d = get_context_dict()
                assert d["query_id"] == "inner"
                assert d["operation"] == "reload"
                assert d["preset_id"] == "preset_1"
            assert get_context_dict() == {"query_id": "outer", "operation": "reload"}

    def test_bind(self):
        with LogContext(query_id="q") as ctx:
            ctx.bind(total_count=7)
            assert get_context_dict()["total_count"] == 7


class TestStructuredFormatter:
    """Tests for JSON structured log formatting."""

    def test_formats_as_json(self):
        parsed = json.loads(StructuredFormatter().format(make_record("hello world")))
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test"
        assert parsed["service"] == "equilibrio"
        assert "timestamp" in parsed

    def test_caller_info_toggle(self):
        parsed = json.loads(StructuredFormatter(include_caller=True).format(make_record(lineno=42)))
        assert parsed["line"] == 42
        parsed = json.loads(StructuredFormatter(include_caller=False).format(make_record(lineno=42)))
        assert "line" not in parsed

    def test_includes_query_context(self):
        with LogContext(query_id="ctx-test", operation="view"):
            parsed = json.loads(StructuredFormatter().format(make_record()))
        assert parsed["query_id"] == "ctx-test"
        assert parsed["operation"] == "view"

    def test_formats_exception(self):
        try:
            raise ValueError("test error")
        except ValueError:
            record = make_record("failed", level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"
        assert "test error" in parsed["exception"]["message"]

    def test_includes_extra_fields(self):
        record = make_record()
        record.duration_ms = 42.5
        record.total_count = 3
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["duration_ms"] == 42.5
        assert parsed["total_count"] == 3


class TestConsoleFormatter:
    """Tests for colored console log formatting."""

    def test_formats_readable_output(self):
        output = ConsoleFormatter().format(make_record("hello", name="src.screener.engine"))
        assert "src.screener.engine" in output
        assert "hello" in output

    def test_includes_context_info(self):
        with LogContext(query_id="abc"):
            output = ConsoleFormatter().format(make_record())
        assert "query_id=abc" in output

    def test_has_color_codes(self):
        output = ConsoleFormatter().format(make_record(level=logging.ERROR))
        assert "\033[31m" in output


class TestConfigureLogging:
    """Tests for the configure_logging setup function."""

    def test_json_format(self):
        configure_logging(LoggingConfig(format=LogFormat.JSON))
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_console_format(self):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)

    def test_sets_log_level(self, monkeypatch):
        monkeypatch.delenv("EQUILIBRIO_LOG_LEVEL", raising=False)
        configure_logging(LoggingConfig(level=LogLevel.DEBUG))
        assert logging.getLogger().level == logging.DEBUG

    def test_quiets_http_loggers(self):
        configure_logging()
        assert logging.getLogger("httpx").level >= logging.WARNING

    def test_env_var_override_level(self, monkeypatch):
        monkeypatch.setenv("EQUILIBRIO_LOG_LEVEL", "debug")
        configure_logging(LoggingConfig(level=LogLevel.ERROR))
        assert logging.getLogger().level == logging.DEBUG

    def test_env_var_override_format(self, monkeypatch):
        monkeypatch.setenv("EQUILIBRIO_LOG_FORMAT", "CONSOLE")
        assert resolve_config(LoggingConfig(format=LogFormat.JSON)).format == LogFormat.CONSOLE

    def test_invalid_env_values_ignored(self, monkeypatch):
        monkeypatch.setenv("EQUILIBRIO_LOG_LEVEL", "LOUD")
        monkeypatch.setenv("EQUILIBRIO_LOG_FORMAT", "xml")
        config = resolve_config(LoggingConfig(level=LogLevel.ERROR))
        assert config.level == LogLevel.ERROR
        assert config.format == LogFormat.JSON

    def test_get_logger(self):
        assert get_logger("src.screener").name == "src.screener"


class TestPerformanceLogging:
    """Tests for performance timing decorator and context manager."""

    def test_sync(self):
        @log_performance(threshold_ms=10000)
        def fast_func():
            return 42

        assert fast_func() == 42

    @pytest.mark.asyncio
    async def test_async(self):
        @log_performance(threshold_ms=10000)
        async def async_func():
            return "ok"

        assert await async_func() == "ok"

    def test_preserves_name(self):
        @log_performance()
        def my_function():
            """My docstring."""

        assert my_function.__name__ == "my_function"
        assert my_function.__doc__ == "My docstring."

    def test_slow_call_warns(self, caplog):
        @log_performance(threshold_ms=0)
        def slow():
            return 1

        with caplog.at_level(logging.WARNING):
            slow()
        assert "Slow operation" in caplog.text
        assert caplog.records[-1].duration_ms >= 0

    def test_exception_logged_and_raised(self, caplog):
        @log_performance(threshold_ms=10000)
        def failing_func():
            raise ValueError("test error")

        with pytest.raises(ValueError, match="test error"):
            failing_func()
        assert "failed after" in caplog.text

    @pytest.mark.asyncio
    async def test_async_exception(self):
        @log_performance(threshold_ms=10000)
        async def async_failing():
            await asyncio.sleep(0)
            raise RuntimeError("async fail")

        with pytest.raises(RuntimeError, match="async fail"):
            await async_failing()

    def test_timer(self):
        with PerformanceTimer("fetch_snapshot", threshold_ms=10000) as timer:
            time.sleep(0.01)
        assert timer.duration_ms >= 10

    def test_timer_with_exception(self):
        with pytest.raises(ValueError):
            with PerformanceTimer("failing_op") as timer:
                raise ValueError("oops")
        assert timer.duration_ms >= 0
