"""Tests for the uvicorn/structlog dictConfig builder."""

from __future__ import annotations

import logging

import structlog

from vodhub.infrastructure.config import AppConfig
from vodhub.infrastructure.logging.setup import (
    BASE_LOGGING_CONFIG,
    _add_record_created_timestamp_utc,
    _drop_color_message,
    _LevelRangeFilter,
    build_logging_config,
)


def _config(**overrides) -> AppConfig:
    return AppConfig.model_validate(overrides)


class TestBuildLoggingConfig:
    def test_level_applied_except_http_client_libs(self) -> None:
        cfg = build_logging_config(_config(log_level="WARNING"))

        assert cfg["root"]["level"] == "WARNING"
        assert cfg["loggers"]["uvicorn"]["level"] == "WARNING"
        assert cfg["loggers"]["uvicorn.access"]["level"] == "WARNING"
        assert cfg["loggers"]["httpx"]["level"] == "WARNING"

    def test_debug_unmutes_http_client_libs(self) -> None:
        cfg = build_logging_config(_config(log_level="DEBUG"))
        assert cfg["loggers"]["httpx"]["level"] == "DEBUG"
        assert cfg["loggers"]["httpcore"]["level"] == "DEBUG"

    def test_info_keeps_http_client_libs_quiet(self) -> None:
        cfg = build_logging_config(_config(log_level="INFO"))
        assert cfg["loggers"]["httpx"]["level"] == "WARNING"

    def test_base_config_not_mutated(self) -> None:
        build_logging_config(_config(log_level="ERROR"))
        assert "structlog" not in BASE_LOGGING_CONFIG["formatters"]
        assert BASE_LOGGING_CONFIG["loggers"]["uvicorn"]["level"] == "INFO"

    def test_renderer_follows_format(self) -> None:
        json_cfg = build_logging_config(_config(log_format="json"))
        console_cfg = build_logging_config(_config(log_format="console"))

        json_renderer = json_cfg["formatters"]["structlog"]["processors"][-1]
        console_renderer = console_cfg["formatters"]["structlog"]["processors"][-1]
        assert isinstance(json_renderer, structlog.processors.JSONRenderer)
        assert isinstance(console_renderer, structlog.dev.ConsoleRenderer)

    def test_prod_defaults_to_json(self) -> None:
        cfg = build_logging_config(_config(environment="prod"))
        renderer = cfg["formatters"]["structlog"]["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)


class TestProcessors:
    def test_drop_color_message(self) -> None:
        event = {"event": "x", "color_message": "\x1b[32mx\x1b[0m"}
        assert _drop_color_message(None, None, event) == {"event": "x"}

    def test_timestamp_from_record_created(self) -> None:
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        record.created = 0.0

        event = _add_record_created_timestamp_utc(None, None, {"_record": record})

        assert event["timestamp"] == "1970-01-01T00:00:00Z"

    def test_level_range_filter(self) -> None:
        stdout_filter = _LevelRangeFilter(max_level=logging.INFO)
        info = logging.LogRecord("t", logging.INFO, __file__, 1, "m", None, None)
        warning = logging.LogRecord("t", logging.WARNING, __file__, 1, "m", None, None)

        assert stdout_filter.filter(info) is True
        assert stdout_filter.filter(warning) is False
