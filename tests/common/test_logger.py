# tests/common/test_logger.py
"""
Unit тесты для модуля логирования (src/common/logger.py).
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.common.constants import TypeMsg
from src.common.logger import (
    ColoredFormatter,
    DateBasedRotatingFileHandler,
    JsonFormatter,
    _get_caller_info,
    _loggers,
    get_logger,
    log_error,
    log_info,
    log_warning,
    setup_logging,
)


def _record(level: int = logging.INFO, msg: str = "Бронирование создано", exc_info=None) -> logging.LogRecord:
    record = logging.LogRecord(
        name="wash_hub_test",
        level=level,
        pathname="service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    record.module = "service"
    record.funcName = "create"
    return record


class TestJsonFormatter:
    """Тесты для JsonFormatter."""

    def test_valid_json(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["message"] == "Бронирование создано"
        assert data["function"] == "create"
        assert data["line"] == 42
        assert data["timestamp"].endswith("Z")

    def test_extra_data(self) -> None:
        record = _record()
        record.extra_data = {"reservation_id": "res-1"}

        data = json.loads(JsonFormatter().format(record))

        assert data["extra"] == {"reservation_id": "res-1"}

    def test_exception(self) -> None:
        try:
            raise RuntimeError("пул исчерпан")
        except RuntimeError:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(_record(logging.ERROR, "Ошибка", exc_info)))

        assert "RuntimeError" in data["exception"]


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_level_and_message(self) -> None:
        result = ColoredFormatter().format(_record(logging.WARNING, "Повтор вебхука"))

        assert "[WARNING]" in result
        assert "Повтор вебхука" in result

    def test_caller_info(self) -> None:
        record = _record()
        record.extra_data = {
            "caller_function": "claim",
            "caller_module": "src.core.reservations.service",
            "caller_file": "service.py",
            "caller_line": 10,
        }

        result = ColoredFormatter().format(record)

        assert "src.core.reservations.service.claim()" in result
        assert "service.py:10" in result


class TestRotatingHandler:
    """Тесты DateBasedRotatingFileHandler."""

    def test_rollover_archives_file(self, tmp_path: Path) -> None:
        handler = DateBasedRotatingFileHandler(str(tmp_path), max_bytes=10, logger_name="wash")
        try:
            handler.stream.write("x" * 20)
            handler.stream.flush()

            handler.doRollover()

            archived = [p.name for p in tmp_path.iterdir() if p.name.startswith("wash_")]
            assert len(archived) == 1
            assert (tmp_path / "wash.log").exists()
        finally:
            handler.close()


class TestGetLogger:
    """Тесты get_logger и setup_logging."""

    def test_cached(self) -> None:
        first = get_logger("wash_hub_cache_test")
        second = get_logger("wash_hub_cache_test")

        assert first is second
        assert "wash_hub_cache_test" in _loggers

    def test_does_not_propagate(self) -> None:
        logger = get_logger("wash_hub_propagate_test")

        assert logger.propagate is False
        assert logger.handlers

    def test_defaults_when_settings_unusable(self) -> None:
        """MagicMock вместо settings не ломает инициализацию."""
        with patch("src.config.settings", MagicMock()):
            logger = get_logger("wash_hub_mock_settings_test")

        assert logger.level == logging.DEBUG

    def test_setup_logging_quiets_libraries(self) -> None:
        setup_logging()

        assert logging.getLogger("asyncpg").level == logging.WARNING
        assert logging.getLogger("stripe").level == logging.WARNING


class TestLogHelpers:
    """Тесты асинхронных хелперов."""

    def test_caller_info(self) -> None:
        def caller() -> dict:
            return _get_caller_info()

        info = caller()

        assert info["caller_function"] == "test_caller_info"
        assert info["caller_file"] == "test_logger.py"

    @pytest.mark.asyncio
    async def test_log_info_levels(self) -> None:
        logger = MagicMock()
        with patch("src.common.logger.get_logger", return_value=logger):
            await log_info("debug", type_msg=TypeMsg.DEBUG)
            await log_info("critical", type_msg=TypeMsg.CRITICAL)
            await log_info("info")

        logger.debug.assert_called_once()
        logger.critical.assert_called_once()
        logger.info.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_warning_passes_extra(self) -> None:
        logger = MagicMock()
        with patch("src.common.logger.get_logger", return_value=logger):
            await log_warning("Redis недоступен", extra={"key": "webhook:evt_1"})

        _, kwargs = logger.warning.call_args
        assert kwargs["extra"]["extra_data"]["key"] == "webhook:evt_1"

    @pytest.mark.asyncio
    async def test_log_error_exc_info(self) -> None:
        logger = MagicMock()
        with patch("src.common.logger.get_logger", return_value=logger):
            await log_error("Ошибка", exc_info=True)

        _, kwargs = logger.error.call_args
        assert kwargs["exc_info"] is True
