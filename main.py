#!/usr/bin/env python3
# main.py
"""
Главная точка входа wash_hub.
Запускает HTTP API, realtime-шлюз или оба процесса в одном event loop.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg

VALID_MODES = ("api", "realtime", "all")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def _serve(app_path: str, host: str, port: int, name: str) -> None:
    """Запускает uvicorn-сервер внутри текущего event loop."""
    import uvicorn

    await log_info(f"Запуск {name} на {host}:{port}...", type_msg=TypeMsg.INFO)

    config = uvicorn.Config(
        app_path,
        host=host,
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{name}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_api() -> None:
    """Запускает HTTP API."""
    await _serve(
        "src.services.api.app:app",
        settings.deployment.API_HOST,
        settings.deployment.API_PORT,
        "HTTP API",
    )


async def run_realtime() -> None:
    """Запускает Realtime WebSocket Gateway."""
    await _serve(
        "src.services.realtime_ws.app:app",
        settings.deployment.REALTIME_WS_HOST,
        settings.deployment.REALTIME_WS_PORT,
        "Realtime WS Gateway",
    )


def print_usage() -> None:
    print("Использование: python main.py [api|realtime|all]")
    print("  api       — HTTP API (бронирования, заказы, платежи, чат)")
    print("  realtime  — WebSocket-шлюз")
    print("  all       — оба процесса (по умолчанию)")


async def main(mode: str = "all") -> None:
    """
    Главная функция запуска.

    Args:
        mode: api | realtime | all
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION} — запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    if mode == "api":
        _running_tasks = [asyncio.create_task(run_api())]
    elif mode == "realtime":
        _running_tasks = [asyncio.create_task(run_realtime())]
    elif mode == "all":
        _running_tasks = [
            asyncio.create_task(run_api()),
            asyncio.create_task(run_realtime()),
        ]
    else:
        await log_error(f"Неизвестный режим: {mode}")
        return

    try:
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    finally:
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        _running_tasks.clear()
        await log_info("Все компоненты остановлены", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    mode = "all"

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        if arg not in VALID_MODES:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)
        mode = arg

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        print("\nОстановлено пользователем")
