# src/services/realtime_ws/redis_subscriber.py
"""
Подписчик на Redis Pub/Sub.

Слушает паттерн <prefix>:* и передаёт обработчику имя группы
(канал без префикса) и разобранное сообщение {"event", "data"}.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Coroutine

from src.common.logger import log_error, log_info, log_warning

MessageHandler = Callable[[str, dict[str, Any]], Coroutine[Any, Any, Any]]


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisSubscriber:
    """
    Подписчик на Redis Pub/Sub.

    Получает сообщения и пересылает их через WebSocket.
    """

    def __init__(self, redis: Any, prefix: str, message_handler: MessageHandler) -> None:
        """
        Args:
            redis: Объект с методом pubsub() (RedisClient или redis.asyncio.Redis)
            prefix: Префикс каналов realtime
            message_handler: Callback (room, message)
        """
        self._redis = redis
        self._prefix = prefix
        self._handler = message_handler
        self._pubsub = None
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def pattern(self) -> str:
        return f"{self._prefix}:*"

    async def start(self) -> None:
        """Запустить подписчика."""
        if self._running:
            return

        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(self.pattern)
        self._running = True

        self._task = asyncio.create_task(self._listen())
        await log_info(f"Подписка на Redis {self.pattern}")

    async def stop(self) -> None:
        """Остановить подписчика."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub:
            await self._pubsub.punsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None

    async def _listen(self) -> None:
        """Слушать сообщения из Redis."""
        while self._running:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )

                if message is None:
                    continue

                await self.process_message(message)

            except asyncio.CancelledError:
                break
            except Exception as e:
                await log_error(f"Ошибка подписчика Redis: {e}")
                await asyncio.sleep(1)

    def room_for(self, channel: str) -> str | None:
        """Группа по имени канала или None для чужого канала."""
        head = f"{self._prefix}:"
        if not channel.startswith(head):
            return None
        return channel[len(head):]

    async def process_message(self, message: dict[str, Any]) -> None:
        """Обработать сообщение из Redis."""
        if message.get("type") not in ("message", "pmessage"):
            return

        room = self.room_for(_as_text(message.get("channel", b"")))
        if room is None:
            return

        raw = _as_text(message.get("data", b""))
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            await log_warning(f"Невалидный JSON в канале {room}")
            return
        if not isinstance(payload, dict) or "event" not in payload:
            await log_warning(f"Сообщение без event в канале {room}")
            return

        await self._handler(room, payload)
