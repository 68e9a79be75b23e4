# src/infra/realtime_publisher.py
"""
Издатель realtime-событий.

API и шлюзы публикуют события в Redis pub/sub:
    <prefix>:room:<userId>
    <prefix>:reservation:<reservationId>
Каждый экземпляр realtime-шлюза подписан на <prefix>:* и рассылает
сообщение своим локальным соединениям группы.
"""

from __future__ import annotations

import json
from typing import Any

from src.common.constants import RealtimeEvent, reservation_room, user_room
from src.common.logger import log_debug, log_warning
from src.infra.redis_client import RedisClient, get_redis


class RealtimePublisher:
    """Публикация событий в группы realtime-шлюза (best-effort)."""

    def __init__(self, redis_client: RedisClient | None = None, prefix: str | None = None) -> None:
        if prefix is None:
            from src.config import settings
            prefix = settings.realtime.REALTIME_CHANNEL_PREFIX
        self._redis = redis_client or get_redis()
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def channel_for(self, room: str) -> str:
        """Имя канала Redis для группы."""
        return f"{self._prefix}:{room}"

    @staticmethod
    def encode(event: RealtimeEvent | str, data: dict[str, Any]) -> str:
        return json.dumps({"event": str(event), "data": data}, ensure_ascii=False, default=str)

    async def publish(self, room: str, event: RealtimeEvent | str, data: dict[str, Any]) -> bool:
        """
        Публикует событие в группу.
        Ошибки доставки логируются и не пробрасываются.

        Returns:
            True если сообщение ушло в Redis
        """
        try:
            await self._redis.publish(self.channel_for(room), self.encode(event, data))
        except Exception as e:
            await log_warning(f"Не удалось опубликовать realtime-событие {event} в {room}: {e}")
            return False
        await log_debug(f"Realtime-событие {event} -> {room}")
        return True

    async def to_user(self, user_id: str, event: RealtimeEvent | str, data: dict[str, Any]) -> bool:
        """Событие в персональную группу пользователя."""
        return await self.publish(user_room(user_id), event, data)

    async def to_reservation(self, reservation_id: str, event: RealtimeEvent | str, data: dict[str, Any]) -> bool:
        """Событие в группу бронирования."""
        return await self.publish(reservation_room(reservation_id), event, data)
