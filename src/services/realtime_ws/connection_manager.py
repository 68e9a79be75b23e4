# src/services/realtime_ws/connection_manager.py
"""
Менеджер WebSocket соединений.
Соединения объединены в группы (room:<userId>, reservation:<id>).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from src.common.constants import user_room
from src.common.logger import log_debug, log_warning
from src.common.permissions import Principal


@dataclass
class ConnectionInfo:
    """Информация о соединении."""
    connection_id: str
    websocket: WebSocket
    principal: Principal
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    rooms: set[str] = field(default_factory=set)

    @property
    def user_id(self) -> str:
        return self.principal.user_id


class ConnectionManager:
    """
    Реестр соединений одного экземпляра шлюза.

    Поддерживает:
    - Подключение/отключение клиентов (несколько вкладок одного пользователя)
    - Вход и выход из групп
    - Рассылку в группу; соединение с ошибкой отправки удаляется
    """

    def __init__(self) -> None:
        # connection_id -> ConnectionInfo
        self._connections: dict[str, ConnectionInfo] = {}

        # room -> set of connection_id
        self._rooms: dict[str, set[str]] = {}

        # Для статистики
        self._total_connections: int = 0
        self._total_messages_sent: int = 0

    @property
    def active_connections(self) -> int:
        """Количество активных соединений."""
        return len(self._connections)

    async def connect(self, websocket: WebSocket, principal: Principal) -> ConnectionInfo:
        """Принимает соединение и добавляет его в room:<userId>."""
        await websocket.accept()

        conn = ConnectionInfo(
            connection_id=str(uuid4()),
            websocket=websocket,
            principal=principal,
        )
        self._connections[conn.connection_id] = conn
        self._total_connections += 1
        self.join(conn.connection_id, user_room(principal.user_id))

        await log_debug(f"WS подключён {principal.user_id} ({conn.connection_id})")
        return conn

    async def disconnect(self, connection_id: str) -> None:
        """Удаляет соединение из всех групп."""
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return

        for room in list(conn.rooms):
            self._remove_from_room(connection_id, room)

        await log_debug(f"WS отключён {conn.user_id} ({connection_id})")

    def join(self, connection_id: str, room: str) -> None:
        if connection_id not in self._connections:
            return

        self._connections[connection_id].rooms.add(room)
        self._rooms.setdefault(room, set()).add(connection_id)

    def leave(self, connection_id: str, room: str) -> None:
        if connection_id in self._connections:
            self._connections[connection_id].rooms.discard(room)
        self._remove_from_room(connection_id, room)

    def _remove_from_room(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room]

    def is_member(self, connection_id: str, room: str) -> bool:
        return connection_id in self._rooms.get(room, ())

    def members(self, room: str) -> set[str]:
        """Соединения группы (копия)."""
        return set(self._rooms.get(room, ()))

    async def send(self, connection_id: str, message: dict[str, Any]) -> bool:
        """
        Отправляет сообщение одному соединению.

        Returns:
            True если отправлено; при ошибке соединение удаляется
        """
        conn = self._connections.get(connection_id)
        if conn is None:
            return False

        try:
            await conn.websocket.send_json(message)
        except Exception as e:
            await log_warning(f"WS отправка не удалась ({connection_id}): {e}")
            await self.disconnect(connection_id)
            return False

        self._total_messages_sent += 1
        return True

    async def broadcast(self, room: str, message: dict[str, Any]) -> int:
        """
        Рассылает сообщение всем соединениям группы.

        Returns:
            Количество успешно отправленных сообщений
        """
        sent_count = 0
        for connection_id in self.members(room):
            if await self.send(connection_id, message):
                sent_count += 1
        return sent_count

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        return {
            "active_connections": len(self._connections),
            "total_rooms": len(self._rooms),
            "total_connections_ever": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
        }
