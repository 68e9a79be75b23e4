# src/core/chat/repository.py
"""
Репозиторий сообщений чата.
"""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from src.common.constants import UserRole
from src.core.notifications.models import Conversation, Message
from src.infra.database import DatabaseManager, affected_rows


class MessageRepository:
    """Репозиторий сообщений."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create(
        self,
        sender_id: str,
        sender_role: UserRole,
        receiver_id: str,
        content: str,
    ) -> Message:
        row = await self._db.fetchrow(
            """
            INSERT INTO notifications.messages (id, sender_id, sender_role, receiver_id, content)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            str(uuid4()),
            sender_id,
            sender_role.value,
            receiver_id,
            content,
        )
        return Message.model_validate(dict(row))

    async def get_conversation(self, user_id: str, peer_id: str, limit: int = 100) -> list[Message]:
        """Переписка двух пользователей в хронологическом порядке."""
        rows = await self._db.fetch(
            """
            SELECT * FROM (
                SELECT * FROM notifications.messages
                WHERE (sender_id = $1 AND receiver_id = $2)
                   OR (sender_id = $2 AND receiver_id = $1)
                ORDER BY created_at DESC
                LIMIT $3
            ) recent
            ORDER BY created_at ASC
            """,
            user_id,
            peer_id,
            min(limit, 200),
        )
        return [Message.model_validate(dict(r)) for r in rows]

    async def mark_conversation_read(self, user_id: str, peer_id: str) -> int:
        """Отмечает прочитанными входящие сообщения от собеседника."""
        status = await self._db.execute(
            """
            UPDATE notifications.messages
            SET is_read = TRUE
            WHERE receiver_id = $1 AND sender_id = $2 AND is_read = FALSE
            """,
            user_id,
            peer_id,
        )
        return affected_rows(status)

    async def mark_read(self, message_id: str, receiver_id: str) -> Optional[Message]:
        row = await self._db.fetchrow(
            """
            UPDATE notifications.messages
            SET is_read = TRUE
            WHERE id = $1 AND receiver_id = $2
            RETURNING *
            """,
            message_id,
            receiver_id,
        )
        return Message.model_validate(dict(row)) if row else None

    async def unread_count(self, user_id: str) -> int:
        value = await self._db.fetchval(
            "SELECT COUNT(*) FROM notifications.messages WHERE receiver_id = $1 AND is_read = FALSE",
            user_id,
        )
        return int(value or 0)

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Последнее сообщение и число непрочитанных по каждому собеседнику."""
        rows = await self._db.fetch(
            """
            WITH latest AS (
                SELECT DISTINCT ON (peer_id)
                       peer_id, content AS last_message, created_at AS last_message_at
                FROM (
                    SELECT CASE WHEN sender_id = $1 THEN receiver_id ELSE sender_id END AS peer_id,
                           content, created_at
                    FROM notifications.messages
                    WHERE sender_id = $1 OR receiver_id = $1
                ) m
                ORDER BY peer_id, created_at DESC
            )
            SELECT l.peer_id,
                   u.name AS peer_name,
                   u.role AS peer_role,
                   l.last_message,
                   l.last_message_at,
                   (SELECT COUNT(*) FROM notifications.messages x
                    WHERE x.sender_id = l.peer_id AND x.receiver_id = $1 AND x.is_read = FALSE) AS unread_count
            FROM latest l
            LEFT JOIN auth.users u ON u.id = l.peer_id
            ORDER BY l.last_message_at DESC
            """,
            user_id,
        )
        return [Conversation.model_validate(dict(r)) for r in rows]
