# src/core/notifications/repository.py
"""
Репозиторий уведомлений.
"""

from __future__ import annotations

import json
from typing import Any, Optional
from uuid import uuid4

from asyncpg import Connection

from src.common.constants import NotificationType
from src.core.notifications.models import Notification
from src.infra.database import DatabaseManager, affected_rows


class NotificationRepository:
    """Репозиторий уведомлений."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def _exec(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self._db

    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
        conn: Connection | None = None,
    ) -> Notification:
        """Вставляет уведомление (внутри транзакции, если передан conn)."""
        row = await self._exec(conn).fetchrow(
            """
            INSERT INTO notifications.notifications (id, user_id, title, message, type, action_url, metadata)
            VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
            RETURNING *
            """,
            str(uuid4()),
            user_id,
            title,
            message,
            type.value,
            action_url,
            json.dumps(metadata or {}, ensure_ascii=False, default=str),
        )
        return Notification.model_validate(dict(row))

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        rows = await self._db.fetch(
            """
            SELECT * FROM notifications.notifications
            WHERE user_id = $1 AND ($2 = FALSE OR is_read = FALSE)
            ORDER BY created_at DESC
            LIMIT $3 OFFSET $4
            """,
            user_id,
            unread_only,
            min(limit, 100),
            offset,
        )
        return [Notification.model_validate(dict(r)) for r in rows]

    async def unread_count(self, user_id: str) -> int:
        value = await self._db.fetchval(
            "SELECT COUNT(*) FROM notifications.notifications WHERE user_id = $1 AND is_read = FALSE",
            user_id,
        )
        return int(value or 0)

    async def mark_read(self, notification_id: str, user_id: str) -> Optional[Notification]:
        """Отмечает уведомление прочитанным (только своё)."""
        row = await self._db.fetchrow(
            """
            UPDATE notifications.notifications
            SET is_read = TRUE
            WHERE id = $1 AND user_id = $2
            RETURNING *
            """,
            notification_id,
            user_id,
        )
        return Notification.model_validate(dict(row)) if row else None

    async def mark_all_read(self, user_id: str) -> int:
        status = await self._db.execute(
            "UPDATE notifications.notifications SET is_read = TRUE WHERE user_id = $1 AND is_read = FALSE",
            user_id,
        )
        return affected_rows(status)

    async def delete(self, notification_id: str, user_id: str) -> bool:
        status = await self._db.execute(
            "DELETE FROM notifications.notifications WHERE id = $1 AND user_id = $2",
            notification_id,
            user_id,
        )
        return affected_rows(status) == 1
