# src/core/notifications/service.py
"""
Сервис уведомлений.
Сохраняет уведомление в БД и доставляет его в персональную группу
пользователя через realtime-шлюз.
"""

from __future__ import annotations

from typing import Any

from asyncpg import Connection

from src.common.constants import NotificationType, RealtimeEvent
from src.common.errors import NotFoundError
from src.common.logger import log_debug
from src.core.notifications.models import Notification
from src.core.notifications.repository import NotificationRepository
from src.infra.realtime_publisher import RealtimePublisher


# Тексты уведомлений о ходе заказа
_RESERVATION_TEMPLATES: dict[NotificationType, tuple[str, str]] = {
    NotificationType.WASHER_ASSIGNED: (
        "Мойщик назначен",
        "Ваш заказ на {date} принят мойщиком",
    ),
    NotificationType.WASHER_ON_WAY: (
        "Мойщик в пути",
        "Ожидаемое время прибытия: {eta}",
    ),
    NotificationType.SERVICE_STARTED: (
        "Мойка началась",
        "Мойщик приступил к работе",
    ),
    NotificationType.SERVICE_COMPLETED: (
        "Мойка завершена",
        "Заказ выполнен. Оцените работу мойщика",
    ),
}


class NotificationService:
    """
    Сервис уведомлений.

    Доставка в realtime-канал best-effort: ошибки публикации
    не влияют на сохранённое уведомление.
    """

    def __init__(self, repository: NotificationRepository, publisher: RealtimePublisher) -> None:
        """
        Args:
            repository: Репозиторий уведомлений
            publisher: Издатель realtime-событий
        """
        self._repo = repository
        self._publisher = publisher

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
        """Только сохраняет уведомление (доставка — отдельно через push)."""
        return await self._repo.create(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            action_url=action_url,
            metadata=metadata,
            conn=conn,
        )

    async def push(self, notification: Notification) -> bool:
        """Доставляет сохранённое уведомление в room:<userId>."""
        return await self._publisher.to_user(
            notification.user_id,
            RealtimeEvent.NOTIFICATION,
            notification.model_dump(mode="json"),
        )

    async def notify_user(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        """
        Сохраняет уведомление и сразу доставляет его пользователю.

        Returns:
            Сохранённое уведомление
        """
        notification = await self.create(user_id, title, message, type, action_url, metadata)
        await self.push(notification)
        await log_debug(f"Уведомление {type} -> {user_id}")
        return notification

    async def reservation_notification(
        self,
        user_id: str,
        reservation_id: str,
        type: NotificationType,
        conn: Connection | None = None,
        **fmt: Any,
    ) -> Notification:
        """
        Сохраняет шаблонное уведомление о ходе заказа.
        Не доставляет: вызывающий делает push после commit.
        """
        title, template = _RESERVATION_TEMPLATES[type]
        return await self.create(
            user_id=user_id,
            title=title,
            message=template.format(**fmt),
            type=type,
            action_url=f"/reservations/{reservation_id}",
            metadata={"reservation_id": reservation_id, **{k: str(v) for k, v in fmt.items()}},
            conn=conn,
        )

    # =========================================================================
    # ЧТЕНИЕ И ПРОЧТЕНИЕ
    # =========================================================================

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        return await self._repo.list_for_user(user_id, unread_only, limit, offset)

    async def unread_count(self, user_id: str) -> int:
        return await self._repo.unread_count(user_id)

    async def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = await self._repo.mark_read(notification_id, user_id)
        if notification is None:
            raise NotFoundError("Уведомление не найдено")
        return notification

    async def mark_all_read(self, user_id: str) -> int:
        return await self._repo.mark_all_read(user_id)

    async def delete(self, user_id: str, notification_id: str) -> None:
        if not await self._repo.delete(notification_id, user_id):
            raise NotFoundError("Уведомление не найдено")
