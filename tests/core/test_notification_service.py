# tests/core/test_notification_service.py
"""
Тесты сервиса уведомлений.
"""

from __future__ import annotations

from typing import Callable
from unittest.mock import AsyncMock

import pytest

from src.common.constants import NotificationType, RealtimeEvent
from src.common.errors import NotFoundError
from src.core.notifications.service import NotificationService


@pytest.fixture
def repo(make_notification: Callable) -> AsyncMock:
    repo = AsyncMock()
    repo.create = AsyncMock(side_effect=lambda **kw: make_notification(
        user_id=kw["user_id"],
        title=kw["title"],
        message=kw["message"],
        type=kw["type"],
        action_url=kw["action_url"],
        metadata=kw["metadata"],
    ))
    repo.mark_read = AsyncMock(return_value=None)
    repo.delete = AsyncMock(return_value=False)
    return repo


@pytest.fixture
def service(repo: AsyncMock, mock_publisher: AsyncMock) -> NotificationService:
    return NotificationService(repo, mock_publisher)


class TestDelivery:
    """Сохранение и доставка уведомлений."""

    @pytest.mark.asyncio
    async def test_create_does_not_push(
        self,
        service: NotificationService,
        repo: AsyncMock,
        mock_publisher: AsyncMock,
    ) -> None:
        await service.create("user-customer-1", "Заголовок", "Текст")

        repo.create.assert_awaited_once()
        mock_publisher.to_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_push_goes_to_user_room(
        self,
        service: NotificationService,
        mock_publisher: AsyncMock,
        make_notification: Callable,
    ) -> None:
        notification = make_notification()

        assert await service.push(notification) is True

        user_id, event, data = mock_publisher.to_user.await_args.args
        assert user_id == "user-customer-1"
        assert event == RealtimeEvent.NOTIFICATION
        assert data["id"] == "ntf-0001"
        assert data["type"] == "WASHER_ASSIGNED"

    @pytest.mark.asyncio
    async def test_notify_user_saves_and_pushes(
        self,
        service: NotificationService,
        repo: AsyncMock,
        mock_publisher: AsyncMock,
    ) -> None:
        notification = await service.notify_user("user-customer-1", "Акция", "Скидка 10%", NotificationType.PROMOTION)

        assert notification.type == NotificationType.PROMOTION
        repo.create.assert_awaited_once()
        mock_publisher.to_user.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reservation_template(self, service: NotificationService, repo: AsyncMock) -> None:
        conn = AsyncMock()

        notification = await service.reservation_notification(
            "user-customer-1", "res-0001", NotificationType.WASHER_ON_WAY, conn=conn, eta="10:45"
        )

        assert notification.title == "Мойщик в пути"
        assert "10:45" in notification.message
        assert notification.action_url == "/reservations/res-0001"
        assert notification.metadata == {"reservation_id": "res-0001", "eta": "10:45"}
        assert repo.create.await_args.kwargs["conn"] is conn


class TestReadState:
    """Чтение и прочтение уведомлений."""

    @pytest.mark.asyncio
    async def test_mark_read_foreign(self, service: NotificationService) -> None:
        with pytest.raises(NotFoundError):
            await service.mark_read("user-customer-1", "ntf-other")

    @pytest.mark.asyncio
    async def test_mark_read(
        self,
        service: NotificationService,
        repo: AsyncMock,
        make_notification: Callable,
    ) -> None:
        repo.mark_read.return_value = make_notification(is_read=True)

        result = await service.mark_read("user-customer-1", "ntf-0001")

        assert result.is_read is True
        repo.mark_read.assert_awaited_once_with("ntf-0001", "user-customer-1")

    @pytest.mark.asyncio
    async def test_delete_missing(self, service: NotificationService) -> None:
        with pytest.raises(NotFoundError):
            await service.delete("user-customer-1", "ntf-0001")

    @pytest.mark.asyncio
    async def test_delete(self, service: NotificationService, repo: AsyncMock) -> None:
        repo.delete.return_value = True

        await service.delete("user-customer-1", "ntf-0001")

        repo.delete.assert_awaited_once_with("ntf-0001", "user-customer-1")

    @pytest.mark.asyncio
    async def test_unread_count(self, service: NotificationService, repo: AsyncMock) -> None:
        repo.unread_count.return_value = 3

        assert await service.unread_count("user-customer-1") == 3
