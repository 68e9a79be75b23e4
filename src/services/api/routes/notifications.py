# src/services/api/routes/notifications.py
"""
Уведомления пользователя.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.core.notifications.models import Notification
from src.core.notifications.service import NotificationService
from src.services.api.dependencies import CurrentPrincipal, get_notification_service
from src.shared.models.common import CountResponse, OkResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])

Service = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("", response_model=list[Notification])
async def list_notifications(
    principal: CurrentPrincipal,
    service: Service,
    unread_only: bool = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Notification]:
    return await service.list_for_user(principal.user_id, unread_only, limit, offset)


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(principal: CurrentPrincipal, service: Service) -> CountResponse:
    return CountResponse(count=await service.unread_count(principal.user_id))


@router.put("/read-all", response_model=OkResponse)
async def mark_all_read(principal: CurrentPrincipal, service: Service) -> OkResponse:
    return OkResponse(affected=await service.mark_all_read(principal.user_id))


@router.put("/{notification_id}/read", response_model=Notification)
async def mark_read(notification_id: str, principal: CurrentPrincipal, service: Service) -> Notification:
    return await service.mark_read(principal.user_id, notification_id)


@router.delete("/{notification_id}", response_model=OkResponse)
async def delete_notification(notification_id: str, principal: CurrentPrincipal, service: Service) -> OkResponse:
    await service.delete(principal.user_id, notification_id)
    return OkResponse(affected=1)
