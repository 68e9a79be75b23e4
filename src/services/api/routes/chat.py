# src/services/api/routes/chat.py
"""
Личные сообщения клиент <-> мойщик.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.core.chat.service import ChatService
from src.core.notifications.models import Conversation, Message, SendMessageDTO
from src.services.api.dependencies import CurrentPrincipal, get_chat_service
from src.shared.models.common import CountResponse

router = APIRouter(prefix="/chat", tags=["Chat"])

Service = Annotated[ChatService, Depends(get_chat_service)]


@router.get("/conversations", response_model=list[Conversation])
async def list_conversations(principal: CurrentPrincipal, service: Service) -> list[Conversation]:
    return await service.list_conversations(principal)


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(principal: CurrentPrincipal, service: Service) -> CountResponse:
    return CountResponse(count=await service.unread_count(principal))


@router.get("/{user_id}", response_model=list[Message])
async def get_conversation(
    user_id: str,
    principal: CurrentPrincipal,
    service: Service,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[Message]:
    """Переписка с пользователем; входящие от него отмечаются прочитанными."""
    return await service.get_conversation(principal, user_id, limit)


@router.post("/{user_id}", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    user_id: str,
    payload: SendMessageDTO,
    principal: CurrentPrincipal,
    service: Service,
) -> Message:
    return await service.send_message(principal, user_id, payload.content)


@router.put("/{message_id}/read", response_model=Message)
async def mark_message_read(message_id: str, principal: CurrentPrincipal, service: Service) -> Message:
    return await service.mark_read(principal, message_id)
