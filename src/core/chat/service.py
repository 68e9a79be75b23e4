# src/core/chat/service.py
"""
Сервис чата между клиентом и мойщиком.
Сообщение сохраняется в БД и публикуется в группу получателя.
"""

from __future__ import annotations

from src.common.constants import RealtimeEvent
from src.common.errors import NotFoundError, ValidationError
from src.common.logger import log_debug
from src.common.permissions import Principal
from src.core.chat.repository import MessageRepository
from src.core.notifications.models import Conversation, Message
from src.core.users.repository import UserRepository
from src.infra.realtime_publisher import RealtimePublisher

MAX_MESSAGE_LENGTH = 2000


class ChatService:
    """Сервис чата."""

    def __init__(
        self,
        repository: MessageRepository,
        user_repository: UserRepository,
        publisher: RealtimePublisher,
    ) -> None:
        self._repo = repository
        self._users = user_repository
        self._publisher = publisher

    async def send_message(self, principal: Principal, receiver_id: str, content: str | None) -> Message:
        """
        Сохраняет сообщение и доставляет new_message в room:<receiver>.

        Raises:
            ValidationError: пустое сообщение или отправка самому себе
            NotFoundError: получатель не существует
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("Сообщение не может быть пустым")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Сообщение длиннее {MAX_MESSAGE_LENGTH} символов")
        if not receiver_id:
            raise ValidationError("Не указан получатель")
        if receiver_id == principal.user_id:
            raise ValidationError("Нельзя отправить сообщение самому себе")

        if await self._users.get_by_id(receiver_id) is None:
            raise NotFoundError("Получатель не найден")

        message = await self._repo.create(
            sender_id=principal.user_id,
            sender_role=principal.role,
            receiver_id=receiver_id,
            content=text,
        )

        await self._publisher.to_user(
            receiver_id,
            RealtimeEvent.NEW_MESSAGE,
            message.model_dump(mode="json"),
        )
        await log_debug(f"Сообщение {principal.user_id} -> {receiver_id}")
        return message

    async def get_conversation(self, principal: Principal, peer_id: str, limit: int = 100) -> list[Message]:
        """Возвращает переписку и отмечает входящие от собеседника прочитанными."""
        messages = await self._repo.get_conversation(principal.user_id, peer_id, limit)
        await self._repo.mark_conversation_read(principal.user_id, peer_id)
        return messages

    async def list_conversations(self, principal: Principal) -> list[Conversation]:
        return await self._repo.list_conversations(principal.user_id)

    async def unread_count(self, principal: Principal) -> int:
        return await self._repo.unread_count(principal.user_id)

    async def mark_read(self, principal: Principal, message_id: str) -> Message:
        message = await self._repo.mark_read(message_id, principal.user_id)
        if message is None:
            raise NotFoundError("Сообщение не найдено")
        return message
