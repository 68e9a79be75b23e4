# src/core/notifications/models.py
"""
Модели уведомлений и сообщений чата.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.common.constants import NotificationType, UserRole


class Notification(BaseModel):
    """Уведомление пользователя. Изменяется только флаг прочтения."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    action_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def parse_metadata(cls, v: Any) -> dict[str, Any]:
        # asyncpg без кодека отдаёт JSONB строкой
        if v is None:
            return {}
        if isinstance(v, str):
            return json.loads(v) if v else {}
        return v


class Message(BaseModel):
    """Сообщение чата. Содержимое неизменяемо."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    sender_role: UserRole
    receiver_id: str
    content: str
    is_read: bool = False
    created_at: Optional[datetime] = None


class SendMessageDTO(BaseModel):
    """DTO отправки сообщения. Пустоту и длину проверяет ChatService."""
    content: Optional[str] = None


class Conversation(BaseModel):
    """Сводка диалога с собеседником."""
    peer_id: str
    peer_name: Optional[str] = None
    peer_role: Optional[UserRole] = None
    last_message: str
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
