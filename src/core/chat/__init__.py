# src/core/chat/__init__.py
"""
Домен чата: личные сообщения клиент <-> мойщик.
"""

from src.core.chat.repository import MessageRepository
from src.core.chat.service import ChatService

__all__ = [
    "MessageRepository",
    "ChatService",
]
