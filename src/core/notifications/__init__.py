# src/core/notifications/__init__.py
"""
Домен уведомлений.
Хранение уведомлений и доставка в realtime-канал.
"""

from src.core.notifications.models import Notification
from src.core.notifications.repository import NotificationRepository
from src.core.notifications.service import NotificationService

__all__ = [
    "Notification",
    "NotificationRepository",
    "NotificationService",
]
