# src/core/users/__init__.py
"""
Домен пользователей.
Проекция мойщика: доступность, рейтинг, выполненные мойки.
"""

from src.core.users.models import User, WasherStats
from src.core.users.service import UserService
from src.core.users.repository import UserRepository

__all__ = [
    "User",
    "WasherStats",
    "UserService",
    "UserRepository",
]
