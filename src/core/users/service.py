# src/core/users/service.py
"""
Сервис пользователей: операции мойщика над собственным профилем.
"""

from __future__ import annotations

from src.common.constants import UserRole
from src.common.errors import NotFoundError, ValidationError
from src.common.logger import log_debug, log_info
from src.common.permissions import Capability, Principal
from src.core.users.models import User, WasherLocation, WasherStats
from src.core.users.repository import UserRepository


class UserService:
    """Сервис пользователей."""

    def __init__(self, repository: UserRepository) -> None:
        self._repo = repository

    async def get_user(self, user_id: str) -> User:
        user = await self._repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("Пользователь не найден")
        return user

    async def get_washer_stats(self, washer_id: str) -> WasherStats:
        """Публичная сводка по мойщику (рейтинг, выполненные мойки)."""
        user = await self.get_user(washer_id)
        if user.role != UserRole.WASHER:
            raise ValidationError("Пользователь не является мойщиком")
        return WasherStats(
            washer_id=user.id,
            name=user.name,
            rating=user.rating,
            completed_services=user.completed_services,
            is_available=user.is_available,
        )

    async def set_availability(self, principal: Principal, is_available: bool) -> User:
        """Мойщик включает или выключает приём заказов."""
        principal.require(Capability.SET_AVAILABILITY)

        user = await self._repo.set_availability(principal.user_id, is_available)
        if user is None:
            raise NotFoundError("Мойщик не найден")

        await log_info(f"Мойщик {principal.user_id} доступность={is_available}")
        return user

    async def update_location(self, principal: Principal, latitude: float, longitude: float) -> WasherLocation:
        """
        Мойщик сохраняет текущую геопозицию.

        Raises:
            ForbiddenError: роль без права делиться геопозицией
            NotFoundError: мойщик не найден
        """
        principal.require(Capability.SHARE_LOCATION)

        user = await self._repo.update_location(principal.user_id, latitude, longitude)
        if user is None:
            raise NotFoundError("Мойщик не найден")

        await log_debug(f"Мойщик {principal.user_id} геопозиция {latitude}, {longitude}")
        return WasherLocation(
            washer_id=user.id,
            latitude=user.latitude,
            longitude=user.longitude,
            updated_at=user.location_updated_at,
        )
