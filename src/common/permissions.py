# src/common/permissions.py
"""
Права доступа по ролям.

Вместо сравнения строк ролей в каждом обработчике операция
запрашивает одну возможность (Capability) у Principal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.common.constants import UserRole
from src.common.errors import ForbiddenError


class Capability(str, Enum):
    """Возможности, которые проверяются перед операцией."""
    CREATE_RESERVATION = "reservation:create"
    EDIT_RESERVATION = "reservation:edit"
    CANCEL_RESERVATION = "reservation:cancel"
    ASSIGN_WASHER = "reservation:assign"
    VIEW_ANY_RESERVATION = "reservation:view_any"
    VIEW_AVAILABLE_JOBS = "job:view_available"
    CLAIM_JOB = "job:claim"
    WORK_JOB = "job:work"
    SHARE_LOCATION = "job:share_location"
    SET_AVAILABILITY = "washer:set_availability"
    OPEN_CASH_PAYMENT = "payment:open_cash"
    CREATE_CARD_INTENT = "payment:create_intent"
    CONFIRM_CASH = "payment:confirm_cash"
    REFUND_PAYMENT = "payment:refund"
    VIEW_PAYMENT_STATS = "payment:stats"
    RATE_SERVICE = "rating:create"

    def __str__(self) -> str:
        return self.value


ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.CUSTOMER: frozenset({
        Capability.CREATE_RESERVATION,
        Capability.EDIT_RESERVATION,
        Capability.CANCEL_RESERVATION,
        Capability.OPEN_CASH_PAYMENT,
        Capability.CREATE_CARD_INTENT,
        Capability.RATE_SERVICE,
    }),
    UserRole.WASHER: frozenset({
        Capability.CANCEL_RESERVATION,
        Capability.VIEW_AVAILABLE_JOBS,
        Capability.CLAIM_JOB,
        Capability.WORK_JOB,
        Capability.SHARE_LOCATION,
        Capability.SET_AVAILABILITY,
        Capability.OPEN_CASH_PAYMENT,
        Capability.CONFIRM_CASH,
    }),
    UserRole.ADMIN: frozenset({
        Capability.EDIT_RESERVATION,
        Capability.CANCEL_RESERVATION,
        Capability.ASSIGN_WASHER,
        Capability.VIEW_ANY_RESERVATION,
        Capability.VIEW_AVAILABLE_JOBS,
        Capability.CONFIRM_CASH,
        Capability.REFUND_PAYMENT,
        Capability.VIEW_PAYMENT_STATS,
    }),
}


@dataclass(frozen=True)
class Principal:
    """Аутентифицированный пользователь, от имени которого выполняется операция."""
    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_washer(self) -> bool:
        return self.role == UserRole.WASHER

    def can(self, capability: Capability) -> bool:
        """Есть ли у роли указанная возможность."""
        return capability in ROLE_CAPABILITIES.get(self.role, frozenset())

    def require(self, capability: Capability) -> None:
        """Бросает ForbiddenError, если возможности нет."""
        if not self.can(capability):
            raise ForbiddenError(
                f"Недостаточно прав: роль {self.role} не может выполнить {capability}"
            )
