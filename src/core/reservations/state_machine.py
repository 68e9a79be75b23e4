# src/core/reservations/state_machine.py
"""
Конечный автомат статусов бронирования.

    PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED
    PENDING | CONFIRMED -> CANCELLED

Условия guarded UPDATE в репозитории строятся из этой таблицы.
"""

from __future__ import annotations

from typing import Iterable

from src.common.constants import ReservationStatus
from src.common.errors import InvalidStateError


class ReservationStateMachine:
    ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
        ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
        ReservationStatus.CONFIRMED: frozenset({ReservationStatus.IN_PROGRESS, ReservationStatus.CANCELLED}),
        ReservationStatus.IN_PROGRESS: frozenset({ReservationStatus.COMPLETED}),
        ReservationStatus.COMPLETED: frozenset(),
        ReservationStatus.CANCELLED: frozenset(),
    }

    EDITABLE = frozenset({ReservationStatus.PENDING})
    # Мойщик в пути или на месте: ETA и геопозиция имеют смысл
    TRACKABLE = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS})

    @classmethod
    def sources(cls, target: ReservationStatus) -> frozenset[ReservationStatus]:
        """Статусы, из которых допустим переход в target."""
        return frozenset(
            status for status, targets in cls.ALLOWED_TRANSITIONS.items() if target in targets
        )

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = ReservationStatus(current_status)
            new = ReservationStatus(new_status)
        except ValueError:
            return False
        return new in ReservationStateMachine.ALLOWED_TRANSITIONS.get(curr, frozenset())

    @classmethod
    def ensure_transition(cls, current_status: str, new_status: str) -> None:
        """Бросает InvalidStateError, если переход запрещён."""
        if not cls.can_transition(current_status, new_status):
            raise InvalidStateError(
                f"Переход {current_status} -> {new_status} недопустим"
            )


def status_guard(statuses: Iterable[ReservationStatus], column: str = "status") -> str:
    """
    SQL-условие на статус для guarded UPDATE.

    Значения берутся только из ReservationStatus, поэтому подставляются литералами.
    """
    allowed = set(statuses)
    ordered = [status.value for status in ReservationStatus if status in allowed]
    if not ordered:
        raise ValueError("Пустой набор статусов")
    if len(ordered) == 1:
        return f"{column} = '{ordered[0]}'"
    values = ", ".join(f"'{value}'" for value in ordered)
    return f"{column} IN ({values})"
