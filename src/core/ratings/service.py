# src/core/ratings/service.py
"""
Сервис оценок.
Клиент оценивает завершённый заказ; рейтинг мойщика пересчитывается
в той же транзакции. Счётчик выполненных моек при этом не меняется.
"""

from __future__ import annotations

import asyncpg

from src.common.constants import ReservationStatus
from src.common.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from src.common.logger import log_info
from src.common.permissions import Capability, Principal
from src.core.ratings.models import Rating, RatingCreateDTO, WasherRatings
from src.core.ratings.repository import RatingRepository
from src.core.reservations.repository import ReservationRepository
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import DomainEvent, EventBus, EventTypes


class RatingService:
    """Сервис оценок."""

    def __init__(
        self,
        db: DatabaseManager,
        repository: RatingRepository,
        reservations: ReservationRepository,
        users: UserRepository,
        event_bus: EventBus,
    ) -> None:
        self._db = db
        self._repo = repository
        self._reservations = reservations
        self._users = users
        self._event_bus = event_bus

    async def rate(self, principal: Principal, payload: RatingCreateDTO) -> Rating:
        """
        Создаёт оценку для завершённого бронирования.

        Raises:
            NotFoundError: бронирование не найдено
            ForbiddenError: оценивает не владелец
            ValidationError: бронирование не завершено
            ConflictError: оценка уже существует
        """
        principal.require(Capability.RATE_SERVICE)

        reservation = await self._reservations.get_by_id(payload.reservation_id)
        if reservation is None:
            raise NotFoundError("Бронирование не найдено")
        if reservation.user_id != principal.user_id:
            raise ForbiddenError("Оценить может только владелец бронирования")
        if reservation.status != ReservationStatus.COMPLETED or reservation.washer_id is None:
            raise ValidationError("Оценить можно только завершённый заказ")

        if await self._repo.get_by_reservation(reservation.id) is not None:
            raise ConflictError("Этот заказ уже оценён", code="ALREADY_RATED")

        try:
            async with self._db.transaction() as conn:
                rating = await self._repo.create(
                    reservation_id=reservation.id,
                    user_id=principal.user_id,
                    washer_id=reservation.washer_id,
                    stars=payload.stars,
                    comment=payload.comment,
                    conn=conn,
                )
                new_average = await self._users.recalculate_rating(reservation.washer_id, conn)
        except asyncpg.UniqueViolationError:
            raise ConflictError("Этот заказ уже оценён", code="ALREADY_RATED")

        await log_info(
            f"Оценка {payload.stars} для мойщика {reservation.washer_id}, новый рейтинг {new_average}"
        )
        await self._event_bus.publish(DomainEvent(
            event_type=EventTypes.RATING_CREATED,
            payload={
                "reservation_id": reservation.id,
                "washer_id": reservation.washer_id,
                "stars": payload.stars,
                "washer_rating": new_average,
            },
        ))
        return rating

    async def get_for_reservation(self, reservation_id: str) -> Rating:
        rating = await self._repo.get_by_reservation(reservation_id)
        if rating is None:
            raise NotFoundError("Заказ ещё не оценён")
        return rating

    async def list_for_washer(self, washer_id: str, limit: int = 50, offset: int = 0) -> WasherRatings:
        ratings = await self._repo.list_by_washer(washer_id, limit, offset)
        average, total = await self._repo.summary(washer_id)
        return WasherRatings(ratings=ratings, average=average, total=total)
