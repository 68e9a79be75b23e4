# src/core/ratings/repository.py
"""
Репозиторий оценок.
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import uuid4

from asyncpg import Connection

from src.core.ratings.models import Rating
from src.infra.database import DatabaseManager


class RatingRepository:
    """Репозиторий оценок."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def _exec(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self._db

    async def create(
        self,
        reservation_id: str,
        user_id: str,
        washer_id: str,
        stars: int,
        comment: str | None,
        conn: Connection | None = None,
    ) -> Rating:
        """
        Вставляет оценку.

        Raises:
            asyncpg.UniqueViolationError: оценка для бронирования уже есть
        """
        row = await self._exec(conn).fetchrow(
            """
            INSERT INTO reservations.ratings (id, reservation_id, user_id, washer_id, stars, comment)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            str(uuid4()),
            reservation_id,
            user_id,
            washer_id,
            stars,
            comment,
        )
        return Rating.model_validate(dict(row))

    async def get_by_reservation(self, reservation_id: str) -> Optional[Rating]:
        row = await self._db.fetchrow(
            "SELECT * FROM reservations.ratings WHERE reservation_id = $1",
            reservation_id,
        )
        return Rating.model_validate(dict(row)) if row else None

    async def list_by_washer(self, washer_id: str, limit: int = 50, offset: int = 0) -> list[Rating]:
        rows = await self._db.fetch(
            """
            SELECT * FROM reservations.ratings
            WHERE washer_id = $1
            ORDER BY created_at DESC
            LIMIT $2 OFFSET $3
            """,
            washer_id,
            min(limit, 100),
            offset,
        )
        return [Rating.model_validate(dict(r)) for r in rows]

    async def summary(self, washer_id: str) -> tuple[float, int]:
        """
        Returns:
            (средняя оценка, количество); 5.0 если оценок нет
        """
        row = await self._db.fetchrow(
            """
            SELECT COALESCE(ROUND(AVG(stars)::numeric, 2), 5.0) AS average, COUNT(*) AS total
            FROM reservations.ratings
            WHERE washer_id = $1
            """,
            washer_id,
        )
        if row is None:
            return 5.0, 0
        return float(row["average"]), int(row["total"])
