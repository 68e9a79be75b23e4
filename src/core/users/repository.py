# src/core/users/repository.py
"""
Репозиторий пользователей.
Для мойщиков хранит проекцию: доступность, рейтинг, счётчик выполненных моек.
"""

from __future__ import annotations

from typing import Any, Optional

from asyncpg import Connection

from src.common.constants import UserRole
from src.core.users.models import User
from src.infra.database import DatabaseManager, affected_rows

_USER_COLUMNS = """
    id, email, name, phone, role, is_active,
    is_available, rating, completed_services,
    latitude, longitude, location_updated_at, created_at, updated_at
"""


class UserRepository:
    """Репозиторий пользователей."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    def _exec(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self._db

    async def get_by_id(self, user_id: str, conn: Connection | None = None) -> Optional[User]:
        """Получает пользователя по ID."""
        row = await self._exec(conn).fetchrow(
            f"SELECT {_USER_COLUMNS} FROM auth.users WHERE id = $1",
            user_id,
        )
        return User.model_validate(dict(row)) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        row = await self._db.fetchrow(
            f"SELECT {_USER_COLUMNS} FROM auth.users WHERE lower(email) = lower($1)",
            email,
        )
        return User.model_validate(dict(row)) if row else None

    async def create(self, user: User) -> User:
        """Создаёт пользователя (используется сидингом)."""
        row = await self._db.fetchrow(
            f"""
            INSERT INTO auth.users (id, email, name, phone, role, is_available)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_USER_COLUMNS}
            """,
            user.id,
            user.email,
            user.name,
            user.phone,
            user.role.value,
            user.is_available,
        )
        return User.model_validate(dict(row))

    # =========================================================================
    # ПРОЕКЦИЯ МОЙЩИКА
    # =========================================================================

    async def increment_completed_services(self, washer_id: str, conn: Connection | None = None) -> bool:
        """
        Увеличивает счётчик выполненных моек на 1.
        Вызывается в транзакции завершения заказа.
        """
        status = await self._exec(conn).execute(
            """
            UPDATE auth.users
            SET completed_services = completed_services + 1, updated_at = NOW()
            WHERE id = $1
            """,
            washer_id,
        )
        return affected_rows(status) == 1

    async def recalculate_rating(self, washer_id: str, conn: Connection | None = None) -> float:
        """
        Пересчитывает средний рейтинг мойщика по всем оценкам (5.0 если оценок нет).

        Returns:
            Новый рейтинг
        """
        value = await self._exec(conn).fetchval(
            """
            UPDATE auth.users
            SET rating = COALESCE(
                    (SELECT ROUND(AVG(stars)::numeric, 2) FROM reservations.ratings WHERE washer_id = $1),
                    5.0
                ),
                updated_at = NOW()
            WHERE id = $1
            RETURNING rating
            """,
            washer_id,
        )
        return float(value) if value is not None else 5.0

    async def set_availability(self, washer_id: str, is_available: bool) -> Optional[User]:
        row = await self._db.fetchrow(
            f"""
            UPDATE auth.users
            SET is_available = $2, updated_at = NOW()
            WHERE id = $1 AND role = $3
            RETURNING {_USER_COLUMNS}
            """,
            washer_id,
            is_available,
            UserRole.WASHER.value,
        )
        return User.model_validate(dict(row)) if row else None

    async def update_location(self, washer_id: str, latitude: float, longitude: float) -> Optional[User]:
        """Сохраняет последнюю геопозицию мойщика."""
        row = await self._db.fetchrow(
            f"""
            UPDATE auth.users
            SET latitude = $2, longitude = $3, location_updated_at = NOW(), updated_at = NOW()
            WHERE id = $1 AND role = $4
            RETURNING {_USER_COLUMNS}
            """,
            washer_id,
            latitude,
            longitude,
            UserRole.WASHER.value,
        )
        return User.model_validate(dict(row)) if row else None
