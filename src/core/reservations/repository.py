# src/core/reservations/repository.py
"""
Репозиторий бронирований и каталога.

Все переходы статуса выполняются одним guarded UPDATE ... RETURNING:
исход гонки определяет количество затронутых строк, а не предварительное чтение.
"""

from __future__ import annotations

from typing import Any, Optional

from asyncpg import Connection

from src.common.constants import ReservationStatus
from src.core.reservations.models import (
    AvailableJob,
    Reservation,
    ReservationStats,
    ServiceItem,
    Vehicle,
)
from src.core.reservations.state_machine import ReservationStateMachine, status_guard
from src.infra.database import DatabaseManager

_BASE_SELECT = """
    SELECT r.*,
           s.name     AS service_name,
           s.duration AS service_duration
    FROM reservations.reservations r
    LEFT JOIN reservations.services s ON s.id = r.service_id
"""

_SM = ReservationStateMachine
_S = ReservationStatus

# Условия guarded UPDATE из таблицы переходов
_CLAIM_GUARD = status_guard(_SM.sources(_S.CONFIRMED))
_START_GUARD = status_guard(_SM.sources(_S.IN_PROGRESS))
_COMPLETE_GUARD = status_guard(_SM.sources(_S.COMPLETED))
_CANCEL_GUARD = status_guard(_SM.sources(_S.CANCELLED))
_ETA_GUARD = status_guard(_SM.TRACKABLE)
_EDIT_GUARD = status_guard(_SM.EDITABLE)

# Колонки, которые можно менять через редактирование
_EDITABLE_COLUMNS = (
    "vehicle_id",
    "service_id",
    "scheduled_date",
    "scheduled_time",
    "total_amount",
    "notes",
    "address",
    "latitude",
    "longitude",
)

MAX_PAGE_SIZE = 100


def _to_reservation(row: Any) -> Optional[Reservation]:
    return Reservation.model_validate(dict(row)) if row else None


class ReservationRepository:
    """Репозиторий бронирований."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    def _exec(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self._db

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_by_id(self, reservation_id: str, conn: Connection | None = None) -> Optional[Reservation]:
        """Получает бронирование по ID (с названием услуги)."""
        row = await self._exec(conn).fetchrow(
            f"{_BASE_SELECT} WHERE r.id = $1",
            reservation_id,
        )
        return _to_reservation(row)

    async def list_by_user(
        self,
        user_id: str,
        status: ReservationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Reservation]:
        """Бронирования клиента, новые сверху."""
        rows = await self._db.fetch(
            f"""
            {_BASE_SELECT}
            WHERE r.user_id = $1 AND ($2::text IS NULL OR r.status = $2)
            ORDER BY r.scheduled_date DESC, r.scheduled_time DESC
            LIMIT $3 OFFSET $4
            """,
            user_id,
            status.value if status else None,
            min(limit, MAX_PAGE_SIZE),
            offset,
        )
        return [_to_reservation(r) for r in rows]

    async def list_by_washer(
        self,
        washer_id: str,
        status: ReservationStatus | None = None,
        limit: int = 50,
    ) -> list[Reservation]:
        """Заказы, назначенные мойщику."""
        rows = await self._db.fetch(
            f"""
            {_BASE_SELECT}
            WHERE r.washer_id = $1 AND ($2::text IS NULL OR r.status = $2)
            ORDER BY r.scheduled_date DESC, r.scheduled_time DESC
            LIMIT $3
            """,
            washer_id,
            status.value if status else None,
            min(limit, MAX_PAGE_SIZE),
        )
        return [_to_reservation(r) for r in rows]

    async def list_all(
        self,
        status: ReservationStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Reservation]:
        """Все бронирования (для администратора)."""
        rows = await self._db.fetch(
            f"""
            {_BASE_SELECT}
            WHERE ($1::text IS NULL OR r.status = $1)
            ORDER BY r.created_at DESC
            LIMIT $2 OFFSET $3
            """,
            status.value if status else None,
            min(limit, MAX_PAGE_SIZE),
            offset,
        )
        return [_to_reservation(r) for r in rows]

    async def list_available(self, limit: int = 50) -> list[AvailableJob]:
        """
        Свободные заказы: PENDING без мойщика, ближайшие по расписанию первыми.
        """
        rows = await self._db.fetch(
            """
            SELECT r.*,
                   s.name         AS service_name,
                   s.duration     AS service_duration,
                   v.brand        AS vehicle_brand,
                   v.model        AS vehicle_model,
                   v.plate        AS vehicle_plate,
                   v.vehicle_type AS vehicle_type,
                   v.color        AS vehicle_color
            FROM reservations.reservations r
            LEFT JOIN reservations.services s ON s.id = r.service_id
            LEFT JOIN vehicles.vehicles v ON v.id = r.vehicle_id
            WHERE r.status = 'PENDING' AND r.washer_id IS NULL
            ORDER BY r.scheduled_date ASC, r.scheduled_time ASC
            LIMIT $1
            """,
            min(limit, MAX_PAGE_SIZE),
        )
        return [AvailableJob.model_validate(dict(r)) for r in rows]

    async def get_stats(self, user_id: str | None = None, washer_id: str | None = None) -> ReservationStats:
        """Количество бронирований по статусам (для клиента, мойщика или всех)."""
        row = await self._db.fetchrow(
            """
            SELECT
                COUNT(*) FILTER (WHERE status = 'PENDING')     AS pending,
                COUNT(*) FILTER (WHERE status = 'CONFIRMED')   AS confirmed,
                COUNT(*) FILTER (WHERE status = 'IN_PROGRESS') AS in_progress,
                COUNT(*) FILTER (WHERE status = 'COMPLETED')   AS completed,
                COUNT(*) FILTER (WHERE status = 'CANCELLED')   AS cancelled,
                COUNT(*)                                        AS total
            FROM reservations.reservations
            WHERE ($1::text IS NULL OR user_id = $1)
              AND ($2::text IS NULL OR washer_id = $2)
            """,
            user_id,
            washer_id,
        )
        return ReservationStats.model_validate(dict(row)) if row else ReservationStats()

    # =========================================================================
    # ЗАПИСЬ
    # =========================================================================

    async def create(self, data: dict[str, Any], conn: Connection | None = None) -> Reservation:
        """Вставляет бронирование в статусе PENDING без мойщика."""
        row = await self._exec(conn).fetchrow(
            """
            INSERT INTO reservations.reservations (
                id, user_id, vehicle_id, service_id, status,
                scheduled_date, scheduled_time, total_amount,
                notes, address, latitude, longitude
            )
            VALUES ($1, $2, $3, $4, 'PENDING', $5, $6, $7, $8, $9, $10, $11)
            RETURNING *
            """,
            data["id"],
            data["user_id"],
            data["vehicle_id"],
            data["service_id"],
            data["scheduled_date"],
            data["scheduled_time"],
            data["total_amount"],
            data.get("notes"),
            data.get("address"),
            data.get("latitude"),
            data.get("longitude"),
        )
        return _to_reservation(row)

    async def claim(self, reservation_id: str, washer_id: str, conn: Connection | None = None) -> Optional[Reservation]:
        """
        Атомарно закрепляет свободный заказ за мойщиком.

        Returns:
            Обновлённое бронирование или None, если заказ уже не свободен
        """
        row = await self._exec(conn).fetchrow(
            f"""
            UPDATE reservations.reservations
            SET washer_id = $2, status = 'CONFIRMED', updated_at = NOW()
            WHERE id = $1 AND {_CLAIM_GUARD} AND washer_id IS NULL
            RETURNING *
            """,
            reservation_id,
            washer_id,
        )
        return _to_reservation(row)

    async def start(self, reservation_id: str, washer_id: str, conn: Connection | None = None) -> Optional[Reservation]:
        """CONFIRMED -> IN_PROGRESS для назначенного мойщика."""
        row = await self._exec(conn).fetchrow(
            f"""
            UPDATE reservations.reservations
            SET status = 'IN_PROGRESS', started_at = NOW(), updated_at = NOW()
            WHERE id = $1 AND washer_id = $2 AND {_START_GUARD}
            RETURNING *
            """,
            reservation_id,
            washer_id,
        )
        return _to_reservation(row)

    async def complete(self, reservation_id: str, washer_id: str, conn: Connection | None = None) -> Optional[Reservation]:
        """IN_PROGRESS -> COMPLETED для назначенного мойщика."""
        row = await self._exec(conn).fetchrow(
            f"""
            UPDATE reservations.reservations
            SET status = 'COMPLETED', completed_at = NOW(), updated_at = NOW()
            WHERE id = $1 AND washer_id = $2 AND {_COMPLETE_GUARD}
            RETURNING *
            """,
            reservation_id,
            washer_id,
        )
        return _to_reservation(row)

    async def cancel(self, reservation_id: str, conn: Connection | None = None) -> Optional[Reservation]:
        """PENDING | CONFIRMED -> CANCELLED, мойщик снимается."""
        row = await self._exec(conn).fetchrow(
            f"""
            UPDATE reservations.reservations
            SET status = 'CANCELLED', washer_id = NULL, updated_at = NOW()
            WHERE id = $1 AND {_CANCEL_GUARD}
            RETURNING *
            """,
            reservation_id,
        )
        return _to_reservation(row)

    async def set_eta(
        self,
        reservation_id: str,
        washer_id: str,
        estimated_arrival: Any,
        conn: Connection | None = None,
    ) -> Optional[Reservation]:
        """Обновляет время прибытия без смены статуса."""
        row = await self._exec(conn).fetchrow(
            f"""
            UPDATE reservations.reservations
            SET estimated_arrival = $3, updated_at = NOW()
            WHERE id = $1 AND washer_id = $2 AND {_ETA_GUARD}
            RETURNING *
            """,
            reservation_id,
            washer_id,
            estimated_arrival,
        )
        return _to_reservation(row)

    async def update_pending(
        self,
        reservation_id: str,
        changes: dict[str, Any],
        conn: Connection | None = None,
    ) -> Optional[Reservation]:
        """
        Редактирует бронирование, пока оно в статусе PENDING.

        Returns:
            Обновлённое бронирование или None, если статус уже не PENDING
        """
        fields = [col for col in _EDITABLE_COLUMNS if col in changes]
        if not fields:
            row = await self._exec(conn).fetchrow(
                f"SELECT * FROM reservations.reservations WHERE id = $1 AND {_EDIT_GUARD}",
                reservation_id,
            )
            return _to_reservation(row)

        assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(fields, start=2))
        row = await self._exec(conn).fetchrow(
            f"""
            UPDATE reservations.reservations
            SET {assignments}, updated_at = NOW()
            WHERE id = $1 AND {_EDIT_GUARD}
            RETURNING *
            """,
            reservation_id,
            *(changes[col] for col in fields),
        )
        return _to_reservation(row)


class CatalogRepository:
    """Чтение каталога услуг и автомобилей клиентов."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def get_service(self, service_id: str) -> Optional[ServiceItem]:
        row = await self._db.fetchrow(
            """
            SELECT id, name, description, duration, price, vehicle_type, is_active
            FROM reservations.services
            WHERE id = $1
            """,
            service_id,
        )
        return ServiceItem.model_validate(dict(row)) if row else None

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        row = await self._db.fetchrow(
            """
            SELECT id, user_id, brand, model, plate, vehicle_type, color, year, is_active
            FROM vehicles.vehicles
            WHERE id = $1
            """,
            vehicle_id,
        )
        return Vehicle.model_validate(dict(row)) if row else None
