# src/core/payments/repository.py
"""
Репозиторий платежей.
Смена статуса — guarded UPDATE с допустимым набором исходных статусов.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional
from uuid import uuid4

from asyncpg import Connection

from src.common.constants import PaymentMethod, PaymentStatus
from src.core.payments.models import Payment, PaymentStats
from src.infra.database import DatabaseManager


def _to_payment(row: Any) -> Optional[Payment]:
    return Payment.model_validate(dict(row)) if row else None


def _statuses(allowed: Iterable[PaymentStatus]) -> list[str]:
    return [PaymentStatus(s).value for s in allowed]


class PaymentRepository:
    """Репозиторий платежей."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    def _exec(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self._db

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_by_id(self, payment_id: str, conn: Connection | None = None) -> Optional[Payment]:
        row = await self._exec(conn).fetchrow(
            "SELECT * FROM payments.payments WHERE id = $1",
            payment_id,
        )
        return _to_payment(row)

    async def list_by_reservation(self, reservation_id: str) -> list[Payment]:
        rows = await self._db.fetch(
            """
            SELECT * FROM payments.payments
            WHERE reservation_id = $1
            ORDER BY created_at DESC
            """,
            reservation_id,
        )
        return [_to_payment(r) for r in rows]

    async def has_open_payment(self, reservation_id: str, conn: Connection | None = None) -> bool:
        """Есть ли PENDING или COMPLETED платёж по бронированию."""
        found = await self._exec(conn).fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM payments.payments
                WHERE reservation_id = $1 AND status IN ('PENDING', 'COMPLETED')
            )
            """,
            reservation_id,
        )
        return bool(found)

    async def has_completed_payment(self, reservation_id: str, conn: Connection | None = None) -> bool:
        found = await self._exec(conn).fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM payments.payments
                WHERE reservation_id = $1 AND status = 'COMPLETED'
            )
            """,
            reservation_id,
        )
        return bool(found)

    async def has_pending_payment(
        self,
        reservation_id: str,
        method: PaymentMethod,
        conn: Connection | None = None,
    ) -> bool:
        """Есть ли PENDING платёж указанным способом."""
        found = await self._exec(conn).fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM payments.payments
                WHERE reservation_id = $1 AND payment_method = $2 AND status = 'PENDING'
            )
            """,
            reservation_id,
            method.value,
        )
        return bool(found)

    async def get_stats(self) -> PaymentStats:
        row = await self._db.fetchrow(
            """
            SELECT
                COUNT(*) FILTER (WHERE status = 'PENDING')   AS pending,
                COUNT(*) FILTER (WHERE status = 'COMPLETED') AS completed,
                COUNT(*) FILTER (WHERE status = 'FAILED')    AS failed,
                COUNT(*) FILTER (WHERE status = 'REFUNDED')  AS refunded,
                COALESCE(SUM(amount) FILTER (WHERE status = 'COMPLETED'), 0) AS total_revenue,
                COUNT(*) FILTER (WHERE status = 'COMPLETED' AND payment_method = 'CASH') AS cash_completed,
                COUNT(*) FILTER (WHERE status = 'COMPLETED' AND payment_method = 'CARD') AS card_completed
            FROM payments.payments
            """
        )
        return PaymentStats.model_validate(dict(row)) if row else PaymentStats()

    # =========================================================================
    # ЗАПИСЬ
    # =========================================================================

    async def lock_reservation(self, reservation_id: str, conn: Connection) -> bool:
        """SELECT ... FOR UPDATE строки бронирования до конца транзакции."""
        found = await conn.fetchval(
            "SELECT id FROM reservations.reservations WHERE id = $1 FOR UPDATE",
            reservation_id,
        )
        return found is not None

    async def create(
        self,
        reservation_id: str,
        user_id: str,
        amount: float,
        method: PaymentMethod,
        processor_reference: str | None = None,
        notes: str | None = None,
        conn: Connection | None = None,
    ) -> Payment:
        row = await self._exec(conn).fetchrow(
            """
            INSERT INTO payments.payments (
                id, reservation_id, user_id, amount, payment_method,
                status, processor_reference, notes
            )
            VALUES ($1, $2, $3, $4, $5, 'PENDING', $6, $7)
            RETURNING *
            """,
            str(uuid4()),
            reservation_id,
            user_id,
            amount,
            method.value,
            processor_reference,
            notes,
        )
        return _to_payment(row)

    async def transition(
        self,
        payment_id: str,
        allowed: Iterable[PaymentStatus],
        new_status: PaymentStatus,
        transaction_id: str | None = None,
        notes: str | None = None,
        conn: Connection | None = None,
    ) -> Optional[Payment]:
        """
        Переводит платёж в new_status, если текущий статус входит в allowed.

        Returns:
            Обновлённый платёж или None
        """
        row = await self._exec(conn).fetchrow(
            """
            UPDATE payments.payments
            SET status = $2,
                transaction_id = COALESCE($3, transaction_id),
                notes = COALESCE($4, notes),
                updated_at = NOW()
            WHERE id = $1 AND status = ANY($5::text[])
            RETURNING *
            """,
            payment_id,
            new_status.value,
            transaction_id,
            notes,
            _statuses(allowed),
        )
        return _to_payment(row)

    async def transition_by_reference(
        self,
        reference: str,
        allowed: Iterable[PaymentStatus],
        new_status: PaymentStatus,
        transaction_id: str | None = None,
        notes: str | None = None,
        conn: Connection | None = None,
    ) -> Optional[Payment]:
        """То же, что transition(), но поиск по ссылке провайдера."""
        row = await self._exec(conn).fetchrow(
            """
            UPDATE payments.payments
            SET status = $2,
                transaction_id = COALESCE($3, transaction_id),
                notes = COALESCE($4, notes),
                updated_at = NOW()
            WHERE processor_reference = $1 AND status = ANY($5::text[])
            RETURNING *
            """,
            reference,
            new_status.value,
            transaction_id,
            notes,
            _statuses(allowed),
        )
        return _to_payment(row)
