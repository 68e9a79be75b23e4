# src/core/payments/service.py
"""
Сервис платежей (Payment Reconciler).

Наличные: открытие PENDING-платежа и подтверждение мойщиком.
Карта: намерение у провайдера, затем асинхронная сверка через вебхуки.
Все переходы — guarded UPDATE, поэтому повторная доставка вебхука ничего не меняет.
"""

from __future__ import annotations

import time
from typing import Any, Optional

from src.common.constants import PaymentMethod, PaymentStatus, ReservationStatus
from src.common.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.common.logger import log_debug, log_info, log_warning
from src.common.permissions import Capability, Principal
from src.core.payments.models import Payment, PaymentIntentResult, PaymentStats, WebhookEvent
from src.core.payments.processor import MOCK_REFERENCE_PREFIX, PaymentProcessor
from src.core.payments.repository import PaymentRepository
from src.core.reservations.models import Reservation
from src.core.reservations.repository import ReservationRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import DomainEvent, EventBus, EventTypes
from src.infra.redis_client import RedisClient

DEFAULT_FAILURE_NOTE = "Stripe payment failed"
PROCESSOR_NOT_CONFIGURED = "processor_not_configured"

# Тип события -> (допустимые исходные статусы, целевой статус)
_WEBHOOK_TRANSITIONS: dict[str, tuple[tuple[PaymentStatus, ...], PaymentStatus]] = {
    "payment_intent.succeeded": ((PaymentStatus.PENDING, PaymentStatus.FAILED), PaymentStatus.COMPLETED),
    "payment_intent.payment_failed": ((PaymentStatus.PENDING,), PaymentStatus.FAILED),
    "charge.refunded": ((PaymentStatus.COMPLETED,), PaymentStatus.REFUNDED),
}

_STATUS_EVENTS = {
    PaymentStatus.COMPLETED: EventTypes.PAYMENT_COMPLETED,
    PaymentStatus.FAILED: EventTypes.PAYMENT_FAILED,
    PaymentStatus.REFUNDED: EventTypes.PAYMENT_REFUNDED,
}


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


class PaymentService:
    """Сервис платежей."""

    def __init__(
        self,
        db: DatabaseManager,
        repository: PaymentRepository,
        reservations: ReservationRepository,
        processor: PaymentProcessor,
        event_bus: EventBus,
        redis: RedisClient | None = None,
        currency: str = "eur",
        mock_confirm_enabled: bool = True,
        dedupe_ttl: int = 86400,
    ) -> None:
        self._db = db
        self._repo = repository
        self._reservations = reservations
        self._processor = processor
        self._event_bus = event_bus
        self._redis = redis
        self._currency = currency
        self._mock_confirm_enabled = mock_confirm_enabled
        self._dedupe_ttl = dedupe_ttl

    @property
    def processor(self) -> PaymentProcessor:
        return self._processor

    # =========================================================================
    # ВСПОМОГАТЕЛЬНЫЕ
    # =========================================================================

    async def _reservation(self, reservation_id: str) -> Reservation:
        reservation = await self._reservations.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Бронирование не найдено")
        return reservation

    async def _payment(self, payment_id: str) -> Payment:
        payment = await self._repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError("Платёж не найден")
        return payment

    async def _ensure_card_allowed(self, reservation_id: str, conn: Any = None) -> None:
        """Карта недоступна, если бронирование оплачено или ждёт подтверждения наличных."""
        if await self._repo.has_completed_payment(reservation_id, conn):
            raise ConflictError("Бронирование уже оплачено", code="ALREADY_PAID")
        if await self._repo.has_pending_payment(reservation_id, PaymentMethod.CASH, conn):
            raise ConflictError("По бронированию открыт платёж наличными", code="PAYMENT_EXISTS")

    async def _publish(self, event_type: str, payment: Payment) -> None:
        await self._event_bus.publish(DomainEvent(
            event_type=event_type,
            payload={
                "payment_id": payment.id,
                "reservation_id": payment.reservation_id,
                "user_id": payment.user_id,
                "amount": payment.amount,
                "method": str(payment.payment_method),
                "status": str(payment.status),
            },
        ))

    # =========================================================================
    # НАЛИЧНЫЕ
    # =========================================================================

    async def open_cash_payment(
        self,
        principal: Principal,
        reservation_id: str,
        notes: str | None = None,
    ) -> Payment:
        """
        Создаёт PENDING-платёж наличными на сумму бронирования.

        Raises:
            NotFoundError: бронирование не найдено
            ForbiddenError: не владелец и не назначенный мойщик
            InvalidStateError: бронирование отменено
            ConflictError: уже есть PENDING или COMPLETED платёж
        """
        principal.require(Capability.OPEN_CASH_PAYMENT)

        reservation = await self._reservation(reservation_id)
        if principal.user_id not in (reservation.user_id, reservation.washer_id):
            raise ForbiddenError("Платёж может открыть только клиент или назначенный мойщик")
        if reservation.status == ReservationStatus.CANCELLED:
            raise InvalidStateError("Нельзя оплатить отменённое бронирование")

        async with self._db.transaction() as conn:
            await self._repo.lock_reservation(reservation.id, conn)
            if await self._repo.has_open_payment(reservation.id, conn):
                raise ConflictError("По бронированию уже есть платёж", code="PAYMENT_EXISTS")
            payment = await self._repo.create(
                reservation_id=reservation.id,
                user_id=reservation.user_id,
                amount=reservation.total_amount,
                method=PaymentMethod.CASH,
                notes=notes,
                conn=conn,
            )

        await log_info(f"Открыт платёж наличными {payment.id} по бронированию {reservation.id}")
        await self._publish(EventTypes.PAYMENT_CREATED, payment)
        return payment

    async def confirm_cash(self, principal: Principal, payment_id: str) -> Payment:
        """
        PENDING -> COMPLETED для платежа наличными.

        Raises:
            NotFoundError: платёж не найден
            ValidationError: платёж не наличными
            ForbiddenError: не назначенный мойщик и не администратор
            InvalidStateError: платёж не в статусе PENDING
        """
        principal.require(Capability.CONFIRM_CASH)

        payment = await self._payment(payment_id)
        if payment.payment_method != PaymentMethod.CASH:
            raise ValidationError("Подтвердить можно только платёж наличными")

        if not principal.is_admin:
            reservation = await self._reservation(payment.reservation_id)
            if reservation.washer_id != principal.user_id:
                raise ForbiddenError("Подтвердить может только назначенный мойщик")

        if payment.status != PaymentStatus.PENDING:
            raise InvalidStateError(f"Платёж уже в статусе {payment.status}")

        async with self._db.transaction() as conn:
            updated = await self._repo.transition(
                payment.id,
                (PaymentStatus.PENDING,),
                PaymentStatus.COMPLETED,
                transaction_id=f"cash_{_timestamp_ms()}",
                conn=conn,
            )
        if updated is None:
            raise InvalidStateError("Платёж уже обработан")

        await log_info(f"Платёж наличными {updated.id} подтверждён")
        await self._publish(EventTypes.PAYMENT_COMPLETED, updated)
        return updated

    # =========================================================================
    # КАРТА
    # =========================================================================

    async def create_intent(self, principal: Principal, reservation_id: str) -> PaymentIntentResult:
        """
        Создаёт намерение у провайдера и PENDING-платёж по карте.

        Raises:
            NotFoundError: бронирование не найдено
            ForbiddenError: не владелец
            InvalidStateError: бронирование отменено
            ConflictError: бронирование оплачено или открыт платёж наличными
            ExternalProcessorError: провайдер отклонил запрос
        """
        principal.require(Capability.CREATE_CARD_INTENT)

        reservation = await self._reservation(reservation_id)
        if reservation.user_id != principal.user_id:
            raise ForbiddenError("Оплатить может только владелец бронирования")
        if reservation.status == ReservationStatus.CANCELLED:
            raise InvalidStateError("Нельзя оплатить отменённое бронирование")
        await self._ensure_card_allowed(reservation.id)

        intent = await self._processor.create_intent(
            reservation.total_amount,
            self._currency,
            {"reservation_id": reservation.id, "user_id": principal.user_id},
        )

        async with self._db.transaction() as conn:
            await self._repo.lock_reservation(reservation.id, conn)
            await self._ensure_card_allowed(reservation.id, conn)
            payment = await self._repo.create(
                reservation_id=reservation.id,
                user_id=principal.user_id,
                amount=reservation.total_amount,
                method=PaymentMethod.CARD,
                processor_reference=intent.reference,
                conn=conn,
            )

        await log_info(
            f"Создано намерение {intent.reference} ({self._processor.name}) "
            f"для бронирования {reservation.id}"
        )
        await self._publish(EventTypes.PAYMENT_CREATED, payment)
        return PaymentIntentResult(payment=payment, client_secret=intent.client_secret, is_mock=intent.is_mock)

    async def mock_confirm(self, principal: Principal, payment_id: str) -> Payment:
        """
        Ручное подтверждение mock-платежа по карте (режим разработки).

        Raises:
            ForbiddenError: режим выключен или чужой платёж
            ValidationError: ссылка не mock
            InvalidStateError: платёж не в статусе PENDING
        """
        if not self._mock_confirm_enabled:
            raise ForbiddenError("Подтверждение mock-платежей отключено")

        payment = await self._payment(payment_id)
        if payment.user_id != principal.user_id and not principal.is_admin:
            raise ForbiddenError("Чужой платёж")
        if not (payment.processor_reference or "").startswith(MOCK_REFERENCE_PREFIX):
            raise ValidationError("Подтвердить вручную можно только mock-платёж")
        if payment.status != PaymentStatus.PENDING:
            raise InvalidStateError(f"Платёж уже в статусе {payment.status}")

        async with self._db.transaction() as conn:
            updated = await self._repo.transition(
                payment.id,
                (PaymentStatus.PENDING,),
                PaymentStatus.COMPLETED,
                transaction_id=f"mock_txn_{_timestamp_ms()}",
                conn=conn,
            )
        if updated is None:
            raise InvalidStateError("Платёж уже обработан")

        await log_info(f"Mock-платёж {updated.id} подтверждён вручную")
        await self._publish(EventTypes.PAYMENT_COMPLETED, updated)
        return updated

    # =========================================================================
    # ВЕБХУКИ
    # =========================================================================

    async def _first_delivery(self, event_id: str) -> bool:
        """Отметка события в Redis. Ошибки Redis не блокируют обработку."""
        if self._redis is None or not event_id:
            return True
        try:
            return await self._redis.set_nx(f"webhook:{event_id}", "1", ttl=self._dedupe_ttl)
        except Exception as e:
            await log_warning(f"Не удалось проверить повтор вебхука {event_id}: {e}")
            return True

    async def _forget_delivery(self, event_id: str) -> None:
        if self._redis is None or not event_id:
            return
        try:
            await self._redis.delete(f"webhook:{event_id}")
        except Exception as e:
            await log_warning(f"Не удалось снять отметку вебхука {event_id}: {e}")

    async def _apply_event(self, event: WebhookEvent) -> Optional[Payment]:
        mapping = _WEBHOOK_TRANSITIONS.get(event.type)
        if mapping is None:
            await log_debug(f"Вебхук {event.type} пропущен")
            return None
        allowed, new_status = mapping

        if event.type == "charge.refunded":
            reference = event.data.get("payment_intent")
        else:
            reference = event.data.get("id")
        if not reference:
            await log_warning(f"Вебхук {event.type} без ссылки на платёж")
            return None

        transaction_id = None
        notes = None
        if new_status == PaymentStatus.COMPLETED:
            transaction_id = reference
        elif new_status == PaymentStatus.FAILED:
            error = event.data.get("last_payment_error") or {}
            notes = error.get("message") or DEFAULT_FAILURE_NOTE

        async with self._db.transaction() as conn:
            return await self._repo.transition_by_reference(
                reference,
                allowed,
                new_status,
                transaction_id=transaction_id,
                notes=notes,
                conn=conn,
            )

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> dict[str, Any]:
        """
        Проверяет и применяет событие провайдера.

        Returns:
            Подтверждение для провайдера

        Raises:
            ValidationError: невалидная подпись или тело
        """
        if not self._processor.accepts_webhooks:
            await log_warning("Получен вебхук, но провайдер не настроен на приём")
            return {"received": True, "warning": PROCESSOR_NOT_CONFIGURED}

        event = self._processor.parse_webhook(raw_body, signature)

        if not await self._first_delivery(event.id):
            await log_info(f"Повтор вебхука {event.id} ({event.type}), пропущен")
            return {"received": True, "duplicate": True}

        try:
            payment = await self._apply_event(event)
        except Exception:
            await self._forget_delivery(event.id)
            raise

        if payment is None:
            await log_debug(f"Вебхук {event.id} ({event.type}) не изменил платежей")
            return {"received": True}

        await log_info(f"Вебхук {event.type}: платёж {payment.id} -> {payment.status}")
        await self._publish(_STATUS_EVENTS[payment.status], payment)
        return {"received": True}

    # =========================================================================
    # ВОЗВРАТ И ЧТЕНИЕ
    # =========================================================================

    async def refund(self, principal: Principal, payment_id: str) -> Payment:
        """
        COMPLETED -> REFUNDED. Для реальной карты сначала возврат у провайдера.

        Raises:
            InvalidStateError: платёж не в статусе COMPLETED
            ExternalProcessorError: провайдер не выполнил возврат
        """
        principal.require(Capability.REFUND_PAYMENT)

        payment = await self._payment(payment_id)
        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidStateError("Вернуть можно только завершённый платёж")

        refunded_by_processor = payment.payment_method == PaymentMethod.CARD and self._processor.is_real_reference(
            payment.processor_reference
        )
        if refunded_by_processor:
            await self._processor.refund(payment.processor_reference)

        async with self._db.transaction() as conn:
            updated = await self._repo.transition(
                payment.id,
                (PaymentStatus.COMPLETED,),
                PaymentStatus.REFUNDED,
                conn=conn,
            )
        if updated is None:
            current = await self._payment(payment.id)
            # Вебхук charge.refunded мог применить этот же возврат раньше
            if refunded_by_processor and current.status == PaymentStatus.REFUNDED:
                await log_info(f"Платёж {current.id} уже отмечен возвращённым вебхуком")
                return current
            raise InvalidStateError("Платёж уже изменён")

        await log_info(f"Платёж {updated.id} возвращён")
        await self._publish(EventTypes.PAYMENT_REFUNDED, updated)
        return updated

    async def get(self, principal: Principal, payment_id: str) -> Payment:
        """Детали платежа: плательщику или администратору."""
        payment = await self._payment(payment_id)
        if not principal.is_admin and payment.user_id != principal.user_id:
            raise ForbiddenError("Нет доступа к платежу")
        return payment

    async def get_for_reservation(self, principal: Principal, reservation_id: str) -> list[Payment]:
        reservation = await self._reservation(reservation_id)
        if not principal.is_admin and principal.user_id not in (reservation.user_id, reservation.washer_id):
            raise ForbiddenError("Нет доступа к платежам бронирования")
        return await self._repo.list_by_reservation(reservation.id)

    async def stats(self, principal: Principal) -> PaymentStats:
        principal.require(Capability.VIEW_PAYMENT_STATS)
        return await self._repo.get_stats()
