# tests/core/test_payment_service.py
"""
Тесты сервиса платежей: наличные, карта, вебхуки, возвраты.
"""

from __future__ import annotations

import json
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.common.constants import PaymentMethod, PaymentStatus, UserRole
from src.common.errors import (
    ConflictError,
    ExternalProcessorError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.common.permissions import Principal
from src.core.payments.processor import FakePaymentProcessor, StripePaymentProcessor
from src.core.payments.service import DEFAULT_FAILURE_NOTE, PROCESSOR_NOT_CONFIGURED, PaymentService
from src.infra.event_bus import EventTypes


@pytest.fixture
def repo() -> AsyncMock:
    repo = AsyncMock()
    repo.has_open_payment = AsyncMock(return_value=False)
    repo.has_completed_payment = AsyncMock(return_value=False)
    repo.has_pending_payment = AsyncMock(return_value=False)
    return repo


@pytest.fixture
def reservations(make_reservation: Callable) -> AsyncMock:
    reservations = AsyncMock()
    reservations.get_by_id = AsyncMock(
        return_value=make_reservation(status="COMPLETED", washer_id="user-washer-1")
    )
    return reservations


@pytest.fixture
def processor() -> FakePaymentProcessor:
    return FakePaymentProcessor("fake-secret")


@pytest.fixture
def service(
    mock_db: AsyncMock,
    repo: AsyncMock,
    reservations: AsyncMock,
    processor: FakePaymentProcessor,
    mock_event_bus: AsyncMock,
    mock_redis: AsyncMock,
) -> PaymentService:
    return PaymentService(
        db=mock_db,
        repository=repo,
        reservations=reservations,
        processor=processor,
        event_bus=mock_event_bus,
        redis=mock_redis,
        currency="eur",
        dedupe_ttl=3600,
    )


def _published(event_bus: AsyncMock) -> list[str]:
    return [c.args[0].event_type for c in event_bus.publish.await_args_list]


class TestCashPayments:
    """Оплата наличными."""

    @pytest.mark.asyncio
    async def test_open_cash_payment(
        self,
        service: PaymentService,
        repo: AsyncMock,
        mock_conn: AsyncMock,
        mock_event_bus: AsyncMock,
        washer: Principal,
        make_payment: Callable,
    ) -> None:
        """Сумма берётся из бронирования, платёж на клиента, строка бронирования блокируется."""
        repo.create.return_value = make_payment()

        payment = await service.open_cash_payment(washer, "res-0001", notes="Оплата на месте")

        repo.lock_reservation.assert_awaited_once_with("res-0001", mock_conn)
        kwargs = repo.create.await_args.kwargs
        assert kwargs["amount"] == 25.0
        assert kwargs["user_id"] == "user-customer-1"
        assert kwargs["method"] == PaymentMethod.CASH
        assert kwargs["conn"] is mock_conn
        assert payment.status == PaymentStatus.PENDING
        assert _published(mock_event_bus) == [EventTypes.PAYMENT_CREATED]

    @pytest.mark.asyncio
    async def test_second_open_payment_conflicts(
        self,
        service: PaymentService,
        repo: AsyncMock,
        customer: Principal,
    ) -> None:
        repo.has_open_payment.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            await service.open_cash_payment(customer, "res-0001")

        assert exc_info.value.code == "PAYMENT_EXISTS"
        repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancelled_reservation(
        self,
        service: PaymentService,
        reservations: AsyncMock,
        customer: Principal,
        make_reservation: Callable,
    ) -> None:
        reservations.get_by_id.return_value = make_reservation(status="CANCELLED")

        with pytest.raises(InvalidStateError):
            await service.open_cash_payment(customer, "res-0001")

    @pytest.mark.asyncio
    async def test_stranger_cannot_open(self, service: PaymentService, other_washer: Principal) -> None:
        with pytest.raises(ForbiddenError):
            await service.open_cash_payment(other_washer, "res-0001")

    @pytest.mark.asyncio
    async def test_missing_reservation(
        self,
        service: PaymentService,
        reservations: AsyncMock,
        customer: Principal,
    ) -> None:
        reservations.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.open_cash_payment(customer, "res-missing")

    @pytest.mark.asyncio
    async def test_confirm_cash_by_assigned_washer(
        self,
        service: PaymentService,
        repo: AsyncMock,
        mock_event_bus: AsyncMock,
        washer: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment()
        repo.transition.return_value = make_payment(status="COMPLETED", transaction_id="cash_1")

        result = await service.confirm_cash(washer, "pay-0001")

        args = repo.transition.await_args
        assert args.args[1] == (PaymentStatus.PENDING,)
        assert args.args[2] == PaymentStatus.COMPLETED
        assert args.kwargs["transaction_id"].startswith("cash_")
        assert result.status == PaymentStatus.COMPLETED
        assert _published(mock_event_bus) == [EventTypes.PAYMENT_COMPLETED]

    @pytest.mark.asyncio
    async def test_confirm_cash_by_other_washer(
        self,
        service: PaymentService,
        repo: AsyncMock,
        other_washer: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment()

        with pytest.raises(ForbiddenError):
            await service.confirm_cash(other_washer, "pay-0001")

    @pytest.mark.asyncio
    async def test_confirm_card_payment_rejected(
        self,
        service: PaymentService,
        repo: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment(payment_method="CARD")

        with pytest.raises(ValidationError):
            await service.confirm_cash(admin, "pay-0001")

    @pytest.mark.asyncio
    async def test_confirm_twice(
        self,
        service: PaymentService,
        repo: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment(status="COMPLETED")

        with pytest.raises(InvalidStateError):
            await service.confirm_cash(admin, "pay-0001")

    @pytest.mark.asyncio
    async def test_confirm_lost_race(
        self,
        service: PaymentService,
        repo: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment()
        repo.transition.return_value = None

        with pytest.raises(InvalidStateError):
            await service.confirm_cash(admin, "pay-0001")


class TestCardPayments:
    """Оплата картой."""

    @pytest.mark.asyncio
    async def test_create_intent_with_fake_processor(
        self,
        service: PaymentService,
        repo: AsyncMock,
        mock_conn: AsyncMock,
        customer: Principal,
        make_payment: Callable,
    ) -> None:
        repo.create.side_effect = lambda **kw: make_payment(
            payment_method="CARD", processor_reference=kw["processor_reference"]
        )

        result = await service.create_intent(customer, "res-0001")

        repo.lock_reservation.assert_awaited_once_with("res-0001", mock_conn)
        repo.has_pending_payment.assert_awaited_with("res-0001", PaymentMethod.CASH, mock_conn)
        assert result.is_mock is True
        assert result.payment.processor_reference.startswith("pi_mock_")
        assert result.client_secret.endswith("_secret_mock")
        assert repo.create.await_args.kwargs["method"] == PaymentMethod.CARD

    @pytest.mark.asyncio
    async def test_already_paid(self, service: PaymentService, repo: AsyncMock, customer: Principal) -> None:
        repo.has_completed_payment.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            await service.create_intent(customer, "res-0001")
        assert exc_info.value.code == "ALREADY_PAID"

    @pytest.mark.asyncio
    async def test_pending_cash_blocks_card(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        mock_event_bus: AsyncMock,
        customer: Principal,
    ) -> None:
        """Пока наличные ждут подтверждения, намерение по карте не создаётся."""
        processor = MagicMock()
        processor.create_intent = AsyncMock()
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus)
        repo.has_pending_payment.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            await service.create_intent(customer, "res-0001")

        assert exc_info.value.code == "PAYMENT_EXISTS"
        processor.create_intent.assert_not_called()
        repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_cash_opened_during_intent(
        self,
        service: PaymentService,
        repo: AsyncMock,
        customer: Principal,
    ) -> None:
        """Повторная проверка под блокировкой бронирования ловит наличные, открытые после первой."""
        repo.has_pending_payment.side_effect = [False, True]

        with pytest.raises(ConflictError) as exc_info:
            await service.create_intent(customer, "res-0001")

        assert exc_info.value.code == "PAYMENT_EXISTS"
        repo.lock_reservation.assert_awaited_once()
        repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_owner(self, service: PaymentService, washer: Principal) -> None:
        with pytest.raises(ForbiddenError):
            await service.create_intent(washer, "res-0001")

    @pytest.mark.asyncio
    async def test_processor_error_creates_nothing(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        mock_event_bus: AsyncMock,
        customer: Principal,
    ) -> None:
        processor = MagicMock()
        processor.create_intent = AsyncMock(side_effect=ExternalProcessorError("card_declined"))
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus)

        with pytest.raises(ExternalProcessorError):
            await service.create_intent(customer, "res-0001")
        repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_mock_confirm(
        self,
        service: PaymentService,
        repo: AsyncMock,
        customer: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment(payment_method="CARD", processor_reference="pi_mock_1_1")
        repo.transition.return_value = make_payment(
            payment_method="CARD", processor_reference="pi_mock_1_1", status="COMPLETED"
        )

        result = await service.mock_confirm(customer, "pay-0001")

        assert result.status == PaymentStatus.COMPLETED
        assert repo.transition.await_args.kwargs["transaction_id"].startswith("mock_txn_")

    @pytest.mark.asyncio
    async def test_mock_confirm_real_reference(
        self,
        service: PaymentService,
        repo: AsyncMock,
        customer: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment(payment_method="CARD", processor_reference="pi_3Real")

        with pytest.raises(ValidationError):
            await service.mock_confirm(customer, "pay-0001")

    @pytest.mark.asyncio
    async def test_mock_confirm_disabled(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        processor: FakePaymentProcessor,
        mock_event_bus: AsyncMock,
        customer: Principal,
    ) -> None:
        service = PaymentService(
            mock_db, repo, reservations, processor, mock_event_bus, mock_confirm_enabled=False
        )

        with pytest.raises(ForbiddenError):
            await service.mock_confirm(customer, "pay-0001")


class TestWebhooks:
    """Сверка через вебхуки."""

    @staticmethod
    def _body(event_type: str, obj: dict[str, Any], event_id: str = "evt_1") -> bytes:
        return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()

    @pytest.mark.asyncio
    async def test_succeeded(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
        mock_redis: AsyncMock,
        mock_event_bus: AsyncMock,
        make_payment: Callable,
    ) -> None:
        body = self._body("payment_intent.succeeded", {"id": "pi_mock_1_1"})
        repo.transition_by_reference.return_value = make_payment(
            payment_method="CARD", status="COMPLETED", processor_reference="pi_mock_1_1"
        )

        result = await service.handle_webhook(body, processor.sign(body))

        assert result == {"received": True}
        args = repo.transition_by_reference.await_args
        assert args.args[0] == "pi_mock_1_1"
        assert args.args[1] == (PaymentStatus.PENDING, PaymentStatus.FAILED)
        assert args.args[2] == PaymentStatus.COMPLETED
        assert args.kwargs["transaction_id"] == "pi_mock_1_1"
        mock_redis.set_nx.assert_awaited_once_with("webhook:evt_1", "1", ttl=3600)
        assert _published(mock_event_bus) == [EventTypes.PAYMENT_COMPLETED]

    @pytest.mark.asyncio
    async def test_failed_uses_error_message(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
        make_payment: Callable,
    ) -> None:
        body = self._body(
            "payment_intent.payment_failed",
            {"id": "pi_mock_1_1", "last_payment_error": {"message": "Your card was declined."}},
        )
        repo.transition_by_reference.return_value = make_payment(payment_method="CARD", status="FAILED")

        await service.handle_webhook(body, processor.sign(body))

        args = repo.transition_by_reference.await_args
        assert args.args[1] == (PaymentStatus.PENDING,)
        assert args.kwargs["notes"] == "Your card was declined."

    @pytest.mark.asyncio
    async def test_failed_default_note(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
    ) -> None:
        body = self._body("payment_intent.payment_failed", {"id": "pi_mock_1_1"})
        repo.transition_by_reference.return_value = None

        await service.handle_webhook(body, processor.sign(body))

        assert repo.transition_by_reference.await_args.kwargs["notes"] == DEFAULT_FAILURE_NOTE

    @pytest.mark.asyncio
    async def test_refunded_matches_payment_intent(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
    ) -> None:
        body = self._body("charge.refunded", {"id": "ch_1", "payment_intent": "pi_mock_1_1"})
        repo.transition_by_reference.return_value = None

        await service.handle_webhook(body, processor.sign(body))

        args = repo.transition_by_reference.await_args
        assert args.args[0] == "pi_mock_1_1"
        assert args.args[1] == (PaymentStatus.COMPLETED,)
        assert args.args[2] == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_redelivery_is_noop(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
        mock_redis: AsyncMock,
        mock_event_bus: AsyncMock,
    ) -> None:
        body = self._body("payment_intent.succeeded", {"id": "pi_mock_1_1"})
        mock_redis.set_nx.return_value = False

        result = await service.handle_webhook(body, processor.sign(body))

        assert result == {"received": True, "duplicate": True}
        repo.transition_by_reference.assert_not_called()
        mock_event_bus.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_guard_blocks_replay_without_redis(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        processor: FakePaymentProcessor,
        mock_event_bus: AsyncMock,
    ) -> None:
        """Без Redis повтор доходит до БД, но guarded UPDATE ничего не меняет."""
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus, redis=None)
        body = self._body("payment_intent.succeeded", {"id": "pi_mock_1_1"})
        repo.transition_by_reference.return_value = None

        result = await service.handle_webhook(body, processor.sign(body))

        assert result == {"received": True}
        mock_event_bus.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_error_does_not_block(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
        mock_redis: AsyncMock,
    ) -> None:
        body = self._body("payment_intent.succeeded", {"id": "pi_mock_1_1"})
        mock_redis.set_nx.side_effect = ConnectionError("redis down")
        repo.transition_by_reference.return_value = None

        assert await service.handle_webhook(body, processor.sign(body)) == {"received": True}
        repo.transition_by_reference.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_db_error_releases_marker(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
        mock_redis: AsyncMock,
    ) -> None:
        """После сбоя провайдер сможет доставить событие повторно."""
        body = self._body("payment_intent.succeeded", {"id": "pi_mock_1_1"})
        repo.transition_by_reference.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            await service.handle_webhook(body, processor.sign(body))

        mock_redis.delete.assert_awaited_once_with("webhook:evt_1")

    @pytest.mark.asyncio
    async def test_invalid_signature(self, service: PaymentService, repo: AsyncMock) -> None:
        body = self._body("payment_intent.succeeded", {"id": "pi_mock_1_1"})

        with pytest.raises(ValidationError) as exc_info:
            await service.handle_webhook(body, "deadbeef")

        assert exc_info.value.status_code == 400
        repo.transition_by_reference.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(
        self,
        service: PaymentService,
        processor: FakePaymentProcessor,
        repo: AsyncMock,
    ) -> None:
        body = self._body("customer.created", {"id": "cus_1"})

        assert await service.handle_webhook(body, processor.sign(body)) == {"received": True}
        repo.transition_by_reference.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_processor_acknowledges(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        mock_event_bus: AsyncMock,
    ) -> None:
        processor = StripePaymentProcessor("sk_test_" + "x" * 40, webhook_secret=None)
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus)

        result = await service.handle_webhook(b"{}", None)

        assert result == {"received": True, "warning": PROCESSOR_NOT_CONFIGURED}
        repo.transition_by_reference.assert_not_called()


class TestRefund:
    """Возвраты."""

    @pytest.mark.asyncio
    async def test_refund_mock_card_skips_processor(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        mock_event_bus: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        processor = FakePaymentProcessor("fake-secret")
        processor.refund = AsyncMock()
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus)
        repo.get_by_id.return_value = make_payment(
            payment_method="CARD", status="COMPLETED", processor_reference="pi_mock_1_1"
        )
        repo.transition.return_value = make_payment(payment_method="CARD", status="REFUNDED")

        result = await service.refund(admin, "pay-0001")

        processor.refund.assert_not_called()
        assert result.status == PaymentStatus.REFUNDED
        assert _published(mock_event_bus) == [EventTypes.PAYMENT_REFUNDED]

    @pytest.mark.asyncio
    async def test_refund_real_card_calls_processor_first(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        mock_event_bus: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        processor = StripePaymentProcessor("sk_test_" + "x" * 40, "whsec")
        processor.refund = AsyncMock(side_effect=ExternalProcessorError("refund failed"))
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus)
        repo.get_by_id.return_value = make_payment(
            payment_method="CARD", status="COMPLETED", processor_reference="pi_3Real"
        )

        with pytest.raises(ExternalProcessorError):
            await service.refund(admin, "pay-0001")

        processor.refund.assert_awaited_once_with("pi_3Real")
        repo.transition.assert_not_called()

    @pytest.mark.asyncio
    async def test_refund_after_webhook_applied_it(
        self,
        mock_db: AsyncMock,
        repo: AsyncMock,
        reservations: AsyncMock,
        mock_event_bus: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        """charge.refunded пришёл раньше локального UPDATE: возврат успешен, событие не дублируется."""
        row = {"status": "COMPLETED"}

        def current_payment(*args: Any, **kwargs: Any):
            return make_payment(payment_method="CARD", status=row["status"], processor_reference="pi_3Real")

        async def refund_via_webhook(reference: str) -> None:
            row["status"] = "REFUNDED"

        processor = StripePaymentProcessor("sk_test_" + "x" * 40, "whsec")
        processor.refund = AsyncMock(side_effect=refund_via_webhook)
        service = PaymentService(mock_db, repo, reservations, processor, mock_event_bus)
        repo.get_by_id.side_effect = current_payment
        repo.transition.return_value = None

        result = await service.refund(admin, "pay-0001")

        assert result.status == PaymentStatus.REFUNDED
        processor.refund.assert_awaited_once_with("pi_3Real")
        mock_event_bus.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_refund_lost_race_without_processor(
        self,
        service: PaymentService,
        repo: AsyncMock,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.side_effect = [
            make_payment(status="COMPLETED"),
            make_payment(status="REFUNDED"),
        ]
        repo.transition.return_value = None

        with pytest.raises(InvalidStateError):
            await service.refund(admin, "pay-0001")

    @pytest.mark.parametrize("status", ["PENDING", "FAILED", "REFUNDED"])
    @pytest.mark.asyncio
    async def test_refund_requires_completed(
        self,
        service: PaymentService,
        repo: AsyncMock,
        admin: Principal,
        make_payment: Callable,
        status: str,
    ) -> None:
        repo.get_by_id.return_value = make_payment(status=status)

        with pytest.raises(InvalidStateError):
            await service.refund(admin, "pay-0001")
        repo.transition.assert_not_called()

    @pytest.mark.asyncio
    async def test_refund_admin_only(self, service: PaymentService, customer: Principal) -> None:
        with pytest.raises(ForbiddenError):
            await service.refund(customer, "pay-0001")


class TestReads:
    """Чтение платежей."""

    @pytest.mark.asyncio
    async def test_payments_visible_to_parties(
        self,
        service: PaymentService,
        repo: AsyncMock,
        customer: Principal,
        washer: Principal,
    ) -> None:
        await service.get_for_reservation(customer, "res-0001")
        await service.get_for_reservation(washer, "res-0001")

        assert repo.list_by_reservation.await_count == 2

    @pytest.mark.asyncio
    async def test_payments_hidden_from_strangers(self, service: PaymentService) -> None:
        stranger = Principal(user_id="user-customer-9", role=UserRole.CUSTOMER)

        with pytest.raises(ForbiddenError):
            await service.get_for_reservation(stranger, "res-0001")

    @pytest.mark.asyncio
    async def test_payment_detail_for_payer_and_admin(
        self,
        service: PaymentService,
        repo: AsyncMock,
        customer: Principal,
        admin: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment()

        assert (await service.get(customer, "pay-0001")).id == "pay-0001"
        assert (await service.get(admin, "pay-0001")).id == "pay-0001"

    @pytest.mark.asyncio
    async def test_payment_detail_hidden_from_others(
        self,
        service: PaymentService,
        repo: AsyncMock,
        washer: Principal,
        make_payment: Callable,
    ) -> None:
        repo.get_by_id.return_value = make_payment()

        with pytest.raises(ForbiddenError):
            await service.get(washer, "pay-0001")

    @pytest.mark.asyncio
    async def test_payment_detail_missing(self, service: PaymentService, repo: AsyncMock, admin: Principal) -> None:
        repo.get_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.get(admin, "pay-0404")

    @pytest.mark.asyncio
    async def test_stats_admin_only(self, service: PaymentService, washer: Principal) -> None:
        with pytest.raises(ForbiddenError):
            await service.stats(washer)
