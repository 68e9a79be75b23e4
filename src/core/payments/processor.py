# src/core/payments/processor.py
"""
Платёжные провайдеры.

PaymentProcessor — общий интерфейс; StripePaymentProcessor работает через
SDK stripe, FakePaymentProcessor детерминирован и подписывает вебхуки HMAC-SHA256
(локальная разработка и тесты). Выбор делает build_payment_processor().
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import itertools
import json
import time
from abc import ABC, abstractmethod
from typing import Any

import stripe

from src.common.errors import ExternalProcessorError, ValidationError
from src.common.logger import log_error
from src.core.payments.models import ProcessorIntent, WebhookEvent

MOCK_REFERENCE_PREFIX = "pi_mock_"

_PLACEHOLDER_KEYS = frozenset({"sk_test_placeholder", "sk_live_placeholder"})


def is_real_stripe_key(secret_key: str | None) -> bool:
    """Ключ похож на настоящий: не плейсхолдер и длиннее 30 символов."""
    return bool(secret_key) and secret_key not in _PLACEHOLDER_KEYS and len(secret_key) > 30


def to_minor_units(amount: float) -> int:
    """Сумма в центах."""
    return int(round(amount * 100))


def _parse_event(raw_body: bytes) -> WebhookEvent:
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Некорректное тело вебхука", code="INVALID_PAYLOAD")
    if not isinstance(payload, dict):
        raise ValidationError("Некорректное тело вебхука", code="INVALID_PAYLOAD")
    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("Некорректное поле data вебхука", code="INVALID_PAYLOAD")
    obj = data.get("object") or {}
    if not isinstance(obj, dict):
        raise ValidationError("Некорректное поле data.object вебхука", code="INVALID_PAYLOAD")
    return WebhookEvent(
        id=str(payload.get("id") or ""),
        type=str(payload.get("type") or ""),
        data=obj,
    )


class PaymentProcessor(ABC):
    """Интерфейс платёжного провайдера."""

    name: str = "abstract"
    is_mock: bool = False

    @property
    @abstractmethod
    def accepts_webhooks(self) -> bool:
        """Настроен ли приём подписанных вебхуков."""

    @abstractmethod
    async def create_intent(self, amount: float, currency: str, metadata: dict[str, Any]) -> ProcessorIntent:
        """Создаёт платёжное намерение."""

    @abstractmethod
    async def refund(self, reference: str) -> None:
        """Запрашивает возврат по ссылке провайдера."""

    @abstractmethod
    def parse_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        """
        Проверяет подпись и разбирает событие.

        Raises:
            ValidationError: подпись или тело невалидны
        """

    def is_real_reference(self, reference: str | None) -> bool:
        """Ссылка относится к реальному провайдеру (не mock)."""
        return bool(reference) and not reference.startswith(MOCK_REFERENCE_PREFIX)


class StripePaymentProcessor(PaymentProcessor):
    """Провайдер Stripe. Синхронный SDK вызывается в пуле потоков."""

    name = "stripe"
    is_mock = False

    def __init__(self, secret_key: str, webhook_secret: str | None = None) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret or None

    @property
    def accepts_webhooks(self) -> bool:
        return self._webhook_secret is not None

    async def create_intent(self, amount: float, currency: str, metadata: dict[str, Any]) -> ProcessorIntent:
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                amount=to_minor_units(amount),
                currency=currency.lower(),
                metadata={k: str(v) for k, v in metadata.items()},
                automatic_payment_methods={"enabled": True},
                api_key=self._secret_key,
            )
        except stripe.StripeError as e:
            await log_error(f"Stripe: ошибка создания PaymentIntent: {e}")
            raise ExternalProcessorError(f"Платёжный провайдер отклонил запрос: {e.user_message or e}")

        return ProcessorIntent(reference=intent.id, client_secret=intent.client_secret, is_mock=False)

    async def refund(self, reference: str) -> None:
        try:
            await asyncio.to_thread(
                stripe.Refund.create,
                payment_intent=reference,
                api_key=self._secret_key,
            )
        except stripe.StripeError as e:
            await log_error(f"Stripe: ошибка возврата {reference}: {e}")
            raise ExternalProcessorError(f"Провайдер не выполнил возврат: {e.user_message or e}")

    def parse_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        if not signature:
            raise ValidationError("Отсутствует подпись вебхука", code="INVALID_SIGNATURE")
        try:
            stripe.WebhookSignature.verify_header(
                raw_body.decode("utf-8"),
                signature,
                self._webhook_secret,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise ValidationError(f"Невалидная подпись вебхука: {e}", code="INVALID_SIGNATURE")
        return _parse_event(raw_body)


class FakePaymentProcessor(PaymentProcessor):
    """
    Детерминированный провайдер для разработки.
    Ссылки pi_mock_<ts>_<n>, вебхук подписан hex(HMAC-SHA256(secret, body)).
    """

    name = "fake"
    is_mock = True

    def __init__(self, webhook_secret: str | None = None) -> None:
        self._webhook_secret = webhook_secret or None
        self._counter = itertools.count(1)

    @property
    def accepts_webhooks(self) -> bool:
        return self._webhook_secret is not None

    async def create_intent(self, amount: float, currency: str, metadata: dict[str, Any]) -> ProcessorIntent:
        reference = f"{MOCK_REFERENCE_PREFIX}{int(time.time() * 1000)}_{next(self._counter)}"
        return ProcessorIntent(
            reference=reference,
            client_secret=f"{reference}_secret_mock",
            is_mock=True,
        )

    async def refund(self, reference: str) -> None:
        return None

    def sign(self, raw_body: bytes) -> str:
        """Подпись, которую ожидает parse_webhook."""
        if self._webhook_secret is None:
            raise RuntimeError("FAKE_WEBHOOK_SECRET не задан")
        return hmac.new(self._webhook_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()

    def parse_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        if not signature or not hmac.compare_digest(self.sign(raw_body), signature.strip()):
            raise ValidationError("Невалидная подпись вебхука", code="INVALID_SIGNATURE")
        return _parse_event(raw_body)

    def is_real_reference(self, reference: str | None) -> bool:
        return False


def build_payment_processor(config: Any) -> PaymentProcessor:
    """
    Выбирает провайдера по PAYMENT_PROCESSOR (stripe | fake | auto).
    auto выбирает Stripe, только если ключ похож на настоящий.

    Args:
        config: Секция settings.payments
    """
    mode = (config.PAYMENT_PROCESSOR or "auto").lower()
    key = config.STRIPE_SECRET_KEY

    if mode == "stripe" or (mode == "auto" and is_real_stripe_key(key)):
        if not key:
            raise ValueError("PAYMENT_PROCESSOR=stripe требует STRIPE_SECRET_KEY")
        processor: PaymentProcessor = StripePaymentProcessor(key, config.STRIPE_WEBHOOK_SECRET)
    elif mode in ("fake", "auto"):
        processor = FakePaymentProcessor(config.FAKE_WEBHOOK_SECRET)
    else:
        raise ValueError(f"Неизвестный PAYMENT_PROCESSOR: {mode}")

    return processor
