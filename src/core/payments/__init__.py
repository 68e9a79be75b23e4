# src/core/payments/__init__.py
"""
Домен платежей: модели, провайдеры, репозиторий и сервис сверки.
"""

from src.core.payments.models import (
    CardIntentDTO,
    CashPaymentDTO,
    MockConfirmDTO,
    Payment,
    PaymentIntentResult,
    PaymentStats,
)
from src.core.payments.processor import (
    FakePaymentProcessor,
    PaymentProcessor,
    StripePaymentProcessor,
    build_payment_processor,
    is_real_stripe_key,
)
from src.core.payments.repository import PaymentRepository
from src.core.payments.service import PaymentService

__all__ = [
    "CardIntentDTO",
    "CashPaymentDTO",
    "MockConfirmDTO",
    "Payment",
    "PaymentIntentResult",
    "PaymentStats",
    "FakePaymentProcessor",
    "PaymentProcessor",
    "StripePaymentProcessor",
    "build_payment_processor",
    "is_real_stripe_key",
    "PaymentRepository",
    "PaymentService",
]
