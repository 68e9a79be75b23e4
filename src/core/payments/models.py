# src/core/payments/models.py
"""
Модели платежей.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from src.common.constants import PaymentMethod, PaymentStatus


class Payment(BaseModel):
    """Платёж по бронированию."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    reservation_id: str
    user_id: str
    amount: float
    payment_method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    processor_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_mock(self) -> bool:
        return bool(self.processor_reference and self.processor_reference.startswith("pi_mock_"))


class CashPaymentDTO(BaseModel):
    """DTO регистрации оплаты наличными."""
    reservation_id: str
    notes: Optional[str] = None


class CardIntentDTO(BaseModel):
    """DTO создания платёжного намерения по карте."""
    reservation_id: str


class MockConfirmDTO(BaseModel):
    """DTO ручного подтверждения mock-платежа (режим разработки)."""
    payment_id: str


class PaymentIntentResult(BaseModel):
    """Результат create-intent."""
    payment: Payment
    client_secret: str
    is_mock: bool


class PaymentStats(BaseModel):
    """Сводка по платежам."""
    pending: int = 0
    completed: int = 0
    failed: int = 0
    refunded: int = 0
    total_revenue: float = 0.0
    cash_completed: int = 0
    card_completed: int = 0


@dataclass(frozen=True)
class ProcessorIntent:
    """Ответ провайдера на создание намерения."""
    reference: str
    client_secret: str
    is_mock: bool = False


@dataclass
class WebhookEvent:
    """Проверенное событие провайдера."""
    id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)
