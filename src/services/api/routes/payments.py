# src/services/api/routes/payments.py
"""
Платежи: наличные, намерение по карте, вебхук провайдера, возврат.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status

from src.core.payments.models import (
    CardIntentDTO,
    CashPaymentDTO,
    MockConfirmDTO,
    Payment,
    PaymentIntentResult,
    PaymentStats,
)
from src.core.payments.service import PaymentService
from src.services.api.dependencies import CurrentPrincipal, get_payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])

Service = Annotated[PaymentService, Depends(get_payment_service)]

SIGNATURE_HEADERS = ("stripe-signature", "x-signature")


@router.post("", response_model=Payment, status_code=status.HTTP_201_CREATED)
async def open_cash_payment(payload: CashPaymentDTO, principal: CurrentPrincipal, service: Service) -> Payment:
    """Открыть платёж наличными на сумму бронирования."""
    return await service.open_cash_payment(principal, payload.reservation_id, payload.notes)


@router.post("/create-intent", response_model=PaymentIntentResult, status_code=status.HTTP_201_CREATED)
async def create_intent(payload: CardIntentDTO, principal: CurrentPrincipal, service: Service) -> PaymentIntentResult:
    return await service.create_intent(principal, payload.reservation_id)


@router.post("/mock-confirm", response_model=Payment)
async def mock_confirm(payload: MockConfirmDTO, principal: CurrentPrincipal, service: Service) -> Payment:
    """Подтверждение mock-платежа (только для тестового провайдера)."""
    return await service.mock_confirm(principal, payload.payment_id)


@router.post("/webhook")
async def payment_webhook(request: Request, service: Service) -> dict[str, Any]:
    """
    Вебхук провайдера. Тело читается сырым: подпись считается по байтам.
    """
    raw_body = await request.body()
    signature = next(
        (request.headers[name] for name in SIGNATURE_HEADERS if name in request.headers),
        None,
    )
    return await service.handle_webhook(raw_body, signature)


@router.get("/stats", response_model=PaymentStats)
async def payment_stats(principal: CurrentPrincipal, service: Service) -> PaymentStats:
    return await service.stats(principal)


@router.get("/reservation/{reservation_id}", response_model=list[Payment])
async def reservation_payments(reservation_id: str, principal: CurrentPrincipal, service: Service) -> list[Payment]:
    return await service.get_for_reservation(principal, reservation_id)


@router.get("/{payment_id}", response_model=Payment)
async def get_payment(payment_id: str, principal: CurrentPrincipal, service: Service) -> Payment:
    return await service.get(principal, payment_id)


@router.post("/{payment_id}/confirm", response_model=Payment)
async def confirm_cash(payment_id: str, principal: CurrentPrincipal, service: Service) -> Payment:
    return await service.confirm_cash(principal, payment_id)


@router.post("/{payment_id}/refund", response_model=Payment)
async def refund_payment(payment_id: str, principal: CurrentPrincipal, service: Service) -> Payment:
    return await service.refund(principal, payment_id)
