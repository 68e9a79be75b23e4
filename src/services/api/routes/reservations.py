# src/services/api/routes/reservations.py
"""
Бронирования: создание, просмотр, редактирование, отмена, назначение мойщика.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.common.constants import ReservationStatus
from src.core.reservations.models import (
    AssignWasherDTO,
    Reservation,
    ReservationCreateDTO,
    ReservationStats,
    ReservationUpdateDTO,
)
from src.core.reservations.service import ReservationService
from src.services.api.dependencies import CurrentPrincipal, get_reservation_service

router = APIRouter(prefix="/reservations", tags=["Reservations"])

Service = Annotated[ReservationService, Depends(get_reservation_service)]


@router.post("", response_model=Reservation, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreateDTO,
    principal: CurrentPrincipal,
    service: Service,
) -> Reservation:
    """Создать бронирование (PENDING, цена услуги фиксируется)."""
    return await service.create(principal, payload)


@router.get("", response_model=list[Reservation])
async def list_reservations(
    principal: CurrentPrincipal,
    service: Service,
    status_filter: Annotated[ReservationStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Reservation]:
    """Свои бронирования; мойщику — назначенные, администратору — все."""
    return await service.list_for(principal, status_filter, limit, offset)


@router.get("/stats", response_model=ReservationStats)
async def reservation_stats(principal: CurrentPrincipal, service: Service) -> ReservationStats:
    return await service.stats(principal)


@router.get("/{reservation_id}", response_model=Reservation)
async def get_reservation(reservation_id: str, principal: CurrentPrincipal, service: Service) -> Reservation:
    return await service.get(reservation_id, principal)


@router.put("/{reservation_id}", response_model=Reservation)
async def update_reservation(
    reservation_id: str,
    payload: ReservationUpdateDTO,
    principal: CurrentPrincipal,
    service: Service,
) -> Reservation:
    """Редактирование разрешено только в статусе PENDING."""
    return await service.update(reservation_id, principal, payload)


@router.post("/{reservation_id}/cancel", response_model=Reservation)
async def cancel_reservation(reservation_id: str, principal: CurrentPrincipal, service: Service) -> Reservation:
    return await service.cancel(reservation_id, principal)


@router.post("/{reservation_id}/assign", response_model=Reservation)
async def assign_washer(
    reservation_id: str,
    payload: AssignWasherDTO,
    principal: CurrentPrincipal,
    service: Service,
) -> Reservation:
    """Ручное назначение мойщика администратором."""
    return await service.assign(reservation_id, payload.washer_id, principal)
