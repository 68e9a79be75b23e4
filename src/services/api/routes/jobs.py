# src/services/api/routes/jobs.py
"""
Лента заказов мойщика: свободные заказы, захват, начало, завершение, ETA.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.common.constants import ReservationStatus
from src.common.permissions import Capability, Principal
from src.core.reservations.models import AvailableJob, EtaUpdateDTO, Reservation
from src.core.reservations.service import ReservationService
from src.services.api.dependencies import CurrentPrincipal, get_reservation_service, require_capability

router = APIRouter(prefix="/jobs", tags=["Jobs"])

Service = Annotated[ReservationService, Depends(get_reservation_service)]
Washer = Annotated[Principal, Depends(require_capability(Capability.WORK_JOB))]


@router.get("/available", response_model=list[AvailableJob])
async def available_jobs(
    principal: Annotated[Principal, Depends(require_capability(Capability.VIEW_AVAILABLE_JOBS))],
    service: Service,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> list[AvailableJob]:
    """Свободные заказы, ближайшие по расписанию первыми."""
    return await service.list_available(principal, limit)


@router.get("/mine", response_model=list[Reservation])
async def my_jobs(
    principal: Washer,
    service: Service,
    status_filter: Annotated[ReservationStatus | None, Query(alias="status")] = None,
) -> list[Reservation]:
    return await service.list_my_jobs(principal, status_filter)


@router.post("/{reservation_id}/accept", response_model=Reservation)
async def accept_job(reservation_id: str, principal: CurrentPrincipal, service: Service) -> Reservation:
    """
    Захват заказа. При проигрыше гонки — 409 с кодом JOB_TAKEN или JOB_UNAVAILABLE.
    """
    return await service.claim(reservation_id, principal)


@router.post("/{reservation_id}/start", response_model=Reservation)
async def start_job(reservation_id: str, principal: Washer, service: Service) -> Reservation:
    return await service.start(reservation_id, principal)


@router.post("/{reservation_id}/complete", response_model=Reservation)
async def complete_job(reservation_id: str, principal: Washer, service: Service) -> Reservation:
    return await service.complete(reservation_id, principal)


@router.put("/{reservation_id}/eta", response_model=Reservation)
async def update_eta(
    reservation_id: str,
    payload: EtaUpdateDTO,
    principal: Washer,
    service: Service,
) -> Reservation:
    return await service.update_eta(reservation_id, principal, payload.estimated_arrival)
