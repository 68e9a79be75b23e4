# src/services/api/routes/washers.py
"""
Мойщики: доступность, геопозиция и публичная сводка.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.core.users.models import User, WasherLocation, WasherStats
from src.core.users.service import UserService
from src.services.api.dependencies import CurrentPrincipal, get_user_service

router = APIRouter(prefix="/washers", tags=["Washers"])

Service = Annotated[UserService, Depends(get_user_service)]


# === REQUEST MODELS ===

class AvailabilityRequest(BaseModel):
    """Запрос смены доступности мойщика."""
    is_available: bool


class LocationRequest(BaseModel):
    """Текущая геопозиция мойщика."""
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


@router.put("/availability", response_model=User)
async def set_availability(payload: AvailabilityRequest, principal: CurrentPrincipal, service: Service) -> User:
    return await service.set_availability(principal, payload.is_available)


@router.put("/location", response_model=WasherLocation)
async def update_location(payload: LocationRequest, principal: CurrentPrincipal, service: Service) -> WasherLocation:
    return await service.update_location(principal, payload.latitude, payload.longitude)


@router.get("/{washer_id}/stats", response_model=WasherStats)
async def washer_stats(washer_id: str, principal: CurrentPrincipal, service: Service) -> WasherStats:
    return await service.get_washer_stats(washer_id)
