# src/services/api/routes/ratings.py
"""
Оценки выполненных заказов.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.core.ratings.models import Rating, RatingCreateDTO, WasherRatings
from src.core.ratings.service import RatingService
from src.services.api.dependencies import CurrentPrincipal, get_rating_service

router = APIRouter(prefix="/ratings", tags=["Ratings"])

Service = Annotated[RatingService, Depends(get_rating_service)]


@router.post("", response_model=Rating, status_code=status.HTTP_201_CREATED)
async def rate_reservation(payload: RatingCreateDTO, principal: CurrentPrincipal, service: Service) -> Rating:
    """Клиент оценивает завершённый заказ; рейтинг мойщика пересчитывается."""
    return await service.rate(principal, payload)


@router.get("/reservation/{reservation_id}", response_model=Rating)
async def reservation_rating(reservation_id: str, principal: CurrentPrincipal, service: Service) -> Rating:
    return await service.get_for_reservation(reservation_id)


@router.get("/washer/{washer_id}", response_model=WasherRatings)
async def washer_ratings(
    washer_id: str,
    principal: CurrentPrincipal,
    service: Service,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> WasherRatings:
    return await service.list_for_washer(washer_id, limit, offset)
