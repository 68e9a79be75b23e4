# src/core/ratings/models.py
"""
Модели оценок мойщиков.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Rating(BaseModel):
    """Оценка выполненного заказа. Неизменяема, одна на бронирование."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    reservation_id: str
    user_id: str
    washer_id: str
    stars: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class RatingCreateDTO(BaseModel):
    """DTO для оценки заказа клиентом."""
    reservation_id: str
    stars: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class WasherRatings(BaseModel):
    """Оценки мойщика со средним значением."""
    ratings: list[Rating]
    average: float
    total: int
