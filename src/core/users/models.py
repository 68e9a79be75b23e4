# src/core/users/models.py
"""
Модели данных пользователей.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.common.constants import UserRole


class User(BaseModel):
    """Модель пользователя (клиент, мойщик или администратор)."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="UUID пользователя")
    email: str = Field(..., description="Email")
    name: str = Field(..., description="Имя")
    phone: Optional[str] = Field(None, description="Номер телефона")
    role: UserRole = Field(UserRole.CUSTOMER, description="Роль пользователя")
    is_active: bool = Field(True, description="Активен ли аккаунт")

    # Проекция мойщика
    is_available: bool = Field(False, description="Принимает ли мойщик заказы")
    rating: float = Field(5.0, ge=0.0, le=5.0, description="Средняя оценка")
    completed_services: int = Field(0, ge=0, description="Количество выполненных моек")
    latitude: Optional[float] = Field(None, description="Последняя широта мойщика")
    longitude: Optional[float] = Field(None, description="Последняя долгота мойщика")
    location_updated_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_washer(self) -> bool:
        return self.role == UserRole.WASHER


class WasherStats(BaseModel):
    """Публичная сводка по мойщику."""
    washer_id: str
    name: str
    rating: float
    completed_services: int
    is_available: bool


class WasherLocation(BaseModel):
    """Последняя сохранённая геопозиция мойщика."""
    washer_id: str
    latitude: float
    longitude: float
    updated_at: Optional[datetime] = None
