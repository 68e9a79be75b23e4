# src/core/reservations/models.py
"""
Модели данных бронирований и каталога.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.common.constants import ReservationStatus


class Reservation(BaseModel):
    """Модель бронирования (заказа на мойку)."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="UUID бронирования")
    user_id: str = Field(..., description="ID клиента")
    vehicle_id: str = Field(..., description="ID автомобиля")
    service_id: str = Field(..., description="ID услуги")
    washer_id: Optional[str] = Field(None, description="ID назначенного мойщика")

    status: ReservationStatus = Field(ReservationStatus.PENDING, description="Статус")

    scheduled_date: date
    scheduled_time: time
    total_amount: float = Field(..., ge=0.0, description="Цена услуги на момент бронирования")

    notes: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Поля из JOIN
    service_name: Optional[str] = None
    service_duration: Optional[int] = None


class AvailableJob(Reservation):
    """Свободный заказ в ленте мойщика (с данными автомобиля)."""
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_plate: Optional[str] = None
    vehicle_type: Optional[str] = None
    vehicle_color: Optional[str] = None


class ReservationCreateDTO(BaseModel):
    """DTO для создания бронирования."""

    vehicle_id: str
    service_id: str
    scheduled_date: date
    scheduled_time: time
    notes: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0)


class ReservationUpdateDTO(BaseModel):
    """DTO для редактирования бронирования (только в статусе PENDING)."""

    vehicle_id: Optional[str] = None
    service_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[time] = None
    notes: Optional[str] = Field(None, max_length=1000)
    address: Optional[str] = Field(None, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0)

    def changes(self) -> dict:
        """Только явно переданные поля."""
        return self.model_dump(exclude_unset=True)


class EtaUpdateDTO(BaseModel):
    """DTO для обновления времени прибытия мойщика."""
    estimated_arrival: datetime


class AssignWasherDTO(BaseModel):
    """DTO для ручного назначения мойщика администратором."""
    washer_id: str


class ReservationStats(BaseModel):
    """Количество бронирований по статусам."""
    pending: int = 0
    confirmed: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    total: int = 0


class ServiceItem(BaseModel):
    """Услуга каталога."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    duration: int
    price: float
    vehicle_type: str = "SEDAN"
    is_active: bool = True


class Vehicle(BaseModel):
    """Автомобиль клиента."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    brand: str
    model: str
    plate: str
    vehicle_type: str = "SEDAN"
    color: Optional[str] = None
    year: Optional[int] = None
    is_active: bool = True

    @field_validator("plate")
    @classmethod
    def upper_plate(cls, v: str) -> str:
        return v.upper()
