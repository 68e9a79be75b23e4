# src/core/reservations/__init__.py
"""
Домен бронирований.
Модели, конечный автомат статусов, репозиторий и сервис заказов на мойку.
"""

from src.core.reservations.models import Reservation, ReservationCreateDTO, ReservationUpdateDTO
from src.core.reservations.state_machine import ReservationStateMachine
from src.core.reservations.repository import CatalogRepository, ReservationRepository
from src.core.reservations.service import ReservationService

__all__ = [
    "Reservation",
    "ReservationCreateDTO",
    "ReservationUpdateDTO",
    "ReservationStateMachine",
    "CatalogRepository",
    "ReservationRepository",
    "ReservationService",
]
