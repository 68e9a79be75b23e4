# src/core/__init__.py
"""
Доменный слой (Core Domain).
Бизнес-логика бронирований, платежей, уведомлений, чата и оценок.
"""

from src.core.users import User, UserService
from src.core.reservations import Reservation, ReservationService, ReservationStateMachine
from src.core.payments import Payment, PaymentService
from src.core.notifications import NotificationService
from src.core.chat import ChatService
from src.core.ratings import RatingService

__all__ = [
    "User",
    "UserService",
    "Reservation",
    "ReservationService",
    "ReservationStateMachine",
    "Payment",
    "PaymentService",
    "NotificationService",
    "ChatService",
    "RatingService",
]
