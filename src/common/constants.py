# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """Роли пользователей."""
    CUSTOMER = "CLIENT"
    WASHER = "WASHER"
    ADMIN = "ADMIN"

    def __str__(self) -> str:
        return self.value


class ReservationStatus(str, Enum):
    """Статусы бронирования (заказа на мойку)."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:
        return self.value


class PaymentStatus(str, Enum):
    """Статусы оплаты."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    def __str__(self) -> str:
        return self.value


class PaymentMethod(str, Enum):
    """Способы оплаты."""
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"

    def __str__(self) -> str:
        return self.value


class NotificationType(str, Enum):
    """Типы уведомлений."""
    INFO = "INFO"
    WASHER_ASSIGNED = "WASHER_ASSIGNED"
    WASHER_ON_WAY = "WASHER_ON_WAY"
    SERVICE_STARTED = "SERVICE_STARTED"
    SERVICE_COMPLETED = "SERVICE_COMPLETED"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"
    PROMOTION = "PROMOTION"

    def __str__(self) -> str:
        return self.value


class RealtimeEvent(str, Enum):
    """Имена событий realtime-канала."""
    # Сервер -> клиент
    NEW_MESSAGE = "new_message"
    NOTIFICATION = "notification"
    WASHER_LOCATION = "washer_location"
    RESERVATION_STATUS = "reservation_status"
    ERROR = "error"
    PONG = "pong"
    # Клиент -> сервер
    SEND_MESSAGE = "send_message"
    JOIN_RESERVATION = "join_reservation"
    LEAVE_RESERVATION = "leave_reservation"
    LOCATION_UPDATE = "location_update"
    PING = "ping"

    def __str__(self) -> str:
        return self.value


def user_room(user_id: str) -> str:
    """Имя персональной группы пользователя."""
    return f"room:{user_id}"


def reservation_room(reservation_id: str) -> str:
    """Имя группы бронирования (трекинг мойщика)."""
    return f"reservation:{reservation_id}"
