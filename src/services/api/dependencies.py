# src/services/api/dependencies.py
"""
Dependency Injection для HTTP API.

Инфраструктура передаётся в init_dependencies() из lifespan,
сервисы создаются лениво при первом запросе.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Awaitable, Callable

from fastapi import Depends, Header

from src.common.permissions import Capability, Principal
from src.common.security import decode_access_token, extract_bearer

if TYPE_CHECKING:
    from src.core.chat.service import ChatService
    from src.core.notifications.service import NotificationService
    from src.core.payments.processor import PaymentProcessor
    from src.core.payments.service import PaymentService
    from src.core.ratings.service import RatingService
    from src.core.reservations.service import ReservationService
    from src.core.users.service import UserService
    from src.infra.database import DatabaseManager
    from src.infra.event_bus import EventBus
    from src.infra.realtime_publisher import RealtimePublisher
    from src.infra.redis_client import RedisClient


# Синглтоны для инфраструктуры
_db: "DatabaseManager | None" = None
_redis: "RedisClient | None" = None
_event_bus: "EventBus | None" = None
_publisher: "RealtimePublisher | None" = None
_processor: "PaymentProcessor | None" = None

# Синглтоны для сервисов
_reservation_service: "ReservationService | None" = None
_payment_service: "PaymentService | None" = None
_notification_service: "NotificationService | None" = None
_chat_service: "ChatService | None" = None
_rating_service: "RatingService | None" = None
_user_service: "UserService | None" = None


async def init_dependencies(
    db: "DatabaseManager",
    redis: "RedisClient",
    event_bus: "EventBus",
    publisher: "RealtimePublisher | None" = None,
    processor: "PaymentProcessor | None" = None,
) -> None:
    """Инициализировать зависимости при старте приложения."""
    global _db, _redis, _event_bus, _publisher, _processor
    _db = db
    _redis = redis
    _event_bus = event_bus

    if publisher is None:
        from src.infra.realtime_publisher import RealtimePublisher
        publisher = RealtimePublisher(redis)
    _publisher = publisher

    if processor is None:
        from src.config import settings
        from src.core.payments.processor import build_payment_processor
        processor = build_payment_processor(settings.payments)
    _processor = processor


def get_db() -> "DatabaseManager":
    """Получить менеджер базы данных."""
    if _db is None:
        raise RuntimeError("База данных не инициализирована. Вызовите init_dependencies()")
    return _db


def get_redis() -> "RedisClient":
    """Получить клиент Redis."""
    if _redis is None:
        raise RuntimeError("Redis не инициализирован. Вызовите init_dependencies()")
    return _redis


def get_event_bus() -> "EventBus":
    """Получить шину событий."""
    if _event_bus is None:
        raise RuntimeError("EventBus не инициализирован. Вызовите init_dependencies()")
    return _event_bus


def get_publisher() -> "RealtimePublisher":
    """Получить издателя realtime-событий."""
    if _publisher is None:
        raise RuntimeError("RealtimePublisher не инициализирован. Вызовите init_dependencies()")
    return _publisher


def get_payment_processor() -> "PaymentProcessor":
    """Получить платёжного провайдера."""
    if _processor is None:
        raise RuntimeError("Платёжный провайдер не инициализирован. Вызовите init_dependencies()")
    return _processor


# === СЕРВИСЫ ===

def get_notification_service() -> "NotificationService":
    """Получить сервис уведомлений."""
    global _notification_service

    if _notification_service is None:
        from src.core.notifications.repository import NotificationRepository
        from src.core.notifications.service import NotificationService
        _notification_service = NotificationService(
            repository=NotificationRepository(get_db()),
            publisher=get_publisher(),
        )

    return _notification_service


def get_reservation_service() -> "ReservationService":
    """Получить сервис бронирований."""
    global _reservation_service

    if _reservation_service is None:
        from src.core.reservations.repository import CatalogRepository, ReservationRepository
        from src.core.reservations.service import ReservationService
        from src.core.users.repository import UserRepository
        db = get_db()
        _reservation_service = ReservationService(
            db=db,
            repository=ReservationRepository(db),
            catalog=CatalogRepository(db),
            users=UserRepository(db),
            notifications=get_notification_service(),
            publisher=get_publisher(),
            event_bus=get_event_bus(),
        )

    return _reservation_service


def get_payment_service() -> "PaymentService":
    """Получить сервис платежей."""
    global _payment_service

    if _payment_service is None:
        from src.config import settings
        from src.core.payments.repository import PaymentRepository
        from src.core.payments.service import PaymentService
        from src.core.reservations.repository import ReservationRepository
        db = get_db()
        _payment_service = PaymentService(
            db=db,
            repository=PaymentRepository(db),
            reservations=ReservationRepository(db),
            processor=get_payment_processor(),
            event_bus=get_event_bus(),
            redis=get_redis(),
            currency=settings.payments.CURRENCY,
            mock_confirm_enabled=settings.payments.MOCK_CONFIRM_ENABLED,
            dedupe_ttl=settings.redis.WEBHOOK_DEDUP_TTL,
        )

    return _payment_service


def get_chat_service() -> "ChatService":
    """Получить сервис чата."""
    global _chat_service

    if _chat_service is None:
        from src.core.chat.repository import MessageRepository
        from src.core.chat.service import ChatService
        from src.core.users.repository import UserRepository
        db = get_db()
        _chat_service = ChatService(
            repository=MessageRepository(db),
            user_repository=UserRepository(db),
            publisher=get_publisher(),
        )

    return _chat_service


def get_rating_service() -> "RatingService":
    """Получить сервис оценок."""
    global _rating_service

    if _rating_service is None:
        from src.core.ratings.repository import RatingRepository
        from src.core.ratings.service import RatingService
        from src.core.reservations.repository import ReservationRepository
        from src.core.users.repository import UserRepository
        db = get_db()
        _rating_service = RatingService(
            db=db,
            repository=RatingRepository(db),
            reservations=ReservationRepository(db),
            users=UserRepository(db),
            event_bus=get_event_bus(),
        )

    return _rating_service


def get_user_service() -> "UserService":
    """Получить сервис пользователей."""
    global _user_service

    if _user_service is None:
        from src.core.users.repository import UserRepository
        from src.core.users.service import UserService
        _user_service = UserService(UserRepository(get_db()))

    return _user_service


# === АУТЕНТИФИКАЦИЯ ===

async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """
    Проверяет `Authorization: Bearer <jwt>`.
    AuthenticationError превращается обработчиком ошибок в 401.
    """
    return decode_access_token(extract_bearer(authorization))


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def require_capability(capability: Capability) -> Callable[..., Awaitable[Principal]]:
    """Зависимость, проверяющая одну возможность роли."""

    async def dependency(principal: CurrentPrincipal) -> Principal:
        principal.require(capability)
        return principal

    return dependency


async def cleanup_dependencies() -> None:
    """Очистить ресурсы при остановке приложения."""
    global _reservation_service, _payment_service, _notification_service
    global _chat_service, _rating_service, _user_service, _processor, _publisher
    _reservation_service = None
    _payment_service = None
    _notification_service = None
    _chat_service = None
    _rating_service = None
    _user_service = None
    _processor = None
    _publisher = None
