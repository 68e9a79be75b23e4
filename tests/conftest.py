# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PAYMENT_PROCESSOR", "fake")
os.environ.setdefault("RABBITMQ_ENABLED", "false")

from src.common.constants import (  # noqa: E402
    NotificationType,
    UserRole,
)
from src.common.permissions import Principal  # noqa: E402
from src.core.notifications.models import Message, Notification  # noqa: E402
from src.core.payments.models import Payment  # noqa: E402
from src.core.reservations.models import Reservation, ServiceItem, Vehicle  # noqa: E402
from src.core.users.models import User  # noqa: E402


CUSTOMER_ID = "user-customer-1"
WASHER_ID = "user-washer-1"
OTHER_WASHER_ID = "user-washer-2"
ADMIN_ID = "user-admin-1"
RESERVATION_ID = "res-0001"
SERVICE_ID = "svc-basic"
VEHICLE_ID = "veh-0001"
PAYMENT_ID = "pay-0001"


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ
# =============================================================================

@pytest.fixture
def mock_conn() -> AsyncMock:
    """Соединение внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> AsyncMock:
    """Мок DatabaseManager: transaction() отдаёт mock_conn."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.health_check = AsyncMock(return_value=True)
    db.is_connected = True

    @asynccontextmanager
    async def transaction() -> AsyncGenerator[AsyncMock, None]:
        yield mock_conn

    db.transaction = MagicMock(side_effect=transaction)
    db.conn = mock_conn
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок RedisClient."""
    redis = AsyncMock()
    redis.set_nx = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.publish = AsyncMock(return_value=1)
    redis.health_check = AsyncMock(return_value=True)
    redis.is_connected = True
    return redis


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок EventBus."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=True)
    event_bus.is_connected = False
    return event_bus


@pytest.fixture
def mock_publisher() -> AsyncMock:
    """Мок RealtimePublisher."""
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value=True)
    publisher.to_user = AsyncMock(return_value=True)
    publisher.to_reservation = AsyncMock(return_value=True)
    return publisher


# =============================================================================
# ПОЛЬЗОВАТЕЛИ
# =============================================================================

@pytest.fixture
def customer() -> Principal:
    return Principal(user_id=CUSTOMER_ID, role=UserRole.CUSTOMER)


@pytest.fixture
def washer() -> Principal:
    return Principal(user_id=WASHER_ID, role=UserRole.WASHER)


@pytest.fixture
def other_washer() -> Principal:
    return Principal(user_id=OTHER_WASHER_ID, role=UserRole.WASHER)


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id=ADMIN_ID, role=UserRole.ADMIN)


@pytest.fixture
def make_user() -> Callable[..., User]:
    """Фабрика пользователей."""
    def factory(**overrides: Any) -> User:
        data: dict[str, Any] = {
            "id": WASHER_ID,
            "email": "washer@example.com",
            "name": "Иван Мойщик",
            "phone": "+49 170 0000000",
            "role": UserRole.WASHER,
            "is_available": True,
            "rating": 4.5,
            "completed_services": 10,
        }
        data.update(overrides)
        return User(**data)
    return factory


# =============================================================================
# ДАННЫЕ ДОМЕНА
# =============================================================================

@pytest.fixture
def reservation_row() -> dict[str, Any]:
    """Строка reservations.reservations в виде словаря."""
    now = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)
    return {
        "id": RESERVATION_ID,
        "user_id": CUSTOMER_ID,
        "vehicle_id": VEHICLE_ID,
        "service_id": SERVICE_ID,
        "washer_id": None,
        "status": "PENDING",
        "scheduled_date": date(2026, 5, 2),
        "scheduled_time": time(10, 30),
        "total_amount": 25.0,
        "notes": None,
        "address": "Hauptstraße 1, Berlin",
        "latitude": 52.52,
        "longitude": 13.405,
        "started_at": None,
        "completed_at": None,
        "estimated_arrival": None,
        "created_at": now,
        "updated_at": now,
        "service_name": "Базовая мойка",
        "service_duration": 30,
    }


@pytest.fixture
def make_reservation(reservation_row: dict[str, Any]) -> Callable[..., Reservation]:
    """Фабрика бронирований."""
    def factory(**overrides: Any) -> Reservation:
        return Reservation.model_validate({**reservation_row, **overrides})
    return factory


@pytest.fixture
def payment_row() -> dict[str, Any]:
    return {
        "id": PAYMENT_ID,
        "reservation_id": RESERVATION_ID,
        "user_id": CUSTOMER_ID,
        "amount": 25.0,
        "payment_method": "CASH",
        "status": "PENDING",
        "transaction_id": None,
        "processor_reference": None,
        "notes": None,
        "created_at": datetime(2026, 5, 2, 11, 0, tzinfo=timezone.utc),
        "updated_at": None,
    }


@pytest.fixture
def make_payment(payment_row: dict[str, Any]) -> Callable[..., Payment]:
    """Фабрика платежей."""
    def factory(**overrides: Any) -> Payment:
        return Payment.model_validate({**payment_row, **overrides})
    return factory


@pytest.fixture
def make_notification() -> Callable[..., Notification]:
    def factory(**overrides: Any) -> Notification:
        data: dict[str, Any] = {
            "id": "ntf-0001",
            "user_id": CUSTOMER_ID,
            "title": "Мойщик назначен",
            "message": "Ваш заказ принят мойщиком",
            "type": NotificationType.WASHER_ASSIGNED,
            "action_url": f"/reservations/{RESERVATION_ID}",
            "metadata": {"reservation_id": RESERVATION_ID},
        }
        data.update(overrides)
        return Notification(**data)
    return factory


@pytest.fixture
def make_message() -> Callable[..., Message]:
    def factory(**overrides: Any) -> Message:
        data: dict[str, Any] = {
            "id": "msg-0001",
            "sender_id": CUSTOMER_ID,
            "sender_role": UserRole.CUSTOMER,
            "receiver_id": WASHER_ID,
            "content": "Здравствуйте! Машина во дворе.",
            "created_at": datetime(2026, 5, 2, 10, 0, tzinfo=timezone.utc),
        }
        data.update(overrides)
        return Message(**data)
    return factory


@pytest.fixture
def service_item() -> ServiceItem:
    return ServiceItem(id=SERVICE_ID, name="Базовая мойка", duration=30, price=25.0)


@pytest.fixture
def vehicle() -> Vehicle:
    return Vehicle(id=VEHICLE_ID, user_id=CUSTOMER_ID, brand="VW", model="Golf", plate="b-ab 123")
