# src/services/realtime_ws/app.py
"""
FastAPI приложение для Realtime WebSocket Gateway.

WebSocket endpoints:
- /ws?token=<jwt> — единый канал (или заголовок Authorization: Bearer)

REST endpoints:
- GET /health — проверка здоровья
- GET /stats — статистика соединений
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect

from src.common.errors import AuthenticationError
from src.common.logger import log_info, log_warning, setup_logging
from src.common.security import decode_access_token, extract_bearer
from src.config import settings
from src.services.realtime_ws.connection_manager import ConnectionManager
from src.services.realtime_ws.gateway import RealtimeGateway
from src.services.realtime_ws.redis_subscriber import RedisSubscriber
from src.shared.models.common import HealthStatus

SERVICE_NAME = "wash_hub_realtime_ws"

# Код закрытия при невалидном токене
WS_UNAUTHORIZED = 4401


# === LIFESPAN ===

async def _build_gateway(manager: ConnectionManager) -> RealtimeGateway:
    """Подключает инфраструктуру и собирает шлюз."""
    from src.core.chat.repository import MessageRepository
    from src.core.chat.service import ChatService
    from src.core.reservations.repository import ReservationRepository
    from src.core.users.repository import UserRepository
    from src.infra.database import get_db, init_db
    from src.infra.realtime_publisher import RealtimePublisher
    from src.infra.redis_client import get_redis, init_redis

    await init_db(apply_schema=False)
    await init_redis()

    db = get_db()
    publisher = RealtimePublisher(get_redis())
    chat = ChatService(MessageRepository(db), UserRepository(db), publisher)
    return RealtimeGateway(manager, chat, ReservationRepository(db), publisher)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    # Startup
    setup_logging()
    subscriber: RedisSubscriber | None = None
    owns_infrastructure = app.state.gateway is None

    if owns_infrastructure:
        from src.infra.redis_client import get_redis

        app.state.gateway = await _build_gateway(ConnectionManager())
        subscriber = RedisSubscriber(
            get_redis(),
            settings.realtime.REALTIME_CHANNEL_PREFIX,
            app.state.gateway.relay,
        )
        await subscriber.start()

    app.state.manager = app.state.gateway.manager
    await log_info(f"{SERVICE_NAME} запущен")

    yield

    # Shutdown
    if subscriber is not None:
        await subscriber.stop()
    if owns_infrastructure:
        from src.infra.database import close_db
        from src.infra.redis_client import close_redis

        await close_redis()
        await close_db()
        app.state.gateway = None
    await log_info(f"{SERVICE_NAME} остановлен")


# === APP ===

def create_app(gateway: RealtimeGateway | None = None) -> FastAPI:
    """
    Создаёт приложение шлюза.

    Args:
        gateway: Готовый шлюз (тесты); по умолчанию собирается в lifespan
    """
    app = FastAPI(
        title="Realtime WebSocket Gateway",
        description="WebSocket: чат, уведомления, статусы бронирований и геопозиция мойщика.",
        version=settings.system.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.gateway = gateway

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check() -> HealthStatus:
        """Проверка здоровья сервиса."""
        return HealthStatus(
            service=SERVICE_NAME,
            status="healthy",
            version=settings.system.VERSION,
        )

    @app.get("/stats", tags=["Stats"])
    async def get_stats() -> dict[str, Any]:
        """Получить статистику соединений."""
        return app.state.manager.get_stats()

    @app.websocket("/ws")
    async def websocket_endpoint(
        websocket: WebSocket,
        token: str | None = Query(default=None),
    ) -> None:
        """
        Единый WebSocket-канал.
        Без валидного токена соединение закрывается кодом 4401 до accept().
        """
        raw_token = token or extract_bearer(websocket.headers.get("authorization"))
        try:
            principal = decode_access_token(raw_token)
        except AuthenticationError as e:
            await log_warning(f"WS отклонён: {e.message}")
            await websocket.close(code=WS_UNAUTHORIZED)
            return

        realtime: RealtimeGateway = websocket.app.state.gateway
        conn = await realtime.manager.connect(websocket, principal)

        try:
            while True:
                text = await websocket.receive_text()
                try:
                    data = json.loads(text)
                except json.JSONDecodeError:
                    await realtime.send_error(conn, "INVALID_JSON", "Невалидный JSON")
                    continue
                await realtime.handle(conn, data)

        except WebSocketDisconnect:
            pass
        finally:
            await realtime.manager.disconnect(conn.connection_id)

    return app


app = create_app()
