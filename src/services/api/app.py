# src/services/api/app.py
"""
FastAPI приложение HTTP API.

Роутеры:
- /api/v1/reservations — бронирования
- /api/v1/jobs — лента и работа мойщика
- /api/v1/payments — платежи и вебхук провайдера
- /api/v1/chat, /api/v1/notifications — сообщения и уведомления
- /api/v1/ratings, /api/v1/washers — оценки и доступность мойщиков
- /health — проверка здоровья
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.common.logger import log_info, setup_logging
from src.config import settings
from src.services.api.dependencies import cleanup_dependencies, init_dependencies
from src.services.api.errors import register_exception_handlers
from src.services.api.routes import api_router
from src.shared.models.common import HealthStatus

SERVICE_NAME = "wash_hub_api"


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    # Startup
    from src.infra.database import close_db, get_db, init_db
    from src.infra.event_bus import close_event_bus, get_event_bus, init_event_bus
    from src.infra.redis_client import close_redis, get_redis, init_redis

    setup_logging()
    await init_db()
    await init_redis()
    await init_event_bus()

    await init_dependencies(get_db(), get_redis(), get_event_bus())
    await log_info(f"{SERVICE_NAME} запущен")

    yield

    # Shutdown
    await cleanup_dependencies()
    await close_event_bus()
    await close_redis()
    await close_db()
    await log_info(f"{SERVICE_NAME} остановлен")


# === APP ===

def create_app() -> FastAPI:
    """Создаёт приложение API."""
    app = FastAPI(
        title=f"{settings.system.PROJECT_NAME} API",
        description="Бронирование мойки, захват заказов мойщиками, платежи и уведомления.",
        version=settings.system.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check() -> HealthStatus:
        """Проверка здоровья сервиса и зависимостей."""
        from src.infra.database import get_db
        from src.infra.redis_client import get_redis

        db = get_db()
        redis = get_redis()
        dependencies = {
            "postgres": "healthy" if db.is_connected and await db.health_check() else "unhealthy",
            "redis": "healthy" if redis.is_connected and await redis.health_check() else "unhealthy",
        }
        overall = "healthy" if all(v == "healthy" for v in dependencies.values()) else "degraded"
        return HealthStatus(
            service=SERVICE_NAME,
            status=overall,
            version=settings.system.VERSION,
            dependencies=dependencies,
        )

    return app


app = create_app()
