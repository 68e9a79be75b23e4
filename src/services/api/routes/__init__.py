# src/services/api/routes/__init__.py
"""
Роутеры HTTP API (монтируются под /api/v1).
"""

from fastapi import APIRouter

from src.services.api.routes import chat, jobs, notifications, payments, ratings, reservations, washers

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(reservations.router)
api_router.include_router(jobs.router)
api_router.include_router(payments.router)
api_router.include_router(chat.router)
api_router.include_router(notifications.router)
api_router.include_router(ratings.router)
api_router.include_router(washers.router)

__all__ = ["api_router"]
