# src/shared/models/__init__.py
"""
Общие модели ответов.
"""

from src.shared.models.common import (
    CountResponse,
    ErrorResponse,
    HealthStatus,
    OkResponse,
)

__all__ = [
    "CountResponse",
    "ErrorResponse",
    "HealthStatus",
    "OkResponse",
]
