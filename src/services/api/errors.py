# src/services/api/errors.py
"""
Преобразование доменных исключений в HTTP-ответы ErrorResponse.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.common.errors import DomainError, InternalError
from src.common.logger import log_error, log_warning
from src.shared.models.common import ErrorResponse

SANITIZED_MESSAGE = "Внутренняя ошибка сервера"


def _is_production() -> bool:
    from src.config import settings
    return settings.system.is_production


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error_code=code, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        await log_error(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    else:
        await log_warning(f"{request.method} {request.url.path}: {exc.code} {exc.message}")

    message = exc.message
    if exc.status_code >= 500 and isinstance(exc, InternalError) and _is_production():
        message = SANITIZED_MESSAGE
    return error_response(exc.status_code, exc.code, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(f"Необработанная ошибка {request.method} {request.url.path}: {exc}", exc_info=True)
    message = SANITIZED_MESSAGE if _is_production() else str(exc) or SANITIZED_MESSAGE
    return error_response(InternalError.status_code, InternalError.default_code, message)


def register_exception_handlers(app: FastAPI) -> None:
    """Регистрирует обработчики DomainError и непредвиденных исключений."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
