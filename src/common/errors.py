# src/common/errors.py
"""
Доменные исключения.

Каждый класс несёт HTTP-статус и машинный код ошибки,
API-слой превращает их в ErrorResponse.
"""

from __future__ import annotations


class DomainError(Exception):
    """Базовое доменное исключение."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Некорректные или отсутствующие входные данные."""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    """Отсутствует или невалиден токен доступа."""
    status_code = 401
    default_code = "UNAUTHORIZED"


class ForbiddenError(DomainError):
    """Роль или владелец не совпадают."""
    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(DomainError):
    """Сущность не найдена."""
    status_code = 404
    default_code = "NOT_FOUND"


class InvalidStateError(DomainError):
    """Операция недопустима в текущем статусе."""
    status_code = 409
    default_code = "INVALID_STATE"


class ConflictError(DomainError):
    """Проигрыш гонки (например, заказ уже взят другим мойщиком)."""
    status_code = 409
    default_code = "CONFLICT"


class ExternalProcessorError(DomainError):
    """Платёжный провайдер отклонил запрос или недоступен."""
    status_code = 502
    default_code = "PROCESSOR_ERROR"


class InternalError(DomainError):
    """Непредвиденная ошибка (БД и т.п.)."""
    status_code = 500
    default_code = "INTERNAL_ERROR"
