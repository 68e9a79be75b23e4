# src/common/security.py
"""
Выпуск и проверка JWT.
Один и тот же секрет используется HTTP API и realtime-шлюзом.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from src.common.constants import UserRole
from src.common.errors import AuthenticationError
from src.common.permissions import Principal


def _auth_settings() -> tuple[str, str, int]:
    from src.config import settings
    return (
        settings.auth.JWT_SECRET,
        settings.auth.JWT_ALGORITHM,
        settings.auth.JWT_EXPIRES_MINUTES,
    )


def create_access_token(
    user_id: str,
    role: UserRole | str,
    expires_delta: timedelta | None = None,
    extra: dict[str, Any] | None = None,
) -> str:
    """
    Создаёт подписанный токен доступа.

    Args:
        user_id: ID пользователя (claim sub)
        role: Роль пользователя
        expires_delta: Время жизни (по умолчанию из конфига)
        extra: Дополнительные claims
    """
    secret, algorithm, expires_minutes = _auth_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=expires_minutes))
    to_encode: dict[str, Any] = {
        **(extra or {}),
        "sub": str(user_id),
        "role": str(role),
        "exp": expire,
    }
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str | None) -> Principal:
    """
    Проверяет токен и возвращает Principal.

    Raises:
        AuthenticationError: токен отсутствует, просрочен или невалиден
    """
    if not token:
        raise AuthenticationError("Токен аутентификации не передан")

    secret, algorithm, _ = _auth_settings()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Срок действия токена истёк", code="TOKEN_EXPIRED")
    except JWTError:
        raise AuthenticationError("Невалидный токен", code="TOKEN_INVALID")

    user_id = payload.get("sub") or payload.get("id")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Неизвестная роль в токене", code="TOKEN_INVALID")

    if not user_id:
        raise AuthenticationError("В токене нет идентификатора пользователя", code="TOKEN_INVALID")

    return Principal(user_id=str(user_id), role=role)


def extract_bearer(authorization: str | None) -> str | None:
    """Достаёт токен из заголовка `Authorization: Bearer ...`."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()
