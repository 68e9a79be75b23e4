# src/services/realtime_ws/gateway.py
"""
Обработка сообщений клиентов realtime-шлюза и ретрансляция событий из Redis.

Клиент -> сервер: {"event": "...", ...}
    send_message {receiver_id, content}
    join_reservation {reservation_id}
    leave_reservation {reservation_id}
    location_update {reservation_id, lat, lng}
    ping
Сервер -> клиент: {"event": "...", "data": {...}}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from src.common.constants import RealtimeEvent, reservation_room
from src.common.errors import DomainError, ForbiddenError, NotFoundError, ValidationError
from src.common.logger import log_debug, log_error
from src.common.permissions import Capability
from src.core.chat.service import ChatService
from src.core.reservations.repository import ReservationRepository
from src.infra.realtime_publisher import RealtimePublisher
from src.services.realtime_ws.connection_manager import ConnectionInfo, ConnectionManager


def envelope(event: RealtimeEvent | str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"event": str(event), "data": data or {}}


def _coordinate(value: Any, low: float, high: float, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Некорректная координата {name}")
    if not low <= number <= high:
        raise ValidationError(f"Координата {name} вне диапазона")
    return number


class RealtimeGateway:
    """Маршрутизация событий между сокетами, сервисами и Redis."""

    def __init__(
        self,
        manager: ConnectionManager,
        chat: ChatService,
        reservations: ReservationRepository,
        publisher: RealtimePublisher,
    ) -> None:
        self.manager = manager
        self._chat = chat
        self._reservations = reservations
        self._publisher = publisher

    async def relay(self, room: str, payload: dict[str, Any]) -> int:
        """Сообщение из Redis -> локальные соединения группы."""
        return await self.manager.broadcast(room, payload)

    async def send_error(self, conn: ConnectionInfo, code: str, message: str) -> None:
        await self.manager.send(conn.connection_id, envelope(RealtimeEvent.ERROR, {"code": code, "message": message}))

    async def handle(self, conn: ConnectionInfo, data: Any) -> None:
        """
        Обрабатывает одно сообщение клиента.
        Доменные ошибки возвращаются клиенту событием error.
        """
        if not isinstance(data, dict):
            await self.send_error(conn, "INVALID_MESSAGE", "Ожидался JSON-объект")
            return

        event = data.get("event")
        try:
            match event:
                case RealtimeEvent.PING:
                    await self.manager.send(conn.connection_id, envelope(RealtimeEvent.PONG))
                case RealtimeEvent.SEND_MESSAGE:
                    await self._send_message(conn, data)
                case RealtimeEvent.JOIN_RESERVATION:
                    await self._join_reservation(conn, data)
                case RealtimeEvent.LEAVE_RESERVATION:
                    self._leave_reservation(conn, data)
                case RealtimeEvent.LOCATION_UPDATE:
                    await self._location_update(conn, data)
                case _:
                    await self.send_error(conn, "UNKNOWN_EVENT", f"Неизвестное событие: {event}")
        except DomainError as e:
            await self.send_error(conn, e.code, e.message)
        except Exception as e:
            await log_error(f"WS: ошибка обработки {event} от {conn.user_id}: {e}", exc_info=True)
            await self.send_error(conn, "INTERNAL_ERROR", "Внутренняя ошибка сервера")

    # =========================================================================
    # СОБЫТИЯ КЛИЕНТА
    # =========================================================================

    async def _send_message(self, conn: ConnectionInfo, data: dict[str, Any]) -> None:
        # Получателю сообщение уходит через Redis, отправителю — напрямую в это соединение
        message = await self._chat.send_message(conn.principal, data.get("receiver_id"), data.get("content"))
        await self.manager.send(
            conn.connection_id,
            envelope(RealtimeEvent.NEW_MESSAGE, {**message.model_dump(mode="json"), "own": True}),
        )

    async def _join_reservation(self, conn: ConnectionInfo, data: dict[str, Any]) -> None:
        reservation_id = data.get("reservation_id")
        if not reservation_id:
            raise ValidationError("Не указан reservation_id")

        reservation = await self._reservations.get_by_id(str(reservation_id))
        if reservation is None:
            raise NotFoundError("Бронирование не найдено")

        principal = conn.principal
        if not principal.can(Capability.VIEW_ANY_RESERVATION) and principal.user_id not in (
            reservation.user_id,
            reservation.washer_id,
        ):
            raise ForbiddenError("Нет доступа к отслеживанию бронирования")

        self.manager.join(conn.connection_id, reservation_room(reservation.id))
        await self.manager.send(
            conn.connection_id,
            envelope(RealtimeEvent.RESERVATION_STATUS, {
                "reservation_id": reservation.id,
                "status": str(reservation.status),
                "washer_id": reservation.washer_id,
                "estimated_arrival": (
                    reservation.estimated_arrival.isoformat() if reservation.estimated_arrival else None
                ),
            }),
        )
        await log_debug(f"WS {conn.user_id} отслеживает {reservation.id}")

    def _leave_reservation(self, conn: ConnectionInfo, data: dict[str, Any]) -> None:
        reservation_id = data.get("reservation_id")
        if reservation_id:
            self.manager.leave(conn.connection_id, reservation_room(str(reservation_id)))

    async def _location_update(self, conn: ConnectionInfo, data: dict[str, Any]) -> None:
        conn.principal.require(Capability.SHARE_LOCATION)

        reservation_id = str(data.get("reservation_id") or "")
        if not self.manager.is_member(conn.connection_id, reservation_room(reservation_id)):
            raise ForbiddenError("Сначала подключитесь к бронированию (join_reservation)")

        lat = _coordinate(data.get("lat"), -90.0, 90.0, "lat")
        lng = _coordinate(data.get("lng"), -180.0, 180.0, "lng")

        await self._publisher.to_reservation(
            reservation_id,
            RealtimeEvent.WASHER_LOCATION,
            {
                "reservation_id": reservation_id,
                "washer_id": conn.user_id,
                "lat": lat,
                "lng": lng,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
