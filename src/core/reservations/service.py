# src/core/reservations/service.py
"""
Сервис бронирований.

Жизненный цикл заказа на мойку: создание, редактирование, захват мойщиком,
начало и завершение работы, отмена, ETA. Каждый переход — один guarded UPDATE
внутри транзакции; уведомления и realtime-события уходят после commit.
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from asyncpg import Connection

from src.common.constants import NotificationType, RealtimeEvent, ReservationStatus, UserRole
from src.common.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.common.logger import log_info
from src.common.permissions import Capability, Principal
from src.core.notifications.models import Notification
from src.core.notifications.service import NotificationService
from src.core.reservations.models import (
    AvailableJob,
    Reservation,
    ReservationCreateDTO,
    ReservationStats,
    ReservationUpdateDTO,
    ServiceItem,
)
from src.core.reservations.repository import CatalogRepository, ReservationRepository
from src.core.reservations.state_machine import ReservationStateMachine
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import DomainEvent, EventBus, EventTypes
from src.infra.realtime_publisher import RealtimePublisher

# Коды конфликтов при захвате заказа
JOB_TAKEN = "JOB_TAKEN"
JOB_UNAVAILABLE = "JOB_UNAVAILABLE"

_REQUIRED_FIELDS = ("vehicle_id", "service_id", "scheduled_date", "scheduled_time")


class ReservationService:
    """Сервис бронирований (Reservation Ledger)."""

    def __init__(
        self,
        db: DatabaseManager,
        repository: ReservationRepository,
        catalog: CatalogRepository,
        users: UserRepository,
        notifications: NotificationService,
        publisher: RealtimePublisher,
        event_bus: EventBus,
    ) -> None:
        self._db = db
        self._repo = repository
        self._catalog = catalog
        self._users = users
        self._notifications = notifications
        self._publisher = publisher
        self._event_bus = event_bus

    # =========================================================================
    # ВСПОМОГАТЕЛЬНЫЕ
    # =========================================================================

    async def _load(self, reservation_id: str, conn: Connection | None = None) -> Reservation:
        reservation = await self._repo.get_by_id(reservation_id, conn)
        if reservation is None:
            raise NotFoundError("Бронирование не найдено")
        return reservation

    async def _active_service(self, service_id: str) -> ServiceItem:
        service = await self._catalog.get_service(service_id)
        if service is None:
            raise NotFoundError("Услуга не найдена")
        if not service.is_active:
            raise ValidationError("Услуга недоступна для заказа")
        return service

    async def _owned_vehicle(self, vehicle_id: str, owner_id: str) -> None:
        vehicle = await self._catalog.get_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Автомобиль не найден")
        if vehicle.user_id != owner_id:
            raise ForbiddenError("Автомобиль принадлежит другому пользователю")

    async def _classify_worker_failure(
        self,
        reservation_id: str,
        washer_id: str,
        conn: Connection,
        action: str,
    ) -> DomainError:
        """
        Причина, по которой guarded UPDATE мойщика не затронул строк.
        """
        current = await self._repo.get_by_id(reservation_id, conn)
        if current is None:
            return NotFoundError("Бронирование не найдено")
        if current.washer_id != washer_id:
            return ForbiddenError("Заказ назначен другому мойщику")
        return InvalidStateError(f"Нельзя {action} заказ в статусе {current.status}")

    async def _after_transition(
        self,
        reservation: Reservation,
        event_type: str,
        *notifications: Notification | None,
    ) -> None:
        """Доставка после commit: уведомления, статус в группу заказа, доменное событие."""
        for notification in notifications:
            if notification is not None:
                await self._notifications.push(notification)

        await self._publisher.to_reservation(
            reservation.id,
            RealtimeEvent.RESERVATION_STATUS,
            {
                "reservation_id": reservation.id,
                "status": str(reservation.status),
                "washer_id": reservation.washer_id,
            },
        )
        await self._event_bus.publish(DomainEvent(
            event_type=event_type,
            payload={
                "reservation_id": reservation.id,
                "user_id": reservation.user_id,
                "washer_id": reservation.washer_id,
                "status": str(reservation.status),
            },
        ))

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get(self, reservation_id: str, principal: Principal) -> Reservation:
        """
        Бронирование видно владельцу, назначенному мойщику и администратору.
        Мойщику также виден свободный заказ.
        """
        reservation = await self._load(reservation_id)
        if principal.can(Capability.VIEW_ANY_RESERVATION):
            return reservation
        if reservation.user_id == principal.user_id or reservation.washer_id == principal.user_id:
            return reservation
        if (
            principal.is_washer
            and reservation.status == ReservationStatus.PENDING
            and reservation.washer_id is None
        ):
            return reservation
        raise ForbiddenError("Нет доступа к бронированию")

    async def list_for(
        self,
        principal: Principal,
        status: ReservationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Reservation]:
        """Свои бронирования клиента, назначенные заказы мойщика или все для админа."""
        if principal.can(Capability.VIEW_ANY_RESERVATION):
            return await self._repo.list_all(status, limit, offset)
        if principal.role == UserRole.WASHER:
            return await self._repo.list_by_washer(principal.user_id, status, limit)
        return await self._repo.list_by_user(principal.user_id, status, limit, offset)

    async def stats(self, principal: Principal) -> ReservationStats:
        if principal.can(Capability.VIEW_ANY_RESERVATION):
            return await self._repo.get_stats()
        if principal.role == UserRole.WASHER:
            return await self._repo.get_stats(washer_id=principal.user_id)
        return await self._repo.get_stats(user_id=principal.user_id)

    async def list_available(self, principal: Principal, limit: int = 50) -> list[AvailableJob]:
        """Лента свободных заказов."""
        principal.require(Capability.VIEW_AVAILABLE_JOBS)
        return await self._repo.list_available(limit)

    async def list_my_jobs(
        self,
        principal: Principal,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]:
        principal.require(Capability.WORK_JOB)
        return await self._repo.list_by_washer(principal.user_id, status)

    # =========================================================================
    # СОЗДАНИЕ И РЕДАКТИРОВАНИЕ
    # =========================================================================

    async def create(self, principal: Principal, payload: ReservationCreateDTO) -> Reservation:
        """
        Создаёт бронирование в статусе PENDING.
        Цена услуги фиксируется в total_amount.
        """
        principal.require(Capability.CREATE_RESERVATION)

        service = await self._active_service(payload.service_id)
        await self._owned_vehicle(payload.vehicle_id, principal.user_id)

        reservation = await self._repo.create({
            **payload.model_dump(),
            "id": str(uuid4()),
            "user_id": principal.user_id,
            "total_amount": service.price,
        })

        await log_info(f"Бронирование создано: {reservation.id} (клиент {principal.user_id})")
        await self._event_bus.publish(DomainEvent(
            event_type=EventTypes.RESERVATION_CREATED,
            payload={
                "reservation_id": reservation.id,
                "user_id": reservation.user_id,
                "service_id": reservation.service_id,
                "total_amount": reservation.total_amount,
            },
        ))
        return reservation

    async def update(
        self,
        reservation_id: str,
        principal: Principal,
        patch: ReservationUpdateDTO,
    ) -> Reservation:
        """
        Редактирует бронирование, пока оно PENDING.
        Смена услуги пересчитывает total_amount, смена автомобиля проверяет владельца.
        """
        principal.require(Capability.EDIT_RESERVATION)

        current = await self._load(reservation_id)
        if current.user_id != principal.user_id and not principal.is_admin:
            raise ForbiddenError("Редактировать может только владелец бронирования")
        if current.status not in ReservationStateMachine.EDITABLE:
            raise InvalidStateError(f"Нельзя редактировать бронирование в статусе {current.status}")

        changes = patch.changes()
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"Поле {field} не может быть пустым")

        if "service_id" in changes:
            service = await self._active_service(changes["service_id"])
            changes["total_amount"] = service.price
        if "vehicle_id" in changes:
            await self._owned_vehicle(changes["vehicle_id"], current.user_id)

        updated = await self._repo.update_pending(reservation_id, changes)
        if updated is None:
            # Статус сменился между чтением и записью
            raise InvalidStateError("Бронирование уже нельзя редактировать")

        await self._event_bus.publish(DomainEvent(
            event_type=EventTypes.RESERVATION_UPDATED,
            payload={"reservation_id": reservation_id, "fields": sorted(changes)},
        ))
        return updated

    # =========================================================================
    # ЗАХВАТ И НАЗНАЧЕНИЕ
    # =========================================================================

    async def _claim(self, reservation_id: str, washer_id: str) -> Reservation:
        async with self._db.transaction() as conn:
            reservation = await self._repo.claim(reservation_id, washer_id, conn)
            if reservation is None:
                current = await self._repo.get_by_id(reservation_id, conn)
                if current is None:
                    raise NotFoundError("Бронирование не найдено")
                if current.washer_id is not None:
                    raise ConflictError("Заказ уже взят другим мойщиком", code=JOB_TAKEN)
                raise ConflictError(
                    f"Заказ больше недоступен (статус {current.status})",
                    code=JOB_UNAVAILABLE,
                )

            notification = await self._notifications.reservation_notification(
                reservation.user_id,
                reservation.id,
                NotificationType.WASHER_ASSIGNED,
                conn=conn,
                date=f"{reservation.scheduled_date:%d.%m.%Y} {reservation.scheduled_time:%H:%M}",
            )

        await log_info(f"Заказ {reservation_id} закреплён за мойщиком {washer_id}")
        await self._after_transition(reservation, EventTypes.RESERVATION_CLAIMED, notification)
        return reservation

    async def claim(self, reservation_id: str, principal: Principal) -> Reservation:
        """
        Мойщик забирает свободный заказ.
        Проигравший гонку получает ConflictError.
        """
        principal.require(Capability.CLAIM_JOB)
        return await self._claim(reservation_id, principal.user_id)

    async def assign(self, reservation_id: str, washer_id: str, principal: Principal) -> Reservation:
        """Администратор назначает мойщика вручную (с той же защитой, что и захват)."""
        principal.require(Capability.ASSIGN_WASHER)

        washer = await self._users.get_by_id(washer_id)
        if washer is None or washer.role != UserRole.WASHER:
            raise ValidationError("Назначить можно только мойщика")

        return await self._claim(reservation_id, washer_id)

    # =========================================================================
    # РАБОТА МОЙЩИКА
    # =========================================================================

    async def start(self, reservation_id: str, principal: Principal) -> Reservation:
        """CONFIRMED -> IN_PROGRESS."""
        principal.require(Capability.WORK_JOB)

        async with self._db.transaction() as conn:
            reservation = await self._repo.start(reservation_id, principal.user_id, conn)
            if reservation is None:
                raise await self._classify_worker_failure(reservation_id, principal.user_id, conn, "начать")

            notification = await self._notifications.reservation_notification(
                reservation.user_id,
                reservation.id,
                NotificationType.SERVICE_STARTED,
                conn=conn,
            )

        await log_info(f"Мойка начата: {reservation_id}")
        await self._after_transition(reservation, EventTypes.RESERVATION_STARTED, notification)
        return reservation

    async def complete(self, reservation_id: str, principal: Principal) -> Reservation:
        """
        IN_PROGRESS -> COMPLETED.
        В той же транзакции: completed_services + 1 и уведомление клиенту.
        """
        principal.require(Capability.WORK_JOB)

        async with self._db.transaction() as conn:
            reservation = await self._repo.complete(reservation_id, principal.user_id, conn)
            if reservation is None:
                raise await self._classify_worker_failure(reservation_id, principal.user_id, conn, "завершить")

            await self._users.increment_completed_services(principal.user_id, conn)
            notification = await self._notifications.reservation_notification(
                reservation.user_id,
                reservation.id,
                NotificationType.SERVICE_COMPLETED,
                conn=conn,
            )

        await log_info(f"Мойка завершена: {reservation_id} (мойщик {principal.user_id})")
        await self._after_transition(reservation, EventTypes.RESERVATION_COMPLETED, notification)
        return reservation

    async def update_eta(
        self,
        reservation_id: str,
        principal: Principal,
        estimated_arrival: datetime,
    ) -> Reservation:
        """Мойщик сообщает время прибытия. Статус не меняется."""
        principal.require(Capability.WORK_JOB)

        async with self._db.transaction() as conn:
            reservation = await self._repo.set_eta(reservation_id, principal.user_id, estimated_arrival, conn)
            if reservation is None:
                raise await self._classify_worker_failure(
                    reservation_id, principal.user_id, conn, "обновить ETA для"
                )

            notification = await self._notifications.reservation_notification(
                reservation.user_id,
                reservation.id,
                NotificationType.WASHER_ON_WAY,
                conn=conn,
                eta=f"{estimated_arrival:%H:%M}",
            )

        await self._notifications.push(notification)
        return reservation

    # =========================================================================
    # ОТМЕНА
    # =========================================================================

    async def cancel(self, reservation_id: str, principal: Principal) -> Reservation:
        """
        Отмена из PENDING или CONFIRMED.
        Разрешена владельцу, назначенному мойщику и администратору.
        """
        principal.require(Capability.CANCEL_RESERVATION)

        current = await self._load(reservation_id)
        is_owner = current.user_id == principal.user_id
        is_assigned = current.washer_id is not None and current.washer_id == principal.user_id
        if not (is_owner or is_assigned or principal.is_admin):
            raise ForbiddenError("Отменить может владелец, назначенный мойщик или администратор")
        ReservationStateMachine.ensure_transition(current.status, ReservationStatus.CANCELLED)

        # Уведомляются все стороны заказа, кроме отменившего
        recipients = [
            user_id
            for user_id in dict.fromkeys((current.user_id, current.washer_id))
            if user_id and user_id != principal.user_id
        ]

        notifications: list[Notification] = []
        async with self._db.transaction() as conn:
            reservation = await self._repo.cancel(reservation_id, conn)
            if reservation is None:
                raise InvalidStateError("Отменить можно только ожидающее или подтверждённое бронирование")

            for user_id in recipients:
                notifications.append(await self._notifications.create(
                    user_id=user_id,
                    title="Заказ отменён",
                    message=f"Заказ на {current.scheduled_date:%d.%m.%Y} отменён",
                    type=NotificationType.INFO,
                    action_url=f"/reservations/{reservation_id}",
                    metadata={"reservation_id": reservation_id, "cancelled_by": principal.user_id},
                    conn=conn,
                ))

        await log_info(f"Бронирование {reservation_id} отменено пользователем {principal.user_id}")
        await self._after_transition(reservation, EventTypes.RESERVATION_CANCELLED, *notifications)
        return reservation
