"""Reservation lifecycle: booking, confirmation, cancellation, arrival"""

import secrets
import string
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.clock import Clock
from app.config import Settings, settings as default_settings
from app.errors import (
    ReservationError,
    ValidationError,
    NotFoundError,
    ConflictError,
    IllegalTransitionError,
    InternalError,
)
from app.models.customer import Customer
from app.models.reservation import Reservation, ReservationTable, ReservationStatus
from app.models.table import Table
from app.schemas.reservation import ReservationCreate
from app.schemas.table import TableSuggestion
from app.services import notifications
from app.services.arrival import ArrivalBridge, OrderCreator
from app.services.availability import AvailabilityIndex
from app.services.capacity import CapacityEstimator
from app.services.locking import KeyedLockRegistry, customer_key, lock_registry, reservation_key, table_key
from app.services.notifications import NotificationSink
from app.services.suggestion import TableSuggestionEngine, combine_tables, rank_tables
from app.services.unit_of_work import UnitOfWork

logger = structlog.get_logger()

NUMBER_ALPHABET = string.ascii_uppercase + string.digits
EXPIRED_REASON = "Not confirmed before reservation time"


class ReservationService:
    """Owns reservation records and every status change they go through.

    Create and Arrive run under the table locks of the registry plus row locks
    in the database, so two bookings can never hold the same table for
    overlapping windows. Confirm, Cancel and NoShow lock the reservation only.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        notifier: Optional[NotificationSink] = None,
        order_creator: Optional[OrderCreator] = None,
        locks: Optional[KeyedLockRegistry] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.uow = UnitOfWork(db)
        self.clock = clock or Clock(self.config.restaurant_timezone)
        self.notifier = notifier or notifications.get_notifier()
        self.order_creator = order_creator or OrderCreator()
        self.locks = locks or lock_registry
        self.availability = AvailabilityIndex(self.uow.reservations, self.config.service_duration_minutes)
        self.suggestions = TableSuggestionEngine(self.uow.tables, self.availability)
        self.capacity = CapacityEstimator(self.uow.tables, self.uow.reservations)

    def validate_time(self, reservation_time: datetime) -> bool:
        """At least the lead time ahead of now, and within booking hours"""
        reservation_time = self.clock.localize(reservation_time)
        earliest = self.clock.now() + timedelta(minutes=self.config.min_lead_minutes)
        if reservation_time < earliest:
            return False
        return self.config.opening_hour <= reservation_time.hour <= self.config.closing_hour

    def validate_guests(self, number_of_guests: int) -> None:
        if not 1 <= number_of_guests <= self.config.max_guests:
            raise ValidationError(
                f"Number of guests must be between 1 and {self.config.max_guests}",
                code="INVALID_GUESTS",
            )

    async def suggest_tables(
        self,
        number_of_guests: int,
        reservation_time: datetime,
        preferred_area: Optional[str] = None,
    ) -> List[TableSuggestion]:
        return await self.suggestions.suggest(
            number_of_guests, self.clock.localize(reservation_time), preferred_area
        )

    async def is_table_available(self, table_id: int, reservation_time: datetime) -> bool:
        return await self.availability.is_available(table_id, self.clock.localize(reservation_time))

    async def current_capacity_percent(self) -> float:
        return await self.capacity.current_percent(self.clock.now())

    async def create(self, data: ReservationCreate, user_id: Optional[int] = None) -> Reservation:
        """Validate, claim tables and persist a Pending reservation in one transaction"""
        self.validate_guests(data.number_of_guests)

        name = (data.customer_name or "").strip()
        phone = (data.customer_phone or "").strip()
        if data.customer_id is None and not (name and phone):
            raise ValidationError(
                "Provide customer_id or both customer_name and customer_phone",
                code="MISSING_CUSTOMER_INFO",
            )

        reservation_time = self.clock.localize(data.reservation_time)
        if not self.validate_time(reservation_time):
            raise ValidationError(
                "Reservations must be made at least "
                f"{self.config.min_lead_minutes} minutes ahead, between "
                f"{self.config.opening_hour:02d}:00 and {self.config.closing_hour:02d}:59",
                code="INVALID_RESERVATION_TIME",
            )

        if data.table_ids:
            lock_ids = set(data.table_ids)
        else:
            # Auto-select may join tables, so every active table is a candidate
            lock_ids = {table.id for table in await self.uow.tables.list()}

        keys = [table_key(table_id) for table_id in lock_ids]
        if data.customer_id is None:
            # Phone is unique, so first-time bookings for one guest must not interleave
            keys.append(customer_key(phone))

        async with self.locks.hold(keys):
            async with self.uow:
                try:
                    now = self.clock.now()
                    customer = await self._resolve_customer(data, name, phone, now)
                    tables = await self._claim_tables(data, reservation_time, lock_ids)

                    reservation = Reservation(
                        reservation_number=await self._new_reservation_number(reservation_time),
                        customer_id=customer.id,
                        customer_name=name or customer.full_name,
                        customer_phone=phone or customer.phone,
                        customer_email=data.customer_email or customer.email,
                        number_of_guests=data.number_of_guests,
                        reservation_time=reservation_time,
                        duration_minutes=self.config.service_duration_minutes,
                        preferred_area=data.preferred_area,
                        status=ReservationStatus.PENDING,
                        notes=data.notes,
                        created_by=user_id,
                        created_at=now,
                        updated_at=now,
                    )
                    reservation.assignments = [
                        ReservationTable(table_id=table.id, sort_order=index)
                        for index, table in enumerate(tables)
                    ]
                    self.uow.reservations.add(reservation)
                    await self.uow.flush()

                    self.uow.record(
                        "reservation.created",
                        "reservation",
                        reservation.id,
                        actor_id=user_id,
                        actor_type=None if user_id else "customer",
                        data={"to": ReservationStatus.PENDING.value, "table_ids": reservation.table_ids},
                        at=now,
                    )
                    await self.uow.commit()
                except SQLAlchemyError as e:
                    logger.error("Failed to store reservation", error=str(e))
                    raise InternalError("The reservation could not be saved. Please try again.") from e

        logger.info(
            "Reservation created",
            reservation_id=reservation.id,
            reservation_number=reservation.reservation_number,
            guests=reservation.number_of_guests,
            table_ids=reservation.table_ids,
        )
        return reservation

    async def _resolve_customer(
        self,
        data: ReservationCreate,
        name: str,
        phone: str,
        now: datetime,
    ) -> Customer:
        if data.customer_id is not None:
            customer = await self.uow.customers.get(data.customer_id)
            if not customer:
                raise NotFoundError("Customer not found", code="CUSTOMER_NOT_FOUND")
            return customer
        return await self.uow.customers.find_or_create(name, phone, data.customer_email, now)

    async def _claim_tables(
        self,
        data: ReservationCreate,
        reservation_time: datetime,
        lock_ids: set,
    ) -> List[Table]:
        """Pick the tables for a new reservation; caller holds their locks"""
        locked = await self.uow.tables.get_many(lock_ids, for_update=True)

        if data.table_ids:
            if len(locked) != len(lock_ids) or not all(table.is_active for table in locked):
                raise NotFoundError("One or more selected tables do not exist", code="TABLE_NOT_FOUND")
            if sum(table.capacity for table in locked) < data.number_of_guests:
                raise ValidationError(
                    "The selected tables cannot seat the whole party",
                    code="INSUFFICIENT_CAPACITY",
                )
            blocked = await self.availability.blocked(lock_ids, reservation_time)
            if blocked:
                logger.info("Selected tables taken", table_ids=sorted(blocked))
                raise ConflictError(
                    "The selected tables are no longer available. Please pick again.",
                    code="NO_AVAILABILITY",
                )
            return sorted(locked, key=lambda table: table.table_number)

        free = await self.suggestions.free_tables(reservation_time)
        fitting = rank_tables(
            [table for table in free if table.capacity >= data.number_of_guests],
            data.preferred_area,
        )
        if fitting:
            return fitting[:1]

        joined = combine_tables(free, data.number_of_guests, data.preferred_area)
        if joined:
            return joined

        raise ConflictError(
            f"No table is available for {data.number_of_guests} guests at "
            f"{reservation_time:%Y-%m-%d %H:%M}",
            code="NO_AVAILABILITY",
        )

    async def _new_reservation_number(self, reservation_time: datetime) -> str:
        for _ in range(10):
            suffix = "".join(secrets.choice(NUMBER_ALPHABET) for _ in range(4))
            number = f"RES{reservation_time:%Y%m%d}{suffix}"
            if not await self.uow.reservations.number_exists(number):
                return number
        raise InternalError("Could not allocate a reservation number")

    async def _locked_reservation(self, reservation_id: int) -> Reservation:
        reservation = await self.uow.reservations.get(reservation_id, for_update=True)
        if not reservation:
            raise NotFoundError("Reservation not found")
        return reservation

    def _require(
        self,
        reservation: Reservation,
        target: ReservationStatus,
        code: str,
        message: str,
    ) -> ReservationStatus:
        current = reservation.status
        if not current.can_transition_to(target):
            logger.info(
                "Illegal reservation transition",
                reservation_id=reservation.id,
                status=current.value,
                target=target.value,
            )
            raise IllegalTransitionError(f"{message} (status is {current.value})", code=code)
        return current

    def _notify(self, kind: str, reservation: Reservation) -> None:
        try:
            self.notifier.notify(kind, reservation)
        except Exception as e:
            logger.error(
                "Reservation notification failed",
                reservation_id=reservation.id,
                kind=kind,
                error=str(e),
            )

    async def confirm(self, reservation_id: int, staff_id: Optional[int]) -> Reservation:
        """Pending -> Confirmed; confirming twice is a no-op"""
        async with self.locks.hold([reservation_key(reservation_id)]):
            async with self.uow:
                reservation = await self._locked_reservation(reservation_id)
                if reservation.status == ReservationStatus.CONFIRMED:
                    await self.uow.commit()
                    return reservation

                previous = self._require(
                    reservation,
                    ReservationStatus.CONFIRMED,
                    "CANNOT_CONFIRM",
                    "This reservation cannot be confirmed",
                )
                now = self.clock.now()
                reservation.status = ReservationStatus.CONFIRMED
                reservation.confirmed_by = staff_id
                reservation.confirmed_at = now
                reservation.updated_at = now
                self.uow.record(
                    "reservation.confirmed",
                    "reservation",
                    reservation.id,
                    actor_id=staff_id,
                    data={"from": previous.value, "to": reservation.status.value},
                    at=now,
                )
                await self.uow.commit()

        logger.info("Reservation confirmed", reservation_id=reservation_id, staff_id=staff_id)
        self._notify(notifications.CONFIRMED, reservation)
        return reservation

    async def cancel(
        self,
        reservation_id: int,
        staff_id: Optional[int],
        reason: Optional[str] = None,
        actor_type: Optional[str] = None,
    ) -> Reservation:
        """Pending/Confirmed -> Cancelled; its tables are free again immediately"""
        async with self.locks.hold([reservation_key(reservation_id)]):
            async with self.uow:
                reservation = await self._locked_reservation(reservation_id)
                previous = self._require(
                    reservation,
                    ReservationStatus.CANCELLED,
                    "CANNOT_CANCEL",
                    "This reservation cannot be cancelled",
                )
                now = self.clock.now()
                reservation.status = ReservationStatus.CANCELLED
                reservation.cancel_reason = reason
                reservation.cancelled_by = staff_id
                reservation.cancelled_at = now
                reservation.updated_at = now
                self.uow.record(
                    "reservation.cancelled",
                    "reservation",
                    reservation.id,
                    actor_id=staff_id,
                    actor_type=actor_type,
                    data={"from": previous.value, "to": reservation.status.value, "reason": reason},
                    at=now,
                )
                await self.uow.commit()

        logger.info(
            "Reservation cancelled",
            reservation_id=reservation_id,
            staff_id=staff_id,
            table_ids=reservation.table_ids,
        )
        self._notify(notifications.CANCELLED, reservation)
        return reservation

    async def can_customer_cancel(self, reservation_number: str, phone: str) -> bool:
        """Customers may cancel their own booking until shortly before it starts"""
        reservation = await self.uow.reservations.get_by_number(reservation_number)
        if not reservation or not phone:
            return False
        if (reservation.customer_phone or "").strip() != phone.strip():
            return False
        if not reservation.status.can_transition_to(ReservationStatus.CANCELLED):
            return False
        cutoff = reservation.reservation_time - timedelta(minutes=self.config.customer_cancel_cutoff_minutes)
        return self.clock.now() <= cutoff

    async def customer_cancel(
        self,
        reservation_number: str,
        phone: str,
        reason: Optional[str] = None,
    ) -> Reservation:
        reservation = await self.uow.reservations.get_by_number(reservation_number)
        if not reservation:
            raise NotFoundError("Reservation not found")
        if not await self.can_customer_cancel(reservation_number, phone):
            raise IllegalTransitionError(
                "This reservation can no longer be cancelled online. Please call the restaurant.",
                code="CANNOT_CANCEL",
            )
        return await self.cancel(reservation.id, None, reason, actor_type="customer")

    async def arrive(self, reservation_id: int, staff_id: Optional[int]) -> int:
        """Confirmed -> Arrived, occupying its tables and opening one order.

        Returns the new order id. All effects commit together or not at all.
        """
        peek = await self.uow.reservations.get(reservation_id)
        if not peek:
            raise NotFoundError("Reservation not found")
        keys = [reservation_key(reservation_id)] + [table_key(table_id) for table_id in peek.table_ids]

        async with self.locks.hold(keys):
            async with self.uow:
                reservation = await self._locked_reservation(reservation_id)
                previous = self._require(
                    reservation,
                    ReservationStatus.ARRIVED,
                    "CANNOT_ARRIVE",
                    "Only confirmed reservations can be checked in",
                )
                tables = await self.uow.tables.get_many(reservation.table_ids, for_update=True)
                now = self.clock.now()
                try:
                    order = await ArrivalBridge(self.uow.db, self.order_creator).apply(
                        reservation, tables, staff_id, now
                    )
                    order_id = order.id
                    self.uow.record(
                        "reservation.arrived",
                        "reservation",
                        reservation_id,
                        actor_id=staff_id,
                        data={"from": previous.value, "to": ReservationStatus.ARRIVED.value, "order_id": order_id},
                        at=now,
                    )
                    await self.uow.commit()
                except ReservationError:
                    raise
                except Exception as e:
                    logger.error(
                        "Arrival rolled back",
                        reservation_id=reservation_id,
                        error=str(e),
                    )
                    raise InternalError("Could not open an order for this reservation") from e

        logger.info("Reservation arrived", reservation_id=reservation_id, order_id=order_id, staff_id=staff_id)
        return order_id

    async def mark_no_show(self, reservation_id: int, staff_id: Optional[int] = None) -> Reservation:
        """Confirmed -> NoShow"""
        async with self.locks.hold([reservation_key(reservation_id)]):
            async with self.uow:
                reservation = await self._locked_reservation(reservation_id)
                previous = self._require(
                    reservation,
                    ReservationStatus.NO_SHOW,
                    "CANNOT_MARK_NO_SHOW",
                    "Only confirmed reservations can be marked as no-show",
                )
                now = self.clock.now()
                reservation.status = ReservationStatus.NO_SHOW
                reservation.updated_at = now
                self.uow.record(
                    "reservation.no_show",
                    "reservation",
                    reservation.id,
                    actor_id=staff_id,
                    data={"from": previous.value, "to": reservation.status.value},
                    at=now,
                )
                await self.uow.commit()

        logger.info("Reservation marked no-show", reservation_id=reservation_id, staff_id=staff_id)
        return reservation

    async def expire_overdue(self) -> Dict[str, int]:
        """Close out reservations nobody showed up for.

        Confirmed reservations past the grace period become NoShow; Pending
        ones that were never confirmed are cancelled by the system.
        """
        cutoff = self.clock.now() - timedelta(minutes=self.config.no_show_grace_minutes)
        no_show_ids = await self.uow.reservations.started_before(cutoff, [ReservationStatus.CONFIRMED])
        expired_ids = await self.uow.reservations.started_before(cutoff, [ReservationStatus.PENDING])
        await self.uow.commit()

        counts = {"no_show": 0, "expired": 0}
        for reservation_id in no_show_ids:
            try:
                await self.mark_no_show(reservation_id)
                counts["no_show"] += 1
            except IllegalTransitionError:
                # Status changed since the scan
                continue
        for reservation_id in expired_ids:
            try:
                await self.cancel(reservation_id, None, EXPIRED_REASON, actor_type="system")
                counts["expired"] += 1
            except IllegalTransitionError:
                continue

        logger.info("Overdue reservations processed", **counts)
        return counts

    async def send_reminders(self) -> int:
        """Remind confirmed guests whose reservation starts within the reminder lead"""
        now = self.clock.now()
        due = await self.uow.reservations.due_for_reminder(
            now, now + timedelta(minutes=self.config.reminder_lead_minutes)
        )
        for reservation in due:
            self._notify(notifications.REMINDER, reservation)
            reservation.reminder_sent = now
        await self.uow.commit()
        logger.info("Reservation reminders sent", count=len(due))
        return len(due)

    async def get(self, reservation_id: int) -> Reservation:
        reservation = await self.uow.reservations.get(reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        return reservation

    async def get_by_number(self, reservation_number: str) -> Reservation:
        reservation = await self.uow.reservations.get_by_number(reservation_number)
        if not reservation:
            raise NotFoundError("No reservation with this number")
        return reservation
