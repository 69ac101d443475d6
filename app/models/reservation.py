"""Reservation models"""

from datetime import datetime, timedelta
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Enum, Index
from sqlalchemy.orm import relationship
import enum

from app.database import Base


class ReservationStatus(str, enum.Enum):
    """Reservation lifecycle states"""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    ARRIVED = "Arrived"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]

    @property
    def blocks_tables(self) -> bool:
        return self in BLOCKING_STATUSES

    def can_transition_to(self, target: "ReservationStatus") -> bool:
        return target in TRANSITIONS[self]


TRANSITIONS = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.ARRIVED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    }),
    ReservationStatus.ARRIVED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}

# Assignments of reservations in these states hold their tables
BLOCKING_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.ARRIVED,
)


class Reservation(Base):
    """Table reservations"""
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_time_status", "reservation_time", "status"),
        Index("ix_reservations_customer_phone", "customer_phone"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_number = Column(String(20), unique=True, nullable=False)

    # Customer information (snapshot of the customer directory at booking time)
    customer_id = Column(Integer, ForeignKey("customers.id"))
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20))
    customer_email = Column(String(100))

    # Reservation details
    number_of_guests = Column(Integer, nullable=False)
    reservation_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    preferred_area = Column(String(50))

    # Status
    status = Column(
        Enum(ReservationStatus, native_enum=False, length=20),
        default=ReservationStatus.PENDING,
        nullable=False,
    )

    # Notes
    notes = Column(Text)
    cancel_reason = Column(String(500))

    # Staff actions
    created_by = Column(Integer, ForeignKey("users.id"))
    confirmed_by = Column(Integer, ForeignKey("users.id"))
    cancelled_by = Column(Integer, ForeignKey("users.id"))
    arrived_by = Column(Integer, ForeignKey("users.id"))
    confirmed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    arrived_at = Column(DateTime)

    # Order created on arrival
    order_id = Column(Integer, ForeignKey("orders.id", use_alter=True, name="fk_reservations_order_id"))

    # SMS reminder
    reminder_sent = Column(DateTime)

    # Metadata
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    assignments = relationship(
        "ReservationTable",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ReservationTable.sort_order",
    )

    @property
    def table_ids(self) -> list:
        return [assignment.table_id for assignment in self.assignments]

    @property
    def ends_at(self) -> datetime:
        return self.reservation_time + timedelta(minutes=self.duration_minutes)


class ReservationTable(Base):
    """Tables held by a reservation"""
    __tablename__ = "reservation_tables"

    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), primary_key=True)
    table_id = Column(Integer, ForeignKey("tables.id"), primary_key=True, index=True)
    sort_order = Column(Integer, default=0)
