"""Database models"""

from app.models.user import User, UserRole
from app.models.table import Table, TableStatus
from app.models.customer import Customer
from app.models.reservation import Reservation, ReservationTable, ReservationStatus
from app.models.order import Order, OrderTable
from app.models.audit import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Table",
    "TableStatus",
    "Customer",
    "Reservation",
    "ReservationTable",
    "ReservationStatus",
    "Order",
    "OrderTable",
    "AuditLog",
]
