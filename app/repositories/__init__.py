"""Repositories over the relational store"""

from app.repositories.tables import TableRepository
from app.repositories.customers import CustomerRepository
from app.repositories.reservations import ReservationRepository

__all__ = [
    "TableRepository",
    "CustomerRepository",
    "ReservationRepository",
]
