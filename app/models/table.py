"""Dining table model"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, CheckConstraint
import enum

from app.database import Base


class TableStatus(str, enum.Enum):
    """Physical state of a table on the floor"""
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    RESERVED = "Reserved"


class Table(Base):
    """Physical dining tables"""
    __tablename__ = "tables"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_tables_capacity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_number = Column(Integer, unique=True, nullable=False)
    table_name = Column(String(50))
    capacity = Column(Integer, nullable=False)
    location = Column(String(100))  # Main hall, Terrace, 2nd floor, ...
    status = Column(Enum(TableStatus, native_enum=False, length=20), default=TableStatus.AVAILABLE, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    @property
    def display_name(self) -> str:
        return self.table_name or f"Table {self.table_number}"
