"""Order model"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer
from sqlalchemy.orm import relationship

from app.database import Base


class Order(Base):
    """Dine-in orders opened when a reservation arrives"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(30), unique=True, nullable=False)
    reservation_id = Column(Integer, ForeignKey("reservations.id"))
    customer_id = Column(Integer, ForeignKey("customers.id"))

    number_of_guests = Column(Integer, nullable=False, default=1)

    # Status
    status = Column(String(50), default="Pending")  # Pending, Preparing, Served, Paid, Cancelled

    # Notes
    notes = Column(Text)

    # Metadata
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    tables = relationship("OrderTable", lazy="selectin", cascade="all, delete-orphan")

    @property
    def table_ids(self) -> list:
        return [order_table.table_id for order_table in self.tables]


class OrderTable(Base):
    """Tables served by an order"""
    __tablename__ = "order_tables"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
