"""Audit log model"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON

from app.database import Base


class AuditLog(Base):
    """Audit trail for reservation state changes"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Actor information
    actor_id = Column(Integer)  # User ID or null for system
    actor_type = Column(String(50))  # user, customer, system

    # Action details
    action = Column(String(100), nullable=False)  # reservation.confirmed, reservation.arrived, ...
    resource_type = Column(String(50))  # reservation, table, order
    resource_id = Column(Integer)

    # Change data
    data_json = Column(JSON)  # {"from": "...", "to": "...", ...}

    created_at = Column(DateTime, default=datetime.now)
