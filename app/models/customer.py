"""Customer model"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime

from app.database import Base


class Customer(Base):
    """Guests known to the restaurant"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), unique=True)
    email = Column(String(100))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
