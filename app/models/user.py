"""User model for back-office authentication"""

from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum
import enum

from app.database import Base


class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


class User(Base):
    """Restaurant staff accounts"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Authentication
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    full_name = Column(String(255))
    phone = Column(String(20))

    # Role
    role = Column(Enum(UserRole, native_enum=False, length=20), default=UserRole.STAFF)

    # Status
    is_active = Column(Boolean, default=True)

    # Tokens
    refresh_token = Column(String(500))

    # Timestamps
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def has_permission(self, required_role: UserRole) -> bool:
        """Check if user has at least the required role level"""
        role_hierarchy = {
            UserRole.STAFF: 1,
            UserRole.MANAGER: 2,
            UserRole.ADMIN: 3,
        }
        return role_hierarchy.get(self.role, 0) >= role_hierarchy.get(required_role, 0)
