import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Boolean, Uuid
from sqlalchemy.orm import relationship

from ponyknows.db.base import Base


class UserStatus(str, Enum):
    """Review status of an account. Registration starts at PENDING."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255))
    is_active = Column(Boolean, default=True, nullable=False)
    status = Column(String(20), default=UserStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    user_roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan")
    admin_logs = relationship("AdminLog", back_populates="user")

    @property
    def roles(self) -> list:
        return [ur.role for ur in self.user_roles]

    @property
    def is_approved(self) -> bool:
        return self.status == UserStatus.APPROVED.value
