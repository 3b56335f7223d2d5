"""Administrative action log.

One row per mutation performed through the admin console.
"""

import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from ponyknows.db.base import Base


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)
    resource = Column(String(100), nullable=False, index=True)
    resource_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=True)
    ip = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="admin_logs")

    def __repr__(self) -> str:
        return f"<AdminLog {self.action} on {self.resource} by user {self.user_id}>"

    @classmethod
    def create_entry(
        cls,
        user_id: uuid.UUID,
        action: str,
        resource: str,
        *,
        resource_id: Optional[object] = None,
        details: Optional[Dict[str, Any]] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "AdminLog":
        return cls(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details or {},
            ip=ip,
            user_agent=user_agent,
        )
