"""Admin action logging.

Every mutation made through the admin API is recorded as an AdminLog row
with the acting user, the action, the affected resource and the client
address. A failed write is logged and swallowed: the admin action itself has
already succeeded and must not be reported as failed.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ponyknows.db.models import AdminLog, User

logger = logging.getLogger(__name__)

# Fields never written to the log
SENSITIVE_FIELDS = {
    "password",
    "password_hash",
    "token",
    "access_token",
    "secret",
    "app_password",
}


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First entry is the original client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def redact_sensitive(data: Any) -> Any:
    """Redact sensitive fields from data."""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if k.lower() in SENSITIVE_FIELDS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data


class AdminLogger:
    """
    Records admin actions from within endpoints.

    Usage:
        @router.post("/roles")
        def create_role(request: Request, db: Session = Depends(get_db), ...):
            # ... create role ...
            AdminLogger(db, request, current_user).log(
                action="create",
                resource="role",
                resource_id=role.id,
                details={"name": role.name},
            )
    """

    def __init__(self, db: Session, request: Request, user: User):
        self.db = db
        self.request = request
        self.user = user

    def log(
        self,
        action: str,
        resource: str,
        resource_id: Optional[object] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AdminLog]:
        """Write one log entry and commit it. Returns None if the write failed."""
        entry = AdminLog.create_entry(
            user_id=self.user.id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=redact_sensitive(details) if details else None,
            ip=get_client_ip(self.request),
            user_agent=self.request.headers.get("user-agent"),
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to write admin log %s %s: %s", action, resource, exc)
            return None

        logger.info("Admin %s: %s %s %s", self.user.id, action, resource, resource_id or "")
        return entry
