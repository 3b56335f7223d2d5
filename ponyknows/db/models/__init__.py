"""Database models for the PonyKnows portal."""

from ponyknows.db.models.user import User, UserStatus
from ponyknows.db.models.role import Role, UserRole
from ponyknows.db.models.session import Session
from ponyknows.db.models.admin_log import AdminLog

__all__ = [
    "User",
    "UserStatus",
    "Role",
    "UserRole",
    "Session",
    "AdminLog",
]
