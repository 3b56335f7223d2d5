"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that database-generated fields (id, created_at, etc.) are populated.
All fields have sensible defaults but can be overridden via keyword arguments.

Usage::

    from tests.factories import create_role, create_user

    def test_something(db_session):
        role = create_role(db_session, permissions=["view_forum"])
        user = create_user(db_session, roles=[role])
        assert user.roles == [role]
"""

from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ponyknows.core.security import get_password_hash
from ponyknows.db.models import Role, User, UserRole, UserStatus

_counter = 0

TEST_PASSWORD = "testpass123"
# Hashed once per test run; bcrypt is deliberately slow
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


# ---------------------------------------------------------------------------
# Role
# ---------------------------------------------------------------------------


def create_role(
    session: Session,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    permissions: Optional[list] = None,
    is_system: bool = False,
) -> Role:
    n = _next_id()
    role = Role(
        name=name or f"Test Role {n}",
        description=description,
        permissions=list(permissions or []),
        is_system=is_system,
    )
    session.add(role)
    session.flush()
    return role


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


def create_user(
    session: Session,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    password_hash: Optional[str] = None,
    is_active: bool = True,
    status: UserStatus = UserStatus.APPROVED,
    roles: Iterable[Role] = (),
) -> User:
    n = _next_id()
    user = User(
        email=email or f"user{n}@example.com",
        name=name or f"Test User {n}",
        password_hash=password_hash or TEST_PASSWORD_HASH,
        is_active=is_active,
        status=status.value,
    )
    session.add(user)
    session.flush()
    for role in roles:
        assign_role(session, user, role)
    return user


def assign_role(session: Session, user: User, role: Role) -> UserRole:
    link = UserRole(user_id=user.id, role_id=role.id)
    session.add(link)
    session.flush()
    session.expire(user, ["user_roles"])
    return link
