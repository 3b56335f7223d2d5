"""Role to permission flattening.

``resolve_permissions`` is the pure union over role permission lists. The
database-backed loaders build on it and always recompute from the current
role rows; nothing here caches.
"""

import logging
from collections.abc import Mapping
from typing import Any, FrozenSet, Iterable, List, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ponyknows.core.exceptions import PermissionResolutionError
from ponyknows.db.models import Role, User, UserRole

from .permissions import filter_known

logger = logging.getLogger(__name__)


def normalize_permissions(permissions: Any) -> List[str]:
    """Coerce a stored permission value into a plain list of strings.

    Accepts a list, a PostgreSQL array literal such as ``"{a,b}"``, or a
    list holding a single such literal. Anything else yields an empty list.
    """
    if permissions is None or permissions == "":
        return []

    if isinstance(permissions, str):
        if permissions.startswith("{") and permissions.endswith("}"):
            return _split_array_literal(permissions)
        logger.warning("Unparseable permission value: %r", permissions)
        return []

    if isinstance(permissions, (list, tuple)):
        if (
            len(permissions) == 1
            and isinstance(permissions[0], str)
            and permissions[0].startswith("{")
            and permissions[0].endswith("}")
        ):
            return _split_array_literal(permissions[0])
        return [p for p in permissions if isinstance(p, str)]

    logger.warning("Unparseable permission value of type %s", type(permissions).__name__)
    return []


def _split_array_literal(literal: str) -> List[str]:
    body = literal[1:-1]
    return [p.strip().strip('"') for p in body.split(",") if p.strip()]


def _role_permissions(role: Union[Role, Mapping[str, Any], Iterable[str]]) -> List[str]:
    if isinstance(role, Mapping):
        return normalize_permissions(role.get("permissions"))
    if isinstance(role, Role) or hasattr(role, "permissions"):
        return normalize_permissions(role.permissions)
    return normalize_permissions(list(role))


def resolve_permissions(roles: Iterable[Union[Role, Mapping[str, Any], Iterable[str]]]) -> FrozenSet[str]:
    """Union the permissions of every role into one effective set.

    Roles may be ORM rows, mappings with a ``permissions`` key, or plain
    permission lists. Unregistered strings are dropped; the result
    is independent of role order and of duplicates.
    """
    collected: set[str] = set()
    for role in roles:
        collected.update(_role_permissions(role))
    return filter_known(collected)


def load_user_roles(db: Session, user_id: UUID) -> List[Role]:
    """Fetch every role linked to the user through UserRole.

    Raises:
        PermissionResolutionError: If the user does not exist or the
            query fails
    """
    try:
        user = (
            db.query(User)
            .options(selectinload(User.user_roles).selectinload(UserRole.role))
            .filter(User.id == user_id)
            .populate_existing()
            .first()
        )
    except SQLAlchemyError as exc:
        logger.error("Role lookup failed for user %s: %s", user_id, exc)
        raise PermissionResolutionError(
            "Failed to load roles", user_id=user_id
        ) from exc

    if user is None:
        raise PermissionResolutionError("User not found", user_id=user_id)

    return [ur.role for ur in user.user_roles if ur.role is not None]


def load_effective_permissions(db: Session, user_id: UUID) -> FrozenSet[str]:
    """Resolve the effective permission set of a user from the database."""
    roles = load_user_roles(db, user_id)
    permissions = resolve_permissions(roles)
    logger.debug(
        "Resolved %d permissions from %d roles for user %s",
        len(permissions), len(roles), user_id,
    )
    return permissions
