"""RBAC (Role-Based Access Control) module for the PonyKnows portal.

This module defines the permission registry, default roles, role to
permission resolution and the fail-closed permission context.
"""

from .permissions import (
    AdminPermission,
    PermissionId,
    PermissionNamespace,
    UnknownPermissionError,
    UserPermission,
    PERMISSION_DEFINITIONS,
    is_valid_permission,
)
from .checker import PermissionChecker, has_permission, has_any_permission, has_all_permissions
from .resolver import load_effective_permissions, normalize_permissions, resolve_permissions
from .context import ContextState, PermissionContext

__all__ = [
    "AdminPermission",
    "PermissionId",
    "PermissionNamespace",
    "UnknownPermissionError",
    "UserPermission",
    "PERMISSION_DEFINITIONS",
    "is_valid_permission",
    "PermissionChecker",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "load_effective_permissions",
    "normalize_permissions",
    "resolve_permissions",
    "ContextState",
    "PermissionContext",
]
