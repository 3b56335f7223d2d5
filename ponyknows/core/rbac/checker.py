"""Permission checks over an already-resolved effective set."""

from typing import FrozenSet, Iterable

from .permissions import AdminPermission, PermissionLike, permission_value


class PermissionChecker:
    """Answers membership questions against an effective permission set.

    Matching is exact. Unregistered strings never match because resolution
    drops them before they reach the checker.
    """

    def __init__(self, user_permissions: Iterable[str]):
        """
        Initialize with the user's effective permissions.

        Args:
            user_permissions: Permission strings from the user's roles
        """
        self.permissions: FrozenSet[str] = frozenset(user_permissions)

    def has_permission(self, permission: PermissionLike) -> bool:
        """Check if user has a specific permission."""
        return permission_value(permission) in self.permissions

    def has_any(self, permissions: Iterable[PermissionLike]) -> bool:
        """Check if user has any of the given permissions. False when empty."""
        return any(self.has_permission(p) for p in permissions)

    def has_all(self, permissions: Iterable[PermissionLike]) -> bool:
        """Check if user has all of the given permissions. True when empty."""
        return all(self.has_permission(p) for p in permissions)

    def is_admin(self) -> bool:
        """Check for the admin console entry permission."""
        return self.has_permission(AdminPermission.ADMIN_ACCESS)

    def check(self, permissions: Iterable[PermissionLike], require_all: bool = False) -> bool:
        """Evaluate a requirement list with any/all semantics."""
        perms = list(permissions)
        return self.has_all(perms) if require_all else self.has_any(perms)


def has_permission(user_permissions: Iterable[str], permission: PermissionLike) -> bool:
    return PermissionChecker(user_permissions).has_permission(permission)


def has_any_permission(user_permissions: Iterable[str], permissions: Iterable[PermissionLike]) -> bool:
    return PermissionChecker(user_permissions).has_any(permissions)


def has_all_permissions(user_permissions: Iterable[str], permissions: Iterable[PermissionLike]) -> bool:
    return PermissionChecker(user_permissions).has_all(permissions)
