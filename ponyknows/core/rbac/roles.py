"""Default role definitions for the PonyKnows portal.

Defines the 5 standard roles with their permission sets:
1. Super Admin - every registered permission
2. Content Manager - posts and comments moderation
3. User Manager - user account administration
4. Moderator - read-only administrative access
5. Member - forum and profile access, no administration
"""

from typing import Dict, List

from .permissions import AdminPermission, UserPermission, get_all_permissions


def _build_permissions(*perms) -> List[str]:
    """Build permission strings from enum members."""
    return [p.value for p in perms]


# Super Admin: the whole registry
SUPER_ADMIN_PERMISSIONS = get_all_permissions()

CONTENT_MANAGER_PERMISSIONS = _build_permissions(
    AdminPermission.ADMIN_ACCESS,
    AdminPermission.VIEW_POSTS,
    AdminPermission.EDIT_POST,
    AdminPermission.DELETE_POST,
    AdminPermission.VIEW_COMMENTS,
    AdminPermission.EDIT_COMMENT,
    AdminPermission.DELETE_COMMENT,
)

USER_MANAGER_PERMISSIONS = _build_permissions(
    AdminPermission.ADMIN_ACCESS,
    AdminPermission.VIEW_USERS,
    AdminPermission.EDIT_USER,
)

MODERATOR_PERMISSIONS = _build_permissions(
    AdminPermission.ADMIN_ACCESS,
    AdminPermission.VIEW_POSTS,
    AdminPermission.VIEW_COMMENTS,
    AdminPermission.VIEW_USERS,
)

MEMBER_PERMISSIONS = _build_permissions(
    UserPermission.VIEW_FORUM,
    UserPermission.CREATE_TOPIC,
    UserPermission.VIEW_PROFILE,
)


DEFAULT_ROLES: Dict[str, dict] = {
    "super_admin": {
        "name": "Super Admin",
        "description": "Every operation in the system",
        "permissions": SUPER_ADMIN_PERMISSIONS,
        "is_system": True,
    },
    "content_manager": {
        "name": "Content Manager",
        "description": "Manages posts, comments and tags",
        "permissions": CONTENT_MANAGER_PERMISSIONS,
        "is_system": True,
    },
    "user_manager": {
        "name": "User Manager",
        "description": "Manages user accounts",
        "permissions": USER_MANAGER_PERMISSIONS,
        "is_system": True,
    },
    "moderator": {
        "name": "Moderator",
        "description": "Basic administrative access",
        "permissions": MODERATOR_PERMISSIONS,
        "is_system": True,
    },
    "member": {
        "name": "Member",
        "description": "Regular member without administrative access",
        "permissions": MEMBER_PERMISSIONS,
        "is_system": True,
    },
}


def get_default_role_permissions(role_key: str) -> List[str]:
    """Get permissions list for a default role."""
    role = DEFAULT_ROLES.get(role_key)
    if not role:
        raise ValueError(f"Unknown default role: {role_key}")
    return role["permissions"]


def get_all_default_roles() -> Dict[str, dict]:
    """Get all default role definitions."""
    return DEFAULT_ROLES.copy()
