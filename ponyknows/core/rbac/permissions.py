"""Permission registry for the PonyKnows portal.

Permissions are flat string identifiers split across two namespaces:

  - user permissions gate the member-facing areas (forum, file services,
    working papers)
  - admin permissions gate the administrative console

The registry is closed: adding a permission is a code change. Strings that
are not registered are inert everywhere; they never raise during checks and
never match.
"""

from enum import Enum
from typing import FrozenSet, Iterable, NamedTuple, Union


class PermissionNamespace(str, Enum):
    """Namespaces that partition the registry."""

    USER = "user"
    ADMIN = "admin"


class UserPermission(str, Enum):
    """Permissions for member-facing features."""

    # Forum
    VIEW_FORUM = "view_forum"
    CREATE_TOPIC = "create_topic"
    VIEW_PROFILE = "view_profile"

    # Services portal
    VIEW_SERVICES = "view_services"
    ACCESS_MINIO = "access_minio"
    ACCESS_DATABASE = "access_database"
    ACCESS_FILE_DOWNLOADS = "access_file_downloads"

    # Working papers
    ACCESS_WORKING_PAPERS = "access_working_papers"
    DOWNLOAD_WORKING_PAPERS = "download_working_papers"
    EDIT_WORKING_PAPERS = "edit_working_papers"


class AdminPermission(str, Enum):
    """Permissions for the administrative console."""

    # Console entry
    ADMIN_ACCESS = "admin_access"

    # Users
    VIEW_USERS = "view_users"
    CREATE_USER = "create_user"
    EDIT_USER = "edit_user"
    DELETE_USER = "delete_user"

    # Roles
    VIEW_ROLES = "view_roles"
    CREATE_ROLE = "create_role"
    EDIT_ROLE = "edit_role"
    DELETE_ROLE = "delete_role"

    # Posts
    VIEW_POSTS = "view_posts"
    CREATE_POST = "create_post"
    EDIT_POST = "edit_post"
    DELETE_POST = "delete_post"

    # Comments
    VIEW_COMMENTS = "view_comments"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"

    # Files
    VIEW_FILES = "view_files"
    UPLOAD_FILE = "upload_file"
    DELETE_FILE = "delete_file"

    # Shared file links
    VIEW_LINKS = "view_links"
    CREATE_LINK = "create_link"
    EDIT_LINK = "edit_link"
    DELETE_LINK = "delete_link"

    # Notifications
    VIEW_NOTIFICATIONS = "view_notifications"
    CREATE_NOTIFICATION = "create_notification"

    # Settings and logs
    VIEW_SETTINGS = "view_settings"
    EDIT_SETTINGS = "edit_settings"
    VIEW_LOGS = "view_logs"


class UnknownPermissionError(ValueError):
    """Raised when a string is not part of the permission registry."""

    def __init__(self, value: str):
        super().__init__(f"Unknown permission: {value}")
        self.value = value


class PermissionId(NamedTuple):
    """A registered permission tagged with its namespace."""

    namespace: PermissionNamespace
    value: str

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, "PermissionId", UserPermission, AdminPermission]) -> "PermissionId":
        """Validate a permission against the registry.

        Raises:
            UnknownPermissionError: If the string is not registered
        """
        if isinstance(value, PermissionId):
            return value
        key = value.value if isinstance(value, Enum) else value
        try:
            return PERMISSION_DEFINITIONS[key]
        except KeyError:
            raise UnknownPermissionError(key) from None


PermissionLike = Union[str, PermissionId, UserPermission, AdminPermission]


def _generate_permission_definitions() -> dict[str, PermissionId]:
    """Build the lookup table from both namespaces."""
    permissions = {}
    for perm in UserPermission:
        permissions[perm.value] = PermissionId(PermissionNamespace.USER, perm.value)
    for perm in AdminPermission:
        permissions[perm.value] = PermissionId(PermissionNamespace.ADMIN, perm.value)
    return permissions


# All registered permissions: value -> PermissionId
PERMISSION_DEFINITIONS = _generate_permission_definitions()

USER_PERMISSIONS: FrozenSet[str] = frozenset(p.value for p in UserPermission)
ADMIN_PERMISSIONS: FrozenSet[str] = frozenset(p.value for p in AdminPermission)


def permission_value(permission: PermissionLike) -> str:
    """Return the plain string for any permission representation."""
    if isinstance(permission, PermissionId):
        return permission.value
    if isinstance(permission, Enum):
        return permission.value
    return permission


def is_valid_permission(perm_str: str) -> bool:
    """Check if a permission string is registered."""
    return perm_str in PERMISSION_DEFINITIONS


def filter_known(permissions: Iterable[str]) -> FrozenSet[str]:
    """Drop strings that are not part of the registry."""
    return frozenset(p for p in permissions if p in PERMISSION_DEFINITIONS)


def find_unknown(permissions: Iterable[str]) -> list[str]:
    """Return the unregistered strings, in input order."""
    return [p for p in permissions if p not in PERMISSION_DEFINITIONS]


def get_permissions_for_namespace(namespace: PermissionNamespace) -> list[str]:
    """Get all permission strings in a namespace, in declaration order."""
    source = UserPermission if namespace == PermissionNamespace.USER else AdminPermission
    return [p.value for p in source]


def get_all_permissions() -> list[str]:
    """Get all registered permission strings."""
    return list(PERMISSION_DEFINITIONS.keys())
