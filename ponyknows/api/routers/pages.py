"""Server-rendered pages.

Protected pages go through a RouteGuard: denied visitors are redirected to
the fallback location and the page body is never built.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ponyknows.api.deps import get_optional_user, get_permission_context
from ponyknows.api.guards import RouteGuard
from ponyknows.api.templating import render_page
from ponyknows.core.rbac import PermissionContext
from ponyknows.core.rbac.permissions import AdminPermission, UserPermission
from ponyknows.db.models import User

router = APIRouter(tags=["pages"], include_in_schema=False)

admin_guard = RouteGuard(AdminPermission.ADMIN_ACCESS)
minio_guard = RouteGuard(UserPermission.ACCESS_MINIO)
nextcloud_guard = RouteGuard(UserPermission.VIEW_SERVICES)

ADMIN_SECTIONS = [
    (AdminPermission.VIEW_USERS, "/admin/users", "Users"),
    (AdminPermission.VIEW_ROLES, "/admin/roles", "Roles"),
    (AdminPermission.VIEW_POSTS, "/admin/posts", "Posts"),
    (AdminPermission.VIEW_COMMENTS, "/admin/comments", "Comments"),
    (AdminPermission.VIEW_FILES, "/admin/files", "Files"),
    (AdminPermission.VIEW_LINKS, "/admin/file-links", "File links"),
    (AdminPermission.VIEW_SETTINGS, "/admin/settings", "Settings"),
    (AdminPermission.VIEW_LOGS, "/admin/logs", "Logs"),
]


@router.get("/")
def home(user: Optional[User] = Depends(get_optional_user)):
    return render_page("home.html", user=user)


@router.get("/404")
def not_found():
    return render_page("not_found.html", status_code=404)


@router.get("/admin")
def admin_console(context: PermissionContext = Depends(get_permission_context)):
    """Admin dashboard; only sections the user may view are linked."""
    def page():
        links = [
            {"href": href, "label": label}
            for permission, href, label in ADMIN_SECTIONS
            if context.has_permission(permission)
        ]
        return render_page("section.html", title="Admin console", links=links)

    return admin_guard.render(context, page)


@router.get("/services/minio")
def minio_service(context: PermissionContext = Depends(get_permission_context)):
    return minio_guard.render(
        context,
        lambda: render_page("section.html", title="Object storage", api_base="/api/minio"),
    )


@router.get("/services/nextcloud")
def nextcloud_service(context: PermissionContext = Depends(get_permission_context)):
    return nextcloud_guard.render(
        context,
        lambda: render_page("section.html", title="Cloud files", api_base="/api/nextcloud"),
    )
