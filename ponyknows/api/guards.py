"""Route guards.

``RouteGuard`` wraps protected content: it consumes a PermissionContext and
decides whether to show a loading page, render the content, or redirect to a
fallback location. ``RequirePermission`` is the FastAPI dependency used by
API routes, answering 401/403 JSON instead of redirecting.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, List, NamedTuple, Optional, Union

from fastapi import Depends
from fastapi.responses import RedirectResponse, Response

from ponyknows.core.config import get_settings
from ponyknows.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    PermissionResolutionError,
)
from ponyknows.core.rbac import ContextState, PermissionContext
from ponyknows.core.rbac.permissions import PermissionId, PermissionLike, permission_value
from ponyknows.db.models import User

from .deps import get_optional_user, get_permission_context
from .templating import render_page

logger = logging.getLogger(__name__)

DEFAULT_LOADING_MESSAGE = "Verifying access..."


class GuardOutcome(str, Enum):
    LOADING = "loading"
    RENDER = "render"
    REDIRECT = "redirect"


class GuardDecision(NamedTuple):
    """What a guard decided for one context state."""
    outcome: GuardOutcome
    location: Optional[str] = None


def _as_list(permission: Union[PermissionLike, Iterable[PermissionLike]]) -> List[str]:
    if isinstance(permission, (str, PermissionId)):
        return [permission_value(permission)]
    return [permission_value(p) for p in permission]


class RouteGuard:
    """
    Guard for a protected page.

    A single permission is checked directly; a list is checked with any/all
    semantics depending on ``require_all``. Nothing is granted until the
    context is READY, so the wrapped content never renders while
    permissions are unresolved or after resolution failed.
    """

    def __init__(
        self,
        permission: Union[PermissionLike, Iterable[PermissionLike]],
        require_all: bool = False,
        redirect_to: Optional[str] = None,
        loading_message: str = DEFAULT_LOADING_MESSAGE,
    ):
        self.permissions = _as_list(permission)
        self.require_all = require_all
        self.redirect_to = redirect_to or get_settings().access_denied_redirect
        self.loading_message = loading_message

    def __repr__(self) -> str:
        return f"<RouteGuard {self.permissions} require_all={self.require_all}>"

    def evaluate(self, context: PermissionContext) -> GuardDecision:
        """Decide the outcome for the context's current state."""
        if context.is_loading:
            return GuardDecision(GuardOutcome.LOADING)

        if context.check(self.permissions, require_all=self.require_all):
            return GuardDecision(GuardOutcome.RENDER)

        if context.state == ContextState.FAILED:
            logger.warning("Permission resolution failed for %s; denying %s", context.owner, self)
        else:
            logger.info("Access denied for %s by %s", context.owner, self)
        return GuardDecision(GuardOutcome.REDIRECT, self.redirect_to)

    def render(self, context: PermissionContext, children: Callable[[], Response]) -> Response:
        """
        Produce the response for a guarded page.

        Args:
            context: The owner's permission context
            children: Builds the protected response; only called when granted

        Returns:
            Loading page, the children's response, or a redirect
        """
        decision = self.evaluate(context)
        if decision.outcome == GuardOutcome.LOADING:
            return render_page("loading.html", message=self.loading_message)
        if decision.outcome == GuardOutcome.RENDER:
            return children()
        return RedirectResponse(decision.location, status_code=303)

    def watch(
        self,
        context: PermissionContext,
        on_decision: Callable[[GuardDecision], None],
    ) -> Callable[[], None]:
        """
        Re-evaluate on every context state change.

        ``on_decision`` is called once immediately with the current decision.

        Returns:
            A callable that stops watching
        """
        on_decision(self.evaluate(context))
        return context.subscribe(lambda ctx: on_decision(self.evaluate(ctx)))


class RequirePermission:
    """
    Dependency enforcing permissions on an API route.

    Usage:
        @router.get("/roles")
        def list_roles(context: PermissionContext = Depends(
            RequirePermission(AdminPermission.ADMIN_ACCESS, AdminPermission.VIEW_ROLES, require_all=True)
        )):
            ...

    Raises AuthenticationError (401) without a session, AuthorizationError
    (403) when the permissions are missing, and PermissionResolutionError
    (403) when the set could not be resolved.
    """

    def __init__(self, *permissions: PermissionLike, require_all: bool = False):
        self.permissions = [permission_value(p) for p in permissions]
        self.require_all = require_all

    def __call__(
        self,
        user: Optional[User] = Depends(get_optional_user),
        context: PermissionContext = Depends(get_permission_context),
    ) -> PermissionContext:
        if user is None:
            raise AuthenticationError("Unauthorized")

        if context.state == ContextState.FAILED:
            raise context.error or PermissionResolutionError("Permission resolution failed", user_id=user.id)

        if not context.check(self.permissions, require_all=self.require_all):
            logger.info("User %s lacks %s", user.id, self.permissions)
            raise AuthorizationError(required=self.permissions)

        return context
