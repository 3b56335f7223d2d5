"""Tests for RouteGuard decisions and rendering."""

import asyncio

import pytest
from fastapi.responses import HTMLResponse, RedirectResponse

from ponyknows.api.guards import GuardDecision, GuardOutcome, RouteGuard
from ponyknows.core.exceptions import PermissionResolutionError
from ponyknows.core.rbac import AdminPermission, PermissionContext, UserPermission


def context_with(*permissions):
    async def loader():
        return set(permissions)
    return PermissionContext(loader)


def failing_context():
    async def loader():
        raise PermissionResolutionError("Failed to load roles")
    return PermissionContext(loader)


class Children:
    """Records whether the protected content was built."""

    def __init__(self):
        self.rendered = False

    def __call__(self):
        self.rendered = True
        return HTMLResponse("secret")


class TestEvaluate:

    def test_loading_before_resolution(self):
        guard = RouteGuard(AdminPermission.ADMIN_ACCESS)
        assert guard.evaluate(context_with("admin_access")).outcome == GuardOutcome.LOADING

    @pytest.mark.asyncio
    async def test_render_when_granted(self):
        context = context_with("admin_access")
        await context.load()
        assert RouteGuard("admin_access").evaluate(context) == GuardDecision(GuardOutcome.RENDER)

    @pytest.mark.asyncio
    async def test_redirect_when_denied(self):
        context = context_with("view_forum")
        await context.load()
        decision = RouteGuard(AdminPermission.ADMIN_ACCESS).evaluate(context)
        assert decision == GuardDecision(GuardOutcome.REDIRECT, "/404")

    @pytest.mark.asyncio
    async def test_custom_redirect(self):
        context = context_with()
        await context.load()
        decision = RouteGuard("admin_access", redirect_to="/login").evaluate(context)
        assert decision.location == "/login"

    @pytest.mark.asyncio
    async def test_any_vs_all(self):
        context = context_with("view_services")
        await context.load()
        perms = [UserPermission.VIEW_SERVICES, UserPermission.ACCESS_MINIO]
        assert RouteGuard(perms).evaluate(context).outcome == GuardOutcome.RENDER
        assert RouteGuard(perms, require_all=True).evaluate(context).outcome == GuardOutcome.REDIRECT

    @pytest.mark.asyncio
    async def test_resolution_failure_redirects(self):
        context = failing_context()
        await context.load()
        assert RouteGuard("view_forum").evaluate(context).outcome == GuardOutcome.REDIRECT


class TestRender:

    def test_loading_page_does_not_render_children(self):
        children = Children()
        response = RouteGuard("admin_access").render(context_with("admin_access"), children)

        assert not children.rendered
        assert response.status_code == 200
        assert b"Verifying access" in response.body

    @pytest.mark.asyncio
    async def test_granted_renders_children(self):
        context = context_with("admin_access")
        await context.load()
        children = Children()

        response = RouteGuard("admin_access").render(context, children)
        assert children.rendered
        assert response.body == b"secret"

    @pytest.mark.asyncio
    async def test_denied_redirects_without_rendering(self):
        context = context_with("view_forum")
        await context.load()
        children = Children()

        response = RouteGuard(AdminPermission.ADMIN_ACCESS).render(context, children)
        assert not children.rendered
        assert isinstance(response, RedirectResponse)
        assert response.headers["location"] == "/404"


class TestWatch:

    @pytest.mark.asyncio
    async def test_watch_follows_state_changes(self):
        granted = set()

        async def loader():
            await asyncio.sleep(0)
            return set(granted)

        context = PermissionContext(loader)
        decisions = []
        stop = RouteGuard("access_minio").watch(context, decisions.append)

        await context.load()
        granted.add("access_minio")
        await context.refresh()
        stop()
        await context.refresh()

        assert [d.outcome for d in decisions] == [
            GuardOutcome.LOADING,   # initial
            GuardOutcome.LOADING,   # load started
            GuardOutcome.REDIRECT,  # resolved without the permission
            GuardOutcome.LOADING,   # refresh started
            GuardOutcome.RENDER,    # resolved with it
        ]
