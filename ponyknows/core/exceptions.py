"""Error taxonomy shared by the access-control layer and the API."""

from typing import Optional


class PortalError(Exception):
    """Base class for errors the API turns into ``{"error": ...}`` bodies."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(PortalError):
    """No valid session accompanies the request."""

    status_code = 401


class AuthorizationError(PortalError):
    """A valid session lacks the required permission."""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions", required: Optional[list[str]] = None):
        super().__init__(message)
        self.required = required or []


class PermissionResolutionError(PortalError):
    """The effective permission set could not be computed.

    Guards treat this exactly like a denial.
    """

    status_code = 403

    def __init__(self, message: str, user_id: Optional[object] = None):
        super().__init__(message)
        self.user_id = user_id


class ContextDisposedError(RuntimeError):
    """Raised when a disposed permission context is asked to load."""


class InvalidTransitionError(RuntimeError):
    """A permission context was asked to move between unconnected states."""

    def __init__(self, from_state: str, to_state: str):
        super().__init__(f"Cannot move permission context from {from_state} to {to_state}")
        self.from_state = from_state
        self.to_state = to_state
