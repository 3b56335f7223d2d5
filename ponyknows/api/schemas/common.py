"""Common schemas for the PonyKnows API."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class SuccessResponse(BaseModel):
    """Standard success response."""
    success: bool = True
