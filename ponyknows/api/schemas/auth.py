from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str]
    is_active: bool
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    authenticated: bool
    user: Optional[UserResponse] = None
    expires_at: Optional[datetime] = None


class DebugRole(BaseModel):
    roleName: str
    permissions: List[str]


class DebugUser(BaseModel):
    id: UUID
    email: str
    name: Optional[str]


class DebugResponse(BaseModel):
    """Fresh permission snapshot for the signed-in user."""
    authenticated: bool
    user: DebugUser
    roles: List[DebugRole]
    permissions: List[str]
    hasAdminAccess: bool
    refreshedAt: datetime
