"""Schemas for the admin console API."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ponyknows.db.models import UserStatus


class RoleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: List[str] = Field(default_factory=list)


class RoleCreate(RoleBase):
    pass


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: Optional[List[str]] = None


class RoleResponse(RoleBase):
    id: UUID
    is_system: bool
    created_at: Optional[datetime] = None
    user_count: int = 0

    class Config:
        from_attributes = True


class RoleSummary(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class AdminUserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    is_active: bool = True
    status: UserStatus = UserStatus.APPROVED
    role_ids: List[UUID] = Field(default_factory=list)


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None
    status: Optional[UserStatus] = None
    role_ids: Optional[List[UUID]] = None


class UserRolesUpdate(BaseModel):
    role_ids: List[UUID]


class AdminUserResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str]
    is_active: bool
    status: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    roles: List[RoleSummary] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PermissionsResponse(BaseModel):
    """Registered permissions grouped by namespace."""
    user: List[str]
    admin: List[str]
