"""Role management API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ponyknows.api.deps import get_current_user, get_db
from ponyknows.api.guards import RequirePermission
from ponyknows.api.middleware.admin_log import AdminLogger
from ponyknows.api.schemas.admin import PermissionsResponse, RoleCreate, RoleResponse, RoleUpdate
from ponyknows.core.rbac.permissions import (
    AdminPermission,
    PermissionNamespace,
    find_unknown,
    get_permissions_for_namespace,
)
from ponyknows.core.rbac.resolver import normalize_permissions
from ponyknows.db.models import Role, User, UserRole

router = APIRouter(prefix="/admin", tags=["admin"])


def _admin(*permissions: AdminPermission) -> RequirePermission:
    """Admin console access plus the given permissions."""
    return RequirePermission(AdminPermission.ADMIN_ACCESS, *permissions, require_all=True)


def _validate_permissions(permissions: List[str]) -> List[str]:
    unknown = find_unknown(permissions)
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid permission: {', '.join(unknown)}"
        )
    # Stored as a set; keep first-seen order
    return list(dict.fromkeys(permissions))


def _user_count(db: Session, role_id: UUID) -> int:
    return db.query(func.count(UserRole.id)).filter(UserRole.role_id == role_id).scalar() or 0


def _to_response(db: Session, role: Role) -> RoleResponse:
    return RoleResponse(
        id=role.id,
        name=role.name,
        description=role.description,
        permissions=normalize_permissions(role.permissions),
        is_system=role.is_system,
        created_at=role.created_at,
        user_count=_user_count(db, role.id),
    )


def _get_role_or_404(db: Session, role_id: UUID) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


@router.get("/permissions", response_model=PermissionsResponse)
def list_all_permissions(
    _=Depends(_admin()),
):
    """List all registered permissions, grouped by namespace."""
    return PermissionsResponse(
        user=get_permissions_for_namespace(PermissionNamespace.USER),
        admin=get_permissions_for_namespace(PermissionNamespace.ADMIN),
    )


@router.get("/roles", response_model=List[RoleResponse])
def list_roles(
    db: Session = Depends(get_db),
    _=Depends(_admin(AdminPermission.VIEW_ROLES)),
):
    """List all roles."""
    roles = db.query(Role).order_by(Role.name).all()
    return [_to_response(db, r) for r in roles]


@router.get("/roles/{role_id}", response_model=RoleResponse)
def get_role(
    role_id: UUID,
    db: Session = Depends(get_db),
    _=Depends(_admin(AdminPermission.VIEW_ROLES)),
):
    """Get a specific role by ID."""
    return _to_response(db, _get_role_or_404(db, role_id))


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    request: Request,
    role_data: RoleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    _=Depends(_admin(AdminPermission.CREATE_ROLE)),
):
    """Create a new custom role."""
    existing = db.query(Role).filter(Role.name == role_data.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Role with this name already exists")

    role = Role(
        name=role_data.name,
        description=role_data.description,
        permissions=_validate_permissions(role_data.permissions),
        is_system=False,
    )
    db.add(role)
    db.commit()
    db.refresh(role)

    AdminLogger(db, request, current_user).log(
        action="create",
        resource="role",
        resource_id=role.id,
        details={"name": role.name, "permissions": role.permissions},
    )
    return _to_response(db, role)


@router.patch("/roles/{role_id}", response_model=RoleResponse)
def update_role(
    request: Request,
    role_id: UUID,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    _=Depends(_admin(AdminPermission.EDIT_ROLE)),
):
    """Update a role. System roles cannot be modified."""
    role = _get_role_or_404(db, role_id)

    if role.is_system:
        raise HTTPException(status_code=403, detail="System roles cannot be modified")

    changes = {}
    if role_data.permissions is not None:
        role.permissions = _validate_permissions(role_data.permissions)
        changes["permissions"] = role.permissions

    if role_data.name is not None and role_data.name != role.name:
        existing = db.query(Role).filter(Role.name == role_data.name, Role.id != role_id).first()
        if existing:
            raise HTTPException(status_code=400, detail="Role with this name already exists")
        role.name = role_data.name
        changes["name"] = role.name

    if role_data.description is not None:
        role.description = role_data.description
        changes["description"] = role.description

    db.commit()
    db.refresh(role)

    AdminLogger(db, request, current_user).log(
        action="update",
        resource="role",
        resource_id=role.id,
        details=changes,
    )
    return _to_response(db, role)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    request: Request,
    role_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    _=Depends(_admin(AdminPermission.DELETE_ROLE)),
):
    """Delete a role. System roles and roles still assigned cannot be deleted."""
    role = _get_role_or_404(db, role_id)

    if role.is_system:
        raise HTTPException(status_code=403, detail="System roles cannot be deleted")

    users_with_role = _user_count(db, role_id)
    if users_with_role > 0:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete role: {users_with_role} users are assigned to this role"
        )

    name = role.name
    db.delete(role)
    db.commit()

    AdminLogger(db, request, current_user).log(
        action="delete",
        resource="role",
        resource_id=role_id,
        details={"name": name},
    )
    return None
