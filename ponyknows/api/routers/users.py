"""User administration API endpoints.

Users are never physically deleted; they are deactivated or rejected.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, selectinload

from ponyknows.api.deps import get_current_user, get_db
from ponyknows.api.guards import RequirePermission
from ponyknows.api.middleware.admin_log import AdminLogger
from ponyknows.api.schemas.admin import (
    AdminUserCreate,
    AdminUserResponse,
    AdminUserUpdate,
    RoleSummary,
    UserRolesUpdate,
)
from ponyknows.core.rbac.permissions import AdminPermission
from ponyknows.core.security import get_password_hash, revoke_user_sessions
from ponyknows.db.models import Role, User, UserRole, UserStatus

router = APIRouter(prefix="/admin/users", tags=["admin"])


def _admin(*permissions: AdminPermission) -> RequirePermission:
    return RequirePermission(AdminPermission.ADMIN_ACCESS, *permissions, require_all=True)


def _to_response(user: User) -> AdminUserResponse:
    return AdminUserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        is_active=user.is_active,
        status=user.status,
        created_at=user.created_at,
        last_login=user.last_login,
        roles=[RoleSummary(id=r.id, name=r.name) for r in user.roles],
    )


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).options(
        selectinload(User.user_roles).selectinload(UserRole.role)
    ).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _load_roles(db: Session, role_ids: List[UUID]) -> List[Role]:
    wanted = list(dict.fromkeys(role_ids))
    if not wanted:
        return []
    roles = db.query(Role).filter(Role.id.in_(wanted)).all()
    missing = set(wanted) - {r.id for r in roles}
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {', '.join(sorted(str(m) for m in missing))}"
        )
    return roles


def _replace_roles(db: Session, user: User, roles: List[Role]) -> None:
    """Make the user's role links exactly ``roles``."""
    wanted = {r.id for r in roles}
    for link in list(user.user_roles):
        if link.role_id not in wanted:
            user.user_roles.remove(link)
    current = {link.role_id for link in user.user_roles}
    for role in roles:
        if role.id not in current:
            user.user_roles.append(UserRole(role=role))
    db.flush()


@router.get("", response_model=List[AdminUserResponse])
def list_users(
    db: Session = Depends(get_db),
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Match on name or email"),
    _=Depends(_admin(AdminPermission.VIEW_USERS)),
):
    """List users, newest first."""
    query = db.query(User).options(selectinload(User.user_roles).selectinload(UserRole.role))

    if status_filter is not None:
        query = query.filter(User.status == status_filter.value)
    if search:
        pattern = f"%{search}%"
        query = query.filter((User.email.ilike(pattern)) | (User.name.ilike(pattern)))

    users = query.order_by(User.created_at.desc()).all()
    return [_to_response(u) for u in users]


@router.post("", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    user_in: AdminUserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    _=Depends(_admin(AdminPermission.CREATE_USER)),
):
    """Create an account directly; approved unless stated otherwise."""
    if db.query(User).filter(User.email == user_in.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    roles = _load_roles(db, user_in.role_ids)
    user = User(
        email=user_in.email,
        name=user_in.name,
        password_hash=get_password_hash(user_in.password),
        is_active=user_in.is_active,
        status=user_in.status.value,
    )
    db.add(user)
    db.flush()
    _replace_roles(db, user, roles)
    db.commit()

    user = _get_user_or_404(db, user.id)
    AdminLogger(db, request, current_user).log(
        action="create",
        resource="user",
        resource_id=user.id,
        details={"email": user.email, "roles": [r.name for r in roles]},
    )
    return _to_response(user)


@router.get("/{user_id}", response_model=AdminUserResponse)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    _=Depends(_admin(AdminPermission.VIEW_USERS)),
):
    return _to_response(_get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=AdminUserResponse)
def update_user(
    request: Request,
    user_id: UUID,
    user_in: AdminUserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    _=Depends(_admin(AdminPermission.EDIT_USER)),
):
    """
    Update profile fields, activation, approval status and roles.

    Deactivating a user or moving them out of approved status revokes all
    of their sessions.
    """
    user = _get_user_or_404(db, user_id)
    changes = user_in.model_dump(exclude_unset=True, mode="json")

    if user_in.email is not None and user_in.email != user.email:
        taken = db.query(User).filter(User.email == user_in.email, User.id != user_id).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already registered")
        user.email = user_in.email

    if user_in.name is not None:
        user.name = user_in.name
    if user_in.is_active is not None:
        user.is_active = user_in.is_active
    if user_in.status is not None:
        user.status = user_in.status.value
    if user_in.role_ids is not None:
        _replace_roles(db, user, _load_roles(db, user_in.role_ids))

    db.commit()

    if not user.is_active or not user.is_approved:
        revoked = revoke_user_sessions(user.id, db)
        if revoked:
            changes["sessions_revoked"] = revoked

    user = _get_user_or_404(db, user_id)
    AdminLogger(db, request, current_user).log(
        action="update",
        resource="user",
        resource_id=user.id,
        details=changes,
    )
    return _to_response(user)


@router.get("/{user_id}/roles", response_model=List[RoleSummary])
def get_user_roles(
    user_id: UUID,
    db: Session = Depends(get_db),
    _=Depends(_admin(AdminPermission.VIEW_USERS)),
):
    user = _get_user_or_404(db, user_id)
    return [RoleSummary(id=r.id, name=r.name) for r in user.roles]


@router.put("/{user_id}/roles", response_model=List[RoleSummary])
def set_user_roles(
    request: Request,
    user_id: UUID,
    body: UserRolesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    _=Depends(_admin(AdminPermission.EDIT_USER)),
):
    """Replace the user's role assignments."""
    user = _get_user_or_404(db, user_id)
    roles = _load_roles(db, body.role_ids)
    _replace_roles(db, user, roles)
    db.commit()

    AdminLogger(db, request, current_user).log(
        action="assign_roles",
        resource="user",
        resource_id=user.id,
        details={"roles": [r.name for r in roles]},
    )
    user = _get_user_or_404(db, user_id)
    return [RoleSummary(id=r.id, name=r.name) for r in user.roles]
