from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ponyknows.api.deps import get_db, get_optional_user, get_session_identity
from ponyknows.api.middleware.admin_log import get_client_ip
from ponyknows.api.schemas.auth import (
    DebugResponse,
    SessionResponse,
    Token,
    UserCreate,
    UserLogin,
    UserResponse,
)
from ponyknows.core.config import get_settings
from ponyknows.core.exceptions import PermissionResolutionError
from ponyknows.core.rbac import PermissionChecker
from ponyknows.core.rbac.resolver import load_user_roles, normalize_permissions, resolve_permissions
from ponyknows.core.security import (
    SessionIdentity,
    create_session_token,
    get_password_hash,
    revoke_session,
    verify_password,
)
from ponyknows.db.models import User, UserStatus

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
}


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    """Register a new account. It stays pending until an admin approves it."""
    if not settings.registration_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is disabled"
        )

    existing_user = db.query(User).filter(User.email == user_in.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=user_in.email,
        password_hash=get_password_hash(user_in.password),
        name=user_in.name,
        status=UserStatus.PENDING.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    return user


@router.post("/login", response_model=Token)
def login(
    request: Request,
    response: Response,
    credentials: UserLogin,
    db: Session = Depends(get_db)
):
    """Sign in, start a tracked session and set the session cookie."""
    user = db.query(User).filter(User.email == credentials.email).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    if not user.is_approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is awaiting approval" if user.status == UserStatus.PENDING.value
            else "Account was rejected"
        )

    user.last_login = datetime.utcnow()
    db.commit()

    token = create_session_token(
        user.id,
        db,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_expire_minutes * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return Token(access_token=token)


@router.post("/logout")
def logout(
    response: Response,
    identity: Optional[SessionIdentity] = Depends(get_session_identity),
    db: Session = Depends(get_db),
):
    """Revoke the current session and clear the cookie."""
    if identity is not None:
        revoke_session(identity.jti, db)
    response.delete_cookie(settings.session_cookie_name)
    return {"success": True}


@router.get("/session", response_model=SessionResponse)
def get_session(
    identity: Optional[SessionIdentity] = Depends(get_session_identity),
    user: Optional[User] = Depends(get_optional_user),
):
    """Current session, if any."""
    if identity is None or user is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user=user, expires_at=identity.expires_at)


@router.get("/debug", response_model=DebugResponse)
def debug_permissions(
    response: Response,
    identity: Optional[SessionIdentity] = Depends(get_session_identity),
    db: Session = Depends(get_db),
):
    """
    Freshly resolved roles and permissions of the signed-in user.

    Always reads from the database; the response must never be cached.
    """
    response.headers.update(NO_STORE_HEADERS)

    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers=NO_STORE_HEADERS,
        )

    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
            headers=NO_STORE_HEADERS,
        )

    try:
        roles = load_user_roles(db, user.id)
    except PermissionResolutionError as exc:
        # Surfaced as a server error here; guards treat the same error as a denial
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=exc.message,
            headers=NO_STORE_HEADERS,
        )

    permissions = resolve_permissions(roles)
    return DebugResponse(
        authenticated=True,
        user={"id": user.id, "email": user.email, "name": user.name},
        roles=[{"roleName": r.name, "permissions": normalize_permissions(r.permissions)} for r in roles],
        permissions=sorted(permissions),
        hasAdminAccess=PermissionChecker(permissions).is_admin(),
        refreshedAt=datetime.utcnow(),
    )
