from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ponyknows.core.config import get_settings
from ponyknows.core.rbac import PermissionContext, load_effective_permissions
from ponyknows.core.security import SessionIdentity, resolve_session
from ponyknows.db.models import User
from ponyknows.db.session import SessionLocal
from ponyknows.storage import GatewayRegistry, get_registry

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_token(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
) -> Optional[str]:
    """Session token from the session cookie, falling back to a Bearer header."""
    return request.cookies.get(settings.session_cookie_name) or bearer


def get_session_identity(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
) -> Optional[SessionIdentity]:
    """Identity of the current session, or None when there is no valid session."""
    if not token:
        return None
    return resolve_session(token, db)


def get_optional_user(
    identity: Optional[SessionIdentity] = Depends(get_session_identity),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Current user if signed in, active and approved, else None."""
    if identity is None:
        return None
    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None or not user.is_active or not user.is_approved:
        return None
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Get current authenticated user from the session."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_permission_context(
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Per-request permission context for the current user.

    The context is loaded before the handler runs and disposed afterwards.
    Anonymous requests get a context that resolves to the empty set.
    """
    if user is None:
        async def loader():
            return frozenset()
        owner = None
    else:
        user_id = user.id

        async def loader():
            return load_effective_permissions(db, user_id)
        owner = user_id

    context = PermissionContext(loader, owner=owner)
    await context.load()
    try:
        yield context
    finally:
        context.dispose()


def get_storage_registry() -> GatewayRegistry:
    """Storage gateway registry; overridden in tests."""
    return get_registry()
