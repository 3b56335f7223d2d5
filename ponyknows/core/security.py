import logging
import uuid
from datetime import datetime, timedelta
from typing import NamedTuple, Optional
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ponyknows.core.config import get_settings
from ponyknows.db.models import Session as SessionModel

logger = logging.getLogger(__name__)
settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class SessionIdentity(NamedTuple):
    """Identity carried by a valid, unrevoked session token."""
    user_id: UUID
    jti: str
    expires_at: datetime


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def create_session_token(
    user_id: UUID,
    db: Session,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Issue a signed session token and record the session."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.session_expire_minutes)

    # Unique JWT ID links the token to its session row
    jti = str(uuid.uuid4())

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "jti": jti,
        "type": "session"
    }
    token = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    session = SessionModel(
        user_id=user_id,
        token_jti=jti,
        ip_address=ip_address,
        user_agent=user_agent,
        expires_at=expire,
    )
    db.add(session)
    db.commit()

    logger.info("Issued session %s for user %s", jti, user_id)
    return token


def decode_session_token(token: str) -> Optional[dict]:
    """Verify the signature and expiry of a token. Returns the claims or None."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def resolve_session(token: str, db: Session) -> Optional[SessionIdentity]:
    """Resolve a session token to its identity if valid and not revoked."""
    payload = decode_session_token(token)
    if payload is None:
        return None

    user_id: Optional[str] = payload.get("sub")
    jti: Optional[str] = payload.get("jti")
    if user_id is None or jti is None:
        return None

    session = db.query(SessionModel).filter(
        SessionModel.token_jti == jti,
        SessionModel.revoked_at.is_(None)
    ).first()

    if session is None:
        # Session was revoked or doesn't exist
        return None

    if session.expires_at <= datetime.utcnow():
        return None

    try:
        return SessionIdentity(UUID(user_id), jti, session.expires_at)
    except ValueError:
        return None


def revoke_session(jti: str, db: Session) -> bool:
    """Revoke a session by JWT ID."""
    session = db.query(SessionModel).filter(SessionModel.token_jti == jti).first()
    if session and session.revoked_at is None:
        session.revoked_at = datetime.utcnow()
        db.commit()
        logger.info("Revoked session %s", jti)
        return True
    return False


def revoke_user_sessions(user_id: UUID, db: Session, except_jti: Optional[str] = None) -> int:
    """Revoke all sessions for a user (except optionally one session)."""
    query = db.query(SessionModel).filter(
        SessionModel.user_id == user_id,
        SessionModel.revoked_at.is_(None)
    )

    if except_jti:
        query = query.filter(SessionModel.token_jti != except_jti)

    count = 0
    for session in query.all():
        session.revoked_at = datetime.utcnow()
        count += 1

    if count > 0:
        db.commit()

    return count
