"""Business logic for authentication backed by PostgreSQL."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import MissingSecretError, get_settings, require_secret
from ..database import get_session
from ..models import Profile, User
from ..schemas import RegisterRequest

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)
_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _get_jwt_secret() -> str:
    try:
        return require_secret(get_settings().jwt_secret_key, "JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""

    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify that ``password`` matches ``hashed_password``."""

    try:
        return _pwd_context.verify(password, hashed_password)
    except (ValueError, TypeError):
        logger.exception("Password verification failed due to a malformed hash")
        return False


def create_access_token(subject: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT holding the provided ``subject``."""

    settings = get_settings()
    expire_delta = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    now = datetime.now(timezone.utc)
    payload = {"sub": str(subject), "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Decode and validate a JWT, returning the embedded subject UUID."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[get_settings().jwt_algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload") from exc


def register_user(db: Session, payload: RegisterRequest) -> Tuple[User, str]:
    """Persist a new member with a starter profile and return it with an access token."""

    email = str(payload.email).strip().lower()
    existing = db.scalar(select(User).where(func.lower(User.email) == email))
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(email=email, hashed_password=hash_password(payload.password))
    full_name = (payload.full_name or "").strip()

    try:
        db.add(user)
        db.flush()
        db.add(Profile(id=user.id, email=email, full_name=full_name, program_type="fundamental"))
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to register user")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to register user") from exc

    logger.info("Registered member %s", user.id)
    return user, create_access_token(user.id)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a member against stored credentials."""

    user = db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
    db: Session = Depends(get_session),
) -> User:
    """Resolve the authenticated member from the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    user_id = decode_access_token(credentials.credentials)

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        user.last_seen_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to update last_seen_at for user %s", user.id)

    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> User | None:
    """Return the authenticated member when a bearer token is provided."""

    if not credentials or credentials.scheme.lower() != "bearer":
        return None

    try:
        user_id = decode_access_token(credentials.credentials)
    except HTTPException:
        return None

    return db.get(User, user_id)


__all__ = [
    "register_user",
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "verify_password",
    "get_current_user",
    "get_optional_user",
]
