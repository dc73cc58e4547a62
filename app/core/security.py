from jwt.exceptions import PyJWTError
from fastapi.exceptions import HTTPException
from fastapi import status
from typing import Literal
from datetime import datetime, timedelta, timezone

import jwt
from sqlmodel import Session, select

from app.core.config import get_settings
from app.core.password import get_password_hash, verify_password
from app.models.user import User

# Verified against when the username is unknown, so both paths pay one Argon2 check
DUMMY_HASH = get_password_hash("missionboard-unknown-user")


def authenticate_user(session: Session, username: str, password: str) -> User | None:
    """
    Check a password-grant login.

    Returns:
        The matching User, or None for an unknown username or a wrong password.
    """
    user = session.exec(select(User).where(User.username == username)).first()
    valid = verify_password(password, user.hashed_password if user else DUMMY_HASH)
    return user if user and valid else None


def create_token(
    data: dict, expires_delta: timedelta, type: Literal["access", "refresh"]
) -> str:
    """
    Sign `data` with an `exp` and a `type` claim.

    `decode_token` checks `type` against the kind the caller expects.

    Raises:
        HTTPException: 500 if signing fails (bad algorithm or key).
    """
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire, "type": type})
    try:
        return jwt.encode(
            to_encode,
            settings.SECRET_KEY.get_secret_value(),
            algorithm=settings.ALGORITHM,
        )
    except PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not generate authentication token.",
        )


def decode_token(token: str, expected_type: Literal["access", "refresh"]) -> str:
    """
    Validate a JWT and return its subject.

    Raises:
        jwt.InvalidTokenError: If the signature, expiry, subject or type is wrong.
    """
    settings = get_settings()
    payload = jwt.decode(
        token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM]
    )
    username: str | None = payload.get("sub")
    if username is None or payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Not a valid {expected_type} token")
    return username


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Short-lived bearer token; ACCESS_TOKEN_EXPIRE_MINUTES unless `expires_delta` is given."""
    expires_delta = (
        expires_delta
        if expires_delta
        else timedelta(minutes=get_settings().ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return create_token(data, expires_delta=expires_delta, type="access")


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Long-lived token accepted only by POST /auth/refresh; REFRESH_TOKEN_EXPIRE_DAYS by default."""
    expires_delta = (
        expires_delta
        if expires_delta
        else timedelta(days=get_settings().REFRESH_TOKEN_EXPIRE_DAYS)
    )
    return create_token(data, expires_delta=expires_delta, type="refresh")
