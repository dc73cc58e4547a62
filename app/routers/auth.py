from datetime import timedelta
from typing import Annotated
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from sqlmodel import Session

from app.database.database import get_session
from app.core.config import get_settings, Settings
from app.core.security import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from app.exceptions import auth as auth_exceptions
from app.models.token import Token, TokenRefreshRequest
from app.models.user import UserCreate, UserPublic
from app.services import user as user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def signup(
    *,
    session: Annotated[Session, Depends(get_session)],
    user_in: UserCreate,
):
    """
    Register a new account.

    ### Roles:
    - `missionary` (default): applies to and completes missions
    - `advertiser`: posts missions (and may still act as a missionary)
    - Admin accounts are never created here

    Raises:
        `400 AlreadyExistsError`: If the username or email is taken.
    """
    user = user_service.create_user(session, user_in)
    session.commit()
    session.refresh(user)
    return user


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[Session, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Exchange a username and password for an access and a refresh token.

    Raises:
        `401 InvalidCredentialsError`: Unknown username or wrong password.
    """
    user = authenticate_user(session, form_data.username, form_data.password)
    if not user:
        raise auth_exceptions.InvalidCredentialsError()
    access_token = create_access_token(
        data={"sub": user.username},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh_token = create_refresh_token(
        data={"sub": user.username},
        expires_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/refresh", response_model=Token)
def refresh_token(
    request_data: TokenRefreshRequest,
    session: Annotated[Session, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Exchange a refresh token for a new access token.
    Expects JSON: {"refresh_token": "..."}

    Raises:
        `401 TokenExpiredError`: The refresh token has expired.
        `401 InvalidTokenError`: The token is malformed, not a refresh token, or its user is gone.
    """
    try:
        username = decode_token(request_data.refresh_token, "refresh")
    except ExpiredSignatureError:
        raise auth_exceptions.TokenExpiredError("refresh")
    except InvalidTokenError:
        raise auth_exceptions.InvalidTokenError()
    if not user_service.get_user_by_username(session, username):
        raise auth_exceptions.InvalidTokenError()

    new_access_token = create_access_token(
        data={"sub": username},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return Token(
        access_token=new_access_token,
        # TODO: rotate refresh tokens once they are stored server-side
        refresh_token=request_data.refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
