from typing import Annotated
from jwt.exceptions import InvalidTokenError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session, select

from app.core.security import decode_token
from app.database.database import get_session
from app.exceptions import InsufficientPermissionsError
from app.core.roles import Principal
from app.models.enums import UserRole
from app.models.token import TokenData
from app.models.user import User


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Session = Depends(get_session),
) -> User:
    """
    Resolve the authenticated user from an access JWT.

    Returns:
        user (User): The User whose username matches the token's subject.

    Raises:
        HTTPException: 401 Unauthorized if the token is invalid, not an access token, missing the subject, or if no matching user is found.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = TokenData(username=decode_token(token, "access"))
    except InvalidTokenError:
        raise credentials_exception
    statement = select(User).where(User.username == token_data.username)
    user = session.exec(statement).first()
    if user is None:
        raise credentials_exception
    return user


def get_current_principal(
    user: Annotated[User, Depends(get_current_user)],
) -> Principal:
    return Principal.of(user)


def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """
    Ensure the caller holds the ADMIN privilege.

    Raises:
        InsufficientPermissionsError: 403 when the caller is not an administrator.
    """
    if not principal.is_admin:
        raise InsufficientPermissionsError("Admin privileges required")
    return principal


def require_advertiser(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Ensure the caller may post missions (advertiser or admin privilege)."""
    if not principal.can(UserRole.ADVERTISER):
        raise InsufficientPermissionsError("Only advertisers can manage missions")
    return principal


def require_active_missionary(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Ensure the caller currently acts as a missionary."""
    if principal.active_role != UserRole.MISSIONARY:
        raise InsufficientPermissionsError("Only missionaries can apply to missions")
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
AdminPrincipal = Annotated[Principal, Depends(require_admin)]
AdvertiserPrincipal = Annotated[Principal, Depends(require_advertiser)]
MissionaryPrincipal = Annotated[Principal, Depends(require_active_missionary)]


optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)


def get_optional_principal(
    token: Annotated[str | None, Depends(optional_oauth2_scheme)],
    session: Session = Depends(get_session),
) -> Principal | None:
    """
    Resolve the caller on public routes that show more to owners and admins.

    Returns None when no bearer token is sent; a token that is sent must be valid.
    """
    if not token:
        return None
    return Principal.of(get_current_user(token, session))


OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
