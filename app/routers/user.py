"""User router: profile, active role, XP and social edges."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import CurrentPrincipal
from app.core.rate_limit import rate_limit
from app.models.application import ApplicationPublic
from app.models.follow import EdgeResult
from app.models.thread import MessageCreate, MessagePublic
from app.models.user import (
    ActiveRolePublic,
    ActiveRoleUpdate,
    UserPublic,
    UserUpdate,
)
from app.models.xp_event import XpEventPublic, XpSummary
from app.services import application as application_service
from app.services import follow as follow_service
from app.services import thread as thread_service
from app.services import user as user_service
from app.services import xp_ledger as xp_ledger_service
from app.exceptions import NotFoundError

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
def read_current_user(principal: CurrentPrincipal):
    return principal.user


@router.patch("/me", response_model=UserPublic)
def update_current_user(
    user_update: UserUpdate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Update your display name or default feed privacy.

    `feed_privacy_default` applies to every submission that keeps the `inherit` override:
    - `auto`: posts are published when the mission closes
    - `ask`: posts are created as drafts for you to publish
    - `never`: no post is created
    """
    user = user_service.update_user(session, principal.id, user_update)
    session.commit()
    session.refresh(user)
    return user


@router.get("/me/active-role", response_model=ActiveRolePublic)
def read_active_role(principal: CurrentPrincipal):
    return user_service.get_active_role(principal.user)


@router.post("/me/active-role", response_model=ActiveRolePublic)
def update_active_role(
    role_in: ActiveRoleUpdate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Choose the role you act under.

    Any role at or below your privilege level may be chosen; an advertiser acting as
    `missionary` can apply to missions.

    Raises:
        `403 InsufficientPermissionsError`: If you do not hold the role.
    """
    result = user_service.set_active_role(session, principal, role_in.active_role)
    session.commit()
    return result


@router.get("/me/applications", response_model=list[ApplicationPublic])
def read_my_applications(
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    applications = application_service.get_user_applications(session, principal.id)
    return [ApplicationPublic.model_validate(a) for a in applications]


@router.get("/me/xp", response_model=XpSummary)
def read_my_xp(
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """Your XP counters with the level reached in general, pro and solidaire."""
    return xp_ledger_service.get_xp_summary(session, principal.id)


@router.get("/me/xp/history", response_model=list[XpEventPublic])
def read_my_xp_history(
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    """Every XP change of your account, newest first."""
    return xp_ledger_service.get_xp_history(
        session, principal.id, offset=offset, limit=limit
    )


@router.get("/{user_id}", response_model=UserPublic)
def read_user(user_id: int, session: Annotated[Session, Depends(get_session)]):
    user = user_service.get_user(session, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


@router.get("/{user_id}/stats", response_model=XpSummary)
def read_user_stats(user_id: int, session: Annotated[Session, Depends(get_session)]):
    return xp_ledger_service.get_xp_summary(session, user_id)


@router.post(
    "/{user_id}/follow",
    response_model=EdgeResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("follow", 10))],
)
def follow_user(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Follow a user. The first follow of a user earns a little XP.

    Raises:
        `400 ConflictError`: Already following, or following 50 users already.
        `400 ValidationError`: Following yourself.
    """
    result = follow_service.follow_user(session, principal, user_id)
    session.commit()
    return result


@router.delete(
    "/{user_id}/follow",
    response_model=EdgeResult,
    dependencies=[Depends(rate_limit("follow", 10))],
)
def unfollow_user(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    result = follow_service.unfollow_user(session, principal, user_id)
    session.commit()
    return result


@router.post(
    "/{user_id}/favorite",
    response_model=EdgeResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("follow", 10))],
)
def favorite_advertiser(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Add an advertiser to your favorites.

    Raises:
        `400 ConflictError`: Already a favorite, or 50 favorites already.
        `400 ValidationError`: The user is not an advertiser.
    """
    result = follow_service.favorite_advertiser(session, principal, user_id)
    session.commit()
    return result


@router.delete(
    "/{user_id}/favorite",
    response_model=EdgeResult,
    dependencies=[Depends(rate_limit("follow", 10))],
)
def unfavorite_advertiser(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    result = follow_service.unfavorite_advertiser(session, principal, user_id)
    session.commit()
    return result


@router.post(
    "/{user_id}/message",
    response_model=MessagePublic,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("message", 30))],
)
def send_direct_message(
    user_id: int,
    message_in: MessageCreate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """Message a user directly; the conversation thread is reused across calls."""
    message = thread_service.send_direct_message(session, principal, user_id, message_in)
    session.commit()
    session.refresh(message)
    return message
