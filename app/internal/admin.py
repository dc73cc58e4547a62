"""Administration surface: mission moderation, XP tools and feed moderation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import require_admin
from app.core.rate_limit import rate_limit
from app.models.enums import MissionStatus
from app.models.feed import (
    FeedCommentHide,
    FeedCommentPublic,
    FeedPostHide,
    FeedPostPublic,
)
from app.models.mission import (
    MissionFeature,
    MissionHide,
    MissionPublic,
    MissionReject,
)
from app.models.user import RoleUpdate, UserPublic
from app.models.xp_event import XpBonusRequest, XpEventPublic, XpReconciliation
from app.services import feed as feed_service
from app.services import mission as mission_service
from app.services import user as user_service
from app.services import xp_ledger as xp_ledger_service

router = APIRouter(
    prefix="/internal/admin",
    tags=["Internal Admin"],
    include_in_schema=False,
    dependencies=[Depends(require_admin), Depends(rate_limit("admin", 30))],
)


@router.get("/missions", response_model=list[MissionPublic])
def read_missions_by_status(
    session: Annotated[Session, Depends(get_session)],
    status: MissionStatus = MissionStatus.PENDING,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    """Moderation queue; pending missions by default."""
    return mission_service.get_missions_by_status(
        session, status, offset=offset, limit=limit
    )


@router.post("/missions/{mission_id}/approve", response_model=MissionPublic)
def approve_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
):
    mission = mission_service.approve_mission(session, mission_id)
    session.commit()
    session.refresh(mission)
    return mission


@router.post("/missions/{mission_id}/reject", response_model=MissionPublic)
def reject_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    reject_in: MissionReject | None = None,
):
    """Archive a mission; the reason is kept on it and sent to the owner."""
    reason = reject_in.reason if reject_in else None
    mission = mission_service.reject_mission(session, mission_id, reason)
    session.commit()
    session.refresh(mission)
    return mission


@router.patch("/missions/{mission_id}/hide", response_model=MissionPublic)
def hide_mission(
    mission_id: int,
    hide_in: MissionHide,
    session: Annotated[Session, Depends(get_session)],
):
    mission = mission_service.set_mission_hidden(session, mission_id, hide_in.hidden)
    session.commit()
    session.refresh(mission)
    return mission


@router.patch("/missions/{mission_id}/feature", response_model=MissionPublic)
def feature_mission(
    mission_id: int,
    feature_in: MissionFeature,
    session: Annotated[Session, Depends(get_session)],
):
    mission = mission_service.set_mission_featured(
        session, mission_id, feature_in.featured
    )
    session.commit()
    session.refresh(mission)
    return mission


@router.post(
    "/users/{user_id}/xp-bonus",
    response_model=XpEventPublic,
    dependencies=[Depends(rate_limit("admin-xp-bonus", 10))],
)
def grant_xp_bonus(
    user_id: int,
    bonus_in: XpBonusRequest,
    session: Annotated[Session, Depends(get_session)],
):
    """
    Adjust a user's XP by hand; recorded in the ledger as `bonus_manual`.

    Raises:
        `400 ValidationError`: Zero delta, or a counter would become negative.
    """
    event = xp_ledger_service.grant_manual_bonus(session, user_id, bonus_in)
    session.commit()
    session.refresh(event)
    return event


@router.get("/users/{user_id}/xp/reconcile", response_model=XpReconciliation)
def reconcile_user_xp(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
):
    """Compare the stored XP counters with the sum of the ledger."""
    return xp_ledger_service.reconcile_user_xp(session, user_id)


@router.post("/users/{user_id}/xp/rebuild", response_model=XpReconciliation)
def rebuild_user_xp(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
):
    """Reset the XP counters to the ledger totals; returns what was found before."""
    report = xp_ledger_service.rebuild_user_xp(session, user_id)
    session.commit()
    return report


@router.patch("/users/{user_id}/role", response_model=UserPublic)
def update_user_role(
    user_id: int,
    role_in: RoleUpdate,
    session: Annotated[Session, Depends(get_session)],
):
    user = user_service.set_user_role(session, user_id, role_in.role)
    session.commit()
    session.refresh(user)
    return user


@router.patch("/feed/posts/{post_id}/hide", response_model=FeedPostPublic)
def hide_feed_post(
    post_id: int,
    hide_in: FeedPostHide,
    session: Annotated[Session, Depends(get_session)],
):
    post = feed_service.set_post_hidden(session, post_id, hide_in.hidden)
    session.commit()
    session.refresh(post)
    return post


@router.patch("/feed/comments/{comment_id}/hide", response_model=FeedCommentPublic)
def hide_feed_comment(
    comment_id: int,
    hide_in: FeedCommentHide,
    session: Annotated[Session, Depends(get_session)],
):
    comment = feed_service.set_comment_hidden(session, comment_id, hide_in.hidden)
    session.commit()
    session.refresh(comment)
    return comment
