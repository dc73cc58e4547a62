"""Mission router: mission CRUD, open/close lifecycle and applications."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import (
    AdvertiserPrincipal,
    CurrentPrincipal,
    MissionaryPrincipal,
    OptionalPrincipal,
)
from app.core.rate_limit import rate_limit
from app.models.application import ApplicationCreate, ApplicationPublic
from app.models.enums import Space, SubmissionStatus
from app.models.mission import (
    MissionCloseResult,
    MissionCreate,
    MissionPublic,
    MissionUpdate,
)
from app.models.rating import RatingPublic
from app.models.submission import SubmissionPublic
from app.services import application as application_service
from app.services import mission as mission_service
from app.services import rating as rating_service
from app.services import submission as submission_service
from app.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/missions", tags=["missions"])


@router.post("/", response_model=MissionPublic, status_code=status.HTTP_201_CREATED)
def create_mission(
    *,
    session: Annotated[Session, Depends(get_session)],
    principal: AdvertiserPrincipal,
    mission_in: MissionCreate,
):
    """
    Post a new mission.

    ### Approval:
    - Advertisers' missions start `pending` until an admin approves them
      (when approval is enabled)
    - Admins' missions open immediately

    ### XP:
    - `base_xp` (default 500) and `bonus_xp` (default 0) are only honoured for admins

    Raises:
        `403 InsufficientPermissionsError`: If the caller cannot post missions.
    """
    mission = mission_service.create_mission(session, principal, mission_in)
    session.commit()
    session.refresh(mission)
    return mission


@router.get("/", response_model=list[MissionPublic])
def read_open_missions(
    session: Annotated[Session, Depends(get_session)],
    space: Space | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """
    List open missions, featured first then newest first.

    Args:
        `space`: Only missions of this space (`pro` or `solidaire`).
        `search`: Text matched against title and description.
    """
    return mission_service.get_open_missions(
        session, space=space, search=search, offset=offset, limit=limit
    )


@router.get("/me", response_model=list[MissionPublic])
def read_my_missions(
    session: Annotated[Session, Depends(get_session)],
    principal: AdvertiserPrincipal,
):
    """Every mission posted by the caller, whatever its status."""
    return mission_service.get_missions_by_owner(session, principal.id)


@router.get("/{mission_id}", response_model=MissionPublic)
def read_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: OptionalPrincipal,
):
    """
    Retrieve a mission.

    Hidden, pending and archived missions are only returned to their owner and to admins.

    Raises:
        `404 NotFoundError`: If the mission does not exist or is not visible.
    """
    return mission_service.get_mission(session, mission_id, principal)


@router.patch("/{mission_id}", response_model=MissionPublic)
def update_mission(
    mission_id: int,
    mission_update: MissionUpdate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Update a mission (owner or admin).

    Raises:
        `400 ValidationError`: If `slots_max` would drop below the slots taken.
        `403 InsufficientPermissionsError`: If the caller is not the owner or an admin.
        `404 NotFoundError`: If the mission does not exist.
    """
    mission = mission_service.update_mission(
        session, principal, mission_id, mission_update
    )
    session.commit()
    session.refresh(mission)
    return mission


@router.delete("/{mission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """Delete a mission with its applications, submissions, ratings and posts."""
    mission_service.delete_mission(session, principal, mission_id)
    session.commit()


@router.patch(
    "/{mission_id}/close",
    response_model=MissionCloseResult,
    dependencies=[Depends(rate_limit("mission-close", 10))],
)
def close_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Close an open mission.

    Every accepted submission without a feed post gets one, following its author's
    feed privacy: `auto` publishes, `ask` creates a draft and notifies the author,
    `never` creates nothing.

    Returns:
        `MissionCloseResult`: The closed mission and the ids of the posts created.

    Raises:
        `400 ConflictError`: If the mission is already closed or not open.
        `403 InsufficientPermissionsError`: If the caller is not the owner or an admin.
        `429 RateLimitedError`: Too many close/reopen requests.
    """
    mission, posts = mission_service.close_mission(session, principal, mission_id)
    post_ids = [post.id_post for post in posts]
    session.commit()
    session.refresh(mission)
    return MissionCloseResult(
        mission=MissionPublic.model_validate(mission), feed_posts_created=post_ids
    )


@router.patch(
    "/{mission_id}/reopen",
    response_model=MissionPublic,
    dependencies=[Depends(rate_limit("mission-reopen", 10))],
)
def reopen_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Reopen a closed mission that still has a free slot.

    Raises:
        `400 ConflictError`: If the mission is not closed or all slots are taken.
    """
    mission = mission_service.reopen_mission(session, principal, mission_id)
    session.commit()
    session.refresh(mission)
    return mission


@router.post(
    "/{mission_id}/apply",
    response_model=ApplicationPublic,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("apply-mission", 5))],
)
def apply_to_mission(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: MissionaryPrincipal,
    application_in: ApplicationCreate | None = None,
):
    """
    Apply to an open mission.

    Opens a thread with the mission owner; the optional message becomes its first message.

    ### Requirements:
    - Active role `missionary`
    - Mission open, visible and not full
    - No earlier application to the same mission

    Raises:
        `400 ConflictError`: Already applied, or mission not open or full.
        `403 InsufficientPermissionsError`: Not acting as a missionary, or own mission.
        `429 RateLimitedError`: Too many applications.
    """
    application = application_service.apply_to_mission(
        session, principal, mission_id, application_in or ApplicationCreate()
    )
    session.commit()
    session.refresh(application)
    return ApplicationPublic.model_validate(application)


@router.get("/{mission_id}/applications", response_model=list[ApplicationPublic])
def read_mission_applications(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """Applications received by a mission (owner or admin)."""
    applications = application_service.get_mission_applications(
        session, principal, mission_id
    )
    return [ApplicationPublic.model_validate(a) for a in applications]


@router.post(
    "/{mission_id}/applications/{application_id}/accept",
    response_model=ApplicationPublic,
    dependencies=[Depends(rate_limit("application-decision", 10))],
)
def accept_application(
    mission_id: int,
    application_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Accept a pending application and notify the applicant.

    Accepting an application grants no XP and takes no slot; both happen when a
    submission is accepted.

    Raises:
        `400 ConflictError`: If the application was already decided.
    """
    application = application_service.accept_application(
        session, principal, mission_id, application_id
    )
    session.commit()
    session.refresh(application)
    return ApplicationPublic.model_validate(application)


@router.post(
    "/{mission_id}/applications/{application_id}/reject",
    response_model=ApplicationPublic,
    dependencies=[Depends(rate_limit("application-decision", 10))],
)
def reject_application(
    mission_id: int,
    application_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """Reject a pending application and notify the applicant."""
    application = application_service.reject_application(
        session, principal, mission_id, application_id
    )
    session.commit()
    session.refresh(application)
    return ApplicationPublic.model_validate(application)


@router.get("/{mission_id}/submissions", response_model=list[SubmissionPublic])
def read_mission_submissions(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    storage: Annotated[StorageService, Depends(get_storage_service)],
    status_filter: Annotated[SubmissionStatus | None, Query(alias="status")] = None,
):
    """Submissions received by a mission (owner or admin), with signed proof URLs."""
    submissions = submission_service.get_mission_submissions(
        session, principal, mission_id, status_filter
    )
    return [submission_service.to_submission_public(s, storage) for s in submissions]


@router.get("/{mission_id}/ratings", response_model=list[RatingPublic])
def read_mission_ratings(
    mission_id: int,
    session: Annotated[Session, Depends(get_session)],
):
    return rating_service.get_mission_ratings(session, mission_id)
