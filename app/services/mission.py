"""Mission service: CRUD, moderation and the open/closed lifecycle."""

from sqlmodel import Session, select, or_

from app.core.config import get_settings
from app.core.roles import Principal
from app.models.enums import MissionStatus, Space, SubmissionStatus
from app.models.feed import FeedPost
from app.models.mission import Mission, MissionCreate, MissionUpdate
from app.models.notification import NotificationType
from app.models.submission import Submission
from app.services import feed as feed_service
from app.services import notification as notification_service
from app.services.xp import DEFAULT_BASE_XP
from app.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)
from app.utils.logger import logger

_REQUIRED_MISSION_FIELDS = (
    "title",
    "description",
    "criteria",
    "slots_max",
    "base_xp",
    "bonus_xp",
)


def lock_mission(session: Session, mission_id: int) -> Mission:
    """
    Re-read a mission with a row lock for the rest of the transaction.

    Raises:
        NotFoundError: If the mission does not exist.
    """
    mission = session.exec(
        select(Mission)
        .where(Mission.id_mission == mission_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if not mission:
        raise NotFoundError("Mission", mission_id)
    return mission


def ensure_owner_or_admin(principal: Principal, mission: Mission, action: str) -> None:
    """
    Raises:
        InsufficientPermissionsError: If the caller neither owns the mission nor is an admin.
    """
    if not principal.owns_or_admin(mission.id_owner):
        raise InsufficientPermissionsError(f"Only the mission owner can {action}")


def create_mission(
    session: Session, principal: Principal, mission_in: MissionCreate
) -> Mission:
    """
    Create a mission owned by the caller.

    Missions from advertisers wait for admin approval when
    MISSION_REQUIRES_APPROVAL is set; missions from admins open right away.
    Only admins may choose the XP reward, everyone else gets the defaults.

    Parameters:
        session: Database session.
        principal: The advertiser or admin creating the mission.
        mission_in: Mission creation data.

    Returns:
        Mission: The flushed mission.
    """
    data = mission_in.model_dump(exclude={"base_xp", "bonus_xp"})
    mission = Mission.model_validate(data, update={"id_owner": principal.id})

    if principal.is_admin:
        mission.base_xp = (
            mission_in.base_xp if mission_in.base_xp is not None else DEFAULT_BASE_XP
        )
        mission.bonus_xp = mission_in.bonus_xp or 0

    requires_approval = get_settings().MISSION_REQUIRES_APPROVAL
    mission.status = (
        MissionStatus.PENDING
        if requires_approval and not principal.is_admin
        else MissionStatus.OPEN
    )

    session.add(mission)
    session.flush()
    logger.info(
        f"Mission {mission.id_mission} created by user {principal.id} "
        f"(status={mission.status.value})"
    )
    return mission


def _is_publicly_visible(mission: Mission) -> bool:
    return not mission.is_hidden and mission.status in (
        MissionStatus.OPEN,
        MissionStatus.CLOSED,
    )


def get_mission(
    session: Session, mission_id: int, principal: Principal | None = None
) -> Mission:
    """
    Retrieve a mission visible to the caller.

    Hidden, pending and archived missions are only visible to their owner and
    to admins; to everyone else they do not exist.

    Raises:
        NotFoundError: If the mission does not exist or is not visible.
    """
    mission = session.get(Mission, mission_id)
    if not mission:
        raise NotFoundError("Mission", mission_id)
    if _is_publicly_visible(mission):
        return mission
    if principal is not None and principal.owns_or_admin(mission.id_owner):
        return mission
    raise NotFoundError("Mission", mission_id)


def get_open_missions(
    session: Session,
    *,
    space: Space | None = None,
    search: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> list[Mission]:
    """
    List open, non-hidden missions, featured ones first then newest first.

    Parameters:
        space: Restrict to one space.
        search: Case-insensitive text matched against title and description.
    """
    statement = select(Mission).where(
        Mission.status == MissionStatus.OPEN,
        Mission.is_hidden == False,  # noqa: E712
    )
    if space is not None:
        statement = statement.where(Mission.space == space)
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                Mission.title.ilike(pattern),  # type: ignore
                Mission.description.ilike(pattern),  # type: ignore
            )
        )
    statement = (
        statement.order_by(
            Mission.is_featured.desc(),  # type: ignore
            Mission.created_at.desc(),  # type: ignore
            Mission.id_mission.desc(),  # type: ignore
        )
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def get_missions_by_owner(session: Session, owner_id: int) -> list[Mission]:
    """All missions posted by a user, newest first, whatever their status."""
    statement = (
        select(Mission)
        .where(Mission.id_owner == owner_id)
        .order_by(Mission.created_at.desc(), Mission.id_mission.desc())  # type: ignore
    )
    return list(session.exec(statement).all())


def update_mission(
    session: Session,
    principal: Principal,
    mission_id: int,
    mission_update: MissionUpdate,
) -> Mission:
    """
    Update the editable fields of a mission.

    Status and slot usage only change through lifecycle operations. XP fields
    are admin-only. Optional fields sent as null are cleared.

    Raises:
        NotFoundError: If the mission does not exist.
        InsufficientPermissionsError: If the caller is not the owner or an admin,
            or a non-admin tries to change the XP reward.
        ValidationError: If a required field is set to null or slots_max would
            drop below the slots already taken.
    """
    mission = lock_mission(session, mission_id)
    ensure_owner_or_admin(principal, mission, "update this mission")

    update_data = mission_update.model_dump(exclude_unset=True)
    for key in _REQUIRED_MISSION_FIELDS:
        if key in update_data and update_data[key] is None:
            raise ValidationError(f"{key} cannot be cleared", field=key)
    if not principal.is_admin and ("base_xp" in update_data or "bonus_xp" in update_data):
        raise InsufficientPermissionsError("Only admins can change mission XP")

    slots_max = update_data.get("slots_max")
    if slots_max is not None and slots_max < mission.slots_taken:
        raise ValidationError(
            f"slots_max cannot be lower than the {mission.slots_taken} slots already taken",
            field="slots_max",
        )

    for key, value in update_data.items():
        setattr(mission, key, value)

    session.add(mission)
    session.flush()
    return mission


def delete_mission(session: Session, principal: Principal, mission_id: int) -> None:
    """
    Delete a mission; its applications, submissions, ratings and posts go with it.

    Raises:
        NotFoundError: If the mission does not exist.
        InsufficientPermissionsError: If the caller is not the owner or an admin.
    """
    mission = lock_mission(session, mission_id)
    ensure_owner_or_admin(principal, mission, "delete this mission")
    session.delete(mission)
    session.flush()
    logger.info(f"Mission {mission_id} deleted by user {principal.id}")


def approve_mission(session: Session, mission_id: int) -> Mission:
    """
    Open a mission waiting for approval (PENDING -> OPEN).

    Raises:
        NotFoundError: If the mission does not exist.
        ConflictError: If the mission is not pending.
    """
    mission = lock_mission(session, mission_id)
    if mission.status != MissionStatus.PENDING:
        raise ConflictError(
            f"Cannot approve mission in status {mission.status.value}", "Mission"
        )

    mission.status = MissionStatus.OPEN
    mission.rejection_reason = None
    session.add(mission)
    session.flush()
    logger.info(f"Mission {mission_id}: pending -> open")

    notification_service.notify(
        session,
        mission.id_owner,
        NotificationType.MISSION_APPROVED,
        {"id_mission": mission.id_mission, "mission_title": mission.title},
    )
    return mission


def reject_mission(
    session: Session, mission_id: int, reason: str | None = None
) -> Mission:
    """
    Archive a mission (any status -> ARCHIVED) and keep the reason on it.

    Raises:
        NotFoundError: If the mission does not exist.
        ConflictError: If the mission is already archived.
    """
    mission = lock_mission(session, mission_id)
    if mission.status == MissionStatus.ARCHIVED:
        raise ConflictError("Mission is already archived", "Mission")

    previous = mission.status
    mission.status = MissionStatus.ARCHIVED
    mission.rejection_reason = reason.strip() if reason and reason.strip() else None
    session.add(mission)
    session.flush()
    logger.info(f"Mission {mission_id}: {previous.value} -> archived")

    notification_service.notify(
        session,
        mission.id_owner,
        NotificationType.MISSION_REJECTED,
        {
            "id_mission": mission.id_mission,
            "mission_title": mission.title,
            "reason": mission.rejection_reason,
        },
    )
    return mission


def set_mission_hidden(session: Session, mission_id: int, hidden: bool) -> Mission:
    mission = lock_mission(session, mission_id)
    mission.is_hidden = hidden
    session.add(mission)
    session.flush()
    return mission


def set_mission_featured(session: Session, mission_id: int, featured: bool) -> Mission:
    mission = lock_mission(session, mission_id)
    mission.is_featured = featured
    session.add(mission)
    session.flush()
    return mission


def close_locked_mission(session: Session, mission: Mission) -> list[FeedPost]:
    """
    Close an already locked OPEN mission and run the feed sweep.

    Every accepted submission without a post gets one according to its
    author's effective feed privacy.

    Returns:
        list[FeedPost]: The posts created by the sweep.
    """
    mission.status = MissionStatus.CLOSED
    session.add(mission)
    session.flush()
    logger.info(f"Mission {mission.id_mission}: open -> closed")

    accepted = session.exec(
        select(Submission)
        .where(
            Submission.id_mission == mission.id_mission,
            Submission.status == SubmissionStatus.ACCEPTED,
        )
        .order_by(Submission.id_submission)  # type: ignore
    ).all()

    created = []
    for submission in accepted:
        post = feed_service.create_post_for_accepted_submission(session, submission)
        if post:
            created.append(post)
    return created


def close_mission(
    session: Session, principal: Principal, mission_id: int
) -> tuple[Mission, list[FeedPost]]:
    """
    Close a mission (OPEN -> CLOSED).

    Raises:
        NotFoundError: If the mission does not exist.
        InsufficientPermissionsError: If the caller is not the owner or an admin.
        ConflictError: If the mission is already closed or not open.
    """
    mission = lock_mission(session, mission_id)
    ensure_owner_or_admin(principal, mission, "close this mission")

    if mission.status == MissionStatus.CLOSED:
        raise ConflictError("Mission is already closed", "Mission")
    if mission.status != MissionStatus.OPEN:
        raise ConflictError(
            f"Cannot close mission in status {mission.status.value}", "Mission"
        )

    posts = close_locked_mission(session, mission)
    return mission, posts


def reopen_mission(session: Session, principal: Principal, mission_id: int) -> Mission:
    """
    Reopen a closed mission (CLOSED -> OPEN) while it still has a free slot.

    Raises:
        NotFoundError: If the mission does not exist.
        InsufficientPermissionsError: If the caller is not the owner or an admin.
        ConflictError: If the mission is not closed or all slots are taken.
    """
    mission = lock_mission(session, mission_id)
    ensure_owner_or_admin(principal, mission, "reopen this mission")

    if mission.status != MissionStatus.CLOSED:
        raise ConflictError(
            f"Cannot reopen mission in status {mission.status.value}", "Mission"
        )
    if not mission.has_free_slot:
        raise ConflictError("All slots taken", "Mission")

    mission.status = MissionStatus.OPEN
    session.add(mission)
    session.flush()
    logger.info(f"Mission {mission_id}: closed -> open")
    return mission


def get_missions_by_status(
    session: Session, status: MissionStatus, *, offset: int = 0, limit: int = 50
) -> list[Mission]:
    """Missions in one status, oldest first (moderation queue)."""
    statement = (
        select(Mission)
        .where(Mission.status == status)
        .order_by(Mission.created_at, Mission.id_mission)  # type: ignore
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())
