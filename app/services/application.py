"""Application service: a missionary asking to join a mission."""

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError

from app.core.roles import Principal
from app.models.application import Application, ApplicationCreate
from app.models.enums import ApplicationStatus, MissionStatus
from app.models.mission import Mission
from app.models.notification import NotificationType
from app.models.thread import Thread
from app.services import notification as notification_service
from app.services import thread as thread_service
from app.services.mission import ensure_owner_or_admin, lock_mission
from app.exceptions import ConflictError, InsufficientPermissionsError, NotFoundError
from app.utils.clock import utcnow
from app.utils.logger import logger


def apply_to_mission(
    session: Session,
    principal: Principal,
    mission_id: int,
    application_in: ApplicationCreate,
) -> Application:
    """
    Apply to an open mission.

    Creates the application and its thread with the mission owner, posts the
    optional message as the first one, then notifies the owner. Applying twice
    to the same mission is a conflict.

    Args:
        session: Database session
        principal: The missionary applying
        mission_id: Mission ID
        application_in: Optional first message

    Returns:
        Application: The pending application with its thread

    Raises:
        NotFoundError: If the mission does not exist
        InsufficientPermissionsError: If the caller owns the mission
        ConflictError: If the mission is not open, hidden or full, or the caller already applied
    """
    mission = lock_mission(session, mission_id)

    if mission.id_owner == principal.id:
        raise InsufficientPermissionsError("Cannot apply to your own mission")
    if mission.status != MissionStatus.OPEN or mission.is_hidden:
        raise ConflictError("Mission is not open", "Mission")
    if not mission.has_free_slot:
        raise ConflictError("All slots taken", "Mission")

    existing = session.exec(
        select(Application).where(
            Application.id_mission == mission_id,
            Application.id_user == principal.id,
        )
    ).first()
    if existing:
        raise ConflictError("Already applied to this mission", "Application")

    message = application_in.message.strip() if application_in.message else None
    application = Application(
        id_mission=mission_id, id_user=principal.id, message=message or None
    )
    session.add(application)
    try:
        with session.begin_nested():
            session.flush()
    except IntegrityError:
        raise ConflictError("Already applied to this mission", "Application")

    thread = Thread(
        id_application=application.id_application,
        id_user_a=mission.id_owner,
        id_user_b=principal.id,
    )
    session.add(thread)
    session.flush()
    if message:
        thread_service.append_message(session, thread, principal.id, message)
    session.refresh(application)

    logger.info(
        f"Application {application.id_application} created by user {principal.id} "
        f"for mission {mission_id}"
    )
    notification_service.notify(
        session,
        mission.id_owner,
        NotificationType.NEW_APPLICATION,
        {
            "id_mission": mission_id,
            "id_application": application.id_application,
            "id_thread": thread.id_thread,
            "mission_title": mission.title,
            "applicant": principal.user.username,
        },
    )
    return application


def _get_and_validate_pending_application(
    session: Session,
    principal: Principal,
    mission_id: int,
    application_id: int,
    action: str,
) -> Application:
    """
    Lock the mission and the application, then check ownership and status.

    Raises:
        NotFoundError: If the mission or application does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
        ConflictError: If the application was already decided
    """
    mission = lock_mission(session, mission_id)
    ensure_owner_or_admin(principal, mission, f"{action} applications")

    application = session.exec(
        select(Application)
        .where(
            Application.id_application == application_id,
            Application.id_mission == mission_id,
        )
        .with_for_update()
    ).first()
    if not application:
        raise NotFoundError("Application", application_id)

    if application.status != ApplicationStatus.PENDING:
        raise ConflictError(
            f"Cannot {action} application in status {application.status.value}",
            "Application",
        )
    return application


def _decide(
    session: Session,
    principal: Principal,
    mission_id: int,
    application_id: int,
    status: ApplicationStatus,
) -> Application:
    action = "accept" if status == ApplicationStatus.ACCEPTED else "reject"
    application = _get_and_validate_pending_application(
        session, principal, mission_id, application_id, action
    )

    application.status = status
    application.decided_at = utcnow()
    session.add(application)
    session.flush()
    logger.info(f"Application {application_id}: pending -> {status.value}")

    notification_service.notify(
        session,
        application.id_user,
        NotificationType.APPLICATION_ACCEPTED
        if status == ApplicationStatus.ACCEPTED
        else NotificationType.APPLICATION_REJECTED,
        {
            "id_mission": mission_id,
            "id_application": application_id,
            "mission_title": application.mission.title,
        },
    )
    return application


def accept_application(
    session: Session, principal: Principal, mission_id: int, application_id: int
) -> Application:
    """
    Accept a pending application. Grants no XP and takes no slot.
    """
    return _decide(
        session, principal, mission_id, application_id, ApplicationStatus.ACCEPTED
    )


def reject_application(
    session: Session, principal: Principal, mission_id: int, application_id: int
) -> Application:
    return _decide(
        session, principal, mission_id, application_id, ApplicationStatus.REJECTED
    )


def get_mission_applications(
    session: Session, principal: Principal, mission_id: int
) -> list[Application]:
    """
    Applications received by a mission, oldest first (owner or admin).

    Raises:
        NotFoundError: If the mission does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
    """
    mission = session.get(Mission, mission_id)
    if not mission:
        raise NotFoundError("Mission", mission_id)
    ensure_owner_or_admin(principal, mission, "list applications")
    statement = (
        select(Application)
        .where(Application.id_mission == mission_id)
        .order_by(Application.id_application)  # type: ignore
    )
    return list(session.exec(statement).all())


def get_user_applications(session: Session, user_id: int) -> list[Application]:
    """Applications sent by a user, newest first."""
    statement = (
        select(Application)
        .where(Application.id_user == user_id)
        .order_by(Application.id_application.desc())  # type: ignore
    )
    return list(session.exec(statement).all())
