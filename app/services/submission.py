"""Submission service: proof of completion and its one-time review.

Acceptance is the only place XP is granted and slots are consumed. The mission
row is locked before the submission row in every transition.
"""

from sqlmodel import Session, select

from app.core.roles import Principal
from app.models.enums import MessageType, MissionStatus, SubmissionStatus, XpEventKind
from app.models.mission import Mission
from app.models.notification import NotificationType
from app.models.submission import (
    RewardDelivery,
    Submission,
    SubmissionAccept,
    SubmissionCreate,
    SubmissionPublic,
)
from app.models.thread import Thread
from app.models.user import User
from app.services import feed as feed_service
from app.services import notification as notification_service
from app.services import thread as thread_service
from app.services import xp as xp_service
from app.services import xp_ledger as xp_ledger_service
from app.services.mission import (
    close_locked_mission,
    ensure_owner_or_admin,
    lock_mission,
)
from app.services.storage import StorageService
from app.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)
from app.utils.clock import utcnow
from app.utils.logger import logger


def _lock_submission(session: Session, submission_id: int) -> Submission:
    submission = session.exec(
        select(Submission)
        .where(Submission.id_submission == submission_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if not submission:
        raise NotFoundError("Submission", submission_id)
    return submission


def _lock_for_review(
    session: Session, principal: Principal, submission_id: int, action: str
) -> tuple[Submission, Mission]:
    """
    Lock the mission, then the submission, and check the caller may review it.

    Raises:
        NotFoundError: If the submission does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
    """
    submission = session.get(Submission, submission_id)
    if not submission:
        raise NotFoundError("Submission", submission_id)

    mission = lock_mission(session, submission.id_mission)
    ensure_owner_or_admin(principal, mission, action)
    return _lock_submission(session, submission_id), mission


def create_submission(
    session: Session, principal: Principal, submission_in: SubmissionCreate
) -> Submission:
    """
    Submit proof of completion for an open mission.

    Args:
        session: Database session
        principal: The submitting missionary
        submission_in: Proof URL and/or screenshot paths, comments, feed privacy override

    Returns:
        Submission: The pending submission

    Raises:
        NotFoundError: If the mission does not exist
        InsufficientPermissionsError: If the caller owns the mission
        ConflictError: If the mission is not open, hidden or full, or the caller
            already has a pending or accepted submission for it
    """
    mission = lock_mission(session, submission_in.id_mission)

    if mission.id_owner == principal.id:
        raise InsufficientPermissionsError("Cannot submit to your own mission")
    if mission.status != MissionStatus.OPEN or mission.is_hidden:
        raise ConflictError("Mission is not open", "Mission")
    if not mission.has_free_slot:
        raise ConflictError("All slots taken", "Mission")

    active = session.exec(
        select(Submission).where(
            Submission.id_mission == mission.id_mission,
            Submission.id_user == principal.id,
            Submission.status.in_(  # type: ignore
                [SubmissionStatus.PENDING, SubmissionStatus.ACCEPTED]
            ),
        )
    ).first()
    if active:
        raise ConflictError(
            f"A {active.status.value} submission already exists for this mission",
            "Submission",
        )

    submission = Submission(
        id_mission=mission.id_mission,
        id_user=principal.id,
        proof_url=submission_in.proof_url.strip() if submission_in.proof_url else None,
        proof_shots=[shot.strip() for shot in submission_in.proof_shots if shot.strip()],
        comments=submission_in.comments,
        feed_privacy_override=submission_in.feed_privacy_override,
    )
    session.add(submission)
    session.flush()
    logger.info(
        f"Submission {submission.id_submission} created by user {principal.id} "
        f"for mission {mission.id_mission}"
    )
    return submission


def _open_submission_thread(
    session: Session, submission: Submission, mission: Mission
) -> Thread:
    thread = session.exec(
        select(Thread).where(Thread.id_submission == submission.id_submission)
    ).first()
    if thread:
        return thread

    thread = Thread(
        id_submission=submission.id_submission,
        id_user_a=mission.id_owner,
        id_user_b=submission.id_user,
    )
    session.add(thread)
    session.flush()
    return thread


def accept_submission(
    session: Session,
    principal: Principal,
    submission_id: int,
    accept_in: SubmissionAccept | None = None,
) -> Submission:
    """
    Accept a pending submission.

    In one transaction: the submission becomes ACCEPTED, the mission takes one
    slot, the submitter gets the mission XP (counters plus one ledger event),
    the submission thread is opened and receives the escrowed reward, and the
    submitter is notified. The feed post is derived from the submitter's
    effective privacy right away, and a mission filled by this acceptance is
    closed.

    Raises:
        NotFoundError: If the submission does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
        ConflictError: If the submission was already decided, the mission is
            neither open nor closed, or all slots are taken
    """
    submission, mission = _lock_for_review(
        session, principal, submission_id, "accept submissions"
    )

    if submission.status != SubmissionStatus.PENDING:
        raise ConflictError("Submission already decided", "Submission")
    if mission.status not in (MissionStatus.OPEN, MissionStatus.CLOSED):
        raise ConflictError(
            f"Cannot accept submissions of a {mission.status.value} mission", "Mission"
        )
    if not mission.has_free_slot:
        raise ConflictError("All slots taken", "Mission")

    now = utcnow()
    submission.status = SubmissionStatus.ACCEPTED
    submission.decision_at = now
    if accept_in and accept_in.reward_media_path:
        submission.reward_media_path = accept_in.reward_media_path
    mission.slots_taken += 1
    session.add(submission)
    session.add(mission)
    session.flush()
    logger.info(
        f"Submission {submission_id}: pending -> accepted "
        f"(mission {mission.id_mission} slots {mission.slots_taken}/{mission.slots_max})"
    )

    submitter = session.exec(
        select(User).where(User.id_user == submission.id_user).with_for_update()
    ).one()
    grant = xp_service.xp_for_acceptance(
        mission.base_xp, mission.bonus_xp, mission.space
    )
    xp_ledger_service.record_xp(
        session,
        submitter,
        XpEventKind.MISSION_ACCEPTED,
        grant.global_xp,
        space=mission.space,
        mission_id=mission.id_mission,
        description=f"Mission accepted: {mission.title}",
    )
    submitter.last_accepted_at = now
    session.add(submitter)

    thread = _open_submission_thread(session, submission, mission)
    if mission.reward_escrow_content:
        thread_service.append_message(
            session,
            thread,
            mission.id_owner,
            mission.reward_escrow_content,
            MessageType.REWARD,
        )

    feed_service.create_post_for_accepted_submission(session, submission)
    if mission.status == MissionStatus.OPEN and not mission.has_free_slot:
        close_locked_mission(session, mission)

    notification_service.notify(
        session,
        submission.id_user,
        NotificationType.SUBMISSION_ACCEPTED,
        {
            "id_mission": mission.id_mission,
            "id_submission": submission_id,
            "id_thread": thread.id_thread,
            "mission_title": mission.title,
            "xp": grant.global_xp,
        },
    )
    session.refresh(submission)
    return submission


def refuse_submission(
    session: Session, principal: Principal, submission_id: int, reason: str
) -> Submission:
    """
    Refuse a pending submission and tell the submitter why.

    Raises:
        NotFoundError: If the submission does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
        ValidationError: If the stripped reason is not 2 to 500 characters
        ConflictError: If the submission was already decided
    """
    submission, mission = _lock_for_review(
        session, principal, submission_id, "refuse submissions"
    )
    if submission.status != SubmissionStatus.PENDING:
        raise ConflictError("Submission already decided", "Submission")

    reason = reason.strip()
    if not 2 <= len(reason) <= 500:
        raise ValidationError("Reason must be 2 to 500 characters", field="reason")

    submission.status = SubmissionStatus.REFUSED
    submission.reason = reason
    submission.decision_at = utcnow()
    session.add(submission)
    session.flush()
    logger.info(f"Submission {submission_id}: pending -> refused")

    notification_service.notify(
        session,
        submission.id_user,
        NotificationType.SUBMISSION_REJECTED,
        {
            "id_mission": mission.id_mission,
            "id_submission": submission_id,
            "mission_title": mission.title,
            "reason": submission.reason,
        },
    )
    return submission


def deliver_reward(
    session: Session,
    principal: Principal,
    submission_id: int,
    reward_in: RewardDelivery,
) -> Submission:
    """
    Record that the reward of an accepted submission was handed over.

    Marking again overwrites the note, media and timestamp.

    Raises:
        NotFoundError: If the submission does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
        ConflictError: If the submission is not accepted
    """
    submission, mission = _lock_for_review(
        session, principal, submission_id, "deliver rewards"
    )
    if submission.status != SubmissionStatus.ACCEPTED:
        raise ConflictError("Reward requires an accepted submission", "Submission")

    submission.reward_delivered_at = utcnow()
    submission.reward_note = reward_in.reward_note
    if reward_in.reward_media_path:
        submission.reward_media_path = reward_in.reward_media_path
    session.add(submission)
    session.flush()

    notification_service.notify(
        session,
        submission.id_user,
        NotificationType.REWARD_DELIVERED,
        {
            "id_mission": mission.id_mission,
            "id_submission": submission_id,
            "mission_title": mission.title,
        },
    )
    return submission


def get_submission(
    session: Session, principal: Principal, submission_id: int
) -> Submission:
    """
    Retrieve a submission for its author, the mission owner or an admin.

    Raises:
        NotFoundError: If the submission does not exist
        InsufficientPermissionsError: If the caller may not see it
    """
    submission = session.get(Submission, submission_id)
    if not submission:
        raise NotFoundError("Submission", submission_id)
    if submission.id_user != principal.id and not principal.owns_or_admin(
        submission.mission.id_owner
    ):
        raise InsufficientPermissionsError("Not allowed to view this submission")
    return submission


def get_mission_submissions(
    session: Session,
    principal: Principal,
    mission_id: int,
    status: SubmissionStatus | None = None,
) -> list[Submission]:
    """
    Submissions received by a mission, oldest first (owner or admin).

    Raises:
        NotFoundError: If the mission does not exist
        InsufficientPermissionsError: If the caller is not the owner or an admin
    """
    mission = session.get(Mission, mission_id)
    if not mission:
        raise NotFoundError("Mission", mission_id)
    ensure_owner_or_admin(principal, mission, "list submissions")

    statement = select(Submission).where(Submission.id_mission == mission_id)
    if status is not None:
        statement = statement.where(Submission.status == status)
    statement = statement.order_by(Submission.id_submission)  # type: ignore
    return list(session.exec(statement).all())


def get_user_submissions(session: Session, user_id: int) -> list[Submission]:
    """Submissions sent by a user, newest first."""
    statement = (
        select(Submission)
        .where(Submission.id_user == user_id)
        .order_by(Submission.id_submission.desc())  # type: ignore
    )
    return list(session.exec(statement).all())


def to_submission_public(
    submission: Submission, storage: StorageService
) -> SubmissionPublic:
    """Public view of a submission with stored paths turned into signed URLs."""
    return SubmissionPublic.model_validate(
        submission,
        update={
            "proof_shot_urls": storage.signed_urls(submission.proof_shots or []),
            "reward_media_url": storage.signed_url(submission.reward_media_path),
        },
    )
