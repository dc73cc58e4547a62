"""Submission router: proof of completion and its review."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import CurrentPrincipal, MissionaryPrincipal
from app.core.rate_limit import rate_limit
from app.models.submission import (
    RewardDelivery,
    SubmissionAccept,
    SubmissionCreate,
    SubmissionPublic,
    SubmissionRefuse,
)
from app.services import submission as submission_service
from app.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/submissions", tags=["submissions"])

Storage = Annotated[StorageService, Depends(get_storage_service)]


@router.post(
    "/",
    response_model=SubmissionPublic,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("submission", 10))],
)
def create_submission(
    *,
    session: Annotated[Session, Depends(get_session)],
    principal: MissionaryPrincipal,
    storage: Storage,
    submission_in: SubmissionCreate,
):
    """
    Submit proof of completion for an open mission.

    ### Proof:
    - `proof_url`: an http(s) link, and/or
    - `proof_shots`: up to 3 object storage paths of screenshots

    ### Feed privacy:
    `feed_privacy_override` (`inherit`, `auto`, `ask`, `never`) decides what happens
    to the feed post derived from this submission once it is accepted.

    Raises:
        `400 ConflictError`: Mission not open or full, or a pending/accepted submission exists.
        `400 ValidationError`: No proof given.
        `429 RateLimitedError`: Too many submissions.
    """
    submission = submission_service.create_submission(session, principal, submission_in)
    session.commit()
    session.refresh(submission)
    return submission_service.to_submission_public(submission, storage)


@router.get("/me", response_model=list[SubmissionPublic])
def read_my_submissions(
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    storage: Storage,
):
    submissions = submission_service.get_user_submissions(session, principal.id)
    return [submission_service.to_submission_public(s, storage) for s in submissions]


@router.get("/{submission_id}", response_model=SubmissionPublic)
def read_submission(
    submission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    storage: Storage,
):
    """
    Retrieve a submission (its author, the mission owner or an admin).

    Screenshot and reward media paths are returned with temporary signed URLs.
    """
    submission = submission_service.get_submission(session, principal, submission_id)
    return submission_service.to_submission_public(submission, storage)


@router.post(
    "/{submission_id}/accept",
    response_model=SubmissionPublic,
    dependencies=[Depends(rate_limit("submission-decision", 10))],
)
def accept_submission(
    submission_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    storage: Storage,
    accept_in: SubmissionAccept | None = None,
):
    """
    Accept a pending submission (mission owner or admin).

    ### Effects (one transaction):
    - The mission takes one slot; a mission filled this way is closed
    - The submitter receives the mission XP, recorded in the XP ledger
    - A thread with the submitter is opened and receives the escrowed reward, if any
    - The submitter is notified

    Raises:
        `400 ConflictError`: Already decided, or all slots taken.
        `403 InsufficientPermissionsError`: Not the mission owner or an admin.
    """
    submission = submission_service.accept_submission(
        session, principal, submission_id, accept_in
    )
    session.commit()
    session.refresh(submission)
    return submission_service.to_submission_public(submission, storage)


@router.post(
    "/{submission_id}/refuse",
    response_model=SubmissionPublic,
    dependencies=[Depends(rate_limit("submission-decision", 10))],
)
def refuse_submission(
    submission_id: int,
    refuse_in: SubmissionRefuse,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    storage: Storage,
):
    """
    Refuse a pending submission with a reason (2 to 500 characters).

    Raises:
        `400 ConflictError`: If the submission was already decided.
    """
    submission = submission_service.refuse_submission(
        session, principal, submission_id, refuse_in.reason
    )
    session.commit()
    session.refresh(submission)
    return submission_service.to_submission_public(submission, storage)


@router.post("/{submission_id}/reward", response_model=SubmissionPublic)
def deliver_reward(
    submission_id: int,
    reward_in: RewardDelivery,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    storage: Storage,
):
    """
    Record the delivery of the reward of an accepted submission.

    Calling it again updates the note and media.

    Raises:
        `400 ConflictError`: If the submission is not accepted.
    """
    submission = submission_service.deliver_reward(
        session, principal, submission_id, reward_in
    )
    session.commit()
    session.refresh(submission)
    return submission_service.to_submission_public(submission, storage)
