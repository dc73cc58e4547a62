"""Rating service: missionaries rating the advertiser of an accepted mission."""

from sqlmodel import Session, select

from app.core.roles import Principal
from app.models.enums import SubmissionStatus
from app.models.mission import Mission
from app.models.rating import AdvertiserRatingSummary, Rating, RatingCreate
from app.models.submission import Submission
from app.models.user import User
from app.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
)
from app.utils.clock import utcnow
from app.utils.logger import logger


def rate_mission(
    session: Session, principal: Principal, rating_in: RatingCreate
) -> Rating:
    """
    Create or update the caller's rating of a mission's advertiser.

    The rating row and the advertiser's running average are written in the
    same transaction. A first rating adds to the aggregate; a new score
    replaces the old one without changing the count.

    Parameters:
        session: Database session.
        principal: The missionary whose submission was accepted.
        rating_in: Mission, submission, score (1-5) and optional comment.

    Returns:
        Rating: The created or updated rating.

    Raises:
        NotFoundError: If the mission or submission does not exist.
        InsufficientPermissionsError: If the caller did not author the submission
            or owns the mission.
        ConflictError: If the submission is not accepted or belongs to another mission.
    """
    mission = session.get(Mission, rating_in.id_mission)
    if not mission:
        raise NotFoundError("Mission", rating_in.id_mission)
    submission = session.get(Submission, rating_in.id_submission)
    if not submission:
        raise NotFoundError("Submission", rating_in.id_submission)

    if submission.id_user != principal.id:
        raise InsufficientPermissionsError("Only the submitter can rate this mission")
    if mission.id_owner == principal.id:
        raise InsufficientPermissionsError("Cannot rate your own mission")
    if submission.id_mission != mission.id_mission:
        raise ConflictError("Submission does not belong to this mission")
    if submission.status != SubmissionStatus.ACCEPTED:
        raise ConflictError("Only accepted submissions can be rated")

    advertiser = session.exec(
        select(User)
        .where(User.id_user == mission.id_owner)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).one()
    rating = session.exec(
        select(Rating)
        .where(
            Rating.id_rater == principal.id,
            Rating.id_mission == mission.id_mission,
        )
        .with_for_update()
    ).first()

    count = advertiser.rating_count
    if rating is None:
        advertiser.rating_avg = (advertiser.rating_avg * count + rating_in.score) / (
            count + 1
        )
        advertiser.rating_count = count + 1
        rating = Rating(
            id_mission=mission.id_mission,
            id_submission=submission.id_submission,
            id_rater=principal.id,
            id_advertiser=mission.id_owner,
            score=rating_in.score,
            comment=rating_in.comment,
        )
    else:
        if count > 0:
            advertiser.rating_avg = (
                advertiser.rating_avg * count - rating.score + rating_in.score
            ) / count
        rating.score = rating_in.score
        rating.comment = rating_in.comment
        rating.id_submission = submission.id_submission
        rating.updated_at = utcnow()

    session.add(rating)
    session.add(advertiser)
    session.flush()
    logger.info(
        f"Rating {rating.id_rating} of advertiser {advertiser.id_user} by user "
        f"{principal.id}: {rating.score} (avg={advertiser.rating_avg:.2f}, "
        f"count={advertiser.rating_count})"
    )
    return rating


def get_advertiser_rating(session: Session, user_id: int) -> AdvertiserRatingSummary:
    """
    Raises:
        NotFoundError: If the user does not exist.
    """
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return AdvertiserRatingSummary(
        id_user=user_id, rating_avg=user.rating_avg, rating_count=user.rating_count
    )


def get_mission_ratings(session: Session, mission_id: int) -> list[Rating]:
    statement = (
        select(Rating)
        .where(Rating.id_mission == mission_id)
        .order_by(Rating.id_rating)  # type: ignore
    )
    return list(session.exec(statement).all())
