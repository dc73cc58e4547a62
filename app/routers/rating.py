"""Rating router."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import CurrentPrincipal
from app.core.rate_limit import rate_limit
from app.models.rating import AdvertiserRatingSummary, RatingCreate, RatingPublic
from app.services import rating as rating_service

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post(
    "/",
    response_model=RatingPublic,
    dependencies=[Depends(rate_limit("rating", 5))],
)
def rate_mission(
    rating_in: RatingCreate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Rate the advertiser of a mission you completed.

    One rating per mission and rater; posting again replaces the score and comment.

    Raises:
        `400 ConflictError`: Submission not accepted or not from this mission.
        `403 InsufficientPermissionsError`: Not the submitter, or own mission.
    """
    rating = rating_service.rate_mission(session, principal, rating_in)
    session.commit()
    session.refresh(rating)
    return rating


@router.get("/advertisers/{user_id}", response_model=AdvertiserRatingSummary)
def read_advertiser_rating(
    user_id: int,
    session: Annotated[Session, Depends(get_session)],
):
    return rating_service.get_advertiser_rating(session, user_id)
