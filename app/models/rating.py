from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.mission import Mission


class Rating(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("id_rater", "id_mission", name="rating_rater_mission_key"),
    )

    id_rating: int | None = Field(default=None, primary_key=True)
    id_mission: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("mission.id_mission", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    id_submission: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("submission.id_submission", ondelete="CASCADE"),
            nullable=False,
        )
    )
    id_rater: int = Field(foreign_key="user.id_user", index=True)
    id_advertiser: int = Field(foreign_key="user.id_user", index=True)
    score: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    mission: "Mission" = Relationship(back_populates="ratings")


class RatingCreate(SQLModel):
    id_mission: int
    id_submission: int
    score: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)


class RatingPublic(SQLModel):
    id_rating: int
    id_mission: int
    id_submission: int
    id_rater: int
    id_advertiser: int
    score: int
    comment: str | None
    created_at: datetime
    updated_at: datetime


class AdvertiserRatingSummary(SQLModel):
    id_user: int
    rating_avg: float
    rating_count: int
