"""Proof-of-completion submissions and their review decision."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from pydantic import field_validator, model_validator
from sqlalchemy import Column, ForeignKey, Integer, JSON
from sqlmodel import SQLModel, Field, Relationship
from app.models.enums import SubmissionStatus, FeedPrivacyOverride
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.mission import Mission
    from app.models.user import User
    from app.models.thread import Thread
    from app.models.feed import FeedPost


class Submission(SQLModel, table=True):
    id_submission: int | None = Field(default=None, primary_key=True)
    id_mission: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("mission.id_mission", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    id_user: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("user.id_user", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING, index=True)
    proof_url: str | None = Field(default=None, max_length=2000)
    # Object storage paths, never URLs
    proof_shots: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    comments: str | None = Field(default=None, max_length=2000)
    feed_privacy_override: FeedPrivacyOverride = Field(
        default=FeedPrivacyOverride.INHERIT
    )
    reason: str | None = Field(default=None, max_length=500)
    decision_at: datetime | None = None
    reward_delivered_at: datetime | None = None
    reward_note: str | None = Field(default=None, max_length=1000)
    reward_media_path: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    mission: "Mission" = Relationship(back_populates="submissions")
    user: "User" = Relationship()
    thread: Optional["Thread"] = Relationship(
        back_populates="submission",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"},
    )
    feed_post: Optional["FeedPost"] = Relationship(
        back_populates="submission",
        sa_relationship_kwargs={"uselist": False},
    )


class SubmissionCreate(SQLModel):
    id_mission: int
    proof_url: str | None = Field(default=None, max_length=2000)
    proof_shots: list[str] = Field(default_factory=list, max_length=3)
    comments: str | None = Field(default=None, max_length=2000)
    feed_privacy_override: FeedPrivacyOverride = FeedPrivacyOverride.INHERIT

    @model_validator(mode="after")
    def require_proof(self) -> "SubmissionCreate":
        """Reject payloads carrying neither a proof URL nor a screenshot."""
        has_url = bool(self.proof_url and self.proof_url.strip())
        has_shots = any(shot.strip() for shot in self.proof_shots)
        if not has_url and not has_shots:
            raise ValueError("At least one proof is required: URL or screenshots")
        if has_url and not self.proof_url.strip().startswith(("http://", "https://")):
            raise ValueError("proof_url must be an http(s) URL")
        return self


class SubmissionRefuse(SQLModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def stripped_reason(cls, reason: str) -> str:
        reason = reason.strip()
        if not 2 <= len(reason) <= 500:
            raise ValueError("Reason must be 2 to 500 characters")
        return reason


class SubmissionAccept(SQLModel):
    reward_media_path: str | None = None


class RewardDelivery(SQLModel):
    reward_note: str | None = Field(default=None, max_length=1000)
    reward_media_path: str | None = None


class SubmissionPublic(SQLModel):
    id_submission: int
    id_mission: int
    id_user: int
    status: SubmissionStatus
    proof_url: str | None
    proof_shots: list[str]
    comments: str | None
    feed_privacy_override: FeedPrivacyOverride
    reason: str | None
    decision_at: datetime | None
    reward_delivered_at: datetime | None
    reward_note: str | None
    created_at: datetime
    proof_shot_urls: list[str] = []
    reward_media_url: str | None = None
