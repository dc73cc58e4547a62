from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Column, ForeignKey, Integer, CheckConstraint
from sqlmodel import SQLModel, Field, Relationship
from app.models.enums import Space, MissionStatus
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.application import Application
    from app.models.submission import Submission
    from app.models.rating import Rating
    from app.models.feed import FeedPost


class MissionBase(SQLModel):
    title: str = Field(min_length=3, max_length=120)
    description: str = Field(min_length=10, max_length=2000)
    criteria: str = Field(min_length=5, max_length=1000)
    space: Space
    slots_max: int = Field(ge=1, le=1000)
    reward_text: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    organization_id: int | None = None


class Mission(MissionBase, table=True):
    __table_args__ = (
        CheckConstraint(
            "slots_taken >= 0 AND slots_taken <= slots_max",
            name="mission_slots_taken_range",
        ),
    )

    id_mission: int | None = Field(default=None, primary_key=True)
    id_owner: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("user.id_user", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    status: MissionStatus = Field(default=MissionStatus.PENDING, index=True)
    slots_taken: int = Field(default=0)
    base_xp: int = Field(default=500)
    bonus_xp: int = Field(default=0)
    is_hidden: bool = Field(default=False)
    is_featured: bool = Field(default=False)
    rejection_reason: str | None = Field(default=None, max_length=500)
    # Released to the submitter's thread on acceptance, never exposed publicly
    reward_escrow_content: str | None = Field(default=None, max_length=2000)
    created_at: datetime = Field(default_factory=utcnow)

    owner: "User" = Relationship(back_populates="missions")
    applications: list["Application"] = Relationship(
        back_populates="mission",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    submissions: list["Submission"] = Relationship(
        back_populates="mission",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    ratings: list["Rating"] = Relationship(
        back_populates="mission",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    feed_posts: list["FeedPost"] = Relationship(
        back_populates="mission",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def has_free_slot(self) -> bool:
        return self.slots_taken < self.slots_max


class MissionCreate(MissionBase):
    base_xp: int | None = Field(default=None, ge=0, le=10000)
    bonus_xp: int | None = Field(default=None, ge=0, le=10000)
    reward_escrow_content: str | None = Field(default=None, max_length=2000)


class MissionPublic(MissionBase):
    id_mission: int
    id_owner: int
    status: MissionStatus
    slots_taken: int
    base_xp: int
    bonus_xp: int
    is_hidden: bool
    is_featured: bool
    rejection_reason: str | None
    created_at: datetime


class MissionUpdate(SQLModel):
    title: str | None = Field(default=None, min_length=3, max_length=120)
    description: str | None = Field(default=None, min_length=10, max_length=2000)
    criteria: str | None = Field(default=None, min_length=5, max_length=1000)
    slots_max: int | None = Field(default=None, ge=1, le=1000)
    reward_text: str | None = Field(default=None, max_length=500)
    reward_escrow_content: str | None = Field(default=None, max_length=2000)
    image_url: str | None = None
    base_xp: int | None = Field(default=None, ge=0, le=10000)
    bonus_xp: int | None = Field(default=None, ge=0, le=10000)


class MissionReject(SQLModel):
    reason: str | None = Field(default=None, max_length=500)


class MissionHide(SQLModel):
    hidden: bool


class MissionFeature(SQLModel):
    featured: bool


class MissionCloseResult(SQLModel):
    mission: MissionPublic
    feed_posts_created: list[int]
