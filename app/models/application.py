"""Mission application model: a missionary's request to join a mission."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from app.models.enums import ApplicationStatus
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.mission import Mission
    from app.models.thread import Thread


class Application(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("id_mission", "id_user", name="application_mission_user_key"),
    )

    id_application: int | None = Field(default=None, primary_key=True)
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
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    message: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    decided_at: datetime | None = None

    mission: "Mission" = Relationship(back_populates="applications")
    thread: Optional["Thread"] = Relationship(
        back_populates="application",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"},
    )

    @property
    def id_thread(self) -> int | None:
        return self.thread.id_thread if self.thread else None


class ApplicationCreate(SQLModel):
    message: str | None = Field(default=None, max_length=500)


class ApplicationPublic(SQLModel):
    id_application: int
    id_mission: int
    id_user: int
    status: ApplicationStatus
    message: str | None
    created_at: datetime
    decided_at: datetime | None
    id_thread: int | None = None
