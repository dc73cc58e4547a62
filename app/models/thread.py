"""Conversation threads and their append-only messages."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Column, ForeignKey, Integer, CheckConstraint
from sqlmodel import SQLModel, Field, Relationship
from app.models.enums import MessageType, ThreadBinding
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.application import Application
    from app.models.submission import Submission


class Thread(SQLModel, table=True):
    # A thread is bound to an application, to a submission, or to neither (direct)
    __table_args__ = (
        CheckConstraint(
            "id_application IS NULL OR id_submission IS NULL",
            name="thread_single_binding",
        ),
    )

    id_thread: int | None = Field(default=None, primary_key=True)
    id_application: int | None = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("application.id_application", ondelete="CASCADE"),
            nullable=True,
            unique=True,
        ),
    )
    id_submission: int | None = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("submission.id_submission", ondelete="CASCADE"),
            nullable=True,
            unique=True,
        ),
    )
    id_user_a: int = Field(foreign_key="user.id_user", index=True)
    id_user_b: int = Field(foreign_key="user.id_user", index=True)
    created_at: datetime = Field(default_factory=utcnow)

    application: Optional["Application"] = Relationship(back_populates="thread")
    submission: Optional["Submission"] = Relationship(back_populates="thread")
    messages: list["Message"] = Relationship(
        back_populates="thread",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "Message.id_message",
        },
    )

    @property
    def binding(self) -> ThreadBinding:
        if self.id_application is not None:
            return ThreadBinding.APPLICATION
        if self.id_submission is not None:
            return ThreadBinding.SUBMISSION
        return ThreadBinding.DIRECT

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.id_user_a, self.id_user_b)


class Message(SQLModel, table=True):
    id_message: int | None = Field(default=None, primary_key=True)
    id_thread: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("thread.id_thread", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    id_author: int = Field(foreign_key="user.id_user")
    type: MessageType = Field(default=MessageType.TEXT)
    content: str = Field(max_length=4000)
    created_at: datetime = Field(default_factory=utcnow)

    thread: Thread = Relationship(back_populates="messages")


class ThreadPublic(SQLModel):
    id_thread: int
    id_application: int | None
    id_submission: int | None
    id_user_a: int
    id_user_b: int
    binding: ThreadBinding
    created_at: datetime


class MessageCreate(SQLModel):
    type: MessageType = MessageType.TEXT
    content: str = Field(min_length=1, max_length=4000)


class MessagePublic(SQLModel):
    id_message: int
    id_thread: int
    id_author: int
    type: MessageType
    content: str
    created_at: datetime
