"""Social feed posts derived from accepted submissions, with likes and comments."""

from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Column, ForeignKey, Integer, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from app.models.enums import Space
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.mission import Mission
    from app.models.submission import Submission


class FeedPost(SQLModel, table=True):
    __tablename__ = "feed_post"

    id_post: int | None = Field(default=None, primary_key=True)
    id_author: int = Field(foreign_key="user.id_user", index=True)
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
            unique=True,
        )
    )
    space: Space
    text: str | None = Field(default=None, max_length=2000)
    media_paths: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    published: bool = Field(default=False, index=True)
    editable_until: datetime
    like_count: int = Field(default=0)
    comment_count: int = Field(default=0)
    is_hidden: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, index=True)

    mission: "Mission" = Relationship(back_populates="feed_posts")
    submission: "Submission" = Relationship(back_populates="feed_post")
    likes: list["FeedLike"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    comments: list["FeedComment"] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class FeedLike(SQLModel, table=True):
    __tablename__ = "feed_like"
    __table_args__ = (UniqueConstraint("id_post", "id_user", name="feed_like_post_user_key"),)

    id_like: int | None = Field(default=None, primary_key=True)
    id_post: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("feed_post.id_post", ondelete="CASCADE"),
            nullable=False,
        )
    )
    id_user: int = Field(foreign_key="user.id_user")
    created_at: datetime = Field(default_factory=utcnow)


class FeedComment(SQLModel, table=True):
    __tablename__ = "feed_comment"

    id_comment: int | None = Field(default=None, primary_key=True)
    id_post: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("feed_post.id_post", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    id_user: int = Field(foreign_key="user.id_user")
    content: str = Field(max_length=1000)
    is_hidden: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


class FeedPostCreate(SQLModel):
    id_mission: int
    id_submission: int
    text: str | None = Field(default=None, max_length=2000)
    media_paths: list[str] = Field(default_factory=list, max_length=10)
    published: bool = True


class FeedPostUpdate(SQLModel):
    text: str | None = Field(default=None, max_length=2000)
    media_paths: list[str] | None = Field(default=None, max_length=10)
    published: bool | None = None


class FeedPostPublic(SQLModel):
    id_post: int
    id_author: int
    id_mission: int
    id_submission: int
    space: Space
    text: str | None
    media_paths: list[str]
    published: bool
    editable_until: datetime
    like_count: int
    comment_count: int
    created_at: datetime


class FeedPostHide(SQLModel):
    hidden: bool


class FeedCommentCreate(SQLModel):
    content: str = Field(min_length=1, max_length=1000)


class FeedCommentPublic(SQLModel):
    id_comment: int
    id_post: int
    id_user: int
    content: str
    is_hidden: bool
    created_at: datetime


class FeedCommentHide(SQLModel):
    hidden: bool


class LikeToggleResult(SQLModel):
    liked: bool
    like_count: int
