"""Notification models for the per-user activity inbox."""

from datetime import datetime
from typing import Any
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, ForeignKey, Integer, JSON
from enum import Enum
from app.utils.clock import utcnow


class NotificationType(str, Enum):
    """Types of notifications emitted by the lifecycle services."""

    NEW_APPLICATION = "new_application"
    APPLICATION_ACCEPTED = "application_accepted"
    APPLICATION_REJECTED = "application_rejected"
    SUBMISSION_ACCEPTED = "submission_accepted"
    SUBMISSION_REJECTED = "submission_rejected"
    FEED_POST_DRAFT_READY = "feed_post_draft_ready"
    FEED_POST_PUBLISHED = "feed_post_published"
    REWARD_DELIVERED = "reward_delivered"
    MISSION_APPROVED = "mission_approved"
    MISSION_REJECTED = "mission_rejected"


class Notification(SQLModel, table=True):
    """Database notification model."""

    id_notification: int | None = Field(default=None, primary_key=True)
    id_user: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey(
                "user.id_user",
                ondelete="CASCADE",
                name="notification_id_user_fkey",
            ),
            nullable=False,
            index=True,
        )
    )
    notification_type: NotificationType
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, index=True)


class NotificationPublic(SQLModel):
    """Public notification response."""

    id_notification: int
    notification_type: NotificationType
    payload: dict[str, Any]
    is_read: bool
    created_at: datetime


class UnreadCount(SQLModel):
    unread: int
