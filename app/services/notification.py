"""Notification service: best-effort sink plus inbox queries."""

from typing import Any
from sqlmodel import Session, select, func

from app.models.notification import Notification, NotificationType
from app.exceptions import NotFoundError
from app.utils.logger import logger


def notify(
    session: Session,
    user_id: int,
    notification_type: NotificationType,
    payload: dict[str, Any] | None = None,
) -> Notification | None:
    """
    Record a notification for a user without ever failing the caller.

    The insert runs inside a SAVEPOINT, so a failure rolls back only the
    notification and leaves the surrounding lifecycle transaction intact.

    Args:
        session: Database session
        user_id: Recipient user ID
        notification_type: Kind of notification
        payload: JSON-serializable details for the client

    Returns:
        Notification | None: The created notification, or None if delivery failed
    """
    try:
        with session.begin_nested():
            notification = Notification(
                id_user=user_id,
                notification_type=notification_type,
                payload=payload or {},
            )
            session.add(notification)
        return notification
    except Exception:
        logger.exception(
            f"Failed to create {notification_type.value} notification for user {user_id}"
        )
        return None


def get_user_notifications(
    session: Session,
    user_id: int,
    *,
    unread_only: bool = False,
    offset: int = 0,
    limit: int = 50,
) -> list[Notification]:
    """
    Get notifications for a user.

    Args:
        session: Database session
        user_id: Recipient user ID
        unread_only: If True, only return unread notifications
        offset: Pagination offset
        limit: Maximum notifications to return

    Returns:
        list[Notification]: List of notifications ordered by date (newest first)
    """
    statement = select(Notification).where(Notification.id_user == user_id)

    if unread_only:
        statement = statement.where(Notification.is_read == False)  # noqa: E712

    statement = (
        statement.order_by(
            Notification.created_at.desc(),  # type: ignore
            Notification.id_notification.desc(),  # type: ignore
        )
        .offset(offset)
        .limit(limit)
    )

    return list(session.exec(statement).all())


def mark_notification_as_read(
    session: Session, notification_id: int, user_id: int
) -> Notification:
    """
    Mark one of the user's notifications as read.

    Raises:
        NotFoundError: If the notification does not exist or belongs to another user.
    """
    notification = session.get(Notification, notification_id)
    if not notification or notification.id_user != user_id:
        raise NotFoundError("Notification", notification_id)

    if not notification.is_read:
        notification.is_read = True
        session.add(notification)
        session.flush()
    return notification


def get_unread_count(session: Session, user_id: int) -> int:
    """
    Get count of unread notifications for a user.
    """
    count = session.exec(
        select(func.count())
        .select_from(Notification)
        .where(
            Notification.id_user == user_id,
            Notification.is_read == False,  # noqa: E712
        )
    ).one()

    return count
