"""Notification router: the caller's activity inbox."""

from typing import Annotated
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import CurrentPrincipal
from app.models.notification import NotificationPublic, UnreadCount
from app.services import notification as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationPublic])
def get_notifications(
    *,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
    unread_only: bool = Query(
        False, description="If true, only return unread notifications"
    ),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
) -> list[NotificationPublic]:
    """
    Get the caller's notifications, newest first.

    Lifecycle events land here: new applications on your missions, decisions on
    your applications and submissions, feed drafts waiting for you, rewards
    delivered and moderation of your missions.

    ### Query Parameters:
    - **unread_only**: Filter to only unread notifications
    - **offset**: Pagination offset
    - **limit**: Max results (1-100, default 50)

    Raises:
        401 Unauthorized: If no valid authentication token is provided.
    """
    notifications = notification_service.get_user_notifications(
        session,
        principal.id,
        unread_only=unread_only,
        offset=offset,
        limit=limit,
    )
    return [NotificationPublic.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCount)
def get_unread_count(
    *,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
) -> UnreadCount:
    """Count of unread notifications, for the badge in the UI."""
    return UnreadCount(unread=notification_service.get_unread_count(session, principal.id))


@router.post("/{notification_id}/read", response_model=NotificationPublic)
def mark_notification_as_read(
    notification_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
) -> NotificationPublic:
    """
    Mark one of your notifications as read.

    Raises:
        404 NotFoundError: If the notification does not exist or is not yours.
    """
    notification = notification_service.mark_notification_as_read(
        session, notification_id, principal.id
    )
    session.commit()
    session.refresh(notification)
    return NotificationPublic.model_validate(notification)
