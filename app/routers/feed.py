"""Feed router: posts about completed missions, likes and comments."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.database.database import get_session
from app.core.dependencies import CurrentPrincipal, OptionalPrincipal
from app.core.rate_limit import rate_limit
from app.models.feed import (
    FeedCommentCreate,
    FeedCommentPublic,
    FeedPostCreate,
    FeedPostPublic,
    FeedPostUpdate,
    LikeToggleResult,
)
from app.services import feed as feed_service

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("/posts", response_model=list[FeedPostPublic])
def read_feed(
    session: Annotated[Session, Depends(get_session)],
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """Published posts, newest first."""
    return feed_service.get_published_posts(session, offset=offset, limit=limit)


@router.post(
    "/posts", response_model=FeedPostPublic, status_code=status.HTTP_201_CREATED
)
def create_post(
    post_in: FeedPostCreate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Post about one of your accepted submissions.

    Raises:
        `400 ConflictError`: Submission not accepted, from another mission, or already posted.
        `403 InsufficientPermissionsError`: Not the submitter.
    """
    post = feed_service.create_post(session, principal, post_in)
    session.commit()
    session.refresh(post)
    return post


@router.get("/posts/{post_id}", response_model=FeedPostPublic)
def read_post(
    post_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: OptionalPrincipal,
):
    """Drafts and hidden posts are only returned to their author and to admins."""
    return feed_service.get_post(session, post_id, principal)


@router.patch("/posts/{post_id}", response_model=FeedPostPublic)
def update_post(
    post_id: int,
    post_update: FeedPostUpdate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Edit or publish a post.

    Authors may edit during the edit window that follows creation; admins anytime.

    Raises:
        `400 ConflictError`: The edit window has passed.
    """
    post = feed_service.update_post(session, principal, post_id, post_update)
    session.commit()
    session.refresh(post)
    return post


@router.post(
    "/posts/{post_id}/like",
    response_model=LikeToggleResult,
    dependencies=[Depends(rate_limit("feed-like", 60))],
)
def toggle_like(
    post_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """Like the post, or remove your like if you already liked it."""
    result = feed_service.toggle_like(session, principal, post_id)
    session.commit()
    return result


@router.get("/posts/{post_id}/comments", response_model=list[FeedCommentPublic])
def read_comments(
    post_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: OptionalPrincipal,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    return feed_service.get_comments(
        session, post_id, principal, offset=offset, limit=limit
    )


@router.post(
    "/posts/{post_id}/comments",
    response_model=FeedCommentPublic,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("feed-comment", 30))],
)
def add_comment(
    post_id: int,
    comment_in: FeedCommentCreate,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    comment = feed_service.add_comment(session, principal, post_id, comment_in)
    session.commit()
    session.refresh(comment)
    return comment


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    session: Annotated[Session, Depends(get_session)],
    principal: CurrentPrincipal,
):
    """
    Delete a comment; authors delete their own, admins any.

    Raises:
        `403 InsufficientPermissionsError`: Not the author.
    """
    feed_service.delete_comment(session, principal, comment_id)
    session.commit()
