"""Feed service: posts derived from accepted submissions, likes and comments."""

from datetime import timedelta
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.core.roles import Principal
from app.models.enums import SubmissionStatus
from app.models.feed import (
    FeedComment,
    FeedCommentCreate,
    FeedLike,
    FeedPost,
    FeedPostCreate,
    FeedPostUpdate,
    LikeToggleResult,
)
from app.models.notification import NotificationType
from app.models.submission import Submission
from app.models.user import User
from app.services import feed_privacy
from app.services import notification as notification_service
from app.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)
from app.utils.clock import utcnow
from app.utils.logger import logger
from app.utils.validation import mask_contacts


def _editable_until():
    return utcnow() + timedelta(minutes=get_settings().FEED_POST_EDIT_WINDOW_MINUTES)


def create_post_for_accepted_submission(
    session: Session, submission: Submission
) -> FeedPost | None:
    """
    Derive the feed post of an accepted submission from its author's privacy.

    Called on acceptance and again by the mission close sweep. Does nothing
    when the submission already has a post or when the effective privacy is
    NEVER. ASK creates an unpublished draft and tells the author it is
    waiting for them.

    Returns:
        FeedPost | None: The created post, or None when no post was created.
    """
    if submission.status != SubmissionStatus.ACCEPTED:
        return None

    existing = session.exec(
        select(FeedPost).where(FeedPost.id_submission == submission.id_submission)
    ).first()
    if existing:
        return None

    author = session.get(User, submission.id_user)
    privacy = feed_privacy.effective_privacy(
        author.feed_privacy_default if author else None,
        submission.feed_privacy_override,
    )
    if not feed_privacy.should_create_post(privacy):
        return None

    mission = submission.mission
    post = FeedPost(
        id_author=submission.id_user,
        id_mission=submission.id_mission,
        id_submission=submission.id_submission,
        space=mission.space,
        text=submission.comments,
        media_paths=list(submission.proof_shots or []),
        published=feed_privacy.should_publish_immediately(privacy),
        editable_until=_editable_until(),
    )
    session.add(post)
    session.flush()

    if feed_privacy.should_create_as_draft(privacy):
        notification_service.notify(
            session,
            submission.id_user,
            NotificationType.FEED_POST_DRAFT_READY,
            {
                "id_post": post.id_post,
                "id_mission": post.id_mission,
                "mission_title": mission.title,
            },
        )
    logger.info(
        f"Feed post {post.id_post} created for submission {submission.id_submission} "
        f"(privacy={privacy.value}, published={post.published})"
    )
    return post


def create_post(
    session: Session, principal: Principal, post_in: FeedPostCreate
) -> FeedPost:
    """
    Create a feed post by hand for one of the caller's accepted submissions.

    Raises:
        NotFoundError: If the submission does not exist.
        InsufficientPermissionsError: If the caller did not author the submission.
        ConflictError: If the submission is not accepted, belongs to another
            mission, or already has a post.
    """
    submission = session.get(Submission, post_in.id_submission)
    if not submission:
        raise NotFoundError("Submission", post_in.id_submission)
    if submission.id_user != principal.id:
        raise InsufficientPermissionsError("Only the submitter can post about it")
    if submission.id_mission != post_in.id_mission:
        raise ConflictError("Submission does not belong to this mission")
    if submission.status != SubmissionStatus.ACCEPTED:
        raise ConflictError("Submission is not accepted")
    if submission.feed_post is not None:
        raise ConflictError("A post already exists for this submission", "FeedPost")

    post = FeedPost(
        id_author=principal.id,
        id_mission=submission.id_mission,
        id_submission=submission.id_submission,
        space=submission.mission.space,
        text=post_in.text,
        media_paths=post_in.media_paths,
        published=post_in.published,
        editable_until=_editable_until(),
    )
    session.add(post)
    try:
        with session.begin_nested():
            session.flush()
    except IntegrityError:
        raise ConflictError("A post already exists for this submission", "FeedPost")
    return post


def _can_see(post: FeedPost, principal: Principal | None) -> bool:
    if post.published and not post.is_hidden:
        return True
    if principal is None:
        return False
    return principal.is_admin or post.id_author == principal.id


def get_post(
    session: Session, post_id: int, principal: Principal | None = None
) -> FeedPost:
    """
    Retrieve a post visible to the caller.

    Drafts and hidden posts are visible to their author and to admins only and
    look missing to everyone else.

    Raises:
        NotFoundError: If the post does not exist or is not visible.
    """
    post = session.get(FeedPost, post_id)
    if not post or not _can_see(post, principal):
        raise NotFoundError("FeedPost", post_id)
    return post


def update_post(
    session: Session, principal: Principal, post_id: int, post_update: FeedPostUpdate
) -> FeedPost:
    """
    Edit or publish a post.

    The author may edit until `editable_until`; admins at any time. Publishing a
    draft notifies its author. Sending a null text clears it.

    Raises:
        NotFoundError: If the post does not exist.
        InsufficientPermissionsError: If the caller is neither the author nor an admin.
        ConflictError: If the author's edit window has passed.
        ValidationError: If media_paths or published is set to null.
    """
    post = session.exec(
        select(FeedPost).where(FeedPost.id_post == post_id).with_for_update()
    ).first()
    if not post:
        raise NotFoundError("FeedPost", post_id)

    if not principal.is_admin:
        if post.id_author != principal.id:
            raise InsufficientPermissionsError("Only the author can edit this post")
        if utcnow() > post.editable_until:
            raise ConflictError("Edit window has expired", "FeedPost")

    update_data = post_update.model_dump(exclude_unset=True)
    for key in ("media_paths", "published"):
        if key in update_data and update_data[key] is None:
            raise ValidationError(f"{key} cannot be cleared", field=key)

    was_published = post.published
    for key, value in update_data.items():
        setattr(post, key, value)

    session.add(post)
    session.flush()

    if post.published and not was_published:
        notification_service.notify(
            session,
            post.id_author,
            NotificationType.FEED_POST_PUBLISHED,
            {"id_post": post.id_post, "id_mission": post.id_mission},
        )
    return post


def get_published_posts(
    session: Session, *, offset: int = 0, limit: int = 20
) -> list[FeedPost]:
    """Published, non-hidden posts, newest first."""
    statement = (
        select(FeedPost)
        .where(FeedPost.published == True, FeedPost.is_hidden == False)  # noqa: E712
        .order_by(FeedPost.created_at.desc(), FeedPost.id_post.desc())  # type: ignore
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def toggle_like(
    session: Session, principal: Principal, post_id: int
) -> LikeToggleResult:
    """
    Like a post, or remove the caller's like when it already exists.

    The counter is updated in the same transaction as the like row.

    Raises:
        NotFoundError: If the post does not exist or is not visible.
    """
    post = session.exec(
        select(FeedPost).where(FeedPost.id_post == post_id).with_for_update()
    ).first()
    if not post or not _can_see(post, principal):
        raise NotFoundError("FeedPost", post_id)

    like = session.exec(
        select(FeedLike).where(
            FeedLike.id_post == post_id, FeedLike.id_user == principal.id
        )
    ).first()

    if like:
        session.delete(like)
        post.like_count = max(post.like_count - 1, 0)
        liked = False
    else:
        session.add(FeedLike(id_post=post_id, id_user=principal.id))
        post.like_count += 1
        liked = True

    session.add(post)
    session.flush()
    return LikeToggleResult(liked=liked, like_count=post.like_count)


def add_comment(
    session: Session, principal: Principal, post_id: int, comment_in: FeedCommentCreate
) -> FeedComment:
    """
    Comment on a visible post and bump its comment counter.

    Raises:
        NotFoundError: If the post does not exist or is not visible.
    """
    post = session.exec(
        select(FeedPost).where(FeedPost.id_post == post_id).with_for_update()
    ).first()
    if not post or not _can_see(post, principal):
        raise NotFoundError("FeedPost", post_id)

    comment = FeedComment(
        id_post=post_id,
        id_user=principal.id,
        content=mask_contacts(comment_in.content.strip()),
    )
    post.comment_count += 1
    session.add(comment)
    session.add(post)
    session.flush()
    return comment


def get_comments(
    session: Session,
    post_id: int,
    principal: Principal | None = None,
    *,
    offset: int = 0,
    limit: int = 50,
) -> list[FeedComment]:
    """Visible comments of a post, oldest first."""
    get_post(session, post_id, principal)
    statement = (
        select(FeedComment)
        .where(FeedComment.id_post == post_id, FeedComment.is_hidden == False)  # noqa: E712
        .order_by(FeedComment.id_comment)  # type: ignore
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def set_post_hidden(session: Session, post_id: int, hidden: bool) -> FeedPost:
    """
    Hide or unhide a post (moderation).

    Raises:
        NotFoundError: If the post does not exist.
    """
    post = session.get(FeedPost, post_id)
    if not post:
        raise NotFoundError("FeedPost", post_id)
    post.is_hidden = hidden
    session.add(post)
    session.flush()
    logger.info(f"Feed post {post_id} hidden={hidden}")
    return post


def _lock_comment_and_post(
    session: Session, comment_id: int
) -> tuple[FeedComment, FeedPost]:
    comment = session.get(FeedComment, comment_id)
    if not comment:
        raise NotFoundError("FeedComment", comment_id)
    post = session.exec(
        select(FeedPost)
        .where(FeedPost.id_post == comment.id_post)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).one()
    comment = session.exec(
        select(FeedComment)
        .where(FeedComment.id_comment == comment_id)
        .execution_options(populate_existing=True)
    ).first()
    if not comment:
        raise NotFoundError("FeedComment", comment_id)
    return comment, post


def set_comment_hidden(session: Session, comment_id: int, hidden: bool) -> FeedComment:
    """
    Hide or unhide a comment (moderation).

    The post's comment counter only counts visible comments and moves with
    the flag; setting the current value again changes nothing.

    Raises:
        NotFoundError: If the comment does not exist.
    """
    comment, post = _lock_comment_and_post(session, comment_id)
    if comment.is_hidden != hidden:
        comment.is_hidden = hidden
        if hidden:
            post.comment_count = max(post.comment_count - 1, 0)
        else:
            post.comment_count += 1
        session.add(comment)
        session.add(post)
        session.flush()
    logger.info(f"Feed comment {comment_id} hidden={hidden}")
    return comment


def delete_comment(session: Session, principal: Principal, comment_id: int) -> None:
    """
    Delete a comment; only its author or an admin may.

    Raises:
        NotFoundError: If the comment does not exist.
        InsufficientPermissionsError: If the caller is neither the author nor an admin.
    """
    comment, post = _lock_comment_and_post(session, comment_id)
    if not principal.is_admin and comment.id_user != principal.id:
        raise InsufficientPermissionsError("Only the author can delete this comment")

    if not comment.is_hidden:
        post.comment_count = max(post.comment_count - 1, 0)
        session.add(post)
    session.delete(comment)
    session.flush()
    logger.info(f"Feed comment {comment_id} deleted by user {principal.id}")
