"""Tests for feed service."""

from datetime import timedelta
import pytest
from sqlmodel import Session, select

from app.core.roles import Principal
from app.models.enums import Space
from app.models.feed import (
    FeedComment,
    FeedCommentCreate,
    FeedLike,
    FeedPostCreate,
    FeedPostUpdate,
)
from app.models.notification import Notification, NotificationType
from app.services import feed as feed_service
from app.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)
from app.utils.clock import utcnow


@pytest.fixture(name="post")
def post_fixture(session: Session, accepted_submission, missionary_principal):
    post = feed_service.create_post(
        session,
        missionary_principal,
        FeedPostCreate(
            id_mission=accepted_submission.id_mission,
            id_submission=accepted_submission.id_submission,
            text="Loved this one",
        ),
    )
    session.commit()
    session.refresh(post)
    return post


@pytest.fixture(name="draft")
def draft_fixture(session: Session, accepted_submission, missionary_principal):
    post = feed_service.create_post(
        session,
        missionary_principal,
        FeedPostCreate(
            id_mission=accepted_submission.id_mission,
            id_submission=accepted_submission.id_submission,
            published=False,
        ),
    )
    session.commit()
    session.refresh(post)
    return post


class TestCreatePost:
    def test_create_post_for_own_accepted_submission(self, post, accepted_submission):
        assert post.id_post is not None
        assert post.id_submission == accepted_submission.id_submission
        assert post.space == Space.PRO
        assert post.published is True
        assert post.like_count == 0
        assert post.editable_until > utcnow()

    def test_one_post_per_submission(
        self, session: Session, post, accepted_submission, missionary_principal
    ):
        with pytest.raises(ConflictError):
            feed_service.create_post(
                session,
                missionary_principal,
                FeedPostCreate(
                    id_mission=accepted_submission.id_mission,
                    id_submission=accepted_submission.id_submission,
                ),
            )

    def test_only_submitter_posts(
        self, session: Session, accepted_submission, other_missionary
    ):
        with pytest.raises(InsufficientPermissionsError):
            feed_service.create_post(
                session,
                Principal.of(other_missionary),
                FeedPostCreate(
                    id_mission=accepted_submission.id_mission,
                    id_submission=accepted_submission.id_submission,
                ),
            )

    def test_pending_submission_cannot_be_posted(
        self, session: Session, open_mission, other_missionary, submit
    ):
        submission = submit(other_missionary, open_mission)
        with pytest.raises(ConflictError, match="not accepted"):
            feed_service.create_post(
                session,
                Principal.of(other_missionary),
                FeedPostCreate(
                    id_mission=open_mission.id_mission,
                    id_submission=submission.id_submission,
                ),
            )

    def test_mission_must_match_submission(
        self, session: Session, accepted_submission, missionary_principal
    ):
        with pytest.raises(ConflictError, match="does not belong"):
            feed_service.create_post(
                session,
                missionary_principal,
                FeedPostCreate(
                    id_mission=accepted_submission.id_mission + 1,
                    id_submission=accepted_submission.id_submission,
                ),
            )

    def test_sweep_skips_submission_with_post(
        self, session: Session, post, accepted_submission
    ):
        assert (
            feed_service.create_post_for_accepted_submission(session, accepted_submission)
            is None
        )


class TestVisibility:
    def test_draft_visible_to_author_and_admin_only(
        self, session: Session, draft, missionary_principal, admin_principal, advertiser_principal
    ):
        assert feed_service.get_post(session, draft.id_post, missionary_principal)
        assert feed_service.get_post(session, draft.id_post, admin_principal)
        with pytest.raises(NotFoundError):
            feed_service.get_post(session, draft.id_post, advertiser_principal)
        with pytest.raises(NotFoundError):
            feed_service.get_post(session, draft.id_post)

    def test_published_listing_excludes_drafts_and_hidden(
        self, session: Session, post
    ):
        assert [p.id_post for p in feed_service.get_published_posts(session)] == [
            post.id_post
        ]
        feed_service.set_post_hidden(session, post.id_post, True)
        session.commit()
        assert feed_service.get_published_posts(session) == []

    def test_hidden_post_looks_missing(self, session: Session, post, advertiser_principal):
        feed_service.set_post_hidden(session, post.id_post, True)
        with pytest.raises(NotFoundError):
            feed_service.get_post(session, post.id_post, advertiser_principal)

    def test_hide_missing_post(self, session: Session):
        with pytest.raises(NotFoundError):
            feed_service.set_post_hidden(session, 9999, True)


class TestUpdatePost:
    def test_publishing_a_draft_notifies_author(
        self, session: Session, draft, missionary_principal, missionary
    ):
        post = feed_service.update_post(
            session, missionary_principal, draft.id_post, FeedPostUpdate(published=True)
        )
        session.commit()

        assert post.published is True
        types = session.exec(
            select(Notification.notification_type).where(
                Notification.id_user == missionary.id_user
            )
        ).all()
        assert NotificationType.FEED_POST_PUBLISHED in types

    def test_edit_text(self, session: Session, post, missionary_principal):
        updated = feed_service.update_post(
            session, missionary_principal, post.id_post, FeedPostUpdate(text="Edited")
        )
        assert updated.text == "Edited"
        assert updated.published is True

    def test_null_text_clears_it(self, session: Session, post, missionary_principal):
        updated = feed_service.update_post(
            session, missionary_principal, post.id_post, FeedPostUpdate(text=None)
        )
        assert updated.text is None
        assert updated.published is True

    def test_published_cannot_be_nulled(self, session: Session, post, missionary_principal):
        with pytest.raises(ValidationError) as exc_info:
            feed_service.update_post(
                session, missionary_principal, post.id_post, FeedPostUpdate(published=None)
            )
        assert exc_info.value.field == "published"

    def test_other_user_cannot_edit(self, session: Session, post, advertiser_principal):
        with pytest.raises(InsufficientPermissionsError):
            feed_service.update_post(
                session, advertiser_principal, post.id_post, FeedPostUpdate(text="Nope")
            )

    def test_edit_window_expires_for_author_not_admin(
        self, session: Session, post, missionary_principal, admin_principal
    ):
        post.editable_until = utcnow() - timedelta(minutes=1)
        session.add(post)
        session.commit()

        with pytest.raises(ConflictError, match="Edit window"):
            feed_service.update_post(
                session, missionary_principal, post.id_post, FeedPostUpdate(text="Late")
            )
        updated = feed_service.update_post(
            session, admin_principal, post.id_post, FeedPostUpdate(text="Moderated")
        )
        assert updated.text == "Moderated"


class TestLikesAndComments:
    def test_toggle_like(self, session: Session, post, advertiser_principal, admin_principal):
        result = feed_service.toggle_like(session, advertiser_principal, post.id_post)
        assert result.liked is True
        assert result.like_count == 1

        result = feed_service.toggle_like(session, admin_principal, post.id_post)
        assert result.like_count == 2

        result = feed_service.toggle_like(session, advertiser_principal, post.id_post)
        session.commit()
        assert result.liked is False
        assert result.like_count == 1
        likes = session.exec(select(FeedLike).where(FeedLike.id_post == post.id_post)).all()
        assert len(likes) == 1

    def test_cannot_like_invisible_draft(self, session: Session, draft, advertiser_principal):
        with pytest.raises(NotFoundError):
            feed_service.toggle_like(session, advertiser_principal, draft.id_post)

    def test_comment_is_masked_and_counted(
        self, session: Session, post, advertiser_principal
    ):
        comment = feed_service.add_comment(
            session,
            advertiser_principal,
            post.id_post,
            FeedCommentCreate(content=" Call me on +33 6 12 34 56 78 "),
        )
        session.commit()
        session.refresh(post)

        assert "[phone hidden]" in comment.content
        assert "12 34" not in comment.content
        assert post.comment_count == 1
        comments = feed_service.get_comments(session, post.id_post, advertiser_principal)
        assert [c.id_comment for c in comments] == [comment.id_comment]


@pytest.fixture(name="comment")
def comment_fixture(session: Session, post, advertiser_principal):
    comment = feed_service.add_comment(
        session, advertiser_principal, post.id_post, FeedCommentCreate(content="Nice")
    )
    session.commit()
    session.refresh(comment)
    return comment


class TestCommentModeration:
    def test_hide_and_unhide_keep_counter_in_step(
        self, session: Session, post, comment, advertiser_principal
    ):
        feed_service.set_comment_hidden(session, comment.id_comment, True)
        session.commit()
        session.refresh(post)
        assert post.comment_count == 0
        assert feed_service.get_comments(session, post.id_post, advertiser_principal) == []

        feed_service.set_comment_hidden(session, comment.id_comment, True)
        session.commit()
        session.refresh(post)
        assert post.comment_count == 0

        feed_service.set_comment_hidden(session, comment.id_comment, False)
        session.commit()
        session.refresh(post)
        assert post.comment_count == 1
        assert [
            c.id_comment
            for c in feed_service.get_comments(session, post.id_post, advertiser_principal)
        ] == [comment.id_comment]

    def test_hide_missing_comment(self, session: Session):
        with pytest.raises(NotFoundError):
            feed_service.set_comment_hidden(session, 9999, True)

    def test_author_deletes_own_comment(
        self, session: Session, post, comment, advertiser_principal
    ):
        feed_service.delete_comment(session, advertiser_principal, comment.id_comment)
        session.commit()
        session.refresh(post)

        assert post.comment_count == 0
        assert session.get(FeedComment, comment.id_comment) is None

    def test_admin_deletes_hidden_comment_without_double_decrement(
        self, session: Session, post, comment, admin_principal
    ):
        feed_service.set_comment_hidden(session, comment.id_comment, True)
        feed_service.delete_comment(session, admin_principal, comment.id_comment)
        session.commit()
        session.refresh(post)

        assert post.comment_count == 0
        assert session.get(FeedComment, comment.id_comment) is None

    def test_other_user_cannot_delete(
        self, session: Session, post, comment, missionary_principal
    ):
        with pytest.raises(InsufficientPermissionsError):
            feed_service.delete_comment(session, missionary_principal, comment.id_comment)
        session.rollback()
        session.refresh(post)
        assert post.comment_count == 1
