"""Tests for follow and favorite edges."""

from unittest.mock import patch
import pytest
from sqlmodel import Session, select

from app.models.enums import XpEventKind
from app.models.xp_event import XpEvent
from app.services import follow as follow_service
from app.exceptions import ConflictError, NotFoundError, ValidationError


class TestFollow:
    def test_follow_grants_five_xp(
        self, session: Session, missionary_principal, missionary, other_missionary
    ):
        result = follow_service.follow_user(
            session, missionary_principal, other_missionary.id_user
        )
        session.commit()
        session.refresh(missionary)

        assert result.active is True
        assert result.xp_granted == 5
        assert missionary.xp == 5
        assert missionary.xp_pro == missionary.xp_solid == 0
        assert follow_service.get_following(session, missionary.id_user) == [
            other_missionary.id_user
        ]
        event = session.exec(
            select(XpEvent).where(XpEvent.id_user == missionary.id_user)
        ).one()
        assert event.kind == XpEventKind.FOLLOW

    def test_follow_twice_is_a_conflict(
        self, session: Session, missionary_principal, missionary, other_missionary
    ):
        follow_service.follow_user(session, missionary_principal, other_missionary.id_user)
        session.commit()
        with pytest.raises(ConflictError):
            follow_service.follow_user(
                session, missionary_principal, other_missionary.id_user
            )
        session.refresh(missionary)
        assert missionary.xp == 5

    def test_cannot_follow_self(self, session: Session, missionary_principal):
        with pytest.raises(ValidationError):
            follow_service.follow_user(
                session, missionary_principal, missionary_principal.id
            )

    def test_unknown_target(self, session: Session, missionary_principal):
        with pytest.raises(NotFoundError):
            follow_service.follow_user(session, missionary_principal, 9999)

    def test_follow_cap(
        self, session: Session, missionary_principal, other_missionary, advertiser, admin
    ):
        with patch("app.services.follow.MAX_EDGES", 2):
            follow_service.follow_user(
                session, missionary_principal, other_missionary.id_user
            )
            follow_service.follow_user(session, missionary_principal, advertiser.id_user)
            with pytest.raises(ConflictError, match="more than 2"):
                follow_service.follow_user(session, missionary_principal, admin.id_user)

    def test_unfollow_keeps_xp(
        self, session: Session, missionary_principal, missionary, other_missionary
    ):
        follow_service.follow_user(session, missionary_principal, other_missionary.id_user)
        result = follow_service.unfollow_user(
            session, missionary_principal, other_missionary.id_user
        )
        session.commit()
        session.refresh(missionary)

        assert result.active is False
        assert missionary.xp == 5
        assert follow_service.get_following(session, missionary.id_user) == []

    def test_unfollow_without_edge(
        self, session: Session, missionary_principal, other_missionary
    ):
        with pytest.raises(NotFoundError):
            follow_service.unfollow_user(
                session, missionary_principal, other_missionary.id_user
            )


class TestFavorite:
    def test_favorite_advertiser(
        self, session: Session, missionary_principal, missionary, advertiser
    ):
        result = follow_service.favorite_advertiser(
            session, missionary_principal, advertiser.id_user
        )
        assert result.xp_granted == 5
        assert missionary.xp == 5

    def test_admin_counts_as_advertiser(
        self, session: Session, missionary_principal, admin
    ):
        result = follow_service.favorite_advertiser(
            session, missionary_principal, admin.id_user
        )
        assert result.active is True

    def test_missionary_cannot_be_favorited(
        self, session: Session, missionary_principal, other_missionary
    ):
        with pytest.raises(ValidationError, match="not an advertiser"):
            follow_service.favorite_advertiser(
                session, missionary_principal, other_missionary.id_user
            )

    def test_favorite_twice_is_a_conflict(
        self, session: Session, missionary_principal, advertiser
    ):
        follow_service.favorite_advertiser(session, missionary_principal, advertiser.id_user)
        with pytest.raises(ConflictError):
            follow_service.favorite_advertiser(
                session, missionary_principal, advertiser.id_user
            )

    def test_unfavorite(self, session: Session, missionary_principal, advertiser):
        follow_service.favorite_advertiser(session, missionary_principal, advertiser.id_user)
        result = follow_service.unfavorite_advertiser(
            session, missionary_principal, advertiser.id_user
        )
        assert result.active is False
        with pytest.raises(NotFoundError):
            follow_service.unfavorite_advertiser(
                session, missionary_principal, advertiser.id_user
            )
