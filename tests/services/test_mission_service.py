"""Tests for mission service."""

from unittest.mock import patch, MagicMock
import pytest
from sqlmodel import Session, select

from app.core.roles import Principal
from app.models.enums import MissionStatus, Space
from app.models.feed import FeedPost
from app.models.mission import Mission, MissionCreate, MissionUpdate
from app.models.notification import Notification, NotificationType
from app.services import mission as mission_service
from app.services import submission as submission_service
from app.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)


def _mission_in(**overrides) -> MissionCreate:
    data = {
        "title": "Test the checkout",
        "description": "Buy the cheapest item and report any issue",
        "criteria": "Order confirmation screenshot",
        "space": Space.SOLIDAIRE,
        "slots_max": 3,
    }
    data.update(overrides)
    return MissionCreate(**data)


class TestCreateMission:
    def test_advertiser_mission_waits_for_approval(
        self, session: Session, advertiser_principal
    ):
        mission = mission_service.create_mission(
            session, advertiser_principal, _mission_in()
        )
        assert mission.id_mission is not None
        assert mission.status == MissionStatus.PENDING
        assert mission.id_owner == advertiser_principal.id
        assert mission.slots_taken == 0

    def test_admin_mission_opens_immediately(self, session: Session, admin_principal):
        mission = mission_service.create_mission(
            session, admin_principal, _mission_in(base_xp=800, bonus_xp=200)
        )
        assert mission.status == MissionStatus.OPEN
        assert mission.base_xp == 800
        assert mission.bonus_xp == 200

    def test_advertiser_cannot_choose_xp(self, session: Session, advertiser_principal):
        mission = mission_service.create_mission(
            session, advertiser_principal, _mission_in(base_xp=9000, bonus_xp=900)
        )
        assert mission.base_xp == 500
        assert mission.bonus_xp == 0

    def test_approval_can_be_disabled(self, session: Session, advertiser_principal):
        settings = MagicMock(MISSION_REQUIRES_APPROVAL=False)
        with patch("app.services.mission.get_settings", return_value=settings):
            mission = mission_service.create_mission(
                session, advertiser_principal, _mission_in()
            )
        assert mission.status == MissionStatus.OPEN


class TestGetMission:
    def test_pending_mission_is_hidden_from_others(
        self, session: Session, advertiser_principal, missionary_principal
    ):
        mission = mission_service.create_mission(
            session, advertiser_principal, _mission_in()
        )
        session.commit()

        with pytest.raises(NotFoundError):
            mission_service.get_mission(session, mission.id_mission)
        with pytest.raises(NotFoundError):
            mission_service.get_mission(
                session, mission.id_mission, missionary_principal
            )

    def test_pending_mission_visible_to_owner_and_admin(
        self, session: Session, advertiser_principal, admin_principal
    ):
        mission = mission_service.create_mission(
            session, advertiser_principal, _mission_in()
        )
        session.commit()

        assert mission_service.get_mission(
            session, mission.id_mission, advertiser_principal
        )
        assert mission_service.get_mission(session, mission.id_mission, admin_principal)

    def test_missing_mission(self, session: Session):
        with pytest.raises(NotFoundError):
            mission_service.get_mission(session, 9999)


class TestListMissions:
    def test_only_open_visible_missions_are_listed(
        self, session: Session, mission_factory, advertiser, advertiser_principal
    ):
        visible = mission_factory(advertiser, title="Visible mission")
        hidden = mission_factory(advertiser, title="Hidden mission")
        mission_service.set_mission_hidden(session, hidden.id_mission, True)
        mission_service.create_mission(
            session, advertiser_principal, _mission_in(title="Pending mission")
        )
        session.commit()

        missions = mission_service.get_open_missions(session)
        assert [m.id_mission for m in missions] == [visible.id_mission]

    def test_filters_by_space_and_search(self, session: Session, mission_factory, advertiser):
        pro = mission_factory(advertiser, title="Record a video", space=Space.PRO)
        mission_factory(advertiser, title="Plant a tree", space=Space.SOLIDAIRE)

        by_space = mission_service.get_open_missions(session, space=Space.PRO)
        assert [m.id_mission for m in by_space] == [pro.id_mission]

        by_text = mission_service.get_open_missions(session, search="tree")
        assert [m.title for m in by_text] == ["Plant a tree"]

    def test_featured_missions_come_first(self, session: Session, mission_factory, advertiser):
        first = mission_factory(advertiser, title="Older featured mission")
        mission_factory(advertiser, title="Newer mission")
        mission_service.set_mission_featured(session, first.id_mission, True)
        session.commit()

        missions = mission_service.get_open_missions(session)
        assert missions[0].id_mission == first.id_mission

    def test_missions_by_owner_include_every_status(
        self, session: Session, advertiser_principal, mission_factory, advertiser
    ):
        mission_factory(advertiser)
        mission_service.create_mission(session, advertiser_principal, _mission_in())
        session.commit()

        missions = mission_service.get_missions_by_owner(session, advertiser.id_user)
        assert {m.status for m in missions} == {MissionStatus.OPEN, MissionStatus.PENDING}


class TestUpdateMission:
    def test_owner_updates_fields(self, session: Session, open_mission, advertiser_principal):
        mission = mission_service.update_mission(
            session,
            advertiser_principal,
            open_mission.id_mission,
            MissionUpdate(title="Updated title", slots_max=5),
        )
        assert mission.title == "Updated title"
        assert mission.slots_max == 5
        assert mission.status == MissionStatus.OPEN

    def test_other_user_cannot_update(
        self, session: Session, open_mission, missionary_principal
    ):
        with pytest.raises(InsufficientPermissionsError):
            mission_service.update_mission(
                session,
                missionary_principal,
                open_mission.id_mission,
                MissionUpdate(title="Hijacked"),
            )

    def test_only_admin_changes_xp(
        self, session: Session, open_mission, advertiser_principal, admin_principal
    ):
        with pytest.raises(InsufficientPermissionsError):
            mission_service.update_mission(
                session,
                advertiser_principal,
                open_mission.id_mission,
                MissionUpdate(bonus_xp=100),
            )
        mission = mission_service.update_mission(
            session, admin_principal, open_mission.id_mission, MissionUpdate(bonus_xp=100)
        )
        assert mission.bonus_xp == 100

    def test_slots_max_cannot_drop_below_taken(
        self, session: Session, open_mission, advertiser_principal
    ):
        open_mission.slots_taken = 2
        session.add(open_mission)
        session.commit()

        with pytest.raises(ValidationError) as exc_info:
            mission_service.update_mission(
                session,
                advertiser_principal,
                open_mission.id_mission,
                MissionUpdate(slots_max=1),
            )
        assert exc_info.value.field == "slots_max"

    def test_owner_clears_optional_fields(
        self, session: Session, open_mission, advertiser_principal
    ):
        mission_service.update_mission(
            session,
            advertiser_principal,
            open_mission.id_mission,
            MissionUpdate(reward_text="A coffee", image_url="https://img.test/a.png"),
        )
        session.commit()

        mission = mission_service.update_mission(
            session,
            advertiser_principal,
            open_mission.id_mission,
            MissionUpdate(reward_text=None, image_url=None, reward_escrow_content=None),
        )
        session.commit()
        session.refresh(mission)

        assert mission.reward_text is None
        assert mission.image_url is None
        assert mission.reward_escrow_content is None
        assert mission.title == open_mission.title

    def test_required_field_cannot_be_cleared(
        self, session: Session, open_mission, advertiser_principal
    ):
        with pytest.raises(ValidationError) as exc_info:
            mission_service.update_mission(
                session,
                advertiser_principal,
                open_mission.id_mission,
                MissionUpdate(title=None),
            )
        assert exc_info.value.field == "title"


class TestModeration:
    def test_approve_opens_and_notifies(self, session: Session, advertiser_principal):
        mission = mission_service.create_mission(
            session, advertiser_principal, _mission_in()
        )
        approved = mission_service.approve_mission(session, mission.id_mission)
        session.commit()

        assert approved.status == MissionStatus.OPEN
        notification = session.exec(
            select(Notification).where(Notification.id_user == advertiser_principal.id)
        ).one()
        assert notification.notification_type == NotificationType.MISSION_APPROVED

    def test_approve_requires_pending(self, session: Session, open_mission):
        with pytest.raises(ConflictError):
            mission_service.approve_mission(session, open_mission.id_mission)

    def test_reject_archives_with_reason(self, session: Session, open_mission):
        mission = mission_service.reject_mission(
            session, open_mission.id_mission, "  Misleading reward  "
        )
        assert mission.status == MissionStatus.ARCHIVED
        assert mission.rejection_reason == "Misleading reward"

        with pytest.raises(ConflictError):
            mission_service.reject_mission(session, open_mission.id_mission)

    def test_moderation_queue_lists_pending(self, session: Session, advertiser_principal, open_mission):
        pending = mission_service.create_mission(
            session, advertiser_principal, _mission_in()
        )
        session.commit()

        queue = mission_service.get_missions_by_status(session, MissionStatus.PENDING)
        assert [m.id_mission for m in queue] == [pending.id_mission]


class TestCloseAndReopen:
    def test_close_then_reopen(self, session: Session, open_mission, advertiser_principal):
        mission, posts = mission_service.close_mission(
            session, advertiser_principal, open_mission.id_mission
        )
        assert mission.status == MissionStatus.CLOSED
        assert posts == []

        mission = mission_service.reopen_mission(
            session, advertiser_principal, open_mission.id_mission
        )
        assert mission.status == MissionStatus.OPEN

    def test_close_sweeps_accepted_submission_without_post(
        self, session: Session, open_mission, missionary, submit, advertiser_principal
    ):
        submission = submit(missionary, open_mission)
        submission_service.accept_submission(
            session, advertiser_principal, submission.id_submission
        )
        session.delete(session.exec(select(FeedPost)).one())
        session.commit()

        _, posts = mission_service.close_mission(
            session, advertiser_principal, open_mission.id_mission
        )
        assert [p.id_submission for p in posts] == [submission.id_submission]
        assert posts[0].published is True

    def test_close_twice_is_a_conflict(
        self, session: Session, open_mission, advertiser_principal
    ):
        mission_service.close_mission(session, advertiser_principal, open_mission.id_mission)
        with pytest.raises(ConflictError, match="already closed"):
            mission_service.close_mission(
                session, advertiser_principal, open_mission.id_mission
            )

    def test_reopen_requires_free_slot(
        self, session: Session, open_mission, advertiser_principal
    ):
        mission_service.close_mission(session, advertiser_principal, open_mission.id_mission)
        open_mission.slots_taken = open_mission.slots_max
        session.add(open_mission)
        session.flush()

        with pytest.raises(ConflictError, match="slots"):
            mission_service.reopen_mission(
                session, advertiser_principal, open_mission.id_mission
            )

    def test_only_owner_or_admin_closes(
        self, session: Session, open_mission, missionary_principal, admin_principal
    ):
        with pytest.raises(InsufficientPermissionsError):
            mission_service.close_mission(
                session, missionary_principal, open_mission.id_mission
            )
        mission, _ = mission_service.close_mission(
            session, admin_principal, open_mission.id_mission
        )
        assert mission.status == MissionStatus.CLOSED


class TestDeleteMission:
    def test_owner_deletes(self, session: Session, open_mission, advertiser_principal):
        mission_id = open_mission.id_mission
        mission_service.delete_mission(session, advertiser_principal, mission_id)
        session.commit()
        assert session.get(Mission, mission_id) is None

    def test_other_user_cannot_delete(
        self, session: Session, open_mission, missionary_principal
    ):
        with pytest.raises(InsufficientPermissionsError):
            mission_service.delete_mission(
                session, missionary_principal, open_mission.id_mission
            )
