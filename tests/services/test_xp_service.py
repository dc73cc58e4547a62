"""Tests for the XP and level engine."""

import pytest

from app.models.enums import Space
from app.services import xp as xp_service


class TestLevelOf:
    """Test XP to level mapping."""

    def test_zero_xp_is_first_level(self):
        info = xp_service.level_of(0, is_general=True)
        assert info.level == 1
        assert info.name == "Bronze 1"
        assert info.xp_in_level == 0
        assert info.xp_for_next_level == 1000
        assert info.progress == 0.0

    def test_negative_xp_is_treated_as_zero(self):
        info = xp_service.level_of(-250, is_general=False)
        assert info.level == 1
        assert info.xp_in_level == 0

    @pytest.mark.parametrize(
        "xp,expected_level",
        [(499, 1), (500, 2), (999, 2), (2499, 5), (2500, 6)],
    )
    def test_space_threshold_is_500(self, xp, expected_level):
        assert xp_service.level_of(xp, is_general=False).level == expected_level

    @pytest.mark.parametrize(
        "xp,expected_level",
        [(999, 1), (1000, 2), (4999, 5), (5000, 6)],
    )
    def test_general_threshold_is_1000(self, xp, expected_level):
        assert xp_service.level_of(xp, is_general=True).level == expected_level

    def test_tier_changes_every_five_levels(self):
        info = xp_service.level_of(2500, is_general=False)
        assert info.tier == "Argent"
        assert info.tier_index == 1
        assert info.sub_level == 1
        assert info.name == "Argent 1"
        assert info.badge == "/badges/argent.png"

    def test_progress_inside_level(self):
        info = xp_service.level_of(1250, is_general=False)
        assert info.level == 3
        assert info.xp_in_level == 250
        assert info.progress == pytest.approx(0.5)

    def test_last_level_is_capped(self):
        info = xp_service.level_of(10**9, is_general=False)
        assert info.level == xp_service.MAX_LEVEL == 50
        assert info.name == "Elite 5"
        assert info.xp_for_next_level == 0
        assert info.progress == 1.0

    def test_last_level_starts_at_threshold(self):
        assert xp_service.level_of(49 * 500, is_general=False).level == 50
        assert xp_service.level_of(49 * 500 - 1, is_general=False).level == 49

    def test_level_is_monotonic(self):
        levels = [xp_service.level_of(xp, is_general=True).level for xp in range(0, 60000, 250)]
        assert levels == sorted(levels)
        assert all(1 <= level <= 50 for level in levels)


class TestLevelNamesAndBadges:
    """Test display helpers."""

    def test_level_name(self):
        assert xp_service.level_name(1) == "Bronze 1"
        assert xp_service.level_name(13) == "Or 3"
        assert xp_service.level_name(50) == "Elite 5"

    def test_level_name_clamps_out_of_range(self):
        assert xp_service.level_name(0) == "Bronze 1"
        assert xp_service.level_name(99) == "Elite 5"

    def test_badge_for_level(self):
        assert xp_service.badge_for_level(5) == "/badges/bronze.png"
        assert xp_service.badge_for_level(6) == "/badges/argent.png"
        assert xp_service.badge_for_level(50) == "/badges/elite.png"

    def test_badge_out_of_range_falls_back_to_first(self):
        assert xp_service.badge_for_level(0) == "/badges/bronze.png"
        assert xp_service.badge_for_level(51) == "/badges/bronze.png"


class TestGrants:
    """Test XP granted by lifecycle events."""

    def test_acceptance_defaults(self):
        grant = xp_service.xp_for_acceptance(None, None, Space.PRO)
        assert grant.global_xp == 500
        assert grant.pro == 500
        assert grant.solid == 0

    def test_acceptance_adds_bonus_to_space(self):
        grant = xp_service.xp_for_acceptance(300, 50, Space.SOLIDAIRE)
        assert grant.global_xp == 350
        assert grant.pro == 0
        assert grant.solid == 350

    def test_acceptance_with_zero_xp(self):
        grant = xp_service.xp_for_acceptance(0, 0, Space.PRO)
        assert grant.global_xp == grant.pro == grant.solid == 0

    def test_follow_grants_general_xp_only(self):
        grant = xp_service.xp_for_follow()
        assert grant.global_xp == 5
        assert grant.pro == grant.solid == 0
