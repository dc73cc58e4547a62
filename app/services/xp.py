"""XP and level engine.

Pure functions only. Levels are grouped in 10 named tiers of 5 sub-levels (50
levels in total). Space-scoped totals (PRO / SOLIDAIRE) climb one level every
500 XP; the general total climbs one level every 1000 XP.

Every caller that needs progression (profiles, badges, admin tools) goes through
`level_of`; the threshold math lives nowhere else.
"""

from app.models.enums import Space
from app.models.xp_event import LevelInfo, XpGrant

TIERS = (
    "Bronze",
    "Argent",
    "Or",
    "Platine",
    "Diamant",
    "Saphir",
    "Émeraude",
    "Champion",
    "Grand Champion",
    "Elite",
)
TIER_BADGES = (
    "/badges/bronze.png",
    "/badges/argent.png",
    "/badges/or.png",
    "/badges/platine.png",
    "/badges/diamant.png",
    "/badges/saphir.png",
    "/badges/emeraude.png",
    "/badges/champion.png",
    "/badges/grand-champion.png",
    "/badges/elite.png",
)
SUB_LEVELS_PER_TIER = 5
MAX_LEVEL = len(TIERS) * SUB_LEVELS_PER_TIER

SPACE_THRESHOLD = 500
GENERAL_THRESHOLD = 2 * SPACE_THRESHOLD

DEFAULT_BASE_XP = 500
FOLLOW_XP = 5


def _tier_position(level: int) -> tuple[int, int]:
    tier_index = min((level - 1) // SUB_LEVELS_PER_TIER, len(TIERS) - 1)
    sub_level = (level - 1) % SUB_LEVELS_PER_TIER + 1
    return tier_index, sub_level


def level_name(level: int) -> str:
    """Display name of a level, e.g. ``level_name(13) == "Or 3"``."""
    level = min(max(level, 1), MAX_LEVEL)
    tier_index, sub_level = _tier_position(level)
    return f"{TIERS[tier_index]} {sub_level}"


def badge_for_level(level: int) -> str:
    """Public path of the badge image for a level; out-of-range levels get the first badge."""
    if level <= 0 or level > MAX_LEVEL:
        return TIER_BADGES[0]
    tier_index, _ = _tier_position(level)
    return TIER_BADGES[tier_index]


def level_of(xp: int, is_general: bool) -> LevelInfo:
    """
    Map an accumulated XP total to its level and progress.

    Parameters:
        xp (int): Accumulated XP. Negative totals are treated as zero.
        is_general (bool): True for the general total (1000 XP per level), False for a
            space-scoped total (500 XP per level).

    Returns:
        LevelInfo: tier, sub-level, level in [1, 50], XP earned inside the level, XP needed
        for the next level (0 at the last level) and progress in [0, 1] (1.0 at the last level).
    """
    threshold = GENERAL_THRESHOLD if is_general else SPACE_THRESHOLD
    xp = max(xp, 0)

    level = min(xp // threshold + 1, MAX_LEVEL)
    xp_in_level = xp - (level - 1) * threshold
    xp_for_next_level = threshold if level < MAX_LEVEL else 0

    if xp_for_next_level == 0:
        progress = 1.0
    else:
        progress = min(1.0, max(0.0, xp_in_level / xp_for_next_level))

    tier_index, sub_level = _tier_position(level)
    return LevelInfo(
        tier=TIERS[tier_index],
        tier_index=tier_index,
        sub_level=sub_level,
        level=level,
        xp_in_level=xp_in_level,
        xp_for_next_level=xp_for_next_level,
        progress=progress,
        name=f"{TIERS[tier_index]} {sub_level}",
        badge=TIER_BADGES[tier_index],
    )


def xp_for_acceptance(
    base_xp: int | None, bonus_xp: int | None, space: Space
) -> XpGrant:
    """XP granted when a submission is accepted: the mission total, mirrored into its space."""
    total = (DEFAULT_BASE_XP if base_xp is None else base_xp) + (bonus_xp or 0)
    return XpGrant(
        global_xp=total,
        pro=total if space == Space.PRO else 0,
        solid=total if space == Space.SOLIDAIRE else 0,
    )


def xp_for_follow() -> XpGrant:
    """XP granted for following a user or favoriting an advertiser."""
    return XpGrant(global_xp=FOLLOW_XP)
