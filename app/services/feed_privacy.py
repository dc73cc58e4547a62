"""Feed privacy resolution.

Downstream code branches only on the three predicates below, never on raw
enum comparisons.
"""

from app.models.enums import FeedPrivacy, FeedPrivacyOverride


def effective_privacy(
    user_default: FeedPrivacy | None, override: FeedPrivacyOverride | None
) -> FeedPrivacy:
    """
    Combine a user's default feed visibility with a per-submission override.

    A missing default is treated as AUTO and a missing override as INHERIT.

    Returns:
        FeedPrivacy: The override when it is not INHERIT, otherwise the user default.
    """
    if override is not None and override != FeedPrivacyOverride.INHERIT:
        return FeedPrivacy(override.value)
    return user_default or FeedPrivacy.AUTO


def should_create_post(privacy: FeedPrivacy) -> bool:
    return privacy != FeedPrivacy.NEVER


def should_publish_immediately(privacy: FeedPrivacy) -> bool:
    return privacy == FeedPrivacy.AUTO


def should_create_as_draft(privacy: FeedPrivacy) -> bool:
    return privacy == FeedPrivacy.ASK
