from enum import Enum


class UserRole(str, Enum):
    """Privilege levels, ordered from least to most privileged."""

    MISSIONARY = "missionary"
    ADVERTISER = "advertiser"
    ADMIN = "admin"


class Space(str, Enum):
    PRO = "pro"
    SOLIDAIRE = "solidaire"


class MissionStatus(str, Enum):
    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"
    ARCHIVED = "archived"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REFUSED = "refused"


class FeedPrivacy(str, Enum):
    AUTO = "auto"
    ASK = "ask"
    NEVER = "never"


class FeedPrivacyOverride(str, Enum):
    INHERIT = "inherit"
    AUTO = "auto"
    ASK = "ask"
    NEVER = "never"


class XpEventKind(str, Enum):
    MISSION_ACCEPTED = "mission_accepted"
    FOLLOW = "follow"
    FAVORITE = "favorite"
    BONUS_MANUAL = "bonus_manual"


class MessageType(str, Enum):
    TEXT = "text"
    CODE = "code"
    REWARD = "reward"


class ThreadBinding(str, Enum):
    """What a thread is attached to; exactly one applies per thread."""

    APPLICATION = "application"
    SUBMISSION = "submission"
    DIRECT = "direct"
