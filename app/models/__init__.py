"""Table models, imported here so SQLModel.metadata and relationship lookups see every table."""

from app.models.user import User
from app.models.mission import Mission
from app.models.application import Application
from app.models.submission import Submission
from app.models.thread import Thread, Message
from app.models.rating import Rating
from app.models.xp_event import XpEvent
from app.models.feed import FeedPost, FeedLike, FeedComment
from app.models.follow import Follow, FavoriteAdvertiser
from app.models.notification import Notification

__all__ = [
    "User",
    "Mission",
    "Application",
    "Submission",
    "Thread",
    "Message",
    "Rating",
    "XpEvent",
    "FeedPost",
    "FeedLike",
    "FeedComment",
    "Follow",
    "FavoriteAdvertiser",
    "Notification",
]
