"""Follow and favorite-advertiser link tables (user-to-user edges)."""

from datetime import datetime
from sqlmodel import SQLModel, Field
from app.utils.clock import utcnow


class Follow(SQLModel, table=True):
    """Link table for user-follows-user edges (many-to-many)."""

    id_follower: int = Field(foreign_key="user.id_user", primary_key=True)
    id_target: int = Field(foreign_key="user.id_user", primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)


class FavoriteAdvertiser(SQLModel, table=True):
    """Link table for a user's favorite advertisers (many-to-many)."""

    __tablename__ = "favorite_advertiser"

    id_user: int = Field(foreign_key="user.id_user", primary_key=True)
    id_advertiser: int = Field(foreign_key="user.id_user", primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)


class EdgeResult(SQLModel):
    id_user: int
    id_target: int
    active: bool
    xp_granted: int = 0
