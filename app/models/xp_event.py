"""Append-only XP ledger.

Every event adds `delta` to the user's general `xp` counter, and also to
`xp_pro` or `xp_solid` when `space` is set. The user counters are a cache
that can be rebuilt from this table.
"""

from datetime import datetime
from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import SQLModel, Field
from app.models.enums import XpEventKind, Space
from app.utils.clock import utcnow


class XpEvent(SQLModel, table=True):
    __tablename__ = "xp_event"

    id_xp_event: int | None = Field(default=None, primary_key=True)
    id_user: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("user.id_user", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    id_mission: int | None = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("mission.id_mission", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    kind: XpEventKind
    delta: int
    space: Space | None = None
    description: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)


class XpEventPublic(SQLModel):
    id_xp_event: int
    id_mission: int | None
    kind: XpEventKind
    delta: int
    space: Space | None
    description: str | None
    created_at: datetime


class XpGrant(SQLModel):
    """Deltas applied to the three XP counters by one event."""

    global_xp: int = 0
    pro: int = 0
    solid: int = 0


class LevelInfo(SQLModel):
    tier: str
    tier_index: int
    sub_level: int
    level: int
    xp_in_level: int
    xp_for_next_level: int
    progress: float
    name: str
    badge: str


class XpSummary(SQLModel):
    id_user: int
    xp: int
    xp_pro: int
    xp_solid: int
    general: LevelInfo
    pro: LevelInfo
    solidaire: LevelInfo


class XpBonusRequest(SQLModel):
    delta: int = Field(ge=-10000, le=10000)
    space: Space | None = None
    description: str | None = Field(default=None, max_length=500)


class XpReconciliation(SQLModel):
    id_user: int
    diverged: bool
    cached: XpGrant
    ledger: XpGrant
