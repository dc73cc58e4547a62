from datetime import datetime
from typing import TYPE_CHECKING
from pydantic import field_validator
from sqlmodel import SQLModel, Field, Relationship
from app.models.enums import UserRole, FeedPrivacy
from app.utils.clock import utcnow

if TYPE_CHECKING:
    from app.models.mission import Mission


class UserBase(SQLModel):
    username: str = Field(unique=True, index=True, min_length=3, max_length=50)
    email: str = Field(unique=True, index=True, max_length=255)
    display_name: str | None = Field(default=None, max_length=80)


class User(UserBase, table=True):
    id_user: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    role: UserRole = Field(default=UserRole.MISSIONARY, index=True)
    active_role: UserRole | None = None
    feed_privacy_default: FeedPrivacy = Field(default=FeedPrivacy.AUTO)

    # Cached XP counters; the xp_event ledger is authoritative
    xp: int = Field(default=0)
    xp_pro: int = Field(default=0)
    xp_solid: int = Field(default=0)
    last_accepted_at: datetime | None = None

    # Advertiser rating aggregate
    rating_avg: float = Field(default=0.0)
    rating_count: int = Field(default=0)

    date_creation: datetime = Field(default_factory=utcnow)

    missions: list["Mission"] = Relationship(back_populates="owner")


class UserCreate(SQLModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(max_length=255)
    password: str = Field(min_length=8)
    display_name: str | None = Field(default=None, max_length=80)
    role: UserRole = UserRole.MISSIONARY

    @field_validator("role")
    @classmethod
    def no_self_granted_admin(cls, role: UserRole) -> UserRole:
        if role == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be created by signup")
        return role

    @field_validator("email")
    @classmethod
    def plausible_email(cls, email: str) -> str:
        local, _, domain = email.strip().partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return email.strip().lower()


class UserPublic(UserBase):
    id_user: int
    role: UserRole
    active_role: UserRole | None
    xp: int
    xp_pro: int
    xp_solid: int
    rating_avg: float
    rating_count: int
    date_creation: datetime


class UserUpdate(SQLModel):
    display_name: str | None = Field(default=None, max_length=80)
    feed_privacy_default: FeedPrivacy | None = None


class ActiveRoleUpdate(SQLModel):
    active_role: UserRole


class RoleUpdate(SQLModel):
    role: UserRole


class ActiveRolePublic(SQLModel):
    role: UserRole
    active_role: UserRole
