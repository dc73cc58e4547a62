"""Identity and role resolution.

A user holds one privilege level (`User.role`); every role at or below it is a
capability. The user acts under one active role at a time.
"""

from dataclasses import dataclass

from app.models.enums import UserRole
from app.models.user import User

ROLE_ORDER = (UserRole.MISSIONARY, UserRole.ADVERTISER, UserRole.ADMIN)


def capabilities_for(role: UserRole) -> frozenset[UserRole]:
    """Roles a user holding privilege `role` may act as."""
    return frozenset(ROLE_ORDER[: ROLE_ORDER.index(role) + 1])


def resolve_active_role(user: User) -> UserRole:
    """The stored active role when it is still held, the privilege level otherwise."""
    if user.active_role and user.active_role in capabilities_for(user.role):
        return user.active_role
    return user.role


@dataclass(frozen=True)
class Principal:
    """Who is calling and which role they act under."""

    user: User
    capabilities: frozenset[UserRole]
    active_role: UserRole

    @property
    def id(self) -> int:
        assert self.user.id_user is not None
        return self.user.id_user

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN in self.capabilities

    def can(self, role: UserRole) -> bool:
        return role in self.capabilities

    def owns_or_admin(self, owner_id: int) -> bool:
        return self.id == owner_id or self.is_admin

    @classmethod
    def of(cls, user: User) -> "Principal":
        return cls(
            user=user,
            capabilities=capabilities_for(user.role),
            active_role=resolve_active_role(user),
        )
