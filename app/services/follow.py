"""Follow and favorite-advertiser edges, each rewarded once with a little XP."""

from sqlmodel import Session, select, func
from sqlalchemy.exc import IntegrityError

from app.core.roles import Principal
from app.models.enums import UserRole, XpEventKind
from app.models.follow import EdgeResult, FavoriteAdvertiser, Follow
from app.models.user import User
from app.services import xp as xp_service
from app.services import xp_ledger as xp_ledger_service
from app.exceptions import ConflictError, NotFoundError, ValidationError

MAX_EDGES = 50


def _get_target(session: Session, principal: Principal, target_id: int) -> User:
    if target_id == principal.id:
        raise ValidationError("Cannot target yourself", field="id_user")
    target = session.get(User, target_id)
    if not target:
        raise NotFoundError("User", target_id)
    return target


def _grant_edge_xp(
    session: Session, principal: Principal, kind: XpEventKind, target_id: int
) -> int:
    follower = session.exec(
        select(User).where(User.id_user == principal.id).with_for_update()
    ).one()
    grant = xp_service.xp_for_follow()
    xp_ledger_service.record_xp(
        session,
        follower,
        kind,
        grant.global_xp,
        description=f"{kind.value} user {target_id}",
    )
    return grant.global_xp


def _insert_edge(
    session: Session, edge: Follow | FavoriteAdvertiser, what: str
) -> None:
    session.add(edge)
    try:
        with session.begin_nested():
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Already {what}", what.capitalize())


def follow_user(session: Session, principal: Principal, target_id: int) -> EdgeResult:
    """
    Follow another user.

    Raises:
        NotFoundError: If the target does not exist.
        ValidationError: If the caller targets themselves.
        ConflictError: If the edge exists or the caller already follows 50 users.
    """
    _get_target(session, principal, target_id)

    if session.get(Follow, (principal.id, target_id)):
        raise ConflictError("Already following", "Follow")
    count = session.exec(
        select(func.count())
        .select_from(Follow)
        .where(Follow.id_follower == principal.id)
    ).one()
    if count >= MAX_EDGES:
        raise ConflictError(f"Cannot follow more than {MAX_EDGES} users", "Follow")

    _insert_edge(
        session, Follow(id_follower=principal.id, id_target=target_id), "following"
    )
    xp = _grant_edge_xp(session, principal, XpEventKind.FOLLOW, target_id)
    return EdgeResult(
        id_user=principal.id, id_target=target_id, active=True, xp_granted=xp
    )


def unfollow_user(session: Session, principal: Principal, target_id: int) -> EdgeResult:
    """Stop following a user. XP granted by the follow is kept."""
    edge = session.get(Follow, (principal.id, target_id))
    if not edge:
        raise NotFoundError("Follow", target_id)
    session.delete(edge)
    session.flush()
    return EdgeResult(id_user=principal.id, id_target=target_id, active=False)


def favorite_advertiser(
    session: Session, principal: Principal, advertiser_id: int
) -> EdgeResult:
    """
    Add an advertiser to the caller's favorites.

    Raises:
        NotFoundError: If the target does not exist.
        ValidationError: If the caller targets themselves or the target cannot post missions.
        ConflictError: If the favorite exists or the caller already has 50 favorites.
    """
    target = _get_target(session, principal, advertiser_id)
    if target.role not in (UserRole.ADVERTISER, UserRole.ADMIN):
        raise ValidationError("Target is not an advertiser", field="id_user")

    if session.get(FavoriteAdvertiser, (principal.id, advertiser_id)):
        raise ConflictError("Already a favorite", "FavoriteAdvertiser")
    count = session.exec(
        select(func.count())
        .select_from(FavoriteAdvertiser)
        .where(FavoriteAdvertiser.id_user == principal.id)
    ).one()
    if count >= MAX_EDGES:
        raise ConflictError(
            f"Cannot favorite more than {MAX_EDGES} advertisers", "FavoriteAdvertiser"
        )

    _insert_edge(
        session,
        FavoriteAdvertiser(id_user=principal.id, id_advertiser=advertiser_id),
        "favorite",
    )
    xp = _grant_edge_xp(session, principal, XpEventKind.FAVORITE, advertiser_id)
    return EdgeResult(
        id_user=principal.id, id_target=advertiser_id, active=True, xp_granted=xp
    )


def unfavorite_advertiser(
    session: Session, principal: Principal, advertiser_id: int
) -> EdgeResult:
    """Remove an advertiser from favorites. XP granted by the favorite is kept."""
    edge = session.get(FavoriteAdvertiser, (principal.id, advertiser_id))
    if not edge:
        raise NotFoundError("FavoriteAdvertiser", advertiser_id)
    session.delete(edge)
    session.flush()
    return EdgeResult(id_user=principal.id, id_target=advertiser_id, active=False)


def get_following(session: Session, user_id: int) -> list[int]:
    """Ids of the users followed by `user_id`."""
    statement = select(Follow.id_target).where(Follow.id_follower == user_id)
    return list(session.exec(statement).all())
