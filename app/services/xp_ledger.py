"""XP ledger: the only writer of the cached XP counters on User.

Each grant appends exactly one XpEvent and applies the same deltas to the
counters in the caller's transaction, so the counters always equal the sum of
the ledger. `reconcile_user_xp` checks that and `rebuild_user_xp` restores it.
"""

from sqlmodel import Session, select, func

from app.models.enums import Space, XpEventKind
from app.models.user import User
from app.models.xp_event import (
    XpBonusRequest,
    XpEvent,
    XpGrant,
    XpReconciliation,
    XpSummary,
)
from app.services import xp as xp_service
from app.exceptions import NotFoundError, ValidationError
from app.utils.logger import logger


def _grant_for_event(delta: int, space: Space | None) -> XpGrant:
    return XpGrant(
        global_xp=delta,
        pro=delta if space == Space.PRO else 0,
        solid=delta if space == Space.SOLIDAIRE else 0,
    )


def record_xp(
    session: Session,
    user: User,
    kind: XpEventKind,
    delta: int,
    space: Space | None = None,
    mission_id: int | None = None,
    description: str | None = None,
) -> XpEvent:
    """
    Append one ledger event and apply it to the user's counters.

    Parameters:
        user: The user receiving the XP, already loaded in `session`.
        kind: Why the XP was granted.
        delta: Signed amount added to `xp`, and to the space counter when `space` is set.
        space: Space the XP counts toward, or None for general-only XP.

    Returns:
        XpEvent: The flushed ledger event.
    """
    grant = _grant_for_event(delta, space)
    user.xp += grant.global_xp
    user.xp_pro += grant.pro
    user.xp_solid += grant.solid

    event = XpEvent(
        id_user=user.id_user,
        id_mission=mission_id,
        kind=kind,
        delta=delta,
        space=space,
        description=description,
    )
    session.add(user)
    session.add(event)
    session.flush()
    logger.info(f"XP {delta:+d} ({kind.value}) granted to user {user.id_user}")
    return event


def grant_manual_bonus(
    session: Session, user_id: int, bonus_in: XpBonusRequest
) -> XpEvent:
    """
    Apply an administrator XP adjustment.

    Raises:
        NotFoundError: If the user does not exist.
        ValidationError: If the delta is zero or would drive a counter below zero.
    """
    if bonus_in.delta == 0:
        raise ValidationError("Bonus delta must not be zero", field="delta")

    user = session.exec(
        select(User).where(User.id_user == user_id).with_for_update()
    ).first()
    if not user:
        raise NotFoundError("User", user_id)

    grant = _grant_for_event(bonus_in.delta, bonus_in.space)
    if (
        user.xp + grant.global_xp < 0
        or user.xp_pro + grant.pro < 0
        or user.xp_solid + grant.solid < 0
    ):
        raise ValidationError("XP counters cannot become negative", field="delta")

    return record_xp(
        session,
        user,
        XpEventKind.BONUS_MANUAL,
        bonus_in.delta,
        space=bonus_in.space,
        description=bonus_in.description,
    )


def get_xp_history(
    session: Session, user_id: int, *, offset: int = 0, limit: int = 50
) -> list[XpEvent]:
    """Ledger events of a user, newest first."""
    statement = (
        select(XpEvent)
        .where(XpEvent.id_user == user_id)
        .order_by(XpEvent.created_at.desc(), XpEvent.id_xp_event.desc())  # type: ignore
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all())


def get_xp_summary(session: Session, user_id: int) -> XpSummary:
    """
    Current counters of a user with their level breakdown.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    return XpSummary(
        id_user=user_id,
        xp=user.xp,
        xp_pro=user.xp_pro,
        xp_solid=user.xp_solid,
        general=xp_service.level_of(user.xp, is_general=True),
        pro=xp_service.level_of(user.xp_pro, is_general=False),
        solidaire=xp_service.level_of(user.xp_solid, is_general=False),
    )


def ledger_totals(session: Session, user_id: int) -> XpGrant:
    """Sum the ledger of a user into the three counters."""
    rows = session.exec(
        select(XpEvent.space, func.coalesce(func.sum(XpEvent.delta), 0))
        .where(XpEvent.id_user == user_id)
        .group_by(XpEvent.space)
    ).all()

    totals = XpGrant()
    for space, total in rows:
        totals.global_xp += total
        if space == Space.PRO:
            totals.pro += total
        elif space == Space.SOLIDAIRE:
            totals.solid += total
    return totals


def reconcile_user_xp(session: Session, user_id: int) -> XpReconciliation:
    """
    Compare the cached counters of a user with the sum of the ledger.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    cached = XpGrant(global_xp=user.xp, pro=user.xp_pro, solid=user.xp_solid)
    ledger = ledger_totals(session, user_id)
    return XpReconciliation(
        id_user=user_id,
        diverged=cached != ledger,
        cached=cached,
        ledger=ledger,
    )


def rebuild_user_xp(session: Session, user_id: int) -> XpReconciliation:
    """
    Overwrite the cached counters of a user with the ledger totals.

    Returns:
        XpReconciliation: The state found before the rebuild.
    """
    report = reconcile_user_xp(session, user_id)
    if report.diverged:
        user = session.get(User, user_id)
        user.xp = report.ledger.global_xp
        user.xp_pro = report.ledger.pro
        user.xp_solid = report.ledger.solid
        session.add(user)
        session.flush()
        logger.warning(
            f"XP counters of user {user_id} rebuilt from ledger "
            f"(cached={report.cached.model_dump()}, ledger={report.ledger.model_dump()})"
        )
    return report
