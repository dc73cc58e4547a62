"""User service module: accounts, profile and role selection."""

from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError

from app.core.password import get_password_hash
from app.core.roles import Principal, capabilities_for, resolve_active_role
from app.models.enums import UserRole
from app.models.user import ActiveRolePublic, User, UserCreate, UserUpdate
from app.exceptions import (
    AlreadyExistsError,
    InsufficientPermissionsError,
    NotFoundError,
)
from app.utils.logger import logger
from app.utils.validation import mask_email


def create_user(session: Session, user_in: UserCreate) -> User:
    """
    Create and persist a new user with a hashed password.

    Parameters:
        user_in (UserCreate): Signup data; `role` is MISSIONARY or ADVERTISER.

    Returns:
        User: The created User model instance.

    Raises:
        AlreadyExistsError: If a user with the same username or email already exists.
    """
    if get_user_by_username(session, user_in.username):
        raise AlreadyExistsError("User", "username", user_in.username)
    if get_user_by_email(session, user_in.email):
        raise AlreadyExistsError("User", "email", user_in.email)

    hashed_password = get_password_hash(user_in.password)
    db_user = User.model_validate(user_in, update={"hashed_password": hashed_password})

    session.add(db_user)
    try:
        with session.begin_nested():
            session.flush()
    except IntegrityError:
        raise AlreadyExistsError("User", "unique field", "username or email")
    session.refresh(db_user)
    logger.info(
        f"User {db_user.id_user} signed up as {db_user.role.value} "
        f"({mask_email(db_user.email)})"
    )
    return db_user


def get_user(session: Session, user_id: int) -> User | None:
    return session.get(User, user_id)


def get_user_by_username(session: Session, username: str) -> User | None:
    """
    Retrieve a user by username.

    Returns:
        User | None: `User` if a matching record exists, `None` otherwise.
    """
    statement = select(User).where(User.username == username)
    return session.exec(statement).first()


def get_user_by_email(session: Session, email: str) -> User | None:
    statement = select(User).where(User.email == email.strip().lower())
    return session.exec(statement).first()


def update_user(session: Session, user_id: int, user_update: UserUpdate) -> User:
    """
    Update a user's display name or default feed privacy.

    Raises:
        NotFoundError: If no user exists with the given `user_id`.
    """
    db_user = get_user(session, user_id)
    if not db_user:
        raise NotFoundError("User", user_id)

    for key, value in user_update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(db_user, key, value)

    session.add(db_user)
    session.flush()
    return db_user


def get_active_role(user: User) -> ActiveRolePublic:
    return ActiveRolePublic(role=user.role, active_role=resolve_active_role(user))


def set_active_role(
    session: Session, principal: Principal, role: UserRole
) -> ActiveRolePublic:
    """
    Switch the role the caller acts under.

    Raises:
        InsufficientPermissionsError: If the caller does not hold `role`.
    """
    if not principal.can(role):
        raise InsufficientPermissionsError(f"Role {role.value} is not held by this user")

    user = principal.user
    user.active_role = role
    session.add(user)
    session.flush()
    logger.info(f"User {user.id_user} now acts as {role.value}")
    return get_active_role(user)


def set_user_role(session: Session, user_id: int, role: UserRole) -> User:
    """
    Change a user's privilege level (admin operation).

    An active role the user no longer holds is cleared.

    Raises:
        NotFoundError: If no user exists with the given `user_id`.
    """
    user = get_user(session, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    user.role = role
    if user.active_role and user.active_role not in capabilities_for(role):
        user.active_role = None
    session.add(user)
    session.flush()
    logger.info(f"User {user_id} privilege set to {role.value}")
    return user
