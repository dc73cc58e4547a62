from sqlmodel import Session, select
from loguru import logger

from app.core.config import get_settings
from app.core.password import get_password_hash
from app.models.enums import UserRole
from app.models.user import User


def init_db(session: Session) -> User | None:
    """
    Ensure the configured initial administrator exists.

    Does nothing when FIRST_SUPERUSER_EMAIL or FIRST_SUPERUSER_PASSWORD is not
    set. An existing account with the configured username or email is promoted
    to ADMIN instead of being duplicated.

    Returns:
        User | None: The administrator, or None when bootstrap is not configured.
    """
    settings = get_settings()
    password = settings.FIRST_SUPERUSER_PASSWORD
    if (
        not settings.FIRST_SUPERUSER_EMAIL
        or not password
        or not password.get_secret_value()
    ):
        logger.warning("First superuser not configured. Skipping creation.")
        return None

    admin = session.exec(
        select(User).where(
            (User.username == settings.FIRST_SUPERUSER_USERNAME)
            | (User.email == settings.FIRST_SUPERUSER_EMAIL)
        )
    ).first()

    if admin:
        if admin.role != UserRole.ADMIN:
            admin.role = UserRole.ADMIN
            session.add(admin)
            session.commit()
            logger.info(f"Existing user {admin.id_user} promoted to admin")
        return admin

    admin = User(
        username=settings.FIRST_SUPERUSER_USERNAME,
        email=settings.FIRST_SUPERUSER_EMAIL,
        display_name="Admin",
        hashed_password=get_password_hash(password.get_secret_value()),
        role=UserRole.ADMIN,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("First superuser created successfully")
    return admin
