from loguru import logger
from sqlmodel import Session

from app.database.database import engine, create_db_and_tables
from app.database.init_db import init_db


def init() -> int | None:
    """
    Create missing tables, then make sure the bootstrap administrator exists.

    Returns:
        The administrator's id, or None when no superuser is configured.
    """
    create_db_and_tables()
    with Session(engine) as session:
        admin = init_db(session)
        return admin.id_user if admin else None


def main() -> None:
    logger.info("Preparing database")
    admin_id = init()
    if admin_id is not None:
        logger.info(f"Bootstrap admin ready (user {admin_id})")
    logger.info("Database ready")


if __name__ == "__main__":
    main()
