from loguru import logger
from sqlmodel import SQLModel, Session, select
from app.core.config import settings
from app.db.core import engine
from app.db.schema import User, Role
from app.services.password import get_password_hash


def seed_root_user(session: Session) -> User:
    """Creates the platform super-admin if it doesn't exist."""
    logger.info("--- Seeding Root User ---")

    if not settings.root_password:
        raise RuntimeError("ROOT_PASSWORD is not configured.")

    user = session.exec(
        select(User).where(User.email == settings.root_email)).first()
    if user:
        logger.info(f"Existing root user: {user.email}")
        return user

    user = User(
        name="Root",
        email=settings.root_email,
        hashed_password=get_password_hash(settings.root_password),
        company_id=None,
        role=Role.ROOT,
        is_active=True
    )
    session.add(user)
    session.flush()
    logger.info(f"Created root user: {user.email}")
    return user


def main():
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        try:
            seed_root_user(session)

            session.commit()
            logger.info("Database seeding completed successfully.")

        except Exception as e:
            session.rollback()
            logger.error(f"Seeding failed: {e}")
            raise e


if __name__ == "__main__":
    main()
