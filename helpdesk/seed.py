# helpdesk/seed.py
import asyncio
import logging

from sqlalchemy import or_, select

from helpdesk.auth import get_password_hash
from helpdesk.config import Settings
from helpdesk.db import Database
from helpdesk.models import User

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {"username": "agent", "email": "agent@helpdesk.com", "password": "agent123", "role": "agent"},
    {"username": "customer", "email": "customer@helpdesk.com", "password": "customer123", "role": "user"},
]


async def seed_users(database: Database, users=None):
    """Insert sample accounts, skipping any whose username or email is taken."""
    created = []
    async with database.sessionmaker() as session:
        for u in users if users is not None else SAMPLE_USERS:
            existing = await session.scalar(
                select(User.id).where(or_(User.username == u["username"], User.email == u["email"]))
            )
            if existing is not None:
                logger.info("User already exists: %s (%s)", u["username"], u["email"])
                continue

            session.add(
                User(
                    username=u["username"],
                    email=u["email"],
                    password=get_password_hash(u["password"]),
                    role=u.get("role", "user"),
                )
            )
            await session.commit()
            logger.info("Created user: %s / %s", u["username"], u["email"])
            created.append(u["username"])
    return created


async def main():
    settings = Settings.from_env()
    database = Database(settings.database_url)
    try:
        await database.init(settings.admin_password)
        await seed_users(database)
    finally:
        await database.dispose()
    logger.info("Seeding complete.")


def run():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(main())


if __name__ == "__main__":
    run()
