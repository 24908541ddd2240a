# helpdesk/db.py
import logging
from contextlib import asynccontextmanager

from sqlalchemy import event, select, or_
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from helpdesk.auth import get_password_hash
from helpdesk.models import Base, User

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine and hands out one session per request."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    async def init(self, admin_password: str = "admin123"):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await self.ensure_admin(admin_password)
        logger.info("Database tables initialized")

    async def ensure_admin(self, password: str):
        async with self.sessionmaker() as session:
            existing = await session.scalar(
                select(User.id).where(or_(User.username == "admin", User.email == "admin@helpdesk.com"))
            )
            if existing is not None:
                return
            session.add(
                User(
                    username="admin",
                    email="admin@helpdesk.com",
                    password=get_password_hash(password),
                    role="admin",
                )
            )
            await session.commit()
            logger.info("Default admin user created (username: admin)")

    @asynccontextmanager
    async def session(self):
        async with self.sessionmaker() as session:
            yield session

    async def dispose(self):
        await self.engine.dispose()
