import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

logger = logging.getLogger(__name__)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


def create_engine(database_url: str) -> AsyncEngine:
    """Create the async engine, registering pgvector on asyncpg connections."""
    kwargs = {"echo": False}
    if database_url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    engine = create_async_engine(database_url, **kwargs)

    if engine.dialect.driver == "asyncpg":
        from pgvector.asyncpg import register_vector

        @event.listens_for(engine.sync_engine, "connect")
        def connect(dbapi_connection, connection_record):
            dbapi_connection.run_async(register_vector)

    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


db_engine = create_engine(settings.database_url)

# Session factory used throughout the application
AsyncSessionLocal = create_sessionmaker(db_engine)


async def init_db(engine: AsyncEngine = db_engine):
    """Create extensions and tables."""
    # Import models so every table is registered on Base.metadata
    import database.models  # noqa: F401

    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized (%s)", engine.dialect.name)


async def close_db(engine: AsyncEngine = db_engine):
    """Close database engine and connections."""
    await engine.dispose()
