

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from app.core.config import settings
from app.db.base import Base


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    SQLite gets ``BEGIN IMMEDIATE`` transactions so concurrent writers queue
    on the busy timeout instead of failing on lock promotion.
    """
    if not database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)

    sqlite_engine = create_async_engine(
        database_url, echo=False, connect_args={"timeout": 30}
    )

    @event.listens_for(sqlite_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return sqlite_engine


# Async database engine
engine = create_engine_for_url(settings.database_url)

# Async session factory
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get async database session.

    Yields an async database session and ensures it's closed after use.

    Yields:
        AsyncSession: Database session for the request lifespan.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(db_engine: AsyncEngine = engine):
    """
    Initialize database and create all tables.

    Creates all tables defined in the models if they don't exist.
    Should be called during application startup.
    """
    # Register models on the metadata before create_all
    import app.models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
