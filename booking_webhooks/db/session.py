"""Async engine and sessions for the configuration and delivery log tables."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from booking_webhooks.config import get_settings

engine = create_async_engine(get_settings().DATABASE_URL, pool_pre_ping=True)

# Shared by request handlers, the emitter's per-dispatch sessions and the sweeper
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Request-scoped session; stores commit their own writes."""
    async with async_session_factory() as session:
        yield session
