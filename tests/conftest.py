"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["TESTING"] = "1"
os.environ.setdefault("WEBHOOK_CONFIG_PATH", "tests/missing-webhooks.yaml")

from booking_webhooks.db.base import Base
from booking_webhooks.db.session import get_db
from booking_webhooks.main import app
from booking_webhooks.webhooks.config import WebhookSettings
from booking_webhooks.webhooks.dependencies import (
    get_http_client,
    get_session_factory,
    get_webhook_settings,
)
from booking_webhooks.webhooks.models import WebhookConfiguration
from booking_webhooks.webhooks.repository import SqlConfigurationStore, SqlDeliveryLogStore
from tests.helpers import FakeReceiver, RecordingSleep

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session


@pytest.fixture
def configurations(db_session) -> SqlConfigurationStore:
    return SqlConfigurationStore(db_session)


@pytest.fixture
def logs(db_session) -> SqlDeliveryLogStore:
    return SqlDeliveryLogStore(db_session)


@pytest.fixture
def receiver() -> FakeReceiver:
    return FakeReceiver()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def webhook_settings() -> WebhookSettings:
    """Default delivery policy: 3 attempts, 1s base delay."""
    return WebhookSettings()


@pytest_asyncio.fixture
async def active_webhook(configurations) -> WebhookConfiguration:
    return await configurations.create(
        url="https://good.example",
        event_type="appointment_created",
    )


@pytest_asyncio.fixture
async def inactive_webhook(configurations) -> WebhookConfiguration:
    return await configurations.create(
        url="https://paused.example",
        event_type="appointment_created",
        is_active=False,
    )


@pytest_asyncio.fixture
async def client(db_engine, db_session: AsyncSession, receiver: FakeReceiver):
    """Create test HTTP client with mocked dependencies."""

    async def override_get_db():
        yield db_session

    outbound = receiver.client()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_client] = lambda: outbound
    app.dependency_overrides[get_session_factory] = lambda: async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    # Near-zero backoff so retries do not slow the suite down
    app.dependency_overrides[get_webhook_settings] = lambda: WebhookSettings(retry_base_delay_ms=1)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await outbound.aclose()
