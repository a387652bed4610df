"""FastAPI dependencies wiring stores and the HTTP client into the services."""

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_webhooks.db.session import async_session_factory, get_db
from booking_webhooks.webhooks.config import WebhookConfigLoader, WebhookSettings
from booking_webhooks.webhooks.dispatcher import WebhookDispatcher
from booking_webhooks.webhooks.emitter import WebhookEmitter
from booking_webhooks.webhooks.repository import SqlConfigurationStore, SqlDeliveryLogStore
from booking_webhooks.webhooks.tester import WebhookTester


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared outbound client created in the application lifespan."""
    return request.app.state.http_client


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


def get_webhook_settings() -> WebhookSettings:
    return WebhookConfigLoader.get_config()


def get_dispatcher(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: WebhookSettings = Depends(get_webhook_settings),
) -> WebhookDispatcher:
    return WebhookDispatcher(
        SqlConfigurationStore(db),
        SqlDeliveryLogStore(db),
        client,
        settings=settings,
    )


def get_tester(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: WebhookSettings = Depends(get_webhook_settings),
) -> WebhookTester:
    return WebhookTester(
        SqlConfigurationStore(db),
        SqlDeliveryLogStore(db),
        client,
        settings=settings,
    )


def get_emitter(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: WebhookSettings = Depends(get_webhook_settings),
) -> WebhookEmitter:
    return WebhookEmitter(session_factory, client, settings=settings)
