"""Webhook event emitter: fans a domain event out to subscribed webhooks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_webhooks.webhooks.config import WebhookConfigLoader, WebhookSettings
from booking_webhooks.webhooks.dispatcher import DeliveryOutcome, Sleep, WebhookDispatcher
from booking_webhooks.webhooks.event import parse_event_type
from booking_webhooks.webhooks.exceptions import ValidationError
from booking_webhooks.webhooks.repository import SqlConfigurationStore, SqlDeliveryLogStore

logger = logging.getLogger(__name__)


class WebhookEmitter:
    """Dispatches an event to every active configuration subscribed to it."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: httpx.AsyncClient,
        settings: WebhookSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._session_factory = session_factory
        self._client = client
        self._settings = settings or WebhookConfigLoader.get_config()
        self._sleep = sleep

    async def emit(
        self, event_type: str | None, payload: dict[str, Any] | None
    ) -> list[DeliveryOutcome]:
        """
        Deliver ``payload`` to all active webhooks for ``event_type``.

        Each configuration is dispatched concurrently in its own session, so
        one slow or failing endpoint never holds up the others.

        Returns:
            One outcome per matching configuration (empty if none match)
        """
        if not event_type or not payload:
            raise ValidationError("Missing required fields")
        if not isinstance(payload, dict):
            raise ValidationError("Payload must be a JSON object")
        event = parse_event_type(event_type)

        async with self._session_factory() as session:
            configs = await SqlConfigurationStore(session).list_active_for_event(event.value)
            webhook_ids = [config.id for config in configs]

        if not webhook_ids:
            logger.debug("No active webhooks subscribe to event: %s", event.value)
            return []

        logger.info("Dispatching %s to %d webhook(s)", event.value, len(webhook_ids))
        return list(
            await asyncio.gather(
                *(
                    self._dispatch_one(webhook_id, event.value, payload)
                    for webhook_id in webhook_ids
                )
            )
        )

    async def _dispatch_one(
        self, webhook_id, event_type: str, payload: dict[str, Any]
    ) -> DeliveryOutcome:
        async with self._session_factory() as session:
            dispatcher = WebhookDispatcher(
                SqlConfigurationStore(session),
                SqlDeliveryLogStore(session),
                self._client,
                settings=self._settings,
                sleep=self._sleep,
            )
            try:
                return await dispatcher.dispatch(webhook_id, event_type, payload)
            except Exception:
                logger.exception(
                    "Unhandled error dispatching %s to webhook %s", event_type, webhook_id
                )
                return DeliveryOutcome(
                    success=False,
                    message="Internal server error",
                    webhook_id=webhook_id,
                )
