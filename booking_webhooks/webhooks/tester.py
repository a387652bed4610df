"""Test invocation: one-shot delivery to a URL with implicit registration."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from booking_webhooks.webhooks.config import WebhookConfigLoader, WebhookSettings
from booking_webhooks.webhooks.delivery import attempt_delivery
from booking_webhooks.webhooks.dispatcher import DeliveryOutcome
from booking_webhooks.webhooks.event import WebhookEnvelope, default_test_payload, parse_event_type
from booking_webhooks.webhooks.exceptions import DuplicateConfiguration, ValidationError
from booking_webhooks.webhooks.models import DeliveryStatus, WebhookConfiguration
from booking_webhooks.webhooks.repository import ConfigurationStore, DeliveryLogStore

logger = logging.getLogger(__name__)


class WebhookTester:
    """Sends a single test event to a URL, registering it if unseen."""

    def __init__(
        self,
        configurations: ConfigurationStore,
        logs: DeliveryLogStore,
        client: httpx.AsyncClient,
        settings: WebhookSettings | None = None,
    ):
        self._configurations = configurations
        self._logs = logs
        self._client = client
        self._settings = settings or WebhookConfigLoader.get_config()

    async def test_deliver(
        self,
        url: str | None,
        event_type: str | None,
        payload: dict[str, Any] | None = None,
    ) -> DeliveryOutcome:
        """
        Deliver a test event to ``url`` exactly once, without retry.

        An existing configuration for ``url`` is reused as-is; otherwise one
        is created as active for ``event_type``. The outcome always carries
        the resolved webhook id.
        """
        if not url or not event_type:
            raise ValidationError("Missing required fields")
        if payload is not None and not isinstance(payload, dict):
            raise ValidationError("Payload must be a JSON object")
        event = parse_event_type(event_type)

        config = await self._find_or_create(url, event.value)
        data = payload if payload is not None else default_test_payload()

        entry = await self._logs.create(
            webhook_id=config.id,
            event_type=event.value,
            payload=data,
            status=DeliveryStatus.PENDING,
            attempts=0,
        )

        envelope = WebhookEnvelope(event=event.value, data=data, test=True)
        result = await attempt_delivery(
            self._client, url, envelope, self._settings.delivery_timeout_seconds
        )

        await self._logs.update(
            entry.id,
            status=DeliveryStatus.SUCCESS if result.ok else DeliveryStatus.FAILED,
            attempts=1,
            http_status=result.status_code,
            error_message=None if result.ok else result.error,
        )

        if result.ok:
            logger.info("Test webhook delivered to %s", url)
            message = "Test webhook delivered successfully"
        else:
            logger.warning("Test webhook to %s failed: %s", url, result.error)
            message = f"Test webhook delivery failed: {result.error}"

        return DeliveryOutcome(
            success=result.ok,
            message=message,
            log_id=entry.id,
            webhook_id=config.id,
            attempts=1,
        )

    async def _find_or_create(self, url: str, event_type: str) -> WebhookConfiguration:
        config = await self._configurations.get_by_url(url)
        if config is not None:
            return config

        try:
            config = await self._configurations.create(
                url=url,
                event_type=event_type,
                is_active=True,
            )
        except DuplicateConfiguration:
            # Lost a race with a concurrent first-time test of the same URL
            config = await self._configurations.get_by_url(url)
            if config is None:
                raise
            return config

        logger.info("Registered webhook %s for %s (%s)", config.id, url, event_type)
        return config
