"""Webhook dispatcher: delivery to a registered webhook with bounded retry."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from booking_webhooks.webhooks.config import WebhookConfigLoader, WebhookSettings
from booking_webhooks.webhooks.delivery import DeliveryResult, attempt_delivery
from booking_webhooks.webhooks.event import WebhookEnvelope, parse_event_type
from booking_webhooks.webhooks.exceptions import ConfigurationNotFound, ValidationError
from booking_webhooks.webhooks.models import DeliveryStatus
from booking_webhooks.webhooks.repository import ConfigurationStore, DeliveryLogStore

logger = logging.getLogger(__name__)

INACTIVE_MESSAGE = "Webhook is inactive"

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class DeliveryOutcome:
    """What was attempted for one dispatch or test invocation."""

    success: bool
    message: str
    log_id: uuid.UUID | None = None
    webhook_id: uuid.UUID | None = None
    attempts: int = 0


class WebhookDispatcher:
    """Delivers domain events to registered webhook configurations."""

    def __init__(
        self,
        configurations: ConfigurationStore,
        logs: DeliveryLogStore,
        client: httpx.AsyncClient,
        settings: WebhookSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the dispatcher.

        Args:
            configurations: Store resolving webhook ids to configurations
            logs: Store recording delivery attempts
            client: Shared outbound HTTP client
            settings: Retry policy (defaults to the loaded delivery settings)
            sleep: Coroutine used to wait between retries
        """
        self._configurations = configurations
        self._logs = logs
        self._client = client
        self._settings = settings or WebhookConfigLoader.get_config()
        self._sleep = sleep

    async def dispatch(
        self,
        webhook_id: str | uuid.UUID | None,
        event_type: str | None,
        payload: dict[str, Any] | None,
    ) -> DeliveryOutcome:
        """
        Deliver ``payload`` to the webhook's URL.

        Raises:
            ValidationError: a required input is missing or malformed
            ConfigurationNotFound: ``webhook_id`` is unknown

        Delivery failures never raise; they are reported in the outcome.
        """
        if not webhook_id or not event_type or not payload:
            raise ValidationError("Missing required fields")
        if not isinstance(payload, dict):
            raise ValidationError("Payload must be a JSON object")
        event = parse_event_type(event_type)

        config = await self._configurations.get_by_id(webhook_id)
        if config is None:
            raise ConfigurationNotFound(str(webhook_id))

        if not config.is_active:
            entry = await self._logs.create(
                webhook_id=config.id,
                event_type=event.value,
                payload=payload,
                status=DeliveryStatus.SKIPPED,
                attempts=0,
            )
            logger.info("Skipping inactive webhook %s (event: %s)", config.id, event.value)
            return DeliveryOutcome(
                success=False,
                message=INACTIVE_MESSAGE,
                log_id=entry.id,
                webhook_id=config.id,
            )

        # The first attempt is accounted for before it is made
        entry = await self._logs.create(
            webhook_id=config.id,
            event_type=event.value,
            payload=payload,
            status=DeliveryStatus.PENDING,
            attempts=1,
        )

        attempts, result = await self._deliver_with_retry(config.url, event.value, payload)

        await self._logs.update(
            entry.id,
            status=DeliveryStatus.SUCCESS if result.ok else DeliveryStatus.FAILED,
            attempts=attempts,
            http_status=result.status_code,
            error_message=None if result.ok else result.error,
        )

        if result.ok:
            return DeliveryOutcome(
                success=True,
                message="Webhook delivered successfully",
                log_id=entry.id,
                webhook_id=config.id,
                attempts=attempts,
            )

        logger.error(
            "Webhook delivery to %s failed after %d attempts: %s",
            config.id,
            attempts,
            result.error,
        )
        return DeliveryOutcome(
            success=False,
            message=f"Webhook delivery failed after {attempts} attempts: {result.error}",
            log_id=entry.id,
            webhook_id=config.id,
            attempts=attempts,
        )

    async def _deliver_with_retry(
        self,
        url: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> tuple[int, DeliveryResult]:
        """Deliver, retrying with exponential backoff until success or the attempt limit."""
        max_attempts = self._settings.max_retries
        timeout = self._settings.delivery_timeout_seconds

        attempt = 1
        result = await attempt_delivery(
            self._client, url, WebhookEnvelope(event=event_type, data=payload), timeout
        )
        self._log_attempt(url, attempt, result)

        while not result.ok and attempt < max_attempts:
            attempt += 1
            delay_ms = self._settings.backoff_delay_ms(attempt - 1)
            logger.info(
                "Retrying webhook delivery to %s (attempt %d/%d) after %dms",
                url,
                attempt,
                max_attempts,
                delay_ms,
            )
            await self._sleep(delay_ms / 1000)

            envelope = WebhookEnvelope(event=event_type, data=payload, retry=attempt)
            result = await attempt_delivery(self._client, url, envelope, timeout)
            self._log_attempt(url, attempt, result)

        return attempt, result

    @staticmethod
    def _log_attempt(url: str, attempt: int, result: DeliveryResult) -> None:
        if result.ok:
            logger.info(
                "Webhook sent successfully to %s on attempt %d (latency: %dms)",
                url,
                attempt,
                result.latency_ms or 0,
            )
        else:
            logger.warning(
                "Failed to send webhook to %s on attempt %d: %s",
                url,
                attempt,
                result.error,
            )
