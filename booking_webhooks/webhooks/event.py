"""Webhook event types and the outbound envelope."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from booking_webhooks.webhooks.exceptions import ValidationError

TEST_EVENT_MESSAGE = "This is a test webhook event"


class WebhookEventType(StrEnum):
    """Domain events a webhook configuration can subscribe to."""

    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_COMPLETED = "appointment_completed"
    PROFESSIONAL_CREATED = "professional_created"
    SERVICE_CREATED = "service_created"


@dataclass
class WebhookEnvelope:
    """JSON body POSTed to a webhook URL."""

    event: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    retry: int | None = None
    test: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Convert to JSON-serializable payload.

        ``retry`` is only present on redelivery attempts and ``test`` only on
        test invocations.
        """
        payload: dict[str, Any] = {
            "event": self.event,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.retry is not None:
            payload["retry"] = self.retry
        if self.test:
            payload["test"] = True
        return payload


def default_test_payload() -> dict[str, Any]:
    """Payload sent by a test invocation when the caller supplies none."""
    return {
        "test": True,
        "timestamp": datetime.now(UTC).isoformat(),
        "message": TEST_EVENT_MESSAGE,
    }


def parse_event_type(value: Any) -> WebhookEventType:
    """Validate a raw event type string."""
    if not value:
        raise ValidationError("Missing required fields")
    try:
        return WebhookEventType(value)
    except ValueError:
        raise ValidationError(f"Unsupported event type: {value}") from None
