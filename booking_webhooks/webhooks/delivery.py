"""Single webhook delivery attempt."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

import httpx

from booking_webhooks.webhooks.event import WebhookEnvelope

logger = logging.getLogger(__name__)

DELIVERY_HEADERS = {"Content-Type": "application/json"}


@dataclass
class DeliveryResult:
    """Result of a webhook delivery attempt."""

    ok: bool
    status_code: int | None = None
    error: str | None = None
    latency_ms: int | None = None


async def attempt_delivery(
    client: httpx.AsyncClient,
    url: str,
    envelope: WebhookEnvelope,
    timeout: float | None = None,
) -> DeliveryResult:
    """POST the envelope to ``url``; any 2xx response counts as delivered.

    Transport errors are folded into the result and never raised.
    """
    body = json.dumps(envelope.to_payload())
    start_time = time.monotonic()

    try:
        response = await client.post(
            url,
            content=body,
            headers=DELIVERY_HEADERS,
            timeout=timeout,
        )
    except httpx.TimeoutException:
        return DeliveryResult(ok=False, error="Request timeout")
    except httpx.RequestError as e:
        return DeliveryResult(ok=False, error=str(e)[:500] or type(e).__name__)
    except httpx.InvalidURL as e:
        return DeliveryResult(ok=False, error=f"Invalid URL: {e}")

    latency_ms = int((time.monotonic() - start_time) * 1000)

    if 200 <= response.status_code < 300:
        return DeliveryResult(ok=True, status_code=response.status_code, latency_ms=latency_ms)

    return DeliveryResult(
        ok=False,
        status_code=response.status_code,
        error=f"HTTP error: {response.status_code} {response.reason_phrase}".rstrip(),
        latency_ms=latency_ms,
    )
