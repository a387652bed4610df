"""Shared test doubles."""

import json
import uuid

import httpx
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_webhooks.webhooks.models import WebhookLog


class FakeReceiver:
    """Webhook receiver behind an ``httpx.MockTransport``.

    Answers with ``statuses`` in order (the last one repeats) and records
    every request it sees.
    """

    def __init__(self, statuses: list[int] | None = None, error: type[Exception] | None = None):
        self.statuses = statuses or [200]
        self.error = error
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("Connection refused", request=request)
        status = self.statuses[min(len(self.requests), len(self.statuses)) - 1]
        return httpx.Response(status, text="ok" if status < 300 else "error")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


async def count_rows(session: AsyncSession, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class InMemoryDeliveryLogStore:
    """DeliveryLogStore keeping entries in a dict."""

    def __init__(self):
        self.entries: dict[uuid.UUID, WebhookLog] = {}
        self.updates: list[tuple[uuid.UUID, dict]] = []

    async def create(self, webhook_id, event_type, payload, status, attempts) -> WebhookLog:
        entry = WebhookLog(
            id=uuid.uuid4(),
            webhook_id=webhook_id,
            event_type=event_type,
            payload=payload,
            status=status.value,
            attempts=attempts,
        )
        self.entries[entry.id] = entry
        return entry

    async def update(self, log_id, **patch) -> None:
        self.updates.append((log_id, patch))
        entry = self.entries[log_id]
        for key, value in patch.items():
            setattr(entry, key, getattr(value, "value", value))
