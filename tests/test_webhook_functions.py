"""Tests for the webhook function endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from booking_webhooks.main import app
from booking_webhooks.webhooks.dependencies import get_dispatcher
from booking_webhooks.webhooks.models import DeliveryStatus, WebhookConfiguration
from tests.helpers import count_rows

PROCESS_URL = "/functions/v1/process-webhook"
TEST_URL = "/functions/v1/test-webhook"
EMIT_URL = "/functions/v1/emit-event"


class TestProcessWebhookEndpoint:
    """Tests for POST /functions/v1/process-webhook."""

    @pytest.mark.asyncio
    async def test_delivered(self, client: AsyncClient, active_webhook, receiver, logs):
        response = await client.post(
            PROCESS_URL,
            json={
                "webhookId": str(active_webhook.id),
                "eventType": "appointment_created",
                "payload": {"id": "a1"},
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Webhook delivered successfully"
        entry = await logs.get(uuid.UUID(data["logId"]))
        assert entry.status == DeliveryStatus.SUCCESS.value
        assert len(receiver.requests) == 1

    @pytest.mark.asyncio
    async def test_delivery_failure_is_200(self, client: AsyncClient, active_webhook, receiver):
        receiver.statuses = [500]

        response = await client.post(
            PROCESS_URL,
            json={
                "webhookId": str(active_webhook.id),
                "eventType": "appointment_created",
                "payload": {"id": "a1"},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["message"].startswith("Webhook delivery failed after 3 attempts")
        assert "logId" in data
        assert len(receiver.requests) == 3

    @pytest.mark.asyncio
    async def test_inactive_webhook(self, client: AsyncClient, inactive_webhook, receiver):
        response = await client.post(
            PROCESS_URL,
            json={
                "webhookId": str(inactive_webhook.id),
                "eventType": "appointment_created",
                "payload": {"id": "a1"},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Webhook is inactive"
        assert receiver.requests == []

    @pytest.mark.asyncio
    async def test_unknown_webhook(self, client: AsyncClient):
        response = await client.post(
            PROCESS_URL,
            json={
                "webhookId": str(uuid.uuid4()),
                "eventType": "appointment_created",
                "payload": {"id": "a1"},
            },
        )

        assert response.status_code == 404
        assert response.json()["error"].startswith("Webhook configuration not found")
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"eventType": "appointment_created", "payload": {"id": "a1"}},
            {"webhookId": "w1", "payload": {"id": "a1"}},
            {"webhookId": "w1", "eventType": "appointment_created"},
            {"webhookId": "w1", "eventType": "appointment_created", "payload": {}},
        ],
    )
    async def test_missing_fields(self, client: AsyncClient, body):
        response = await client.post(PROCESS_URL, json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    @pytest.mark.asyncio
    async def test_malformed_json(self, client: AsyncClient):
        response = await client.post(
            PROCESS_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, client: AsyncClient):
        response = await client.get(PROCESS_URL)

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_500(self, client: AsyncClient):
        class BrokenDispatcher:
            async def dispatch(self, webhook_id, event_type, payload):
                raise RuntimeError("database went away")

        app.dependency_overrides[get_dispatcher] = lambda: BrokenDispatcher()

        response = await client.post(
            PROCESS_URL,
            json={"webhookId": "w1", "eventType": "appointment_created", "payload": {"a": 1}},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert response.headers["access-control-allow-origin"] == "*"


class TestPreflight:
    """Tests for CORS preflight on the function endpoints."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", [PROCESS_URL, TEST_URL, EMIT_URL])
    async def test_options(self, client: AsyncClient, db_session, path):
        response = await client.options(path)

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert "content-type" in response.headers["access-control-allow-headers"]
        assert await count_rows(db_session, WebhookConfiguration) == 0


class TestTestWebhookEndpoint:
    """Tests for POST /functions/v1/test-webhook."""

    @pytest.mark.asyncio
    async def test_registers_and_delivers(
        self, client: AsyncClient, receiver, configurations, logs
    ):
        response = await client.post(
            TEST_URL,
            json={"url": "https://new.example/hook", "event_type": "appointment_created"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Test webhook delivered successfully"
        config = await configurations.get_by_url("https://new.example/hook")
        assert data["webhookId"] == str(config.id)
        entry = await logs.get(uuid.UUID(data["logId"]))
        assert entry.status == DeliveryStatus.SUCCESS.value
        assert receiver.bodies[0]["test"] is True

    @pytest.mark.asyncio
    async def test_failure(self, client: AsyncClient, receiver):
        receiver.statuses = [502]

        response = await client.post(
            TEST_URL,
            json={"url": "https://new.example/hook", "event_type": "service_created"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["message"].startswith("Test webhook delivery failed: HTTP error: 502")
        assert len(receiver.requests) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"event_type": "appointment_created"},
            {"url": "https://new.example/hook"},
        ],
    )
    async def test_missing_fields(self, client: AsyncClient, db_session, body):
        response = await client.post(TEST_URL, json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}
        assert await count_rows(db_session, WebhookConfiguration) == 0


class TestEmitEventEndpoint:
    """Tests for POST /functions/v1/emit-event."""

    @pytest.mark.asyncio
    async def test_fans_out(self, client: AsyncClient, active_webhook, receiver):
        response = await client.post(
            EMIT_URL,
            json={"eventType": "appointment_created", "payload": {"id": "a1"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Webhook processing completed"
        assert len(data["results"]) == 1
        assert data["results"][0]["success"] is True
        assert data["results"][0]["webhookId"] == str(active_webhook.id)
        assert len(receiver.requests) == 1

    @pytest.mark.asyncio
    async def test_no_subscribers(self, client: AsyncClient, receiver):
        response = await client.post(
            EMIT_URL,
            json={"eventType": "professional_created", "payload": {"id": "p1"}},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "No webhooks to process", "results": []}
        assert receiver.requests == []

    @pytest.mark.asyncio
    async def test_unsupported_event(self, client: AsyncClient):
        response = await client.post(
            EMIT_URL,
            json={"eventType": "invoice_paid", "payload": {"id": "i1"}},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported event type: invoice_paid"}
