"""Webhook function endpoints: dispatch, test and fan-out."""

import logging
from collections.abc import Awaitable
from typing import TypeVar

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from booking_webhooks.config import get_settings
from booking_webhooks.webhooks.dependencies import get_dispatcher, get_emitter, get_tester
from booking_webhooks.webhooks.dispatcher import WebhookDispatcher
from booking_webhooks.webhooks.emitter import WebhookEmitter
from booking_webhooks.webhooks.exceptions import WebhookError
from booking_webhooks.webhooks.schemas import (
    DispatchRequest,
    DispatchResponse,
    EmitEventRequest,
    EmitEventResponse,
    EmitResult,
    WebhookTestRequest,
    WebhookTestResponse,
)
from booking_webhooks.webhooks.tester import WebhookTester

logger = logging.getLogger(__name__)

settings = get_settings()

T = TypeVar("T")

CORS_ORIGIN_HEADER = {"Access-Control-Allow-Origin": "*"}
CORS_PREFLIGHT_HEADERS = {
    **CORS_ORIGIN_HEADER,
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": settings.CORS_ALLOW_HEADERS,
}

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=not settings.TESTING,
)

router = APIRouter(prefix="/functions/v1", tags=["webhooks"])


async def _guard(call: Awaitable[T], response: Response, action: str) -> T | JSONResponse:
    """Run a handler body, rendering anything unexpected as a 500."""
    response.headers.update(CORS_ORIGIN_HEADER)
    try:
        return await call
    except WebhookError:
        raise
    except Exception:
        logger.exception("Unhandled error in %s", action)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
            headers=CORS_ORIGIN_HEADER,
        )


def _preflight() -> Response:
    return Response(status_code=204, headers=CORS_PREFLIGHT_HEADERS)


@router.options("/process-webhook", include_in_schema=False)
@router.options("/test-webhook", include_in_schema=False)
@router.options("/emit-event", include_in_schema=False)
async def preflight():
    """CORS preflight."""
    return _preflight()


@router.post(
    "/process-webhook",
    response_model=DispatchResponse,
    response_model_exclude_none=True,
)
async def process_webhook(
    body: DispatchRequest,
    response: Response,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """Deliver an event to one registered webhook, retrying on failure.

    Delivery failures and inactive webhooks are reported with `success: false`;
    only missing fields (400) and unknown webhook ids (404) are errors.
    """

    async def run():
        outcome = await dispatcher.dispatch(body.webhook_id, body.event_type, body.payload)
        return DispatchResponse(
            success=outcome.success,
            message=outcome.message,
            log_id=outcome.log_id,
        )

    return await _guard(run(), response, "process-webhook")


@router.post("/test-webhook", response_model=WebhookTestResponse)
@limiter.limit(settings.TEST_WEBHOOK_RATE_LIMIT)
async def test_webhook(
    request: Request,
    body: WebhookTestRequest,
    response: Response,
    tester: WebhookTester = Depends(get_tester),
):
    """Send one test event to a URL, registering the URL if it is new."""

    async def run():
        outcome = await tester.test_deliver(body.url, body.event_type, body.payload)
        return WebhookTestResponse(
            success=outcome.success,
            message=outcome.message,
            log_id=outcome.log_id,
            webhook_id=outcome.webhook_id,
        )

    return await _guard(run(), response, "test-webhook")


@router.post("/emit-event", response_model=EmitEventResponse)
async def emit_event(
    body: EmitEventRequest,
    response: Response,
    emitter: WebhookEmitter = Depends(get_emitter),
):
    """Deliver an event to every active webhook subscribed to its type."""

    async def run():
        outcomes = await emitter.emit(body.event_type, body.payload)
        if not outcomes:
            return EmitEventResponse(message="No webhooks to process")
        return EmitEventResponse(
            message="Webhook processing completed",
            results=[
                EmitResult(
                    success=o.success,
                    message=o.message,
                    log_id=o.log_id,
                    webhook_id=o.webhook_id,
                )
                for o in outcomes
            ],
        )

    return await _guard(run(), response, "emit-event")
