"""Booking Webhooks - Main application."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_webhooks import __version__
from booking_webhooks.config import get_settings
from booking_webhooks.db.session import async_session_factory
from booking_webhooks.metrics import router as metrics_router
from booking_webhooks.webhooks.config import WebhookConfigLoader
from booking_webhooks.webhooks.exceptions import WebhookError
from booking_webhooks.webhooks.functions import CORS_ORIGIN_HEADER, limiter
from booking_webhooks.webhooks.functions import router as functions_router
from booking_webhooks.webhooks.router import router as webhooks_admin_router
from booking_webhooks.webhooks.sweeper import PendingLogSweeper

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    webhook_settings = WebhookConfigLoader.load()

    app.state.http_client = httpx.AsyncClient(
        timeout=webhook_settings.delivery_timeout_seconds,
    )

    sweeper = None
    if webhook_settings.sweeper_enabled and not settings.TESTING:
        sweeper = PendingLogSweeper(async_session_factory)
        await sweeper.start()

    yield

    # Cleanup on shutdown
    if sweeper is not None:
        await sweeper.stop()
    await app.state.http_client.aclose()


app = FastAPI(
    title="Booking Webhooks",
    description="""
## Webhook Dispatch API

Delivers appointment-booking domain events to tenant-configured webhook URLs.

### Endpoints

- `POST /functions/v1/process-webhook` - deliver an event to one webhook, with retry
- `POST /functions/v1/test-webhook` - one-shot test delivery to a URL
- `POST /functions/v1/emit-event` - deliver an event to every subscribed webhook
- `/api/v1/webhooks/...` - manage configurations and browse delivery logs

Every delivery is recorded in the delivery log with its status and attempt count.
    """,
    version=__version__,
    lifespan=lifespan,
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError):
    return JSONResponse(
        {"error": exc.message},
        status_code=exc.status_code,
        headers=CORS_ORIGIN_HEADER,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {location + ': ' if location else ''}{first.get('msg')}"
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400, headers=CORS_ORIGIN_HEADER)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    detail = "Method not allowed" if exc.status_code == 405 else exc.detail
    headers = {**(exc.headers or {}), **CORS_ORIGIN_HEADER}
    return JSONResponse({"error": detail}, status_code=exc.status_code, headers=headers)


# Routes
app.include_router(functions_router)
API_PREFIX = "/api/v1"
app.include_router(webhooks_admin_router, prefix=API_PREFIX)

# Metrics at root level (for Prometheus scraping)
app.include_router(metrics_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Booking Webhooks",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
