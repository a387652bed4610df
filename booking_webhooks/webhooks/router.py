"""Webhook admin API router."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_webhooks.db.session import get_db
from booking_webhooks.webhooks.config import WebhookConfigLoader
from booking_webhooks.webhooks.models import DeliveryStatus
from booking_webhooks.webhooks.repository import SqlConfigurationStore, SqlDeliveryLogStore
from booking_webhooks.webhooks.schemas import (
    WebhookConfigurationCreate,
    WebhookConfigurationResponse,
    WebhookConfigurationUpdate,
    WebhookLogResponse,
    WebhookSettingsReloadResponse,
)

router = APIRouter(prefix="/webhooks", tags=["webhooks-admin"])


@router.get("/configurations", response_model=list[WebhookConfigurationResponse])
async def list_configurations(
    company_id: UUID | None = Query(None, description="Filter by company"),
    is_active: bool | None = Query(None, description="Filter by active flag"),
    db: AsyncSession = Depends(get_db),
):
    """List webhook configurations, oldest first."""
    return await SqlConfigurationStore(db).find(company_id=company_id, is_active=is_active)


@router.post(
    "/configurations",
    response_model=WebhookConfigurationResponse,
    status_code=201,
)
async def create_configuration(
    body: WebhookConfigurationCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a webhook URL for an event type.

    URLs are unique; registering a known URL again returns 409.
    """
    return await SqlConfigurationStore(db).create(
        url=body.url,
        event_type=body.event_type.value,
        is_active=body.is_active,
        company_id=body.company_id,
    )


@router.get("/configurations/{webhook_id}", response_model=WebhookConfigurationResponse)
async def get_configuration(webhook_id: UUID, db: AsyncSession = Depends(get_db)):
    config = await SqlConfigurationStore(db).get_by_id(webhook_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Webhook configuration not found")
    return config


@router.patch("/configurations/{webhook_id}", response_model=WebhookConfigurationResponse)
async def update_configuration(
    webhook_id: UUID,
    body: WebhookConfigurationUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a webhook configuration (e.g. toggle ``is_active``)."""
    patch = body.model_dump(exclude_unset=True)
    if patch.get("event_type") is not None:
        patch["event_type"] = patch["event_type"].value
    for key in ("url", "event_type", "is_active"):
        if key in patch and patch[key] is None:
            raise HTTPException(status_code=400, detail=f"'{key}' cannot be null")

    config = await SqlConfigurationStore(db).update(webhook_id, **patch)
    if config is None:
        raise HTTPException(status_code=404, detail="Webhook configuration not found")
    return config


@router.get("/logs", response_model=list[WebhookLogResponse])
async def list_logs(
    webhook_id: UUID | None = Query(None, description="Filter by configuration ID"),
    status: DeliveryStatus | None = Query(None, description="Filter by status"),
    event_type: str | None = Query(None, description="Filter by event type"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum results"),
    db: AsyncSession = Depends(get_db),
):
    """List recent webhook deliveries, newest first."""
    return await SqlDeliveryLogStore(db).find(
        webhook_id=webhook_id,
        status=status.value if status else None,
        event_type=event_type,
        limit=limit,
    )


@router.post("/settings/reload", response_model=WebhookSettingsReloadResponse)
async def reload_settings():
    """Reload delivery settings from the YAML file.

    Invalid values are ignored and keep their defaults.
    """
    settings = WebhookConfigLoader.reload()
    return WebhookSettingsReloadResponse(
        success=True,
        message=f"Loaded settings from {WebhookConfigLoader.config_path()}",
        max_retries=settings.max_retries,
        retry_base_delay_ms=settings.retry_base_delay_ms,
    )
