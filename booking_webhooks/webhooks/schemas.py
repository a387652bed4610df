"""Webhook Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from booking_webhooks.webhooks.event import WebhookEventType

# Function entry points


class DispatchRequest(BaseModel):
    """Body of ``process-webhook``; presence is checked by the dispatcher."""

    model_config = ConfigDict(populate_by_name=True)

    webhook_id: str | None = Field(None, alias="webhookId", description="Webhook configuration ID")
    event_type: str | None = Field(None, alias="eventType", description="Domain event type")
    payload: dict[str, Any] | None = Field(None, description="Event data")


class WebhookTestRequest(BaseModel):
    """Body of ``test-webhook``."""

    url: str | None = Field(None, description="Destination URL")
    event_type: str | None = Field(None, description="Domain event type")
    payload: dict[str, Any] | None = Field(None, description="Optional event data")


class EmitEventRequest(BaseModel):
    """Body of ``emit-event``."""

    model_config = ConfigDict(populate_by_name=True)

    event_type: str | None = Field(None, alias="eventType", description="Domain event type")
    payload: dict[str, Any] | None = Field(None, description="Event data")


class DispatchResponse(BaseModel):
    """Outcome of a dispatch."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(..., description="Whether any attempt got a 2xx response")
    message: str = Field(..., description="Human-readable outcome")
    log_id: UUID | None = Field(None, alias="logId", description="Delivery log entry ID")


class WebhookTestResponse(DispatchResponse):
    """Outcome of a test invocation."""

    webhook_id: UUID = Field(..., alias="webhookId", description="Resolved configuration ID")


class EmitResult(DispatchResponse):
    """Outcome for one webhook of a fan-out."""

    webhook_id: UUID | None = Field(None, alias="webhookId", description="Configuration ID")


class EmitEventResponse(BaseModel):
    """Outcome of a fan-out."""

    message: str = Field(..., description="Status message")
    results: list[EmitResult] = Field(default_factory=list)


# Admin API


class WebhookConfigurationCreate(BaseModel):
    """New webhook registration."""

    url: str = Field(..., min_length=1, description="Destination URL")
    event_type: WebhookEventType = Field(..., description="Subscribed event type")
    is_active: bool = Field(True, description="Whether deliveries are enabled")
    company_id: UUID | None = Field(None, description="Owning company")


class WebhookConfigurationUpdate(BaseModel):
    """Partial update of a webhook registration."""

    url: str | None = Field(None, min_length=1)
    event_type: WebhookEventType | None = None
    is_active: bool | None = None
    company_id: UUID | None = None


class WebhookConfigurationResponse(BaseModel):
    """Webhook registration."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    event_type: str
    is_active: bool
    company_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WebhookLogResponse(BaseModel):
    """Webhook delivery log entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Log entry ID")
    webhook_id: UUID | None = Field(None, description="Configuration ID")
    event_type: str = Field(..., description="Event type at delivery time")
    payload: dict[str, Any] | None = Field(None, description="Payload snapshot")
    status: str = Field(..., description="pending, success, failed or skipped")
    attempts: int = Field(..., description="Number of HTTP calls made")
    http_status: int | None = Field(None, description="Last HTTP response status code")
    error_message: str | None = Field(None, description="Last error if failed")
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WebhookSettingsReloadResponse(BaseModel):
    """Response for delivery settings reload."""

    success: bool = Field(..., description="Whether reload succeeded")
    message: str = Field(..., description="Status message")
    max_retries: int = Field(..., description="Total delivery attempts per dispatch")
    retry_base_delay_ms: int = Field(..., description="Delay before the first retry")
