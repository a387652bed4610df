"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_webhooks.db.session import get_db
from booking_webhooks.webhooks.models import DeliveryStatus, WebhookConfiguration, WebhookLog

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(db: AsyncSession = Depends(get_db)):
    """Prometheus-compatible metrics endpoint."""

    metrics_output = []

    # Configurations by active flag
    result = await db.execute(
        select(WebhookConfiguration.is_active, func.count()).group_by(
            WebhookConfiguration.is_active
        )
    )
    counts = {bool(row[0]): row[1] for row in result.fetchall()}
    metrics_output.append(f"booking_webhook_configurations_total {sum(counts.values())}")
    metrics_output.append(f"booking_webhook_configurations_active {counts.get(True, 0)}")
    metrics_output.append(f"booking_webhook_configurations_inactive {counts.get(False, 0)}")

    # Delivery logs by status (every status reported, zero included)
    result = await db.execute(
        select(WebhookLog.status, func.count()).group_by(WebhookLog.status)
    )
    by_status = dict(result.fetchall())
    for status in DeliveryStatus:
        count = by_status.get(status.value, 0)
        metrics_output.append(f'booking_webhook_logs_total{{status="{status.value}"}} {count}')

    # Attempts spent on deliveries
    result = await db.execute(select(func.coalesce(func.sum(WebhookLog.attempts), 0)))
    metrics_output.append(f"booking_webhook_delivery_attempts_total {result.scalar()}")

    return "\n".join(metrics_output) + "\n"
