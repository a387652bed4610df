"""Configuration and delivery log stores."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_webhooks.webhooks.exceptions import DuplicateConfiguration
from booking_webhooks.webhooks.models import DeliveryStatus, WebhookConfiguration, WebhookLog


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class ConfigurationStore(Protocol):
    """Webhook registrations (url, event type, active flag)."""

    async def get_by_id(self, webhook_id: str | uuid.UUID) -> WebhookConfiguration | None: ...

    async def get_by_url(self, url: str) -> WebhookConfiguration | None: ...

    async def create(
        self,
        url: str,
        event_type: str,
        is_active: bool = True,
        company_id: uuid.UUID | None = None,
    ) -> WebhookConfiguration: ...

    async def update(
        self, webhook_id: str | uuid.UUID, **patch: Any
    ) -> WebhookConfiguration | None: ...

    async def list_active_for_event(self, event_type: str) -> list[WebhookConfiguration]: ...


class DeliveryLogStore(Protocol):
    """Append/update of delivery attempt records."""

    async def create(
        self,
        webhook_id: uuid.UUID,
        event_type: str,
        payload: dict[str, Any],
        status: DeliveryStatus,
        attempts: int,
    ) -> WebhookLog: ...

    async def update(self, log_id: uuid.UUID, **patch: Any) -> None: ...


class SqlConfigurationStore:
    """ConfigurationStore backed by the ``webhook_configurations`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, webhook_id: str | uuid.UUID) -> WebhookConfiguration | None:
        key = _as_uuid(webhook_id)
        if key is None:
            return None
        return await self._session.get(WebhookConfiguration, key)

    async def get_by_url(self, url: str) -> WebhookConfiguration | None:
        result = await self._session.execute(
            select(WebhookConfiguration).where(WebhookConfiguration.url == url).limit(1)
        )
        return result.scalars().first()

    async def create(
        self,
        url: str,
        event_type: str,
        is_active: bool = True,
        company_id: uuid.UUID | None = None,
    ) -> WebhookConfiguration:
        config = WebhookConfiguration(
            id=uuid.uuid4(),
            url=url,
            event_type=event_type,
            is_active=is_active,
            company_id=company_id,
        )
        self._session.add(config)
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise DuplicateConfiguration(url) from e
        return config

    async def update(
        self, webhook_id: str | uuid.UUID, **patch: Any
    ) -> WebhookConfiguration | None:
        config = await self.get_by_id(webhook_id)
        if config is None:
            return None
        for key, value in patch.items():
            setattr(config, key, value)
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise DuplicateConfiguration(patch.get("url", config.url)) from e
        return config

    async def find(
        self,
        company_id: uuid.UUID | None = None,
        is_active: bool | None = None,
        event_type: str | None = None,
    ) -> list[WebhookConfiguration]:
        query = select(WebhookConfiguration).order_by(WebhookConfiguration.created_at)
        if event_type:
            query = query.where(WebhookConfiguration.event_type == event_type)
        if company_id is not None:
            query = query.where(WebhookConfiguration.company_id == company_id)
        if is_active is not None:
            query = query.where(WebhookConfiguration.is_active == is_active)
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def list_active_for_event(self, event_type: str) -> list[WebhookConfiguration]:
        return await self.find(is_active=True, event_type=event_type)


class SqlDeliveryLogStore:
    """DeliveryLogStore backed by the ``webhook_logs`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        webhook_id: uuid.UUID,
        event_type: str,
        payload: dict[str, Any],
        status: DeliveryStatus,
        attempts: int,
    ) -> WebhookLog:
        entry = WebhookLog(
            id=uuid.uuid4(),
            webhook_id=webhook_id,
            event_type=event_type,
            payload=payload,
            status=status.value,
            attempts=attempts,
        )
        self._session.add(entry)
        await self._session.commit()
        return entry

    async def update(self, log_id: uuid.UUID, **patch: Any) -> None:
        if isinstance(patch.get("status"), DeliveryStatus):
            patch["status"] = patch["status"].value
        entry = await self._session.get(WebhookLog, log_id)
        if entry is None:
            return
        for key, value in patch.items():
            setattr(entry, key, value)
        await self._session.commit()

    async def get(self, log_id: uuid.UUID) -> WebhookLog | None:
        return await self._session.get(WebhookLog, log_id)

    async def find(
        self,
        webhook_id: uuid.UUID | None = None,
        status: str | None = None,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[WebhookLog]:
        query = select(WebhookLog).order_by(desc(WebhookLog.created_at))
        if webhook_id is not None:
            query = query.where(WebhookLog.webhook_id == webhook_id)
        if status:
            query = query.where(WebhookLog.status == status)
        if event_type:
            query = query.where(WebhookLog.event_type == event_type)
        result = await self._session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def fail_stale_pending(self, cutoff: datetime, error_message: str) -> int:
        """Mark entries still pending since before ``cutoff`` as failed."""
        result = await self._session.execute(
            update(WebhookLog)
            .where(
                WebhookLog.status == DeliveryStatus.PENDING.value,
                WebhookLog.created_at < cutoff,
            )
            .values(status=DeliveryStatus.FAILED.value, error_message=error_message)
        )
        await self._session.commit()
        return result.rowcount or 0
