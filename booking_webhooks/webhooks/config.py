"""Webhook delivery settings loader."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from booking_webhooks.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class WebhookSettings:
    """Delivery policy settings."""

    max_retries: int = 3
    retry_base_delay_ms: int = 1000
    delivery_timeout_seconds: int = 30
    pending_timeout_minutes: int = 15
    sweep_interval_seconds: int = 60
    sweeper_enabled: bool = False

    def backoff_delay_ms(self, retry: int) -> int:
        """Delay before the k-th retry (1-based): base * 2^(k-1)."""
        return self.retry_base_delay_ms * (2 ** (retry - 1))


class WebhookConfigLoader:
    """Loads and caches the delivery settings file."""

    _settings: WebhookSettings | None = None

    @classmethod
    def config_path(cls) -> Path:
        return Path(get_settings().WEBHOOK_CONFIG_PATH)

    @classmethod
    def load(cls) -> WebhookSettings:
        """Load settings from the configured YAML file."""
        path = cls.config_path()

        if not path.exists():
            logger.info(
                "Webhook settings not found at %s. Using defaults.",
                path,
            )
            cls._settings = WebhookSettings()
            return cls._settings

        try:
            with open(path) as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse webhook settings: %s", e)
            cls._settings = WebhookSettings()
            return cls._settings

        settings_data = raw_config.get("settings") or {}
        if not isinstance(settings_data, dict):
            logger.warning("Ignoring malformed 'settings' section in %s", path)
            settings_data = {}

        cls._settings = cls._parse_settings(settings_data)
        logger.info(
            "Loaded webhook settings from %s (max_retries=%d, base_delay=%dms)",
            path,
            cls._settings.max_retries,
            cls._settings.retry_base_delay_ms,
        )
        return cls._settings

    @classmethod
    def reload(cls) -> WebhookSettings:
        """Reload settings (for hot-reload)."""
        return cls.load()

    @classmethod
    def get_config(cls) -> WebhookSettings:
        """Get current settings, loading if necessary."""
        if cls._settings is None:
            cls.load()
        return cls._settings  # type: ignore

    @classmethod
    def _parse_settings(cls, data: dict[str, Any]) -> WebhookSettings:
        """Build settings, keeping the default for any invalid value."""
        defaults = WebhookSettings()
        values: dict[str, Any] = {}

        for f in fields(WebhookSettings):
            if f.name not in data:
                continue
            value = data[f.name]
            default = getattr(defaults, f.name)

            if isinstance(default, bool):
                if not isinstance(value, bool):
                    logger.warning("Setting '%s' must be a boolean, got %r", f.name, value)
                    continue
            elif isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                logger.warning("Setting '%s' must be a positive integer, got %r", f.name, value)
                continue

            values[f.name] = value

        return WebhookSettings(**values)
