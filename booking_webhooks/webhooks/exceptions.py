"""Webhook error taxonomy."""


class WebhookError(Exception):
    """Base class for errors surfaced to callers of the webhook entry points."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WebhookError):
    """Missing or malformed request input."""

    status_code = 400


class ConfigurationNotFound(WebhookError):
    """The webhook id does not resolve to a configuration."""

    status_code = 404

    def __init__(self, webhook_id: str) -> None:
        super().__init__(f"Webhook configuration not found: {webhook_id}")
        self.webhook_id = webhook_id


class DuplicateConfiguration(WebhookError):
    """A configuration for this URL already exists."""

    status_code = 409

    def __init__(self, url: str) -> None:
        super().__init__(f"Webhook configuration already exists for url: {url}")
        self.url = url
