"""Booking Webhooks - webhook dispatch and delivery tracking."""

__version__ = "1.0.0"
