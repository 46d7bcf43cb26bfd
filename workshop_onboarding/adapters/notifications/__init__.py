"""Notification gateway adapters."""

from .console import ConsoleNotificationGateway

__all__ = ["ConsoleNotificationGateway"]
