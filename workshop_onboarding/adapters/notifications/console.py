"""
Console notification adapter - Implements NotificationGateway protocol.

This module provides a console-based implementation of the domain's
notification port, logging messages to stdout for demo purposes.
"""

import logging

from workshop_onboarding.domain.ports import Channel

logger = logging.getLogger(__name__)


class ConsoleNotificationGateway:
    """
    Implements NotificationGateway protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints every message to stdout.
    """

    def send(self, channel: Channel, target: str, payload: str) -> bool:
        """
        Log the message to console (simulates email/SMS delivery).

        In production, this would be replaced with an SMTP or SMS provider
        adapter. Messages are logged at INFO level to be visible in
        docker-compose logs.

        Args:
            channel: Email or SMS
            target: Email address or phone number
            payload: Message body

        Returns:
            Always True - console delivery cannot fail
        """
        logger.info("[%s] To: %s Message: %s", channel.value.upper(), target, payload)
        return True
