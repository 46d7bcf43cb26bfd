"""
Best-effort notification delivery.

Delivery is advisory: a refused or failed send is logged and reported
back as False, never raised into the state machine that requested it.
"""

import logging

from .ports import Channel, NotificationGateway

logger = logging.getLogger(__name__)


def deliver(gateway: NotificationGateway, channel: Channel, target: str, payload: str) -> bool:
    if not target:
        logger.warning("No %s target, notification skipped", channel.value)
        return False
    try:
        sent = gateway.send(channel, target, payload)
    except Exception:
        logger.warning("Notification via %s to %s failed", channel.value, target, exc_info=True)
        return False
    if not sent:
        logger.warning("Notification via %s to %s was not accepted", channel.value, target)
    return bool(sent)


def contact_for(channel: Channel, email: str, phone_number: str) -> str:
    """Pick the address a channel delivers to."""
    return email if channel is Channel.EMAIL else phone_number
