"""
Chat Transport Factory

Returns the mock transport in development; otherwise Twilio WhatsApp,
sent inline or queued through Celery depending on CHAT_DELIVERY_MODE.
"""

import logging
from functools import lru_cache

from orderdesk.core.config import ChatDeliveryMode, get_settings
from orderdesk.services.notifications.base import (
    BaseChatTransport,
    NotificationResult,
)
from orderdesk.services.notifications.mock import MockChatTransport

logger = logging.getLogger(__name__)


@lru_cache()
def get_chat_transport() -> BaseChatTransport:
    """Get the configured chat transport."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Chat Transport: Using MockChatTransport (development mode)")
        return MockChatTransport(failure_rate=settings.mock_failure_rate)

    if settings.chat_delivery_mode == ChatDeliveryMode.QUEUE:
        from orderdesk.services.notifications.queued import QueuedChatTransport

        logger.info(f"Chat Transport: Using QueuedChatTransport ({settings.env_mode.value} mode)")
        return QueuedChatTransport()

    from orderdesk.services.notifications.twilio_whatsapp import TwilioWhatsAppTransport

    logger.info(f"Chat Transport: Using TwilioWhatsAppTransport ({settings.env_mode.value} mode)")
    return TwilioWhatsAppTransport()


def reset_chat_transport() -> None:
    """Clear the cached transport instance."""
    get_chat_transport.cache_clear()


__all__ = [
    "get_chat_transport",
    "reset_chat_transport",
    "BaseChatTransport",
    "MockChatTransport",
    "NotificationResult",
]
