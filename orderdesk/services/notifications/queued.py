"""
Queued Chat Transport

Hands outbound messages to the Celery worker instead of calling Twilio
from the request path. Enqueueing is the only work done here; the worker
makes the single delivery attempt.
"""

import asyncio
import logging

from orderdesk.services.notifications.base import BaseChatTransport, NotificationResult

logger = logging.getLogger(__name__)


class QueuedChatTransport(BaseChatTransport):
    """Enqueue messages on the Celery broker."""

    @property
    def provider_name(self) -> str:
        return "celery"

    async def send_message(self, contact: str, text: str) -> NotificationResult:
        from orderdesk.tasks import deliver_chat_message

        # .delay() talks to the broker synchronously
        result = await asyncio.to_thread(deliver_chat_message.delay, contact, text)
        logger.debug(f"Queued message to {contact} as task {result.id}")

        return NotificationResult(
            success=True,
            message_id=result.id,
            provider="celery"
        )

    async def health_check(self) -> bool:
        from orderdesk.celery_worker import celery_app

        try:
            replies = await asyncio.to_thread(celery_app.control.ping, timeout=1.0)
        except Exception as e:
            logger.error(f"Celery broker unreachable: {e}")
            return False
        return bool(replies)
