"""
Twilio WhatsApp Transport

Production chat transport using the Twilio Messaging API with
WhatsApp addresses ("whatsapp:+91...").

The Twilio client is synchronous; async callers get the request run
in a worker thread, and the HTTP timeout keeps a slow provider from
holding that thread indefinitely.
"""

import asyncio
import logging
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client as TwilioClient

from orderdesk.core.config import get_settings
from orderdesk.services.notifications.base import BaseChatTransport, NotificationResult

logger = logging.getLogger(__name__)


def whatsapp_address(number: str) -> str:
    number = number.strip()
    if number.lower().startswith("whatsapp:"):
        return number
    return f"whatsapp:{number}"


class TwilioWhatsAppTransport(BaseChatTransport):
    """Send WhatsApp messages through Twilio."""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        account_sid = account_sid or settings.twilio_account_sid
        auth_token = auth_token or settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_whatsapp_number
        self.timeout = timeout or settings.notification_timeout_seconds

        if account_sid and auth_token and self.from_number:
            self.client = TwilioClient(
                account_sid,
                auth_token,
                http_client=TwilioHttpClient(timeout=self.timeout),
            )
            logger.info("✅ Twilio WhatsApp configured")
        else:
            self.client = None
            logger.warning("Twilio credentials not configured, messages will be skipped")

    @property
    def provider_name(self) -> str:
        return "twilio"

    def send_message_sync(self, contact: str, text: str) -> NotificationResult:
        """Blocking send, for Celery workers and scripts."""
        if not self.client:
            logger.info(f"Twilio not configured, skipping send to {contact}: {text[:50]!r}")
            return NotificationResult(
                success=False,
                error_message="Twilio not configured",
                provider="twilio"
            )

        try:
            message = self.client.messages.create(
                from_=whatsapp_address(self.from_number),
                to=whatsapp_address(contact),
                body=text,
            )
        except (TwilioException, OSError) as e:
            logger.error(f"Twilio send error to {contact}: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="twilio"
            )

        logger.info(f"WhatsApp message sent to {contact}: {message.sid}")
        return NotificationResult(
            success=True,
            message_id=message.sid,
            provider="twilio"
        )

    async def send_message(self, contact: str, text: str) -> NotificationResult:
        return await asyncio.to_thread(self.send_message_sync, contact, text)

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            await asyncio.to_thread(
                self.client.api.accounts(self.client.username).fetch
            )
            return True
        except (TwilioException, OSError) as e:
            logger.error(f"Twilio health check failed: {e}")
            return False
