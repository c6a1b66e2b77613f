"""
Mock Chat Transport

Simulates WhatsApp delivery for development.
No actual messages are sent - they are logged and kept in `sent`.
"""

import asyncio
import random
import uuid
import logging

from orderdesk.services.notifications.base import BaseChatTransport, NotificationResult

logger = logging.getLogger(__name__)


class MockChatTransport(BaseChatTransport):
    """Mock chat transport for development and tests."""

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.sent: list[tuple[str, str]] = []
        logger.info(f"MockChatTransport initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        """Simulate network latency."""
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_message(self, contact: str, text: str) -> NotificationResult:
        """Simulate sending a WhatsApp message."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock message failed (simulated) to {contact}")
            return NotificationResult(
                success=False,
                error_message="Simulated delivery failure",
                provider="mock"
            )

        message_id = f"wa_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append((contact, text))
        logger.info(f"Mock message sent to {contact}: {text[:50]!r} (ID: {message_id})")

        return NotificationResult(
            success=True,
            message_id=message_id,
            provider="mock"
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
