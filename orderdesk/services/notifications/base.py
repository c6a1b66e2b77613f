"""
Chat Transport Abstract Base Class

Defines the interface for sending outbound chat messages.
Supports Mock (development), Twilio WhatsApp (production) and
Celery-queued implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a message."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseChatTransport(ABC):
    """Abstract base class for chat transports."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_message(self, contact: str, text: str) -> NotificationResult:
        """
        Send one plain-text message to a chat contact.

        Implementations make exactly one attempt. Failures are reported
        through the result; callers decide whether to log or ignore.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
