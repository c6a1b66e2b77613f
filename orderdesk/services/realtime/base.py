"""
Realtime Channel Abstract Base Class

Topic-based publish/subscribe used to push order status events to
live dashboard viewers. One topic per order: "order:<order id>".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable

EventHandler = Callable[[dict[str, Any]], Awaitable[None]]
Unsubscribe = Callable[[], Awaitable[None]]


def order_topic(order_id: int) -> str:
    return f"order:{order_id}"


@dataclass
class OrderStatusEvent:
    """Payload published on every order creation and status change."""
    order_id: int
    status: str
    order_number: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Wire format, camelCase keys."""
        return {
            "orderId": self.order_id,
            "status": self.status,
            "orderNumber": self.order_number,
            "timestamp": self.timestamp.isoformat(),
        }


class BaseRealtimeChannel(ABC):
    """Abstract base class for realtime channels."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def publish(self, topic: str, event: dict[str, Any]) -> int:
        """
        Deliver an event to every current subscriber of a topic.

        Returns the number of receivers. A topic nobody listens to is
        not an error; the event is simply dropped.
        """
        pass

    @abstractmethod
    async def subscribe(self, topic: str, handler: EventHandler) -> Unsubscribe:
        """Register a handler; await the returned callable to stop receiving."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def close(self) -> None:
        """Release connections. Nothing to do by default."""
        return None
