"""
Notification Fan-out

After an order is persisted or its status changes, several parties are
told about it: live dashboard viewers (realtime channel), the customer
and, for new orders, the shop. Each attempt is bounded by a timeout and
isolated from the others, and the sinks run concurrently. A failed
attempt is logged and never undoes or delays the committed order.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Optional

from orderdesk.core.exceptions import NotificationDeliveryFailure
from orderdesk.domain import Order, Shop
from orderdesk.services.notifications import messages
from orderdesk.services.notifications.base import BaseChatTransport, NotificationResult
from orderdesk.services.realtime.base import BaseRealtimeChannel, OrderStatusEvent, order_topic

logger = logging.getLogger(__name__)


@dataclass
class FanoutReport:
    """Which sinks accepted the notification. None means not attempted."""
    published: bool = False
    customer_notified: bool = False
    shop_notified: Optional[bool] = None


class NotificationFanout:
    """Publishes order events and sends chat messages, best effort."""

    def __init__(
        self,
        channel: BaseRealtimeChannel,
        transport: BaseChatTransport,
        timeout: float = 5.0,
        currency_symbol: str = "₹",
    ):
        self.channel = channel
        self.transport = transport
        self.timeout = timeout
        self.currency_symbol = currency_symbol

    async def _deliver(self, sink: str, action: Awaitable) -> None:
        try:
            result = await asyncio.wait_for(action, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise NotificationDeliveryFailure(sink, f"timed out after {self.timeout}s")
        except Exception as e:
            raise NotificationDeliveryFailure(sink, repr(e)) from e
        if isinstance(result, NotificationResult) and not result.success:
            raise NotificationDeliveryFailure(sink, result.error_message or "rejected")

    async def _attempt(self, sink: str, action: Awaitable) -> bool:
        try:
            await self._deliver(sink, action)
        except NotificationDeliveryFailure as e:
            logger.warning(f"Notification failed: {e}")
            return False
        return True

    async def _publish(self, order: Order, at: datetime) -> bool:
        event = OrderStatusEvent(
            order_id=order.id,
            status=order.status.value,
            order_number=order.order_number,
            timestamp=at,
        )
        return await self._attempt(
            f"publish {order_topic(order.id)}",
            self.channel.publish(order_topic(order.id), event.to_dict()),
        )

    async def _message(self, contact: str, text: str) -> bool:
        if not contact:
            logger.warning("Notification skipped: empty contact")
            return False
        return await self._attempt(
            f"message {contact}",
            self.transport.send_message(contact, text),
        )

    async def order_created(self, order: Order, shop: Optional[Shop] = None) -> FanoutReport:
        """Announce a newly persisted order to viewers, customer and shop, concurrently."""
        attempts = [
            self._publish(order, order.created_at),
            self._message(order.contact, messages.order_placed_customer(order, self.currency_symbol)),
        ]
        if shop is not None:
            attempts.append(
                self._message(shop.contact, messages.order_placed_shop(order, self.currency_symbol))
            )

        # _attempt never raises, so one slow or failing sink cannot hold back the rest
        outcomes = await asyncio.gather(*attempts)
        report = FanoutReport(published=outcomes[0], customer_notified=outcomes[1])
        if shop is not None:
            report.shop_notified = outcomes[2]

        logger.info(
            f"Order {order.display_number} fan-out: published={report.published} "
            f"customer={report.customer_notified} shop={report.shop_notified}"
        )
        return report

    async def status_changed(self, order: Order, at: Optional[datetime] = None) -> FanoutReport:
        """Announce a committed status change to viewers and the customer."""
        at = at or datetime.now(timezone.utc)
        published, customer_notified = await asyncio.gather(
            self._publish(order, at),
            self._message(order.contact, messages.status_update(order)),
        )
        report = FanoutReport(published=published, customer_notified=customer_notified)
        logger.info(
            f"Order {order.display_number} -> {order.status.value} fan-out: "
            f"published={report.published} customer={report.customer_notified}"
        )
        return report
