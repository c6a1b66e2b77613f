import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from orderdesk.domain import (
    DeliveryAddress,
    LineItem,
    NumberSource,
    Order,
    OrderChannel,
    OrderStatus,
    Shop,
)
from orderdesk.services.notifications.fanout import NotificationFanout
from orderdesk.services.notifications.mock import MockChatTransport
from orderdesk.services.realtime.base import BaseRealtimeChannel, order_topic
from orderdesk.services.realtime.memory import InMemoryRealtimeChannel

AT = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
SHOP = Shop(id=1, name="Chai Point", contact="+919876500001")


def make_order(status=OrderStatus.RECEIVED, contact="+919812345678", fee="0.00"):
    items = (
        LineItem("Tea", 2, Decimal("10.00"), Decimal("20.00")),
        LineItem("Coffee", 1, Decimal("20.00"), Decimal("20.00")),
    )
    return Order(
        id=7,
        order_number=42,
        number_source=NumberSource.GLOBAL,
        shop_id=1,
        customer_name="Asha",
        contact=contact,
        delivery_address=DeliveryAddress(),
        line_items=items,
        items_total=Decimal("40.00"),
        delivery_fee=Decimal(fee),
        grand_total=Decimal("40.00") + Decimal(fee),
        channel=OrderChannel.CHAT,
        status=status,
        created_at=AT,
        updated_at=AT,
    )


class BrokenChannel(BaseRealtimeChannel):
    provider_name = "broken"

    async def publish(self, topic, event):
        raise ConnectionError("redis down")

    async def subscribe(self, topic, handler):
        raise ConnectionError("redis down")

    async def health_check(self):
        return False


class HangingTransport(MockChatTransport):
    async def send_message(self, contact, text):
        await asyncio.sleep(10)


class TestOrderCreated:

    def test_all_sinks_succeed(self):
        channel = InMemoryRealtimeChannel()
        transport = MockChatTransport()
        fanout = NotificationFanout(channel, transport)
        received = []

        async def handler(event):
            received.append(event)

        async def scenario():
            await channel.subscribe(order_topic(7), handler)
            return await fanout.order_created(make_order(), SHOP)

        report = asyncio.run(scenario())
        assert (report.published, report.customer_notified, report.shop_notified) == (True, True, True)
        assert received == [{
            "orderId": 7,
            "status": "received",
            "orderNumber": 42,
            "timestamp": "2026-03-01T09:30:00+00:00",
        }]

    def test_customer_message_content(self):
        transport = MockChatTransport()
        fanout = NotificationFanout(InMemoryRealtimeChannel(), transport)

        asyncio.run(fanout.order_created(make_order(fee="25.00"), SHOP))
        customer_text = transport.sent[0][1]
        assert customer_text == (
            "✅ Order placed: #000042\n\n"
            "Tea ×2 - ₹10 = ₹20\n"
            "Coffee ×1 - ₹20 = ₹20\n\n"
            "Delivery: ₹25\n"
            "Total: ₹65\n"
            "You will receive updates here."
        )

    def test_publish_without_subscribers_is_fine(self):
        fanout = NotificationFanout(InMemoryRealtimeChannel(), MockChatTransport())
        report = asyncio.run(fanout.order_created(make_order(), SHOP))
        assert report.published

    def test_broken_channel_does_not_stop_messages(self):
        transport = MockChatTransport()
        fanout = NotificationFanout(BrokenChannel(), transport)

        report = asyncio.run(fanout.order_created(make_order(), SHOP))
        assert not report.published
        assert report.customer_notified and report.shop_notified
        assert len(transport.sent) == 2

    def test_rejected_messages_reported(self):
        fanout = NotificationFanout(InMemoryRealtimeChannel(), MockChatTransport(failure_rate=1.0))

        report = asyncio.run(fanout.order_created(make_order(), SHOP))
        assert report.published
        assert report.customer_notified is False
        assert report.shop_notified is False

    def test_attempts_are_bounded(self):
        fanout = NotificationFanout(InMemoryRealtimeChannel(), HangingTransport(), timeout=0.05)

        report = asyncio.run(fanout.order_created(make_order(), SHOP))
        assert report.published
        assert not report.customer_notified
        assert not report.shop_notified

    def test_missing_contact_skipped(self):
        transport = MockChatTransport()
        fanout = NotificationFanout(InMemoryRealtimeChannel(), transport)

        report = asyncio.run(fanout.order_created(make_order(contact=""), SHOP))
        assert not report.customer_notified
        assert [contact for contact, _ in transport.sent] == [SHOP.contact]

    def test_sinks_run_concurrently(self):
        class HandshakeTransport(MockChatTransport):
            """The customer send completes only once the shop send has started."""

            def __init__(self):
                super().__init__()
                self.shop_started = asyncio.Event()

            async def send_message(self, contact, text):
                if contact == SHOP.contact:
                    self.shop_started.set()
                else:
                    await self.shop_started.wait()
                return await super().send_message(contact, text)

        transport = HandshakeTransport()
        fanout = NotificationFanout(InMemoryRealtimeChannel(), transport, timeout=1.0)

        report = asyncio.run(fanout.order_created(make_order(), SHOP))
        assert report.customer_notified and report.shop_notified
        assert sorted(contact for contact, _ in transport.sent) == sorted(["+919812345678", SHOP.contact])


class TestStatusChanged:

    def test_customer_and_viewers_only(self):
        channel = InMemoryRealtimeChannel()
        transport = MockChatTransport()
        fanout = NotificationFanout(channel, transport)
        received = []

        async def handler(event):
            received.append(event)

        async def scenario():
            await channel.subscribe(order_topic(7), handler)
            return await fanout.status_changed(make_order(OrderStatus.OUT_FOR_DELIVERY), AT)

        report = asyncio.run(scenario())
        assert report.shop_notified is None
        assert transport.sent == [("+919812345678", "Order #000042 status updated: out for delivery")]
        assert received[0]["status"] == "out-for-delivery"
