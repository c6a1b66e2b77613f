import asyncio

import pytest

from orderdesk.domain import OrderChannel, OrderStatus
from orderdesk.services.chat.handler import ChatCommandHandler
from orderdesk.services.chat.interpreter import HELP_TEXT
from orderdesk.services.store.memory import InMemoryOrderStore
from tests.conftest import SHOP_CONTACT, seed_demo

SENDER = "whatsapp:+919812345678"


def chat(handler, body, sender=SENDER):
    async def scenario():
        reply = await handler.handle(sender, body)
        await handler.fulfillment.drain_notifications()
        return reply

    return asyncio.run(scenario())


class TestMenu:

    def test_lettered_menu(self, handler):
        reply = chat(handler, f"menu {SHOP_CONTACT}")
        assert reply.startswith("📋 Menu for Chai Point:")
        assert "A. Tea - ₹10" in reply
        assert "D. Sandwich - ₹60" in reply
        assert "Juice" not in reply

    def test_shop_found_by_normalized_contact(self, handler):
        assert "Menu for Chai Point" in chat(handler, "menu 9876500001")

    def test_unknown_shop(self, handler):
        assert chat(handler, "menu +910000000000") == "Shop +910000000000 not found."

    def test_shop_without_items(self, store, handler):
        store.add_shop("Empty Shop", "+911111111111")
        assert chat(handler, "menu +911111111111") == "No items found for Empty Shop."


class TestOrder:

    def test_letters_with_trailing_token(self, handler, store):
        reply = chat(handler, f"order {SHOP_CONTACT} A 2 B")

        assert reply.startswith("✅ Order placed: #000001")
        assert "Tea ×2 - ₹10 = ₹20" in reply
        assert "Coffee ×1 - ₹20 = ₹20" in reply
        assert "Total: ₹40" in reply
        assert "Delivery" not in reply

        order = asyncio.run(store.get_order(1))
        assert order.channel == OrderChannel.CHAT
        assert order.contact == "+919812345678"
        assert order.customer_name == "WhatsApp:+919812345678"
        assert order.delivery_address.label == "WhatsApp"
        assert order.delivery_fee == 0

    def test_codes_and_names(self, handler):
        reply = chat(handler, f"order {SHOP_CONTACT} sam 3 Coffee 1")
        assert "Samosa ×3 - ₹15 = ₹45" in reply
        assert "Total: ₹65" in reply

    def test_unresolved_tokens_named_and_nothing_created(self, handler, store, transport):
        reply = chat(handler, f"order {SHOP_CONTACT} A 1 X 2 Pizza 1")

        assert reply == (
            "Item(s) not found: X, Pizza. "
            "Check the menu and use the letter or item code shown."
        )
        assert store._orders == {}
        assert store._counters == {}
        assert transport.sent == []

    def test_unknown_shop(self, handler, store):
        assert chat(handler, "order +910000000000 A 1") == "Shop +910000000000 not found."
        assert store._orders == {}

    def test_local_sender_number_normalized(self, handler, store):
        chat(handler, f"order {SHOP_CONTACT} A 1", sender="whatsapp:09812345678")
        assert asyncio.run(store.get_order(1)).contact == "+919812345678"

    def test_customer_and_shop_notified(self, handler, transport):
        chat(handler, f"order {SHOP_CONTACT} A 1")
        assert [contact for contact, _ in transport.sent] == ["+919812345678", SHOP_CONTACT]

    def test_consecutive_orders_numbered_in_sequence(self, handler):
        first = chat(handler, f"order {SHOP_CONTACT} A 1")
        second = chat(handler, f"order {SHOP_CONTACT} B 1")
        assert "#000001" in first
        assert "#000002" in second


class TestStatus:

    def place_and_accept(self, handler):
        chat(handler, f"order {SHOP_CONTACT} A 1")
        service = handler.fulfillment

        async def scenario():
            await service.transition(1, OrderStatus.ACCEPTED)
            await service.drain_notifications()

        asyncio.run(scenario())

    def test_by_display_number(self, handler):
        self.place_and_accept(handler)
        assert chat(handler, "status #000001") == "Order #000001 status: accepted"

    def test_by_bare_number(self, handler):
        self.place_and_accept(handler)
        assert chat(handler, "status 1") == "Order #000001 status: accepted"

    def test_not_found(self, handler):
        assert chat(handler, "status 999") == "Order 999 not found."

    def test_invalid_identifier(self, handler):
        assert chat(handler, "status abc") == "Invalid order id."

    @pytest.mark.parametrize("identifier", ["99999999999999999999", "#0", "-3", "2147483648"])
    def test_out_of_range_identifier(self, handler, identifier):
        assert chat(handler, f"status {identifier}") == "Invalid order id."


class TestFallbacks:

    def test_help_for_unknown_commands(self, handler):
        assert chat(handler, "hello") == HELP_TEXT
        assert chat(handler, "order") == HELP_TEXT

    def test_unexpected_errors_become_server_error(self, service):
        class BrokenCatalog(InMemoryOrderStore):
            async def list_available_items(self, shop_id):
                raise RuntimeError("boom")

        store = BrokenCatalog()
        seed_demo(store)
        handler = ChatCommandHandler(store, service)

        assert chat(handler, f"menu {SHOP_CONTACT}") == "Server error."
