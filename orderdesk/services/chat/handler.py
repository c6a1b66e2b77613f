"""
Chat Command Handler

Executes parsed chat commands against the catalog and the fulfillment
orchestrator and produces the text to send back to the sender. Every
outcome, including failures, is a reply string; the webhook never
surfaces an error to the chat transport.
"""

import logging
from typing import Optional

from orderdesk.core.exceptions import (
    CounterUnavailable,
    OrderPersistError,
    ValidationError,
)
from orderdesk.core.phone import normalize_phone, strip_transport_prefix
from orderdesk.domain import DeliveryAddress, Order, OrderChannel, ResolvedLine, Shop
from orderdesk.services.chat.interpreter import (
    HELP_TEXT,
    PlaceOrder,
    QueryStatus,
    ShowMenu,
    parse_command,
)
from orderdesk.services.notifications import messages
from orderdesk.services.ordering.fulfillment import FulfillmentService
from orderdesk.services.ordering.menu_resolver import format_menu, resolve
from orderdesk.services.store.base import BaseOrderStore

logger = logging.getLogger(__name__)

SERVER_ERROR = "Server error."
# Largest id the stores accept (32-bit integer columns)
MAX_ORDER_ID = 2**31 - 1
ORDER_UNAVAILABLE = "Sorry, your order could not be placed right now. Please try again."


class ChatCommandHandler:
    """Turns one inbound chat message into one reply."""

    def __init__(
        self,
        store: BaseOrderStore,
        fulfillment: FulfillmentService,
        country_code: str = "91",
        currency_symbol: str = "₹",
    ):
        self.store = store
        self.fulfillment = fulfillment
        self.country_code = country_code
        self.currency_symbol = currency_symbol

    async def handle(self, sender: str, body: str) -> str:
        intent = parse_command(body)
        logger.info(f"Chat message from {sender}: {type(intent).__name__}")

        try:
            if isinstance(intent, ShowMenu):
                return await self._show_menu(intent)
            if isinstance(intent, PlaceOrder):
                return await self._place_order(sender, intent)
            if isinstance(intent, QueryStatus):
                return await self._query_status(intent)
            return HELP_TEXT
        except Exception as e:
            logger.exception(f"Chat command failed for {sender}: {e}")
            return SERVER_ERROR

    async def _find_shop(self, contact: str) -> Optional[Shop]:
        shop = await self.store.find_shop_by_contact(contact)
        if shop is not None:
            return shop
        normalized = normalize_phone(contact, self.country_code)
        if normalized and normalized != contact:
            return await self.store.find_shop_by_contact(normalized)
        return None

    async def _show_menu(self, intent: ShowMenu) -> str:
        shop = await self._find_shop(intent.shop_contact)
        if shop is None:
            return f"Shop {intent.shop_contact} not found."

        items = await self.store.list_available_items(shop.id)
        if not items:
            return f"No items found for {shop.name}."
        return format_menu(shop, items, self.currency_symbol)

    async def _place_order(self, sender: str, intent: PlaceOrder) -> str:
        shop = await self._find_shop(intent.shop_contact)
        if shop is None:
            return f"Shop {intent.shop_contact} not found."

        items = await self.store.list_available_items(shop.id)
        lines = []
        missing = []
        for pair in intent.pairs:
            item = resolve(pair.token, items)
            if item is None:
                missing.append(pair.token)
            else:
                lines.append(ResolvedLine(item=item, quantity=pair.quantity))

        if missing:
            logger.info(f"Unresolved items for shop {shop.id}: {missing}")
            return (
                f"Item(s) not found: {', '.join(missing)}. "
                f"Check the menu and use the letter or item code shown."
            )

        handle = strip_transport_prefix(sender)
        phone = normalize_phone(handle, self.country_code) or handle

        try:
            order = await self.fulfillment.create_order(
                lines,
                shop=shop,
                customer_name=f"WhatsApp:{handle}",
                contact=phone,
                channel=OrderChannel.CHAT,
                delivery_address=DeliveryAddress(
                    label="WhatsApp",
                    text=f"WhatsApp order from {handle}",
                    phone=phone,
                ),
            )
        except ValidationError as e:
            return str(e)
        except (CounterUnavailable, OrderPersistError) as e:
            logger.error(f"Chat order for shop {shop.id} failed: {e}")
            return ORDER_UNAVAILABLE

        return messages.order_placed_customer(order, self.currency_symbol)

    @staticmethod
    def _parse_order_id(text: str) -> int:
        value = int(text)
        if not 0 < value <= MAX_ORDER_ID:
            raise ValueError(f"Order id out of range: {text}")
        return value

    async def _lookup_order(self, identifier: str) -> Optional[Order]:
        """'#42' -> order number 42; '42' -> order number 42, else internal id 42."""
        if identifier.startswith("#"):
            return await self.store.get_order_by_number(self._parse_order_id(identifier[1:]))

        value = self._parse_order_id(identifier)
        order = await self.store.get_order_by_number(value)
        if order is None:
            order = await self.store.get_order(value)
        return order

    async def _query_status(self, intent: QueryStatus) -> str:
        identifier = intent.order_identifier.strip()
        try:
            order = await self._lookup_order(identifier)
        except ValueError:
            return "Invalid order id."

        if order is None:
            return f"Order {identifier} not found."
        return messages.status_reply(order)
