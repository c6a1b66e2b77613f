"""
In-Memory Order Store

Keeps shops, menu items, orders and counters in process memory.
Used in development with STORE_BACKEND=memory and throughout the tests.

Each mutating method runs without awaiting between its read and its
write, so on a single event loop every operation is atomic. It is NOT
shared across processes; multi-instance deployments use SqlOrderStore.
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from orderdesk.core.exceptions import CounterStoreError, StoreError
from orderdesk.domain import (
    NumberSource,
    MenuItem,
    Order,
    OrderDraft,
    OrderStatus,
    Shop,
    VariantOption,
    to_money,
)
from orderdesk.services.store.base import BaseOrderStore

logger = logging.getLogger(__name__)


class InMemoryOrderStore(BaseOrderStore):
    """Dictionary-backed store."""

    def __init__(self):
        self._shops: dict[int, Shop] = {}
        self._items: dict[int, MenuItem] = {}
        self._orders: dict[int, Order] = {}
        self._counters: dict[str, int] = {}
        self._next_shop_id = 1
        self._next_item_id = 1
        self._next_order_id = 1

    @property
    def provider_name(self) -> str:
        return "memory"

    # =========================================================================
    # SEEDING
    # =========================================================================

    def add_shop(
        self,
        name: str,
        contact: str,
        pincode: str = "",
        online: bool = True,
    ) -> Shop:
        shop = Shop(
            id=self._next_shop_id,
            name=name,
            contact=contact,
            pincode=pincode,
            online=online,
        )
        self._shops[shop.id] = shop
        self._next_shop_id += 1
        return shop

    def add_menu_item(
        self,
        shop_id: int,
        name: str,
        price,
        code: Optional[str] = None,
        available: bool = True,
        position: Optional[int] = None,
        variants: Iterable[dict] = (),
    ) -> MenuItem:
        if position is None:
            position = sum(1 for item in self._items.values() if item.shop_id == shop_id)
        item = MenuItem(
            id=self._next_item_id,
            shop_id=shop_id,
            name=name,
            price=to_money(price),
            available=available,
            code=code,
            position=position,
            variants=tuple(
                VariantOption(
                    code=v["code"],
                    label=v.get("label", v["code"]),
                    price=to_money(v.get("price", 0)),
                    available=v.get("available", True),
                )
                for v in variants
            ),
        )
        self._items[item.id] = item
        self._next_item_id += 1
        return item

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def find_shop_by_contact(self, contact: str) -> Optional[Shop]:
        for shop in self._shops.values():
            if shop.contact == contact:
                return shop
        return None

    async def get_shop(self, shop_id: int) -> Optional[Shop]:
        return self._shops.get(shop_id)

    async def list_available_items(self, shop_id: int) -> list[MenuItem]:
        items = [
            item for item in self._items.values()
            if item.shop_id == shop_id and item.available
        ]
        return sorted(items, key=lambda item: (item.position, item.id))

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def create_order(self, draft: OrderDraft, at: datetime) -> Order:
        if draft.order_number is None or draft.number_source is None:
            raise StoreError("Order draft has no order number")

        for existing in self._orders.values():
            same_space = existing.number_source == draft.number_source and (
                existing.number_source == NumberSource.GLOBAL or existing.shop_id == draft.shop_id
            )
            if same_space and existing.order_number == draft.order_number:
                raise StoreError(
                    f"Duplicate order number {draft.order_number} ({draft.number_source.value})"
                )

        order = Order(
            id=self._next_order_id,
            order_number=draft.order_number,
            number_source=draft.number_source,
            shop_id=draft.shop_id,
            customer_ref=draft.customer_ref,
            customer_name=draft.customer_name,
            contact=draft.contact,
            delivery_address=draft.delivery_address,
            line_items=tuple(draft.line_items),
            items_total=Decimal(draft.items_total),
            delivery_fee=Decimal(draft.delivery_fee),
            grand_total=Decimal(draft.grand_total),
            channel=draft.channel,
            status=OrderStatus.RECEIVED,
            created_at=at,
            updated_at=at,
        )
        self._orders[order.id] = order
        self._next_order_id += 1
        logger.debug(f"Stored order {order.id} as {draft.number_source.value}#{order.order_number}")
        return order

    async def create_numbered_order(
        self,
        draft: OrderDraft,
        counter_name: str,
        at: datetime,
    ) -> Order:
        previous = self._counters.get(counter_name, 0)
        try:
            value = await self.increment_counter(counter_name)
        except StoreError as e:
            raise CounterStoreError(str(e)) from e

        numbered = replace(draft, order_number=value, number_source=NumberSource.GLOBAL)
        try:
            return await self.create_order(numbered, at)
        except StoreError:
            # Undo the increment unless a later number was issued meanwhile
            if self._counters.get(counter_name) == value:
                self._counters[counter_name] = previous
            raise

    async def get_order(self, order_id: int) -> Optional[Order]:
        return self._orders.get(order_id)

    async def get_order_by_number(self, order_number: int) -> Optional[Order]:
        matches = [o for o in self._orders.values() if o.order_number == order_number]
        if not matches:
            return None
        # Global numbers first, then the most recent shop-local one
        matches.sort(key=lambda o: (o.number_source != NumberSource.GLOBAL, -o.id))
        return matches[0]

    async def list_orders(
        self,
        shop_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
        customer_ref: Optional[str] = None,
    ) -> tuple[int, list[Order]]:
        orders = [
            o for o in self._orders.values()
            if (shop_id is None or o.shop_id == shop_id)
            and (status is None or o.status == status)
            and (customer_ref is None or o.customer_ref == customer_ref)
        ]
        orders.sort(key=lambda o: (o.created_at, o.id), reverse=True)
        return len(orders), orders[skip:skip + limit]

    async def update_order_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new: OrderStatus,
        at: datetime,
    ) -> Optional[Order]:
        current = self._orders.get(order_id)
        if current is None or current.status != expected:
            return None
        updated = replace(current, status=new, updated_at=at)
        self._orders[order_id] = updated
        return updated

    # =========================================================================
    # SEQUENCES
    # =========================================================================

    async def increment_counter(self, name: str) -> int:
        value = self._counters.get(name, 0) + 1
        self._counters[name] = value
        return value

    async def increment_shop_sequence(self, shop_id: int) -> int:
        shop = self._shops.get(shop_id)
        if shop is None:
            raise StoreError(f"Shop {shop_id} not found")
        shop = replace(shop, last_order_number=shop.last_order_number + 1)
        self._shops[shop_id] = shop
        return shop.last_order_number

    async def health_check(self) -> bool:
        return True
