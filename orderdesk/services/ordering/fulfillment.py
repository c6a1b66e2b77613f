"""
Fulfillment Orchestrator

Drives an order through its life:

    1. Validate and price the draft (aggregator)
    2. Allocate an order number (global counter, shop-local fallback)
    3. Persist with status 'received'
    4. Fan out notifications in the background

and applies status transitions with optimistic concurrency: the store
only writes a new status if the stored one still equals the status the
transition was computed from.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Coroutine, Optional, Sequence

from orderdesk.core.exceptions import (
    InvalidTransition,
    OrderNotFound,
    OrderPersistError,
    StoreError,
    ValidationError,
)
from orderdesk.core.phone import normalize_phone
from orderdesk.domain import (
    DeliveryAddress,
    Order,
    OrderChannel,
    OrderStatus,
    RequestedLine,
    ResolvedLine,
    Shop,
)
from orderdesk.services.notifications.fanout import NotificationFanout
from orderdesk.services.ordering.aggregator import build_order_draft
from orderdesk.services.ordering.menu_resolver import resolve_web_lines
from orderdesk.services.ordering.state_machine import can_transition
from orderdesk.services.sequence import SequenceGenerator
from orderdesk.services.store.base import BaseOrderStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FulfillmentService:
    """
    Order creation and status transitions.

    Attributes:
        store: Order store
        sequence: Order-number allocator
        fanout: Best-effort notifier, run off the request path
        country_code: Prefix for bare local phone numbers on web orders
    """

    def __init__(
        self,
        store: BaseOrderStore,
        sequence: SequenceGenerator,
        fanout: NotificationFanout,
        country_code: str = "91",
    ):
        self.store = store
        self.sequence = sequence
        self.fanout = fanout
        self.country_code = country_code
        self._pending: set[asyncio.Task] = set()

    # =========================================================================
    # BACKGROUND NOTIFICATIONS
    # =========================================================================

    def _schedule(self, coro: Coroutine, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._on_notification_done)

    def _on_notification_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"Notification task {task.get_name()} cancelled")
        elif task.exception() is not None:
            logger.error(f"Notification task {task.get_name()} crashed: {task.exception()!r}")

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    async def drain_notifications(self) -> None:
        """Wait for every scheduled fan-out to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # ORDER CREATION
    # =========================================================================

    async def create_order(
        self,
        lines: Sequence[ResolvedLine],
        *,
        shop: Shop,
        customer_name: str,
        contact: str,
        channel: OrderChannel,
        delivery_fee: Optional[Decimal] = None,
        delivery_address: Optional[DeliveryAddress] = None,
        customer_ref: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> Order:
        """
        Price, number, persist and announce an order.

        Raises:
            ValidationError: No lines or bad quantities/fee
            CounterUnavailable: No number could be allocated
            OrderPersistError: The store rejected the write; nothing was announced
        """
        draft = build_order_draft(
            lines,
            shop_id=shop.id,
            customer_name=customer_name,
            contact=contact,
            channel=channel,
            delivery_fee=delivery_fee,
            delivery_address=delivery_address,
            customer_ref=customer_ref,
        )

        try:
            order = await self.sequence.create_numbered_order(draft, at or utcnow())
        except StoreError as e:
            logger.error(f"❌ Failed to persist order for shop {shop.id}: {e}")
            raise OrderPersistError(f"Could not save order: {e}") from e

        logger.info(
            f"✅ Order {order.display_number} ({order.number_source.value}) created "
            f"for shop {shop.id} via {order.channel.value}: total {order.grand_total}"
        )
        self._schedule(self.fanout.order_created(order, shop), f"order-created-{order.id}")
        return order

    async def place_web_order(
        self,
        *,
        shop_id: int,
        customer_name: str,
        contact: str,
        lines: Sequence[RequestedLine],
        delivery_fee: Optional[Decimal] = None,
        delivery_address: Optional[DeliveryAddress] = None,
    ) -> Order:
        """
        Validate and create an order submitted from the web storefront.

        Raises:
            ValidationError: Unknown shop, missing name, bad phone or a
                pincode the shop does not deliver to
            ResolutionError: Item ids or variants not available
        """
        shop = await self.store.get_shop(shop_id)
        if shop is None:
            raise ValidationError(f"Shop {shop_id} not found")

        customer_name = (customer_name or "").strip()
        if not customer_name:
            raise ValidationError("Customer name is required")
        if not (contact or "").strip():
            raise ValidationError("Contact phone is required")

        phone = normalize_phone(contact, self.country_code)
        if phone is None:
            raise ValidationError(f"Invalid contact phone: {contact}")

        address = delivery_address or DeliveryAddress()
        pincode = address.pincode.strip()
        if pincode and shop.pincode and pincode != shop.pincode.strip():
            raise ValidationError(f"Shop does not deliver to pincode {pincode}")
        if not address.phone:
            address = replace(address, phone=phone)

        if not lines:
            raise ValidationError("Order must contain at least one item")

        available = await self.store.list_available_items(shop.id)
        resolved = resolve_web_lines(lines, available)

        return await self.create_order(
            resolved,
            shop=shop,
            customer_name=customer_name,
            contact=phone,
            channel=OrderChannel.WEB,
            delivery_fee=delivery_fee,
            delivery_address=address,
            customer_ref=phone,
        )

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    async def transition(
        self,
        order_id: int,
        target: OrderStatus,
        expected_status: Optional[OrderStatus] = None,
        at: Optional[datetime] = None,
    ) -> Order:
        """
        Move an order one legal step.

        Args:
            expected_status: Status the caller last saw; a mismatch is
                reported as a stale transition

        Raises:
            OrderNotFound: No such order
            InvalidTransition: Illegal target, stale expectation, or a
                concurrent writer got there first
        """
        order = await self.store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        if expected_status is not None and expected_status != order.status:
            raise InvalidTransition(order.status.value, target.value, stale=True)

        if not can_transition(order.status, target):
            raise InvalidTransition(order.status.value, target.value)

        at = at or utcnow()
        try:
            updated = await self.store.update_order_status(order_id, order.status, target, at)
        except StoreError as e:
            logger.error(f"❌ Failed to update order {order_id} status: {e}")
            raise OrderPersistError(f"Could not update order {order_id}: {e}") from e

        if updated is None:
            latest = await self.store.get_order(order_id)
            current = latest.status.value if latest else order.status.value
            logger.warning(
                f"Order {order_id}: lost race moving {order.status.value} -> {target.value}, "
                f"now {current}"
            )
            raise InvalidTransition(current, target.value, stale=True)

        logger.info(f"Order {updated.display_number}: {order.status.value} -> {target.value}")
        self._schedule(self.fanout.status_changed(updated, at), f"status-{updated.id}-{target.value}")
        return updated
