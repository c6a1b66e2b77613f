"""
Order Number Sequence Generator

Issues customer-visible order numbers.

The global counter is incremented and read in one atomic store
operation, so two requests never receive the same number even when
they run on different app instances. When the global counter cannot
be reached the generator degrades to the shop's own running counter
and tags the number as shop-local, so the degradation stays visible
in the data and the logs.
"""

import logging
from dataclasses import replace
from datetime import datetime

from orderdesk.core.exceptions import CounterStoreError, CounterUnavailable, StoreError
from orderdesk.domain import AllocatedNumber, NumberSource, Order, OrderDraft
from orderdesk.services.store.base import BaseOrderStore

logger = logging.getLogger(__name__)


class SequenceGenerator:
    """
    Named atomic counters on top of the order store.

    Attributes:
        store: Order store providing the atomic increments
        counter_name: Name of the global order-number counter
        attempts: Tries against the global counter before giving up
    """

    def __init__(
        self,
        store: BaseOrderStore,
        counter_name: str = "orderNumber",
        attempts: int = 2,
    ):
        self.store = store
        self.counter_name = counter_name
        self.attempts = max(1, attempts)

    async def next(self, counter_name: str) -> int:
        """
        Increment and return the named counter.

        A missing counter starts at 0, so its first value is 1.

        Raises:
            CounterUnavailable: Empty name, or storage failed on every attempt
        """
        if not counter_name or not counter_name.strip():
            raise CounterUnavailable("Counter name required")

        last_error = None
        for attempt in range(1, self.attempts + 1):
            try:
                return await self.store.increment_counter(counter_name)
            except StoreError as e:
                last_error = e
                logger.warning(
                    f"Counter '{counter_name}' attempt {attempt}/{self.attempts} failed: {e}"
                )

        raise CounterUnavailable(
            f"Counter '{counter_name}' unavailable after {self.attempts} attempts: {last_error}"
        )

    async def create_numbered_order(self, draft: OrderDraft, at: datetime) -> Order:
        """
        Persist a draft under a fresh order number.

        The global number and the insert are a single store operation,
        so an order that fails to save gives its number back. Only when
        the global counter itself is down does the shop's running counter
        take over; a shop-local number is taken before the insert and is
        lost if that insert then fails.

        Raises:
            CounterUnavailable: Neither counter could issue a number
            StoreError: The order could not be written
        """
        for attempt in range(1, self.attempts + 1):
            try:
                return await self.store.create_numbered_order(draft, self.counter_name, at)
            except CounterStoreError as e:
                logger.warning(
                    f"Counter '{self.counter_name}' attempt {attempt}/{self.attempts} failed: {e}"
                )

        logger.warning(
            f"⚠️ Global order counter down, falling back to shop-local numbering "
            f"for shop {draft.shop_id}"
        )
        allocated = await self.allocate_shop_number(draft.shop_id)
        numbered = replace(draft, order_number=allocated.value, number_source=allocated.source)
        return await self.store.create_order(numbered, at)

    async def allocate_shop_number(self, shop_id: int) -> AllocatedNumber:
        """
        Take the next value of the shop's last_order_number.

        Numbers from this space may overlap global numbers; numbers
        within one shop never do.

        Raises:
            CounterUnavailable: The shop sequence failed
        """
        try:
            value = await self.store.increment_shop_sequence(shop_id)
        except StoreError as e:
            logger.error(f"❌ Shop sequence for shop {shop_id} also failed: {e}")
            raise CounterUnavailable(
                f"No order number available for shop {shop_id}"
            ) from e

        logger.warning(f"Shop {shop_id} issued shop-local order number {value}")
        return AllocatedNumber(value=value, source=NumberSource.SHOP)
