"""
Order Store Abstract Base Class

Defines the document-store interface the order pipeline consumes.
Both InMemoryOrderStore and SqlOrderStore must implement these methods.

Every method either succeeds or raises StoreError; callers translate
StoreError into the domain error that fits the operation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from orderdesk.domain import MenuItem, Order, OrderDraft, OrderStatus, Shop


class BaseOrderStore(ABC):
    """Abstract base class for order stores."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the store name (e.g. "memory", "sql")."""
        pass

    # =========================================================================
    # CATALOG (read-only)
    # =========================================================================

    @abstractmethod
    async def find_shop_by_contact(self, contact: str) -> Optional[Shop]:
        """Find the shop whose chat contact equals `contact` exactly."""
        pass

    @abstractmethod
    async def get_shop(self, shop_id: int) -> Optional[Shop]:
        pass

    @abstractmethod
    async def list_available_items(self, shop_id: int) -> list[MenuItem]:
        """
        Available items of a shop in listing order.

        Ordered by (position, id) so that letter references stay stable
        regardless of how the backing storage iterates.
        """
        pass

    # =========================================================================
    # ORDERS
    # =========================================================================

    @abstractmethod
    async def create_order(self, draft: OrderDraft, at: datetime) -> Order:
        """Persist a numbered draft with status 'received'."""
        pass

    @abstractmethod
    async def create_numbered_order(
        self,
        draft: OrderDraft,
        counter_name: str,
        at: datetime,
    ) -> Order:
        """
        Take the next value of `counter_name` and persist the draft under
        it as a global number, as one atomic step.

        If the insert fails the counter keeps its previous value, so no
        global number is ever consumed without a stored order.

        Raises:
            CounterStoreError: The counter could not be incremented
            StoreError: The insert failed; the counter is unchanged
        """
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_order_by_number(self, order_number: int) -> Optional[Order]:
        """Look up by customer-visible number, preferring the global space."""
        pass

    @abstractmethod
    async def list_orders(
        self,
        shop_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
        customer_ref: Optional[str] = None,
    ) -> tuple[int, list[Order]]:
        """
        Return (total matching, page of orders newest first).

        `customer_ref` narrows the listing to one customer's history.
        """
        pass

    @abstractmethod
    async def update_order_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new: OrderStatus,
        at: datetime,
    ) -> Optional[Order]:
        """
        Conditionally move an order to `new`.

        The write only happens if the stored status still equals
        `expected`; otherwise nothing changes and None is returned.
        """
        pass

    # =========================================================================
    # SEQUENCES
    # =========================================================================

    @abstractmethod
    async def increment_counter(self, name: str) -> int:
        """Atomically increment the named counter and return the new value."""
        pass

    @abstractmethod
    async def increment_shop_sequence(self, shop_id: int) -> int:
        """Atomically increment a shop's last_order_number and return it."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check storage connectivity."""
        pass
