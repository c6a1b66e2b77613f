import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from orderdesk.core.exceptions import CounterUnavailable, StoreError
from orderdesk.domain import LineItem, NumberSource, OrderChannel, OrderDraft
from orderdesk.services.sequence import SequenceGenerator
from orderdesk.services.store.memory import InMemoryOrderStore


class CounterDownStore(InMemoryOrderStore):
    """Global counter always fails; shop sequences still work."""

    def __init__(self, failures=None):
        super().__init__()
        self.failures = failures
        self.counter_calls = 0

    async def increment_counter(self, name):
        self.counter_calls += 1
        if self.failures is None or self.counter_calls <= self.failures:
            raise StoreError("connection refused")
        return await super().increment_counter(name)


class EverythingDownStore(CounterDownStore):
    async def increment_shop_sequence(self, shop_id):
        raise StoreError("connection refused")


class TestNext:

    def test_first_value_is_one(self):
        generator = SequenceGenerator(InMemoryOrderStore())
        assert asyncio.run(generator.next("orderNumber")) == 1

    def test_values_increase_per_counter(self):
        generator = SequenceGenerator(InMemoryOrderStore())

        async def scenario():
            a = [await generator.next("a") for _ in range(3)]
            b = await generator.next("b")
            return a, b

        a, b = asyncio.run(scenario())
        assert a == [1, 2, 3]
        assert b == 1

    def test_concurrent_callers_get_distinct_values(self):
        generator = SequenceGenerator(InMemoryOrderStore())

        async def scenario():
            return await asyncio.gather(*(generator.next("orderNumber") for _ in range(100)))

        values = asyncio.run(scenario())
        assert sorted(values) == list(range(1, 101))

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, name):
        generator = SequenceGenerator(InMemoryOrderStore())
        with pytest.raises(CounterUnavailable):
            asyncio.run(generator.next(name))

    def test_retries_then_gives_up(self):
        store = CounterDownStore()
        generator = SequenceGenerator(store, attempts=3)

        with pytest.raises(CounterUnavailable):
            asyncio.run(generator.next("orderNumber"))
        assert store.counter_calls == 3

    def test_transient_failure_recovered_by_retry(self):
        store = CounterDownStore(failures=1)
        generator = SequenceGenerator(store, attempts=2)

        assert asyncio.run(generator.next("orderNumber")) == 1


class InsertFailsStore(InMemoryOrderStore):
    async def create_order(self, draft, at):
        raise StoreError("disk full")


def unnumbered(shop_id):
    return OrderDraft(
        shop_id=shop_id,
        customer_name="Asha",
        contact="+919812345678",
        line_items=(LineItem("Tea", 1, Decimal("10.00"), Decimal("10.00")),),
        items_total=Decimal("10.00"),
        delivery_fee=Decimal("0.00"),
        grand_total=Decimal("10.00"),
        channel=OrderChannel.WEB,
    )


AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestCreateNumberedOrder:

    def test_uses_global_counter(self):
        store = InMemoryOrderStore()
        shop = store.add_shop("A", "+911111111111")
        generator = SequenceGenerator(store)

        order = asyncio.run(generator.create_numbered_order(unnumbered(shop.id), AT))
        assert order.order_number == 1
        assert order.number_source == NumberSource.GLOBAL

    def test_failed_insert_returns_global_number(self):
        store = InsertFailsStore()
        shop = store.add_shop("A", "+911111111111")
        generator = SequenceGenerator(store)

        with pytest.raises(StoreError):
            asyncio.run(generator.create_numbered_order(unnumbered(shop.id), AT))
        assert store._counters.get("orderNumber", 0) == 0
        assert asyncio.run(store.increment_counter("orderNumber")) == 1

    def test_failed_insert_does_not_fall_back(self):
        store = InsertFailsStore()
        shop = store.add_shop("A", "+911111111111")
        generator = SequenceGenerator(store)

        with pytest.raises(StoreError):
            asyncio.run(generator.create_numbered_order(unnumbered(shop.id), AT))
        assert asyncio.run(store.get_shop(shop.id)).last_order_number == 0

    def test_transient_counter_failure_recovered_by_retry(self):
        store = CounterDownStore(failures=1)
        shop = store.add_shop("A", "+911111111111")
        generator = SequenceGenerator(store, attempts=2)

        order = asyncio.run(generator.create_numbered_order(unnumbered(shop.id), AT))
        assert (order.order_number, order.number_source) == (1, NumberSource.GLOBAL)
        assert store.counter_calls == 2

    def test_falls_back_to_shop_sequence_and_tags_it(self):
        store = CounterDownStore()
        shop = store.add_shop("A", "+911111111111")
        generator = SequenceGenerator(store)

        async def scenario():
            return [
                await generator.create_numbered_order(unnumbered(shop.id), AT)
                for _ in range(2)
            ]

        first, second = asyncio.run(scenario())
        assert (first.order_number, first.number_source) == (1, NumberSource.SHOP)
        assert (second.order_number, second.number_source) == (2, NumberSource.SHOP)

    def test_both_sources_down(self):
        store = EverythingDownStore()
        shop = store.add_shop("A", "+911111111111")
        generator = SequenceGenerator(store)

        with pytest.raises(CounterUnavailable):
            asyncio.run(generator.create_numbered_order(unnumbered(shop.id), AT))
        assert asyncio.run(store.list_orders())[0] == 0


class TestAllocateShopNumber:

    def test_shop_sequences_are_independent(self):
        store = InMemoryOrderStore()
        a = store.add_shop("A", "+911111111111")
        b = store.add_shop("B", "+912222222222")
        generator = SequenceGenerator(store)

        async def scenario():
            await generator.allocate_shop_number(a.id)
            return await generator.allocate_shop_number(b.id)

        allocated = asyncio.run(scenario())
        assert (allocated.value, allocated.source) == (1, NumberSource.SHOP)

    def test_unknown_shop(self):
        generator = SequenceGenerator(InMemoryOrderStore())
        with pytest.raises(CounterUnavailable):
            asyncio.run(generator.allocate_shop_number(99))
