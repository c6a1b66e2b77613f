from decimal import Decimal

import pytest

from orderdesk.core.exceptions import ValidationError
from orderdesk.domain import MenuItem, OrderChannel, ResolvedLine, VariantOption
from orderdesk.services.ordering.aggregator import build_order_draft, price_line

TEA = MenuItem(id=1, shop_id=1, name="Tea", price=Decimal("10.00"))
COFFEE = MenuItem(id=2, shop_id=1, name="Coffee", price=Decimal("20.00"))
CANDY = MenuItem(id=3, shop_id=1, name="Candy", price=Decimal("0.10"))


def draft(lines, channel=OrderChannel.CHAT, **kwargs):
    return build_order_draft(
        lines,
        shop_id=1,
        customer_name="Asha",
        contact="+919812345678",
        channel=channel,
        **kwargs,
    )


class TestPriceLine:

    def test_unit_price_times_quantity(self):
        line = price_line(ResolvedLine(TEA, 3))
        assert line.name == "Tea"
        assert line.unit_price == Decimal("10.00")
        assert line.line_total == Decimal("30.00")

    def test_variant_price_and_name(self):
        sandwich = MenuItem(
            id=4, shop_id=1, name="Sandwich", price=Decimal("60"),
            variants=(VariantOption("paneer", "Paneer", Decimal("80")),),
        )
        line = price_line(ResolvedLine(sandwich, 2, sandwich.variants[0]))
        assert line.name == "Sandwich (Paneer)"
        assert line.line_total == Decimal("160.00")

    def test_non_positive_quantity(self):
        with pytest.raises(ValidationError):
            price_line(ResolvedLine(TEA, 0))


class TestBuildOrderDraft:

    def test_totals(self):
        result = draft([ResolvedLine(TEA, 2), ResolvedLine(COFFEE, 1)])
        assert result.items_total == Decimal("40.00")
        assert result.delivery_fee == Decimal("0.00")
        assert result.grand_total == Decimal("40.00")
        assert [item.name for item in result.line_items] == ["Tea", "Coffee"]

    def test_exact_decimal_sums(self):
        result = draft([ResolvedLine(CANDY, 3)])
        assert result.items_total == Decimal("0.30")

    def test_web_delivery_fee(self):
        result = draft([ResolvedLine(TEA, 1)], channel=OrderChannel.WEB, delivery_fee=Decimal("25"))
        assert result.delivery_fee == Decimal("25.00")
        assert result.grand_total == Decimal("35.00")

    def test_chat_orders_never_carry_a_fee(self):
        result = draft([ResolvedLine(TEA, 1)], delivery_fee=Decimal("25"))
        assert result.delivery_fee == Decimal("0.00")
        assert result.grand_total == Decimal("10.00")

    def test_negative_fee(self):
        with pytest.raises(ValidationError):
            draft([ResolvedLine(TEA, 1)], channel=OrderChannel.WEB, delivery_fee=Decimal("-1"))

    def test_no_lines(self):
        with pytest.raises(ValidationError):
            draft([])

    def test_draft_is_unnumbered(self):
        result = draft([ResolvedLine(TEA, 1)])
        assert result.order_number is None
        assert result.number_source is None
