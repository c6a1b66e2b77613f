"""
Order Aggregator

Turns resolved catalog lines into a priced, unnumbered order draft.
Prices are copied out of the catalog here, which is what makes every
line item a frozen snapshot of the menu at order time.
"""

from decimal import Decimal
from typing import Optional, Sequence

from orderdesk.core.exceptions import ValidationError
from orderdesk.domain import (
    DeliveryAddress,
    LineItem,
    OrderChannel,
    OrderDraft,
    ResolvedLine,
    to_money,
)

ZERO = Decimal("0.00")


def price_line(line: ResolvedLine) -> LineItem:
    """Snapshot one catalog line: unit price x quantity."""
    if line.quantity < 1:
        raise ValidationError(f"Quantity for {line.item.name} must be at least 1")

    if line.variant is not None:
        name = f"{line.item.name} ({line.variant.label})"
        unit_price = to_money(line.variant.price)
    else:
        name = line.item.name
        unit_price = to_money(line.item.price)

    return LineItem(
        name=name,
        quantity=line.quantity,
        unit_price=unit_price,
        line_total=to_money(unit_price * line.quantity),
    )


def build_order_draft(
    lines: Sequence[ResolvedLine],
    *,
    shop_id: int,
    customer_name: str,
    contact: str,
    channel: OrderChannel,
    delivery_fee: Optional[Decimal] = None,
    delivery_address: Optional[DeliveryAddress] = None,
    customer_ref: Optional[str] = None,
) -> OrderDraft:
    """
    Price an order.

    Args:
        lines: Resolved items with quantities, in the order the shopper gave them
        delivery_fee: Only honoured for web orders; chat orders always carry 0

    Raises:
        ValidationError: No lines, a non-positive quantity, or a negative fee
    """
    if not lines:
        raise ValidationError("Order must contain at least one item")

    line_items = tuple(price_line(line) for line in lines)
    items_total = sum((item.line_total for item in line_items), ZERO)

    fee = ZERO
    if channel == OrderChannel.WEB and delivery_fee is not None:
        fee = to_money(delivery_fee)
        if fee < 0:
            raise ValidationError("Delivery fee cannot be negative")

    return OrderDraft(
        shop_id=shop_id,
        customer_name=customer_name,
        contact=contact,
        line_items=line_items,
        items_total=items_total,
        delivery_fee=fee,
        grand_total=items_total + fee,
        channel=channel,
        customer_ref=customer_ref,
        delivery_address=delivery_address or DeliveryAddress(),
    )
