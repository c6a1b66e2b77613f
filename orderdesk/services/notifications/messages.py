"""Human-readable chat messages for order events."""

from orderdesk.domain import Order, format_money

STATUS_LABELS = {
    "received": "received",
    "accepted": "accepted by the shop",
    "packed": "packed",
    "out-for-delivery": "out for delivery",
    "delivered": "delivered",
    "cancelled": "cancelled",
}


def item_lines(order: Order, currency_symbol: str = "₹") -> str:
    return "\n".join(
        f"{item.name} ×{item.quantity} - {format_money(item.unit_price, currency_symbol)}"
        f" = {format_money(item.line_total, currency_symbol)}"
        for item in order.line_items
    )


def _totals(order: Order, currency_symbol: str) -> str:
    lines = []
    if order.delivery_fee:
        lines.append(f"Delivery: {format_money(order.delivery_fee, currency_symbol)}")
    lines.append(f"Total: {format_money(order.grand_total, currency_symbol)}")
    return "\n".join(lines)


def order_placed_customer(order: Order, currency_symbol: str = "₹") -> str:
    return (
        f"✅ Order placed: {order.display_number}\n\n"
        f"{item_lines(order, currency_symbol)}\n\n"
        f"{_totals(order, currency_symbol)}\n"
        f"You will receive updates here."
    )


def order_placed_shop(order: Order, currency_symbol: str = "₹") -> str:
    return (
        f"📥 New order {order.display_number} from {order.contact}\n\n"
        f"{item_lines(order, currency_symbol)}\n\n"
        f"{_totals(order, currency_symbol)}"
    )


def status_update(order: Order) -> str:
    label = STATUS_LABELS.get(order.status.value, order.status.value)
    return f"Order {order.display_number} status updated: {label}"


def status_reply(order: Order) -> str:
    return f"Order {order.display_number} status: {order.status.value}"
