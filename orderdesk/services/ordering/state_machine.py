"""
Order Status State Machine

    received -> accepted -> packed -> out-for-delivery -> delivered
        \\           \\
         +-----------+--> cancelled

No skipping; delivered and cancelled are terminal.
"""

from typing import Optional

from orderdesk.domain import OrderStatus

FULFILLMENT_CHAIN = (
    OrderStatus.RECEIVED,
    OrderStatus.ACCEPTED,
    OrderStatus.PACKED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

CANCELLABLE = frozenset({OrderStatus.RECEIVED, OrderStatus.ACCEPTED})

TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """Immediate successor in the fulfillment chain, if any."""
    if current not in FULFILLMENT_CHAIN:
        return None
    index = FULFILLMENT_CHAIN.index(current)
    if index + 1 < len(FULFILLMENT_CHAIN):
        return FULFILLMENT_CHAIN[index + 1]
    return None


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current in TERMINAL:
        return False
    if target == OrderStatus.CANCELLED:
        return current in CANCELLABLE
    return next_status(current) == target


def allowed_targets(current: OrderStatus) -> list[OrderStatus]:
    """Statuses reachable from `current` in one step."""
    return [status for status in OrderStatus if can_transition(current, status)]
