"""
Domain Types

Plain dataclasses passed between the pipeline components. Store
implementations translate their own rows into these, so resolver,
aggregator and orchestrator never touch ORM objects.

Catalog types (Shop, MenuItem) are read-only snapshots. Orders are
immutable values; a status change produces a new Order from the store.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a number to a Decimal rounded to the cent."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, symbol: str = "₹") -> str:
    """₹40 for whole amounts, ₹40.50 otherwise."""
    amount = to_money(amount)
    if amount == amount.to_integral_value():
        return f"{symbol}{int(amount)}"
    return f"{symbol}{amount}"


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatus(str, enum.Enum):
    """Fulfillment states. Values are the stable wire contract."""
    RECEIVED = "received"
    ACCEPTED = "accepted"
    PACKED = "packed"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class NumberSource(str, enum.Enum):
    """Which numbering space issued an order number."""
    GLOBAL = "global"
    SHOP = "shop"


class OrderChannel(str, enum.Enum):
    """Where the order was placed."""
    WEB = "web"
    CHAT = "chat"


# =============================================================================
# CATALOG (read-only)
# =============================================================================

@dataclass(frozen=True)
class Shop:
    id: int
    name: str
    contact: str
    pincode: str = ""
    last_order_number: int = 0
    online: bool = True


@dataclass(frozen=True)
class VariantOption:
    code: str
    label: str
    price: Decimal
    available: bool = True


@dataclass(frozen=True)
class MenuItem:
    id: int
    shop_id: int
    name: str
    price: Decimal
    available: bool = True
    code: Optional[str] = None
    position: int = 0
    variants: tuple[VariantOption, ...] = ()

    def find_variant(self, code: str) -> Optional[VariantOption]:
        wanted = code.strip().lower()
        for variant in self.variants:
            if variant.code.strip().lower() == wanted:
                return variant
        return None


@dataclass(frozen=True)
class RequestedLine:
    """A web order line referencing a catalog item by id."""
    item_id: int
    quantity: int = 1
    variant_code: Optional[str] = None


@dataclass(frozen=True)
class ResolvedLine:
    """A catalog item (and optional variant) paired with a quantity."""
    item: MenuItem
    quantity: int
    variant: Optional[VariantOption] = None


# =============================================================================
# ORDERS
# =============================================================================

@dataclass(frozen=True)
class DeliveryAddress:
    """Address snapshot captured at order time."""
    label: str = ""
    text: str = ""
    phone: str = ""
    pincode: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "label": self.label,
            "text": self.text,
            "phone": self.phone,
            "pincode": self.pincode,
        }


@dataclass(frozen=True)
class LineItem:
    """One priced entry, frozen from the catalog at order time."""
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LineItem":
        return cls(
            name=data["name"],
            quantity=int(data["quantity"]),
            unit_price=to_money(data["unit_price"]),
            line_total=to_money(data["line_total"]),
        )


@dataclass(frozen=True)
class AllocatedNumber:
    value: int
    source: NumberSource


@dataclass(frozen=True)
class OrderDraft:
    """A fully priced order that has not been persisted yet."""
    shop_id: int
    customer_name: str
    contact: str
    line_items: tuple[LineItem, ...]
    items_total: Decimal
    delivery_fee: Decimal
    grand_total: Decimal
    channel: OrderChannel
    customer_ref: Optional[str] = None
    delivery_address: DeliveryAddress = field(default_factory=DeliveryAddress)
    order_number: Optional[int] = None
    number_source: Optional[NumberSource] = None


@dataclass(frozen=True)
class Order:
    id: int
    order_number: int
    number_source: NumberSource
    shop_id: int
    customer_name: str
    contact: str
    delivery_address: DeliveryAddress
    line_items: tuple[LineItem, ...]
    items_total: Decimal
    delivery_fee: Decimal
    grand_total: Decimal
    channel: OrderChannel
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    customer_ref: Optional[str] = None

    @property
    def display_number(self) -> str:
        return f"#{self.order_number:06d}"

    def recomputed_items_total(self) -> Decimal:
        return sum((item.line_total for item in self.line_items), Decimal("0.00"))
