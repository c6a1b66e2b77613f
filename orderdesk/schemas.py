"""
Pydantic Schemas for Request/Response Validation

Shapes of the HTTP API. Domain rules (empty orders, quantities, fees,
pincodes) are enforced by the services, not here, so that they surface
as the same 400 errors no matter which channel the order came from.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from orderdesk.domain import (
    DeliveryAddress,
    LineItem,
    MenuItem,
    NumberSource,
    Order,
    OrderChannel,
    OrderStatus,
    RequestedLine,
)
from orderdesk.services.ordering.menu_resolver import menu_letter


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderLineCreate(BaseModel):
    """Single catalog reference in a web order."""
    item_id: int = Field(..., examples=[3])
    quantity: int = Field(default=1, examples=[2])
    variant: Optional[str] = Field(None, max_length=50, examples=["large"])

    def to_domain(self) -> RequestedLine:
        return RequestedLine(
            item_id=self.item_id,
            quantity=self.quantity,
            variant_code=self.variant,
        )


class AddressIn(BaseModel):
    label: str = Field(default="", max_length=50, examples=["Home"])
    text: str = Field(default="", max_length=255, examples=["12 MG Road, Indiranagar"])
    phone: str = Field(default="", max_length=20)
    pincode: str = Field(default="", max_length=10, examples=["560038"])

    def to_domain(self) -> DeliveryAddress:
        return DeliveryAddress(
            label=self.label.strip(),
            text=self.text.strip(),
            phone=self.phone.strip(),
            pincode=self.pincode.strip(),
        )


class OrderCreate(BaseModel):
    """Request schema for creating a web order."""
    shop_id: int = Field(..., examples=[1])
    customer_name: str = Field(..., max_length=100, examples=["Asha Rao"])
    contact: str = Field(..., max_length=20, examples=["9876543210"])
    items: List[OrderLineCreate] = Field(default_factory=list)
    delivery_fee: Optional[Decimal] = Field(None, examples=["30.00"])
    address: Optional[AddressIn] = None


class StatusUpdate(BaseModel):
    """Request schema for a status transition."""
    status: OrderStatus = Field(..., examples=["accepted"])
    expected_status: Optional[OrderStatus] = Field(
        None,
        description="Status the caller last saw; rejected with 409 if it is stale",
    )


class ChatWebhookPayload(BaseModel):
    """JSON form of an inbound chat message."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(
        default="",
        validation_alias=AliasChoices("from", "From", "sender"),
    )
    body: str = Field(default="", validation_alias=AliasChoices("body", "Body"))


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class LineItemResponse(BaseModel):
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    @classmethod
    def from_domain(cls, item: LineItem) -> "LineItemResponse":
        return cls(
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
        )


class AddressResponse(BaseModel):
    label: str
    text: str
    phone: str
    pincode: str


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    order_number: int
    display_number: str
    number_source: NumberSource
    shop_id: int
    customer_name: str
    contact: str
    customer_ref: Optional[str]
    channel: OrderChannel
    status: OrderStatus
    line_items: List[LineItemResponse]
    items_total: Decimal
    delivery_fee: Decimal
    grand_total: Decimal
    delivery_address: AddressResponse
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            display_number=order.display_number,
            number_source=order.number_source,
            shop_id=order.shop_id,
            customer_name=order.customer_name,
            contact=order.contact,
            customer_ref=order.customer_ref,
            channel=order.channel,
            status=order.status,
            line_items=[LineItemResponse.from_domain(item) for item in order.line_items],
            items_total=order.items_total,
            delivery_fee=order.delivery_fee,
            grand_total=order.grand_total,
            delivery_address=AddressResponse(**order.delivery_address.to_dict()),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class VariantResponse(BaseModel):
    code: str
    label: str
    price: Decimal


class MenuItemResponse(BaseModel):
    letter: Optional[str]
    id: int
    name: str
    code: Optional[str]
    price: Decimal
    variants: List[VariantResponse] = []

    @classmethod
    def from_domain(cls, index: int, item: MenuItem) -> "MenuItemResponse":
        return cls(
            letter=menu_letter(index),
            id=item.id,
            name=item.name,
            code=item.code,
            price=item.price,
            variants=[
                VariantResponse(code=v.code, label=v.label, price=v.price)
                for v in item.variants
                if v.available
            ],
        )


class MenuResponse(BaseModel):
    shop_id: int
    shop_name: str
    contact: str
    items: List[MenuItemResponse]


class ChatReply(BaseModel):
    reply: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    store: str
    realtime: str
    chat_transport: str
    timestamp: datetime
