"""
SQLAlchemy Database Models

Tables backing the order pipeline:
- shops / menu_items: catalog, read-only from the pipeline's point of view
- orders: append-only order records with frozen line items
- counters: named sequences for collision-free order numbers
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.sql import func

from orderdesk.database import Base
from orderdesk.domain import NumberSource, OrderChannel, OrderStatus


def _enum_column(enum_cls, **kwargs) -> Column:
    # Store the wire values ("out-for-delivery"), not the member names
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            length=32,
            values_callable=lambda e: [member.value for member in e],
        ),
        **kwargs,
    )


class Shop(Base):
    """A shop reachable over chat by its contact number."""
    __tablename__ = "shops"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    contact = Column(String(32), nullable=False, unique=True, index=True)
    pincode = Column(String(12), nullable=False, default="", index=True)
    online = Column(Boolean, default=True, nullable=False)

    # Per-shop running counter, used only when the global counter is down
    last_order_number = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Shop #{self.id} - {self.name} - {self.contact}>"


class MenuItem(Base):
    """
    A catalog entry.

    `position` fixes the listing order, which in turn fixes the letter
    (A, B, C...) chat users see next to each available item.
    """
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    available = Column(Boolean, default=True, nullable=False)
    code = Column(String(32), nullable=True)
    position = Column(Integer, default=0, nullable=False)
    variants = Column(JSON, nullable=False, default=list)  # [{code, label, price, available}]

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_menu_items_shop_code", "shop_id", "code"),
    )

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


class Order(Base):
    """
    Order record.

    Created once by the fulfillment service; afterwards only `status`
    and `updated_at` ever change.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # NUMBERING
    # =========================================================================
    order_number = Column(Integer, nullable=False, index=True)
    number_source = _enum_column(NumberSource, nullable=False, default=NumberSource.GLOBAL)

    # =========================================================================
    # PARTIES
    # =========================================================================
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    customer_ref = Column(String(64), nullable=True, index=True)
    customer_name = Column(String(100), nullable=False)
    contact = Column(String(32), nullable=False, index=True)

    # Address snapshot, decoupled from later profile edits
    address_label = Column(String(50), nullable=False, default="")
    address_text = Column(Text, nullable=False, default="")
    address_phone = Column(String(32), nullable=False, default="")
    address_pincode = Column(String(12), nullable=False, default="")

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    channel = _enum_column(OrderChannel, nullable=False, default=OrderChannel.WEB)
    line_items = Column(JSON, nullable=False)  # [{name, quantity, unit_price, line_total}]

    # =========================================================================
    # PRICING
    # =========================================================================
    items_total = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    grand_total = Column(Numeric(10, 2), nullable=False)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = _enum_column(OrderStatus, nullable=False, default=OrderStatus.RECEIVED, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # Never two orders with the same number inside one numbering space
        Index(
            "uq_orders_global_number",
            "order_number",
            unique=True,
            postgresql_where=text("number_source = 'global'"),
            sqlite_where=text("number_source = 'global'"),
        ),
        Index(
            "uq_orders_shop_number",
            "shop_id",
            "order_number",
            unique=True,
            postgresql_where=text("number_source = 'shop'"),
            sqlite_where=text("number_source = 'shop'"),
        ),
    )

    def __repr__(self):
        return f"<Order #{self.order_number} ({self.number_source}) - {self.customer_name} - {self.status}>"


class Counter(Base):
    """Named monotonically increasing sequence."""
    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    seq = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Counter {self.name}={self.seq}>"
