"""
SQL Order Store

SQLAlchemy async implementation of the order store. PostgreSQL in
production (psycopg), SQLite in tests (aiosqlite).

Atomicity rules:
    - Counters use a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING
      statement, so concurrent callers on any number of app instances
      never read the same value.
    - A globally numbered order takes its counter value and is inserted
      in the same transaction, so a failed insert gives the number back.
    - Shop sequences use UPDATE ... SET n = n + 1 ... RETURNING.
    - Status changes are UPDATE ... WHERE status = <expected>, so a stale
      or losing request changes nothing.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderdesk import models
from orderdesk.core.exceptions import CounterStoreError, StoreError
from orderdesk.database import get_session_maker
from orderdesk.domain import (
    DeliveryAddress,
    LineItem,
    MenuItem,
    NumberSource,
    Order,
    OrderDraft,
    OrderStatus,
    Shop,
    VariantOption,
    to_money,
)
from orderdesk.services.store.base import BaseOrderStore

logger = logging.getLogger(__name__)


def _upsert_for(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise StoreError(f"Atomic counters are not supported on '{dialect_name}'")
    return insert


class SqlOrderStore(BaseOrderStore):
    """Order store backed by a relational database."""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_maker = session_maker or get_session_maker()

    @property
    def provider_name(self) -> str:
        return "sql"

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_maker() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise StoreError(str(e)) from e
        except OSError as e:
            logger.error(f"Database unreachable: {e}")
            raise StoreError(str(e)) from e

    # =========================================================================
    # ROW CONVERSION
    # =========================================================================

    @staticmethod
    def _shop_from_row(row: models.Shop) -> Shop:
        return Shop(
            id=row.id,
            name=row.name,
            contact=row.contact,
            pincode=row.pincode or "",
            last_order_number=row.last_order_number or 0,
            online=bool(row.online),
        )

    @staticmethod
    def _item_from_row(row: models.MenuItem) -> MenuItem:
        return MenuItem(
            id=row.id,
            shop_id=row.shop_id,
            name=row.name,
            price=to_money(row.price or 0),
            available=bool(row.available),
            code=row.code,
            position=row.position or 0,
            variants=tuple(
                VariantOption(
                    code=str(v.get("code", "")),
                    label=str(v.get("label", "")),
                    price=to_money(v.get("price", 0)),
                    available=bool(v.get("available", True)),
                )
                for v in (row.variants or [])
            ),
        )

    @staticmethod
    def _order_from_row(row: models.Order) -> Order:
        return Order(
            id=row.id,
            order_number=row.order_number,
            number_source=NumberSource(row.number_source),
            shop_id=row.shop_id,
            customer_ref=row.customer_ref,
            customer_name=row.customer_name,
            contact=row.contact,
            delivery_address=DeliveryAddress(
                label=row.address_label or "",
                text=row.address_text or "",
                phone=row.address_phone or "",
                pincode=row.address_pincode or "",
            ),
            line_items=tuple(LineItem.from_dict(item) for item in row.line_items),
            items_total=to_money(row.items_total),
            delivery_fee=to_money(row.delivery_fee),
            grand_total=to_money(row.grand_total),
            channel=row.channel,
            status=OrderStatus(row.status),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    # =========================================================================
    # CATALOG
    # =========================================================================

    async def find_shop_by_contact(self, contact: str) -> Optional[Shop]:
        async with self._session() as session:
            result = await session.execute(
                select(models.Shop).where(models.Shop.contact == contact)
            )
            row = result.scalar_one_or_none()
            return self._shop_from_row(row) if row else None

    async def get_shop(self, shop_id: int) -> Optional[Shop]:
        async with self._session() as session:
            row = await session.get(models.Shop, shop_id)
            return self._shop_from_row(row) if row else None

    async def list_available_items(self, shop_id: int) -> list[MenuItem]:
        async with self._session() as session:
            result = await session.execute(
                select(models.MenuItem)
                .where(
                    models.MenuItem.shop_id == shop_id,
                    models.MenuItem.available.is_(True),
                )
                .order_by(models.MenuItem.position, models.MenuItem.id)
            )
            return [self._item_from_row(row) for row in result.scalars().all()]

    # =========================================================================
    # ORDERS
    # =========================================================================

    @staticmethod
    def _row_from_draft(draft: OrderDraft, at: datetime) -> models.Order:
        address = draft.delivery_address
        return models.Order(
            order_number=draft.order_number,
            number_source=draft.number_source,
            shop_id=draft.shop_id,
            customer_ref=draft.customer_ref,
            customer_name=draft.customer_name,
            contact=draft.contact,
            address_label=address.label,
            address_text=address.text,
            address_phone=address.phone,
            address_pincode=address.pincode,
            channel=draft.channel,
            line_items=[item.to_dict() for item in draft.line_items],
            items_total=draft.items_total,
            delivery_fee=draft.delivery_fee,
            grand_total=draft.grand_total,
            status=OrderStatus.RECEIVED,
            created_at=at,
            updated_at=at,
        )

    async def create_order(self, draft: OrderDraft, at: datetime) -> Order:
        if draft.order_number is None or draft.number_source is None:
            raise StoreError("Order draft has no order number")

        row = self._row_from_draft(draft, at)
        async with self._session() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return self._order_from_row(row)

    async def create_numbered_order(
        self,
        draft: OrderDraft,
        counter_name: str,
        at: datetime,
    ) -> Order:
        async with self._session() as session:
            try:
                value = await self._increment(session, counter_name)
            except (SQLAlchemyError, OSError, StoreError) as e:
                logger.error(f"Counter '{counter_name}' failed: {e}")
                raise CounterStoreError(str(e)) from e

            # Counter and order commit together; a failed insert rolls both back
            row = self._row_from_draft(
                replace(draft, order_number=value, number_source=NumberSource.GLOBAL),
                at,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return self._order_from_row(row)

    async def get_order(self, order_id: int) -> Optional[Order]:
        async with self._session() as session:
            row = await session.get(models.Order, order_id)
            return self._order_from_row(row) if row else None

    async def get_order_by_number(self, order_number: int) -> Optional[Order]:
        async with self._session() as session:
            for source in (NumberSource.GLOBAL, NumberSource.SHOP):
                result = await session.execute(
                    select(models.Order)
                    .where(
                        models.Order.order_number == order_number,
                        models.Order.number_source == source,
                    )
                    .order_by(models.Order.id.desc())
                    .limit(1)
                )
                row = result.scalar_one_or_none()
                if row:
                    return self._order_from_row(row)
            return None

    async def list_orders(
        self,
        shop_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
        customer_ref: Optional[str] = None,
    ) -> tuple[int, list[Order]]:
        query = select(models.Order).order_by(
            models.Order.created_at.desc(), models.Order.id.desc()
        )
        count_query = select(func.count(models.Order.id))

        filters = []
        if shop_id is not None:
            filters.append(models.Order.shop_id == shop_id)
        if status is not None:
            filters.append(models.Order.status == status)
        if customer_ref is not None:
            filters.append(models.Order.customer_ref == customer_ref)
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        async with self._session() as session:
            total = (await session.execute(count_query)).scalar() or 0
            result = await session.execute(query.offset(skip).limit(limit))
            return total, [self._order_from_row(row) for row in result.scalars().all()]

    async def update_order_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new: OrderStatus,
        at: datetime,
    ) -> Optional[Order]:
        async with self._session() as session:
            result = await session.execute(
                update(models.Order)
                .where(
                    models.Order.id == order_id,
                    models.Order.status == expected,
                )
                .values(status=new, updated_at=at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                return None
            await session.commit()

            row = await session.get(models.Order, order_id, populate_existing=True)
            return self._order_from_row(row)

    # =========================================================================
    # SEQUENCES
    # =========================================================================

    @staticmethod
    async def _increment(session: AsyncSession, name: str) -> int:
        insert = _upsert_for(session.bind.dialect.name)
        statement = (
            insert(models.Counter)
            .values(name=name, seq=1)
            .on_conflict_do_update(
                index_elements=[models.Counter.name],
                set_={"seq": models.Counter.seq + 1, "updated_at": func.now()},
            )
            .returning(models.Counter.seq)
        )
        return (await session.execute(statement)).scalar_one()

    async def increment_counter(self, name: str) -> int:
        async with self._session() as session:
            value = await self._increment(session, name)
            await session.commit()
            return value

    async def increment_shop_sequence(self, shop_id: int) -> int:
        async with self._session() as session:
            result = await session.execute(
                update(models.Shop)
                .where(models.Shop.id == shop_id)
                .values(last_order_number=models.Shop.last_order_number + 1)
                .returning(models.Shop.last_order_number)
                .execution_options(synchronize_session=False)
            )
            value = result.scalar_one_or_none()
            if value is None:
                await session.rollback()
                raise StoreError(f"Shop {shop_id} not found")
            await session.commit()
            return value

    async def health_check(self) -> bool:
        try:
            async with self._session() as session:
                await session.execute(select(1))
            return True
        except StoreError:
            return False
