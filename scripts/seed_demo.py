"""
Demo Data Seeder

Creates the database tables and one demo shop with a small menu.
Run from project root: python scripts/seed_demo.py

Uses DATABASE_URL from the environment / .env. Running it twice is
safe: an existing shop with the same contact is left untouched.
"""

import asyncio
import sys
import os
import argparse
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from orderdesk.database import dispose_engine, get_session_maker, init_db
from orderdesk.models import MenuItem, Shop

DEMO_SHOP = {
    "name": "Chai Point",
    "contact": "+919876500001",
    "pincode": "560038",
}

DEMO_MENU = [
    {"name": "Tea", "code": "TEA", "price": "10.00"},
    {"name": "Coffee", "code": "COF", "price": "20.00"},
    {"name": "Samosa", "code": "SAM", "price": "15.00"},
    {
        "name": "Sandwich",
        "code": "SW",
        "price": "60.00",
        "variants": [
            {"code": "veg", "label": "Veg", "price": "60.00", "available": True},
            {"code": "paneer", "label": "Paneer", "price": "80.00", "available": True},
        ],
    },
]


async def seed(contact: str) -> int:
    await init_db()

    async with get_session_maker()() as session:
        existing = await session.scalar(select(Shop).where(Shop.contact == contact))
        if existing is not None:
            print(f"ℹ️  Shop {contact} already exists (id={existing.id})")
            return existing.id

        shop = Shop(name=DEMO_SHOP["name"], contact=contact, pincode=DEMO_SHOP["pincode"])
        session.add(shop)
        await session.flush()

        for position, entry in enumerate(DEMO_MENU):
            session.add(MenuItem(
                shop_id=shop.id,
                name=entry["name"],
                code=entry["code"],
                price=Decimal(entry["price"]),
                position=position,
                variants=entry.get("variants", []),
            ))

        await session.commit()
        print(f"✅ Seeded shop '{shop.name}' (id={shop.id}, contact={contact}) with {len(DEMO_MENU)} items")
        return shop.id


async def main(contact: str) -> None:
    try:
        await seed(contact)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo shop and menu")
    parser.add_argument("--contact", default=DEMO_SHOP["contact"], help="Shop chat contact")
    args = parser.parse_args()

    asyncio.run(main(args.contact))
