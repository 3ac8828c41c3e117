"""
Catalog Seed Script

Creates the tables and inserts a demo customer plus a few restaurants
with menus. Safe to run repeatedly: existing rows are left untouched.
Run from project root: python scripts/seed.py
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from food_delivery.database import async_session_maker, engine, init_db
from food_delivery.models import MenuItem, Restaurant, RestaurantCuisine, User

DEMO_SUBJECT = "demo|customer"

# Prices in paise
RESTAURANTS = [
    {
        "id": "a1b2c3d4e5f60718293a4b5c6d7e8f90",
        "restaurant_name": "Spice Route",
        "address": "14 Church Street",
        "city": "Bengaluru",
        "country": "India",
        "delivery_price": 3000,
        "estimated_delivery_time": 35,
        "cuisines": ["Indian", "Biryani"],
        "menu": [
            ("Chicken Biryani", 28000, "Hyderabadi dum biryani"),
            ("Paneer Tikka", 22000, "Char-grilled cottage cheese"),
            ("Garlic Naan", 6000, "Tandoor-baked flatbread"),
        ],
    },
    {
        "id": "0f1e2d3c4b5a69788796a5b4c3d2e1f0",
        "restaurant_name": "Napoli Express",
        "address": None,
        "city": "Bengaluru",
        "country": "India",
        "delivery_price": 5000,
        "estimated_delivery_time": 25,
        "cuisines": ["Italian", "Pizza"],
        "menu": [
            ("Margherita Pizza", 35000, "Tomato, mozzarella, basil"),
            ("Penne Arrabbiata", 30000, "Spicy tomato sauce"),
            ("Tiramisu", 18000, "Coffee-soaked sponge"),
        ],
    },
    {
        "id": "9a8b7c6d5e4f30211203f4e5d6c7b8a9",
        "restaurant_name": "Wok This Way",
        "address": "2 Residency Road",
        "city": "Bengaluru",
        "country": "India",
        "delivery_price": 2500,
        "estimated_delivery_time": 45,
        "cuisines": ["Chinese", "Thai"],
        "menu": [
            ("Hakka Noodles", 19000, "Stir-fried noodles"),
            ("Green Curry", 26000, "Thai curry with jasmine rice"),
        ],
    },
]


async def seed() -> None:
    print("=" * 60)
    print("🌱 SEEDING CATALOG")
    print("=" * 60)

    await init_db()

    async with async_session_maker() as db:
        user = (
            await db.execute(select(User).where(User.auth_subject == DEMO_SUBJECT))
        ).scalar_one_or_none()
        if user is None:
            db.add(User(auth_subject=DEMO_SUBJECT, email="demo@example.com", name="Demo Customer"))
            print(f"✅ User {DEMO_SUBJECT}")

        now = datetime.now(timezone.utc)
        for offset, entry in enumerate(RESTAURANTS):
            if await db.get(Restaurant, entry["id"]) is not None:
                print(f"⏭️  {entry['restaurant_name']} already present")
                continue

            db.add(Restaurant(
                id=entry["id"],
                restaurant_name=entry["restaurant_name"],
                address=entry["address"],
                city=entry["city"],
                country=entry["country"],
                delivery_price=entry["delivery_price"],
                estimated_delivery_time=entry["estimated_delivery_time"],
                last_updated=now - timedelta(days=offset),
                cuisine_entries=[RestaurantCuisine(name=c) for c in entry["cuisines"]],
                menu_items=[
                    MenuItem(position=i, name=name, price=price, description=description)
                    for i, (name, price, description) in enumerate(entry["menu"])
                ],
            ))
            print(f"✅ {entry['restaurant_name']} ({len(entry['menu'])} menu items)")

        await db.commit()

    await engine.dispose()
    print("=" * 60)
    print(f"Auth header for requests: X-Auth-Subject: {DEMO_SUBJECT}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(seed())
