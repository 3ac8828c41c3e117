"""
Shared fixtures.

Every test gets its own SQLite file and a fresh mock gateway; the app's
get_db and get_payment_gateway dependencies are overridden, so the
lifespan (and Postgres) is never touched.
"""

import os

os.environ.setdefault("ENV_MODE", "development")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from food_delivery import models  # noqa: F401
from food_delivery.database import Base, get_db
from food_delivery.main import app
from food_delivery.models import (
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Restaurant,
    RestaurantCuisine,
    User,
)
from food_delivery.services.payment import MockPaymentGateway, get_payment_gateway

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway(
        currency="inr",
        frontend_url="http://frontend.test",
        webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
async def customer(db) -> User:
    user = User(auth_subject="auth0|customer", email="asha@example.com", name="Asha")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def other_user(db) -> User:
    user = User(auth_subject="auth0|someone-else", email="ravi@example.com", name="Ravi")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def restaurant(db) -> Restaurant:
    """Delivery 300; item "A" at 600 and item "B" at 1500."""
    restaurant = Restaurant(
        id="r" * 32,
        restaurant_name="Spice Route",
        address="14 Church Street",
        city="Bengaluru",
        country="India",
        delivery_price=300,
        estimated_delivery_time=30,
        cuisine_entries=[RestaurantCuisine(name="Indian"), RestaurantCuisine(name="Biryani")],
        menu_items=[
            MenuItem(id="A", position=0, name="Paneer Tikka", price=600),
            MenuItem(id="B", position=1, name="Chicken Biryani", price=1500),
        ],
    )
    db.add(restaurant)
    await db.commit()
    return restaurant


@pytest.fixture
async def catalog(db, restaurant) -> list[Restaurant]:
    """Three more restaurants with distinct sort keys, plus the default one."""
    now = datetime.now(timezone.utc)
    extra = [
        Restaurant(
            restaurant_name="Napoli Express",
            city="Bengaluru",
            country="India",
            delivery_price=100,
            estimated_delivery_time=50,
            last_updated=now + timedelta(days=1),
            cuisine_entries=[RestaurantCuisine(name="Italian"), RestaurantCuisine(name="Pizza")],
        ),
        Restaurant(
            restaurant_name="Wok This Way",
            city="Bengaluru",
            country="India",
            delivery_price=500,
            estimated_delivery_time=10,
            last_updated=now - timedelta(days=2),
            cuisine_entries=[RestaurantCuisine(name="Chinese")],
        ),
        Restaurant(
            restaurant_name="Pizza Palace",
            city="Mumbai",
            country="India",
            delivery_price=200,
            estimated_delivery_time=20,
            last_updated=now - timedelta(days=1),
            cuisine_entries=[RestaurantCuisine(name="Pizza")],
        ),
    ]
    db.add_all(extra)
    await db.commit()
    return [restaurant, *extra]


@pytest.fixture
async def placed_order(db, customer, restaurant) -> Order:
    """An order as checkout leaves it: placed, declared total 3300."""
    order = Order(
        user_id=customer.id,
        restaurant_id=restaurant.id,
        delivery_email="asha@example.com",
        delivery_name="Asha",
        delivery_address_line1="12 MG Road",
        delivery_city="Bengaluru",
        delivery_country="India",
        total_amount=3300,
        status=OrderStatus.PLACED,
        checkout_session_id="cs_mock_existing",
        items=[
            OrderItem(position=0, menu_item_id="A", name="Paneer Tikka", quantity="2",
                      snapshot_unit_price=500, charged_unit_price=600),
            OrderItem(position=1, menu_item_id="B", name="Chicken Biryani", quantity="1",
                      snapshot_unit_price=1500, charged_unit_price=1500),
        ],
    )
    db.add(order)
    await db.commit()
    return order


@pytest.fixture
async def client(session_maker, gateway):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth(user: User) -> dict[str, str]:
    """Headers an upstream auth proxy would forward for ``user``."""
    return {"X-Auth-Subject": user.auth_subject}


def checkout_body(restaurant_id: str, **overrides) -> dict:
    body = {
        "restaurantId": restaurant_id,
        "cartItems": [{"menuItemId": "A", "name": "Paneer Tikka", "quantity": "2", "price": 500}],
        "deliveryDetails": {
            "email": "asha@example.com",
            "name": "Asha",
            "addressLine1": "12 MG Road",
            "city": "Bengaluru",
            "country": "India",
        },
        "totalAmount": 1300,
    }
    body.update(overrides)
    return body
