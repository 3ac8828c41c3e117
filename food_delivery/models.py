"""
SQLAlchemy Database Models

Catalog (restaurants, menu items, cuisines), users, orders with their
cart lines, and the log of payment events that could not be applied.

Every amount is an integer in the minor currency unit (paise).
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from food_delivery.database import Base, new_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PLACED = "placed"
    PAID = "paid"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "inProgress"
    OUT_FOR_DELIVERY = "outForDelivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in ORDER_STATUS_TRANSITIONS[self]


ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.IN_PROGRESS,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    """A customer, identified upstream by the subject of their access token."""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    auth_subject = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.id} - {self.email}>"


class Restaurant(Base):
    """
    A restaurant and its menu.

    Owns its menu items and cuisine tags: removing the restaurant removes both.
    """
    __tablename__ = "restaurants"

    id = Column(String(32), primary_key=True, default=new_id)
    owner_id = Column(String(32), ForeignKey("users.id"), nullable=True, index=True)

    restaurant_name = Column(String(150), nullable=False, index=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)

    delivery_price = Column(Integer, nullable=False)
    estimated_delivery_time = Column(Integer, nullable=False)
    image_url = Column(String(500), nullable=True)
    last_updated = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    menu_items = relationship(
        "MenuItem",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        order_by="MenuItem.position",
    )
    cuisine_entries = relationship(
        "RestaurantCuisine",
        cascade="all, delete-orphan",
        order_by="RestaurantCuisine.id",
    )

    __table_args__ = (
        CheckConstraint("delivery_price >= 0", name="ck_restaurants_delivery_price"),
    )

    @property
    def cuisines(self) -> list[str]:
        return [entry.name for entry in self.cuisine_entries]

    def find_menu_item(self, menu_item_id: str) -> Optional["MenuItem"]:
        for item in self.menu_items:
            if item.id == str(menu_item_id):
                return item
        return None

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.restaurant_name}>"


class RestaurantCuisine(Base):
    __tablename__ = "restaurant_cuisines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(50), nullable=False, index=True)


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(32), primary_key=True, default=new_id)
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(150), nullable=False)
    price = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)

    restaurant = relationship("Restaurant", back_populates="menu_items")

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} - {self.price}>"


class Order(Base):
    """
    A checkout submission and its lifecycle.

    Created in ``placed`` once the payment gateway has accepted the session,
    moved to ``paid`` by the webhook reconciler, then edited by its owner.
    """
    __tablename__ = "orders"

    # Assigned before the row exists so it can travel in the session metadata
    id = Column(String(32), primary_key=True, default=new_id)

    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # =========================================================================
    # DELIVERY DETAILS
    # =========================================================================
    delivery_email = Column(String(255), nullable=False)
    delivery_name = Column(String(100), nullable=False)
    delivery_address_line1 = Column(String(255), nullable=False)
    delivery_city = Column(String(100), nullable=False)
    delivery_country = Column(String(100), nullable=False, default="")

    # =========================================================================
    # PRICING & STATUS
    # =========================================================================
    total_amount = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(
            OrderStatus,
            values_callable=_enum_values,
            native_enum=False,
            length=20,
            name="order_status",
        ),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # PAYMENT SESSION
    # =========================================================================
    checkout_session_id = Column(String(255), nullable=True, index=True)
    checkout_url = Column(String(1000), nullable=True)
    idempotency_key = Column(String(255), nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    user = relationship("User")
    restaurant = relationship("Restaurant")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_amount"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
    )

    @property
    def has_delivery_details(self) -> bool:
        return all((
            self.delivery_email,
            self.delivery_name,
            self.delivery_address_line1,
            self.delivery_city,
        ))

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value} - {self.total_amount}>"


class OrderItem(Base):
    """
    One cart line as submitted.

    ``snapshot_unit_price`` is what the customer's cart said; ``charged_unit_price``
    is the catalog price that went to the payment gateway.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        String(32),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)
    menu_item_id = Column(String(32), nullable=False)
    name = Column(String(150), nullable=False)
    quantity = Column(String(10), nullable=False)
    snapshot_unit_price = Column(Integer, nullable=False)
    charged_unit_price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")


class PaymentEventLog(Base):
    """
    Gateway events that arrived but could not be applied to an order.

    Kept for inspection instead of being dropped: unmatched order ids and
    redeliveries for orders that already left ``placed``.
    """
    __tablename__ = "payment_event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(255), nullable=True, index=True)
    event_type = Column(String(100), nullable=False)
    order_id = Column(String(255), nullable=True, index=True)
    session_id = Column(String(255), nullable=True)
    amount_total = Column(Integer, nullable=True)
    reason = Column(String(50), nullable=False)
    received_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<PaymentEventLog {self.event_id} - {self.reason}>"
