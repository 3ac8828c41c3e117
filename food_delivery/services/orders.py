"""
Customer order queries and owner-driven status edits.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from food_delivery.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from food_delivery.models import Order, OrderStatus, Restaurant, User
from food_delivery.schemas import (
    CartItemResponse,
    DeliveryDetails,
    OrderResponse,
    RestaurantResponse,
    UserResponse,
)
from food_delivery.services.pricing import display_quantity

logger = logging.getLogger(__name__)


def _order_details():
    return (
        selectinload(Order.items),
        selectinload(Order.user),
        selectinload(Order.restaurant).selectinload(Restaurant.menu_items),
        selectinload(Order.restaurant).selectinload(Restaurant.cuisine_entries),
    )


async def load_order(db: AsyncSession, order_id: str) -> Optional[Order]:
    """Load an order with its lines, owner and restaurant catalog."""
    result = await db.execute(
        select(Order).where(Order.id == order_id).options(*_order_details())
    )
    return result.scalar_one_or_none()


async def list_orders_for_user(db: AsyncSession, user: User) -> Sequence[Order]:
    """The user's orders, newest first, with restaurant and lines expanded."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user.id)
        .options(*_order_details())
        .order_by(Order.created_at.desc())
    )
    return result.scalars().all()


def to_order_response(order: Order) -> OrderResponse:
    """
    Serialize an order for its owner.

    An order stored without a total shows the sum of its cart snapshot.
    """
    total_amount = order.total_amount or sum(
        (item.snapshot_unit_price or 0) * display_quantity(item.quantity)
        for item in order.items
    )
    return OrderResponse(
        id=order.id,
        user=UserResponse.model_validate(order.user),
        restaurant=(
            RestaurantResponse.model_validate(order.restaurant)
            if order.restaurant is not None else None
        ),
        delivery_details=DeliveryDetails(
            email=order.delivery_email,
            name=order.delivery_name,
            address_line1=order.delivery_address_line1,
            city=order.delivery_city,
            country=order.delivery_country or "",
        ),
        cart_items=[
            CartItemResponse(
                menu_item_id=item.menu_item_id,
                name=item.name,
                quantity=item.quantity or "1",
                snapshot_unit_price=item.snapshot_unit_price or 0,
                charged_unit_price=item.charged_unit_price or 0,
            )
            for item in order.items
        ],
        total_amount=total_amount,
        status=order.status.value,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        valid = [s.value for s in OrderStatus]
        raise InvalidInputError(f"Invalid status. Options: {valid}")


async def update_order_status(
    db: AsyncSession,
    user: User,
    order_id: str,
    status: str,
) -> Order:
    """
    Move an order to ``status`` on behalf of its owner.

    ``paid`` is reachable only through the payment webhook.

    Raises:
        NotFoundError: No such order
        ForbiddenError: ``user`` does not own the order
        InvalidInputError: Unknown status or a transition the workflow forbids
    """
    order = await load_order(db, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    if order.user_id != user.id:
        raise ForbiddenError("Not authorized to update this order")

    target = parse_status(status)
    if target == OrderStatus.PAID:
        raise InvalidInputError("Orders are marked paid by the payment gateway only")

    if not order.status.can_transition_to(target):
        raise InvalidInputError(
            f"Cannot change order status from {order.status.value} to {target.value}"
        )

    previous = order.status
    order.status = target
    await db.commit()

    logger.info(f"Order {order.id} status {previous.value} -> {target.value} by user {user.id}")
    return order
