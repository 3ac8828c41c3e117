"""
Checkout Pricing Pipeline

Turns a submitted cart into a hosted payment session and a ``placed`` order:

    validate request -> price cart against the catalog -> create session
    -> persist order

What is *charged* comes from the catalog; what is *recorded* on the order is
the customer's cart snapshot. Both prices are kept on every order line.

The order row is written only after the gateway has returned a usable
redirect URL, so a failed session never leaves an order behind. No
transaction spans the two: a crash in between leaves a session whose
completion webhook finds no order, which the reconciler logs.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.core.exceptions import (
    GatewayFailureError,
    InvalidInputError,
    NotFoundError,
)
from food_delivery.database import new_id
from food_delivery.models import MenuItem, Order, OrderItem, OrderStatus, Restaurant, User
from food_delivery.schemas import CartItemRequest, CheckoutSessionRequest, DeliveryDetails
from food_delivery.services.catalog import get_restaurant
from food_delivery.services.payment import BasePaymentGateway, CheckoutLineItem
from food_delivery.services.pricing import parse_quantity

logger = logging.getLogger(__name__)


@dataclass
class PricedCartLine:
    """A cart line matched to its catalog entry."""
    cart_item: CartItemRequest
    menu_item: MenuItem
    quantity: int

    def to_line_item(self) -> CheckoutLineItem:
        return CheckoutLineItem(
            name=self.menu_item.name,
            unit_amount=self.menu_item.price,
            quantity=self.quantity,
        )

    def to_order_item(self, position: int) -> OrderItem:
        return OrderItem(
            position=position,
            menu_item_id=self.menu_item.id,
            name=self.cart_item.name or self.menu_item.name,
            quantity=self.cart_item.quantity,
            snapshot_unit_price=self.cart_item.price,
            charged_unit_price=self.menu_item.price,
        )


# Wire field -> order column it is stored in
DELIVERY_COLUMNS = {
    "email": Order.__table__.c.delivery_email,
    "name": Order.__table__.c.delivery_name,
    "address_line1": Order.__table__.c.delivery_address_line1,
    "city": Order.__table__.c.delivery_city,
    "country": Order.__table__.c.delivery_country,
}

QUANTITY_MAX_LENGTH = OrderItem.__table__.c.quantity.type.length
ITEM_NAME_MAX_LENGTH = OrderItem.__table__.c.name.type.length


def validate_delivery_details(details: DeliveryDetails) -> None:
    required = (details.email, details.name, details.address_line1, details.city)
    if not all(value.strip() for value in required):
        raise InvalidInputError("All delivery details are required")

    for field, column in DELIVERY_COLUMNS.items():
        if len(getattr(details, field)) > column.type.length:
            raise InvalidInputError(
                f"Delivery {field} must be at most {column.type.length} characters"
            )


def price_cart(cart_items: list[CartItemRequest], restaurant: Restaurant) -> list[PricedCartLine]:
    """
    Match every cart line to the restaurant's current menu.

    Raises:
        InvalidInputError: A menu item is not on this restaurant's menu, or
            a quantity is not a whole number of at least 1, or a quantity
            or item name is too long to record
    """
    priced = []
    for cart_item in cart_items:
        menu_item = restaurant.find_menu_item(cart_item.menu_item_id)
        if menu_item is None:
            available = ", ".join(item.name for item in restaurant.menu_items)
            logger.warning(
                f"Menu item lookup failed for restaurant {restaurant.id}: "
                f"{cart_item.menu_item_id} not in "
                f"{[item.id for item in restaurant.menu_items]}"
            )
            raise InvalidInputError(
                f"Menu item not found: {cart_item.menu_item_id}. "
                f"Available items: {available}"
            )

        quantity = parse_quantity(cart_item.quantity)
        if quantity is None or quantity < 1 or len(cart_item.quantity) > QUANTITY_MAX_LENGTH:
            raise InvalidInputError(
                f"Invalid quantity for {menu_item.name}: {cart_item.quantity!r}"
            )

        if len(cart_item.name) > ITEM_NAME_MAX_LENGTH:
            raise InvalidInputError(
                f"Item name for {menu_item.name} must be at most {ITEM_NAME_MAX_LENGTH} characters"
            )

        priced.append(PricedCartLine(cart_item=cart_item, menu_item=menu_item, quantity=quantity))
    return priced


class CheckoutPipeline:
    """
    Validates a checkout request and opens a hosted payment session for it.

    Example:
        >>> pipeline = CheckoutPipeline(db, gateway)
        >>> url = await pipeline.create_checkout_session(user, request)
    """

    def __init__(self, db: AsyncSession, gateway: BasePaymentGateway):
        self.db = db
        self.gateway = gateway

    async def create_checkout_session(
        self,
        user: User,
        request: CheckoutSessionRequest,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """
        Validate the cart, open a payment session and record a placed order.

        Checks run in a fixed order and the first failure wins.

        Args:
            user: Authenticated customer
            request: Cart, delivery details, restaurant and declared total
            idempotency_key: Client token; a repeat returns the first session

        Returns:
            str: Hosted checkout URL to redirect the customer to

        Raises:
            InvalidInputError: Missing restaurant id, delivery details or
                cart, unknown menu item, bad quantity, negative total
            NotFoundError: The restaurant does not exist
            GatewayFailureError: The gateway refused or returned no URL
        """
        user_id = user.id

        if idempotency_key:
            existing = await self._find_by_idempotency_key(user_id, idempotency_key)
            if existing is not None:
                logger.info(
                    f"Checkout replay for key {idempotency_key!r}: "
                    f"returning session of order {existing.id}"
                )
                return existing.checkout_url

        restaurant_id = (request.restaurant_id or "").strip()
        if not restaurant_id:
            raise InvalidInputError("Restaurant ID is required")

        restaurant = await get_restaurant(self.db, restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")

        validate_delivery_details(request.delivery_details)

        if not request.cart_items:
            raise InvalidInputError("Cart items are required")

        priced_lines = price_cart(request.cart_items, restaurant)

        if request.total_amount < 0:
            raise InvalidInputError("Total amount must not be negative")

        order_id = new_id()
        logger.info(
            f"Creating checkout session for order {order_id} "
            f"(user={user_id}, restaurant={restaurant.id}, lines={len(priced_lines)})"
        )

        session = await self.gateway.create_checkout_session(
            line_items=[line.to_line_item() for line in priced_lines],
            order_id=order_id,
            delivery_price=restaurant.delivery_price,
            restaurant_id=restaurant.id,
        )

        if not session.success:
            logger.error(
                f"Checkout session creation failed for order {order_id}: "
                f"{session.error_code} - {session.error_message}"
            )
            raise GatewayFailureError(
                "Error creating checkout session",
                details=session.error_message,
            )

        if not session.url:
            logger.error(f"Gateway returned no redirect URL for order {order_id}")
            raise GatewayFailureError("Error creating checkout session")

        order = self._build_order(
            order_id, user, restaurant, request, priced_lines, session.session_id, session.url,
            idempotency_key,
        )
        self.db.add(order)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if not idempotency_key:
                raise
            # A concurrent submission with the same key won the insert
            winner = await self._find_by_idempotency_key(user_id, idempotency_key)
            if winner is None:
                raise
            logger.warning(
                f"Duplicate checkout for key {idempotency_key!r}; "
                f"session {session.session_id} abandoned in favour of order {winner.id}"
            )
            return winner.checkout_url

        logger.info(f"Order {order_id} placed - session {session.session_id}")
        return session.url

    def _build_order(
        self,
        order_id: str,
        user: User,
        restaurant: Restaurant,
        request: CheckoutSessionRequest,
        priced_lines: list[PricedCartLine],
        session_id: Optional[str],
        session_url: str,
        idempotency_key: Optional[str],
    ) -> Order:
        details = request.delivery_details
        return Order(
            id=order_id,
            user_id=user.id,
            restaurant_id=restaurant.id,
            delivery_email=details.email,
            delivery_name=details.name,
            delivery_address_line1=details.address_line1,
            delivery_city=details.city,
            delivery_country=details.country,
            items=[line.to_order_item(position) for position, line in enumerate(priced_lines)],
            total_amount=request.total_amount,
            status=OrderStatus.PLACED,
            checkout_session_id=session_id,
            checkout_url=session_url,
            idempotency_key=idempotency_key,
        )

    async def _find_by_idempotency_key(self, user_id: str, key: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order).where(Order.user_id == user_id, Order.idempotency_key == key)
        )
        return result.scalar_one_or_none()
