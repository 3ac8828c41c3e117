"""
Invoice Compiler

Rebuilds an itemized invoice at read time by joining the order, its cart
lines and the restaurant's current catalog. Prices are not frozen at
checkout: each line takes the current menu price when the item is still on
the menu and falls back to the cart snapshot otherwise.

Stored amounts carry no unit tag, so every displayed amount goes through
normalize_display_amount().
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.core.exceptions import DataIntegrityError, ForbiddenError, NotFoundError
from food_delivery.models import Order, OrderStatus, Restaurant, User
from food_delivery.schemas import (
    InvoiceAddress,
    InvoiceCustomer,
    InvoiceLine,
    InvoiceResponse,
    InvoiceRestaurant,
)
from food_delivery.services.catalog import get_restaurant
from food_delivery.services.orders import load_order
from food_delivery.services.pricing import display_quantity, normalize_display_amount

logger = logging.getLogger(__name__)


class InvoiceCompiler:
    """
    Produces invoices for completed orders.

    Example:
        >>> invoice = await InvoiceCompiler(db).compile(order_id, current_user)
        >>> invoice.payment_status
        'Paid'
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def compile(self, order_id: str, user: User) -> InvoiceResponse:
        """
        Build the invoice for ``order_id`` on behalf of ``user``.

        Raises:
            NotFoundError: The order, or its restaurant, does not exist
            ForbiddenError: ``user`` does not own the order
            DataIntegrityError: The order lacks restaurant, lines or delivery details
        """
        order = await load_order(self.db, order_id)
        if order is None:
            raise NotFoundError("Order not found")

        if order.user_id != user.id:
            logger.warning(f"User {user.id} requested invoice of order {order_id} owned by {order.user_id}")
            raise ForbiddenError("Not authorized to access this order")

        self._check_complete(order)

        restaurant = await get_restaurant(self.db, order.restaurant_id, refresh=True)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")

        lines = self._price_lines(order, restaurant)
        subtotal = sum(line.total for line in lines)
        delivery_fee = normalize_display_amount(restaurant.delivery_price)

        if order.total_amount:
            total_amount = normalize_display_amount(order.total_amount)
        else:
            total_amount = subtotal + delivery_fee

        return InvoiceResponse(
            order_number=order.id,
            date=order.created_at,
            customer_details=InvoiceCustomer(
                name=order.delivery_name,
                email=order.delivery_email,
                address=InvoiceAddress(
                    line1=order.delivery_address_line1,
                    city=order.delivery_city,
                    country=order.delivery_country or "",
                ),
            ),
            restaurant_details=InvoiceRestaurant(
                name=restaurant.restaurant_name,
                address=restaurant.address or "Not provided",
            ),
            items=lines,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total_amount=total_amount,
            status=order.status.value,
            payment_status="Paid" if order.status == OrderStatus.PAID else "Pending",
        )

    def _check_complete(self, order: Order) -> None:
        details = {
            "hasRestaurant": order.restaurant is not None,
            "hasCartItems": bool(order.items),
            "hasDeliveryDetails": order.has_delivery_details,
        }
        if not all(details.values()):
            logger.error(f"Order {order.id} is incomplete: {details}")
            raise DataIntegrityError("Order data is incomplete", details=details)

    def _price_lines(self, order: Order, restaurant: Restaurant) -> list[InvoiceLine]:
        lines = []
        for item in order.items:
            menu_item = restaurant.find_menu_item(item.menu_item_id)
            unit_price = (menu_item.price if menu_item else 0) or item.snapshot_unit_price or 0
            price = normalize_display_amount(unit_price)
            quantity = display_quantity(item.quantity)
            lines.append(InvoiceLine(
                name=item.name,
                quantity=quantity,
                price=price,
                total=price * quantity,
            ))
        return lines
