"""
Tests for invoice compilation (GET /api/orders/{orderId}/invoice).
"""

from sqlalchemy import update

from food_delivery.models import MenuItem, Order, OrderItem, OrderStatus
from tests.conftest import auth


def invoice_url(order_id: str) -> str:
    return f"/api/orders/{order_id}/invoice"


async def add_order(
    db, customer, restaurant_id, items, total_amount=0, delivery_email="asha@example.com"
) -> Order:
    order = Order(
        user_id=customer.id,
        restaurant_id=restaurant_id,
        delivery_email=delivery_email,
        delivery_name="Asha",
        delivery_address_line1="12 MG Road",
        delivery_city="Bengaluru",
        total_amount=total_amount,
        items=items,
    )
    db.add(order)
    await db.commit()
    return order


def line(menu_item_id: str, quantity: str, snapshot: int, position: int = 0) -> OrderItem:
    return OrderItem(
        position=position,
        menu_item_id=menu_item_id,
        name=f"Item {menu_item_id}",
        quantity=quantity,
        snapshot_unit_price=snapshot,
        charged_unit_price=snapshot,
    )


class TestInvoice:

    async def test_itemized_invoice(self, client, customer, restaurant, placed_order):
        response = await client.get(invoice_url(placed_order.id), headers=auth(customer))

        assert response.status_code == 200
        invoice = response.json()
        assert invoice["orderNumber"] == placed_order.id
        assert invoice["customerDetails"] == {
            "name": "Asha",
            "email": "asha@example.com",
            "address": {"line1": "12 MG Road", "city": "Bengaluru", "country": "India"},
        }
        assert invoice["restaurantDetails"] == {
            "name": "Spice Route",
            "address": "14 Church Street",
        }
        # 600 stays 600; 1500 is read as minor units and shown as 15
        assert invoice["items"] == [
            {"name": "Paneer Tikka", "quantity": 2, "price": 600, "total": 1200},
            {"name": "Chicken Biryani", "quantity": 1, "price": 15, "total": 15},
        ]
        assert invoice["subtotal"] == 1215
        assert invoice["deliveryFee"] == 300
        assert invoice["totalAmount"] == 33
        assert invoice["status"] == "placed"
        assert invoice["paymentStatus"] == "Pending"

    async def test_paid_label_follows_status(self, client, db, customer, placed_order):
        placed_order.status = OrderStatus.PAID
        await db.commit()

        response = await client.get(invoice_url(placed_order.id), headers=auth(customer))

        assert response.json()["status"] == "paid"
        assert response.json()["paymentStatus"] == "Paid"

    async def test_uses_current_catalog_price(self, client, db, customer, restaurant, placed_order):
        await db.execute(update(MenuItem).where(MenuItem.id == "A").values(price=2500))
        await db.commit()

        response = await client.get(invoice_url(placed_order.id), headers=auth(customer))

        first = response.json()["items"][0]
        assert (first["price"], first["total"]) == (25, 50)

    async def test_falls_back_to_cart_price_for_removed_items(
        self, client, db, customer, restaurant
    ):
        order = await add_order(db, customer, restaurant.id, [line("gone", "3", 2000)])

        response = await client.get(invoice_url(order.id), headers=auth(customer))

        assert response.json()["items"] == [
            {"name": "Item gone", "quantity": 3, "price": 20, "total": 60}
        ]

    async def test_missing_total_is_subtotal_plus_delivery(self, client, db, customer, restaurant):
        order = await add_order(db, customer, restaurant.id, [line("A", "1", 600)], total_amount=0)

        invoice = (await client.get(invoice_url(order.id), headers=auth(customer))).json()

        assert invoice["subtotal"] == 600
        assert invoice["totalAmount"] == 900

    async def test_unparseable_quantity_renders_as_one(self, client, db, customer, restaurant):
        order = await add_order(db, customer, restaurant.id, [line("A", "lots", 600)])

        invoice = (await client.get(invoice_url(order.id), headers=auth(customer))).json()

        assert invoice["items"][0]["quantity"] == 1
        assert invoice["items"][0]["total"] == 600

    async def test_restaurant_without_address(self, client, db, customer, restaurant, placed_order):
        restaurant.address = None
        await db.commit()

        invoice = (await client.get(invoice_url(placed_order.id), headers=auth(customer))).json()

        assert invoice["restaurantDetails"]["address"] == "Not provided"


class TestInvoiceFailures:

    async def test_unknown_order(self, client, customer):
        response = await client.get(invoice_url("0" * 32), headers=auth(customer))

        assert response.status_code == 404
        assert response.json() == {"message": "Order not found"}

    async def test_other_users_order_is_forbidden(self, client, other_user, placed_order):
        response = await client.get(invoice_url(placed_order.id), headers=auth(other_user))

        assert response.status_code == 403
        assert response.json() == {"message": "Not authorized to access this order"}

    async def test_incomplete_order_is_an_integrity_error(self, client, db, customer):
        order = await add_order(db, customer, None, [line("A", "1", 600)])

        response = await client.get(invoice_url(order.id), headers=auth(customer))

        assert response.status_code == 500
        assert response.json() == {
            "message": "Order data is incomplete",
            "details": {"hasRestaurant": False, "hasCartItems": True, "hasDeliveryDetails": True},
        }

    async def test_order_without_lines_is_incomplete(self, client, db, customer, restaurant):
        order = await add_order(db, customer, restaurant.id, [])

        response = await client.get(invoice_url(order.id), headers=auth(customer))

        assert response.status_code == 500
        assert response.json()["details"]["hasCartItems"] is False

    async def test_ownership_is_checked_before_completeness(self, client, db, customer, other_user):
        order = await add_order(db, customer, None, [], delivery_email="")

        response = await client.get(invoice_url(order.id), headers=auth(other_user))

        assert response.status_code == 403

    async def test_requires_authentication(self, client, placed_order):
        response = await client.get(invoice_url(placed_order.id))

        assert response.status_code == 401


class TestPrintableInvoice:

    async def test_renders_html(self, client, customer, placed_order):
        response = await client.get(
            f"{invoice_url(placed_order.id)}/print", headers=auth(customer)
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert placed_order.id in response.text
        assert "Spice Route" in response.text
        assert "INR" in response.text

    async def test_forbidden_for_other_users(self, client, other_user, placed_order):
        response = await client.get(
            f"{invoice_url(placed_order.id)}/print", headers=auth(other_user)
        )

        assert response.status_code == 403
