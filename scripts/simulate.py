"""
Checkout Flow Simulation Script

Drives the full pipeline against a running development server:
checkout session -> signed completion webhook -> invoice. Each webhook
is delivered twice to show that redelivery does not change a paid order.

Requires ENV_MODE=development (mock gateway) and a seeded catalog:
    python scripts/seed.py
    uvicorn food_delivery.main:app --port 7000
    python scripts/simulate.py --orders 10
"""

import argparse
import asyncio
import os
import random
import sys
import time
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from food_delivery.core.config import get_settings
from food_delivery.services.payment import MockPaymentGateway

# Configuration
API_BASE_URL = "http://localhost:7000"
AUTH_HEADERS = {"X-Auth-Subject": "demo|customer"}

FIRST_NAMES = ["Asha", "Rahul", "Priya", "Vikram", "Meera", "Arjun", "Kavya", "Rohan"]
STREETS = ["MG Road", "Church Street", "Brigade Road", "Residency Road", "Indiranagar 100ft Rd"]


def build_signer() -> MockPaymentGateway:
    """A gateway sharing the server's signing secret, used only to sign payloads."""
    settings = get_settings()
    return MockPaymentGateway(
        currency=settings.stripe_currency,
        webhook_secret=settings.stripe_webhook_secret or settings.mock_webhook_secret,
    )


def generate_checkout_payload(restaurant: dict[str, Any]) -> dict[str, Any]:
    """Random cart against a restaurant's real menu."""
    menu = restaurant["menuItems"]
    picks = random.sample(menu, k=random.randint(1, len(menu)))
    cart = [
        {
            "menuItemId": item["id"],
            "name": item["name"],
            "quantity": str(random.randint(1, 3)),
            "price": item["price"],
        }
        for item in picks
    ]
    total = sum(int(c["quantity"]) * c["price"] for c in cart) + restaurant["deliveryPrice"]
    name = random.choice(FIRST_NAMES)
    return {
        "restaurantId": restaurant["id"],
        "cartItems": cart,
        "deliveryDetails": {
            "email": f"{name.lower()}@example.com",
            "name": name,
            "addressLine1": f"{random.randint(1, 200)} {random.choice(STREETS)}",
            "city": "Bengaluru",
            "country": "India",
        },
        "totalAmount": total,
    }


async def run_order(
    client: httpx.AsyncClient,
    signer: MockPaymentGateway,
    restaurant: dict[str, Any],
    order_num: int,
) -> dict[str, Any]:
    """Checkout, pay through the webhook, then fetch the invoice."""
    payload = generate_checkout_payload(restaurant)
    start_time = time.time()

    response = await client.post(
        f"{API_BASE_URL}/api/orders/checkout/create-session",
        json=payload,
        headers={**AUTH_HEADERS, "Idempotency-Key": f"sim-{order_num}-{time.time_ns()}"},
        timeout=30.0,
    )
    if response.status_code != 200:
        return {"order_num": order_num, "success": False, "error": response.text[:100]}

    session_id = response.json()["url"].rsplit("/", 1)[-1]

    orders = (await client.get(f"{API_BASE_URL}/api/orders", headers=AUTH_HEADERS)).json()
    order = next(
        (o for o in orders if o["status"] == "placed" and o["totalAmount"] == payload["totalAmount"]),
        None,
    )
    if order is None:
        return {"order_num": order_num, "success": False, "error": "placed order not listed"}

    body = signer.completion_event(order["id"], payload["totalAmount"], session_id=session_id)
    for _ in range(2):  # second delivery must be a no-op
        webhook = await client.post(
            f"{API_BASE_URL}/api/orders/checkout/webhook",
            content=body,
            headers={"Stripe-Signature": signer.sign_payload(body), "Content-Type": "application/json"},
        )
        if webhook.status_code != 200:
            return {"order_num": order_num, "success": False, "error": webhook.text[:100]}

    invoice = await client.get(
        f"{API_BASE_URL}/api/orders/{order['id']}/invoice", headers=AUTH_HEADERS
    )
    elapsed = round(time.time() - start_time, 3)

    if invoice.status_code != 200:
        return {"order_num": order_num, "success": False, "error": invoice.text[:100]}

    data = invoice.json()
    return {
        "order_num": order_num,
        "success": data["paymentStatus"] == "Paid",
        "order_id": order["id"],
        "total": data["totalAmount"],
        "time": elapsed,
    }


async def run_simulation(num_orders: int) -> None:
    print("=" * 70)
    print("🧾 CHECKOUT FLOW SIMULATION")
    print("=" * 70)
    print(f"📋 Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print("=" * 70)

    signer = build_signer()

    async with httpx.AsyncClient() as client:
        restaurants = (await client.get(f"{API_BASE_URL}/api/restaurants")).json()
        restaurants = [r for r in restaurants if r["menuItems"]]
        if not restaurants:
            print("\n❌ No restaurants with menus. Run: python scripts/seed.py")
            return

        # Sequential so each run can find its own placed order
        results = []
        for i in range(num_orders):
            results.append(await run_order(client, signer, random.choice(restaurants), i + 1))

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print(f"\n✅ Paid & invoiced: {len(successful)}/{num_orders}")
    print(f"❌ Failed: {len(failed)}/{num_orders}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"   Average flow time: {avg_time}s")
        print(f"   💰 Invoiced total: ₹{sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failures (first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)


def main() -> None:
    global API_BASE_URL

    parser = argparse.ArgumentParser(description="Simulate checkout -> webhook -> invoice")
    parser.add_argument("--orders", type=int, default=5, help="Number of orders to run")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    asyncio.run(run_simulation(args.orders))


if __name__ == "__main__":
    main()
