"""
Mock Payment Gateway Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) and in tests to:
    - Run the complete checkout -> webhook -> invoice flow locally
    - Inspect exactly what would have been sent to Stripe
    - Develop without internet connectivity

Behavior:
    - Records the creation parameters of every session
    - Generates Stripe-like IDs (cs_xxx, evt_xxx)
    - Optionally fails a share of sessions and adds latency
    - Verifies webhooks with the same signature scheme as Stripe and
      can sign payloads itself for local simulation
"""

import asyncio
import hashlib
import hmac
import json
import logging
import random
import time
import uuid
from typing import Any, Optional, Union

from food_delivery.services.payment.base import (
    BasePaymentGateway,
    CheckoutLineItem,
    CheckoutSessionResult,
    CHECKOUT_COMPLETED,
)

logger = logging.getLogger(__name__)


class MockPaymentGateway(BasePaymentGateway):
    """
    Mock implementation of the hosted-checkout gateway.

    Attributes:
        failure_rate: Probability of a simulated session failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        sessions: Creation parameters of every accepted session

    Example:
        >>> gateway = MockPaymentGateway(
        ...     currency="inr",
        ...     frontend_url="http://localhost:5173",
        ...     webhook_secret="whsec_test",
        ... )
        >>> result = await gateway.create_checkout_session(items, "o1", 3000, "r1")
        >>> gateway.sessions[0]["metadata"]["orderId"]
        'o1'
    """

    def __init__(
        self,
        currency: str = "inr",
        frontend_url: str = "http://localhost:5173",
        webhook_secret: Optional[str] = "whsec_mock_development",
        webhook_tolerance: int = 300,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        super().__init__(currency, frontend_url, webhook_secret, webhook_tolerance)
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.sessions: list[dict[str, Any]] = []

        logger.info(
            f"MockPaymentGateway initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_session_id(self) -> str:
        """Generate a Stripe-like checkout session ID."""
        return f"cs_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        """Determine if this request should simulate a failure."""
        return random.random() < self.failure_rate

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        order_id: str,
        delivery_price: int,
        restaurant_id: str,
    ) -> CheckoutSessionResult:
        """Simulate creating a hosted checkout session."""
        await self._simulate_latency()

        if self._should_fail():
            logger.debug(f"Mock: Session for order {order_id} rejected")
            return CheckoutSessionResult(
                success=False,
                error_message="Simulated gateway failure",
                error_code="mock_failure",
            )

        params = self.build_session_params(line_items, order_id, delivery_price, restaurant_id)
        session_id = self._generate_session_id()
        params["id"] = session_id
        self.sessions.append(params)

        logger.info(f"Mock: Checkout session created - {session_id} - order {order_id}")

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=f"{self.frontend_url}/mock-checkout/{session_id}",
        )

    def sign_payload(self, payload: Union[bytes, str], timestamp: Optional[int] = None) -> str:
        """Produce a Stripe-Signature header value for the given body."""
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed_payload = f"{timestamp}.{payload}".encode("utf-8")
        signature = hmac.new(
            (self._webhook_secret or "").encode("utf-8"),
            signed_payload,
            hashlib.sha256,
        ).hexdigest()
        return f"t={timestamp},v1={signature}"

    def completion_event(
        self,
        order_id: Optional[str],
        amount_total: int,
        session_id: Optional[str] = None,
        event_type: str = CHECKOUT_COMPLETED,
    ) -> str:
        """Build the JSON body Stripe sends when a checkout session completes."""
        metadata = {} if order_id is None else {"orderId": order_id}
        return json.dumps({
            "id": f"evt_mock_{uuid.uuid4().hex[:24]}",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id or self._generate_session_id(),
                    "object": "checkout.session",
                    "amount_total": amount_total,
                    "currency": self.currency,
                    "metadata": metadata,
                    "payment_status": "paid",
                },
            },
        })

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Health check passed")
        return True
