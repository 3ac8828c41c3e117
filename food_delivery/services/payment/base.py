"""
Payment Gateway Abstract Base Class

Defines the interface contract for hosted-checkout gateways.
Both MockPaymentGateway and StripePaymentGateway implement these methods,
so the checkout pipeline and the webhook reconciler behave identically
regardless of which gateway the application was built with.

Design Pattern: Strategy Pattern
    - The composition root picks the gateway once, at startup
    - Handlers receive it as an injected dependency
    - Tests inject a mock that records every session request
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import stripe

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass
class CheckoutLineItem:
    """
    One priced line sent to the hosted checkout.

    Attributes:
        name: Product name shown on the payment page
        unit_amount: Catalog unit price in minor units
        quantity: Number of units
    """
    name: str
    unit_amount: int
    quantity: int


@dataclass
class CheckoutSessionResult:
    """
    Standardized result from creating a hosted checkout session.

    Attributes:
        success: Whether the gateway accepted the session
        session_id: Gateway session identifier (Stripe format: cs_xxx)
        url: Hosted payment page to redirect the customer to
        error_message: Gateway error description if creation failed
        error_code: Machine-readable error code
    """
    success: bool
    session_id: Optional[str] = None
    url: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class GatewayEvent:
    """
    A verified webhook event, reduced to what reconciliation needs.

    Attributes:
        id: Gateway event identifier (evt_xxx)
        type: Event type (e.g. checkout.session.completed)
        order_id: Order identifier from the session metadata
        restaurant_id: Restaurant identifier from the session metadata
        session_id: Checkout session the event refers to
        amount_total: Settled amount in minor units
    """
    id: Optional[str]
    type: str
    order_id: Optional[str] = None
    restaurant_id: Optional[str] = None
    session_id: Optional[str] = None
    amount_total: int = 0
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "GatewayEvent":
        data_object = (payload.get("data") or {}).get("object") or {}
        metadata = data_object.get("metadata") or {}
        return cls(
            id=payload.get("id"),
            type=payload.get("type") or "",
            order_id=metadata.get("orderId"),
            restaurant_id=metadata.get("restaurantId"),
            session_id=data_object.get("id"),
            amount_total=data_object.get("amount_total") or 0,
            raw=payload,
        )


class BasePaymentGateway(ABC):
    """
    Abstract base class for hosted-checkout gateways.

    Subclasses provide session creation and a health check; webhook
    verification is shared because both speak Stripe's signature scheme
    (``Stripe-Signature: t=<timestamp>,v1=<hmac-sha256>``).

    Example:
        >>> gateway = build_payment_gateway(settings)
        >>> result = await gateway.create_checkout_session(
        ...     line_items, order_id, 3000, restaurant_id
        ... )
        >>> if result.success:
        ...     print(result.url)
    """

    def __init__(
        self,
        currency: str,
        frontend_url: str,
        webhook_secret: Optional[str],
        webhook_tolerance: int = 300,
    ):
        self.currency = currency
        self.frontend_url = frontend_url
        self._webhook_secret = webhook_secret
        self._webhook_tolerance = webhook_tolerance

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the payment provider.

        Returns:
            str: Provider name (e.g., "mock", "stripe")
        """
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        order_id: str,
        delivery_price: int,
        restaurant_id: str,
    ) -> CheckoutSessionResult:
        """
        Create a hosted checkout session.

        Args:
            line_items: Priced cart lines (catalog prices, minor units)
            order_id: Identifier of the not-yet-saved order
            delivery_price: Fixed delivery charge in minor units
            restaurant_id: Restaurant the order belongs to

        Returns:
            CheckoutSessionResult: Standardized result object
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the payment gateway.

        Returns:
            bool: True if the gateway is reachable and operational
        """
        pass

    def build_session_params(
        self,
        line_items: list[CheckoutLineItem],
        order_id: str,
        delivery_price: int,
        restaurant_id: str,
    ) -> dict[str, Any]:
        """Build the Checkout Session creation parameters."""
        return {
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": item.unit_amount,
                        "product_data": {"name": item.name},
                    },
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "shipping_options": [
                {
                    "shipping_rate_data": {
                        "display_name": "Delivery",
                        "type": "fixed_amount",
                        "fixed_amount": {
                            "amount": delivery_price,
                            "currency": self.currency,
                        },
                    },
                },
            ],
            "mode": "payment",
            "metadata": {
                "orderId": order_id,
                "restaurantId": restaurant_id,
            },
            "success_url": f"{self.frontend_url}/order-status?success=true",
            "cancel_url": f"{self.frontend_url}/detail/{restaurant_id}?cancelled=true",
        }

    async def construct_event(
        self,
        payload: Union[bytes, str],
        signature: Optional[str],
    ) -> Optional[GatewayEvent]:
        """
        Verify and parse a webhook from the gateway.

        SECURITY: the signature is the only authentication this endpoint
        has, so an unconfigured secret rejects everything.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            GatewayEvent if valid, None if verification or parsing fails
        """
        if not self._webhook_secret:
            logger.error(f"{self.provider_name}: Webhook secret not configured, rejecting event")
            return None

        if not signature:
            logger.warning(f"{self.provider_name}: Webhook without signature header")
            return None

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning(f"{self.provider_name}: Webhook body is not UTF-8")
                return None

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature,
                self._webhook_secret,
                self._webhook_tolerance,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"{self.provider_name}: Webhook signature invalid - {e}")
            return None

        try:
            event = GatewayEvent.from_payload(json.loads(payload))
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning(f"{self.provider_name}: Webhook payload unreadable - {e}")
            return None

        logger.debug(f"{self.provider_name}: Webhook verified - {event.type}")
        return event
