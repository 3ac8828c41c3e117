"""
Stripe Payment Gateway Implementation

Production implementation using the official Stripe Python SDK. Every API
call goes through the SDK's async methods so the event loop is never
blocked on Stripe.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Security Notes:
    - The API key lives on a StripeClient instance, never on the module
    - Always verify webhook signatures
"""

import logging
from datetime import datetime

import stripe

from food_delivery.services.payment.base import (
    BasePaymentGateway,
    CheckoutLineItem,
    CheckoutSessionResult,
)

logger = logging.getLogger(__name__)


class StripePaymentGateway(BasePaymentGateway):
    """
    Production Stripe Checkout gateway.

    Configuration:
        Requires a Stripe secret key; the webhook secret is needed for
        the completion webhook to be accepted.

    Example:
        >>> gateway = StripePaymentGateway(
        ...     api_key="sk_test_...",
        ...     currency="inr",
        ...     frontend_url="https://app.example.com",
        ...     webhook_secret="whsec_...",
        ... )
    """

    API_VERSION = "2024-06-20"  # Pin API version for stability

    def __init__(
        self,
        api_key: str,
        currency: str,
        frontend_url: str,
        webhook_secret: str,
        webhook_tolerance: int = 300,
    ):
        """
        Initialize a Stripe client.

        Raises:
            ValueError: If the API key is missing
        """
        if not api_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required outside development mode. "
                "Set it in your .env file or environment variables."
            )
        super().__init__(currency, frontend_url, webhook_secret, webhook_tolerance)

        # Only the *_async methods are used; httpx serves them
        self._client = stripe.StripeClient(
            api_key,
            stripe_version=self.API_VERSION,
            http_client=stripe.HTTPXClient(),
        )

        logger.info(f"StripePaymentGateway initialized (api_version={self.API_VERSION})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "stripe"

    async def create_checkout_session(
        self,
        line_items: list[CheckoutLineItem],
        order_id: str,
        delivery_price: int,
        restaurant_id: str,
    ) -> CheckoutSessionResult:
        """Create a Stripe Checkout Session in payment mode."""
        start_time = datetime.now()
        params = self.build_session_params(line_items, order_id, delivery_price, restaurant_id)

        try:
            session = await self._client.checkout.sessions.create_async(params=params)

        except stripe.InvalidRequestError as e:
            logger.error(f"Stripe: Invalid checkout request for order {order_id} - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message=e.user_message or str(e),
                error_code="invalid_request",
            )

        except stripe.AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except stripe.APIConnectionError as e:
            logger.error(f"Stripe: Connection error - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
            )

        except stripe.StripeError as e:
            logger.error(f"Stripe: Error creating checkout session - {e}")
            return CheckoutSessionResult(
                success=False,
                error_message=e.user_message or str(e),
                error_code="stripe_error",
            )

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Stripe: Checkout session created - {session.id} - "
            f"order {order_id} ({elapsed_ms:.0f}ms)"
        )

        return CheckoutSessionResult(
            success=True,
            session_id=session.id,
            url=session.url,
        )

    async def health_check(self) -> bool:
        """
        Verify Stripe API connectivity.

        Makes a lightweight API call to verify credentials and connectivity.
        """
        try:
            await self._client.balance.retrieve_async()
            logger.debug("Stripe: Health check passed")
            return True

        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
