"""
Payment Gateway Factory

The application lifespan calls build_payment_gateway() once and stores the
result on ``app.state``; request handlers receive it through the
get_payment_gateway dependency. Nothing here holds module-level state, so
tests can inject their own gateway through dependency overrides.

Environment Switching:
    - ENV_MODE=development -> MockPaymentGateway (no API calls)
    - ENV_MODE=staging -> StripePaymentGateway (test keys)
    - ENV_MODE=production -> StripePaymentGateway (live keys)
"""

import logging

from fastapi import Request

from food_delivery.core.config import Settings
from food_delivery.services.payment.base import (
    BasePaymentGateway,
    CheckoutLineItem,
    CheckoutSessionResult,
    GatewayEvent,
    CHECKOUT_COMPLETED,
)
from food_delivery.services.payment.mock import MockPaymentGateway
from food_delivery.services.payment.stripe import StripePaymentGateway

logger = logging.getLogger(__name__)


def build_payment_gateway(settings: Settings) -> BasePaymentGateway:
    """
    Construct the payment gateway for the configured environment.

    Raises:
        ValueError: If Stripe is selected but no secret key is configured
    """
    if settings.use_real_services:
        logger.info(
            f"Payment Gateway: Using StripePaymentGateway "
            f"({settings.env_mode.value} mode)"
        )
        return StripePaymentGateway(
            api_key=settings.stripe_secret_key,
            currency=settings.stripe_currency,
            frontend_url=settings.frontend_url,
            webhook_secret=settings.stripe_webhook_secret,
            webhook_tolerance=settings.stripe_webhook_tolerance,
        )

    logger.info("Payment Gateway: Using MockPaymentGateway (development mode)")
    return MockPaymentGateway(
        currency=settings.stripe_currency,
        frontend_url=settings.frontend_url,
        webhook_secret=settings.stripe_webhook_secret or settings.mock_webhook_secret,
        webhook_tolerance=settings.stripe_webhook_tolerance,
        failure_rate=settings.mock_payment_failure_rate,
    )


def get_payment_gateway(request: Request) -> BasePaymentGateway:
    """FastAPI dependency returning the gateway built at startup."""
    return request.app.state.payment_gateway


__all__ = [
    "build_payment_gateway",
    "get_payment_gateway",
    "BasePaymentGateway",
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "GatewayEvent",
    "CHECKOUT_COMPLETED",
    "MockPaymentGateway",
    "StripePaymentGateway",
]
