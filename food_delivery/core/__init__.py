"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from food_delivery.core.config import get_settings, Settings, EnvironmentMode, setup_logging
from food_delivery.core.exceptions import (
    OrderingError,
    InvalidInputError,
    NotFoundError,
    ForbiddenError,
    DataIntegrityError,
    GatewayFailureError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "setup_logging",
    "OrderingError",
    "InvalidInputError",
    "NotFoundError",
    "ForbiddenError",
    "DataIntegrityError",
    "GatewayFailureError",
]
