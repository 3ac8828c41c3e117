"""
Ordering Error Taxonomy

Every failure the checkout, reconciliation and invoice code can report to a
caller is one of these. The request boundary in main.py turns them into a
JSON body with a human-readable ``message``.

    InvalidInputError   400  missing or malformed request fields
    NotFoundError       404  referenced entity absent
    ForbiddenError      403  authenticated but not the owner
    DataIntegrityError  500  stored data violates an invariant
    GatewayFailureError 500  payment provider refused or failed
"""

from typing import Any, Optional


class OrderingError(Exception):
    """Base class for errors surfaced verbatim to API callers."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON error body."""
        body: dict[str, Any] = {"message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidInputError(OrderingError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(OrderingError):
    status_code = 404
    default_message = "Not found"


class ForbiddenError(OrderingError):
    status_code = 403
    default_message = "Not authorized to access this order"


class DataIntegrityError(OrderingError):
    """Stored data reached a state it never should; a bug signal, not a user error."""
    status_code = 500
    default_message = "Order data is incomplete"


class GatewayFailureError(OrderingError):
    status_code = 500
    default_message = "Error creating checkout session"
