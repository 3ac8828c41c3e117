"""
Pydantic Schemas for Request/Response Validation

The web frontend speaks camelCase JSON; field names stay snake_case in
Python and are aliased on the wire.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class CartItemRequest(CamelModel):
    """
    Single cart line as the client submits it.

    Missing or null fields fall back to empty values so that an unknown
    restaurant is reported before anything wrong with the line itself.
    """
    menu_item_id: Optional[str] = Field(default="", examples=["6650d0f1c2a4b9e3f0a1b2c3"])
    name: Optional[str] = Field(default="", examples=["Paneer Tikka"])
    quantity: Optional[str] = Field(default="", examples=["2"])
    price: Optional[int] = Field(default=0, examples=[25000])

    @field_validator("menu_item_id", "name", "quantity", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("price", mode="before")
    @classmethod
    def null_price(cls, v: Any) -> Any:
        return 0 if v is None else v


class DeliveryDetails(CamelModel):
    """
    Delivery details.

    Every field defaults to empty (null included) so that the checkout
    pipeline, not the schema, decides which check fails first.
    """
    email: Optional[str] = Field(default="", examples=["asha@example.com"])
    name: Optional[str] = Field(default="", examples=["Asha Rao"])
    address_line1: Optional[str] = Field(default="", examples=["12 MG Road"])
    city: Optional[str] = Field(default="", examples=["Bengaluru"])
    country: Optional[str] = Field(default="", examples=["India"])

    @field_validator("email", "name", "address_line1", "city", "country", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class CheckoutSessionRequest(CamelModel):
    """Body of POST /api/orders/checkout/create-session."""
    cart_items: List[CartItemRequest] = Field(default_factory=list)
    delivery_details: DeliveryDetails = Field(default_factory=DeliveryDetails)
    restaurant_id: Optional[str] = Field(default=None)
    total_amount: int = Field(default=0, examples=[80000])

    @field_validator("cart_items", mode="before")
    @classmethod
    def null_cart(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("delivery_details", mode="before")
    @classmethod
    def null_delivery(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("total_amount", mode="before")
    @classmethod
    def null_total(cls, v: Any) -> Any:
        return 0 if v is None else v


class OrderStatusUpdate(CamelModel):
    status: str = Field(..., min_length=1, examples=["confirmed"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CheckoutSessionResponse(CamelModel):
    url: str


class MenuItemResponse(CamelModel):
    id: str
    name: str
    price: int
    description: Optional[str] = None
    image_url: Optional[str] = None


class RestaurantResponse(CamelModel):
    id: str
    restaurant_name: str
    address: Optional[str] = None
    city: str
    country: str
    delivery_price: int
    estimated_delivery_time: int
    cuisines: List[str] = Field(default_factory=list)
    menu_items: List[MenuItemResponse] = Field(default_factory=list)
    image_url: Optional[str] = None
    last_updated: datetime


class Pagination(CamelModel):
    total: int
    page: int
    pages: int


class RestaurantSearchResponse(CamelModel):
    data: List[RestaurantResponse]
    pagination: Pagination


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None


class CartItemResponse(CamelModel):
    menu_item_id: str
    name: str
    quantity: str
    snapshot_unit_price: int
    charged_unit_price: int


class OrderResponse(CamelModel):
    id: str
    user: UserResponse
    restaurant: Optional[RestaurantResponse] = None
    delivery_details: DeliveryDetails
    cart_items: List[CartItemResponse]
    total_amount: int
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class InvoiceAddress(CamelModel):
    line1: str
    city: str
    country: str


class InvoiceCustomer(CamelModel):
    name: str
    email: str
    address: InvoiceAddress


class InvoiceRestaurant(CamelModel):
    name: str
    address: str


class InvoiceLine(CamelModel):
    name: str
    quantity: int
    price: float
    total: float


class InvoiceResponse(CamelModel):
    """Itemized invoice, amounts in display units."""
    order_number: str
    date: datetime
    customer_details: InvoiceCustomer
    restaurant_details: InvoiceRestaurant
    items: List[InvoiceLine]
    subtotal: float
    delivery_fee: float
    total_amount: float
    status: str
    payment_status: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    payment_gateway: str
    timestamp: datetime
