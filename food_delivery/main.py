"""
FastAPI Application Entry Point

Food Delivery Backend - restaurants, hosted checkout, order tracking and
invoices.

Endpoints:
    - GET /api/restaurants: List restaurants
    - GET /api/restaurants/search: Filtered, sorted, paginated search
    - GET /api/restaurants/{restaurantId}: One restaurant with its menu
    - GET /api/orders: Caller's orders
    - GET /api/orders/{orderId}/invoice: Itemized invoice (JSON)
    - GET /api/orders/{orderId}/invoice/print: Printable invoice (HTML)
    - POST /api/orders/checkout/create-session: Open a hosted payment session
    - PATCH /api/orders/{orderId}/status: Owner-driven status change
    - POST /api/orders/checkout/webhook: Payment gateway events
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from food_delivery.core.config import get_settings, setup_logging
from food_delivery.core.exceptions import InvalidInputError, NotFoundError, OrderingError
from food_delivery.core.security import get_current_user
from food_delivery.database import engine, get_db, init_db
from food_delivery.models import User
from food_delivery.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ErrorResponse,
    HealthResponse,
    InvoiceResponse,
    OrderResponse,
    OrderStatusUpdate,
    Pagination,
    RestaurantResponse,
    RestaurantSearchResponse,
)
from food_delivery.services import catalog
from food_delivery.services.checkout import CheckoutPipeline
from food_delivery.services.invoice import InvoiceCompiler
from food_delivery.services.orders import (
    list_orders_for_user,
    to_order_response,
    update_order_status,
)
from food_delivery.services.payment import (
    BasePaymentGateway,
    build_payment_gateway,
    get_payment_gateway,
)
from food_delivery.services.reconciler import OrderStatusReconciler

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.

    This is the composition root: the payment gateway is built here and
    handed to request handlers through get_payment_gateway.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    if settings.is_production and settings.debug:
        logger.warning("⚠️ DEBUG is on in production: 500 responses will include exception text")

    await init_db()
    logger.info("✅ Database initialized")

    app.state.payment_gateway = build_payment_gateway(settings)
    logger.info(f"✅ Payment Gateway: {app.state.payment_gateway.provider_name}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant search, hosted checkout, order status tracking "
        "and invoice generation for a food delivery web application."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    gateway: BasePaymentGateway = Depends(get_payment_gateway),
) -> HealthResponse:
    """Verify the database and the payment gateway are reachable."""

    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {e}"
        logger.error(f"Database health check failed: {e}")

    gateway_status = "healthy" if await gateway.health_check() else "unhealthy"

    overall = "operational" if db_status == gateway_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        payment_gateway=gateway_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# RESTAURANT ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants",
    response_model=List[RestaurantResponse],
    tags=["Restaurants"],
)
async def get_restaurants(db: AsyncSession = Depends(get_db)) -> List[RestaurantResponse]:
    restaurants = await catalog.list_restaurants(db)
    return [RestaurantResponse.model_validate(r) for r in restaurants]


@app.get(
    "/api/restaurants/search",
    response_model=RestaurantSearchResponse,
    tags=["Restaurants"],
    summary="Search Restaurants",
)
async def search_restaurants(
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    selected_cuisines: Optional[str] = Query(None, alias="selectedCuisines"),
    sort_option: Optional[str] = Query(None, alias="sortOption"),
    page: str = Query("1"),
    db: AsyncSession = Depends(get_db),
) -> RestaurantSearchResponse:
    """
    Free-text match on name or cuisine, cuisine filter, sort and page.

    Pages hold a fixed number of restaurants; a missing or invalid page
    number means the first page.
    """
    try:
        page_number = max(int(page), 1)
    except ValueError:
        page_number = 1

    page_size = settings.restaurant_page_size
    restaurants, total = await catalog.search_restaurants(
        db,
        search_query=search_query,
        selected_cuisines=selected_cuisines,
        sort_option=sort_option,
        page=page_number,
        page_size=page_size,
    )

    return RestaurantSearchResponse(
        data=[RestaurantResponse.model_validate(r) for r in restaurants],
        pagination=Pagination(
            total=total,
            page=page_number,
            pages=-(-total // page_size),
        ),
    )


@app.get(
    "/api/restaurants/{restaurant_id}",
    response_model=RestaurantResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Restaurants"],
)
async def get_restaurant(
    restaurant_id: str,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    restaurant = await catalog.get_restaurant(db, restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return RestaurantResponse.model_validate(restaurant)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.get(
    "/api/orders",
    response_model=List[OrderResponse],
    tags=["Orders"],
    summary="My Orders",
)
async def get_my_orders(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[OrderResponse]:
    orders = await list_orders_for_user(db, user)
    return [to_order_response(order) for order in orders]


@app.get(
    "/api/orders/{order_id}/invoice",
    response_model=InvoiceResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Order Invoice",
)
async def get_invoice(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> InvoiceResponse:
    """Itemized invoice for one of the caller's orders."""
    return await InvoiceCompiler(db).compile(order_id, user)


@app.get(
    "/api/orders/{order_id}/invoice/print",
    response_class=HTMLResponse,
    tags=["Orders"],
    summary="Printable Order Invoice",
)
async def print_invoice(
    request: Request,
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> HTMLResponse:
    invoice = await InvoiceCompiler(db).compile(order_id, user)
    return templates.TemplateResponse(
        request,
        "invoice.html",
        {"invoice": invoice, "currency": settings.stripe_currency.upper()},
    )


@app.post(
    "/api/orders/checkout/create-session",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    tags=["Checkout"],
    summary="Create Checkout Session",
)
async def create_checkout_session(
    checkout_request: CheckoutSessionRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    gateway: BasePaymentGateway = Depends(get_payment_gateway),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=255),
) -> CheckoutSessionResponse:
    """
    Price the cart against the catalog and open a hosted payment session.

    The order is stored in status ``placed`` once the gateway has accepted
    the session. Send the same ``Idempotency-Key`` on retries to get the
    original session back instead of a second order.
    """
    pipeline = CheckoutPipeline(db, gateway)
    url = await pipeline.create_checkout_session(user, checkout_request, idempotency_key)
    return CheckoutSessionResponse(url=url)


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Update Order Status",
)
async def patch_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> OrderResponse:
    order = await update_order_status(db, user, order_id, body.status)
    return to_order_response(order)


# =============================================================================
# PAYMENT WEBHOOK
# =============================================================================

@app.post(
    "/api/orders/checkout/webhook",
    tags=["Payment Webhook"],
    summary="Payment Gateway Webhook",
)
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: BasePaymentGateway = Depends(get_payment_gateway),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
) -> dict[str, Any]:
    """
    Handle events from the payment gateway.

    Configure this URL in the Stripe dashboard:
        https://your-domain.com/api/orders/checkout/webhook

    The signature is the only authentication; unsigned or tampered
    bodies are rejected before anything is read from them.
    """
    body = await request.body()

    event = await gateway.construct_event(body, stripe_signature)
    if event is None:
        raise InvalidInputError("Webhook error: signature verification failed")

    logger.info(f"Payment webhook received: {event.type} ({event.id})")

    outcome = await OrderStatusReconciler(db).handle_event(event)
    return {"received": True, "outcome": outcome.value}


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Translate the ordering error taxonomy into JSON responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.status_code} {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    fields = [".".join(str(part) for part in error["loc"] if part != "body") for error in errors]
    message = f"Invalid request: {', '.join(f for f in fields if f) or 'body'}"
    return JSONResponse(
        status_code=400,
        content={"message": message, "details": [error["msg"] for error in errors]},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    message = "Something went wrong"
    if settings.debug:
        message = f"{message}: {exc}"

    return JSONResponse(status_code=500, content={"message": message})


def run() -> None:
    """Serve the app with uvicorn; auto-reload only in development."""
    uvicorn.run(
        "food_delivery.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
