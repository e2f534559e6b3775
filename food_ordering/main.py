"""
FastAPI Application Entry Point

Food Ordering Platform - pricing, cart and checkout API.
Runs on in-memory stores in development and PostgreSQL + Redis otherwise.

Endpoints:
    - GET /api/catalog/{item_id}: Item or package details
    - POST /api/catalog/{item_id}/quote: Validate and price a selection
    - GET/DELETE /api/cart: View or clear the cart
    - POST /api/cart/items: Add an item to the cart
    - PATCH/DELETE /api/cart/items/{line_id}: Change or remove a line
    - POST /api/cart/sync: Merge a guest cart after sign-in
    - POST /api/orders: Place an order (server-side reconciliation)
    - GET /api/orders: List the user's orders
    - PATCH /api/admin/orders/{order_id}/status: Advance an order
    - GET /health: System health check

Identity arrives in the X-User-Id / X-User-Role headers, set by the
authentication gateway in front of this service.

Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request, Header, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from food_ordering.core.config import get_settings, setup_logging
from food_ordering.database import dispose_db, init_db
from food_ordering.pricing.calculator import InvalidQuantityError
from food_ordering.pricing.cart import (
    UNSET,
    Cart,
    CartLineNotFoundError,
    ItemUnavailableError,
    cart_item_count,
)
from food_ordering.pricing.catalog import Package, Priceable
from food_ordering.pricing.reconciler import RejectionCode
from food_ordering.pricing.status import InvalidStatusTransition
from food_ordering.pricing.validator import CustomizationValidationError
from food_ordering.schemas import (
    CartItemAdd,
    CartItemUpdate,
    CartLineMutationResponse,
    CartLineResponse,
    CartResponse,
    CartSyncRequest,
    CartSyncResponse,
    CatalogItemResponse,
    ErrorResponse,
    GroupResponse,
    HealthResponse,
    ItemQuoteResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    QuoteRequest,
    QuoteResponse,
    SkippedLineResponse,
    StatusUpdate,
    selections_to_domain,
)
from food_ordering.services.ordering import (
    CatalogItemNotFoundError,
    OrderRejectedError,
    OrderingService,
    QuantityLimitError,
)
from food_ordering.services.notifications import get_notification_service
from food_ordering.services.ratelimit import BaseRateLimiter, get_rate_limiter
from food_ordering.services.stores import CartConflictError, OrderNotFoundError, get_store
from food_ordering.tasks import queue_order_notification

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if not settings.is_development:
        await init_db()
        logger.info("✅ Database initialized")

    logger.info(f"✅ Store: {get_store().provider_name}")
    logger.info(f"✅ Rate Limiter: {get_rate_limiter().provider_name}")
    logger.info(f"✅ Notifications: {get_notification_service().provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await dispose_db()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Pricing, cart and checkout API. Every price a client submits is "
        "recomputed from the catalog before an order is accepted."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

@dataclass
class CurrentUser:
    id: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: str = Header("customer"),
) -> CurrentUser:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return CurrentUser(id=x_user_id, role=x_user_role.lower())


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def get_ordering_service() -> OrderingService:
    # No broker runs in development
    notifier = None if settings.is_development else queue_order_notification
    return OrderingService(get_store(), settings=settings, notifier=notifier)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def build_cart_response(
    service: OrderingService,
    cart: Cart,
    delivery: bool = True,
    distance_km: Optional[float] = None,
) -> CartResponse:
    quote = service.quote_cart(cart, delivery=delivery, distance_km=distance_km)
    return CartResponse(
        id=cart.id,
        user_id=cart.user_id,
        version=cart.version,
        lines=[CartLineResponse.model_validate(line) for line in cart.lines],
        item_count=cart_item_count(cart),
        quote=QuoteResponse(**quote.to_dict()),
    )


def error_content(error: str, detail: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": error, "detail": detail, **extra}


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.app_name}",
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
    service: OrderingService = Depends(get_ordering_service),
    limiter: BaseRateLimiter = Depends(get_rate_limiter),
) -> HealthResponse:
    """Verify all system components are operational."""

    store_status = "healthy" if await service.store.health_check() else "unhealthy"
    limiter_status = "healthy" if await limiter.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [store_status, limiter_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        environment=settings.env_mode.value,
        store=f"{service.store.provider_name}: {store_status}",
        rate_limiter=f"{limiter.provider_name}: {limiter_status}",
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# CATALOG ENDPOINTS
# =============================================================================

@app.get(
    "/api/catalog/{item_id}",
    response_model=CatalogItemResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Catalog"],
)
async def get_catalog_item(
    item_id: str,
    service: OrderingService = Depends(get_ordering_service),
) -> CatalogItemResponse:
    """Get a menu item or package with its customization groups."""
    item: Priceable = await service.get_item(item_id)

    response = CatalogItemResponse(
        id=item.id,
        name=item.name,
        item_type="package" if isinstance(item, Package) else "menu_item",
        base_price=item.base_price,
        availability=item.availability,
        is_orderable=item.is_orderable,
        customization_groups=[GroupResponse.model_validate(g) for g in item.customization_groups],
    )
    if isinstance(item, Package):
        savings = await service.get_package_savings(item)
        response.original_price = savings.original_price
        response.savings = savings.savings
    return response


@app.post(
    "/api/catalog/{item_id}/quote",
    response_model=ItemQuoteResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Catalog"],
    summary="Validate and price a selection",
)
async def quote_catalog_item(
    item_id: str,
    request: QuoteRequest,
    service: OrderingService = Depends(get_ordering_service),
) -> ItemQuoteResponse:
    quote = await service.quote_item(item_id, selections_to_domain(request.selections), request.quantity)
    return ItemQuoteResponse(
        item_id=item_id,
        quantity=request.quantity,
        valid=quote.is_valid,
        errors=[e.to_dict() for e in quote.errors],
        unit_price=quote.breakdown.unit_price if quote.breakdown else None,
        total_price=quote.breakdown.total_price if quote.breakdown else None,
    )


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get("/api/cart", response_model=CartResponse, tags=["Cart"])
async def get_cart(
    delivery: bool = Query(True, description="Include the delivery fee in the quote"),
    distance_km: Optional[float] = Query(None, ge=0, description="Delivery distance; omitted uses the default fee"),
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> CartResponse:
    """Get the user's cart with the figures to submit at checkout."""
    cart = await service.get_cart(user.id)
    return build_cart_response(service, cart, delivery=delivery, distance_km=distance_km)


@app.delete("/api/cart", tags=["Cart"])
async def clear_cart(
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> dict[str, Any]:
    cleared = await service.clear_cart(user.id)
    return {"success": True, "cleared": cleared}


@app.post(
    "/api/cart/items",
    response_model=CartLineMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def add_cart_item(
    request: CartItemAdd,
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> CartLineMutationResponse:
    """
    Add an item to the cart.

    An identical selection of the same item merges into the existing
    line; otherwise a new line is created.
    """
    line, merged = await service.add_item(
        user.id,
        request.catalog_item_id,
        request.quantity,
        selections_to_domain(request.selections),
        request.special_instructions,
    )
    return CartLineMutationResponse(
        success=True,
        message="Cart line updated" if merged else "Item added to cart",
        merged=merged,
        line=CartLineResponse.model_validate(line),
    )


@app.patch(
    "/api/cart/items/{line_id}",
    response_model=CartLineMutationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def update_cart_item(
    line_id: str,
    request: CartItemUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> CartLineMutationResponse:
    instructions = (
        request.special_instructions
        if "special_instructions" in request.model_fields_set
        else UNSET
    )
    selections = selections_to_domain(request.selections) if request.selections is not None else None

    line = await service.update_item(user.id, line_id, request.quantity, selections, instructions)
    return CartLineMutationResponse(
        success=True,
        message="Cart line updated",
        line=CartLineResponse.model_validate(line),
    )


@app.delete(
    "/api/cart/items/{line_id}",
    responses={404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def remove_cart_item(
    line_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> dict[str, Any]:
    line = await service.remove_item(user.id, line_id)
    return {"success": True, "removed_line_id": line.id}


@app.post("/api/cart/sync", response_model=CartSyncResponse, tags=["Cart"])
async def sync_cart(
    request: CartSyncRequest,
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> CartSyncResponse:
    """Merge a guest cart into the signed-in user's cart."""
    cart, report = await service.sync_cart(user.id, [line.to_domain() for line in request.lines])
    return CartSyncResponse(
        success=True,
        merged_count=len(report.merged),
        skipped=[SkippedLineResponse(**s.to_dict()) for s in report.skipped],
        cart=build_cart_response(service, cart),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
    limiter: BaseRateLimiter = Depends(get_rate_limiter),
) -> OrderCreateResponse:
    """
    Place an order.

    Every submitted figure is recomputed from the catalog; the order is
    refused if any of them differs by more than the price tolerance.
    The stored order carries the server's figures and the user's cart is
    cleared in the same write.
    """
    limit = await limiter.hit(
        f"orders:{user.id}",
        settings.order_rate_limit_requests,
        settings.order_rate_limit_window_seconds,
    )
    if not limit.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many orders, please try again later",
            headers=limit.headers(),
        )

    if len(order_data.lines) > settings.max_order_lines:
        raise HTTPException(
            status_code=422,
            detail=f"An order may contain at most {settings.max_order_lines} lines",
        )

    logger.info(f"Placing order for user {user.id} ({len(order_data.lines)} lines)")
    placed = await service.place_order(user.id, order_data.to_domain())

    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order=OrderResponse.model_validate(placed),
    )


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> OrderListResponse:
    """Retrieve the user's orders, newest first."""
    total, orders = await service.list_orders(user.id, skip, limit)
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: OrderingService = Depends(get_ordering_service),
) -> OrderResponse:
    """Get a specific order by ID. Admins can read any order."""
    order = await service.get_order(order_id, None if user.is_admin else user.id)
    return OrderResponse.model_validate(order)


@app.patch(
    "/api/admin/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Admin"],
)
async def update_order_status(
    order_id: int,
    request: StatusUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: OrderingService = Depends(get_ordering_service),
) -> OrderResponse:
    order = await service.update_order_status(order_id, request.status)
    logger.info(f"Admin {admin.id} set order #{order_id} to {request.status.value}")
    return OrderResponse.model_validate(order)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(InvalidQuantityError)
async def invalid_quantity_handler(request: Request, exc: InvalidQuantityError) -> JSONResponse:
    return JSONResponse(status_code=422, content=error_content("Invalid quantity", str(exc)))


@app.exception_handler(QuantityLimitError)
async def quantity_limit_handler(request: Request, exc: QuantityLimitError) -> JSONResponse:
    return JSONResponse(status_code=422, content=error_content("Quantity limit exceeded", str(exc)))


@app.exception_handler(CustomizationValidationError)
async def customization_handler(request: Request, exc: CustomizationValidationError) -> JSONResponse:
    logger.warning(f"Customization rejected: {[e.code.value for e in exc.errors]}")
    return JSONResponse(
        status_code=422,
        content=error_content(
            "Invalid customizations",
            str(exc),
            errors=[e.to_dict() for e in exc.errors],
        ),
    )


@app.exception_handler(ItemUnavailableError)
async def item_unavailable_handler(request: Request, exc: ItemUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_content("Item unavailable", str(exc)))


@app.exception_handler(CatalogItemNotFoundError)
async def item_not_found_handler(request: Request, exc: CatalogItemNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=error_content("Not found", f"Catalog item {exc.item_id} not found"),
    )


@app.exception_handler(CartLineNotFoundError)
async def line_not_found_handler(request: Request, exc: CartLineNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=error_content("Not found", f"Cart line {exc.line_id} not found"),
    )


@app.exception_handler(OrderNotFoundError)
async def order_not_found_handler(request: Request, exc: OrderNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=error_content("Not found", f"Order #{exc.order_id} not found"),
    )


@app.exception_handler(CartConflictError)
async def cart_conflict_handler(request: Request, exc: CartConflictError) -> JSONResponse:
    logger.warning(str(exc))
    return JSONResponse(
        status_code=409,
        content=error_content("Cart conflict", "The cart was changed by another request, please retry"),
    )


@app.exception_handler(InvalidStatusTransition)
async def status_transition_handler(request: Request, exc: InvalidStatusTransition) -> JSONResponse:
    return JSONResponse(status_code=409, content=error_content("Invalid status transition", str(exc)))


@app.exception_handler(OrderRejectedError)
async def order_rejected_handler(request: Request, exc: OrderRejectedError) -> JSONResponse:
    rejection = exc.rejection
    status_code = 404 if rejection.code == RejectionCode.ADDRESS_NOT_FOUND else 400
    return JSONResponse(
        status_code=status_code,
        content=error_content("Order rejected", rejection.message, rejection=rejection.to_dict()),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "food_ordering.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
