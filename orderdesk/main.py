"""
FastAPI Application Entry Point

OrderDesk - multi-shop ordering over WhatsApp and the web, with live
order tracking. Mock services in development, real APIs in production.

Endpoints:
    - POST /webhook/whatsapp: Twilio WhatsApp webhook (TwiML reply)
    - POST /webhook/simulation: Local testing endpoint (JSON reply)
    - GET /api/shops/{shop_id}/menu: Lettered menu of a shop
    - POST /api/orders: Web order creation
    - GET /api/orders: List orders
    - PATCH /api/orders/{order_id}/status: Status transition
    - WS /ws/orders/{order_id}: Live status events
    - GET /health: System health check
"""

import asyncio
import sys
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from twilio.twiml.messaging_response import MessagingResponse

# psycopg's async driver needs the selector loop on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from orderdesk.core.config import StoreBackend, get_settings, setup_logging
from orderdesk.core.phone import normalize_phone
from orderdesk.core.exceptions import (
    CounterUnavailable,
    InvalidTransition,
    OrderDeskError,
    OrderNotFound,
    OrderPersistError,
    ResolutionError,
    StoreError,
    ValidationError,
)
from orderdesk.database import dispose_engine, init_db
from orderdesk.domain import OrderStatus
from orderdesk.schemas import (
    ChatReply,
    ChatWebhookPayload,
    ErrorResponse,
    HealthResponse,
    MenuItemResponse,
    MenuResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    StatusUpdate,
)
from orderdesk.services.chat import ChatCommandHandler, get_chat_handler
from orderdesk.services.chat.handler import SERVER_ERROR
from orderdesk.services.notifications import BaseChatTransport, get_chat_transport
from orderdesk.services.ordering import FulfillmentService, get_fulfillment_service
from orderdesk.services.realtime import BaseRealtimeChannel, get_realtime_channel, order_topic
from orderdesk.services.store import BaseOrderStore, get_order_store

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

    if settings.store_backend == StoreBackend.SQL:
        await init_db()
        logger.info("✅ Database initialized")

    logger.info(f"✅ Order Store: {get_order_store().provider_name}")
    logger.info(f"✅ Realtime Channel: {get_realtime_channel().provider_name}")
    logger.info(f"✅ Chat Transport: {get_chat_transport().provider_name}")

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
    await get_fulfillment_service().drain_notifications()
    await get_realtime_channel().close()
    if settings.store_backend == StoreBackend.SQL:
        await dispose_engine()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-shop ordering over WhatsApp and the web with live order tracking. "
        "Supports mock services for development and real APIs for production."
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
# HELPER FUNCTIONS
# =============================================================================

def http_error(exc: OrderDeskError) -> HTTPException:
    """Translate a domain error into the HTTP status the API promises."""
    if isinstance(exc, ResolutionError):
        return HTTPException(status_code=400, detail={"error": str(exc), "tokens": exc.tokens})
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, OrderNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidTransition):
        return HTTPException(
            status_code=409,
            detail={
                "error": str(exc),
                "current": exc.current,
                "requested": exc.requested,
                "stale": exc.stale,
            },
        )
    if isinstance(exc, (OrderPersistError, CounterUnavailable, StoreError)):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def twiml_reply(text: str) -> Response:
    twiml = MessagingResponse()
    twiml.message(text)
    return Response(content=str(twiml), media_type="text/xml")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🛒 Welcome to {settings.app_name}",
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
    store: BaseOrderStore = Depends(get_order_store),
    channel: BaseRealtimeChannel = Depends(get_realtime_channel),
    transport: BaseChatTransport = Depends(get_chat_transport),
) -> HealthResponse:
    """Verify all system components are operational."""

    store_status = "healthy" if await store.health_check() else "unhealthy"
    realtime_status = "healthy" if await channel.health_check() else "unhealthy"
    transport_status = "healthy" if await transport.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [store_status, realtime_status, transport_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        environment=settings.env_mode.value,
        store=f"{store.provider_name}: {store_status}",
        realtime=f"{channel.provider_name}: {realtime_status}",
        chat_transport=f"{transport.provider_name}: {transport_status}",
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# CHAT WEBHOOK ENDPOINTS
# =============================================================================

@app.post(
    "/webhook/whatsapp",
    tags=["Chat Webhook"],
    summary="Twilio WhatsApp Webhook",
    response_class=Response,
)
async def whatsapp_webhook(
    request: Request,
    handler: ChatCommandHandler = Depends(get_chat_handler),
) -> Response:
    """
    Handle an incoming WhatsApp message.

    Twilio posts form fields (From, Body); JSON {from, body} is accepted
    too. The reply is always TwiML with status 200, even on failure.

    Configure this URL in the Twilio console:
        https://your-domain.com/webhook/whatsapp
    """
    try:
        if request.headers.get("content-type", "").startswith("application/json"):
            data = await request.json()
        else:
            data = dict(await request.form())
        payload = ChatWebhookPayload.model_validate(data)
    except Exception as e:
        logger.error(f"Failed to parse WhatsApp webhook: {e}")
        return twiml_reply(SERVER_ERROR)

    logger.info(f"WhatsApp webhook from {payload.sender}: {payload.body!r}")
    reply = await handler.handle(payload.sender, payload.body)
    return twiml_reply(reply)


@app.post(
    "/webhook/simulation",
    response_model=ChatReply,
    tags=["Simulation"],
    summary="Simulation Webhook (Development)",
)
async def simulation_webhook(
    payload: ChatWebhookPayload,
    handler: ChatCommandHandler = Depends(get_chat_handler),
) -> ChatReply:
    """
    Simulation endpoint for local testing.

    Runs the same command handling as the WhatsApp webhook but answers
    with JSON, so scripts/simulate.py can drive the full flow without a
    Twilio account.
    """
    if not settings.is_development:
        raise HTTPException(
            status_code=403,
            detail="Simulation endpoint only available in development mode"
        )

    reply = await handler.handle(payload.sender, payload.body)
    return ChatReply(reply=reply)


# =============================================================================
# CATALOG ENDPOINTS
# =============================================================================

@app.get(
    "/api/shops/{shop_id}/menu",
    response_model=MenuResponse,
    tags=["Catalog"],
)
async def get_menu(
    shop_id: int,
    store: BaseOrderStore = Depends(get_order_store),
) -> MenuResponse:
    """Available items of a shop, lettered as in the chat menu."""
    shop = await store.get_shop(shop_id)
    if shop is None:
        raise HTTPException(status_code=404, detail=f"Shop {shop_id} not found")

    items = await store.list_available_items(shop.id)
    return MenuResponse(
        shop_id=shop.id,
        shop_name=shop.name,
        contact=shop.contact,
        items=[MenuItemResponse.from_domain(i, item) for i, item in enumerate(items)],
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Create Order (Web)",
)
async def create_order(
    order_data: OrderCreate,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """
    Create a new order from the web storefront.

    Items reference catalog ids; prices are taken from the catalog.
    For chat orders, use the /webhook/whatsapp endpoint.
    """
    logger.info(f"Creating web order for shop {order_data.shop_id}: {order_data.customer_name}")

    try:
        order = await service.place_web_order(
            shop_id=order_data.shop_id,
            customer_name=order_data.customer_name,
            contact=order_data.contact,
            lines=[line.to_domain() for line in order_data.items],
            delivery_fee=order_data.delivery_fee,
            delivery_address=order_data.address.to_domain() if order_data.address else None,
        )
    except OrderDeskError as e:
        logger.warning(f"Web order rejected: {e}")
        raise http_error(e) from e

    return OrderResponse.from_order(order)


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    shop_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    customer_ref: Optional[str] = Query(None, description="Customer phone; any accepted format"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    store: BaseOrderStore = Depends(get_order_store),
) -> OrderListResponse:
    """Retrieve a page of orders, newest first, optionally for one customer."""
    status_filter = None
    if status:
        try:
            status_filter = OrderStatus(status.lower())
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )

    if customer_ref:
        customer_ref = normalize_phone(customer_ref, settings.default_country_code) or customer_ref.strip()

    total, orders = await store.list_orders(
        shop_id=shop_id,
        status=status_filter,
        customer_ref=customer_ref or None,
        skip=skip,
        limit=limit,
    )
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.from_order(order) for order in orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    store: BaseOrderStore = Depends(get_order_store),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await store.get_order(order_id)
    if order is None:
        raise http_error(OrderNotFound(order_id))
    return OrderResponse.from_order(order)


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Advance or Cancel Order",
)
async def update_order_status(
    order_id: int,
    update: StatusUpdate,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """
    Apply one status transition.

    Only the next step of the fulfillment chain, or cancellation from
    received/accepted, is accepted. Send expected_status to have the
    change rejected when someone else moved the order first.
    """
    try:
        order = await service.transition(
            order_id,
            update.status,
            expected_status=update.expected_status,
        )
    except OrderDeskError as e:
        logger.warning(f"Status update for order {order_id} rejected: {e}")
        raise http_error(e) from e

    return OrderResponse.from_order(order)


# =============================================================================
# LIVE UPDATES
# =============================================================================

@app.websocket("/ws/orders/{order_id}")
async def order_updates(
    websocket: WebSocket,
    order_id: int,
    store: BaseOrderStore = Depends(get_order_store),
    channel: BaseRealtimeChannel = Depends(get_realtime_channel),
) -> None:
    """Stream {orderId, status, orderNumber, timestamp} events for one order."""
    order = await store.get_order(order_id)
    if order is None:
        await websocket.close(code=4404)
        return

    await websocket.accept()

    async def forward(event: dict[str, Any]) -> None:
        await websocket.send_json(event)

    unsubscribe = await channel.subscribe(order_topic(order_id), forward)
    logger.info(f"Viewer subscribed to order {order_id}")
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Viewer left order {order_id}")
    finally:
        await unsubscribe()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

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


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orderdesk.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
