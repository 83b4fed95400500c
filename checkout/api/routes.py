"""
API routes for checkout, order queries and provider webhooks.
"""
import time
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..core.checkout_service import CheckoutService
from ..core.queries import OrderQueries
from ..core.reconciliation import WebhookReconciler, parse_notification
from ..monitoring.metrics import metrics
from .dependencies import (
    get_checkout_service,
    get_queries,
    get_reconciler,
    rate_limit,
    require_admin,
)
from .schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    ErrorResponse,
    HealthResponse,
    WebhookAck,
)

logger = structlog.get_logger(__name__)

# Create routers
checkout_router = APIRouter(tags=["checkout"])
orders_router = APIRouter(tags=["orders"])
webhook_router = APIRouter(prefix="/webhook", tags=["webhooks"])
monitoring_router = APIRouter(tags=["monitoring"])


@checkout_router.post(
    "/create_preference",
    response_model=CreateOrderResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Create an order",
    description="Validate a cart, store the order and create its Mercado Pago preference",
    dependencies=[Depends(rate_limit("checkout"))],
)
async def create_preference(
    request: CreateOrderRequest,
    service: CheckoutService = Depends(get_checkout_service),
) -> Dict[str, Any]:
    """
    Create an order and its payment preference.

    Shipping cost is always computed server-side.
    """
    start_time = time.time()

    result = await service.create_order(
        items=request.items,
        shipping_option=request.shipping_option,
        delivery=request.delivery,
        pickup=request.pickup,
    )

    logger.info(
        "api_create_preference_success",
        order_id=result.order_id,
        duration_seconds=time.time() - start_time,
    )
    return result.model_dump(by_alias=True)


@orders_router.get(
    "/order/{order_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Get an order",
    description="Retrieve an order with its display detail",
)
async def get_order(
    order_id: str,
    queries: OrderQueries = Depends(get_queries),
) -> Dict[str, Any]:
    """Get order by ID."""
    return await queries.get_order_view(order_id)


@orders_router.get(
    "/orders",
    summary="List orders",
    description="All orders, newest first",
    dependencies=[Depends(require_admin)],
)
async def list_orders(queries: OrderQueries = Depends(get_queries)) -> List[Dict[str, Any]]:
    """List every order."""
    return await queries.list_order_views()


@orders_router.get(
    "/payments",
    summary="List approved payments",
    description="Approved orders, most recently updated first",
    dependencies=[Depends(require_admin)],
)
async def list_payments(queries: OrderQueries = Depends(get_queries)) -> List[Dict[str, Any]]:
    """List approved orders."""
    return await queries.list_approved_views()


async def _read_json_body(request: Request) -> Dict[str, Any]:
    """Notification bodies are optional; anything but a JSON object is ignored."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@webhook_router.post(
    "/mercadopago",
    response_model=WebhookAck,
    summary="Mercado Pago webhook endpoint",
    description="Acknowledge a payment notification and reconcile it in the background",
    dependencies=[Depends(rate_limit("webhook"))],
)
async def mercadopago_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    reconciler: WebhookReconciler = Depends(get_reconciler),
) -> Dict[str, Any]:
    """
    Handle Mercado Pago notifications.

    Always answers 200 so the provider does not redeliver; reconciliation
    runs after the response is sent and its outcome is only logged.
    """
    body = await _read_json_body(request)
    notification = parse_notification(request.query_params, body)

    metrics.record_webhook_received(notification.topic or "")
    logger.info(
        "api_webhook_received",
        payment_id=notification.payment_id,
        topic=notification.topic,
    )

    background_tasks.add_task(reconciler.reconcile, notification)
    return {"received": True}


@monitoring_router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health() -> Dict[str, Any]:
    """Liveness endpoint."""
    return {"ok": True}


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
