"""
Main FastAPI application.

Checkout API with:
- CORS configuration
- Error handling mapped to `{error, detail?}` bodies
- Request ID tracking
- Structured logging
- Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..core.checkout_service import CheckoutService
from ..core.exceptions import CheckoutError, RateLimitError
from ..core.queries import OrderQueries
from ..core.reconciliation import WebhookReconciler
from ..core.store import InMemoryOrderStore, OrderStore
from ..integrations.mercadopago_client import MercadoPagoClient
from ..integrations.provider import PaymentProvider
from ..monitoring.logging import setup_logging
from .dependencies import FixedWindowRateLimiter
from .routes import checkout_router, monitoring_router, orders_router, webhook_router
from .views import views_router

logger = structlog.get_logger(__name__)


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    """Render taxonomy errors as `{error, detail?}` with their status."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "checkout_error",
        error=exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
    """
    Add request ID to all requests for tracing.

    Also adds timing information and structured logging context.
    """
    request_id = str(uuid.uuid4())
    start_time = time.time()

    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    logger.info(
        "request_started",
        client_host=request.client.host if request.client else None,
    )

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=time.time() - start_time,
        )
        return response

    except Exception as e:
        logger.error(
            "request_failed",
            error=str(e),
            duration_seconds=time.time() - start_time,
        )
        raise

    finally:
        structlog.contextvars.clear_contextvars()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[OrderStore] = None,
    provider: Optional[PaymentProvider] = None,
) -> FastAPI:
    """
    Build the application and wire its services.

    Args:
        settings: Optional settings (defaults to process settings)
        store: Optional order store (defaults to a fresh in-memory store)
        provider: Optional payment provider (defaults to Mercado Pago)

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()
    setup_logging(settings)

    store = store if store is not None else InMemoryOrderStore()
    provider = provider if provider is not None else MercadoPagoClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.app_env,
            credential_configured=settings.has_provider_credential,
            admin_gate_enabled=settings.admin_gate_enabled,
        )

        yield

        logger.info("application_shutdown")
        close = getattr(provider, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title="Checkout Backend",
        description=(
            "Creates Mercado Pago payment preferences, keeps orders in memory and "
            "reconciles their status from payment notifications."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.store = store
    app.state.provider = provider
    app.state.checkout_service = CheckoutService(store, provider, settings)
    app.state.reconciler = WebhookReconciler(store, provider, settings)
    app.state.queries = OrderQueries(store)
    app.state.rate_limiters = {
        "checkout": FixedWindowRateLimiter(settings.checkout_rate_limit_per_minute),
        "webhook": FixedWindowRateLimiter(settings.webhook_rate_limit_per_minute),
    }

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.allow_all_origins else settings.get_cors_origins_list(),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(add_request_id_middleware)

    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Include routers
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(webhook_router)
    app.include_router(views_router)
    app.include_router(monitoring_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "checkout.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
