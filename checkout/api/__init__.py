"""FastAPI application and routes."""
from .main import app, create_app
from .schemas import CreateOrderRequest, CreateOrderResponse, ErrorResponse

__all__ = [
    "app",
    "create_app",
    "CreateOrderRequest",
    "CreateOrderResponse",
    "ErrorResponse",
]
