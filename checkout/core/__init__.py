"""Core checkout logic: validation, storage, preference creation, reconciliation."""
from .exceptions import (
    AdminAuthError,
    CheckoutError,
    ConfigurationError,
    OrderNotFoundError,
    OrderValidationError,
    RateLimitError,
    UpstreamError,
)
from .models import DeliveryDetail, LineItem, Order, PickupDetail, ShippingOption
from .store import InMemoryOrderStore, OrderStore

__all__ = [
    "AdminAuthError",
    "CheckoutError",
    "ConfigurationError",
    "DeliveryDetail",
    "InMemoryOrderStore",
    "LineItem",
    "Order",
    "OrderNotFoundError",
    "OrderStore",
    "OrderValidationError",
    "PickupDetail",
    "RateLimitError",
    "ShippingOption",
    "UpstreamError",
]
