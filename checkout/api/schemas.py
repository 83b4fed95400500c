"""
Pydantic schemas for API request/response models.

Request fields are deliberately loose: coercion and the 400 responses are
owned by ``checkout.core.validation``, not by FastAPI's 422 handling.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateOrderRequest(BaseModel):
    """Request schema for creating an order and its payment preference."""

    items: Any = Field(default=None, description="Cart lines: [{title, quantity, unitprice}]")
    shipping_option: Any = Field(
        default=None, alias="shippingOption", description="'delivery' (default) or 'pickup'"
    )
    delivery: Any = Field(default=None, description="{name, phone, address, commune?, notes?}")
    pickup: Any = Field(default=None, description="{name, phone, rut?}")

    # Client-side extras such as shippingCost are accepted and ignored
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "items": [{"title": "Bread", "quantity": 2, "unitprice": 1000}],
                    "shippingOption": "delivery",
                    "delivery": {
                        "name": "Ana",
                        "phone": "+56911111111",
                        "address": "Av. del Mar 123",
                        "commune": "la-serena",
                    },
                }
            ]
        },
    )


class CreateOrderResponse(BaseModel):
    """Response schema for order creation."""

    initpoint: str = Field(..., description="Hosted payment page URL")
    orderId: str = Field(..., description="Order ID (external reference)")
    preferenceId: str = Field(..., description="Mercado Pago preference ID")


class ErrorResponse(BaseModel):
    """Response schema for every error."""

    error: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(default=None, description="Diagnostic detail")


class WebhookAck(BaseModel):
    """Immediate acknowledgement for provider notifications."""

    received: bool = True


class HealthResponse(BaseModel):
    """Response schema for health checks."""

    ok: bool = True


OrderView = Dict[str, Any]
