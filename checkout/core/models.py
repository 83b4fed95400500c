"""
Order domain models.

Orders are immutable snapshots: every state change produces a new ``Order``
through ``model_copy`` so the store can swap records atomically.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

CURRENCY_CLP = "CLP"
SHIPPING_LINE_TITLE = "Envío (Delivery)"

ORDER_STATUS_CREATED = "created"
ORDER_STATUS_APPROVED = "approved"
ORDER_STATUS_REJECTED = "rejected"
ORDER_STATUS_PENDING = "pending"


class ShippingOption(str, Enum):
    """How the customer receives the order."""

    DELIVERY = "delivery"
    PICKUP = "pickup"


class _DomainModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class LineItem(_DomainModel):
    """A purchasable line, priced in CLP."""

    title: str = Field(..., min_length=1, max_length=120)
    quantity: int = Field(..., ge=1, le=99)
    unit_price: float = Field(..., gt=0)
    currency: Literal["CLP"] = CURRENCY_CLP

    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity


class DeliveryDetail(_DomainModel):
    """Contact data for home delivery."""

    type: Literal["delivery"] = "delivery"
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    commune: str = ""
    notes: str = ""


class PickupDetail(_DomainModel):
    """Contact data for in-store pickup."""

    type: Literal["pickup"] = "pickup"
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    rut: str = ""


CustomerDetail = Annotated[
    Union[DeliveryDetail, PickupDetail], Field(discriminator="type")
]


class ValidatedOrder(_DomainModel):
    """Output of submission validation, before pricing and persistence."""

    items: Tuple[LineItem, ...] = Field(..., min_length=1)
    customer_detail: CustomerDetail

    @property
    def shipping_option(self) -> ShippingOption:
        return ShippingOption(self.customer_detail.type)


class Order(_DomainModel):
    """
    A checkout transaction tracked from creation through payment resolution.

    ``shipping_option`` is derived from the customer detail variant, so the two
    can never disagree.
    """

    id: str
    status: str = ORDER_STATUS_CREATED
    items: Tuple[LineItem, ...] = Field(..., min_length=1)
    shipping_cost: float = Field(default=0, ge=0)
    customer_detail: CustomerDetail
    payment_id: Optional[str] = None
    payment_status_detail: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @computed_field(alias="shippingOption")  # type: ignore[misc]
    @property
    def shipping_option(self) -> ShippingOption:
        return ShippingOption(self.customer_detail.type)

    def with_payment(
        self,
        payment_id: str,
        status: str,
        status_detail: Optional[str],
        now: datetime,
    ) -> Order:
        """
        Merge an authoritative payment result into a new snapshot.

        Last write wins per field; ``status_detail`` is overwritten even when
        empty. A reported ``created`` status never replaces the current one.
        """
        new_status = self.status if status == ORDER_STATUS_CREATED else status
        return self.model_copy(
            update={
                "status": new_status,
                "payment_id": payment_id,
                "payment_status_detail": status_detail,
                "updated_at": now,
            }
        )
