"""
Payment provider contract.

The checkout and reconciliation flows only depend on this protocol; the
Mercado Pago client is one implementation of it.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict

from ..core.models import LineItem


class PreferenceResult(BaseModel):
    """A created preference: where to send the buyer and its provider id."""

    model_config = ConfigDict(frozen=True)

    redirect_url: str
    preference_id: str


class ProviderPayment(BaseModel):
    """Authoritative payment state as reported by the provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: Optional[str] = None
    status_detail: Optional[str] = None
    external_reference: Optional[str] = None


class ProviderError(Exception):
    """Raised when a provider call fails or answers non-2xx."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[Any] = None,
    ):
        """
        Initialize provider error.

        Args:
            message: Error message
            status_code: Provider HTTP status, None when no response arrived
            body: Provider response body, if any
        """
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PaymentProvider(Protocol):
    """Interface for the external payment processor."""

    async def create_preference(
        self,
        items: Sequence[LineItem],
        external_reference: str,
        notification_url: Optional[str] = None,
        back_urls: Optional[Dict[str, Optional[str]]] = None,
    ) -> PreferenceResult:
        """Create a payable cart and return its hosted payment page."""
        ...

    async def get_payment(self, payment_id: str) -> ProviderPayment:
        """Fetch a payment by id."""
        ...
