"""
Mercado Pago REST client.

Implements the two calls checkout needs:
- Preference creation (``POST /checkout/preferences``)
- Payment lookup (``GET /v1/payments/{id}``)

Every call carries a finite timeout and is attempted exactly once; a timeout
or connection failure surfaces as ``ProviderError`` without a status code.
"""
import time
from typing import Any, Dict, Optional, Sequence

import httpx
import structlog

from ..config import Settings, get_settings
from ..core.models import LineItem
from ..monitoring.metrics import metrics
from .provider import PreferenceResult, ProviderError, ProviderPayment

logger = structlog.get_logger(__name__)


class MercadoPagoError(ProviderError):
    """Raised when a Mercado Pago call fails."""

    pass


def build_preference_body(
    items: Sequence[LineItem],
    external_reference: str,
    notification_url: Optional[str] = None,
    back_urls: Optional[Dict[str, Optional[str]]] = None,
) -> Dict[str, Any]:
    """
    Build the preference request payload.

    Unset optional URLs are left out of the payload entirely.
    """
    body: Dict[str, Any] = {
        "items": [
            {
                "title": item.title,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "currency_id": item.currency,
            }
            for item in items
        ],
        "external_reference": external_reference,
    }
    if notification_url:
        body["notification_url"] = notification_url

    urls = {key: value for key, value in (back_urls or {}).items() if value}
    if urls:
        body["back_urls"] = urls
        if urls.get("success"):
            body["auto_return"] = "approved"
    return body


class MercadoPagoClient:
    """
    Async wrapper for the Mercado Pago API.

    Features:
    - Bearer authentication with the configured access token
    - Finite timeout on every call, no retries
    - Provider status and body preserved on errors
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize Mercado Pago client.

        Args:
            settings: Optional settings (defaults to process settings)
            transport: Optional HTTP transport (tests use httpx.MockTransport)
        """
        self.settings = settings or get_settings()
        headers = {}
        if self.settings.mp_access_token:
            headers["Authorization"] = f"Bearer {self.settings.mp_access_token}"

        self.http_client = httpx.AsyncClient(
            base_url=self.settings.mp_api_base_url,
            timeout=self.settings.mp_timeout_seconds,
            headers=headers,
            transport=transport,
        )

        logger.info(
            "mercadopago_client_initialized",
            base_url=self.settings.mp_api_base_url,
            timeout_seconds=self.settings.mp_timeout_seconds,
            credential_configured=self.settings.has_provider_credential,
        )

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send one request and decode its JSON body.

        Raises:
            MercadoPagoError: On timeout, connection failure or non-2xx status
        """
        start_time = time.time()
        try:
            response = await self.http_client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            metrics.record_provider_call(operation, "timeout", time.time() - start_time)
            logger.error("mercadopago_timeout", operation=operation, error=str(e))
            raise MercadoPagoError(f"Mercado Pago {operation} timed out") from e
        except httpx.HTTPError as e:
            metrics.record_provider_call(operation, "error", time.time() - start_time)
            logger.error("mercadopago_connection_error", operation=operation, error=str(e))
            raise MercadoPagoError(f"Mercado Pago {operation} failed: {e}") from e

        duration = time.time() - start_time
        metrics.record_provider_call(operation, str(response.status_code), duration)

        try:
            data = response.json()
        except ValueError:
            data = response.text or None

        if response.is_error:
            logger.error(
                "mercadopago_api_error",
                operation=operation,
                status_code=response.status_code,
                body=data,
            )
            raise MercadoPagoError(
                f"Mercado Pago {operation} returned {response.status_code}",
                status_code=response.status_code,
                body=data,
            )

        logger.info(
            "mercadopago_call_succeeded",
            operation=operation,
            status_code=response.status_code,
            duration_seconds=duration,
        )
        return data

    async def create_preference(
        self,
        items: Sequence[LineItem],
        external_reference: str,
        notification_url: Optional[str] = None,
        back_urls: Optional[Dict[str, Optional[str]]] = None,
    ) -> PreferenceResult:
        """
        Create a checkout preference.

        Args:
            items: Line items, shipping included
            external_reference: Local order id for notification correlation
            notification_url: Optional webhook URL
            back_urls: Optional success/failure/pending return URLs

        Returns:
            PreferenceResult: Redirect URL and preference id

        Raises:
            MercadoPagoError: If creation fails
        """
        body = build_preference_body(items, external_reference, notification_url, back_urls)
        data = await self._request("create_preference", "POST", "/checkout/preferences", json=body)

        if not isinstance(data, dict) or not data.get("init_point") or not data.get("id"):
            raise MercadoPagoError(
                "Mercado Pago preference response is missing init_point/id",
                status_code=502,
                body=data,
            )

        return PreferenceResult(redirect_url=data["init_point"], preference_id=str(data["id"]))

    async def get_payment(self, payment_id: str) -> ProviderPayment:
        """
        Retrieve a payment by ID.

        Args:
            payment_id: Mercado Pago payment id

        Returns:
            ProviderPayment: Authoritative payment state

        Raises:
            MercadoPagoError: If retrieval fails
        """
        # Ids come from unauthenticated notifications and end up in the URL path
        if not (payment_id.isascii() and payment_id.isdigit()):
            raise MercadoPagoError("Invalid payment id", body={"id": payment_id})

        data = await self._request("get_payment", "GET", f"/v1/payments/{payment_id}")

        if not isinstance(data, dict):
            raise MercadoPagoError(
                "Mercado Pago payment response is not an object", status_code=502, body=data
            )

        external_reference = data.get("external_reference")
        return ProviderPayment(
            id=str(data.get("id", payment_id)),
            status=data.get("status"),
            status_detail=data.get("status_detail"),
            external_reference=str(external_reference) if external_reference else None,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()
