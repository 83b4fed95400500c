"""
Checkout error taxonomy.

Every error carries the HTTP status the API answers with, a client-facing
message and optional diagnostic detail.
"""
from typing import Any, Optional


class CheckoutError(Exception):
    """Base exception for checkout errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        detail: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        """
        Initialize checkout error.

        Args:
            message: Client-facing error message
            detail: Optional diagnostic payload
            status_code: Overrides the class default status
        """
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Render as the `{error, detail?}` response body."""
        body: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class OrderValidationError(CheckoutError):
    """Raised when a submission is malformed or incomplete."""

    status_code = 400


class ConfigurationError(CheckoutError):
    """Raised when a required credential is missing."""

    status_code = 500


class UpstreamError(CheckoutError):
    """Raised when the payment provider fails or answers non-2xx."""

    status_code = 502


class OrderNotFoundError(CheckoutError):
    """Raised when an order id is unknown."""

    status_code = 404


class AdminAuthError(CheckoutError):
    """Raised when the admin bearer token is missing or wrong."""

    status_code = 401


class RateLimitError(CheckoutError):
    """Raised when a client exceeds its request window."""

    status_code = 429

    def __init__(self, retry_after_seconds: int):
        super().__init__("Rate limit exceeded")
        self.retry_after_seconds = retry_after_seconds
