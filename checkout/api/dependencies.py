"""
Request dependencies: service accessors, admin gate and rate limiting.

Services live on ``app.state`` and are wired by ``create_app``.
"""
import math
import secrets
import time
from typing import Callable, Dict, Tuple

from fastapi import Request

from ..config import Settings
from ..core.checkout_service import CheckoutService
from ..core.exceptions import AdminAuthError, RateLimitError
from ..core.queries import OrderQueries
from ..core.reconciliation import WebhookReconciler


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout_service


def get_reconciler(request: Request) -> WebhookReconciler:
    return request.app.state.reconciler


def get_queries(request: Request) -> OrderQueries:
    return request.app.state.queries


def require_admin(request: Request) -> None:
    """
    Check the bearer token against the configured admin secret.

    The gate is open when no secret is configured.

    Raises:
        AdminAuthError: If the token is missing or wrong
    """
    settings = get_app_settings(request)
    if not settings.admin_gate_enabled:
        return

    # Header values arrive latin-1 decoded; compare raw bytes
    auth = request.headers.get("authorization", "")
    token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
    if not token or not secrets.compare_digest(
        token.encode("latin-1"), settings.admin_token.encode("utf-8")
    ):
        raise AdminAuthError("Unauthorized")


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class FixedWindowRateLimiter:
    """
    In-memory fixed-window request counter.

    Each key gets ``max_requests`` per ``window_seconds``; the window starts
    at the key's first request. Expired keys are swept at most once per
    window, so the map only holds keys seen in roughly the last two windows.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        self._hits = {
            key: entry for key, entry in self._hits.items() if entry[1] > now
        }
        self._next_sweep = now + self.window_seconds

    def hit(self, key: str) -> None:
        """
        Count one request for ``key``.

        Raises:
            RateLimitError: If the key is over its limit for this window
        """
        now = self.clock()
        self._sweep(now)
        count, reset_at = self._hits.get(key, (0, 0.0))

        if reset_at <= now:
            self._hits[key] = (1, now + self.window_seconds)
            return

        count += 1
        self._hits[key] = (count, reset_at)
        if count > self.max_requests:
            raise RateLimitError(retry_after_seconds=math.ceil(reset_at - now))


def rate_limit(name: str) -> Callable[[Request], None]:
    """Build a dependency that applies the named limiter from app state."""

    def dependency(request: Request) -> None:
        limiter: FixedWindowRateLimiter = request.app.state.rate_limiters[name]
        limiter.hit(f"{client_address(request)}:{request.url.path}")

    return dependency
