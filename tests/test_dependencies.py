"""
Unit tests for request dependencies.
"""
import pytest

from checkout.api.dependencies import FixedWindowRateLimiter
from checkout.core.exceptions import RateLimitError


class MonotonicClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestFixedWindowRateLimiter:
    """Test suite for FixedWindowRateLimiter."""

    @pytest.mark.unit
    def test_limit_and_retry_after(self) -> None:
        """Test that requests past the limit raise with the remaining window."""
        clock = MonotonicClock()
        limiter = FixedWindowRateLimiter(2, window_seconds=60, clock=clock)

        limiter.hit("1.2.3.4:/create_preference")
        limiter.hit("1.2.3.4:/create_preference")
        clock.now += 20.5
        with pytest.raises(RateLimitError) as exc_info:
            limiter.hit("1.2.3.4:/create_preference")

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after_seconds == 40

    @pytest.mark.unit
    def test_window_resets(self) -> None:
        """Test that a new window starts after the old one expires."""
        clock = MonotonicClock()
        limiter = FixedWindowRateLimiter(1, window_seconds=60, clock=clock)

        limiter.hit("a")
        clock.now += 60
        limiter.hit("a")

        with pytest.raises(RateLimitError):
            limiter.hit("a")

    @pytest.mark.unit
    def test_expired_keys_are_swept(self) -> None:
        """Test that keys from spoofed or one-off clients do not accumulate."""
        clock = MonotonicClock()
        limiter = FixedWindowRateLimiter(5, window_seconds=60, clock=clock)

        for n in range(1000):
            limiter.hit(f"10.0.{n // 256}.{n % 256}:/webhook/mercadopago")
        assert len(limiter) == 1000

        clock.now += 61
        limiter.hit("1.2.3.4:/webhook/mercadopago")

        assert len(limiter) == 1

    @pytest.mark.unit
    def test_sweep_keeps_live_windows(self) -> None:
        """Test that sweeping never resets a key still inside its window."""
        clock = MonotonicClock()
        limiter = FixedWindowRateLimiter(1, window_seconds=60, clock=clock)

        limiter.hit("old")
        clock.now += 30
        limiter.hit("live")
        clock.now += 31
        limiter.hit("other")

        assert len(limiter) == 2
        with pytest.raises(RateLimitError):
            limiter.hit("live")
