"""
Prometheus metrics for checkout monitoring.

Tracks:
- Order creation attempts by outcome
- Mercado Pago API calls and their duration
- Webhook notifications by reconciliation outcome
"""
from prometheus_client import Counter, Histogram

# Checkout metrics
checkout_requests_total = Counter(
    "checkout_requests_total",
    "Total number of order creation requests",
    ["outcome"],  # created, invalid, misconfigured, upstream_error
)

checkout_order_amount_clp = Histogram(
    "checkout_order_amount_clp",
    "Order totals in CLP (shipping included)",
    buckets=(1000, 5000, 10000, 25000, 50000, 100000, 250000, 500000, 1000000),
)

# Mercado Pago API metrics
provider_api_requests_total = Counter(
    "provider_api_requests_total",
    "Total Mercado Pago API requests",
    ["operation", "status"],  # operation: create_preference, get_payment
)

provider_api_duration_seconds = Histogram(
    "provider_api_duration_seconds",
    "Mercado Pago API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 15.0),
)

# Webhook metrics
webhook_notifications_received_total = Counter(
    "webhook_notifications_received_total",
    "Total webhook notifications received",
    ["topic"],
)

webhook_reconciliations_total = Counter(
    "webhook_reconciliations_total",
    "Webhook reconciliation outcomes",
    ["outcome"],  # applied, ignored, unknown_order, failed
)

webhook_reconciliation_duration_seconds = Histogram(
    "webhook_reconciliation_duration_seconds",
    "Fetch-and-merge duration in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_checkout(outcome: str, total_clp: float = 0) -> None:
        """Record an order creation attempt."""
        checkout_requests_total.labels(outcome=outcome).inc()
        if total_clp > 0:
            checkout_order_amount_clp.observe(total_clp)

    @staticmethod
    def record_provider_call(operation: str, status: str, duration_seconds: float) -> None:
        """Record a Mercado Pago API call."""
        provider_api_requests_total.labels(operation=operation, status=status).inc()
        provider_api_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_webhook_received(topic: str) -> None:
        """Record an acknowledged webhook notification."""
        webhook_notifications_received_total.labels(topic=topic or "none").inc()

    @staticmethod
    def record_reconciliation(outcome: str, duration_seconds: float = 0) -> None:
        """Record the outcome of a background reconciliation."""
        webhook_reconciliations_total.labels(outcome=outcome).inc()
        if duration_seconds > 0:
            webhook_reconciliation_duration_seconds.observe(duration_seconds)


# Export singleton instance
metrics = MetricsCollector()
