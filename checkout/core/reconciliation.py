"""
Webhook-driven payment reconciliation.

A notification only tells us *which* payment changed. The reconciler fetches
the payment from the provider (the notification's own fields are never
trusted), finds the order through the payment's external reference and merges
the status into it. Work runs after the webhook was acknowledged, so every
failure ends here: it is logged and counted, never raised.
"""
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import structlog

from ..config import Settings, get_settings
from ..integrations.provider import PaymentProvider
from ..monitoring.metrics import metrics
from .checkout_service import utcnow
from .models import Order
from .store import OrderStore

logger = structlog.get_logger(__name__)

PAYMENT_TOPIC = "payment"


@dataclass(frozen=True)
class Notification:
    """The parts of a provider notification reconciliation cares about."""

    payment_id: Optional[str]
    topic: Optional[str]


def _first_present(*values: Any) -> Optional[str]:
    for value in values:
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_notification(
    query: Mapping[str, Any], body: Optional[Mapping[str, Any]] = None
) -> Notification:
    """
    Extract payment id and topic from query parameters or JSON body.

    The id may arrive as ``?id=``, ``?data.id=`` or ``{"data": {"id": ...}}``;
    the topic as ``?topic=``, ``?type=`` or the body's ``type``/``topic``.
    """
    body = body if isinstance(body, Mapping) else {}
    data = body.get("data")
    body_id = data.get("id") if isinstance(data, Mapping) else None

    return Notification(
        payment_id=_first_present(query.get("id"), query.get("data.id"), body_id),
        topic=_first_present(
            query.get("topic"), query.get("type"), body.get("type"), body.get("topic")
        ),
    )


class WebhookReconciler:
    """
    Applies authoritative payment status to previously created orders.

    Features:
    - Topic filtering (only payment notifications)
    - Authoritative fetch from the provider
    - Per-order atomic merge through the store
    - Idempotent: duplicate notifications converge to the same record
    """

    def __init__(
        self,
        store: OrderStore,
        provider: PaymentProvider,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize webhook reconciler.

        Args:
            store: Order store
            provider: Payment provider
            settings: Optional settings (defaults to process settings)
            clock: Source of timestamps
        """
        self.store = store
        self.provider = provider
        self.settings = settings or get_settings()
        self.clock = clock

    def should_reconcile(self, notification: Notification) -> bool:
        """Cheap checks that do not need the provider."""
        if not notification.payment_id:
            logger.info("webhook_ignored", reason="missing_payment_id")
            return False
        if notification.topic and notification.topic != PAYMENT_TOPIC:
            logger.info("webhook_ignored", reason="topic", topic=notification.topic)
            return False
        if not self.settings.has_provider_credential:
            logger.warning("webhook_ignored", reason="missing_credential")
            return False
        return True

    async def reconcile(self, notification: Notification) -> Optional[Order]:
        """
        Fetch the payment and merge it into its order.

        Returns:
            The updated order, or None when the notification was dropped.
            Never raises.
        """
        start_time = time.time()

        if not self.should_reconcile(notification):
            metrics.record_reconciliation("ignored")
            return None

        payment_id = notification.payment_id
        try:
            payment = await self.provider.get_payment(payment_id)

            if not payment.external_reference or not payment.status:
                logger.info(
                    "webhook_payment_unusable",
                    payment_id=payment_id,
                    has_reference=bool(payment.external_reference),
                    has_status=bool(payment.status),
                )
                metrics.record_reconciliation("ignored", time.time() - start_time)
                return None

            now = self.clock()
            updated = await self.store.update(
                payment.external_reference,
                lambda order: order.with_payment(
                    payment_id=payment.id,
                    status=payment.status,
                    status_detail=payment.status_detail,
                    now=now,
                ),
            )
        except Exception as e:
            logger.error(
                "webhook_reconciliation_failed",
                payment_id=payment_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            metrics.record_reconciliation("failed", time.time() - start_time)
            return None

        if updated is None:
            logger.info(
                "webhook_unknown_order",
                payment_id=payment_id,
                external_reference=payment.external_reference,
            )
            metrics.record_reconciliation("unknown_order", time.time() - start_time)
            return None

        logger.info(
            "order_reconciled",
            order_id=updated.id,
            payment_id=updated.payment_id,
            status=updated.status,
            status_detail=updated.payment_status_detail,
        )
        metrics.record_reconciliation("applied", time.time() - start_time)
        return updated
