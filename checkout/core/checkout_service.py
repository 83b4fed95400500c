"""
Checkout orchestration.

Orchestrates order creation:
1. Check the provider credential
2. Validate the submission
3. Price shipping server-side
4. Store the order as ``created``
5. Request a preference from the provider
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings, get_settings
from ..integrations.provider import PaymentProvider, ProviderError
from ..monitoring.metrics import metrics
from .exceptions import ConfigurationError, OrderValidationError, UpstreamError
from .models import (
    SHIPPING_LINE_TITLE,
    LineItem,
    Order,
    ShippingOption,
    ValidatedOrder,
)
from .queries import order_total
from .store import OrderStore
from .validation import validate_submission

logger = structlog.get_logger(__name__)


class CheckoutResult(BaseModel):
    """What the storefront needs to send the buyer to the payment page."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    initpoint: str = Field(..., description="Hosted payment page URL")
    order_id: str = Field(..., alias="orderId")
    preference_id: str = Field(..., alias="preferenceId")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_order_id() -> str:
    return str(uuid.uuid4())


class CheckoutService:
    """
    Creates orders and their payment preferences.

    The order is stored before the provider is contacted and is left in
    ``created`` if the provider call fails.
    """

    def __init__(
        self,
        store: OrderStore,
        provider: PaymentProvider,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_order_id,
    ):
        """
        Initialize checkout service.

        Args:
            store: Order store
            provider: Payment provider
            settings: Optional settings (defaults to process settings)
            clock: Source of timestamps
            id_factory: Source of order ids
        """
        self.store = store
        self.provider = provider
        self.settings = settings or get_settings()
        self.clock = clock
        self.id_factory = id_factory

    def shipping_cost_for(self, option: ShippingOption) -> float:
        """Delivery pays the configured fee; pickup is free."""
        if option is ShippingOption.DELIVERY:
            return self.settings.delivery_cost
        return 0

    def price_items(self, validated: ValidatedOrder) -> List[LineItem]:
        """Cart lines plus a synthetic shipping line when shipping costs money."""
        items = list(validated.items)
        shipping_cost = self.shipping_cost_for(validated.shipping_option)
        if shipping_cost > 0:
            items.append(LineItem(title=SHIPPING_LINE_TITLE, quantity=1, unit_price=shipping_cost))
        return items

    async def place_order(self, validated: ValidatedOrder) -> Order:
        """Persist a validated order in ``created`` state."""
        now = self.clock()
        order = Order(
            id=self.id_factory(),
            items=tuple(self.price_items(validated)),
            shipping_cost=self.shipping_cost_for(validated.shipping_option),
            customer_detail=validated.customer_detail,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(order)

        logger.info(
            "order_created",
            order_id=order.id,
            shipping_option=order.shipping_option.value,
            item_count=len(order.items),
            shipping_cost=order.shipping_cost,
        )
        return order

    async def create_order(
        self,
        items: Any,
        shipping_option: Any = None,
        delivery: Any = None,
        pickup: Any = None,
    ) -> CheckoutResult:
        """
        Validate, store and request a preference for a submission.

        Raises:
            ConfigurationError: If no provider credential is configured
            OrderValidationError: If the submission is invalid
            UpstreamError: If the provider call fails
        """
        if not self.settings.has_provider_credential:
            metrics.record_checkout("misconfigured")
            logger.error("checkout_missing_credential")
            raise ConfigurationError("Falta MP_ACCESS_TOKEN en la configuración")

        try:
            validated = validate_submission(
                items, shipping_option=shipping_option, delivery=delivery, pickup=pickup
            )
        except OrderValidationError as e:
            metrics.record_checkout("invalid")
            logger.warning("checkout_validation_failed", reason=e.message)
            raise

        order = await self.place_order(validated)

        try:
            preference = await self.provider.create_preference(
                order.items,
                external_reference=order.id,
                notification_url=self.settings.mp_notification_url or None,
                back_urls=self.settings.get_back_urls(),
            )
        except ProviderError as e:
            metrics.record_checkout("upstream_error")
            logger.error(
                "checkout_preference_failed",
                order_id=order.id,
                status_code=e.status_code,
                error=str(e),
            )
            raise UpstreamError(
                "No se pudo crear preferencia",
                detail=e.body if e.body is not None else str(e),
                status_code=e.status_code or 500,
            ) from e

        metrics.record_checkout("created", order_total(order.items))
        logger.info(
            "preference_created",
            order_id=order.id,
            preference_id=preference.preference_id,
        )

        return CheckoutResult(
            initpoint=preference.redirect_url,
            order_id=order.id,
            preference_id=preference.preference_id,
        )
