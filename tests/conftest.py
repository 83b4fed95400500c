"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from checkout.api.main import create_app
from checkout.config import Settings
from checkout.core.checkout_service import CheckoutService
from checkout.core.models import DeliveryDetail, LineItem, Order, PickupDetail
from checkout.core.queries import OrderQueries
from checkout.core.reconciliation import WebhookReconciler
from checkout.core.store import InMemoryOrderStore
from checkout.integrations.provider import PreferenceResult, ProviderError, ProviderPayment


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeProvider:
    """In-memory stand-in for the payment processor."""

    def __init__(self) -> None:
        self.preference_calls: List[Dict[str, Any]] = []
        self.payment_calls: List[str] = []
        self.payments: Dict[str, ProviderPayment] = {}
        self.preference_error: Optional[ProviderError] = None
        self.payment_error: Optional[Exception] = None

    async def create_preference(
        self,
        items: Sequence[LineItem],
        external_reference: str,
        notification_url: Optional[str] = None,
        back_urls: Optional[Dict[str, Optional[str]]] = None,
    ) -> PreferenceResult:
        self.preference_calls.append(
            {
                "items": list(items),
                "external_reference": external_reference,
                "notification_url": notification_url,
                "back_urls": back_urls,
            }
        )
        if self.preference_error is not None:
            raise self.preference_error
        number = len(self.preference_calls)
        return PreferenceResult(
            redirect_url=f"https://mp.test/checkout?pref_id=pref-{number}",
            preference_id=f"pref-{number}",
        )

    async def get_payment(self, payment_id: str) -> ProviderPayment:
        self.payment_calls.append(payment_id)
        if self.payment_error is not None:
            raise self.payment_error
        if payment_id not in self.payments:
            raise ProviderError("payment not found", status_code=404, body={"message": "not found"})
        return self.payments[payment_id]

    def add_payment(
        self,
        payment_id: str,
        external_reference: Optional[str],
        status: Optional[str] = "approved",
        status_detail: Optional[str] = "accredited",
    ) -> ProviderPayment:
        payment = ProviderPayment(
            id=payment_id,
            status=status,
            status_detail=status_detail,
            external_reference=external_reference,
        )
        self.payments[payment_id] = payment
        return payment


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        mp_access_token="TEST-0000-access-token",
        mp_notification_url="https://shop.test/webhook/mercadopago",
        front_success_url="https://shop.test/success",
        front_failure_url="https://shop.test/failure",
        delivery_cost=4990,
        admin_token="",
        app_name="checkout-backend-test",
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def checkout_service(
    store: InMemoryOrderStore,
    provider: FakeProvider,
    test_settings: Settings,
    clock: FakeClock,
) -> CheckoutService:
    return CheckoutService(store, provider, test_settings, clock=clock)


@pytest.fixture
def reconciler(
    store: InMemoryOrderStore,
    provider: FakeProvider,
    test_settings: Settings,
    clock: FakeClock,
) -> WebhookReconciler:
    return WebhookReconciler(store, provider, test_settings, clock=clock)


@pytest.fixture
def queries(store: InMemoryOrderStore) -> OrderQueries:
    return OrderQueries(store)


@pytest.fixture
def make_order(clock: FakeClock):
    """Factory for stored-order snapshots."""

    def _make(
        order_id: str,
        status: str = "created",
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        pickup: bool = False,
    ) -> Order:
        created = created_at or clock()
        detail = (
            PickupDetail(name="Bea", phone="555", rut="11.111.111-1")
            if pickup
            else DeliveryDetail(name="Ana", phone="123", address="Av. del Mar 1", commune="Coquimbo")
        )
        return Order(
            id=order_id,
            status=status,
            items=(LineItem(title="Bread", quantity=2, unit_price=1000),),
            customer_detail=detail,
            created_at=created,
            updated_at=updated_at or created,
        )

    return _make


@pytest.fixture
def sample_submission() -> Dict[str, Any]:
    """Sample order submission."""
    return {
        "items": [{"title": "Bread", "quantity": 2, "unitprice": 1000}],
        "shippingOption": "delivery",
        "delivery": {"name": "A", "phone": "123", "address": "X", "commune": "coquimbo"},
    }


@pytest_asyncio.fixture
async def client(
    test_settings: Settings,
    store: InMemoryOrderStore,
    provider: FakeProvider,
) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client."""
    app = create_app(settings=test_settings, store=store, provider=provider)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
