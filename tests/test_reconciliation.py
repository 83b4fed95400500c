"""
Unit tests for webhook parsing and payment reconciliation.
"""
import asyncio

import pytest

from checkout.config import Settings
from checkout.core.reconciliation import Notification, WebhookReconciler, parse_notification
from checkout.core.store import InMemoryOrderStore
from checkout.integrations.provider import ProviderError


class TestParseNotification:
    """Test suite for notification parsing."""

    @pytest.mark.unit
    def test_query_id_and_topic(self) -> None:
        """Test the classic IPN format."""
        assert parse_notification({"topic": "payment", "id": "999"}) == Notification(
            payment_id="999", topic="payment"
        )

    @pytest.mark.unit
    def test_data_id_query_and_type(self) -> None:
        """Test the webhook query format."""
        assert parse_notification({"type": "payment", "data.id": "123"}) == Notification(
            payment_id="123", topic="payment"
        )

    @pytest.mark.unit
    def test_body_data_id(self) -> None:
        """Test ids delivered in the JSON body."""
        notification = parse_notification({}, {"type": "payment", "data": {"id": 456}})

        assert notification == Notification(payment_id="456", topic="payment")

    @pytest.mark.unit
    def test_query_wins_over_body(self) -> None:
        """Test precedence of query parameters."""
        notification = parse_notification({"id": "1"}, {"data": {"id": "2"}})

        assert notification.payment_id == "1"
        assert notification.topic is None

    @pytest.mark.unit
    def test_empty_and_malformed_input(self) -> None:
        """Test that garbage produces an empty notification."""
        assert parse_notification({}, None) == Notification(payment_id=None, topic=None)
        assert parse_notification({"id": "  "}, {"data": "x"}).payment_id is None


class TestWebhookReconciler:
    """Test suite for WebhookReconciler."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_applies_payment_status(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order, clock
    ) -> None:
        """Test merging an approved payment into its order."""
        original = make_order("order-1")
        await store.put(original)
        provider.add_payment("999", external_reference="order-1")
        clock.advance(30)

        updated = await reconciler.reconcile(Notification(payment_id="999", topic="payment"))

        assert updated.status == "approved"
        assert updated.payment_id == "999"
        assert updated.payment_status_detail == "accredited"
        assert updated.updated_at == clock()
        assert updated.created_at == original.created_at
        assert updated.items == original.items
        assert updated.customer_detail == original.customer_detail
        assert updated.shipping_cost == original.shipping_cost
        assert await store.get("order-1") == updated

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_notifications_converge(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order, clock
    ) -> None:
        """Test that applying the same notification twice equals applying it once."""
        await store.put(make_order("order-1"))
        provider.add_payment("999", external_reference="order-1")
        notification = Notification(payment_id="999", topic="payment")

        once = await reconciler.reconcile(notification)
        clock.advance(5)
        twice = await reconciler.reconcile(notification)

        assert twice.model_dump(exclude={"updated_at"}) == once.model_dump(exclude={"updated_at"})
        assert twice.updated_at > once.updated_at

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_duplicates_converge(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order
    ) -> None:
        """Test concurrent redeliveries of the same payment."""
        await store.put(make_order("order-1"))
        provider.add_payment("999", external_reference="order-1", status="rejected",
                             status_detail="cc_rejected_other_reason")
        notification = Notification(payment_id="999", topic="payment")

        await asyncio.gather(*(reconciler.reconcile(notification) for _ in range(5)))

        order = await store.get("order-1")
        assert order.status == "rejected"
        assert order.payment_status_detail == "cc_rejected_other_reason"
        assert len(provider.payment_calls) == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_reference_leaves_store_unchanged(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order
    ) -> None:
        """Test that foreign notifications are dropped silently."""
        existing = make_order("order-1")
        await store.put(existing)
        provider.add_payment("999", external_reference="somebody-else")

        result = await reconciler.reconcile(Notification(payment_id="999", topic="payment"))

        assert result is None
        assert await store.list_all() == [existing]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "notification",
        [
            Notification(payment_id=None, topic="payment"),
            Notification(payment_id="999", topic="merchant_order"),
        ],
    )
    async def test_ignored_without_provider_call(
        self, reconciler: WebhookReconciler, provider, notification
    ) -> None:
        """Test no-ops for missing ids and non-payment topics."""
        assert await reconciler.reconcile(notification) is None
        assert provider.payment_calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_topic_is_treated_as_payment(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order
    ) -> None:
        """Test that an absent topic does not block reconciliation."""
        await store.put(make_order("order-1"))
        provider.add_payment("999", external_reference="order-1", status="pending",
                             status_detail="pending_contingency")

        updated = await reconciler.reconcile(Notification(payment_id="999", topic=None))

        assert updated.status == "pending"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_credential_is_noop(
        self, store: InMemoryOrderStore, provider, test_settings: Settings, make_order
    ) -> None:
        """Test that no credential means no fetch."""
        await store.put(make_order("order-1"))
        provider.add_payment("999", external_reference="order-1")
        settings = test_settings.model_copy(update={"mp_access_token": ""})
        reconciler = WebhookReconciler(store, provider, settings)

        assert await reconciler.reconcile(Notification(payment_id="999", topic="payment")) is None
        assert provider.payment_calls == []
        assert (await store.get("order-1")).status == "created"

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ProviderError("payment not found", status_code=404),
            ProviderError("timed out"),
            RuntimeError("boom"),
        ],
    )
    async def test_errors_are_swallowed(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order, error
    ) -> None:
        """Test that fetch failures are logged, not raised."""
        existing = make_order("order-1")
        await store.put(existing)
        provider.payment_error = error

        assert await reconciler.reconcile(Notification(payment_id="999", topic="payment")) is None
        assert await store.get("order-1") == existing

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payment_without_status_is_dropped(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order
    ) -> None:
        """Test that a payment without status does not touch the order."""
        existing = make_order("order-1")
        await store.put(existing)
        provider.add_payment("999", external_reference="order-1", status=None)

        assert await reconciler.reconcile(Notification(payment_id="999", topic="payment")) is None
        assert await store.get("order-1") == existing

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_later_status_without_detail_blanks_it(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order
    ) -> None:
        """Test last-write-wins for the status detail."""
        await store.put(make_order("order-1"))
        provider.add_payment("1", external_reference="order-1", status="pending",
                             status_detail="pending_waiting_payment")
        await reconciler.reconcile(Notification(payment_id="1", topic="payment"))

        provider.add_payment("2", external_reference="order-1", status="approved",
                             status_detail=None)
        updated = await reconciler.reconcile(Notification(payment_id="2", topic="payment"))

        assert updated.status == "approved"
        assert updated.payment_id == "2"
        assert updated.payment_status_detail is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_status_never_reverts_to_created(
        self, reconciler: WebhookReconciler, store: InMemoryOrderStore, provider, make_order
    ) -> None:
        """Test that a reported created status does not overwrite progress."""
        await store.put(make_order("order-1", status="approved"))
        provider.add_payment("999", external_reference="order-1", status="created")

        updated = await reconciler.reconcile(Notification(payment_id="999", topic="payment"))

        assert updated.status == "approved"
