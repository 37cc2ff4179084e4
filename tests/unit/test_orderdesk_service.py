"""
Unit tests for the OrderDesk datastore and webhook service.

Run: pytest tests/unit/test_orderdesk_service.py -v
"""

import pytest
import requests

from exceptions import (
    ConfigurationError,
    ExternalServiceError,
    InvalidInventoryItemError,
    ItemNotFoundError,
    RateLimitError,
)
from integrations.orderdesk import OrderDeskDataStore
from models.cart import CartItem
from models.catalog import CanonicalItem
from services.orderdesk_service import OrderDeskWebhookService, build_orderdesk_dispatcher
from tests.factories import CartFactory, CartItemFactory, FoxyRequestFactory, OrderDeskItemFactory


# ===================
# FIXTURES
# ===================

@pytest.fixture
def datastore(mock_session):
    return OrderDeskDataStore("od-key", "od-store", session=mock_session)


@pytest.fixture
def service(settings, mock_session):
    return OrderDeskWebhookService.from_settings(settings, session=mock_session)


# ===================
# DATASTORE TESTS
# ===================

class TestOrderDeskDataStore:
    """Tests for the OrderDesk client."""

    def test_requires_credentials(self):
        with pytest.raises(ConfigurationError) as exc:
            OrderDeskDataStore("key", None)
        assert exc.value.details["missing"] == ["FOXY_ORDERDESK_STORE_ID"]

    def test_credentials(self, datastore):
        assert datastore.credentials() == {"id": "od-store", "key": "od-key"}

    def test_fetch_sends_codes_and_auth_headers(self, datastore, mock_session):
        mock_session.queue({"status": "success", "inventory_items": []})

        datastore.fetch_inventory_items(["A", "B"])

        method, url, kwargs = mock_session.calls[0]
        assert method == "GET"
        assert url == "https://app.orderdesk.me/api/v2/inventory-items"
        assert kwargs["params"] == {"code": "A,B"}
        assert kwargs["headers"]["ORDERDESK-API-KEY"] == "od-key"
        assert kwargs["headers"]["ORDERDESK-STORE-ID"] == "od-store"

    def test_stock_becomes_inventory(self, datastore, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", price=5, stock=3)]})

        items = datastore.fetch_canonical_items([CartItem(code="A", quantity=1)])

        assert items[0].code == "A"
        assert items[0].inventory == 3
        assert items[0].price == 5
        assert items[0].model_extra["id"].startswith("od-")
        assert items[0].model_extra["update_source"] == "Foxy-OrderDesk-Webhook"

    def test_rate_limit(self, datastore, mock_session):
        mock_session.queue(status_code=429)

        with pytest.raises(RateLimitError):
            datastore.fetch_inventory_items(["A"])

    def test_transport_failure(self, datastore, mock_session):
        mock_session.queue_error(requests.exceptions.ConnectionError("down"))

        with pytest.raises(ExternalServiceError):
            datastore.fetch_inventory_items(["A"])

    def test_validate_inventory_item_accepts_zero(self):
        record = {"id": "1", "name": "Mug", "code": "A", "price": 0, "stock": 0}
        assert OrderDeskDataStore.validate_inventory_item(record)

    def test_validate_inventory_item_requires_id(self):
        record = {"name": "Mug", "code": "A", "price": 1, "stock": 1}
        assert not OrderDeskDataStore.validate_inventory_item(record)

    def test_update_rejects_incomplete_items(self, datastore, mock_session):
        item = CanonicalItem(code="A", name="Mug", price=1, inventory=2)

        with pytest.raises(InvalidInventoryItemError):
            datastore.update_inventory([item])
        assert mock_session.calls == []

    def test_update_puts_stock(self, datastore, mock_session):
        mock_session.queue({"status": "success"})
        item = CanonicalItem.model_validate({"id": "9", "code": "A", "name": "Mug", "price": 1, "inventory": 2})

        datastore.update_inventory([item])

        method, url, kwargs = mock_session.calls[0]
        assert method == "PUT"
        assert url.endswith("batch-inventory-items")
        assert kwargs["json"] == [{"id": "9", "code": "A", "name": "Mug", "price": 1, "stock": 2}]


# ===================
# PRE-PAYMENT TESTS
# ===================

class TestPrePayment:
    """Tests for validation/payment."""

    def test_valid_cart(self, service, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", price=10, stock=5)]})
        payload = CartFactory.create([CartItemFactory.create(code="A", price="10.00", quantity=2)])

        response = service.pre_payment(payload)

        assert response.body() == {"ok": True, "details": ""}

    def test_reports_inventory_and_price_together(self, service, mock_session):
        mock_session.queue({"inventory_items": [
            OrderDeskItemFactory.create("A", name="Mug", price=10, stock=1),
            OrderDeskItemFactory.create("B", name="Cup", price=3, stock=10),
        ]})
        payload = CartFactory.create([
            CartItemFactory.create(code="A", name="Mug", price="10", quantity=2),
            CartItemFactory.create(code="B", name="Cup", price="2", quantity=1),
        ])

        response = service.pre_payment(payload)

        assert response.status_code == 200
        assert response.ok is False
        assert response.details == (
            "Insufficient inventory for these items Mug: only 1 available\n"
            "Prices do not match: Cup"
        )

    def test_unknown_item_rejects_the_cart(self, service, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", price=10, stock=5)]})
        payload = CartFactory.create([
            CartItemFactory.create(code="A", price="10", quantity=1),
            CartItemFactory.create(code="FAKE", price="0.01", quantity=50),
        ])

        with pytest.raises(ItemNotFoundError):
            service.pre_payment(payload)


# ===================
# TRANSACTION TESTS
# ===================

class TestTransactionCreated:
    """Tests for stock deduction."""

    def test_deducts_quantity(self, service, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", stock=10)]})
        mock_session.queue({"status": "success"})
        payload = CartFactory.create([CartItemFactory.create(code="A", quantity=3)])

        response = service.transaction_created(payload)

        assert response.ok
        _, _, kwargs = mock_session.calls_to("batch-inventory-items")[0]
        assert kwargs["json"][0]["stock"] == 7
        assert kwargs["json"][0]["code"] == "A"
        assert kwargs["json"][0]["update_source"] == "Foxy-OrderDesk-Webhook"

    def test_skip_all_makes_no_calls(self, settings, mock_session):
        settings = settings.model_copy(update={"foxy_skip_inventory_update_codes": "__ALL__"})
        service = OrderDeskWebhookService.from_settings(settings, session=mock_session)

        response = service.transaction_created(CartFactory.create())

        assert response.body() == {"ok": True, "details": ""}
        assert mock_session.calls == []

    @pytest.mark.parametrize("codes", [None, "", "  "])
    def test_unset_skip_list_makes_no_calls(self, settings, mock_session, codes):
        settings = settings.model_copy(update={"foxy_skip_inventory_update_codes": codes})
        service = OrderDeskWebhookService.from_settings(settings, session=mock_session)

        response = service.transaction_created(CartFactory.create([CartItemFactory.create(code="A")]))

        assert response.ok
        assert mock_session.calls == []

    def test_skipped_and_unmatched_codes_are_not_updated(self, settings, mock_session):
        settings = settings.model_copy(update={"foxy_skip_inventory_update_codes": "B"})
        service = OrderDeskWebhookService.from_settings(settings, session=mock_session)
        mock_session.queue({"inventory_items": [
            OrderDeskItemFactory.create("A", stock=5),
            OrderDeskItemFactory.create("B", stock=5),
        ]})
        mock_session.queue({"status": "success"})
        payload = CartFactory.create([
            CartItemFactory.create(code="A", quantity=1),
            CartItemFactory.create(code="B", quantity=1),
            CartItemFactory.create(code="C", quantity=1),
        ])

        service.transaction_created(payload)

        _, _, kwargs = mock_session.calls_to("batch-inventory-items")[0]
        assert [item["code"] for item in kwargs["json"]] == ["A"]

    def test_provider_failure_is_500(self, service, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", stock=10)]})
        mock_session.queue({"status": "error", "message": "nope"})

        response = service.transaction_created(CartFactory.create([CartItemFactory.create(code="A")]))

        assert response.status_code == 500
        assert response.body() == {"ok": False, "details": "Internal Server Error"}

    def test_nothing_to_update(self, service, mock_session):
        mock_session.queue({"inventory_items": []})

        response = service.transaction_created(CartFactory.create([CartItemFactory.create(code="A")]))

        assert response.ok
        assert mock_session.calls_to("batch-inventory-items") == []


# ===================
# DISPATCHER TESTS
# ===================

class TestOrderDeskDispatcher:
    """End to end through the dispatcher."""

    def test_missing_credentials_is_503(self, make_settings, mock_session):
        dispatcher = build_orderdesk_dispatcher(
            make_settings(foxy_webhook_encryption_key="k"),
            session=mock_session
        )

        response = dispatcher.handle(FoxyRequestFactory.create(key="k"))

        assert response.status_code == 503
        assert mock_session.calls == []

    def test_signed_transaction(self, settings, webhook_key, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", stock=10)]})
        mock_session.queue({"status": "success"})
        dispatcher = build_orderdesk_dispatcher(settings, session=mock_session)
        payload = CartFactory.create([CartItemFactory.create(code="A", quantity=2)])

        response = dispatcher.handle(
            FoxyRequestFactory.create(payload, event="transaction/created", key=webhook_key)
        )

        assert response.status_code == 200
        assert response.ok

    def test_unsigned_transaction_is_forbidden(self, settings, mock_session):
        dispatcher = build_orderdesk_dispatcher(settings, session=mock_session)

        response = dispatcher.handle(FoxyRequestFactory.create(event="transaction/created"))

        assert response.status_code == 400
        assert response.details == "Forbidden"
        assert mock_session.calls == []

    def test_signed_pre_payment_approves_cart(self, settings, webhook_key, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", price=10, stock=5)]})
        dispatcher = build_orderdesk_dispatcher(settings, session=mock_session)
        payload = CartFactory.create([CartItemFactory.create(code="A", price=10, quantity=2)])

        response = dispatcher.handle(FoxyRequestFactory.create(payload, key=webhook_key))

        assert response.status_code == 200
        assert response.body() == {"ok": True, "details": ""}

    def test_unknown_item_is_500(self, settings, webhook_key, mock_session):
        mock_session.queue({"inventory_items": [OrderDeskItemFactory.create("A", price=10, stock=5)]})
        dispatcher = build_orderdesk_dispatcher(settings, session=mock_session)
        payload = CartFactory.create([
            CartItemFactory.create(code="A", price=10, quantity=1),
            CartItemFactory.create(code="FAKE", price="0.01", quantity=50),
        ])

        response = dispatcher.handle(FoxyRequestFactory.create(payload, key=webhook_key))

        assert response.status_code == 500
        assert response.body() == {"ok": False, "details": "An internal error has occurred"}

    def test_unknown_event_is_400(self, settings, webhook_key, mock_session):
        dispatcher = build_orderdesk_dispatcher(settings, session=mock_session)

        response = dispatcher.handle(
            FoxyRequestFactory.create(event="subscription/cancelled", key=webhook_key)
        )

        assert response.status_code == 400
        assert response.body() == {"ok": False, "details": "Bad Request"}
        assert mock_session.calls == []
