"""
Unit tests for the Shiptheory, iDevAffiliate and Lune webhooks.

Run: pytest tests/unit/test_forwarding_service.py -v
"""

import pytest

from exceptions import RequestValidationError, ShiptheoryAuthError
from integrations.idevaffiliate import IdevAffiliateClient, affiliate_id_from_code
from integrations.lune import LuneClient, estimate_id
from integrations.shiptheory import ShiptheoryClient, tx_to_shipment, unique_reference
from services.forwarding_service import (
    LUNE_NO_ESTIMATE,
    LUNE_ORDER_FAILED,
    build_idevaffiliate_dispatcher,
    build_lune_dispatcher,
    build_shiptheory_dispatcher,
    lune_transaction_created,
    shiptheory_transaction_created,
)
from tests.factories import CartFactory, CartItemFactory, FoxyRequestFactory


SHIPMENT = {
    "address1": "1 High St",
    "address2": "",
    "city": "Leeds",
    "country": "GB",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "postal_code": "LS1 1AA",
    "shipping_service_id": 42,
}


# ===================
# SHIPTHEORY
# ===================

@pytest.fixture
def shiptheory(mock_session):
    return ShiptheoryClient("ship@example.com", "secret", session=mock_session)


class TestTxToShipment:
    """Tests for the transaction to shipment mapping."""

    def test_no_shipments(self):
        assert tx_to_shipment(CartFactory.create(shipments=[])) == {}

    def test_maps_recipient_products_and_weight(self):
        transaction = CartFactory.create(
            items=[
                CartItemFactory.create(code="A", name="Mug", price="10", quantity=2, weight=1.5),
                CartItemFactory.create(code="", name="Cup", price="4", quantity=1, weight=0.5),
            ],
            id=555,
            shipments=[SHIPMENT]
        )

        shipment = tx_to_shipment(transaction)

        assert shipment["reference"] == "555S0"
        assert shipment["reference2"] == 555
        assert shipment["recipient"]["firstname"] == "Ada"
        assert shipment["recipient"]["postcode"] == "LS1 1AA"
        assert shipment["recipient"]["telephone"] == ""
        assert shipment["recipient"]["email"] == "buyer@example.com"
        assert [p["sku"] for p in shipment["products"]] == ["A", "555-1"]
        assert shipment["shipment_detail"] == {"parcels": 1, "value": 20.0, "weight": 2.0}

    def test_unique_reference(self):
        assert unique_reference(7, 3) == "7S3"


class TestShiptheoryClient:

    def test_authenticates_once(self, shiptheory, mock_session):
        mock_session.queue({"success": True, "data": {"token": "tok"}})

        assert shiptheory.authenticate()
        assert shiptheory.authenticate()
        assert len(mock_session.calls) == 1

    def test_shipment_uses_bearer_token(self, shiptheory, mock_session):
        mock_session.queue({"success": True, "data": {"token": "tok"}})
        mock_session.queue({"success": True})

        shiptheory.forward_transaction(CartFactory.create(shipments=[SHIPMENT]))

        _, url, kwargs = mock_session.calls[1]
        assert url == "https://api.shiptheory.com/v1/shipments"
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_refused_credentials(self, shiptheory, mock_session):
        mock_session.queue({"success": False})

        with pytest.raises(ShiptheoryAuthError):
            shiptheory.forward_transaction(CartFactory.create(shipments=[SHIPMENT]))


class TestShiptheoryWebhook:

    @pytest.mark.parametrize("success", [True, "true"])
    def test_success(self, shiptheory, mock_session, success):
        mock_session.queue({"success": True, "data": {"token": "tok"}})
        mock_session.queue({"success": success})

        response = shiptheory_transaction_created(shiptheory, CartFactory.create(shipments=[SHIPMENT]))

        assert response.body() == {"ok": True, "details": ""}

    def test_rejected_shipment_is_500(self, shiptheory, mock_session):
        mock_session.queue({"success": True, "data": {"token": "tok"}})
        mock_session.queue({"success": False})

        response = shiptheory_transaction_created(shiptheory, CartFactory.create(shipments=[SHIPMENT]))

        assert response.status_code == 500
        assert response.details == "Internal Server Error"

    def test_auth_failure_through_dispatcher(self, settings, webhook_key, mock_session):
        mock_session.queue({"success": False})
        dispatcher = build_shiptheory_dispatcher(settings, session=mock_session)
        payload = CartFactory.create(shipments=[SHIPMENT])

        response = dispatcher.handle(
            FoxyRequestFactory.create(payload, event="transaction/created", key=webhook_key)
        )

        assert response.status_code == 500
        assert response.details == "Internal Server Error"

    def test_requires_encryption_key(self, make_settings):
        dispatcher = build_shiptheory_dispatcher(
            make_settings(foxy_shiptheory_email="a@b.c", foxy_shiptheory_password="p")
        )

        response = dispatcher.handle(FoxyRequestFactory.create(event="transaction/created"))

        assert response.status_code == 503


# ===================
# IDEVAFFILIATE
# ===================

@pytest.fixture
def idev(mock_session):
    return IdevAffiliateClient("https://affiliates.example.com/sale.php", session=mock_session)


class TestAffiliateIdFromCode:

    @pytest.mark.parametrize("code, expected", [
        ("MUG-a42", "42"),
        ("MUG-A7", "7"),
        ("MUG-a42-x", None),
        ("MUG", None),
        (None, None),
    ])
    def test_suffix(self, code, expected):
        assert affiliate_id_from_code(code) == expected


class TestIdevAffiliate:

    def test_posts_affiliated_items_only(self, idev, mock_session):
        mock_session.queue(text="ok")
        transaction = CartFactory.create(
            items=[
                CartItemFactory.create(code="MUG-a42", price="10.00"),
                CartItemFactory.create(code="CUP", price="4.00"),
                CartItemFactory.create(code="HAT-a1", price=""),
            ],
            id=900
        )

        pushed = idev.forward_transaction(transaction)

        assert pushed == [True, False, False]
        method, url, kwargs = mock_session.calls[0]
        assert method == "POST"
        assert url == "https://affiliates.example.com/sale.php"
        assert kwargs["data"] == {"affiliate_id": "42", "idev_saleamt": "10.00", "idev_ordernum": 900}

    def test_secret_key_sent_when_configured(self, mock_session):
        client = IdevAffiliateClient("https://a.example.com", secret_key="s3", session=mock_session)
        mock_session.queue(text="ok")

        client.forward_transaction(CartFactory.create([CartItemFactory.create(code="MUG-a1")]))

        assert mock_session.calls[0][2]["data"]["idev_secret"] == "s3"

    def test_no_items_is_invalid(self, idev):
        with pytest.raises(RequestValidationError):
            idev.forward_transaction(CartFactory.create(items=[]))

    def test_no_items_through_dispatcher(self, settings, webhook_key, mock_session):
        dispatcher = build_idevaffiliate_dispatcher(settings, session=mock_session)

        response = dispatcher.handle(FoxyRequestFactory.create(
            CartFactory.create(items=[]), event="transaction/created", key=webhook_key
        ))

        assert response.status_code == 400
        assert response.details == "Invalid payload."

    def test_pre_payment_event_not_supported(self, settings, webhook_key, mock_session):
        dispatcher = build_idevaffiliate_dispatcher(settings, session=mock_session)

        response = dispatcher.handle(FoxyRequestFactory.create(key=webhook_key))

        assert response.status_code == 400
        assert response.details == "Bad Request"


# ===================
# LUNE
# ===================

@pytest.fixture
def lune(mock_session):
    return LuneClient("lune-key", session=mock_session)


def lune_transaction(value="est_123") -> dict:
    return CartFactory.create(
        id=31,
        shipments=[SHIPMENT],
        attributes=[
            {"name": "rate_id_41", "value": "est_other"},
            {"name": "rate_id_42", "value": value},
        ]
    )


class TestLune:

    def test_estimate_for_selected_rate(self):
        assert estimate_id(lune_transaction()) == "est_123"

    def test_no_estimate(self):
        assert estimate_id(CartFactory.create(shipments=[SHIPMENT], attributes=[])) is None

    def test_order_created(self, lune, mock_session):
        mock_session.queue({"id": "ord_1"})

        response = lune_transaction_created(lune, lune_transaction())

        assert response.body() == {"ok": True, "details": "Order ord_1 created successfully on lune"}
        _, url, kwargs = mock_session.calls[0]
        assert url == "https://api.lune.co/v1/orders/by-estimate"
        assert kwargs["json"] == {
            "estimate_id": "est_123",
            "metadata": {"customer_email": "buyer@example.com", "transaction_id": "31"},
        }
        assert kwargs["headers"]["Authorization"] == "Bearer lune-key"

    def test_missing_estimate_is_ok(self, lune, mock_session):
        response = lune_transaction_created(lune, lune_transaction(value=""))

        assert response.body() == {"ok": True, "details": LUNE_NO_ESTIMATE}
        assert mock_session.calls == []

    def test_order_without_id(self, lune, mock_session):
        mock_session.queue({"error": "bad estimate"})

        response = lune_transaction_created(lune, lune_transaction())

        assert response.status_code == 200
        assert response.body() == {"ok": False, "details": LUNE_ORDER_FAILED}

    def test_dispatcher(self, settings, webhook_key, mock_session):
        mock_session.queue({"id": "ord_2"})
        dispatcher = build_lune_dispatcher(settings, session=mock_session)

        response = dispatcher.handle(FoxyRequestFactory.create(
            lune_transaction(), event="transaction/created", key=webhook_key
        ))

        assert response.status_code == 200
        assert response.ok
