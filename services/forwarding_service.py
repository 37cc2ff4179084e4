"""
Transaction forwarding webhooks: Shiptheory, iDevAffiliate and Lune.

Each answers transaction/created by handing the transaction to its
provider and translating the provider's answer into a webhook response.
"""

from typing import Optional
import requests
import structlog

from config import Settings, get_settings
from integrations.idevaffiliate import IdevAffiliateClient
from integrations.lune import LuneClient
from integrations.shiptheory import ShiptheoryClient
from models.webhook import WebhookEvent, WebhookResponse
from services.response_service import build_response
from services.webhook_service import WebhookDispatcher

logger = structlog.get_logger(__name__)


SHIPTHEORY_REQUIRED_SETTINGS = (
    "foxy_shiptheory_email",
    "foxy_shiptheory_password",
    "foxy_webhook_encryption_key",
)
IDEV_REQUIRED_SETTINGS = ("foxy_idev_api_url",)
LUNE_REQUIRED_SETTINGS = ("foxy_lune_api_key",)

LUNE_NO_ESTIMATE = "No lune CO2 estimate ID is provided"
LUNE_ORDER_FAILED = (
    "An internal error has occurred when creating a lune order "
    "based on the CO2 estimate ID"
)


# ===================
# SHIPTHEORY
# ===================

def shiptheory_transaction_created(client: ShiptheoryClient, payload: dict) -> WebhookResponse:
    """Book the shipment; anything but a confirmed success is a 500."""
    result = client.forward_transaction(payload)
    if result.get("success") in (True, "true"):
        return build_response()
    logger.error(
        "shiptheory_shipment_rejected",
        transaction_id=payload.get("id"),
        result=result
    )
    return build_response("Internal Server Error", 500)


def build_shiptheory_dispatcher(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None
) -> WebhookDispatcher:
    settings = settings or get_settings()
    return WebhookDispatcher(
        name="shiptheory",
        settings=settings,
        required=SHIPTHEORY_REQUIRED_SETTINGS,
        handlers={
            WebhookEvent.TRANSACTION_CREATED: lambda payload: shiptheory_transaction_created(
                ShiptheoryClient.from_settings(settings, session=session),
                payload
            ),
        }
    )


# ===================
# IDEVAFFILIATE
# ===================

def idev_transaction_created(client: IdevAffiliateClient, payload: dict) -> WebhookResponse:
    pushed = client.forward_transaction(payload)
    logger.info(
        "idev_transaction_processed",
        transaction_id=payload.get("id"),
        pushed=sum(pushed),
        skipped=len(pushed) - sum(pushed)
    )
    return build_response()


def build_idevaffiliate_dispatcher(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None
) -> WebhookDispatcher:
    settings = settings or get_settings()
    return WebhookDispatcher(
        name="idevaffiliate",
        settings=settings,
        required=IDEV_REQUIRED_SETTINGS,
        handlers={
            WebhookEvent.TRANSACTION_CREATED: lambda payload: idev_transaction_created(
                IdevAffiliateClient.from_settings(settings, session=session),
                payload
            ),
        }
    )


# ===================
# LUNE
# ===================

def lune_transaction_created(client: LuneClient, payload: dict) -> WebhookResponse:
    """
    Place the offset order.

    A missing estimate is not an error. A Lune answer without an order id is
    reported as ok=false with status 200.
    """
    order = client.forward_transaction(payload)
    if order is None:
        return WebhookResponse(details=LUNE_NO_ESTIMATE)
    if order.get("id"):
        return WebhookResponse(details=f"Order {order['id']} created successfully on lune")
    logger.error("lune_order_failed", transaction_id=payload.get("id"), result=order)
    return build_response(LUNE_ORDER_FAILED)


def build_lune_dispatcher(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None
) -> WebhookDispatcher:
    settings = settings or get_settings()
    return WebhookDispatcher(
        name="lune",
        settings=settings,
        required=LUNE_REQUIRED_SETTINGS,
        handlers={
            WebhookEvent.TRANSACTION_CREATED: lambda payload: lune_transaction_created(
                LuneClient.from_settings(settings, session=session),
                payload
            ),
        }
    )
