"""
Wix pre-payment webhook service.
"""

from typing import Optional
import requests
import structlog

from config import Settings, get_settings
from integrations.wix import WixDataStore
from models.cart import extract_cart_items
from models.webhook import WebhookEvent, WebhookResponse
from services.cart_validation_service import CartValidator, pair_items
from services.response_service import MessageFormatter, build_response
from services.webhook_service import WebhookDispatcher

logger = structlog.get_logger(__name__)


WIX_REQUIRED_SETTINGS = (
    "foxy_wix_api_key",
    "foxy_wix_account_id",
    "foxy_wix_site_id",
)


class WixWebhookService:
    """Pre-payment validation against Wix Stores."""

    def __init__(
        self,
        datastore: WixDataStore,
        validator: CartValidator,
        formatter: MessageFormatter
    ):
        self.datastore = datastore
        self.validator = validator
        self.formatter = formatter

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "WixWebhookService":
        return cls(
            WixDataStore.from_settings(settings, session=session),
            CartValidator.from_settings(settings),
            MessageFormatter.from_settings(settings)
        )

    def pre_payment(self, payload: dict) -> WebhookResponse:
        """Validate the cart; inventory and price problems are reported together."""
        cart_items = extract_cart_items(payload)
        canonical_items = self.datastore.fetch_canonical_items(cart_items)
        outcome = self.validator.validate(pair_items(cart_items, canonical_items))
        if outcome.ok:
            logger.info("payment_approved", transaction_id=payload.get("id"))
            return build_response()
        return build_response(self.formatter.combined(outcome))


def build_wix_dispatcher(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None
) -> WebhookDispatcher:
    """Dispatcher for the Wix webhook."""
    settings = settings or get_settings()
    return WebhookDispatcher(
        name="wix",
        settings=settings,
        required=WIX_REQUIRED_SETTINGS,
        handlers={
            WebhookEvent.VALIDATION_PAYMENT: lambda payload: (
                WixWebhookService.from_settings(settings, session=session).pre_payment(payload)
            ),
        }
    )
