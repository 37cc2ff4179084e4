"""
Webflow pre-payment webhook service.

Checks cart prices and inventory against Webflow CMS collections. Only the
first kind of problem found is reported: prices, then inventory.
"""

from typing import Optional
import requests
import structlog

from config import Settings, get_settings
from integrations.webflow import WebflowCatalog
from models.cart import CartItem, extract_cart_items
from models.catalog import ComparablePair
from models.webhook import WebhookEvent, WebhookResponse
from services.cart_validation_service import CartValidator
from services.response_service import MessageFormatter, build_response
from services.webhook_service import WebhookDispatcher
from utils.number_utils import parse_float

logger = structlog.get_logger(__name__)


WEBFLOW_REQUIRED_SETTINGS = ("foxy_webflow_token",)


def _has_value(value) -> bool:
    """Set, or a value reading as zero."""
    return bool(value) or parse_float(value) == 0


class WebflowWebhookService:
    """Pre-payment validation against Webflow."""

    def __init__(
        self,
        catalog: WebflowCatalog,
        validator: CartValidator,
        formatter: MessageFormatter,
        settings: Settings
    ):
        self.catalog = catalog
        self.validator = validator
        self.formatter = formatter
        self.settings = settings

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "WebflowWebhookService":
        return cls(
            WebflowCatalog.from_settings(settings, session=session),
            CartValidator.from_settings(settings),
            MessageFormatter.from_settings(settings),
            settings
        )

    def extract_items(self, payload: dict) -> list[CartItem]:
        """Cart items, without the customer information update marker."""
        marker = self.settings.foxy_skip_update_info_name
        return [item for item in extract_cart_items(payload) if item.name != marker]

    def item_problems(self, item: CartItem) -> list[str]:
        problems = []
        if not _has_value(item.price):
            problems.append(f"{item.name} has no price.")
        if not _has_value(item.quantity):
            problems.append(f"{item.name} has no quantity.")
        if not _has_value(item.code):
            problems.append(f"{item.name} has no code.")
        if not self.catalog.collection_id(item):
            problems.append(f"{item.name} has no collection_id.")
        return problems

    def invalid_items(self, items: list[CartItem]) -> list[CartItem]:
        invalid = []
        for item in items:
            problems = self.item_problems(item)
            if problems:
                logger.info("cart_item_invalid", name=item.name, problems=" ".join(problems))
                invalid.append(item)
        return invalid

    def pre_payment(self, payload: dict) -> WebhookResponse:
        """
        Validate the cart.

        Returns:
            200 ok, or 200 not ok naming invalid items, mismatched prices or
            insufficient inventory
        """
        items = self.extract_items(payload)
        invalid = self.invalid_items(items)
        if invalid:
            return build_response(
                f"Invalid items: {','.join(item.name or '' for item in invalid)}"
            )

        canonical_items = self.catalog.fetch_canonical_items(items)
        pairs = [
            ComparablePair(cart_item=item, canonical_item=canonical)
            for item, canonical in zip(items, canonical_items)
        ]
        outcome = self.validator.validate(pairs)
        if outcome.ok:
            logger.info("payment_approved", transaction_id=payload.get("id"))
            return build_response()
        return build_response(self.formatter.first_failure(outcome))


def build_webflow_dispatcher(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None
) -> WebhookDispatcher:
    """Dispatcher for the Webflow webhook."""
    settings = settings or get_settings()
    return WebhookDispatcher(
        name="webflow",
        settings=settings,
        required=WEBFLOW_REQUIRED_SETTINGS,
        handlers={
            WebhookEvent.VALIDATION_PAYMENT: lambda payload: (
                WebflowWebhookService.from_settings(settings, session=session).pre_payment(payload)
            ),
        }
    )
