"""
OrderDesk webhook service.

Handles:
- validation/payment: checks cart prices and stock against OrderDesk
- transaction/created: deducts purchased quantities from OrderDesk stock
"""

from typing import Optional
import requests
import structlog

from config import Settings, get_settings
from integrations.orderdesk import OrderDeskDataStore
from models.cart import extract_cart_items
from models.catalog import CanonicalItem, ComparablePair, parse_codes
from models.webhook import WebhookEvent, WebhookResponse
from services.cart_validation_service import CartValidator, pair_items
from services.response_service import MessageFormatter, build_response
from services.webhook_service import WebhookDispatcher
from utils.number_utils import to_number

logger = structlog.get_logger(__name__)


ORDERDESK_REQUIRED_SETTINGS = (
    "foxy_orderdesk_api_key",
    "foxy_orderdesk_store_id",
    "foxy_webhook_encryption_key",
)


def _whole(value: float):
    return int(value) if value.is_integer() else value


class OrderDeskWebhookService:
    """
    OrderDesk pre-payment validation and inventory deduction.

    Usage:
        service = OrderDeskWebhookService.from_settings(settings)
        response = service.pre_payment(payload)
    """

    def __init__(
        self,
        datastore: OrderDeskDataStore,
        validator: CartValidator,
        formatter: MessageFormatter,
        settings: Settings
    ):
        self.datastore = datastore
        self.validator = validator
        self.formatter = formatter
        self.settings = settings

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "OrderDeskWebhookService":
        return cls(
            OrderDeskDataStore.from_settings(settings, session=session),
            CartValidator.from_settings(settings),
            MessageFormatter.from_settings(settings),
            settings
        )

    def build_pairs(self, payload: dict) -> list[ComparablePair]:
        cart_items = extract_cart_items(payload)
        canonical_items = self.datastore.fetch_canonical_items(cart_items)
        return pair_items(cart_items, canonical_items)

    def pre_payment(self, payload: dict) -> WebhookResponse:
        """
        Validate the cart; all problems are reported at once.

        Returns:
            200 ok, or 200 not ok with inventory and price details

        Raises:
            ItemNotFoundError: If OrderDesk does not know a cart item
        """
        outcome = self.validator.validate(self.build_pairs(payload))
        if outcome.ok:
            logger.info("payment_approved", transaction_id=payload.get("id"))
        return build_response(self.formatter.combined(outcome))

    def stock_updates(self, pairs: list[ComparablePair]) -> list[CanonicalItem]:
        """
        New stock levels for the purchased items.

        Unmatched items, codes exempt from updates and non-numeric stock are
        left out.
        """
        skip_codes, _ = parse_codes(self.settings.foxy_skip_inventory_update_codes)
        updates = []
        for pair in pairs:
            code = pair.cart_item.code
            if not pair.matched:
                logger.warning("inventory_update_unmatched", code=code)
                continue
            if code in skip_codes:
                logger.info("inventory_update_skipped", code=code)
                continue
            inventory = to_number(pair.canonical_item.inventory)
            quantity = to_number(pair.cart_item.quantity)
            if inventory is None or quantity is None:
                logger.warning(
                    "inventory_update_not_numeric",
                    code=code,
                    inventory=pair.canonical_item.inventory,
                    quantity=pair.cart_item.quantity
                )
                continue
            updates.append(
                pair.canonical_item.model_copy(update={"inventory": _whole(inventory - quantity)})
            )
        return updates

    def transaction_created(self, payload: dict) -> WebhookResponse:
        """
        Deduct purchased quantities from OrderDesk stock.

        Returns:
            200 ok, or 500 when OrderDesk does not confirm the update
        """
        if self.settings.inventory_updates_disabled:
            logger.info("inventory_updates_disabled", transaction_id=payload.get("id"))
            return build_response()

        updates = self.stock_updates(self.build_pairs(payload))
        if not updates:
            logger.info("inventory_update_nothing_to_do", transaction_id=payload.get("id"))
            return build_response()

        result = self.datastore.update_inventory(updates)
        if result.get("status") == "success":
            return build_response()

        logger.error(
            "inventory_update_failed",
            transaction_id=payload.get("id"),
            status=result.get("status"),
            message=result.get("message")
        )
        return build_response("Internal Server Error", 500)


def build_orderdesk_dispatcher(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None
) -> WebhookDispatcher:
    """Dispatcher for the OrderDesk webhook."""
    settings = settings or get_settings()

    def service() -> OrderDeskWebhookService:
        return OrderDeskWebhookService.from_settings(settings, session=session)

    return WebhookDispatcher(
        name="orderdesk",
        settings=settings,
        required=ORDERDESK_REQUIRED_SETTINGS,
        handlers={
            WebhookEvent.VALIDATION_PAYMENT: lambda payload: service().pre_payment(payload),
            WebhookEvent.TRANSACTION_CREATED: lambda payload: service().transaction_created(payload),
        }
    )
