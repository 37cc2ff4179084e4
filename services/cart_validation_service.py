"""
Cart validation against canonical catalog items.

Pairs cart items with catalog records by code and applies the price and
inventory rules, honoring the configured skip lists.
"""

from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional
import structlog

from config import Settings, get_settings
from exceptions import ItemNotFoundError
from models.cart import CartItem
from models.catalog import CanonicalItem, ComparablePair, SkipList, ValidationOutcome
from utils.number_utils import parse_float, to_number

logger = structlog.get_logger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def pair_items(
    cart_items: Iterable[CartItem],
    canonical_items: Iterable[CanonicalItem]
) -> list[ComparablePair]:
    """
    Pair each cart item with the catalog item sharing its code.

    Every cart item appears exactly once, in cart order. The first catalog
    item with a matching code wins; unmatched cart items get None.
    """
    by_code: dict[str, CanonicalItem] = {}
    for canonical in canonical_items:
        if canonical.code is not None:
            by_code.setdefault(canonical.code, canonical)
    return [
        ComparablePair(cart_item=item, canonical_item=by_code.get(item.code))
        for item in cart_items
    ]


class CartValidator:
    """
    Price and inventory rules.

    Usage:
        validator = CartValidator.from_settings(settings)
        outcome = validator.validate(pair_items(cart_items, canonical_items))
    """

    def __init__(
        self,
        skip_list: Optional[SkipList] = None,
        today: Callable[[], date] = _utc_today
    ):
        self.skip_list = skip_list or SkipList()
        self._today = today

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "CartValidator":
        return cls(
            SkipList.from_config(
                price=settings.foxy_skip_price_codes,
                inventory=settings.foxy_skip_inventory_codes
            ),
            **kwargs
        )

    # ===================
    # RULES
    # ===================

    def valid_price(
        self,
        cart_item: CartItem,
        canonical_item: Optional[CanonicalItem]
    ) -> bool:
        """
        Cart price equals the catalog price.

        Passes when the code is exempt, the item is unmatched or the catalog
        has no price. Values that do not parse as numbers never match.
        """
        if self.skip_list.skips_price(cart_item.code):
            return True
        if canonical_item is None or _blank(canonical_item.price):
            return True
        cart_price = parse_float(cart_item.price)
        canonical_price = parse_float(canonical_item.price)
        if cart_price is None or canonical_price is None:
            return False
        return cart_price == canonical_price

    def valid_inventory(
        self,
        cart_item: CartItem,
        canonical_item: Optional[CanonicalItem]
    ) -> bool:
        """
        Catalog inventory covers the cart quantity.

        Passes when the code is exempt, the quantity is empty or zero, the
        item is unmatched or the catalog does not track inventory. Values
        that are not numbers pass with a warning.
        """
        if self.skip_list.skips_inventory(cart_item.code):
            return True
        if not cart_item.quantity or to_number(cart_item.quantity) == 0:
            return True
        if canonical_item is None or _blank(canonical_item.inventory):
            return True

        quantity = to_number(cart_item.quantity)
        inventory = to_number(canonical_item.inventory)
        if quantity is None or inventory is None:
            logger.warning(
                "inventory_not_numeric",
                code=cart_item.code,
                quantity=cart_item.quantity,
                inventory=canonical_item.inventory
            )
            return True
        return quantity <= inventory

    def should_evaluate(self, cart_item: CartItem) -> bool:
        """
        Renewals of subscriptions that already started are not checked.

        Compares UTC calendar dates; a subscription starting today is new.
        """
        started = cart_item.subscription_start()
        return started is None or started >= self._today()

    # ===================
    # AGGREGATION
    # ===================

    def validate(self, pairs: Iterable[ComparablePair]) -> ValidationOutcome:
        """
        Apply every rule to every evaluable pair.

        Returns:
            ValidationOutcome listing failing pairs per rule

        Raises:
            ItemNotFoundError: If a cart item has no catalog counterpart
        """
        outcome = ValidationOutcome()
        for pair in pairs:
            if not pair.matched:
                logger.error("cart_item_unmatched", code=pair.cart_item.code)
                raise ItemNotFoundError(pair.cart_item.code)
            if not self.should_evaluate(pair.cart_item):
                logger.info(
                    "subscription_renewal_skipped",
                    code=pair.cart_item.code,
                    start=pair.cart_item.subscription_start_date
                )
                continue
            if not self.valid_price(pair.cart_item, pair.canonical_item):
                outcome.price_mismatches.append(pair)
            if not self.valid_inventory(pair.cart_item, pair.canonical_item):
                outcome.inventory_shortfalls.append(pair)

        logger.info(
            "cart_validated",
            price_mismatches=len(outcome.price_mismatches),
            inventory_shortfalls=len(outcome.inventory_shortfalls)
        )
        return outcome


def get_cart_validator(settings: Optional[Settings] = None) -> CartValidator:
    """Get a validator configured from settings."""
    return CartValidator.from_settings(settings or get_settings())
