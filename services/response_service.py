"""
Webhook responses and rejection messages.

The pre-payment webhook contract is `{ok, details}`: a rejected cart is a
successful call (200, ok=false); only transport problems use other codes.
"""

from typing import Optional, Sequence

from config import Settings
from models.catalog import ComparablePair, ValidationOutcome
from models.webhook import WebhookResponse


DEFAULT_INSUFFICIENT_INVENTORY = "Insufficient inventory for these items"
DEFAULT_PRICE_MISMATCH = "Prices do not match:"


def build_response(details: str = "", status_code: int = 200) -> WebhookResponse:
    """
    Build a webhook response.

    Args:
        details: Why the request was rejected; empty means accepted
        status_code: HTTP status code

    Raises:
        ValueError: If a non-200 response has no details
    """
    details = details or ""
    if status_code != 200 and not details.strip():
        raise ValueError("An error response needs to specify details.")
    return WebhookResponse(
        status_code=status_code,
        ok=details == "",
        details=details
    )


class MessageFormatter:
    """Compose rejection details from validation outcomes."""

    def __init__(
        self,
        insufficient_inventory: Optional[str] = None,
        price_mismatch: Optional[str] = None
    ):
        self.insufficient_inventory_template = insufficient_inventory or DEFAULT_INSUFFICIENT_INVENTORY
        self.price_mismatch_template = price_mismatch or DEFAULT_PRICE_MISMATCH

    @classmethod
    def from_settings(cls, settings: Settings) -> "MessageFormatter":
        return cls(
            insufficient_inventory=settings.foxy_error_insufficient_inventory,
            price_mismatch=settings.foxy_error_price_mismatch
        )

    def insufficient_inventory(self, pairs: Sequence[ComparablePair]) -> str:
        """e.g. 'Insufficient inventory for these items Mug: only 2 available'"""
        if not pairs:
            return ""
        listed = ";".join(
            f"{self._catalog_label(p)}: only {self._available(p)} available"
            for p in pairs
        )
        return f"{self.insufficient_inventory_template} {listed}"

    def price_mismatch(self, pairs: Sequence[ComparablePair]) -> str:
        """e.g. 'Prices do not match: Mug, Cup'"""
        if not pairs:
            return ""
        listed = ", ".join(p.cart_item.label for p in pairs)
        return f"{self.price_mismatch_template} {listed}"

    def first_failure(self, outcome: ValidationOutcome) -> str:
        """Report price problems if any, otherwise inventory problems."""
        if outcome.price_mismatches:
            return self.price_mismatch(outcome.price_mismatches)
        return self.insufficient_inventory(outcome.inventory_shortfalls)

    def combined(self, outcome: ValidationOutcome) -> str:
        """Report inventory and price problems together, one per line."""
        messages = [
            self.insufficient_inventory(outcome.inventory_shortfalls),
            self.price_mismatch(outcome.price_mismatches),
        ]
        return "\n".join(m for m in messages if m)

    @staticmethod
    def _catalog_label(pair: ComparablePair) -> str:
        if pair.canonical_item is not None and pair.canonical_item.label:
            return pair.canonical_item.label
        return pair.cart_item.label

    @staticmethod
    def _available(pair: ComparablePair):
        inventory = pair.canonical_item.inventory if pair.canonical_item else None
        if isinstance(inventory, float) and inventory.is_integer():
            return int(inventory)
        return inventory
