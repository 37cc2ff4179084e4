"""
Catalog schemas: canonical items, pairing and validation results.

A CanonicalItem is what every datastore record is normalized to before the
cart is checked against it. It only lives for one request.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import field_validator

from config.settings import SKIP_ALL_SENTINEL
from models.base import PayloadSchema
from models.cart import CartItem


class CanonicalItem(PayloadSchema):
    """
    Normalized catalog record.

    `price` or `inventory` set to None means the catalog does not track it,
    and the matching check is skipped. Provider fields (ids, stock) are kept
    as extras for write-back.
    """

    code: Optional[str] = None
    name: Optional[str] = None
    price: Optional[Any] = None
    inventory: Optional[Any] = None
    parent_code: Optional[str] = None

    @field_validator("code", "parent_code", mode="before")
    @classmethod
    def code_as_string(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v)

    @property
    def label(self) -> str:
        return self.name or self.code or ""


@dataclass(frozen=True)
class ComparablePair:
    """A cart item and its catalog counterpart (None when unmatched)."""

    cart_item: CartItem
    canonical_item: Optional[CanonicalItem] = None

    @property
    def matched(self) -> bool:
        return self.canonical_item is not None


@dataclass
class ValidationOutcome:
    """Pairs that failed each check, in cart order."""

    price_mismatches: list[ComparablePair] = field(default_factory=list)
    inventory_shortfalls: list[ComparablePair] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.price_mismatches and not self.inventory_shortfalls


def parse_codes(raw: Optional[str]) -> tuple[frozenset[str], bool]:
    """
    Parse a comma separated skip list.

    Returns:
        Tuple of (codes, skip_all). `__ALL__` anywhere in the list sets
        skip_all.
    """
    codes = frozenset(
        code.strip() for code in (raw or "").split(",") if code.strip()
    )
    return codes - {SKIP_ALL_SENTINEL}, SKIP_ALL_SENTINEL in codes


@dataclass(frozen=True)
class SkipList:
    """Codes exempt from price and inventory checks."""

    price_codes: frozenset[str] = frozenset()
    inventory_codes: frozenset[str] = frozenset()
    price_all: bool = False
    inventory_all: bool = False

    @classmethod
    def from_config(cls, price: Optional[str], inventory: Optional[str]) -> "SkipList":
        price_codes, price_all = parse_codes(price)
        inventory_codes, inventory_all = parse_codes(inventory)
        return cls(
            price_codes=price_codes,
            inventory_codes=inventory_codes,
            price_all=price_all,
            inventory_all=inventory_all,
        )

    def skips_price(self, code: Optional[str]) -> bool:
        return self.price_all or code in self.price_codes

    def skips_inventory(self, code: Optional[str]) -> bool:
        return self.inventory_all or code in self.inventory_codes
