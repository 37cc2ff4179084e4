"""
Cart schemas for Foxy webhook payloads.

Foxy sends line items under `_embedded["fx:items"]`. Most values arrive as
strings; they are kept as sent and coerced only where compared.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import PayloadSchema
from utils.field_utils import lookup_field


ITEMS_KEY = "fx:items"
ITEM_OPTIONS_KEY = "fx:item_options"

# Foxy writes offsets as -0700; fromisoformat before 3.11 needs -07:00
COMPACT_OFFSET = re.compile(r"(T.*[+-]\d{2})(\d{2})$")


class CartItem(PayloadSchema):
    """
    A line item from the cart or transaction.

    Unknown Foxy fields are preserved as extras.
    """

    code: Optional[str] = None
    name: Optional[str] = None
    price: Optional[Any] = None
    quantity: Optional[Any] = None
    parent_code: Optional[str] = None
    subscription_frequency: Optional[str] = None
    subscription_start_date: Optional[str] = None
    weight: Optional[Any] = None
    width: Optional[Any] = None
    height: Optional[Any] = None
    embedded: dict[str, Any] = Field(default_factory=dict, alias="_embedded")

    @field_validator("code", "parent_code", mode="before")
    @classmethod
    def code_as_string(cls, v: Any) -> Optional[str]:
        """Codes are compared as strings, whatever type Foxy sent."""
        if v is None:
            return None
        return str(v)

    @property
    def label(self) -> str:
        """Name shown to shoppers, falling back to the code."""
        return self.name or self.code or ""

    @property
    def options(self) -> list[dict]:
        return self.embedded.get(ITEM_OPTIONS_KEY) or []

    def option(self, name: str) -> Optional[Any]:
        """
        Read an item option.

        Options may be set as item fields or in `fx:item_options`; the
        item field wins.

        Returns:
            Option value or None if not set
        """
        value = lookup_field(self.model_dump(exclude={"embedded"}), name)
        if value:
            return value
        wanted = name.strip().lower()
        for option in self.options:
            if str(option.get("name", "")).strip().lower() == wanted:
                return option.get("value")
        return None

    def subscription_start(self) -> Optional[date]:
        """UTC calendar date of the subscription start, if any."""
        if not self.subscription_frequency or not self.subscription_start_date:
            return None
        raw = self.subscription_start_date.replace("Z", "+00:00")
        raw = COMPACT_OFFSET.sub(r"\1:\2", raw)
        try:
            started = datetime.fromisoformat(raw)
        except ValueError:
            try:
                return date.fromisoformat(raw[:10])
            except ValueError:
                return None
        if started.tzinfo is not None:
            started = started.astimezone(timezone.utc)
        return started.date()


def extract_cart_items(payload: Any) -> list[CartItem]:
    """
    Retrieve the line items from a Foxy payload.

    Args:
        payload: Parsed webhook body

    Returns:
        List of CartItem, empty when the payload has none
    """
    if not isinstance(payload, dict):
        return []
    embedded = payload.get("_embedded") or {}
    if not isinstance(embedded, dict):
        return []
    return [CartItem.model_validate(item) for item in embedded.get(ITEMS_KEY) or []]
