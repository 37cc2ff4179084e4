"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    PayloadSchema,
)
from models.cart import (
    CartItem,
    extract_cart_items,
)
from models.catalog import (
    CanonicalItem,
    ComparablePair,
    ValidationOutcome,
    SkipList,
    parse_codes,
)
from models.webhook import (
    WebhookEvent,
    WebhookRequest,
    WebhookResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "PayloadSchema",

    # Cart
    "CartItem",
    "extract_cart_items",

    # Catalog
    "CanonicalItem",
    "ComparablePair",
    "ValidationOutcome",
    "SkipList",
    "parse_codes",

    # Webhook
    "WebhookEvent",
    "WebhookRequest",
    "WebhookResponse",
]
