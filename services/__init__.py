"""
Business logic services.

Each service handles one webhook or one shared concern.
"""

from services.cart_validation_service import CartValidator, pair_items
from services.response_service import MessageFormatter, build_response
from services.webhook_service import WebhookDispatcher, verify_webhook_signature
from services.orderdesk_service import OrderDeskWebhookService, build_orderdesk_dispatcher
from services.webflow_service import WebflowWebhookService, build_webflow_dispatcher
from services.wix_service import WixWebhookService, build_wix_dispatcher
from services.forwarding_service import (
    build_idevaffiliate_dispatcher,
    build_lune_dispatcher,
    build_shiptheory_dispatcher,
)

__all__ = [
    "CartValidator",
    "pair_items",
    "MessageFormatter",
    "build_response",
    "WebhookDispatcher",
    "verify_webhook_signature",
    "OrderDeskWebhookService",
    "build_orderdesk_dispatcher",
    "WebflowWebhookService",
    "build_webflow_dispatcher",
    "WixWebhookService",
    "build_wix_dispatcher",
    "build_idevaffiliate_dispatcher",
    "build_lune_dispatcher",
    "build_shiptheory_dispatcher",
]
