"""
Foxy webhook dispatching.

Every integration answers webhooks the same way:

1. Configuration gate: required credentials present, else 503
2. Request validity: body, method, content type, signature, JSON, else 400
3. Routing on the foxy-webhook-event header, unknown events 400
4. Handler call; AppError and unexpected exceptions become responses here
   and nowhere else

Signature contract:
- HMAC-SHA256 over the raw body, hex encoded, compared in constant time
- A validation/payment call without a signature header is accepted, older
  store configurations do not sign pre-payment calls
"""

import hashlib
import hmac
import json
from typing import Callable, Mapping, Optional, Sequence
import structlog

from config import Settings
from exceptions import AppError, ConfigurationError, INTERNAL_ERROR_MESSAGE
from models.webhook import (
    SIGNATURE_HEADER,
    WebhookEvent,
    WebhookRequest,
    WebhookResponse,
)
from services.response_service import build_response

logger = structlog.get_logger(__name__)


Handler = Callable[[dict], WebhookResponse]

BAD_REQUEST = "Bad Request"


# ===================
# SIGNATURE
# ===================

def compute_signature(body: str, key: str) -> str:
    """Hex HMAC-SHA256 of the body."""
    return hmac.new(
        key.encode("utf-8"),
        body.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def valid_signature(body: str, signature: Optional[str], key: str) -> bool:
    """
    Verify a Foxy signature.

    Args:
        body: Raw request body
        signature: Value of the foxy-webhook-signature header
        key: Webhook encryption key

    Returns:
        True if signature is valid
    """
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(body, key), signature.strip().lower())


def verify_webhook_signature(request: WebhookRequest, key: Optional[str]) -> bool:
    """
    Verify the signature of a webhook request.

    Without a configured key every request passes; the integrations that
    require signing refuse to start without one.
    """
    if not key:
        logger.warning("webhook_encryption_key_not_set")
        return True
    signature = request.header(SIGNATURE_HEADER)
    if request.event == WebhookEvent.VALIDATION_PAYMENT.value and not signature:
        return True
    return valid_signature(request.body or "", signature, key)


# ===================
# REQUEST VALIDITY
# ===================

def _media_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def request_error(request: Optional[WebhookRequest], key: Optional[str]) -> Optional[str]:
    """
    Find the first reason a request is not a valid Foxy webhook.

    Checks run in a fixed order and stop at the first failure.

    Returns:
        Error message, or None when the request is valid
    """
    if request is None:
        return "Request Event does not Exist"
    if not request.body:
        return "Empty request."
    if (request.http_method or "").upper() != "POST":
        return "Method not allowed"
    if _media_type(request.header("content-type")) != "application/json":
        return "Content type should be application/json"
    if not verify_webhook_signature(request, key):
        return "Forbidden"
    try:
        json.loads(request.body)
    except ValueError:
        return "Payload is not valid JSON."
    return None


def error_response(e: Exception) -> WebhookResponse:
    """Convert exception to webhook response."""
    if isinstance(e, AppError):
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            "webhook_failed",
            code=e.code,
            error=e.message,
            status_code=e.status_code,
            details=e.details
        )
        return build_response(e.public_message, e.status_code)
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return build_response(INTERNAL_ERROR_MESSAGE, 500)


# ===================
# DISPATCHER
# ===================

class WebhookDispatcher:
    """
    Validates and routes webhook requests for one integration.

    Usage:
        dispatcher = WebhookDispatcher(
            name="orderdesk",
            settings=settings,
            required=["foxy_orderdesk_api_key"],
            handlers={WebhookEvent.VALIDATION_PAYMENT: service.pre_payment},
        )
        response = dispatcher.handle(request)
    """

    def __init__(
        self,
        name: str,
        settings: Settings,
        required: Sequence[str],
        handlers: Mapping[WebhookEvent, Handler]
    ):
        self.name = name
        self.settings = settings
        self.required = list(required)
        self.handlers = dict(handlers)

    def missing_configuration(self) -> list[str]:
        missing = self.settings.missing(*self.required)
        for name in missing:
            logger.error("configuration_missing", webhook=self.name, setting=name)
        return missing

    def handle(self, request: Optional[WebhookRequest]) -> WebhookResponse:
        """
        Answer one webhook request.

        Returns:
            WebhookResponse, never raises
        """
        missing = self.missing_configuration()
        if missing:
            return error_response(ConfigurationError(missing))

        error = request_error(request, self.settings.foxy_webhook_encryption_key)
        if error:
            logger.warning("webhook_rejected", webhook=self.name, reason=error)
            return build_response(error, 400)

        event = request.event
        handler = self._handler_for(event)
        if handler is None:
            logger.warning("webhook_event_unsupported", webhook=self.name, foxy_event=event)
            return build_response(BAD_REQUEST, 400)

        logger.info("webhook_received", webhook=self.name, foxy_event=event)
        try:
            response = handler(json.loads(request.body))
        except Exception as e:
            return error_response(e)

        logger.info(
            "webhook_answered",
            webhook=self.name,
            foxy_event=event,
            status_code=response.status_code,
            ok=response.ok
        )
        return response

    def _handler_for(self, event: Optional[str]) -> Optional[Handler]:
        try:
            return self.handlers.get(WebhookEvent(event))
        except ValueError:
            return None
