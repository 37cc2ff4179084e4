"""
Custom exception classes for the application.

Every error that can reach a webhook caller derives from AppError. The
dispatcher turns them into `{ok: false, details}` responses using
`public_message`, so internal detail never leaks to the cart platform.
"""

from typing import Optional, Any
from datetime import datetime, timezone


INTERNAL_ERROR_MESSAGE = "An internal error has occurred"


class AppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        code: Error code (e.g., "ITEM_NOT_FOUND")
        message: Internal message, logged
        status_code: HTTP status code returned to the caller
        details: Additional context, logged
        public_message: Text placed in the response `details`
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
        public_message: Optional[str] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.public_message = public_message or message
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to log-friendly format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ConfigurationError(AppError):
    """Required credentials are missing (503)."""

    def __init__(self, missing: list[str]):
        super().__init__(
            code="SERVICE_UNAVAILABLE",
            message=f"Missing configuration: {', '.join(missing)}",
            status_code=503,
            details={"missing": missing},
            public_message="Service Unavailable. Check the webhook error logs."
        )


class RequestValidationError(AppError):
    """Malformed or forbidden webhook request (400)."""

    def __init__(self, message: str):
        super().__init__(
            code="BAD_REQUEST",
            message=message,
            status_code=400
        )


class PaymentRejectedError(AppError):
    """
    The cart cannot be accepted.

    This is a business outcome, so it answers 200 with ok=false as the
    pre-payment webhook contract requires.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="PAYMENT_REJECTED",
            message=message,
            status_code=200,
            details=details
        )


class ItemNotFoundError(AppError):
    """A cart item has no counterpart in the catalog (500)."""

    def __init__(self, code: str, collection_id: Optional[str] = None):
        super().__init__(
            code="ITEM_NOT_FOUND",
            message="Item not found",
            status_code=500,
            details={"item_code": code, "collection_id": collection_id},
            public_message=INTERNAL_ERROR_MESSAGE
        )


class CatalogMisconfiguredError(AppError):
    """The catalog lacks the code field entirely (500)."""

    def __init__(self, field: str, collection_id: Optional[str] = None):
        super().__init__(
            code="CATALOG_MISCONFIGURED",
            message=(
                f"Could not find the code field ({field}) in the collection. "
                "This field must exist and not be empty for all items in the collection."
            ),
            status_code=500,
            details={"field": field, "collection_id": collection_id},
            public_message=INTERNAL_ERROR_MESSAGE
        )


class ExternalServiceError(AppError):
    """External service failure (500)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=500,
            details={"service": service, **(details or {})},
            public_message=INTERNAL_ERROR_MESSAGE
        )


class RateLimitError(ExternalServiceError):
    """External service throttled us (429)."""

    def __init__(self, service: str):
        super().__init__(
            service=service,
            message=f"{service} rate limit reached"
        )
        self.code = "RATE_LIMITED"
        self.status_code = 429
        self.public_message = "Rate limit reached"


class InvalidInventoryItemError(AppError):
    """Inventory update payload is incomplete (500)."""

    def __init__(self, codes: list[str]):
        super().__init__(
            code="INVALID_INVENTORY_ITEMS",
            message=f"Invalid inventory items for update: {', '.join(codes)}",
            status_code=500,
            details={"codes": codes},
            public_message="Internal Server Error"
        )


class ShiptheoryAuthError(ExternalServiceError):
    """Shiptheory refused our credentials."""

    def __init__(self):
        super().__init__(
            service="shiptheory",
            message="Could not authenticate against Shiptheory."
        )
        self.public_message = "Internal Server Error"
