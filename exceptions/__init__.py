"""
Custom exceptions module.
"""

from exceptions.errors import (
    INTERNAL_ERROR_MESSAGE,

    # Base exceptions
    AppError,
    ConfigurationError,
    RequestValidationError,
    PaymentRejectedError,
    ExternalServiceError,
    RateLimitError,

    # Catalog
    ItemNotFoundError,
    CatalogMisconfiguredError,
    InvalidInventoryItemError,

    # Forwarders
    ShiptheoryAuthError,
)

__all__ = [
    "INTERNAL_ERROR_MESSAGE",

    # Base
    "AppError",
    "ConfigurationError",
    "RequestValidationError",
    "PaymentRejectedError",
    "ExternalServiceError",
    "RateLimitError",

    # Catalog
    "ItemNotFoundError",
    "CatalogMisconfiguredError",
    "InvalidInventoryItemError",

    # Forwarders
    "ShiptheoryAuthError",
]
