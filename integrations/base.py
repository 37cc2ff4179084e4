"""
Provider interfaces and the shared HTTP client.

Datastores answer "what does the catalog say about these cart items";
forwarders push a completed transaction to a third party. Concrete
providers are picked per webhook route.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence
import requests
import structlog

from exceptions import ExternalServiceError, RateLimitError
from models.cart import CartItem
from models.catalog import CanonicalItem

logger = structlog.get_logger(__name__)


DEFAULT_TIMEOUT_SECONDS = 10


class CatalogDataStore(ABC):
    """A catalog able to describe cart items canonically."""

    @abstractmethod
    def credentials(self) -> dict:
        """Credentials in use, for diagnostics."""

    @abstractmethod
    def fetch_canonical_items(self, cart_items: Sequence[CartItem]) -> list[CanonicalItem]:
        """
        Fetch the catalog records for the cart items.

        Raises:
            ExternalServiceError: If the provider call fails
        """


class InventoryWriter(ABC):
    """A catalog whose stock can be written back."""

    @abstractmethod
    def update_inventory(self, items: Sequence[CanonicalItem]) -> dict:
        """
        Persist new inventory levels.

        Args:
            items: Canonical items whose `inventory` holds the new level

        Returns:
            Provider response
        """


class TransactionForwarder(ABC):
    """A third party notified of completed transactions."""

    @abstractmethod
    def credentials(self) -> dict:
        """Credentials in use, for diagnostics."""

    @abstractmethod
    def forward_transaction(self, transaction: dict) -> Any:
        """Send a Foxy transaction to the provider."""


class ProviderClient:
    """
    Thin requests wrapper shared by every provider.

    Maps throttling to RateLimitError and every other transport or HTTP
    failure to ExternalServiceError.
    """

    service = "provider"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        self.session = session or requests.Session()
        self.timeout = timeout

    def default_headers(self) -> dict:
        return {"Content-Type": "application/json"}

    def request(
        self,
        method: str,
        url: str,
        expect_json: bool = True,
        **kwargs
    ) -> Any:
        """
        Issue a request to the provider.

        Args:
            method: HTTP method
            url: Full URL
            expect_json: Decode the body as JSON
            **kwargs: Passed to requests (params, json, data)

        Returns:
            Decoded JSON, or the response when expect_json is False

        Raises:
            RateLimitError: On HTTP 429
            ExternalServiceError: On any other failure
        """
        headers = {**self.default_headers(), **kwargs.pop("headers", {})}
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                "provider_request_failed",
                service=self.service,
                url=url,
                error=str(e)
            )
            raise ExternalServiceError(self.service, f"Request failed: {e}")

        if response.status_code == 429:
            logger.warning("provider_rate_limited", service=self.service, url=url)
            raise RateLimitError(self.service)

        if response.status_code >= 400:
            logger.error(
                "provider_http_error",
                service=self.service,
                url=url,
                status_code=response.status_code
            )
            raise ExternalServiceError(
                self.service,
                f"HTTP {response.status_code} from {self.service}",
                details={"status_code": response.status_code}
            )

        if not expect_json:
            return response
        try:
            return response.json()
        except ValueError:
            raise ExternalServiceError(self.service, "Response is not valid JSON")
