"""
Lune carbon offset orders.

The shipping rates offered at checkout carry a Lune CO2 estimate id in a
transaction attribute named `rate_id_<shipping service id>`. When the
customer picked such a rate, an offset order is placed from the estimate.
"""

from typing import Optional
import requests
import structlog

from config import Settings
from exceptions import ConfigurationError
from integrations.base import ProviderClient, TransactionForwarder, DEFAULT_TIMEOUT_SECONDS

logger = structlog.get_logger(__name__)


LUNE_ORDER_BY_ESTIMATE_URL = "https://api.lune.co/v1/orders/by-estimate"
RATE_ATTRIBUTE_PREFIX = "rate_id_"


def estimate_id(transaction: dict) -> Optional[str]:
    """Estimate id attached to the selected shipping rate, if any."""
    embedded = transaction.get("_embedded") or {}
    shipments = embedded.get("fx:shipments") or []
    if not shipments:
        return None
    attribute_name = f"{RATE_ATTRIBUTE_PREFIX}{shipments[0].get('shipping_service_id')}"
    for attribute in embedded.get("fx:attributes") or []:
        if attribute.get("name") == attribute_name:
            return attribute.get("value") or None
    return None


class LuneClient(ProviderClient, TransactionForwarder):
    """Lune API client."""

    service = "lune"

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        if not api_key:
            raise ConfigurationError(["FOXY_LUNE_API_KEY"])
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "LuneClient":
        return cls(
            api_key=settings.foxy_lune_api_key,
            session=session,
            timeout=settings.http_timeout_seconds
        )

    def credentials(self) -> dict:
        return {"apiKey": self.api_key}

    def default_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def create_order(self, estimate: str, transaction: dict) -> dict:
        """Place an offset order from an estimate."""
        return self.request(
            "POST",
            LUNE_ORDER_BY_ESTIMATE_URL,
            json={
                "estimate_id": estimate,
                "metadata": {
                    "customer_email": transaction.get("customer_email"),
                    "transaction_id": str(transaction.get("id")),
                },
            }
        )

    def forward_transaction(self, transaction: dict) -> Optional[dict]:
        """
        Place the order for the transaction's estimate.

        Returns:
            Lune order, or None when no estimate was selected
        """
        estimate = estimate_id(transaction)
        if not estimate:
            logger.info("lune_estimate_missing", transaction_id=transaction.get("id"))
            return None
        order = self.create_order(estimate, transaction)
        logger.info(
            "lune_order_placed",
            transaction_id=transaction.get("id"),
            order_id=order.get("id")
        )
        return order
