"""
Shiptheory shipment creation.

Authenticates with email and password, then books one shipment per Foxy
transaction.
"""

from typing import Optional
import requests
import structlog

from config import Settings
from exceptions import ConfigurationError, ExternalServiceError, ShiptheoryAuthError
from integrations.base import ProviderClient, TransactionForwarder, DEFAULT_TIMEOUT_SECONDS
from models.cart import extract_cart_items
from utils.number_utils import to_number

logger = structlog.get_logger(__name__)


SHIPTHEORY_BASE_URL = "https://api.shiptheory.com/v1/"
SHIPMENTS_KEY = "fx:shipments"


def unique_reference(transaction_id, shipment_number: int) -> str:
    return f"{transaction_id}S{shipment_number}"


def tx_to_shipment(transaction: dict) -> dict:
    """
    Build a Shiptheory shipment from a Foxy transaction.

    The recipient comes from the first Foxy shipment and every item is
    assumed to travel in it.

    Returns:
        Shipment dict, empty when the transaction has no shipments
    """
    embedded = transaction.get("_embedded") or {}
    shipments = embedded.get(SHIPMENTS_KEY) or []
    if not shipments:
        return {}

    transaction_id = transaction.get("id")
    items = extract_cart_items(transaction)
    products = [
        {
            "height": item.height,
            "name": item.name,
            "qty": item.quantity,
            "sku": item.code or f"{transaction_id}-{i}",
            "value": item.price,
            "weight": item.weight,
            "width": item.width,
        }
        for i, item in enumerate(items)
    ]
    weight = sum(to_number(item.weight) or 0 for item in items)

    shipment = shipments[0]
    return {
        "products": products,
        "recipient": {
            "address_line_1": shipment.get("address1"),
            "address_line_2": shipment.get("address2"),
            "city": shipment.get("city"),
            "country": shipment.get("country"),
            "email": transaction.get("customer_email"),
            "firstname": shipment.get("first_name"),
            "lastname": shipment.get("last_name"),
            "postcode": shipment.get("postal_code"),
            "telephone": shipment.get("phone") or "",
        },
        "reference": unique_reference(transaction_id, 0),
        "reference2": transaction_id,
        "shipment_detail": {
            "parcels": 1,
            "value": transaction.get("total_item_price"),
            "weight": weight,
        },
    }


class ShiptheoryClient(ProviderClient, TransactionForwarder):
    """Shiptheory API client holding its bearer token once authenticated."""

    service = "shiptheory"

    def __init__(
        self,
        email: Optional[str],
        password: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        missing = [name for name, value in (
            ("FOXY_SHIPTHEORY_EMAIL", email),
            ("FOXY_SHIPTHEORY_PASSWORD", password),
        ) if not value]
        if missing:
            raise ConfigurationError(missing)
        super().__init__(session=session, timeout=timeout)
        self.email = email
        self.password = password
        self.token: Optional[str] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "ShiptheoryClient":
        return cls(
            email=settings.foxy_shiptheory_email,
            password=settings.foxy_shiptheory_password,
            session=session,
            timeout=settings.http_timeout_seconds
        )

    def credentials(self) -> dict:
        return {"email": self.email, "password": self.password}

    def default_headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def build_endpoint(self, path: str) -> str:
        return f"{SHIPTHEORY_BASE_URL}{path}"

    def authenticate(self) -> bool:
        """Obtain a token unless one is held already."""
        if not self.token:
            data = self.request(
                "POST",
                self.build_endpoint("token"),
                json={"email": self.email, "password": self.password}
            )
            if data.get("success"):
                self.token = (data.get("data") or {}).get("token")
            logger.info("shiptheory_authenticated", success=bool(self.token))
        return bool(self.token)

    def shipment(self, transaction: dict) -> dict:
        """
        Book a shipment.

        Raises:
            ExternalServiceError: If called before authenticating
        """
        if not self.token:
            raise ExternalServiceError(self.service, "Must be authenticated to send a shipment")
        return self.request(
            "POST",
            self.build_endpoint("shipments"),
            json=tx_to_shipment(transaction)
        )

    def forward_transaction(self, transaction: dict) -> dict:
        """
        Authenticate and book the transaction's shipment.

        Raises:
            ShiptheoryAuthError: If Shiptheory refuses the credentials
        """
        if not self.authenticate():
            raise ShiptheoryAuthError()
        result = self.shipment(transaction)
        logger.info(
            "shiptheory_shipment_sent",
            transaction_id=transaction.get("id"),
            success=result.get("success")
        )
        return result
