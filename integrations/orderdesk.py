"""
OrderDesk inventory integration.

Fetches inventory items by code and writes stock levels back in one batch.

API reference: https://apidocs.orderdesk.com/
"""

from typing import Optional, Sequence
import requests
import structlog

from config import Settings
from exceptions import ConfigurationError, InvalidInventoryItemError
from integrations.base import (
    CatalogDataStore,
    InventoryWriter,
    ProviderClient,
    DEFAULT_TIMEOUT_SECONDS,
)
from models.cart import CartItem
from models.catalog import CanonicalItem

logger = structlog.get_logger(__name__)


ORDERDESK_BASE_URL = "https://app.orderdesk.me/api/v2/"
UPDATE_SOURCE = "Foxy-OrderDesk-Webhook"

# Fields an inventory item needs before OrderDesk accepts it back
REQUIRED_UPDATE_FIELDS = ("id", "name", "code", "price", "stock")


def _present(value) -> bool:
    return value == 0 or bool(value)


class OrderDeskDataStore(ProviderClient, CatalogDataStore, InventoryWriter):
    """OrderDesk inventory items as a catalog."""

    service = "orderdesk"

    def __init__(
        self,
        api_key: Optional[str],
        store_id: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        if not api_key or not store_id:
            raise ConfigurationError(
                [name for name, value in (
                    ("FOXY_ORDERDESK_API_KEY", api_key),
                    ("FOXY_ORDERDESK_STORE_ID", store_id),
                ) if not value]
            )
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key
        self.store_id = store_id

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "OrderDeskDataStore":
        return cls(
            api_key=settings.foxy_orderdesk_api_key,
            store_id=settings.foxy_orderdesk_store_id,
            session=session,
            timeout=settings.http_timeout_seconds
        )

    def credentials(self) -> dict:
        return {"id": self.store_id, "key": self.api_key}

    def default_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "ORDERDESK-API-KEY": self.api_key,
            "ORDERDESK-STORE-ID": self.store_id,
        }

    def build_endpoint(self, path: str) -> str:
        return f"{ORDERDESK_BASE_URL}{path}"

    # ===================
    # READ
    # ===================

    def fetch_inventory_items(self, codes: Sequence[str]) -> list[dict]:
        """
        Fetch raw inventory items by code.

        Args:
            codes: Product codes

        Returns:
            OrderDesk inventory item dicts
        """
        if not codes:
            return []
        data = self.request(
            "GET",
            self.build_endpoint("inventory-items"),
            params={"code": ",".join(codes)}
        )
        items = data.get("inventory_items") or []
        logger.info("orderdesk_items_fetched", requested=len(codes), found=len(items))
        return items

    @staticmethod
    def convert_to_canonical(record: dict) -> CanonicalItem:
        """
        OrderDesk `stock` becomes `inventory`; other fields ride along.

        Items are tagged with `update_source` for the write-back.
        """
        fields = {k: v for k, v in record.items() if k != "stock"}
        fields["inventory"] = record.get("stock")
        fields["update_source"] = UPDATE_SOURCE
        return CanonicalItem.model_validate(fields)

    def fetch_canonical_items(self, cart_items: Sequence[CartItem]) -> list[CanonicalItem]:
        codes = [item.code for item in cart_items if item.code]
        return [self.convert_to_canonical(r) for r in self.fetch_inventory_items(codes)]

    # ===================
    # WRITE
    # ===================

    @staticmethod
    def to_inventory_item(item: CanonicalItem) -> dict:
        """Canonical item back to OrderDesk shape, `inventory` as `stock`."""
        record = item.model_dump(exclude={"inventory", "parent_code"}, exclude_none=True)
        record["stock"] = item.inventory
        return record

    @staticmethod
    def validate_inventory_item(record: dict) -> bool:
        """All required fields present; zero price or stock is allowed."""
        return all(_present(record.get(field)) for field in REQUIRED_UPDATE_FIELDS)

    def update_inventory(self, items: Sequence[CanonicalItem]) -> dict:
        """
        Write stock levels in one batch.

        Raises:
            InvalidInventoryItemError: If any item lacks a required field
        """
        records = [self.to_inventory_item(item) for item in items]
        invalid = [str(r.get("code")) for r in records if not self.validate_inventory_item(r)]
        if invalid:
            raise InvalidInventoryItemError(invalid)

        result = self.request(
            "PUT",
            self.build_endpoint("batch-inventory-items"),
            json=records
        )
        logger.info(
            "orderdesk_inventory_updated",
            items=len(records),
            status=result.get("status")
        )
        return result
