"""
Wix Stores catalog.

Each cart item carries a `slug` option naming its Wix product; the variant is
the one whose SKU equals the cart item code.
"""

import json
from typing import Optional, Sequence
import requests
import structlog

from config import Settings
from exceptions import ConfigurationError, PaymentRejectedError
from integrations.base import CatalogDataStore, ProviderClient, DEFAULT_TIMEOUT_SECONDS
from models.cart import CartItem
from models.catalog import CanonicalItem

logger = structlog.get_logger(__name__)


WIX_PRODUCTS_QUERY_URL = "https://www.wixapis.com/stores-reader/v1/products/query"


class WixDataStore(ProviderClient, CatalogDataStore):
    """Wix products and variants as a catalog."""

    service = "wix"

    def __init__(
        self,
        api_key: Optional[str],
        account_id: Optional[str],
        site_id: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        missing = [name for name, value in (
            ("FOXY_WIX_API_KEY", api_key),
            ("FOXY_WIX_ACCOUNT_ID", account_id),
            ("FOXY_WIX_SITE_ID", site_id),
        ) if not value]
        if missing:
            raise ConfigurationError(missing)
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key
        self.account_id = account_id
        self.site_id = site_id

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "WixDataStore":
        return cls(
            api_key=settings.foxy_wix_api_key,
            account_id=settings.foxy_wix_account_id,
            site_id=settings.foxy_wix_site_id,
            session=session,
            timeout=settings.http_timeout_seconds
        )

    def credentials(self) -> dict:
        return {
            "apiKey": self.api_key,
            "accountId": self.account_id,
            "siteId": self.site_id,
        }

    def default_headers(self) -> dict:
        return {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "wix-account-id": self.account_id,
            "wix-site-id": self.site_id,
        }

    def query_product(self, slug: str) -> dict:
        """
        Fetch the product with this slug, variants included.

        Raises:
            PaymentRejectedError: If exactly one product is not found
        """
        data = self.request(
            "POST",
            WIX_PRODUCTS_QUERY_URL,
            json={
                "includeVariants": True,
                "query": {"filter": json.dumps({"slug": slug})},
            }
        )
        if data.get("totalResults") != 1 or not data.get("products"):
            raise PaymentRejectedError(
                f"Cannot find product in Wix by slug {slug}",
                details={"slug": slug, "total_results": data.get("totalResults")}
            )
        return data["products"][0]

    @staticmethod
    def find_variant(product: dict, code: Optional[str]) -> dict:
        """
        Variant whose SKU is the cart item code.

        Raises:
            PaymentRejectedError: If no variant matches
        """
        for variant in product.get("variants") or []:
            if (variant.get("variant") or {}).get("sku") == code:
                return variant
        raise PaymentRejectedError(f"Cannot find variant by sku {code}", details={"code": code})

    @staticmethod
    def to_canonical(product: dict, variant: dict, code: Optional[str]) -> CanonicalItem:
        """
        Normalize a Wix variant.

        Untracked stock means unlimited while in stock and none otherwise.
        """
        price_data = (variant.get("variant") or {}).get("priceData") or {}
        stock = variant.get("stock") or {}
        if stock.get("trackQuantity"):
            inventory = stock.get("quantity")
        elif stock.get("inStock"):
            inventory = None
        else:
            inventory = 0

        return CanonicalItem(
            code=code,
            name=product.get("name"),
            price=price_data.get("discountedPrice"),
            inventory=inventory,
            wix_product_id=product.get("id"),
            wix_variant_id=variant.get("id")
        )

    def fetch_canonical_items(self, cart_items: Sequence[CartItem]) -> list[CanonicalItem]:
        """
        Resolve cart items one after another.

        Raises:
            PaymentRejectedError: On a missing slug, product or variant
        """
        canonical_items = []
        for item in cart_items:
            slug = item.option("slug")
            if not slug:
                raise PaymentRejectedError(
                    f"Cannot find slug in item options for item {item.name}",
                    details={"code": item.code}
                )
            product = self.query_product(str(slug))
            variant = self.find_variant(product, item.code)
            canonical_items.append(self.to_canonical(product, variant, item.code))

        logger.info("wix_items_resolved", count=len(canonical_items))
        return canonical_items
