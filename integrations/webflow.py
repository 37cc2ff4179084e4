"""
Webflow CMS catalog.

Webflow cannot filter collection items by an arbitrary field, so items are
found by paging through the collection sorted by name. Pages fetched while
resolving one cart are kept in a CollectionCache so later items never
refetch them; the cache dies with the request.

Search ends when the item is found, the collection is exhausted, or the next
offset passes the cap (500 by default).
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence
import requests
import structlog

from config import Settings
from exceptions import (
    CatalogMisconfiguredError,
    ConfigurationError,
    ItemNotFoundError,
)
from integrations.base import CatalogDataStore, ProviderClient, DEFAULT_TIMEOUT_SECONDS
from models.cart import CartItem
from models.catalog import CanonicalItem
from utils.field_utils import (
    field_name,
    inventory_check_disabled,
    lookup_field,
    record_fields,
)

logger = structlog.get_logger(__name__)


WEBFLOW_BASE_URL = "https://api.webflow.com/v2/"
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_OFFSET = 500


@dataclass
class WebflowPage:
    """One page of live collection items."""

    items: list[dict]
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @property
    def exhausted(self) -> bool:
        return not self.items or self.total <= self.offset + len(self.items)


class WebflowClient(ProviderClient):
    """Webflow Data API v2 client (collection items only)."""

    service = "webflow"

    def __init__(
        self,
        token: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        if not token:
            raise ConfigurationError(["FOXY_WEBFLOW_TOKEN"])
        super().__init__(session=session, timeout=timeout)
        self.token = token

    def default_headers(self) -> dict:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.token}",
        }

    def list_items(self, collection_id: str, limit: int, offset: int) -> WebflowPage:
        """
        Fetch one page of published items, sorted by name.

        Args:
            collection_id: Webflow collection id
            limit: Page size (max 100)
            offset: Items to skip
        """
        data = self.request(
            "GET",
            f"{WEBFLOW_BASE_URL}collections/{collection_id}/items/live",
            params={
                "limit": limit,
                "offset": offset,
                "sortBy": "name",
                "sortOrder": "asc",
            }
        )
        pagination = data.get("pagination") or {}
        items = data.get("items") or []
        page = WebflowPage(
            items=items,
            offset=pagination.get("offset", offset),
            limit=pagination.get("limit", limit),
            total=pagination.get("total", len(items)),
        )
        logger.info(
            "webflow_page_fetched",
            collection_id=collection_id,
            offset=page.offset,
            count=len(items),
            total=page.total
        )
        return page


@dataclass
class CollectionState:
    records: list[dict] = field(default_factory=list)
    next_offset: int = 0
    exhausted: bool = False


class CollectionCache:
    """
    Collection pages fetched during one cart resolution.

    Not shared between requests.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        self.overrides = dict(overrides or {})
        self._collections: dict[str, CollectionState] = {}

    def state(self, collection_id: str) -> CollectionState:
        return self._collections.setdefault(collection_id, CollectionState())

    def add_page(self, collection_id: str, page: WebflowPage, page_size: int) -> None:
        state = self.state(collection_id)
        state.records.extend(page.items)
        state.next_offset += page_size
        state.exhausted = page.exhausted

    def record_code(self, record: Any) -> Optional[Any]:
        return lookup_field(record, "code", self.overrides)

    def find_in(self, records: Sequence[dict], code: Optional[str]) -> Optional[dict]:
        """First record whose code matches, compared as trimmed strings."""
        if not code:
            return None
        wanted = str(code).strip()
        for record in records:
            value = self.record_code(record)
            if value is not None and str(value).strip() == wanted:
                return record
        return None

    def find(self, collection_id: str, code: Optional[str]) -> Optional[dict]:
        if collection_id not in self._collections:
            return None
        return self.find_in(self._collections[collection_id].records, code)


class WebflowCatalog(CatalogDataStore):
    """
    Webflow collections as a catalog.

    Usage:
        catalog = WebflowCatalog.from_settings(settings)
        canonical = catalog.fetch_canonical_items(cart_items)
    """

    def __init__(
        self,
        client: WebflowClient,
        overrides: Optional[Mapping[str, str]] = None,
        default_collection: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_offset: int = DEFAULT_MAX_OFFSET
    ):
        self.client = client
        self.overrides = dict(overrides or {})
        self.default_collection = default_collection
        self.page_size = page_size
        self.max_offset = max_offset

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "WebflowCatalog":
        client = WebflowClient(
            settings.foxy_webflow_token,
            session=session,
            timeout=settings.http_timeout_seconds
        )
        return cls(
            client,
            overrides=settings.field_overrides,
            default_collection=settings.foxy_webflow_collection,
            page_size=settings.foxy_webflow_page_size,
            max_offset=settings.foxy_webflow_max_offset
        )

    def credentials(self) -> dict:
        return {"token": self.client.token}

    def new_cache(self) -> CollectionCache:
        return CollectionCache(self.overrides)

    def collection_id(self, cart_item: CartItem) -> Optional[str]:
        """Item option `collection_id`, else the configured default."""
        value = cart_item.option("collection_id")
        if value:
            return str(value)
        return self.default_collection

    # ===================
    # RESOLUTION
    # ===================

    def find_item(self, cart_item: CartItem, cache: CollectionCache) -> dict:
        """
        Find the collection record for a cart item.

        Raises:
            ItemNotFoundError: If the item is not in the searchable range
            CatalogMisconfiguredError: If a page has no code field at all
        """
        collection_id = self.collection_id(cart_item)
        code = cart_item.code

        found = cache.find(collection_id, code)
        if found is not None:
            return found

        state = cache.state(collection_id)
        while not state.exhausted:
            offset = state.next_offset
            if offset > self.max_offset:
                logger.warning(
                    "webflow_search_gave_up",
                    collection_id=collection_id,
                    code=code,
                    offset=offset
                )
                raise ItemNotFoundError(code, collection_id)
            if offset:
                logger.info(
                    "webflow_item_not_in_first_items",
                    collection_id=collection_id,
                    code=code,
                    searched=offset
                )

            page = self.client.list_items(collection_id, limit=self.page_size, offset=offset)
            cache.add_page(collection_id, page, self.page_size)

            if page.items and all(cache.record_code(r) is None for r in page.items):
                raise CatalogMisconfiguredError(
                    field_name("code", self.overrides),
                    collection_id
                )

            found = cache.find_in(page.items, code)
            if found is not None:
                return found

        raise ItemNotFoundError(code, collection_id)

    def to_canonical(self, record: dict, collection_id: Optional[str] = None) -> CanonicalItem:
        """Normalize a collection record."""
        inventory_field = field_name("inventory", self.overrides)
        inventory = None
        if not inventory_check_disabled(inventory_field):
            inventory = lookup_field(record, "inventory", self.overrides)
            if inventory is None:
                logger.warning(
                    "webflow_inventory_field_missing",
                    field=inventory_field,
                    available=list(record_fields(record))
                )

        return CanonicalItem(
            code=lookup_field(record, "code", self.overrides),
            name=lookup_field(record, "name"),
            price=lookup_field(record, "price", self.overrides),
            inventory=inventory,
            webflow_id=record.get("id"),
            collection_id=collection_id
        )

    def fetch_canonical_items(
        self,
        cart_items: Sequence[CartItem],
        cache: Optional[CollectionCache] = None
    ) -> list[CanonicalItem]:
        """
        Resolve cart items one after another, sharing a cache.

        Returns:
            One canonical item per cart item, in cart order
        """
        cache = cache or self.new_cache()
        return [
            self.to_canonical(self.find_item(item, cache), self.collection_id(item))
            for item in cart_items
        ]
