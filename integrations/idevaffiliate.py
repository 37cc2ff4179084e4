"""
iDevAffiliate sale tracking.

Affiliate products carry the affiliate id in their code as a `-a<digits>`
suffix (e.g. `MUG-a42`). Every such item of a transaction is posted to the
iDevAffiliate sale endpoint as a form.
"""

import re
from typing import Optional
import requests
import structlog

from config import Settings
from exceptions import ConfigurationError, RequestValidationError
from integrations.base import ProviderClient, TransactionForwarder, DEFAULT_TIMEOUT_SECONDS
from models.cart import CartItem, extract_cart_items

logger = structlog.get_logger(__name__)


AFFILIATE_CODE_PATTERN = re.compile(r"-a(\d+)$", re.IGNORECASE)


def affiliate_id_from_code(code: Optional[str]) -> Optional[str]:
    """Affiliate id encoded in a product code, if any."""
    if not code:
        return None
    match = AFFILIATE_CODE_PATTERN.search(code)
    return match.group(1) if match else None


class IdevAffiliateClient(ProviderClient, TransactionForwarder):
    """Posts affiliate sales to iDevAffiliate."""

    service = "idevaffiliate"

    def __init__(
        self,
        api_url: Optional[str],
        secret_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS
    ):
        if not api_url:
            raise ConfigurationError(["FOXY_IDEV_API_URL"])
        super().__init__(session=session, timeout=timeout)
        self.api_url = api_url
        self.secret_key = secret_key

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None
    ) -> "IdevAffiliateClient":
        return cls(
            api_url=settings.foxy_idev_api_url,
            secret_key=settings.foxy_idev_secret_key,
            session=session,
            timeout=settings.http_timeout_seconds
        )

    def credentials(self) -> dict:
        return {"apiUrl": self.api_url, "secretKey": self.secret_key}

    def default_headers(self) -> dict:
        # requests sets the form content type
        return {}

    def push_item(self, item: CartItem, order_number) -> bool:
        """
        Record one sale.

        Returns:
            True if posted, False if the item was skipped
        """
        if not item.name or not item.code or not item.price:
            logger.info("idev_item_incomplete", code=item.code)
            return False
        affiliate_id = affiliate_id_from_code(item.code)
        if affiliate_id is None:
            logger.info("idev_item_not_affiliated", code=item.code)
            return False

        form = {
            "affiliate_id": affiliate_id,
            "idev_saleamt": item.price,
            "idev_ordernum": order_number,
        }
        if self.secret_key:
            form["idev_secret"] = self.secret_key

        self.request("POST", self.api_url, expect_json=False, data=form)
        logger.info(
            "idev_sale_recorded",
            code=item.code,
            affiliate_id=affiliate_id,
            order_number=order_number
        )
        return True

    def forward_transaction(self, transaction: dict) -> list[bool]:
        """
        Record every affiliated item of a transaction.

        Raises:
            RequestValidationError: If the transaction has no items
        """
        items = extract_cart_items(transaction)
        if not items:
            raise RequestValidationError("Invalid payload.")
        return [self.push_item(item, transaction.get("id")) for item in items]
