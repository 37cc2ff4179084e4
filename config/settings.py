"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Legacy variable names (FX_*, WEBFLOW_TOKEN, IDEV_*) are still accepted so
existing deployments keep working.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field
from functools import lru_cache
from typing import Optional


SKIP_ALL_SENTINEL = "__ALL__"


def _env(*names: str) -> AliasChoices:
    """Accept the field's own env name plus legacy fallbacks."""
    return AliasChoices(*names)


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Credentials are optional here: each webhook checks the ones it needs
    and answers 503 when they are missing.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore"
    )

    # ===================
    # FOXY
    # ===================
    foxy_webhook_encryption_key: Optional[str] = Field(
        None,
        description="Shared secret used to sign Foxy webhook payloads"
    )

    # ===================
    # ORDERDESK
    # ===================
    foxy_orderdesk_api_key: Optional[str] = Field(
        None,
        description="OrderDesk API key"
    )
    foxy_orderdesk_store_id: Optional[str] = Field(
        None,
        description="OrderDesk store id"
    )

    # ===================
    # WEBFLOW
    # ===================
    foxy_webflow_token: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_webflow_token", "webflow_token"),
        description="Webflow API token"
    )
    foxy_webflow_collection: Optional[str] = Field(
        None,
        description="Default collection id when cart items carry none"
    )
    foxy_webflow_page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per collection page"
    )
    foxy_webflow_max_offset: int = Field(
        default=500,
        ge=0,
        le=1000,
        description="Give up searching a collection past this offset"
    )

    # ===================
    # WIX
    # ===================
    foxy_wix_api_key: Optional[str] = Field(None, description="Wix API key")
    foxy_wix_account_id: Optional[str] = Field(None, description="Wix account id")
    foxy_wix_site_id: Optional[str] = Field(None, description="Wix site id")

    # ===================
    # FORWARDERS
    # ===================
    foxy_shiptheory_email: Optional[str] = Field(None, description="Shiptheory login email")
    foxy_shiptheory_password: Optional[str] = Field(None, description="Shiptheory login password")
    foxy_lune_api_key: Optional[str] = Field(None, description="Lune API key")
    foxy_idev_api_url: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_idev_api_url", "idev_api_url"),
        description="idevAffiliate sale endpoint"
    )
    foxy_idev_secret_key: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_idev_secret_key", "idev_secret_key"),
        description="idevAffiliate secret key"
    )

    # ===================
    # FIELD NAMES
    # ===================
    foxy_field_code: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_field_code", "fx_field_code"),
        description="Catalog field holding the product code"
    )
    foxy_field_price: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_field_price", "fx_field_price"),
        description="Catalog field holding the price"
    )
    foxy_field_inventory: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_field_inventory", "fx_field_inventory"),
        description="Catalog field holding the inventory ('null' or 'false' disables the check)"
    )

    # ===================
    # SKIP LISTS
    # ===================
    foxy_skip_price_codes: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_skip_price_codes", "fx_skip_price_codes"),
        description="Comma separated codes exempt from price checks, or __ALL__"
    )
    foxy_skip_inventory_codes: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_skip_inventory_codes", "fx_skip_inventory_codes"),
        description="Comma separated codes exempt from inventory checks, or __ALL__"
    )
    foxy_skip_inventory_update_codes: Optional[str] = Field(
        None,
        description="Comma separated codes whose stock is never updated, or __ALL__ (unset also skips all)"
    )
    foxy_skip_update_info_name: str = Field(
        default="Update Your Customer Information",
        description="Cart item name used by the customer info form; never validated"
    )

    # ===================
    # MESSAGES
    # ===================
    foxy_error_insufficient_inventory: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_error_insufficient_inventory", "fx_error_insufficient_inventory"),
        description="Template prefix for insufficient inventory rejections"
    )
    foxy_error_price_mismatch: Optional[str] = Field(
        None,
        validation_alias=_env("foxy_error_price_mismatch", "fx_error_price_mismatch"),
        description="Template prefix for price mismatch rejections"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    http_timeout_seconds: float = Field(
        default=10,
        gt=0,
        le=60,
        description="Timeout for outbound provider calls"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def field_overrides(self) -> dict[str, str]:
        """Logical field name -> configured catalog field name."""
        return {
            logical: value
            for logical, value in (
                ("code", self.foxy_field_code),
                ("price", self.foxy_field_price),
                ("inventory", self.foxy_field_inventory),
            )
            if value
        }

    @property
    def inventory_updates_disabled(self) -> bool:
        """Stock write-back is off unless a skip-update list is configured."""
        if not (self.foxy_skip_inventory_update_codes or "").strip():
            return True
        codes = self.foxy_skip_inventory_update_codes.split(",")
        return SKIP_ALL_SENTINEL in (code.strip() for code in codes)

    def missing(self, *names: str) -> list[str]:
        """Return the env names of the given settings that are not set."""
        return [name.upper() for name in names if not getattr(self, name)]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
