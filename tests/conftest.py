"""
Shared test fixtures.

Provider HTTP is replaced by MockHTTPSession; nothing leaves the process.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from typing import Any, Callable, Optional

from config import Settings


# ===================
# MOCK HTTP SESSION
# ===================

class MockHTTPResponse:
    """Mock requests.Response."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class MockHTTPSession:
    """
    Mock requests.Session with queued responses.

    Responses are returned in the order they were queued; every call is
    recorded in `calls` as (method, url, kwargs).
    """

    def __init__(self):
        self._responses: list = []
        self.calls: list[tuple[str, str, dict]] = []

    def queue(self, payload: Any = None, status_code: int = 200, text: str = "") -> "MockHTTPSession":
        self._responses.append(MockHTTPResponse(status_code, payload, text))
        return self

    def queue_error(self, error: Exception) -> "MockHTTPSession":
        self._responses.append(error)
        return self

    def request(self, method: str, url: str, **kwargs) -> MockHTTPResponse:
        self.calls.append((method, url, kwargs))
        if not self._responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def calls_to(self, fragment: str) -> list[tuple[str, str, dict]]:
        return [call for call in self.calls if fragment in call[1]]


# ===================
# FIXTURES
# ===================

WEBHOOK_KEY = "test-webhook-key"


@pytest.fixture
def mock_session() -> MockHTTPSession:
    """
    Create a mock HTTP session.

    Usage:
        def test_something(mock_session):
            mock_session.queue({"inventory_items": [...]})
    """
    return MockHTTPSession()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """
    Build Settings without reading .env.

    Usage:
        def test_something(make_settings):
            settings = make_settings(foxy_webflow_token="token")
    """
    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    """Settings with every provider configured."""
    return make_settings(
        foxy_webhook_encryption_key=WEBHOOK_KEY,
        foxy_orderdesk_api_key="od-key",
        foxy_orderdesk_store_id="od-store",
        foxy_webflow_token="wf-token",
        foxy_webflow_collection="default-collection",
        foxy_wix_api_key="wix-key",
        foxy_wix_account_id="wix-account",
        foxy_wix_site_id="wix-site",
        foxy_shiptheory_email="ship@example.com",
        foxy_shiptheory_password="secret",
        foxy_lune_api_key="lune-key",
        foxy_idev_api_url="https://affiliates.example.com/sale.php",
        foxy_skip_inventory_update_codes="GIFT-CARD",
    )


@pytest.fixture
def webhook_key() -> str:
    return WEBHOOK_KEY


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_factory():
    """
    Create FastAPI test clients bound to given settings.

    Usage:
        def test_endpoint(test_client_factory, settings):
            client = test_client_factory(settings)
            response = client.post("/webhooks/orderdesk", ...)
    """
    from fastapi.testclient import TestClient
    from config import get_settings
    from main import app

    def _make(overrides: Optional[Settings] = None) -> TestClient:
        if overrides is not None:
            app.dependency_overrides[get_settings] = lambda: overrides
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
