import os
import sys

import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from portals_mcp.metrics import default_metrics  # noqa: E402
from portals_mcp.payment import Balance, Portal  # noqa: E402

ADDRESS = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


class StubPaymentClient:
    """In-memory payment client; ``portals`` maps id -> Portal or Exception."""

    def __init__(self, portals=None, *, call_result=None, call_error=None, balance=None):
        self.portals = dict(portals or {})
        self.call_result = call_result if call_result is not None else {"ok": True}
        self.call_error = call_error
        self.balance = balance or Balance(gas=1.0, payment=10.0)
        self.calls = []

    def get_address(self):
        return ADDRESS

    async def get_balance(self):
        return self.balance

    async def get_portal(self, portal_id):
        value = self.portals.get(portal_id)
        if value is None:
            raise RuntimeError(f"Portal {portal_id} not found on chain")
        if isinstance(value, Exception):
            raise value
        return value

    async def call_portal(self, portal_id, arguments, operation=None):
        self.calls.append((portal_id, arguments, operation))
        if self.call_error is not None:
            raise self.call_error
        return self.call_result


class StubFetcher:
    """Schema fetcher returning canned documents keyed by Portal URL."""

    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.fetched = []

    async def fetch(self, base_url):
        self.fetched.append(base_url)
        value = self.documents.get(base_url)
        if isinstance(value, Exception):
            raise value
        return value

    async def aclose(self):
        return None


def make_portal(portal_id, title="Weather API", description="Weather data", url=None):
    return Portal(
        id=portal_id,
        title=title,
        description=description,
        url=url or f"https://{portal_id.lower()}.example.com",
        payment_vault=f"vault-{portal_id}",
    )


WEATHER_OPENAPI = {
    "openapi": "3.0.0",
    "paths": {
        "/forecast": {
            "parameters": [{"name": "x", "in": "query"}],
            "post": {
                "operationId": "get_forecast",
                "summary": "Get a forecast",
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {
                                "type": "object",
                                "properties": {"city": {"type": "string"}, "days": {"type": "integer"}},
                                "required": ["city"],
                            }
                        }
                    }
                },
            },
        },
        "/current": {
            "get": {"operationId": "get_current", "description": "Current conditions"},
        },
    },
}


@pytest.fixture(autouse=True)
def reset_metrics():
    default_metrics.reset()
    yield
    default_metrics.reset()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from portals_mcp import server

    server.rate_limiter._limiters.clear()
    yield


@pytest.fixture
def stub_client_cls():
    return StubPaymentClient


@pytest.fixture
def stub_fetcher_cls():
    return StubFetcher


@pytest.fixture
def portal_factory():
    return make_portal


@pytest.fixture
def weather_openapi():
    return WEATHER_OPENAPI


@pytest.fixture
def wallet_address():
    return ADDRESS
