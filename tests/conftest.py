import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import Settings

COINS = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "current_price": 67000.5,
        "market_cap": 1_320_000_000_000,
        "market_cap_rank": 1,
        "total_volume": 25_000_000_000,
        "price_change_percentage_24h": 1.2,
        "last_updated": "2026-10-19T10:00:00.000Z",
        "ath": 73000,
    },
    {
        "id": "ethereum",
        "symbol": "eth",
        "name": "Ethereum",
        "current_price": 3100.25,
        "market_cap": 372_000_000_000,
        "market_cap_rank": 2,
        "total_volume": 12_000_000_000,
        "price_change_percentage_24h": -0.4,
        "last_updated": "2026-10-19T10:00:00.000Z",
        "ath": 4800,
    },
]


class FakeUpstream:
    """Stands in for the price API; counts requests and can be made to fail."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing = False
        self.timing_out = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.timing_out:
            raise httpx.ReadTimeout("upstream too slow", request=request)
        if self.failing:
            return httpx.Response(500, json={"error": "boom"})
        if request.url.path.endswith("/coins/markets"):
            return httpx.Response(200, json=COINS)
        if request.url.path.endswith("/simple/price"):
            ids = request.url.params["ids"].split(",")
            return httpx.Response(200, json={coin: {"usd": 1.0} for coin in ids})
        return httpx.Response(404, json={"error": "unknown endpoint"})


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def app_settings() -> Settings:
    s = Settings()
    s.admin_token = "secret-token"
    s.price_api_url = "https://prices.test/api/v3"
    s.price_api_key = None
    s.price_cache_ttl_seconds = 60
    s.upstream_timeout_seconds = 5
    s.serve_stale_on_error = True
    return s


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def client(app_settings, upstream):
    app = create_app(app_settings, http_transport=httpx.MockTransport(upstream))
    with TestClient(app) as test_client:
        yield test_client
