"""CoinGecko-compatible price client behind the freshness cache.

The public API is rate-limited, so every call goes through a
``FreshnessCache`` keyed on the normalized query parameters.
"""

import logging

import httpx

from config import Settings
from services.cache import CacheResult, FreshnessCache, make_key

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 250
MAX_SIMPLE_IDS = 50

# Fields kept from each /coins/markets row
MARKET_FIELDS = (
    "id",
    "symbol",
    "name",
    "image",
    "current_price",
    "market_cap",
    "market_cap_rank",
    "total_volume",
    "price_change_percentage_24h",
    "last_updated",
)


def _split_csv(raw: str) -> list[str]:
    """Split a comma list into sorted, lower-cased, de-duplicated values."""
    return sorted({part.strip().lower() for part in raw.split(",") if part.strip()})


def markets_key(vs_currency: str, per_page: int, page: int = 1) -> str:
    return make_key(vs_currency, per_page, page)


def simple_price_key(ids: list[str], vs_currencies: list[str]) -> str:
    return make_key("simple", ",".join(sorted(ids)), ",".join(sorted(vs_currencies)))


def _client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    headers = {"Accept": "application/json"}
    if settings.price_api_key:
        headers["x-cg-demo-api-key"] = settings.price_api_key
    return httpx.AsyncClient(
        base_url=settings.price_api_url,
        headers=headers,
        timeout=settings.upstream_timeout_seconds,
        transport=transport,
    )


async def _get_json(
    settings: Settings,
    path: str,
    params: dict,
    transport: httpx.AsyncBaseTransport | None = None,
):
    """GET an upstream path. httpx timeouts are re-raised as ``TimeoutError``."""
    async with _client(settings, transport) as client:
        try:
            resp = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"{path} timed out: {e}") from e
        resp.raise_for_status()
        return resp.json()


async def fetch_markets(
    settings: Settings,
    vs_currency: str,
    per_page: int = 20,
    page: int = 1,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict]:
    """Fetch one page of coins ordered by market cap. Raises httpx errors."""
    rows = await _get_json(
        settings,
        "/coins/markets",
        {
            "vs_currency": vs_currency,
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": "false",
        },
        transport=transport,
    )
    if not isinstance(rows, list):
        raise ValueError(f"Unexpected markets payload: {type(rows).__name__}")
    return [{field: row.get(field) for field in MARKET_FIELDS} for row in rows]


async def fetch_simple_prices(
    settings: Settings,
    ids: list[str],
    vs_currencies: list[str],
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Fetch spot prices as {coin_id: {currency: price}}."""
    data = await _get_json(
        settings,
        "/simple/price",
        {
            "ids": ",".join(ids),
            "vs_currencies": ",".join(vs_currencies),
            "include_24hr_change": "true",
        },
        transport=transport,
    )
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected price payload: {type(data).__name__}")
    return data


async def get_markets(
    cache: FreshnessCache,
    settings: Settings,
    vs_currency: str = "usd",
    per_page: int = 20,
    page: int = 1,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CacheResult:
    """Cached top-coins listing for a currency and page."""
    vs_currency = vs_currency.strip().lower()
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    page = max(page, 1)

    async def fetcher(key: str) -> list[dict]:
        logger.info("Fetching markets upstream: %s", key)
        return await fetch_markets(settings, vs_currency, per_page, page, transport=transport)

    return await cache.get(markets_key(vs_currency, per_page, page), fetcher)


async def get_simple_prices(
    cache: FreshnessCache,
    settings: Settings,
    ids: str,
    vs_currencies: str = "usd",
    transport: httpx.AsyncBaseTransport | None = None,
) -> CacheResult:
    """Cached spot prices. ``ids`` and ``vs_currencies`` are comma lists."""
    coin_ids = _split_csv(ids)
    currencies = _split_csv(vs_currencies)
    if not coin_ids:
        raise ValueError("At least one coin id is required")
    if len(coin_ids) > MAX_SIMPLE_IDS:
        raise ValueError(f"Too many coin ids: {len(coin_ids)} (max {MAX_SIMPLE_IDS})")
    if not currencies:
        raise ValueError("At least one quote currency is required")

    async def fetcher(key: str) -> dict:
        logger.info("Fetching simple prices upstream: %s", key)
        return await fetch_simple_prices(settings, coin_ids, currencies, transport=transport)

    return await cache.get(simple_price_key(coin_ids, currencies), fetcher)
