"""Market data routes — cached proxy over the upstream price API.

GET /api/prices/markets → top coins by market cap for a quote currency
GET /api/prices/simple  → spot prices for a list of coin ids
"""

import logging

from fastapi import APIRouter, Query, Request

from services import market_data
from services.cache import CacheResult, FreshnessCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prices")


def _cache(request: Request) -> FreshnessCache:
    return request.app.state.price_cache


def _cache_meta(cache: FreshnessCache, result: CacheResult) -> dict:
    return {
        "stale": result.stale,
        "age_seconds": round(result.age(cache.now()), 3),
        "ttl_seconds": cache.ttl,
    }


@router.get("/markets")
async def markets(
    request: Request,
    vs_currency: str = Query("usd", pattern=r"^[A-Za-z]{2,10}$"),
    per_page: int = Query(20, ge=1, le=market_data.MAX_PER_PAGE),
    page: int = Query(1, ge=1),
) -> dict:
    """Top coins by market cap, served from cache while fresh."""
    cache = _cache(request)
    result = await market_data.get_markets(
        cache,
        request.app.state.settings,
        vs_currency=vs_currency,
        per_page=per_page,
        page=page,
        transport=request.app.state.http_transport,
    )

    coins = result.value
    currency = vs_currency.upper()
    if coins:
        leader = coins[0]
        _summary = (
            f"{len(coins)} coins in {currency}, "
            f"{leader['name']} leading at {leader['current_price']} {currency}"
        )
    else:
        _summary = f"No coins returned in {currency} for page {page}"
    if result.stale:
        _summary += " (stale: upstream unavailable)"

    return {
        "_summary": _summary,
        "vs_currency": vs_currency.lower(),
        "per_page": per_page,
        "page": page,
        "data": coins,
        "cached": _cache_meta(cache, result),
    }


@router.get("/simple")
async def simple_prices(
    request: Request,
    ids: str = Query(..., min_length=1, max_length=2000),
    vs_currencies: str = Query("usd", min_length=2, max_length=200),
) -> dict:
    """Spot prices for comma-separated coin ids."""
    cache = _cache(request)
    result = await market_data.get_simple_prices(
        cache,
        request.app.state.settings,
        ids=ids,
        vs_currencies=vs_currencies,
        transport=request.app.state.http_transport,
    )

    prices = result.value
    _summary = f"Spot prices for {len(prices)} coins"
    if result.stale:
        _summary += " (stale: upstream unavailable)"

    return {
        "_summary": _summary,
        "data": prices,
        "cached": _cache_meta(cache, result),
    }
