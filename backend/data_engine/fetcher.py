"""
data_engine/fetcher.py
───────────────────────
Async CoinGecko client — the ONLY place in the codebase that calls the
upstream market-data provider.

Caching policy
--------------
- ``fetch_top_coins``  — cached under one constant key.
- ``fetch_markets``    — cached per *sorted* set of coin ids, so the same
  watchlist in any order shares one entry.
- ``fetch_coin``       — never cached; detail pages must be current.

A fresh entry is served without touching the network.  On a miss or an
expired entry the client refreshes from CoinGecko; if that fails, the last
cached payload is served regardless of age, and only a cold key surfaces
:class:`~core.exceptions.UpstreamUnavailable`.

Concurrent misses for the same key are collapsed into a single upstream
request (single-flight).
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx
from pydantic import TypeAdapter

from core.config import Settings
from core.exceptions import UpstreamUnavailable
from data_engine.cache import TTLCache
from schemas.market import CoinDetail, CoinMarket

logger = logging.getLogger(__name__)

TOP_COINS_KEY = "top"
_MARKETS_KEY_PREFIX = "markets:"

_MARKET_ROWS = TypeAdapter(List[CoinMarket])

# Transport, timeout, non-2xx, unencodable URL, bad JSON or schema mismatch.
_UPSTREAM_FAILURES = (httpx.HTTPError, httpx.InvalidURL, ValueError)


def markets_cache_key(coin_ids: Iterable[str]) -> str:
    """
    Derive the cache key for a set of coin ids.

    Ids are de-duplicated, sorted lexicographically and comma-joined, so
    ``["eth", "btc"]`` and ``["btc", "eth"]`` map to the same key.
    """
    return _MARKETS_KEY_PREFIX + ",".join(sorted(set(coin_ids)))


class MarketDataClient:
    """
    Fetch market data from CoinGecko through a :class:`TTLCache`.

    Args:
        cache:       Cache instance shared by every request in the process.
        http:        ``httpx.AsyncClient`` used for upstream calls.  Its
                     ``base_url``, headers and timeout define the provider.
        vs_currency: Quote currency for market rows.
        top_limit:   Rows requested for the top-coins snapshot.

    Example:
        >>> client = MarketDataClient.from_settings(get_settings(), TTLCache())
        >>> rows = await client.fetch_top_coins()
    """

    def __init__(
        self,
        cache: TTLCache,
        http: httpx.AsyncClient,
        vs_currency: str = "usd",
        top_limit: int = 100,
    ) -> None:
        self._cache = cache
        self._http = http
        self._vs_currency = vs_currency
        self._top_limit = top_limit
        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}

    @classmethod
    def from_settings(cls, settings: Settings, cache: TTLCache) -> "MarketDataClient":
        """Build a client (and its HTTP session) from application settings."""
        headers = {"Accept": "application/json"}
        if settings.COINGECKO_API_KEY:
            headers["x-cg-demo-api-key"] = settings.COINGECKO_API_KEY
        http = httpx.AsyncClient(
            base_url=settings.COINGECKO_BASE_URL,
            headers=headers,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )
        return cls(
            cache,
            http,
            vs_currency=settings.VS_CURRENCY,
            top_limit=settings.TOP_COINS_LIMIT,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP session."""
        await self._http.aclose()

    # ── public API ────────────────────────────────────────────────────────

    async def fetch_top_coins(self) -> List[CoinMarket]:
        """
        Top coins by market cap (descending) with 24 h change and sparkline.

        Returns:
            Market rows, served from cache while fresh.

        Raises:
            UpstreamUnavailable: CoinGecko failed and nothing is cached.
        """
        params = {
            "vs_currency": self._vs_currency,
            "order": "market_cap_desc",
            "per_page": self._top_limit,
            "page": 1,
            "sparkline": "true",
            "price_change_percentage": "24h",
        }
        return await self._cached(
            TOP_COINS_KEY,
            lambda: self._get_markets(params),
            "Failed to fetch crypto data",
        )

    async def fetch_markets(self, coin_ids: Iterable[str]) -> List[CoinMarket]:
        """
        Market rows for an explicit set of coin ids.

        An empty set returns ``[]`` without consulting the cache or CoinGecko.

        Raises:
            UpstreamUnavailable: CoinGecko failed and nothing is cached
                                 for this id set.
        """
        ids = sorted(set(coin_ids))
        if not ids:
            return []

        params = {
            "vs_currency": self._vs_currency,
            "ids": ",".join(ids),
            "order": "market_cap_desc",
            "sparkline": "true",
            "price_change_percentage": "24h",
        }
        return await self._cached(
            markets_cache_key(ids),
            lambda: self._get_markets(params),
            "Failed to fetch watchlist data",
        )

    def cached_markets(self, coin_ids: Iterable[str]) -> Optional[List[CoinMarket]]:
        """Return whatever is cached for ``coin_ids``, however old, or ``None``."""
        entry = self._cache.get(markets_cache_key(coin_ids))
        return None if entry is None else entry.payload

    async def fetch_coin(self, coin_id: str) -> CoinDetail:
        """
        Full detail for one coin.  Always hits CoinGecko.

        Raises:
            UpstreamUnavailable: The upstream call failed.
        """
        try:
            data = await self._get_json(f"/coins/{coin_id}")
            return CoinDetail.model_validate(data)
        except _UPSTREAM_FAILURES as exc:
            logger.warning("Coin detail fetch failed for %s: %s", coin_id, exc)
            raise UpstreamUnavailable("Failed to fetch coin data") from exc

    # ── private helpers ───────────────────────────────────────────────────

    async def _cached(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        error_message: str,
    ) -> Any:
        """Fresh hit → cached payload; otherwise refresh, falling back to stale."""
        entry = self._cache.get(key)
        if entry is not None and self._cache.is_fresh(entry):
            logger.debug("Cache hit for %s", key)
            return entry.payload

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, fetch))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight fetch for %s", key)

        try:
            # Shielded: a cancelled waiter must not cancel the shared fetch.
            return await asyncio.shield(task)
        except _UPSTREAM_FAILURES as exc:
            stale = self._cache.get(key)
            if stale is not None:
                logger.warning("Upstream failed for %s, serving stale cache: %s", key, exc)
                return stale.payload
            logger.warning("Upstream failed for %s with nothing cached: %s", key, exc)
            raise UpstreamUnavailable(error_message) from exc

    async def _refresh(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        payload = await fetch()
        self._cache.put(key, payload)
        logger.info("Refreshed cache for %s", key)
        return payload

    def _forget(self, key: str, task: "asyncio.Future[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _get_markets(self, params: Dict[str, Any]) -> List[CoinMarket]:
        data = await self._get_json("/coins/markets", params=params)
        return _MARKET_ROWS.validate_python(data)

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        logger.info("GET %s %s", path, params or {})
        response = await self._http.get(path, params=params)
        response.raise_for_status()
        return response.json()
