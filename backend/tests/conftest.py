"""
tests/conftest.py
──────────────────
Shared pytest fixtures for the backend test suite.

Fixtures
--------
clock
    Manually advanced time source for the market cache.

coingecko
    Programmable fake of the CoinGecko REST API, served to the real
    ``MarketDataClient`` through ``httpx.MockTransport``.

market_client
    ``MarketDataClient`` wired to a fresh ``TTLCache`` and ``coingecko``.

users
    In-memory stand-in for ``UserRepository``.

mock_db
    ``MagicMock`` standing in for the Supabase client.

app_client
    ``httpx.AsyncClient`` wired to the FastAPI app with every external
    collaborator overridden, authenticated as ``USER_ID``.

Usage
-----
    async def test_health(app_client):
        resp = await app_client.get("/")
        assert resp.status_code == 200
"""

import os
from typing import AsyncGenerator, Dict, List
from unittest.mock import MagicMock

# Settings are read at import time of app.main; keep tests off any real project.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-key")

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import (
    get_current_user_id,
    get_db,
    get_market_client,
    get_user_repository,
)
from app.main import app
from core.exceptions import PersistenceFault
from data_engine.cache import TTLCache
from data_engine.fetcher import MarketDataClient
from schemas.watchlist import WatchlistItem

USER_ID = "user-1"
COINGECKO_URL = "https://api.coingecko.test/api/v3"

# ── Shared stub rows ──────────────────────────────────────────────────────────

BTC_ROW = {
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "image": "https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
    "current_price": 67000.0,
    "market_cap": 1320000000000,
    "market_cap_rank": 1,
    "total_volume": 25000000000,
    "price_change_percentage_24h": 1.25,
    "sparkline_in_7d": {"price": [66000.0, 66500.5, 67000.0]},
}

ETH_ROW = {
    "id": "ethereum",
    "symbol": "eth",
    "name": "Ethereum",
    "image": "https://assets.coingecko.com/coins/images/279/large/ethereum.png",
    "current_price": 3500.0,
    "market_cap": 420000000000,
    "market_cap_rank": 2,
    "total_volume": 12000000000,
    "price_change_percentage_24h": -0.5,
    "sparkline_in_7d": {"price": [3400.0, 3450.0, 3500.0]},
}


# ── Time ──────────────────────────────────────────────────────────────────────


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ── Upstream provider ─────────────────────────────────────────────────────────


class FakeCoinGecko:
    """
    Minimal CoinGecko: ``/coins/markets`` and ``/coins/{id}``.

    Set ``fail = True`` to answer every request with HTTP 503.  Every
    request received is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.rows: List[dict] = [BTC_ROW, ETH_ROW]
        self.fail = False
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(503, json={"status": "service unavailable"})

        path = request.url.path
        if path.endswith("/coins/markets"):
            ids = request.url.params.get("ids")
            if ids is None:
                return httpx.Response(200, json=self.rows)
            wanted = ids.split(",")
            return httpx.Response(200, json=[r for r in self.rows if r["id"] in wanted])

        coin_id = path.rsplit("/", 1)[-1]
        for row in self.rows:
            if row["id"] == coin_id:
                detail = {
                    "id": row["id"],
                    "symbol": row["symbol"],
                    "name": row["name"],
                    "market_data": {"current_price": {"usd": row["current_price"]}},
                }
                return httpx.Response(200, json=detail)
        return httpx.Response(404, json={"error": "coin not found"})


@pytest.fixture
def coingecko() -> FakeCoinGecko:
    return FakeCoinGecko()


@pytest.fixture
def market_cache(clock: FakeClock) -> TTLCache:
    return TTLCache(ttl=30.0, clock=clock)


@pytest.fixture
async def market_client(
    market_cache: TTLCache, coingecko: FakeCoinGecko
) -> AsyncGenerator[MarketDataClient, None]:
    http = httpx.AsyncClient(
        base_url=COINGECKO_URL, transport=httpx.MockTransport(coingecko)
    )
    client = MarketDataClient(market_cache, http)
    yield client
    await client.aclose()


# ── Persistence ───────────────────────────────────────────────────────────────


class FakeUserRepository:
    """Dict-backed ``UserRepository`` that stores watchlists as wire dicts."""

    def __init__(self) -> None:
        self.rows: Dict[str, List[dict]] = {USER_ID: []}
        self.saves = 0
        self.fail = False

    def load_watchlist(self, user_id: str) -> List[WatchlistItem]:
        if self.fail or user_id not in self.rows:
            raise PersistenceFault()
        return [WatchlistItem.model_validate(item) for item in self.rows[user_id]]

    def save_watchlist(self, user_id: str, items: List[WatchlistItem]) -> None:
        if self.fail:
            raise PersistenceFault()
        self.rows[user_id] = [item.model_dump(by_alias=True) for item in items]
        self.saves += 1

    def watch(self, user_id: str, *coin_ids: str) -> None:
        self.rows[user_id] = [
            {"coinId": coin_id, "coinName": coin_id.title()} for coin_id in coin_ids
        ]


@pytest.fixture
def users() -> FakeUserRepository:
    return FakeUserRepository()


# ── Mock Supabase client ──────────────────────────────────────────────────────


@pytest.fixture
def mock_db() -> MagicMock:
    """
    Return a MagicMock that mimics the Supabase client's fluent query builder.

    Override in individual tests as needed:

        def test_something(mock_db):
            mock_db.table().select().eq().limit().execute.return_value = MagicMock(
                data=[{"watchlist": []}]
            )
    """
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(
        data=[]
    )
    return client


# ── Test client ───────────────────────────────────────────────────────────────


@pytest.fixture
async def app_client(
    mock_db: MagicMock,
    market_client: MarketDataClient,
    users: FakeUserRepository,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTPX client with every external dependency overridden.

    Startup lifespan is skipped to avoid real Supabase connections.
    Requests are authenticated as ``USER_ID``; tests exercising the auth
    guard pop the ``get_current_user_id`` override.
    """
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_market_client] = lambda: market_client
    app.dependency_overrides[get_user_repository] = lambda: users
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
