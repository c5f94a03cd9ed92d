"""
app/api/v1/endpoints/crypto.py
────────────────────────────────
Market data and watchlist endpoints.

Routes
------
GET    /crypto/top                Top coins by market cap (cached).
GET    /crypto/coin/{coin_id}     Single coin detail (never cached).
POST   /crypto/watchlist          Add a coin to the caller's watchlist.
DELETE /crypto/watchlist/{coin_id} Remove a coin from the caller's watchlist.
GET    /crypto/watchlist          Caller's watchlist enriched with market data.

Watchlist routes require a bearer token.  Failures are raised as
:mod:`core.exceptions` errors and rendered as ``{"error": ...}`` by the
handler in ``app/main.py``.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    get_current_user_id,
    get_market_client,
    get_watchlist_manager,
)
from data_engine.fetcher import MarketDataClient
from data_engine.watchlist import WatchlistManager
from schemas.market import CoinDetail, CoinMarket
from schemas.watchlist import AddWatchlistRequest, ErrorResponse, WatchlistResponse

logger = logging.getLogger(__name__)
router = APIRouter()

_UPSTREAM_ERRORS = {500: {"model": ErrorResponse}}


@router.get(
    "/top",
    response_model=List[CoinMarket],
    responses=_UPSTREAM_ERRORS,
    summary="Top coins by market cap",
)
async def top_coins(
    client: MarketDataClient = Depends(get_market_client),
) -> List[CoinMarket]:
    """
    Return the top coins with 24 h change and 7-day sparkline.

    Served from cache for up to ``CACHE_TTL_SECONDS``; during a CoinGecko
    outage the last good snapshot is returned regardless of age.
    """
    return await client.fetch_top_coins()


@router.get(
    "/coin/{coin_id}",
    response_model=CoinDetail,
    responses=_UPSTREAM_ERRORS,
    summary="Coin detail",
)
async def coin_detail(
    coin_id: str,
    client: MarketDataClient = Depends(get_market_client),
) -> CoinDetail:
    """Return CoinGecko's full detail object for ``coin_id``."""
    return await client.fetch_coin(coin_id)


@router.post(
    "/watchlist",
    response_model=WatchlistResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Add a coin to the watchlist",
)
async def add_to_watchlist(
    body: AddWatchlistRequest,
    user_id: str = Depends(get_current_user_id),
    manager: WatchlistManager = Depends(get_watchlist_manager),
) -> WatchlistResponse:
    """
    Append ``coinId`` / ``coinName`` to the caller's watchlist.

    Raises:
        DuplicateWatchlistEntry (400): The coin is already on the list.
        PersistenceFault (500):        The user record could not be saved.
    """
    items = await manager.add(user_id, body.coin_id, body.coin_name)
    logger.info("User %s added %s to watchlist", user_id, body.coin_id)
    return WatchlistResponse(message="Added to watchlist", watchlist=items)


@router.delete(
    "/watchlist/{coin_id}",
    response_model=WatchlistResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Remove a coin from the watchlist",
)
async def remove_from_watchlist(
    coin_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: WatchlistManager = Depends(get_watchlist_manager),
) -> WatchlistResponse:
    """Remove ``coin_id`` from the caller's watchlist.  Absent ids are not an error."""
    items = await manager.remove(user_id, coin_id)
    return WatchlistResponse(message="Removed from watchlist", watchlist=items)


@router.get(
    "/watchlist",
    response_model=List[CoinMarket],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Watchlist with live market data",
)
async def get_watchlist(
    user_id: str = Depends(get_current_user_id),
    manager: WatchlistManager = Depends(get_watchlist_manager),
) -> List[CoinMarket]:
    """
    Return market rows for every coin on the caller's watchlist.

    An empty watchlist returns ``[]`` without contacting CoinGecko.
    """
    return await manager.list_markets(user_id)
