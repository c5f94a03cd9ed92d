"""
data_engine/watchlist.py
─────────────────────────
Per-user watchlist operations.

Workflow
--------
- ``add``          — reject duplicates by ``coinId``, otherwise append and save.
- ``remove``       — drop matching items and save; removing an absent id
                     is a no-op that still succeeds.
- ``list_markets`` — enrich the watchlist with live market rows through
                     :class:`~data_engine.fetcher.MarketDataClient`.

Persistence goes through a blocking :class:`~data_engine.users.UserRepository`;
each call is pushed to a worker thread so the event loop keeps serving
other requests while the database round-trip is in flight.
"""

import asyncio
import logging
from typing import List

from core.exceptions import DuplicateWatchlistEntry, UpstreamUnavailable
from data_engine.fetcher import MarketDataClient
from data_engine.users import UserRepository
from schemas.market import CoinMarket
from schemas.watchlist import WatchlistItem

logger = logging.getLogger(__name__)


class WatchlistManager:
    """
    Mutate and enrich a user's watchlist.

    Args:
        users:   Persistence collaborator for the user record.
        markets: Market data client used to enrich the list.
    """

    def __init__(self, users: UserRepository, markets: MarketDataClient) -> None:
        self._users = users
        self._markets = markets

    # ── public API ────────────────────────────────────────────────────────

    async def add(self, user_id: str, coin_id: str, coin_name: str) -> List[WatchlistItem]:
        """
        Append ``coin_id`` to the watchlist.

        Returns:
            The full updated watchlist.

        Raises:
            DuplicateWatchlistEntry: ``coin_id`` is already watched.  Nothing
                                     is written back.
            PersistenceFault:        Loading or saving the user record failed.
        """
        items = await self._load(user_id)
        if any(item.coin_id == coin_id for item in items):
            logger.info("User %s already watches %s", user_id, coin_id)
            raise DuplicateWatchlistEntry()

        items.append(WatchlistItem(coin_id=coin_id, coin_name=coin_name))
        await asyncio.to_thread(self._users.save_watchlist, user_id, items)
        return items

    async def remove(self, user_id: str, coin_id: str) -> List[WatchlistItem]:
        """
        Remove every item whose ``coinId`` equals ``coin_id``.

        Returns:
            The updated watchlist (unchanged if ``coin_id`` was not present).
        """
        items = await self._load(user_id)
        remaining = [item for item in items if item.coin_id != coin_id]
        await asyncio.to_thread(self._users.save_watchlist, user_id, remaining)
        return remaining

    async def list_markets(self, user_id: str) -> List[CoinMarket]:
        """
        Live market rows for every watched coin.

        An empty watchlist returns ``[]`` without touching the market client.

        Raises:
            UpstreamUnavailable: Enrichment failed and nothing is cached for
                                 the user's current set of coins.
        """
        items = await self._load(user_id)
        if not items:
            return []

        try:
            return await self._markets.fetch_markets(item.coin_id for item in items)
        except UpstreamUnavailable:
            # The watchlist may have changed while the fetch was in flight.
            current = await self._load(user_id)
            if not current:
                return []
            stale = self._markets.cached_markets(item.coin_id for item in current)
            if stale is not None:
                logger.warning("Serving stale watchlist data for user %s", user_id)
                return stale
            raise

    # ── private helpers ───────────────────────────────────────────────────

    async def _load(self, user_id: str) -> List[WatchlistItem]:
        return await asyncio.to_thread(self._users.load_watchlist, user_id)
