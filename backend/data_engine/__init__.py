"""
data_engine — Market data fetching, caching and watchlist layer.

Public API
----------
    from data_engine import MarketDataClient, TTLCache, WatchlistManager
"""

from data_engine.cache import CacheEntry, TTLCache
from data_engine.fetcher import MarketDataClient, markets_cache_key
from data_engine.users import UserRepository
from data_engine.watchlist import WatchlistManager

__all__ = [
    "CacheEntry",
    "TTLCache",
    "MarketDataClient",
    "markets_cache_key",
    "UserRepository",
    "WatchlistManager",
]
