"""
Pydantic schemas for request/response serialization.

Separate from the data layer (``data_engine``) and routes (HTTP layer).
"""

from schemas.market import CoinDetail, CoinMarket, Sparkline
from schemas.watchlist import (
    AddWatchlistRequest,
    ErrorResponse,
    WatchlistItem,
    WatchlistResponse,
)

__all__ = [
    "CoinDetail",
    "CoinMarket",
    "Sparkline",
    "AddWatchlistRequest",
    "ErrorResponse",
    "WatchlistItem",
    "WatchlistResponse",
]
