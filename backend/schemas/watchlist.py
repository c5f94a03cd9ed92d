"""
schemas/watchlist.py
─────────────────────
Pydantic schemas for the watchlist endpoints.

Field names are snake_case in Python and camelCase on the wire (and in
the stored ``watchlist`` column), matching what the frontend sends.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class WatchlistItem(BaseModel):
    """A single watched coin."""

    model_config = ConfigDict(populate_by_name=True)

    coin_id: str = Field(..., alias="coinId", min_length=1)
    coin_name: str = Field(default="", alias="coinName")


class AddWatchlistRequest(WatchlistItem):
    """Request body for ``POST /crypto/watchlist``."""


class WatchlistResponse(BaseModel):
    """Confirmation plus the full watchlist after an add or remove."""

    message: str
    watchlist: List[WatchlistItem]


class ErrorResponse(BaseModel):
    """Shape of every error body returned by the API."""

    error: str
