"""
app/api/dependencies.py
───────────────────────
FastAPI dependency functions shared across all endpoints.

The market cache and CoinGecko client are process-wide singletons built
once (``functools.lru_cache``) and handed to route handlers through
``Depends`` — tests swap them out via ``app.dependency_overrides``.

Usage
-----
    from app.api.dependencies import get_market_client

    @router.get("/foo")
    async def my_route(client = Depends(get_market_client)):
        ...
"""

import asyncio
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from core.config import get_settings
from core.database import get_supabase_client
from core.exceptions import AuthenticationFailed
from data_engine.cache import TTLCache
from data_engine.fetcher import MarketDataClient
from data_engine.users import UserRepository
from data_engine.watchlist import WatchlistManager

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_db() -> Client:
    """
    FastAPI dependency that returns the Supabase client singleton.

    Returns:
        Authenticated Supabase ``Client`` instance.
    """
    return get_supabase_client()


@lru_cache(maxsize=1)
def get_market_cache() -> TTLCache:
    """Return the process-wide market data cache."""
    settings = get_settings()
    return TTLCache(
        ttl=settings.CACHE_TTL_SECONDS,
        max_entries=settings.CACHE_MAX_ENTRIES,
    )


@lru_cache(maxsize=1)
def get_market_client() -> MarketDataClient:
    """Return the process-wide CoinGecko client, bound to the shared cache."""
    return MarketDataClient.from_settings(get_settings(), get_market_cache())


def get_user_repository(db: Client = Depends(get_db)) -> UserRepository:
    """Watchlist persistence bound to the configured users table."""
    return UserRepository(db, table=get_settings().USERS_TABLE)


def get_watchlist_manager(
    users: UserRepository = Depends(get_user_repository),
    markets: MarketDataClient = Depends(get_market_client),
) -> WatchlistManager:
    return WatchlistManager(users, markets)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Client = Depends(get_db),
) -> str:
    """
    Resolve the bearer token to a Supabase Auth user id.

    Returns:
        The authenticated user's id.

    Raises:
        AuthenticationFailed: No token was sent, or Supabase rejected it.
    """
    if credentials is None:
        raise AuthenticationFailed("No token, authorization denied")

    try:
        res = await asyncio.to_thread(db.auth.get_user, credentials.credentials)
    except Exception as exc:
        logger.info("Token verification failed: %s", exc)
        raise AuthenticationFailed() from exc

    if res is None or res.user is None:
        raise AuthenticationFailed()
    return str(res.user.id)
