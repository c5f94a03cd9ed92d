"""
core/config.py
──────────────
Centralised application settings via ``pydantic-settings``.

All configuration is driven by environment variables (or a ``.env`` file
in the ``backend/`` directory).  ``pydantic-settings`` validates types at
startup, so missing required values fail fast with a clear error message.

Usage
-----
    from core.config import get_settings

    settings = get_settings()
    print(settings.COINGECKO_BASE_URL)
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the backend/ directory so relative .env paths work from any cwd.
_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables / ``.env`` file.

    Attributes:
        APP_TITLE:                Human-readable API name shown in OpenAPI docs.
        APP_VERSION:              Semantic version string.
        APP_DESCRIPTION:          Short description shown in the OpenAPI UI.
        DEBUG:                    Enable verbose logging.
        API_PREFIX:               Path prefix all crypto routes are mounted under.
        SUPABASE_URL:             Supabase project URL (required).
        SUPABASE_KEY:             Supabase anon or service-role key (required).
        USERS_TABLE:              Table holding one row per user with a
                                  ``watchlist`` JSON column.
        FRONTEND_URL:             Optional deployed frontend origin for CORS.
        COINGECKO_BASE_URL:       Root of the CoinGecko v3 REST API.
        COINGECKO_API_KEY:        Optional demo-plan key sent as a header.
        VS_CURRENCY:              Quote currency for market rows.
        TOP_COINS_LIMIT:          Rows requested for the top-coins snapshot.
        UPSTREAM_TIMEOUT_SECONDS: Per-request timeout for CoinGecko calls.
        CACHE_TTL_SECONDS:        Freshness window for cached market data.
        CACHE_MAX_ENTRIES:        LRU bound on cached keys (0 = unbounded).
    """

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        # Extra env vars are ignored — don't raise on unexpected keys.
        extra="ignore",
    )

    # ── API metadata ──────────────────────────────────────────────────────
    APP_TITLE: str = "Crypto Tracker API"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = (
        "Backend for the Crypto Tracker. "
        "Serves cached CoinGecko market data and per-user watchlists."
    )
    API_PREFIX: str = "/api"

    # ── Feature flags ─────────────────────────────────────────────────────
    DEBUG: bool = False

    # ── Supabase (required) ───────────────────────────────────────────────
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_KEY: str = Field(..., description="Supabase anon or service-role key")
    USERS_TABLE: str = "profiles"

    # ── CORS ──────────────────────────────────────────────────────────────
    # Optional extra origin injected by the hosting environment.
    FRONTEND_URL: str = ""

    # ── Upstream market data ──────────────────────────────────────────────
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: str = ""
    VS_CURRENCY: str = "usd"
    TOP_COINS_LIMIT: int = Field(default=100, ge=1, le=250)
    UPSTREAM_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # ── Market cache ──────────────────────────────────────────────────────
    CACHE_TTL_SECONDS: float = Field(default=30.0, gt=0)
    CACHE_MAX_ENTRIES: int = Field(default=512, ge=0)

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """
        Build the full CORS allow-list.

        Hard-coded dev origins plus the optional ``FRONTEND_URL`` env var.

        Returns:
            List of allowed origin strings.
        """
        origins: List[str] = [
            "http://localhost:3000",   # React dev server
            "http://127.0.0.1:3000",
            "https://sabbath-1.github.io",
        ]
        if self.FRONTEND_URL:
            origins.append(self.FRONTEND_URL)
        return origins

    @field_validator("SUPABASE_URL")
    @classmethod
    def _must_not_be_empty(cls, v: str) -> str:
        """Raise if a required URL field is blank."""
        if not v:
            raise ValueError("SUPABASE_URL must not be empty")
        return v

    @field_validator("API_PREFIX")
    @classmethod
    def _normalise_prefix(cls, v: str) -> str:
        """Strip a trailing slash so routers can be joined safely."""
        return v.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return a cached ``Settings`` singleton.

    The instance is created (and the ``.env`` file parsed) only once per
    process lifetime, courtesy of ``functools.lru_cache``.

    Returns:
        Settings: Validated application configuration.
    """
    return Settings()
