"""
core/exceptions.py
──────────────────
Domain errors raised by the data layer and translated to JSON responses
by the handler registered in ``app/main.py``.

Every error carries the client-facing ``message`` and the HTTP
``status_code`` it maps to.  Diagnostic detail (upstream status codes,
database errors) is chained via ``raise ... from exc`` and only ever
reaches the logs.
"""

from typing import Optional


class CryptoTrackerError(Exception):
    """Base class for errors rendered as ``{"error": message}``."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UpstreamUnavailable(CryptoTrackerError):
    """CoinGecko call failed and no cached payload can stand in for it."""

    default_message = "Failed to fetch crypto data"


class DuplicateWatchlistEntry(CryptoTrackerError):
    """The coin is already on the user's watchlist."""

    status_code = 400
    default_message = "Coin already in watchlist"


class PersistenceFault(CryptoTrackerError):
    """Reading or writing the user record failed."""

    default_message = "Server error"


class AuthenticationFailed(CryptoTrackerError):
    """The request carried no bearer token, or the token was rejected."""

    status_code = 401
    default_message = "Token is not valid"
