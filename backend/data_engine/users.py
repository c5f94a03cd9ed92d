"""
data_engine/users.py
─────────────────────
Watchlist persistence on top of the Supabase users table.

Each user row carries a ``watchlist`` JSON column holding an ordered list
of ``{"coinId", "coinName"}`` objects.  The list is always read and
rewritten as a whole; there is no versioning, so concurrent writers race
and the last write wins.
"""

import logging
from typing import List

from pydantic import ValidationError
from supabase import Client

from core.exceptions import PersistenceFault
from schemas.watchlist import WatchlistItem

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Load and save a user's watchlist.

    Args:
        db:    Supabase client (see :func:`core.database.get_supabase_client`).
        table: Name of the users table.

    All methods are blocking; async callers should run them in a thread.
    """

    def __init__(self, db: Client, table: str = "profiles") -> None:
        self._db = db
        self._table = table

    def load_watchlist(self, user_id: str) -> List[WatchlistItem]:
        """
        Return the user's watchlist in stored order.

        Raises:
            PersistenceFault: The user row is missing or the query failed.
        """
        try:
            res = (
                self._db.table(self._table)
                .select("watchlist")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.exception("Watchlist read failed for user %s", user_id)
            raise PersistenceFault() from exc

        if not res.data:
            logger.error("No user row for %s", user_id)
            raise PersistenceFault()

        raw = res.data[0].get("watchlist") or []
        try:
            return [WatchlistItem.model_validate(item) for item in raw]
        except ValidationError as exc:
            logger.error("Malformed watchlist for user %s: %s", user_id, exc)
            raise PersistenceFault() from exc

    def save_watchlist(self, user_id: str, items: List[WatchlistItem]) -> None:
        """
        Overwrite the user's watchlist with ``items``.

        Raises:
            PersistenceFault: The update failed.
        """
        payload = [item.model_dump(by_alias=True) for item in items]
        try:
            self._db.table(self._table).update({"watchlist": payload}).eq(
                "id", user_id
            ).execute()
        except Exception as exc:
            logger.exception("Watchlist write failed for user %s", user_id)
            raise PersistenceFault() from exc
        logger.info("Saved %d watchlist items for user %s", len(items), user_id)
