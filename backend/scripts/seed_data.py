"""
Seed script to give a Supabase user a starter watchlist for local testing.

Usage::

    cd backend
    python scripts/seed_data.py <user-id>
"""
import sys
import os

# Add the parent directory to sys.path so we can import backend modules
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.config import get_settings
from core.database import get_supabase_client
from core.exceptions import PersistenceFault
from data_engine.users import UserRepository
from schemas.watchlist import WatchlistItem
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

STARTER_COINS = [
    ("bitcoin", "Bitcoin"),
    ("ethereum", "Ethereum"),
    ("solana", "Solana"),
]


def seed(user_id: str) -> None:
    repo = UserRepository(get_supabase_client(), table=get_settings().USERS_TABLE)

    items = repo.load_watchlist(user_id)
    watched = {item.coin_id for item in items}
    for coin_id, coin_name in STARTER_COINS:
        if coin_id in watched:
            logger.info("%s already on watchlist, skipping", coin_id)
            continue
        items.append(WatchlistItem(coin_id=coin_id, coin_name=coin_name))

    repo.save_watchlist(user_id, items)
    logger.info("Watchlist for %s: %s", user_id, ", ".join(i.coin_id for i in items))


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: python scripts/seed_data.py <user-id>")
    try:
        seed(sys.argv[1])
    except PersistenceFault as e:
        logger.error("Failed to seed watchlist: %s", e)
        sys.exit(1)
