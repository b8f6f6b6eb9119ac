"""
MongoDB Index Definitions
=========================
Creates the indexes the watchlist relies on.
Run once during application startup.

The unique (userId, symbol) index is the storage-level backstop for the
store's check-then-insert on add.
"""
import logging
from typing import Dict, Any

from watchlist.config import USER_COLLECTION, WATCHLIST_COLLECTION

logger = logging.getLogger(__name__)


async def create_all_indexes(db) -> Dict[str, Any]:
    """
    Create all required indexes.

    Collections and indexes:
    - watchlist: (userId, symbol unique), (userId, addedAt desc)
    - user: (email) - lookup only, owned by the auth provider so not unique here

    Returns:
        Summary of indexes created
    """
    results = {}

    try:
        await db[WATCHLIST_COLLECTION].create_index([("userId", 1), ("symbol", 1)], unique=True)
        await db[WATCHLIST_COLLECTION].create_index([("userId", 1), ("addedAt", -1)])
        results[WATCHLIST_COLLECTION] = "OK"
    except Exception as e:
        results[WATCHLIST_COLLECTION] = f"ERROR: {e}"
        logger.error(f"Index creation failed for {WATCHLIST_COLLECTION}: {e}")

    try:
        await db[USER_COLLECTION].create_index([("email", 1)])
        results[USER_COLLECTION] = "OK"
    except Exception as e:
        results[USER_COLLECTION] = f"ERROR: {e}"
        logger.error(f"Index creation failed for {USER_COLLECTION}: {e}")

    logger.info(f"Index creation complete: {results}")
    return results
