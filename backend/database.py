"""
Database connection

The watchlist shares its MongoDB database with the auth provider, which
owns the `user` collection. Required settings are validated when this
module is imported so a misconfigured deployment fails before serving.
"""
from motor.motor_asyncio import AsyncIOMotorClient
import os
import logging
from pathlib import Path
from typing import Optional, Tuple
from dotenv import load_dotenv

from watchlist.config import USER_COLLECTION

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

REQUIRED_ENV_VARS = {
    "MONGO_URL": "MongoDB connection string (e.g., mongodb://localhost:27017)",
    "DB_NAME": "Database shared with the auth provider (e.g., signalist)",
}


def validate_required_env_vars():
    """Raise ValueError listing every required variable that is unset."""
    missing = [
        f"  - {name}: {hint}"
        for name, hint in REQUIRED_ENV_VARS.items()
        if not os.environ.get(name)
    ]
    if missing:
        banner = "=" * 60
        raise ValueError(
            f"\n{banner}\n"
            "CRITICAL: Missing required environment variables!\n"
            f"{banner}\n"
            + "\n".join(missing)
            + f"\n\nSet them in backend/.env or the process environment.\n{banner}"
        )


validate_required_env_vars()

DB_NAME = os.environ['DB_NAME']

try:
    client = AsyncIOMotorClient(
        os.environ['MONGO_URL'],
        maxPoolSize=int(os.environ.get('MONGO_MAX_POOL_SIZE', '20')),
        connectTimeoutMS=5000,
        serverSelectionTimeoutMS=5000,
        retryWrites=True
    )
except Exception as e:
    raise ValueError(f"Failed to create MongoDB client: {e}")

db = client[DB_NAME]


async def check_db_connection() -> Tuple[bool, Optional[str]]:
    """
    Ping the server and confirm the auth provider's user collection is visible.

    A missing user collection is only a warning: it means nobody has signed
    up yet, or DB_NAME points at the wrong database.

    Returns:
        (success, error_message)
    """
    try:
        await client.admin.command('ping')
        collections = await db.list_collection_names()
    except Exception as e:
        error_msg = f"Database connection failed: {e}"
        logger.error(error_msg)
        return False, error_msg

    if USER_COLLECTION not in collections:
        logger.warning(f"'{USER_COLLECTION}' collection not found in {DB_NAME}; no user can resolve yet")

    logger.info(f"Database connected successfully: {DB_NAME}")
    return True, None
