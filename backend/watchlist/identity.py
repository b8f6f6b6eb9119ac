"""
Identity Resolver

Maps a user's email to the stable user id stored by the auth provider.

CACHING POLICY:
- Successful resolutions are cached in-process per email for
  IDENTITY_CACHE_TTL_SECONDS.
- Misses and lookup failures are NOT cached, so a user who just signed
  up resolves on the next call.
- invalidate(email) / clear() drop cached entries.
"""

import logging
import time
from typing import Optional, Dict, Tuple, Any

from pymongo.errors import PyMongoError

from .config import USER_COLLECTION, IDENTITY_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


def extract_user_id(user: Dict[str, Any]) -> Optional[str]:
    """Prefer the auth provider's `id` field, fall back to the Mongo `_id`."""
    user_id = user.get("id")
    if user_id:
        return str(user_id)
    raw_id = user.get("_id")
    if raw_id:
        return str(raw_id)
    return None


class IdentityResolver:
    """Resolves emails to user ids against the auth provider's user collection."""

    def __init__(self, db, ttl_seconds: int = IDENTITY_CACHE_TTL_SECONDS, clock=time.monotonic):
        self.db = db
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, Tuple[str, float]] = {}

    async def resolve(self, email: Optional[str]) -> Optional[str]:
        """
        Resolve an email to a user id.

        Returns:
            The user id, or None if the email is empty, unknown, or the
            lookup failed. Never raises for driver errors.
        """
        if not email:
            return None

        cached = self._cache.get(email)
        if cached:
            user_id, expires_at = cached
            if self._clock() < expires_at:
                return user_id
            del self._cache[email]

        try:
            user = await self.db[USER_COLLECTION].find_one(
                {"email": email},
                {"_id": 1, "id": 1}
            )
        except PyMongoError as e:
            logger.error(f"Identity lookup failed for {email}: {e}")
            return None

        if not user:
            return None

        user_id = extract_user_id(user)
        if not user_id:
            logger.warning(f"User record for {email} has no usable id")
            return None

        if self.ttl_seconds > 0:
            self._cache[email] = (user_id, self._clock() + self.ttl_seconds)
        return user_id

    def invalidate(self, email: str) -> None:
        self._cache.pop(email, None)

    def clear(self) -> None:
        self._cache.clear()
