"""
Watchlist Configuration and Constants

Collection names, cache lifetimes, user-facing messages and the
Finnhub client configuration are defined here.
"""

import os
from dataclasses import dataclass
from typing import Optional

# ==================== COLLECTIONS ====================
# Better Auth stores users in the "user" collection
USER_COLLECTION = "user"
WATCHLIST_COLLECTION = "watchlist"

# ==================== CACHE LIFETIMES (SECONDS) ====================
QUOTE_CACHE_TTL_SECONDS = 60
PROFILE_CACHE_TTL_SECONDS = 3600
IDENTITY_CACHE_TTL_SECONDS = int(os.environ.get("IDENTITY_CACHE_TTL_SECONDS", "300"))

# ==================== FINNHUB ====================
FINNHUB_BASE_URL = "https://finnhub.io/api/v1"
FINNHUB_TIMEOUT_SECONDS = 10.0

# ==================== NAVIGATION ====================
SIGN_IN_URL = "/sign-in"
EXPLORE_URL = "/"
STOCK_DETAIL_URL = "/stocks/{symbol}"

# ==================== RESULT MESSAGES ====================
MESSAGES = {
    "ADDED": "Added to watchlist",
    "REMOVED": "Removed from watchlist",
    "ADD_FAILED": "Failed to add to watchlist",
    "REMOVE_FAILED": "Failed to remove from watchlist",
    "SIGN_IN_REQUIRED": "Please sign in to use watchlist",
    "UNEXPECTED": "An error occurred. Please try again.",
    "PRICE_UNAVAILABLE": "Price data unavailable",
}

# ==================== ERROR CODES ====================
ERROR_CODES = {
    "USER_NOT_FOUND": "User not found",
    "DUPLICATE_ENTRY": "Stock already in watchlist",
    "ENTRY_NOT_FOUND": "Stock not found in watchlist",
    "MISSING_FIELDS": "Missing required fields",
    "UPSTREAM_FETCH_FAILURE": "Market data unavailable",
    "STORAGE_UNAVAILABLE": "Watchlist storage unavailable",
}


@dataclass(frozen=True)
class MarketDataConfig:
    """Explicit configuration for the Finnhub client."""
    api_key: Optional[str] = None
    base_url: str = FINNHUB_BASE_URL
    timeout_seconds: float = FINNHUB_TIMEOUT_SECONDS
    quote_ttl_seconds: int = QUOTE_CACHE_TTL_SECONDS
    profile_ttl_seconds: int = PROFILE_CACHE_TTL_SECONDS

    @classmethod
    def from_env(cls) -> "MarketDataConfig":
        """
        Build config from environment variables.

        FINNHUB_API_KEY wins over the public NEXT_PUBLIC_FINNHUB_API_KEY.
        A missing key is allowed; enrichment then degrades to empty results.
        """
        api_key = os.environ.get("FINNHUB_API_KEY") or os.environ.get("NEXT_PUBLIC_FINNHUB_API_KEY")
        return cls(
            api_key=api_key or None,
            base_url=os.environ.get("FINNHUB_BASE_URL", FINNHUB_BASE_URL).rstrip("/"),
            timeout_seconds=float(os.environ.get("FINNHUB_TIMEOUT_SECONDS", FINNHUB_TIMEOUT_SECONDS)),
        )
