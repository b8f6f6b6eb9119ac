"""
Watchlist error taxonomy.

Store operations raise these internally and convert them into a
WatchlistResult at their boundary. The market data client raises
UpstreamFetchError and absorbs it into an empty record.
"""

from typing import Optional

from .config import ERROR_CODES


class WatchlistError(Exception):
    """Base class for expected watchlist failures."""
    code = "STORAGE_UNAVAILABLE"

    def __init__(self, message: Optional[str] = None, symbol: Optional[str] = None):
        self.message = message or ERROR_CODES[self.code]
        self.symbol = symbol
        super().__init__(self.message)


class UserNotFoundError(WatchlistError):
    code = "USER_NOT_FOUND"


class DuplicateEntryError(WatchlistError):
    code = "DUPLICATE_ENTRY"


class EntryNotFoundError(WatchlistError):
    code = "ENTRY_NOT_FOUND"


class MissingFieldsError(WatchlistError):
    code = "MISSING_FIELDS"


class UpstreamFetchError(WatchlistError):
    code = "UPSTREAM_FETCH_FAILURE"


class StorageUnavailableError(WatchlistError):
    code = "STORAGE_UNAVAILABLE"
