"""
Watchlist Store

CRUD operations on the watchlist collection, keyed by the user id
resolved from the caller's email.

RULES:
1. Symbols are normalized (uppercased) on write AND lookup
2. (userId, symbol) is unique - enforced by a duplicate check plus the
   unique index created in services/db_indexes.py
3. Mutations never raise for expected failures; they return a
   WatchlistResult with success=False, a message and an error code
4. Driver errors are logged and reported as a generic failure
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from utils.symbol_normalization import normalize_symbol

from .config import WATCHLIST_COLLECTION, MESSAGES
from .errors import (
    WatchlistError,
    UserNotFoundError,
    DuplicateEntryError,
    EntryNotFoundError,
    MissingFieldsError,
    StorageUnavailableError,
)
from .identity import IdentityResolver
from .models import WatchlistEntry, WatchlistResult

logger = logging.getLogger(__name__)


def _failure(error: WatchlistError) -> WatchlistResult:
    return WatchlistResult(success=False, message=error.message, error_code=error.code)


class WatchlistStore:
    """Service owning persistence of watchlist entries."""

    def __init__(self, db, identity: Optional[IdentityResolver] = None):
        self.db = db
        self.identity = identity or IdentityResolver(db)

    @property
    def collection(self):
        return self.db[WATCHLIST_COLLECTION]

    async def _require_user_id(self, email: str) -> str:
        user_id = await self.identity.resolve(email)
        if not user_id:
            raise UserNotFoundError()
        return user_id

    # ==================== QUERIES ====================

    async def list_items(self, email: Optional[str]) -> List[WatchlistEntry]:
        """
        Get a user's watchlist, newest first.

        Returns an empty list for an unknown user, an empty watchlist,
        or a storage error. Malformed documents are logged and skipped.
        """
        if not email:
            return []

        user_id = await self.identity.resolve(email)
        if not user_id:
            return []

        try:
            cursor = self.collection.find({"userId": user_id}, {"_id": 0}).sort("addedAt", -1)
            docs = await cursor.to_list(None)
        except PyMongoError as e:
            logger.error(f"list_items failed for {email}: {e}")
            return []

        entries = []
        for doc in docs:
            try:
                entries.append(WatchlistEntry.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed watchlist entry {doc.get('symbol')} for {email}: {e}")
        return entries

    async def list_symbols(self, email: Optional[str]) -> List[str]:
        """Get just the symbols of a user's watchlist, newest first."""
        if not email:
            return []

        user_id = await self.identity.resolve(email)
        if not user_id:
            return []

        try:
            cursor = self.collection.find({"userId": user_id}, {"_id": 0, "symbol": 1}).sort("addedAt", -1)
            docs = await cursor.to_list(None)
        except PyMongoError as e:
            logger.error(f"list_symbols failed for {email}: {e}")
            return []

        return [str(doc["symbol"]) for doc in docs if doc.get("symbol")]

    async def contains(self, email: Optional[str], symbol: Optional[str]) -> bool:
        """Check whether a symbol is on the user's watchlist."""
        symbol = normalize_symbol(symbol)
        if not email or not symbol:
            return False

        user_id = await self.identity.resolve(email)
        if not user_id:
            return False

        try:
            existing = await self.collection.find_one({"userId": user_id, "symbol": symbol}, {"_id": 1})
        except PyMongoError as e:
            logger.error(f"contains failed for {email}/{symbol}: {e}")
            return False
        return existing is not None

    # ==================== MUTATIONS ====================

    async def add(self, email: Optional[str], symbol: Optional[str], company: Optional[str]) -> WatchlistResult:
        """Add a symbol to the user's watchlist."""
        try:
            await self._add(email, symbol, company)
        except WatchlistError as e:
            return _failure(e)
        except PyMongoError as e:
            logger.error(f"addToWatchlist error for {email}/{symbol}: {e}")
            return _failure(StorageUnavailableError(MESSAGES["ADD_FAILED"], symbol=symbol))
        return WatchlistResult(success=True, message=MESSAGES["ADDED"])

    async def _add(self, email, symbol, company) -> WatchlistEntry:
        symbol = normalize_symbol(symbol)
        company = company.strip() if company else ""
        if not email or not symbol or not company:
            raise MissingFieldsError()

        user_id = await self._require_user_id(email)

        existing = await self.collection.find_one({"userId": user_id, "symbol": symbol}, {"_id": 1})
        if existing:
            raise DuplicateEntryError(symbol=symbol)

        entry = WatchlistEntry(
            user_id=user_id,
            symbol=symbol,
            company=company,
            added_at=datetime.now(timezone.utc)
        )
        try:
            await self.collection.insert_one(entry.model_dump(by_alias=True))
        except DuplicateKeyError:
            # Lost the race against a concurrent add of the same symbol
            raise DuplicateEntryError(symbol=symbol)

        logger.info(f"Watchlist add: user={user_id} symbol={symbol}")
        return entry

    async def remove(self, email: Optional[str], symbol: Optional[str]) -> WatchlistResult:
        """Remove a symbol from the user's watchlist."""
        try:
            await self._remove(email, symbol)
        except WatchlistError as e:
            return _failure(e)
        except PyMongoError as e:
            logger.error(f"removeFromWatchlist error for {email}/{symbol}: {e}")
            return _failure(StorageUnavailableError(MESSAGES["REMOVE_FAILED"], symbol=symbol))
        return WatchlistResult(success=True, message=MESSAGES["REMOVED"])

    async def _remove(self, email, symbol) -> None:
        symbol = normalize_symbol(symbol)
        if not email or not symbol:
            raise MissingFieldsError()

        user_id = await self._require_user_id(email)

        result = await self.collection.delete_one({"userId": user_id, "symbol": symbol})
        if result.deleted_count == 0:
            raise EntryNotFoundError(symbol=symbol)

        logger.info(f"Watchlist remove: user={user_id} symbol={symbol}")
