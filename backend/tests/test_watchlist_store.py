"""
Test Suite: Watchlist Store & Identity Resolver
===============================================

Tests for:
1. add / remove result messages and error codes
2. Symbol normalization on write and lookup
3. add-then-remove restores the previous state
4. Duplicate protection (check-then-insert AND unique index race)
5. list ordering and empty results
6. Identity resolution: id preference, _id fallback, caching policy
7. Storage errors reported as generic failures
"""

import sys
from datetime import datetime, timezone, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import PyMongoError

sys.path.insert(0, str(Path(__file__).parent.parent))

from watchlist.identity import IdentityResolver, extract_user_id
from watchlist.store import WatchlistStore
from services.db_indexes import create_all_indexes


@pytest.fixture
def store(fake_db):
    return WatchlistStore(fake_db)


def _snapshot(fake_db):
    return sorted((d["userId"], d["symbol"], d["company"]) for d in fake_db["watchlist"].docs)


class TestAdd:

    @pytest.mark.asyncio
    async def test_add_normalizes_symbol(self, store, fake_db):
        """a@x.com adds 'aapl' -> stored as AAPL under the user's id"""
        result = await store.add("a@x.com", "aapl", "Apple Inc.")

        assert result.success is True
        assert result.message == "Added to watchlist"
        assert result.error_code is None

        docs = fake_db["watchlist"].docs
        assert len(docs) == 1
        assert docs[0]["userId"] == "user-a"
        assert docs[0]["symbol"] == "AAPL"
        assert docs[0]["company"] == "Apple Inc."
        assert isinstance(docs[0]["addedAt"], datetime)

    @pytest.mark.asyncio
    async def test_second_add_reports_duplicate(self, store, fake_db):
        first = await store.add("a@x.com", "aapl", "Apple Inc.")
        second = await store.add("a@x.com", "AAPL", "Apple Inc.")

        assert first.success is True
        assert second.success is False
        assert second.message == "Stock already in watchlist"
        assert second.error_code == "DUPLICATE_ENTRY"
        assert len(fake_db["watchlist"].docs) == 1

    @pytest.mark.asyncio
    async def test_same_symbol_for_different_users(self, store, fake_db):
        assert (await store.add("a@x.com", "MSFT", "Microsoft")).success
        assert (await store.add("b@x.com", "MSFT", "Microsoft")).success
        assert len(fake_db["watchlist"].docs) == 2

    @pytest.mark.asyncio
    async def test_unique_index_race_reports_duplicate(self, store, fake_db, seed_entry):
        """A concurrent add that slipped past the existence check hits the unique index."""
        seed_entry("user-a", "NVDA", "NVIDIA")
        fake_db["watchlist"].find_one = AsyncMock(return_value=None)

        result = await store.add("a@x.com", "nvda", "NVIDIA")

        assert result.success is False
        assert result.error_code == "DUPLICATE_ENTRY"
        assert len(fake_db["watchlist"].docs) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,symbol,company", [
        ("", "AAPL", "Apple Inc."),
        ("a@x.com", "", "Apple Inc."),
        ("a@x.com", "AAPL", ""),
        ("a@x.com", "   ", "Apple Inc."),
        ("a@x.com", "AAPL", "   "),
        (None, None, None),
    ])
    async def test_missing_fields(self, store, fake_db, email, symbol, company):
        result = await store.add(email, symbol, company)

        assert result.success is False
        assert result.message == "Missing required fields"
        assert result.error_code == "MISSING_FIELDS"
        assert fake_db["watchlist"].docs == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, store, fake_db):
        result = await store.add("nobody@x.com", "AAPL", "Apple Inc.")

        assert result.success is False
        assert result.message == "User not found"
        assert result.error_code == "USER_NOT_FOUND"
        assert fake_db["watchlist"].docs == []

    @pytest.mark.asyncio
    async def test_storage_error_is_generic_failure(self, store, fake_db):
        fake_db["watchlist"].find_one = AsyncMock(side_effect=PyMongoError("connection reset"))

        result = await store.add("a@x.com", "AAPL", "Apple Inc.")

        assert result.success is False
        assert result.message == "Failed to add to watchlist"
        assert result.error_code == "STORAGE_UNAVAILABLE"


class TestRemove:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("symbol", ["aapl", "BRK.B", "tsla"])
    async def test_add_then_remove_restores_state(self, store, fake_db, seed_entry, symbol):
        seed_entry("user-a", "MSFT", "Microsoft")
        before = _snapshot(fake_db)

        added = await store.add("a@x.com", symbol, "Some Co")
        removed = await store.remove("a@x.com", symbol)

        assert added.success and removed.success
        assert removed.message == "Removed from watchlist"
        assert _snapshot(fake_db) == before

    @pytest.mark.asyncio
    async def test_remove_is_case_insensitive(self, store, fake_db, seed_entry):
        seed_entry("user-a", "AAPL", "Apple Inc.")

        result = await store.remove("a@x.com", "aapl")

        assert result.success is True
        assert fake_db["watchlist"].docs == []

    @pytest.mark.asyncio
    async def test_remove_missing_entry_mutates_nothing(self, store, fake_db, seed_entry):
        seed_entry("user-a", "AAPL", "Apple Inc.")
        before = _snapshot(fake_db)

        result = await store.remove("a@x.com", "GOOG")

        assert result.success is False
        assert result.message == "Stock not found in watchlist"
        assert result.error_code == "ENTRY_NOT_FOUND"
        assert _snapshot(fake_db) == before

    @pytest.mark.asyncio
    async def test_remove_only_touches_own_entries(self, store, fake_db, seed_entry):
        seed_entry("user-a", "AAPL", "Apple Inc.")

        result = await store.remove("b@x.com", "AAPL")

        assert result.error_code == "ENTRY_NOT_FOUND"
        assert len(fake_db["watchlist"].docs) == 1

    @pytest.mark.asyncio
    async def test_remove_unknown_user_and_missing_fields(self, store):
        assert (await store.remove("nobody@x.com", "AAPL")).error_code == "USER_NOT_FOUND"
        assert (await store.remove("a@x.com", "")).error_code == "MISSING_FIELDS"
        assert (await store.remove("a@x.com", "   ")).error_code == "MISSING_FIELDS"

    @pytest.mark.asyncio
    async def test_remove_storage_error(self, store, fake_db):
        fake_db["watchlist"].delete_one = AsyncMock(side_effect=PyMongoError("down"))

        result = await store.remove("a@x.com", "AAPL")

        assert result.success is False
        assert result.message == "Failed to remove from watchlist"
        assert result.error_code == "STORAGE_UNAVAILABLE"


class TestQueries:

    @pytest.mark.asyncio
    async def test_list_items_newest_first(self, store, seed_entry):
        now = datetime.now(timezone.utc)
        seed_entry("user-a", "AAPL", "Apple Inc.", now - timedelta(days=2))
        seed_entry("user-a", "TSLA", "Tesla", now)
        seed_entry("user-a", "MSFT", "Microsoft", now - timedelta(days=1))
        seed_entry("user-b", "AMD", "AMD", now)

        items = await store.list_items("a@x.com")

        assert [i.symbol for i in items] == ["TSLA", "MSFT", "AAPL"]
        assert items[0].company == "Tesla"
        assert items[0].user_id == "user-a"

    @pytest.mark.asyncio
    async def test_list_items_empty_watchlist(self, store):
        assert await store.list_items("a@x.com") == []

    @pytest.mark.asyncio
    async def test_list_items_unknown_user_or_no_email(self, store):
        assert await store.list_items("nobody@x.com") == []
        assert await store.list_items("") == []
        assert await store.list_items(None) == []

    @pytest.mark.asyncio
    async def test_list_items_skips_malformed_documents(self, store, fake_db, seed_entry):
        now = datetime.now(timezone.utc)
        seed_entry("user-a", "AAPL", "Apple Inc.", now)
        fake_db["watchlist"].docs.append({"userId": "user-a", "symbol": "BAD", "addedAt": now - timedelta(days=1)})

        items = await store.list_items("a@x.com")

        assert [i.symbol for i in items] == ["AAPL"]

    @pytest.mark.asyncio
    async def test_list_items_storage_error_is_empty(self, store, fake_db):
        fake_db["watchlist"].find = MagicMock(side_effect=PyMongoError("down"))
        assert await store.list_items("a@x.com") == []

    @pytest.mark.asyncio
    async def test_list_symbols(self, store, seed_entry):
        now = datetime.now(timezone.utc)
        seed_entry("user-a", "AAPL", "Apple Inc.", now - timedelta(hours=1))
        seed_entry("user-a", "NVDA", "NVIDIA", now)

        assert await store.list_symbols("a@x.com") == ["NVDA", "AAPL"]
        assert await store.list_symbols("b@x.com") == []

    @pytest.mark.asyncio
    async def test_contains(self, store, seed_entry):
        seed_entry("user-a", "AAPL", "Apple Inc.")

        assert await store.contains("a@x.com", "aapl") is True
        assert await store.contains("a@x.com", "MSFT") is False
        assert await store.contains("b@x.com", "AAPL") is False
        assert await store.contains(None, "AAPL") is False

    @pytest.mark.asyncio
    async def test_user_without_explicit_id_uses_object_id(self, store, fake_db):
        result = await store.add("b@x.com", "amd", "AMD")

        assert result.success is True
        assert fake_db["watchlist"].docs[0]["userId"] == "65f1c2a9e4b0a1b2c3d4e5f6"
        assert [i.symbol for i in await store.list_items("b@x.com")] == ["AMD"]


class TestIdentityResolver:

    @pytest.fixture
    def users(self):
        users = MagicMock()
        users.find_one = AsyncMock(return_value={"_id": "oid-1", "id": "user-a", "email": "a@x.com"})
        return users

    @pytest.fixture
    def db(self, users):
        db = MagicMock()
        db.__getitem__.return_value = users
        return db

    def test_extract_user_id(self):
        assert extract_user_id({"id": "abc", "_id": "oid"}) == "abc"
        assert extract_user_id({"id": "", "_id": "oid"}) == "oid"
        assert extract_user_id({}) is None

    @pytest.mark.asyncio
    async def test_resolve_queries_by_exact_email(self, db, users):
        resolver = IdentityResolver(db)

        assert await resolver.resolve("a@x.com") == "user-a"
        db.__getitem__.assert_called_with("user")
        assert users.find_one.await_args.args[0] == {"email": "a@x.com"}

    @pytest.mark.asyncio
    async def test_hits_are_cached_until_ttl(self, db, users):
        now = [1000.0]
        resolver = IdentityResolver(db, ttl_seconds=300, clock=lambda: now[0])

        await resolver.resolve("a@x.com")
        await resolver.resolve("a@x.com")
        assert users.find_one.await_count == 1

        now[0] += 301
        await resolver.resolve("a@x.com")
        assert users.find_one.await_count == 2

    @pytest.mark.asyncio
    async def test_misses_are_not_cached(self, db, users):
        users.find_one.return_value = None
        resolver = IdentityResolver(db)

        assert await resolver.resolve("new@x.com") is None
        users.find_one.return_value = {"_id": "oid-9", "email": "new@x.com"}
        assert await resolver.resolve("new@x.com") == "oid-9"

    @pytest.mark.asyncio
    async def test_invalidate(self, db, users):
        resolver = IdentityResolver(db)
        await resolver.resolve("a@x.com")

        resolver.invalidate("a@x.com")
        await resolver.resolve("a@x.com")

        assert users.find_one.await_count == 2

    @pytest.mark.asyncio
    async def test_lookup_failure_is_no_identity(self, db, users):
        users.find_one.side_effect = PyMongoError("timeout")
        resolver = IdentityResolver(db)

        assert await resolver.resolve("a@x.com") is None

    @pytest.mark.asyncio
    async def test_empty_email_skips_query(self, db, users):
        resolver = IdentityResolver(db)

        assert await resolver.resolve("") is None
        users.find_one.assert_not_awaited()


class TestIndexes:

    @pytest.mark.asyncio
    async def test_unique_watchlist_index(self):
        collection = MagicMock()
        collection.create_index = AsyncMock()
        db = MagicMock()
        db.__getitem__.return_value = collection

        results = await create_all_indexes(db)

        assert results == {"watchlist": "OK", "user": "OK"}
        collection.create_index.assert_any_await([("userId", 1), ("symbol", 1)], unique=True)
