"""
Shared fixtures for the watchlist test suite.

FakeDatabase is an in-memory stand-in for the motor database covering
the calls the watchlist makes (find_one, find().sort().to_list(),
insert_one, delete_one), including unique-index enforcement.
"""

import sys
from datetime import datetime, timezone, timedelta
from pathlib import Path
from types import SimpleNamespace

import jwt
import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.auth import JWT_SECRET, JWT_ALGORITHM


def _matches(doc, query):
    return all(doc.get(key) == value for key, value in query.items())


def _project(doc, projection):
    if not projection:
        return dict(doc)
    included = [k for k, v in projection.items() if v]
    if included:
        out = {k: doc[k] for k in included if k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
        return out
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length):
        return list(self._docs) if length is None else list(self._docs[:length])


class FakeCollection:
    def __init__(self, unique_keys=None):
        self.docs = []
        self.unique_keys = unique_keys

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query, projection=None):
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query)])

    async def insert_one(self, doc):
        if self.unique_keys:
            key = {k: doc.get(k) for k in self.unique_keys}
            if any(_matches(d, key) for d in self.docs):
                raise DuplicateKeyError("E11000 duplicate key error", 11000)
        stored = dict(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self.collections = {
            "user": FakeCollection(),
            "watchlist": FakeCollection(unique_keys=("userId", "symbol")),
        }

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture
def fake_db():
    """Database seeded with two users: one with an explicit id, one without."""
    db = FakeDatabase()
    db["user"].docs.extend([
        {"_id": ObjectId(), "id": "user-a", "email": "a@x.com", "name": "Alice"},
        {"_id": ObjectId("65f1c2a9e4b0a1b2c3d4e5f6"), "email": "b@x.com", "name": "Bob"},
    ])
    return db


@pytest.fixture
def seed_entry(fake_db):
    """Insert a watchlist document directly, bypassing the store."""
    def _seed(user_id, symbol, company, added_at=None):
        fake_db["watchlist"].docs.append({
            "_id": ObjectId(),
            "userId": user_id,
            "symbol": symbol,
            "company": company,
            "addedAt": added_at or datetime.now(timezone.utc),
        })
    return _seed


@pytest.fixture
def make_token():
    """Issue a session JWT the way the auth provider does."""
    def _make(user_id, email, expires_in=timedelta(days=7)):
        payload = {
            "sub": user_id,
            "email": email,
            "exp": datetime.now(timezone.utc) + expires_in
        }
        return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
    return _make
