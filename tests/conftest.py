"""
pytest configuration and shared fixtures for the City Trends API tests.

Key concern: tests must not require a live MongoDB, Apify token or Gemini
API key. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Setting db_client.client = None (disconnected) so health check
     correctly reports "disconnected" — a valid test-mode state.
  3. Ensuring AI_MOCK_MODE=true so GeminiClient returns canned responses.
  4. FakeDB — an in-memory stand-in for the handful of Motor calls the
     stores make (update_one upsert, find/sort/limit, async iteration).
"""

import os
from itertools import count
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("APIFY_API_TOKEN", "")

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}


# ── FakeDB ────────────────────────────────────────────────────────────────────

def _matches(doc, query):
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict):
            for op, operand in cond.items():
                if op == "$gte" and not (value is not None and value >= operand):
                    return False
                if op == "$ne" and value == operand:
                    return False
                if op == "$in" and value not in operand:
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        keys = key if isinstance(key, list) else [(key, direction)]
        # Stable sorts applied last key first give a multi-key ordering
        for field, order in reversed(keys):
            self._docs.sort(key=lambda d: d.get(field), reverse=order == -1)
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def __aiter__(self):
        for doc in self._docs:
            yield doc


class FakeCollection:
    def __init__(self):
        self.docs = []
        self._ids = count(1)
        # Set to a predicate(filter) -> bool to make matching upserts raise
        self.fail_when = None

    async def update_one(self, query, update, upsert=False):
        if self.fail_when is not None and self.fail_when(query):
            raise RuntimeError("simulated write failure")
        fields = update.get("$set", {})
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(fields)
                return MagicMock(matched_count=1, upserted_id=None)
        if not upsert:
            return MagicMock(matched_count=0, upserted_id=None)
        doc = {"_id": next(self._ids), **query, **fields}
        self.docs.append(doc)
        return MagicMock(matched_count=0, upserted_id=doc["_id"])

    async def insert_one(self, doc):
        doc = {"_id": next(self._ids), **doc}
        self.docs.append(doc)
        return MagicMock(inserted_id=doc["_id"])

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def create_index(self, *args, **kwargs):
        return kwargs.get("name", "index")

    def find(self, query=None):
        return FakeCursor([dict(d) for d in self.docs if _matches(d, query or {})])


class FailingCollection(FakeCollection):
    """Every read blows up — for store-error paths."""

    def find(self, query=None):
        raise RuntimeError("simulated read failure")


class FakeDB:
    def __init__(self):
        self._cols = {}

    def __getitem__(self, name):
        if name not in self._cols:
            self._cols[name] = FakeCollection()
        return self._cols[name]

    def __setitem__(self, name, collection):
        self._cols[name] = collection


# ── Fakes for the external collaborators ──────────────────────────────────────

class FakeScraper:
    """
    Stands in for ApifyAdapter. `responses` maps a location query, hashtag or
    search query to the list of items to return, or to an Exception to raise.
    """

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    async def _respond(self, key, limit):
        self.calls.append((key, limit))
        response = self.responses.get(key, [])
        if isinstance(response, Exception):
            raise response
        return response

    async def scrape_location(self, location_query, limit):
        return await self._respond(location_query, limit)

    async def scrape_hashtag(self, hashtag, limit):
        return await self._respond(hashtag, limit)

    async def search_keyword(self, query, limit):
        return await self._respond(query, limit)


class FakeExtractor:
    """Stands in for TrendExtractor; returns a fixed extraction per city."""

    def __init__(self, by_city=None):
        self.by_city = by_city or {}
        self.calls = []

    async def extract(self, captions, city):
        from citytrends.models.extraction import TrendExtraction

        self.calls.append((city, list(captions)))
        return self.by_city.get(city, TrendExtraction())


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test.

    - connect_to_mongo → no-op AsyncMock (startup doesn't attempt real connection)
    - close_mongo_connection → no-op AsyncMock
    - db_client.client / db_client.db → None
    """
    with (
        patch("citytrends.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("citytrends.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import citytrends.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 — mock_db must run first
    """HTTPX async test client wired to the FastAPI app (no DB override)."""
    from citytrends.core.rate_limit import limiter
    from citytrends.main import app

    limiter.reset()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
async def db_client_app(fake_db, mock_db):  # noqa: ARG001
    """Test client with get_db overridden to the in-memory FakeDB."""
    from citytrends.core.database import get_db
    from citytrends.core.rate_limit import limiter
    from citytrends.main import app

    limiter.reset()
    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
