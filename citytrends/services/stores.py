"""
stores.py — Read/write contracts for the three trend collections.

Every write is an upsert on the model's natural key:

    update_one(model.key(), {"$set": model.model_dump()}, upsert=True)

so re-running a job overwrites rows in place (last write wins per key).
There are no multi-document transactions; callers decide how to isolate
failures (the collectors and the processor isolate per row).
"""

import logging
from datetime import datetime
from typing import Optional

from citytrends.core.database import HASHTAG_TRENDS, PROCESSED_TRENDS, RAW_POSTS
from citytrends.models.trends import GLOBAL_CITY, HashtagTrend, ProcessedTrend, RawPost

logger = logging.getLogger(__name__)


async def _collect(cursor) -> list[dict]:
    docs = []
    async for doc in cursor:
        docs.append(doc)
    return docs


class RawPostStore:
    def __init__(self, db) -> None:
        self.collection = db[RAW_POSTS]

    async def upsert(self, post: RawPost) -> None:
        await self.collection.update_one(post.key(), {"$set": post.model_dump()}, upsert=True)

    async def recent(
        self,
        since: datetime,
        platform: Optional[str] = None,
        include_global: bool = False,
    ) -> list[dict]:
        """Posts collected at or after *since*, oldest first."""
        query: dict = {"collected_at": {"$gte": since}}
        if platform:
            query["platform"] = platform
        if not include_global:
            query["city"] = {"$ne": GLOBAL_CITY}
        cursor = self.collection.find(query).sort("collected_at", 1)
        return await _collect(cursor)


class HashtagTrendStore:
    def __init__(self, db) -> None:
        self.collection = db[HASHTAG_TRENDS]

    async def upsert(self, trend: HashtagTrend) -> None:
        await self.collection.update_one(trend.key(), {"$set": trend.model_dump()}, upsert=True)

    async def for_period(self, period: str) -> list[dict]:
        """The week's aggregates, most played first."""
        cursor = self.collection.find({"period": period}).sort("total_plays", -1)
        return await _collect(cursor)


class ProcessedTrendStore:
    def __init__(self, db) -> None:
        self.collection = db[PROCESSED_TRENDS]

    async def upsert(self, trend: ProcessedTrend) -> None:
        await self.collection.update_one(trend.key(), {"$set": trend.model_dump()}, upsert=True)

    async def for_period(self, period: str) -> list[dict]:
        cursor = self.collection.find({"period": period}).sort(
            [("city", 1), ("trend_type", 1), ("rank", 1)]
        )
        return await _collect(cursor)

    async def mentions_by_key(self, period: str) -> dict[str, int]:
        """
        {"{city}:{trend_type}:{trend_name}": mentions} for *period* — the
        lookup the processor compares the current week against.
        """
        lookup: dict[str, int] = {}
        for doc in await self.for_period(period):
            key = trend_key(doc.get("city", ""), doc.get("trend_type", ""), doc.get("trend_name", ""))
            lookup[key] = int(doc.get("mentions") or 0)
        return lookup


def trend_key(city: str, trend_type: str, trend_name: str) -> str:
    return f"{city}:{trend_type}:{trend_name}"
