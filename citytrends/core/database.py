"""
MongoDB connection management using Motor (async driver).

A single DatabaseClient instance is shared across all requests via a
module-level singleton. FastAPI's dependency injection (get_db) gives
routes access without importing the singleton directly.

Collections:
  city_trends_raw        — scraped posts, unique on (platform, post_id)
  tiktok_hashtag_trends  — per-run hashtag aggregates, unique on (hashtag, period)
  city_trends_processed  — ranked trends, unique on (city, period, trend_type, trend_name)

The connection is opened in FastAPI's lifespan (startup) and closed
on shutdown.
"""

import logging
import re

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from citytrends.core.config import settings

logger = logging.getLogger(__name__)

RAW_POSTS = "city_trends_raw"
HASHTAG_TRENDS = "tiktok_hashtag_trends"
PROCESSED_TRENDS = "city_trends_processed"


class DatabaseClient:
    """
    Holds the Motor client and selected database.

    Tests replace .client and .db directly (monkeypatching a class
    attribute is cleaner than replacing module-level vars).
    """

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None


# Module-level singleton — all app code references this object
db_client = DatabaseClient()


async def connect_to_mongo() -> None:
    """
    Create the MongoDB connection, validate it with a ping and make sure
    the natural-key indexes exist.

    Fails gracefully if MongoDB is unavailable — the read API still answers
    with an empty snapshot and the cron triggers return 503.
    """
    logger.info("Connecting to MongoDB at %s", _redact_uri(settings.mongo_uri))
    try:
        db_client.client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            tlsCAFile=certifi.where(),
        )
        db_client.db = db_client.client[settings.mongo_db_name]
        await db_client.client.admin.command("ping")
        await ensure_indexes(db_client.db)
        logger.info("MongoDB connection established (db: %s)", settings.mongo_db_name)
    except Exception as exc:
        logger.warning(
            "MongoDB unavailable at startup: %s. "
            "API running in degraded mode — cron jobs will be rejected.",
            exc,
        )
        db_client.client = None
        db_client.db = None


async def close_mongo_connection() -> None:
    """Close the MongoDB connection gracefully on app shutdown."""
    if db_client.client is not None:
        db_client.client.close()
        logger.info("MongoDB connection closed")


async def ensure_indexes(db) -> None:
    """Idempotent index creation — the unique indexes back every upsert key."""
    await db[RAW_POSTS].create_index(
        [("platform", 1), ("post_id", 1)],
        name="platform_post_id_unique",
        unique=True,
    )
    await db[RAW_POSTS].create_index(
        [("platform", 1), ("collected_at", -1)],
        name="platform_collected_at",
    )
    await db[HASHTAG_TRENDS].create_index(
        [("hashtag", 1), ("period", 1)],
        name="hashtag_period_unique",
        unique=True,
    )
    await db[PROCESSED_TRENDS].create_index(
        [("city", 1), ("period", 1), ("trend_type", 1), ("trend_name", 1)],
        name="city_period_type_name_unique",
        unique=True,
    )


def get_db() -> AsyncIOMotorDatabase | None:
    """
    FastAPI dependency — inject the database into route handlers.

    Returns None when MongoDB is unavailable so routes can degrade
    gracefully rather than returning 500 errors.
    """
    return db_client.db


def _redact_uri(uri: str) -> str:
    """Strip credentials from URI before logging."""
    return re.sub(r"://[^:]+:[^@]+@", "://<redacted>@", uri)
