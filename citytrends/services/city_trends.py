"""
city_trends.py — Builds the GET /api/city-trends payload.

Three-tier fallback, so the dashboard never hard-fails on a missed run:

  1. processed  ProcessedTrend rows exist for the current period
                -> per-neighborhood bundles, hasProcessedData=true
  2. raw        only raw posts from the last 7 days
                -> per-city post counts / engagement / top hashtags
  3. empty      nothing at all -> empty list + advisory message

The week's TikTok hashtag aggregates are attached in tiers 1 and 2.
A failing store query is logged and treated as "no rows".
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Optional

from pydantic import ValidationError

from citytrends.core.config import settings
from citytrends.core.periods import current_period
from citytrends.models.city_trends import (
    BrandTrend,
    CityRawStats,
    CityTrendsResponse,
    ColorTrend,
    GarmentTrend,
    HashtagCount,
    LocalSpot,
    MicroTrendOut,
    NeighborhoodTrends,
    StyleTrend,
)
from citytrends.models.trends import GLOBAL_CITY, HashtagTrend
from citytrends.services.stores import HashtagTrendStore, ProcessedTrendStore, RawPostStore

logger = logging.getLogger(__name__)

TOP_HASHTAGS = 10

RAW_ONLY_MESSAGE = "Raw data aggregated. Run process-city-trends for full analysis."
NO_DATA_MESSAGE = "No data available. Run collect-city-trends first."


def format_change(is_new: bool, change_percent: Optional[float]) -> str:
    """NEW / +50% / -20% / 0%"""
    if is_new:
        return "NEW"
    if change_percent is None:
        return "0%"
    rounded = round(change_percent)
    if rounded > 0:
        return f"+{rounded}%"
    if rounded < 0:
        return f"{rounded}%"
    return "0%"


def build_neighborhoods(rows: list[dict]) -> list[NeighborhoodTrends]:
    """Group processed rows (already sorted by city, type, rank) per neighborhood."""
    bundles: dict[str, NeighborhoodTrends] = {}

    for row in rows:
        city = row.get("city", "")
        place = row.get("neighborhood") or city
        bundle = bundles.get(place)
        if bundle is None:
            bundle = bundles[place] = NeighborhoodTrends(neighborhood=place, city=city)

        name = row.get("trend_name", "")
        mentions = int(row.get("mentions") or 0)
        is_new = bool(row.get("is_new", True))
        change = format_change(is_new, row.get("change_percent"))
        metadata = row.get("metadata") or {}
        trend_type = row.get("trend_type")

        if trend_type == "item":
            bundle.garments.append(
                GarmentTrend(
                    name=name,
                    mentions=mentions,
                    is_new=is_new,
                    rank=int(row.get("rank") or 0),
                    change=change,
                    avg_engagement=round(row.get("avg_engagement") or 0),
                )
            )
        elif trend_type == "style":
            bundle.styles.append(StyleTrend(name=name, mentions=mentions, is_new=is_new, change=change))
        elif trend_type == "color":
            bundle.colors.append(ColorTrend(name=name, mentions=mentions))
        elif trend_type == "brand":
            bundle.brands.append(
                BrandTrend(name=name, mentions=mentions, type=metadata.get("brand_type") or "")
            )
        elif trend_type == "local_spot":
            bundle.local_spots.append(LocalSpot(name=name, mentions=mentions))
        elif trend_type == "micro_trend":
            bundle.micro_trends.append(
                MicroTrendOut(
                    name=name,
                    description=metadata.get("description") or "",
                    confidence=int(metadata.get("confidence", mentions) or 0),
                )
            )

    return list(bundles.values())


def build_raw_stats(docs: list[dict]) -> list[CityRawStats]:
    """Per-city counts over raw posts, Global scrapes excluded."""
    posts: dict[str, int] = {}
    engagement: dict[str, int] = {}
    neighborhoods: dict[str, str] = {}
    hashtags: dict[str, Counter] = {}

    for doc in docs:
        city = doc.get("city")
        if not city or city == GLOBAL_CITY:
            continue
        if city not in posts:
            posts[city] = 0
            engagement[city] = 0
            neighborhoods[city] = doc.get("neighborhood") or ""
            hashtags[city] = Counter()
        posts[city] += 1
        engagement[city] += int(doc.get("likes") or 0) + int(doc.get("comments") or 0)
        hashtags[city].update(doc.get("hashtags") or [])

    return [
        CityRawStats(
            city=city,
            neighborhood=neighborhoods[city],
            post_count=count,
            avg_engagement=round(engagement[city] / count) if count else 0,
            top_hashtags=[
                HashtagCount(tag=tag, count=n) for tag, n in hashtags[city].most_common(TOP_HASHTAGS)
            ],
        )
        for city, count in posts.items()
    ]


def _hashtag_trends(docs: list[dict]) -> list[HashtagTrend]:
    trends = []
    for doc in docs:
        try:
            trends.append(HashtagTrend.model_validate(doc))
        except ValidationError:
            logger.debug("Skipping malformed hashtag trend: %r", doc.get("hashtag"))
    return trends


class CityTrendsReader:
    def __init__(self, db) -> None:
        self.raw_posts = RawPostStore(db)
        self.hashtag_trends = HashtagTrendStore(db)
        self.processed = ProcessedTrendStore(db)

    async def _safe(self, what: str, query: Awaitable[list[dict]]) -> list[dict]:
        try:
            return await query
        except Exception as exc:
            logger.error("Error fetching %s: %s", what, exc)
            return []

    async def snapshot(self, now: Optional[datetime] = None) -> CityTrendsResponse:
        now = now or datetime.now()
        period = current_period(now)
        since = now.astimezone(timezone.utc) - timedelta(days=settings.lookback_days)

        processed = await self._safe("processed trends", self.processed.for_period(period))
        tiktok = _hashtag_trends(
            await self._safe("hashtag trends", self.hashtag_trends.for_period(period))
        )

        if processed:
            return CityTrendsResponse(
                neighborhoods=build_neighborhoods(processed),
                tiktok_trends=tiktok,
                period=period,
                has_processed_data=True,
            )

        raw = await self._safe("raw posts", self.raw_posts.recent(since))
        if raw:
            return CityTrendsResponse(
                cities=build_raw_stats(raw),
                tiktok_trends=tiktok,
                period=period,
                has_processed_data=False,
                message=RAW_ONLY_MESSAGE,
            )

        return empty_snapshot(period)


def empty_snapshot(period: Optional[str] = None) -> CityTrendsResponse:
    return CityTrendsResponse(
        cities=[],
        period=period or current_period(),
        has_processed_data=False,
        message=NO_DATA_MESSAGE,
    )
