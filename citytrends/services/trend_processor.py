"""
trend_processor.py — Weekly job: raw Instagram posts -> ranked ProcessedTrend rows.

PIPELINE
────────
  city_trends_raw (last 7 days, instagram, city != Global)
      │  group by city: captions, likes+comments, first neighborhood
      ▼
  cities with < MIN_CAPTIONS captions are skipped
      │
      ▼
  TrendExtractor (one LLM call per city, ≤100 captions)
      │
      ▼
  previous-period lookup  "{city}:{trend_type}:{trend_name}" -> mentions
      │
      ▼
  city_trends_processed  one upsert per entity, rank = list position

change_percent = (mentions - prev) / prev * 100 when a previous row exists
with prev > 0, else None. is_new is True iff there is no previous row at all.

Only the initial raw-post query may fail the run. Extraction errors yield
zero trends for that city; a failed upsert loses that one row.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from citytrends.ai.trend_extractor import TrendExtractor
from citytrends.core.config import settings
from citytrends.core.periods import current_period, previous_period
from citytrends.models.extraction import TrendExtraction
from citytrends.models.trends import ProcessedTrend
from citytrends.services.stores import ProcessedTrendStore, RawPostStore, trend_key

logger = logging.getLogger(__name__)

# Max rows persisted per trend type
TYPE_CAPS = {
    "item": 10,
    "style": 5,
    "color": 5,
    "brand": 10,
    "local_spot": 5,
    "micro_trend": 5,
}


@dataclass
class CityBucket:
    city: str
    neighborhood: Optional[str] = None
    captions: list[str] = field(default_factory=list)
    total_engagement: int = 0

    @property
    def avg_engagement(self) -> float:
        return self.total_engagement / len(self.captions) if self.captions else 0.0


@dataclass
class ProcessingReport:
    period: str
    results: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


def group_by_city(docs: list[dict]) -> dict[str, CityBucket]:
    """Bucket raw post documents by city; posts without a caption don't count."""
    buckets: dict[str, CityBucket] = {}
    for doc in docs:
        city = doc.get("city")
        caption = doc.get("caption")
        if not city or not caption:
            continue
        bucket = buckets.setdefault(city, CityBucket(city=city))
        bucket.captions.append(caption)
        bucket.total_engagement += int(doc.get("likes") or 0) + int(doc.get("comments") or 0)
        if not bucket.neighborhood and doc.get("neighborhood"):
            bucket.neighborhood = doc["neighborhood"]
    return buckets


def compute_change(mentions: int, previous: Optional[int]) -> Optional[float]:
    if not previous:
        return None
    return (mentions - previous) * 100 / previous


def _rows_for(extraction: TrendExtraction) -> list[tuple[str, list[tuple[str, int, dict[str, Any]]]]]:
    """(trend_type, [(name, mentions, metadata), ...]) in persistence order, capped."""
    return [
        ("item", [(e.name, e.mentions, {}) for e in extraction.items]),
        ("style", [(e.name, e.mentions, {}) for e in extraction.styles]),
        ("color", [(e.name, e.mentions, {}) for e in extraction.colors]),
        ("brand", [(e.name, e.mentions, {"brand_type": e.type}) for e in extraction.brands]),
        ("local_spot", [(e.name, e.mentions, {}) for e in extraction.local_spots]),
        (
            "micro_trend",
            [
                (e.name, e.confidence, {"description": e.description, "confidence": e.confidence})
                for e in extraction.micro_trends
            ],
        ),
    ]


class TrendProcessor:
    def __init__(self, db, extractor: TrendExtractor) -> None:
        self.extractor = extractor
        self.raw_posts = RawPostStore(db)
        self.processed = ProcessedTrendStore(db)

    async def _previous_lookup(self, period: str) -> dict[str, int]:
        try:
            return await self.processed.mentions_by_key(period)
        except Exception as exc:
            # Without history every trend is reported as new
            logger.error("Could not load previous period %s: %s", period, exc)
            return {}

    async def run(self, now: Optional[datetime] = None) -> ProcessingReport:
        now = now or datetime.now()
        period = current_period(now)
        prev_period = previous_period(now)
        report = ProcessingReport(period=period)

        since = now.astimezone(timezone.utc) - timedelta(days=settings.lookback_days)
        docs = await self.raw_posts.recent(since, platform="instagram")
        buckets = group_by_city(docs)
        logger.info("Processing %d posts across %d cities for %s", len(docs), len(buckets), period)

        previous = await self._previous_lookup(prev_period)

        for city, bucket in buckets.items():
            if len(bucket.captions) < settings.min_captions_per_city:
                logger.info(
                    "Skipping %s: only %d captions (need %d)",
                    city,
                    len(bucket.captions),
                    settings.min_captions_per_city,
                )
                report.skipped.append(city)
                continue

            logger.info("Analysing %s (%d captions)", city, len(bucket.captions))
            extraction = await self.extractor.extract(bucket.captions, city)
            report.results[city] = await self._write_city(bucket, period, extraction, previous)

        logger.info("Processing complete for %s: %s", period, report.results)
        return report

    async def _write_city(
        self,
        bucket: CityBucket,
        period: str,
        extraction: TrendExtraction,
        previous: dict[str, int],
    ) -> int:
        written = 0
        avg_engagement = bucket.avg_engagement

        for trend_type, entries in _rows_for(extraction):
            for index, (name, mentions, metadata) in enumerate(entries[: TYPE_CAPS[trend_type]]):
                key = trend_key(bucket.city, trend_type, name)
                row = ProcessedTrend(
                    city=bucket.city,
                    neighborhood=bucket.neighborhood,
                    period=period,
                    trend_type=trend_type,
                    trend_name=name,
                    mentions=mentions,
                    avg_engagement=avg_engagement,
                    change_percent=compute_change(mentions, previous.get(key)),
                    is_new=key not in previous,
                    rank=index + 1,
                    metadata=metadata,
                )
                try:
                    await self.processed.upsert(row)
                except Exception as exc:
                    logger.warning("Upsert failed for %s: %s", key, exc)
                    continue
                written += 1

        return written
