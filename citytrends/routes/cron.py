"""
cron.py — Scheduler-triggered collection and processing jobs.

Routes (all GET, all behind the cron bearer secret):
  /api/cron/collect-city-trends     Instagram (all locations) + TikTok global hashtags
  /api/cron/collect-instagram       one Instagram batch (?batch=1|2|3)
  /api/cron/collect-tiktok-trends   TikTok neighborhood hashtags
  /api/cron/collect-tiktok          TikTok keyword searches
  /api/cron/process-city-trends     raw posts -> ranked processed trends

The scheduler only looks at the status code; the JSON bodies are summaries
for whoever reads the logs. A job that fails outside its per-target /
per-city isolation answers 500 with {error, details}.

Manual run:
  curl -H "Authorization: Bearer $CRON_SECRET" \
       http://localhost:8000/api/cron/collect-instagram?batch=2
"""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from citytrends.ai.apify_adapter import ApifyAdapter, apify_adapter
from citytrends.ai.gemini_client import gemini_client
from citytrends.ai.trend_extractor import TrendExtractor
from citytrends.core.config import settings
from citytrends.core.database import get_db
from citytrends.core.security import verify_cron_auth
from citytrends.models.cron import (
    CollectResponse,
    InstagramSummary,
    ProcessResponse,
    TikTokSummary,
)
from citytrends.services.collector import (
    GLOBAL_HASHTAGS,
    INSTAGRAM_BATCHES,
    INSTAGRAM_LOCATIONS,
    KEYWORD_SEARCHES,
    NEIGHBORHOOD_HASHTAGS,
    Collector,
    CollectionReport,
)
from citytrends.services.trend_processor import TrendProcessor

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_auth)],
)


# ── Dependencies ──────────────────────────────────────────────────────────────
# Overridden in tests via app.dependency_overrides.

def get_scraper() -> ApifyAdapter:
    return apify_adapter


def get_trend_extractor() -> TrendExtractor:
    return TrendExtractor(gemini_client)


def _require_db(db) -> None:
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _job_failed(job: str, exc: Exception) -> JSONResponse:
    logger.exception("%s failed: %s", job, exc)
    return JSONResponse(
        status_code=500,
        content={"error": f"Failed to {job}", "details": str(exc)},
    )


def _instagram(report: CollectionReport) -> InstagramSummary:
    return InstagramSummary(total=report.total, locations=report.results)


def _tiktok(report: CollectionReport) -> TikTokSummary:
    return TikTokSummary(total=report.total, hashtags=report.results)


# ── Collection ────────────────────────────────────────────────────────────────

@router.get("/collect-city-trends", response_model=CollectResponse, response_model_exclude_none=True)
async def collect_city_trends(
    db=Depends(get_db),
    scraper: ApifyAdapter = Depends(get_scraper),
):
    """Instagram locations and TikTok global hashtags, run side by side."""
    _require_db(db)
    collector = Collector(db, scraper)
    try:
        instagram, tiktok = await asyncio.gather(
            collector.collect_locations(INSTAGRAM_LOCATIONS),
            collector.collect_hashtags(GLOBAL_HASHTAGS),
        )
    except Exception as exc:
        return _job_failed("collect city trends", exc)

    return CollectResponse(
        message="City trends collection complete",
        period=instagram.period,
        instagram=_instagram(instagram),
        tiktok=_tiktok(tiktok),
        timestamp=_timestamp(),
    )


@router.get("/collect-instagram", response_model=CollectResponse, response_model_exclude_none=True)
async def collect_instagram(
    batch: int = Query(default=1, ge=1, le=len(INSTAGRAM_BATCHES), description="Location batch"),
    db=Depends(get_db),
    scraper: ApifyAdapter = Depends(get_scraper),
):
    _require_db(db)
    targets = INSTAGRAM_BATCHES[batch]
    try:
        report = await Collector(db, scraper).collect_locations(targets)
    except Exception as exc:
        return _job_failed(f"collect Instagram batch {batch}", exc)

    return CollectResponse(
        message=f"Instagram batch {batch} complete ({', '.join(t.city for t in targets)})",
        period=report.period,
        instagram=_instagram(report),
        timestamp=_timestamp(),
    )


@router.get("/collect-tiktok-trends", response_model=CollectResponse, response_model_exclude_none=True)
async def collect_tiktok_trends(
    db=Depends(get_db),
    scraper: ApifyAdapter = Depends(get_scraper),
):
    """Neighborhood-scoped hashtags with related-hashtag aggregates."""
    _require_db(db)
    try:
        report = await Collector(db, scraper).collect_hashtags(
            NEIGHBORHOOD_HASHTAGS, limit=settings.posts_per_neighborhood_hashtag
        )
    except Exception as exc:
        return _job_failed("collect TikTok hashtag trends", exc)

    return CollectResponse(
        message="TikTok neighborhood hashtag collection complete",
        period=report.period,
        tiktok=_tiktok(report),
        timestamp=_timestamp(),
    )


@router.get("/collect-tiktok", response_model=CollectResponse, response_model_exclude_none=True)
async def collect_tiktok(
    db=Depends(get_db),
    scraper: ApifyAdapter = Depends(get_scraper),
):
    """Keyword searches; each query is reported under tiktok.hashtags."""
    _require_db(db)
    try:
        report = await Collector(db, scraper).collect_searches(KEYWORD_SEARCHES)
    except Exception as exc:
        return _job_failed("collect TikTok searches", exc)

    return CollectResponse(
        message="TikTok keyword search collection complete",
        period=report.period,
        tiktok=_tiktok(report),
        timestamp=_timestamp(),
    )


# ── Processing ────────────────────────────────────────────────────────────────

@router.get("/process-city-trends", response_model=ProcessResponse)
async def process_city_trends(
    db=Depends(get_db),
    extractor: TrendExtractor = Depends(get_trend_extractor),
):
    _require_db(db)
    try:
        report = await TrendProcessor(db, extractor).run()
    except Exception as exc:
        return _job_failed("process city trends", exc)

    return ProcessResponse(
        message=f"Processed trends for {len(report.results)} cities",
        period=report.period,
        total_cities=len(report.results),
        results=report.results,
        skipped=report.skipped,
        timestamp=_timestamp(),
    )
