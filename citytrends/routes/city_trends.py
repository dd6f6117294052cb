"""
city_trends.py — Public read endpoint for the trends dashboard.

  GET /api/city-trends

No auth, rate limited per client IP. Always answers 200: processed bundles
when the weekly processor has run, raw per-city stats when only collection
has, otherwise an empty list with an advisory message. See
citytrends.services.city_trends for the fallback rules.
"""

import logging

from fastapi import APIRouter, Depends, Request

from citytrends.core.config import settings
from citytrends.core.database import get_db
from citytrends.core.rate_limit import limiter
from citytrends.models.city_trends import CityTrendsResponse
from citytrends.services.city_trends import CityTrendsReader, empty_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["city-trends"])


@router.get(
    "/city-trends",
    response_model=CityTrendsResponse,
    response_model_exclude_none=True,
)
@limiter.limit(settings.read_rate_limit)
async def get_city_trends(request: Request, db=Depends(get_db)):
    if db is None:
        logger.warning("City trends requested while MongoDB is unavailable")
        return empty_snapshot()
    return await CityTrendsReader(db).snapshot()
