"""
trends.py — Pydantic schemas for the three trend stores.

RawPost         — one scraped social post      (city_trends_raw)
HashtagTrend    — weekly aggregate per hashtag  (tiktok_hashtag_trends)
ProcessedTrend  — one ranked trend entity       (city_trends_processed)

Each model exposes key() — the natural key its upsert filters on. Documents
are written with model_dump(), so field names here ARE the stored field names.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

Platform = Literal["instagram", "tiktok"]
TrendType = Literal["item", "style", "color", "brand", "local_spot", "micro_trend"]

# Platform-wide hashtag scrapes that are not tied to a place
GLOBAL_CITY = "Global"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class RawPost(BaseModel):
    """A scraped post, unique on (platform, post_id)."""

    platform: Platform
    city: str
    neighborhood: Optional[str] = None
    post_id: str = Field(..., min_length=1)
    caption: str = ""
    hashtags: list[str] = Field(default_factory=list)   # lowercase, no '#'
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    plays: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)
    author: str = ""
    image_url: str = ""
    collected_at: datetime = Field(default_factory=_utcnow)

    def key(self) -> dict[str, Any]:
        return {"platform": self.platform, "post_id": self.post_id}


class HashtagTrend(BaseModel):
    """Summed engagement for one hashtag (or search query) in one period."""

    hashtag: str
    period: str
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    total_plays: int = 0
    total_likes: int = 0
    total_shares: int = 0
    post_count: int = 0
    avg_engagement: int = 0
    top_related_hashtags: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utcnow)

    def key(self) -> dict[str, Any]:
        return {"hashtag": self.hashtag, "period": self.period}


class ProcessedTrend(BaseModel):
    """One ranked trend for a city in a period."""

    city: str
    neighborhood: Optional[str] = None
    period: str
    trend_type: TrendType
    trend_name: str
    mentions: int = 0
    avg_engagement: float = 0.0
    change_percent: Optional[float] = None
    is_new: bool = True
    rank: int = Field(..., ge=1)
    source_platform: Platform = "instagram"
    # brand_type for brands; description + confidence for micro trends
    metadata: dict[str, Any] = Field(default_factory=dict)
    processed_at: datetime = Field(default_factory=_utcnow)

    def key(self) -> dict[str, Any]:
        return {
            "city": self.city,
            "period": self.period,
            "trend_type": self.trend_type,
            "trend_name": self.trend_name,
        }
