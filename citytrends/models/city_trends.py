"""
city_trends.py — Response schemas for GET /api/city-trends.

The dashboard consumes camelCase keys, so these models serialise by alias
(alias_generator=to_camel) while Python code keeps snake_case names.

Three response shapes share CityTrendsResponse:
  processed  — neighborhoods=[...], hasProcessedData=true
  raw        — cities=[...],        hasProcessedData=false, message
  empty      — cities=[],           hasProcessedData=false, message
Routes serialise with response_model_exclude_none so the unused list is omitted.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from citytrends.models.trends import HashtagTrend


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Processed bundle entries ──────────────────────────────────────────────────

class GarmentTrend(_CamelModel):
    name: str
    mentions: int
    is_new: bool
    rank: int
    change: str            # "NEW" | "+50%" | "-20%" | "0%"
    avg_engagement: int


class StyleTrend(_CamelModel):
    name: str
    mentions: int
    is_new: bool
    change: str


class ColorTrend(_CamelModel):
    name: str
    mentions: int


class BrandTrend(_CamelModel):
    name: str
    mentions: int
    type: str = ""


class LocalSpot(_CamelModel):
    name: str
    mentions: int


class MicroTrendOut(_CamelModel):
    name: str
    description: str = ""
    confidence: int = 0


class NeighborhoodTrends(_CamelModel):
    """Everything known about one neighborhood for the current period."""

    neighborhood: str
    city: str
    garments: list[GarmentTrend] = Field(default_factory=list)
    styles: list[StyleTrend] = Field(default_factory=list)
    colors: list[ColorTrend] = Field(default_factory=list)
    brands: list[BrandTrend] = Field(default_factory=list)
    local_spots: list[LocalSpot] = Field(default_factory=list)
    micro_trends: list[MicroTrendOut] = Field(default_factory=list)


# ── Raw fallback entries ──────────────────────────────────────────────────────

class HashtagCount(_CamelModel):
    tag: str
    count: int


class CityRawStats(_CamelModel):
    city: str
    neighborhood: str = ""
    post_count: int
    avg_engagement: int
    top_hashtags: list[HashtagCount] = Field(default_factory=list)


# ── Envelope ──────────────────────────────────────────────────────────────────

class CityTrendsResponse(_CamelModel):
    neighborhoods: Optional[list[NeighborhoodTrends]] = None
    cities: Optional[list[CityRawStats]] = None
    tiktok_trends: list[HashtagTrend] = Field(default_factory=list)
    period: str
    has_processed_data: bool
    message: Optional[str] = None
