"""
cron.py — Response schemas for the scheduler-triggered jobs.

Collectors report {target, postsSaved} per target; the processor reports the
number of rows written per city. Both are observability only.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TargetResult(_CamelModel):
    target: str
    posts_saved: int


class InstagramSummary(BaseModel):
    total: int
    locations: list[TargetResult]


class TikTokSummary(BaseModel):
    total: int
    hashtags: list[TargetResult]


class CollectResponse(BaseModel):
    success: bool = True
    message: str
    period: Optional[str] = None
    instagram: Optional[InstagramSummary] = None
    tiktok: Optional[TikTokSummary] = None
    timestamp: str


class ProcessResponse(_CamelModel):
    success: bool = True
    message: str
    period: str
    total_cities: int
    results: dict[str, int] = Field(default_factory=dict)
    skipped: list[str] = Field(default_factory=list)
    timestamp: str
