"""
extraction.py — Schema of the LLM trend-extraction result.

The model is asked for one JSON object with six arrays; the parser in
citytrends.ai.trend_extractor validates each entry individually into these
models and drops the ones that don't fit.
"""

from pydantic import BaseModel, Field


class TrendMention(BaseModel):
    name: str = Field(..., min_length=1)
    mentions: int = Field(default=0, ge=0)


class BrandMention(TrendMention):
    # "luxury" | "streetwear" | "vintage" | "fast-fashion" | "emerging-designer"
    type: str = ""


class MicroTrend(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    confidence: int = Field(default=0, ge=0, le=100)


class TrendExtraction(BaseModel):
    """Categorised entities for one city, each list sorted by descending mentions."""

    items: list[TrendMention] = Field(default_factory=list)
    styles: list[TrendMention] = Field(default_factory=list)
    colors: list[TrendMention] = Field(default_factory=list)
    brands: list[BrandMention] = Field(default_factory=list)
    local_spots: list[TrendMention] = Field(default_factory=list)
    micro_trends: list[MicroTrend] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (self.items, self.styles, self.colors, self.brands, self.local_spots, self.micro_trends)
        )
