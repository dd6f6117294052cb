"""
trend_extractor.py — LLM-backed fashion entity extraction.

Given up to 100 captions from one city, ask Gemini for a fixed-shape JSON
object of categorised entities with mention counts:

    {"items": [...], "styles": [...], "colors": [...], "brands": [...],
     "local_spots": [...], "micro_trends": [...]}

HOW PARSING WORKS
─────────────────
1. Try json.loads() on the whole response.
2. Otherwise parse the substring between the first "{" and the last "}"
   (models like to wrap JSON in prose or ``` fences).
3. Otherwise give up and return an all-empty TrendExtraction.

Entries are validated one by one: a malformed entry is dropped, the rest of
its list survives. Entries under MIN_MENTIONS are dropped and every list is
re-sorted by descending mentions (stable, so the model's order breaks ties).
A name repeated within one list keeps only its first entry after sorting.

Extraction is best-effort: extract() and parse_extraction() never raise.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from citytrends.ai.gemini_client import GeminiClient
from citytrends.core.config import settings
from citytrends.models.extraction import (
    BrandMention,
    MicroTrend,
    TrendExtraction,
    TrendMention,
)

logger = logging.getLogger(__name__)

MIN_MENTIONS = 2

_EXTRACTION_PROMPT = """\
You are a fashion trend analyst. Analyse these Instagram captions posted in {city}
during the last week and extract REAL, specific fashion intelligence.

CAPTIONS FROM {city_upper}:
{captions}

Extract:
1. ITEMS: specific garments, shoes, bags and accessories.
   Be SPECIFIC: "barrel jeans" not "jeans", "cropped leather jacket" not "jacket".
2. STYLES: aesthetics or movements, e.g. "gorpcore", "quiet luxury", "coquette".
3. COLORS: specific colour trends, e.g. "butter yellow" not "yellow".
4. BRANDS: fashion brands mentioned, with a type:
   "luxury", "streetwear", "vintage", "fast-fashion" or "emerging-designer".
5. LOCAL_SPOTS: shops, markets or places in {city} where these trends show up.
6. MICRO_TRENDS: 2-3 emerging micro-trends forming, with a confidence 0-100.

Count how many captions mention each entity. Only include entities with at
least {min_mentions} mentions. Sort every list by mentions, highest first.

Return ONLY valid JSON:
{{
  "items": [{{"name": "barrel jeans", "mentions": 8}}],
  "styles": [{{"name": "quiet luxury", "mentions": 5}}],
  "colors": [{{"name": "burgundy", "mentions": 4}}],
  "brands": [{{"name": "Avirex", "mentions": 3, "type": "streetwear"}}],
  "local_spots": [{{"name": "Brick Lane Market", "mentions": 6}}],
  "micro_trends": [{{"name": "vintage bomber revival", "description": "Vintage bombers paired with tailored trousers", "confidence": 75}}]
}}"""


def build_prompt(captions: list[str], city: str) -> str:
    return _EXTRACTION_PROMPT.format(
        city=city,
        city_upper=city.upper(),
        captions="\n---\n".join(captions),
        min_mentions=MIN_MENTIONS,
    )


# ── Tolerant parsing ──────────────────────────────────────────────────────────

def _load_json_object(raw: Any) -> Optional[dict]:
    if not isinstance(raw, str):
        return None
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        data = None

    if not isinstance(data, dict):
        start, end = raw.find("{"), raw.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(raw[start : end + 1])
        except (json.JSONDecodeError, ValueError):
            return None

    return data if isinstance(data, dict) else None


def _parse_entries(raw_list: Any, model: type[BaseModel], min_mentions: int = 0) -> list:
    if not isinstance(raw_list, list):
        return []
    entries = []
    for raw_entry in raw_list:
        if not isinstance(raw_entry, dict):
            continue
        try:
            entry = model.model_validate(raw_entry)
        except ValidationError:
            logger.debug("Dropping malformed %s entry: %r", model.__name__, raw_entry)
            continue
        if getattr(entry, "mentions", min_mentions) < min_mentions:
            continue
        entries.append(entry)
    if min_mentions:
        entries.sort(key=lambda e: e.mentions, reverse=True)

    # One row per name is stored; keep the first (highest-ranked) occurrence
    seen: set[str] = set()
    unique = []
    for entry in entries:
        if entry.name in seen:
            continue
        seen.add(entry.name)
        unique.append(entry)
    return unique


def parse_extraction(raw: Any) -> TrendExtraction:
    """Parse a model response into a TrendExtraction; never raises."""
    data = _load_json_object(raw)
    if data is None:
        logger.warning("Trend extraction response was not parseable JSON")
        return TrendExtraction()

    return TrendExtraction(
        # older prompts asked for "garments"
        items=_parse_entries(data.get("items", data.get("garments")), TrendMention, MIN_MENTIONS),
        styles=_parse_entries(data.get("styles"), TrendMention, MIN_MENTIONS),
        colors=_parse_entries(data.get("colors"), TrendMention, MIN_MENTIONS),
        brands=_parse_entries(data.get("brands"), BrandMention, MIN_MENTIONS),
        local_spots=_parse_entries(data.get("local_spots"), TrendMention, MIN_MENTIONS),
        micro_trends=_parse_entries(data.get("micro_trends"), MicroTrend),
    )


# ── Extractor ─────────────────────────────────────────────────────────────────

class TrendExtractor:
    """One LLM call per city; no caching, no retries."""

    def __init__(self, llm: GeminiClient, max_captions: Optional[int] = None) -> None:
        self.llm = llm
        self.max_captions = max_captions or settings.max_captions_per_request

    async def extract(self, captions: list[str], city: str) -> TrendExtraction:
        batch = captions[: self.max_captions]
        if not batch:
            return TrendExtraction()

        prompt = build_prompt(batch, city)
        try:
            raw = await self.llm.generate(prompt, response_key="trend_extraction")
        except Exception as exc:
            logger.error("Trend extraction failed for %s: %s", city, exc)
            return TrendExtraction()

        return parse_extraction(raw)
