"""
collector.py — Scheduled scraping jobs that feed city_trends_raw.

Three target kinds, one method each:

  collect_locations  Instagram place search per city/neighborhood
  collect_hashtags   TikTok hashtag scrape (platform-wide "Global" tags or
                     neighborhood-scoped tags) + one HashtagTrend per tag
  collect_searches   TikTok keyword search per city + one HashtagTrend per
                     query that saved at least one post

FAILURE ISOLATION
─────────────────
  • One target failing (provider error, timeout, anything) records 0 posts
    for that target and the loop moves on. There is no retry queue — the
    target is simply missing from this week's data.
  • One post failing to upsert is logged and excluded from postsSaved; the
    rest of the batch is still written.
  • Aggregates only cover posts that were actually saved.

Targets are processed sequentially; writes for different targets touch
disjoint keys, so callers may run whole collectors concurrently.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError

from citytrends.ai.apify_adapter import ApifyAdapter
from citytrends.core.config import settings
from citytrends.core.periods import current_period
from citytrends.models.cron import TargetResult
from citytrends.models.trends import GLOBAL_CITY, HashtagTrend, RawPost
from citytrends.services.normalizer import (
    normalize_instagram_item,
    normalize_search_item,
    normalize_tiktok_item,
)
from citytrends.services.stores import HashtagTrendStore, RawPostStore

logger = logging.getLogger(__name__)

MAX_RELATED_HASHTAGS = 10


# ── Targets ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LocationTarget:
    city: str
    neighborhood: str
    location_query: str

    @property
    def label(self) -> str:
        return f"{self.neighborhood}, {self.city}"


@dataclass(frozen=True)
class HashtagTarget:
    hashtag: str
    city: str = GLOBAL_CITY
    neighborhood: Optional[str] = None

    @property
    def label(self) -> str:
        return f"#{self.hashtag}"


@dataclass(frozen=True)
class SearchTarget:
    query: str
    city: str

    @property
    def label(self) -> str:
        return self.query


# Instagram locations, split into batches so each cron run stays short
INSTAGRAM_BATCHES: dict[int, list[LocationTarget]] = {
    1: [
        LocationTarget("London", "Shoreditch", "Shoreditch, London"),
        LocationTarget("Paris", "Le Marais", "Le Marais, Paris"),
    ],
    2: [
        LocationTarget("New York", "Williamsburg", "Williamsburg, Brooklyn"),
        LocationTarget("Tokyo", "Harajuku", "Harajuku, Tokyo"),
    ],
    3: [
        LocationTarget("Berlin", "Kreuzberg", "Kreuzberg, Berlin"),
        LocationTarget("Seoul", "Hongdae", "Hongdae, Seoul"),
    ],
}
INSTAGRAM_LOCATIONS: list[LocationTarget] = [
    target for batch in sorted(INSTAGRAM_BATCHES) for target in INSTAGRAM_BATCHES[batch]
]

# Platform-wide microtrend hashtags (stored under city="Global")
GLOBAL_HASHTAGS: list[HashtagTarget] = [
    HashtagTarget(tag)
    for tag in (
        # emerging aesthetics
        "ecleticgrandpa", "corporatecore", "balletcore", "tenniscore", "blokecore",
        "coastalgrandmother", "mobwife", "cherryred2025", "burgundytrend", "barrellegjeans",
        # specific items
        "meshjacket", "shaggyjacket", "kittenheels", "platformmaryjanes", "clogscomeback",
        # niche
        "deconstructedfashion", "avantbasic", "normcore2025", "minimalismfashion",
        "capsulewardrobe2025",
    )
]

NEIGHBORHOOD_HASHTAGS: list[HashtagTarget] = [
    HashtagTarget(tag, city, neighborhood)
    for city, neighborhood, tags in (
        ("London", "Shoreditch", ("shoreditchfashion", "shoreditchstyle", "bricklanestyle")),
        ("Paris", "Le Marais", ("lemaraisstyle", "parisfashion", "parisstreetfashion")),
        ("New York", "Williamsburg", ("williamsburgfashion", "brooklynstyle", "brooklynfashion")),
        ("Tokyo", "Harajuku", ("harajukufashion", "tokyostreetstyle", "japanesefashion")),
        ("Berlin", "Kreuzberg", ("berlinfashion", "berlinstreetfashion", "kreuzbergstyle")),
        ("Seoul", "Hongdae", ("seoulfashion", "koreanfashion", "hongdaestyle")),
    )
    for tag in tags
]

KEYWORD_SEARCHES: list[SearchTarget] = [
    SearchTarget("shoreditch fashion trends", "London"),
    SearchTarget("east london street style", "London"),
    SearchTarget("london fashion 2025", "London"),
    SearchTarget("paris fashion trends 2025", "Paris"),
    SearchTarget("le marais style", "Paris"),
    SearchTarget("french girl fashion", "Paris"),
    SearchTarget("brooklyn fashion trends", "New York"),
    SearchTarget("williamsburg style", "New York"),
    SearchTarget("nyc street fashion 2025", "New York"),
    SearchTarget("harajuku fashion trends", "Tokyo"),
    SearchTarget("tokyo street style 2025", "Tokyo"),
    SearchTarget("japanese fashion trends", "Tokyo"),
    SearchTarget("emerging fashion trends 2025", GLOBAL_CITY),
    SearchTarget("underrated fashion trends", GLOBAL_CITY),
    SearchTarget("fashion microtrends", GLOBAL_CITY),
]


# ── Report ────────────────────────────────────────────────────────────────────

@dataclass
class CollectionReport:
    period: str
    results: list[TargetResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(r.posts_saved for r in self.results)

    def add(self, label: str, posts_saved: int) -> None:
        self.results.append(TargetResult(target=label, posts_saved=posts_saved))


# ── Aggregation ───────────────────────────────────────────────────────────────

def aggregate_hashtag_run(
    hashtag: str,
    period: str,
    posts: list[RawPost],
    city: Optional[str] = None,
    neighborhood: Optional[str] = None,
) -> HashtagTrend:
    """Summarise one run's saved posts for *hashtag*; never accumulates across runs."""
    total_plays = sum(p.plays for p in posts)
    total_likes = sum(p.likes for p in posts)
    total_shares = sum(p.shares for p in posts)
    post_count = len(posts)

    own_tag = hashtag.lower()
    related = Counter(tag for p in posts for tag in p.hashtags if tag and tag != own_tag)

    return HashtagTrend(
        hashtag=hashtag,
        period=period,
        city=city,
        neighborhood=neighborhood,
        total_plays=total_plays,
        total_likes=total_likes,
        total_shares=total_shares,
        post_count=post_count,
        avg_engagement=round((total_likes + total_shares) / post_count) if post_count else 0,
        top_related_hashtags=[tag for tag, _ in related.most_common(MAX_RELATED_HASHTAGS)],
    )


def _normalize_all(
    items: Iterable[dict[str, Any]],
    normalize: Callable[[dict[str, Any]], Optional[RawPost]],
) -> list[RawPost]:
    posts = []
    for item in items:
        try:
            post = normalize(item)
        except ValidationError as exc:
            logger.debug("Skipping unnormalisable item: %s", exc)
            continue
        if post is not None:
            posts.append(post)
    return posts


# ── Collector ─────────────────────────────────────────────────────────────────

class Collector:
    """Scrape targets through *scraper* and upsert the results into *db*."""

    def __init__(self, db, scraper: ApifyAdapter) -> None:
        self.scraper = scraper
        self.posts = RawPostStore(db)
        self.hashtag_trends = HashtagTrendStore(db)

    async def _save_posts(self, posts: list[RawPost]) -> list[RawPost]:
        saved = []
        for post in posts:
            try:
                await self.posts.upsert(post)
            except Exception as exc:
                logger.warning("Upsert failed for %s post %s: %s", post.platform, post.post_id, exc)
                continue
            saved.append(post)
        return saved

    async def _save_aggregate(self, aggregate: HashtagTrend) -> None:
        # Posts are already stored; a lost aggregate doesn't change posts_saved
        try:
            await self.hashtag_trends.upsert(aggregate)
        except Exception as exc:
            logger.error("Aggregate upsert failed for #%s: %s", aggregate.hashtag, exc)

    async def collect_locations(
        self,
        targets: list[LocationTarget],
        limit: Optional[int] = None,
    ) -> CollectionReport:
        limit = limit or settings.posts_per_location
        report = CollectionReport(period=current_period())

        for target in targets:
            logger.info("Scraping Instagram: %s", target.label)
            try:
                items = await self.scraper.scrape_location(target.location_query, limit)
                posts = _normalize_all(
                    items,
                    lambda item: normalize_instagram_item(item, target.city, target.neighborhood),
                )
                saved = await self._save_posts(posts)
            except Exception as exc:
                logger.error("Error scraping %s: %s", target.label, exc)
                report.add(target.label, 0)
                continue

            report.add(target.label, len(saved))
            logger.info("%s: %d posts saved", target.label, len(saved))

        return report

    async def collect_hashtags(
        self,
        targets: list[HashtagTarget],
        limit: Optional[int] = None,
    ) -> CollectionReport:
        limit = limit or settings.posts_per_hashtag
        report = CollectionReport(period=current_period())

        for target in targets:
            logger.info("Scraping TikTok: %s (%s)", target.label, target.neighborhood or target.city)
            try:
                items = await self.scraper.scrape_hashtag(target.hashtag, limit)
                posts = _normalize_all(
                    items,
                    lambda item: normalize_tiktok_item(
                        item, target.city, target.neighborhood, fallback_hashtag=target.hashtag
                    ),
                )
                saved = await self._save_posts(posts)
            except Exception as exc:
                logger.error("Error scraping %s: %s", target.label, exc)
                report.add(target.label, 0)
                continue

            aggregate = aggregate_hashtag_run(
                target.hashtag,
                report.period,
                saved,
                city=target.city,
                neighborhood=target.neighborhood,
            )
            await self._save_aggregate(aggregate)
            report.add(target.label, len(saved))
            logger.info(
                "%s: %d posts, %d plays, related: %s",
                target.label,
                len(saved),
                aggregate.total_plays,
                ", ".join(aggregate.top_related_hashtags[:5]),
            )

        return report

    async def collect_searches(
        self,
        targets: list[SearchTarget],
        limit: Optional[int] = None,
    ) -> CollectionReport:
        limit = limit or settings.results_per_search
        report = CollectionReport(period=current_period())

        for target in targets:
            logger.info('Searching TikTok: "%s" (%s)', target.query, target.city)
            try:
                items = await self.scraper.search_keyword(target.query, limit)
                posts = _normalize_all(
                    items,
                    lambda item: normalize_search_item(item, target.city, target.query),
                )
                saved = await self._save_posts(posts)
            except Exception as exc:
                logger.error('Error searching "%s": %s', target.query, exc)
                report.add(target.label, 0)
                continue

            if saved:
                await self._save_aggregate(
                    aggregate_hashtag_run(target.query, report.period, saved, city=target.city)
                )
            report.add(target.label, len(saved))

        return report
