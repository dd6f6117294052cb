#!/usr/bin/env python3
"""
seed_raw_posts.py — Populate city_trends_raw with sample posts for local dev.

Usage (from the repo root):
    python scripts/seed_raw_posts.py           # replace existing seed posts
    python scripts/seed_raw_posts.py --append  # add without clearing first

Prerequisites:
    • MONGO_URI env var set (or .env file present)
    • `pip install -e .`

Every city gets enough captions to clear the processor's 10-caption
threshold, spread over the last 6 days, so a follow-up

    curl http://localhost:8000/api/cron/process-city-trends

produces processed trends (with AI_MOCK_MODE=true the extractor answers
with canned data). Posts are upserted on (platform, post_id), so reruns
never duplicate.
"""

import argparse
import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv

load_dotenv(ROOT / ".env")

import certifi  # noqa: E402
from motor.motor_asyncio import AsyncIOMotorClient  # noqa: E402

from citytrends.core.config import settings  # noqa: E402
from citytrends.core.database import RAW_POSTS, ensure_indexes  # noqa: E402
from citytrends.models.trends import GLOBAL_CITY, RawPost  # noqa: E402
from citytrends.services.normalizer import extract_hashtags  # noqa: E402

SEED_PREFIX = "seed_"
POSTS_PER_CITY = 12

# ── Seed captions ─────────────────────────────────────────────────────────────
# Columns: city, neighborhood, caption templates (cycled to POSTS_PER_CITY)
_CITIES = [
    ("London", "Shoreditch", [
        "Barrel jeans and a vintage bomber on Brick Lane #shoreditchstyle #barreljeans",
        "Sunday at Brick Lane Market, burgundy everything #bricklanestyle",
        "Cropped leather jacket weather #londonstreetstyle #shoreditchfashion",
        "Quiet luxury but make it east London #quietluxury",
    ]),
    ("Paris", "Le Marais", [
        "Barrel jeans + ballet flats, the Marais uniform #parisfashion #barreljeans",
        "Burgundy coat season has started #lemaraisstyle",
        "Vintage finds on rue de Turenne #parisstreetfashion",
        "Mesh ballet flats are everywhere this week #parisstyle",
    ]),
    ("New York", "Williamsburg", [
        "Gorpcore in Domino Park #brooklynstyle #gorpcore",
        "Thrifted Carhartt and barrel jeans #williamsburgfashion",
        "Butter yellow knit at Bedford Ave #brooklynfashion",
        "Shaggy jacket spotted on the L train #nycstreetstyle",
    ]),
    ("Tokyo", "Harajuku", [
        "Layered mesh tops on Takeshita Street #harajukufashion",
        "Platform mary janes forever #tokyostreetstyle #platformmaryjanes",
        "Kitten heels with cargo pants #japanesefashion",
        "Deconstructed blazer from a Ura-Hara boutique #harajukustyle",
    ]),
]

_GLOBAL_HASHTAGS = ["balletcore", "mobwife", "burgundytrend", "meshjacket"]


def _make_posts(now: datetime) -> list[RawPost]:
    posts = []
    for city, neighborhood, captions in _CITIES:
        for i in range(POSTS_PER_CITY):
            caption = captions[i % len(captions)]
            posts.append(
                RawPost(
                    platform="instagram",
                    city=city,
                    neighborhood=neighborhood,
                    post_id=f"{SEED_PREFIX}{city.lower().replace(' ', '_')}_{i}",
                    caption=caption,
                    hashtags=extract_hashtags(caption),
                    likes=random.randint(50, 2500),
                    comments=random.randint(0, 120),
                    author=f"seed_user_{i}",
                    collected_at=now - timedelta(hours=i * 12 + 1),
                )
            )

    # TikTok hashtag scrapes are stored under the Global pseudo-city and
    # must not show up in per-city stats.
    for i, tag in enumerate(_GLOBAL_HASHTAGS):
        posts.append(
            RawPost(
                platform="tiktok",
                city=GLOBAL_CITY,
                post_id=f"{SEED_PREFIX}tiktok_{tag}",
                caption=f"#{tag} is taking over",
                hashtags=[tag],
                likes=random.randint(1000, 50000),
                plays=random.randint(10000, 900000),
                shares=random.randint(10, 2000),
                collected_at=now - timedelta(hours=i + 1),
            )
        )
    return posts


async def seed(append: bool = False) -> None:
    client = AsyncIOMotorClient(settings.mongo_uri, tlsCAFile=certifi.where())
    db = client[settings.mongo_db_name]

    try:
        await client.admin.command("ping")
        print(f"Connected to MongoDB ({settings.mongo_db_name})")
    except Exception as exc:
        print(f"ERROR: Cannot connect to MongoDB: {exc}")
        return

    if not append:
        print("\nClearing existing seed posts…")
        result = await db[RAW_POSTS].delete_many({"post_id": {"$regex": f"^{SEED_PREFIX}"}})
        print(f"  Deleted {result.deleted_count} documents")

    print("\nUpserting raw posts…")
    posts = _make_posts(datetime.now(tz=timezone.utc))
    for post in posts:
        await db[RAW_POSTS].update_one(post.key(), {"$set": post.model_dump()}, upsert=True)
    print(f"  {len(posts)} posts upserted across {len(_CITIES)} cities + {GLOBAL_CITY}")

    print("\nEnsuring indexes…")
    await ensure_indexes(db)

    total = await db[RAW_POSTS].count_documents({})
    cities = await db[RAW_POSTS].distinct("city")
    print(f"\n✓ Done")
    print(f"  {RAW_POSTS} total : {total}")
    print(f"  Cities              : {sorted(cities)}")

    client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed city_trends_raw with sample posts")
    parser.add_argument("--append", action="store_true", help="keep existing seed posts")
    args = parser.parse_args()
    asyncio.run(seed(append=args.append))


if __name__ == "__main__":
    main()
