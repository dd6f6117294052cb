"""
normalizer.py — Turn opaque scraper items into RawPost models.

Each provider (and each actor version) names its fields differently, so the
lookups below try every known spelling. An item without a stable post id is
skipped (None is returned) — it is a data error, not a failure.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from citytrends.models.trends import RawPost

_HASHTAG_RE = re.compile(r"#[\wÀ-ɏ]+")


def extract_hashtags(caption: str) -> list[str]:
    """"#Barrel #jeans" -> ["barrel", "jeans"]."""
    if not caption:
        return []
    return [tag[1:].lower() for tag in _HASHTAG_RE.findall(caption)]


def to_count(value: Any) -> int:
    """Coerce an engagement counter to a non-negative int (missing/garbage -> 0)."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def _first(item: dict[str, Any], *keys: str) -> Any:
    """First truthy value among *keys*."""
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return None


def _post_id(item: dict[str, Any], *keys: str) -> Optional[str]:
    value = _first(item, *keys)
    if value is None:
        return None
    post_id = str(value).strip()
    return post_id or None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _nested_name(item: dict[str, Any], key: str, field: str) -> str:
    nested = item.get(key)
    if isinstance(nested, dict):
        return _text(nested.get(field))
    return ""


def normalize_instagram_item(
    item: dict[str, Any],
    city: str,
    neighborhood: Optional[str],
) -> Optional[RawPost]:
    """apify/instagram-scraper place-search item -> RawPost."""
    post_id = _post_id(item, "id")
    if post_id is None:
        return None

    caption = _text(item.get("caption"))
    return RawPost(
        platform="instagram",
        city=city,
        neighborhood=neighborhood,
        post_id=post_id,
        caption=caption,
        hashtags=extract_hashtags(caption),
        likes=to_count(item.get("likesCount")),
        comments=to_count(item.get("commentsCount")),
        image_url=_text(_first(item, "displayUrl", "url")),
        author=_text(item.get("ownerUsername")),
    )


def normalize_tiktok_item(
    item: dict[str, Any],
    city: str,
    neighborhood: Optional[str] = None,
    fallback_hashtag: Optional[str] = None,
) -> Optional[RawPost]:
    """clockworks/tiktok-scraper hashtag item -> RawPost."""
    post_id = _post_id(item, "id")
    if post_id is None:
        return None

    hashtags = []
    for tag in item.get("hashtags") or []:
        name = tag.get("name") if isinstance(tag, dict) else None
        if name:
            hashtags.append(str(name).lower())
    if not hashtags and fallback_hashtag:
        hashtags = [fallback_hashtag.lower()]

    return RawPost(
        platform="tiktok",
        city=city,
        neighborhood=neighborhood,
        post_id=post_id,
        caption=_text(item.get("text")),
        hashtags=hashtags,
        likes=to_count(item.get("diggCount")),
        comments=to_count(item.get("commentCount")),
        plays=to_count(item.get("playCount")),
        shares=to_count(item.get("shareCount")),
        author=_nested_name(item, "authorMeta", "name"),
    )


def normalize_search_item(
    item: dict[str, Any],
    city: str,
    query: str,
) -> Optional[RawPost]:
    """
    TikTok keyword-search item -> RawPost.

    The search query is stored as the neighborhood so the post keeps the
    context it was found under.
    """
    post_id = _post_id(item, "id", "video_id")
    if post_id is None:
        return None

    description = _text(_first(item, "desc", "description", "text"))
    author = _nested_name(item, "author", "nickname") or _nested_name(item, "authorMeta", "name")
    return RawPost(
        platform="tiktok",
        city=city,
        neighborhood=query,
        post_id=post_id,
        caption=description,
        hashtags=extract_hashtags(description),
        likes=to_count(_first(item, "digg_count", "diggCount", "like_count")),
        comments=to_count(_first(item, "comment_count", "commentCount")),
        plays=to_count(_first(item, "play_count", "playCount")),
        shares=to_count(_first(item, "share_count", "shareCount")),
        author=author,
    )
