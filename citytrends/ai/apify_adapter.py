"""
ApifyAdapter — Social scraping via the Apify actor REST API.

Used by the collectors to pull Instagram location posts and TikTok hashtag /
keyword-search videos. Each call runs an actor synchronously and returns the
items of its default dataset.

Graceful degradation: if APIFY_API_TOKEN is not set, every scrape returns
an empty list with a logged warning. Provider failures (non-2xx, network,
timeout) raise ScraperError so the collector can record zero posts for that
one target and move on.

To swap to a different scraping provider:
  1. Implement the same scrape_location / scrape_hashtag / search_keyword interface
  2. Update the module-level singleton alias
"""

import logging
from typing import Any

import httpx

from citytrends.core.config import settings

logger = logging.getLogger(__name__)

APIFY_BASE_URL = "https://api.apify.com/v2"

INSTAGRAM_ACTOR = "apify/instagram-scraper"
TIKTOK_ACTOR = "clockworks/tiktok-scraper"
TIKTOK_SEARCH_ACTOR = "sociavault/tiktok-keyword-search-scraper"


class ScraperError(RuntimeError):
    """The scraping provider could not return a dataset for a target."""


class ApifyAdapter:
    """
    Thin async wrapper around Apify's run-sync-get-dataset-items endpoint.

    Returned items are opaque provider dicts; normalisation happens in
    citytrends.services.normalizer.
    """

    def __init__(self) -> None:
        self.api_token = settings.apify_api_token
        self.timeout = settings.apify_timeout_seconds
        self.enabled = bool(self.api_token)

        if not self.enabled:
            logger.warning(
                "APIFY_API_TOKEN not set — scraping disabled. "
                "Collectors will run but save zero posts."
            )

    async def run_actor(self, actor_id: str, run_input: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Run an actor and return its dataset items.

        Args:
            actor_id:  "username/actor-name" as shown in the Apify store.
            run_input: Actor-specific input JSON.

        Returns:
            List of item dicts. [] if the adapter is not configured.

        Raises:
            ScraperError: on HTTP errors, timeouts or a non-list payload.
        """
        if not self.enabled:
            return []

        # The REST API addresses actors as "username~actor-name"
        url = f"{APIFY_BASE_URL}/acts/{actor_id.replace('/', '~')}/run-sync-get-dataset-items"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url,
                    headers={"Authorization": f"Bearer {self.api_token}"},
                    json=run_input,
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Apify actor %s error: %s — %s",
                    actor_id,
                    exc.response.status_code,
                    exc.response.text[:200],
                )
                raise ScraperError(f"{actor_id} returned HTTP {exc.response.status_code}") from exc
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Apify actor %s request failed: %s", actor_id, exc)
                raise ScraperError(f"{actor_id} request failed: {exc}") from exc

        if not isinstance(data, list):
            raise ScraperError(f"{actor_id} returned {type(data).__name__}, expected a list")
        return [item for item in data if isinstance(item, dict)]

    async def scrape_location(self, location_query: str, limit: int) -> list[dict[str, Any]]:
        """Instagram posts tagged at the place best matching *location_query*."""
        return await self.run_actor(
            INSTAGRAM_ACTOR,
            {
                "search": location_query,
                "searchType": "place",
                "resultsLimit": limit,
                "searchLimit": 1,
            },
        )

    async def scrape_hashtag(self, hashtag: str, limit: int) -> list[dict[str, Any]]:
        """TikTok videos for a single hashtag."""
        return await self.run_actor(
            TIKTOK_ACTOR,
            {"hashtags": [hashtag], "resultsPerPage": limit},
        )

    async def search_keyword(self, query: str, limit: int) -> list[dict[str, Any]]:
        """TikTok keyword search, most relevant videos from the past month."""
        return await self.run_actor(
            TIKTOK_SEARCH_ACTOR,
            {
                "query": query,
                "max_results": limit,
                "sort_by": "relevance",
                "date_posted": "this-month",
            },
        )


# Module-level singleton
apify_adapter = ApifyAdapter()
