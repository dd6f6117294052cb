"""
Unit tests for the AI / provider modules (GeminiClient, ApifyAdapter).

No real API keys needed: Gemini runs in mock mode and Apify calls go
through an httpx.MockTransport.
"""

import json

import httpx
import pytest

from citytrends.ai.apify_adapter import ApifyAdapter, ScraperError
from citytrends.ai.gemini_client import GeminiClient

# ─── GeminiClient ─────────────────────────────────────────────────────────────


class TestGeminiClientMockMode:
    """GeminiClient in mock mode (default in tests)."""

    def setup_method(self):
        import citytrends.core.config as cfg

        self._original = cfg.settings.ai_mock_mode
        cfg.settings.ai_mock_mode = True
        self.client = GeminiClient()

    def teardown_method(self):
        import citytrends.core.config as cfg

        cfg.settings.ai_mock_mode = self._original

    async def test_generate_returns_string(self):
        result = await self.client.generate("test prompt")
        assert isinstance(result, str)
        assert len(result) > 0

    async def test_generate_unknown_key_returns_default(self):
        result = await self.client.generate("any prompt", response_key="nonexistent_key")
        assert "MOCK" in result

    async def test_trend_extraction_key_is_json(self):
        result = await self.client.generate("captions", response_key="trend_extraction")
        data = json.loads(result)
        assert set(data) == {"items", "styles", "colors", "brands", "local_spots", "micro_trends"}


class TestGeminiClientMissingKey:
    def setup_method(self):
        import citytrends.core.config as cfg

        self._original = (cfg.settings.ai_mock_mode, cfg.settings.gemini_api_key)
        cfg.settings.ai_mock_mode = False
        cfg.settings.gemini_api_key = ""

    def teardown_method(self):
        import citytrends.core.config as cfg

        cfg.settings.ai_mock_mode, cfg.settings.gemini_api_key = self._original

    def test_falls_back_to_mock_mode(self):
        assert GeminiClient().mock_mode is True


# ─── ApifyAdapter ─────────────────────────────────────────────────────────────


class TestApifyAdapterNoToken:
    """ApifyAdapter with no token set — must degrade gracefully."""

    def setup_method(self):
        import citytrends.core.config as cfg

        self._original = cfg.settings.apify_api_token
        cfg.settings.apify_api_token = ""
        self.adapter = ApifyAdapter()

    def teardown_method(self):
        import citytrends.core.config as cfg

        cfg.settings.apify_api_token = self._original

    def test_adapter_is_disabled(self):
        assert self.adapter.enabled is False

    async def test_scrapes_return_empty_lists(self):
        assert await self.adapter.scrape_location("Shoreditch, London", 10) == []
        assert await self.adapter.scrape_hashtag("mobwife", 10) == []
        assert await self.adapter.search_keyword("paris fashion", 10) == []


class TestApifyAdapterWithToken:
    def setup_method(self):
        import citytrends.core.config as cfg

        self._original = cfg.settings.apify_api_token
        cfg.settings.apify_api_token = "apify-test-token"
        self.adapter = ApifyAdapter()

    def teardown_method(self):
        import citytrends.core.config as cfg

        cfg.settings.apify_api_token = self._original

    @staticmethod
    def _mock(monkeypatch, handler):
        real_client = httpx.AsyncClient

        def factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", factory)

    async def test_runs_actor_and_returns_items(self, monkeypatch):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"id": "1"}, "junk", {"id": "2"}])

        self._mock(monkeypatch, handler)
        items = await self.adapter.scrape_location("Shoreditch, London", 150)

        assert items == [{"id": "1"}, {"id": "2"}]
        assert seen["url"].endswith("/acts/apify~instagram-scraper/run-sync-get-dataset-items")
        assert seen["auth"] == "Bearer apify-test-token"
        assert seen["body"]["search"] == "Shoreditch, London"
        assert seen["body"]["resultsLimit"] == 150

    async def test_hashtag_input(self, monkeypatch):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[])

        self._mock(monkeypatch, handler)
        await self.adapter.scrape_hashtag("mobwife", 50)

        assert "clockworks~tiktok-scraper" in seen["url"]
        assert seen["body"] == {"hashtags": ["mobwife"], "resultsPerPage": 50}

    async def test_http_error_raises_scraper_error(self, monkeypatch):
        self._mock(monkeypatch, lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(ScraperError):
            await self.adapter.scrape_hashtag("mobwife", 10)

    async def test_network_error_raises_scraper_error(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        self._mock(monkeypatch, handler)
        with pytest.raises(ScraperError):
            await self.adapter.search_keyword("paris fashion", 10)

    async def test_non_list_payload_raises_scraper_error(self, monkeypatch):
        self._mock(monkeypatch, lambda request: httpx.Response(200, json={"error": "quota"}))
        with pytest.raises(ScraperError):
            await self.adapter.scrape_location("Harajuku, Tokyo", 10)
