"""
Tests for the LLM trend-extraction contract: prompt truncation, tolerant
JSON parsing and the never-raise policy.
"""

import json

import pytest

from citytrends.ai.gemini_client import GeminiClient
from citytrends.ai.trend_extractor import TrendExtractor, build_prompt, parse_extraction


class RecordingLLM:
    def __init__(self, response="{}", error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def generate(self, prompt, response_key="default", **kwargs):
        self.prompts.append((prompt, response_key))
        if self.error is not None:
            raise self.error
        return self.response


# ── parse_extraction ──────────────────────────────────────────────────────────

class TestParseExtraction:
    def test_plain_json(self):
        raw = json.dumps({
            "items": [{"name": "barrel jeans", "mentions": 5}],
            "styles": [{"name": "gorpcore", "mentions": 2}],
            "colors": [{"name": "burgundy", "mentions": 3}],
            "brands": [{"name": "Avirex", "mentions": 4, "type": "streetwear"}],
        })
        result = parse_extraction(raw)
        assert [i.name for i in result.items] == ["barrel jeans"]
        assert result.styles[0].mentions == 2
        assert result.brands[0].type == "streetwear"
        assert result.local_spots == []

    def test_non_json_returns_all_empty_lists(self):
        result = parse_extraction("I'm sorry, I can't help with that.")
        assert result.is_empty()
        assert result.model_dump() == {
            "items": [],
            "styles": [],
            "colors": [],
            "brands": [],
            "local_spots": [],
            "micro_trends": [],
        }

    def test_json_wrapped_in_prose_and_fences(self):
        raw = (
            "Here is the analysis:\n```json\n"
            '{"items": [{"name": "kitten heels", "mentions": 6}]}'
            "\n```\nLet me know if you need more."
        )
        result = parse_extraction(raw)
        assert result.items[0].name == "kitten heels"
        assert result.items[0].mentions == 6

    def test_broken_embedded_json_returns_empty(self):
        assert parse_extraction('prefix {"items": [ oops } suffix').is_empty()

    def test_json_array_is_not_an_extraction(self):
        assert parse_extraction('[{"name": "x", "mentions": 9}]').is_empty()

    def test_drops_entries_below_two_mentions_and_sorts(self):
        raw = json.dumps({
            "items": [
                {"name": "a", "mentions": 1},
                {"name": "b", "mentions": 3},
                {"name": "c", "mentions": 5},
                {"name": "d", "mentions": 3},
            ]
        })
        result = parse_extraction(raw)
        assert [(i.name, i.mentions) for i in result.items] == [("c", 5), ("b", 3), ("d", 3)]

    def test_repeated_names_keep_the_highest_entry(self):
        raw = json.dumps({
            "items": [
                {"name": "barrel jeans", "mentions": 6},
                {"name": "mesh flats", "mentions": 4},
                {"name": "barrel jeans", "mentions": 8},
            ],
            "micro_trends": [
                {"name": "sock boots", "confidence": 60},
                {"name": "sock boots", "confidence": 30},
            ],
        })
        result = parse_extraction(raw)
        assert [(i.name, i.mentions) for i in result.items] == [("barrel jeans", 8), ("mesh flats", 4)]
        assert [(m.name, m.confidence) for m in result.micro_trends] == [("sock boots", 60)]

    def test_malformed_entries_are_dropped_individually(self):
        raw = json.dumps({
            "colors": [
                {"name": "", "mentions": 4},
                {"mentions": 3},
                "sage green",
                {"name": "sage green", "mentions": "lots"},
                {"name": "butter yellow", "mentions": 2},
            ]
        })
        result = parse_extraction(raw)
        assert [c.name for c in result.colors] == ["butter yellow"]

    def test_non_list_category_is_empty(self):
        result = parse_extraction(json.dumps({"items": {"name": "x"}, "styles": None}))
        assert result.items == []
        assert result.styles == []

    def test_garments_key_is_accepted_for_items(self):
        result = parse_extraction(json.dumps({"garments": [{"name": "mesh jacket", "mentions": 4}]}))
        assert result.items[0].name == "mesh jacket"

    def test_micro_trends_have_no_mention_floor(self):
        raw = json.dumps({
            "micro_trends": [{"name": "sock boots", "description": "back again", "confidence": 40}]
        })
        result = parse_extraction(raw)
        assert result.micro_trends[0].confidence == 40

    def test_non_string_input(self):
        assert parse_extraction(None).is_empty()


# ── TrendExtractor ────────────────────────────────────────────────────────────

class TestTrendExtractor:
    async def test_truncates_to_first_hundred_captions(self):
        llm = RecordingLLM()
        captions = [f"post-{i:03d}" for i in range(150)]
        await TrendExtractor(llm).extract(captions, "Paris")

        assert len(llm.prompts) == 1
        prompt, response_key = llm.prompts[0]
        assert response_key == "trend_extraction"
        assert "post-000" in prompt
        assert "post-099" in prompt
        assert "post-100" not in prompt

    async def test_llm_error_yields_empty_extraction(self):
        llm = RecordingLLM(error=RuntimeError("quota exceeded"))
        result = await TrendExtractor(llm).extract(["a"] * 12, "London")
        assert result.is_empty()

    async def test_timeout_yields_empty_extraction(self):
        import asyncio

        llm = RecordingLLM(error=asyncio.TimeoutError())
        result = await TrendExtractor(llm).extract(["a"] * 12, "London")
        assert result.is_empty()

    async def test_no_captions_skips_the_call(self):
        llm = RecordingLLM()
        result = await TrendExtractor(llm).extract([], "Berlin")
        assert result.is_empty()
        assert llm.prompts == []

    async def test_mock_gemini_response_parses(self):
        import citytrends.core.config as cfg

        original = cfg.settings.ai_mock_mode
        cfg.settings.ai_mock_mode = True
        try:
            result = await TrendExtractor(GeminiClient()).extract(["barrel jeans"] * 10, "London")
        finally:
            cfg.settings.ai_mock_mode = original

        assert result.items[0].name == "barrel jeans"
        assert result.items[0].mentions == 8
        assert [c.name for c in result.colors] == ["burgundy", "butter yellow"]
        assert result.local_spots[0].name == "Brick Lane Market"
        assert result.micro_trends[0].confidence == 75


def test_prompt_mentions_city_and_captions():
    prompt = build_prompt(["first caption", "second caption"], "Tokyo")
    assert "TOKYO" in prompt
    assert "first caption\n---\nsecond caption" in prompt


@pytest.mark.parametrize("raw", ["", "{}", "{ }"])
def test_empty_objects_are_empty(raw):
    assert parse_extraction(raw).is_empty()
