"""
GeminiClient — Async wrapper around Google Generative AI SDK.

Supports two runtime modes (set via AI_MOCK_MODE env var):
  - MOCK mode (default): returns deterministic canned responses.
    Use for tests and local dev without API keys.
  - REAL mode: makes actual Gemini API calls.
    Requires GEMINI_API_KEY to be set.

Every real call is bounded by settings.llm_timeout_seconds; a timeout
surfaces as asyncio.TimeoutError and callers treat it like any other
provider error.

Extension pattern: add new mock response keys to _MOCK_RESPONSES and
reference them in generate() calls via the response_key parameter.
"""

import asyncio
import logging
import os
from typing import Any

# Python 3.14 + protobuf native extension can fail when importing Gemini deps.
# Keep this as default-only so users can still override it explicitly.
os.environ.setdefault("PROTOCOL_BUFFERS_PYTHON_IMPLEMENTATION", "python")

import google.generativeai as genai

from citytrends.core.config import settings

logger = logging.getLogger(__name__)


# Canned responses for mock mode.
# Keys map to response_key arguments in generate() calls.
_MOCK_RESPONSES: dict[str, str] = {
    "default": (
        "[MOCK] This is a placeholder Gemini response. "
        "Set AI_MOCK_MODE=false and provide GEMINI_API_KEY for real responses."
    ),
    "trend_extraction": (
        '{"items": [{"name": "barrel jeans", "mentions": 8}, '
        '{"name": "cropped leather jacket", "mentions": 5}, '
        '{"name": "mesh ballet flats", "mentions": 3}], '
        '"styles": [{"name": "quiet luxury", "mentions": 5}, '
        '{"name": "gorpcore", "mentions": 3}], '
        '"colors": [{"name": "burgundy", "mentions": 4}, '
        '{"name": "butter yellow", "mentions": 2}], '
        '"brands": [{"name": "Avirex", "mentions": 3, "type": "streetwear"}], '
        '"local_spots": [{"name": "Brick Lane Market", "mentions": 6}], '
        '"micro_trends": [{"name": "vintage bomber revival", '
        '"description": "[MOCK] Vintage bombers paired with tailored trousers", '
        '"confidence": 75}]}'
    ),
}


class GeminiClient:
    """
    Central Gemini interface for the trend pipeline.

    One instance per process (see the `gemini_client` singleton); jobs get it
    through the TrendExtractor they are handed, never by importing it.
    """

    def __init__(self) -> None:
        self.mock_mode = settings.ai_mock_mode
        self.model_name = settings.gemini_model
        self.timeout = settings.llm_timeout_seconds

        if not self.mock_mode:
            if not settings.gemini_api_key:
                logger.warning(
                    "GEMINI_API_KEY not set — falling back to mock mode. "
                    "Set AI_MOCK_MODE=true to silence this warning."
                )
                self.mock_mode = True
            else:
                genai.configure(api_key=settings.gemini_api_key)
                self._genai = genai

        if self.mock_mode:
            logger.info("GeminiClient initialised in MOCK mode")
        else:
            logger.info("GeminiClient initialised in REAL mode (model: %s)", self.model_name)

    async def generate(
        self,
        prompt: str,
        response_key: str = "default",
        **generation_kwargs: Any,
    ) -> str:
        """
        Generate text from the configured Gemini model.

        Args:
            prompt:             The full prompt string.
            response_key:       Mock response key (ignored in real mode).
            **generation_kwargs: Passed through to GenerativeModel.generate_content_async().

        Returns:
            Generated text string.

        Raises:
            asyncio.TimeoutError: the call exceeded settings.llm_timeout_seconds.
            Exception: Propagates Gemini SDK errors in real mode.
        """
        if self.mock_mode:
            return _MOCK_RESPONSES.get(response_key, _MOCK_RESPONSES["default"])

        try:
            gemini_model = self._genai.GenerativeModel(self.model_name)
            response = await asyncio.wait_for(
                gemini_model.generate_content_async(prompt, **generation_kwargs),
                timeout=self.timeout,
            )
            return response.text
        except asyncio.TimeoutError:
            logger.error("Gemini API timeout after %.0fs (model=%s)", self.timeout, self.model_name)
            raise
        except Exception as exc:
            logger.error("Gemini API error (model=%s): %s", self.model_name, exc)
            raise


# Module-level singleton — handed to TrendExtractor by the route dependencies
gemini_client = GeminiClient()
