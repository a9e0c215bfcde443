"""Google Gemini provider: generous free tier, large context window."""

from __future__ import annotations

import logging
import time

from google import genai
from google.genai import types

from route_builder.config import Settings
from route_builder.providers.base import AIProvider

logger = logging.getLogger(__name__)

# 1M token context; several full pages fit in one request.
GEMINI_MAX_CHUNK_CHARS = 500_000

# Free tier allows 10 RPM.
GEMINI_RATE_LIMIT_DELAY = 7


class GeminiProvider(AIProvider):
    name = "gemini"
    max_chunk_chars = GEMINI_MAX_CHUNK_CHARS

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required for the Gemini provider")
        self._client = genai.Client(api_key=settings.gemini_api_key)
        self._model = settings.gemini_model
        self._last_call: float = 0

    def _rate_limit(self) -> None:
        elapsed = time.time() - self._last_call
        if self._last_call and elapsed < GEMINI_RATE_LIMIT_DELAY:
            wait = GEMINI_RATE_LIMIT_DELAY - elapsed
            logger.info("Gemini rate limit: waiting %.1fs", wait)
            time.sleep(wait)

    def _chat(self, system: str, user: str, *, json_mode: bool = False) -> str:
        self._rate_limit()

        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=self.settings.temperature,
        )
        if json_mode:
            config.response_mime_type = "application/json"

        try:
            response = self._client.models.generate_content(
                model=self._model,
                config=config,
                contents=user,
            )
        finally:
            self._last_call = time.time()
        return response.text or ""
