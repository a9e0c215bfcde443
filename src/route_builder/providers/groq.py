"""Groq provider: free, fast inference via OpenAI-compatible API."""

from __future__ import annotations

import logging
import time

from openai import OpenAI

from route_builder.config import Settings
from route_builder.providers.base import AIProvider

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

# Groq free tier: 6K TPM. Keep chunks small so each request fits.
GROQ_MAX_CHUNK_CHARS = 12_000

# Seconds to wait between API calls to respect TPM limits.
GROQ_RATE_LIMIT_DELAY = 15


class GroqProvider(AIProvider):
    name = "groq"
    max_chunk_chars = GROQ_MAX_CHUNK_CHARS

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        if not settings.groq_api_key:
            raise ValueError("GROQ_API_KEY is required for the Groq provider")
        self._client = OpenAI(
            api_key=settings.groq_api_key,
            base_url=GROQ_BASE_URL,
            timeout=settings.http_timeout,
        )
        self._model = settings.groq_model
        self._last_call: float = 0

    def _rate_limit(self) -> None:
        elapsed = time.time() - self._last_call
        if self._last_call and elapsed < GROQ_RATE_LIMIT_DELAY:
            wait = GROQ_RATE_LIMIT_DELAY - elapsed
            logger.info("Groq rate limit: waiting %.1fs", wait)
            time.sleep(wait)

    def _chat(self, system: str, user: str, *, json_mode: bool = False) -> str:
        self._rate_limit()

        kwargs: dict = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.settings.temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self._client.chat.completions.create(**kwargs)
        finally:
            self._last_call = time.time()
        return response.choices[0].message.content or ""
