"""Anthropic Claude provider."""

from __future__ import annotations

import anthropic

from route_builder.config import Settings
from route_builder.providers.base import AIProvider


class AnthropicProvider(AIProvider):
    name = "anthropic"

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        if not settings.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is required for the Anthropic provider")
        self._client = anthropic.Anthropic(
            api_key=settings.anthropic_api_key, timeout=settings.http_timeout
        )

    def _chat(self, system: str, user: str, *, json_mode: bool = False) -> str:
        # No native JSON mode; the system prompts already demand bare JSON.
        response = self._client.messages.create(
            model=self.settings.claude_model,
            max_tokens=4096,
            system=system,
            messages=[{"role": "user", "content": user}],
            temperature=self.settings.temperature,
        )
        return "".join(block.text for block in response.content if block.type == "text")
