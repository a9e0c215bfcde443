"""Ollama provider for local model inference."""

from __future__ import annotations

import httpx

from route_builder.config import Settings
from route_builder.providers.base import AIProvider

# Local models are slow on CPU; allow long generations.
OLLAMA_TIMEOUT = 600


class OllamaProvider(AIProvider):
    name = "ollama"
    max_chunk_chars = 16_000

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._model = settings.ollama_model

    def _chat(self, system: str, user: str, *, json_mode: bool = False, num_ctx: int = 8192) -> str:
        payload: dict = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": False,
            "options": {
                "temperature": self.settings.temperature,
                "num_ctx": num_ctx,
            },
        }
        if json_mode:
            payload["format"] = "json"

        with httpx.Client(timeout=OLLAMA_TIMEOUT) as client:
            response = client.post(f"{self._base_url}/api/chat", json=payload)
            response.raise_for_status()

        return response.json().get("message", {}).get("content", "")
