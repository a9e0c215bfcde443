"""LLM backends for schema drafting and data extraction.

Backends are imported only when selected, so a missing SDK or key for one
provider never affects the others.
"""

from __future__ import annotations

import importlib
import logging
from typing import Literal

from route_builder.config import Settings
from route_builder.providers.base import AIProvider

logger = logging.getLogger(__name__)

Purpose = Literal["schema", "extract"]

_BACKENDS: dict[str, tuple[str, str]] = {
    "openai": ("route_builder.providers.openai", "OpenAIProvider"),
    "anthropic": ("route_builder.providers.anthropic", "AnthropicProvider"),
    "ollama": ("route_builder.providers.ollama", "OllamaProvider"),
    "groq": ("route_builder.providers.groq", "GroqProvider"),
    "gemini": ("route_builder.providers.gemini", "GeminiProvider"),
}


def list_providers() -> list[str]:
    return sorted(_BACKENDS)


def provider_name_for(purpose: Purpose, settings: Settings, override: str | None = None) -> str:
    """
    Pick the backend for a job.

    An explicit override wins. Schema drafting uses SCHEMA_PROVIDER when set;
    everything else falls back to DEFAULT_PROVIDER.
    """
    if override:
        return override
    if purpose == "schema" and settings.schema_provider:
        return settings.schema_provider
    return settings.default_provider


def get_provider(name: str, settings: Settings) -> AIProvider:
    """Instantiate a backend by name. Raises ValueError for unknown names or missing keys."""
    try:
        module_path, class_name = _BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown provider '{name}'. Available: {', '.join(list_providers())}"
        ) from None

    provider_class = getattr(importlib.import_module(module_path), class_name)
    provider = provider_class(settings)
    logger.debug("Using %s provider", name)
    return provider
