"""Abstract base class for all AI providers."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from route_builder.config import Settings

logger = logging.getLogger(__name__)

SCHEMA_SYSTEM_PROMPT = """\
You are a JSON Schema generator. Given a description of data, generate a JSON \
Schema that matches the description.

Follow these rules:
1. The root must be {"type": "object", "properties": {...}}
2. Use appropriate types (string, number, integer, boolean, array, object)
3. Add "required" fields when they are essential
4. Use descriptive camelCase property names
5. Add "description" for complex fields

Return ONLY the JSON Schema. No prose. No code fences."""

EXTRACT_SYSTEM_PROMPT = """\
You are a data extraction assistant. The user describes the data they want and \
provides the content of one or more web pages. Fill in a single JSON object that \
conforms to the JSON Schema below, using only facts present in the content.

Rules:
- Do not invent data. Use null for values the content does not contain.
- Keep numbers as numbers and booleans as booleans.
- When several sources disagree, prefer the most recent or most specific one.

Sources: {sources}

JSON Schema:
{schema}

Return ONLY valid JSON matching the schema."""


class ProviderError(Exception):
    """Raised when an AI provider call fails or returns unusable output."""


def parse_json(raw: str) -> Any:
    """Parse model output as JSON, tolerating code fences and trailing objects."""
    text = raw.strip()

    # Strip markdown code fences if present (```json ... ```)
    if text.startswith("```"):
        first_nl = text.find("\n")
        if first_nl != -1:
            text = text[first_nl + 1:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3].rstrip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Models sometimes append a second object or prose; keep the first value.
    start = min((i for i in (text.find("{"), text.find("[")) if i != -1), default=-1)
    if start != -1:
        try:
            value, _ = json.JSONDecoder().raw_decode(text[start:])
            return value
        except json.JSONDecodeError:
            pass

    raise ProviderError(f"Failed to parse AI response: {text[:200]}")


class AIProvider(ABC):
    """Contract for LLM backends used to draft schemas and extract data."""

    name: str
    max_chunk_chars: int = 48_000  # ~12K tokens; providers can override

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abstractmethod
    def _chat(self, system: str, user: str, *, json_mode: bool = False) -> str:
        """Send one system+user exchange and return the raw response text."""
        ...

    def _build_schema_messages(self, query: str) -> tuple[str, str]:
        user = f"Generate a JSON Schema for this data description: {query}"
        return SCHEMA_SYSTEM_PROMPT, user

    def _build_extract_messages(
        self, content: str, prompt: str, schema: dict[str, Any], sources: list[str]
    ) -> tuple[str, str]:
        system = EXTRACT_SYSTEM_PROMPT.format(
            sources=", ".join(sources) or "(none)",
            schema=json.dumps(schema, indent=2, ensure_ascii=False),
        )
        user = f"{prompt}\n\n---PAGE CONTENT---\n{content}\n---END PAGE CONTENT---"
        return system, user

    def _call(self, what: str, system: str, user: str) -> Any:
        try:
            raw = self._chat(system, user, json_mode=True)
        except Exception as exc:
            logger.error("%s %s failed: %s", self.name, what, exc)
            raise ProviderError(f"{self.name} {what} failed: {exc}") from exc
        return parse_json(raw)

    def generate_schema(self, query: str) -> Any:
        """Draft a JSON Schema from a natural language description."""
        system, user = self._build_schema_messages(query)
        return self._call("generate_schema", system, user)

    def extract(
        self,
        content: str,
        prompt: str,
        schema: dict[str, Any],
        sources: list[str],
    ) -> Any:
        """
        Extract one JSON value matching ``schema`` from page content.

        Args:
            content: Cleaned page content, possibly from several sources.
            prompt: The user's natural language request.
            schema: JSON Schema the result must follow.
            sources: URLs the content came from.
        """
        system, user = self._build_extract_messages(content, prompt, schema, sources)
        return self._call("extract", system, user)
