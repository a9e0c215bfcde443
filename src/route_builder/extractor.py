"""Extraction gateway: source URLs + prompt + schema -> structured data.

Pipeline per request:
  Fetch:    each URL through the fetcher; unreachable pages are skipped
  Clean:    HTML reduced to visible text, one section per source
  Extract:  the provider fills the schema once per chunk; chunk results merge

Failures are returned as ExtractionResult(success=False, error=...), never
raised, so callers decide how to surface them.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from route_builder.cleaner import chunk_text, html_to_text
from route_builder.config import Settings
from route_builder.fetcher import FetchError, fetch_html
from route_builder.models import ExtractionResult
from route_builder.providers import get_provider, provider_name_for
from route_builder.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


def _elapsed(t: float) -> str:
    secs = time.time() - t
    if secs < 60:
        return f"{secs:.1f}s"
    return f"{secs / 60:.1f}m"


def merge_results(results: list[Any]) -> Any:
    """
    Combine per-chunk results into one value.

    Objects merge key by key: the first non-empty value wins, except lists,
    which concatenate. Non-object results are returned from the first chunk
    that produced something.
    """
    non_empty = [r for r in results if r not in (None, {}, [])]
    if not non_empty:
        return results[0] if results else None
    if not all(isinstance(r, dict) for r in non_empty):
        return non_empty[0]

    merged: dict[str, Any] = {}
    for result in non_empty:
        for key, value in result.items():
            current = merged.get(key)
            if isinstance(current, list) and isinstance(value, list):
                merged[key] = current + value
            elif current in (None, "", [], {}):
                merged[key] = value
    return merged


class Extractor:
    """Fetches sources and asks an AI provider to fill the schema."""

    def __init__(
        self,
        provider: AIProvider,
        settings: Settings,
        fetch: Callable[[str, Settings], str] = fetch_html,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self._fetch = fetch

    @classmethod
    def from_settings(cls, settings: Settings, provider_name: str | None = None) -> Extractor:
        name = provider_name_for("extract", settings, provider_name)
        return cls(get_provider(name, settings), settings)

    def _read_sources(self, urls: list[str]) -> tuple[list[str], list[str], list[str]]:
        """Return (sections, urls read, failure messages)."""
        sections: list[str] = []
        read: list[str] = []
        failures: list[str] = []
        for url in urls:
            t0 = time.time()
            try:
                raw = self._fetch(url, self.settings)
            except FetchError as exc:
                logger.warning("Skipping source %s: %s", url, exc)
                failures.append(str(exc))
                continue
            text = html_to_text(raw)
            logger.info(
                "Read %s: %d -> %d chars (%s)", url, len(raw), len(text), _elapsed(t0),
            )
            sections.append(f"---SOURCE: {url}---\n{text}")
            read.append(url)
        return sections, read, failures

    def extract(self, urls: list[str], prompt: str, schema: dict[str, Any]) -> ExtractionResult:
        if not urls:
            return ExtractionResult(success=False, error="At least one source URL is required")

        sections, read, failures = self._read_sources(urls)
        if not read:
            detail = "; ".join(failures)
            return ExtractionResult(
                success=False,
                error=f"Failed to fetch any source URL: {detail}" if detail else "Failed to fetch any source URL",
            )

        content = "\n\n".join(sections)
        chunks = chunk_text(content, max_chars=self.provider.max_chunk_chars)
        logger.info(
            "Extracting with %s from %d sources (%d chunks)",
            self.provider.name, len(read), len(chunks),
        )

        results: list[Any] = []
        for i, chunk in enumerate(chunks):
            t0 = time.time()
            try:
                results.append(self.provider.extract(chunk, prompt, schema, read))
            except ProviderError as exc:
                logger.error("Extraction failed on chunk %d/%d: %s", i + 1, len(chunks), exc)
                return ExtractionResult(success=False, error=str(exc), sources=read)
            logger.debug("Chunk %d/%d done (%s)", i + 1, len(chunks), _elapsed(t0))

        return ExtractionResult(success=True, data=merge_results(results), sources=read)


class LazyExtractor:
    """
    Builds the real Extractor on first use.

    A missing provider key then fails only extraction calls, as a reported
    gateway failure, instead of preventing the service from starting.
    """

    def __init__(self, settings: Settings, provider_name: str | None = None) -> None:
        self.settings = settings
        self.provider_name = provider_name
        self._extractor: Extractor | None = None

    def extract(self, urls: list[str], prompt: str, schema: dict[str, Any]) -> ExtractionResult:
        if self._extractor is None:
            try:
                self._extractor = Extractor.from_settings(self.settings, self.provider_name)
            except ValueError as exc:
                logger.error("Extraction provider unavailable: %s", exc)
                return ExtractionResult(success=False, error=str(exc))
        return self._extractor.extract(urls, prompt, schema)
