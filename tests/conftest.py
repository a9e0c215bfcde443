"""Shared fixtures for route-builder tests."""

from __future__ import annotations

from typing import Any

import pytest

from route_builder.config import Settings
from route_builder.lifecycle import RouteManager
from route_builder.models import ExtractionResult, RouteEnvelope, SearchResult
from route_builder.store import MemoryStore


@pytest.fixture()
def settings() -> Settings:
    """Settings with dummy keys and an in-memory store."""
    return Settings(
        store_backend="memory",
        api_route="https://api.example.com",
        api_key="sk_test",
        serper_api_key="test-serper-key",
        scraper_api_key="test-scraper-key",
        openai_api_key="test-openai-key",
        anthropic_api_key="test-anthropic-key",
        groq_api_key="test-groq-key",
        gemini_api_key="test-gemini-key",
    )


SAMPLE_SCHEMA = {
    "type": "object",
    "properties": {
        "price": {"type": "number", "description": "Share price in USD"},
        "marketCap": {"type": "string"},
    },
    "required": ["price"],
}

SAMPLE_ENVELOPE = {
    "data": {"price": 123},
    "metadata": {
        "query": "q",
        "schema": {"type": "object", "properties": {}},
        "sources": ["https://a.com"],
        "lastUpdated": "2024-01-01T00:00:00Z",
    },
}

SAMPLE_HTML = """\
<!DOCTYPE html>
<html>
<head>
    <title>NVIDIA Stock</title>
    <script>var x = 1;</script>
    <style>body { color: red; }</style>
</head>
<body>
    <nav><a href="/home">Home</a></nav>
    <div class="quote">
        <h1>NVIDIA Corp</h1>
        <p>Price: <b>$123.45</b> &amp; rising</p>
        <ul><li>Market cap: 3.0T</li><li>Volume: 23.4M</li></ul>
    </div>
    <footer>Copyright 2024</footer>
    <!-- tracking -->
</body>
</html>
"""


class FakeExtractor:
    """Extraction gateway double that records calls."""

    def __init__(self, result: ExtractionResult | None = None) -> None:
        self.result = result or ExtractionResult(
            success=True, data={"price": 456}, sources=["https://a.com"]
        )
        self.calls: list[tuple[list[str], str, dict[str, Any]]] = []

    def extract(self, urls: list[str], prompt: str, schema: dict[str, Any]) -> ExtractionResult:
        self.calls.append((list(urls), prompt, schema))
        return self.result


class FakeSchemaGateway:
    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        self.schema = schema or SAMPLE_SCHEMA
        self.queries: list[str] = []

    def generate(self, query: str) -> dict[str, Any]:
        self.queries.append(query)
        return self.schema


class FakeSearchGateway:
    def __init__(self, results: list[SearchResult] | None = None) -> None:
        self.results = results if results is not None else [
            SearchResult(title="A", url="https://a.com", snippet="first"),
            SearchResult(title="B", url="https://b.com", snippet="second"),
            SearchResult(title="C", url="https://c.com", snippet="third"),
            SearchResult(title="D", url="https://d.com", snippet="fourth"),
        ]

    def search(self, query: str, num: int | None = None) -> list[SearchResult]:
        return self.results


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture()
def manager(store, extractor) -> RouteManager:
    return RouteManager(store, extractor, base_url="https://api.example.com", api_key="sk_test")


@pytest.fixture()
def envelope() -> RouteEnvelope:
    return RouteEnvelope.model_validate(SAMPLE_ENVELOPE)
