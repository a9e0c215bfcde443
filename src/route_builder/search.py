"""Web search for candidate source pages via the Serper API."""

from __future__ import annotations

import logging

import httpx

from route_builder.config import Settings
from route_builder.errors import GatewayError, ValidationError
from route_builder.models import SearchResult

logger = logging.getLogger(__name__)

SERPER_ENDPOINT = "https://google.serper.dev/search"


class SerperSearch:
    """Google results from Serper. An empty result list is not an error."""

    def __init__(self, settings: Settings) -> None:
        if not settings.serper_api_key:
            raise ValueError("SERPER_API_KEY is required for web search")
        self._api_key = settings.serper_api_key
        self._num = settings.search_results
        self._timeout = settings.http_timeout

    def search(self, query: str, num: int | None = None) -> list[SearchResult]:
        if not query or not query.strip():
            raise ValidationError("Query is required")

        payload = {"q": query, "num": num or self._num}
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(
                    SERPER_ENDPOINT,
                    json=payload,
                    headers={"X-API-KEY": self._api_key},
                )
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Serper search failed for %r: %s", query, exc)
            raise GatewayError(f"Search request failed: {exc}") from exc

        results = [
            SearchResult(
                title=item.get("title", ""),
                url=item["link"],
                snippet=item.get("snippet", ""),
            )
            for item in body.get("organic", [])
            if item.get("link")
        ]
        logger.info("Search %r returned %d results", query, len(results))
        return results
