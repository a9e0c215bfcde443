"""Fetch page HTML for extraction, through ScraperAPI when a key is configured."""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from route_builder.config import Settings

logger = logging.getLogger(__name__)

SCRAPERAPI_ENDPOINT = "https://api.scraperapi.com/"

DIRECT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml",
}


class FetchError(Exception):
    """Raised when a page cannot be fetched after all retries."""


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=20),
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.HTTPStatusError)),
    reraise=True,
)
def _get(client: httpx.Client, url: str, settings: Settings) -> httpx.Response:
    if settings.scraper_api_key:
        response = client.get(
            SCRAPERAPI_ENDPOINT,
            params={"url": url},
            headers={
                "x-sapi-api_key": settings.scraper_api_key,
                "x-sapi-render": str(settings.render_js).lower(),
            },
        )
    else:
        response = client.get(url, headers=DIRECT_HEADERS, follow_redirects=True)
    response.raise_for_status()
    return response


def fetch_html(url: str, settings: Settings) -> str:
    """
    Fetch the HTML for a URL.

    With SCRAPER_API_KEY set the request goes through ScraperAPI (JS rendering
    per RENDER_JS); otherwise the page is requested directly. Timeouts and
    HTTP error statuses are retried with exponential backoff.
    """
    try:
        with httpx.Client(timeout=settings.scraper_timeout) as client:
            response = _get(client, url, settings)
    except Exception as exc:
        logger.error("Fetch failed for %s: %s", url, exc)
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc

    logger.info("Fetched %d bytes from %s", len(response.text), url)
    return response.text
