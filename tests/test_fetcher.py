"""Tests for route_builder.fetcher module."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock, patch

import httpx
import pytest

from route_builder.config import Settings
from route_builder.fetcher import (
    DIRECT_HEADERS,
    SCRAPERAPI_ENDPOINT,
    FetchError,
    _get,
    fetch_html,
)


@pytest.fixture()
def fetch_settings() -> Settings:
    return Settings(scraper_api_key="test-api-key", scraper_timeout=10)


def _patched_client(side_effect):
    patcher = patch("route_builder.fetcher.httpx.Client")
    mock_client_cls = patcher.start()
    client = MagicMock()
    client.get = MagicMock(side_effect=side_effect)
    mock_client_cls.return_value.__enter__.return_value = client
    mock_client_cls.return_value.__exit__.return_value = False
    return patcher, client


def _response(text: str) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.raise_for_status = MagicMock()
    return response


class TestFetchHtml:
    def test_sends_scraperapi_headers(self, fetch_settings):
        patcher, client = _patched_client([_response("<html>Hello</html>")])
        try:
            result = fetch_html("https://example.com", fetch_settings)
        finally:
            patcher.stop()

        client.get.assert_called_once()
        call = client.get.call_args
        assert call.args[0] == SCRAPERAPI_ENDPOINT
        assert call.kwargs["params"] == {"url": "https://example.com"}
        assert call.kwargs["headers"]["x-sapi-api_key"] == "test-api-key"
        assert call.kwargs["headers"]["x-sapi-render"] == "true"
        assert result == "<html>Hello</html>"

    def test_no_render_sends_false(self, fetch_settings):
        settings = replace(fetch_settings, render_js=False)
        patcher, client = _patched_client([_response("<html></html>")])
        try:
            fetch_html("https://example.com", settings)
        finally:
            patcher.stop()
        assert client.get.call_args.kwargs["headers"]["x-sapi-render"] == "false"

    def test_direct_fetch_without_scraper_key(self):
        patcher, client = _patched_client([_response("<html>direct</html>")])
        try:
            result = fetch_html("https://example.com", Settings())
        finally:
            patcher.stop()

        call = client.get.call_args
        assert call.args[0] == "https://example.com"
        assert call.kwargs["headers"] == DIRECT_HEADERS
        assert call.kwargs["follow_redirects"] is True
        assert result == "<html>direct</html>"

    def test_fetch_error_on_exception(self, fetch_settings):
        patcher, _ = _patched_client(httpx.ConnectError("Connection refused"))
        try:
            with pytest.raises(FetchError, match="Failed to fetch https://example.com"):
                fetch_html("https://example.com", fetch_settings)
        finally:
            patcher.stop()

    def test_timeout_is_retried(self, fetch_settings):
        patcher, client = _patched_client([httpx.ReadTimeout("slow"), _response("<html>ok</html>")])
        try:
            with patch.object(_get.retry, "sleep"):
                result = fetch_html("https://example.com", fetch_settings)
        finally:
            patcher.stop()
        assert result == "<html>ok</html>"
        assert client.get.call_count == 2


class TestFetchError:
    def test_is_exception(self):
        assert issubclass(FetchError, Exception)

    def test_message(self):
        err = FetchError("something went wrong")
        assert str(err) == "something went wrong"
