"""Tests for route_builder.schema module."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from conftest import SAMPLE_SCHEMA
from route_builder.errors import GatewayError, ValidationError
from route_builder.providers.base import ProviderError
from route_builder.schema import SchemaGenerator


class TestSchemaGenerator:
    def _provider(self, reply=None, error=None):
        provider = MagicMock()
        provider.name = "mock"
        if error is not None:
            provider.generate_schema.side_effect = error
        else:
            provider.generate_schema.return_value = reply
        return provider

    def test_returns_object_schema(self):
        provider = self._provider(SAMPLE_SCHEMA)
        assert SchemaGenerator(provider).generate("  NVIDIA market cap ") == SAMPLE_SCHEMA
        provider.generate_schema.assert_called_once_with("NVIDIA market cap")

    def test_empty_query(self):
        provider = self._provider(SAMPLE_SCHEMA)
        with pytest.raises(ValidationError):
            SchemaGenerator(provider).generate("")
        provider.generate_schema.assert_not_called()

    def test_provider_error(self):
        provider = self._provider(error=ProviderError("mock generate_schema failed: 401"))
        with pytest.raises(GatewayError, match="Failed to generate schema: mock generate_schema failed"):
            SchemaGenerator(provider).generate("q")

    def test_non_object_reply(self):
        with pytest.raises(GatewayError, match="did not return a JSON object"):
            SchemaGenerator(self._provider(["price"])).generate("q")

    def test_schema_without_properties(self):
        with pytest.raises(GatewayError, match="properties"):
            SchemaGenerator(self._provider({"type": "object"})).generate("q")
