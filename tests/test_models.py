"""Tests for route_builder.models module."""

from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from conftest import SAMPLE_ENVELOPE
from route_builder.models import (
    DeployRequest,
    ExtractionResult,
    RouteConfig,
    RouteEnvelope,
    RouteMetadata,
    UpdateRequest,
    check_object_schema,
    utc_now,
)


def test_utc_now_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_now())


class TestCheckObjectSchema:
    def test_valid(self):
        schema = {"type": "object", "properties": {}, "required": ["a"]}
        assert check_object_schema(schema) is schema

    @pytest.mark.parametrize("schema", [
        {"properties": {}},
        {"type": "object"},
        {"type": "object", "properties": []},
        {"type": "object", "properties": {}, "required": "a"},
        {"type": "object", "properties": {}, "required": [1]},
    ])
    def test_invalid(self, schema):
        with pytest.raises(ValueError):
            check_object_schema(schema)


class TestRouteEnvelope:
    def test_camel_case_aliases(self):
        env = RouteEnvelope.model_validate(SAMPLE_ENVELOPE)
        assert env.metadata.last_updated == "2024-01-01T00:00:00Z"
        assert env.metadata.schema_ == {"type": "object", "properties": {}}

    def test_populate_by_field_name(self):
        meta = RouteMetadata(query="q", schema_={}, last_updated="t")
        assert meta.to_json() == {"query": "q", "schema": {}, "sources": [], "lastUpdated": "t"}

    def test_optional_metadata_serialized_when_set(self):
        meta = RouteMetadata(
            query="q", schema_={}, last_updated="t", created_at="c", search_query="s",
        )
        out = meta.to_json()
        assert out["createdAt"] == "c"
        assert out["searchQuery"] == "s"

    def test_data_is_required(self):
        with pytest.raises(ValidationError):
            RouteEnvelope.model_validate({"metadata": SAMPLE_ENVELOPE["metadata"]})

    def test_data_may_be_any_json(self):
        env = RouteEnvelope.model_validate({**SAMPLE_ENVELOPE, "data": [1, "two", None]})
        assert env.data == [1, "two", None]

    def test_null_data_serialized(self):
        env = RouteEnvelope.model_validate({**SAMPLE_ENVELOPE, "data": None})
        assert env.to_json() == {**SAMPLE_ENVELOPE, "data": None}


def test_route_config_from_envelope():
    env = RouteEnvelope.model_validate(SAMPLE_ENVELOPE)
    config = RouteConfig.from_envelope(env).to_json()
    assert config == {
        "urls": ["https://a.com"],
        "schema": {"type": "object", "properties": {}},
        "prompt": "q",
        "updatedAt": "2024-01-01T00:00:00Z",
    }


class TestRequests:
    def test_deploy_target_prefers_route(self):
        req = DeployRequest.model_validate({"key": "k", "data": SAMPLE_ENVELOPE, "route": "r"})
        assert req.target == "r"

    def test_deploy_target_falls_back_to_key(self):
        req = DeployRequest.model_validate({"key": "k", "data": SAMPLE_ENVELOPE})
        assert req.target == "k"

    def test_update_request_aliases(self):
        req = UpdateRequest.model_validate(
            {"urls": ["https://a.com"], "query": "q", "schema": {"type": "object"}, "searchQuery": "s"}
        )
        assert req.schema_ == {"type": "object"}
        assert req.search_query == "s"

    def test_update_request_rejects_empty_urls(self):
        with pytest.raises(ValidationError):
            UpdateRequest.model_validate({"urls": [], "query": "q", "schema": {"type": "object"}})


def test_extraction_result_defaults():
    result = ExtractionResult(success=False, error="boom")
    assert result.data is None
    assert result.sources == []
