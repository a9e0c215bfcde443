"""Pydantic models for stored routes, gateway results and request bodies."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp, e.g. 2024-01-01T00:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def check_object_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Reject schemas that do not describe a JSON object with properties."""
    if not isinstance(schema.get("type"), str):
        raise ValueError("schema must declare a string 'type'")
    if not isinstance(schema.get("properties"), dict):
        raise ValueError("schema must declare an object of 'properties'")
    required = schema.get("required")
    if required is not None and not (
        isinstance(required, list) and all(isinstance(r, str) for r in required)
    ):
        raise ValueError("schema 'required' must be a list of strings")
    return schema


class _Wire(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RouteMetadata(_Wire):
    """How the stored data was produced."""

    query: str = Field(description="Natural language request the data answers")
    schema_: dict[str, Any] = Field(alias="schema", description="JSON Schema of the data")
    sources: list[str] = Field(default_factory=list, description="Source URLs, in order")
    last_updated: str = Field(alias="lastUpdated")
    created_at: str | None = Field(default=None, alias="createdAt")
    search_query: str | None = Field(default=None, alias="searchQuery")


class RouteEnvelope(_Wire):
    """The value persisted at results/<route>."""

    data: Any
    metadata: RouteMetadata

    def to_json(self) -> dict[str, Any]:
        # data is kept even when it is null; only metadata drops unset optionals
        return {
            "data": self.model_dump(mode="json", include={"data"})["data"],
            "metadata": self.metadata.to_json(),
        }


class RouteConfig(_Wire):
    """Configuration view of a stored route, used to refresh it."""

    urls: list[str]
    schema_: dict[str, Any] = Field(alias="schema")
    prompt: str
    search_query: str | None = Field(default=None, alias="searchQuery")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str = Field(alias="updatedAt")

    @classmethod
    def from_envelope(cls, envelope: RouteEnvelope) -> RouteConfig:
        meta = envelope.metadata
        return cls(
            urls=list(meta.sources),
            schema_=meta.schema_,
            prompt=meta.query,
            search_query=meta.search_query,
            created_at=meta.created_at,
            updated_at=meta.last_updated,
        )


class RouteSummary(BaseModel):
    """One entry of the route listing."""

    endpoint: str
    url: str
    config: RouteEnvelope

    def to_json(self) -> dict[str, Any]:
        return {"endpoint": self.endpoint, "config": self.config.to_json(), "url": self.url}


class DeployResult(_Wire):
    route: str
    url: str
    curl_command: str = Field(alias="curlCommand")


class SearchResult(BaseModel):
    """A candidate source page returned by web search."""

    title: str = ""
    url: str
    snippet: str = ""


class ExtractionResult(BaseModel):
    """Outcome of an extraction run. Failures are reported, not raised."""

    success: bool
    data: Any = None
    error: str | None = None
    sources: list[str] = Field(
        default_factory=list,
        description="URLs that were actually read",
    )


# -- Request bodies -------------------------------------------------------


class DeployRequest(BaseModel):
    key: str = Field(min_length=1)
    data: RouteEnvelope
    route: str | None = None

    @field_validator("data")
    @classmethod
    def _schema_is_object(cls, v: RouteEnvelope) -> RouteEnvelope:
        check_object_schema(v.metadata.schema_)
        return v

    @property
    def target(self) -> str:
        """Raw route name to deploy under; falls back to the key."""
        return self.route or self.key


class UpdateRequest(_Wire):
    urls: list[str] = Field(min_length=1)
    query: str = Field(min_length=1)
    schema_: dict[str, Any] = Field(alias="schema", min_length=1)
    search_query: str | None = Field(default=None, alias="searchQuery")


class ExtractRequest(UpdateRequest):
    pass


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    endpoint: str = Field(min_length=1)
