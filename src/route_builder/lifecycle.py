"""Route lifecycle: create, read, update, refresh, delete and list.

Every operation normalizes the caller's key first, so two raw inputs that
normalize identically always address the same route. Validation happens
before any store or gateway call. A failed extraction never touches the
store.

There is no locking: two concurrent updates of one key both write and the
later write wins.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from route_builder.errors import (
    ConflictError,
    CorruptEntryError,
    GatewayError,
    NotFoundError,
    ValidationError,
)
from route_builder.keys import (
    normalize_route_key,
    public_path,
    route_from_store_key,
    store_key,
)
from route_builder.models import (
    DeployRequest,
    DeployResult,
    ExtractionResult,
    RouteConfig,
    RouteEnvelope,
    RouteMetadata,
    RouteSummary,
    UpdateRequest,
    utc_now,
)
from route_builder.store import RouteStore

logger = logging.getLogger(__name__)

UPDATE_FIELDS_MESSAGE = "Missing required parameters: urls, query, and schema are required"


class ExtractionGateway(Protocol):
    def extract(self, urls: list[str], prompt: str, schema: dict[str, Any]) -> ExtractionResult:
        ...


def validation_details(exc: PydanticValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors to [{field, message}]."""
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


class RouteManager:
    """Orchestrates the store and the extraction gateway for named routes."""

    def __init__(
        self,
        store: RouteStore,
        extractor: ExtractionGateway | None = None,
        base_url: str = "http://localhost:8000",
        api_key: str = "",
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    # -- helpers ----------------------------------------------------------

    def _require_key(self, raw_key: str | None) -> str:
        route = normalize_route_key(raw_key or "")
        if not route:
            raise ValidationError("Endpoint parameter is required")
        return route

    def public_url(self, route: str) -> str:
        return f"{self.base_url}{public_path(route)}"

    def curl_command(self, url: str) -> str:
        lines = [f'curl -X GET "{url}"']
        if self.api_key:
            lines.append(f'  -H "Authorization: Bearer {self.api_key}"')
        lines.append('  -H "Content-Type: application/json"')
        return " \\\n".join(lines)

    def _run_extraction(self, urls: list[str], prompt: str, schema: dict[str, Any]) -> ExtractionResult:
        if self.extractor is None:
            raise GatewayError("No extraction gateway configured")
        result = self.extractor.extract(urls, prompt, schema)
        if not result.success:
            raise GatewayError(result.error or "Extraction failed")
        return result

    def _load(self, route: str) -> RouteEnvelope:
        envelope = self.store.get(store_key(route))
        if envelope is None:
            raise NotFoundError("No results found for this endpoint")
        return envelope

    # -- operations -------------------------------------------------------

    def list_routes(self) -> list[RouteSummary]:
        """All stored routes. Entries that cannot be decoded are skipped."""
        routes: list[RouteSummary] = []
        for key in sorted(self.store.list_keys()):
            try:
                envelope = self.store.get(key)
            except CorruptEntryError as exc:
                logger.warning("Skipping malformed route %s: %s", key, exc)
                continue
            if envelope is None:
                # Deleted between scan and read
                continue
            endpoint = route_from_store_key(key)
            routes.append(RouteSummary(endpoint=endpoint, url=public_path(endpoint), config=envelope))
        logger.info("Listed %d routes", len(routes))
        return routes

    def exists(self, raw_key: str) -> bool:
        route = self._require_key(raw_key)
        return self.store.get_raw(store_key(route)) is not None

    def create(self, raw_key: str, envelope: RouteEnvelope) -> DeployResult:
        """Store a new route. Never overwrites: an existing key is a conflict."""
        route = normalize_route_key(raw_key)
        if not route:
            raise ValidationError(
                "Route is required",
                details=[{"field": "route", "message": "Route must contain letters or digits"}],
            )

        key = store_key(route)
        if self.store.get_raw(key) is not None:
            raise ConflictError("Route already exists")

        if envelope.metadata.created_at is None:
            envelope = envelope.model_copy(
                update={"metadata": envelope.metadata.model_copy(update={"created_at": utc_now()})}
            )
        self.store.set(key, envelope)
        logger.info("Deployed route %s", route)

        url = self.public_url(route)
        return DeployResult(route=route, url=url, curl_command=self.curl_command(url))

    def deploy(self, payload: Any) -> DeployResult:
        """Validate a deploy request body, then create."""
        try:
            request = DeployRequest.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError("Validation error", details=validation_details(exc)) from exc
        return self.create(request.target, request.data)

    def read(self, raw_key: str, include_schema: bool = False) -> dict[str, Any]:
        route = self._require_key(raw_key)
        envelope = self._load(route)
        if include_schema:
            return envelope.to_json()
        return {
            "data": envelope.data,
            "lastUpdated": envelope.metadata.last_updated,
            "sources": list(envelope.metadata.sources),
        }

    def config(self, raw_key: str) -> RouteConfig:
        return RouteConfig.from_envelope(self._load(self._require_key(raw_key)))

    def update(self, raw_key: str, payload: Any) -> tuple[str, RouteEnvelope]:
        """Re-extract with the given urls/query/schema and overwrite the route."""
        route = self._require_key(raw_key)
        try:
            request = UpdateRequest.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(UPDATE_FIELDS_MESSAGE, details=validation_details(exc)) from exc

        key = store_key(route)
        try:
            previous = self.store.get(key)
        except CorruptEntryError:
            logger.warning("Overwriting malformed route %s", route)
            previous = None

        result = self._run_extraction(request.urls, request.query, request.schema_)

        envelope = RouteEnvelope(
            data=result.data,
            metadata=RouteMetadata(
                query=request.query,
                schema_=request.schema_,
                sources=list(request.urls),
                last_updated=utc_now(),
                created_at=previous.metadata.created_at if previous else utc_now(),
                search_query=request.search_query,
            ),
        )
        self.store.set(key, envelope)
        logger.info("Updated route %s from %d sources", route, len(request.urls))
        return route, envelope

    def refresh(self, raw_key: str) -> RouteEnvelope:
        """Re-run extraction with the route's stored configuration."""
        route = self._require_key(raw_key)
        key = store_key(route)
        current = self.store.get(key)
        if current is None:
            raise NotFoundError("Route not found")

        meta = current.metadata
        result = self._run_extraction(list(meta.sources), meta.query, meta.schema_)

        envelope = RouteEnvelope(
            data=result.data,
            metadata=meta.model_copy(update={"last_updated": utc_now()}),
        )
        self.store.set(key, envelope)
        logger.info("Refreshed route %s", route)
        return envelope

    def delete(self, raw_key: str) -> None:
        """Remove a route. Deleting an absent route succeeds."""
        route = self._require_key(raw_key)
        self.store.delete(store_key(route))
        logger.info("Deleted route %s", route)
