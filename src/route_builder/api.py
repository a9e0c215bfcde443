"""HTTP surface: thin FastAPI handlers over the route lifecycle and gateways.

Every response is JSON with a ``success`` flag. Errors raised anywhere below
are RouteError subclasses and are translated by one exception handler.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import cached_property
from typing import Any, Iterator

from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from route_builder import __version__
from route_builder.config import Settings
from route_builder.errors import (
    GatewayError,
    RouteError,
    TransportError,
    ValidationError,
)
from route_builder.extractor import LazyExtractor
from route_builder.keys import normalize_route_key, public_path
from route_builder.lifecycle import ExtractionGateway, RouteManager, validation_details
from route_builder.models import ExtractRequest, QueryRequest, RefreshRequest
from route_builder.providers import get_provider, provider_name_for
from route_builder.schema import SchemaGenerator
from route_builder.search import SerperSearch
from route_builder.store import get_store
from route_builder.wizard import SchemaGateway, SearchGateway

logger = logging.getLogger(__name__)


class Services:
    """Lazily built collaborators shared by all requests of one app."""

    def __init__(
        self,
        settings: Settings,
        *,
        manager: RouteManager | None = None,
        schema_gateway: SchemaGateway | None = None,
        search_gateway: SearchGateway | None = None,
        extractor: ExtractionGateway | None = None,
    ) -> None:
        self.settings = settings
        if manager is not None:
            self.manager = manager
        if schema_gateway is not None:
            self.schema_gateway = schema_gateway
        if search_gateway is not None:
            self.search_gateway = search_gateway
        if extractor is not None:
            self.extractor = extractor

    @cached_property
    def extractor(self) -> ExtractionGateway:
        return LazyExtractor(self.settings)

    @cached_property
    def manager(self) -> RouteManager:
        try:
            store = get_store(self.settings)
        except ValueError as exc:
            raise TransportError(str(exc)) from exc
        return RouteManager(
            store,
            self.extractor,
            base_url=self.settings.api_route,
            api_key=self.settings.api_key,
        )

    @cached_property
    def schema_gateway(self) -> SchemaGateway:
        name = provider_name_for("schema", self.settings)
        try:
            return SchemaGenerator(get_provider(name, self.settings))
        except ValueError as exc:
            raise GatewayError(f"Failed to generate schema: {exc}") from exc

    @cached_property
    def search_gateway(self) -> SearchGateway:
        try:
            return SerperSearch(self.settings)
        except ValueError as exc:
            raise GatewayError(f"Failed to perform search: {exc}") from exc


@contextmanager
def storage_errors(message: str) -> Iterator[None]:
    """Replace store-level error text with a fixed, endpoint-specific message."""
    try:
        yield
    except TransportError as exc:
        logger.error("%s: %s", message, exc)
        raise TransportError(message) from exc


def _validate(model: Any, payload: Any, message: str) -> Any:
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as exc:
        raise ValidationError(message, details=validation_details(exc)) from exc


def create_app(
    settings: Settings | None = None,
    *,
    manager: RouteManager | None = None,
    schema_gateway: SchemaGateway | None = None,
    search_gateway: SearchGateway | None = None,
    extractor: ExtractionGateway | None = None,
) -> FastAPI:
    """Build the application. Collaborators not passed in are built from settings."""
    if settings is None:
        settings = Settings.from_env()

    services = Services(
        settings,
        manager=manager,
        schema_gateway=schema_gateway,
        search_gateway=search_gateway,
        extractor=extractor,
    )

    app = FastAPI(title="route-builder", version=__version__)
    app.state.services = services

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(RouteError)
    async def route_error_handler(request: Request, exc: RouteError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        content: dict[str, Any] = {"success": False, "error": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def body_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request body", "details": details},
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"success": True, "status": "ok"}

    # -- routes -----------------------------------------------------------

    @app.get("/routes")
    def list_routes() -> dict[str, Any]:
        with storage_errors("Failed to fetch routes"):
            routes = services.manager.list_routes()
        return {"success": True, "routes": [r.to_json() for r in routes]}

    @app.post("/routes")
    def refresh_route(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        request = _validate(RefreshRequest, payload, "Endpoint parameter is required")
        with storage_errors("Failed to update route"):
            envelope = services.manager.refresh(request.endpoint)
        return {"success": True, "message": "Route updated successfully", "data": envelope.data}

    @app.put("/routes/{endpoint}")
    def update_route(endpoint: str, payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        with storage_errors("Failed to deploy route"):
            route, envelope = services.manager.update(endpoint, payload or {})
        return {
            "success": True,
            "message": "Route deployed successfully",
            "data": envelope.data,
            "url": public_path(route),
        }

    @app.delete("/routes/{endpoint}")
    def delete_route(endpoint: str) -> dict[str, Any]:
        with storage_errors("Failed to delete route"):
            services.manager.delete(endpoint)
        return {"success": True, "message": "Route deleted successfully"}

    @app.get("/routes/{endpoint}/availability")
    def route_availability(endpoint: str) -> dict[str, Any]:
        with storage_errors("Failed to check route"):
            taken = services.manager.exists(endpoint)
        return {"success": True, "route": normalize_route_key(endpoint), "available": not taken}

    @app.post("/deploy")
    def deploy(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        with storage_errors("Failed to deploy endpoint"):
            result = services.manager.deploy(payload or {})
        return {
            "success": True,
            "message": "API endpoint deployed successfully",
            **result.to_json(),
        }

    @app.get("/results/{endpoint}")
    def results(endpoint: str, schema: str = Query(default="false")) -> dict[str, Any]:
        include_schema = schema.lower() == "true"
        # A corrupt stored value surfaces as its own 500, never as a 404
        with storage_errors("Failed to fetch results"):
            body = services.manager.read(endpoint, include_schema=include_schema)
        if include_schema:
            return {"success": True, "data": body}
        return {"success": True, **body}

    # -- gateways ---------------------------------------------------------

    @app.post("/generate-schema")
    def generate_schema(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        request = _validate(QueryRequest, payload, "Query is required")
        schema = services.schema_gateway.generate(request.query)
        return {"success": True, "schema": schema}

    @app.post("/search")
    def search(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        request = _validate(QueryRequest, payload, "Query is required")
        results = services.search_gateway.search(request.query)
        return {"success": True, "results": [r.model_dump() for r in results]}

    @app.post("/extract")
    def extract(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        request = _validate(ExtractRequest, payload, "urls, query, and schema are required")
        result = services.extractor.extract(request.urls, request.query, request.schema_)
        if not result.success:
            raise GatewayError(result.error or "Extraction failed")
        return {"success": True, "data": result.data, "sources": result.sources}

    return app
