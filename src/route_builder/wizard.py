"""The route builder wizard as an explicit finite-state machine.

States advance in order:

    initial -> query -> schema -> sources -> extract -> deploy

Each transition is a pure function taking a WizardState and returning a new
one; an out-of-order transition raises WizardError. ``run_builder`` drives
the whole flow against the gateways and the route manager.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from route_builder.errors import ConflictError, GatewayError
from route_builder.lifecycle import ExtractionGateway, RouteManager
from route_builder.models import (
    DeployResult,
    RouteEnvelope,
    RouteMetadata,
    SearchResult,
    check_object_schema,
    utc_now,
)

logger = logging.getLogger(__name__)


class Step(str, Enum):
    INITIAL = "initial"
    QUERY = "query"
    SCHEMA = "schema"
    SOURCES = "sources"
    EXTRACT = "extract"
    DEPLOY = "deploy"


ORDER = list(Step)


class WizardError(Exception):
    """Raised for an invalid transition or invalid step input."""


class WizardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: Step = Step.INITIAL
    query: str = ""
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")
    search_results: tuple[SearchResult, ...] = ()
    selected_urls: tuple[str, ...] = ()
    extracted: Any = None
    route: str = ""
    url: str = ""


def step_number(state: WizardState) -> int:
    """1-based position of the current step."""
    return ORDER.index(state.step) + 1


def _expect(state: WizardState, *steps: Step) -> None:
    if state.step not in steps:
        allowed = ", ".join(s.value for s in steps)
        raise WizardError(f"Cannot do this from step '{state.step.value}' (expected {allowed})")


def _advance(state: WizardState, to: Step, **changes: Any) -> WizardState:
    return state.model_copy(update={"step": to, **changes})


def reset() -> WizardState:
    return WizardState()


def start(state: WizardState) -> WizardState:
    _expect(state, Step.INITIAL)
    return _advance(state, Step.QUERY)


def submit_query(state: WizardState, query: str) -> WizardState:
    _expect(state, Step.QUERY)
    if not query or not query.strip():
        raise WizardError("Please describe the data you want")
    return _advance(state, Step.SCHEMA, query=query.strip())


def accept_schema(state: WizardState, schema: str | dict[str, Any]) -> WizardState:
    """Accept the (possibly hand-edited) schema text and move on to sources."""
    _expect(state, Step.SCHEMA)
    if isinstance(schema, str):
        try:
            schema = json.loads(schema)
        except json.JSONDecodeError as exc:
            raise WizardError("Invalid JSON schema. Please check the format.") from exc
    if not isinstance(schema, dict):
        raise WizardError("Invalid schema: expected a JSON object")
    try:
        check_object_schema(schema)
    except ValueError as exc:
        raise WizardError(f"Invalid schema: {exc}") from exc
    return _advance(state, Step.SOURCES, schema_=schema)


def propose_sources(state: WizardState, results: list[SearchResult]) -> WizardState:
    """Replace the candidate list shown on the sources step."""
    _expect(state, Step.SOURCES)
    return state.model_copy(update={"search_results": tuple(results)})


def select_sources(
    state: WizardState,
    urls: list[str],
    custom_url: str | None = None,
) -> WizardState:
    _expect(state, Step.SOURCES)
    selected = [u for u in urls if u]
    if custom_url and custom_url.strip():
        selected.append(custom_url.strip())
    selected = list(dict.fromkeys(selected))
    if not selected:
        raise WizardError("Please select at least one source or enter a custom URL")
    return state.model_copy(update={"selected_urls": tuple(selected)})


def record_extraction(state: WizardState, data: Any) -> WizardState:
    _expect(state, Step.SOURCES)
    if not state.selected_urls:
        raise WizardError("Please select at least one source")
    if data is None:
        raise WizardError("No data was extracted")
    return _advance(state, Step.EXTRACT, extracted=data)


def record_deployment(state: WizardState, route: str, url: str) -> WizardState:
    _expect(state, Step.EXTRACT)
    return _advance(state, Step.DEPLOY, route=route, url=url)


def back(state: WizardState) -> WizardState:
    """Return to the previous step. Leaving deploy clears the deployment."""
    index = ORDER.index(state.step)
    if index == 0:
        return state
    changes: dict[str, Any] = {}
    if state.step is Step.DEPLOY:
        changes = {"route": "", "url": ""}
    return _advance(state, ORDER[index - 1], **changes)


def envelope_for(state: WizardState) -> RouteEnvelope:
    """The envelope a deploy from the extract step would store."""
    _expect(state, Step.EXTRACT)
    return RouteEnvelope(
        data=state.extracted,
        metadata=RouteMetadata(
            query=state.query,
            schema_=state.schema_ or {},
            sources=list(state.selected_urls),
            last_updated=utc_now(),
        ),
    )


# -- driver ---------------------------------------------------------------


class SchemaGateway(Protocol):
    def generate(self, query: str) -> dict[str, Any]:
        ...


class SearchGateway(Protocol):
    def search(self, query: str, num: int | None = None) -> list[SearchResult]:
        ...


def run_builder(
    query: str,
    route: str,
    *,
    schema_gateway: SchemaGateway,
    search_gateway: SearchGateway | None,
    extractor: ExtractionGateway,
    manager: RouteManager,
    urls: list[str] | None = None,
    top: int = 3,
    schema: dict[str, Any] | None = None,
) -> tuple[WizardState, DeployResult]:
    """
    Run the wizard end to end without a UI.

    Given ``urls`` the search step is skipped; otherwise the first ``top``
    search results are selected. Given ``schema`` the schema gateway is not
    called. Gateway and lifecycle errors propagate unchanged.
    """
    # Checked up front so no gateway calls are spent on a taken name
    if manager.exists(route):
        raise ConflictError("Route already exists")

    state = start(reset())
    state = submit_query(state, query)
    state = accept_schema(state, schema if schema is not None else schema_gateway.generate(query))

    if urls:
        state = select_sources(state, urls)
    else:
        if search_gateway is None:
            raise WizardError("No source URLs given and web search is not configured")
        results = search_gateway.search(query)
        state = propose_sources(state, results)
        state = select_sources(state, [r.url for r in results[:top]])
    logger.info("Selected %d sources for %r", len(state.selected_urls), query)

    result = extractor.extract(list(state.selected_urls), state.query, state.schema_ or {})
    if not result.success:
        raise GatewayError(result.error or "Extraction failed")
    state = record_extraction(state, result.data)

    deployed = manager.create(route, envelope_for(state))
    state = record_deployment(state, deployed.route, deployed.url)
    return state, deployed
