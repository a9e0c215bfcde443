"""Command-line interface for route-builder."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from route_builder.config import Settings
from route_builder.errors import RouteError
from route_builder.extractor import Extractor
from route_builder.lifecycle import RouteManager
from route_builder.providers import get_provider, list_providers, provider_name_for
from route_builder.schema import SchemaGenerator
from route_builder.search import SerperSearch
from route_builder.store import get_store
from route_builder.wizard import run_builder, step_number

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="route-builder",
        description="Turn a natural language data request into a deployed JSON route.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use an in-process store instead of Upstash (data is lost on exit)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    routes = sub.add_parser("routes", help="Manage deployed routes")
    routes_sub = routes.add_subparsers(dest="action", required=True)
    routes_sub.add_parser("list", help="List deployed routes")
    show = routes_sub.add_parser("show", help="Print a route's data")
    show.add_argument("route")
    show.add_argument(
        "--schema",
        action="store_true",
        help="Print the full stored envelope including schema and query",
    )
    delete = routes_sub.add_parser("delete", help="Delete a route")
    delete.add_argument("route")
    refresh = routes_sub.add_parser("refresh", help="Re-run extraction with the stored configuration")
    refresh.add_argument("route")

    build = sub.add_parser("build", help="Generate schema, find sources, extract and deploy")
    build.add_argument("query", help="What data to extract, or path to a .txt/.md file with it")
    build.add_argument("--route", required=True, help="Name of the route to deploy")
    build.add_argument(
        "--url",
        action="append",
        dest="urls",
        default=None,
        help="Source URL (repeatable). Skips web search when given.",
    )
    build.add_argument(
        "--schema-file",
        default=None,
        help="JSON Schema file to use instead of generating one",
    )
    build.add_argument(
        "--top",
        type=int,
        default=3,
        help="Number of search results to use as sources (default: 3)",
    )
    build.add_argument(
        "-p", "--provider",
        choices=list_providers(),
        default=None,
        help="AI provider to use (default: from .env DEFAULT_PROVIDER)",
    )
    build.add_argument(
        "-o", "--output",
        default=None,
        help="Also write the extracted data to this file",
    )
    return parser


def _manager(settings: Settings, extractor: Extractor | None = None) -> RouteManager:
    return RouteManager(
        get_store(settings),
        extractor,
        base_url=settings.api_route,
        api_key=settings.api_key,
    )


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from route_builder.api import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port)
    return 0


def _routes(settings: Settings, args: argparse.Namespace) -> int:
    if args.action == "list":
        manager = _manager(settings)
        _print_json([r.to_json() for r in manager.list_routes()])
    elif args.action == "show":
        _print_json(_manager(settings).read(args.route, include_schema=args.schema))
    elif args.action == "delete":
        _manager(settings).delete(args.route)
        print(f"Deleted {args.route}", file=sys.stderr)
    elif args.action == "refresh":
        manager = _manager(settings, Extractor.from_settings(settings))
        _print_json(manager.refresh(args.route).to_json())
    return 0


def _build(settings: Settings, args: argparse.Namespace) -> int:
    query = args.query
    query_path = Path(query)
    if query_path.is_file():
        query = query_path.read_text(encoding="utf-8").strip()
        print(f"Loaded query from {query_path}", file=sys.stderr)

    schema = None
    if args.schema_file:
        schema = json.loads(Path(args.schema_file).read_text(encoding="utf-8"))

    provider_name = provider_name_for("extract", settings, args.provider)
    extractor = Extractor.from_settings(settings, provider_name)
    schema_provider = provider_name_for("schema", settings, args.provider)

    state, deployed = run_builder(
        query,
        args.route,
        schema_gateway=SchemaGenerator(get_provider(schema_provider, settings)),
        search_gateway=None if args.urls else SerperSearch(settings),
        extractor=extractor,
        manager=_manager(settings, extractor),
        urls=args.urls,
        top=args.top,
        schema=schema,
    )
    logger.debug("Wizard finished at step %d", step_number(state))

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(json.dumps(state.extracted, indent=2, ensure_ascii=False))
        print(f"Output written to {args.output}", file=sys.stderr)

    _print_json(deployed.to_json())
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    if args.memory:
        settings = replace(settings, store_backend="memory")

    handlers = {"serve": _serve, "routes": _routes, "build": _build}
    try:
        return handlers[args.command](settings, args)
    except (RouteError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
