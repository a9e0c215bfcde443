"""route-builder - turn a natural language data request into a deployed JSON route."""

__version__ = "0.1.0"

from route_builder.keys import normalize_route_key
from route_builder.lifecycle import RouteManager
from route_builder.models import RouteEnvelope, RouteMetadata
from route_builder.store import MemoryStore, RouteStore, UpstashStore

__all__ = [
    "MemoryStore",
    "RouteEnvelope",
    "RouteManager",
    "RouteMetadata",
    "RouteStore",
    "UpstashStore",
    "normalize_route_key",
]
