"""Error taxonomy shared by the route lifecycle and the HTTP surface.

Every error carries the HTTP status it maps to, so the API layer can
translate any of them with a single handler.
"""

from __future__ import annotations

from typing import Any


class RouteError(Exception):
    """Base class for lifecycle errors."""

    status_code: int = 500

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(RouteError):
    """Missing or malformed input. Raised before any store or gateway call."""

    status_code = 400


class NotFoundError(RouteError):
    """The route key is absent from the store."""

    status_code = 404


class ConflictError(RouteError):
    """Create was attempted on a key that already exists."""

    status_code = 409


class GatewayError(RouteError):
    """An external provider (schema, search, extraction) failed."""


class TransportError(RouteError):
    """The key-value store could not be reached or rejected the request."""


class CorruptEntryError(RouteError):
    """A stored value exists but cannot be decoded into an envelope."""
