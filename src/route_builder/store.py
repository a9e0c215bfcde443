"""Key-value persistence for route envelopes.

Backends only move raw values around. Decoding into a RouteEnvelope happens
in one place (RouteStore.decode_envelope) so the rest of the code never sees
the backend's representation. Upstash's own clients may hand back a parsed
object, a JSON string, or a JSON string of a JSON string; all three decode.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from route_builder.config import Settings
from route_builder.errors import CorruptEntryError, TransportError
from route_builder.keys import RESULTS_PREFIX
from route_builder.models import RouteEnvelope

logger = logging.getLogger(__name__)

CORRUPT_MESSAGE = "Invalid data format in storage"


class RouteStore(ABC):
    """Contract for route persistence. A missing key is not an error."""

    @abstractmethod
    def _get_raw(self, key: str) -> Any | None:
        ...

    @abstractmethod
    def _set_raw(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def _delete_raw(self, key: str) -> None:
        ...

    @abstractmethod
    def _scan(self, pattern: str) -> list[str]:
        ...

    @staticmethod
    def decode_envelope(key: str, raw: Any) -> RouteEnvelope:
        """Decode a raw stored value, unwrapping at most two layers of JSON text."""
        value = raw
        for _ in range(2):
            if not isinstance(value, (str, bytes)):
                break
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                logger.error("Stored value at %s is not JSON: %s", key, exc)
                raise CorruptEntryError(CORRUPT_MESSAGE) from exc
        try:
            return RouteEnvelope.model_validate(value)
        except PydanticValidationError as exc:
            logger.error("Stored value at %s is not a route envelope: %s", key, exc)
            raise CorruptEntryError(CORRUPT_MESSAGE) from exc

    def get(self, key: str) -> RouteEnvelope | None:
        raw = self._get_raw(key)
        if raw is None:
            return None
        return self.decode_envelope(key, raw)

    def get_raw(self, key: str) -> Any | None:
        """Stored value exactly as the backend returns it."""
        return self._get_raw(key)

    def set(self, key: str, envelope: RouteEnvelope) -> None:
        self._set_raw(key, json.dumps(envelope.to_json(), ensure_ascii=False))
        logger.debug("Stored %s", key)

    def delete(self, key: str) -> None:
        self._delete_raw(key)
        logger.debug("Deleted %s", key)

    def list_keys(self, prefix: str = RESULTS_PREFIX) -> set[str]:
        return set(self._scan(f"{prefix}*"))


class MemoryStore(RouteStore):
    """In-process store holding JSON text, for tests and local runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def _get_raw(self, key: str) -> Any | None:
        return self._data.get(key)

    def _set_raw(self, key: str, value: str) -> None:
        self._data[key] = value

    def _delete_raw(self, key: str) -> None:
        self._data.pop(key, None)

    def _scan(self, pattern: str) -> list[str]:
        prefix = pattern.rstrip("*")
        return [k for k in self._data if k.startswith(prefix)]


class UpstashStore(RouteStore):
    """Upstash Redis over its REST API: POST the command array, read {"result": ...}."""

    scan_count = 100

    def __init__(self, url: str, token: str, timeout: float = 30.0) -> None:
        if not url or not token:
            raise ValueError(
                "Redis configuration is missing: set UPSTASH_REDIS_REST_URL "
                "and UPSTASH_REDIS_REST_TOKEN in your .env file."
            )
        self._url = url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}
        self._timeout = timeout

    def _command(self, *args: Any) -> Any:
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._url, json=list(args), headers=self._headers)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Upstash %s failed: %s", args[0], exc)
            raise TransportError(f"Key-value store request failed: {exc}") from exc

        if isinstance(body, dict) and body.get("error"):
            logger.error("Upstash %s returned error: %s", args[0], body["error"])
            raise TransportError(f"Key-value store error: {body['error']}")
        return body.get("result") if isinstance(body, dict) else None

    def _get_raw(self, key: str) -> Any | None:
        return self._command("GET", key)

    def _set_raw(self, key: str, value: str) -> None:
        self._command("SET", key, value)

    def _delete_raw(self, key: str) -> None:
        self._command("DEL", key)

    def _scan(self, pattern: str) -> list[str]:
        keys: list[str] = []
        cursor = "0"
        while True:
            result = self._command("SCAN", cursor, "MATCH", pattern, "COUNT", self.scan_count)
            if not isinstance(result, list) or len(result) != 2:
                raise TransportError(f"Unexpected SCAN reply from key-value store: {result!r}")
            cursor, batch = str(result[0]), result[1]
            keys.extend(batch)
            if cursor == "0":
                return keys


def get_store(settings: Settings) -> RouteStore:
    """Instantiate the configured store backend."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "upstash":
        return UpstashStore(settings.upstash_url, settings.upstash_token, timeout=settings.http_timeout)
    raise ValueError(f"Unknown store backend '{settings.store_backend}'. Available: memory, upstash")
