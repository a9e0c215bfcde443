"""Draft a JSON Schema from a natural language description."""

from __future__ import annotations

import logging
from typing import Any

from route_builder.errors import GatewayError, ValidationError
from route_builder.models import check_object_schema
from route_builder.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class SchemaGenerator:
    def __init__(self, provider: AIProvider) -> None:
        self.provider = provider

    def generate(self, query: str) -> dict[str, Any]:
        if not query or not query.strip():
            raise ValidationError("Query is required")

        try:
            schema = self.provider.generate_schema(query.strip())
        except ProviderError as exc:
            raise GatewayError(f"Failed to generate schema: {exc}") from exc

        if not isinstance(schema, dict):
            raise GatewayError("Failed to generate schema: provider did not return a JSON object")
        try:
            check_object_schema(schema)
        except ValueError as exc:
            raise GatewayError(f"Failed to generate schema: {exc}") from exc

        logger.info(
            "Generated schema with %d properties via %s",
            len(schema["properties"]), self.provider.name,
        )
        return schema
