"""Route key normalization and store key naming."""

from __future__ import annotations

import re

RESULTS_PREFIX = "results/"

_DISALLOWED = re.compile(r"[^a-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def normalize_route_key(raw: str) -> str:
    """
    Turn free text into a canonical route key.

    "Extract Company Info!" -> "extract-company-info". Never raises; input
    with no usable characters normalizes to "", which callers must reject.

    Underscores inside a segment are kept ("my_route 2" -> "my_route-2");
    leading and trailing underscores are trimmed along with hyphens.
    """
    text = raw.lower()
    text = _DISALLOWED.sub("", text)
    text = _WHITESPACE.sub("-", text)
    text = _HYPHENS.sub("-", text)
    return text.strip("-_")


def store_key(route: str) -> str:
    return f"{RESULTS_PREFIX}{route}"


def route_from_store_key(key: str) -> str:
    if key.startswith(RESULTS_PREFIX):
        return key[len(RESULTS_PREFIX):]
    return key


def public_path(route: str) -> str:
    """Path under which a deployed route is served."""
    return f"/{RESULTS_PREFIX}{route}"
