"""Reduce fetched HTML to readable text before it is sent to a provider.

Regex based: pages only need to be small and legible for the model, not
parsed faithfully.
"""

from __future__ import annotations

import html
import re

_DROP_ELEMENTS = ("script", "style", "noscript", "iframe", "svg", "nav", "footer")
_BLOCK_TAGS = r"(?:p|div|section|article|li|tr|h[1-6]|br|table|ul|ol|header|main)"


def clean_html(raw_html: str) -> str:
    """Strip non-content elements and comments, collapse whitespace."""
    text = raw_html
    for tag in _DROP_ELEMENTS:
        text = re.sub(rf"<{tag}[^>]*>.*?</{tag}>", "", text, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<!--.*?-->", "", text, flags=re.DOTALL)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def html_to_text(raw_html: str) -> str:
    """Visible text of a page, one block element per line."""
    text = clean_html(raw_html)
    text = re.sub(rf"</?{_BLOCK_TAGS}\b[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    lines = (re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def chunk_text(text: str, max_chars: int = 48_000) -> list[str]:
    """
    Split text into chunks of at most ``max_chars`` on line boundaries.

    A single line longer than the limit is cut hard.
    """
    if len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    current: list[str] = []
    size = 0

    for line in text.split("\n"):
        while len(line) > max_chars:
            if current:
                chunks.append("\n".join(current))
                current, size = [], 0
            chunks.append(line[:max_chars])
            line = line[max_chars:]
        line_size = len(line) + 1
        if size + line_size > max_chars and current:
            chunks.append("\n".join(current))
            current, size = [], 0
        current.append(line)
        size += line_size

    if current:
        chunks.append("\n".join(current))

    return chunks
