"""
Shared Utility Functions

Common helper functions used across multiple modules.
"""

import json
import logging
from typing import Any, List

logger = logging.getLogger(__name__)


class TagParseError(ValueError):
    """Raised when a tags value cannot be interpreted as a list of strings."""

    pass


def _clean_tag_list(items: List[Any]) -> List[str]:
    """Strip tag strings and drop empty ones, rejecting non-string entries."""
    result = []
    for item in items:
        if not isinstance(item, str):
            raise TagParseError(
                f"Tags must be strings, got {type(item).__name__}: {item!r}"
            )
        tag = item.strip()
        if tag:
            result.append(tag)
    return result


def parse_tags(value: Any) -> List[str]:
    """
    Parse a tags value into a flat list of strings.

    Accepted formats:
    - None: None → []
    - List or tuple of strings: ["a", " b "] → ["a", "b"]
    - JSON-encoded array: '["a", "b"]' → ["a", "b"]
    - Single string: "a" → ["a"]
    - Blank string: "  " → []

    Args:
        value: Raw tags value as supplied by a caller

    Returns:
        Ordered list of non-empty, stripped tag strings

    Raises:
        TagParseError: If the value is any other type, a malformed JSON array,
            or contains non-string entries
    """
    if value is None:
        return []

    if isinstance(value, (list, tuple)):
        return _clean_tag_list(list(value))

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return []

        if stripped.startswith("["):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise TagParseError(f"Malformed JSON tag array: {e}") from e
            if not isinstance(decoded, list):
                raise TagParseError("JSON tags must decode to an array")
            return _clean_tag_list(decoded)

        return [stripped]

    raise TagParseError(f"Unsupported tags type: {type(value).__name__}")


def coerce_tags(value: Any) -> List[str]:
    """
    Read tags from an already-stored row without failing.

    Stored data predates strict parsing, so anything unparseable is logged
    and read as an empty list. Never use this on the write path.
    """
    try:
        return parse_tags(value)
    except TagParseError as e:
        logger.warning(f"Ignoring unparseable stored tags {value!r}: {e}")
        if isinstance(value, str):
            return [value.strip()]
        return []


def clean_embedding_text(text: str) -> str:
    """Collapse newlines to spaces and trim, as sent to the embedding model."""
    return text.replace("\n", " ").strip()


def compose_merged_content(existing: str, incoming: str, separator: str) -> str:
    """
    Append incoming content to existing content with a visible separator.

    Both parts are kept verbatim; no deduplication happens here.
    """
    return f"{existing}{separator}{incoming}"
