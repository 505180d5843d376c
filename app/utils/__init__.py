"""
Utility package exports
"""

from app.utils.helpers import (
    TagParseError,
    parse_tags,
    coerce_tags,
    clean_embedding_text,
    compose_merged_content,
)

__all__ = [
    "TagParseError",
    "parse_tags",
    "coerce_tags",
    "clean_embedding_text",
    "compose_merged_content",
]
