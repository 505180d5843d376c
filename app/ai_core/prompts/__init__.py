"""Prompts package."""

from app.ai_core.prompts.transformation import (
    TRANSFORMATION_SYSTEM_PROMPT,
    TRANSFORMATION_USER_PROMPT,
)
from app.ai_core.prompts.preview import (
    PREVIEW_SYSTEM_PROMPT,
    PREVIEW_USER_PROMPT,
    PREVIEW_FALLBACK,
)

__all__ = [
    "TRANSFORMATION_SYSTEM_PROMPT",
    "TRANSFORMATION_USER_PROMPT",
    "PREVIEW_SYSTEM_PROMPT",
    "PREVIEW_USER_PROMPT",
    "PREVIEW_FALLBACK",
]
