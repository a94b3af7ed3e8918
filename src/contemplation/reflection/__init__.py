"""Reflection - LLM prompting for contemplative passes and topic tags."""

from .prompting import (
    ReflectionClient,
    ReflectionError,
    build_prompt,
    create_reflection_client,
    run_pass,
)
from .tagging import build_tag_prompt, parse_tags, tag_inquiry

__all__ = [
    "ReflectionClient",
    "ReflectionError",
    "build_prompt",
    "build_tag_prompt",
    "create_reflection_client",
    "parse_tags",
    "run_pass",
    "tag_inquiry",
]
