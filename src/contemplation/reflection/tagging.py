"""Topic tags for newly queued inquiries."""

import json
import logging
import re
from typing import Optional

from contemplation.core.config import TaggingConfig
from contemplation.inquiries.models import Inquiry

from .prompting import ReflectionClient, ReflectionError

logger = logging.getLogger(__name__)

MAX_TAGS = 4

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def build_tag_prompt(question: str) -> str:
    """Prompt asking for 2-3 short topic tags as a JSON array."""
    return "\n".join(
        [
            "Given this question an AI agent is contemplating, generate 2-3 short topic tags (1-2 words each).",
            "Return ONLY a JSON array of lowercase strings, nothing else.",
            "",
            f'Question: "{question}"',
            "",
            "Tags:",
        ]
    )


def parse_tags(response_text: str) -> Optional[list[str]]:
    """Pull a list of tags out of a model response.

    Models wrap the array in prose or code fences, so the first "[...]"
    span is parsed. Returns None unless it is a JSON list of strings.
    """
    match = _JSON_ARRAY.search(response_text or "")
    if not match:
        return None
    try:
        tags = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        return None
    return [t.lower().strip() for t in tags][:MAX_TAGS]


def tag_inquiry(
    reflector: ReflectionClient,
    inquiry: Inquiry,
    config: TaggingConfig,
) -> Optional[list[str]]:
    """Generate topic tags for an inquiry.

    Never raises: failures are logged and yield None.
    """
    if not config.enabled:
        return None

    try:
        response = reflector.complete(
            build_tag_prompt(inquiry.question),
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
        )
    except ReflectionError as e:
        logger.warning(f"Tag generation failed for {inquiry.id}: {e}")
        return None

    tags = parse_tags(response)
    if tags is None:
        logger.warning(f"Tag generation for {inquiry.id} returned no usable tags")
        return None

    logger.info(f"Tagged {inquiry.id}: [{', '.join(tags)}]")
    return tags
