"""Text sanitization ahead of gap matching.

Raw message content arrives in several shapes and often carries material
that no conversation participant wrote: context blocks injected by other
plugins, timestamp prefixes, recollection lines, code and tables. Everything
here turns one message into plain conversational prose, and never raises.
"""

import re
from collections.abc import Mapping
from typing import Any


# Bracketed headers of blocks injected by other subsystems. A block runs
# until the next recognized header or the end of the text, whatever it holds.
CONTEXT_BLOCK_HEADERS: tuple[str, ...] = (
    "CONTINUITY CONTEXT",
    "STABILITY CONTEXT",
    "GROWTH VECTORS",
    "MEMORY INTEGRATION",
    "CONTEMPLATION STATE",
)

_HEADER_PREFIXES = sorted({h.split()[0] for h in CONTEXT_BLOCK_HEADERS})

_TIMESTAMP = r"\[(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun) \d{4}-\d{2}-\d{2} \d{2}:\d{2} [A-Z]+\]"

TIMESTAMP_PREFIX = re.compile(r"^" + _TIMESTAMP + r"\s*")

CONTEXT_BLOCK_PATTERN = re.compile(
    r"\[(?:" + "|".join(re.escape(h) for h in CONTEXT_BLOCK_HEADERS) + r")\]"
    r"[\s\S]*?"
    r"(?=\[(?:" + "|".join(_HEADER_PREFIXES) + r")|\Z)",
    re.IGNORECASE,
)

# Lines starting with these (after trimming) are injected metadata.
METADATA_LINE_PREFIXES: tuple[str, ...] = (
    "Entropy:",
    "Principles:",
    "Session:",
    "Topics:",
    "Speak from this memory",
    "- They told you:",
    "You remember these earlier",
)

CODE_FENCE_PATTERN = re.compile(r"```[\s\S]*?```")
TABLE_ROW_PATTERN = re.compile(r"\|[^\n]+\|")


def _part_text(part: Any) -> str:
    """Text-bearing field of one content part: text, then content, else empty."""
    if isinstance(part, Mapping):
        value = part.get("text") or part.get("content")
    else:
        value = getattr(part, "text", None) or getattr(part, "content", None)
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_content(content: Any) -> str:
    """Normalize message content to a single string.

    Args:
        content: A string, a sequence of parts, or anything else

    Returns:
        The string unchanged, the parts' text joined by single spaces,
        or the string coercion of any other value ("" for None).
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        return " ".join(_part_text(part) for part in content)
    try:
        return str(content)
    except Exception:
        return ""


def strip_context_blocks(text: str) -> str:
    """Remove injected context blocks, timestamp prefix and metadata lines."""
    cleaned = CONTEXT_BLOCK_PATTERN.sub("", text)
    cleaned = TIMESTAMP_PREFIX.sub("", cleaned, count=1)

    kept = [
        line
        for line in cleaned.split("\n")
        if not line.strip().startswith(METADATA_LINE_PREFIXES)
    ]
    return "\n".join(kept).strip()


def strip_markup(text: str) -> str:
    """Remove fenced code blocks and pipe-delimited table rows."""
    cleaned = CODE_FENCE_PATTERN.sub("", text)
    return TABLE_ROW_PATTERN.sub("", cleaned)


def sanitize_content(content: Any) -> str:
    """Full sanitization of one message's content."""
    text = normalize_content(content)
    if not text:
        return ""
    return strip_markup(strip_context_blocks(text))
