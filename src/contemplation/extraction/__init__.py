"""Gap Extraction Engine.

Turns a window of conversation messages into a ranked, capped list of
distinct knowledge gaps: expressions of wonder, curiosity, uncertainty or
genuine inquiry.

Usage:
    from contemplation.extraction import ExtractionConfig, identify_gaps

    gaps = identify_gaps(
        messages,
        entropy=0.8,
        config=ExtractionConfig(keywords=["why"], max_gaps_per_exchange=2),
    )
"""

from contemplation.extraction.extractor import (
    DEFAULT_MESSAGE_WINDOW,
    MIN_MESSAGE_LENGTH,
    build_corpus,
    identify_gaps,
    passes_admission_gate,
)
from contemplation.extraction.matcher import (
    GapDeduper,
    extract_gaps_from_text,
    match_explicit,
    match_standalone,
    normalize_gap,
)
from contemplation.extraction.models import ChatMessage, ExtractionConfig, MessageRole
from contemplation.extraction.patterns import GAP_PATTERNS, GapCategory, GapPattern, Language
from contemplation.extraction.sanitizer import (
    normalize_content,
    sanitize_content,
    strip_context_blocks,
    strip_markup,
)


__all__ = [
    # Main interface
    "identify_gaps",
    "build_corpus",
    "passes_admission_gate",
    "DEFAULT_MESSAGE_WINDOW",
    "MIN_MESSAGE_LENGTH",
    # Models
    "ChatMessage",
    "ExtractionConfig",
    "MessageRole",
    # Matching
    "extract_gaps_from_text",
    "match_explicit",
    "match_standalone",
    "normalize_gap",
    "GapDeduper",
    # Patterns
    "GAP_PATTERNS",
    "GapCategory",
    "GapPattern",
    "Language",
    # Sanitization
    "normalize_content",
    "sanitize_content",
    "strip_context_blocks",
    "strip_markup",
]
