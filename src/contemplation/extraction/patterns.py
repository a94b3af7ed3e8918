"""Pattern corpora for knowledge-gap extraction.

Three families of patterns live here:
- Gap triggers: explicit linguistic markers of wonder, curiosity,
  uncertainty and direct inquiry, in English and German
- Conversational filters: openers that mark a question as an offer,
  confirmation, acknowledgment or rhetorical device rather than inquiry
- Document noise: signals that text came from a processed document

Each trigger is a tagged GapPattern so corpora can be extended and tested
without touching the matching loop.
"""

import re
from dataclasses import dataclass
from enum import Enum


MIN_EXPLICIT_GAP_LENGTH = 15
MIN_STANDALONE_QUESTION_LENGTH = 30


class GapCategory(str, Enum):
    """Semantic category of a gap trigger."""

    WONDER = "wonder"
    CURIOSITY = "curiosity"
    UNCERTAINTY = "uncertainty"
    INTERROGATIVE = "interrogative"


class Language(str, Enum):
    """Language a trigger pattern is written for."""

    EN = "en"
    DE = "de"


@dataclass(frozen=True)
class GapPattern:
    """A trigger pattern with its minimum trailing-content length.

    The template marks where the trailing-content length goes with
    ``{min}``, so ``r".{{min},}"`` compiles to ``r".{15,}"`` for a
    min_length of 15.
    """

    category: GapCategory
    language: Language
    template: str
    min_length: int = 15

    @property
    def source(self) -> str:
        return self.template.replace("{min}", str(self.min_length))

    def compile(self) -> re.Pattern:
        """Compile the pattern case-insensitively (re caches the result)."""
        return re.compile(self.source, re.IGNORECASE)


# =============================================================================
# Gap Triggers
# =============================================================================

_TERMINATOR = r"(?:\.|$)"

GAP_PATTERNS: tuple[GapPattern, ...] = (
    # English
    GapPattern(GapCategory.WONDER, Language.EN, r"I wonder\s+(.{{min},}?)" + _TERMINATOR),
    GapPattern(
        GapCategory.CURIOSITY,
        Language.EN,
        r"I'm curious\s+(?:about\s+)?(.{{min},}?)" + _TERMINATOR,
    ),
    GapPattern(
        GapCategory.UNCERTAINTY,
        Language.EN,
        r"I don't (?:fully )?understand\s+(.{{min},}?)" + _TERMINATOR,
    ),
    GapPattern(
        GapCategory.CURIOSITY,
        Language.EN,
        r"I (?:need|want) to (?:learn|know|explore|understand)\s+(.{{min},}?)" + _TERMINATOR,
    ),
    GapPattern(
        GapCategory.UNCERTAINTY,
        Language.EN,
        r"I'm not sure (?:about |whether |if |how |why )(.{{min},}?)" + _TERMINATOR,
    ),
    GapPattern(
        GapCategory.INTERROGATIVE,
        Language.EN,
        r"(?:how|why|what|when|where) "
        r"(?:does|do|did|is|are|was|were|would|could|should|can|might) .{{min},}\?",
        min_length=10,
    ),
    # German
    GapPattern(GapCategory.WONDER, Language.DE, r"ich frage mich\s+(.{{min},}?)" + _TERMINATOR),
    GapPattern(
        GapCategory.CURIOSITY,
        Language.DE,
        r"ich (?:muss|will) (?:lernen|wissen|verstehen|erfahren)\s+(.{{min},}?)" + _TERMINATOR,
    ),
    GapPattern(
        GapCategory.UNCERTAINTY,
        Language.DE,
        r"ich bin mir (?:nicht )?(?:sicher|klar|bewusst)(?:,? ob | wie | warum | was )"
        r"(.{{min},}?)" + _TERMINATOR,
        min_length=10,
    ),
    GapPattern(
        GapCategory.UNCERTAINTY,
        Language.DE,
        r"ich verstehe (?:nicht |kaum )?(.{{min},}?)" + _TERMINATOR,
    ),
    GapPattern(
        GapCategory.INTERROGATIVE,
        Language.DE,
        r"wie (?:funktioniert|geht|kann|soll|musst) .{{min},}\?",
        min_length=10,
    ),
    GapPattern(GapCategory.INTERROGATIVE, Language.DE, r"warum .{{min},}\?", min_length=10),
    GapPattern(
        GapCategory.INTERROGATIVE,
        Language.DE,
        r"was (?:bedeutet|ist|heißt|macht) .{{min},}\?",
        min_length=10,
    ),
    GapPattern(
        GapCategory.UNCERTAINTY,
        Language.DE,
        r"keine ahnung (?:wie|warum|was|wo|wann) .{{min},}",
        min_length=10,
    ),
)


# =============================================================================
# Conversational Filters
# =============================================================================

# Prefix-anchored; a candidate starting with any of these is not an inquiry.
CONVERSATIONAL_FILTER_PATTERNS: dict[str, str] = {
    "permission": r"^(?:would you|do you|can you|should I|shall I|could I|want me to|let me)",
    "confirmation": r"^(?:is that|does that|are you|how about|what if I)",
    "acknowledgment": r"^(?:ready|okay|alright|sure|got it|understood)",
    "rhetorical_address": r"^(?:those|these|that|what about those|ever notice|imagine|picture this)",
    "tag_question": r"^(?:isn't it|aren't they|doesn't it|don't they|wouldn't it|won't they)",
    "who_doesnt": r"^(?:who doesn't|who wouldn't|who hasn't)",
    "idiom": r"^(?:sound familiar|ring a bell|know the feeling)",
}

CONVERSATIONAL_FILTERS: tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE) for p in CONVERSATIONAL_FILTER_PATTERNS.values()
)


# =============================================================================
# Document / Marketing Noise
# =============================================================================

DOCUMENT_NOISE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"(?:chapter|section|page|figure|table)\s+\d", re.IGNORECASE),
    re.compile(r"(?:©|copyright|all rights reserved|terms of service|privacy policy)", re.IGNORECASE),
    re.compile(r"(?:click here|learn more|sign up|subscribe|download now|get started)", re.IGNORECASE),
    re.compile(r"(?:www\.|https?://)", re.IGNORECASE),
)


# =============================================================================
# Standalone-Question Admission
# =============================================================================

# A standalone question must show inquiry structure, not just a trailing "?".
INQUIRY_STRUCTURE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(
        r"(?:how|why|what|where|when|who|which)\s+"
        r"(?:does|do|did|is|are|was|were|would|could|should|can|might|will|has|have|had)",
        re.IGNORECASE,
    ),
    re.compile(r"(?:I|we|you)\s+(?:wonder|don't|need|want|should|could)", re.IGNORECASE),
)

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
