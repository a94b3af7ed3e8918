"""Two-pass gap matching over sanitized text.

Pass 1 (explicit) runs the trigger corpus over the whole text and keeps
every match that clears the length bar and the conversational filter.

Pass 2 (standalone) splits the text into sentence-like units and keeps
questions that are long enough, free of conversational and document noise,
and show inquiry structure.

The passes share only the cap and a GapDeduper, both owned by a single
extract_gaps_from_text() call.
"""

import logging
import re
from collections.abc import Iterable
from typing import Optional

from .patterns import (
    CONVERSATIONAL_FILTERS,
    DOCUMENT_NOISE_PATTERNS,
    GAP_PATTERNS,
    INQUIRY_STRUCTURE_PATTERNS,
    MIN_EXPLICIT_GAP_LENGTH,
    MIN_STANDALONE_QUESTION_LENGTH,
    SENTENCE_BOUNDARY,
    GapPattern,
)


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[\s.!?]+$")


def normalize_gap(text: str) -> str:
    """Lowercase and collapse whitespace runs to single spaces."""
    return _WHITESPACE.sub(" ", text.lower())


def is_conversational(candidate: str) -> bool:
    """True when the candidate opens like an offer, confirmation or rhetorical device."""
    return any(f.search(candidate) for f in CONVERSATIONAL_FILTERS)


def is_document_noise(candidate: str) -> bool:
    """True when the candidate looks like document or marketing text."""
    return any(p.search(candidate) for p in DOCUMENT_NOISE_PATTERNS)


def has_inquiry_structure(candidate: str) -> bool:
    """True for wh-word + auxiliary, or pronoun + wonder/need/want/... forms."""
    return any(p.search(candidate) for p in INQUIRY_STRUCTURE_PATTERNS)


class GapDeduper:
    """Tracks normalized forms accepted during one extraction call.

    A candidate is a duplicate when its normalized form was already
    accepted, or when, ignoring trailing sentence punctuation, it and an
    accepted gap are word-boundary prefixes of one another.
    """

    def __init__(self):
        self._seen: set[str] = set()
        self._stems: list[str] = []

    def __len__(self) -> int:
        return len(self._seen)

    @staticmethod
    def _stem(normalized: str) -> str:
        return _TRAILING_PUNCTUATION.sub("", normalized)

    @staticmethod
    def _is_prefix(shorter: str, longer: str) -> bool:
        if not shorter or not longer.startswith(shorter):
            return False
        return len(longer) == len(shorter) or longer[len(shorter)] == " "

    def is_duplicate(self, candidate: str) -> bool:
        normalized = normalize_gap(candidate)
        if normalized in self._seen:
            return True
        stem = self._stem(normalized)
        return any(
            self._is_prefix(stem, other) or self._is_prefix(other, stem)
            for other in self._stems
        )

    def add(self, candidate: str) -> bool:
        """Record a candidate. Returns False if it was a duplicate."""
        if self.is_duplicate(candidate):
            return False
        normalized = normalize_gap(candidate)
        self._seen.add(normalized)
        self._stems.append(self._stem(normalized))
        return True


def match_explicit(
    text: str,
    max_count: int,
    seen: Optional[GapDeduper] = None,
    patterns: Iterable[GapPattern] = GAP_PATTERNS,
) -> list[str]:
    """Run the trigger corpus over text, pattern by pattern.

    Args:
        text: Sanitized corpus
        max_count: Stop as soon as this many gaps are collected
        seen: Deduper shared with the standalone pass
        patterns: Trigger corpus, in priority order

    Returns:
        Full matched spans, in order of pattern then position
    """
    seen = seen if seen is not None else GapDeduper()
    gaps: list[str] = []
    if max_count <= 0:
        return gaps

    for pattern in patterns:
        for match in pattern.compile().finditer(text):
            gap = match.group(0).strip()
            if len(gap) < MIN_EXPLICIT_GAP_LENGTH:
                continue
            if is_conversational(gap):
                continue
            if not seen.add(gap):
                continue

            gaps.append(gap)
            if len(gaps) >= max_count:
                return gaps

    return gaps


def split_sentences(text: str) -> list[str]:
    """Split on whitespace that follows '.', '!' or '?'."""
    return SENTENCE_BOUNDARY.split(text)


def match_standalone(
    text: str,
    max_count: int,
    seen: Optional[GapDeduper] = None,
) -> list[str]:
    """Collect standalone questions that show genuine inquiry.

    Stricter than the explicit pass: a trailing "?" alone is not enough,
    so fragments like "Those assistants that just sit there?" are dropped.

    Args:
        text: Sanitized corpus
        max_count: Stop as soon as this many gaps are collected
        seen: Deduper shared with the explicit pass

    Returns:
        Trimmed question sentences
    """
    seen = seen if seen is not None else GapDeduper()
    gaps: list[str] = []
    if max_count <= 0:
        return gaps

    for sentence in split_sentences(text):
        candidate = sentence.strip()
        if not candidate.endswith("?"):
            continue
        if len(candidate) < MIN_STANDALONE_QUESTION_LENGTH:
            continue
        if is_conversational(candidate) or is_document_noise(candidate):
            continue
        if not has_inquiry_structure(candidate):
            continue
        if not seen.add(candidate):
            continue

        gaps.append(candidate)
        if len(gaps) >= max_count:
            break

    return gaps


def extract_gaps_from_text(text: str, max_count: int) -> list[str]:
    """Extract up to max_count distinct gaps from sanitized text.

    Args:
        text: Sanitized corpus
        max_count: Result cap; 0 or less returns an empty list

    Returns:
        Explicit-pass gaps followed by standalone-pass gaps
    """
    if not text or max_count <= 0:
        return []

    seen = GapDeduper()
    gaps = match_explicit(text, max_count, seen)
    if len(gaps) < max_count:
        gaps.extend(match_standalone(text, max_count - len(gaps), seen))

    logger.debug(f"Extracted {len(gaps)} gap(s) from {len(text)} characters")
    return gaps
