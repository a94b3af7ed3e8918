"""Gap extraction entry point.

Selects user messages from the recent window, sanitizes them into a single
corpus, applies the entropy/keyword admission gate and runs the two-pass
matcher. Stateless and side-effect free: every call builds its own corpus
and dedup set.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

from .matcher import extract_gaps_from_text
from .models import ExtractionConfig, MessageRole
from .sanitizer import sanitize_content


logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_WINDOW = 6
MIN_MESSAGE_LENGTH = 10


def _field(message: Any, name: str) -> Any:
    if isinstance(message, Mapping):
        return message.get(name)
    return getattr(message, name, None)


def message_role(message: Any) -> MessageRole:
    """Role of a message given as a mapping or an object."""
    if message is None:
        return MessageRole.OTHER
    return MessageRole.parse(_field(message, "role"))


def message_content(message: Any) -> Any:
    """Unsanitized content of one message."""
    if message is None:
        return None
    return _field(message, "content")


def message_text(message: Any) -> str:
    """Sanitized text of one message."""
    if message is None:
        return ""
    return sanitize_content(_field(message, "content"))


def build_corpus(
    messages: Optional[Iterable[Any]],
    window: int = DEFAULT_MESSAGE_WINDOW,
) -> str:
    """Join sanitized user messages from the last ``window`` messages.

    Messages whose sanitized text is 10 characters or shorter are skipped.

    Args:
        messages: Role-tagged messages, oldest first
        window: How many trailing messages to consider

    Returns:
        Sanitized user text joined by blank lines, or "" if nothing qualifies
    """
    if not messages:
        return ""
    try:
        recent = list(messages)[-window:] if window > 0 else []
    except TypeError:
        return ""

    parts = []
    for message in recent:
        if message_role(message) is not MessageRole.USER:
            continue
        cleaned = message_text(message)
        if len(cleaned) > MIN_MESSAGE_LENGTH:
            parts.append(cleaned)

    return "\n\n".join(parts)


def passes_admission_gate(
    corpus: str,
    entropy: float,
    config: ExtractionConfig,
) -> bool:
    """Entropy at or above threshold, or any keyword present in the corpus."""
    if not corpus:
        return False
    if entropy >= config.entropy_threshold:
        return True
    lowered = corpus.lower()
    return any(k.lower() in lowered for k in config.keywords if k)


def _resolve_config(
    config: Union[ExtractionConfig, Mapping[str, Any], None],
) -> ExtractionConfig:
    if config is None:
        return ExtractionConfig()
    if isinstance(config, ExtractionConfig):
        return config
    return ExtractionConfig.model_validate(dict(config))


def identify_gaps(
    messages: Optional[Iterable[Any]],
    entropy: Optional[float] = 0.0,
    config: Union[ExtractionConfig, Mapping[str, Any], None] = None,
    window: int = DEFAULT_MESSAGE_WINDOW,
) -> list[str]:
    """Identify knowledge gaps in a conversation window.

    Only user-authored messages are analyzed; assistant messages are
    explanations, not expressions of confusion.

    Args:
        messages: Role-tagged messages (mappings, ChatMessage, or objects)
        entropy: Entropy score of the exchange
        config: ExtractionConfig or a mapping of its fields
        window: How many trailing messages to consider

    Returns:
        Distinct gap strings, at most ``config.max_gaps_per_exchange``
    """
    extraction_config = _resolve_config(config)
    if extraction_config.max_gaps_per_exchange <= 0:
        return []

    corpus = build_corpus(messages, window)
    if not corpus:
        return []

    score = entropy or 0.0
    if not passes_admission_gate(corpus, score, extraction_config):
        logger.debug(
            f"Admission gate closed (entropy {score:.2f} < "
            f"{extraction_config.entropy_threshold:.2f}, no keyword hit)"
        )
        return []

    return extract_gaps_from_text(corpus, extraction_config.max_gaps_per_exchange)
