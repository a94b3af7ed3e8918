"""Message and configuration models for gap extraction."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ENTROPY_THRESHOLD = 0.5
DEFAULT_MAX_GAPS = 2


class MessageRole(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "MessageRole":
        """Map a raw role value to a MessageRole, defaulting to OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


class ChatMessage(BaseModel):
    """A role-tagged conversation message.

    Content is either a plain string or a sequence of parts carrying a
    ``text`` (or ``content``) field. Anything else is tolerated and
    normalized to a string during sanitization.
    """

    role: str = MessageRole.OTHER.value
    content: Any = None


class ExtractionConfig(BaseModel):
    """Admission gate and cap settings for one extraction call.

    Accepts both snake_case field names and the camelCase names used by
    host plugin configuration (``entropyThreshold``, ``maxGapsPerExchange``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    entropy_threshold: float = Field(
        default=DEFAULT_ENTROPY_THRESHOLD,
        alias="entropyThreshold",
        description="Minimum entropy score that admits extraction on its own",
    )
    keywords: list[str] = Field(
        default_factory=list,
        description="Case-insensitive substrings that admit extraction regardless of entropy",
    )
    max_gaps_per_exchange: int = Field(
        default=DEFAULT_MAX_GAPS,
        alias="maxGapsPerExchange",
        description="Maximum gaps returned per call; 0 or less yields nothing",
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def _coerce_keywords(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(k) for k in value]
