"""Pydantic schemas for API request/response models."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from contemplation.extraction import ChatMessage, ExtractionConfig
from contemplation.inquiries import Inquiry
from contemplation.orchestration import ExternalGap


# Extraction schemas
class ExtractRequest(BaseModel):
    """Stateless gap extraction over a message window."""

    messages: list[ChatMessage] = Field(default_factory=list)
    entropy: float = 0.0
    config: Optional[ExtractionConfig] = None


class ExtractResponse(BaseModel):
    """Extracted gaps, in output order."""

    gaps: list[str] = Field(default_factory=list)


# Agent schemas
class ExchangeRequest(BaseModel):
    """A finished exchange reported by the host."""

    messages: list[ChatMessage] = Field(default_factory=list)
    entropy: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)  # isHeartbeat, workspace, exchangeId, sessionId


class ExternalGapsRequest(BaseModel):
    """Gaps produced by another analysis subsystem."""

    gaps: list[ExternalGap] = Field(default_factory=list)


class QueuedResponse(BaseModel):
    """Inquiries queued by a request."""

    agent_id: str
    queued: list[Inquiry] = Field(default_factory=list)


class AgentStateResponse(BaseModel):
    """Counts and full inquiry listing for an agent."""

    agent_id: str
    active: int = 0
    completed: int = 0
    total: int = 0
    inquiries: list[Inquiry] = Field(default_factory=list)


class ContextResponse(BaseModel):
    """Context block for the agent's next prompt."""

    agent_id: str
    context: Optional[str] = None


class PassRunResponse(BaseModel):
    """Outcome of a pass run request."""

    agent_id: str
    ran: bool


class PersistResponse(BaseModel):
    """Outcome of an insight persistence request."""

    agent_id: str
    written: int = 0
