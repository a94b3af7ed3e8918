"""Orchestration - per-agent contemplation workflow."""

from .service import (
    AgentState,
    ContemplationService,
    ExternalGap,
    build_gap_records,
    is_document_exchange,
)

__all__ = [
    "AgentState",
    "ContemplationService",
    "ExternalGap",
    "build_gap_records",
    "is_document_exchange",
]
