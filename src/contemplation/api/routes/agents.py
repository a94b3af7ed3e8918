"""Per-agent contemplation API routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from contemplation.inquiries import Inquiry

from ..deps import Service
from ..schemas import (
    AgentStateResponse,
    ContextResponse,
    ExchangeRequest,
    ExternalGapsRequest,
    PassRunResponse,
    PersistResponse,
    QueuedResponse,
)

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.post("/{agent_id}/exchanges", response_model=QueuedResponse)
def report_exchange(
    agent_id: str,
    data: ExchangeRequest,
    service: Service,
) -> QueuedResponse:
    """Extract gaps from a finished exchange and queue them."""
    queued = service.handle_exchange(agent_id, data.messages, data.entropy, data.metadata)
    return QueuedResponse(agent_id=agent_id, queued=queued)


@router.post("/{agent_id}/gaps", response_model=QueuedResponse)
def report_gaps(
    agent_id: str,
    data: ExternalGapsRequest,
    service: Service,
) -> QueuedResponse:
    """Queue gaps found by another analysis subsystem."""
    queued = service.handle_external_gaps(agent_id, data.gaps)
    return QueuedResponse(agent_id=agent_id, queued=queued)


@router.get("/{agent_id}/state", response_model=AgentStateResponse)
def get_agent_state(agent_id: str, service: Service) -> AgentStateResponse:
    """Get inquiry counts and listing for an agent."""
    return AgentStateResponse.model_validate(service.get_state(agent_id))


@router.get("/{agent_id}/inquiries/{inquiry_id}", response_model=Inquiry)
def get_inquiry(agent_id: str, inquiry_id: str, service: Service) -> Inquiry:
    """Get one inquiry with all its passes."""
    inquiry = service.agent_state(agent_id).store.get(inquiry_id)
    if not inquiry:
        raise HTTPException(status_code=404, detail="Inquiry not found")
    return inquiry


@router.get("/{agent_id}/context", response_model=ContextResponse)
def get_context(agent_id: str, service: Service) -> ContextResponse:
    """Get the [CONTEMPLATION STATE] block for the agent's next prompt."""
    return ContextResponse(agent_id=agent_id, context=service.build_context_injection(agent_id))


@router.post("/{agent_id}/passes/run", response_model=PassRunResponse)
def run_pass(agent_id: str, service: Service) -> PassRunResponse:
    """Run the next due pass, if any."""
    return PassRunResponse(agent_id=agent_id, ran=service.run_one_due_pass(agent_id))


@router.post("/{agent_id}/persist", response_model=PersistResponse)
def persist(
    agent_id: str,
    service: Service,
    workspace: Optional[str] = None,
) -> PersistResponse:
    """Write completed inquiries to the agent workspace."""
    written = service.persist_completed_insights(agent_id, workspace)
    return PersistResponse(agent_id=agent_id, written=written)
