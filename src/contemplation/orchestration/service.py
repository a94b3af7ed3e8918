"""Contemplation orchestration.

Connects the gap extraction engine to the per-agent inquiry queue, the
reflection model and insight persistence:

- handle_exchange: extract gaps from a finished exchange and queue them
- handle_external_gaps: queue gaps found by another analysis subsystem
- run_one_due_pass: run the next due contemplative pass
- persist_completed_insights: write finished inquiries to the workspace
- build_context_injection: summarize active and recent inquiries for the agent
"""

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from contemplation.core.config import ContemplationConfig, Settings
from contemplation.extraction import (
    MessageRole,
    build_corpus,
    identify_gaps,
    normalize_content,
)
from contemplation.extraction.extractor import message_content, message_role
from contemplation.inquiries import (
    GapRecord,
    Inquiry,
    InquiryStatus,
    InquiryStore,
    pass_label,
    utcnow,
)
from contemplation.insights import (
    append_growth_vector,
    resolve_output_paths,
    write_insight_file,
)
from contemplation.reflection import (
    ReflectionClient,
    ReflectionError,
    create_reflection_client,
    run_pass,
    tag_inquiry,
)


logger = logging.getLogger(__name__)

CONTEXT_SNIPPET_LENGTH = 1200
CONTEXT_STATE_HEADER = "[CONTEMPLATION STATE]"
MAX_LISTED_INQUIRIES = 3
RECENT_INSIGHT_WINDOW = timedelta(days=7)

# Exchanges that hand the agent a document produce rhetorical questions and
# marketing copy, not curiosity.
DOCUMENT_REFERENCE = re.compile(r"(?:\.pdf|\.docx?|\.txt|\.epub|\.md)\b", re.IGNORECASE)
DOCUMENT_MIN_LENGTH = 2000


class ExternalGap(BaseModel):
    """A gap produced by another analysis subsystem."""

    model_config = ConfigDict(populate_by_name=True)

    question: str
    source_id: Optional[str] = Field(default=None, alias="sourceId")


@dataclass
class AgentState:
    """Runtime state for one agent."""

    agent_id: str
    store: InquiryStore
    processing: bool = False
    workspace_path: Optional[str] = None


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def build_gap_records(
    gaps: Iterable[str],
    source: str,
    context: str,
    entropy: float,
    epoch_ms: Optional[int] = None,
) -> list[GapRecord]:
    """Wrap extracted gap strings into records ready for the store."""
    stamp = epoch_ms if epoch_ms is not None else _epoch_ms()
    return [
        GapRecord(
            id=f"gap_{stamp}_{idx}",
            question=question,
            source=source,
            context=context[:CONTEXT_SNIPPET_LENGTH],
            entropy=entropy,
        )
        for idx, question in enumerate(gaps)
    ]


def is_document_exchange(messages: Optional[Iterable[Any]]) -> bool:
    """True when the first user message hands over a long document."""
    first_user = next(
        (m for m in (messages or []) if message_role(m) is MessageRole.USER),
        None,
    )
    if first_user is None:
        return False
    text = normalize_content(message_content(first_user))
    return len(text) > DOCUMENT_MIN_LENGTH and bool(DOCUMENT_REFERENCE.search(text))


def _truncate(text: str, limit: int) -> str:
    return text[:limit]


class ContemplationService:
    """Per-agent contemplation workflow.

    Agent state (store, processing flag, workspace) is created lazily on
    first use.
    """

    def __init__(
        self,
        config: ContemplationConfig,
        settings: Settings,
        reflector: Optional[ReflectionClient] = None,
        data_dir: Optional[Path] = None,
        in_memory: bool = False,
    ):
        """Initialize the service.

        Args:
            config: Plugin configuration
            settings: Environment settings (LLM endpoint, data directory)
            reflector: Reflection client; created from settings when omitted
            data_dir: Overrides settings.data_dir
            in_memory: Keep every agent's store in memory (tests, dry runs)
        """
        self.config = config
        self.settings = settings
        self._reflector = reflector
        self.data_dir = Path(data_dir) if data_dir else settings.data_dir
        self.in_memory = in_memory
        self._states: dict[str, AgentState] = {}
        self._last_stamp = 0

    def _next_stamp(self) -> int:
        """Epoch ms, bumped so ids stay unique within a burst of calls."""
        self._last_stamp = max(_epoch_ms(), self._last_stamp + 1)
        return self._last_stamp

    @property
    def reflector(self) -> ReflectionClient:
        if self._reflector is None:
            self._reflector = create_reflection_client(self.settings, self.config.llm)
        return self._reflector

    def agent_state(self, agent_id: Optional[str] = None) -> AgentState:
        """Get or create state for an agent (defaults to "main")."""
        agent_id = agent_id or "main"
        if agent_id not in self._states:
            db_path = ":memory:" if self.in_memory else self.data_dir / "agents" / f"{agent_id}.db"
            self._states[agent_id] = AgentState(
                agent_id=agent_id,
                store=InquiryStore(db_path, agent_id, self.config.passes),
            )
            logger.info(f"Initialized state for agent \"{agent_id}\"")
        return self._states[agent_id]

    # =========================================================================
    # Queueing
    # =========================================================================

    def handle_exchange(
        self,
        agent_id: Optional[str],
        messages: Optional[list[Any]],
        entropy: float = 0.0,
        metadata: Optional[dict[str, Any]] = None,
    ) -> list[Inquiry]:
        """Extract gaps from a finished exchange and queue them.

        Args:
            agent_id: The agent that held the conversation
            messages: The exchange's messages, oldest first
            entropy: Entropy score reported for the exchange
            metadata: Host metadata (isHeartbeat, workspace, exchangeId, sessionId)

        Returns:
            Newly queued inquiries
        """
        if not self.config.enabled:
            return []

        metadata = metadata or {}
        if metadata.get("isHeartbeat"):
            return []

        state = self.agent_state(agent_id)
        if is_document_exchange(messages):
            logger.debug(f"[{state.agent_id}] Skipping document processing exchange")
            return []

        if metadata.get("workspace"):
            state.workspace_path = metadata["workspace"]

        gaps = identify_gaps(messages, entropy, self.config.extraction)
        if not gaps:
            return []

        stamp = self._next_stamp()
        source = metadata.get("exchangeId") or metadata.get("sessionId") or f"exchange_{stamp}"
        records = build_gap_records(gaps, source, build_corpus(messages), entropy, stamp)

        inquiries = []
        for record in records:
            inquiry = state.store.add_inquiry(record)
            logger.info(f"[{state.agent_id}] Queued inquiry {inquiry.id} (from conversation)")
            inquiries.append(self._tag(state, inquiry))
        return inquiries

    def handle_external_gaps(
        self,
        agent_id: Optional[str],
        gaps: Iterable[ExternalGap | dict[str, Any]],
    ) -> list[Inquiry]:
        """Queue gaps that another subsystem already derived from the exchange.

        These skip extraction; the gap question doubles as its context.
        """
        if not self.config.enabled:
            return []

        state = self.agent_state(agent_id)
        stamp = self._next_stamp()
        inquiries = []
        for idx, raw in enumerate(gaps):
            gap = raw if isinstance(raw, ExternalGap) else ExternalGap.model_validate(raw)
            record = GapRecord(
                id=f"gap_{stamp}_{idx}",
                question=gap.question,
                source=f"metabolism:{gap.source_id or 'unknown'}",
                context=gap.question,
                entropy=0.0,
            )
            inquiry = state.store.add_inquiry(record)
            logger.info(
                f"[{state.agent_id}] Queued inquiry from metabolism: {inquiry.id} - \"{gap.question[:80]}\""
            )
            inquiries.append(self._tag(state, inquiry))
        return inquiries

    def _tag(self, state: AgentState, inquiry: Inquiry) -> Inquiry:
        if not self.config.tagging.enabled:
            return inquiry
        tags = tag_inquiry(self.reflector, inquiry, self.config.tagging)
        if not tags:
            return inquiry
        return state.store.set_tags(inquiry.id, tags) or inquiry

    # =========================================================================
    # Passes
    # =========================================================================

    def run_one_due_pass(self, agent_id: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        """Run the next due pass for an agent.

        Returns:
            True if a pass ran and was recorded
        """
        if not self.config.enabled:
            return False

        state = self.agent_state(agent_id)
        if state.processing:
            return False

        due = state.store.get_due_pass(now)
        if due is None:
            return False

        state.processing = True
        try:
            output = run_pass(self.reflector, due.inquiry, due.pass_number, self.config)
            updated = state.store.complete_pass(due.inquiry.id, due.pass_number, output, now)
            logger.info(f"[{state.agent_id}] Completed pass {due.pass_number} for {due.inquiry.id}")

            if updated is not None and updated.status == InquiryStatus.COMPLETED:
                self.persist_completed_insights(state.agent_id)
            return True
        except (ReflectionError, ValueError) as e:
            logger.error(f"[{state.agent_id}] Pass run failed: {e}")
            return False
        finally:
            state.processing = False

    def persist_completed_insights(
        self,
        agent_id: Optional[str] = None,
        workspace: Optional[str] = None,
    ) -> int:
        """Write completed, unpersisted inquiries to the agent workspace.

        A failed write is logged and the inquiry stays pending.

        Returns:
            Number of inquiries written
        """
        state = self.agent_state(agent_id)
        if workspace and not state.workspace_path:
            state.workspace_path = workspace

        pending = state.store.get_completed_unpersisted()
        if not pending:
            return 0

        paths = resolve_output_paths(state.agent_id, state.workspace_path, self.config.output)
        wrote = 0
        for inquiry in pending:
            try:
                append_growth_vector(paths.growth_vectors_path, inquiry)
                if paths.insights_path:
                    write_insight_file(paths.insights_path, inquiry)
                state.store.mark_persisted(inquiry.id)
                wrote += 1
                logger.info(
                    f"[{state.agent_id}] Persisted inquiry {inquiry.id} -> {paths.growth_vectors_path}"
                )
            except (OSError, ValueError) as e:
                logger.error(f"[{state.agent_id}] Failed writing inquiry {inquiry.id}: {e}")

        return wrote

    # =========================================================================
    # Monitoring
    # =========================================================================

    def build_context_injection(
        self,
        agent_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Summarize active and recently completed inquiries for the agent.

        Returns:
            A [CONTEMPLATION STATE] block, or None when there is nothing to say
        """
        if not self.config.enabled:
            return None

        state = self.agent_state(agent_id)
        now = now or utcnow()
        inquiries = state.store.list_inquiries()

        active = [i for i in inquiries if i.status == InquiryStatus.IN_PROGRESS]
        recent = [
            i
            for i in inquiries
            if i.status == InquiryStatus.COMPLETED
            and i.completed
            and i.completed > now - RECENT_INSIGHT_WINDOW
        ]
        if not active and not recent:
            return None

        lines = [CONTEXT_STATE_HEADER]

        if active:
            lines.append(f"Active inquiries: {len(active)}")
            for inquiry in active[:MAX_LISTED_INQUIRIES]:
                done = inquiry.completed_pass_count
                lines.append(
                    f"- \"{_truncate(inquiry.question, 120)}\" "
                    f"(pass {done + 1} of {len(inquiry.passes)}: {pass_label(done + 1)})"
                )

        if recent:
            lines.append("")
            lines.append(f"Recent insights (last 7 days): {len(recent)}")
            for inquiry in recent[:MAX_LISTED_INQUIRIES]:
                lines.append(f"- Q: \"{_truncate(inquiry.question, 100)}\"")
                insight = _truncate(inquiry.final_output, 200)
                if insight:
                    lines.append(f"  Insight: \"{insight}\"")

        return "\n".join(lines)

    def get_state(self, agent_id: Optional[str] = None) -> dict[str, Any]:
        """Counts and full inquiry listing for an agent."""
        state = self.agent_state(agent_id)
        inquiries = state.store.list_inquiries()
        return {
            "agent_id": state.agent_id,
            "active": sum(1 for i in inquiries if i.status == InquiryStatus.IN_PROGRESS),
            "completed": sum(1 for i in inquiries if i.status == InquiryStatus.COMPLETED),
            "total": len(inquiries),
            "inquiries": [i.model_dump(mode="json") for i in inquiries],
        }
