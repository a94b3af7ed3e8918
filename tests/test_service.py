"""Tests for the per-agent contemplation service."""

import json
import logging
from datetime import timedelta

import httpx
import pytest
from openai import APIConnectionError

from contemplation.core.config import load_config
from contemplation.inquiries import GapRecord, InquiryStatus, utcnow
from contemplation.orchestration import (
    ContemplationService,
    ExternalGap,
    build_gap_records,
    is_document_exchange,
)

TERNS = "I wonder how the tidal patterns actually affect migration timing for arctic terns."
CONNECTION_ERROR = APIConnectionError(request=httpx.Request("POST", "http://localhost:8080/v1"))


def run_all_passes(service, agent_id="main"):
    """Run passes until the agent's first inquiry completes; returns the final time."""
    now = utcnow()
    for delay in (0, 240, 1200):
        now += timedelta(minutes=delay)
        assert service.run_one_due_pass(agent_id, now=now)
    return now


class TestHelpers:
    """Tests for gap record building and exchange classification."""

    def test_build_gap_records(self):
        records = build_gap_records(["first gap", "second gap"], "exchange_9", "x" * 1500, 0.7, epoch_ms=123)
        assert [r.id for r in records] == ["gap_123_0", "gap_123_1"]
        assert all(r.source == "exchange_9" for r in records)
        assert all(len(r.context) == 1200 for r in records)
        assert all(r.entropy == 0.7 for r in records)

    def test_document_exchange(self):
        content = "Please summarize report.pdf for me.\n" + "Lorem ipsum dolor sit amet. " * 80
        assert is_document_exchange([{"role": "user", "content": content}])

    def test_short_document_mention_not_skipped(self):
        assert not is_document_exchange([{"role": "user", "content": "Can you open notes.md?"}])

    def test_long_text_without_document_not_skipped(self):
        assert not is_document_exchange([{"role": "user", "content": "word " * 600}])

    def test_no_user_message(self):
        assert not is_document_exchange([{"role": "assistant", "content": "file.pdf " * 400}])
        assert not is_document_exchange(None)


class TestHandleExchange:
    """Tests for queueing gaps from a finished exchange."""

    def test_queues_gap(self, service, curious_exchange):
        queued = service.handle_exchange("main", curious_exchange, entropy=0.8)

        assert len(queued) == 1
        inquiry = queued[0]
        assert inquiry.question == TERNS
        assert inquiry.id.startswith("gap_")
        assert inquiry.id.endswith("_0")
        assert inquiry.source.startswith("exchange_")
        assert inquiry.context == TERNS
        assert inquiry.entropy == 0.8
        assert service.agent_state("main").store.get(inquiry.id) is not None

    def test_source_from_metadata(self, service, curious_exchange):
        queued = service.handle_exchange(
            "main", curious_exchange, 0.8, {"exchangeId": "ex-42", "sessionId": "sess-1"}
        )
        assert queued[0].source == "ex-42"

        queued = service.handle_exchange(
            "other", curious_exchange, 0.8, {"sessionId": "sess-1"}
        )
        assert queued[0].source == "sess-1"

    def test_context_truncated(self, service):
        long_text = f"{TERNS} " + "More background on the colony. " * 60
        queued = service.handle_exchange("main", [{"role": "user", "content": long_text}], 0.8)
        assert len(queued[0].context) == 1200

    def test_repeated_exchanges_get_distinct_ids(self, service, curious_exchange):
        first = service.handle_exchange("main", curious_exchange, 0.8)
        second = service.handle_exchange("main", curious_exchange, 0.8)
        assert first[0].id != second[0].id
        assert service.get_state("main")["total"] == 2

    def test_heartbeat_skipped(self, service, curious_exchange):
        assert service.handle_exchange("main", curious_exchange, 0.8, {"isHeartbeat": True}) == []

    def test_document_exchange_skipped(self, service):
        content = f"Summarize chapter one of thesis.docx please. {TERNS}\n" + "Body text goes on. " * 120
        assert service.handle_exchange("main", [{"role": "user", "content": content}], 0.8) == []

    def test_low_entropy_queues_nothing(self, service, curious_exchange):
        assert service.handle_exchange("main", curious_exchange, 0.1) == []

    def test_workspace_cached(self, service, curious_exchange, tmp_path):
        service.handle_exchange("main", curious_exchange, 0.1, {"workspace": str(tmp_path)})
        assert service.agent_state("main").workspace_path == str(tmp_path)

    def test_disabled(self, service, curious_exchange):
        service.config.enabled = False
        assert service.handle_exchange("main", curious_exchange, 0.8) == []

    def test_agents_isolated(self, service, curious_exchange):
        service.handle_exchange("alpha", curious_exchange, 0.8)
        assert service.get_state("alpha")["total"] == 1
        assert service.get_state("beta")["total"] == 0

    def test_default_agent(self, service):
        assert service.agent_state(None).agent_id == "main"


class TestTagging:
    """Tests for tagging newly queued inquiries."""

    @pytest.fixture
    def tagging_service(self, mock_settings, reflector):
        return ContemplationService(load_config(), mock_settings, reflector=reflector, in_memory=True)

    def test_tags_stored(self, tagging_service, mock_client, completion, curious_exchange):
        mock_client.chat.completions.create.return_value = completion('["ecology", "migration"]')
        queued = tagging_service.handle_exchange("main", curious_exchange, 0.8)

        assert queued[0].tags == ["ecology", "migration"]
        assert tagging_service.agent_state("main").store.get(queued[0].id).tags == ["ecology", "migration"]

    def test_tagging_failure_still_queues(self, tagging_service, mock_client, curious_exchange):
        mock_client.chat.completions.create.side_effect = CONNECTION_ERROR
        queued = tagging_service.handle_exchange("main", curious_exchange, 0.8)

        assert len(queued) == 1
        assert queued[0].tags == []

    def test_tagging_disabled_makes_no_call(self, service, mock_client, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        mock_client.chat.completions.create.assert_not_called()


class TestExternalGaps:
    """Tests for gaps from another analysis subsystem."""

    def test_metabolism_source(self, service):
        queued = service.handle_external_gaps(
            "main", [{"question": "Why do my summaries drift over long sessions?", "sourceId": "m-7"}]
        )
        assert len(queued) == 1
        assert queued[0].source == "metabolism:m-7"
        assert queued[0].entropy == 0.0
        assert queued[0].context == "Why do my summaries drift over long sessions?"

    def test_unknown_source(self, service):
        queued = service.handle_external_gaps("main", [ExternalGap(question="What is drift?")])
        assert queued[0].source == "metabolism:unknown"

    def test_disabled(self, service):
        service.config.enabled = False
        assert service.handle_external_gaps("main", [{"question": "q"}]) == []


class TestRunOneDuePass:
    """Tests for running due passes."""

    def test_nothing_due(self, service):
        assert service.run_one_due_pass("main") is False

    def test_runs_first_pass(self, service, mock_client, curious_exchange):
        queued = service.handle_exchange("main", curious_exchange, 0.8)
        assert service.run_one_due_pass("main") is True

        inquiry = service.agent_state("main").store.get(queued[0].id)
        assert inquiry.passes[0].output == "A considered reflection."
        assert inquiry.passes[1].scheduled is not None
        mock_client.chat.completions.create.assert_called_once()

    def test_second_pass_waits(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        now = utcnow()
        assert service.run_one_due_pass("main", now=now)
        assert service.run_one_due_pass("main", now=now + timedelta(minutes=239)) is False
        assert service.run_one_due_pass("main", now=now + timedelta(minutes=240)) is True

    def test_completion_persists_insights(self, service, curious_exchange, config):
        queued = service.handle_exchange("main", curious_exchange, 0.8)
        run_all_passes(service)

        inquiry = service.agent_state("main").store.get(queued[0].id)
        assert inquiry.status == InquiryStatus.COMPLETED
        assert inquiry.persisted is True

        document = json.loads(config.output.growth_vectors_path.read_text())
        assert [v["id"] for v in document["vectors"]] == [inquiry.id]
        assert len(list(config.output.insights_path.glob("*.md"))) == 1

    def test_reflection_failure(self, service, mock_client, curious_exchange, caplog):
        queued = service.handle_exchange("main", curious_exchange, 0.8)
        mock_client.chat.completions.create.side_effect = CONNECTION_ERROR

        with caplog.at_level(logging.ERROR):
            assert service.run_one_due_pass("main") is False

        state = service.agent_state("main")
        assert state.processing is False
        assert state.store.get(queued[0].id).passes[0].completed is None
        assert "Pass run failed" in caplog.text

    def test_skips_while_processing(self, service, mock_client, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        service.agent_state("main").processing = True
        assert service.run_one_due_pass("main") is False
        mock_client.chat.completions.create.assert_not_called()


class TestPersistCompletedInsights:
    """Tests for writing completed inquiries."""

    def _complete(self, service, t0):
        store = service.agent_state("main").store
        record = GapRecord(id="gap_1_0", question="Why do terns migrate?", source="exchange_1")
        store.add_inquiry(record, now=t0)
        for number in (1, 2, 3):
            store.complete_pass(record.id, number, f"Pass {number}.", now=t0)
        return record.id

    def test_nothing_pending(self, service):
        assert service.persist_completed_insights("main") == 0

    def test_writes_to_workspace(self, mock_settings, reflector, tmp_path, t0):
        service = ContemplationService(
            load_config({"tagging": {"enabled": False}}), mock_settings, reflector=reflector, in_memory=True
        )
        inquiry_id = self._complete(service, t0)

        assert service.persist_completed_insights("main", workspace=str(tmp_path / "ws")) == 1
        assert (tmp_path / "ws" / "memory" / "growth-vectors.json").exists()
        assert (tmp_path / "ws" / "memory" / "insights" / f"2026-03-02-{inquiry_id}.md").exists()
        assert service.persist_completed_insights("main") == 0

    def test_write_failure_leaves_pending(self, service, config, t0, caplog):
        inquiry_id = self._complete(service, t0)
        path = config.output.growth_vectors_path
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        with caplog.at_level(logging.ERROR):
            assert service.persist_completed_insights("main") == 0

        assert service.agent_state("main").store.get(inquiry_id).persisted is False
        assert "Failed writing inquiry" in caplog.text


class TestContextInjection:
    """Tests for the contemplation state block."""

    def test_nothing_to_inject(self, service):
        assert service.build_context_injection("main") is None

    def test_active_inquiry(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        block = service.build_context_injection("main")

        assert block.startswith("[CONTEMPLATION STATE]\n")
        assert "Active inquiries: 1" in block
        assert "(pass 1 of 3: initial)" in block

    def test_progress_label_advances(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        service.run_one_due_pass("main")
        assert "(pass 2 of 3: settling)" in service.build_context_injection("main")

    def test_recent_insight(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        finished = run_all_passes(service)
        block = service.build_context_injection("main", now=finished + timedelta(days=1))

        assert "Active inquiries" not in block
        assert "Recent insights (last 7 days): 1" in block
        assert 'Insight: "A considered reflection."' in block

    def test_old_insight_dropped(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        finished = run_all_passes(service)
        assert service.build_context_injection("main", now=finished + timedelta(days=8)) is None

    def test_truncation_and_limit(self, service, t0):
        store = service.agent_state("main").store
        long_question = "Why " + "really " * 30 + "does it matter?"
        for i in range(4):
            store.add_inquiry(GapRecord(id=f"gap_{i}", question=long_question, source="s"), now=t0)

        block = service.build_context_injection("main", now=t0)
        assert "Active inquiries: 4" in block
        assert block.count("- \"") == 3
        assert f'"{long_question[:120]}"' in block
        assert long_question not in block

    def test_disabled(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        service.config.enabled = False
        assert service.build_context_injection("main") is None


class TestGetState:
    """Tests for the state summary."""

    def test_counts(self, service, curious_exchange):
        service.handle_exchange("main", curious_exchange, 0.8)
        service.handle_external_gaps("main", [{"question": "What makes a summary drift over time?"}])
        run_all_passes(service)

        state = service.get_state("main")
        assert state["agent_id"] == "main"
        assert state["active"] == 1
        assert state["completed"] == 1
        assert state["total"] == 2
        assert len(state["inquiries"]) == 2
