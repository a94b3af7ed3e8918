"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from contemplation.api import cli
from contemplation.api.cli import app

TERNS = "I wonder how the tidal patterns actually affect migration timing for arctic terns."

runner = CliRunner()


@pytest.fixture
def messages_file(tmp_path, curious_exchange):
    path = tmp_path / "chat.json"
    path.write_text(json.dumps(curious_exchange))
    return path


@pytest.fixture
def cli_service(monkeypatch, service):
    """Route CLI commands to the in-memory service."""
    monkeypatch.setattr(cli, "_get_service", lambda: service)
    return service


class TestExtract:
    """Tests for the extract command."""

    def test_prints_gaps(self, mock_settings, messages_file):
        result = runner.invoke(app, ["extract", str(messages_file), "--entropy", "0.8"])
        assert result.exit_code == 0
        assert "I wonder how the tidal patterns" in result.output

    def test_stdin_and_messages_object(self, mock_settings, curious_exchange):
        payload = json.dumps({"messages": curious_exchange})
        result = runner.invoke(app, ["extract", "-", "-e", "0.8"], input=payload)
        assert result.exit_code == 0
        assert "I wonder how the tidal patterns" in result.output

    def test_gate_closed(self, mock_settings, messages_file):
        result = runner.invoke(app, ["extract", str(messages_file)])
        assert result.exit_code == 0
        assert "No gaps found." in result.output

    def test_keyword_opens_gate(self, mock_settings, messages_file):
        result = runner.invoke(app, ["extract", str(messages_file), "-k", "arctic"])
        assert "I wonder how the tidal patterns" in result.output

    def test_threshold_and_cap(self, mock_settings, messages_file):
        result = runner.invoke(app, ["extract", str(messages_file), "-e", "0.3", "-t", "0.2", "-n", "0"])
        assert "No gaps found." in result.output

    def test_invalid_json(self, mock_settings, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{nope")
        result = runner.invoke(app, ["extract", str(path)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_file(self, mock_settings, tmp_path):
        result = runner.invoke(app, ["extract", str(tmp_path / "missing.json")])
        assert result.exit_code == 1


class TestQueueCommands:
    """Tests for commands that work on an agent's queue."""

    def test_ingest(self, cli_service, messages_file):
        result = runner.invoke(app, ["ingest", str(messages_file), "-e", "0.8"])
        assert result.exit_code == 0
        assert cli_service.get_state("main")["total"] == 1

    def test_ingest_nothing(self, cli_service, messages_file):
        result = runner.invoke(app, ["ingest", str(messages_file)])
        assert result.exit_code == 0
        assert "No inquiries queued." in result.output

    def test_status(self, cli_service, curious_exchange):
        cli_service.handle_exchange("main", curious_exchange, 0.8)
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "Active: 1" in result.output

    def test_status_empty(self, cli_service):
        result = runner.invoke(app, ["status", "--agent", "research"])
        assert result.exit_code == 0
        assert "No inquiries yet." in result.output

    def test_run_pass(self, cli_service, curious_exchange):
        cli_service.handle_exchange("main", curious_exchange, 0.8)
        assert "Pass completed." in runner.invoke(app, ["run-pass"]).output
        assert "No pass ran." in runner.invoke(app, ["run-pass"]).output

    def test_persist(self, cli_service):
        result = runner.invoke(app, ["persist"])
        assert result.exit_code == 0
        assert "Persisted 0 inquiries." in result.output

    def test_context(self, cli_service, curious_exchange):
        assert "Nothing to inject." in runner.invoke(app, ["context"]).output

        cli_service.handle_exchange("main", curious_exchange, 0.8)
        result = runner.invoke(app, ["context"])
        assert "[CONTEMPLATION STATE]" in result.output
