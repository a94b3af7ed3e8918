"""Common test fixtures for Contemplation tests."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from contemplation.api.deps import get_service
from contemplation.api.main import app
from contemplation.core.config import Settings, get_settings, load_config
from contemplation.inquiries import GapRecord, InquiryStore
from contemplation.orchestration import ContemplationService
from contemplation.reflection import ReflectionClient


# Fixed reference time so pass scheduling is deterministic
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def make_completion(content):
    """Build a chat completions response carrying content."""
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


@pytest.fixture
def completion():
    """Factory for mock chat completions responses."""
    return make_completion


@pytest.fixture
def t0():
    """Reference time for scheduling tests."""
    return T0


@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """Settings pointing at a temp data directory."""
    monkeypatch.setenv("CONTEMPLATION_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("CONTEMPLATION_CONFIG", raising=False)
    # Clear cached settings to pick up new env var
    get_settings.cache_clear()
    yield Settings()
    get_settings.cache_clear()


@pytest.fixture
def config(tmp_path):
    """Default plugin config with tagging off and output in tmp_path."""
    return load_config(
        {
            "tagging": {"enabled": False},
            "output": {
                "growthVectorsPath": str(tmp_path / "out" / "growth-vectors.json"),
                "insightsPath": str(tmp_path / "out" / "insights"),
            },
        }
    )


@pytest.fixture
def mock_client():
    """Create mock OpenAI client."""
    client = MagicMock()
    client.chat.completions.create.return_value = make_completion("A considered reflection.")
    return client


@pytest.fixture
def reflector(mock_client):
    """Create reflection client with mock OpenAI client."""
    return ReflectionClient(mock_client, model="test-model")


@pytest.fixture
def store(config):
    """Create an in-memory inquiry store with the default pass schedule."""
    return InquiryStore(":memory:", "main", config.passes)


@pytest.fixture
def gap():
    """A gap record ready to queue."""
    return GapRecord(
        id="gap_1_0",
        question="I wonder how the tidal patterns actually affect migration timing for arctic terns.",
        source="exchange_1",
        context="I wonder how the tidal patterns actually affect migration timing for arctic terns.",
        entropy=0.8,
    )


@pytest.fixture
def service(config, mock_settings, reflector):
    """Create an in-memory contemplation service."""
    return ContemplationService(config, mock_settings, reflector=reflector, in_memory=True)


@pytest.fixture
def client(service):
    """Create test client with overridden dependencies."""
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def curious_exchange():
    """An exchange with one explicit gap in the user message."""
    return [
        {
            "role": "user",
            "content": "I wonder how the tidal patterns actually affect migration timing for arctic terns.",
        },
        {
            "role": "assistant",
            "content": "Tides shape feeding windows along the coast, which can shift stopover timing.",
        },
    ]
