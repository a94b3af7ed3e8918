"""Tests for reflection prompting and topic tagging."""

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from contemplation.core.config import LLMConfig, Settings, TaggingConfig, load_config
from contemplation.inquiries import Inquiry, InquiryPass
from contemplation.reflection import (
    ReflectionError,
    build_prompt,
    build_tag_prompt,
    create_reflection_client,
    parse_tags,
    run_pass,
    tag_inquiry,
)

REQUEST = httpx.Request("POST", "http://localhost:8080/v1/chat/completions")


@pytest.fixture
def inquiry(t0):
    """An inquiry with its first pass complete."""
    return Inquiry(
        id="gap_1_0",
        question="Why do arctic terns migrate so far?",
        source="exchange_1",
        context="User asked about tern migration.",
        created=t0,
        passes=[
            InquiryPass(number=1, scheduled=t0, completed=t0, output="They follow the summers."),
            InquiryPass(number=2),
            InquiryPass(number=3),
        ],
    )


class TestBuildPrompt:
    """Tests for pass prompt construction."""

    def test_contains_inquiry_fields(self, inquiry):
        prompt = build_prompt(inquiry, 2, "Settle it.")
        assert "Pass: 2" in prompt
        assert "Instruction: Settle it." in prompt
        assert "Inquiry: Why do arctic terns migrate so far?" in prompt
        assert "Source: exchange_1" in prompt
        assert "Context:\nUser asked about tern migration." in prompt

    def test_includes_prior_passes(self, inquiry):
        prompt = build_prompt(inquiry, 2, "Settle it.")
        assert "Prior passes:\nPass 1 output:\nThey follow the summers." in prompt

    def test_first_pass_has_no_prior(self, inquiry):
        prompt = build_prompt(inquiry, 1, "Explore.")
        assert "Prior passes: (none)" in prompt
        assert "They follow the summers." not in prompt

    def test_empty_context(self, inquiry):
        inquiry.context = ""
        assert "Context:\n(none)" in build_prompt(inquiry, 1, "Explore.")


class TestReflectionClient:
    """Tests for the LLM wrapper."""

    def test_returns_trimmed_text(self, reflector, mock_client, completion):
        mock_client.chat.completions.create.return_value = completion("  some insight \n")
        assert reflector.complete("prompt") == "some insight"

    def test_request_parameters(self, reflector, mock_client):
        reflector.complete("prompt", temperature=0.3, max_tokens=100, timeout=15)
        mock_client.chat.completions.create.assert_called_once_with(
            model="test-model",
            messages=[{"role": "user", "content": "prompt"}],
            temperature=0.3,
            max_tokens=100,
            timeout=15,
        )

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_content_raises(self, reflector, mock_client, completion, content):
        mock_client.chat.completions.create.return_value = completion(content)
        with pytest.raises(ReflectionError):
            reflector.complete("prompt")

    def test_missing_choices_raises(self, reflector, mock_client, completion):
        response = completion("x")
        response.choices = []
        mock_client.chat.completions.create.return_value = response
        with pytest.raises(ReflectionError):
            reflector.complete("prompt")

    def test_status_error_raises(self, reflector, mock_client):
        mock_client.chat.completions.create.side_effect = APIStatusError(
            "Server error",
            response=httpx.Response(503, request=REQUEST),
            body=None,
        )
        with pytest.raises(ReflectionError, match="503"):
            reflector.complete("prompt")

    def test_connection_error_raises(self, reflector, mock_client):
        mock_client.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)
        with pytest.raises(ReflectionError):
            reflector.complete("prompt")


class TestCreateReflectionClient:
    """Tests for client construction from settings."""

    def test_settings_defaults(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.setenv("CONTEMPLATION_LLM_BASE_URL", "http://llm.local:9000/v1")
        monkeypatch.setenv("CONTEMPLATION_LLM_MODEL", "local-model")

        reflector = create_reflection_client(Settings())
        assert str(reflector.client.base_url).startswith("http://llm.local:9000/v1")
        assert reflector.client.api_key == "not-needed"
        assert reflector.model == "local-model"

    def test_plugin_config_wins(self, monkeypatch):
        monkeypatch.setenv("CONTEMPLATION_LLM_MODEL", "env-model")
        llm = LLMConfig(base_url="http://other.local/v1", model="plugin-model")

        reflector = create_reflection_client(Settings(), llm)
        assert str(reflector.client.base_url).startswith("http://other.local/v1")
        assert reflector.model == "plugin-model"


class TestRunPass:
    """Tests for running one contemplative pass."""

    def test_uses_pass_prompt_and_llm_params(self, reflector, mock_client, inquiry):
        config = load_config()
        assert run_pass(reflector, inquiry, 2, config) == "A considered reflection."

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        prompt = kwargs["messages"][0]["content"]
        assert f"Instruction: {config.pass_config(2).prompt}" in prompt
        assert kwargs["temperature"] == 0.6
        assert kwargs["max_tokens"] == 700
        assert kwargs["timeout"] == 45

    def test_unknown_pass_falls_back(self, reflector, mock_client, inquiry):
        run_pass(reflector, inquiry, 4, load_config())
        prompt = mock_client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "Instruction: Pass 4" in prompt


class TestTagging:
    """Tests for topic tag generation."""

    def test_tag_prompt(self):
        prompt = build_tag_prompt("Why do terns migrate?")
        assert 'Question: "Why do terns migrate?"' in prompt
        assert "JSON array" in prompt

    def test_parse_tags_in_prose(self):
        assert parse_tags('Sure! ["Ecology", " Migration "]') == ["ecology", "migration"]

    def test_parse_tags_code_fence(self):
        assert parse_tags('```json\n["birds", "tides"]\n```') == ["birds", "tides"]

    def test_parse_tags_capped(self):
        assert parse_tags('["a", "b", "c", "d", "e", "f"]') == ["a", "b", "c", "d"]

    @pytest.mark.parametrize("text", ["no tags here", "[not json]", '[1, 2]', "", None])
    def test_parse_tags_rejects(self, text):
        assert parse_tags(text) is None

    def test_tag_inquiry(self, reflector, mock_client, completion, inquiry):
        mock_client.chat.completions.create.return_value = completion('["ecology", "migration"]')
        assert tag_inquiry(reflector, inquiry, TaggingConfig()) == ["ecology", "migration"]

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 100

    def test_disabled(self, reflector, mock_client, inquiry):
        assert tag_inquiry(reflector, inquiry, TaggingConfig(enabled=False)) is None
        mock_client.chat.completions.create.assert_not_called()

    def test_failure_returns_none(self, reflector, mock_client, inquiry):
        mock_client.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)
        assert tag_inquiry(reflector, inquiry, TaggingConfig()) is None

    def test_unusable_response_returns_none(self, reflector, mock_client, completion, inquiry):
        mock_client.chat.completions.create.return_value = completion("ecology, migration")
        assert tag_inquiry(reflector, inquiry, TaggingConfig()) is None
