"""Reflection passes over a single inquiry.

Builds the composite pass prompt and sends it to an OpenAI-compatible
chat completions endpoint (a local MLX or llama.cpp server by default).
"""

import logging
from typing import Optional

from openai import APIStatusError, OpenAI, OpenAIError

from contemplation.core.config import ContemplationConfig, LLMConfig, Settings
from contemplation.inquiries.models import Inquiry

logger = logging.getLogger(__name__)


class ReflectionError(Exception):
    """The reflection endpoint failed or returned no usable content."""


def build_prompt(inquiry: Inquiry, pass_number: int, pass_prompt: str) -> str:
    """Build the prompt for one contemplative pass.

    Args:
        inquiry: The inquiry under contemplation
        pass_number: Pass being run
        pass_prompt: Pass-specific instruction

    Returns:
        Prompt embedding the question, its origin and every earlier
        completed pass's output
    """
    prior = "\n\n".join(
        f"Pass {p.number} output:\n{p.output}"
        for p in inquiry.passes
        if p.number < pass_number and p.is_complete and p.output
    )

    return "\n\n".join(
        [
            "You are running a contemplative pass over a single inquiry.",
            f"Pass: {pass_number}",
            f"Instruction: {pass_prompt}",
            f"Inquiry: {inquiry.question}",
            f"Source: {inquiry.source}",
            f"Context:\n{inquiry.context or '(none)'}",
            f"Prior passes:\n{prior}" if prior else "Prior passes: (none)",
            "Return concise but specific reflection text only.",
        ]
    )


class ReflectionClient:
    """Sends prompts to the reflection model and returns trimmed text."""

    def __init__(
        self,
        llm_client: OpenAI,
        model: str = "default",
    ):
        """Initialize the reflection client.

        Args:
            llm_client: OpenAI-compatible client for LLM calls
            model: Model to use for reflection and tagging
        """
        self.client = llm_client
        self.model = model

    def complete(
        self,
        prompt: str,
        temperature: float = 0.6,
        max_tokens: int = 700,
        timeout: Optional[float] = None,
    ) -> str:
        """Send one user prompt and return the response text.

        Raises:
            ReflectionError: On a non-success status, a connection or timeout
                failure, or an empty/missing choices[0].message.content
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except APIStatusError as e:
            raise ReflectionError(f"Reflection request failed ({e.status_code})") from e
        except OpenAIError as e:
            raise ReflectionError(f"Reflection request failed: {e}") from e

        choices = response.choices or []
        content = choices[0].message.content if choices else None
        if isinstance(content, str) and content.strip():
            return content.strip()

        raise ReflectionError("Reflection response missing choices[0].message.content")


def create_reflection_client(settings: Settings, llm: Optional[LLMConfig] = None) -> ReflectionClient:
    """Create a reflection client from settings and plugin LLM config.

    Plugin config values win over environment settings. Local servers
    ignore the API key, so a placeholder is sent when none is set.
    """
    llm = llm or LLMConfig()
    client = OpenAI(
        api_key=settings.llm_api_key or "not-needed",
        base_url=llm.base_url or settings.llm_base_url,
        timeout=llm.timeout_seconds,
        max_retries=0,
    )
    return ReflectionClient(client, model=llm.model or settings.llm_model)


def run_pass(
    reflector: ReflectionClient,
    inquiry: Inquiry,
    pass_number: int,
    config: ContemplationConfig,
) -> str:
    """Run one contemplative pass.

    Args:
        reflector: Client for the reflection model
        inquiry: The inquiry under contemplation
        pass_number: Pass to run
        config: Plugin configuration (pass prompts, LLM parameters)

    Returns:
        Reflection text

    Raises:
        ReflectionError: If the endpoint fails
    """
    pass_config = config.pass_config(pass_number)
    pass_prompt = pass_config.prompt if pass_config and pass_config.prompt else f"Pass {pass_number}"
    prompt = build_prompt(inquiry, pass_number, pass_prompt)

    logger.debug(f"Running pass {pass_number} for {inquiry.id}")
    return reflector.complete(
        prompt,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
        timeout=config.llm.timeout_seconds,
    )
