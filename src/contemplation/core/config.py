"""Configuration for Contemplation.

Two layers:
- Settings: process environment (.env), read once and cached
- ContemplationConfig: plugin configuration, a user JSON object deep-merged
  over DEFAULT_CONFIG
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from contemplation.extraction.models import ExtractionConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment Variables:
        LLM_API_KEY: API key for the LLM provider (local servers ignore it)
        CONTEMPLATION_LLM_BASE_URL: OpenAI-compatible base URL
        CONTEMPLATION_LLM_MODEL: Model name to use
        CONTEMPLATION_DATA_DIR: Directory for per-agent inquiry databases
        CONTEMPLATION_LOG_LEVEL: Logging level (default: INFO)
        CONTEMPLATION_CONFIG: Optional path to a plugin config JSON file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    llm_api_key: str = Field(
        default="",
        validation_alias="LLM_API_KEY",
        description="API key for the LLM provider",
    )
    llm_base_url: str = Field(
        default="http://localhost:8080/v1",
        validation_alias="CONTEMPLATION_LLM_BASE_URL",
        description="Base URL for an OpenAI-compatible chat completions API",
    )
    llm_model: str = Field(
        default="default",
        validation_alias="CONTEMPLATION_LLM_MODEL",
        description="Model name to use",
    )

    data_dir: Path = Field(
        default=Path("./data"),
        validation_alias="CONTEMPLATION_DATA_DIR",
        description="Directory holding agents/<agent_id>.db",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="CONTEMPLATION_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    config_file: Optional[Path] = Field(
        default=None,
        validation_alias="CONTEMPLATION_CONFIG",
        description="Plugin configuration JSON merged over defaults",
    )

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        return getattr(logging, self.log_level.upper(), logging.INFO)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# =============================================================================
# Plugin Configuration
# =============================================================================


class PassConfig(BaseModel):
    """One contemplative pass: when it runs and what it asks for."""

    model_config = ConfigDict(populate_by_name=True)

    delay_minutes: int = Field(default=0, alias="delayMinutes", ge=0)
    prompt: str = ""


class LLMConfig(BaseModel):
    """Reflection endpoint parameters."""

    model_config = ConfigDict(populate_by_name=True)

    base_url: Optional[str] = Field(default=None, alias="endpoint")
    model: Optional[str] = None
    temperature: float = 0.6
    max_tokens: int = Field(default=700, alias="maxTokens")
    timeout_seconds: float = Field(default=45.0, alias="timeoutSeconds")


class TaggingConfig(BaseModel):
    """Topic tagging of newly queued inquiries."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    temperature: float = 0.3
    max_tokens: int = Field(default=100, alias="maxTokens")
    timeout_seconds: float = Field(default=15.0, alias="timeoutSeconds")


class OutputConfig(BaseModel):
    """Explicit output locations; both must be set to override per-agent paths."""

    model_config = ConfigDict(populate_by_name=True)

    growth_vectors_path: Optional[Path] = Field(default=None, alias="growthVectorsPath")
    insights_path: Optional[Path] = Field(default=None, alias="insightsPath")


class ContemplationConfig(BaseModel):
    """Complete plugin configuration."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    passes: dict[str, PassConfig] = Field(default_factory=dict)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    tagging: TaggingConfig = Field(default_factory=TaggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def pass_numbers(self) -> list[int]:
        """Configured pass numbers in ascending order."""
        return sorted(int(n) for n in self.passes)

    def pass_config(self, number: int) -> Optional[PassConfig]:
        return self.passes.get(str(number))


DEFAULT_CONFIG: dict[str, Any] = {
    "enabled": True,
    "extraction": {
        "entropyThreshold": 0.5,
        "keywords": [],
        "maxGapsPerExchange": 2,
    },
    "passes": {
        "1": {
            "delayMinutes": 0,
            "prompt": (
                "Initial exploration. Take the question at face value: what is "
                "actually being asked, what is already known, and where does the "
                "uncertainty sit?"
            ),
        },
        "2": {
            "delayMinutes": 240,
            "prompt": (
                "Settling. Revisit the first pass with fresh eyes. What holds up, "
                "what was naive, and what connections have surfaced since?"
            ),
        },
        "3": {
            "delayMinutes": 1200,
            "prompt": (
                "Synthesis. Distill the earlier passes into one clear insight and "
                "state what would change your mind."
            ),
        },
    },
    "llm": {
        "temperature": 0.6,
        "maxTokens": 700,
        "timeoutSeconds": 45,
    },
    "tagging": {
        "enabled": True,
    },
    "output": {},
}


def deep_merge(default: dict, user: dict) -> dict:
    """Recursively merge user config over defaults (user values win)."""
    result = dict(default)

    for key, value in (user or {}).items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(
    user_config: Optional[dict[str, Any]] = None,
    config_file: Optional[Path] = None,
) -> ContemplationConfig:
    """Build the plugin configuration.

    Args:
        user_config: Overrides merged over DEFAULT_CONFIG (applied last)
        config_file: Optional JSON file merged over DEFAULT_CONFIG first

    Returns:
        Validated ContemplationConfig

    Raises:
        ValueError: If config_file is not valid JSON
    """
    merged = dict(DEFAULT_CONFIG)

    if config_file is not None:
        try:
            file_config = json.loads(Path(config_file).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid config file {config_file}: {e}") from e
        merged = deep_merge(merged, file_config)

    merged = deep_merge(merged, user_config or {})
    return ContemplationConfig.model_validate(merged)
