"""LLM configuration for codemap generation."""

import argparse
from typing import Any

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LLM_MODEL = "gpt-4.1-mini"


class LLMConfig(BaseSettings):
    """Chat-completion client configuration.

    - Auth: CODEMAP_LLM_API_KEY (falls back to OPENAI_API_KEY)
    - Endpoint: CODEMAP_LLM_BASE_URL (any OpenAI-compatible endpoint)
    - Model: CODEMAP_LLM_MODEL
    """

    model_config = SettingsConfigDict(
        env_prefix="CODEMAP_LLM_",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
        extra="ignore",
    )

    model: str = Field(
        default=DEFAULT_LLM_MODEL,
        description="Model identifier used for every generation stage.",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="API key (reads CODEMAP_LLM_API_KEY or OPENAI_API_KEY)",
        validation_alias=AliasChoices("CODEMAP_LLM_API_KEY", "OPENAI_API_KEY"),
    )

    base_url: str | None = Field(
        default=None,
        description="Optional OpenAI-compatible base URL",
    )

    timeout: int = Field(default=120, ge=1, description="Per-request timeout (s)")
    max_retries: int = Field(default=3, ge=0, description="Client retry budget")
    reasoning_effort: str | None = Field(
        default=None,
        description="Reasoning effort for reasoning models (low, medium, high)",
    )

    @property
    def provider(self) -> str:
        """Human-readable provider label for metadata/logs."""
        return "openai"

    @field_validator("base_url")
    def validate_base_url(cls, value: str | None) -> str | None:  # noqa: N805
        """Normalize the base URL (strip whitespace and trailing slash)."""
        if value is None:
            return None
        normalized = value.strip().rstrip("/")
        if not normalized:
            return None
        if not normalized.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL; received {value!r}")
        return normalized

    @field_validator("reasoning_effort")
    def validate_reasoning_effort(cls, value: str | None) -> str | None:  # noqa: N805
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in ("minimal", "low", "medium", "high"):
            raise ValueError(
                "reasoning_effort must be one of minimal, low, medium, high; "
                f"received {value!r}"
            )
        return normalized

    def get_provider_config(self) -> dict[str, Any]:
        """Return the provider config dict consumed by LLMManager."""
        config: dict[str, Any] = {
            "provider": self.provider,
            "model": self.model,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
        }
        if self.base_url:
            config["base_url"] = self.base_url
        if self.reasoning_effort:
            config["reasoning_effort"] = self.reasoning_effort
        if self.api_key:
            config["api_key"] = self.api_key.get_secret_value()
        return config

    def is_provider_configured(self) -> bool:
        """Return True when required auth is available."""
        return self.api_key is not None

    def get_missing_config(self) -> list[str]:
        """List missing required configuration keys."""
        if self.api_key:
            return []
        return ["api_key (set CODEMAP_LLM_API_KEY or OPENAI_API_KEY)"]

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add LLM-related CLI arguments."""
        parser.add_argument(
            "--llm-model",
            help="Model used for every codemap generation stage.",
        )
        parser.add_argument(
            "--llm-base-url",
            help="OpenAI-compatible base URL.",
        )

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract LLM config overrides from CLI arguments."""
        overrides: dict[str, Any] = {}

        if getattr(args, "llm_model", None):
            overrides["model"] = args.llm_model
        if getattr(args, "llm_base_url", None):
            overrides["base_url"] = args.llm_base_url

        return overrides

    def __repr__(self) -> str:
        """String representation hiding sensitive information."""
        api_key_display = "***" if self.api_key else None
        return (
            f"LLMConfig("
            f"provider={self.provider}, "
            f"model={self.model}, "
            f"api_key={api_key_display}, "
            f"base_url={self.base_url})"
        )
