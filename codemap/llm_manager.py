"""LLM manager for codemap generation."""

from typing import Any

from loguru import logger

from codemap.interfaces.llm_provider import LLMProvider
from codemap.providers.llm.openai_llm_provider import OpenAILLMProvider


class LLMManager:
    """Owns the single chat-completion provider shared by every stage.

    Fast mode, Smart mode and the suggestion agent all talk to the same
    provider instance so usage statistics aggregate across a session.
    """

    _providers: dict[str, type[LLMProvider] | Any] = {
        "openai": OpenAILLMProvider,
    }

    def __init__(self, config: dict[str, Any]):
        self._config = config
        self._provider: LLMProvider | None = None

        self._initialize_provider()

    def _create_provider(self, config: dict[str, Any]) -> LLMProvider:
        provider_name = str(config.get("provider", "openai")).strip().lower()
        provider_class = self._providers.get(provider_name)
        if provider_class is None:
            raise ValueError(
                f"Unsupported LLM provider {provider_name!r}. "
                f"Available: {', '.join(sorted(self._providers))}."
            )

        try:
            provider_kwargs = {
                "api_key": config.get("api_key"),
                "model": config.get("model", "gpt-4.1-mini"),
                "base_url": config.get("base_url"),
                "timeout": config.get("timeout", 120),
                "max_retries": config.get("max_retries", 3),
                "reasoning_effort": config.get("reasoning_effort"),
            }
            return provider_class(**provider_kwargs)
        except Exception as exc:
            logger.error(f"Failed to initialize {provider_name} LLM provider: {exc}")
            raise

    def _initialize_provider(self) -> None:
        self._provider = self._create_provider(self._config)
        logger.info(
            f"Initialized LLM provider: {self._provider.name} "
            f"with model: {self._provider.model}"
        )

    def get_provider(self) -> LLMProvider:
        if self._provider is None:
            raise ValueError("LLM provider not configured.")
        return self._provider

    def is_configured(self) -> bool:
        return self._provider is not None

    @classmethod
    def from_provider(cls, provider: LLMProvider) -> "LLMManager":
        """Wrap an already-constructed provider instead of building one from config."""
        manager = cls.__new__(cls)
        manager._config = {"provider": provider.name, "model": provider.model}
        manager._provider = provider
        return manager

    async def health_check(self) -> dict[str, Any]:
        if self._provider is None:
            return {
                "status": "not_configured",
                "message": "LLM provider not configured",
            }
        return await self._provider.health_check()

    def get_usage_stats(self) -> dict[str, Any]:
        if self._provider is None:
            return {}
        return self._provider.get_usage_stats()
