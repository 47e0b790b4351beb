"""LLM Provider Interface for codemap generation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolCallRequest:
    """A single tool invocation requested by the model."""

    id: str
    name: str
    arguments: str


@dataclass
class LLMResponse:
    """Response from LLM completion."""

    content: str
    tokens_used: int
    model: str
    finish_reason: str | None = None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'openai')."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier."""
        ...

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion for the given prompt.

        Args:
            prompt: User prompt
            system: Optional system message
            max_completion_tokens: Maximum completion tokens to generate
            timeout: Optional timeout in seconds for the request

        Returns:
            LLMResponse with content and metadata
        """
        ...

    async def complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        parallel_tool_calls: bool = True,
    ) -> LLMResponse:
        """
        Run one model turn over a chat transcript with function tools available.

        The caller owns the conversation loop: it executes any returned
        ``tool_calls``, appends the results as ``tool`` messages and calls
        again until the model answers without requesting tools.

        Args:
            messages: Chat messages in OpenAI wire format
            tools: Function tool definitions in OpenAI wire format
            max_completion_tokens: Maximum completion tokens to generate
            timeout: Optional timeout in seconds for the request
            parallel_tool_calls: Allow several tool calls in one turn

        Returns:
            LLMResponse whose ``tool_calls`` is empty on a final answer

        Raises:
            NotImplementedError: If provider doesn't support tool calling
        """
        raise NotImplementedError(f"{self.name} provider does not support tool calling")

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check.

        Returns:
            Health status dictionary
        """
        ...

    @abstractmethod
    def get_usage_stats(self) -> dict[str, Any]:
        """
        Get usage statistics.

        Returns:
            Usage stats dictionary
        """
        ...
