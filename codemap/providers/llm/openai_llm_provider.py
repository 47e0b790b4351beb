"""OpenAI chat-completions provider for codemap generation."""

from typing import Any

from loguru import logger
from openai import AsyncOpenAI

from codemap.interfaces.llm_provider import LLMProvider, LLMResponse, ToolCallRequest


class OpenAILLMProvider(LLMProvider):
    """Chat Completions client with function-tool support.

    Works against api.openai.com and any OpenAI-compatible endpoint that
    implements function tools (set ``base_url``).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4.1-mini",
        base_url: str | None = None,
        timeout: int = 120,
        max_retries: int = 3,
        reasoning_effort: str | None = None,
    ):
        self._model = model
        self._timeout = timeout
        self._reasoning_effort = reasoning_effort

        client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": timeout,
            "max_retries": max_retries,
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = AsyncOpenAI(**client_kwargs)

        self._usage = {
            "requests_made": 0,
            "total_tokens": 0,
            "prompt_tokens": 0,
            "completion_tokens": 0,
        }

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    def _record_usage(self, response: Any) -> int:
        self._usage["requests_made"] += 1
        usage = response.usage
        if not usage:
            return 0
        self._usage["prompt_tokens"] += usage.prompt_tokens
        self._usage["completion_tokens"] += usage.completion_tokens
        self._usage["total_tokens"] += usage.total_tokens
        return usage.total_tokens

    @staticmethod
    def _check_finish_reason(
        response: Any, finish_reason: str | None, max_completion_tokens: int
    ) -> None:
        if finish_reason == "length":
            usage = response.usage
            detail = (
                f" (prompt={usage.prompt_tokens:,}, completion={usage.completion_tokens:,})"
                if usage
                else ""
            )
            raise RuntimeError(
                f"LLM response truncated at {max_completion_tokens:,} tokens{detail}; "
                "narrow the question or raise CODEMAP_MAX_COMPLETION_TOKENS."
            )
        if finish_reason == "content_filter":
            raise RuntimeError("LLM response blocked by the provider's content filter.")

    async def _chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_completion_tokens: int,
        timeout: int | None,
        parallel_tool_calls: bool,
    ) -> LLMResponse:
        params: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_completion_tokens": max_completion_tokens,
            "timeout": self._timeout if timeout is None else timeout,
        }
        if tools:
            params["tools"] = tools
            params["parallel_tool_calls"] = parallel_tool_calls
        if self._reasoning_effort:
            params["reasoning_effort"] = self._reasoning_effort

        try:
            response = await self._client.chat.completions.create(**params)
            tokens = self._record_usage(response)
            choice = response.choices[0]
            self._check_finish_reason(response, choice.finish_reason, max_completion_tokens)

            content = choice.message.content or ""
            tool_calls = [
                ToolCallRequest(
                    id=call.id,
                    name=call.function.name,
                    arguments=call.function.arguments or "{}",
                )
                for call in (choice.message.tool_calls or [])
                if getattr(call, "function", None) is not None
            ]
            if not tool_calls and not content.strip():
                logger.warning(
                    f"OpenAI returned an empty turn "
                    f"(finish_reason={choice.finish_reason}, tokens={tokens})"
                )
                raise RuntimeError(
                    f"LLM returned empty response (finish_reason={choice.finish_reason})"
                )
        except Exception as e:
            logger.error(f"OpenAI request failed: {e}")
            raise RuntimeError(f"LLM completion failed: {e}") from e

        return LLMResponse(
            content=content,
            tokens_used=tokens,
            model=self._model,
            finish_reason=choice.finish_reason,
            tool_calls=tool_calls,
        )

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> LLMResponse:
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return await self._chat(
            messages, [], max_completion_tokens, timeout, parallel_tool_calls=False
        )

    async def complete_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        parallel_tool_calls: bool = True,
    ) -> LLMResponse:
        """Run one turn with ``tools`` offered; an empty list forces a text answer."""
        return await self._chat(
            messages, tools, max_completion_tokens, timeout, parallel_tool_calls
        )

    async def health_check(self) -> dict[str, Any]:
        try:
            response = await self.complete("Reply with OK.", max_completion_tokens=16)
        except RuntimeError as e:
            return {"status": "unhealthy", "provider": self.name, "error": str(e)}
        return {
            "status": "healthy",
            "provider": self.name,
            "model": self._model,
            "test_response": response.content[:50],
        }

    def get_usage_stats(self) -> dict[str, Any]:
        return dict(self._usage)
