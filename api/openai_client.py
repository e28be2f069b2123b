from typing import Any

import openai

from orchestrator.agent_types import EngineTurn, TokenUsage, ToolCallRequest
from utils.logger import get_logger

from .base_client import BaseReasoningEngine, EngineError, ToolSpec

logger = get_logger(__name__)


class OpenAIReasoningEngine(BaseReasoningEngine):
    """
    Reasoning engine backed by the OpenAI chat-completions API with function calling.
    Works with any OpenAI-compatible endpoint through base_url.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        base_url: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        client: Any = None,
    ):
        """
        Initialize the engine.

        Args:
            api_key: The OpenAI API key
            model_name: Model to call (default: gpt-4o-mini)
            base_url: Optional OpenAI-compatible endpoint
            temperature: Sampling temperature
            max_tokens: Completion token cap per step
            client: Pre-built AsyncOpenAI client (tests inject fakes here)
        """
        if client is None and not api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables")
        self.client = client or openai.AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[ToolSpec],
    ) -> EngineTurn:
        request: dict[str, Any] = {
            "model": self.model_name,
            "messages": [{"role": "system", "content": system}, *messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            request["tools"] = [tool.to_openai() for tool in tools]
            request["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**request)
        except openai.APIError as e:
            error = self._normalize_error(e)
            logger.error(
                f"OpenAI call failed: {e}",
                extra={"extra_fields": {"model": self.model_name, "code": error.code}},
            )
            raise error from e

        if not response.choices:
            raise EngineError("OpenAI returned no choices", code="provider_error", retryable=True)

        choice = response.choices[0]
        message = choice.message
        tool_calls = tuple(
            ToolCallRequest(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (message.tool_calls or [])
        )

        usage = TokenUsage()
        if getattr(response, "usage", None):
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return EngineTurn(
            text=message.content or "",
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason,
            usage=usage,
        )

    async def aclose(self) -> None:
        await self.client.close()
