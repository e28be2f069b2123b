from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from orchestrator.agent_types import EngineTurn


@dataclass(frozen=True)
class ToolSpec:
    """A tool as advertised to the reasoning engine: name, description, JSON schema."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class EngineError(Exception):
    """A reasoning-engine call failed in a way the loop cannot absorb."""

    def __init__(self, message: str, code: str = "unknown", retryable: bool = False):
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class BaseReasoningEngine(ABC):
    """
    Abstract base class for reasoning engines.
    An engine turns (system instruction, conversation, tools) into either final
    text or tool-call requests; the agent loop decides what happens next.
    """

    model_name: str = "unknown"

    @abstractmethod
    async def generate(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[ToolSpec],
    ) -> EngineTurn:
        """
        Run one reasoning step.

        Args:
            system: System instruction for this step
            messages: Conversation so far in chat-completions format, including
                earlier assistant tool calls and tool results
            tools: Tools the engine may call

        Returns:
            EngineTurn with text and/or tool calls

        Raises:
            EngineError: On provider failures
        """

    async def aclose(self) -> None:
        return None

    def _normalize_error(self, exc: Exception) -> EngineError:
        """Map a provider exception onto an EngineError with a stable code."""
        message = str(exc)
        lowered = message.lower()

        if isinstance(exc, TimeoutError) or "timed out" in lowered or "timeout" in lowered:
            return EngineError(message, code="timeout", retryable=True)
        if "401" in lowered or "unauthorized" in lowered or "invalid api key" in lowered:
            return EngineError(message, code="auth", retryable=False)
        if "429" in lowered or "rate limit" in lowered or "too many requests" in lowered:
            return EngineError(message, code="rate_limit", retryable=True)
        if "400" in lowered or "bad request" in lowered:
            return EngineError(message, code="bad_request", retryable=False)
        if any(code in lowered for code in ("500", "502", "503", "504")):
            return EngineError(message, code="provider_error", retryable=True)
        return EngineError(message, code="unknown", retryable=False)
