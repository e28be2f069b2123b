from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class AgentState(str, Enum):
    REASONING = "reasoning"
    TOOL_CALL = "tool_call"
    DONE = "done"
    ABORTED = "aborted"


class AgentAborted(Exception):
    """The loop was cancelled by its caller before producing a final answer."""


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if self.total_tokens == 0 and (self.prompt_tokens > 0 or self.completion_tokens > 0):
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class ToolCallRequest:
    id: str
    name: str
    arguments: str  # raw JSON text as produced by the engine


@dataclass(frozen=True)
class EngineTurn:
    text: str = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()
    finish_reason: str | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)

    @property
    def is_final(self) -> bool:
        return not self.tool_calls


@dataclass(frozen=True)
class ToolExecution:
    call_id: str
    name: str
    ok: bool
    output: dict[str, Any]
    arguments: dict[str, Any] | None = None


@dataclass(frozen=True)
class AgentStep:
    index: int
    text: str
    tool_executions: tuple[ToolExecution, ...] = ()


AgentEventType = Literal["step-start", "tool-call", "tool-result", "text", "finish", "error"]


@dataclass(frozen=True)
class AgentEvent:
    type: AgentEventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **self.data}


@dataclass(frozen=True)
class AgentResult:
    text: str
    state: AgentState
    steps: tuple[AgentStep, ...]
    budget_exhausted: bool
    response_messages: tuple[dict[str, Any], ...]
    usage: TokenUsage = field(default_factory=TokenUsage)

    @property
    def step_count(self) -> int:
        return len(self.steps)
