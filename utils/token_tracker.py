from datetime import datetime
from typing import Any

from orchestrator.agent_types import AgentResult, TokenUsage


class TokenTracker:
    """
    Tracks token usage across agent runs.
    Each run may span several engine calls; usage arrives already summed per run.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Reset all counters to zero."""
        self.usage = TokenUsage()
        self.requests = 0
        self.steps = 0

    def update(self, result: AgentResult) -> None:
        self.requests += 1
        self.steps += result.step_count
        self.usage = self.usage + result.usage

    def get_summary(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "steps": self.steps,
            "prompt_tokens": self.usage.prompt_tokens,
            "completion_tokens": self.usage.completion_tokens,
            "total_tokens": self.usage.total_tokens,
            "timestamp": datetime.now().isoformat(),
        }

    def format_summary(self) -> str:
        stats = self.get_summary()
        return (
            f"Requests: {stats['requests']}\n"
            f"Agent steps: {stats['steps']}\n"
            f"Prompt tokens: {stats['prompt_tokens']}\n"
            f"Completion tokens: {stats['completion_tokens']}\n"
            f"Total tokens: {stats['total_tokens']}"
        )
