"""
AgentLoop - step-bounded reasoning/tool-use state machine.

REASONING -> TOOL_CALL -> REASONING ... -> DONE | ABORTED

Key guarantees:
- The engine is called at most `step_limit` times per run
- Tool failures never escape; they are appended as tool results the engine can read
- Setting the cancel event aborts the in-flight engine call or tool fan-out
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, TypeVar

from api.base_client import BaseReasoningEngine
from orchestrator.agent_types import (
    AgentAborted,
    AgentEvent,
    AgentResult,
    AgentState,
    AgentStep,
    EngineTurn,
    TokenUsage,
    ToolExecution,
)
from orchestrator.prompt import build_system_prompt
from orchestrator.response_validator import ResponseValidator
from orchestrator.tools import RetrievalTools
from utils.logger import get_logger
from utils.telemetry import Telemetry

logger = get_logger(__name__)

DEFAULT_STEP_LIMIT = 8

T = TypeVar("T")
EventCallback = Callable[[AgentEvent], None]


def _assistant_message(turn: EngineTurn) -> dict[str, Any]:
    message: dict[str, Any] = {"role": "assistant", "content": turn.text or None}
    if turn.tool_calls:
        message["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments},
            }
            for call in turn.tool_calls
        ]
    return message


def _tool_message(execution: ToolExecution) -> dict[str, Any]:
    return {
        "role": "tool",
        "tool_call_id": execution.call_id,
        "content": json.dumps(execution.output, ensure_ascii=False),
    }


class AgentLoop:
    def __init__(
        self,
        engine: BaseReasoningEngine,
        tools: RetrievalTools,
        step_limit: int = DEFAULT_STEP_LIMIT,
        telemetry: Telemetry | None = None,
        scrape_urls_count: int = 5,
        now_fn: Callable[[], datetime] | None = None,
    ):
        if step_limit < 1:
            raise ValueError("step_limit must be at least 1")
        self.engine = engine
        self.tools = tools
        self.step_limit = step_limit
        self.telemetry = telemetry or Telemetry()
        self.scrape_urls_count = scrape_urls_count
        self.now_fn = now_fn or (lambda: datetime.now(timezone.utc))
        self._validator = ResponseValidator()

    async def run(
        self,
        conversation: list[dict[str, Any]],
        cancel_event: asyncio.Event | None = None,
        on_event: EventCallback | None = None,
    ) -> AgentResult:
        """
        Drive the conversation to a final answer.

        Args:
            conversation: Chat-completions style messages, oldest first
            cancel_event: Set by the caller to abort the run
            on_event: Called synchronously with every AgentEvent as it happens

        Returns:
            AgentResult in state DONE; `budget_exhausted` is True when the
            step limit, not a text-only turn, ended the run

        Raises:
            AgentAborted: If cancel_event was set before the run finished
            EngineError: If the reasoning engine fails
        """
        emit = on_event or (lambda event: None)
        system = build_system_prompt(self.now_fn(), self.scrape_urls_count)
        tool_specs = self.tools.specs()

        messages = list(conversation)
        response_messages: list[dict[str, Any]] = []
        steps: list[AgentStep] = []
        texts: list[str] = []
        usage = TokenUsage()
        state = AgentState.REASONING
        budget_exhausted = False
        finish_reason: str | None = None

        with self.telemetry.span("agent.run", step_limit=self.step_limit) as span:
            try:
                for index in range(self.step_limit):
                    emit(AgentEvent("step-start", {"step": index}))

                    turn = await self._race(
                        self.engine.generate(system=system, messages=messages, tools=tool_specs),
                        cancel_event,
                    )
                    usage = usage + turn.usage
                    finish_reason = turn.finish_reason

                    if turn.text:
                        texts.append(turn.text)
                        emit(AgentEvent("text", {"step": index, "text": turn.text}))

                    assistant = _assistant_message(turn)
                    messages.append(assistant)
                    response_messages.append(assistant)

                    if turn.is_final:
                        steps.append(AgentStep(index=index, text=turn.text))
                        state = AgentState.DONE
                        break

                    state = AgentState.TOOL_CALL
                    for call in turn.tool_calls:
                        emit(
                            AgentEvent(
                                "tool-call",
                                {"step": index, "toolCallId": call.id, "toolName": call.name, "arguments": call.arguments},
                            )
                        )

                    executions = await self._race(
                        asyncio.gather(*(self.tools.execute(call) for call in turn.tool_calls)),
                        cancel_event,
                    )

                    for execution in executions:
                        emit(
                            AgentEvent(
                                "tool-result",
                                {
                                    "step": index,
                                    "toolCallId": execution.call_id,
                                    "toolName": execution.name,
                                    "ok": execution.ok,
                                    "result": execution.output,
                                },
                            )
                        )
                        tool_message = _tool_message(execution)
                        messages.append(tool_message)
                        response_messages.append(tool_message)

                    steps.append(AgentStep(index=index, text=turn.text, tool_executions=tuple(executions)))
                    state = AgentState.REASONING
                else:
                    budget_exhausted = True
                    state = AgentState.DONE
            except AgentAborted:
                span["state"] = AgentState.ABORTED.value
                span["steps"] = len(steps)
                logger.info(
                    "Agent run aborted",
                    extra={"extra_fields": {"steps": len(steps), "state": AgentState.ABORTED.value}},
                )
                raise

            span["state"] = state.value
            span["steps"] = len(steps)
            span["budget_exhausted"] = budget_exhausted

        text = "\n\n".join(texts)
        self._check_answer(text)

        if budget_exhausted:
            logger.warning(
                f"Agent stopped at step limit ({self.step_limit})",
                extra={"extra_fields": {"steps": len(steps)}},
            )

        emit(
            AgentEvent(
                "finish",
                {
                    "steps": len(steps),
                    "budgetExhausted": budget_exhausted,
                    "finishReason": finish_reason,
                    "usage": asdict(usage),
                },
            )
        )

        return AgentResult(
            text=text,
            state=state,
            steps=tuple(steps),
            budget_exhausted=budget_exhausted,
            response_messages=tuple(response_messages),
            usage=usage,
        )

    def _check_answer(self, text: str) -> None:
        validation = self._validator.validate(text)
        if not validation.ok:
            logger.warning(
                f"Final answer failed validation: {validation.reason}",
                extra={"extra_fields": {"reason": validation.reason, "chars": len(text)}},
            )

    async def _race(self, awaitable: Awaitable[T], cancel_event: asyncio.Event | None) -> T:
        """Await `awaitable` unless cancel_event fires first, in which case it is cancelled."""
        if cancel_event is None:
            return await awaitable

        task = asyncio.ensure_future(awaitable)
        if cancel_event.is_set():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise AgentAborted("Agent run cancelled")

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise AgentAborted("Agent run cancelled")
