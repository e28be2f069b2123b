import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from api.base_client import EngineError, ToolSpec
from api.openai_client import OpenAIReasoningEngine

SEARCH_SPEC = ToolSpec(
    name="searchWeb",
    description="Search the web",
    parameters={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
)


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    async def create(self, **request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.response


def _engine(completions):
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIReasoningEngine(api_key="", model_name="gpt-4o-mini", client=client)


def _response(content=None, tool_calls=None, finish_reason="stop", usage=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=usage,
    )


def test_requires_api_key_without_client():
    with pytest.raises(ValueError):
        OpenAIReasoningEngine(api_key="")


def test_parses_tool_calls_and_usage():
    call = SimpleNamespace(id="call_1", function=SimpleNamespace(name="searchWeb", arguments='{"query": "f1"}'))
    usage = SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15)
    completions = FakeCompletions(_response(tool_calls=[call], finish_reason="tool_calls", usage=usage))
    engine = _engine(completions)

    turn = asyncio.run(
        engine.generate(system="be helpful", messages=[{"role": "user", "content": "hi"}], tools=[SEARCH_SPEC])
    )

    assert turn.text == ""
    assert turn.finish_reason == "tool_calls"
    assert [(c.id, c.name, c.arguments) for c in turn.tool_calls] == [("call_1", "searchWeb", '{"query": "f1"}')]
    assert turn.usage.total_tokens == 15

    request = completions.requests[0]
    assert request["messages"][0] == {"role": "system", "content": "be helpful"}
    assert request["tools"] == [SEARCH_SPEC.to_openai()]
    assert request["tool_choice"] == "auto"


def test_final_text_without_tools():
    completions = FakeCompletions(_response(content="done"))
    turn = asyncio.run(_engine(completions).generate(system="s", messages=[], tools=[]))

    assert turn.text == "done"
    assert turn.tool_calls == ()
    assert turn.usage.total_tokens == 0
    assert "tools" not in completions.requests[0]


def test_api_error_becomes_engine_error():
    error = openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    engine = _engine(FakeCompletions(error=error))

    with pytest.raises(EngineError) as exc_info:
        asyncio.run(engine.generate(system="s", messages=[], tools=[]))

    assert exc_info.value.code == "timeout"
    assert exc_info.value.retryable is True


def test_empty_choices_is_engine_error():
    engine = _engine(FakeCompletions(SimpleNamespace(choices=[], usage=None)))
    with pytest.raises(EngineError):
        asyncio.run(engine.generate(system="s", messages=[], tools=[]))
