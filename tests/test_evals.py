import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from evals.datasets import CI_DATA, DEV_DATA, REGRESSION_DATA, load_dataset
from evals.run import score_case
from evals.scorers import (
    FACTUALITY_SCORES,
    RELEVANCY_SCORES,
    check_answer_relevancy,
    check_factuality,
    contains_links,
    question_from_messages,
)


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **request):
        self.requests.append(request)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _judge(completions):
    return asyncio.run(
        check_factuality(
            question="Who is the formula one world champion in 2025?",
            ground_truth="Lando Norris",
            submission="Lando Norris ([F1](https://www.formula1.com))",
            client=_client(completions),
            model="gpt-4o-mini",
        )
    )


def test_contains_links():
    assert contains_links("see [F1](https://formula1.com)").score == 1.0
    assert contains_links("see https://formula1.com").score == 0.0


def test_dataset_composition():
    assert load_dataset("dev") == DEV_DATA
    assert load_dataset("ci") == DEV_DATA + CI_DATA
    assert load_dataset("regression") == DEV_DATA + CI_DATA + REGRESSION_DATA
    assert len(load_dataset("regression")) == 5


def test_unknown_dataset():
    with pytest.raises(ValueError):
        load_dataset("prod")


def test_question_from_messages_joins_user_text():
    messages = [
        {"role": "user", "parts": [{"type": "text", "text": "Who won"}]},
        {"role": "assistant", "parts": [{"type": "text", "text": "ignored"}]},
        {"role": "user", "parts": [{"type": "text", "text": "in 2025?"}]},
    ]
    assert question_from_messages(messages) == "Who won in 2025?"


def test_factuality_maps_letter_to_score():
    completions = FakeCompletions(content=json.dumps({"answer": "B", "rationale": "adds a citation"}))
    score = _judge(completions)

    assert score.name == "Factuality"
    assert score.score == FACTUALITY_SCORES["B"]
    assert score.metadata == {"answer": "B", "rationale": "adds a citation"}
    request = completions.requests[0]
    assert request["response_format"] == {"type": "json_object"}
    assert "Lando Norris" in request["messages"][0]["content"]


def test_factuality_malformed_verdict_scores_zero():
    score = _judge(FakeCompletions(content=json.dumps({"answer": "Z"})))
    assert score.score == 0.0
    assert "error" in score.metadata


def test_factuality_judge_error_scores_zero():
    error = openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    score = _judge(FakeCompletions(error=error))
    assert score.score == 0.0


def _relevancy(completions, submission="Lando Norris ([F1](https://www.formula1.com))"):
    return asyncio.run(
        check_answer_relevancy(
            question="Who is the formula one world champion in 2025?",
            submission=submission,
            client=_client(completions),
            model="gpt-4o-mini",
        )
    )


def test_answer_relevancy_maps_letter_to_score():
    completions = FakeCompletions(content=json.dumps({"answer": "B", "rationale": "mostly about 2024"}))
    score = _relevancy(completions)

    assert score.name == "Answer Relevancy"
    assert score.score == RELEVANCY_SCORES["B"] == 0.5
    assert score.metadata["rationale"] == "mostly about 2024"
    request = completions.requests[0]
    assert request["response_format"] == {"type": "json_object"}
    assert "Who is the formula one world champion in 2025?" in request["messages"][0]["content"]


def test_answer_relevancy_judge_failure_scores_zero():
    assert _relevancy(FakeCompletions(content="not json")).score == 0.0


class QueuedCompletions(FakeCompletions):
    def __init__(self, contents):
        super().__init__()
        self.contents = list(contents)

    async def create(self, **request):
        self.content = self.contents.pop(0)
        return await super().create(**request)


def test_score_case_runs_all_scorers():
    answer = "Lando Norris ([F1](https://www.formula1.com))"

    async def run(messages, **kwargs):
        return SimpleNamespace(text=answer)

    judge = QueuedCompletions(
        [
            json.dumps({"answer": "C", "rationale": "same facts"}),
            json.dumps({"answer": "A", "rationale": "direct"}),
        ]
    )
    output, scores = asyncio.run(
        score_case(CI_DATA[0], SimpleNamespace(run=run), _client(judge), "gpt-4o-mini")
    )

    assert output == answer
    assert [(s.name, s.score) for s in scores] == [
        ("Contains Links", 1.0),
        ("Factuality", 1.0),
        ("Answer Relevancy", 1.0),
    ]
