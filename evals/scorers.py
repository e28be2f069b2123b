"""Scorers for research-agent answers."""

from dataclasses import dataclass, field
from typing import Any, Literal

import openai
from pydantic import BaseModel, Field, ValidationError

from orchestrator.response_validator import contains_markdown_link
from utils.logger import get_logger

logger = get_logger(__name__)

# Letter grades are mapped to scores here; models are poor at emitting numeric scores directly
FACTUALITY_SCORES = {"A": 0.4, "B": 0.6, "C": 1.0, "D": 0.0, "E": 1.0}

FACTUALITY_PROMPT = """You are comparing a submitted answer to an expert answer on a given question. Here is the data:

[BEGIN DATA]

************

[Question]: {question}

************

[Expert]: {ground_truth}

************

[Submission]: {submission}

************

[END DATA]

Compare the factual content of the submitted answer with the expert answer. Ignore any differences in style, grammar, or punctuation.

The submitted answer may either be a subset or superset of the expert answer, or it may conflict with it. Determine which case applies. Answer the question by selecting one of the following options:

(A) The submitted answer is a subset of the expert answer and is fully consistent with it.

(B) The submitted answer is a superset of the expert answer and is fully consistent with it.

(C) The submitted answer contains all the same details as the expert answer.

(D) There is a disagreement between the submitted answer and the expert answer.

(E) The answers differ, but these differences don't matter from the perspective of factuality.

Respond with a JSON object: {{"answer": "<A|B|C|D|E>", "rationale": "<why you chose this answer, in detail>"}}"""


@dataclass(frozen=True)
class Score:
    name: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


class FactualityVerdict(BaseModel):
    answer: Literal["A", "B", "C", "D", "E"] = Field(..., description="Your selection.")
    rationale: str = Field(..., description="Why you chose this answer. Be very detailed.")


def contains_links(output: str) -> Score:
    return Score(name="Contains Links", score=1.0 if contains_markdown_link(output) else 0.0)


def question_from_messages(messages: list[dict[str, Any]]) -> str:
    """Join the first text part of every user message."""
    questions = []
    for message in messages:
        if message.get("role") != "user":
            continue
        text_part = next(
            (p for p in message.get("parts") or [] if p.get("type") == "text" and "text" in p),
            None,
        )
        questions.append((text_part or {}).get("text", ""))
    return " ".join(questions)


async def check_factuality(
    *,
    question: str,
    ground_truth: str,
    submission: str,
    client: Any,
    model: str,
) -> Score:
    """
    Grade a submission against an expert answer with an LLM judge.

    Args:
        question: The question asked
        ground_truth: Expert answer
        submission: The agent's answer
        client: openai.AsyncOpenAI (or compatible) client
        model: Judge model name

    Returns:
        Score with the judge's rationale in metadata; a judge failure scores 0
    """
    prompt = FACTUALITY_PROMPT.format(
        question=question, ground_truth=ground_truth, submission=submission
    )
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
            temperature=0,
        )
        verdict = FactualityVerdict.model_validate_json(response.choices[0].message.content or "")
    except (openai.APIError, ValidationError) as e:
        logger.error(
            f"Factuality judge failed: {e}",
            extra={"extra_fields": {"model": model, "error_type": type(e).__name__}},
        )
        return Score(name="Factuality", score=0.0, metadata={"error": str(e)})

    return Score(
        name="Factuality",
        score=FACTUALITY_SCORES[verdict.answer],
        metadata={"answer": verdict.answer, "rationale": verdict.rationale},
    )


RELEVANCY_SCORES = {"A": 1.0, "B": 0.5, "C": 0.0}

RELEVANCY_PROMPT = """You are judging whether a submitted answer actually answers the question it was given. Here is the data:

[BEGIN DATA]

************

[Question]: {question}

************

[Submission]: {submission}

************

[END DATA]

Judge relevance only, not correctness: a wrong but on-topic answer can still be relevant. Citations, source links and short notes about how recent the information is count as relevant content. Select one of the following options:

(A) The submission directly answers the question and stays on topic.

(B) The submission partially answers the question, or buries the answer in material the question did not ask for.

(C) The submission does not answer the question.

Respond with a JSON object: {{"answer": "<A|B|C>", "rationale": "<why you chose this answer, in detail>"}}"""


class RelevancyVerdict(BaseModel):
    answer: Literal["A", "B", "C"] = Field(..., description="Your selection.")
    rationale: str = Field(..., description="Why you chose this answer. Be very detailed.")


async def check_answer_relevancy(
    *,
    question: str,
    submission: str,
    client: Any,
    model: str,
) -> Score:
    """Grade how directly a submission answers the question; a judge failure scores 0."""
    prompt = RELEVANCY_PROMPT.format(question=question, submission=submission)
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
            temperature=0,
        )
        verdict = RelevancyVerdict.model_validate_json(response.choices[0].message.content or "")
    except (openai.APIError, ValidationError) as e:
        logger.error(
            f"Answer relevancy judge failed: {e}",
            extra={"extra_fields": {"model": model, "error_type": type(e).__name__}},
        )
        return Score(name="Answer Relevancy", score=0.0, metadata={"error": str(e)})

    return Score(
        name="Answer Relevancy",
        score=RELEVANCY_SCORES[verdict.answer],
        metadata={"answer": verdict.answer, "rationale": verdict.rationale},
    )
