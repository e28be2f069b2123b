"""
Run the research agent over an eval dataset and print the scores.

Usage:
    python -m evals.run --dataset ci
    EVAL_DATASET=regression python -m evals.run
"""

import argparse
import asyncio
import os
import sys
from statistics import mean

import openai
from dotenv import load_dotenv

from config.config import Config
from evals.datasets import DATASET_NAMES, EvalCase, load_dataset
from evals.scorers import (
    Score,
    check_answer_relevancy,
    check_factuality,
    contains_links,
    question_from_messages,
)
from orchestrator.agent_loop import AgentLoop
from orchestrator.deep_search import ask_deep_search, create_agent_loop
from server.utils import to_model_messages
from utils.logger import get_logger

logger = get_logger(__name__)


async def score_case(
    case: EvalCase,
    loop: AgentLoop,
    judge: openai.AsyncOpenAI,
    judge_model: str,
) -> tuple[str, list[Score]]:
    output = await ask_deep_search(to_model_messages(case.input), loop=loop)
    question = question_from_messages(case.input)
    factuality = await check_factuality(
        question=question,
        ground_truth=case.expected,
        submission=output,
        client=judge,
        model=judge_model,
    )
    relevancy = await check_answer_relevancy(
        question=question,
        submission=output,
        client=judge,
        model=judge_model,
    )
    return output, [contains_links(output), factuality, relevancy]


async def run_eval(dataset: str, config: Config) -> dict[str, float]:
    cases = load_dataset(dataset)
    loop = create_agent_loop(config)
    judge = openai.AsyncOpenAI(api_key=config.OPENAI_API_KEY, base_url=config.OPENAI_BASE_URL)

    totals: dict[str, list[float]] = {}
    try:
        for index, case in enumerate(cases, start=1):
            question = question_from_messages(case.input)
            print(f"\n[{index}/{len(cases)}] {question}")
            output, scores = await score_case(case, loop, judge, config.FACTUALITY_MODEL)
            print(f"Answer: {output[:500]}{'...' if len(output) > 500 else ''}")
            for score in scores:
                totals.setdefault(score.name, []).append(score.score)
                rationale = score.metadata.get("rationale")
                print(f"  {score.name}: {score.score:.2f}" + (f" ({rationale[:200]})" if rationale else ""))
    finally:
        await loop.engine.aclose()
        await loop.tools.aclose()
        await judge.close()

    return {name: mean(values) for name, values in totals.items()}


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Deep Search Eval")
    parser.add_argument(
        "--dataset",
        choices=DATASET_NAMES,
        default=os.getenv("EVAL_DATASET", "dev"),
        help="dev, ci (dev + ci cases) or regression (dev + ci + regression cases)",
    )
    args = parser.parse_args(argv)

    config = Config()
    if not config.validate():
        print("Configuration is incomplete; see the log for details.")
        return 1

    summary = asyncio.run(run_eval(args.dataset, config))

    print("\n=== Eval Summary ===")
    for name, value in summary.items():
        print(f"{name}: {value:.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
