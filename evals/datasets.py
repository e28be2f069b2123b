"""Evaluation datasets: a question conversation plus an expert answer per case."""

from dataclasses import dataclass
from typing import Any

DATASET_NAMES = ("dev", "ci", "regression")


@dataclass(frozen=True)
class EvalCase:
    input: list[dict[str, Any]]
    expected: str


def _question(case_id: str, text: str) -> list[dict[str, Any]]:
    return [{"id": case_id, "role": "user", "parts": [{"type": "text", "text": text}]}]


DEV_DATA = [
    EvalCase(
        input=_question(
            "3",
            "Between Max Verstappen and Lando Norris, who had the most wins in their respective championship seasons?",
        ),
        expected="Max Verstappen had the most wins in his last championship winning season.",
    ),
    EvalCase(
        input=_question(
            "4",
            "Between Max Verstappen and Lando Norris, who had the most overall fastest laps in their last championship winning season?",
        ),
        expected="Lando Norris had the most overall fastest lap in his last championship winning season.",
    ),
]

CI_DATA = [
    EvalCase(
        input=_question("1", "Who is the formula one world champion in 2025?"),
        expected="lando Norris",
    ),
    EvalCase(
        input=_question("2", "Who is the formula one world champion in 2024?"),
        expected="max Verstappen",
    ),
]

REGRESSION_DATA = [
    EvalCase(
        input=_question(
            "4",
            "Between Max Verstappen and Lando Norris, who had the most overall fastest lap in their last championship winning season?",
        ),
        expected="Lando Norris had the most overall fastest lap in his last championship winning season.",
    ),
]


def load_dataset(name: str = "dev") -> list[EvalCase]:
    """
    dev is always included; ci adds the CI cases; regression adds CI and regression cases.

    Raises:
        ValueError: If name is not a known dataset
    """
    if name not in DATASET_NAMES:
        raise ValueError(f"Unknown dataset '{name}'. Choose from: {', '.join(DATASET_NAMES)}")

    data = list(DEV_DATA)
    if name == "ci":
        data.extend(CI_DATA)
    elif name == "regression":
        data.extend(CI_DATA)
        data.extend(REGRESSION_DATA)
    return data
