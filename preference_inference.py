# -*- coding: utf-8 -*-
"""
Preference inference - turning value-survey answers into objective weights.

A respondent answers a handful of likert (1-5) or binary (0/1) questions, each
mapped to one of three objectives. Every answer nudges its objective up or
down, taking the difference from the other two so the tradeoff stays
zero-sum, and the result is normalized to integer weights summing to 100.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from scipy.spatial.distance import cityblock

from sim_utils import clamp, round_half_up

logger = logging.getLogger(__name__)

OBJECTIVES = ("accuracy", "fairness", "robustness")
WEIGHT_TOTAL = 100

INFERENCE_DEFAULTS = {
    "baseline": (40.0, 40.0, 20.0),  # accuracy, fairness, robustness
    "points_per_question": 15.0,
    "min_weight": 5.0,
    "neutral_answer": 3,
}

# Share of a signal taken from the other two objectives, keyed by the mapped one.
COUPLING = {
    "accuracy": {"fairness": 0.6, "robustness": 0.4},
    "fairness": {"accuracy": 0.6, "robustness": 0.4},
    "robustness": {"accuracy": 0.5, "fairness": 0.5},
}


class InvalidWeights(ValueError):
    """Objective weights that are negative, non-integral or do not sum to 100."""


class QuestionType(Enum):
    LIKERT = "likert"
    BINARY = "binary"


class Objective(Enum):
    ACCURACY = "accuracy"
    FAIRNESS = "fairness"
    ROBUSTNESS = "robustness"


@dataclass(frozen=True)
class ObjectiveWeights:
    """Three-way accuracy/fairness/robustness tradeoff summing to exactly 100."""
    accuracy: int
    fairness: int
    robustness: int

    def as_tuple(self):
        return (self.accuracy, self.fairness, self.robustness)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ValueQuestion:
    id: str
    question_type: QuestionType
    maps_to: Objective
    weight_multiplier: float = 1.0
    related_group_attribute: Optional[str] = None
    text: str = ""

    def __post_init__(self):
        # Accept plain strings from callers and keep the enum inside.
        object.__setattr__(self, "question_type", QuestionType(self.question_type))
        object.__setattr__(self, "maps_to", Objective(self.maps_to))
        if not self.weight_multiplier > 0:
            raise ValueError(
                f"Question '{self.id}' weight_multiplier must be positive. "
                f"Got {self.weight_multiplier}."
            )


@dataclass(frozen=True)
class ValueResponse:
    question_id: str
    answer: float


# =============================================================================
# VALIDATION
# =============================================================================

def validate_weights(weights: ObjectiveWeights) -> ObjectiveWeights:
    """Reject weights that are negative, non-integral or do not sum to 100."""
    values = weights.as_tuple()
    for name, value in zip(OBJECTIVES, values):
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise InvalidWeights(f"Weight '{name}' must be numeric. Got {value!r}.")
        if not math.isfinite(float(value)):
            raise InvalidWeights(f"Weight '{name}' must be finite. Got {value}.")
        if value < 0:
            raise InvalidWeights(f"Weight '{name}' must be non-negative. Got {value}.")
        if float(value) != int(value):
            raise InvalidWeights(f"Weight '{name}' must be an integer. Got {value}.")
    total = sum(int(v) for v in values)
    if total != WEIGHT_TOTAL:
        raise InvalidWeights(f"Objective weights must sum to {WEIGHT_TOTAL}. Got {total}.")
    return weights


def coerce_weights(weights) -> ObjectiveWeights:
    """
    Return validated ObjectiveWeights from an ObjectiveWeights or a mapping with
    'accuracy', 'fairness' and 'robustness' keys.
    """
    if isinstance(weights, ObjectiveWeights):
        candidate = weights
    elif isinstance(weights, Mapping):
        missing = [key for key in OBJECTIVES if key not in weights]
        if missing:
            raise InvalidWeights(f"Objective weights are missing keys: {', '.join(missing)}")
        candidate = ObjectiveWeights(*(weights[key] for key in OBJECTIVES))
    else:
        raise InvalidWeights(f"Unsupported weights value: {weights!r}")

    validate_weights(candidate)
    return ObjectiveWeights(*(int(v) for v in candidate.as_tuple()))


# =============================================================================
# INFERENCE
# =============================================================================

def normalize_likert(answer):
    """1 -> -1.0, 3 -> 0.0, 5 -> +1.0"""
    return (clamp(answer, 1, 5) - 3) / 2


def normalize_binary(answer):
    return 0.5 if answer >= 1 else -0.5


def _answer_signal(question: ValueQuestion, answer) -> float:
    if question.question_type is QuestionType.BINARY:
        return normalize_binary(answer)
    return normalize_likert(answer)


def normalize_to_total(raw: Sequence[float], min_weight=None) -> ObjectiveWeights:
    """
    Scale three non-negative values to integer weights summing to 100.

    Every term ends at or above `min_weight`: terms that would scale below the
    floor are pinned to it and the rest of the total is shared out
    proportionally among the others. Accuracy and fairness are rounded
    half-up; robustness takes whatever is left, so only one term absorbs the
    rounding remainder.
    """
    floor = INFERENCE_DEFAULTS["min_weight"] if min_weight is None else min_weight
    values = [max(floor, float(v)) for v in raw]
    if sum(values) <= 0:
        raise InvalidWeights("Cannot normalize weights with a zero total.")

    scaled = [0.0, 0.0, 0.0]
    pinned = set()
    while True:
        free = [i for i in range(3) if i not in pinned]
        remaining = WEIGHT_TOTAL - floor * len(pinned)
        free_total = sum(values[i] for i in free)
        for i in range(3):
            scaled[i] = floor if i in pinned else values[i] / free_total * remaining
        low = [i for i in free if scaled[i] < floor]
        if not low or len(free) == len(low):
            break
        pinned.update(low)

    acc = round_half_up(scaled[0])
    fair = round_half_up(scaled[1])
    rob = WEIGHT_TOTAL - acc - fair
    if rob < floor:
        # Both rounded up past a robustness term sitting right on the floor.
        shortfall = int(math.ceil(floor - rob))
        if acc >= fair:
            acc -= shortfall
        else:
            fair -= shortfall
        rob += shortfall
    return ObjectiveWeights(acc, fair, rob)


def infer_weights(
    questions: Sequence[ValueQuestion],
    responses: Sequence[ValueResponse],
    points_per_question: Optional[float] = None,
) -> ObjectiveWeights:
    """
    Infer ObjectiveWeights from value question responses.

    1. Start from the baseline (40, 40, 20).
    2. Each answered question contributes signal * weight_multiplier * 15
       points to its objective and takes the same amount from the other two
       in the COUPLING ratio.
    3. Clamp every objective to at least 5 and normalize to sum to 100.

    Unanswered questions are skipped, not defaulted to neutral.
    """
    scale = INFERENCE_DEFAULTS["points_per_question"] if points_per_question is None else points_per_question
    weights = dict(zip(OBJECTIVES, INFERENCE_DEFAULTS["baseline"]))
    answers = {response.question_id: response.answer for response in responses}

    applied = 0
    for question in questions:
        if question.id not in answers:
            continue
        strength = _answer_signal(question, answers[question.id]) * question.weight_multiplier * scale
        target = question.maps_to.value
        weights[target] += strength
        for other, share in COUPLING[target].items():
            weights[other] -= strength * share
        applied += 1

    result = normalize_to_total([weights[key] for key in OBJECTIVES])
    logger.debug(
        "Inferred weights %s from %d of %d questions", result.as_tuple(), applied, len(questions)
    )
    return result


def answer_or_neutral(
    questions: Sequence[ValueQuestion],
    responses: Sequence[ValueResponse],
) -> Dict[str, float]:
    """Answers keyed by question id, with unanswered questions shown as neutral (3)."""
    answers = {response.question_id: response.answer for response in responses}
    neutral = INFERENCE_DEFAULTS["neutral_answer"]
    return {question.id: answers.get(question.id, neutral) for question in questions}


# =============================================================================
# LEGACY COMPATIBILITY HELPERS
# =============================================================================

def accuracy_vs_fairness(weights: ObjectiveWeights) -> int:
    """0 = pure fairness, 100 = pure accuracy; robustness is ignored."""
    total = weights.accuracy + weights.fairness
    if total == 0:
        return 50
    return round_half_up(weights.accuracy / total * 100)


def infer_guiding_principle(weights: ObjectiveWeights) -> str:
    if weights.fairness >= 50:
        return "social_equity" if weights.robustness >= 20 else "equal_opportunity"
    if weights.accuracy >= 55:
        return "profit_maximization"
    return "equal_outcome"


def weight_divergence(a: ObjectiveWeights, b: ObjectiveWeights) -> float:
    """Half the L1 distance between two weight sets: 0 (identical) to 100."""
    return round(float(cityblock(a.as_tuple(), b.as_tuple())) / 2, 1)


# =============================================================================
# DEFAULT QUESTION BANK
# =============================================================================

DEFAULT_VALUE_QUESTIONS: List[ValueQuestion] = [
    ValueQuestion(
        id="vq-1",
        question_type="likert",
        maps_to="fairness",
        weight_multiplier=1.2,
        text=(
            "If one group faces higher structural barriers, should they receive "
            "proportionally more support or adjusted thresholds?"
        ),
    ),
    ValueQuestion(
        id="vq-2",
        question_type="likert",
        maps_to="accuracy",
        weight_multiplier=1.0,
        text=(
            "Should the system optimize for the best overall outcome, even if some "
            "groups benefit significantly more than others?"
        ),
    ),
    ValueQuestion(
        id="vq-3",
        question_type="likert",
        maps_to="fairness",
        weight_multiplier=1.0,
        text=(
            "If addressing structural inequality requires accepting lower overall "
            "performance, is that sacrifice acceptable?"
        ),
    ),
    ValueQuestion(
        id="vq-4",
        question_type="binary",
        maps_to="robustness",
        weight_multiplier=1.0,
        text="Should the system work consistently for everyone rather than best on average?",
    ),
    ValueQuestion(
        id="vq-5",
        question_type="likert",
        maps_to="fairness",
        weight_multiplier=1.1,
        text=(
            "Should allocation decisions account for historical disadvantages, even "
            "if current data does not directly measure them?"
        ),
    ),
]
