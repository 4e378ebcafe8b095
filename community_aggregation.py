# -*- coding: utf-8 -*-
"""
Community aggregation - many individual survey responses reduced to one set of
objective weights plus distributional insights (polarization, stability,
preference drift over time).
"""

import logging
import time
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from preference_inference import ObjectiveWeights, ValueResponse, normalize_to_total
from sim_utils import SeededStream, clamp, round_half_up

logger = logging.getLogger(__name__)

COMMUNITY_DEFAULTS = {
    "empty_weights": (50, 30, 20),
    "robustness_floor": 15,
    "max_lean_variance": 2500.0,  # variance of a 0-100 variable split evenly at both ends
    "drift_buckets": 6,
    "trend_threshold": 3.0,
    "support_scale": 0.85,
    "support_window": 20.0,
}

SCENARIO_LABELS = {
    "scenario-a": "Efficiency Maximizer",
    "scenario-b": "Balanced Tradeoff",
    "scenario-c": "Fairness-Constrained",
}

PRINCIPLE_LABELS = {
    "equal_opportunity": "Equal Opportunity",
    "equal_outcome": "Equal Outcome",
    "profit_maximization": "Profit Maximization",
    "social_equity": "Social Equity",
}

TREND_DIRECTIONS = ("increasing_fairness", "increasing_efficiency", "stable")


@dataclass(frozen=True)
class SurveyResponse:
    id: str
    timestamp: int
    selected_scenario_id: str
    accuracy_vs_fairness: float  # 0 = full fairness, 100 = full accuracy
    guiding_principle: str
    confidence_rating: int
    value_responses: Tuple[ValueResponse, ...] = ()
    inferred_weights: Optional[ObjectiveWeights] = None


@dataclass(frozen=True)
class SplitEntry:
    name: str
    value: int


@dataclass(frozen=True)
class PreferenceDriftPoint:
    timestamp: int
    label: str
    average_accuracy_pref: float
    average_fairness_pref: float


@dataclass(frozen=True)
class CommunityInsights:
    scenario_split: Tuple[SplitEntry, ...]
    principle_split: Tuple[SplitEntry, ...]
    preference_drift: Tuple[PreferenceDriftPoint, ...]
    polarization_index: float
    stability_score: float
    trend_direction: str
    total_responses: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# WEIGHTS
# =============================================================================

def compute_legacy_weights(responses: Sequence[SurveyResponse]) -> ObjectiveWeights:
    """
    Weights from the 0-100 accuracy-vs-fairness slider alone.

    Robustness keeps a fixed 15-point floor; the other 85 points are split
    between accuracy and fairness in proportion to the mean lean.
    """
    if not responses:
        return ObjectiveWeights(*COMMUNITY_DEFAULTS["empty_weights"])
    mean_lean = float(np.mean([r.accuracy_vs_fairness for r in responses]))
    robustness = COMMUNITY_DEFAULTS["robustness_floor"]
    remaining = 100 - robustness
    accuracy = round_half_up(mean_lean / 100 * remaining)
    return ObjectiveWeights(accuracy, remaining - accuracy, robustness)


def compute_inferred_weights(responses: Sequence[SurveyResponse]) -> Optional[ObjectiveWeights]:
    """Mean of per-response inferred weights, or None when no response has any."""
    with_inferred = [r.inferred_weights for r in responses if r.inferred_weights is not None]
    if not with_inferred:
        return None
    means = np.mean([w.as_tuple() for w in with_inferred], axis=0)
    return normalize_to_total(means, min_weight=0)


def compute_community_weights(responses: Sequence[SurveyResponse]) -> ObjectiveWeights:
    inferred = compute_inferred_weights(responses)
    if inferred is not None:
        return inferred
    return compute_legacy_weights(responses)


# =============================================================================
# INSIGHTS
# =============================================================================

def _split(counts: Counter, labels: Dict[str, str]) -> Tuple[SplitEntry, ...]:
    return tuple(SplitEntry(name=labels.get(key, key), value=count) for key, count in counts.items())


def compute_preference_drift(responses: Sequence[SurveyResponse]) -> Tuple[PreferenceDriftPoint, ...]:
    """Mean lean per time-ordered chunk of roughly n / 6 responses."""
    ordered = sorted(responses, key=lambda r: r.timestamp)
    chunk_size = max(1, len(ordered) // COMMUNITY_DEFAULTS["drift_buckets"])
    points = []
    for start in range(0, len(ordered), chunk_size):
        chunk = ordered[start:start + chunk_size]
        avg_accuracy = float(np.mean([r.accuracy_vs_fairness for r in chunk]))
        points.append(
            PreferenceDriftPoint(
                timestamp=chunk[0].timestamp,
                label=f"Vote {start + 1}-{min(start + chunk_size, len(ordered))}",
                average_accuracy_pref=round(avg_accuracy, 1),
                average_fairness_pref=round(100 - avg_accuracy, 1),
            )
        )
    return tuple(points)


def compute_trend_direction(drift: Sequence[PreferenceDriftPoint]) -> str:
    if len(drift) < 2:
        return "stable"
    first = drift[0].average_fairness_pref
    last = drift[-1].average_fairness_pref
    threshold = COMMUNITY_DEFAULTS["trend_threshold"]
    if last - first > threshold:
        return "increasing_fairness"
    if first - last > threshold:
        return "increasing_efficiency"
    return "stable"


def compute_insights(responses: Sequence[SurveyResponse]) -> CommunityInsights:
    """
    Distribution summaries of a response set.

    polarization_index = 1 - largest scenario cluster / total, so 0 means
    unanimous; stability_score = 1 - variance(lean) / 2500, floored at 0.
    """
    scenario_counts = Counter(r.selected_scenario_id for r in responses)
    principle_counts = Counter(r.guiding_principle for r in responses)
    drift = compute_preference_drift(responses)

    total = len(responses)
    if total:
        largest_cluster = max(scenario_counts.values())
        polarization = round(1 - largest_cluster / total, 3)
        variance = float(np.var([r.accuracy_vs_fairness for r in responses]))
    else:
        polarization = 0.0
        variance = 0.0
    stability = round(max(0.0, 1 - variance / COMMUNITY_DEFAULTS["max_lean_variance"]), 3)

    return CommunityInsights(
        scenario_split=_split(scenario_counts, SCENARIO_LABELS),
        principle_split=_split(principle_counts, PRINCIPLE_LABELS),
        preference_drift=drift,
        polarization_index=polarization,
        stability_score=stability,
        trend_direction=compute_trend_direction(drift),
        total_responses=total,
    )


def aggregate_community(responses: Sequence[SurveyResponse]) -> Tuple[ObjectiveWeights, CommunityInsights]:
    responses = list(responses)
    weights = compute_community_weights(responses)
    insights = compute_insights(responses)
    logger.info(
        "Aggregated %d responses into weights %s (polarization=%.3f, trend=%s)",
        len(responses),
        weights.as_tuple(),
        insights.polarization_index,
        insights.trend_direction,
    )
    return weights, insights


def compute_support_percentage(responses: Sequence[SurveyResponse], weights: ObjectiveWeights) -> float:
    """Share of voters whose lean, mapped onto the 85-point scale, sits near the community accuracy weight."""
    if not responses:
        return 0.0
    scale = COMMUNITY_DEFAULTS["support_scale"]
    window = COMMUNITY_DEFAULTS["support_window"]
    supporters = [
        r for r in responses
        if abs(r.accuracy_vs_fairness * scale - weights.accuracy) < window
    ]
    return round(len(supporters) / len(responses) * 100, 1)


# =============================================================================
# SAMPLE COMMUNITY
# =============================================================================

# (scenario, accuracy_vs_fairness, principle, confidence)
SAMPLE_VOTE_PROFILES = [
    # accuracy-leaning
    ("scenario-a", 78, "profit_maximization", 4),
    ("scenario-a", 82, "profit_maximization", 5),
    ("scenario-a", 71, "equal_opportunity", 3),
    # fairness-leaning
    ("scenario-c", 18, "social_equity", 5),
    ("scenario-c", 25, "equal_outcome", 4),
    ("scenario-c", 12, "social_equity", 4),
    ("scenario-c", 22, "equal_opportunity", 3),
    # balanced middle
    ("scenario-b", 55, "equal_opportunity", 4),
    ("scenario-b", 48, "equal_opportunity", 3),
    ("scenario-b", 42, "social_equity", 4),
    ("scenario-b", 60, "profit_maximization", 2),
    ("scenario-b", 35, "equal_outcome", 5),
    # extra
    ("scenario-a", 88, "profit_maximization", 5),
    ("scenario-c", 15, "equal_outcome", 5),
    ("scenario-b", 50, "equal_opportunity", 3),
]


def generate_sample_votes(count: int = 12, start_time: Optional[int] = None) -> List[SurveyResponse]:
    """
    Deterministic canned community votes spread over about five minutes.

    Leans get a small jitter from a seeded stream so the set does not look
    scripted; at most len(SAMPLE_VOTE_PROFILES) votes are produced.
    """
    base_time = int(time.time() * 1000) - 3_600_000 if start_time is None else int(start_time)
    stream = SeededStream(42)
    n_votes = min(count, len(SAMPLE_VOTE_PROFILES))
    if n_votes <= 0:
        return []
    time_step = 300_000 // n_votes

    votes = []
    for idx in range(n_votes):
        scenario, lean, principle, confidence = SAMPLE_VOTE_PROFILES[idx]
        jitter = round_half_up((stream.next() - 0.5) * 8)
        votes.append(
            SurveyResponse(
                id=f"sample-{idx + 1}",
                timestamp=base_time + idx * time_step + round_half_up(stream.next() * 10000),
                selected_scenario_id=scenario,
                accuracy_vs_fairness=clamp(lean + jitter, 0, 100),
                guiding_principle=principle,
                confidence_rating=confidence,
            )
        )
    return votes
