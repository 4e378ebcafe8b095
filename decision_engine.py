# -*- coding: utf-8 -*-
"""
VoxPop decision engine - public entry points.

    infer_weights(questions, responses) -> ObjectiveWeights
    run_allocation_simulation(weights, profiles_or_none, num_runs_per_point, seed) -> MonteCarloResult
    select_model_configuration(weights, domain_hint, seed) -> ModelConfiguration
    aggregate_community(responses) -> (ObjectiveWeights, CommunityInsights)

The personal and community recommendations below are the same pure
functions called with different weights and seeds.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

from community_aggregation import (
    CommunityInsights,
    SurveyResponse,
    aggregate_community,
    compute_community_weights,
    compute_support_percentage,
)
from group_profiles import StructuralAsymmetry, build_profiles
from model_selector import DomainHint, ModelConfiguration, select_model_configuration
from monte_carlo_allocator import MonteCarloResult, run_allocation_simulation
from preference_inference import (
    InvalidWeights,
    ObjectiveWeights,
    ValueQuestion,
    ValueResponse,
    infer_weights,
)

logger = logging.getLogger(__name__)

__all__ = [
    "InvalidWeights",
    "infer_weights",
    "run_allocation_simulation",
    "select_model_configuration",
    "aggregate_community",
    "CommunityComparison",
    "PersonalRecommendation",
    "CommunityRecommendation",
    "compare_with_community",
    "build_personal_recommendation",
    "build_community_recommendation",
]

RECOMMENDATION_DEFAULTS = {
    "num_runs_per_point": 200,
    "personal_seed": "personal",
    "community_seed": "community",
    "min_community_responses": 3,
    "aligned_below": 5.0,
    "moderate_below": 15.0,
}


@dataclass(frozen=True)
class CommunityComparison:
    user_fairness_weight: int
    community_fairness_weight: int
    divergence_pct: float
    alignment: str  # aligned | moderate | high


@dataclass(frozen=True)
class PersonalRecommendation:
    user_weights: ObjectiveWeights
    model_configuration: ModelConfiguration
    monte_carlo_result: MonteCarloResult
    community_comparison: Optional[CommunityComparison]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["model_configuration"] = self.model_configuration.to_dict()
        return data


@dataclass(frozen=True)
class CommunityRecommendation:
    community_weights: ObjectiveWeights
    insights: CommunityInsights
    model_configuration: ModelConfiguration
    monte_carlo_result: MonteCarloResult
    support_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["model_configuration"] = self.model_configuration.to_dict()
        return data


def compare_with_community(
    user_weights: ObjectiveWeights,
    community_responses: Sequence[SurveyResponse],
) -> Optional[CommunityComparison]:
    """Fairness-weight divergence from the community, once enough responses exist."""
    if len(community_responses) < RECOMMENDATION_DEFAULTS["min_community_responses"]:
        return None
    community_weights = compute_community_weights(community_responses)
    divergence = abs(user_weights.fairness - community_weights.fairness)
    if divergence < RECOMMENDATION_DEFAULTS["aligned_below"]:
        alignment = "aligned"
    elif divergence < RECOMMENDATION_DEFAULTS["moderate_below"]:
        alignment = "moderate"
    else:
        alignment = "high"
    return CommunityComparison(
        user_fairness_weight=user_weights.fairness,
        community_fairness_weight=community_weights.fairness,
        divergence_pct=round(float(divergence), 1),
        alignment=alignment,
    )


def build_personal_recommendation(
    questions: Sequence[ValueQuestion],
    responses: Sequence[ValueResponse],
    asymmetry: Optional[StructuralAsymmetry] = None,
    domain_hint: Optional[DomainHint] = None,
    community_responses: Sequence[SurveyResponse] = (),
    num_runs_per_point: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> PersonalRecommendation:
    """Model choice and allocation for one respondent's inferred weights."""
    num_runs = RECOMMENDATION_DEFAULTS["num_runs_per_point"] if num_runs_per_point is None else num_runs_per_point
    seed = RECOMMENDATION_DEFAULTS["personal_seed"]

    weights = infer_weights(questions, responses)
    configuration = select_model_configuration(weights, domain_hint, seed)
    simulation = run_allocation_simulation(
        weights, build_profiles(asymmetry), num_runs, seed, max_workers=max_workers
    )
    return PersonalRecommendation(
        user_weights=weights,
        model_configuration=configuration,
        monte_carlo_result=simulation,
        community_comparison=compare_with_community(weights, list(community_responses)),
    )


def build_community_recommendation(
    responses: Sequence[SurveyResponse],
    asymmetry: Optional[StructuralAsymmetry] = None,
    domain_hint: Optional[DomainHint] = None,
    num_runs_per_point: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> CommunityRecommendation:
    """Model choice and allocation for the aggregated community weights."""
    num_runs = RECOMMENDATION_DEFAULTS["num_runs_per_point"] if num_runs_per_point is None else num_runs_per_point
    seed = RECOMMENDATION_DEFAULTS["community_seed"]

    weights, insights = aggregate_community(responses)
    configuration = select_model_configuration(weights, domain_hint, seed)
    simulation = run_allocation_simulation(
        weights, build_profiles(asymmetry), num_runs, seed, max_workers=max_workers
    )
    logger.info(
        "Community recommendation: %s with composite %.3f",
        configuration.model_family.value,
        configuration.composite_score,
    )
    return CommunityRecommendation(
        community_weights=weights,
        insights=insights,
        model_configuration=configuration,
        monte_carlo_result=simulation,
        support_percentage=compute_support_percentage(responses, weights),
    )
