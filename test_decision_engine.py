# -*- coding: utf-8 -*-
"""
End-to-end tests for decision_engine: a respondent's survey answers flowing
through inference, model selection and the allocation simulation, and the same
pipeline run on aggregated community weights.
"""

import pytest

from community_aggregation import SurveyResponse, generate_sample_votes
from decision_engine import (
    build_community_recommendation,
    build_personal_recommendation,
    compare_with_community,
)
from group_profiles import GroupStats, StructuralAsymmetry
from model_selector import DomainHint, ModelFamily, select_model_configuration
from monte_carlo_allocator import run_allocation_simulation
from preference_inference import DEFAULT_VALUE_QUESTIONS, ObjectiveWeights, ValueResponse


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def fairness_answers():
    """Strong agreement with every fairness question, no to robustness."""
    answers = {"vq-1": 5, "vq-2": 1, "vq-3": 5, "vq-4": 0, "vq-5": 5}
    return [ValueResponse(qid, answer) for qid, answer in answers.items()]


@pytest.fixture
def balanced_community():
    return [
        SurveyResponse(f"c-{i}", i * 1000, "scenario-b", 50, "equal_opportunity", 3)
        for i in range(3)
    ]


@pytest.fixture
def courtroom_asymmetry():
    return StructuralAsymmetry(
        attribute="neighborhood",
        groups=(
            GroupStats("Near court", 420, {"attendance_rate": 0.92}),
            GroupStats("Far from court", 380, {"attendance_rate": 0.65}),
        ),
    )


# =============================================================================
# Tests for compare_with_community
# =============================================================================

class TestCompareWithCommunity:

    def test_needs_three_responses(self, balanced_community):
        assert compare_with_community(ObjectiveWeights(40, 40, 20), balanced_community[:2]) is None

    def test_aligned(self, balanced_community):
        # community legacy weights are (43, 42, 15)
        comparison = compare_with_community(ObjectiveWeights(40, 40, 20), balanced_community)
        assert comparison.community_fairness_weight == 42
        assert comparison.divergence_pct == 2.0
        assert comparison.alignment == "aligned"

    def test_moderate(self, balanced_community):
        comparison = compare_with_community(ObjectiveWeights(45, 30, 25), balanced_community)
        assert comparison.alignment == "moderate"

    def test_high(self, balanced_community):
        comparison = compare_with_community(ObjectiveWeights(29, 58, 13), balanced_community)
        assert comparison.divergence_pct == 16.0
        assert comparison.alignment == "high"


# =============================================================================
# Tests for the recommendations
# =============================================================================

class TestPersonalRecommendation:

    def test_fairness_respondent(self, fairness_answers, balanced_community):
        recommendation = build_personal_recommendation(
            DEFAULT_VALUE_QUESTIONS,
            fairness_answers,
            domain_hint=DomainHint.COMPAS,
            community_responses=balanced_community,
            num_runs_per_point=50,
        )
        weights = recommendation.user_weights
        assert sum(weights.as_tuple()) == 100
        assert weights.fairness >= 50
        assert recommendation.model_configuration.model_family is ModelFamily.LOGISTIC_REGRESSION
        assert recommendation.community_comparison.alignment == "high"
        assert recommendation.monte_carlo_result.total_runs == 50 * 21

    def test_matches_direct_calls(self, fairness_answers, courtroom_asymmetry):
        recommendation = build_personal_recommendation(
            DEFAULT_VALUE_QUESTIONS, fairness_answers, courtroom_asymmetry, num_runs_per_point=30
        )
        weights = recommendation.user_weights
        assert recommendation.model_configuration == select_model_configuration(weights, None, "personal")
        assert recommendation.community_comparison is None
        arms = recommendation.monte_carlo_result.optimal_allocation
        assert [arm.group_name for arm in arms] == ["Near court", "Far from court"]

    def test_threaded_matches_serial(self, fairness_answers):
        serial = build_personal_recommendation(DEFAULT_VALUE_QUESTIONS, fairness_answers, num_runs_per_point=20)
        threaded = build_personal_recommendation(
            DEFAULT_VALUE_QUESTIONS, fairness_answers, num_runs_per_point=20, max_workers=3
        )
        assert serial.to_dict() == threaded.to_dict()

    def test_to_dict_is_plain(self, fairness_answers):
        data = build_personal_recommendation(
            DEFAULT_VALUE_QUESTIONS, fairness_answers, num_runs_per_point=10
        ).to_dict()
        assert isinstance(data["model_configuration"]["model_family"], str)
        assert data["community_comparison"] is None


class TestCommunityRecommendation:

    def test_sample_community(self):
        votes = generate_sample_votes(12, start_time=0)
        recommendation = build_community_recommendation(votes, num_runs_per_point=30)
        weights = recommendation.community_weights
        assert weights.robustness == 15
        assert recommendation.insights.total_responses == 12
        assert 0.0 <= recommendation.support_percentage <= 100.0
        assert recommendation.monte_carlo_result == run_allocation_simulation(weights, None, 30, "community")

    def test_empty_community_uses_default_weights(self):
        recommendation = build_community_recommendation([], num_runs_per_point=10)
        assert recommendation.community_weights == ObjectiveWeights(50, 30, 20)
        assert recommendation.support_percentage == 0.0
