"""Tests for community_aggregation: weights, insights, drift and the sample community."""

import pytest

from community_aggregation import (
    SAMPLE_VOTE_PROFILES,
    SurveyResponse,
    aggregate_community,
    compute_community_weights,
    compute_inferred_weights,
    compute_insights,
    compute_legacy_weights,
    compute_preference_drift,
    compute_support_percentage,
    generate_sample_votes,
)
from preference_inference import ObjectiveWeights


def _response(idx, lean, scenario="scenario-b", principle="equal_opportunity", inferred=None, timestamp=None):
    return SurveyResponse(
        id=f"r-{idx}",
        timestamp=idx * 1000 if timestamp is None else timestamp,
        selected_scenario_id=scenario,
        accuracy_vs_fairness=lean,
        guiding_principle=principle,
        confidence_rating=3,
        inferred_weights=inferred,
    )


@pytest.fixture
def sample_votes():
    return generate_sample_votes(12, start_time=0)


class TestWeights:

    def test_empty_community_defaults(self):
        weights, insights = aggregate_community([])
        assert weights == ObjectiveWeights(50, 30, 20)
        assert insights.total_responses == 0
        assert insights.polarization_index == 0.0
        assert insights.stability_score == 1.0
        assert insights.trend_direction == "stable"
        assert insights.preference_drift == ()

    def test_legacy_weights_split_85_points(self):
        # mean lean 50 -> 42.5 rounds half up to 43
        weights = compute_legacy_weights([_response(1, 80), _response(2, 20)])
        assert weights == ObjectiveWeights(43, 42, 15)

    def test_legacy_weights_extremes(self):
        assert compute_legacy_weights([_response(1, 100)]) == ObjectiveWeights(85, 0, 15)
        assert compute_legacy_weights([_response(1, 0)]) == ObjectiveWeights(0, 85, 15)

    def test_inferred_weights_are_averaged(self):
        responses = [
            _response(1, 50, inferred=ObjectiveWeights(70, 10, 20)),
            _response(2, 50, inferred=ObjectiveWeights(40, 40, 20)),
            _response(3, 50, inferred=ObjectiveWeights(40, 41, 19)),
        ]
        weights = compute_inferred_weights(responses)
        assert weights == ObjectiveWeights(50, 30, 20)
        assert sum(weights.as_tuple()) == 100

    def test_inferred_weights_take_precedence(self):
        responses = [_response(1, 100), _response(2, 0, inferred=ObjectiveWeights(20, 60, 20))]
        assert compute_community_weights(responses) == ObjectiveWeights(20, 60, 20)

    def test_no_inferred_weights_returns_none(self):
        assert compute_inferred_weights([_response(1, 50)]) is None


class TestInsights:

    def test_sample_community_polarization(self, sample_votes):
        _, insights = aggregate_community(sample_votes)
        assert 0 < insights.polarization_index < 1
        assert insights.polarization_index == pytest.approx(0.583)

    def test_unanimous_scenario_has_no_polarization(self):
        insights = compute_insights([_response(i, 50) for i in range(5)])
        assert insights.polarization_index == 0.0

    def test_stability_bounds(self):
        identical = compute_insights([_response(i, 40) for i in range(4)])
        split = compute_insights([_response(i, 0 if i % 2 else 100) for i in range(4)])
        assert identical.stability_score == 1.0
        assert split.stability_score == 0.0

    def test_splits_use_display_names(self):
        insights = compute_insights(
            [_response(1, 80, "scenario-a", "profit_maximization"), _response(2, 20, "scenario-c", "social_equity")]
        )
        assert {entry.name for entry in insights.scenario_split} == {"Efficiency Maximizer", "Fairness-Constrained"}
        assert {entry.name for entry in insights.principle_split} == {"Profit Maximization", "Social Equity"}

    def test_trend_towards_fairness(self):
        leans = [80, 75, 60, 50, 30, 20]
        # listed out of order; drift sorts by timestamp
        responses = [_response(i, lean) for i, lean in reversed(list(enumerate(leans)))]
        assert compute_insights(responses).trend_direction == "increasing_fairness"

    def test_trend_towards_efficiency(self):
        responses = [_response(i, lean) for i, lean in enumerate([20, 25, 40, 50, 70, 80])]
        assert compute_insights(responses).trend_direction == "increasing_efficiency"

    def test_small_shift_is_stable(self):
        responses = [_response(i, lean) for i, lean in enumerate([50, 51, 49, 50, 52, 52])]
        assert compute_insights(responses).trend_direction == "stable"

    def test_to_dict_is_plain(self, sample_votes):
        data = compute_insights(sample_votes).to_dict()
        assert data["total_responses"] == 12
        assert isinstance(data["preference_drift"][0], dict)


class TestPreferenceDrift:

    def test_twelve_votes_make_six_chunks(self):
        drift = compute_preference_drift([_response(i, 50) for i in range(12)])
        assert [p.label for p in drift] == [
            "Vote 1-2", "Vote 3-4", "Vote 5-6", "Vote 7-8", "Vote 9-10", "Vote 11-12"
        ]

    def test_chunk_averages(self):
        drift = compute_preference_drift([_response(i, lean) for i, lean in enumerate([10, 30, 70, 90])])
        assert drift[0].average_accuracy_pref == 10.0
        assert drift[0].average_fairness_pref == 90.0
        assert drift[-1].average_accuracy_pref == 90.0

    def test_uneven_tail_chunk(self):
        drift = compute_preference_drift([_response(i, 50) for i in range(13)])
        assert drift[-1].label == "Vote 13-13"
        assert drift[0].timestamp == 0


class TestSupport:

    def test_support_percentage(self):
        weights = ObjectiveWeights(43, 42, 15)
        responses = [_response(1, 50), _response(2, 100)]
        # 50 * 0.85 = 42.5 sits within 20 points of 43; 85 does not
        assert compute_support_percentage(responses, weights) == 50.0

    def test_no_responses_no_support(self):
        assert compute_support_percentage([], ObjectiveWeights(50, 30, 20)) == 0.0


class TestSampleVotes:

    def test_deterministic_for_fixed_start(self):
        assert generate_sample_votes(12, start_time=0) == generate_sample_votes(12, start_time=0)

    def test_count_is_capped(self):
        assert len(generate_sample_votes(50, start_time=0)) == len(SAMPLE_VOTE_PROFILES)
        assert generate_sample_votes(0, start_time=0) == []

    def test_votes_are_ordered_and_bounded(self, sample_votes):
        timestamps = [vote.timestamp for vote in sample_votes]
        assert timestamps == sorted(timestamps)
        assert all(0 <= vote.accuracy_vs_fairness <= 100 for vote in sample_votes)
        assert [vote.id for vote in sample_votes[:2]] == ["sample-1", "sample-2"]

    def test_jitter_stays_small(self, sample_votes):
        for vote, (_, lean, _, _) in zip(sample_votes, SAMPLE_VOTE_PROFILES):
            assert abs(vote.accuracy_vs_fairness - lean) <= 4
