from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import altair as alt
import pandas as pd
import streamlit as st

from community_aggregation import CommunityInsights, generate_sample_votes
from decision_engine import (
    InvalidWeights,
    aggregate_community,
    build_community_recommendation,
    infer_weights,
    run_allocation_simulation,
    select_model_configuration,
)
from group_profiles import GroupProfile, GroupStats, StructuralAsymmetry, build_profiles
from model_selector import DomainHint, ModelConfiguration
from monte_carlo_allocator import MonteCarloResult
from preference_inference import (
    DEFAULT_VALUE_QUESTIONS,
    ObjectiveWeights,
    QuestionType,
    ValueResponse,
    coerce_weights,
)

LIKERT_LABELS = {
    1: "Strongly disagree",
    2: "Disagree",
    3: "Neutral",
    4: "Agree",
    5: "Strongly agree",
}

HELP_RUNS = "Simulations per candidate allocation. 100+ gives 'moderate' confidence, 500+ can reach 'high'."
HELP_SEED = "Any string. The same inputs and seed always reproduce the same result."
HELP_DOMAIN = "Pre-classified dataset domain used by the model-family decision table."
HELP_WEIGHTS = "Whole numbers, each at least 0, summing to exactly 100."


def build_demo_scenarios() -> Dict[str, Dict[str, Any]]:
    courtroom = StructuralAsymmetry(
        attribute="neighborhood",
        groups=(
            GroupStats("Near court", 420, {"attendance_rate": 0.92}),
            GroupStats("Far from court", 380, {"attendance_rate": 0.65}),
        ),
    )
    three_groups = StructuralAsymmetry(
        attribute="region",
        groups=(
            GroupStats("Urban", 500),
            GroupStats("Suburban", 300),
            GroupStats("Rural", 200),
        ),
    )
    return {
        "Default two-group model": {
            "description": "No dataset: advantaged vs. disadvantaged fallback groups.",
            "asymmetry": None,
            "domain_hint": DomainHint.GENERIC,
        },
        "Courtroom transportation budget": {
            "description": "Attendance rates by distance from the court.",
            "asymmetry": courtroom,
            "domain_hint": DomainHint.COMPAS,
        },
        "Three regions, no outcome rates": {
            "description": "Synthetic baselines descending by group order.",
            "asymmetry": three_groups,
            "domain_hint": DomainHint.GENERIC,
        },
    }


def validate_weight_inputs(accuracy: Any, fairness: Any, robustness: Any) -> List[str]:
    try:
        coerce_weights({"accuracy": accuracy, "fairness": fairness, "robustness": robustness})
    except InvalidWeights as exc:
        return [str(exc)]
    return []


def resolve_direct_weights(
    accuracy: Any, fairness: Any, robustness: Any
) -> Tuple[Optional[ObjectiveWeights], List[str]]:
    errors = validate_weight_inputs(accuracy, fairness, robustness)
    if errors:
        return None, errors
    return coerce_weights({"accuracy": accuracy, "fairness": fairness, "robustness": robustness}), []


def run_personal_analysis(
    weights: ObjectiveWeights,
    profiles: Sequence[GroupProfile],
    num_runs: int,
    seed: str,
    domain_hint: DomainHint,
) -> Tuple[MonteCarloResult, ModelConfiguration]:
    result = run_allocation_simulation(weights, profiles, num_runs, seed)
    return result, select_model_configuration(weights, domain_hint, seed)


def build_allocation_frame(result: MonteCarloResult) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "group": [arm.group_name for arm in result.optimal_allocation],
            "allocation_pct": [100 * arm.allocation for arm in result.optimal_allocation],
        }
    )


def build_frontier_frame(result: MonteCarloResult) -> pd.DataFrame:
    rows = [
        {
            "outcome_pct": 100 * point.outcome,
            "fairness_gap_pct": 100 * point.fairness_gap,
            "allocation": " / ".join(f"{a:.2f}" for a in point.allocation),
        }
        for point in result.pareto_frontier
    ]
    return pd.DataFrame(rows, columns=["outcome_pct", "fairness_gap_pct", "allocation"])


def build_drift_frame(insights: CommunityInsights) -> pd.DataFrame:
    rows = []
    for point in insights.preference_drift:
        rows.append({"label": point.label, "lean": "accuracy", "value": point.average_accuracy_pref})
        rows.append({"label": point.label, "lean": "fairness", "value": point.average_fairness_pref})
    return pd.DataFrame(rows, columns=["label", "lean", "value"])


def render_weights(weights: ObjectiveWeights) -> None:
    cols = st.columns(3)
    cols[0].metric("Accuracy", f"{weights.accuracy}%")
    cols[1].metric("Fairness", f"{weights.fairness}%")
    cols[2].metric("Robustness", f"{weights.robustness}%")


def render_simulation(result: MonteCarloResult) -> None:
    st.subheader("Allocation Simulation")
    metric_cols = st.columns(4)
    metric_cols[0].metric("Expected outcome", f"{result.expected_outcome:.1f}%")
    metric_cols[1].metric("Fairness improvement", f"+{result.fairness_improvement_pct:.1f}%")
    metric_cols[2].metric("Efficiency sacrifice", f"{result.efficiency_sacrifice_pct:.1f}%")
    metric_cols[3].metric("Confidence", result.confidence)
    st.caption(f"{result.total_runs:,} simulated runs.")

    allocation_df = build_allocation_frame(result)
    allocation_chart = (
        alt.Chart(allocation_df)
        .mark_bar()
        .encode(
            x=alt.X("group:N", axis=alt.Axis(labelAngle=0)),
            y=alt.Y("allocation_pct:Q", title="Share of budget (%)"),
            color=alt.Color("group:N", legend=None),
            tooltip=["group:N", alt.Tooltip("allocation_pct:Q", format=".1f")],
        )
        .properties(height=260)
    )
    st.altair_chart(allocation_chart, use_container_width=True)

    frontier_df = build_frontier_frame(result)
    if not frontier_df.empty:
        st.markdown("Pareto frontier")
        frontier_chart = (
            alt.Chart(frontier_df)
            .mark_line(point=True)
            .encode(
                x=alt.X("fairness_gap_pct:Q", title="Fairness gap (%)"),
                y=alt.Y("outcome_pct:Q", title="Outcome (%)", scale=alt.Scale(zero=False)),
                tooltip=["allocation:N", "outcome_pct:Q", "fairness_gap_pct:Q"],
            )
            .properties(height=300)
        )
        st.altair_chart(frontier_chart, use_container_width=True)
        st.dataframe(frontier_df, use_container_width=True)


def render_model(configuration: ModelConfiguration) -> None:
    st.subheader("Model Configuration")
    cols = st.columns(2)
    cols[0].metric("Model family", configuration.model_family.value)
    cols[1].metric("Composite score", f"{configuration.composite_score:.3f}")
    st.json(configuration.to_dict())


def render_community(insights: CommunityInsights) -> None:
    st.subheader("Community Insights")
    cols = st.columns(3)
    cols[0].metric("Polarization", f"{insights.polarization_index:.3f}")
    cols[1].metric("Stability", f"{insights.stability_score:.3f}")
    cols[2].metric("Trend", insights.trend_direction)

    split_df = pd.DataFrame([{"scenario": s.name, "votes": s.value} for s in insights.scenario_split])
    if not split_df.empty:
        st.altair_chart(
            alt.Chart(split_df).mark_arc().encode(theta="votes:Q", color="scenario:N"),
            use_container_width=True,
        )

    drift_df = build_drift_frame(insights)
    if not drift_df.empty:
        drift_chart = (
            alt.Chart(drift_df)
            .mark_line(point=True)
            .encode(
                x=alt.X("label:N", sort=None, title="Votes"),
                y=alt.Y("value:Q", title="Average lean"),
                color=alt.Color("lean:N", title="Lean"),
            )
            .properties(height=280)
        )
        st.altair_chart(drift_chart, use_container_width=True)


def app() -> None:
    st.set_page_config(page_title="VoxPop Decision Engine Demo", layout="wide")
    st.title("VoxPop Decision Engine Demo")
    st.caption("Answer the value survey, or set weights directly, then run the simulation.")

    scenarios = build_demo_scenarios()
    st.sidebar.header("1) Setup")
    view_mode = st.sidebar.radio("View mode", ["Personal", "Community"])
    scenario_name = st.sidebar.selectbox("Scenario", list(scenarios.keys()))
    scenario = scenarios[scenario_name]
    st.sidebar.caption(scenario["description"])

    num_runs = st.sidebar.number_input("Runs per point", min_value=1, value=200, step=50, help=HELP_RUNS)
    seed = st.sidebar.text_input("Seed", value=view_mode.lower(), help=HELP_SEED)
    domain_label = st.sidebar.selectbox(
        "Domain hint",
        [hint.value for hint in DomainHint],
        index=[hint for hint in DomainHint].index(scenario["domain_hint"]),
        help=HELP_DOMAIN,
    )
    domain_hint = DomainHint(domain_label)
    profiles = build_profiles(scenario["asymmetry"])

    if view_mode == "Personal":
        weights_source = st.radio("Weights source", ["Value survey", "Direct weights"], horizontal=True)
        if weights_source == "Value survey":
            st.header("2) Value Survey")
            responses = []
            for question in DEFAULT_VALUE_QUESTIONS:
                if question.question_type is QuestionType.BINARY:
                    answer = st.radio(
                        question.text, [1, 0], format_func=lambda v: "Yes" if v else "No", key=question.id
                    )
                else:
                    answer = st.select_slider(
                        question.text, options=list(LIKERT_LABELS), value=3,
                        format_func=LIKERT_LABELS.get, key=question.id,
                    )
                responses.append(ValueResponse(question.id, answer))
            weights = infer_weights(DEFAULT_VALUE_QUESTIONS, responses)
        else:
            st.header("2) Direct Weights")
            st.caption(HELP_WEIGHTS)
            cols = st.columns(3)
            accuracy = cols[0].number_input("Accuracy", min_value=0, max_value=100, value=40, step=1)
            fairness = cols[1].number_input("Fairness", min_value=0, max_value=100, value=40, step=1)
            robustness = cols[2].number_input("Robustness", min_value=0, max_value=100, value=20, step=1)
            weights, weight_errors = resolve_direct_weights(accuracy, fairness, robustness)
            if weight_errors:
                st.error("Input validation failed:")
                for err in weight_errors:
                    st.write(f"- {err}")
                return
        render_weights(weights)

        if st.button("Run simulation", type="primary"):
            try:
                result, configuration = run_personal_analysis(
                    weights, profiles, int(num_runs), seed, domain_hint
                )
            except (InvalidWeights, ValueError) as exc:
                st.error(f"Simulation failed: {exc}")
                return
            render_simulation(result)
            render_model(configuration)
        return

    st.header("2) Community")
    votes = generate_sample_votes(12, start_time=0)
    weights, insights = aggregate_community(votes)
    render_weights(weights)
    render_community(insights)
    if st.button("Run community recommendation", type="primary"):
        try:
            recommendation = build_community_recommendation(
                votes, scenario["asymmetry"], domain_hint, num_runs_per_point=int(num_runs)
            )
        except (InvalidWeights, ValueError) as exc:
            st.error(f"Community recommendation failed: {exc}")
            return
        st.metric("Support", f"{recommendation.support_percentage:.1f}%")
        render_simulation(recommendation.monte_carlo_result)
        render_model(recommendation.model_configuration)


if __name__ == "__main__":
    app()
