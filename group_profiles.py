# -*- coding: utf-8 -*-
"""
Group profiles - simulation inputs derived from detected group statistics.

Each profile describes a population segment by its baseline outcome, how much
that outcome moves per unit of allocated resource, and its population share.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Sequence, Tuple

from sim_utils import clamp

logger = logging.getLogger(__name__)

PROFILE_DEFAULTS = {
    "top_baseline": 0.85,
    "baseline_spread": 0.25,
    "missing_rate_baseline": 0.7,
    "baseline_bounds": (0.30, 0.95),
    "responsiveness_scale": 0.4,
    "min_responsiveness": 0.05,
    "rate_suffix": "_rate",
}


@dataclass(frozen=True)
class GroupStats:
    """Caller-supplied summary of one group, e.g. {'attendance_rate': 0.65}."""
    group_name: str
    count: int
    metrics: Dict[str, float] = field(default_factory=dict)

    def outcome_rate(self) -> Optional[float]:
        for key, value in self.metrics.items():
            if key.endswith(PROFILE_DEFAULTS["rate_suffix"]) and value is not None:
                return float(value)
        return None


@dataclass(frozen=True)
class StructuralAsymmetry:
    attribute: str
    groups: Tuple[GroupStats, ...] = ()


@dataclass(frozen=True)
class GroupProfile:
    name: str
    baseline_outcome: float
    responsiveness: float
    population_share: float


FALLBACK_PROFILES: Tuple[GroupProfile, ...] = (
    GroupProfile("Group A (Advantaged)", baseline_outcome=0.85, responsiveness=0.10, population_share=0.5),
    GroupProfile("Group B (Disadvantaged)", baseline_outcome=0.55, responsiveness=0.35, population_share=0.5),
)


def responsiveness_for(baseline: float) -> float:
    """Lower-baseline groups have more room to improve per unit of resource."""
    return max(
        PROFILE_DEFAULTS["min_responsiveness"],
        PROFILE_DEFAULTS["responsiveness_scale"] * (1 - baseline),
    )


def build_profiles(asymmetry: Optional[StructuralAsymmetry]) -> Tuple[GroupProfile, ...]:
    """
    Convert group statistics into simulation profiles.

    Falls back to a fixed advantaged/disadvantaged pair when there is no
    asymmetry or fewer than two distinct groups, so a simulation can always
    run. Groups with no members are dropped unless every group is empty, so
    each population share is positive. Baselines come from each group's
    `*_rate` metric when any group has one; otherwise they descend evenly
    from 0.85 by group order.
    """
    groups = [] if asymmetry is None else list(asymmetry.groups)
    populated = [g for g in groups if g.count > 0]
    if populated:
        groups = populated
    if len({g.group_name for g in groups}) < 2:
        logger.debug("Using fallback two-group profiles")
        return FALLBACK_PROFILES

    n_groups = len(groups)
    total_count = sum(g.count for g in groups)
    has_rate = any(g.outcome_rate() is not None for g in groups)
    low, high = PROFILE_DEFAULTS["baseline_bounds"]

    profiles = []
    for idx, group in enumerate(groups):
        if has_rate:
            rate = group.outcome_rate()
            baseline = PROFILE_DEFAULTS["missing_rate_baseline"] if rate is None else rate
        else:
            step = PROFILE_DEFAULTS["baseline_spread"] / max(n_groups - 1, 1)
            baseline = PROFILE_DEFAULTS["top_baseline"] - idx * step

        share = group.count / total_count if total_count > 0 else 1 / n_groups
        profiles.append(
            GroupProfile(
                name=group.group_name,
                baseline_outcome=clamp(baseline, low, high),
                responsiveness=responsiveness_for(baseline),
                population_share=share,
            )
        )
    return tuple(profiles)


def normalize_profiles(profiles: Sequence[GroupProfile]) -> Tuple[GroupProfile, ...]:
    """Renormalize population shares to sum to 1 (equal shares if all are zero)."""
    profiles = tuple(profiles)
    if not profiles:
        return profiles
    total = sum(p.population_share for p in profiles)
    if total <= 0:
        return tuple(replace(p, population_share=1 / len(profiles)) for p in profiles)
    if abs(total - 1.0) < 1e-12:
        return profiles
    return tuple(replace(p, population_share=p.population_share / total) for p in profiles)
