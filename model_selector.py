# -*- coding: utf-8 -*-
"""
Model configuration selector.

Picks a model family for a set of objective weights, synthesizes plausible
hyperparameters for it and reports synthetic metrics consistent with the
weights. Nothing is trained: every number here is a deterministic function of
the weights, the domain hint and the seed.
"""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from preference_inference import ObjectiveWeights, coerce_weights
from sim_utils import SeededStream, clamp, round_half_up

logger = logging.getLogger(__name__)

SELECTOR_DEFAULTS = {
    "stream_modulus": 1000,
    "metric_ceiling": 0.99,
    "noise_span": 0.04,
}


class DomainHint(Enum):
    """Pre-classified dataset domain; classification happens outside the engine."""
    COMPAS = "compas"
    ADULT_INCOME = "adult-income"
    GERMAN_CREDIT = "german-credit"
    GENERIC = "generic"


class ModelFamily(Enum):
    RANDOM_FOREST = "RandomForest"
    XGBOOST = "XGBoost"
    LOGISTIC_REGRESSION = "LogisticRegression"
    GRADIENT_BOOSTING = "GradientBoosting"
    SVM = "SVM"


BOOSTED_FAMILIES = {ModelFamily.XGBOOST, ModelFamily.GRADIENT_BOOSTING}
LINEAR_FAMILIES = {ModelFamily.LOGISTIC_REGRESSION, ModelFamily.SVM}

# Lowest value each synthetic metric may take.
METRIC_FLOORS = {
    "accuracy": 0.60,
    "fairness_score": 0.40,
    "robustness_score": 0.45,
    "interpretability_score": 0.30,
}
INTERPRETABILITY_BONUS = {
    ModelFamily.LOGISTIC_REGRESSION: 0.20,
    ModelFamily.SVM: 0.10,
}


@dataclass(frozen=True)
class ModelMetrics:
    accuracy: float
    fairness_score: float
    robustness_score: float
    interpretability_score: float


@dataclass(frozen=True)
class ModelConfiguration:
    model_family: ModelFamily
    hyperparameters: Dict[str, Union[int, float, str, bool]] = field(hash=False)
    metrics: ModelMetrics
    composite_score: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["model_family"] = self.model_family.value
        return data


# =============================================================================
# FAMILY SELECTION (one pure function per domain)
# =============================================================================

def _select_compas(weights, stream):
    # Criminal justice: interpretability matters for legal defensibility.
    if weights.fairness >= 50:
        return ModelFamily.LOGISTIC_REGRESSION
    if weights.accuracy >= 60:
        return ModelFamily.GRADIENT_BOOSTING if stream.next() > 0.5 else ModelFamily.RANDOM_FOREST
    return ModelFamily.LOGISTIC_REGRESSION


def _select_adult_income(weights, stream):
    if weights.accuracy >= 60:
        return ModelFamily.XGBOOST if stream.next() > 0.3 else ModelFamily.GRADIENT_BOOSTING
    if weights.fairness >= 50:
        return ModelFamily.LOGISTIC_REGRESSION if stream.next() > 0.4 else ModelFamily.RANDOM_FOREST
    return ModelFamily.RANDOM_FOREST


def _select_german_credit(weights, stream):
    # Credit scoring is regulated; interpretable families by default.
    if weights.fairness >= 50:
        return ModelFamily.LOGISTIC_REGRESSION
    if weights.accuracy >= 60:
        return ModelFamily.XGBOOST if stream.next() > 0.5 else ModelFamily.RANDOM_FOREST
    if weights.robustness >= 40:
        return ModelFamily.RANDOM_FOREST
    return ModelFamily.LOGISTIC_REGRESSION


def _select_generic(weights, stream):
    if weights.accuracy >= 60:
        return ModelFamily.XGBOOST if stream.next() > 0.4 else ModelFamily.GRADIENT_BOOSTING
    if weights.fairness >= 50:
        return ModelFamily.LOGISTIC_REGRESSION if stream.next() > 0.5 else ModelFamily.SVM
    return ModelFamily.RANDOM_FOREST


FAMILY_SELECTORS: Dict[DomainHint, Callable[[ObjectiveWeights, SeededStream], ModelFamily]] = {
    DomainHint.COMPAS: _select_compas,
    DomainHint.ADULT_INCOME: _select_adult_income,
    DomainHint.GERMAN_CREDIT: _select_german_credit,
    DomainHint.GENERIC: _select_generic,
}


def select_model_family(weights: ObjectiveWeights, domain_hint: DomainHint, stream: SeededStream) -> ModelFamily:
    return FAMILY_SELECTORS[domain_hint](weights, stream)


# =============================================================================
# HYPERPARAMETERS AND METRICS
# =============================================================================

def generate_hyperparameters(family: ModelFamily, stream: SeededStream) -> Dict[str, Union[int, float, str, bool]]:
    """Draw hyperparameters for `family` from fixed ranges, in a fixed draw order."""
    r = stream.next
    if family is ModelFamily.XGBOOST:
        return {
            "n_estimators": round_half_up(100 + r() * 400),
            "max_depth": round_half_up(3 + r() * 7),
            "learning_rate": round(0.01 + r() * 0.19, 3),
            "subsample": round(0.6 + r() * 0.4, 2),
            "colsample_bytree": round(0.5 + r() * 0.5, 2),
            "reg_alpha": round(r() * 1, 2),
            "reg_lambda": round(r() * 2, 2),
        }
    if family is ModelFamily.GRADIENT_BOOSTING:
        return {
            "n_estimators": round_half_up(100 + r() * 300),
            "max_depth": round_half_up(3 + r() * 5),
            "learning_rate": round(0.01 + r() * 0.14, 3),
            "min_samples_split": round_half_up(2 + r() * 8),
            "min_samples_leaf": round_half_up(1 + r() * 4),
        }
    if family is ModelFamily.RANDOM_FOREST:
        return {
            "n_estimators": round_half_up(100 + r() * 400),
            "max_depth": round_half_up(5 + r() * 15),
            "min_samples_split": round_half_up(2 + r() * 8),
            "min_samples_leaf": round_half_up(1 + r() * 4),
            "max_features": "sqrt" if r() > 0.5 else "log2",
            "bootstrap": True,
        }
    if family is ModelFamily.LOGISTIC_REGRESSION:
        return {
            "C": round(0.01 + r() * 9.99, 3),
            "penalty": "l2" if r() > 0.5 else "l1",
            "solver": "saga",
            "max_iter": round_half_up(500 + r() * 500),
            "class_weight": "balanced",
        }
    if family is ModelFamily.SVM:
        return {
            "C": round(0.1 + r() * 9.9, 3),
            "kernel": "rbf" if r() > 0.5 else "linear",
            "gamma": "scale",
            "class_weight": "balanced",
        }
    raise ValueError(f"Unknown model family: {family!r}")


def compute_metrics(weights: ObjectiveWeights, family: ModelFamily, stream: SeededStream) -> ModelMetrics:
    """
    Synthetic metrics: a weight-proportional base, a family bonus and a small
    bounded noise term, clamped to [floor, 0.99].
    """
    aw, fw, rw = (w / 100 for w in weights.as_tuple())
    ceiling = SELECTOR_DEFAULTS["metric_ceiling"]

    def noise():
        return (stream.next() - 0.5) * SELECTOR_DEFAULTS["noise_span"]

    accuracy = 0.70 + aw * 0.25 + (0.03 if family in BOOSTED_FAMILIES else 0.0) + noise()
    fairness = 0.50 + fw * 0.45 + (0.05 if family in LINEAR_FAMILIES else 0.0) + noise()
    robustness = 0.55 + rw * 0.35 + (0.04 if family is ModelFamily.RANDOM_FOREST else 0.0) + noise()
    interpretability = 0.40 + INTERPRETABILITY_BONUS.get(family, 0.0) + (1 - aw) * 0.2 + noise()

    return ModelMetrics(
        accuracy=round(clamp(accuracy, METRIC_FLOORS["accuracy"], ceiling), 3),
        fairness_score=round(clamp(fairness, METRIC_FLOORS["fairness_score"], ceiling), 3),
        robustness_score=round(clamp(robustness, METRIC_FLOORS["robustness_score"], ceiling), 3),
        interpretability_score=round(
            clamp(interpretability, METRIC_FLOORS["interpretability_score"], ceiling), 3
        ),
    )


def compute_composite_score(weights: ObjectiveWeights, metrics: ModelMetrics) -> float:
    """Weight-normalized blend of accuracy, fairness and robustness metrics."""
    total = sum(weights.as_tuple())
    if total == 0:
        return 0.0
    score = (
        weights.accuracy / total * metrics.accuracy
        + weights.fairness / total * metrics.fairness_score
        + weights.robustness / total * metrics.robustness_score
    )
    return round(score, 3)


def select_model_configuration(
    weights,
    domain_hint: Optional[Union[DomainHint, str]] = None,
    seed: Optional[str] = None,
) -> ModelConfiguration:
    """
    Deterministically pick a model family, hyperparameters and metrics.

    The same weights, hint and seed always give the same configuration; the
    seed defaults to "<accuracy>-<fairness>-<robustness>".
    """
    weights = coerce_weights(weights)
    hint = DomainHint.GENERIC if domain_hint is None else DomainHint(domain_hint)
    if seed is None:
        seed = "-".join(str(w) for w in weights.as_tuple())
    stream = SeededStream(str(seed), SELECTOR_DEFAULTS["stream_modulus"])

    family = select_model_family(weights, hint, stream)
    hyperparameters = generate_hyperparameters(family, stream)
    metrics = compute_metrics(weights, family, stream)
    configuration = ModelConfiguration(
        model_family=family,
        hyperparameters=hyperparameters,
        metrics=metrics,
        composite_score=compute_composite_score(weights, metrics),
    )
    logger.debug("Selected %s for hint=%s seed=%r", family.value, hint.value, seed)
    return configuration
