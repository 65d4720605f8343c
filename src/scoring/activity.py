"""Activity metric formulas and the weighted Activity Score.

Final Activity Score weights:
    - Steps                          0.25
    - Active (MVPA) minutes          0.25
    - Day-to-day step consistency    0.15
    - Intraday activity distribution 0.10
    - Total energy credit            0.25
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from src.scoring.base import (
    RECENCY_WEIGHTS,
    MetricResult,
    clamp_score,
    gaussian_score,
    population_std,
    recency_weighted_average,
    stable_sigmoid,
)
from src.scoring.config_loader import ScoringConfig, get_scoring_config

logger = logging.getLogger("onevital.scoring.activity")

DEFAULT_BASELINE_STEPS = 8000
DEFAULT_STEPS_SIGMA = 2000
ACTIVE_MINUTES_SIGMA = 15.0
REFERENCE_STEPS_STD = 1500.0

# WHO guidance: 60 min/day for children, 150 min/week otherwise
MIN_ACTIVE_MINUTES_CHILD = 60.0
MIN_ACTIVE_MINUTES_ADULT = 21.4

ACTIVITY_WEIGHTS: dict[str, float] = {
    "steps": 0.25,
    "active_minutes": 0.25,
    "consistency": 0.15,
    "activity_level": 0.10,
    "energy_credit": 0.25,
}

ACTIVITY_SCORE_NAMES: dict[str, str] = {
    "steps": "StepsScore",
    "active_minutes": "ActiveMinutesScore",
    "consistency": "ConsistencyScore",
    "activity_level": "ActivityLevelConsistency",
    "energy_credit": "TotalEnergyCredit",
}


# ---------------------------------------------------------------------------
# Per-metric formulas
# ---------------------------------------------------------------------------


def steps_score(
    today: float,
    baseline: float | None = None,
    sigma: float | None = None,
    history: Sequence[float] | None = None,
) -> MetricResult:
    """Score today's steps against a personal baseline.

    When the last seven days add up to more than five baseline days, the
    baseline is replaced by a recency-weighted average of those days so that
    consistently active users are measured against their own level.  Only
    the most recent seven entries of ``history`` are considered, and a
    history shorter than seven days keeps the baseline.

    Args:
        today:    Steps taken today.
        baseline: Personal baseline; defaults to 8000.
        sigma:    Spread of the Gaussian; defaults to 2000.
        history:  Daily step counts, oldest first.

    Returns:
        MetricResult with an integer score and signed ``norm_deviation``.
    """
    mu = float(baseline or DEFAULT_BASELINE_STEPS)
    sigma = float(sigma or DEFAULT_STEPS_SIGMA)

    method = "baseline"
    window = list(history or [])[-len(RECENCY_WEIGHTS):]
    if len(window) == len(RECENCY_WEIGHTS) and sum(window) > 5 * mu:
        mu = recency_weighted_average(window)
        method = "weighted_history"

    value = 100.0 if today >= mu else gaussian_score(today, mu, sigma)
    return MetricResult(
        value=float(round(value)),
        norm_deviation=round((today - mu) / sigma, 2),
        method=method,
        details={"baseline": round(mu, 2), "sigma": sigma},
    )


def active_minutes_score(
    minutes: float,
    recent_mean: float | None = None,
    min_recommended: float | None = None,
    age_group: str = "adult",
) -> MetricResult:
    """Score moderate-to-vigorous activity minutes.

    The target is the larger of the recent daily mean and the age-group
    minimum.  Meeting the target scores 100.
    """
    if min_recommended is None:
        min_recommended = MIN_ACTIVE_MINUTES_CHILD if age_group == "child" else MIN_ACTIVE_MINUTES_ADULT
    target = max(recent_mean or 0.0, min_recommended)

    value = 100.0 if minutes >= target else gaussian_score(minutes, target, ACTIVE_MINUTES_SIGMA)
    return MetricResult(
        value=float(round(value)),
        norm_deviation=round((minutes - target) / ACTIVE_MINUTES_SIGMA, 2),
        details={"target": round(target, 2)},
    )


def consistency_score(
    daily_steps: Sequence[float] | None = None,
    std_dev: float | None = None,
    reference_std: float = REFERENCE_STEPS_STD,
) -> MetricResult:
    """Score how steady daily step counts were over the last week.

    Uses ``std_dev`` when supplied, otherwise the population standard
    deviation of the last seven entries of ``daily_steps``.
    """
    window = len(RECENCY_WEIGHTS)
    if std_dev is None:
        if daily_steps is None or len(daily_steps) < window:
            have = len(daily_steps) if daily_steps else 0
            return MetricResult(
                value=0.0,
                available=False,
                explanation=f"Insufficient step history ({have} days, need {window})",
            )
        std_dev = population_std(list(daily_steps)[-window:])

    ratio = std_dev / reference_std
    value = clamp_score(100.0 * max(0.0, 1.0 - ratio))
    return MetricResult(
        value=float(round(value)),
        norm_deviation=round(ratio, 2),
        details={"std_dev": round(std_dev, 2)},
    )


def gini_coefficient(bins: Sequence[float]) -> float:
    """Gini coefficient of non-negative values, clamped to [0, 1]."""
    values = sorted(float(b) for b in bins)
    total = sum(values)
    n = len(values)
    if n == 0 or total <= 0:
        return 0.0

    running = 0.0
    cumulative = 0.0
    for v in values:
        running += v
        cumulative += running
    g = (n + 1 - 2 * cumulative / total) / n
    return min(max(g, 0.0), 1.0)


def activity_level_consistency_score(bins: Sequence[float] | None) -> MetricResult:
    """Score how evenly steps are spread across the day's time bins.

    Perfectly even activity scores 100; activity concentrated in a single
    bin approaches 0.  A day with no steps at all scores 0.
    """
    if not bins:
        return MetricResult(value=0.0, available=False, explanation="No intraday step bins")

    values = [float(b) for b in bins]
    mean = sum(values) / len(values)
    if mean < 1e-8:
        return MetricResult(value=0.0, norm_deviation=0.0, method="no_activity")
    if population_std(values) < 1e-8:
        return MetricResult(value=100.0, norm_deviation=0.0, method="uniform")

    g = gini_coefficient(values)
    return MetricResult(
        value=float(round(clamp_score(100.0 * (1.0 - g)))),
        norm_deviation=round(g, 3),
        method="gini",
    )


def total_energy_credit_score(current: float, rolling_avg: float) -> MetricResult:
    """Squash the energy credit running total into a 0–100 score."""
    x = current + rolling_avg
    return MetricResult(
        value=round(100.0 * stable_sigmoid(x), 2),
        norm_deviation=round(x, 2),
        details={"sigmoid_input": x},
    )


def weighted_rolling_average(past_scores: Sequence[float] | None) -> float:
    """Recency-weighted average of up to seven past scores (missing days count as 0)."""
    return recency_weighted_average(past_scores or [])


def final_activity_score(
    steps: float,
    active_minutes: float,
    consistency: float,
    activity_level: float,
    energy_credit: float,
) -> MetricResult:
    """Weighted combination of the five activity sub-scores, clamped to [0, 100]."""
    values = {
        "steps": steps or 0.0,
        "active_minutes": active_minutes or 0.0,
        "consistency": consistency or 0.0,
        "activity_level": activity_level or 0.0,
        "energy_credit": energy_credit or 0.0,
    }
    components = {
        key: {
            "value": values[key],
            "weight": weight,
            "contribution": values[key] * weight,
        }
        for key, weight in ACTIVITY_WEIGHTS.items()
    }
    total = sum(c["contribution"] for c in components.values())
    return MetricResult(
        value=round(clamp_score(total), 2),
        details={"components": components},
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


@dataclass
class ActivityInputs:
    """One day of activity measurements.

    Attributes:
        steps_today:          Steps taken today.
        baseline_steps:       Personal step baseline (default 8000).
        steps_sigma:          Step Gaussian spread (default 2000).
        steps_7d:             Daily steps for the last 7 days, oldest first.
        steps_7d_std:         Pre-computed 7-day std; overrides ``steps_7d``.
        active_minutes:       MVPA minutes today.
        active_minutes_mean:  Recent daily MVPA mean.
        min_active_minutes:   Age-group minimum override.
        age_group:            'child', 'adult' or 'older_adult'.
        step_bins:            Intraday step counts per time bin.
        energy_credit_current: Today's energy credit score.
        energy_credit_rolling_avg: Rolling average of credit changes.
        past_energy_credits:  Past credit scores; used when no rolling average.
    """

    steps_today: float
    active_minutes: float
    baseline_steps: float | None = None
    steps_sigma: float | None = None
    steps_7d: list[float] | None = None
    steps_7d_std: float | None = None
    active_minutes_mean: float | None = None
    min_active_minutes: float | None = None
    age_group: str = "adult"
    step_bins: list[float] | None = None
    energy_credit_current: float = 0.0
    energy_credit_rolling_avg: float | None = None
    past_energy_credits: list[float] | None = None


@dataclass
class ActivityScore:
    """Composite Activity Score with its component breakdown."""

    value: float
    components: dict[str, MetricResult]
    weights: dict[str, float] = field(default_factory=lambda: dict(ACTIVITY_WEIGHTS))
    analysis: dict[str, Any] = field(default_factory=dict)
    final: MetricResult | None = None

    def to_daily_value(self) -> dict[str, dict[str, Any]]:
        record = {"ActivityScore": MetricResult(value=self.value).to_record()}
        for key, name in ACTIVITY_SCORE_NAMES.items():
            record[name] = self.components[key].to_record()
        return record


def calculate_activity_score(inputs: ActivityInputs, config: ScoringConfig | None = None) -> ActivityScore:
    """Compute the Activity Score and its qualitative analysis.

    Args:
        inputs: One day of activity measurements.
        config: Scoring config for analysis bands. Defaults to the global config.
    """
    config = config or get_scoring_config()

    rolling_avg = inputs.energy_credit_rolling_avg
    if rolling_avg is None:
        rolling_avg = weighted_rolling_average(inputs.past_energy_credits)

    components = {
        "steps": steps_score(
            inputs.steps_today, inputs.baseline_steps, inputs.steps_sigma, inputs.steps_7d
        ),
        "active_minutes": active_minutes_score(
            inputs.active_minutes,
            inputs.active_minutes_mean,
            inputs.min_active_minutes,
            inputs.age_group,
        ),
        "consistency": consistency_score(inputs.steps_7d, inputs.steps_7d_std),
        "activity_level": activity_level_consistency_score(inputs.step_bins),
        "energy_credit": total_energy_credit_score(inputs.energy_credit_current, rolling_avg),
    }
    final = final_activity_score(*(components[key].value for key in ACTIVITY_WEIGHTS))

    analysis = {
        "stepsPerformance": config.classify("score", components["steps"].value),
        "mvpaPerformance": config.classify("score", components["active_minutes"].value),
        "consistencyLevel": config.classify("step_consistency", components["consistency"].value),
        "overallActivityLevel": config.classify("readiness", final.value),
    }

    logger.debug(
        "Activity score %.2f (%s) — steps=%.0f mvpa=%.0f consistency=%.0f gini=%.0f credit=%.2f",
        final.value, analysis["overallActivityLevel"],
        components["steps"].value, components["active_minutes"].value,
        components["consistency"].value, components["activity_level"].value,
        components["energy_credit"].value,
    )

    return ActivityScore(value=final.value, components=components, analysis=analysis, final=final)
