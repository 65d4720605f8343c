"""Canonical result types and shared formula primitives.

Every per-metric formula in this package returns a ``MetricResult``; every
domain aggregator returns a dataclass that bundles its component results,
the fixed weights it used and a qualitative ``analysis`` block.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

# Recency weights for 7-day rolling values, oldest → today
RECENCY_WEIGHTS: tuple[int, ...] = (1, 1, 1, 1, 2, 2, 3)


class ScoringInputError(ValueError):
    """Raised when a formula receives a missing or invalid required input."""


@dataclass
class MetricResult:
    """Result of a single formula.

    Attributes:
        value:          Score (0–100) or energy quantity (kcal).
        norm_deviation: Sigma-normalized distance of the input from its target.
        trend:          Direction indicator.  Never computed; always None.
        available:      False when the inputs were insufficient to compute.
        explanation:    Human-readable reason when unavailable.
        method:         Calculation method tag (e.g. 'fallback_active').
        details:        Intermediate values of the calculation.
    """

    value: float
    norm_deviation: float | None = None
    trend: int | None = None
    available: bool = True
    explanation: str = ""
    method: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Return the ``{value, normDeviation, trend}`` daily-value shape."""
        return {
            "value": self.value,
            "normDeviation": self.norm_deviation,
            "trend": self.trend,
        }


@dataclass
class ComparisonResult:
    """Outcome of comparing a calculated value to an external reference.

    Attributes:
        metric:          Metric key used to look up the tolerance.
        available:       False when the reference value was missing.
        calculated:      Locally computed value.
        reference:       Externally supplied value.
        value_diff:      Absolute difference between the two values.
        is_within_range: True if ``value_diff`` is within ``tolerance``.
        tolerance:       Absolute tolerance applied.
        message:         Human-readable summary.
        norm_dev_diff:   Absolute difference of norm deviations, if both known.
        percentage_diff: Difference relative to the reference, in percent.
        details:         Extra per-metric values (e.g. safe-zone bound diffs).
    """

    metric: str
    available: bool
    message: str
    calculated: float | None = None
    reference: float | None = None
    value_diff: float | None = None
    is_within_range: bool = False
    tolerance: float | None = None
    norm_dev_diff: float | None = None
    percentage_diff: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Formula primitives
# ---------------------------------------------------------------------------


def gaussian_score(x: float, mu: float, sigma: float) -> float:
    """Return ``100·exp(-(x-μ)²/(2σ²))``.

    Args:
        x:     Observed value.
        mu:    Ideal value (score 100).
        sigma: Spread; must be positive.

    Returns:
        Unrounded score between 0.0 and 100.0.
    """
    return 100.0 * math.exp(-((x - mu) ** 2) / (2 * sigma**2))


def clamp_score(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


def stable_sigmoid(x: float) -> float:
    """Logistic function that does not overflow for large negative inputs."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def recency_weighted_average(values: Sequence[float]) -> float:
    """Weighted average of the last 7 values using ``RECENCY_WEIGHTS``.

    Fewer than 7 values are left-padded with zeros; more than 7 are
    truncated to the most recent 7.  An empty sequence averages to 0.
    """
    if not values:
        return 0.0
    window = list(values)[-len(RECENCY_WEIGHTS):]
    padded = [0.0] * (len(RECENCY_WEIGHTS) - len(window)) + [float(v) for v in window]
    total = sum(w * v for w, v in zip(RECENCY_WEIGHTS, padded))
    return total / sum(RECENCY_WEIGHTS)


def population_std(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)
