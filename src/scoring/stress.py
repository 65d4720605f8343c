"""Stress metric formulas.

The stress score is the parasympathetic score: a Gaussian complement over
resting heart rate, so a calm (low) resting heart rate scores high.  Higher
values mean *less* stress; the naming follows the reference backend.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from src.scoring.base import MetricResult, ScoringInputError, clamp_score
from src.scoring.config_loader import ScoringConfig, get_scoring_config

logger = logging.getLogger("onevital.scoring.stress")

FALLBACK_RHR = 70.0
ACTIVE_STEP_THRESHOLD = 300
RHR_MU = 100.0
RHR_SIGMA = 15.0


@dataclass
class RestingHeartRate:
    """Resting heart rate estimate for the last 30 minutes.

    Attributes:
        value:      Estimated resting heart rate (bpm).
        method:     'calculated_from_data', 'fallback_active' or 'fallback_no_data'.
        is_at_rest: False when the step count showed the user was moving.
        readings:   Number of heart-rate readings averaged.
    """

    value: float
    method: str
    is_at_rest: bool
    readings: int = 0


@dataclass
class StressEnergy:
    """Energy attributed to stress for the day (kcal)."""

    energy_surplus: float
    stress_energy_rate: float
    stress_energy: float
    overall_stress: float


def estimate_resting_heart_rate(
    readings: Sequence[float] | None,
    steps_last_30_min: float = 0,
    fallback: float = FALLBACK_RHR,
    active_step_threshold: int = ACTIVE_STEP_THRESHOLD,
) -> RestingHeartRate:
    """Estimate resting heart rate from recent readings.

    Readings taken while the user was walking are not a resting heart rate,
    so ``active_step_threshold`` steps or more in the window returns the
    fallback directly.

    Args:
        readings:              Heart-rate readings (bpm) from the last 30 minutes.
        steps_last_30_min:     Steps taken in the same window.
        fallback:              Value used when no resting estimate is possible.
        active_step_threshold: Step count at which the user counts as active.
    """
    if steps_last_30_min >= active_step_threshold:
        logger.debug("User active (%s steps); using fallback RHR %.1f", steps_last_30_min, fallback)
        return RestingHeartRate(value=fallback, method="fallback_active", is_at_rest=False)

    if not readings:
        logger.debug("No heart-rate readings; using fallback RHR %.1f", fallback)
        return RestingHeartRate(value=fallback, method="fallback_no_data", is_at_rest=True)

    mean = sum(readings) / len(readings)
    return RestingHeartRate(
        value=round(mean, 2),
        method="calculated_from_data",
        is_at_rest=True,
        readings=len(readings),
    )


def parasympathetic_score(rhr: float, mu: float = RHR_MU, sigma: float = RHR_SIGMA) -> MetricResult:
    """Score parasympathetic (rest-and-digest) activity from resting heart rate.

    ``100·(1 - exp(-(μ-rhr)²/(2σ²)))``; a resting heart rate at or above
    ``mu`` scores 0.
    """
    delta = mu - rhr
    variance = sigma**2
    if rhr >= mu:
        return MetricResult(
            value=0.0,
            norm_deviation=round(delta / sigma, 2),
            details={"delta": delta, "variance": variance, "is_above_baseline": True, "exponential_term": 1.0},
        )

    exponential_term = math.exp(-(delta**2) / (2 * variance))
    value = clamp_score(100.0 * (1.0 - exponential_term))
    return MetricResult(
        value=round(value, 2),
        norm_deviation=round(delta / sigma, 2),
        details={
            "delta": delta,
            "variance": variance,
            "is_above_baseline": False,
            "exponential_term": exponential_term,
        },
    )


def overall_stress_score(parasympathetic: MetricResult, config: ScoringConfig | None = None) -> MetricResult:
    """Overall stress score; equal to the parasympathetic score (no inversion)."""
    config = config or get_scoring_config()
    return MetricResult(
        value=parasympathetic.value,
        norm_deviation=parasympathetic.norm_deviation,
        details={"interpretation": config.classify("stress_level", parasympathetic.value)},
    )


def stress_score(
    heart_rate: float | Sequence[float] | None,
    steps_last_30_min: float = 0,
    mu: float = RHR_MU,
    sigma: float = RHR_SIGMA,
    fallback: float = FALLBACK_RHR,
    config: ScoringConfig | None = None,
) -> MetricResult:
    """Compute the stress score from heart-rate data.

    Args:
        heart_rate:        A single heart-rate value, a list of readings, or None.
        steps_last_30_min: Steps in the last 30 minutes.
        mu:                Resting heart rate at which the score reaches 0.
        sigma:             Spread of the Gaussian.
        fallback:          Resting heart rate used when no estimate is possible.
        config:            Scoring config for the interpretation band.

    Returns:
        MetricResult whose ``details`` carry the resting heart rate estimate,
        the parasympathetic score and its interpretation.

    Raises:
        ScoringInputError: If the heart-rate data is not numeric.
    """
    if heart_rate is None:
        readings: list[float] = []
    elif isinstance(heart_rate, (int, float)):
        readings = [float(heart_rate)]
    elif isinstance(heart_rate, (str, bytes)):
        raise ScoringInputError(f"Heart rate must be a number or a list of numbers, got {heart_rate!r}")
    else:
        try:
            readings = [float(v) for v in heart_rate]
        except (TypeError, ValueError) as exc:
            raise ScoringInputError(f"Heart rate readings must be numbers, got {heart_rate!r}") from exc

    rhr = estimate_resting_heart_rate(readings, steps_last_30_min, fallback)
    para = parasympathetic_score(rhr.value, mu, sigma)
    overall = overall_stress_score(para, config)

    return MetricResult(
        value=overall.value,
        norm_deviation=overall.norm_deviation,
        method=rhr.method,
        details={
            "rhr": rhr,
            "parasympathetic": para,
            "interpretation": overall.details["interpretation"],
        },
    )


def stress_energy_conversion(
    capacity: float,
    paee: float,
    tef: float,
    overall_stress: float,
) -> StressEnergy:
    """Convert the unused part of energy capacity into stress energy (kcal).

    The rate/multiply steps cancel out algebraically; they are kept so the
    intermediate values match the reference backend.
    """
    surplus = abs(capacity - paee - tef)
    headroom = 100.0 - overall_stress
    rate = 0.0 if overall_stress >= 100 else surplus / headroom
    return StressEnergy(
        energy_surplus=round(surplus, 2),
        stress_energy_rate=round(rate, 4),
        stress_energy=round(headroom * rate, 2),
        overall_stress=overall_stress,
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


@dataclass
class StressInputs:
    """Inputs for the stress aggregator.

    Energy capacity, PAEE and TEF are optional; when all three are present
    the stress-to-energy conversion is included.
    """

    heart_rate: float | list[float] | None
    steps_last_30_min: float = 0
    rhr_mu: float = RHR_MU
    rhr_sigma: float = RHR_SIGMA
    fallback_rhr: float = FALLBACK_RHR
    energy_capacity: float | None = None
    paee: float | None = None
    tef: float | None = None
    average_monthly_stress: float | None = None


@dataclass
class StressScore:
    """Composite stress result with its analysis."""

    value: float
    rhr: RestingHeartRate
    parasympathetic: MetricResult
    stress: MetricResult
    energy: StressEnergy | None = None
    analysis: dict[str, Any] = field(default_factory=dict)

    def to_daily_value(self) -> dict[str, dict[str, Any]]:
        return {
            "StressScore": self.stress.to_record(),
            "ParasympatheticScore": self.parasympathetic.to_record(),
            "RestingHeartRate": MetricResult(value=self.rhr.value).to_record(),
        }


def calculate_stress_score(inputs: StressInputs, config: ScoringConfig | None = None) -> StressScore:
    """Compute the stress score, optional stress energy, and analysis."""
    config = config or get_scoring_config()
    stress = stress_score(
        inputs.heart_rate,
        inputs.steps_last_30_min,
        inputs.rhr_mu,
        inputs.rhr_sigma,
        inputs.fallback_rhr,
        config,
    )
    rhr: RestingHeartRate = stress.details["rhr"]
    para: MetricResult = stress.details["parasympathetic"]

    energy = None
    if inputs.energy_capacity is not None and inputs.paee is not None and inputs.tef is not None:
        overall = inputs.average_monthly_stress
        if overall is None:
            overall = stress.value
        energy = stress_energy_conversion(inputs.energy_capacity, inputs.paee, inputs.tef, overall)

    analysis = {
        "stressLevel": stress.details["interpretation"],
        "parasympatheticActivity": config.classify("parasympathetic_activity", para.value),
        "rhrStatus": config.classify("rhr_status", rhr.value),
        "isAtRest": rhr.is_at_rest,
    }

    logger.debug(
        "Stress score %.2f (%s) — RHR=%.1f via %s",
        stress.value, analysis["stressLevel"], rhr.value, rhr.method,
    )

    return StressScore(
        value=stress.value,
        rhr=rhr,
        parasympathetic=para,
        stress=stress,
        energy=energy,
        analysis=analysis,
    )
