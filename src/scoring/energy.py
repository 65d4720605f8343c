"""Energy metric formulas and the Energy aggregator.

Calculation chain used by ``calculate_energy_score``::

    BMR ──► TEF
     │
     ├──► PAEE (uses BMR)
     │
    HRV ──► Recovery (HRV + sleep)
     │
     └──► Energy Capacity (BMR, fitness, recovery, stress index)
                │
    TEE = BMR + PAEE + TEF
                │
          Energy Credit (capacity vs. TEE) ──► Safe Zone (historical deltas)

Energy quantities are kcal and unbounded; HRV, recovery and fitness are 0–100.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from src.scoring.base import (
    MetricResult,
    ScoringInputError,
    clamp_score,
    gaussian_score,
    stable_sigmoid,
)
from src.scoring.config_loader import ScoringConfig, get_scoring_config

logger = logging.getLogger("onevital.scoring.energy")

DEFAULT_FITNESS_SCORE = 75.0
MAX_CREDIT_SCORE = 1000.0

# Energy capacity multiplier coefficients
CAPACITY_ALPHA = 2.0   # fitness
CAPACITY_BETA = 1.5    # recovery
CAPACITY_GAMMA = 2.0   # stress index
CAPACITY_MULTIPLIER_RANGE = (1.0, 5.0)

# Body fat ranges (percent) by gender and fitness level
_BODY_FAT_RANGES: dict[str, dict[str, tuple[float, float]]] = {
    "male": {
        "essential": (2, 5),
        "athletes": (6, 13),
        "fitness": (14, 17),
        "average": (18, 24),
    },
    "female": {
        "essential": (10, 13),
        "athletes": (14, 20),
        "fitness": (21, 24),
        "average": (25, 31),
    },
}

# Lower bound of the "good" VO2 max range: (max age, target)
_VO2_TARGETS: dict[str, list[tuple[int, float]]] = {
    "male": [(29, 44), (39, 42), (49, 39)],
    "female": [(29, 39), (39, 37), (49, 35), (59, 34)],
}
_VO2_TARGET_FLOOR = {"male": 36.0, "female": 33.0}


def _normalize_gender(gender: str) -> str:
    g = (gender or "").strip().lower()
    if g not in ("male", "female"):
        raise ScoringInputError(f"Unsupported gender {gender!r}; expected 'male' or 'female'")
    return g


# ---------------------------------------------------------------------------
# Metabolic rate and expenditure
# ---------------------------------------------------------------------------


def basal_metabolic_rate(
    weight_kg: float,
    height_cm: float,
    age: float,
    gender: str,
    sleep_score: float = 90.0,
    stress_score: float = 50.0,
    hour: float = 12.0,
) -> MetricResult:
    """Mifflin-St Jeor BMR adjusted for sleep, stress and time of day.

    Args:
        weight_kg:    Body weight (kg).
        height_cm:    Height (cm).
        age:          Age (years).
        gender:       'male' or 'female' (case-insensitive).
        sleep_score:  Sleep score 0–100; poor sleep lowers BMR by up to 10%.
        stress_score: Stress score 0–100; raises BMR by up to 15%.
        hour:         Hour of day 0–23; BMR peaks in the late afternoon.

    Returns:
        MetricResult in kcal/day with base BMR and factors in ``details``.
    """
    offset = 5.0 if _normalize_gender(gender) == "male" else -161.0
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age + offset

    sleep_factor = 0.90 + 0.10 * (sleep_score / 100)
    stress_factor = 1.00 + 0.15 * (stress_score / 100)
    time_factor = 1.00 + 0.10 * math.sin(2 * math.pi / 24 * (hour - 16))

    value = base * sleep_factor * stress_factor * time_factor
    return MetricResult(
        value=round(value, 2),
        method="mifflin_st_jeor",
        details={
            "base_bmr": round(base, 2),
            "sleep_factor": round(sleep_factor, 3),
            "stress_factor": round(stress_factor, 3),
            "time_factor": round(time_factor, 3),
        },
    )


def thermic_effect_of_food(
    total_calories: float,
    protein_kcal: float | None = None,
    carb_kcal: float | None = None,
    fat_kcal: float | None = None,
) -> MetricResult:
    """Energy spent digesting food (kcal).

    Uses per-macronutrient rates when all three macronutrients are known,
    otherwise 10% of total intake.
    """
    if protein_kcal is not None and carb_kcal is not None and fat_kcal is not None:
        breakdown = {
            "protein": 0.25 * protein_kcal,
            "carbs": 0.075 * carb_kcal,
            "fat": 0.025 * fat_kcal,
        }
        return MetricResult(
            value=round(sum(breakdown.values()), 2),
            method="macronutrient_specific",
            details={"breakdown": {k: round(v, 2) for k, v in breakdown.items()}},
        )
    return MetricResult(value=round(0.10 * total_calories, 2), method="simplified_total_intake")


def physical_activity_energy_expenditure(
    met: float,
    bmr: float,
    duration_hours: float,
    activity_level: float | None = None,
) -> MetricResult:
    """Energy spent on physical activity (kcal).

    ``BMR/24 × duration × MET``, plus ``activity_level × BMR/24 × duration``
    when a wearable-derived average activity level is available.
    """
    hourly_bmr = bmr / 24
    met_term = hourly_bmr * duration_hours * met
    if activity_level is not None and activity_level > 0:
        wearable_term = activity_level * hourly_bmr * duration_hours
        return MetricResult(
            value=round(met_term + wearable_term, 2),
            method="enhanced_wearable_and_met",
            details={"met_term": round(met_term, 2), "wearable_term": round(wearable_term, 2)},
        )
    return MetricResult(value=round(met_term, 2), method="standard_met_based", details={"met_term": round(met_term, 2)})


def adjusted_total_energy_expenditure(
    tef: float,
    paee: float,
    stress_energy: float,
    sleep_score: float = 90.0,
    stress_score: float = 50.0,
    hour: float = 12.0,
) -> MetricResult:
    """Non-basal expenditure adjusted for sleep, stress and time of day (kcal)."""
    base = tef + paee + stress_energy
    sleep_factor = 0.95 + 0.05 * (sleep_score / 100)
    stress_factor = 1.00 + 0.10 * (stress_score / 100)
    time_factor = 1.00 + 0.15 * math.sin(2 * math.pi / 24 * (hour - 14))
    return MetricResult(
        value=round(base * sleep_factor * stress_factor * time_factor, 2),
        details={
            "base": round(base, 2),
            "sleep_factor": round(sleep_factor, 3),
            "stress_factor": round(stress_factor, 3),
            "time_factor": round(time_factor, 3),
        },
    )


# ---------------------------------------------------------------------------
# Fitness and capacity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Vo2MaxReading:
    current: float
    target: float
    sigma: float = 3.0


@dataclass(frozen=True)
class BodyFatReading:
    percentage: float
    lower: float
    upper: float
    sigma: float = 2.5


def target_vo2_max(age: float, gender: str) -> float:
    """Lower bound of the 'good' VO2 max range for an age and gender."""
    g = _normalize_gender(gender)
    for max_age, target in _VO2_TARGETS[g]:
        if age <= max_age:
            return float(target)
    return _VO2_TARGET_FLOOR[g]


def optimal_body_fat_range(gender: str, level: str = "fitness") -> tuple[float, float]:
    """Return the ``(lower, upper)`` body fat percentage for a fitness level.

    Unknown levels fall back to the 'fitness' range.
    """
    ranges = _BODY_FAT_RANGES[_normalize_gender(gender)]
    lower, upper = ranges.get(level, ranges["fitness"])
    return float(lower), float(upper)


def vo2_fitness_score(current: float, target: float, sigma: float = 3.0) -> float:
    if current >= target:
        return 100.0
    return gaussian_score(current, target, sigma)


def body_fat_fitness_score(percentage: float, lower: float, upper: float, sigma: float = 2.5) -> float:
    if lower <= percentage <= upper:
        return 100.0
    deviation = lower - percentage if percentage < lower else percentage - upper
    return gaussian_score(deviation, 0.0, sigma)


def energy_capacity(
    bmr: float,
    fitness_score: float | None = None,
    recovery_score: float = 90.0,
    stress_index: float = 30.0,
    vo2: Vo2MaxReading | None = None,
    body_fat: BodyFatReading | None = None,
) -> MetricResult:
    """Maximum sustainable daily energy output (kcal).

    ``BMR × clamp(1.5 + 2·F/100 + 1.5·R/100 - 2·S/100, 1, 5)``.  Fitness is
    taken from ``fitness_score`` if given, else derived from VO2 max, else
    from body fat, else defaults to 75.
    """
    if fitness_score is not None:
        fitness, method = fitness_score, "provided"
    elif vo2 is not None:
        fitness, method = vo2_fitness_score(vo2.current, vo2.target, vo2.sigma), "vo2_max_based"
    elif body_fat is not None:
        fitness = body_fat_fitness_score(body_fat.percentage, body_fat.lower, body_fat.upper, body_fat.sigma)
        method = "body_fat_based"
    else:
        fitness, method = DEFAULT_FITNESS_SCORE, "default"

    multiplier = (
        1.5
        + CAPACITY_ALPHA * fitness / 100
        + CAPACITY_BETA * recovery_score / 100
        - CAPACITY_GAMMA * stress_index / 100
    )
    low, high = CAPACITY_MULTIPLIER_RANGE
    multiplier = min(max(multiplier, low), high)

    return MetricResult(
        value=round(bmr * multiplier, 2),
        method=method,
        details={
            "bmr": bmr,
            "capacity_multiplier": round(multiplier, 3),
            "fitness_score": round(fitness, 2),
            "recovery_score": recovery_score,
            "stress_index": stress_index,
        },
    )


# ---------------------------------------------------------------------------
# HRV and recovery
# ---------------------------------------------------------------------------


def hrv_score(
    current: float | None,
    baseline: float | None,
    sigma: float | None = None,
    population: str = "general",
) -> MetricResult:
    """Score today's HRV against the personal baseline.

    Args:
        current:    Today's HRV (ms).
        baseline:   Baseline HRV (ms).
        sigma:      Acceptable deviation; defaults to 10 for athletes, 20 otherwise.
        population: 'athlete' or 'general'.

    Raises:
        ScoringInputError: If either HRV is missing, negative, or sigma ≤ 0.
    """
    if current is None or baseline is None:
        raise ScoringInputError("Both current HRV and baseline HRV are required for HRV Score calculation")
    if sigma is None:
        sigma = 10.0 if population == "athlete" else 20.0
    if current < 0 or baseline < 0 or sigma <= 0:
        raise ScoringInputError("HRV values and sigma must be positive numbers")

    value = 100.0 if current >= baseline else gaussian_score(current, baseline, sigma)
    return MetricResult(
        value=round(value, 2),
        norm_deviation=round(abs(current - baseline) / sigma, 2),
        details={"sigma": sigma, "population": population},
    )


def recovery_score(
    hrv: float | None,
    sleep: float | None,
    hrv_weight: float = 0.6,
    sleep_weight: float = 0.4,
) -> MetricResult:
    """Weighted average of HRV and sleep scores, each clamped to [0, 100] first.

    Raises:
        ScoringInputError: If either score is missing or the weights sum to 0.
    """
    if hrv is None or sleep is None:
        raise ScoringInputError("Both HRV score and sleep score are required for Recovery Score calculation")
    total_weight = hrv_weight + sleep_weight
    if total_weight <= 0:
        raise ScoringInputError("Recovery weights must sum to a positive number")

    h = clamp_score(hrv)
    s = clamp_score(sleep)
    value = (hrv_weight * h + sleep_weight * s) / total_weight
    return MetricResult(
        value=round(clamp_score(value), 2),
        details={"hrv_score": h, "sleep_score": s, "hrv_weight": hrv_weight, "sleep_weight": sleep_weight},
    )


# ---------------------------------------------------------------------------
# Energy credit and safe zone
# ---------------------------------------------------------------------------


@dataclass
class CreditUpdate:
    """One day's change to the energy credit running score."""

    energy_delta: float
    scaled_delta: float
    change: float
    method: str


def daily_energy_credit_update(
    capacity: float,
    tee: float,
    surplus_gain: float = 8.0,
    deficit_penalty: float = 10.0,
    max_scaling_delta: float = 250.0,
) -> CreditUpdate:
    """Convert the capacity/expenditure gap into a bounded credit change.

    Surpluses earn up to ``surplus_gain`` points, deficits cost up to
    ``deficit_penalty`` points, both saturating through ``tanh``.
    """
    delta = capacity - tee
    scaled = delta / max_scaling_delta
    if delta > 0:
        change, method = surplus_gain * math.tanh(scaled), "surplus_gain"
    elif delta < 0:
        change, method = -deficit_penalty * math.tanh(abs(scaled)), "deficit_penalty"
    else:
        change, method = 0.0, "perfect_balance"
    return CreditUpdate(
        energy_delta=round(delta, 2),
        scaled_delta=round(scaled, 3),
        change=round(change, 2),
        method=method,
    )


def total_energy_credit(current: float, rolling_avg: float, max_credit: float = MAX_CREDIT_SCORE) -> MetricResult:
    x = current + rolling_avg
    return MetricResult(
        value=round(max_credit * stable_sigmoid(x), 2),
        details={"sigmoid_input": round(x, 3), "sigmoid_value": round(stable_sigmoid(x), 3)},
    )


def energy_credit_score(
    capacity: float,
    tee: float,
    current_score: float = 500.0,
    rolling_avg: float = 0.0,
    max_scaling_delta: float = 250.0,
    surplus_gain: float = 8.0,
    deficit_penalty: float = 10.0,
    max_credit: float = MAX_CREDIT_SCORE,
) -> MetricResult:
    """Daily credit update followed by the sigmoid-smoothed total (0–``max_credit``)."""
    update = daily_energy_credit_update(capacity, tee, surplus_gain, deficit_penalty, max_scaling_delta)
    total = total_energy_credit(current_score, rolling_avg, max_credit)
    total.method = update.method
    total.details.update(
        energy_delta=update.energy_delta,
        credit_change=update.change,
        scaled_delta=update.scaled_delta,
    )
    return total


@dataclass
class SafeZone:
    """Personal energy-balance band derived from historical deltas.

    Bounds are None when ``available`` is False.
    """

    available: bool
    message: str = ""
    upper_bound: float | None = None
    lower_bound: float | None = None
    average_delta: float | None = None
    range: float | None = None
    buffer: float = 50.0
    count: int = 0
    method: str = "insufficient_data"

    def to_record(self) -> dict[str, Any]:
        return {"upperBound": self.upper_bound, "lowerBound": self.lower_bound}


def energy_safe_zone(
    deltas: Sequence[float | None] | None,
    buffer: float = 50.0,
    min_history: int = 3,
) -> SafeZone:
    """Average historical energy delta ± ``buffer``.

    None and NaN entries are ignored.  Fewer than ``min_history`` valid
    entries yields an unavailable result.
    """
    if isinstance(deltas, (str, bytes)) or not isinstance(deltas, Sequence) or not deltas:
        return SafeZone(
            available=False,
            message="No historical energy delta data available for safe zone calculation",
            buffer=buffer,
        )

    valid = [float(d) for d in deltas if d is not None and not math.isnan(d)]
    if len(valid) < min_history:
        logger.debug("Safe zone unavailable: %d valid deltas, need %d", len(valid), min_history)
        return SafeZone(
            available=False,
            message=f"Insufficient historical data. Need at least {min_history} records, have {len(valid)}",
            buffer=buffer,
            count=len(valid),
        )

    average = sum(valid) / len(valid)
    upper = average + buffer
    lower = average - buffer
    return SafeZone(
        available=True,
        upper_bound=round(upper, 2),
        lower_bound=round(lower, 2),
        average_delta=round(average, 2),
        range=round(upper - lower, 2),
        buffer=buffer,
        count=len(valid),
        method="historical_average",
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


@dataclass
class EnergyInputs:
    """Inputs for the Energy aggregator.

    Body metrics, intake, activity and HRV are required; everything else has
    the documented default.  ``target_vo2_max`` and the body fat bounds are
    derived from age, gender and ``body_fat_level`` when omitted.
    """

    weight_kg: float
    height_cm: float
    age: float
    gender: str
    total_calories: float
    met: float
    duration_hours: float
    current_hrv: float
    baseline_hrv: float
    sleep_score: float | None = None
    stress_score: float | None = None
    hour: float | None = None
    protein_kcal: float | None = None
    carb_kcal: float | None = None
    fat_kcal: float | None = None
    activity_level: float | None = None
    fitness_score: float | None = None
    recovery_score: float | None = None
    stress_index: float | None = None
    vo2_max: float | None = None
    target_vo2_max: float | None = None
    body_fat_pct: float | None = None
    body_fat_lower: float | None = None
    body_fat_upper: float | None = None
    body_fat_level: str = "fitness"
    hrv_sigma: float | None = None
    population: str = "general"
    current_credit_score: float | None = None
    rolling_avg_credit_changes: float | None = None
    historical_deltas: list[float | None] | None = None
    safe_zone_buffer: float | None = None


ENERGY_SCORE_NAMES: dict[str, str] = {
    "bmr": "BasalMetabolicRate",
    "tef": "ThermicEffectFood",
    "paee": "PhysicalActivityEnergyExpenditure",
    "capacity": "EnergyCapacity",
    "hrv": "HRVScore",
    "recovery": "RecoveryScore",
    "credit": "energyCreditScore",
}


@dataclass
class EnergyScore:
    """Every energy metric for one day plus the balance analysis."""

    components: dict[str, MetricResult]
    tee: float
    energy_delta: float
    safe_zone: SafeZone
    analysis: dict[str, Any] = field(default_factory=dict)

    def to_daily_value(self) -> dict[str, dict[str, Any]]:
        record = {name: self.components[key].to_record() for key, name in ENERGY_SCORE_NAMES.items()}
        record["EnergySafeZone"] = self.safe_zone.to_record()
        return record


def _fitness_readings(inputs: EnergyInputs) -> tuple[Vo2MaxReading | None, BodyFatReading | None]:
    vo2 = None
    if inputs.vo2_max:
        target = inputs.target_vo2_max or target_vo2_max(inputs.age, inputs.gender)
        vo2 = Vo2MaxReading(current=inputs.vo2_max, target=target)

    body_fat = None
    if inputs.body_fat_pct:
        lower, upper = inputs.body_fat_lower, inputs.body_fat_upper
        if lower is None or upper is None:
            lower, upper = optimal_body_fat_range(inputs.gender, inputs.body_fat_level)
        body_fat = BodyFatReading(percentage=inputs.body_fat_pct, lower=lower, upper=upper)

    return vo2, body_fat


def calculate_energy_score(inputs: EnergyInputs, config: ScoringConfig | None = None) -> EnergyScore:
    """Run the full energy chain for one day.

    Raises:
        ScoringInputError: If HRV inputs are invalid or gender is unsupported.
    """
    config = config or get_scoring_config()

    sleep = inputs.sleep_score if inputs.sleep_score is not None else 90.0
    stress = inputs.stress_score if inputs.stress_score is not None else 50.0
    hour = inputs.hour if inputs.hour is not None else 12.0

    bmr = basal_metabolic_rate(inputs.weight_kg, inputs.height_cm, inputs.age, inputs.gender, sleep, stress, hour)
    tef = thermic_effect_of_food(inputs.total_calories, inputs.protein_kcal, inputs.carb_kcal, inputs.fat_kcal)
    paee = physical_activity_energy_expenditure(inputs.met, bmr.value, inputs.duration_hours, inputs.activity_level)
    hrv = hrv_score(inputs.current_hrv, inputs.baseline_hrv, inputs.hrv_sigma, inputs.population)

    recovery_sleep = inputs.sleep_score if inputs.sleep_score is not None else 85.0
    recovery = recovery_score(hrv.value, recovery_sleep)

    stress_index = inputs.stress_index
    if stress_index is None:
        stress_index = inputs.stress_score if inputs.stress_score is not None else 50.0

    vo2, body_fat = _fitness_readings(inputs)
    capacity = energy_capacity(
        bmr.value,
        fitness_score=inputs.fitness_score,
        recovery_score=inputs.recovery_score if inputs.recovery_score is not None else recovery.value,
        stress_index=stress_index,
        vo2=vo2,
        body_fat=body_fat,
    )

    tee = round(bmr.value + paee.value + tef.value, 2)
    credit = energy_credit_score(
        capacity.value,
        tee,
        current_score=inputs.current_credit_score if inputs.current_credit_score is not None else 500.0,
        rolling_avg=inputs.rolling_avg_credit_changes or 0.0,
    )
    safe_zone = energy_safe_zone(
        inputs.historical_deltas or [],
        buffer=inputs.safe_zone_buffer or 50.0,
    )

    energy_delta = round(capacity.value - tee, 2)
    analysis = {
        "energyBalance": "surplus" if energy_delta > 0 else "deficit",
        "sustainabilityScore": round(credit.value / 10, 2),
        "recoveryReadiness": config.classify("readiness", recovery.value),
    }

    logger.debug(
        "Energy — BMR=%.1f TEF=%.1f PAEE=%.1f capacity=%.1f TEE=%.1f delta=%+.1f credit=%.1f",
        bmr.value, tef.value, paee.value, capacity.value, tee, energy_delta, credit.value,
    )

    return EnergyScore(
        components={
            "bmr": bmr,
            "tef": tef,
            "paee": paee,
            "capacity": capacity,
            "hrv": hrv,
            "recovery": recovery,
            "credit": credit,
        },
        tee=tee,
        energy_delta=energy_delta,
        safe_zone=safe_zone,
        analysis=analysis,
    )
