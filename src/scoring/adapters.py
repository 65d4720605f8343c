"""Translate backend daily-value ``metrics`` into typed formula inputs.

Backend records carry raw inputs under ``metrics`` using camelCase keys,
decimal hours for sleep stages, and sometimes ``"H:MM"`` strings for clock
times and durations.  All parsing happens here; the formula modules only
ever see numbers.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping

from src.scoring.activity import ActivityInputs
from src.scoring.base import ScoringInputError
from src.scoring.energy import EnergyInputs
from src.scoring.sleep import MINUTES_PER_DAY, SleepInputs, SleepStages
from src.scoring.stress import StressInputs

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_clock(text: str) -> int:
    """Parse ``"HH:MM"`` into minutes after midnight.

    Raises:
        ScoringInputError: If the text is not a valid 24-hour clock time.
    """
    match = _CLOCK_RE.match(text) if isinstance(text, str) else None
    if not match:
        raise ScoringInputError(f"Invalid clock time {text!r}; expected 'HH:MM'")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ScoringInputError(f"Clock time out of range: {text!r}")
    return hours * 60 + minutes


def parse_duration(value: str | float | int) -> float:
    """Parse a duration given as minutes or as an ``"H:MM"`` string into minutes.

    Raises:
        ScoringInputError: If a string is not in ``"H:MM"`` form or is negative.
    """
    if isinstance(value, str):
        match = _CLOCK_RE.match(value)
        if not match or int(match.group(2)) > 59:
            raise ScoringInputError(f"Invalid duration {value!r}; expected 'H:MM'")
        return float(int(match.group(1)) * 60 + int(match.group(2)))
    if not isinstance(value, (int, float)):
        raise ScoringInputError(f"Invalid duration {value!r}; expected minutes or 'H:MM'")
    if value < 0:
        raise ScoringInputError(f"Duration must not be negative, got {value}")
    return float(value)


def split_hours(hours: float | None) -> tuple[int, int]:
    """Split decimal hours into whole ``(hours, minutes)``."""
    if not hours or hours < 0:
        return 0, 0
    h = math.floor(hours)
    m = round((hours - h) * 60)
    if m == 60:
        h, m = h + 1, 0
    return int(h), int(m)


def _require(metrics: Mapping[str, Any], *keys: str) -> None:
    missing = [k for k in keys if metrics.get(k) is None]
    if missing:
        raise ScoringInputError(f"Missing required metric(s): {', '.join(missing)}")


def _number(metrics: Mapping[str, Any], key: str, default: float | None = None) -> float | None:
    """Coerce ``metrics[key]`` to float, returning ``default`` when it is absent.

    Raises:
        ScoringInputError: If the value is present but not numeric.
    """
    value = metrics.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ScoringInputError(f"Metric {key!r} must be a number, got {value!r}") from exc


def _numbers(metrics: Mapping[str, Any], key: str) -> list[float] | None:
    """Coerce ``metrics[key]`` to a list of floats, or None when it is absent."""
    values = metrics.get(key)
    if values is None:
        return None
    if not isinstance(values, (list, tuple)):
        raise ScoringInputError(f"Metric {key!r} must be a list of numbers, got {values!r}")
    try:
        return [float(v) for v in values]
    except (TypeError, ValueError) as exc:
        raise ScoringInputError(f"Metric {key!r} must contain only numbers, got {values!r}") from exc


# ---------------------------------------------------------------------------
# Domain adapters
# ---------------------------------------------------------------------------


def sleep_inputs_from_metrics(metrics: Mapping[str, Any]) -> SleepInputs:
    """Build SleepInputs from backend sleep metrics.

    The sleep start is taken from ``fellAsleep`` (``"HH:MM"``) when present,
    otherwise derived as the circadian midpoint minus half the sleep time.
    """
    _require(metrics, "deepSleepHours", "lightSleepHours", "remSleepHours", "totalSleepTimeHours")

    deep_h, deep_m = split_hours(_number(metrics, "deepSleepHours"))
    core_h, core_m = split_hours(_number(metrics, "lightSleepHours"))
    rem_h, rem_m = split_hours(_number(metrics, "remSleepHours"))
    awake_hours = _number(metrics, "wakeAfterSleepOnsetHours", 0.0)
    awake_h, awake_m = split_hours(awake_hours)
    stages = SleepStages(deep_h, deep_m, core_h, core_m, rem_h, rem_m, awake_h, awake_m)

    if metrics.get("tst") is not None:
        total_minutes = parse_duration(metrics["tst"])
    else:
        total_minutes = _number(metrics, "totalSleepTimeHours") * 60

    if metrics.get("fellAsleep"):
        fell_asleep = float(parse_clock(metrics["fellAsleep"]))
    elif metrics.get("circadianMidpointHours") is not None:
        midpoint = _number(metrics, "circadianMidpointHours") * 60
        fell_asleep = (midpoint - total_minutes / 2) % MINUTES_PER_DAY
    else:
        raise ScoringInputError("Missing required metric(s): fellAsleep or circadianMidpointHours")

    return SleepInputs(
        stages=stages,
        resting_hr=round(_number(metrics, "avgRestingHeartRateBpm", 0.0)),
        sleep_hr=round(_number(metrics, "avgSleepHeartRateBpm", 0.0)),
        fell_asleep_minutes=fell_asleep,
        total_sleep_minutes=total_minutes,
        observed_cycles=_number(metrics, "sleepCyclesCount", 0.0),
        consistency_variation_hours=_number(metrics, "averageDayToDayVariationHours", 0.0),
        onset_latency_minutes=_number(metrics, "sleepOnsetLatencyMinutes", 0.0),
        waso_minutes=awake_hours * 60,
    )


def activity_inputs_from_metrics(metrics: Mapping[str, Any]) -> ActivityInputs:
    """Build ActivityInputs from backend activity metrics."""
    _require(metrics, "stepsTodayX", "mvpaMinutesToday_m")
    return ActivityInputs(
        steps_today=_number(metrics, "stepsTodayX"),
        active_minutes=_number(metrics, "mvpaMinutesToday_m"),
        baseline_steps=_number(metrics, "baselineStepsMu"),
        steps_sigma=_number(metrics, "steps7dStdDev"),
        steps_7d=_numbers(metrics, "steps7dArray"),
        steps_7d_std=_number(metrics, "steps7dStdDev"),
        active_minutes_mean=_number(metrics, "mvpaRecentMean"),
        min_active_minutes=_number(metrics, "mvpaMinRecommendedByAge"),
        age_group=metrics.get("ageGroup") or "adult",
        step_bins=_numbers(metrics, "stepsBins"),
        energy_credit_current=_number(metrics, "energyCreditCurrentScore", 0.0),
        energy_credit_rolling_avg=_number(metrics, "energyCreditRollingAvg"),
        past_energy_credits=_numbers(metrics, "pastEnergyCreditScores"),
    )


def stress_inputs_from_metrics(metrics: Mapping[str, Any]) -> StressInputs:
    """Build StressInputs from backend stress metrics."""
    defaults = StressInputs(heart_rate=None)
    if isinstance(metrics.get("heartRateData"), (int, float)):
        heart_rate: float | list[float] | None = _number(metrics, "heartRateData")
    else:
        heart_rate = _numbers(metrics, "heartRateData")
    return StressInputs(
        heart_rate=heart_rate,
        steps_last_30_min=_number(metrics, "totalStepsLast30Min", 0.0),
        rhr_mu=_number(metrics, "muRHR") or defaults.rhr_mu,
        rhr_sigma=_number(metrics, "sigmaRHR") or defaults.rhr_sigma,
        fallback_rhr=_number(metrics, "fallbackRHR") or defaults.fallback_rhr,
        energy_capacity=_number(metrics, "energyCapacity"),
        paee=_number(metrics, "paee"),
        tef=_number(metrics, "tef"),
        average_monthly_stress=_number(metrics, "averageMonthlyStress"),
    )


def energy_inputs_from_metrics(metrics: Mapping[str, Any]) -> EnergyInputs:
    """Build EnergyInputs from backend energy metrics.

    Raises:
        ScoringInputError: If a required metric is missing or a numeric
            metric holds something other than a number.
    """
    _require(
        metrics,
        "weight", "height", "age", "gender",
        "totalCalorieIntake", "metValue", "durationHours",
        "currentHRV", "baselineHRV",
    )
    return EnergyInputs(
        weight_kg=_number(metrics, "weight"),
        height_cm=_number(metrics, "height"),
        age=_number(metrics, "age"),
        gender=str(metrics["gender"]),
        total_calories=_number(metrics, "totalCalorieIntake"),
        met=_number(metrics, "metValue"),
        duration_hours=_number(metrics, "durationHours"),
        current_hrv=_number(metrics, "currentHRV"),
        baseline_hrv=_number(metrics, "baselineHRV"),
        sleep_score=_number(metrics, "sleepScore"),
        stress_score=_number(metrics, "stressScore"),
        hour=_number(metrics, "timeOfDay"),
        protein_kcal=_number(metrics, "proteinKcal"),
        carb_kcal=_number(metrics, "carbKcal"),
        fat_kcal=_number(metrics, "fatKcal"),
        activity_level=_number(metrics, "averageActivityLevel"),
        fitness_score=_number(metrics, "fitnessScore"),
        recovery_score=_number(metrics, "recoveryScore"),
        stress_index=_number(metrics, "stressIndex"),
        vo2_max=_number(metrics, "vo2Max"),
        target_vo2_max=_number(metrics, "targetVO2Max"),
        body_fat_pct=_number(metrics, "bodyFatPercentage"),
        body_fat_lower=_number(metrics, "bodyFatLowerBound"),
        body_fat_upper=_number(metrics, "bodyFatUpperBound"),
        hrv_sigma=_number(metrics, "acceptableDeviation"),
        population=metrics.get("populationType") or "general",
        current_credit_score=_number(metrics, "currentCreditScore"),
        rolling_avg_credit_changes=_number(metrics, "rollingAvgCreditChanges"),
        historical_deltas=_numbers(metrics, "historicalEnergyDeltas"),
        safe_zone_buffer=_number(metrics, "bufferZone"),
    )
