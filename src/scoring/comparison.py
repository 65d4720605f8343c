"""Compare locally calculated scores with values from a reference backend.

Each comparator checks the absolute difference against the metric's
tolerance from ``scoring_config.yaml``.  A missing reference value yields an
unavailable result rather than a failure.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from src.scoring.base import ComparisonResult, MetricResult
from src.scoring.config_loader import ScoringConfig, get_scoring_config
from src.scoring.energy import SafeZone

logger = logging.getLogger("onevital.scoring.comparison")

Number = float | int
Comparable = MetricResult | Mapping[str, Any] | Number | None

# Daily-value score name → (tolerance key, label)
DAILY_VALUE_METRICS: dict[str, tuple[str, str]] = {
    "SleepScore": ("sleep_metric", "Sleep Score"),
    "TotalSleepDuration": ("sleep_metric", "Total Sleep Duration"),
    "SleepEfficiency": ("sleep_metric", "Sleep Efficiency"),
    "DeepSleep": ("sleep_metric", "Deep Sleep"),
    "RemSleep": ("sleep_metric", "REM Sleep"),
    "SleepStageDistribution": ("sleep_metric", "Sleep Stage Distribution"),
    "SleepOnsetLatency": ("sleep_metric", "Sleep Onset Latency"),
    "WASO": ("sleep_metric", "Wake After Sleep Onset"),
    "HRDip": ("sleep_metric", "Heart Rate Dip"),
    "CircadianAlignment": ("sleep_metric", "Circadian Alignment"),
    "SleepConsistency": ("sleep_metric", "Sleep Consistency"),
    "SleepCycles": ("sleep_metric", "Sleep Cycles"),
    "ActivityScore": ("final_activity_score", "Activity Score"),
    "StepsScore": ("steps_score", "Steps Score"),
    "ActiveMinutesScore": ("active_minutes_score", "Active Minutes Score"),
    "ConsistencyScore": ("consistency_score", "Consistency Score"),
    "ActivityLevelConsistency": ("activity_level_consistency", "Activity Level Consistency"),
    "TotalEnergyCredit": ("total_energy_credit", "Total Energy Credit Score"),
    "StressScore": ("stress_score", "Stress Score"),
    "BasalMetabolicRate": ("bmr", "BMR"),
    "ThermicEffectFood": ("tef", "TEF"),
    "PhysicalActivityEnergyExpenditure": ("paee", "PAEE"),
    "EnergyCapacity": ("energy_capacity", "Energy Capacity"),
    "HRVScore": ("hrv_score", "HRV Score"),
    "RecoveryScore": ("recovery_score", "Recovery Score"),
    "energyCreditScore": ("energy_credit", "Energy Credit Score"),
}


def _value_and_norm(item: Comparable) -> tuple[float | None, float | None]:
    """Extract ``(value, norm_deviation)`` from a result, a record, or a bare number.

    A MetricResult flagged unavailable yields ``(None, None)``; its placeholder
    value of 0 is never compared.
    """
    if item is None:
        return None, None
    if isinstance(item, MetricResult):
        if not item.available:
            return None, None
        return item.value, item.norm_deviation
    if isinstance(item, Mapping):
        norm = item.get("normDeviation", item.get("norm_deviation"))
        return item.get("value"), norm
    return float(item), None


def compare_metric(
    metric: str,
    calculated: Comparable,
    reference: Comparable,
    tolerance: float | None = None,
    label: str | None = None,
    config: ScoringConfig | None = None,
) -> ComparisonResult:
    """Compare a calculated value with a reference value.

    Args:
        metric:     Tolerance key (e.g. 'bmr', 'steps_score').
        calculated: Locally computed result, record or number.
        reference:  Reference result, record or number.
        tolerance:  Override for the configured tolerance.
        label:      Display name used in the message.
        config:     Scoring config. Defaults to the global config.

    Returns:
        ComparisonResult; unavailable when either value is missing or is a
        MetricResult marked unavailable.
    """
    label = label or metric
    ref_value, ref_norm = _value_and_norm(reference)
    if ref_value is None:
        return ComparisonResult(
            metric=metric,
            available=False,
            message=f"Reference {label} not available for comparison",
        )

    calc_value, calc_norm = _value_and_norm(calculated)
    if calc_value is None:
        return ComparisonResult(
            metric=metric,
            available=False,
            reference=ref_value,
            message=f"Calculated {label} not available for comparison",
        )

    if tolerance is None:
        tolerance = (config or get_scoring_config()).tolerance(metric)

    diff = abs(calc_value - ref_value)
    within = diff <= tolerance
    norm_diff = abs(calc_norm - ref_norm) if calc_norm is not None and ref_norm is not None else None

    if within:
        message = f"{label} matches reference within ±{tolerance:g}"
    else:
        message = f"{label} differs from reference by {diff:.2f} (tolerance ±{tolerance:g})"
        logger.debug("Comparison mismatch for %s: calculated=%s reference=%s", metric, calc_value, ref_value)

    return ComparisonResult(
        metric=metric,
        available=True,
        calculated=calc_value,
        reference=ref_value,
        value_diff=round(diff, 4),
        is_within_range=within,
        tolerance=tolerance,
        norm_dev_diff=round(norm_diff, 4) if norm_diff is not None else None,
        message=message,
    )


def _comparator(metric: str, label: str) -> Callable[..., ComparisonResult]:
    def compare(
        calculated: Comparable,
        reference: Comparable,
        config: ScoringConfig | None = None,
    ) -> ComparisonResult:
        return compare_metric(metric, calculated, reference, label=label, config=config)

    compare.__name__ = f"compare_{metric}"
    compare.__doc__ = f"Compare a calculated {label} with the reference value."
    return compare


# ---------------------------------------------------------------------------
# Named comparators
# ---------------------------------------------------------------------------

compare_sleep_metric = _comparator("sleep_metric", "sleep metric")

compare_steps_score = _comparator("steps_score", "Steps Score")
compare_active_minutes_score = _comparator("active_minutes_score", "Active Minutes Score")
compare_consistency_score = _comparator("consistency_score", "Consistency Score")
compare_activity_level_consistency = _comparator("activity_level_consistency", "Activity Level Consistency")
compare_total_energy_credit_score = _comparator("total_energy_credit", "Total Energy Credit Score")
compare_final_activity_score = _comparator("final_activity_score", "Final Activity Score")

compare_bmr = _comparator("bmr", "BMR")
compare_tef = _comparator("tef", "TEF")
compare_paee = _comparator("paee", "PAEE")
compare_energy_capacity = _comparator("energy_capacity", "Energy Capacity")
compare_hrv_score = _comparator("hrv_score", "HRV Score")
compare_recovery_score = _comparator("recovery_score", "Recovery Score")
compare_energy_credit_score = _comparator("energy_credit", "Energy Credit Score")
compare_total_energy_expenditure = _comparator("tee", "Total Energy Expenditure")


def compare_stress_score(
    calculated: Comparable,
    reference: Comparable,
    config: ScoringConfig | None = None,
) -> ComparisonResult:
    """Compare stress scores; also reports the difference as a percentage of the reference."""
    result = compare_metric("stress_score", calculated, reference, label="Stress Score", config=config)
    if result.available and result.reference:
        result.percentage_diff = round(result.value_diff / abs(result.reference) * 100, 2)
    return result


def _bounds(zone: SafeZone | Mapping[str, Any] | None) -> tuple[float | None, float | None]:
    if zone is None:
        return None, None
    if isinstance(zone, SafeZone):
        if not zone.available:
            return None, None
        return zone.upper_bound, zone.lower_bound
    return zone.get("upperBound"), zone.get("lowerBound")


def compare_safe_zone(
    calculated: SafeZone | Mapping[str, Any] | None,
    reference: SafeZone | Mapping[str, Any] | None,
    config: ScoringConfig | None = None,
) -> ComparisonResult:
    """Compare safe-zone bounds; the larger of the two bound differences is checked."""
    ref_upper, ref_lower = _bounds(reference)
    if ref_upper is None or ref_lower is None:
        return ComparisonResult(
            metric="safe_zone",
            available=False,
            message="Reference Energy Safe Zone not available for comparison",
        )

    calc_upper, calc_lower = _bounds(calculated)
    if calc_upper is None or calc_lower is None:
        return ComparisonResult(
            metric="safe_zone",
            available=False,
            message="Calculated Energy Safe Zone not available (insufficient history)",
        )

    tolerance = (config or get_scoring_config()).tolerance("safe_zone")
    upper_diff = abs(calc_upper - ref_upper)
    lower_diff = abs(calc_lower - ref_lower)
    diff = max(upper_diff, lower_diff)
    within = diff <= tolerance

    return ComparisonResult(
        metric="safe_zone",
        available=True,
        value_diff=round(diff, 4),
        is_within_range=within,
        tolerance=tolerance,
        message=(
            f"Energy Safe Zone bounds match reference within ±{tolerance:g} kcal"
            if within
            else f"Energy Safe Zone bounds differ from reference by {diff:.2f} kcal"
        ),
        details={"upper_diff": round(upper_diff, 4), "lower_diff": round(lower_diff, 4)},
    )


def compare_daily_values(
    calculated: Mapping[str, Any],
    reference: Mapping[str, Any],
    config: ScoringConfig | None = None,
) -> dict[str, ComparisonResult]:
    """Compare every score present in both daily-value records.

    Args:
        calculated: ``{ScoreName: {value, normDeviation, trend}}`` from an
                    aggregator's ``to_daily_value()``.
        reference:  A reference daily value containing the same score names.
        config:     Scoring config. Defaults to the global config.

    Returns:
        Score name → ComparisonResult, for every known score in ``calculated``.
    """
    config = config or get_scoring_config()
    results: dict[str, ComparisonResult] = {}
    for name, record in calculated.items():
        if name == "EnergySafeZone":
            results[name] = compare_safe_zone(record, reference.get(name), config)
            continue
        if name == "StressScore":
            results[name] = compare_stress_score(record, reference.get(name), config)
            continue
        if name not in DAILY_VALUE_METRICS:
            continue
        metric, label = DAILY_VALUE_METRICS[name]
        results[name] = compare_metric(metric, record, reference.get(name), label=label, config=config)

    mismatches = [n for n, r in results.items() if r.available and not r.is_within_range]
    if mismatches:
        logger.info("Daily value comparison: %d mismatch(es): %s", len(mismatches), ", ".join(mismatches))
    return results
