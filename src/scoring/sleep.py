"""Sleep metric formulas and the weighted Sleep Score.

Stage durations arrive as hour/minute pairs and are converted to decimal
hours internally.  Every sub-score is a 0–100 value rounded to 2 decimals.

Sleep Score weights:
    - Total sleep duration        0.15
    - Sleep efficiency            0.20
    - Deep sleep                  0.05
    - REM sleep                   0.05
    - Stage distribution          0.20
    - Onset latency               0.10
    - Wake after sleep onset      0.05
    - Heart rate dip              0.05
    - Circadian alignment         0.05
    - Sleep consistency           0.05
    - Sleep cycles                0.05

The weights sum to 1.0.  Older backend notes quote a 0.95 total with a
missing temperature deviation component; the weights themselves have
always added up to 1.0 and are kept unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.scoring.base import MetricResult, clamp_score, gaussian_score
from src.scoring.config_loader import ScoringConfig, get_scoring_config

logger = logging.getLogger("onevital.scoring.sleep")

MINUTES_PER_DAY = 1440
RECOMMENDED_CYCLES = 5

SLEEP_WEIGHTS: dict[str, float] = {
    "tsd": 0.15,
    "se": 0.20,
    "dss": 0.05,
    "rss": 0.05,
    "ssd": 0.20,
    "sol": 0.10,
    "waso": 0.05,
    "hrd": 0.05,
    "cas": 0.05,
    "scs": 0.05,
    "nsc": 0.05,
}

# Component key → daily-value score name used by the backend
SLEEP_SCORE_NAMES: dict[str, str] = {
    "tsd": "TotalSleepDuration",
    "se": "SleepEfficiency",
    "dss": "DeepSleep",
    "rss": "RemSleep",
    "ssd": "SleepStageDistribution",
    "sol": "SleepOnsetLatency",
    "waso": "WASO",
    "hrd": "HRDip",
    "cas": "CircadianAlignment",
    "scs": "SleepConsistency",
    "nsc": "SleepCycles",
}


def to_hours(hours: float, minutes: float) -> float:
    return hours + minutes / 60.0


@dataclass(frozen=True)
class SleepStages:
    """Time spent in each sleep stage for one night, as hour/minute pairs."""

    deep_h: int = 0
    deep_m: int = 0
    core_h: int = 0
    core_m: int = 0
    rem_h: int = 0
    rem_m: int = 0
    awake_h: int = 0
    awake_m: int = 0

    @property
    def deep(self) -> float:
        return to_hours(self.deep_h, self.deep_m)

    @property
    def core(self) -> float:
        return to_hours(self.core_h, self.core_m)

    @property
    def rem(self) -> float:
        return to_hours(self.rem_h, self.rem_m)

    @property
    def awake(self) -> float:
        return to_hours(self.awake_h, self.awake_m)

    @property
    def asleep(self) -> float:
        """Hours actually asleep (deep + core + REM)."""
        return self.deep + self.core + self.rem

    @property
    def in_bed(self) -> float:
        """Hours in bed, including time awake."""
        return self.asleep + self.awake


@dataclass(frozen=True)
class SleepMidpoint:
    """Clock position halfway through the night."""

    minutes: float

    @property
    def hours(self) -> float:
        return self.minutes / 60.0

    @property
    def clock(self) -> str:
        whole = int(self.minutes)
        return f"{whole // 60:02d}:{whole % 60:02d}"


# ---------------------------------------------------------------------------
# Per-metric formulas
# ---------------------------------------------------------------------------


def _norm_dev(x: float, mu: float, sigma: float) -> float:
    return round(abs(x - mu) / sigma, 2)


def total_sleep_duration(stages: SleepStages, mu: float = 8.0, sigma: float = 1.5) -> MetricResult:
    """Score total time in bed against an ideal of ``mu`` hours.

    Reaching or exceeding ``mu`` scores 100; shorter nights fall off along a
    Gaussian curve.
    """
    x = stages.in_bed
    if x <= 0:
        return MetricResult(value=0.0, norm_deviation=None, details={"hours": 0.0})
    value = 100.0 if x >= mu else gaussian_score(x, mu, sigma)
    return MetricResult(
        value=round(value, 2),
        norm_deviation=_norm_dev(x, mu, sigma),
        details={"hours": round(x, 2)},
    )


def sleep_efficiency(stages: SleepStages) -> MetricResult:
    """Percentage of time in bed spent asleep."""
    in_bed = stages.in_bed
    if in_bed <= 0:
        return MetricResult(value=0.0)
    return MetricResult(value=round(clamp_score(100.0 * stages.asleep / in_bed), 2))


def _stage_percentage_score(stage_hours: float, stages: SleepStages, mu: float, sigma: float) -> MetricResult:
    total = stages.asleep
    if total <= 0:
        return MetricResult(value=0.0, details={"percentage": 0.0})
    pct = stage_hours / total * 100.0
    return MetricResult(
        value=round(gaussian_score(pct, mu, sigma), 2),
        norm_deviation=_norm_dev(pct, mu, sigma),
        details={"percentage": round(pct, 2)},
    )


def deep_sleep_score(stages: SleepStages, mu: float = 18.0, sigma: float = 5.0) -> MetricResult:
    """Score the share of sleep spent in deep sleep (ideal ~18%)."""
    return _stage_percentage_score(stages.deep, stages, mu, sigma)


def rem_sleep_score(stages: SleepStages, mu: float = 22.0, sigma: float = 5.0) -> MetricResult:
    """Score the share of sleep spent in REM sleep (ideal ~22%)."""
    return _stage_percentage_score(stages.rem, stages, mu, sigma)


def sleep_stage_distribution(stages: SleepStages) -> MetricResult:
    """Average of the deep and REM stage scores.

    The deep and REM scores are carried in ``details`` as ``dss`` and ``rss``.
    """
    dss = deep_sleep_score(stages).value
    rss = rem_sleep_score(stages).value
    return MetricResult(
        value=round(rss / 2 + dss / 2, 2),
        details={"dss": dss, "rss": rss},
    )


def sleep_onset_latency(minutes: float, mu: float = 15.0, sigma: float = 10.0) -> MetricResult:
    """Score minutes taken to fall asleep.

    Falling asleep within ``mu`` minutes scores 100; slower onsets fall off
    along a Gaussian curve.
    """
    value = 100.0 if minutes <= mu else gaussian_score(minutes, mu, sigma)
    return MetricResult(value=round(value, 2), norm_deviation=_norm_dev(minutes, mu, sigma))


def wake_after_sleep_onset(minutes: float, sigma: float = 20.0) -> MetricResult:
    """Score minutes awake after first falling asleep (ideal: none)."""
    return MetricResult(
        value=round(gaussian_score(minutes, 0.0, sigma), 2),
        norm_deviation=_norm_dev(minutes, 0.0, sigma),
    )


def heart_rate_dip(
    resting_hr: float,
    sleep_hr: float,
    mu: float = 20.0,
    sigma: float = 5.0,
) -> MetricResult:
    """Score the percentage drop from resting to sleeping heart rate.

    A dip of ``mu`` percent or more scores 100.  A non-positive resting heart
    rate cannot produce a dip and scores 0.
    """
    if resting_hr <= 0:
        return MetricResult(value=0.0, details={"dip_pct": None})
    dip = (resting_hr - sleep_hr) / resting_hr * 100.0
    value = 100.0 if dip >= mu else gaussian_score(dip, mu, sigma)
    return MetricResult(
        value=round(value, 2),
        norm_deviation=_norm_dev(dip, mu, sigma),
        details={"dip_pct": round(dip, 2)},
    )


def sleep_midpoint(fell_asleep_minutes: float, total_sleep_minutes: float) -> SleepMidpoint:
    """Return the midpoint of the night, wrapping past midnight.

    Args:
        fell_asleep_minutes: Minutes after midnight at which sleep began.
        total_sleep_minutes: Minutes slept.
    """
    return SleepMidpoint(minutes=(fell_asleep_minutes + total_sleep_minutes / 2) % MINUTES_PER_DAY)


def circadian_alignment(
    fell_asleep_minutes: float,
    total_sleep_minutes: float,
    mu: float = 4.0,
    k: float = 20.0,
) -> MetricResult:
    """Score how close the sleep midpoint falls to ``mu`` o'clock.

    Every hour away from the ideal midpoint costs ``k`` points.
    """
    midpoint = sleep_midpoint(fell_asleep_minutes, total_sleep_minutes)
    value = max(0.0, 100.0 - k * abs(midpoint.hours - mu))
    return MetricResult(
        value=round(value, 2),
        details={"midpoint": midpoint.clock, "midpoint_hours": round(midpoint.hours, 2)},
    )


def sleep_consistency(variation_hours: float, sigma: float = 0.75) -> MetricResult:
    """Score day-to-day bedtime variation in hours (ideal: none)."""
    return MetricResult(
        value=round(gaussian_score(variation_hours, 0.0, sigma), 2),
        norm_deviation=_norm_dev(variation_hours, 0.0, sigma),
    )


def sleep_cycles(observed_cycles: float) -> MetricResult:
    """Score the number of completed sleep cycles against five per night."""
    value = observed_cycles / RECOMMENDED_CYCLES * 100.0
    if observed_cycles < 4:
        value *= 0.9
    elif observed_cycles > 6:
        value *= 0.95
    return MetricResult(value=round(clamp_score(value), 2))


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


@dataclass
class SleepInputs:
    """Everything needed to compute one night's Sleep Score.

    Attributes:
        stages:                     Stage durations for the night.
        resting_hr:                 Daytime resting heart rate (bpm).
        sleep_hr:                   Average heart rate while asleep (bpm).
        fell_asleep_minutes:        Minutes after midnight sleep began.
        total_sleep_minutes:        Minutes slept.
        observed_cycles:            Completed sleep cycles.
        consistency_variation_hours: Bedtime variation vs. recent nights.
        onset_latency_minutes:      Minutes to fall asleep.
        waso_minutes:               Minutes awake after sleep onset.
    """

    stages: SleepStages
    resting_hr: float
    sleep_hr: float
    fell_asleep_minutes: float
    total_sleep_minutes: float
    observed_cycles: float
    consistency_variation_hours: float
    onset_latency_minutes: float = 0.0
    waso_minutes: float = 0.0


@dataclass
class SleepScore:
    """Composite Sleep Score with its component breakdown."""

    value: float
    components: dict[str, MetricResult]
    weights: dict[str, float] = field(default_factory=lambda: dict(SLEEP_WEIGHTS))
    analysis: dict[str, Any] = field(default_factory=dict)

    def to_daily_value(self) -> dict[str, dict[str, Any]]:
        """Return the score and components keyed by backend score name."""
        record = {"SleepScore": MetricResult(value=self.value).to_record()}
        for key, name in SLEEP_SCORE_NAMES.items():
            record[name] = self.components[key].to_record()
        return record


def sleep_components(inputs: SleepInputs) -> dict[str, MetricResult]:
    """Compute every sleep sub-score for one night."""
    stages = inputs.stages
    ssd = sleep_stage_distribution(stages)
    return {
        "tsd": total_sleep_duration(stages),
        "se": sleep_efficiency(stages),
        "dss": deep_sleep_score(stages),
        "rss": rem_sleep_score(stages),
        "ssd": ssd,
        "sol": sleep_onset_latency(inputs.onset_latency_minutes),
        "waso": wake_after_sleep_onset(inputs.waso_minutes),
        "hrd": heart_rate_dip(inputs.resting_hr, inputs.sleep_hr),
        "cas": circadian_alignment(inputs.fell_asleep_minutes, inputs.total_sleep_minutes),
        "scs": sleep_consistency(inputs.consistency_variation_hours),
        "nsc": sleep_cycles(inputs.observed_cycles),
    }


def calculate_sleep_score(inputs: SleepInputs, config: ScoringConfig | None = None) -> SleepScore:
    """Compute the weighted Sleep Score.

    Args:
        inputs: One night of sleep measurements.
        config: Scoring config for analysis bands. Defaults to the global config.

    Returns:
        SleepScore with the clamped 0–100 value and every component.
    """
    config = config or get_scoring_config()
    components = sleep_components(inputs)
    total = sum(components[key].value * weight for key, weight in SLEEP_WEIGHTS.items())
    value = round(clamp_score(total), 2)

    analysis = {
        "overall": config.classify("score", value),
        "weightTotal": round(sum(SLEEP_WEIGHTS.values()), 2),
    }

    logger.debug(
        "Sleep score %.2f (%s) — TSD=%.2f SE=%.2f SSD=%.2f SOL=%.2f HRD=%.2f CAS=%.2f",
        value, analysis["overall"],
        components["tsd"].value, components["se"].value, components["ssd"].value,
        components["sol"].value, components["hrd"].value, components["cas"].value,
    )

    return SleepScore(value=value, components=components, analysis=analysis)
