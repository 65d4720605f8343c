"""Pydantic request/response models for the scoring endpoints."""

from __future__ import annotations

from datetime import date as date_type
from typing import Any

from pydantic import ConfigDict, Field

from src.models.base import MetricRecord, OneVitalBase


# ---------- Sleep ----------

class SleepStagesIn(OneVitalBase):
    deep_h: int = Field(default=0, ge=0, le=24)
    deep_m: int = Field(default=0, ge=0, le=59)
    core_h: int = Field(default=0, ge=0, le=24)
    core_m: int = Field(default=0, ge=0, le=59)
    rem_h: int = Field(default=0, ge=0, le=24)
    rem_m: int = Field(default=0, ge=0, le=59)
    awake_h: int = Field(default=0, ge=0, le=24)
    awake_m: int = Field(default=0, ge=0, le=59)


class SleepScoreRequest(OneVitalBase):
    stages: SleepStagesIn
    resting_hr: float = Field(ge=0, le=300)
    sleep_hr: float = Field(ge=0, le=300)
    fell_asleep: str = Field(description="Clock time sleep began, 'HH:MM'")
    total_sleep: str | float = Field(description="Minutes slept, or 'H:MM'")
    observed_cycles: float = Field(ge=0)
    consistency_variation_hours: float = Field(default=0.0, ge=0)
    onset_latency_minutes: float = Field(default=0.0, ge=0)
    waso_minutes: float = Field(default=0.0, ge=0)


# ---------- Activity ----------

class ActivityScoreRequest(OneVitalBase):
    steps_today: float = Field(ge=0)
    active_minutes: float = Field(ge=0, le=1440)
    baseline_steps: float | None = Field(default=None, gt=0)
    steps_sigma: float | None = Field(default=None, gt=0)
    steps_7d: list[float] | None = None
    steps_7d_std: float | None = None
    active_minutes_mean: float | None = None
    min_active_minutes: float | None = None
    age_group: str = "adult"
    step_bins: list[float] | None = None
    energy_credit_current: float = 0.0
    energy_credit_rolling_avg: float | None = None
    past_energy_credits: list[float] | None = None


# ---------- Stress ----------

class StressScoreRequest(OneVitalBase):
    heart_rate: float | list[float] | None = None
    steps_last_30_min: float = Field(default=0, ge=0)
    rhr_mu: float = Field(default=100.0, gt=0)
    rhr_sigma: float = Field(default=15.0, gt=0)
    fallback_rhr: float = Field(default=70.0, gt=0)
    energy_capacity: float | None = None
    paee: float | None = None
    tef: float | None = None
    average_monthly_stress: float | None = None


# ---------- Energy ----------

class EnergyScoreRequest(OneVitalBase):
    weight_kg: float = Field(gt=0)
    height_cm: float = Field(gt=0)
    age: float = Field(gt=0, le=120)
    gender: str
    total_calories: float = Field(ge=0)
    met: float = Field(ge=0)
    duration_hours: float = Field(ge=0, le=24)
    current_hrv: float
    baseline_hrv: float
    sleep_score: float | None = None
    stress_score: float | None = None
    hour: float | None = Field(default=None, ge=0, le=24)
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


# ---------- Responses ----------

class ScoreResponse(OneVitalBase):
    value: float
    components: dict[str, MetricRecord]
    analysis: dict[str, Any] = Field(default_factory=dict)


class SafeZoneRead(OneVitalBase):
    available: bool
    message: str = ""
    upper_bound: float | None = None
    lower_bound: float | None = None
    average_delta: float | None = None
    count: int = 0


class EnergyScoreResponse(OneVitalBase):
    components: dict[str, MetricRecord]
    total_energy_expenditure: float
    energy_delta: float
    safe_zone: SafeZoneRead
    analysis: dict[str, Any] = Field(default_factory=dict)


# ---------- Comparison ----------

class DailyValue(OneVitalBase):
    """A backend daily value: score records keyed by name plus raw ``metrics``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date: date_type | None = None
    metrics: dict[str, Any] = Field(default_factory=dict)

    def score_records(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class CompareRequest(OneVitalBase):
    calculated: dict[str, Any]
    reference: dict[str, Any]


class ComparisonRead(OneVitalBase):
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
    details: dict[str, Any] = Field(default_factory=dict)


class ValidationReport(OneVitalBase):
    date: date_type | None = None
    calculated: dict[str, Any]
    comparisons: dict[str, ComparisonRead]
    mismatches: list[str]
