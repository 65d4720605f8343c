"""Shared fixtures for scoring formula tests."""

from __future__ import annotations

import pytest

from src.scoring.activity import ActivityInputs
from src.scoring.config_loader import ScoringConfig, load_scoring_config
from src.scoring.energy import EnergyInputs
from src.scoring.sleep import SleepInputs, SleepStages

# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scoring_config() -> ScoringConfig:
    """Load the real scoring config for tests."""
    return load_scoring_config()


# ---------------------------------------------------------------------------
# Sleep fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def perfect_stages() -> SleepStages:
    """A long, well-distributed night: 2:25 deep, 4:28 core, 1:51 REM, no wake."""
    return SleepStages(deep_h=2, deep_m=25, core_h=4, core_m=28, rem_h=1, rem_m=51)


@pytest.fixture
def perfect_night(perfect_stages: SleepStages) -> SleepInputs:
    """Asleep at 23:53 for 8h44m, HR 67 → 49, five cycles, steady bedtime."""
    return SleepInputs(
        stages=perfect_stages,
        resting_hr=67,
        sleep_hr=49,
        fell_asleep_minutes=23 * 60 + 53,
        total_sleep_minutes=8 * 60 + 44,
        observed_cycles=5,
        consistency_variation_hours=0.083333,
    )


# ---------------------------------------------------------------------------
# Activity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def active_day() -> ActivityInputs:
    return ActivityInputs(
        steps_today=8500,
        active_minutes=35,
        baseline_steps=8000,
        steps_7d=[7500, 8200, 8900, 7800, 8400, 8100, 8500],
        active_minutes_mean=30,
        step_bins=[120, 140, 160, 180, 200, 190, 170, 150, 140, 120, 100, 90],
        energy_credit_current=33,
        energy_credit_rolling_avg=73,
    )


# ---------------------------------------------------------------------------
# Energy fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def energy_metrics() -> dict:
    """Raw backend ``metrics`` for one energy daily value."""
    return {
        "weight": 75,
        "height": 175,
        "age": 30,
        "gender": "male",
        "sleepScore": 85,
        "stressScore": 45,
        "timeOfDay": 14,
        "totalCalorieIntake": 2300,
        "proteinKcal": 690,
        "carbKcal": 920,
        "fatKcal": 690,
        "metValue": 1.8,
        "durationHours": 24,
        "averageActivityLevel": 1.2,
        "fitnessScore": 78,
        "recoveryScore": 82,
        "stressIndex": 45,
        "vo2Max": 45,
        "targetVO2Max": 48,
        "bodyFatPercentage": 15,
        "bodyFatLowerBound": 14,
        "bodyFatUpperBound": 17,
        "currentHRV": 42,
        "baselineHRV": 45,
        "acceptableDeviation": 20,
        "populationType": "general",
        "currentCreditScore": 700,
        "rollingAvgCreditChanges": 5.2,
        "historicalEnergyDeltas": [25, 45, -15, 30, 55, 10, 35],
        "bufferZone": 50,
    }


@pytest.fixture
def energy_inputs() -> EnergyInputs:
    return EnergyInputs(
        weight_kg=75,
        height_cm=175,
        age=30,
        gender="male",
        total_calories=2300,
        met=1.8,
        duration_hours=24,
        current_hrv=42,
        baseline_hrv=45,
        sleep_score=85,
        stress_score=45,
        hour=14,
        protein_kcal=690,
        carb_kcal=920,
        fat_kcal=690,
        activity_level=1.2,
        fitness_score=78,
        recovery_score=82,
        stress_index=45,
        current_credit_score=700,
        rolling_avg_credit_changes=5.2,
        historical_deltas=[25, 45, -15, 30, 55, 10, 35],
    )
