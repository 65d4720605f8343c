"""OneVital wellness scoring.

Pure formulas that turn biometric and activity measurements into 0–100
wellness scores, domain aggregators that combine them, and comparison
helpers that check results against a reference backend.

Core modules:
    base           — MetricResult / ComparisonResult and formula primitives
    sleep          — Sleep sub-scores and the weighted Sleep Score
    activity       — Steps, MVPA, consistency, Gini and the Activity Score
    stress         — Resting heart rate, parasympathetic and stress scores
    energy         — BMR, TEF, PAEE, capacity, HRV, recovery, credit, safe zone
    comparison     — Tolerance-based comparison with reference values
    adapters       — Backend ``metrics`` → typed formula inputs
    config_loader  — Load/validate/hot-reload scoring_config.yaml
"""

from src.scoring.activity import ActivityInputs, ActivityScore, calculate_activity_score
from src.scoring.base import ComparisonResult, MetricResult, ScoringInputError
from src.scoring.config_loader import ScoringConfig, get_scoring_config
from src.scoring.energy import EnergyInputs, EnergyScore, calculate_energy_score
from src.scoring.sleep import SleepInputs, SleepScore, SleepStages, calculate_sleep_score
from src.scoring.stress import StressInputs, StressScore, calculate_stress_score

__all__ = [
    "MetricResult",
    "ComparisonResult",
    "ScoringInputError",
    "ScoringConfig",
    "get_scoring_config",
    "SleepStages",
    "SleepInputs",
    "SleepScore",
    "calculate_sleep_score",
    "ActivityInputs",
    "ActivityScore",
    "calculate_activity_score",
    "StressInputs",
    "StressScore",
    "calculate_stress_score",
    "EnergyInputs",
    "EnergyScore",
    "calculate_energy_score",
]
