"""Tests for tolerance-based comparison with reference values."""

from __future__ import annotations

import math

import pytest

from src.scoring.activity import consistency_score
from src.scoring.base import MetricResult
from src.scoring.comparison import (
    compare_bmr,
    compare_daily_values,
    compare_metric,
    compare_safe_zone,
    compare_sleep_metric,
    compare_steps_score,
    compare_stress_score,
    compare_total_energy_expenditure,
)
from src.scoring.config_loader import ScoringConfig
from src.scoring.energy import energy_safe_zone


class TestCompareMetric:
    def test_within_tolerance(self, scoring_config: ScoringConfig) -> None:
        result = compare_bmr(1651.33, 1680, scoring_config)
        assert result.available is True
        assert result.is_within_range is True
        assert result.tolerance == 50
        assert result.value_diff == pytest.approx(28.67)
        assert "matches reference" in result.message

    def test_outside_tolerance(self, scoring_config: ScoringConfig) -> None:
        result = compare_steps_score(7, 20, scoring_config)
        assert result.is_within_range is False
        assert result.value_diff == pytest.approx(13.0)
        assert "differs from reference by 13.00" in result.message

    def test_boundary_is_inclusive(self, scoring_config: ScoringConfig) -> None:
        assert compare_steps_score(70, 75, scoring_config).is_within_range is True

    def test_sleep_tolerance_is_tight(self, scoring_config: ScoringConfig) -> None:
        assert compare_sleep_metric(86.83, 86.9, scoring_config).is_within_range is True
        assert compare_sleep_metric(86.83, 87.0, scoring_config).is_within_range is False

    def test_missing_reference_is_unavailable(self, scoring_config: ScoringConfig) -> None:
        result = compare_bmr(1651.33, None, scoring_config)
        assert result.available is False
        assert result.is_within_range is False
        assert result.message == "Reference BMR not available for comparison"

    def test_accepts_results_and_records(self, scoring_config: ScoringConfig) -> None:
        calculated = MetricResult(value=71.0, norm_deviation=0.29)
        reference = {"value": 70, "normDeviation": 0.3, "trend": None}
        result = compare_metric("consistency_score", calculated, reference, config=scoring_config)
        assert result.is_within_range is True
        assert result.norm_dev_diff == pytest.approx(0.01)

    def test_norm_dev_diff_needs_both_sides(self, scoring_config: ScoringConfig) -> None:
        result = compare_metric("hrv_score", MetricResult(value=98.88), {"value": 97}, config=scoring_config)
        assert result.norm_dev_diff is None

    def test_explicit_tolerance_overrides_config(self, scoring_config: ScoringConfig) -> None:
        result = compare_metric("bmr", 1000, 1040, tolerance=10, config=scoring_config)
        assert result.is_within_range is False
        assert result.tolerance == 10

    def test_unknown_metric_never_fails(self, scoring_config: ScoringConfig) -> None:
        result = compare_metric("not_configured", 1, 1000, config=scoring_config)
        assert result.is_within_range is True
        assert math.isinf(result.tolerance)

    def test_unavailable_result_is_not_compared(self, scoring_config: ScoringConfig) -> None:
        calculated = consistency_score([8000, 8100])
        assert calculated.available is False
        result = compare_metric("consistency_score", calculated, {"value": 90}, config=scoring_config)
        assert result.available is False
        assert result.is_within_range is False
        assert result.message == "Calculated consistency_score not available for comparison"

    def test_tee(self, scoring_config: ScoringConfig) -> None:
        assert compare_total_energy_expenditure(5100, 5180, scoring_config).is_within_range is True


class TestCompareStress:
    def test_percentage_diff(self, scoring_config: ScoringConfig) -> None:
        result = compare_stress_score(86.47, 80, scoring_config)
        assert result.is_within_range is False
        assert result.percentage_diff == pytest.approx(8.09, abs=0.01)

    def test_zero_reference_has_no_percentage(self, scoring_config: ScoringConfig) -> None:
        result = compare_stress_score(3, 0, scoring_config)
        assert result.is_within_range is True
        assert result.percentage_diff is None


class TestCompareSafeZone:
    def test_bounds_within_tolerance(self, scoring_config: ScoringConfig) -> None:
        zone = energy_safe_zone([25, 45, -15, 30, 55, 10, 35])
        result = compare_safe_zone(zone, {"upperBound": 80, "lowerBound": -30}, scoring_config)
        assert result.is_within_range is True
        assert result.value_diff == pytest.approx(6.43)
        assert result.details["upper_diff"] == pytest.approx(3.57)

    def test_bounds_outside_tolerance(self, scoring_config: ScoringConfig) -> None:
        result = compare_safe_zone(
            {"upperBound": 100, "lowerBound": 0},
            {"upperBound": 130, "lowerBound": 5},
            scoring_config,
        )
        assert result.is_within_range is False
        assert result.value_diff == pytest.approx(30.0)

    def test_missing_reference(self, scoring_config: ScoringConfig) -> None:
        result = compare_safe_zone({"upperBound": 1, "lowerBound": 0}, None, scoring_config)
        assert result.available is False

    def test_unavailable_calculated_zone(self, scoring_config: ScoringConfig) -> None:
        zone = energy_safe_zone([1, 2])
        result = compare_safe_zone(zone, {"upperBound": 80, "lowerBound": -30}, scoring_config)
        assert result.available is False
        assert "insufficient history" in result.message


class TestCompareDailyValues:
    def test_compares_shared_scores(self, scoring_config: ScoringConfig) -> None:
        calculated = {
            "StepsScore": {"value": 7, "normDeviation": -2.28, "trend": None},
            "ActiveMinutesScore": {"value": 36, "normDeviation": -1.43, "trend": None},
            "ActivityScore": {"value": 48.2, "normDeviation": None, "trend": None},
        }
        reference = {
            "StepsScore": {"value": 8, "normDeviation": -2.28, "trend": None},
            "ActiveMinutesScore": {"value": 50, "normDeviation": -0.5, "trend": None},
        }
        results = compare_daily_values(calculated, reference, scoring_config)
        assert set(results) == {"StepsScore", "ActiveMinutesScore", "ActivityScore"}
        assert results["StepsScore"].is_within_range is True
        assert results["ActiveMinutesScore"].is_within_range is False
        assert results["ActivityScore"].available is False

    def test_unknown_names_are_skipped(self, scoring_config: ScoringConfig) -> None:
        results = compare_daily_values({"Mystery": {"value": 1}}, {"Mystery": {"value": 2}}, scoring_config)
        assert results == {}

    def test_stress_and_safe_zone_use_dedicated_comparators(self, scoring_config: ScoringConfig) -> None:
        calculated = {
            "StressScore": {"value": 86.47},
            "EnergySafeZone": {"upperBound": 76.43, "lowerBound": -23.57},
        }
        reference = {
            "StressScore": {"value": 85},
            "EnergySafeZone": {"upperBound": 75, "lowerBound": -25},
        }
        results = compare_daily_values(calculated, reference, scoring_config)
        assert results["StressScore"].percentage_diff is not None
        assert results["EnergySafeZone"].metric == "safe_zone"
        assert results["EnergySafeZone"].is_within_range is True
