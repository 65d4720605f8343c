"""Tests for the energy chain: BMR through credit and safe zone."""

from __future__ import annotations

import pytest

from src.scoring.base import ScoringInputError
from src.scoring.config_loader import ScoringConfig
from src.scoring.energy import (
    ENERGY_SCORE_NAMES,
    BodyFatReading,
    EnergyInputs,
    Vo2MaxReading,
    adjusted_total_energy_expenditure,
    basal_metabolic_rate,
    body_fat_fitness_score,
    calculate_energy_score,
    daily_energy_credit_update,
    energy_capacity,
    energy_credit_score,
    energy_safe_zone,
    hrv_score,
    optimal_body_fat_range,
    physical_activity_energy_expenditure,
    recovery_score,
    target_vo2_max,
    thermic_effect_of_food,
    total_energy_credit,
    vo2_fitness_score,
)


class TestBasalMetabolicRate:
    def test_male_with_default_adjustments(self) -> None:
        result = basal_metabolic_rate(75, 175, 30, "male")
        assert result.details["base_bmr"] == pytest.approx(1698.75)
        assert result.value == pytest.approx(1651.33, abs=0.05)
        assert result.method == "mifflin_st_jeor"

    def test_neutral_factors_return_base(self) -> None:
        result = basal_metabolic_rate(75, 175, 30, "male", sleep_score=100, stress_score=0, hour=16)
        assert result.value == pytest.approx(1698.75)

    def test_female_offset(self) -> None:
        result = basal_metabolic_rate(75, 175, 30, "Female")
        assert result.details["base_bmr"] == pytest.approx(1532.75)

    def test_unsupported_gender_raises(self) -> None:
        with pytest.raises(ScoringInputError, match="Unsupported gender"):
            basal_metabolic_rate(75, 175, 30, "other")


class TestExpenditure:
    def test_tef_from_macronutrients(self) -> None:
        result = thermic_effect_of_food(2300, 690, 920, 690)
        assert result.value == pytest.approx(258.75)
        assert result.method == "macronutrient_specific"
        assert result.details["breakdown"]["protein"] == pytest.approx(172.5)

    def test_tef_from_total_intake(self) -> None:
        result = thermic_effect_of_food(2300)
        assert result.value == pytest.approx(230.0)
        assert result.method == "simplified_total_intake"

    def test_tef_needs_all_macronutrients(self) -> None:
        assert thermic_effect_of_food(2300, 690, None, 690).method == "simplified_total_intake"

    def test_paee_met_only(self) -> None:
        result = physical_activity_energy_expenditure(1.8, 1650, 24)
        assert result.value == pytest.approx(2970.0)
        assert result.method == "standard_met_based"

    def test_paee_with_wearable_activity(self) -> None:
        result = physical_activity_energy_expenditure(1.8, 1650, 24, activity_level=1.2)
        assert result.value == pytest.approx(4950.0)
        assert result.method == "enhanced_wearable_and_met"

    def test_adjusted_tee_neutral_factors(self) -> None:
        result = adjusted_total_energy_expenditure(200, 400, 100, sleep_score=100, stress_score=0, hour=14)
        assert result.value == pytest.approx(700.0)

    def test_adjusted_tee_default_sleep_score(self) -> None:
        default = adjusted_total_energy_expenditure(200, 400, 100)
        explicit = adjusted_total_energy_expenditure(200, 400, 100, sleep_score=90)
        assert default.value == pytest.approx(explicit.value)
        assert default.details["sleep_factor"] == pytest.approx(0.995)


class TestFitness:
    @pytest.mark.parametrize(
        "age, gender, expected",
        [(25, "male", 44), (45, "male", 39), (60, "male", 36), (55, "female", 34), (70, "female", 33)],
    )
    def test_target_vo2_max(self, age: int, gender: str, expected: float) -> None:
        assert target_vo2_max(age, gender) == expected

    def test_body_fat_range(self) -> None:
        assert optimal_body_fat_range("male") == (14.0, 17.0)
        assert optimal_body_fat_range("female", "athletes") == (14.0, 20.0)

    def test_unknown_level_uses_fitness_range(self) -> None:
        assert optimal_body_fat_range("female", "elite") == (21.0, 24.0)

    def test_vo2_fitness(self) -> None:
        assert vo2_fitness_score(50, 44) == 100.0
        assert vo2_fitness_score(41, 44) == pytest.approx(60.65, abs=0.01)

    def test_body_fat_fitness(self) -> None:
        assert body_fat_fitness_score(15, 14, 17) == 100.0
        assert body_fat_fitness_score(20, 14, 17) == pytest.approx(48.68, abs=0.01)
        assert body_fat_fitness_score(11, 14, 17) == pytest.approx(48.68, abs=0.01)


class TestEnergyCapacity:
    def test_multiplier_floor(self) -> None:
        result = energy_capacity(1800, fitness_score=0, recovery_score=0, stress_index=100)
        assert result.value == pytest.approx(1800.0)
        assert result.details["capacity_multiplier"] == 1.0

    def test_multiplier_ceiling(self) -> None:
        result = energy_capacity(1800, fitness_score=100, recovery_score=100, stress_index=0)
        assert result.value == pytest.approx(9000.0)

    def test_default_fitness(self) -> None:
        result = energy_capacity(1800)
        assert result.method == "default"
        assert result.value == pytest.approx(6750.0)

    def test_fitness_source_priority(self) -> None:
        vo2 = Vo2MaxReading(current=41, target=44)
        body_fat = BodyFatReading(percentage=20, lower=14, upper=17)
        assert energy_capacity(1800, fitness_score=80, vo2=vo2, body_fat=body_fat).method == "provided"
        assert energy_capacity(1800, vo2=vo2, body_fat=body_fat).method == "vo2_max_based"
        assert energy_capacity(1800, body_fat=body_fat).method == "body_fat_based"


class TestHrvAndRecovery:
    def test_hrv_at_baseline(self) -> None:
        assert hrv_score(50, 45).value == 100.0

    def test_hrv_below_baseline(self) -> None:
        assert hrv_score(42, 45).value == pytest.approx(98.88, abs=0.01)
        assert hrv_score(42, 45, population="athlete").value == pytest.approx(95.60, abs=0.01)

    def test_hrv_missing_input_raises(self) -> None:
        with pytest.raises(ScoringInputError):
            hrv_score(None, 45)

    def test_hrv_negative_input_raises(self) -> None:
        with pytest.raises(ScoringInputError):
            hrv_score(-5, 45)

    def test_hrv_non_positive_sigma_raises(self) -> None:
        with pytest.raises(ScoringInputError):
            hrv_score(40, 45, sigma=0)

    def test_recovery_weighted(self) -> None:
        assert recovery_score(80, 90).value == pytest.approx(84.0)

    def test_recovery_clamps_inputs(self) -> None:
        assert recovery_score(150, -10).value == pytest.approx(60.0)

    def test_recovery_missing_input_raises(self) -> None:
        with pytest.raises(ScoringInputError):
            recovery_score(80, None)

    def test_recovery_zero_weights_raise(self) -> None:
        with pytest.raises(ScoringInputError):
            recovery_score(80, 90, hrv_weight=0, sleep_weight=0)


class TestEnergyCredit:
    def test_surplus_gain(self) -> None:
        update = daily_energy_credit_update(2750, 2500)
        assert update.method == "surplus_gain"
        assert update.change == pytest.approx(6.09)

    def test_deficit_penalty(self) -> None:
        update = daily_energy_credit_update(2250, 2500)
        assert update.method == "deficit_penalty"
        assert update.change == pytest.approx(-7.62)

    def test_perfect_balance(self) -> None:
        update = daily_energy_credit_update(2500, 2500)
        assert update.method == "perfect_balance"
        assert update.change == 0.0

    def test_total_credit_midpoint(self) -> None:
        assert total_energy_credit(0, 0).value == pytest.approx(500.0)

    def test_total_credit_bounded(self) -> None:
        assert total_energy_credit(700, 5).value == pytest.approx(1000.0)
        assert total_energy_credit(-2000, 0).value == pytest.approx(0.0)

    def test_credit_score_carries_update(self) -> None:
        result = energy_credit_score(2750, 2500, current_score=0, rolling_avg=0)
        assert result.value == pytest.approx(500.0)
        assert result.method == "surplus_gain"
        assert result.details["energy_delta"] == pytest.approx(250.0)


class TestSafeZone:
    def test_historical_band(self) -> None:
        zone = energy_safe_zone([25, 45, -15, 30, 55, 10, 35])
        assert zone.available is True
        assert zone.average_delta == pytest.approx(26.43)
        assert zone.upper_bound == pytest.approx(76.43)
        assert zone.lower_bound == pytest.approx(-23.57)
        assert zone.range == pytest.approx(100.0)

    def test_insufficient_history(self) -> None:
        zone = energy_safe_zone([100, 150])
        assert zone.available is False
        assert zone.upper_bound is None
        assert zone.message == "Insufficient historical data. Need at least 3 records, have 2"

    def test_missing_entries_are_skipped(self) -> None:
        zone = energy_safe_zone([10, None, 20, float("nan"), 30], buffer=10)
        assert zone.count == 3
        assert zone.upper_bound == pytest.approx(30.0)
        assert zone.lower_bound == pytest.approx(10.0)

    def test_no_history(self) -> None:
        zone = energy_safe_zone([])
        assert zone.available is False
        assert zone.to_record() == {"upperBound": None, "lowerBound": None}

    def test_accepts_any_sequence(self) -> None:
        zone = energy_safe_zone(range(10, 40, 10), buffer=5)
        assert zone.available is True
        assert zone.average_delta == pytest.approx(20.0)
        assert zone.upper_bound == pytest.approx(25.0)
        assert zone.lower_bound == pytest.approx(15.0)

    def test_string_is_not_history(self) -> None:
        assert energy_safe_zone("123").available is False


class TestEnergyAggregate:
    def test_chain_is_consistent(self, energy_inputs: EnergyInputs, scoring_config: ScoringConfig) -> None:
        score = calculate_energy_score(energy_inputs, scoring_config)
        c = score.components
        assert score.tee == pytest.approx(c["bmr"].value + c["paee"].value + c["tef"].value, abs=0.01)
        assert score.energy_delta == pytest.approx(c["capacity"].value - score.tee, abs=0.01)
        assert c["tef"].value == pytest.approx(258.75)
        assert c["capacity"].method == "provided"
        assert c["paee"].method == "enhanced_wearable_and_met"

    def test_capacity_uses_supplied_recovery_and_stress(
        self, energy_inputs: EnergyInputs, scoring_config: ScoringConfig
    ) -> None:
        capacity = calculate_energy_score(energy_inputs, scoring_config).components["capacity"]
        assert capacity.details["recovery_score"] == 82
        assert capacity.details["stress_index"] == 45
        assert capacity.details["capacity_multiplier"] == pytest.approx(3.39)

    def test_analysis(self, energy_inputs: EnergyInputs, scoring_config: ScoringConfig) -> None:
        score = calculate_energy_score(energy_inputs, scoring_config)
        assert score.analysis["energyBalance"] in ("surplus", "deficit")
        assert score.analysis["sustainabilityScore"] == pytest.approx(100.0)
        assert score.analysis["recoveryReadiness"] == "excellent"
        assert score.safe_zone.available is True

    def test_derives_fitness_from_vo2(self, energy_inputs: EnergyInputs, scoring_config: ScoringConfig) -> None:
        energy_inputs.fitness_score = None
        energy_inputs.vo2_max = 39  # target for a 30-year-old male is 42
        capacity = calculate_energy_score(energy_inputs, scoring_config).components["capacity"]
        assert capacity.method == "vo2_max_based"
        assert capacity.details["fitness_score"] == pytest.approx(60.65, abs=0.01)

    def test_invalid_hrv_raises(self, energy_inputs: EnergyInputs, scoring_config: ScoringConfig) -> None:
        energy_inputs.current_hrv = -1
        with pytest.raises(ScoringInputError):
            calculate_energy_score(energy_inputs, scoring_config)

    def test_daily_value_shape(self, energy_inputs: EnergyInputs, scoring_config: ScoringConfig) -> None:
        record = calculate_energy_score(energy_inputs, scoring_config).to_daily_value()
        assert set(record) == {"EnergySafeZone", *ENERGY_SCORE_NAMES.values()}
        assert record["EnergySafeZone"]["upperBound"] == pytest.approx(76.43)
