"""Scoring endpoints: compute domain scores and validate them against reference values."""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, HTTPException

from src.dependencies import Scoring
from src.models.scores import (
    ActivityScoreRequest,
    CompareRequest,
    ComparisonRead,
    DailyValue,
    EnergyScoreRequest,
    EnergyScoreResponse,
    ScoreResponse,
    SleepScoreRequest,
    StressScoreRequest,
    ValidationReport,
)
from src.scoring import adapters
from src.scoring.activity import ActivityInputs, calculate_activity_score
from src.scoring.base import ScoringInputError
from src.scoring.comparison import compare_daily_values
from src.scoring.config_loader import ScoringConfig
from src.scoring.energy import EnergyInputs, calculate_energy_score
from src.scoring.sleep import SleepInputs, SleepStages, calculate_sleep_score
from src.scoring.stress import StressInputs, calculate_stress_score

router = APIRouter(prefix="/scores", tags=["scores"])
logger = logging.getLogger("onevital.api.scores")


def _invalid(exc: ScoringInputError) -> HTTPException:
    logger.info("Rejected scoring request: %s", exc)
    return HTTPException(status_code=422, detail=str(exc))


def _daily_value(domain: str, metrics: dict[str, Any], config: ScoringConfig) -> dict[str, Any]:
    """Run one domain's aggregator on backend metrics and return its daily value."""
    builders: dict[str, tuple[Callable[..., Any], Callable[..., Any]]] = {
        "sleep": (adapters.sleep_inputs_from_metrics, calculate_sleep_score),
        "activity": (adapters.activity_inputs_from_metrics, calculate_activity_score),
        "stress": (adapters.stress_inputs_from_metrics, calculate_stress_score),
        "energy": (adapters.energy_inputs_from_metrics, calculate_energy_score),
    }
    if domain not in builders:
        raise HTTPException(status_code=404, detail=f"Unknown score domain '{domain}'")
    to_inputs, calculate = builders[domain]
    return calculate(to_inputs(metrics), config).to_daily_value()


# ---------- Domain scores ----------

@router.post("/sleep", response_model=ScoreResponse)
async def sleep_score(body: SleepScoreRequest, config: Scoring) -> Any:
    try:
        inputs = SleepInputs(
            stages=SleepStages(**body.stages.model_dump()),
            resting_hr=body.resting_hr,
            sleep_hr=body.sleep_hr,
            fell_asleep_minutes=adapters.parse_clock(body.fell_asleep),
            total_sleep_minutes=adapters.parse_duration(body.total_sleep),
            observed_cycles=body.observed_cycles,
            consistency_variation_hours=body.consistency_variation_hours,
            onset_latency_minutes=body.onset_latency_minutes,
            waso_minutes=body.waso_minutes,
        )
    except ScoringInputError as exc:
        raise _invalid(exc) from exc

    result = calculate_sleep_score(inputs, config)
    return {"value": result.value, "components": result.to_daily_value(), "analysis": result.analysis}


@router.post("/activity", response_model=ScoreResponse)
async def activity_score(body: ActivityScoreRequest, config: Scoring) -> Any:
    result = calculate_activity_score(ActivityInputs(**body.model_dump()), config)
    return {"value": result.value, "components": result.to_daily_value(), "analysis": result.analysis}


@router.post("/stress", response_model=ScoreResponse)
async def stress_score(body: StressScoreRequest, config: Scoring) -> Any:
    try:
        result = calculate_stress_score(StressInputs(**body.model_dump()), config)
    except ScoringInputError as exc:
        raise _invalid(exc) from exc

    analysis = dict(result.analysis)
    if result.energy is not None:
        analysis["stressEnergy"] = result.energy.stress_energy
    return {"value": result.value, "components": result.to_daily_value(), "analysis": analysis}


@router.post("/energy", response_model=EnergyScoreResponse)
async def energy_score(body: EnergyScoreRequest, config: Scoring) -> Any:
    try:
        result = calculate_energy_score(EnergyInputs(**body.model_dump()), config)
    except ScoringInputError as exc:
        raise _invalid(exc) from exc

    components = result.to_daily_value()
    components.pop("EnergySafeZone")
    return {
        "components": components,
        "total_energy_expenditure": result.tee,
        "energy_delta": result.energy_delta,
        "safe_zone": result.safe_zone,
        "analysis": result.analysis,
    }


# ---------- Comparison ----------

@router.post("/compare", response_model=dict[str, ComparisonRead])
async def compare(body: CompareRequest, config: Scoring) -> Any:
    return compare_daily_values(body.calculated, body.reference, config)


@router.post("/{domain}/validate", response_model=ValidationReport)
async def validate_daily_value(domain: str, body: DailyValue, config: Scoring) -> Any:
    """Recompute a backend daily value from its ``metrics`` and compare the scores."""
    try:
        calculated = _daily_value(domain, body.metrics, config)
    except ScoringInputError as exc:
        raise _invalid(exc) from exc

    comparisons = compare_daily_values(calculated, body.score_records(), config)
    mismatches = [name for name, c in comparisons.items() if c.available and not c.is_within_range]
    return {
        "date": body.date,
        "calculated": calculated,
        "comparisons": comparisons,
        "mismatches": mismatches,
    }
