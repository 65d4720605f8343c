"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class OneVitalBase(BaseModel):
    """Base model with shared config for all OneVital schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class MetricRecord(OneVitalBase):
    """The ``{value, normDeviation, trend}`` shape used for every score."""

    value: float | None = None
    norm_deviation: float | None = Field(default=None, alias="normDeviation")
    trend: int | None = None

