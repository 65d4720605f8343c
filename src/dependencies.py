"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from src.config import Settings, get_settings
from src.scoring.config_loader import ScoringConfig, get_scoring_config


def get_config() -> ScoringConfig:
    """Return the scoring config singleton for the current process."""
    return get_scoring_config()


# Annotated shortcuts for route signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
Scoring = Annotated[ScoringConfig, Depends(get_config)]
