"""Load, validate, and hot-reload the OneVital scoring configuration.

The config lives in ``scoring_config.yaml`` alongside this module.  It is
loaded once on first use and cached.  Call ``reload_scoring_config()`` to
re-read from disk.

Usage::

    from src.scoring.config_loader import get_scoring_config

    config = get_scoring_config()
    config.tolerance("bmr")                       # 50.0
    config.classify("stress_level", 72.5)         # 'moderate_stress'
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("onevital.scoring.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "scoring_config.yaml"

# Keys the comparison helpers and aggregators rely on
REQUIRED_TOLERANCES = (
    "sleep_metric",
    "steps_score",
    "active_minutes_score",
    "consistency_score",
    "activity_level_consistency",
    "total_energy_credit",
    "final_activity_score",
    "stress_score",
    "bmr",
    "tef",
    "paee",
    "energy_capacity",
    "hrv_score",
    "recovery_score",
    "energy_credit",
    "safe_zone",
    "tee",
)
REQUIRED_BANDS = (
    "score",
    "readiness",
    "step_consistency",
    "stress_level",
    "parasympathetic_activity",
    "rhr_status",
)


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class Bands:
    """Thresholds mapping a numeric value to a qualitative label.

    Attributes:
        name:             Band set identifier (matches config key).
        thresholds:       ``(label, limit)`` pairs in evaluation order.
        fallback:         Label when no threshold matches.
        higher_is_better: True if limits are minimums (value ≥ limit),
                          False if they are maximums (value ≤ limit).
    """

    name: str
    thresholds: list[tuple[str, float]]
    fallback: str
    higher_is_better: bool = True

    def classify(self, value: float) -> str:
        for label, limit in self.thresholds:
            if self.higher_is_better and value >= limit:
                return label
            if not self.higher_is_better and value <= limit:
                return label
        return self.fallback


@dataclass
class ScoringConfig:
    """Complete, validated scoring configuration.

    Attributes:
        version:    Config schema version string.
        tolerances: Metric key → absolute comparison tolerance.
        bands:      Band set name → Bands.
    """

    version: str
    tolerances: dict[str, float]
    bands: dict[str, Bands]
    _raw: dict = field(default_factory=dict, repr=False)

    def tolerance(self, key: str) -> float:
        """Return the comparison tolerance for a metric key.

        Args:
            key: Tolerance key from config (e.g. 'bmr', 'sleep_metric').

        Returns:
            Tolerance value.  Unknown keys never fail a comparison.
        """
        return self.tolerances.get(key, float("inf"))

    def classify(self, band: str, value: float) -> str:
        """Label ``value`` using the named band set.

        Raises:
            KeyError: If the band set is not configured.
        """
        return self.bands[band].classify(value)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when scoring_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError:     If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Scoring config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _build_bands(name: str, raw: object, errors: list[str]) -> Bands | None:
    if not isinstance(raw, dict):
        errors.append(f"bands.{name} must be a mapping")
        return None

    higher_is_better = bool(raw.get("higher_is_better", True))
    thresholds: list[tuple[str, float]] = []
    for label, limit in (raw.get("thresholds") or {}).items():
        try:
            thresholds.append((str(label), float(limit)))
        except (TypeError, ValueError):
            errors.append(f"bands.{name}.thresholds.{label} must be a number, got {limit!r}")

    if not thresholds:
        errors.append(f"bands.{name} has no thresholds")

    limits = [limit for _, limit in thresholds]
    expected = sorted(limits, reverse=higher_is_better)
    if limits != expected:
        order = "descending" if higher_is_better else "ascending"
        errors.append(f"bands.{name} thresholds must be in {order} order, got {limits}")

    fallback = raw.get("fallback")
    if not fallback:
        errors.append(f"Missing required key 'fallback' in section 'bands.{name}'")

    return Bands(
        name=name,
        thresholds=thresholds,
        fallback=str(fallback or ""),
        higher_is_better=higher_is_better,
    )


def _validate_and_build(raw: dict) -> ScoringConfig:
    """Validate the raw YAML dict and construct a ScoringConfig.

    All problems are collected and reported together.

    Raises:
        ConfigValidationError: If required fields are missing or invalid.
    """
    errors: list[str] = []

    version = str(raw.get("version", "1.0"))

    # ── Tolerances ──
    tol_raw = raw.get("tolerances") or {}
    if not isinstance(tol_raw, dict):
        errors.append("'tolerances' must be a mapping of metric→tolerance")
        tol_raw = {}

    tolerances: dict[str, float] = {}
    for key, val in tol_raw.items():
        try:
            t = float(val)
        except (TypeError, ValueError):
            errors.append(f"tolerances.{key} must be a number, got {val!r}")
            continue
        if t < 0:
            errors.append(f"tolerances.{key} = {t} must not be negative")
        tolerances[key] = t

    for key in REQUIRED_TOLERANCES:
        if key not in tol_raw:
            errors.append(f"Missing required key '{key}' in section 'tolerances'")

    # ── Bands ──
    bands_raw = raw.get("bands") or {}
    if not isinstance(bands_raw, dict):
        errors.append("'bands' must be a mapping")
        bands_raw = {}

    bands: dict[str, Bands] = {}
    for name, cfg in bands_raw.items():
        built = _build_bands(name, cfg, errors)
        if built is not None:
            bands[name] = built

    for name in REQUIRED_BANDS:
        if name not in bands_raw:
            errors.append(f"Missing required key '{name}' in section 'bands'")

    unknown = set(raw) - {"version", "tolerances", "bands"}
    if unknown:
        logger.warning("Ignoring unknown scoring config sections: %s", sorted(unknown))

    if errors:
        raise ConfigValidationError(
            f"scoring_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return ScoringConfig(version=version, tolerances=tolerances, bands=bands, _raw=raw)


def load_scoring_config(path: Path | None = None) -> ScoringConfig:
    """Load and validate the scoring config from disk.

    Args:
        path: Override path to YAML. Uses the bundled scoring_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded scoring config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: ScoringConfig | None = None
_config_lock = threading.Lock()


def get_scoring_config() -> ScoringConfig:
    """Return the global ScoringConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_scoring_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_scoring_config()
    return _config


def reload_scoring_config(path: Path | None = None) -> ScoringConfig:
    """Reload the scoring config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_scoring_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded scoring config: %s → %s", old_version, new_config.version)
    return new_config
