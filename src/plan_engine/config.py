"""Centralized configuration for the training plan engine.

Collects environment variables and default values used by the orchestrator
and the fitness aggregator.

Usage:
    from plan_engine.config import get_config

    config = get_config()
    window = config.window_days
    unit = config.distance_unit
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from plan_engine.training_plan.models import DistanceUnit, PlanMode

logger = logging.getLogger(__name__)

# Default values
DEFAULT_WINDOW_DAYS = 42
DEFAULT_DISTANCE_UNIT = DistanceUnit.KM
DEFAULT_DAYS_PER_WEEK = 5
DEFAULT_MODE = PlanMode.STANDARD
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration for the plan engine.

    All settings are resolved at creation time. Use `from_env()` to
    create from environment variables, or construct directly for testing.
    """

    window_days: int = DEFAULT_WINDOW_DAYS
    distance_unit: DistanceUnit = DEFAULT_DISTANCE_UNIT
    days_per_week: int = DEFAULT_DAYS_PER_WEEK
    mode: PlanMode = DEFAULT_MODE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    log_level: str = DEFAULT_LOG_LEVEL

    def validate(self) -> list[str]:
        """Validate configuration and return list of warnings.

        Returns:
            List of warning messages (empty if all OK).
        """
        warnings: list[str] = []
        if self.window_days < 7:
            warnings.append(f"Invalid window_days: {self.window_days}")
        if not 3 <= self.days_per_week <= 7:
            warnings.append(f"days_per_week must be 3-7, got {self.days_per_week}")
        if self.max_attempts < 0:
            warnings.append(f"Invalid max_attempts: {self.max_attempts}")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            warnings.append(f"Unknown log_level: {self.log_level}")
        return warnings

    @staticmethod
    def from_env() -> EngineConfig:
        """Create config from environment variables.

        Environment variables:
            PLAN_ENGINE_WINDOW_DAYS: Trailing activity window in days
            PLAN_ENGINE_DISTANCE_UNIT: "km" or "mi"
            PLAN_ENGINE_DAYS_PER_WEEK: Default run days per week (3-7)
            PLAN_ENGINE_MODE: conservative, standard or aggressive
            PLAN_ENGINE_MAX_ATTEMPTS: Regeneration attempts before fallback
            PLAN_ENGINE_LOG_LEVEL: Log level name
        """
        return EngineConfig(
            window_days=_int_env("PLAN_ENGINE_WINDOW_DAYS", DEFAULT_WINDOW_DAYS),
            distance_unit=_enum_env(
                "PLAN_ENGINE_DISTANCE_UNIT", DistanceUnit, DEFAULT_DISTANCE_UNIT
            ),
            days_per_week=_int_env("PLAN_ENGINE_DAYS_PER_WEEK", DEFAULT_DAYS_PER_WEEK),
            mode=_enum_env("PLAN_ENGINE_MODE", PlanMode, DEFAULT_MODE),
            max_attempts=_int_env("PLAN_ENGINE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            log_level=os.getenv("PLAN_ENGINE_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _enum_env(name, enum_cls, default):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return enum_cls(raw.lower())
    except ValueError:
        logger.warning(f"Ignoring unknown {name}={raw!r}, using {default.value}")
        return default


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """Get the singleton config instance.

    Returns:
        EngineConfig instance created from environment variables.
    """
    config = EngineConfig.from_env()
    for warning in config.validate():
        logger.warning(f"Config: {warning}")
    return config
