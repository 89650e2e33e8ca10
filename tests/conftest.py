"""Pytest configuration and shared fixtures.

Activity fixtures are plain dicts in the activity provider's shape, so the
same data exercises model validation and aggregation.
"""

from datetime import date, datetime, time, timedelta
from typing import Any

import numpy as np
import pytest

from plan_engine.config import EngineConfig
from plan_engine.training_plan.models import (
    DistanceUnit,
    Goal,
    PaceRanges,
    RaceCategory,
    RecentFitness,
)

# A Sunday, so the current week is complete
TODAY = date(2025, 3, 16)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random source for reproducible generation."""
    return np.random.default_rng(42)


@pytest.fixture
def engine_config() -> EngineConfig:
    """Default config, independent of the environment."""
    return EngineConfig()


@pytest.fixture
def make_run():
    """Factory fixture for activity dicts.

    Usage:
        run = make_run(day, km=10.0, pace=330.0)
    """

    def _make(
        day: date, km: float, pace: float, hr: float | None = None
    ) -> dict[str, Any]:
        return {
            "start_time": datetime.combine(day, time(7, 0)),
            "distance_meters": km * 1000.0,
            "moving_time_seconds": km * pace,
            "avg_heart_rate": hr,
        }

    return _make


@pytest.fixture
def stable_history(make_run, today) -> list[dict[str, Any]]:
    """12 weeks at 30 km/week with steady easy running only."""
    runs = []
    this_monday = today - timedelta(days=today.weekday())
    for week in range(12):
        monday = this_monday - timedelta(weeks=week)
        runs.append(make_run(monday, 6.0, 350.0, hr=138))
        runs.append(make_run(monday + timedelta(days=2), 6.0, 345.0, hr=140))
        runs.append(make_run(monday + timedelta(days=4), 6.0, 352.0, hr=137))
        runs.append(make_run(monday + timedelta(days=6), 12.0, 355.0, hr=139))
    return runs


@pytest.fixture
def stable_fitness() -> RecentFitness:
    """Fitness profile equivalent to a steady 30 km/week runner."""
    return RecentFitness(
        unit=DistanceUnit.KM,
        weekly_volumes=[30.0] * 6,
        active_weeks=6,
        average_weekly_volume=30.0,
        peak_weekly_volume=30.0,
        long_run_distance=12.0,
        median_pace=350.0,
        easy_pace_range=(378.0, 392.0),
        run_count=24,
        last_run_date=TODAY,
    )


@pytest.fixture
def empty_fitness() -> RecentFitness:
    return RecentFitness(
        weekly_volumes=[0.0] * 6,
        easy_pace_range=(300.0, 335.0),
        assumptions=["No recent runs found"],
    )


@pytest.fixture
def marathon_goal() -> Goal:
    """Sub-3 marathon, 12 weeks from 2025-03-17."""
    return Goal(
        race=RaceCategory.MARATHON,
        target_time_seconds=2 * 3600 + 59 * 60,
        start_date=date(2025, 3, 17),
        race_date=date(2025, 6, 8),
    )


@pytest.fixture
def half_goal() -> Goal:
    return Goal(
        race=RaceCategory.HALF,
        target_time_seconds=90 * 60,
        start_date=date(2025, 3, 17),
    )


@pytest.fixture
def marathon_paces() -> PaceRanges:
    return PaceRanges(
        interval=(180.0, 210.0),
        tempo=(220.0, 240.0),
        goal_pace=(245.0, 270.0),
        easy=(330.0, 390.0),
    )
