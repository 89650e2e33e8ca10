"""Pace range calculator.

Turns a RecentFitness profile and a race goal into the four ordered pace
bands used by the plan generator. All paces are seconds per distance unit,
bands are (fast, slow).

Band sources, in order of preference:
- easy:      fitness easy band, else goal pace +60..+120s
- tempo:     fitness threshold estimate +-5s, else goal pace minus an offset
             (smaller for the marathon, where tempo sits closer to goal pace)
- interval:  fitness VO2 estimate +-5s, else goal pace -75..-45s
- goal_pace: goal pace -10..+15s, always from the goal
"""

from __future__ import annotations

import logging

from plan_engine.training_plan.models import (
    DistanceUnit,
    Goal,
    PaceBand,
    PaceRanges,
    RaceCategory,
    RecentFitness,
    repair_band_order,
)
from plan_engine.utils.units import meters_to_unit

logger = logging.getLogger(__name__)

GOAL_PACE_TOLERANCE = (10.0, 15.0)  # faster, slower
ESTIMATE_TOLERANCE = 5.0
EASY_GOAL_OFFSET = (60.0, 120.0)
INTERVAL_GOAL_OFFSET = (75.0, 45.0)
TEMPO_GOAL_OFFSET: dict[RaceCategory, tuple[float, float]] = {
    RaceCategory.MARATHON: (25.0, 10.0),
    RaceCategory.HALF: (35.0, 15.0),
    RaceCategory.TEN_K: (35.0, 15.0),
    RaceCategory.FIVE_K: (35.0, 15.0),
}

SOURCE_FITNESS = "fitness"
SOURCE_GOAL = "goal"


class PaceRangeCalculator:
    """Calculator for goal pace and the derived training pace bands."""

    @staticmethod
    def goal_pace(goal: Goal, unit: DistanceUnit = DistanceUnit.KM) -> float:
        """Goal race pace in seconds per unit.

        Args:
            goal: Race goal.
            unit: Distance unit of the result.

        Returns:
            Target time divided by the canonical race distance.
        """
        return goal.target_time_seconds / meters_to_unit(goal.race.distance_meters, unit)

    @classmethod
    def compute(cls, fitness: RecentFitness, goal: Goal) -> PaceRanges:
        """Compute ordered pace bands for a goal."""
        ranges, _, _ = cls.compute_with_source(fitness, goal)
        return ranges

    @classmethod
    def compute_with_source(
        cls, fitness: RecentFitness, goal: Goal
    ) -> tuple[PaceRanges, dict[str, str], list[str]]:
        """Compute pace bands and report where each one came from.

        Returns:
            (pace ranges, band name -> "fitness"/"goal", assumption strings)
        """
        gp = cls.goal_pace(goal, fitness.unit)
        sources: dict[str, str] = {"goal_pace": SOURCE_GOAL}
        assumptions: list[str] = []

        goal_band = _band(gp - GOAL_PACE_TOLERANCE[0], gp + GOAL_PACE_TOLERANCE[1])

        easy_min, easy_max = fitness.easy_pace_range
        if 0 < easy_min < easy_max:
            easy = _band(easy_min, easy_max)
            sources["easy"] = SOURCE_FITNESS
        else:
            easy = _band(gp + EASY_GOAL_OFFSET[0], gp + EASY_GOAL_OFFSET[1])
            sources["easy"] = SOURCE_GOAL
            assumptions.append("Easy pace derived from goal pace (+60-120s)")

        if fitness.threshold_pace_estimate is not None:
            t = fitness.threshold_pace_estimate
            tempo = _band(t - ESTIMATE_TOLERANCE, t + ESTIMATE_TOLERANCE)
            sources["tempo"] = SOURCE_FITNESS
        else:
            faster, slower = TEMPO_GOAL_OFFSET[goal.race]
            tempo = _band(gp - faster, gp - slower)
            sources["tempo"] = SOURCE_GOAL
            assumptions.append(
                f"Tempo pace derived from goal pace ({int(faster)}-{int(slower)}s faster)"
            )

        if fitness.vo2_pace_estimate is not None:
            v = fitness.vo2_pace_estimate
            interval = _band(v - ESTIMATE_TOLERANCE, v + ESTIMATE_TOLERANCE)
            sources["interval"] = SOURCE_FITNESS
        else:
            interval = _band(gp - INTERVAL_GOAL_OFFSET[0], gp - INTERVAL_GOAL_OFFSET[1])
            sources["interval"] = SOURCE_GOAL
            assumptions.append("Interval pace derived from goal pace (45-75s faster)")

        bands = [interval, tempo, goal_band, easy]
        repaired = cls.repair_order(bands)
        if repaired != bands:
            logger.info("Pace bands overlapped and were shifted to restore ordering")

        ranges = PaceRanges(
            interval=repaired[0],
            tempo=repaired[1],
            goal_pace=repaired[2],
            easy=repaired[3],
        )
        return ranges, sources, assumptions

    @staticmethod
    def repair_order(bands: list[PaceBand]) -> list[PaceBand]:
        """Ordering repair pass over bands listed fastest first."""
        return repair_band_order(bands)


def _band(fast: float, slow: float) -> PaceBand:
    return (round(fast, 1), round(slow, 1))
