"""Periodization engine for week-1 volume and 12-week volume progression.

Handles the macro-level plan: where week 1 starts, how volume grows week
over week, the mandatory cutback weeks and the closing taper.
"""

from __future__ import annotations

import numpy as np

from plan_engine.training_plan.models import Goal, PlanMode, RecentFitness

PLAN_WEEKS = 12
CUTBACK_WEEKS = (4, 7)
CUTBACK_RANGE = (0.15, 0.25)
TAPER_START_WEEK = 10
RACE_WEEK = 12
TAPER_FACTORS = {10: 0.80, 11: 0.75, 12: 0.75}

MAX_WEEKLY_INCREASE = {
    PlanMode.CONSERVATIVE: 0.04,
    PlanMode.STANDARD: 0.06,
    PlanMode.AGGRESSIVE: 0.08,
}
PEAK_MULTIPLIER = {
    PlanMode.CONSERVATIVE: 1.15,
    PlanMode.STANDARD: 1.25,
    PlanMode.AGGRESSIVE: 1.35,
}
NO_HISTORY_PEAK_MULTIPLIER = 1.5

BASELINE_CLAMP = 0.10
DEFAULT_DISTANCE_PER_RUN_DAY = 5.0
DEFAULT_BASELINE_RANGE = (25.0, 35.0)

# Smallest week that still holds a capped long run, a quality session and an
# easy run of at least 2.0 each
MIN_WEEKLY_VOLUME = 8.0


def round_distance(value: float) -> float:
    """Round a distance to 0.1 units."""
    return round(value, 1)


class PeriodizationEngine:
    """Engine for week-1 baseline and weekly volume progression."""

    @staticmethod
    def week_one_volume(fitness: RecentFitness, goal: Goal) -> tuple[float, str | None]:
        """Calculate the week-1 baseline volume.

        With at least two non-zero weeks of history the baseline is the mean
        of the two most recent non-zero weeks. Otherwise it is estimated from
        days per week and clamped into 25-35 units.

        Args:
            fitness: Recent fitness profile.
            goal: Race goal.

        Returns:
            (baseline volume, assumption string or None)
        """
        weeks = fitness.nonzero_weeks
        if len(weeks) >= 2:
            avg = (weeks[-1] + weeks[-2]) / 2
            return (
                float(np.clip(avg, avg * (1 - BASELINE_CLAMP), avg * (1 + BASELINE_CLAMP))),
                None,
            )

        estimate = goal.days_per_week * DEFAULT_DISTANCE_PER_RUN_DAY
        baseline = float(np.clip(estimate, *DEFAULT_BASELINE_RANGE))
        return baseline, (
            f"Fewer than 2 weeks of recent running - week 1 volume set to "
            f"{baseline:.1f} {fitness.unit} from {goal.days_per_week} run days per week"
        )

    @staticmethod
    def peak_limit(week_one: float, fitness: RecentFitness, mode: PlanMode) -> float:
        """Ceiling for any week's volume."""
        if fitness.peak_weekly_volume > 0:
            return fitness.peak_weekly_volume * PEAK_MULTIPLIER[mode]
        return week_one * NO_HISTORY_PEAK_MULTIPLIER

    @classmethod
    def weekly_volume_progression(
        cls,
        week_one: float,
        fitness: RecentFitness,
        mode: PlanMode,
        rng: np.random.Generator,
        rules_fired: list[str] | None = None,
    ) -> list[float]:
        """Calculate weekly volume targets for all 12 weeks.

        Rules:
        - Weeks 1-9: random increase of 0 to the mode's max (4/6/8%)
        - Weeks 4 and 7: cutback of 15-25% regardless of mode
        - Weeks 1-9 capped at the peak limit
        - Week 10: 80% of week 9, weeks 11-12: 75% of the prior week
        - No week below MIN_WEEKLY_VOLUME

        Args:
            week_one: Baseline volume.
            fitness: Recent fitness profile (for the historical peak).
            mode: Plan mode.
            rng: Random source for within-bounds variation.
            rules_fired: Optional list that receives rule identifiers.

        Returns:
            List of 12 weekly volume targets, rounded to 0.1.
        """
        fired = rules_fired if rules_fired is not None else []
        limit = cls.peak_limit(week_one, fitness, mode)
        max_increase = MAX_WEEKLY_INCREASE[mode]

        volumes: list[float] = []
        current = week_one
        for week in range(1, PLAN_WEEKS + 1):
            if week >= TAPER_START_WEEK:
                current *= TAPER_FACTORS[week]
                fired.append(f"taper_week_{week}")
            else:
                if week in CUTBACK_WEEKS:
                    current *= 1 - rng.uniform(*CUTBACK_RANGE)
                    fired.append(f"cutback_week_{week}")
                else:
                    current *= 1 + rng.uniform(0.0, max_increase)
                if current > limit:
                    current = limit
                    fired.append(f"peak_cap_week_{week}")
            volume = round_distance(current)
            if volume < MIN_WEEKLY_VOLUME:
                volume = MIN_WEEKLY_VOLUME
                fired.append(f"volume_floor_week_{week}")
            volumes.append(volume)

        return volumes
