"""Weekly template engine for training plan generation.

Lays out one plan week: which weekdays are run days, where the long run and
quality session go, how the remaining distance is split across easy runs,
and the final reconciliation against the declared weekly total.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

import numpy as np

from plan_engine.training_plan.models import (
    Goal,
    PaceRanges,
    PlanDay,
    PlanMode,
    RecentFitness,
    WorkoutType,
)
from plan_engine.training_plan.periodization import RACE_WEEK, round_distance

# Weekday offsets (0=Mon, 6=Sun) used as run days, long run always last
RUN_DAY_PATTERNS: dict[int, list[int]] = {
    3: [1, 3, 6],  # Tue, Thu, Sun
    4: [0, 2, 4, 6],  # Mon, Wed, Fri, Sun
    5: [0, 1, 3, 4, 6],  # Mon, Tue, Thu, Fri, Sun
    6: [0, 1, 2, 4, 5, 6],  # Mon-Wed, Fri-Sun
    7: [0, 1, 2, 3, 4, 5, 6],
}

LONG_RUN_SHARE = 0.30
LONG_RUN_MAX_SHARE = 0.35
LONG_RUN_FLOOR = 10.0
LONG_RUN_WEEK_ONE_FACTOR = 0.9
LONG_RUN_CEILING = {
    PlanMode.CONSERVATIVE: 20.0,
    PlanMode.STANDARD: 20.0,
    PlanMode.AGGRESSIVE: 22.0,
}

QUALITY_SHARE = 0.12
MEDIUM_LONG_SHARE = 0.18
MEDIUM_LONG_WEEKS = range(4, 10)
MEDIUM_LONG_MIN_DAYS = 6
MEDIUM_LONG_MAX_RATIO = 0.8

MIN_RUN_DISTANCE = 2.0
EASY_RUN_FLOOR = 3.0
EASY_JITTER = (0.15, 0.25)
RECOVERY_MIN_EASY_RUNS = 3
RECONCILE_TOLERANCE = 0.1

NOTES = {
    "long": "Long run - build endurance at easy effort",
    "race_week_long": "Race week - relaxed long run, stay controlled",
    "tempo": "Tempo run at threshold pace",
    "interval": "Interval session - 5-6 x 1000m with 2-3 min recovery jogs",
    "race_week_easy": "Race week - easy run, no quality work",
    "medium_long": "Medium-long run at easy effort",
    "recovery": "Recovery run - keep it very easy",
    "easy": "Easy run",
    "rest": "Rest day",
}


def floor_distance(value: float) -> float:
    """Round a distance down to 0.1 units."""
    return math.floor(value * 10 + 1e-6) / 10


class WeeklyTemplateEngine:
    """Engine for laying out the days of a plan week."""

    @staticmethod
    def run_days(days_per_week: int) -> list[int]:
        """Weekday offsets of run days for a given frequency."""
        if days_per_week not in RUN_DAY_PATTERNS:
            raise ValueError(f"days_per_week must be 3-7, got {days_per_week}")
        return list(RUN_DAY_PATTERNS[days_per_week])

    @staticmethod
    def long_run_distance(
        week_total: float,
        week_number: int,
        fitness: RecentFitness,
        mode: PlanMode,
        rules_fired: list[str] | None = None,
    ) -> float:
        """Long run distance for a week.

        30% of the weekly total (week 1 also limited by recent long-run
        capability), floored at 10, then capped by the mode ceiling and by
        35% of the weekly total. The smaller cap wins.
        """
        fired = rules_fired if rules_fired is not None else []
        target = week_total * LONG_RUN_SHARE
        if week_number == 1:
            target = min(
                target,
                max(LONG_RUN_FLOOR, fitness.long_run_distance * LONG_RUN_WEEK_ONE_FACTOR),
            )
        long_run = round_distance(float(np.clip(target, LONG_RUN_FLOOR, LONG_RUN_CEILING[mode])))

        share_cap = floor_distance(week_total * LONG_RUN_MAX_SHARE)
        if long_run > share_cap:
            long_run = share_cap
            fired.append(f"long_run_share_cap_week_{week_number}")
        return long_run

    @staticmethod
    def max_distinct_runs(total: float, floor: float) -> int:
        """Most runs of at least `floor` that fit in `total` with no two equal."""
        budget = round(total * 10)
        step = round(floor * 10)
        n = 0
        while budget >= (n + 1) * step + n * (n + 1) // 2:
            n += 1
        return n

    @classmethod
    def varied_easy_distances(
        cls,
        total: float,
        count: int,
        rng: np.random.Generator,
        floor: float = EASY_RUN_FLOOR,
    ) -> list[float]:
        """Split `total` across up to `count` easy runs with deliberate variation.

        Each run but the last is jittered by 15-25% up or down around the
        even split and the last takes the remainder. The shape is then laid
        on top of a ladder of distinct distances starting at `floor`, so no
        two runs are within 0.1 of each other and the sum is exactly `total`.

        Fewer than `count` runs are returned when `total` cannot hold that
        many distinct runs of at least `floor`.

        Returns:
            Distances sorted longest first.
        """
        count = min(count, cls.max_distinct_runs(total, floor))
        if count <= 0:
            return []
        if count == 1:
            return [round_distance(total)]

        base = total / count
        shape: list[float] = []
        remaining = total
        for _ in range(count - 1):
            sign = 1.0 if rng.random() < 0.5 else -1.0
            variation = rng.uniform(*EASY_JITTER) * sign
            distance = max(base * (1 + variation), floor)
            shape.append(distance)
            remaining -= distance
        shape.append(max(remaining, floor))

        # Work in tenths: ladder of distinct minimums, then the jittered surplus
        ladder = [round(floor * 10) + k for k in reversed(range(count))]
        wanted = sorted((round(d * 10) for d in shape), reverse=True)
        extra = [max(w - low, 0) for w, low in zip(wanted, ladder)]
        for i in range(1, count):
            extra[i] = min(extra[i], extra[i - 1])

        spare = round(total * 10) - sum(ladder)
        weight = sum(extra)
        extra = [e * spare // weight for e in extra] if weight else [0] * count
        extra[0] += spare - sum(extra)

        return [(low + e) / 10 for low, e in zip(ladder, extra)]

    @classmethod
    def build_week(
        cls,
        week_start: date,
        week_number: int,
        week_total: float,
        fitness: RecentFitness,
        goal: Goal,
        paces: PaceRanges,
        rng: np.random.Generator,
        rules_fired: list[str] | None = None,
    ) -> list[PlanDay]:
        """Create the seven PlanDay entries for one week.

        Assignment order:
        1. Long run on the last run day
        2. Quality session (interval on odd weeks, tempo on even weeks) on
           the midpoint run day; race week gets an easy run instead
        3. Medium-long run on the second run day, weeks 4-9 with 6+ run days
        4. Varied easy / recovery runs on the remaining run days
        5. Rest on every other day
        6. Reconcile the run-day sum with the declared weekly total
        """
        fired = rules_fired if rules_fired is not None else []
        mode = goal.mode
        slots = cls.run_days(goal.days_per_week)
        assigned: dict[int, PlanDay] = {}

        def _day(offset: int) -> date:
            return week_start + timedelta(days=offset)

        # 1. Long run
        long_offset = slots[-1]
        long_km = cls.long_run_distance(week_total, week_number, fitness, mode, fired)
        assigned[long_offset] = PlanDay(
            date=_day(long_offset),
            workout_type=WorkoutType.LONG,
            distance=long_km,
            pace_range=paces.easy,
            notes=NOTES["race_week_long"] if week_number == RACE_WEEK else NOTES["long"],
        )

        # 2. Quality session
        quality_offset = slots[len(slots) // 2]
        quality_km = max(MIN_RUN_DISTANCE, round_distance(week_total * QUALITY_SHARE))
        if week_number == RACE_WEEK:
            fired.append("race_week_no_quality")
            quality_slot_is_easy = True
        else:
            quality_slot_is_easy = False
            if week_number % 2 == 0:
                quality_type, quality_pace = WorkoutType.TEMPO, paces.tempo
            else:
                quality_type, quality_pace = WorkoutType.INTERVAL, paces.interval
            assigned[quality_offset] = PlanDay(
                date=_day(quality_offset),
                workout_type=quality_type,
                distance=quality_km,
                pace_range=quality_pace,
                notes=NOTES[quality_type.value],
            )

        # 3. Medium-long run, always shorter than the long run
        ml_km = min(
            round_distance(week_total * MEDIUM_LONG_SHARE),
            round_distance(long_km * MEDIUM_LONG_MAX_RATIO),
        )
        if (
            week_number in MEDIUM_LONG_WEEKS
            and len(slots) >= MEDIUM_LONG_MIN_DAYS
            and ml_km >= EASY_RUN_FLOOR
        ):
            ml_offset = slots[1]
            assigned[ml_offset] = PlanDay(
                date=_day(ml_offset),
                workout_type=WorkoutType.EASY,
                distance=ml_km,
                pace_range=paces.easy,
                notes=NOTES["medium_long"],
            )
            fired.append(f"medium_long_week_{week_number}")

        # 4. Easy / recovery runs
        easy_offsets = [o for o in slots if o not in assigned]
        remaining = round_distance(week_total - sum(d.distance for d in assigned.values()))

        floor = (
            EASY_RUN_FLOOR
            if cls.max_distinct_runs(remaining, EASY_RUN_FLOOR) >= len(easy_offsets)
            else MIN_RUN_DISTANCE
        )
        distances = cls.varied_easy_distances(remaining, len(easy_offsets), rng, floor)

        # Low-volume weeks: drop the earliest easy days to keep runs >= 2 and distinct
        if len(distances) < len(easy_offsets):
            easy_offsets = easy_offsets[len(easy_offsets) - len(distances) :]
            fired.append(f"reduced_run_days_week_{week_number}")
        if not distances and remaining > 0:
            # Leftover goes to the quality session so the long run keeps its cap
            absorber = assigned.get(quality_offset) or assigned[long_offset]
            absorber.distance = round_distance(absorber.distance + remaining)

        has_recovery = len(easy_offsets) >= RECOVERY_MIN_EASY_RUNS
        if has_recovery:
            # Shortest run goes to the recovery day
            distances = [distances[-1]] + distances[:-1]
        for i, offset in enumerate(easy_offsets):
            is_recovery = has_recovery and i == 0
            if is_recovery:
                workout_type, notes = WorkoutType.RECOVERY, NOTES["recovery"]
            elif quality_slot_is_easy and offset == quality_offset:
                workout_type, notes = WorkoutType.EASY, NOTES["race_week_easy"]
            else:
                workout_type, notes = WorkoutType.EASY, NOTES["easy"]
            assigned[offset] = PlanDay(
                date=_day(offset),
                workout_type=workout_type,
                distance=distances[i],
                pace_range=paces.easy,
                notes=notes,
            )

        # 5. Rest days
        days = [
            assigned.get(offset)
            or PlanDay(
                date=_day(offset),
                workout_type=WorkoutType.REST,
                distance=0.0,
                notes=NOTES["rest"],
            )
            for offset in range(7)
        ]

        # 6. Reconciliation
        if cls.reconcile(days, week_total):
            fired.append(f"reconciled_week_{week_number}")
        return days

    @staticmethod
    def reconcile(days: list[PlanDay], week_total: float) -> bool:
        """Spread any gap between day distances and the weekly total.

        Only easy and recovery days are adjusted, in 0.1 steps and never
        below 2.0; the long run and quality session are left untouched. The
        difference is shared evenly, and the odd tenths go to the longest
        days when adding and the shortest when removing, so distinct easy
        runs stay distinct.

        Returns:
            True if distances were adjusted.
        """
        diff = round((week_total - sum(d.distance for d in days)) * 10)
        if abs(diff) <= round(RECONCILE_TOLERANCE * 10):
            return False

        flexible = sorted(
            (d for d in days if d.workout_type in (WorkoutType.EASY, WorkoutType.RECOVERY)),
            key=lambda d: d.distance,
            reverse=True,
        )
        if not flexible:
            return False

        n = len(flexible)
        share, odd = divmod(abs(diff), n)
        sign = 1 if diff > 0 else -1
        for i, day in enumerate(flexible):
            bump = i < odd if diff > 0 else i >= n - odd
            step = share + (1 if bump else 0)
            day.distance = round_distance(day.distance + sign * step / 10)

        shortfall = 0.0
        for day in flexible:
            if day.distance < MIN_RUN_DISTANCE:
                shortfall += MIN_RUN_DISTANCE - day.distance
                day.distance = MIN_RUN_DISTANCE
        if shortfall:
            flexible[0].distance = round_distance(flexible[0].distance - shortfall)
        return True
