"""Plan validator - hard rules (errors) and soft guidelines (warnings)."""

from __future__ import annotations

import logging
from collections import defaultdict

from plan_engine.training_plan.models import (
    PaceBand,
    PlanDay,
    PlanStatus,
    PlanWeek,
    TrainingPlan,
    ValidationResult,
    WorkoutType,
)
from plan_engine.training_plan.periodization import (
    CUTBACK_WEEKS,
    PLAN_WEEKS,
    TAPER_START_WEEK,
)

logger = logging.getLogger(__name__)

MIN_RUN_DISTANCE = 2.0
TOTAL_TOLERANCE = 0.2
PACE_TOLERANCE_SECONDS = 5.0
MAX_IDENTICAL_RUN_DAYS = 2

# Warning thresholds
LONG_RUN_WARNING_SHARE = 0.35
WEEKLY_INCREASE_WARNING_PCT = 0.10

_QUALITY_TYPES = (WorkoutType.TEMPO, WorkoutType.INTERVAL)


def pace_bands_equal(a: PaceBand | None, b: PaceBand | None) -> bool:
    """Two bands are the same when both edges are within 5 s."""
    if a is None or b is None:
        return False
    return (
        abs(a[0] - b[0]) < PACE_TOLERANCE_SECONDS
        and abs(a[1] - b[1]) < PACE_TOLERANCE_SECONDS
    )


class PlanValidator:
    """Validates a TrainingPlan against the generation rules.

    Never raises. Every rule is evaluated and all violations are collected.
    """

    @classmethod
    def validate(cls, plan: TrainingPlan) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if plan.status != PlanStatus.READY:
            return ValidationResult(is_valid=False, errors=["Plan status is not 'ready'"])
        if not plan.weeks:
            return ValidationResult(is_valid=False, errors=["Plan has no weeks"])
        if len(plan.weeks) < PLAN_WEEKS:
            warnings.append(f"Plan has {len(plan.weeks)} weeks (expected {PLAN_WEEKS})")

        for week in plan.weeks:
            week_errors, week_warnings = cls._validate_week(week)
            errors.extend(week_errors)
            warnings.extend(week_warnings)

        warnings.extend(cls._progression_warnings(plan.weeks))
        warnings.extend(cls._race_date_warnings(plan))

        if errors:
            logger.debug(f"Plan {plan.metadata.fingerprint} failed with {len(errors)} errors")
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def _validate_day(day: PlanDay, week_number: int, index: int) -> list[str]:
        errors: list[str] = []
        label = f"Week {week_number} day {index + 1} ({day.date.isoformat()})"
        if day.distance < 0:
            errors.append(f"{label}: Negative distance ({day.distance})")
        if day.workout_type != WorkoutType.REST and day.distance < MIN_RUN_DISTANCE:
            errors.append(
                f"{label}: Run day distance below {MIN_RUN_DISTANCE} ({day.distance})"
            )
        if day.workout_type == WorkoutType.REST and day.distance != 0:
            errors.append(f"{label}: Rest day has non-zero distance ({day.distance})")
        return errors

    @classmethod
    def _validate_week(cls, week: PlanWeek) -> tuple[list[str], list[str]]:
        errors: list[str] = []
        warnings: list[str] = []
        n = week.week_number

        for i, day in enumerate(week.days):
            errors.extend(cls._validate_day(day, n, i))

        run_days = week.run_days()
        actual = sum(d.distance for d in run_days)
        diff = abs(week.total_distance - actual)
        if diff > TOTAL_TOLERANCE:
            errors.append(
                f"Week {n}: Total distance ({week.total_distance}) doesn't match sum "
                f"of days ({actual:.1f}, diff: {diff:.1f})"
            )

        if n < TAPER_START_WEEK:
            if not week.days_of_type(WorkoutType.LONG):
                errors.append(f"Week {n}: Missing long run (non-taper week)")
            if not week.days_of_type(*_QUALITY_TYPES):
                errors.append(f"Week {n}: Missing quality session (tempo/interval)")

        # Guardrail against copy-paste weeks
        groups: dict[float, list[PlanDay]] = defaultdict(list)
        for day in run_days:
            groups[round(day.distance, 1)].append(day)
        for distance, days in groups.items():
            if len(days) <= MAX_IDENTICAL_RUN_DAYS:
                continue
            # Each day anchors its own band cluster; the largest one counts
            matching = max(
                (
                    [d for d in days if pace_bands_equal(d.pace_range, anchor.pace_range)]
                    for anchor in days
                ),
                key=len,
            )
            if len(matching) > MAX_IDENTICAL_RUN_DAYS:
                errors.append(
                    f"Week {n}: {len(matching)} run days have identical distance "
                    f"({distance}) and pace range - must vary"
                )

        for day in week.days_of_type(WorkoutType.LONG):
            if week.total_distance > 0 and (
                day.distance > week.total_distance * LONG_RUN_WARNING_SHARE + 0.05
            ):
                warnings.append(
                    f"Week {n}: Long run {day.distance} is more than "
                    f"{LONG_RUN_WARNING_SHARE:.0%} of weekly total {week.total_distance}"
                )

        for day in run_days:
            band = day.pace_range
            if band is None:
                continue
            if band[0] <= 0 or band[1] <= 0:
                warnings.append(f"Week {n}: Non-positive pace range {band} on {day.date}")
            elif band[0] > band[1]:
                warnings.append(f"Week {n}: Reversed pace range {band} on {day.date}")

        return errors, warnings

    @staticmethod
    def _progression_warnings(weeks: list[PlanWeek]) -> list[str]:
        warnings: list[str] = []
        for prev, week in zip(weeks, weeks[1:]):
            if prev.total_distance <= 0:
                continue
            increase = (week.total_distance - prev.total_distance) / prev.total_distance
            if week.week_number >= TAPER_START_WEEK and increase > 0:
                warnings.append(
                    f"Week {week.week_number}: Taper week volume increased "
                    f"({prev.total_distance} -> {week.total_distance})"
                )
            elif (
                increase > WEEKLY_INCREASE_WARNING_PCT
                and prev.week_number not in CUTBACK_WEEKS
            ):
                warnings.append(
                    f"Week {prev.week_number} to {week.week_number}: volume increase "
                    f"{increase:.1%} exceeds {WEEKLY_INCREASE_WARNING_PCT:.0%} guideline"
                )
        return warnings

    @staticmethod
    def _race_date_warnings(plan: TrainingPlan) -> list[str]:
        race_date = plan.metadata.race_date
        days = [d for w in plan.weeks for d in w.days]
        if race_date is None or not days:
            return []
        first = min(d.date for d in days)
        last = max(d.date for d in days)
        if first <= race_date <= last:
            return []
        return [
            f"Race date {race_date.isoformat()} is outside the plan window "
            f"({first.isoformat()} - {last.isoformat()})"
        ]
