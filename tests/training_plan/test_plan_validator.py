"""Tests for PlanValidator."""

from datetime import date, datetime, timedelta, timezone

import pytest

from plan_engine.training_plan.models import (
    PlanDay,
    PlanMetadata,
    PlanStatus,
    PlanWeek,
    TrainingPlan,
    WorkoutType,
)
from plan_engine.training_plan.plan_validator import PlanValidator, pace_bands_equal

EASY = (330.0, 360.0)
TEMPO = (240.0, 250.0)
MONDAY = date(2025, 3, 17)


def _week(
    week_number: int = 1,
    easy: tuple[float, float, float] = (5.0, 5.5, 6.0),
    easy_bands=(EASY, EASY, EASY),
    tempo: float = 4.0,
    long: float = 11.0,
    total: float | None = None,
    start: date = MONDAY,
) -> PlanWeek:
    """Mon/Tue/Fri easy, Thu tempo, Sun long, Wed/Sat rest."""

    def day(offset, workout_type, distance=0.0, band=None):
        return PlanDay(
            date=start + timedelta(days=offset),
            workout_type=workout_type,
            distance=distance,
            pace_range=band,
        )

    days = [
        day(0, WorkoutType.EASY, easy[0], easy_bands[0]),
        day(1, WorkoutType.EASY, easy[1], easy_bands[1]),
        day(2, WorkoutType.REST),
        day(3, WorkoutType.TEMPO, tempo, TEMPO),
        day(4, WorkoutType.EASY, easy[2], easy_bands[2]),
        day(5, WorkoutType.REST),
        day(6, WorkoutType.LONG, long, EASY),
    ]
    if total is None:
        total = round(sum(d.distance for d in days), 1)
    return PlanWeek(week_number=week_number, total_distance=total, days=days)


def _plan(weeks, status=PlanStatus.READY, race_date=None) -> TrainingPlan:
    return TrainingPlan(
        status=status,
        metadata=PlanMetadata(
            provenance="test",
            fingerprint="ENGINE_V1_test",
            generated_at=datetime(2025, 3, 16, tzinfo=timezone.utc),
            race_date=race_date,
        ),
        weeks=weeks,
    )


@pytest.mark.unit
class TestPaceBandsEqual:
    def test_within_tolerance(self):
        assert pace_bands_equal((330.0, 360.0), (334.0, 356.0))

    def test_outside_tolerance(self):
        assert not pace_bands_equal((330.0, 360.0), (336.0, 360.0))

    def test_missing_band(self):
        assert not pace_bands_equal(None, EASY)


@pytest.mark.unit
class TestIdenticalRunGuardrail:
    def test_three_identical_easy_runs_fail(self):
        result = PlanValidator.validate(_plan([_week(easy=(5.0, 5.0, 5.0))]))

        assert not result.is_valid
        assert len(result.errors) == 1
        assert "Week 1" in result.errors[0]
        assert "identical distance" in result.errors[0]

    def test_two_identical_runs_allowed(self):
        result = PlanValidator.validate(_plan([_week(easy=(5.0, 5.0, 6.0))]))
        assert result.is_valid

    def test_different_pace_bands_allowed(self):
        bands = (EASY, EASY, (360.0, 390.0))
        result = PlanValidator.validate(
            _plan([_week(easy=(5.0, 5.0, 5.0), easy_bands=bands)])
        )
        assert result.is_valid

    def test_near_identical_pace_bands_fail(self):
        bands = (EASY, (332.0, 362.0), (328.0, 358.0))
        result = PlanValidator.validate(
            _plan([_week(easy=(5.0, 5.0, 5.0), easy_bands=bands)])
        )
        assert not result.is_valid

    def test_duplicates_found_behind_a_different_first_band(self):
        week = _week(
            easy=(5.0, 5.0, 5.0), easy_bands=((400.0, 430.0), EASY, EASY), total=35.0
        )
        week.days[0].workout_type = WorkoutType.RECOVERY
        week.days[2] = PlanDay(
            date=MONDAY + timedelta(days=2),
            workout_type=WorkoutType.EASY,
            distance=5.0,
            pace_range=EASY,
        )

        result = PlanValidator.validate(_plan([week]))

        assert not result.is_valid
        assert result.errors == [
            "Week 1: 3 run days have identical distance (5.0) and pace range - must vary"
        ]


@pytest.mark.unit
class TestDayRules:
    def test_negative_distance(self):
        week = _week()
        week.days[2].distance = -1.0
        result = PlanValidator.validate(_plan([week]))
        assert any("Negative distance" in e for e in result.errors)

    def test_run_below_minimum(self):
        result = PlanValidator.validate(_plan([_week(easy=(1.5, 5.5, 6.0))]))
        assert any("below 2.0" in e for e in result.errors)

    def test_day_errors_name_week_and_day(self):
        week = _week(week_number=3, easy=(1.5, 5.5, 6.0))
        result = PlanValidator.validate(_plan([week]))
        assert result.errors[0].startswith("Week 3 day 1 (2025-03-17)")

    def test_rest_day_with_distance(self):
        week = _week()
        week.days[5].distance = 3.0
        result = PlanValidator.validate(_plan([week]))
        assert any("Rest day" in e for e in result.errors)


@pytest.mark.unit
class TestWeekRules:
    def test_total_mismatch(self):
        result = PlanValidator.validate(_plan([_week(total=40.0)]))
        assert any("doesn't match" in e for e in result.errors)

    def test_total_within_tolerance(self):
        result = PlanValidator.validate(_plan([_week(total=31.7)]))
        assert result.is_valid

    def test_missing_long_and_quality(self):
        week = _week()
        week.days[3].workout_type = WorkoutType.EASY
        week.days[6].workout_type = WorkoutType.EASY
        result = PlanValidator.validate(_plan([week]))
        assert any("Missing long run" in e for e in result.errors)
        assert any("Missing quality" in e for e in result.errors)

    def test_taper_week_needs_no_quality(self):
        week = _week(week_number=10)
        week.days[3].workout_type = WorkoutType.EASY
        week.days[3].pace_range = (345.0, 375.0)
        result = PlanValidator.validate(_plan([week]))
        assert result.is_valid

    def test_errors_accumulate(self):
        week = _week(easy=(1.0, 1.0, 1.0), total=50.0)
        result = PlanValidator.validate(_plan([week]))
        # three days below minimum, identical runs, total mismatch
        assert len(result.errors) == 5


@pytest.mark.unit
class TestPlanRules:
    def test_not_ready(self):
        result = PlanValidator.validate(_plan([], status=PlanStatus.NOT_CONFIGURED))
        assert not result.is_valid
        assert result.errors == ["Plan status is not 'ready'"]

    def test_no_weeks(self):
        result = PlanValidator.validate(_plan([]))
        assert not result.is_valid

    def test_short_plan_warns(self):
        result = PlanValidator.validate(_plan([_week()]))
        assert result.is_valid
        assert any("expected 12" in w for w in result.warnings)


@pytest.mark.unit
class TestWarnings:
    def test_long_run_share(self):
        result = PlanValidator.validate(_plan([_week(long=20.0)]))
        assert result.is_valid
        assert any("Long run" in w for w in result.warnings)

    def test_volume_jump(self):
        weeks = [_week(1), _week(2, long=18.0, start=MONDAY + timedelta(weeks=1))]
        result = PlanValidator.validate(_plan(weeks))
        assert any("volume increase" in w for w in result.warnings)

    def test_taper_increase(self):
        weeks = [
            _week(10, start=MONDAY),
            _week(11, long=12.0, start=MONDAY + timedelta(weeks=1)),
        ]
        result = PlanValidator.validate(_plan(weeks))
        assert any("Taper week" in w for w in result.warnings)

    def test_reversed_pace_band(self):
        bands = (EASY, (360.0, 330.0), EASY)
        result = PlanValidator.validate(_plan([_week(easy_bands=bands)]))
        assert any("Reversed pace range" in w for w in result.warnings)

    def test_race_date_outside_window(self):
        result = PlanValidator.validate(
            _plan([_week()], race_date=MONDAY + timedelta(weeks=10))
        )
        assert any("outside the plan window" in w for w in result.warnings)
