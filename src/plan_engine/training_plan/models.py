"""Pydantic models for training plan generation."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Minimum gap (sec/unit) left between adjacent pace bands after repair
PACE_ORDER_MARGIN = 5.0

PaceBand = tuple[float, float]


class DistanceUnit(StrEnum):
    """Distance unit used for every distance and pace in one engine run."""

    KM = "km"
    MI = "mi"


class RaceCategory(StrEnum):
    """Goal race category."""

    FIVE_K = "5k"
    TEN_K = "10k"
    HALF = "half"
    MARATHON = "marathon"

    @property
    def distance_meters(self) -> float:
        return RACE_DISTANCE_METERS[self]

    @classmethod
    def from_distance(cls, distance_meters: float) -> RaceCategory:
        """Infer the race category from a goal distance in meters."""
        km = distance_meters / 1000.0
        if km >= 42:
            return cls.MARATHON
        if km >= 21:
            return cls.HALF
        if km >= 10:
            return cls.TEN_K
        return cls.FIVE_K


RACE_DISTANCE_METERS: dict[RaceCategory, float] = {
    RaceCategory.FIVE_K: 5000.0,
    RaceCategory.TEN_K: 10000.0,
    RaceCategory.HALF: 21097.5,
    RaceCategory.MARATHON: 42195.0,
}


class PlanMode(StrEnum):
    """How aggressively weekly volume is allowed to grow."""

    CONSERVATIVE = "conservative"
    STANDARD = "standard"
    AGGRESSIVE = "aggressive"


class WorkoutType(StrEnum):
    """Workout type."""

    EASY = "easy"
    RECOVERY = "recovery"
    TEMPO = "tempo"
    INTERVAL = "interval"
    LONG = "long"
    REST = "rest"


class PlanStatus(StrEnum):
    """Plan status."""

    READY = "ready"
    NOT_CONFIGURED = "not_configured"


class ActivityRecord(BaseModel):
    """One completed run as supplied by the activity history provider."""

    start_time: datetime
    distance_meters: float
    moving_time_seconds: float
    avg_heart_rate: float | None = None

    @property
    def is_usable(self) -> bool:
        return self.distance_meters > 0 and self.moving_time_seconds > 0


class RecentFitness(BaseModel):
    """Fitness summary over a trailing activity window."""

    model_config = ConfigDict(frozen=True)

    window_days: int = 42
    unit: DistanceUnit = DistanceUnit.KM
    weekly_volumes: list[float] = Field(
        default_factory=list,
        description="Per-week distance for the 6 most recent weeks, oldest first",
    )
    active_weeks: int = Field(default=0, description="Weeks with any activity")
    average_weekly_volume: float = 0.0
    peak_weekly_volume: float = 0.0
    long_run_distance: float = 0.0
    median_pace: float | None = Field(default=None, description="sec/unit")
    easy_pace_range: PaceBand = Field(description="(fast, slow) sec/unit")
    threshold_pace_estimate: float | None = None
    vo2_pace_estimate: float | None = None
    run_count: int = 0
    last_run_date: date | None = None
    recent_load: float = Field(default=0.0, description="Duration-weighted load (hours)")
    fatigue_risk: bool = False
    assumptions: list[str] = Field(default_factory=list)

    @property
    def nonzero_weeks(self) -> list[float]:
        return [v for v in self.weekly_volumes if v > 0]


class Goal(BaseModel):
    """Internal race goal used by the engine."""

    race: RaceCategory
    target_time_seconds: float = Field(gt=0)
    start_date: date = Field(description="Plan start (Monday of week 1)")
    race_date: date | None = None
    days_per_week: int = Field(default=5, ge=3, le=7)
    mode: PlanMode = PlanMode.STANDARD

    @field_validator("start_date")
    @classmethod
    def snap_to_monday(cls, v: date) -> date:
        return v - timedelta(days=v.weekday())


class ExternalGoal(BaseModel):
    """Goal as stored by the goal provider."""

    distance_meters: float = Field(gt=0)
    target_time_seconds: float = Field(gt=0)
    race_date: date | None = None
    start_date: date | None = None
    days_per_week: int | None = Field(default=None, ge=3, le=7)
    mode: PlanMode | None = None


def repair_band_order(
    bands: list[PaceBand], margin: float = PACE_ORDER_MARGIN
) -> list[PaceBand]:
    """Shift pace bands so each is strictly faster than the next.

    Bands are ordered fastest first. When a band's slow edge is not faster
    than the next band's fast edge, that band and every faster band move
    down together until the gap equals `margin`. Widths and order never
    change, and a second pass is a no-op.
    """
    repaired = [(min(lo, hi), max(lo, hi)) for lo, hi in bands]
    for i in range(len(repaired) - 1):
        slow_edge = repaired[i][1]
        next_fast_edge = repaired[i + 1][0]
        if slow_edge >= next_fast_edge:
            shift = slow_edge - (next_fast_edge - margin)
            for j in range(i + 1):
                lo, hi = repaired[j]
                repaired[j] = (lo - shift, hi - shift)
    return repaired


_BAND_FIELDS = ("interval", "tempo", "goal_pace", "easy")


class PaceRanges(BaseModel):
    """Pace bands in seconds per distance unit, (fast, slow) each.

    Ordering interval < tempo < goal_pace < easy is enforced on construction.
    """

    interval: PaceBand
    tempo: PaceBand
    goal_pace: PaceBand
    easy: PaceBand

    @model_validator(mode="before")
    @classmethod
    def enforce_order(cls, data: Any) -> Any:
        if isinstance(data, dict) and all(k in data for k in _BAND_FIELDS):
            bands = repair_band_order([tuple(data[k]) for k in _BAND_FIELDS])
            data = {**data, **dict(zip(_BAND_FIELDS, bands))}
        return data

    def as_list(self) -> list[PaceBand]:
        """Bands ordered fastest first."""
        return [self.interval, self.tempo, self.goal_pace, self.easy]

    def is_ordered(self) -> bool:
        bands = self.as_list()
        return all(bands[i][1] < bands[i + 1][0] for i in range(len(bands) - 1))


class PlanDay(BaseModel):
    """One calendar day of a plan week."""

    date: date
    workout_type: WorkoutType
    distance: float = 0.0
    pace_range: PaceBand | None = None
    notes: str = ""

    @property
    def is_run(self) -> bool:
        return self.workout_type != WorkoutType.REST


class PlanWeek(BaseModel):
    """One plan week (Monday to Sunday)."""

    week_number: int = Field(ge=1)
    total_distance: float
    days: list[PlanDay] = Field(default_factory=list)

    def run_days(self) -> list[PlanDay]:
        return [d for d in self.days if d.is_run]

    def days_of_type(self, *types: WorkoutType) -> list[PlanDay]:
        return [d for d in self.days if d.workout_type in types]


class PlanMetadata(BaseModel):
    """Provenance and audit trail for a generated plan."""

    provenance: str
    fingerprint: str
    generated_at: datetime
    assumptions: list[str] = Field(default_factory=list)
    fitness: RecentFitness | None = None
    unit: DistanceUnit = DistanceUnit.KM
    mode: PlanMode | None = None
    seed: int | None = Field(
        default=None, description="Entropy of the random source for this run"
    )
    attempts: int = Field(default=0, description="Number of generations performed")
    fallback_used: bool = False
    pace_source: dict[str, str] = Field(
        default_factory=dict,
        description="Band name -> 'fitness' or 'goal'",
    )
    rules_fired: list[str] = Field(default_factory=list)
    race_date: date | None = None


class TrainingPlan(BaseModel):
    """Complete training plan."""

    status: PlanStatus
    metadata: PlanMetadata
    weeks: list[PlanWeek] = Field(default_factory=list)

    def get_week(self, week_number: int) -> PlanWeek | None:
        """Get a specific week by number."""
        for week in self.weeks:
            if week.week_number == week_number:
                return week
        return None

    @property
    def weekly_totals(self) -> list[float]:
        return [w.total_distance for w in self.weeks]

    def to_summary(self) -> dict[str, Any]:
        """Return a summary without individual days."""
        return {
            "status": self.status.value,
            "fingerprint": self.metadata.fingerprint,
            "generated_at": self.metadata.generated_at.isoformat(),
            "unit": self.metadata.unit.value,
            "mode": self.metadata.mode.value if self.metadata.mode else None,
            "total_weeks": len(self.weeks),
            "weekly_totals": self.weekly_totals,
            "peak_week_distance": max(self.weekly_totals, default=0.0),
            "attempts": self.metadata.attempts,
            "fallback_used": self.metadata.fallback_used,
            "assumptions": list(self.metadata.assumptions),
        }


class ValidationResult(BaseModel):
    """Outcome of plan validation."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PlanResult(BaseModel):
    """Plan plus the validation that was run against it."""

    plan: TrainingPlan
    validation: ValidationResult
