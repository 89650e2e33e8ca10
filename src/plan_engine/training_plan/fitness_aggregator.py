"""Fitness aggregation from recent activity history.

Reduces a trailing window of runs to a RecentFitness summary: weekly
volumes, long-run capability, median pace and the easy / threshold / VO2
pace estimates the pace calculator builds on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

import pandas as pd
from pydantic import ValidationError

from plan_engine.training_plan.models import (
    ActivityRecord,
    DistanceUnit,
    PaceBand,
    RecentFitness,
)
from plan_engine.utils.units import METERS_PER_UNIT, seconds_per_km_to_unit

logger = logging.getLogger(__name__)

WEEK_SLOTS = 6

# Classification thresholds (fractions of the median pace)
EASY_SLOWER_MIN = 0.08
EASY_SLOWER_MAX = 0.15
EASY_SYNTH_SLOWER_MAX = 0.12
EASY_HR_THRESHOLD = 150
TEMPO_FASTER_MAX = 0.08
TEMPO_MIN_MINUTES = 15
VO2_FASTER_MIN = 0.10
VO2_MIN_METERS = 3000
VO2_MAX_METERS = 10000
HARD_FASTER_MIN = 0.08

# Long run: >= 20% of average weekly volume or >= 10 km, whichever is larger
LONG_RUN_SHARE = 0.20
LONG_RUN_MIN_METERS = 10000

# Plausible pace window for the median, sec/km (3:20/km - 16:40/km)
PLAUSIBLE_PACE_SEC_PER_KM = (200.0, 1000.0)

# Easy band when there is neither data nor a goal (sec/unit)
DEFAULT_EASY_PACE: dict[DistanceUnit, PaceBand] = {
    DistanceUnit.KM: (300.0, 335.0),
    DistanceUnit.MI: (480.0, 540.0),
}

GOAL_EASY_OFFSET = (60.0, 120.0)

FATIGUE_SPIKE_RATIO = 1.25
FATIGUE_LOOKBACK_DAYS = 4


class FitnessAggregator:
    """Builds a RecentFitness profile from raw activity records."""

    def __init__(
        self,
        window_days: int = 42,
        unit: DistanceUnit = DistanceUnit.KM,
        today: date | None = None,
    ) -> None:
        self.window_days = window_days
        self.unit = unit
        self.today = today or date.today()

    def aggregate(
        self,
        activities: Iterable[ActivityRecord | dict[str, Any]],
        goal_pace: float | None = None,
    ) -> RecentFitness:
        """Summarise recent fitness.

        Args:
            activities: Activity records (models or provider dicts).
            goal_pace: Goal pace in sec/unit, used to seed the easy band
                when there is no usable history.

        Returns:
            RecentFitness. Never raises for data-quality problems.
        """
        df = self._build_frame(activities)
        if df.empty:
            return self._fallback_profile(goal_pace)

        assumptions: list[str] = []

        # 1. Weekly volumes over fixed slots ending this week
        weekly = self._weekly_volumes(df)
        average = float(weekly.mean())
        peak = float(weekly.max())
        active_weeks = int((weekly > 0).sum())

        # 2. Long run
        long_threshold_m = max(
            average * METERS_PER_UNIT[self.unit] * LONG_RUN_SHARE, LONG_RUN_MIN_METERS
        )
        long_runs = df.loc[df["distance_m"] >= long_threshold_m, "distance"]
        long_run = float(long_runs.max()) if not long_runs.empty else 0.0
        if long_run == 0.0:
            assumptions.append("No long runs detected in recent training")

        # 3. Median pace and classification relative to it
        median = self._median_pace(df)
        slower = (df["pace"] - median) / median
        faster = (median - df["pace"]) / median

        easy_range = self._easy_range(df, slower, median, assumptions)

        tempo_mask = (
            (faster >= 0)
            & (faster <= TEMPO_FASTER_MAX)
            & (df["duration_min"] >= TEMPO_MIN_MINUTES)
        )
        threshold = None
        if tempo_mask.any():
            threshold = round(float(df.loc[tempo_mask, "pace"].median()), 1)
        else:
            assumptions.append(
                "No tempo/threshold efforts detected - tempo pace will be derived "
                "from goal pace"
            )

        vo2_mask = (
            (df["distance_m"] >= VO2_MIN_METERS)
            & (df["distance_m"] <= VO2_MAX_METERS)
            & (faster >= VO2_FASTER_MIN)
        )
        vo2 = None
        if vo2_mask.any():
            vo2 = round(float(df.loc[vo2_mask, "pace"].min()), 1)
        else:
            assumptions.append(
                "No 5K/10K-effort runs found - interval pace will be derived "
                "from goal pace"
            )

        # 4. Load and fatigue
        recent_load = self._training_load(df, faster)
        fatigue_risk = self._fatigue_risk(df, weekly, faster)
        if fatigue_risk:
            assumptions.append(
                "Recent training shows fatigue risk (volume spike or repeated "
                "hard runs in the last 4 days)"
            )

        logger.debug(
            f"Aggregated {len(df)} runs: avg={average:.1f}{self.unit} "
            f"peak={peak:.1f}{self.unit} long={long_run:.1f}{self.unit}"
        )

        return RecentFitness(
            window_days=self.window_days,
            unit=self.unit,
            weekly_volumes=[round(float(v), 1) for v in weekly],
            active_weeks=active_weeks,
            average_weekly_volume=round(average, 1),
            peak_weekly_volume=round(peak, 1),
            long_run_distance=round(long_run, 1),
            median_pace=round(median, 1),
            easy_pace_range=easy_range,
            threshold_pace_estimate=threshold,
            vo2_pace_estimate=vo2,
            run_count=len(df),
            last_run_date=df["day"].max(),
            recent_load=round(recent_load, 2),
            fatigue_risk=fatigue_risk,
            assumptions=assumptions,
        )

    def _build_frame(
        self, activities: Iterable[ActivityRecord | dict[str, Any]]
    ) -> pd.DataFrame:
        """Filter to usable runs inside the window and derive per-run columns."""
        cutoff = self.today - timedelta(days=self.window_days)
        rows = []
        for raw in activities:
            try:
                activity = (
                    raw
                    if isinstance(raw, ActivityRecord)
                    else ActivityRecord.model_validate(raw)
                )
            except ValidationError as e:
                logger.debug(f"Skipping malformed activity record: {e}")
                continue
            if not activity.is_usable:
                continue
            day = activity.start_time.date()
            if day < cutoff or day > self.today:
                continue
            rows.append(
                {
                    "day": day,
                    "distance_m": activity.distance_meters,
                    "time_s": activity.moving_time_seconds,
                    "hr": activity.avg_heart_rate,
                }
            )

        columns = ["day", "distance_m", "time_s", "hr"]
        df = pd.DataFrame(rows, columns=columns)
        if df.empty:
            return df

        df["hr"] = pd.to_numeric(df["hr"], errors="coerce")
        df["distance"] = df["distance_m"] / METERS_PER_UNIT[self.unit]
        df["pace"] = df["time_s"] / df["distance"]
        df["duration_min"] = df["time_s"] / 60.0
        df["week_start"] = df["day"].map(lambda d: d - timedelta(days=d.weekday()))
        return df

    def _weekly_volumes(self, df: pd.DataFrame) -> pd.Series:
        this_monday = self.today - timedelta(days=self.today.weekday())
        slots = [this_monday - timedelta(weeks=i) for i in range(WEEK_SLOTS - 1, -1, -1)]
        return (
            df.groupby("week_start")["distance"]
            .sum()
            .reindex(slots, fill_value=0.0)
            .astype(float)
        )

    def _median_pace(self, df: pd.DataFrame) -> float:
        low, high = (
            seconds_per_km_to_unit(p, self.unit) for p in PLAUSIBLE_PACE_SEC_PER_KM
        )
        plausible = df.loc[(df["pace"] >= low) & (df["pace"] <= high), "pace"]
        if plausible.empty:
            return float(df["pace"].median())
        return float(plausible.median())

    def _easy_range(
        self,
        df: pd.DataFrame,
        slower: pd.Series,
        median: float,
        assumptions: list[str],
    ) -> PaceBand:
        hr_easy = df["hr"].notna() & (df["hr"] > 0) & (df["hr"] < EASY_HR_THRESHOLD)
        easy_paces = df.loc[(slower >= EASY_SLOWER_MIN) | hr_easy, "pace"]

        floor = median * (1 + EASY_SLOWER_MIN)
        ceiling = median * (1 + EASY_SLOWER_MAX)
        synthesized = (round(floor, 1), round(median * (1 + EASY_SYNTH_SLOWER_MAX), 1))

        if easy_paces.empty:
            assumptions.append(
                "No easy runs detected - easy pace estimated as 8-12% slower "
                "than median pace"
            )
            return synthesized

        p25 = float(easy_paces.quantile(0.25))
        p75 = float(easy_paces.quantile(0.75))
        low = min(max(p25, floor), ceiling)
        high = min(max(p75, floor), ceiling)
        if high <= low:
            return synthesized
        return (round(low, 1), round(high, 1))

    @staticmethod
    def _training_load(df: pd.DataFrame, faster: pd.Series) -> float:
        """Duration-weighted load: easy 1.0, moderate 1.5, hard 2.0+."""
        factor = pd.Series(1.5, index=df.index)
        factor.loc[faster <= -EASY_SLOWER_MIN] = 1.0
        hard = faster > HARD_FASTER_MIN
        factor.loc[hard] = 2.0 + faster[hard] * 5
        return float((df["time_s"] / 3600.0 * factor).sum())

    def _fatigue_risk(
        self, df: pd.DataFrame, weekly: pd.Series, faster: pd.Series
    ) -> bool:
        """Volume spike over the previous week, or 2+ hard runs in 4 days."""
        last, prev = float(weekly.iloc[-1]), float(weekly.iloc[-2])
        if prev > 0 and last > prev * FATIGUE_SPIKE_RATIO:
            return True

        recent_cutoff = self.today - timedelta(days=FATIGUE_LOOKBACK_DAYS)
        recent_hard = (df["day"] >= recent_cutoff) & (faster >= HARD_FASTER_MIN)
        return int(recent_hard.sum()) >= 2

    def _fallback_profile(self, goal_pace: float | None) -> RecentFitness:
        if goal_pace:
            easy = (
                round(goal_pace + GOAL_EASY_OFFSET[0], 1),
                round(goal_pace + GOAL_EASY_OFFSET[1], 1),
            )
            note = (
                "No recent runs found - using conservative defaults with easy pace "
                "estimated from goal pace (+60-120s)"
            )
        else:
            easy = DEFAULT_EASY_PACE[self.unit]
            note = (
                "No recent runs found - using conservative defaults with a default "
                "easy pace band"
            )
        logger.info(f"No usable activities in last {self.window_days} days")
        return RecentFitness(
            window_days=self.window_days,
            unit=self.unit,
            weekly_volumes=[0.0] * WEEK_SLOTS,
            easy_pace_range=easy,
            assumptions=[note],
        )
