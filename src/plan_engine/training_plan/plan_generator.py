"""Training plan generator - ties periodization and weekly templates together."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

import numpy as np

from plan_engine.training_plan.models import (
    Goal,
    PaceRanges,
    PlanMetadata,
    PlanStatus,
    PlanWeek,
    RecentFitness,
    TrainingPlan,
)
from plan_engine.training_plan.periodization import PLAN_WEEKS, PeriodizationEngine
from plan_engine.training_plan.weekly_templates import WeeklyTemplateEngine

logger = logging.getLogger(__name__)

PROVENANCE = "plan_engine.training_plan.plan_generator"
FINGERPRINT_PREFIX = "ENGINE_V1_"


def new_fingerprint(prefix: str = FINGERPRINT_PREFIX) -> str:
    """Fresh opaque identifier for one generation run."""
    return f"{prefix}{uuid.uuid4().hex}"


class TrainingPlanGenerator:
    """Generates 12-week training plans."""

    def generate(
        self,
        fitness: RecentFitness,
        goal: Goal,
        paces: PaceRanges,
        rng: np.random.Generator | None = None,
        assumptions: list[str] | None = None,
        pace_source: dict[str, str] | None = None,
    ) -> TrainingPlan:
        """Generate a complete training plan.

        Steps:
        1. Week-1 baseline volume (PeriodizationEngine)
        2. 12-week volume progression with cutbacks and taper
        3. Fill each week's days (WeeklyTemplateEngine)
        4. Attach metadata (fingerprint, assumptions, rules fired)

        Args:
            fitness: Recent fitness profile.
            goal: Internal race goal.
            paces: Ordered pace bands.
            rng: Random source. A fresh unseeded generator if omitted.
            assumptions: Extra assumptions to carry (e.g. pace derivation notes).
            pace_source: Band name -> "fitness"/"goal".

        Returns:
            TrainingPlan with status ready and 12 weeks.
        """
        rng = rng if rng is not None else np.random.default_rng()
        rules_fired: list[str] = []
        plan_assumptions = list(fitness.assumptions) + list(assumptions or [])

        # 1. Baseline
        week_one, note = PeriodizationEngine.week_one_volume(fitness, goal)
        if note:
            plan_assumptions.append(note)
            rules_fired.append("default_baseline")

        # 2. Volume progression
        volumes = PeriodizationEngine.weekly_volume_progression(
            week_one, fitness, goal.mode, rng, rules_fired
        )

        # 3. Weeks
        weeks: list[PlanWeek] = []
        for week_number, total in enumerate(volumes, start=1):
            week_start = goal.start_date + timedelta(weeks=week_number - 1)
            days = WeeklyTemplateEngine.build_week(
                week_start, week_number, total, fitness, goal, paces, rng, rules_fired
            )
            weeks.append(
                PlanWeek(week_number=week_number, total_distance=total, days=days)
            )

        if goal.race_date is not None:
            plan_end = goal.start_date + timedelta(weeks=PLAN_WEEKS) - timedelta(days=1)
            if not goal.start_date <= goal.race_date <= plan_end:
                plan_assumptions.append(
                    f"Race date {goal.race_date.isoformat()} is outside the 12-week "
                    f"plan window starting {goal.start_date.isoformat()}"
                )

        # 4. Metadata
        metadata = PlanMetadata(
            provenance=PROVENANCE,
            fingerprint=new_fingerprint(),
            generated_at=datetime.now(timezone.utc),
            assumptions=_dedupe(plan_assumptions),
            fitness=fitness,
            unit=fitness.unit,
            mode=goal.mode,
            attempts=1,
            pace_source=dict(pace_source or {}),
            rules_fired=_dedupe(rules_fired),
            race_date=goal.race_date,
        )

        logger.debug(
            f"Generated {len(weeks)} weeks ({goal.mode}): "
            f"week1={volumes[0]:.1f} peak={max(volumes):.1f} {fitness.unit}"
        )
        return TrainingPlan(status=PlanStatus.READY, metadata=metadata, weeks=weeks)


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))
