"""Training plan orchestrator - single entry point for plan generation.

Resolves the goal, runs aggregation, pace calculation, generation and
validation, and retries with independent random streams before falling back
to a conservative plan.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Any

import numpy as np

from plan_engine.config import EngineConfig, get_config
from plan_engine.training_plan.fitness_aggregator import FitnessAggregator
from plan_engine.training_plan.models import (
    ActivityRecord,
    ExternalGoal,
    Goal,
    PaceRanges,
    PlanMetadata,
    PlanMode,
    PlanResult,
    PlanStatus,
    RaceCategory,
    RecentFitness,
    TrainingPlan,
    ValidationResult,
)
from plan_engine.training_plan.pace_ranges import PaceRangeCalculator
from plan_engine.training_plan.plan_generator import (
    FINGERPRINT_PREFIX,
    TrainingPlanGenerator,
)
from plan_engine.training_plan.plan_validator import PlanValidator

logger = logging.getLogger(__name__)

PROVENANCE = "plan_engine.training_plan.orchestrator"
NO_GOAL_MESSAGE = "No goal configured"


class TrainingPlanOrchestrator:
    """Runs the full plan pipeline for one goal and activity history."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        today: date | None = None,
        seed: int | None = None,
        generator: TrainingPlanGenerator | None = None,
    ) -> None:
        self.config = config or get_config()
        self.today = today
        self.seed = seed
        self.generator = generator or TrainingPlanGenerator()

    def get_training_plan(
        self,
        goal: ExternalGoal | dict[str, Any] | None,
        activities: Iterable[ActivityRecord | dict[str, Any]],
    ) -> PlanResult:
        """Generate and validate a training plan.

        Args:
            goal: Goal from the goal provider, or None if none is configured.
            activities: Recent activity records (models or dicts).

        Returns:
            PlanResult. A missing goal yields a not_configured plan with a
            failing validation; it is not an error.

        Raises:
            pydantic.ValidationError: If the goal payload is malformed.
        """
        if goal is None:
            logger.info("No goal configured - returning not_configured plan")
            return self._not_configured()

        external = (
            goal if isinstance(goal, ExternalGoal) else ExternalGoal.model_validate(goal)
        )
        today = self.today or date.today()
        internal = self.convert_goal(external, today)

        unit = self.config.distance_unit
        goal_pace = PaceRangeCalculator.goal_pace(internal, unit)
        aggregator = FitnessAggregator(
            window_days=self.config.window_days, unit=unit, today=today
        )
        fitness = aggregator.aggregate(activities, goal_pace=goal_pace)

        paces, pace_source, pace_assumptions = PaceRangeCalculator.compute_with_source(
            fitness, internal
        )

        # One child stream per regeneration plus one for the fallback
        seed_seq = np.random.SeedSequence(self.seed)
        max_attempts = max(self.config.max_attempts, 0)
        streams = [np.random.default_rng(s) for s in seed_seq.spawn(max_attempts + 2)]

        plan, validation = self._attempt(
            fitness, internal, paces, streams[0], pace_assumptions, pace_source
        )
        attempts = 1
        rules_fired = list(plan.metadata.rules_fired)

        retries = 0
        while not validation.is_valid and retries < max_attempts:
            retries += 1
            logger.debug(
                f"Attempt {attempts} invalid ({len(validation.errors)} errors), regenerating"
            )
            plan, validation = self._attempt(
                fitness, internal, paces, streams[retries], pace_assumptions, pace_source
            )
            attempts += 1
            rules_fired.extend(plan.metadata.rules_fired)

        fallback_used = False
        if not validation.is_valid:
            logger.warning(
                f"Plan validation failed after {max_attempts} attempts - using "
                f"conservative fallback: {'; '.join(validation.errors)}"
            )
            fallback_goal = internal.model_copy(update={"mode": PlanMode.CONSERVATIVE})
            plan, validation = self._attempt(
                fitness, fallback_goal, paces, streams[-1], pace_assumptions, pace_source
            )
            attempts += 1
            rules_fired.extend(plan.metadata.rules_fired)
            rules_fired.append("conservative_fallback")
            plan.metadata.assumptions.append(
                f"Plan validation failed after {max_attempts} attempts - using "
                f"conservative fallback"
            )
            fallback_used = True

        plan.metadata.provenance = PROVENANCE
        plan.metadata.seed = seed_seq.entropy
        plan.metadata.attempts = attempts
        plan.metadata.fallback_used = fallback_used
        plan.metadata.rules_fired = list(dict.fromkeys(rules_fired))

        logger.info(
            f"Generated plan {plan.metadata.fingerprint}: race={internal.race} "
            f"mode={plan.metadata.mode} attempts={attempts} valid={validation.is_valid}"
        )
        return PlanResult(plan=plan, validation=validation)

    def _attempt(
        self,
        fitness: RecentFitness,
        goal: Goal,
        paces: PaceRanges,
        rng: np.random.Generator,
        assumptions: list[str],
        pace_source: dict[str, str],
    ) -> tuple[TrainingPlan, ValidationResult]:
        plan = self.generator.generate(
            fitness,
            goal,
            paces,
            rng=rng,
            assumptions=assumptions,
            pace_source=pace_source,
        )
        return plan, PlanValidator.validate(plan)

    def convert_goal(self, goal: ExternalGoal, today: date) -> Goal:
        """Convert the goal provider's shape into the internal Goal.

        Race category is inferred from distance, start date defaults to the
        Monday of the current week, and frequency and mode fall back to
        configuration.
        """
        start = goal.start_date or (today - timedelta(days=today.weekday()))
        return Goal(
            race=RaceCategory.from_distance(goal.distance_meters),
            target_time_seconds=goal.target_time_seconds,
            start_date=start,
            race_date=goal.race_date,
            days_per_week=goal.days_per_week or self.config.days_per_week,
            mode=goal.mode or self.config.mode,
        )

    def _not_configured(self) -> PlanResult:
        plan = TrainingPlan(
            status=PlanStatus.NOT_CONFIGURED,
            metadata=PlanMetadata(
                provenance=PROVENANCE,
                fingerprint=f"{FINGERPRINT_PREFIX}NOT_CONFIGURED_{uuid.uuid4().hex}",
                generated_at=datetime.now(timezone.utc),
                assumptions=[NO_GOAL_MESSAGE],
                unit=self.config.distance_unit,
            ),
            weeks=[],
        )
        return PlanResult(
            plan=plan,
            validation=ValidationResult(is_valid=False, errors=[NO_GOAL_MESSAGE]),
        )


def get_training_plan(
    goal: ExternalGoal | dict[str, Any] | None,
    activities: Iterable[ActivityRecord | dict[str, Any]],
    seed: int | None = None,
) -> PlanResult:
    """Generate a plan with the environment configuration."""
    return TrainingPlanOrchestrator(seed=seed).get_training_plan(goal, activities)
