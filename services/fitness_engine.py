"""
Fitness Analytics Service

Orchestrates one analytics or meal-planning run:

    repository fetch -> aggregate -> trends/patterns -> targets
        -> insights / meal plans

The service holds no engine state. It is built per request around a
repository, a food catalog and an AnalyticsConfig, and every engine step it
calls is a pure function of the records it passes in, so concurrent
requests cannot interfere.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from core.analytics_config import AnalyticsConfig
from services import lookup_tables
from services.activity_repository import ActivityRepository
from services.fitness_records import (
    MealRecord,
    NutritionProfile,
    OptimizedFood,
    WeightRecord,
    WorkoutRecord,
    to_serializable,
)
from services.food_allocator import FoodCatalog, GreedyFoodAllocator
from services.insight_engine import CoachingReport, build_coaching_report
from services.meal_planner import MealPlan, create_meal_plan
from services.meal_timing import MealTimingStrategy, generate_meal_timing
from services.metrics_aggregator import (
    AggregatedMetrics,
    ExerciseMetric,
    WorkoutMetrics,
    aggregate,
    analyze_exercises,
    analyze_workout_metrics,
)
from services.target_calculator import MacroTargets, calculate_hydration_target, calculate_macro_targets
from services.trend_analyzer import (
    MuscleGroupAnalysis,
    Pattern,
    ProgressionAnalysis,
    Streak,
    analyze_muscle_groups,
    analyze_progression,
    calculate_streaks,
    detect_patterns,
)

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsReport:
    as_of: Optional[date]
    window_days: int
    summaries: AggregatedMetrics
    exercises: List[ExerciseMetric]
    workout_metrics: List[WorkoutMetrics]
    streaks: List[Streak]
    patterns: List[Pattern]
    progression: ProgressionAnalysis
    muscle_groups: List[MuscleGroupAnalysis]
    coaching: CoachingReport
    targets: Optional[MacroTargets] = None
    user_id: Optional[str] = None
    table_versions: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class MealPlanningResult:
    targets: MacroTargets
    timing: MealTimingStrategy
    hydration_target: float
    plans: List[MealPlan]

    def to_dict(self) -> Dict:
        return to_serializable(self)


def latest_record_date(
    workouts: Sequence[WorkoutRecord],
    meals: Sequence[MealRecord],
    weights: Sequence[WeightRecord],
) -> Optional[date]:
    days = [w.day for w in workouts] + [m.day for m in meals] + [w.recorded_on for w in weights]
    return max(days) if days else None


def _in_window(day: date, as_of: Optional[date], window_days: int) -> bool:
    if as_of is None:
        return True
    return as_of - timedelta(days=window_days) < day <= as_of


def build_report(
    workouts: Sequence[WorkoutRecord],
    meals: Sequence[MealRecord],
    weights: Sequence[WeightRecord],
    profile: Optional[NutritionProfile] = None,
    as_of: Optional[date] = None,
    config: Optional[AnalyticsConfig] = None,
) -> AnalyticsReport:
    """
    Full analytics run over caller-supplied records.

    `as_of` defaults to the latest record date. Records dated after `as_of`
    are dropped. Window-based judgments (patterns, progress score, coaching)
    only see the trailing `window_days`; per-exercise history uses every
    remaining record.
    """
    config = config or AnalyticsConfig()
    as_of = as_of or latest_record_date(workouts, meals, weights)
    window = config.window_days

    if as_of is not None:
        workouts = [w for w in workouts if w.day <= as_of]
        meals = [m for m in meals if m.day <= as_of]
        weights = [w for w in weights if w.recorded_on <= as_of]

    summaries = aggregate(workouts, meals, weights)
    recent_workouts = [w for w in summaries.workouts if _in_window(w.date, as_of, window)]
    recent_nutrition = [n for n in summaries.nutrition if _in_window(n.date, as_of, window)]
    recent_weights = [w for w in summaries.weights if _in_window(w.date, as_of, window)]

    exercises = analyze_exercises(workouts, as_of)
    workout_metrics = analyze_workout_metrics(workouts)
    patterns = detect_patterns(recent_workouts, recent_nutrition, recent_weights, window)
    progression = analyze_progression(workout_metrics, exercises, "month", as_of)
    muscle_groups = analyze_muscle_groups(exercises, config.weeks_per_window)
    targets = calculate_macro_targets(profile) if profile is not None else None

    coaching = build_coaching_report(
        workouts=recent_workouts,
        nutrition=recent_nutrition,
        weights=recent_weights,
        exercises=exercises,
        muscle_groups=muscle_groups,
        progression=progression,
        patterns=patterns,
        profile=profile,
        targets=targets,
        window_days=window,
    )

    return AnalyticsReport(
        as_of=as_of,
        window_days=window,
        summaries=summaries,
        exercises=exercises,
        workout_metrics=workout_metrics,
        streaks=calculate_streaks(
            [w.date for w in summaries.workouts], [n.date for n in summaries.nutrition]
        ),
        patterns=patterns,
        progression=progression,
        muscle_groups=muscle_groups,
        coaching=coaching,
        targets=targets,
        user_id=profile.user_id if profile is not None else None,
        table_versions=lookup_tables.table_versions(),
    )


def plan_nutrition(
    profile: NutritionProfile,
    foods: Sequence[OptimizedFood],
    catalog: Optional[FoodCatalog] = None,
    workout_times: Optional[Sequence[str]] = None,
    days: Optional[int] = None,
    start: Optional[date] = None,
    config: Optional[AnalyticsConfig] = None,
) -> MealPlanningResult:
    """Targets, timing strategy and `days` daily meal plans for a profile."""
    config = config or AnalyticsConfig()
    targets = calculate_macro_targets(profile)
    timing = generate_meal_timing(profile, workout_times)
    plans = create_meal_plan(
        profile,
        targets,
        timing,
        foods,
        catalog=catalog,
        days=days if days is not None else config.meal_plan_days,
        start=start,
        strategy=GreedyFoodAllocator(config.min_serving_fraction),
        alternatives_per_food=config.alternatives_per_food,
    )
    return MealPlanningResult(
        targets=targets,
        timing=timing,
        hydration_target=calculate_hydration_target(profile),
        plans=plans,
    )


class FitnessAnalyticsService:
    """
    Repository-backed entry point, constructed per request.

    Usage:
        service = FitnessAnalyticsService(SqlActivityRepository(db), SqlFoodCatalog(db))
        report = service.analyze(user_id, start, end)
    """

    def __init__(
        self,
        repository: ActivityRepository,
        catalog: Optional[FoodCatalog] = None,
        config: Optional[AnalyticsConfig] = None,
    ):
        self.repository = repository
        self.catalog = catalog
        self.config = config or AnalyticsConfig()

    def analyze(
        self,
        user_id: UUID,
        start: date,
        end: date,
        as_of: Optional[date] = None,
    ) -> AnalyticsReport:
        workouts = self.repository.get_workouts(user_id, start, end)
        meals = self.repository.get_meals(user_id, start, end)
        weights = self.repository.get_weights(user_id, start, end)
        profile = self.repository.get_profile(user_id)

        logger.info(
            f"Analyzing user {user_id}: {len(workouts)} workouts, "
            f"{len(meals)} meals, {len(weights)} weights ({start} to {end})"
        )
        report = build_report(workouts, meals, weights, profile, as_of or end, self.config)
        report.user_id = str(user_id)
        return report

    def plan_meals(
        self,
        profile: NutritionProfile,
        workout_times: Optional[Sequence[str]] = None,
        days: Optional[int] = None,
        start: Optional[date] = None,
        foods: Optional[Sequence[OptimizedFood]] = None,
    ) -> MealPlanningResult:
        """Plan over `foods`, or over the whole catalog when omitted."""
        if foods is None:
            foods = self.catalog.list_foods() if self.catalog is not None else []
        return plan_nutrition(
            profile,
            foods,
            catalog=self.catalog,
            workout_times=workout_times,
            days=days,
            start=start,
            config=self.config,
        )
