"""
Tests for the analytics service orchestration
"""
import pytest
from datetime import date, datetime, timedelta
from uuid import uuid4

from core.analytics_config import AnalyticsConfig
from services.activity_repository import ActivityRepository, SqlActivityRepository, SqlFoodCatalog
from services.fitness_engine import FitnessAnalyticsService, build_report, latest_record_date, plan_nutrition
from services.fitness_records import (
    ActivityLevel,
    ExerciseEntry,
    Goal,
    MealRecord,
    NutritionProfile,
    Sex,
    WeightRecord,
    WorkoutRecord,
)
from services.food_allocator import InMemoryFoodCatalog
from services.insight_engine import InsightType
from services.trend_analyzer import PatternCategory, PatternType, StreakType, TrendDirection


def profile(goal=Goal.MUSCLE_GAIN):
    return NutritionProfile(
        age=30, sex=Sex.MALE, weight_kg=80, height_cm=180,
        activity_level=ActivityLevel.MODERATELY_ACTIVE, goal=goal,
    )


def bench_workouts(loads, first_day=date(2024, 6, 3), step=2):
    return [
        WorkoutRecord(
            performed_at=datetime.combine(first_day + timedelta(days=step * i), datetime.min.time()).replace(hour=18),
            exercises=[ExerciseEntry(name="Bench Press", sets=3, reps=5, weight_kg=load, rpe=8)],
        )
        for i, load in enumerate(loads)
    ]


class InMemoryRepository(ActivityRepository):
    def __init__(self, workouts=(), meals=(), weights=(), user_profile=None):
        self.workouts = list(workouts)
        self.meals = list(meals)
        self.weights = list(weights)
        self.user_profile = user_profile
        self.calls = []

    def get_workouts(self, user_id, start, end):
        self.calls.append(("workouts", start, end))
        return [w for w in self.workouts if start <= w.day <= end]

    def get_meals(self, user_id, start, end):
        return [m for m in self.meals if start <= m.day <= end]

    def get_weights(self, user_id, start, end):
        return [w for w in self.weights if start <= w.recorded_on <= end]

    def get_profile(self, user_id):
        return self.user_profile


class TestBuildReport:

    def test_flat_bench_reports_plateau(self):
        """Flat bench series - [100, 100, 101, 100, 99] - reports plateau risk 80"""
        report = build_report(bench_workouts([100, 100, 101, 100, 99]), [], [])

        assert report.as_of == date(2024, 6, 11)
        assert report.exercises[0].plateau_risk == 80
        assert any(i.type == InsightType.PLATEAU_DETECTED for i in report.coaching.performance_insights)
        assert report.coaching.plateau_strategies is not None
        assert report.targets is None

    def test_empty_records(self):
        """No records yields an empty, neutral report"""
        report = build_report([], [], [])

        assert report.as_of is None
        assert report.summaries.workouts == []
        assert report.exercises == []
        assert report.progression.trend_direction == TrendDirection.PLATEAUING
        assert [s.current for s in report.streaks] == [0, 0]

    def test_window_limits_patterns_not_history(self):
        """Old workouts count for exercise history but not for the 30-day patterns"""
        old = bench_workouts([80, 85, 90], first_day=date(2024, 1, 1))
        recent = [
            WorkoutRecord(performed_at=datetime(2024, 6, 1, 7) + timedelta(days=i))
            for i in range(25)
        ]
        report = build_report(old + recent, [], [])

        consistency = [p for p in report.patterns if p.category == PatternCategory.CONSISTENCY]
        assert consistency[0].type == PatternType.POSITIVE
        assert report.exercises[0].last_performed == date(2024, 1, 5)
        assert len(report.summaries.workouts) == 28

    def test_explicit_as_of(self):
        """Explicit as_of is kept and bounds the progression window"""
        report = build_report(bench_workouts([100, 102, 104]), [], [], as_of=date(2024, 6, 4))
        assert report.as_of == date(2024, 6, 4)
        assert report.progression.frequency_change == pytest.approx(1 / 16 * 100)

    def test_records_after_as_of_are_ignored(self):
        """History, streaks and summaries stop at as_of"""
        workouts = bench_workouts([100 + 10 * i for i in range(20)], first_day=date(2024, 1, 1), step=1)
        meals = [MealRecord(logged_at=datetime(2024, 1, d, 12), calories=500) for d in range(1, 21)]
        weights = [WeightRecord(recorded_on=date(2024, 1, d), weight_kg=80) for d in (2, 10)]

        report = build_report(workouts, meals, weights, as_of=date(2024, 1, 5))
        streaks = {s.type: s for s in report.streaks}

        assert streaks[StreakType.WORKOUT].current == 5
        assert streaks[StreakType.WORKOUT].best == 5
        assert streaks[StreakType.LOGGING].current == 5
        assert report.exercises[0].last_performed == date(2024, 1, 5)
        assert report.exercises[0].max_weight == 140
        assert len(report.workout_metrics) == 5
        assert len(report.summaries.workouts) == 5
        assert len(report.summaries.nutrition) == 5
        assert [w.date for w in report.summaries.weights] == [date(2024, 1, 2)]

    def test_profile_adds_targets_and_nutrition_insights(self):
        """A profile adds macro targets and nutrition insights"""
        meals = [MealRecord(logged_at=datetime(2024, 6, 3, 12), calories=1500, protein_g=60)]
        report = build_report(bench_workouts([100]), meals, [], profile=profile())

        assert report.targets.protein == 160
        assert any(i.nutrient == "protein" for i in report.coaching.nutrition_insights)

    def test_streaks(self):
        """Workout and logging streaks are reported separately"""
        meals = [MealRecord(logged_at=datetime(2024, 6, d, 12), calories=500) for d in range(3, 8)]
        report = build_report(bench_workouts([100, 100], step=1), meals, [])
        streaks = {s.type: s for s in report.streaks}

        assert streaks[StreakType.WORKOUT].current == 2
        assert streaks[StreakType.LOGGING].current == 5

    def test_serializes(self):
        """Report converts to plain JSON-ready values"""
        body = build_report(bench_workouts([100, 100, 101, 100, 99]), [], [], profile=profile()).to_dict()

        assert body["as_of"] == "2024-06-11"
        assert body["exercises"][0]["exercise_name"] == "Bench Press"
        assert body["table_versions"]["food_categories"] == "2024.1"

    def test_latest_record_date(self):
        """Latest date across workouts, meals and weights"""
        weights = [WeightRecord(recorded_on=date(2024, 7, 1), weight_kg=80)]
        assert latest_record_date(bench_workouts([100]), [], weights) == date(2024, 7, 1)
        assert latest_record_date([], [], []) is None


class TestPlanNutrition:

    def test_defaults_from_config(self, food_pool):
        """Plan length and targets come from the default config"""
        result = plan_nutrition(profile(), food_pool, start=date(2024, 6, 1))

        assert len(result.plans) == 7
        assert result.targets.calories == 3160
        assert result.hydration_target == 3.4

    def test_config_overrides(self, food_pool):
        """Config overrides plan days and alternatives per food"""
        config = AnalyticsConfig(meal_plan_days=2, alternatives_per_food=1)
        result = plan_nutrition(profile(), food_pool, catalog=InMemoryFoodCatalog(food_pool), config=config)

        assert len(result.plans) == 2
        for meal in result.plans[0].meals:
            assert all(len(options) <= 1 for options in meal.alternatives)

    def test_workout_times_shape_athlete_plan(self, food_pool):
        """Workout times place the pre- and post-workout meals"""
        result = plan_nutrition(profile(Goal.ATHLETIC_PERFORMANCE), food_pool, workout_times=["17:00"], days=1)
        times = {m.meal: m.time_of_day for m in result.plans[0].meals}

        assert times["preworkout"] == "15:00"
        assert times["postworkout"] == "18:00"


class TestFitnessAnalyticsService:

    def test_analyze_uses_end_as_reference(self):
        """as_of defaults to the end of the requested range"""
        repository = InMemoryRepository(workouts=bench_workouts([100, 100, 101, 100, 99]), user_profile=profile())
        service = FitnessAnalyticsService(repository)
        user_id = uuid4()

        report = service.analyze(user_id, date(2024, 6, 1), date(2024, 6, 30))

        assert report.as_of == date(2024, 6, 30)
        assert report.user_id == str(user_id)
        assert report.targets is not None
        assert repository.calls == [("workouts", date(2024, 6, 1), date(2024, 6, 30))]

    def test_analyze_as_of_before_end(self):
        """Records between as_of and the range end do not leak into the report"""
        repository = InMemoryRepository(workouts=bench_workouts([100, 110, 120, 130, 140], step=1))
        report = FitnessAnalyticsService(repository).analyze(
            uuid4(), date(2024, 6, 1), date(2024, 6, 30), as_of=date(2024, 6, 4)
        )

        assert report.as_of == date(2024, 6, 4)
        assert report.exercises[0].last_performed == date(2024, 6, 4)
        assert report.exercises[0].max_weight == 110
        assert len(report.workout_metrics) == 2

    def test_services_are_independent(self):
        """Separate services share no state"""
        first = FitnessAnalyticsService(InMemoryRepository(workouts=bench_workouts([100])))
        second = FitnessAnalyticsService(InMemoryRepository())

        report_a = first.analyze(uuid4(), date(2024, 6, 1), date(2024, 6, 30))
        report_b = second.analyze(uuid4(), date(2024, 6, 1), date(2024, 6, 30))

        assert len(report_a.summaries.workouts) == 1
        assert report_b.summaries.workouts == []

    def test_plan_meals_from_catalog(self, food_pool):
        """Plan over the whole catalog when no foods are given"""
        service = FitnessAnalyticsService(InMemoryRepository(), InMemoryFoodCatalog(food_pool))
        result = service.plan_meals(profile(), days=1)
        assert any(meal.foods for meal in result.plans[0].meals)

    def test_plan_meals_without_catalog(self):
        """No catalog and no foods gives empty meals"""
        result = FitnessAnalyticsService(InMemoryRepository()).plan_meals(profile(), days=1)
        assert all(meal.foods == [] for meal in result.plans[0].meals)

    def test_stored_logs(self, db_session, stored_logs, stored_catalog):
        """Report over logs stored in the database"""
        service = FitnessAnalyticsService(SqlActivityRepository(db_session), SqlFoodCatalog(db_session))
        report = service.analyze(stored_logs.id, date(2024, 6, 1), date(2024, 6, 14))

        bench = next(e for e in report.exercises if e.exercise_name == "Bench Press")
        streaks = {s.type: s for s in report.streaks}

        assert bench.plateau_risk == 80
        assert streaks[StreakType.LOGGING].current == 14
        assert streaks[StreakType.WORKOUT].best == 1
        assert report.coaching.progress_summary.workout_consistency == 17
        assert any(
            p.category == PatternCategory.CONSISTENCY and p.type == PatternType.NEGATIVE
            for p in report.patterns
        )
