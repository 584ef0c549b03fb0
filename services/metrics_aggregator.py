"""
Metrics Aggregator

Folds raw workout, meal and body-weight records into derived summaries:

- WorkoutSummary: one per workout (volume, mean RPE, muscle groups)
- NutritionSummary: one per calendar day (calories, macros, meal count)
- WeightEntry: body-weight readings ordered by date
- ExerciseMetric: one per distinct exercise name (loads, 1RM, progression,
  plateau risk, personal bests)
- WorkoutMetrics: per-workout intensity, fatigue and training style

Pure transforms: source records are never mutated and empty input yields
empty output.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence
import logging

from services import lookup_tables
from services.fitness_records import (
    MealRecord,
    WeightRecord,
    WorkoutRecord,
    WorkoutType,
    to_serializable,
)
from services.trend_analyzer import calculate_plateau_risk, calculate_progression

logger = logging.getLogger(__name__)

DEFAULT_RPE = 7.0


# =============================================================================
# DATA CLASSES
# =============================================================================

class TrainingStyle(str, Enum):
    STRENGTH = "strength"
    POWER = "power"
    HYPERTROPHY = "hypertrophy"
    ENDURANCE = "endurance"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PersonalBestType(str, Enum):
    WEIGHT = "weight"
    REPS = "reps"
    VOLUME = "volume"


@dataclass(frozen=True)
class WorkoutSummary:
    date: date
    type: WorkoutType
    duration_minutes: float
    exercise_count: int
    total_volume: float  # Σ sets × reps × kg
    average_intensity: Optional[float]  # mean RPE, None when no RPE was logged
    muscle_groups: List[str]

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass(frozen=True)
class NutritionSummary:
    date: date
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    meal_count: int
    fiber_g: float = 0.0
    sugar_g: float = 0.0
    water_ml: Optional[float] = None
    cost: float = 0.0
    first_meal_hour: Optional[float] = None

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass(frozen=True)
class WeightEntry:
    date: date
    weight_kg: float
    body_fat_percentage: Optional[float] = None

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass(frozen=True)
class PersonalBest:
    type: PersonalBestType
    value: float
    date: date
    previous_best: float
    improvement: float  # %


@dataclass
class ExerciseMetric:
    exercise_name: str
    total_volume: float
    total_sets: int
    total_reps: int
    average_weight: float
    max_weight: float
    one_rep_max: float  # Epley estimate, best entry
    volume_progression: float  # %
    strength_progression: float  # %
    frequency: float  # sessions per week
    plateau_risk: int  # 0-100
    last_performed: Optional[date]
    personal_bests: List[PersonalBest] = field(default_factory=list)
    muscle_groups: List[str] = field(default_factory=list)
    difficulty: Difficulty = Difficulty.BEGINNER

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class WorkoutMetrics:
    date: date
    total_volume: float
    exercise_count: int
    intensity_score: float  # 0-100
    fatigue_score: float  # 0-100
    volume_distribution: Dict[str, float]  # muscle group -> % of volume
    training_style: TrainingStyle
    efficiency: float  # volume per minute
    compound_ratio: float  # compound / isolation exercises

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class AggregatedMetrics:
    workouts: List[WorkoutSummary]
    nutrition: List[NutritionSummary]
    weights: List[WeightEntry]

    def to_dict(self) -> Dict:
        return to_serializable(self)


# =============================================================================
# FOLDING
# =============================================================================

def _num(value) -> float:
    return float(value) if value is not None else 0.0


def summarize_workout(workout: WorkoutRecord) -> WorkoutSummary:
    total_volume = sum(e.volume for e in workout.exercises)
    rpes = [e.rpe for e in workout.exercises if e.rpe is not None]

    muscle_groups: List[str] = []
    for exercise in workout.exercises:
        for muscle in lookup_tables.muscle_groups_for(exercise.name):
            if muscle not in muscle_groups:
                muscle_groups.append(muscle)

    return WorkoutSummary(
        date=workout.day,
        type=workout.workout_type,
        duration_minutes=_num(workout.duration_minutes),
        exercise_count=len(workout.exercises),
        total_volume=total_volume,
        average_intensity=sum(rpes) / len(rpes) if rpes else None,
        muscle_groups=muscle_groups,
    )


def aggregate_workouts(workouts: Sequence[WorkoutRecord]) -> List[WorkoutSummary]:
    """One summary per workout, ordered by date."""
    ordered = sorted(workouts, key=lambda w: w.performed_at)
    return [summarize_workout(w) for w in ordered]


def aggregate_nutrition(meals: Sequence[MealRecord]) -> List[NutritionSummary]:
    """One summary per calendar day; missing numbers count as zero."""
    by_day: Dict[date, List[MealRecord]] = {}
    for meal in meals:
        by_day.setdefault(meal.day, []).append(meal)

    summaries = []
    for day in sorted(by_day):
        entries = by_day[day]
        water = [m.water_ml for m in entries if m.water_ml is not None]
        first = min(entries, key=lambda m: m.logged_at).logged_at
        first_hour = None
        if hasattr(first, "hour"):
            first_hour = first.hour + first.minute / 60

        summaries.append(NutritionSummary(
            date=day,
            calories=sum(_num(m.calories) for m in entries),
            protein_g=sum(_num(m.protein_g) for m in entries),
            carbs_g=sum(_num(m.carbs_g) for m in entries),
            fat_g=sum(_num(m.fat_g) for m in entries),
            meal_count=len(entries),
            fiber_g=sum(_num(m.fiber_g) for m in entries),
            sugar_g=sum(_num(m.sugar_g) for m in entries),
            water_ml=sum(water) if water else None,
            cost=sum(_num(m.cost) for m in entries),
            first_meal_hour=first_hour,
        ))
    return summaries


def normalize_weights(weights: Sequence[WeightRecord]) -> List[WeightEntry]:
    """Readings ordered by date; non-positive weights are dropped."""
    entries = [
        WeightEntry(
            date=w.recorded_on,
            weight_kg=float(w.weight_kg),
            body_fat_percentage=w.body_fat_percentage,
        )
        for w in weights
        if w.weight_kg and w.weight_kg > 0
    ]
    return sorted(entries, key=lambda e: e.date)


def aggregate(
    workouts: Sequence[WorkoutRecord],
    meals: Sequence[MealRecord],
    weights: Sequence[WeightRecord],
) -> AggregatedMetrics:
    result = AggregatedMetrics(
        workouts=aggregate_workouts(workouts),
        nutrition=aggregate_nutrition(meals),
        weights=normalize_weights(weights),
    )
    logger.debug(
        f"Aggregated {len(result.workouts)} workouts, "
        f"{len(result.nutrition)} nutrition days, {len(result.weights)} weights"
    )
    return result


# =============================================================================
# EXERCISE METRICS
# =============================================================================

def estimate_one_rep_max(weight_kg: float, reps: int) -> float:
    """Epley: weight × (1 + reps / 30)."""
    if not weight_kg or weight_kg <= 0 or not reps or reps <= 0:
        return 0.0
    return weight_kg * (1 + reps / 30)


def classify_difficulty(exercise_name: str, one_rep_max: float) -> Difficulty:
    standard = lookup_tables.strength_standard_for(exercise_name)
    if not standard:
        return Difficulty.BEGINNER
    if one_rep_max >= standard.get("advanced", float("inf")):
        return Difficulty.ADVANCED
    if one_rep_max >= standard.get("intermediate", float("inf")):
        return Difficulty.INTERMEDIATE
    return Difficulty.BEGINNER


def _improvement(previous: float, current: float) -> float:
    return (current - previous) / previous * 100 if previous > 0 else 0.0


def find_personal_bests(sessions: List[Dict]) -> List[PersonalBest]:
    """
    Records set after the first session, newest first.

    Each session dict carries date, max_weight, max_reps and volume.
    """
    bests: List[PersonalBest] = []
    tracked = {
        PersonalBestType.WEIGHT: "max_weight",
        PersonalBestType.REPS: "max_reps",
        PersonalBestType.VOLUME: "volume",
    }
    running: Dict[PersonalBestType, float] = {}

    for session in sessions:
        for pb_type, key in tracked.items():
            value = session[key]
            if pb_type not in running:
                running[pb_type] = value
                continue
            previous = running[pb_type]
            if value > previous:
                bests.append(PersonalBest(
                    type=pb_type,
                    value=value,
                    date=session["date"],
                    previous_best=previous,
                    improvement=_improvement(previous, value),
                ))
                running[pb_type] = value

    return sorted(bests, key=lambda pb: pb.date, reverse=True)


def analyze_exercises(workouts: Sequence[WorkoutRecord], as_of: Optional[date] = None) -> List[ExerciseMetric]:
    """
    One ExerciseMetric per distinct exercise name, sorted by total volume.

    Progression and plateau risk use per-session series: the session's total
    volume and its heaviest working load, oldest first.
    """
    ordered = sorted(workouts, key=lambda w: w.performed_at)
    if as_of is None and ordered:
        as_of = ordered[-1].day

    sessions_by_name: Dict[str, List[Dict]] = {}
    entries_by_name: Dict[str, list] = {}
    for workout in ordered:
        per_workout: Dict[str, list] = {}
        for entry in workout.exercises:
            per_workout.setdefault(entry.name, []).append(entry)
        for name, entries in per_workout.items():
            entries_by_name.setdefault(name, []).extend(entries)
            sessions_by_name.setdefault(name, []).append({
                "date": workout.day,
                "volume": sum(e.volume for e in entries),
                "max_weight": max(_num(e.weight_kg) for e in entries),
                "max_reps": max(e.reps or 0 for e in entries),
            })

    metrics = []
    for name, entries in entries_by_name.items():
        sessions = sessions_by_name[name]
        weights = [_num(e.weight_kg) for e in entries]
        one_rep_max = max(estimate_one_rep_max(_num(e.weight_kg), e.reps) for e in entries)
        distinct_days = {s["date"] for s in sessions}
        weeks = max((as_of - sessions[0]["date"]).days / 7, 1) if as_of else 1
        max_loads = [s["max_weight"] for s in sessions]

        metrics.append(ExerciseMetric(
            exercise_name=name,
            total_volume=sum(e.volume for e in entries),
            total_sets=sum(e.sets or 0 for e in entries),
            total_reps=sum((e.sets or 0) * (e.reps or 0) for e in entries),
            average_weight=sum(weights) / len(weights) if weights else 0.0,
            max_weight=max(weights) if weights else 0.0,
            one_rep_max=one_rep_max,
            volume_progression=calculate_progression([s["volume"] for s in sessions]),
            strength_progression=calculate_progression(max_loads),
            frequency=len(distinct_days) / weeks,
            plateau_risk=calculate_plateau_risk(max_loads),
            last_performed=sessions[-1]["date"],
            personal_bests=find_personal_bests(sessions),
            muscle_groups=lookup_tables.muscle_groups_for(name),
            difficulty=classify_difficulty(name, one_rep_max),
        ))

    return sorted(metrics, key=lambda m: m.total_volume, reverse=True)


# =============================================================================
# WORKOUT METRICS
# =============================================================================

def classify_training_style(average_reps: float) -> TrainingStyle:
    if average_reps <= 5:
        return TrainingStyle.STRENGTH
    if average_reps <= 8:
        return TrainingStyle.POWER
    if average_reps <= 15:
        return TrainingStyle.HYPERTROPHY
    return TrainingStyle.ENDURANCE


def calculate_fatigue_score(loads: Sequence[float]) -> float:
    """Percent drop in mean load from the first half of a session to the second."""
    if len(loads) < 2:
        return 0.0
    mid = len(loads) // 2
    first = sum(loads[:mid]) / mid
    second = sum(loads[mid:]) / (len(loads) - mid)
    if first <= 0:
        return 0.0
    return max(0.0, (first - second) / first * 100)


def measure_workout(workout: WorkoutRecord) -> WorkoutMetrics:
    exercises = workout.exercises
    total_volume = sum(e.volume for e in exercises)
    rpes = [e.rpe if e.rpe is not None else DEFAULT_RPE for e in exercises]
    intensity = sum(rpes) / len(rpes) / 10 * 100 if rpes else 0.0

    distribution: Dict[str, float] = {}
    for exercise in exercises:
        for muscle in lookup_tables.muscle_groups_for(exercise.name):
            distribution[muscle] = distribution.get(muscle, 0.0) + exercise.volume
    if total_volume > 0:
        distribution = {m: v / total_volume * 100 for m, v in distribution.items()}
    else:
        distribution = {m: 0.0 for m in distribution}

    reps = [e.reps or 0 for e in exercises]
    average_reps = sum(reps) / len(reps) if reps else 0.0

    compound = sum(1 for e in exercises if lookup_tables.is_compound(e.name))
    isolation = len(exercises) - compound
    duration = _num(workout.duration_minutes)

    return WorkoutMetrics(
        date=workout.day,
        total_volume=total_volume,
        exercise_count=len(exercises),
        intensity_score=intensity,
        fatigue_score=calculate_fatigue_score([_num(e.weight_kg) for e in exercises]),
        volume_distribution=distribution,
        training_style=classify_training_style(average_reps),
        efficiency=total_volume / duration if duration > 0 else 0.0,
        compound_ratio=compound / isolation if isolation > 0 else float(compound),
    )


def analyze_workout_metrics(workouts: Sequence[WorkoutRecord]) -> List[WorkoutMetrics]:
    """Per-workout metrics, oldest first."""
    ordered = sorted(workouts, key=lambda w: w.performed_at)
    return [measure_workout(w) for w in ordered]
