"""
Trend Analyzer

Turns ordered numeric series and activity dates into trend judgments:
- Least-squares trend normalized by the series mean
- Variance and half-split progression (% change)
- Consecutive-day streaks (workout and logging)
- Plateau risk for a lift, plateau flag for body weight
- Threshold-based pattern detection over a trailing window
- Progression and muscle-group balance analysis

Design Principles:
- Insufficient data returns a neutral value (0, "plateauing", empty list),
  never an exception
- Any ratio with a possibly-zero denominator short-circuits to 0
- Every function is a pure function of its arguments
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence
import logging

from services import lookup_tables
from services.fitness_records import to_serializable

if TYPE_CHECKING:
    from services.metrics_aggregator import (
        ExerciseMetric,
        NutritionSummary,
        WeightEntry,
        WorkoutMetrics,
        WorkoutSummary,
    )

logger = logging.getLogger(__name__)


# Minimum samples per statistic
MIN_TREND_POINTS = 2
PLATEAU_WINDOW = 4
WEIGHT_PLATEAU_WINDOW = 5
OVERLOAD_MIN_WORKOUTS = 5
OVERLOAD_MAX_WORKOUTS = 10

# Plateau risk classification (variance in kg², trend as a fraction)
PLATEAU_HIGH_VARIANCE = 2.0
PLATEAU_HIGH_TREND = 0.02
PLATEAU_MEDIUM_VARIANCE = 5.0
PLATEAU_MEDIUM_TREND = 0.05
PLATEAU_RISK_HIGH = 80
PLATEAU_RISK_MEDIUM = 50
PLATEAU_RISK_LOW = 20

WEIGHT_PLATEAU_VARIANCE = 0.5  # kg²

# Pattern thresholds
CONSISTENCY_HIGH = 0.7
CONSISTENCY_LOW = 0.3
OVERLOAD_TREND = 0.05
PROTEIN_G_PER_KG = 1.6
PROTEIN_ADEQUATE_RATIO = 0.9
PROTEIN_LOW_RATIO = 0.6
MIN_REST_DAYS = 8

EXPECTED_WORKOUTS_PER_WEEK = 4


# =============================================================================
# DATA CLASSES
# =============================================================================

class PatternType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class PatternCategory(str, Enum):
    WORKOUT = "workout"
    NUTRITION = "nutrition"
    RECOVERY = "recovery"
    CONSISTENCY = "consistency"


class StreakType(str, Enum):
    WORKOUT = "workout"
    LOGGING = "logging"
    GOAL = "goal"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    PLATEAUING = "plateauing"
    DECLINING = "declining"


class TrainingPhase(str, Enum):
    ACCUMULATION = "accumulation"
    INTENSIFICATION = "intensification"
    REALIZATION = "realization"
    DELOAD = "deload"


class RecoveryStatus(str, Enum):
    RECOVERED = "recovered"
    FATIGUED = "fatigued"
    OVERTRAINED = "overtrained"


class WeightTrend(str, Enum):
    GAINING = "gaining"
    LOSING = "losing"
    MAINTAINING = "maintaining"
    FLUCTUATING = "fluctuating"


@dataclass(frozen=True)
class Pattern:
    """A detected behavior pattern. Confidence is fixed per rule."""
    type: PatternType
    category: PatternCategory
    description: str
    confidence: float
    timeframe: str
    impact: str

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass(frozen=True)
class Streak:
    type: StreakType
    current: int
    best: int
    last_break: Optional[date] = None

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class ProgressionAnalysis:
    timeframe: str
    volume_change: float  # %
    strength_change: float  # %
    frequency_change: float  # % of expected sessions
    consistency_score: float  # 0-100
    trend_direction: TrendDirection
    peak_performance_date: Optional[date]
    current_phase: TrainingPhase
    recommended_adjustments: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class MuscleGroupAnalysis:
    muscle_group: str
    weekly_volume: float
    volume_progression: float
    strength_progression: float
    recovery_status: RecoveryStatus
    imbalance_risk: float  # 0-100
    recommended_volume: int  # sets per week
    exercises: List[str]
    last_trained: Optional[date]

    def to_dict(self) -> Dict:
        return to_serializable(self)


# =============================================================================
# STATISTICS
# =============================================================================

def calculate_trend(values: Sequence[float]) -> float:
    """
    Least-squares slope normalized by the series mean.

    slope = (n·ΣXY − ΣX·ΣY) / (n·ΣX² − (ΣX)²) with X = 0..n-1,
    trend = slope / mean(Y).

    Returns a dimensionless fraction (0.05 == +5% of the mean per step).
    0 for fewer than 2 points or a non-positive mean.
    """
    n = len(values)
    if n < MIN_TREND_POINTS:
        return 0.0

    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for i, y in enumerate(values):
        sum_x += i
        sum_y += y
        sum_xy += i * y
        sum_x2 += i * i

    denominator = n * sum_x2 - sum_x * sum_x
    mean_y = sum_y / n
    if denominator == 0 or mean_y <= 0:
        return 0.0

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    return slope / mean_y


def calculate_variance(values: Sequence[float]) -> float:
    """Population variance, 0 for an empty series."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def calculate_progression(values: Sequence[float]) -> float:
    """
    Percent change between the earlier and later halves of a series.

    For odd lengths the middle value belongs to both halves. 0 when fewer
    than 2 values or when the earlier half averages ≤ 0.
    """
    n = len(values)
    if n < 2:
        return 0.0
    first = values[: (n + 1) // 2]
    second = values[n // 2:]
    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)
    if first_avg <= 0:
        return 0.0
    return (second_avg - first_avg) / first_avg * 100


# =============================================================================
# STREAKS
# =============================================================================

def calculate_streak(activity_dates: Iterable[date], streak_type: StreakType = StreakType.WORKOUT) -> Streak:
    """
    Consecutive-day streak over distinct activity dates.

    A gap of exactly one day extends the running streak; a larger gap records
    the day before the gap as `last_break` and resets to 1. `current` is the
    running length at the last record, not relative to today: a user who
    stopped logging keeps the streak they had on their final day.
    """
    days = sorted(set(activity_dates))
    if not days:
        return Streak(type=streak_type, current=0, best=0)

    best = 1
    running = 1
    last_break: Optional[date] = None

    for previous, day in zip(days, days[1:]):
        gap = (day - previous).days
        if gap == 1:
            running += 1
        elif gap > 1:
            last_break = previous
            best = max(best, running)
            running = 1

    best = max(best, running)
    return Streak(type=streak_type, current=running, best=best, last_break=last_break)


def calculate_streaks(workout_dates: Iterable[date], meal_dates: Iterable[date]) -> List[Streak]:
    """Workout streak plus logging streak (any workout or meal logged)."""
    workout_days = set(workout_dates)
    logging_days = workout_days | set(meal_dates)
    return [
        calculate_streak(workout_days, StreakType.WORKOUT),
        calculate_streak(logging_days, StreakType.LOGGING),
    ]


# =============================================================================
# PLATEAUS
# =============================================================================

def calculate_plateau_risk(loads: Sequence[float]) -> int:
    """
    Plateau risk (0-100) for a lift from its chronological working loads.

    Uses the last 4 positive loads:
    - variance < 2 and |trend| < 2%  -> 80
    - variance < 5 and |trend| < 5%  -> 50
    - otherwise                      -> 20
    Fewer than 4 loads -> 0.
    """
    positive = [load for load in loads if load and load > 0]
    if len(positive) < PLATEAU_WINDOW:
        return 0

    recent = positive[-PLATEAU_WINDOW:]
    variance = calculate_variance(recent)
    trend = abs(calculate_trend(recent))

    if variance < PLATEAU_HIGH_VARIANCE and trend < PLATEAU_HIGH_TREND:
        return PLATEAU_RISK_HIGH
    if variance < PLATEAU_MEDIUM_VARIANCE and trend < PLATEAU_MEDIUM_TREND:
        return PLATEAU_RISK_MEDIUM
    return PLATEAU_RISK_LOW


def is_weight_plateaued(weights: Sequence["WeightEntry"]) -> bool:
    """Body weight plateau: the 5 most recent readings vary by < 0.5 kg²."""
    if len(weights) < WEIGHT_PLATEAU_WINDOW:
        return False
    recent = sorted(weights, key=lambda w: w.date)[-WEIGHT_PLATEAU_WINDOW:]
    return calculate_variance([w.weight_kg for w in recent]) < WEIGHT_PLATEAU_VARIANCE


def classify_weight_trend(weights: Sequence["WeightEntry"]) -> WeightTrend:
    if len(weights) < 3:
        return WeightTrend.MAINTAINING
    series = [w.weight_kg for w in sorted(weights, key=lambda w: w.date)]
    trend = calculate_trend(series)
    if trend > 0.02:
        return WeightTrend.GAINING
    if trend < -0.02:
        return WeightTrend.LOSING
    if calculate_variance(series) > 1:
        return WeightTrend.FLUCTUATING
    return WeightTrend.MAINTAINING


def recent_volumes(workouts: Sequence["WorkoutSummary"], limit: int = OVERLOAD_MAX_WORKOUTS) -> List[float]:
    """Volumes of the most recent volume-bearing workouts, oldest first."""
    ordered = sorted(workouts, key=lambda w: w.date)
    volumes = [w.total_volume for w in ordered if w.total_volume and w.total_volume > 0]
    return volumes[-limit:] if limit else volumes


# =============================================================================
# PATTERN DETECTION
# =============================================================================

def detect_patterns(
    workouts: Sequence["WorkoutSummary"],
    nutrition: Sequence["NutritionSummary"],
    weights: Sequence["WeightEntry"],
    window_days: int = 30,
) -> List[Pattern]:
    """
    Threshold rules over a trailing window. Each rule is independent.

    - workout days / window > 0.7 -> positive consistency; < 0.3 -> negative
    - volume trend over the last 5-10 loaded workouts > 5% -> progressive overload
    - average protein vs 1.6 g/kg bodyweight: ≥ 90% positive, < 60% negative
    - rest days < 8 -> insufficient recovery
    """
    patterns: List[Pattern] = []
    timeframe = f"last {window_days} days"

    workout_days = {w.date for w in workouts}
    consistency_rate = len(workout_days) / window_days if window_days > 0 else 0.0

    if consistency_rate > CONSISTENCY_HIGH:
        patterns.append(Pattern(
            type=PatternType.POSITIVE,
            category=PatternCategory.CONSISTENCY,
            description="Excellent workout consistency",
            confidence=0.9,
            timeframe=timeframe,
            impact="Strong habit formation leading to better results",
        ))
    elif consistency_rate < CONSISTENCY_LOW:
        patterns.append(Pattern(
            type=PatternType.NEGATIVE,
            category=PatternCategory.CONSISTENCY,
            description="Inconsistent workout schedule",
            confidence=0.85,
            timeframe=timeframe,
            impact="May slow progress toward goals",
        ))

    volumes = recent_volumes(workouts)
    if len(volumes) >= OVERLOAD_MIN_WORKOUTS and calculate_trend(volumes) > OVERLOAD_TREND:
        patterns.append(Pattern(
            type=PatternType.POSITIVE,
            category=PatternCategory.WORKOUT,
            description="Progressive overload detected",
            confidence=0.8,
            timeframe=f"last {len(volumes)} workouts",
            impact="Optimal for strength and muscle gains",
        ))

    if weights and nutrition:
        latest_weight = max(weights, key=lambda w: w.date).weight_kg
        avg_protein = sum(n.protein_g for n in nutrition) / len(nutrition)
        protein_target = latest_weight * PROTEIN_G_PER_KG
        protein_ratio = avg_protein / protein_target if protein_target > 0 else 0.0

        if protein_ratio >= PROTEIN_ADEQUATE_RATIO:
            patterns.append(Pattern(
                type=PatternType.POSITIVE,
                category=PatternCategory.NUTRITION,
                description="Adequate protein intake",
                confidence=0.85,
                timeframe=timeframe,
                impact="Supporting muscle recovery and growth",
            ))
        elif protein_ratio < PROTEIN_LOW_RATIO:
            patterns.append(Pattern(
                type=PatternType.NEGATIVE,
                category=PatternCategory.NUTRITION,
                description="Low protein intake",
                confidence=0.8,
                timeframe=timeframe,
                impact="May limit muscle recovery and growth",
            ))

    rest_days = window_days - len(workout_days)
    if rest_days < MIN_REST_DAYS:
        patterns.append(Pattern(
            type=PatternType.NEGATIVE,
            category=PatternCategory.RECOVERY,
            description="Insufficient rest days",
            confidence=0.75,
            timeframe=timeframe,
            impact="Risk of overtraining and burnout",
        ))

    logger.debug(f"Detected {len(patterns)} patterns over {window_days} days")
    return patterns


# =============================================================================
# PROGRESSION
# =============================================================================

TIMEFRAME_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}

TIMEFRAME_WEEKS = {
    "week": 1,
    "month": 4,
    "quarter": 12,
    "year": 52,
}


def expected_workouts(timeframe: str) -> int:
    return EXPECTED_WORKOUTS_PER_WEEK * TIMEFRAME_WEEKS.get(timeframe, 1)


def calculate_distribution_score(dates: Sequence[date], span_days: int) -> float:
    """0-1: how close the average gap between sessions is to an even spread."""
    if len(dates) < 2:
        return 1.0 if dates else 0.0
    ordered = sorted(dates)
    gaps = [(b - a).days for a, b in zip(ordered, ordered[1:])]
    avg_gap = sum(gaps) / len(gaps)
    expected_gap = span_days / len(ordered)
    if expected_gap <= 0:
        return 0.0
    return max(0.0, 1 - abs(avg_gap - expected_gap) / expected_gap)


def calculate_consistency_score(workout_dates: Sequence[date], timeframe: str) -> float:
    """0-100: 70% session frequency vs expected, 30% spacing regularity."""
    expected = expected_workouts(timeframe)
    frequency = min(len(workout_dates) / expected, 1.0) if expected else 0.0
    distribution = calculate_distribution_score(workout_dates, TIMEFRAME_DAYS.get(timeframe, 30))
    return (frequency * 0.7 + distribution * 0.3) * 100


def classify_trend_direction(volumes: Sequence[float]) -> TrendDirection:
    if len(volumes) < 3:
        return TrendDirection.PLATEAUING
    change = calculate_progression(volumes)
    if change > 5:
        return TrendDirection.IMPROVING
    if change < -5:
        return TrendDirection.DECLINING
    return TrendDirection.PLATEAUING


def identify_training_phase(metrics: Sequence["WorkoutMetrics"]) -> TrainingPhase:
    """Phase from the average volume and intensity of the last 4 sessions."""
    if not metrics:
        return TrainingPhase.ACCUMULATION
    recent = list(metrics)[-4:]
    avg_volume = sum(m.total_volume for m in recent) / len(recent)
    avg_intensity = sum(m.intensity_score for m in recent) / len(recent)

    if avg_volume > 1000 and avg_intensity < 70:
        return TrainingPhase.ACCUMULATION
    if avg_volume < 800 and avg_intensity > 80:
        return TrainingPhase.INTENSIFICATION
    if avg_volume < 600:
        return TrainingPhase.DELOAD
    return TrainingPhase.REALIZATION


def progression_recommendations(
    volume_change: float,
    strength_change: float,
    frequency_change: float,
    consistency_score: float,
    trend_direction: TrendDirection,
) -> List[str]:
    recommendations = []
    if volume_change < -10:
        recommendations.append("Increase training volume by 10-15%")
    if strength_change < 2:
        recommendations.append("Focus on progressive overload - add weight or reps each week")
    if frequency_change < 80:
        recommendations.append("Improve workout consistency - aim for scheduled training days")
    if consistency_score < 70:
        recommendations.append("Build better habits - set specific workout times and stick to them")
    if trend_direction == TrendDirection.DECLINING:
        recommendations.append("Consider a deload week to allow for recovery and supercompensation")
    if not recommendations:
        recommendations.append("Great progress! Continue with current programming")
    return recommendations


def analyze_progression(
    workout_metrics: Sequence["WorkoutMetrics"],
    exercises: Sequence["ExerciseMetric"],
    timeframe: str = "month",
    as_of: Optional[date] = None,
) -> ProgressionAnalysis:
    """
    Progression over a trailing timeframe (week / month / quarter / year)
    ending at `as_of` (defaults to the latest workout date).
    """
    ordered = sorted(workout_metrics, key=lambda m: m.date)
    if as_of is None and ordered:
        as_of = ordered[-1].date
    if as_of is not None:
        start = as_of - timedelta(days=TIMEFRAME_DAYS.get(timeframe, 30))
        ordered = [m for m in ordered if start < m.date <= as_of]

    volumes = [m.total_volume for m in ordered]
    volume_change = calculate_progression(volumes)
    strength_change = (
        sum(e.strength_progression for e in exercises) / len(exercises) if exercises else 0.0
    )
    expected = expected_workouts(timeframe)
    frequency_change = len(ordered) / expected * 100 if expected else 0.0
    consistency_score = calculate_consistency_score([m.date for m in ordered], timeframe)
    trend_direction = classify_trend_direction(volumes)

    peak_date = None
    if ordered:
        peak_date = max(ordered, key=lambda m: m.total_volume).date

    return ProgressionAnalysis(
        timeframe=timeframe,
        volume_change=volume_change,
        strength_change=strength_change,
        frequency_change=frequency_change,
        consistency_score=consistency_score,
        trend_direction=trend_direction,
        peak_performance_date=peak_date,
        current_phase=identify_training_phase(ordered),
        recommended_adjustments=progression_recommendations(
            volume_change, strength_change, frequency_change, consistency_score, trend_direction
        ),
    )


# =============================================================================
# MUSCLE GROUPS
# =============================================================================

def assess_recovery_status(exercises: Sequence["ExerciseMetric"]) -> RecoveryStatus:
    if not exercises:
        return RecoveryStatus.RECOVERED
    avg_progression = sum(e.strength_progression for e in exercises) / len(exercises)
    avg_plateau = sum(e.plateau_risk for e in exercises) / len(exercises)
    if avg_progression < -5 and avg_plateau > 70:
        return RecoveryStatus.OVERTRAINED
    if avg_progression < 2 and avg_plateau > 50:
        return RecoveryStatus.FATIGUED
    return RecoveryStatus.RECOVERED


def calculate_imbalance_risk(group_volume: float, total_volume: float, group_count: int) -> float:
    """Deviation of a group's volume share from an equal 1/N share, 0-100."""
    if group_count <= 0:
        return 0.0
    proportion = group_volume / total_volume if total_volume > 0 else 0.0
    expected = 1 / group_count
    return min(100.0, abs(proportion - expected) / expected * 100)


def analyze_muscle_groups(exercises: Sequence["ExerciseMetric"], weeks: int = 4) -> List[MuscleGroupAnalysis]:
    """Per-muscle-group volume, progression, recovery and balance."""
    by_group: Dict[str, List["ExerciseMetric"]] = {}
    for exercise in exercises:
        for muscle in exercise.muscle_groups:
            by_group.setdefault(muscle, []).append(exercise)

    group_volumes = {
        group: sum(e.total_volume for e in members) for group, members in by_group.items()
    }
    total_volume = sum(group_volumes.values())
    weeks = max(weeks, 1)

    analyses = []
    for group, members in by_group.items():
        last_dates = [e.last_performed for e in members if e.last_performed]
        analyses.append(MuscleGroupAnalysis(
            muscle_group=group,
            weekly_volume=group_volumes[group] / weeks,
            volume_progression=sum(e.volume_progression for e in members) / len(members),
            strength_progression=sum(e.strength_progression for e in members) / len(members),
            recovery_status=assess_recovery_status(members),
            imbalance_risk=calculate_imbalance_risk(group_volumes[group], total_volume, len(by_group)),
            recommended_volume=lookup_tables.recommended_weekly_sets(group),
            exercises=[e.exercise_name for e in members],
            last_trained=max(last_dates) if last_dates else None,
        ))

    return sorted(analyses, key=lambda a: a.weekly_volume, reverse=True)
