"""
Insight Engine

Rule thresholds over aggregated metrics and trend output, producing:
- PerformanceInsight[]: strength gains, plateaus, imbalances, peak form,
  recovery needs
- ActionItem[]: concrete next steps from negative patterns
- ProgressSummary: consistency, adherence, weight/strength trend, score
- NutritionInsight[]: deficiencies, excesses, timing, balance, cost
- CoachingReport: all of the above plus plateau/recovery suggestions

Each rule is independent. Ordered outputs sort by severity (high first);
ties keep rule-evaluation order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging
import statistics

from services.fitness_records import ConstraintLevel, NutritionProfile, to_serializable
from services.metrics_aggregator import ExerciseMetric, NutritionSummary, WeightEntry, WorkoutSummary
from services.meal_planner import MacroTotals, calculate_adherence_score
from services.target_calculator import MacroTargets
from services.trend_analyzer import (
    MuscleGroupAnalysis,
    Pattern,
    PatternCategory,
    PatternType,
    ProgressionAnalysis,
    RecoveryStatus,
    TrendDirection,
    WeightTrend,
    calculate_trend,
    classify_weight_trend,
    is_weight_plateaued,
    recent_volumes,
)

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_ORDER = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}


class InsightType(str, Enum):
    STRENGTH_GAIN = "strength_gain"
    PLATEAU_DETECTED = "plateau_detected"
    IMBALANCE_WARNING = "imbalance_warning"
    PEAK_PERFORMANCE = "peak_performance"
    RECOVERY_NEEDED = "recovery_needed"


class NutritionInsightType(str, Enum):
    DEFICIENCY = "deficiency"
    EXCESS = "excess"
    TIMING = "timing"
    BALANCE = "balance"
    EFFICIENCY = "efficiency"


class ActionCategory(str, Enum):
    WORKOUT = "workout"
    NUTRITION = "nutrition"
    RECOVERY = "recovery"
    HABIT = "habit"


class StrengthProgress(str, Enum):
    IMPROVING = "improving"
    PLATEAU = "plateau"
    DECLINING = "declining"


STRENGTH_BONUS = {
    StrengthProgress.IMPROVING: 30,
    StrengthProgress.PLATEAU: 15,
    StrengthProgress.DECLINING: 0,
}

# Thresholds
STRENGTH_GAIN_MIN = 5.0  # % strength progression
MAX_STRENGTH_INSIGHTS = 3
PLATEAU_RISK_ALERT = 70
IMBALANCE_RISK_ALERT = 60
MAX_MONTHLY_WORKOUTS = 25
MAX_AVERAGE_RPE = 8
RECOVERY_DECLINE_TREND = -0.1
VOLUME_PLATEAU_TREND = 0.02
STRENGTH_TREND = 0.05
MEAL_TIMING_IRREGULARITY_HOURS = 2.0
LOW_BUDGET_DAILY_COST = 15.0
DEFAULT_DAILY_COST = 25.0


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class PerformanceInsight:
    type: InsightType
    severity: Severity
    title: str
    description: str
    recommendation: str
    confidence: float  # 0-1
    timeframe: str
    actionable: bool = True
    data_points: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class ActionItem:
    priority: Severity
    category: ActionCategory
    action: str
    rationale: str
    timeline: str
    expected_impact: str

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class ProgressSummary:
    workout_consistency: int  # %
    nutrition_adherence: int  # %
    weight_trend: WeightTrend
    strength_progress: StrengthProgress
    overall_score: int  # 0-100

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class NutritionInsight:
    type: NutritionInsightType
    severity: Severity
    message: str
    recommendation: str
    impact: str
    timeframe: str
    nutrient: Optional[str] = None

    def to_dict(self) -> Dict:
        return to_serializable(self)


@dataclass
class CoachingReport:
    performance_insights: List[PerformanceInsight]
    patterns: List[Pattern]
    action_items: List[ActionItem]
    progress_summary: ProgressSummary
    nutrition_insights: List[NutritionInsight] = field(default_factory=list)
    plateau_strategies: Optional[List[str]] = None
    recovery_suggestions: Optional[List[str]] = None

    def to_dict(self) -> Dict:
        return to_serializable(self)


def sort_by_severity(items: list, key: str = "severity") -> list:
    """Stable sort, high severity first."""
    return sorted(items, key=lambda item: -SEVERITY_ORDER[getattr(item, key)])


# =============================================================================
# PERFORMANCE INSIGHTS
# =============================================================================

def generate_insights(
    exercises: Sequence[ExerciseMetric],
    progression: Optional[ProgressionAnalysis],
    muscle_groups: Sequence[MuscleGroupAnalysis],
) -> List[PerformanceInsight]:
    insights: List[PerformanceInsight] = []

    strongest = sorted(
        (e for e in exercises if e.strength_progression > STRENGTH_GAIN_MIN),
        key=lambda e: e.strength_progression,
        reverse=True,
    )[:MAX_STRENGTH_INSIGHTS]
    for exercise in strongest:
        insights.append(PerformanceInsight(
            type=InsightType.STRENGTH_GAIN,
            severity=Severity.LOW,
            title=f"Excellent Progress in {exercise.exercise_name}",
            description=f"You've improved {exercise.strength_progression:.1f}% in strength over the period",
            recommendation="Keep up the current progression scheme and consider increasing volume",
            confidence=0.85,
            timeframe="Past month",
            data_points=[exercise.exercise_name],
        ))

    for exercise in exercises:
        if exercise.plateau_risk > PLATEAU_RISK_ALERT:
            insights.append(PerformanceInsight(
                type=InsightType.PLATEAU_DETECTED,
                severity=Severity.MEDIUM,
                title=f"Plateau Detected: {exercise.exercise_name}",
                description="No significant progress in recent sessions. Consider changing your approach.",
                recommendation="Try deload week, change rep ranges, or modify exercise variation",
                confidence=0.78,
                timeframe="Past 3 weeks",
                data_points=[exercise.exercise_name],
            ))

    for group in muscle_groups:
        if group.imbalance_risk > IMBALANCE_RISK_ALERT:
            insights.append(PerformanceInsight(
                type=InsightType.IMBALANCE_WARNING,
                severity=Severity.MEDIUM,
                title=f"Muscle Imbalance Risk: {group.muscle_group}",
                description=f"{group.muscle_group} volume is out of proportion to other muscle groups",
                recommendation=f"Rebalance {group.muscle_group} training volume by 20-30%",
                confidence=0.72,
                timeframe="Current",
                data_points=[group.muscle_group],
            ))

    if progression is not None and progression.trend_direction == TrendDirection.IMPROVING:
        insights.append(PerformanceInsight(
            type=InsightType.PEAK_PERFORMANCE,
            severity=Severity.LOW,
            title="Peak Performance Phase",
            description="You're currently in your best form with consistent improvements",
            recommendation="Continue current program for 2-3 more weeks before changing",
            confidence=0.82,
            timeframe="Current",
            data_points=[progression.timeframe],
        ))

    overtrained = [g for g in muscle_groups if g.recovery_status == RecoveryStatus.OVERTRAINED]
    if overtrained:
        insights.append(PerformanceInsight(
            type=InsightType.RECOVERY_NEEDED,
            severity=Severity.HIGH,
            title="Recovery Required",
            description=f"{len(overtrained)} muscle groups showing signs of overtraining",
            recommendation="Take 3-5 days complete rest or switch to light active recovery",
            confidence=0.89,
            timeframe="Immediate",
            data_points=[g.muscle_group for g in overtrained],
        ))

    return sort_by_severity(insights)


# =============================================================================
# ACTION ITEMS
# =============================================================================

def generate_action_items(patterns: Sequence[Pattern], workouts: Sequence[WorkoutSummary]) -> List[ActionItem]:
    items: List[ActionItem] = []

    for pattern in patterns:
        if pattern.type != PatternType.NEGATIVE:
            continue
        if pattern.category == PatternCategory.CONSISTENCY:
            items.append(ActionItem(
                priority=Severity.HIGH,
                category=ActionCategory.HABIT,
                action="Schedule 3-4 workouts for next week",
                rationale="Building consistency is key to long-term progress",
                timeline="This week",
                expected_impact="Improved habit formation and faster progress",
            ))
        elif pattern.category == PatternCategory.NUTRITION and "protein" in pattern.description.lower():
            items.append(ActionItem(
                priority=Severity.HIGH,
                category=ActionCategory.NUTRITION,
                action="Add a protein source to each meal",
                rationale="Protein supports muscle recovery and satiety",
                timeline="Starting today",
                expected_impact="Better recovery and muscle maintenance",
            ))
        elif pattern.category == PatternCategory.RECOVERY:
            items.append(ActionItem(
                priority=Severity.HIGH,
                category=ActionCategory.RECOVERY,
                action="Schedule 2 complete rest days this week",
                rationale="Recovery is when adaptation happens",
                timeline="This week",
                expected_impact="Reduced injury risk and better performance",
            ))

    if len(workouts) > 5:
        has_overload = any("progressive overload" in p.description.lower() for p in patterns)
        if not has_overload:
            items.append(ActionItem(
                priority=Severity.MEDIUM,
                category=ActionCategory.WORKOUT,
                action="Increase weight by 2.5-5% on main lifts",
                rationale="Progressive overload drives strength gains",
                timeline="Next workout",
                expected_impact="Continued strength and muscle development",
            ))

        trained = {m for w in workouts for m in w.muscle_groups}
        if len(trained) < 3:
            items.append(ActionItem(
                priority=Severity.MEDIUM,
                category=ActionCategory.WORKOUT,
                action="Add exercises for neglected muscle groups",
                rationale="Balanced training prevents imbalances",
                timeline="Next 2 weeks",
                expected_impact="More balanced physique and reduced injury risk",
            ))

    return items


# =============================================================================
# PROGRESS
# =============================================================================

def classify_strength_progress(workouts: Sequence[WorkoutSummary]) -> StrengthProgress:
    volumes = recent_volumes(workouts, limit=0)
    if len(volumes) < 3:
        return StrengthProgress.PLATEAU
    trend = calculate_trend(volumes)
    if trend > STRENGTH_TREND:
        return StrengthProgress.IMPROVING
    if trend < -STRENGTH_TREND:
        return StrengthProgress.DECLINING
    return StrengthProgress.PLATEAU


def calculate_nutrition_adherence(
    nutrition: Sequence[NutritionSummary],
    targets: Optional[MacroTargets],
    window_days: int,
) -> float:
    """
    Logging rate over the window (0-100). With targets, scaled by the mean
    daily macro adherence of the logged days.
    """
    if window_days <= 0 or not nutrition:
        return 0.0
    logging_rate = min(len(nutrition) / window_days, 1.0)
    if targets is None:
        return logging_rate * 100

    daily = [
        calculate_adherence_score(
            MacroTotals(calories=n.calories, protein=n.protein_g, carbs=n.carbs_g, fat=n.fat_g),
            targets,
        )
        for n in nutrition
    ]
    return logging_rate * sum(daily) / len(daily)


def calculate_progress_summary(
    workouts: Sequence[WorkoutSummary],
    nutrition: Sequence[NutritionSummary],
    weights: Sequence[WeightEntry],
    targets: Optional[MacroTargets] = None,
    window_days: int = 30,
) -> ProgressSummary:
    """
    overall = round(consistency × 0.4 + adherence × 0.3 + strength bonus),
    strength bonus 30 / 15 / 0 for improving / plateau / declining.
    """
    workout_days = len({w.date for w in workouts})
    consistency = round(min(workout_days / window_days, 1.0) * 100) if window_days > 0 else 0
    adherence = round(calculate_nutrition_adherence(nutrition, targets, window_days))
    strength = classify_strength_progress(workouts)

    return ProgressSummary(
        workout_consistency=consistency,
        nutrition_adherence=adherence,
        weight_trend=classify_weight_trend(weights),
        strength_progress=strength,
        overall_score=round(consistency * 0.4 + adherence * 0.3 + STRENGTH_BONUS[strength]),
    )


# =============================================================================
# PLATEAU / RECOVERY
# =============================================================================

PLATEAU_STRATEGIES = [
    "Try a deload week with 50-60% of normal volume",
    "Switch to a different rep range (e.g., 3-5 reps for strength, 12-15 for endurance)",
    "Incorporate new exercise variations",
    "Adjust your caloric intake by 10-15%",
    "Focus on improving sleep quality and duration",
    "Consider a structured program change every 8-12 weeks",
]

RECOVERY_SUGGESTIONS = [
    "Prioritize 7-9 hours of quality sleep",
    "Include 10-15 minutes of mobility work daily",
    "Stay hydrated with 3-4 liters of water per day",
    "Consider adding magnesium and zinc supplements",
    "Schedule a massage or foam rolling session",
    "Try contrast showers (hot/cold) for recovery",
    "Reduce training intensity by 20-30% this week",
]


def detect_plateau(workouts: Sequence[WorkoutSummary], weights: Sequence[WeightEntry]) -> bool:
    """Body weight flat over 5 readings, or workout volume flat over 5-10 sessions."""
    if is_weight_plateaued(weights):
        return True
    volumes = recent_volumes(workouts)
    return len(volumes) >= 5 and abs(calculate_trend(volumes)) < VOLUME_PLATEAU_TREND


def plateau_strategies() -> List[str]:
    return list(PLATEAU_STRATEGIES)


def needs_recovery(workouts: Sequence[WorkoutSummary]) -> bool:
    if len(workouts) > MAX_MONTHLY_WORKOUTS:
        return True

    rpes = [w.average_intensity for w in workouts if w.average_intensity is not None]
    if rpes and sum(rpes) / len(rpes) > MAX_AVERAGE_RPE:
        return True

    volumes = recent_volumes(workouts, limit=5)
    return len(volumes) >= 3 and calculate_trend(volumes) < RECOVERY_DECLINE_TREND


def recovery_suggestions() -> List[str]:
    return list(RECOVERY_SUGGESTIONS)


# =============================================================================
# NUTRITION INSIGHTS
# =============================================================================

def meal_timing_irregularity(nutrition: Sequence[NutritionSummary]) -> float:
    """Standard deviation (hours) of the first meal's time of day."""
    hours = [n.first_meal_hour for n in nutrition if n.first_meal_hour is not None]
    if len(hours) < 2:
        return 0.0
    return statistics.pstdev(hours)


def generate_nutrition_insights(
    profile: NutritionProfile,
    nutrition: Sequence[NutritionSummary],
    targets: MacroTargets,
) -> List[NutritionInsight]:
    """Insights on the average logged day; nothing when no day was logged."""
    if not nutrition:
        return []

    days = len(nutrition)
    timeframe = f"Past {days} days"
    avg_calories = sum(n.calories for n in nutrition) / days
    avg_protein = sum(n.protein_g for n in nutrition) / days
    avg_fiber = sum(n.fiber_g for n in nutrition) / days
    avg_sugar = sum(n.sugar_g for n in nutrition) / days
    avg_cost = sum(n.cost for n in nutrition) / days

    insights: List[NutritionInsight] = []

    if targets.protein > 0 and avg_protein < targets.protein * 0.8:
        shortfall = (targets.protein - avg_protein) / targets.protein * 100
        insights.append(NutritionInsight(
            type=NutritionInsightType.DEFICIENCY,
            severity=Severity.HIGH,
            nutrient="protein",
            message=f"Protein intake is {shortfall:.0f}% below target",
            recommendation="Add lean protein sources like chicken, fish, or protein powder to each meal",
            impact="May hinder muscle recovery and growth",
            timeframe=timeframe,
        ))

    if targets.fiber > 0 and avg_fiber < targets.fiber * 0.7:
        insights.append(NutritionInsight(
            type=NutritionInsightType.DEFICIENCY,
            severity=Severity.MEDIUM,
            nutrient="fiber",
            message="Fiber intake is significantly below recommendations",
            recommendation="Include more vegetables, fruits, whole grains, and legumes",
            impact="May affect digestive health and satiety",
            timeframe=timeframe,
        ))

    if targets.sugar_max > 0 and avg_sugar > targets.sugar_max * 1.5:
        insights.append(NutritionInsight(
            type=NutritionInsightType.EXCESS,
            severity=Severity.MEDIUM,
            nutrient="sugar",
            message="Sugar intake is above recommended limits",
            recommendation="Reduce processed foods and sugary drinks, choose whole fruits over juice",
            impact="May affect energy levels and body composition goals",
            timeframe=timeframe,
        ))

    if meal_timing_irregularity(nutrition) > MEAL_TIMING_IRREGULARITY_HOURS:
        insights.append(NutritionInsight(
            type=NutritionInsightType.TIMING,
            severity=Severity.LOW,
            message="Meal timing is inconsistent",
            recommendation="Try to eat meals at similar times each day for better metabolic health",
            impact="May affect energy levels and hunger cues",
            timeframe=timeframe,
        ))

    if targets.calories > 0 and abs(avg_calories - targets.calories) / targets.calories > 0.15:
        above = avg_calories > targets.calories
        insights.append(NutritionInsight(
            type=NutritionInsightType.BALANCE,
            severity=Severity.MEDIUM,
            message=f"Calorie intake is consistently {'above' if above else 'below'} target",
            recommendation=(
                "Focus on portion control and nutrient-dense, lower-calorie foods"
                if above
                else "Increase portion sizes or add healthy snacks to meet energy needs"
            ),
            impact=(
                "May slow progress toward body composition goals"
                if above
                else "May affect energy levels and recovery"
            ),
            timeframe=timeframe,
        ))

    cost_threshold = (
        LOW_BUDGET_DAILY_COST if profile.budget_constraint == ConstraintLevel.LOW else DEFAULT_DAILY_COST
    )
    if avg_cost > cost_threshold:
        insights.append(NutritionInsight(
            type=NutritionInsightType.EFFICIENCY,
            severity=Severity.LOW,
            message="Meal costs are higher than optimal",
            recommendation="Consider batch cooking, seasonal produce, and protein alternatives like legumes",
            impact="May affect long-term adherence due to budget constraints",
            timeframe=timeframe,
        ))

    return sort_by_severity(insights)


# =============================================================================
# REPORT
# =============================================================================

def build_coaching_report(
    workouts: Sequence[WorkoutSummary],
    nutrition: Sequence[NutritionSummary],
    weights: Sequence[WeightEntry],
    exercises: Sequence[ExerciseMetric],
    muscle_groups: Sequence[MuscleGroupAnalysis],
    progression: Optional[ProgressionAnalysis],
    patterns: Sequence[Pattern],
    profile: Optional[NutritionProfile] = None,
    targets: Optional[MacroTargets] = None,
    window_days: int = 30,
) -> CoachingReport:
    nutrition_insights: List[NutritionInsight] = []
    if profile is not None and targets is not None:
        nutrition_insights = generate_nutrition_insights(profile, nutrition, targets)

    report = CoachingReport(
        performance_insights=generate_insights(exercises, progression, muscle_groups),
        patterns=list(patterns),
        action_items=generate_action_items(patterns, workouts),
        progress_summary=calculate_progress_summary(workouts, nutrition, weights, targets, window_days),
        nutrition_insights=nutrition_insights,
        plateau_strategies=plateau_strategies() if detect_plateau(workouts, weights) else None,
        recovery_suggestions=recovery_suggestions() if needs_recovery(workouts) else None,
    )
    logger.info(
        f"Coaching report: {len(report.performance_insights)} insights, "
        f"{len(report.action_items)} action items, score {report.progress_summary.overall_score}"
    )
    return report
