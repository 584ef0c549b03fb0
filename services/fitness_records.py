"""
Fitness Records

Normalized input records handed to the engine by the data-storage
collaborator, plus the small enums shared across services.

Records are plain dataclasses: no behavior beyond derived keys and
serialization, so they can cross a process or network boundary unchanged.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# ENUMS
# =============================================================================

class WorkoutType(str, Enum):
    STRENGTH = "strength"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    SPORT = "sport"


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityLevel(str, Enum):
    """Five fixed activity levels, ordered from least to most active."""
    SEDENTARY = "sedentary"
    LIGHTLY_ACTIVE = "lightly_active"
    MODERATELY_ACTIVE = "moderately_active"
    VERY_ACTIVE = "very_active"
    EXTRA_ACTIVE = "extra_active"


class Goal(str, Enum):
    FAT_LOSS = "fat_loss"
    MUSCLE_GAIN = "muscle_gain"
    MAINTENANCE = "maintenance"
    ATHLETIC_PERFORMANCE = "athletic_performance"


class ConstraintLevel(str, Enum):
    """Budget / time-available levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CookingSkill(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# =============================================================================
# RAW RECORDS (from the data-storage collaborator)
# =============================================================================

@dataclass
class ExerciseEntry:
    """One logged line of an exercise: `sets` x `reps` at `weight_kg`."""
    name: str
    sets: int = 1
    reps: int = 0
    weight_kg: float = 0.0
    rpe: Optional[float] = None
    muscle_group: Optional[str] = None  # caller-supplied tag, informational

    @property
    def volume(self) -> float:
        return (self.sets or 0) * (self.reps or 0) * (self.weight_kg or 0.0)


@dataclass
class WorkoutRecord:
    """A logged workout session."""
    performed_at: datetime
    workout_type: WorkoutType = WorkoutType.STRENGTH
    duration_minutes: float = 0.0
    exercises: List[ExerciseEntry] = field(default_factory=list)
    workout_id: Optional[str] = None

    @property
    def day(self) -> date:
        return _day_of(self.performed_at)


@dataclass
class MealRecord:
    """A logged meal / food-log entry. Missing numbers count as zero."""
    logged_at: datetime
    calories: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    fiber_g: Optional[float] = None
    sugar_g: Optional[float] = None
    water_ml: Optional[float] = None
    cost: Optional[float] = None
    name: Optional[str] = None

    @property
    def day(self) -> date:
        return _day_of(self.logged_at)


@dataclass
class WeightRecord:
    """A body-weight reading."""
    recorded_on: date
    weight_kg: float
    body_fat_percentage: Optional[float] = None


@dataclass
class NutritionProfile:
    """
    Caller-supplied profile for target derivation and meal planning.

    Optional fields default to conservative values so a partial profile
    still produces a result.
    """
    age: int
    sex: Sex
    weight_kg: float
    height_cm: float
    activity_level: ActivityLevel = ActivityLevel.SEDENTARY
    goal: Goal = Goal.MAINTENANCE
    dietary_restrictions: List[str] = field(default_factory=list)
    allergies: List[str] = field(default_factory=list)
    meals_per_day: int = 4
    budget_constraint: Optional[ConstraintLevel] = None
    cooking_skill: CookingSkill = CookingSkill.BEGINNER
    time_constraint: ConstraintLevel = ConstraintLevel.MEDIUM
    user_id: Optional[str] = None


@dataclass
class OptimizedFood:
    """
    A catalog food, either at one full serving (catalog form) or scaled to
    the fraction the allocator selected (`serving_fraction` < 1).
    """
    food_id: str
    name: str
    quantity: float  # grams per serving
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float = 0.0
    micronutrients: Dict[str, float] = field(default_factory=dict)
    satiety_score: float = 5.0  # 1-10
    nutrition_density: float = 5.0  # 1-10
    cost_per_serving: Optional[float] = None
    prep_time: Optional[float] = None  # minutes
    bioavailability: Dict[str, float] = field(default_factory=dict)  # per macro, 0-1
    category: Optional[str] = None
    serving_fraction: float = 1.0

    @property
    def quality_score(self) -> float:
        """Ranking key used by the allocator."""
        return (self.nutrition_density + self.satiety_score) / 2


# =============================================================================
# HELPERS
# =============================================================================

def _day_of(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def to_serializable(value: Any) -> Any:
    """Convert engine records (dataclasses, enums, dates) to JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_serializable(k)): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_serializable(v) for v in value]
    return value
