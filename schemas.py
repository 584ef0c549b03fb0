from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date
from typing import Annotated, Optional, List, Dict

from services.fitness_records import (
    ActivityLevel,
    ConstraintLevel,
    CookingSkill,
    ExerciseEntry,
    Goal,
    MealRecord,
    NutritionProfile,
    OptimizedFood,
    Sex,
    WeightRecord,
    WorkoutRecord,
    WorkoutType,
)

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

ClockTime = Annotated[str, Field(pattern=CLOCK_PATTERN)]  # HH:MM


def local_wall_time(value: datetime) -> datetime:
    """
    Drop any UTC offset, keeping the logged wall-clock time.

    Clients send a mix of naive and offset-aware timestamps; the engine
    orders and buckets records by the user's local time, so every timestamp
    reaching it is naive.
    """
    if value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


class ExerciseEntryIn(BaseModel):
    name: str = Field(min_length=1)
    sets: int = Field(default=1, ge=0)
    reps: int = Field(default=0, ge=0)
    weight_kg: float = Field(default=0.0, ge=0)
    rpe: Optional[float] = Field(default=None, ge=0, le=10)

    def to_record(self) -> ExerciseEntry:
        return ExerciseEntry(name=self.name, sets=self.sets, reps=self.reps, weight_kg=self.weight_kg, rpe=self.rpe)


class WorkoutIn(BaseModel):
    """A workout session as logged by the client"""
    performed_at: datetime
    workout_type: WorkoutType = WorkoutType.STRENGTH
    duration_minutes: float = Field(default=0.0, ge=0)
    exercises: List[ExerciseEntryIn] = Field(default_factory=list)

    @field_validator("performed_at")
    @classmethod
    def strip_offset(cls, v: datetime) -> datetime:
        return local_wall_time(v)

    def to_record(self) -> WorkoutRecord:
        return WorkoutRecord(
            performed_at=self.performed_at,
            workout_type=self.workout_type,
            duration_minutes=self.duration_minutes,
            exercises=[e.to_record() for e in self.exercises],
        )


class MealIn(BaseModel):
    """A meal / food-log entry; omitted numbers count as zero"""
    logged_at: datetime
    name: Optional[str] = None
    calories: Optional[float] = Field(default=None, ge=0)
    protein_g: Optional[float] = Field(default=None, ge=0)
    carbs_g: Optional[float] = Field(default=None, ge=0)
    fat_g: Optional[float] = Field(default=None, ge=0)
    fiber_g: Optional[float] = Field(default=None, ge=0)
    sugar_g: Optional[float] = Field(default=None, ge=0)
    water_ml: Optional[float] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)

    @field_validator("logged_at")
    @classmethod
    def strip_offset(cls, v: datetime) -> datetime:
        return local_wall_time(v)

    def to_record(self) -> MealRecord:
        return MealRecord(**self.model_dump())


class WeightIn(BaseModel):
    date: date
    weight_kg: float = Field(gt=0)
    body_fat_pct: Optional[float] = Field(default=None, ge=0, le=100)

    def to_record(self) -> WeightRecord:
        return WeightRecord(recorded_on=self.date, weight_kg=self.weight_kg, body_fat_percentage=self.body_fat_pct)


class ProfileIn(BaseModel):
    """Schema for a nutrition profile supplied by the caller"""
    age: int = Field(ge=1, le=120)
    sex: Sex = Sex.OTHER
    weight_kg: float = Field(gt=0)
    height_cm: float = Field(gt=0)
    activity_level: ActivityLevel = ActivityLevel.SEDENTARY
    goal: Goal = Goal.MAINTENANCE
    dietary_restrictions: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    meals_per_day: int = Field(default=4, ge=1, le=8)
    budget_constraint: Optional[ConstraintLevel] = None
    cooking_skill: CookingSkill = CookingSkill.BEGINNER
    time_constraint: ConstraintLevel = ConstraintLevel.MEDIUM

    def to_record(self) -> NutritionProfile:
        return NutritionProfile(**self.model_dump())


class FoodIn(BaseModel):
    """One serving of a candidate food"""
    food_id: str
    name: str
    quantity: float = Field(gt=0)  # grams per serving
    calories: float = Field(ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    fiber: float = Field(default=0.0, ge=0)
    micronutrients: Dict[str, float] = Field(default_factory=dict)
    satiety_score: float = Field(default=5.0, ge=1, le=10)
    nutrition_density: float = Field(default=5.0, ge=1, le=10)
    cost_per_serving: Optional[float] = Field(default=None, ge=0)
    prep_time: Optional[float] = Field(default=None, ge=0)
    bioavailability: Dict[str, float] = Field(default_factory=dict)
    category: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def to_record(self) -> OptimizedFood:
        return OptimizedFood(**self.model_dump())


class ActivityRecordsRequest(BaseModel):
    """Raw records for one user, as supplied by the storage collaborator"""
    workouts: List[WorkoutIn] = Field(default_factory=list)
    meals: List[MealIn] = Field(default_factory=list)
    weights: List[WeightIn] = Field(default_factory=list)


class AnalyticsReportRequest(ActivityRecordsRequest):
    profile: Optional[ProfileIn] = None
    as_of: Optional[date] = None


class TargetsRequest(BaseModel):
    profile: ProfileIn


class MealTimingRequest(BaseModel):
    profile: ProfileIn
    workout_times: List[ClockTime] = Field(default_factory=list)


class MealPlanRequest(BaseModel):
    """Meal plan request; without foods the stored catalog is used"""
    profile: ProfileIn
    foods: Optional[List[FoodIn]] = None
    workout_times: List[ClockTime] = Field(default_factory=list)
    days: Optional[int] = Field(default=None, ge=1, le=28)
    start_date: Optional[date] = None


class NutritionInsightsRequest(BaseModel):
    profile: ProfileIn
    meals: List[MealIn] = Field(default_factory=list)
