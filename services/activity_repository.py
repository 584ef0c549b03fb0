"""
Activity Repository

Read-side collaborator interface between stored logs and the engine.
The engine never queries storage itself; the service layer fetches
everything through an ActivityRepository first, then runs the pure
engine functions over the returned records.

SqlActivityRepository and SqlFoodCatalog read the ORM tables in models.py.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional, Type, TypeVar
from uuid import UUID
import logging

from sqlalchemy.orm import Session, selectinload

from models import BodyWeight, FoodCatalogItem, FoodLog, UserProfile, WorkoutLog
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
from services.food_allocator import DEFAULT_ALTERNATIVES, FoodCatalog, rank_similar

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value, default: Optional[E]) -> Optional[E]:
    """Stored text to an enum member; unknown or empty values fall back to `default`."""
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.debug(f"Unknown {enum_cls.__name__} value {value!r}, using {default}")
        return default


class ActivityRepository(ABC):
    """Fetches a user's raw records for a date range (inclusive)."""

    @abstractmethod
    def get_workouts(self, user_id: UUID, start: date, end: date) -> List[WorkoutRecord]:
        pass

    @abstractmethod
    def get_meals(self, user_id: UUID, start: date, end: date) -> List[MealRecord]:
        pass

    @abstractmethod
    def get_weights(self, user_id: UUID, start: date, end: date) -> List[WeightRecord]:
        pass

    @abstractmethod
    def get_profile(self, user_id: UUID) -> Optional[NutritionProfile]:
        """None when the user has no profile."""
        pass


def _bounds(start: date, end: date):
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


class SqlActivityRepository(ActivityRepository):
    """ActivityRepository over the SQLAlchemy session of the current request."""

    def __init__(self, db: Session):
        self.db = db

    def get_workouts(self, user_id: UUID, start: date, end: date) -> List[WorkoutRecord]:
        lower, upper = _bounds(start, end)
        rows = self.db.query(WorkoutLog).options(selectinload(WorkoutLog.exercises)).filter(
            WorkoutLog.user_id == user_id,
            WorkoutLog.performed_at >= lower,
            WorkoutLog.performed_at < upper,
        ).order_by(WorkoutLog.performed_at).all()

        return [
            WorkoutRecord(
                performed_at=row.performed_at,
                workout_type=coerce_enum(WorkoutType, row.workout_type, WorkoutType.STRENGTH),
                duration_minutes=row.duration_minutes or 0.0,
                workout_id=str(row.id),
                exercises=[
                    ExerciseEntry(
                        name=e.exercise_name,
                        sets=e.sets or 0,
                        reps=e.reps or 0,
                        weight_kg=e.weight_kg or 0.0,
                        rpe=e.rpe,
                    )
                    for e in row.exercises
                ],
            )
            for row in rows
        ]

    def get_meals(self, user_id: UUID, start: date, end: date) -> List[MealRecord]:
        lower, upper = _bounds(start, end)
        rows = self.db.query(FoodLog).filter(
            FoodLog.user_id == user_id,
            FoodLog.logged_at >= lower,
            FoodLog.logged_at < upper,
        ).order_by(FoodLog.logged_at).all()

        return [
            MealRecord(
                logged_at=row.logged_at,
                name=row.name,
                calories=row.calories,
                protein_g=row.protein_g,
                carbs_g=row.carbs_g,
                fat_g=row.fat_g,
                fiber_g=row.fiber_g,
                sugar_g=row.sugar_g,
                water_ml=row.water_ml,
                cost=row.cost,
            )
            for row in rows
        ]

    def get_weights(self, user_id: UUID, start: date, end: date) -> List[WeightRecord]:
        rows = self.db.query(BodyWeight).filter(
            BodyWeight.user_id == user_id,
            BodyWeight.date >= start,
            BodyWeight.date <= end,
        ).order_by(BodyWeight.date).all()

        return [
            WeightRecord(recorded_on=row.date, weight_kg=row.weight_kg, body_fat_percentage=row.body_fat_pct)
            for row in rows
        ]

    def get_profile(self, user_id: UUID) -> Optional[NutritionProfile]:
        row = self.db.query(UserProfile).filter(UserProfile.id == user_id).first()
        if row is None:
            return None

        return NutritionProfile(
            age=row.age,
            sex=coerce_enum(Sex, row.sex, Sex.OTHER),
            weight_kg=row.weight_kg,
            height_cm=row.height_cm,
            activity_level=coerce_enum(ActivityLevel, row.activity_level, ActivityLevel.SEDENTARY),
            goal=coerce_enum(Goal, row.goal, Goal.MAINTENANCE),
            dietary_restrictions=list(row.dietary_restrictions or []),
            allergies=list(row.allergies or []),
            meals_per_day=row.meals_per_day or 4,
            budget_constraint=coerce_enum(ConstraintLevel, row.budget_constraint, None),
            cooking_skill=coerce_enum(CookingSkill, row.cooking_skill, CookingSkill.BEGINNER),
            time_constraint=coerce_enum(ConstraintLevel, row.time_constraint, ConstraintLevel.MEDIUM),
            user_id=str(row.id),
        )


def catalog_item_to_food(row: FoodCatalogItem) -> OptimizedFood:
    return OptimizedFood(
        food_id=row.id,
        name=row.name,
        quantity=row.serving_g,
        calories=row.calories,
        protein=row.protein_g or 0.0,
        carbs=row.carbs_g or 0.0,
        fat=row.fat_g or 0.0,
        fiber=row.fiber_g or 0.0,
        micronutrients=dict(row.micronutrients or {}),
        satiety_score=row.satiety_score,
        nutrition_density=row.nutrition_density,
        cost_per_serving=row.cost_per_serving,
        prep_time=row.prep_time_minutes,
        bioavailability=dict(row.bioavailability or {}),
        category=row.category,
    )


class SqlFoodCatalog(FoodCatalog):
    """FoodCatalog over the food_catalog_item table."""

    def __init__(self, db: Session):
        self.db = db

    def list_foods(self) -> List[OptimizedFood]:
        rows = self.db.query(FoodCatalogItem).order_by(FoodCatalogItem.id).all()
        return [catalog_item_to_food(row) for row in rows]

    def find_similar(self, food: OptimizedFood, limit: int = DEFAULT_ALTERNATIVES) -> List[OptimizedFood]:
        return rank_similar(food, self.list_foods(), limit)
