"""
Meal Planner

Assembles daily meal plans from targets, a timing strategy and a food pool:

    MacroTargets + MealTimingStrategy
        -> per-slot targets (scale_targets)
        -> food allocation + alternatives (food_allocator)
        -> supplements, hydration, adherence/optimization scores,
           cost, prep time, shopping list

A plan is produced once per day and never mutated; regenerate to change it.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence
import logging

from services import lookup_tables
from services.fitness_records import (
    ActivityLevel,
    ConstraintLevel,
    Goal,
    NutritionProfile,
    OptimizedFood,
    to_serializable,
)
from services.food_allocator import (
    DEFAULT_ALTERNATIVES,
    FoodAllocationStrategy,
    FoodCatalog,
    GreedyFoodAllocator,
    allocate_meal,
    find_alternatives,
)
from services.meal_timing import MealPriority, MealTimingStrategy, meal_priority_for, meal_time_for
from services.target_calculator import MacroTargets, calculate_hydration_target, scale_targets

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class MacroTotals:
    """Realized energy and macros of the foods actually selected."""
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0

    @classmethod
    def of(cls, foods: Sequence[OptimizedFood]) -> "MacroTotals":
        return cls(
            calories=sum(f.calories for f in foods),
            protein=sum(f.protein for f in foods),
            carbs=sum(f.carbs for f in foods),
            fat=sum(f.fat for f in foods),
            fiber=sum(f.fiber for f in foods),
        )


@dataclass(frozen=True)
class Supplement:
    name: str
    dosage: str
    timing: str  # morning | preworkout | postworkout | evening | with_meal
    reason: str
    priority: str  # essential | beneficial | optional
    cost: Optional[float] = None


@dataclass
class ShoppingItem:
    name: str
    quantity_g: float
    category: str
    estimated_cost: float
    alternatives: List[str] = field(default_factory=list)


@dataclass
class PlannedMeal:
    meal: str
    time_of_day: str  # HH:MM
    calorie_percentage: float
    target_macros: MacroTargets
    priority: MealPriority
    foods: List[OptimizedFood]
    alternatives: List[List[OptimizedFood]]


@dataclass
class MealPlan:
    date: date
    total_macros: MacroTotals
    meals: List[PlannedMeal]
    supplement_recommendations: List[Supplement]
    hydration_target: float  # liters
    adherence_score: float  # 0-100
    optimization_score: float  # 0-100
    cost: float
    prep_time: float  # minutes
    shopping_list: List[ShoppingItem]

    def to_dict(self) -> Dict:
        return to_serializable(self)


# =============================================================================
# SUPPLEMENTS
# =============================================================================

WHEY = Supplement(
    name="Whey Protein Powder",
    dosage="25-30g",
    timing="postworkout",
    reason="Optimize muscle protein synthesis and meet protein targets",
    priority="beneficial",
    cost=1.50,
)
CREATINE = Supplement(
    name="Creatine Monohydrate",
    dosage="5g",
    timing="with_meal",
    reason="Improve strength, power, and muscle growth",
    priority="beneficial",
    cost=0.25,
)
VITAMIN_D3 = Supplement(
    name="Vitamin D3",
    dosage="2000-4000 IU",
    timing="with_meal",
    reason="Support bone health, immune function, and hormone production",
    priority="essential",
    cost=0.10,
)
FISH_OIL = Supplement(
    name="Fish Oil (EPA/DHA)",
    dosage="1-2g",
    timing="with_meal",
    reason="Support heart health, brain function, and reduce inflammation",
    priority="beneficial",
    cost=0.30,
)
MAGNESIUM = Supplement(
    name="Magnesium Glycinate",
    dosage="200-400mg",
    timing="evening",
    reason="Improve sleep quality, muscle recovery, and reduce cramping",
    priority="beneficial",
    cost=0.20,
)


def recommend_supplements(profile: NutritionProfile, targets: MacroTargets) -> List[Supplement]:
    supplements = []
    if profile.goal == Goal.MUSCLE_GAIN or targets.protein_per_kg > 2.0:
        supplements.append(WHEY)
    if profile.goal in (Goal.MUSCLE_GAIN, Goal.ATHLETIC_PERFORMANCE):
        supplements.append(CREATINE)
    supplements.append(VITAMIN_D3)
    supplements.append(FISH_OIL)
    if profile.goal == Goal.ATHLETIC_PERFORMANCE or profile.activity_level == ActivityLevel.VERY_ACTIVE:
        supplements.append(MAGNESIUM)
    return supplements


# =============================================================================
# SCORES
# =============================================================================

def _relative_deviation(actual: float, target: float) -> float:
    if not target:
        return 0.0
    return abs(actual - target) / target


def calculate_adherence_score(actual: MacroTotals, targets: MacroTargets) -> float:
    """100 × (1 − mean relative deviation of calories/protein/carbs/fat), floored at 0."""
    deviations = [
        _relative_deviation(actual.calories, targets.calories),
        _relative_deviation(actual.protein, targets.protein),
        _relative_deviation(actual.carbs, targets.carbs),
        _relative_deviation(actual.fat, targets.fat),
    ]
    return max(0.0, (1 - sum(deviations) / len(deviations)) * 100)


def calculate_optimization_score(meals: Sequence[PlannedMeal], profile: NutritionProfile) -> float:
    """
    Mean of per-meal factors: density × 10, satiety × 10 and, for low
    budgets, a cost score (100 − 20 × mean serving cost). Meals without
    foods contribute nothing.
    """
    score = 0.0
    factors = 0
    for meal in meals:
        if not meal.foods:
            continue
        count = len(meal.foods)
        score += sum(f.nutrition_density for f in meal.foods) / count * 10
        score += sum(f.satiety_score for f in meal.foods) / count * 10
        factors += 2

        if profile.budget_constraint == ConstraintLevel.LOW:
            avg_cost = sum(f.cost_per_serving or 0 for f in meal.foods) / count
            score += max(0.0, 100 - avg_cost * 20)
            factors += 1

    return score / factors if factors else 0.0


# =============================================================================
# SHOPPING LIST
# =============================================================================

def build_shopping_list(meals: Sequence[PlannedMeal]) -> List[ShoppingItem]:
    """Foods aggregated by name in first-seen order."""
    items: Dict[str, ShoppingItem] = {}
    for meal in meals:
        for food, alternatives in zip(meal.foods, meal.alternatives):
            item = items.get(food.name)
            if item is None:
                item = ShoppingItem(
                    name=food.name,
                    quantity_g=0.0,
                    category=food.category or lookup_tables.food_category_for(food.name),
                    estimated_cost=0.0,
                )
                items[food.name] = item
            item.quantity_g += food.quantity
            item.estimated_cost += food.cost_per_serving or 0.0
            for alternative in alternatives:
                if alternative.name not in item.alternatives:
                    item.alternatives.append(alternative.name)
    return list(items.values())


# =============================================================================
# PLANNING
# =============================================================================

def plan_meals_for_day(
    profile: NutritionProfile,
    targets: MacroTargets,
    timing: MealTimingStrategy,
    foods: Sequence[OptimizedFood],
    catalog: Optional[FoodCatalog] = None,
    strategy: Optional[FoodAllocationStrategy] = None,
    alternatives_per_food: int = DEFAULT_ALTERNATIVES,
) -> List[PlannedMeal]:
    strategy = strategy or GreedyFoodAllocator()
    meals = []
    for slot, percentage in timing.planned_slots():
        meal_targets = scale_targets(targets, percentage)
        selection = allocate_meal(foods, meal_targets, profile, slot, strategy)
        meals.append(PlannedMeal(
            meal=slot,
            time_of_day=meal_time_for(slot, timing),
            calorie_percentage=percentage,
            target_macros=meal_targets,
            priority=meal_priority_for(slot, profile.goal),
            foods=selection,
            alternatives=find_alternatives(selection, catalog, profile, alternatives_per_food),
        ))
    return meals


def create_meal_plan(
    profile: NutritionProfile,
    targets: MacroTargets,
    timing: MealTimingStrategy,
    foods: Sequence[OptimizedFood],
    catalog: Optional[FoodCatalog] = None,
    days: int = 7,
    start: Optional[date] = None,
    strategy: Optional[FoodAllocationStrategy] = None,
    alternatives_per_food: int = DEFAULT_ALTERNATIVES,
) -> List[MealPlan]:
    """
    One MealPlan per day starting at `start` (today when omitted).

    Allocation is deterministic, so every day of a plan over the same pool
    carries the same meals; days differ only by date.
    """
    start = start or date.today()
    supplements = recommend_supplements(profile, targets)
    hydration = calculate_hydration_target(profile)

    plans = []
    for offset in range(max(days, 0)):
        meals = plan_meals_for_day(
            profile, targets, timing, foods, catalog, strategy, alternatives_per_food
        )
        all_foods = [f for meal in meals for f in meal.foods]
        totals = MacroTotals.of(all_foods)

        plans.append(MealPlan(
            date=start + timedelta(days=offset),
            total_macros=totals,
            meals=meals,
            supplement_recommendations=list(supplements),
            hydration_target=hydration,
            adherence_score=calculate_adherence_score(totals, targets),
            optimization_score=calculate_optimization_score(meals, profile),
            cost=sum(f.cost_per_serving or 0.0 for f in all_foods),
            prep_time=sum(f.prep_time or 0.0 for f in all_foods),
            shopping_list=build_shopping_list(meals),
        ))

    logger.info(f"Created {len(plans)} meal plans ({timing.strategy.value} strategy)")
    return plans
