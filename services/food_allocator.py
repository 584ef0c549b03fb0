"""
Food Allocator

Selects and scales catalog foods to approximate one meal's macro targets
without exceeding any of calories, protein, carbs or fat.

Pipeline per meal:
1. Exclude foods that violate dietary restrictions or allergies
2. Keep foods whose name matches the meal slot's keywords (all foods when
   nothing matches)
3. Allocate with a FoodAllocationStrategy (greedy by default)
4. Look up alternatives for each selected food from a FoodCatalog

The greedy allocator is a deterministic, order-sensitive heuristic, not an
optimizer: a better-ranked food can consume budget that would have fit two
lower-ranked foods more closely. An LP or knapsack solver can replace it
behind FoodAllocationStrategy.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional, Sequence
import logging
import math

from services import lookup_tables
from services.fitness_records import NutritionProfile, OptimizedFood
from services.target_calculator import MacroTargets

logger = logging.getLogger(__name__)

MIN_SERVING_FRACTION = 0.1
DEFAULT_ALTERNATIVES = 3
MAX_SIMILARITY_DISTANCE = 0.3
MACRO_KEYS = ("calories", "protein", "carbs", "fat")


# =============================================================================
# FILTERS
# =============================================================================

def category_of(food: OptimizedFood) -> str:
    return food.category or lookup_tables.food_category_for(food.name)


def exclusions_for(profile: Optional[NutritionProfile]) -> Dict[str, set]:
    """Keywords and categories excluded by a profile's restrictions and allergies."""
    keywords: set = set()
    categories: set = set()
    if profile is None:
        return {"keywords": keywords, "categories": categories}

    for restriction in profile.dietary_restrictions or []:
        exclusion = lookup_tables.dietary_exclusion_for(restriction)
        keywords.update(k.lower() for k in exclusion["keywords"])
        categories.update(exclusion["categories"])
    for allergy in profile.allergies or []:
        if allergy and allergy.strip():
            keywords.add(allergy.strip().lower())

    return {"keywords": keywords, "categories": categories}


def exclude_restricted_foods(
    foods: Sequence[OptimizedFood],
    profile: Optional[NutritionProfile],
) -> List[OptimizedFood]:
    excluded = exclusions_for(profile)
    if not excluded["keywords"] and not excluded["categories"]:
        return list(foods)

    allowed = []
    for food in foods:
        name = food.name.lower()
        if any(keyword in name for keyword in excluded["keywords"]):
            continue
        if category_of(food) in excluded["categories"]:
            continue
        allowed.append(food)

    logger.debug(f"Dietary exclusions removed {len(foods) - len(allowed)} of {len(foods)} foods")
    return allowed


def filter_foods_for_meal(foods: Sequence[OptimizedFood], meal_slot: Optional[str]) -> List[OptimizedFood]:
    """Foods matching the slot's keywords; the full pool when none match."""
    keywords = lookup_tables.meal_keywords_for(meal_slot) if meal_slot else []
    if not keywords:
        return list(foods)

    matched = [f for f in foods if any(k in f.name.lower() for k in keywords)]
    if not matched:
        logger.debug(f"No foods matched meal slot {meal_slot}, using full candidate pool")
        return list(foods)
    return matched


# =============================================================================
# ALLOCATION
# =============================================================================

def scale_food(food: OptimizedFood, fraction: float) -> OptimizedFood:
    """A copy of `food` at `fraction` of one serving."""
    return replace(
        food,
        quantity=food.quantity * fraction,
        calories=food.calories * fraction,
        protein=food.protein * fraction,
        carbs=food.carbs * fraction,
        fat=food.fat * fraction,
        fiber=food.fiber * fraction,
        micronutrients={k: v * fraction for k, v in food.micronutrients.items()},
        cost_per_serving=(
            food.cost_per_serving * fraction if food.cost_per_serving is not None else None
        ),
        serving_fraction=fraction,
    )


def fit_within(allocated: float, amount: float, budget: float) -> float:
    """Largest value <= `amount` that keeps `allocated + value` within `budget`."""
    amount = min(amount, max(budget - allocated, 0.0))
    # scaling and subtraction can each round one ulp high
    while amount > 0 and allocated + amount > budget:
        amount = math.nextafter(amount, 0.0)
    return amount


class FoodAllocationStrategy(ABC):
    """Chooses foods (and servings) for one meal's targets."""

    @abstractmethod
    def allocate(self, foods: Sequence[OptimizedFood], targets: MacroTargets) -> List[OptimizedFood]:
        """
        Return scaled foods whose summed calories/protein/carbs/fat never
        exceed `targets`. Must be deterministic for the same inputs.
        """
        pass


class GreedyFoodAllocator(FoodAllocationStrategy):
    """
    Single pass over foods ranked by (nutrition density + satiety) / 2.

    Each food is scaled to the largest fraction of one serving (at most 1)
    that fits every remaining budget; fractions below `min_serving_fraction`
    drop the food.
    """

    def __init__(self, min_serving_fraction: float = MIN_SERVING_FRACTION):
        self.min_serving_fraction = min_serving_fraction

    def usable_fraction(self, food: OptimizedFood, remaining: Dict[str, float]) -> float:
        ratios = [1.0]
        for key in MACRO_KEYS:
            amount = getattr(food, key)
            if amount and amount > 0:
                ratios.append(remaining[key] / amount)
        return min(ratios)

    def allocate(self, foods: Sequence[OptimizedFood], targets: MacroTargets) -> List[OptimizedFood]:
        budget = {key: getattr(targets, key) for key in MACRO_KEYS}
        allocated = {key: 0.0 for key in MACRO_KEYS}
        ranked = sorted(foods, key=lambda f: f.quality_score, reverse=True)

        selected: List[OptimizedFood] = []
        for food in ranked:
            remaining = {key: budget[key] - allocated[key] for key in MACRO_KEYS}
            if remaining["calories"] <= 0:
                break

            fraction = self.usable_fraction(food, remaining)
            if fraction < self.min_serving_fraction:
                continue

            portion = scale_food(food, fraction)
            portion = replace(portion, **{
                key: fit_within(allocated[key], getattr(portion, key), budget[key])
                for key in MACRO_KEYS
            })
            selected.append(portion)
            for key in MACRO_KEYS:
                allocated[key] += getattr(portion, key)

        logger.debug(
            f"Allocated {len(selected)} of {len(ranked)} foods, "
            f"{budget['calories'] - allocated['calories']:.0f} kcal left unallocated"
        )
        return selected


def allocate_meal(
    foods: Sequence[OptimizedFood],
    targets: MacroTargets,
    profile: Optional[NutritionProfile] = None,
    meal_slot: Optional[str] = None,
    strategy: Optional[FoodAllocationStrategy] = None,
) -> List[OptimizedFood]:
    """Exclude, filter for the slot, then allocate."""
    strategy = strategy or GreedyFoodAllocator()
    candidates = filter_foods_for_meal(exclude_restricted_foods(foods, profile), meal_slot)
    return strategy.allocate(candidates, targets)


# =============================================================================
# CATALOG
# =============================================================================

def macro_energy_shares(food: OptimizedFood) -> Dict[str, float]:
    """Fraction of macro energy from protein, carbs and fat."""
    energy = {"protein": food.protein * 4, "carbs": food.carbs * 4, "fat": food.fat * 9}
    total = sum(energy.values())
    if total <= 0:
        return {k: 0.0 for k in energy}
    return {k: v / total for k, v in energy.items()}


def similarity_distance(a: OptimizedFood, b: OptimizedFood) -> float:
    shares_a = macro_energy_shares(a)
    shares_b = macro_energy_shares(b)
    return sum(abs(shares_a[k] - shares_b[k]) for k in shares_a)


class FoodCatalog(ABC):
    """Source of candidate foods (one full serving each)."""

    @abstractmethod
    def list_foods(self) -> List[OptimizedFood]:
        pass

    @abstractmethod
    def find_similar(self, food: OptimizedFood, limit: int = DEFAULT_ALTERNATIVES) -> List[OptimizedFood]:
        """Foods that could replace `food`, best match first."""
        pass


class InMemoryFoodCatalog(FoodCatalog):
    """
    Catalog over a fixed list of foods.

    Similar = same category and a macro-energy split within 0.3 (sum of
    absolute share differences), ranked by distance then quality.
    """

    def __init__(self, foods: Sequence[OptimizedFood]):
        self._foods = list(foods)

    def list_foods(self) -> List[OptimizedFood]:
        return list(self._foods)

    def find_similar(self, food: OptimizedFood, limit: int = DEFAULT_ALTERNATIVES) -> List[OptimizedFood]:
        return rank_similar(food, self._foods, limit)


def rank_similar(food: OptimizedFood, pool: Sequence[OptimizedFood], limit: int) -> List[OptimizedFood]:
    category = category_of(food)
    scored = []
    for candidate in pool:
        if candidate.food_id == food.food_id or category_of(candidate) != category:
            continue
        distance = similarity_distance(food, candidate)
        if distance <= MAX_SIMILARITY_DISTANCE:
            scored.append((distance, -candidate.quality_score, candidate))
    scored.sort(key=lambda item: (item[0], item[1]))
    return [candidate for _, _, candidate in scored[:limit]]


def find_alternatives(
    selection: Sequence[OptimizedFood],
    catalog: Optional[FoodCatalog],
    profile: Optional[NutritionProfile] = None,
    limit: int = DEFAULT_ALTERNATIVES,
) -> List[List[OptimizedFood]]:
    """Up to `limit` allowed alternatives per selected food, parallel to `selection`."""
    if catalog is None:
        return [[] for _ in selection]
    alternatives = []
    for food in selection:
        similar = exclude_restricted_foods(catalog.find_similar(food, limit * 3), profile)
        alternatives.append(similar[:limit])
    return alternatives
