"""
Tests for the Food Allocator
"""
import pytest
import random

from food_helpers import make_food
from services.fitness_records import NutritionProfile, Sex
from services.food_allocator import (
    FoodAllocationStrategy,
    GreedyFoodAllocator,
    InMemoryFoodCatalog,
    allocate_meal,
    category_of,
    exclude_restricted_foods,
    filter_foods_for_meal,
    find_alternatives,
    fit_within,
    scale_food,
    similarity_distance,
)
from services.target_calculator import MacroTargets


def targets(calories, protein, carbs, fat):
    return MacroTargets(
        calories=calories, protein=protein, carbs=carbs, fat=fat,
        fiber=0, sugar_max=0, sodium_max=0,
        protein_per_kg=1.6, carbs_per_kg=3.0, fat_percentage=30.0,
    )


def profile(restrictions=(), allergies=()):
    return NutritionProfile(
        age=30, sex=Sex.MALE, weight_kg=80, height_cm=180,
        dietary_restrictions=list(restrictions), allergies=list(allergies),
    )


def names(foods):
    return [f.name for f in foods]


class TestGreedyAllocation:

    def test_ranked_selection_and_partial_serving(self):
        """Best-ranked foods first; the last one gets a partial serving"""
        foods = [
            make_food("w", "Whey Protein", 120, 24, 3, 1.5, density=6, satiety=4),
            make_food("c", "Chicken Breast", 165, 31, 0, 3.6, density=9, satiety=9),
            make_food("r", "White Rice", 130, 2.7, 28, 0.3, density=7, satiety=6),
        ]
        selected = GreedyFoodAllocator().allocate(foods, targets(500, 40, 60, 20))

        assert names(selected) == ["Chicken Breast", "White Rice", "Whey Protein"]
        assert selected[0].serving_fraction == 1.0
        assert selected[1].serving_fraction == 1.0
        # protein left after chicken and rice: 40 - 31 - 2.7
        assert selected[2].serving_fraction == pytest.approx(6.3 / 24)
        assert selected[2].protein == pytest.approx(6.3)

    def test_tiny_fraction_is_skipped(self):
        """Foods usable at under 0.1 of a serving are skipped"""
        foods = [
            make_food("c", "Chicken Breast", 165, 31, 0, 3.6, density=9, satiety=9),
            make_food("w", "Whey Protein", 120, 24, 3, 1.5, density=8, satiety=8),
            make_food("r", "White Rice", 130, 2.7, 28, 0.3, density=5, satiety=5),
        ]
        selected = GreedyFoodAllocator().allocate(foods, targets(400, 32, 40, 10))

        # 1 g protein left after chicken: whey fits 1/24 of a serving, rice 1/2.7
        assert names(selected) == ["Chicken Breast", "White Rice"]
        assert selected[1].serving_fraction == pytest.approx(1 / 2.7)

    def test_stops_when_calories_spent(self):
        """Allocation stops once calories are spent"""
        foods = [
            make_food("a", "Rolled Oats", 150, 5, 27, 3, density=9, satiety=9),
            make_food("b", "Banana", 105, 1.3, 27, 0.4, density=1, satiety=1),
        ]
        selected = GreedyFoodAllocator().allocate(foods, targets(150, 50, 100, 50))
        assert names(selected) == ["Rolled Oats"]

    def test_empty_pool(self):
        """Empty pool allocates nothing"""
        assert GreedyFoodAllocator().allocate([], targets(500, 40, 60, 20)) == []

    @pytest.mark.parametrize("calories,protein,carbs,fat", [
        (800, 60, 90, 25),
        (300, 20, 30, 10),
        (1200, 100, 120, 40),
        (100, 5, 5, 5),
    ])
    def test_never_exceeds_targets(self, food_pool, calories, protein, carbs, fat):
        """Summed macros never exceed the meal targets"""
        selected = GreedyFoodAllocator().allocate(food_pool, targets(calories, protein, carbs, fat))

        assert sum(f.calories for f in selected) <= calories
        assert sum(f.protein for f in selected) <= protein
        assert sum(f.carbs for f in selected) <= carbs
        assert sum(f.fat for f in selected) <= fat
        assert all(0.1 <= f.serving_fraction <= 1.0 for f in selected)

    @pytest.mark.parametrize("seed", range(25))
    def test_rounding_never_exceeds_targets(self, seed):
        """Float rounding in scaling must not push any total past its target"""
        rng = random.Random(seed)
        pool = [
            make_food(str(i), f"Food {i}", rng.uniform(50, 400), rng.uniform(0, 40),
                      rng.uniform(0, 60), rng.uniform(0, 20),
                      density=rng.uniform(1, 10), satiety=rng.uniform(1, 10))
            for i in range(12)
        ]
        meal = targets(rng.uniform(200, 900) / 3, rng.uniform(10, 60) / 3,
                       rng.uniform(20, 90) / 3, rng.uniform(5, 30) / 3)

        selected = GreedyFoodAllocator().allocate(pool, meal)

        assert sum(f.calories for f in selected) <= meal.calories
        assert sum(f.protein for f in selected) <= meal.protein
        assert sum(f.carbs for f in selected) <= meal.carbs
        assert sum(f.fat for f in selected) <= meal.fat

    def test_fit_within_trims_last_ulp(self):
        """0.1 + 0.2 overshoots 0.3 in floating point; the amount is trimmed"""
        amount = fit_within(0.1, 0.2, 0.3)
        assert amount < 0.2
        assert 0.1 + amount <= 0.3
        assert amount == pytest.approx(0.2)

    def test_fit_within_exact_and_exhausted(self):
        """Amounts that fit pass through; exhausted budgets give zero"""
        assert fit_within(0.0, 5.0, 10.0) == 5.0
        assert fit_within(8.0, 5.0, 10.0) == 2.0
        assert fit_within(10.0, 5.0, 10.0) == 0.0

    def test_deterministic(self, food_pool):
        """Same pool and targets give the same selection"""
        meal_targets = targets(700, 50, 80, 20)
        first = GreedyFoodAllocator().allocate(food_pool, meal_targets)
        second = GreedyFoodAllocator().allocate(list(food_pool), meal_targets)
        assert first == second

    def test_strategy_is_pluggable(self, food_pool):
        """A custom strategy replaces the greedy default"""
        class FirstFoodOnly(FoodAllocationStrategy):
            def allocate(self, foods, targets):
                return [scale_food(foods[0], 0.5)]

        selected = allocate_meal(food_pool, targets(500, 40, 60, 20), strategy=FirstFoodOnly())
        assert names(selected) == ["Chicken Breast"]
        assert selected[0].serving_fraction == 0.5


class TestScaleFood:

    def test_scales_everything(self):
        """Quantity, macros, fiber and cost all scale"""
        food = make_food("c", "Chicken Breast", 165, 31, 0, 3.6, cost=2.0, fiber=1.0)
        half = scale_food(food, 0.5)

        assert half.quantity == 50
        assert half.calories == pytest.approx(82.5)
        assert half.cost_per_serving == 1.0
        assert half.fiber == 0.5
        assert food.calories == 165  # input untouched

    def test_missing_cost_stays_missing(self):
        """Missing cost stays missing after scaling"""
        assert scale_food(make_food("b", "Banana", 105, 1.3, 27, 0.4), 0.5).cost_per_serving is None


class TestFiltering:

    def test_vegetarian_excludes_meat_and_fish(self, food_pool):
        """Vegetarian excludes meat and fish"""
        allowed = names(exclude_restricted_foods(food_pool, profile(restrictions=["vegetarian"])))
        assert "Chicken Breast" not in allowed
        assert "Turkey Breast" not in allowed
        assert "Salmon Fillet" not in allowed
        assert "Greek Yogurt" in allowed

    def test_vegan_excludes_dairy_and_eggs(self, food_pool):
        """Vegan excludes dairy and eggs too"""
        allowed = names(exclude_restricted_foods(food_pool, profile(restrictions=["Vegan"])))
        assert set(allowed) == {"Brown Rice", "Rolled Oats", "Banana", "White Rice"}

    def test_allergy_is_a_name_keyword(self, food_pool):
        """Allergies exclude foods by name keyword"""
        allowed = names(exclude_restricted_foods(food_pool, profile(allergies=["Egg"])))
        assert "Whole Eggs" not in allowed
        assert len(allowed) == len(food_pool) - 1

    def test_unknown_restriction_excludes_nothing(self, food_pool):
        """Unknown restrictions exclude nothing"""
        assert len(exclude_restricted_foods(food_pool, profile(restrictions=["keto"]))) == len(food_pool)

    def test_no_profile(self, food_pool):
        """No profile means no exclusions"""
        assert exclude_restricted_foods(food_pool, None) == food_pool

    def test_breakfast_keywords(self, food_pool):
        """Breakfast keeps breakfast foods only"""
        breakfast = names(filter_foods_for_meal(food_pool, "breakfast"))
        assert set(breakfast) == {"Rolled Oats", "Greek Yogurt", "Whole Eggs", "Banana"}

    def test_slot_without_keywords_takes_everything(self, food_pool):
        """Slots without keywords keep the whole pool"""
        assert len(filter_foods_for_meal(food_pool, "dinner")) == len(food_pool)

    def test_no_match_falls_back_to_pool(self):
        """No keyword match falls back to the full pool"""
        pool = [make_food("s", "Salmon Fillet", 208, 20, 0, 13)]
        assert names(filter_foods_for_meal(pool, "breakfast")) == ["Salmon Fillet"]

    def test_restricted_food_never_allocated(self, food_pool):
        """Restricted foods are never allocated"""
        selected = allocate_meal(food_pool, targets(900, 70, 90, 30), profile(restrictions=["vegetarian"]), "dinner")
        assert selected
        assert not any(category_of(f) in ("Meat & Poultry", "Seafood") for f in selected)


class TestAlternatives:

    def test_category_from_lookup(self, food_pool):
        """Category comes from the food category table"""
        assert category_of(food_pool[0]) == "Meat & Poultry"
        assert category_of(make_food("x", "Mystery Bar", 200, 10, 20, 8)) == "Other"
        assert category_of(make_food("x", "Mystery Bar", 200, 10, 20, 8, category="Snacks")) == "Snacks"

    def test_similarity_distance(self, food_pool):
        """Similar macro splits are close; different ones are far"""
        chicken, turkey = food_pool[0], food_pool[7]
        assert similarity_distance(chicken, chicken) == 0
        assert similarity_distance(chicken, turkey) == pytest.approx(0.212, abs=0.005)

    def test_similar_foods_ranked_by_distance(self, food_pool):
        """Similar foods are ranked by macro distance"""
        catalog = InMemoryFoodCatalog(food_pool)
        brown_rice = food_pool[1]
        assert names(catalog.find_similar(brown_rice)) == ["White Rice", "Rolled Oats"]

    def test_similar_excludes_other_categories(self, food_pool):
        """Foods from other categories are never similar"""
        catalog = InMemoryFoodCatalog(food_pool)
        assert names(catalog.find_similar(food_pool[0])) == ["Turkey Breast"]

    def test_alternatives_respect_exclusions(self, food_pool):
        """Alternatives skip excluded foods"""
        catalog = InMemoryFoodCatalog(food_pool)
        alternatives = find_alternatives([food_pool[1]], catalog, profile(allergies=["white"]))
        assert names(alternatives[0]) == ["Rolled Oats"]

    def test_alternatives_limit(self, food_pool):
        """At most the requested number of alternatives"""
        catalog = InMemoryFoodCatalog(food_pool)
        alternatives = find_alternatives([food_pool[1]], catalog, limit=1)
        assert names(alternatives[0]) == ["White Rice"]

    def test_no_catalog(self, food_pool):
        """No catalog means no alternatives"""
        assert find_alternatives(food_pool[:2], None) == [[], []]
