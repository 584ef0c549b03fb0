"""
Target Calculator

Derives daily calorie, macro-nutrient and hydration targets from a
NutritionProfile.

Pipeline:
    BMR (weight/height/age/sex) -> TDEE (× activity multiplier)
    -> calories (× goal adjustment) -> protein, fat, carbs, fiber, caps

Carbs are bounded twice: by a per-kg ceiling and by the calories left after
protein and fat. When the per-kg ceiling binds, macro energy falls short of
the calorie target; the calorie figure is still reported as derived.
"""

from dataclasses import dataclass, replace
from typing import Dict

from services.fitness_records import ActivityLevel, Goal, NutritionProfile, Sex, to_serializable


ACTIVITY_MULTIPLIERS: Dict[ActivityLevel, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHTLY_ACTIVE: 1.375,
    ActivityLevel.MODERATELY_ACTIVE: 1.55,
    ActivityLevel.VERY_ACTIVE: 1.725,
    ActivityLevel.EXTRA_ACTIVE: 1.9,
}

HYDRATION_MULTIPLIERS: Dict[ActivityLevel, float] = {
    ActivityLevel.SEDENTARY: 1.0,
    ActivityLevel.LIGHTLY_ACTIVE: 1.1,
    ActivityLevel.MODERATELY_ACTIVE: 1.2,
    ActivityLevel.VERY_ACTIVE: 1.4,
    ActivityLevel.EXTRA_ACTIVE: 1.6,
}

GOAL_CALORIE_ADJUSTMENTS: Dict[Goal, float] = {
    Goal.FAT_LOSS: -0.20,
    Goal.MUSCLE_GAIN: 0.10,
    Goal.MAINTENANCE: 0.0,
    Goal.ATHLETIC_PERFORMANCE: 0.05,
}

PROTEIN_PER_KG: Dict[Goal, float] = {
    Goal.FAT_LOSS: 2.2,
    Goal.MUSCLE_GAIN: 2.0,
    Goal.ATHLETIC_PERFORMANCE: 1.8,
}
DEFAULT_PROTEIN_PER_KG = 1.6

CARBS_PER_KG: Dict[Goal, float] = {
    Goal.ATHLETIC_PERFORMANCE: 6.0,
    Goal.MUSCLE_GAIN: 4.0,
}
DEFAULT_CARBS_PER_KG = 3.0

FAT_LOSS_FAT_PERCENTAGE = 25.0
DEFAULT_FAT_PERCENTAGE = 30.0

KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9

FIBER_G_PER_1000_KCAL = 14
SUGAR_MAX_CALORIE_SHARE = 0.10
SODIUM_MAX_MG = 2300

WATER_L_PER_KG = 0.035


@dataclass(frozen=True)
class MacroTargets:
    """Daily (or per-meal, after scale_targets) nutrient targets."""
    calories: float
    protein: float  # g
    carbs: float  # g
    fat: float  # g
    fiber: float  # g
    sugar_max: float  # g
    sodium_max: float  # mg
    protein_per_kg: float
    carbs_per_kg: float
    fat_percentage: float

    @property
    def macro_calories(self) -> float:
        return (
            self.protein * KCAL_PER_G_PROTEIN
            + self.carbs * KCAL_PER_G_CARBS
            + self.fat * KCAL_PER_G_FAT
        )

    def to_dict(self) -> Dict:
        return to_serializable(self)


def calculate_bmr(profile: NutritionProfile) -> float:
    """
    Basal metabolic rate (kcal/day).

    Male:      88.362 + 13.397·w + 4.799·h − 5.677·a
    Otherwise: 447.593 + 9.247·w + 3.098·h − 4.330·a
    """
    w, h, a = profile.weight_kg, profile.height_cm, profile.age
    if profile.sex == Sex.MALE:
        return 88.362 + 13.397 * w + 4.799 * h - 5.677 * a
    return 447.593 + 9.247 * w + 3.098 * h - 4.330 * a


def calculate_tdee(profile: NutritionProfile) -> float:
    multiplier = ACTIVITY_MULTIPLIERS.get(profile.activity_level, ACTIVITY_MULTIPLIERS[ActivityLevel.SEDENTARY])
    return calculate_bmr(profile) * multiplier


def calculate_macro_targets(profile: NutritionProfile) -> MacroTargets:
    """
    Daily targets for a profile. Grams and calories are rounded to integers.

    Examples:
        >>> t = calculate_macro_targets(NutritionProfile(age=30, sex=Sex.MALE, weight_kg=80,
        ...     height_cm=180, activity_level=ActivityLevel.MODERATELY_ACTIVE, goal=Goal.MUSCLE_GAIN))
        >>> t.protein
        160
    """
    calories = calculate_tdee(profile) * (1 + GOAL_CALORIE_ADJUSTMENTS.get(profile.goal, 0.0))

    protein_per_kg = PROTEIN_PER_KG.get(profile.goal, DEFAULT_PROTEIN_PER_KG)
    protein = profile.weight_kg * protein_per_kg

    fat_percentage = FAT_LOSS_FAT_PERCENTAGE if profile.goal == Goal.FAT_LOSS else DEFAULT_FAT_PERCENTAGE
    fat = calories * fat_percentage / 100 / KCAL_PER_G_FAT

    carbs_per_kg = CARBS_PER_KG.get(profile.goal, DEFAULT_CARBS_PER_KG)
    remaining = calories - protein * KCAL_PER_G_PROTEIN - fat * KCAL_PER_G_FAT
    carbs = max(0.0, min(profile.weight_kg * carbs_per_kg, remaining / KCAL_PER_G_CARBS))

    return MacroTargets(
        calories=round(calories),
        protein=round(protein),
        carbs=round(carbs),
        fat=round(fat),
        fiber=round(calories / 1000 * FIBER_G_PER_1000_KCAL),
        sugar_max=round(calories * SUGAR_MAX_CALORIE_SHARE / KCAL_PER_G_CARBS),
        sodium_max=SODIUM_MAX_MG,
        protein_per_kg=protein_per_kg,
        carbs_per_kg=carbs_per_kg,
        fat_percentage=fat_percentage,
    )


def calculate_hydration_target(profile: NutritionProfile) -> float:
    """Daily water target in liters, one decimal."""
    multiplier = HYDRATION_MULTIPLIERS.get(profile.activity_level, 1.0)
    return round(profile.weight_kg * WATER_L_PER_KG * multiplier, 1)


def scale_targets(targets: MacroTargets, percentage: float) -> MacroTargets:
    """Share of the daily targets for one meal (`percentage` of 100)."""
    factor = percentage / 100
    return replace(
        targets,
        calories=round(targets.calories * factor, 1),
        protein=round(targets.protein * factor, 1),
        carbs=round(targets.carbs * factor, 1),
        fat=round(targets.fat * factor, 1),
        fiber=round(targets.fiber * factor, 1),
        sugar_max=round(targets.sugar_max * factor, 1),
        sodium_max=round(targets.sodium_max * factor, 1),
    )
