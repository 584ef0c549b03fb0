"""
Meal Timing Planner

Chooses a meal timing strategy for a profile: named meal slots, the share
of daily calories each slot receives, an optional eating window and the
macro splits around training.

This is a lookup/override table, not a search:
- standard: 4 meals (25/35/30/10)
- fat_loss -> intermittent_fasting, 12:00-20:00 window, breakfast skipped
- athletic_performance -> athlete, 5 meals with pre/post-workout slots
- time_constraint=high -> 3 larger meals (30/40/30)
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from services.fitness_records import ConstraintLevel, Goal, NutritionProfile, to_serializable


class TimingStrategyName(str, Enum):
    STANDARD = "standard"
    INTERMITTENT_FASTING = "intermittent_fasting"
    ATHLETE = "athlete"
    SHIFT_WORKER = "shift_worker"


class MealPriority(str, Enum):
    PROTEIN = "protein"
    CARBS = "carbs"
    FAT = "fat"
    BALANCED = "balanced"


@dataclass(frozen=True)
class MacroSplit:
    """Grams of each macro aimed at around a training session."""
    carbs: float
    protein: float
    fat: float


@dataclass(frozen=True)
class EatingWindow:
    start: str  # HH:MM
    end: str  # HH:MM


@dataclass(frozen=True)
class MealTimingStrategy:
    strategy: TimingStrategyName
    meal_slots: Tuple[str, ...]
    meal_distribution: Tuple[float, ...]  # % of daily calories, parallel to meal_slots
    preworkout_macros: MacroSplit
    postworkout_macros: MacroSplit
    preworkout_hours: float = 2
    postworkout_hours: float = 1
    eating_window: Optional[EatingWindow] = None
    workout_times: Tuple[str, ...] = field(default_factory=tuple)

    def planned_slots(self) -> List[Tuple[str, float]]:
        """(slot, percentage) pairs that actually receive calories."""
        return [
            (slot, pct) for slot, pct in zip(self.meal_slots, self.meal_distribution) if pct > 0
        ]

    def to_dict(self) -> Dict:
        return to_serializable(self)


STANDARD_SLOTS = ("breakfast", "lunch", "dinner", "snack1")
ATHLETE_SLOTS = ("breakfast", "lunch", "dinner", "preworkout", "postworkout")
THREE_MEAL_SLOTS = ("breakfast", "lunch", "dinner")
FASTING_THREE_MEAL_SLOTS = ("lunch", "snack1", "dinner")

DEFAULT_MEAL_TIMES: Dict[str, str] = {
    "breakfast": "07:00",
    "lunch": "12:00",
    "dinner": "18:00",
    "snack1": "15:00",
    "snack2": "10:00",
    "preworkout": "16:00",
    "postworkout": "19:00",
}
FALLBACK_MEAL_TIME = "12:00"
WINDOWED_LUNCH_TIME = "13:00"


def generate_meal_timing(
    profile: NutritionProfile,
    workout_times: Optional[Sequence[str]] = None,
) -> MealTimingStrategy:
    """Strategy for a profile; goal first, then the time constraint."""
    timing = MealTimingStrategy(
        strategy=TimingStrategyName.STANDARD,
        meal_slots=STANDARD_SLOTS,
        meal_distribution=(25, 35, 30, 10),
        preworkout_macros=MacroSplit(carbs=30, protein=20, fat=10),
        postworkout_macros=MacroSplit(carbs=40, protein=30, fat=5),
        workout_times=tuple(workout_times or ()),
    )

    if profile.goal == Goal.FAT_LOSS:
        timing = replace(
            timing,
            strategy=TimingStrategyName.INTERMITTENT_FASTING,
            eating_window=EatingWindow(start="12:00", end="20:00"),
            meal_distribution=(0, 40, 45, 15),
        )
    elif profile.goal == Goal.ATHLETIC_PERFORMANCE:
        timing = replace(
            timing,
            strategy=TimingStrategyName.ATHLETE,
            meal_slots=ATHLETE_SLOTS,
            meal_distribution=(20, 25, 25, 15, 15),
            preworkout_macros=MacroSplit(carbs=40, protein=15, fat=5),
            postworkout_macros=MacroSplit(carbs=50, protein=25, fat=5),
        )

    if profile.time_constraint == ConstraintLevel.HIGH:
        slots = FASTING_THREE_MEAL_SLOTS if timing.eating_window else THREE_MEAL_SLOTS
        timing = replace(timing, meal_slots=slots, meal_distribution=(30, 40, 30))

    return timing


def _shift(clock: str, hours: float) -> str:
    moment = datetime.strptime(clock, "%H:%M") + timedelta(hours=hours)
    return moment.strftime("%H:%M")


def meal_time_for(meal_slot: str, timing: MealTimingStrategy) -> str:
    """HH:MM for a slot, honoring workout times and the eating window."""
    if timing.workout_times and meal_slot in ("preworkout", "postworkout"):
        first_workout = sorted(timing.workout_times)[0]
        if meal_slot == "preworkout":
            return _shift(first_workout, -timing.preworkout_hours)
        return _shift(first_workout, timing.postworkout_hours)

    if timing.eating_window and meal_slot in ("breakfast", "lunch"):
        return timing.eating_window.start if meal_slot == "breakfast" else WINDOWED_LUNCH_TIME

    return DEFAULT_MEAL_TIMES.get(meal_slot, FALLBACK_MEAL_TIME)


def meal_priority_for(meal_slot: str, goal: Goal) -> MealPriority:
    if meal_slot == "postworkout":
        return MealPriority.PROTEIN
    if meal_slot == "preworkout":
        return MealPriority.CARBS
    if goal == Goal.MUSCLE_GAIN:
        return MealPriority.PROTEIN
    return MealPriority.BALANCED
