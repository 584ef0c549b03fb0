"""
Nutrition Planning API Endpoints

Targets, meal timing, meal plans and nutrition insights for a caller-supplied
profile. Meal plans use the posted foods, or the stored food catalog when
none are posted.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.analytics_config import AnalyticsConfig, get_analytics_config
from core.database import get_db
from schemas import MealPlanRequest, MealTimingRequest, NutritionInsightsRequest, TargetsRequest
from services.activity_repository import SqlFoodCatalog
from services.fitness_engine import plan_nutrition
from services.food_allocator import InMemoryFoodCatalog
from services.insight_engine import generate_nutrition_insights
from services.meal_timing import generate_meal_timing
from services.metrics_aggregator import aggregate_nutrition
from services.target_calculator import (
    calculate_bmr,
    calculate_hydration_target,
    calculate_macro_targets,
    calculate_tdee,
)

router = APIRouter(prefix="/v1/nutrition", tags=["nutrition"])


@router.post("/targets")
def create_targets(payload: TargetsRequest):
    profile = payload.profile.to_record()
    targets = calculate_macro_targets(profile)
    return {
        "bmr": round(calculate_bmr(profile), 1),
        "tdee": round(calculate_tdee(profile), 1),
        "targets": targets.to_dict(),
        "hydration_target_l": calculate_hydration_target(profile),
    }


@router.post("/meal-timing")
def create_meal_timing(payload: MealTimingRequest):
    timing = generate_meal_timing(payload.profile.to_record(), payload.workout_times)
    return timing.to_dict()


@router.post("/meal-plan")
def create_meal_plan(
    payload: MealPlanRequest,
    db: Session = Depends(get_db),
    config: AnalyticsConfig = Depends(get_analytics_config),
):
    """
    Daily meal plans for a profile.

    Alternatives come from the same pool the plan is drawn from.
    """
    if payload.foods is not None:
        catalog = InMemoryFoodCatalog([f.to_record() for f in payload.foods])
    else:
        catalog = SqlFoodCatalog(db)

    result = plan_nutrition(
        payload.profile.to_record(),
        catalog.list_foods(),
        catalog=catalog,
        workout_times=payload.workout_times,
        days=payload.days,
        start=payload.start_date,
        config=config,
    )
    return result.to_dict()


@router.post("/insights")
def create_nutrition_insights(payload: NutritionInsightsRequest):
    profile = payload.profile.to_record()
    summaries = aggregate_nutrition([m.to_record() for m in payload.meals])
    insights = generate_nutrition_insights(profile, summaries, calculate_macro_targets(profile))
    return [insight.to_dict() for insight in insights]
