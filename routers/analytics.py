"""
Analytics API Endpoints

Exposes the analytics engine: summaries and full reports, either over
records posted by the caller or over the stored logs of a user.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date, timedelta

from core.analytics_config import AnalyticsConfig, get_analytics_config
from core.database import get_db
from core.exceptions import NotFoundError, ValidationError
from schemas import ActivityRecordsRequest, AnalyticsReportRequest
from services.activity_repository import SqlActivityRepository, SqlFoodCatalog
from services.fitness_engine import FitnessAnalyticsService, build_report
from services.metrics_aggregator import aggregate
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.post("/summaries")
def create_summaries(payload: ActivityRecordsRequest):
    """
    Fold raw records into per-workout, per-day and weight summaries.

    Empty input yields empty lists.
    """
    summaries = aggregate(
        [w.to_record() for w in payload.workouts],
        [m.to_record() for m in payload.meals],
        [w.to_record() for w in payload.weights],
    )
    return summaries.to_dict()


@router.post("/report")
def create_report(
    payload: AnalyticsReportRequest,
    config: AnalyticsConfig = Depends(get_analytics_config),
):
    """Full analytics report over posted records (targets included when a profile is given)."""
    report = build_report(
        [w.to_record() for w in payload.workouts],
        [m.to_record() for m in payload.meals],
        [w.to_record() for w in payload.weights],
        profile=payload.profile.to_record() if payload.profile else None,
        as_of=payload.as_of,
        config=config,
    )
    return report.to_dict()


@router.get("/users/{user_id}/report")
def get_user_report(
    user_id: UUID,
    start_date: Optional[date] = Query(None, description="Defaults to end_date minus the analysis window"),
    end_date: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db),
    config: AnalyticsConfig = Depends(get_analytics_config),
):
    """Full analytics report over a user's stored logs."""
    end_date = end_date or date.today()
    start_date = start_date or end_date - timedelta(days=config.window_days - 1)
    if start_date > end_date:
        raise ValidationError("start_date must be on or before end_date", field="start_date")

    repository = SqlActivityRepository(db)
    if repository.get_profile(user_id) is None:
        raise NotFoundError("User profile", str(user_id))

    service = FitnessAnalyticsService(repository, SqlFoodCatalog(db), config)
    return service.analyze(user_id, start_date, end_date).to_dict()
