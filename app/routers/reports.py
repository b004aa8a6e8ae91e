import logging
from datetime import date
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.dependencies import get_report_builder
from app.db.base import StoreError
from app.models.report import InsightsResponse, Report
from app.utils.reports import ReportBuilder

router = APIRouter()
logger = logging.getLogger(__name__)


def current_period(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
) -> Tuple[int, int]:
    """Resolve the requested period, defaulting each part to today."""
    today = date.today()
    return year or today.year, month or today.month


@router.get("/report", response_model=Report)
def generate_report(
    period: Tuple[int, int] = Depends(current_period),
    builder: ReportBuilder = Depends(get_report_builder),
):
    """
    Current-month expenses with category and monthly totals, plus the
    over-budget flag. Pass ``year`` and ``month`` to report another month.
    """
    year, month = period
    try:
        return builder.build_report(year, month)
    except StoreError as e:
        logger.error(f"Failed to generate report for {year}-{month:02d}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate report")


@router.get("/ai-insights", response_model=InsightsResponse)
def generate_insights(
    period: Tuple[int, int] = Depends(current_period),
    builder: ReportBuilder = Depends(get_report_builder),
):
    year, month = period
    try:
        return InsightsResponse(insights=builder.build_insights(year, month))
    except StoreError as e:
        logger.error(f"Failed to generate insights for {year}-{month:02d}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate insights")
