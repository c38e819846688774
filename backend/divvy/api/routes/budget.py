"""
Budget routes: summary of the chosen month and the monthly budget limit.
"""
import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from divvy.api.dependencies import get_dashboard, get_rate_source
from divvy.schemas.budget import (
    BudgetResponse, BudgetSummaryResponse, BudgetUpdate, CategoryItem, MonthlyPointItem
)
from divvy.services.dashboard_service import DashboardSession
from divvy.services.fx_service import DatabaseRateSource, refresh_rates_quietly
from divvy.services.snapshot import YearMonth
from divvy.services.window_service import TimePeriod, resolve_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/budget", tags=["budget"])


def parse_month(year: Optional[int], month: Optional[int]) -> Optional[YearMonth]:
    """Build the explicitly chosen month from query parameters."""
    if year is None and month is None:
        return None
    if year is None or month is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="year and month must be given together"
        )
    try:
        return YearMonth(year, month)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


async def schedule_refresh_if_stale(background_tasks: BackgroundTasks, rate_source: DatabaseRateSource) -> None:
    """Queue a rate refresh after the response when the cached table is old."""
    try:
        stale = await asyncio.to_thread(rate_source.is_stale)
    except Exception as e:
        logger.error(f"Could not check exchange rate freshness: {e}", exc_info=True)
        return
    if stale:
        background_tasks.add_task(refresh_rates_quietly, rate_source)


@router.get("/summary", response_model=BudgetSummaryResponse)
async def get_budget_summary(
    background_tasks: BackgroundTasks,
    period: TimePeriod = TimePeriod.CURRENT,
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    dashboard: DashboardSession = Depends(get_dashboard),
    rate_source: DatabaseRateSource = Depends(get_rate_source)
):
    """Spending against the monthly budget for the current or a chosen month."""
    explicit = parse_month(year, month)
    window = resolve_window(period, dashboard.today(), explicit)
    summary = dashboard.summary(period, explicit)
    await schedule_refresh_if_stale(background_tasks, rate_source)
    
    return BudgetSummaryResponse(
        period=period.value,
        year=window.year if window else None,
        month=window.month if window else None,
        display_currency=dashboard.display_currency,
        budget_limit=summary.budget_limit,
        total_spent=summary.total_spent,
        remaining=summary.remaining,
        percentage_used=summary.percentage_used,
        percentage_remaining=summary.percentage_remaining,
        expense_count=summary.expense_count,
        categories=[CategoryItem.model_validate(c) for c in summary.categories],
        monthly_series=[MonthlyPointItem.model_validate(p) for p in summary.monthly_series]
    )


@router.get("", response_model=BudgetResponse)
async def get_budget(dashboard: DashboardSession = Depends(get_dashboard)):
    """Get the current monthly budget limit."""
    return BudgetResponse(
        user_id=dashboard.user_id,
        monthly_budget=dashboard.budget_limit,
        currency=dashboard.display_currency
    )


@router.put("", response_model=BudgetResponse)
async def update_budget(
    budget_data: BudgetUpdate,
    dashboard: DashboardSession = Depends(get_dashboard)
):
    """
    Set the monthly budget limit.
    Each request commits through its own editor, so concurrent requests are
    not serialised here; the last write to the users table wins.
    """
    controller = dashboard.budget
    saved = await controller.commit(budget_data.monthly_budget)
    
    if not saved:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=controller.last_error
        )
    
    return BudgetResponse(
        user_id=dashboard.user_id,
        monthly_budget=controller.value,
        currency=dashboard.display_currency
    )
