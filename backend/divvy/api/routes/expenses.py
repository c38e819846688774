"""
Expense listing routes.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from divvy.api.dependencies import get_current_user, get_dashboard
from divvy.api.routes.budget import parse_month
from divvy.core.utils import format_currency_amount
from divvy.db.session import get_db
from divvy.models.group import GroupMember
from divvy.models.user import User
from divvy.schemas.expense import ExpenseItem, ExpenseListResponse, MonthOption, RecurringResult
from divvy.services.dashboard_service import DashboardSession
from divvy.services.recurring_service import process_recurring_expenses
from divvy.services.window_service import TimePeriod, matches_filters, resolve_window

router = APIRouter(prefix="/expenses", tags=["expenses"])


def check_group_access(group_id: int, user_id: int, db: Session) -> GroupMember:
    """Check if user belongs to the group."""
    membership = db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    ).first()
    
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this group"
        )
    
    return membership


@router.get("", response_model=ExpenseListResponse)
async def list_expenses(
    period: TimePeriod = TimePeriod.CURRENT,
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    category: Optional[str] = Query(None, description="Only this category"),
    search: Optional[str] = Query(None, description="Text to look for in description, category or amount"),
    dashboard: DashboardSession = Depends(get_dashboard)
):
    """Expenses the user took part in for a month, newest first, with their share."""
    explicit = parse_month(year, month)
    window = resolve_window(period, dashboard.today(), explicit)
    
    items = []
    for item in dashboard.window_expenses(period, explicit):
        expense = item.expense
        if not matches_filters(expense, category, search):
            continue
        items.append(ExpenseItem(
            id=expense.id,
            date=expense.date,
            description=expense.description,
            category=expense.category,
            icon=expense.icon,
            payer_id=expense.payer_id,
            participants=list(expense.participants),
            amount=expense.amount,
            currency=expense.currency,
            normalized_amount=item.normalized_amount,
            display_currency=item.display_currency,
            rule=item.rule.value,
            share=item.share,
            share_display=format_currency_amount(item.share, item.display_currency),
            created_at=expense.created_at
        ))
    
    return ExpenseListResponse(
        period=period.value,
        year=window.year if window else None,
        month=window.month if window else None,
        display_currency=dashboard.display_currency,
        expenses=items
    )


@router.get("/months", response_model=List[MonthOption])
async def list_months(dashboard: DashboardSession = Depends(get_dashboard)):
    """Months that can be selected, current month first."""
    months = dashboard.available_months()
    return [
        MonthOption(year=m.year, month=m.month, label=m.label, is_current=index == 0)
        for index, m in enumerate(months)
    ]


@router.post("/recurring/{group_id}", response_model=RecurringResult)
async def run_recurring_expenses(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create this month's copies of the group's recurring expenses."""
    check_group_access(group_id, current_user.id, db)
    return process_recurring_expenses(group_id, db)
