"""
Pydantic schemas for budget views.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class BudgetUpdate(BaseModel):
    """Schema for a budget limit update."""
    monthly_budget: Decimal = Field(ge=0)


class BudgetResponse(BaseModel):
    """Schema for the current budget limit."""
    user_id: int
    monthly_budget: Decimal
    currency: str


class CategoryItem(BaseModel):
    """Schema for one category in the spending breakdown."""
    name: str
    amount: Decimal  # User's share in the display currency
    count: int  # Number of expenses in this category
    icon: str
    percentage: float  # Percentage of total spending (0-100)
    
    class Config:
        from_attributes = True


class MonthlyPointItem(BaseModel):
    """Schema for one month of the budget-vs-actual series."""
    label: str  # Short month name, e.g. "Oct"
    year: int
    month: int
    budget: Decimal
    spent: Decimal
    is_current: bool
    
    class Config:
        from_attributes = True


class BudgetSummaryResponse(BaseModel):
    """Schema for the budget summary of one window."""
    period: str
    year: Optional[int] = None  # None when a custom period was requested without a month
    month: Optional[int] = None
    display_currency: str
    budget_limit: Decimal
    total_spent: Decimal
    remaining: Decimal  # Negative when over budget
    percentage_used: float  # Capped at 100
    percentage_remaining: float  # Floored at 0
    expense_count: int
    categories: List[CategoryItem] = []
    monthly_series: List[MonthlyPointItem] = []
