"""
Pydantic schemas for expense listings.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal


class ExpenseItem(BaseModel):
    """Schema for one expense with the user's attributed share."""
    id: str
    date: date
    description: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    payer_id: int
    participants: List[int]
    amount: Decimal  # Original amount
    currency: str  # Original currency
    normalized_amount: Decimal  # Amount in the display currency
    display_currency: str
    rule: str  # Attribution rule applied for the user
    share: Decimal  # User's share in the display currency
    share_display: str  # Share with its currency symbol, e.g. "$12.50"
    created_at: Optional[datetime] = None


class ExpenseListResponse(BaseModel):
    """Schema for a window of expenses."""
    period: str
    year: Optional[int] = None
    month: Optional[int] = None
    display_currency: str
    expenses: List[ExpenseItem] = []


class MonthOption(BaseModel):
    """Schema for a selectable month."""
    year: int
    month: int
    label: str
    is_current: bool


class RecurringResult(BaseModel):
    """Schema for a recurring expense run."""
    processed: int
    skipped: int
