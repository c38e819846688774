"""
Time window selection for budget views.
"""
import enum
from datetime import date, datetime
from typing import Iterable, List, Optional
from divvy.services.snapshot import ExpenseSnapshot, YearMonth


class TimePeriod(str, enum.Enum):
    """Which month a budget view covers."""
    CURRENT = "current"
    CUSTOM = "custom"


def available_months(
    expenses: Iterable[ExpenseSnapshot],
    user_id: int,
    today: date
) -> List[YearMonth]:
    """
    Months the user can pick, newest first.
    The current month is always the first entry, even without expenses.
    """
    current = YearMonth.of(today)
    months = {YearMonth.of(e.date) for e in expenses if e.involves(user_id)}
    months.discard(current)
    return [current] + sorted(months, reverse=True)


def resolve_window(
    mode: TimePeriod,
    today: date,
    explicit_month: Optional[YearMonth] = None
) -> Optional[YearMonth]:
    """Month a selection covers, or None when a custom pick is missing."""
    if TimePeriod(mode) == TimePeriod.CURRENT:
        return YearMonth.of(today)
    return explicit_month


def _sort_key(expense: ExpenseSnapshot):
    # Missing creation times rank below present ones on the same day
    created = expense.created_at
    return (expense.date, created is not None, created or datetime.min, expense.id)


def sort_expenses(expenses: Iterable[ExpenseSnapshot]) -> List[ExpenseSnapshot]:
    """Newest first: by date, then creation time, then id, all descending."""
    return sorted(expenses, key=_sort_key, reverse=True)


def select(
    expenses: Iterable[ExpenseSnapshot],
    user_id: int,
    mode: TimePeriod,
    today: date,
    explicit_month: Optional[YearMonth] = None
) -> List[ExpenseSnapshot]:
    """
    Expenses involving the user inside the chosen month, newest first.
    A custom selection without a month yields nothing rather than guessing.
    """
    window = resolve_window(mode, today, explicit_month)
    if window is None:
        return []
    return sort_expenses(
        e for e in expenses
        if e.involves(user_id) and window.contains(e.date)
    )


def matches_filters(
    expense: ExpenseSnapshot,
    category: Optional[str] = None,
    search: Optional[str] = None
) -> bool:
    """
    Category is an exact, case-insensitive label match. The search term is a
    case-insensitive substring of the description, category or amount.
    """
    if category and (expense.category or "").strip().lower() != category.strip().lower():
        return False
    if search:
        term = search.strip().lower()
        haystack = [expense.description or "", expense.category or "", str(expense.amount)]
        if not any(term in text.lower() for text in haystack):
            return False
    return True
