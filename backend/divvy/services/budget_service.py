"""
Budget aggregation: totals, category breakdown and the budget-vs-actual series.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Hashable, Iterable, List, Optional
from divvy.core.config import settings
from divvy.services.share_service import ClassifiedExpense
from divvy.services.snapshot import YearMonth

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)

DEFAULT_CATEGORY = "Other"

# Known categories and the icon shown when an expense carries none
CATEGORY_ICONS: Dict[str, str] = {
    "Groceries": "🛒",
    "Rent": "🏠",
    "Utilities": "⚡",
    "Entertainment": "🎬",
    "Transportation": "🚗",
    "Dining Out": "🍕",
    "Shopping": "🛍️",
    "Healthcare": "💊",
    DEFAULT_CATEGORY: "📦",
}

_CATEGORY_LOOKUP = {name.lower(): name for name in CATEGORY_ICONS}


def canonical_category(label: Optional[str]) -> str:
    """Map a free-form label onto a known category, defaulting to 'Other'."""
    if not label or not label.strip():
        return DEFAULT_CATEGORY
    return _CATEGORY_LOOKUP.get(label.strip().lower(), DEFAULT_CATEGORY)


def _percentage(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float((part / whole * HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass
class CategoryBucket:
    name: str
    amount: Decimal = ZERO
    count: int = 0
    icon: Optional[str] = None
    percentage: float = 0.0


@dataclass(frozen=True)
class MonthlyPoint:
    label: str
    year: int
    month: int
    budget: Decimal
    spent: Decimal
    is_current: bool


@dataclass(frozen=True)
class BudgetSummary:
    budget_limit: Decimal
    total_spent: Decimal
    remaining: Decimal
    percentage_used: float
    percentage_remaining: float
    categories: List[CategoryBucket] = field(default_factory=list)
    monthly_series: List[MonthlyPoint] = field(default_factory=list)
    expense_count: int = 0


def total_spent(classified: Iterable[ClassifiedExpense]) -> Decimal:
    return sum((c.share for c in classified), ZERO)


def category_breakdown(classified: Iterable[ClassifiedExpense], total: Decimal) -> List[CategoryBucket]:
    """Group shares by category, largest first."""
    buckets: Dict[str, CategoryBucket] = {}
    for item in classified:
        name = canonical_category(item.expense.category)
        bucket = buckets.get(name)
        if bucket is None:
            bucket = buckets[name] = CategoryBucket(name=name)
        bucket.amount += item.share
        bucket.count += 1
        if bucket.icon is None and item.expense.icon:
            bucket.icon = item.expense.icon

    for bucket in buckets.values():
        if bucket.icon is None:
            bucket.icon = CATEGORY_ICONS[bucket.name]
        bucket.percentage = _percentage(bucket.amount, total)

    return sorted(buckets.values(), key=lambda b: (-b.amount, b.name))


def monthly_series(
    classified: Iterable[ClassifiedExpense],
    budget_limit: Decimal,
    today: date,
    forecast_months: Optional[int] = None
) -> List[MonthlyPoint]:
    """
    This month plus the following months, each with the user's spending.
    Months that have not happened yet normally sum to zero.
    """
    ahead = settings.FORECAST_MONTHS if forecast_months is None else forecast_months
    current = YearMonth.of(today)
    months = [current.shift(i) for i in range(ahead + 1)]
    spent = {month: ZERO for month in months}
    for item in classified:
        month = YearMonth.of(item.expense.date)
        if month in spent:
            spent[month] += item.share

    return [
        MonthlyPoint(
            label=month.label,
            year=month.year,
            month=month.month,
            budget=budget_limit,
            spent=spent[month],
            is_current=index == 0,
        )
        for index, month in enumerate(months)
    ]


def aggregate(
    classified: List[ClassifiedExpense],
    budget_limit: Decimal,
    today: date,
    history: Optional[List[ClassifiedExpense]] = None,
    forecast_months: Optional[int] = None
) -> BudgetSummary:
    """
    Summarize the user's spending for one window against the budget.

    `classified` holds the window's expenses; `history` (all of the user's
    expenses, defaulting to the window) feeds the monthly series.
    A zero budget reports 0% used and 0% remaining. An overspent budget keeps
    its negative remaining amount.
    """
    budget = Decimal(budget_limit)
    spent = total_spent(classified)
    remaining = budget - spent

    if budget > 0:
        used = min(_percentage(spent, budget), 100.0)
        left = max(_percentage(remaining, budget), 0.0)
    else:
        used = left = 0.0

    return BudgetSummary(
        budget_limit=budget,
        total_spent=spent,
        remaining=remaining,
        percentage_used=used,
        percentage_remaining=left,
        categories=category_breakdown(classified, spent),
        monthly_series=monthly_series(
            classified if history is None else history, budget, today, forecast_months
        ),
        expense_count=len(classified),
    )


class AggregationCache:
    """
    Remembers the last aggregation and its inputs' key.
    The key should combine the expense set version, the rate table version,
    the selected window, the budget and today's date.
    """

    def __init__(self):
        self._key: Optional[Hashable] = None
        self._value: Optional[BudgetSummary] = None
        self.computations = 0

    def get_or_compute(self, key: Hashable, compute: Callable[[], BudgetSummary]) -> BudgetSummary:
        if self._value is not None and key == self._key:
            return self._value
        logger.debug(f"Recomputing budget summary for key {key!r}")
        self._value = compute()
        self._key = key
        self.computations += 1
        return self._value

    def clear(self) -> None:
        self._key = None
        self._value = None
