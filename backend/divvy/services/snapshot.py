"""
Immutable snapshot types consumed by the budget engine.

The engine never touches ORM objects directly: expenses and rates are copied
into these frozen values at the boundary so one aggregation pass always sees a
self-consistent picture.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Mapping, Optional, Tuple


@dataclass(frozen=True, order=True)
class YearMonth:
    """A calendar month, ordered chronologically."""
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @classmethod
    def of(cls, value: date) -> "YearMonth":
        return cls(value.year, value.month)

    def shift(self, months: int) -> "YearMonth":
        """Return the month `months` calendar months later (negative for earlier)."""
        index = self.year * 12 + (self.month - 1) + months
        return YearMonth(index // 12, index % 12 + 1)

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    @property
    def label(self) -> str:
        """Short month name, e.g. 'Oct'."""
        return calendar.month_abbr[self.month]

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class ExpenseSnapshot:
    """Read-only copy of one shared expense."""
    id: str
    date: date
    amount: Decimal  # In the original currency
    currency: str
    payer_id: int
    participants: Tuple[int, ...]
    category: Optional[str] = None
    shares: Mapping[int, Decimal] = field(default_factory=dict)  # Explicit per-user shares, original currency
    created_at: Optional[datetime] = None
    icon: Optional[str] = None
    description: Optional[str] = None

    def involves(self, user_id: int) -> bool:
        """True when the user paid for or shares in this expense."""
        return self.payer_id == user_id or user_id in self.participants


@dataclass(frozen=True)
class RateTable:
    """Snapshot of conversion rates quoted against a single base currency."""
    rates: Mapping[str, Decimal] = field(default_factory=dict)
    base: str = "USD"
    updated_at: Optional[datetime] = None

    def __bool__(self) -> bool:
        return bool(self.rates)

    def get(self, currency: str) -> Optional[Decimal]:
        code = currency.upper()
        if code == self.base.upper():
            return Decimal(1)
        return self.rates.get(code)

    @property
    def version(self) -> str:
        """Identity of this table's contents, used as a memo key."""
        content = tuple(sorted((code, str(rate)) for code, rate in self.rates.items()))
        stamp = self.updated_at.isoformat() if self.updated_at else "-"
        return f"{self.base}:{stamp}:{hash(content)}"


EMPTY_RATES = RateTable()


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def snapshot_from_model(expense) -> ExpenseSnapshot:
    """
    Copy an ORM expense (with its splits loaded) into an ExpenseSnapshot.

    Raises ValueError when a required field is missing; amounts are copied
    as-is so malformed values are rejected later by the normalizer.
    An expense without splits is treated as owned by its payer alone.
    """
    missing = [name for name in ("id", "date", "amount", "paid_by")
               if getattr(expense, name, None) is None]
    if missing:
        raise ValueError(f"Expense is missing required fields: {', '.join(missing)}")

    shares: Dict[int, Decimal] = {}
    participants = []
    for split in expense.splits or []:
        if split.user_id in shares:
            continue
        participants.append(split.user_id)
        shares[split.user_id] = _to_decimal(split.share_amount)
    if not participants:
        participants = [expense.paid_by]
        shares = {}

    return ExpenseSnapshot(
        id=str(expense.id),
        date=expense.date,
        amount=_to_decimal(expense.amount),
        currency=(expense.currency or "USD").upper(),
        payer_id=expense.paid_by,
        participants=tuple(participants),
        category=expense.category,
        shares=shares,
        created_at=expense.created_at,
        icon=expense.icon,
        description=expense.description,
    )
