"""Models package - Import all models for SQLAlchemy registration."""
from divvy.models.user import User
from divvy.models.group import Group, GroupMember
from divvy.models.expense import Expense, ExpenseSplit
from divvy.models.exchange_rate import ExchangeRate
from divvy.models.settlement import Settlement, SettlementStatus

__all__ = [
    "User",
    "Group",
    "GroupMember",
    "Expense",
    "ExpenseSplit",
    "ExchangeRate",
    "Settlement",
    "SettlementStatus",
]
