"""
Dashboard session: owns one user's in-memory snapshot and recomputes the
budget views from it.

Loading degrades instead of failing: a collection that cannot be fetched is
logged and treated as empty. Exchange rates refresh in the background and only
ever replace the table on success. After close() nothing in flight may touch
the session's state.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Protocol
from sqlalchemy.orm import joinedload, sessionmaker
from divvy.core.config import settings
from divvy.models.expense import Expense
from divvy.models.group import Group, GroupMember
from divvy.models.settlement import Settlement
from divvy.models.user import User
from divvy.services import window_service
from divvy.services.budget_limit import BudgetLimitController, BudgetStore
from divvy.services.budget_service import AggregationCache, BudgetSummary, aggregate
from divvy.services.fx_service import RateSource
from divvy.services.settlement_service import (
    SettlementRecord, calculate_balances, settlement_from_model
)
from divvy.services.share_service import ClassifiedExpense, attribute_all
from divvy.services.snapshot import EMPTY_RATES, ExpenseSnapshot, RateTable, YearMonth, snapshot_from_model
from divvy.services.window_service import TimePeriod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    id: int
    full_name: str
    monthly_budget: Decimal
    default_currency: str


@dataclass(frozen=True)
class GroupInfo:
    id: int
    name: str
    default_currency: str


class LedgerRepository(Protocol):
    """Fetch collaborator for users, groups, expenses and settlements."""

    def get_user(self, user_id: int) -> Optional[UserProfile]:
        ...

    def get_group(self, user_id: int) -> Optional[GroupInfo]:
        ...

    def get_expenses(self, group_id: int) -> List[ExpenseSnapshot]:
        ...

    def get_settlements(self, group_id: int) -> List[SettlementRecord]:
        ...


class SqlLedgerRepository:
    """LedgerRepository over the SQLAlchemy models."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_user(self, user_id: int) -> Optional[UserProfile]:
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                return None
            return UserProfile(
                id=user.id,
                full_name=user.full_name,
                monthly_budget=Decimal(str(user.monthly_budget or 0)),
                default_currency=(user.default_currency or settings.DEFAULT_DISPLAY_CURRENCY).upper()
            )
        finally:
            db.close()

    def get_group(self, user_id: int) -> Optional[GroupInfo]:
        db = self.session_factory()
        try:
            group = db.query(Group).join(
                GroupMember, GroupMember.group_id == Group.id
            ).filter(
                GroupMember.user_id == user_id
            ).order_by(GroupMember.id).first()
            if not group:
                return None
            return GroupInfo(id=group.id, name=group.name, default_currency=group.default_currency)
        finally:
            db.close()

    def get_expenses(self, group_id: int) -> List[ExpenseSnapshot]:
        db = self.session_factory()
        try:
            expenses = db.query(Expense).options(
                joinedload(Expense.splits)
            ).filter(
                Expense.group_id == group_id
            ).order_by(Expense.date.desc()).all()
            return [snapshot_from_model(e) for e in expenses]
        finally:
            db.close()

    def get_settlements(self, group_id: int) -> List[SettlementRecord]:
        db = self.session_factory()
        try:
            settlements = db.query(Settlement).filter(
                Settlement.group_id == group_id
            ).order_by(Settlement.completed_at.desc()).all()
            records = [settlement_from_model(s) for s in settlements]
            return [r for r in records if r is not None]
        finally:
            db.close()


class DashboardSession:
    """One user's budget dashboard state."""

    def __init__(
        self,
        user_id: int,
        repository: LedgerRepository,
        rate_source: RateSource,
        budget_store: BudgetStore,
        today: Callable[[], date] = date.today
    ):
        self.user_id = user_id
        self.repository = repository
        self.rate_source = rate_source
        self.budget_store = budget_store
        self.today = today

        self.user: Optional[UserProfile] = None
        self.group: Optional[GroupInfo] = None
        self.expenses: List[ExpenseSnapshot] = []
        self.settlements: List[SettlementRecord] = []
        self.rates: RateTable = EMPTY_RATES
        self.budget: Optional[BudgetLimitController] = None

        self.expenses_version = 0
        self.closed = False
        self._tasks: List[asyncio.Task] = []
        self._cache = AggregationCache()

    @property
    def display_currency(self) -> str:
        if self.user:
            return self.user.default_currency
        return settings.DEFAULT_DISPLAY_CURRENCY

    async def _fetch(self, label: str, func, *args, default=None):
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as e:
            logger.error(f"Error fetching {label} for user {self.user_id}: {e}", exc_info=True)
            return default

    async def load(self, refresh_rates: bool = True) -> None:
        """Fetch everything the dashboard needs; missing pieces become empty."""
        user = await self._fetch("user", self.repository.get_user, self.user_id)
        group = await self._fetch("group", self.repository.get_group, self.user_id)

        expenses: List[ExpenseSnapshot] = []
        settlements: List[SettlementRecord] = []
        if group is not None:
            expenses = await self._fetch("expenses", self.repository.get_expenses, group.id, default=[])
            settlements = await self._fetch("settlements", self.repository.get_settlements, group.id, default=[])
        else:
            logger.info(f"User {self.user_id} has no group; dashboard will be empty")

        rates = await self._fetch("exchange rates", self.rate_source.get_cached_rates, default=EMPTY_RATES)

        if self.closed:
            logger.debug(f"Dashboard for user {self.user_id} closed during load; dropping results")
            return

        self.user = user
        self.group = group
        self.settlements = settlements
        self.set_expenses(expenses)
        self.set_rates(rates)
        budget = user.monthly_budget if user else settings.DEFAULT_MONTHLY_BUDGET
        self.budget = BudgetLimitController(self.user_id, budget, self.budget_store)

        if refresh_rates and await self._rates_stale() and not self.closed:
            self.schedule_rate_refresh()

    async def _rates_stale(self) -> bool:
        stale = await self._fetch("exchange rate freshness", self.rate_source.is_stale, default=False)
        return bool(stale)

    def set_expenses(self, expenses: List[ExpenseSnapshot]) -> None:
        self.expenses = list(expenses)
        self.expenses_version += 1

    def set_rates(self, rates: RateTable) -> None:
        self.rates = rates or EMPTY_RATES

    def schedule_rate_refresh(self) -> asyncio.Task:
        """Start a background refresh; the caller never waits on it."""
        task = asyncio.create_task(self._refresh_rates())
        self._tasks.append(task)
        task.add_done_callback(self._forget_task)
        return task

    def _forget_task(self, task: asyncio.Task) -> None:
        if task in self._tasks:
            self._tasks.remove(task)

    async def _refresh_rates(self) -> None:
        logger.info("Updating exchange rates in background...")
        try:
            rates = await self.rate_source.refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Keep showing the previous table
            logger.error(f"Failed to update exchange rates: {e}")
            return
        if self.closed:
            logger.debug("Dashboard closed before exchange rates arrived; discarding them")
            return
        self.set_rates(rates)
        logger.info("Exchange rates refreshed")

    async def close(self) -> None:
        """Tear down: cancel in-flight work and ignore anything that still lands."""
        self.closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    @property
    def budget_limit(self) -> Decimal:
        if self.budget is None:
            return settings.DEFAULT_MONTHLY_BUDGET
        return self.budget.value

    def available_months(self) -> List[YearMonth]:
        return window_service.available_months(self.expenses, self.user_id, self.today())

    def window_expenses(
        self,
        mode: TimePeriod = TimePeriod.CURRENT,
        explicit_month: Optional[YearMonth] = None
    ) -> List[ClassifiedExpense]:
        """The window's expenses, newest first, with the user's share attached."""
        selected = window_service.select(self.expenses, self.user_id, mode, self.today(), explicit_month)
        return attribute_all(selected, self.user_id, self.display_currency, self.rates)

    def summary(
        self,
        mode: TimePeriod = TimePeriod.CURRENT,
        explicit_month: Optional[YearMonth] = None
    ) -> BudgetSummary:
        """Budget summary, recomputed only when an input changed."""
        today = self.today()
        window = window_service.resolve_window(mode, today, explicit_month)
        budget = self.budget_limit
        key = (self.expenses_version, self.rates.version, self.display_currency, window, budget, today)

        def compute() -> BudgetSummary:
            involved = [e for e in self.expenses if e.involves(self.user_id)]
            history = attribute_all(involved, self.user_id, self.display_currency, self.rates)
            classified = [c for c in history if window is not None and window.contains(c.expense.date)]
            return aggregate(classified, budget, today, history=history)

        return self._cache.get_or_compute(key, compute)

    def balances(self) -> Dict[int, Decimal]:
        """Open balances with each housemate since their last settle-up."""
        classified = attribute_all(self.expenses, self.user_id, self.display_currency, self.rates)
        return calculate_balances(classified, self.settlements, self.user_id)
