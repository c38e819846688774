"""
Optimistic editing of a user's monthly budget ceiling.
"""
import asyncio
import enum
import logging
from decimal import Decimal
from typing import Optional, Protocol
from sqlalchemy.orm import sessionmaker
from divvy.core.errors import BudgetCommitError, CommitInProgressError
from divvy.models.user import User

logger = logging.getLogger(__name__)


class EditState(str, enum.Enum):
    """Budget editor states: VIEWING -> EDITING -> COMMITTING -> VIEWING or EDITING."""
    VIEWING = "viewing"
    EDITING = "editing"
    COMMITTING = "committing"


class BudgetStore(Protocol):
    """Persistence collaborator for budget limits."""

    async def set_budget(self, user_id: int, value: Decimal) -> bool:
        ...


def _coerce_budget(value) -> Decimal:
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Budget must be a non-negative number, got {value}")
    return amount


class BudgetLimitController:
    """
    Holds the known-good budget and a locally staged edit.

    Only one commit may be in flight; a second one raises
    CommitInProgressError instead of being queued.
    """

    def __init__(self, user_id: int, persisted_value: Decimal, store: BudgetStore):
        self.user_id = user_id
        self.store = store
        self.known_good = _coerce_budget(persisted_value)
        self.value = self.known_good
        self.state = EditState.VIEWING
        self.last_error: Optional[str] = None

    def _ensure_idle(self) -> None:
        if self.state == EditState.COMMITTING:
            raise CommitInProgressError("A budget update is already being saved")

    def begin_edit(self) -> None:
        self._ensure_idle()
        self.state = EditState.EDITING
        self.last_error = None

    def edit(self, new_value) -> Decimal:
        """Stage a value locally without saving it."""
        self._ensure_idle()
        staged = _coerce_budget(new_value)
        self.state = EditState.EDITING
        self.value = staged
        return staged

    def cancel(self) -> None:
        """Drop any staged value and leave edit mode."""
        self._ensure_idle()
        self.value = self.known_good
        self.state = EditState.VIEWING

    async def commit(self, new_value=None) -> bool:
        """
        Persist the staged (or given) value.

        On success the value becomes known-good and the editor returns to
        VIEWING. On failure the value reverts to the known-good one,
        `last_error` carries a message for the user, and the editor stays in
        EDITING so the user can retry or cancel.
        """
        self._ensure_idle()
        target = self.edit(new_value) if new_value is not None else self.value
        self.state = EditState.COMMITTING
        self.last_error = None

        try:
            saved = await self.store.set_budget(self.user_id, target)
            if not saved:
                raise BudgetCommitError(f"Budget for user {self.user_id} was not saved")
        except Exception as e:
            logger.error(f"Failed to save budget {target} for user {self.user_id}: {e}",
                         exc_info=not isinstance(e, BudgetCommitError))
            self.value = self.known_good
            self.state = EditState.EDITING
            self.last_error = "Failed to update budget. Please try again."
            return False

        self.known_good = target
        self.value = target
        self.state = EditState.VIEWING
        logger.info(f"Budget for user {self.user_id} set to {target}")
        return True


class SqlBudgetStore:
    """Budget persistence against the users table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_budget(self, user_id: int) -> Optional[Decimal]:
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.id == user_id).first()
            return Decimal(str(user.monthly_budget)) if user else None
        finally:
            db.close()

    async def set_budget(self, user_id: int, value: Decimal) -> bool:
        return await asyncio.to_thread(self.write_budget, user_id, value)

    def write_budget(self, user_id: int, value: Decimal) -> bool:
        """Blocking update of users.monthly_budget; False when the user is gone."""
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                return False
            user.monthly_budget = value
            db.commit()
            return True
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
