"""
Domain exceptions raised by the budget engine and its collaborators.
"""


class DivvyError(Exception):
    """Base class for application errors."""


class InvalidAmountError(DivvyError, ValueError):
    """Raised when an expense amount is NaN, infinite, zero or negative."""
    
    def __init__(self, amount, expense_id=None):
        self.amount = amount
        self.expense_id = expense_id
        label = f" for expense {expense_id}" if expense_id is not None else ""
        super().__init__(f"Invalid amount{label}: {amount}")


class RateRefreshError(DivvyError):
    """Raised when the exchange rate provider cannot be reached or returns bad data."""


class BudgetCommitError(DivvyError):
    """Raised when a budget limit could not be persisted."""


class CommitInProgressError(DivvyError):
    """Raised when a budget commit starts while another one is still in flight."""
