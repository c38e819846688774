"""
Share attribution: how much of each expense counts as the user's own spending.

Loans are money movement, not consumption. A payer whose own share is recorded
as zero lent the money; a non-payer whose share is the whole amount borrowed
it. Only consumption counts against a personal budget.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional
from divvy.core.errors import InvalidAmountError
from divvy.services.fx_service import normalize, round_cents
from divvy.services.snapshot import ExpenseSnapshot, RateTable

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


class AttributionRule(str, enum.Enum):
    """Rule deciding a user's share of one expense, in priority order."""
    PERSONAL_OWN = "personal_own"
    PERSONAL_OTHER = "personal_other"
    LENT = "lent"
    BORROWED = "borrowed"
    EVEN_SPLIT = "even_split"
    NOT_INVOLVED = "not_involved"


@dataclass(frozen=True)
class ShareResult:
    rule: AttributionRule
    share: Decimal


@dataclass(frozen=True)
class ClassifiedExpense:
    """An expense with the user's share in the display currency."""
    expense: ExpenseSnapshot
    rule: AttributionRule
    normalized_amount: Decimal
    share: Decimal
    display_currency: str


def match_rule(expense: ExpenseSnapshot, user_id: int) -> AttributionRule:
    """Pick the first rule that applies; the order matters."""
    is_payer = expense.payer_id == user_id
    explicit = expense.shares.get(user_id)

    if len(expense.participants) == 1:
        return AttributionRule.PERSONAL_OWN if is_payer else AttributionRule.PERSONAL_OTHER
    if is_payer and explicit is not None and explicit == 0:
        return AttributionRule.LENT
    if not is_payer and explicit is not None and explicit == expense.amount:
        return AttributionRule.BORROWED
    if user_id in expense.participants:
        # Uneven explicit shares are deliberately ignored here
        return AttributionRule.EVEN_SPLIT
    return AttributionRule.NOT_INVOLVED


def share_for_rule(rule: AttributionRule, amount: Decimal, participant_count: int) -> Decimal:
    """Apply a rule to an amount in any currency."""
    if rule in (AttributionRule.PERSONAL_OWN, AttributionRule.BORROWED):
        return amount
    if rule == AttributionRule.EVEN_SPLIT:
        return amount / participant_count
    return ZERO


def classify(expense: ExpenseSnapshot, user_id: int) -> ShareResult:
    """Rule and share for the user, in the expense's original currency."""
    rule = match_rule(expense, user_id)
    return ShareResult(rule, share_for_rule(rule, expense.amount, len(expense.participants)))


def attribute(
    expense: ExpenseSnapshot,
    user_id: int,
    display_currency: str,
    rates: Optional[RateTable]
) -> ClassifiedExpense:
    """
    Classify on the raw amount, then take the share of the converted amount.

    Deciding the rule in the original currency keeps the explicit-share
    comparisons exact; applying it to the converted amount means a full share
    of 100 X at 0.5 is 50 in the display currency.

    Raises:
        InvalidAmountError: the expense amount cannot be aggregated
    """
    try:
        normalized = normalize(expense.amount, expense.currency, display_currency, rates)
    except InvalidAmountError:
        raise InvalidAmountError(expense.amount, expense.id)

    rule = match_rule(expense, user_id)
    share = round_cents(share_for_rule(rule, normalized, len(expense.participants)))
    return ClassifiedExpense(
        expense=expense,
        rule=rule,
        normalized_amount=normalized,
        share=share,
        display_currency=display_currency.upper(),
    )


def attribute_all(
    expenses: Iterable[ExpenseSnapshot],
    user_id: int,
    display_currency: str,
    rates: Optional[RateTable]
) -> List[ClassifiedExpense]:
    """Attribute a batch, dropping expenses with unusable amounts."""
    classified = []
    for expense in expenses:
        try:
            classified.append(attribute(expense, user_id, display_currency, rates))
        except InvalidAmountError as e:
            logger.warning(f"Skipping expense from aggregation: {e}")
    return classified
