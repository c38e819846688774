"""
Settlement service: who owes whom since the last settle-up.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from divvy.models.settlement import SettlementStatus
from divvy.services.fx_service import round_cents
from divvy.services.share_service import ClassifiedExpense, match_rule, share_for_rule

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
BALANCE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class SettlementRecord:
    """A completed repayment between two members."""
    from_user_id: int
    to_user_id: int
    amount: Decimal
    completed_at: Optional[datetime] = None
    settled_up_to_timestamp: Optional[datetime] = None

    @property
    def cutoff(self) -> Optional[datetime]:
        return self.settled_up_to_timestamp or self.completed_at


class Transfer:
    """Represents a single transfer between users."""
    def __init__(self, from_user_id: int, to_user_id: int, amount: Decimal):
        self.from_user_id = from_user_id
        self.to_user_id = to_user_id
        self.amount = amount


def settlement_from_model(settlement) -> Optional[SettlementRecord]:
    """Copy a completed ORM settlement; other statuses are ignored."""
    if settlement.status != SettlementStatus.COMPLETED:
        return None
    return SettlementRecord(
        from_user_id=settlement.from_user_id,
        to_user_id=settlement.to_user_id,
        amount=Decimal(str(settlement.amount)),
        completed_at=settlement.completed_at,
        settled_up_to_timestamp=settlement.settled_up_to_timestamp,
    )


def last_settled_at(settlements: Iterable[SettlementRecord], user_a: int, user_b: int) -> Optional[datetime]:
    """Most recent settle-up moment between two users, in either direction."""
    cutoffs = [
        s.cutoff for s in settlements
        if s.cutoff is not None and {s.from_user_id, s.to_user_id} == {user_a, user_b}
    ]
    return max(cutoffs, default=None)


def calculate_balances(
    classified: Iterable[ClassifiedExpense],
    settlements: List[SettlementRecord],
    user_id: int
) -> Dict[int, Decimal]:
    """
    Net amount per counterparty in the display currency.
    Positive means the user owes them, negative means they owe the user.

    Each participant owes the payer what they consumed under the attribution
    rules, so a lender is repaid in full and an even split is repaid per head.
    Expenses dated on or before the pair's last settle-up are already cleared.
    """
    balances: Dict[int, Decimal] = {}
    cutoff_cache: Dict[int, Optional[datetime]] = {}

    def cleared(other: int, item: ClassifiedExpense) -> bool:
        if other not in cutoff_cache:
            cutoff_cache[other] = last_settled_at(settlements, user_id, other)
        cutoff = cutoff_cache[other]
        return cutoff is not None and datetime.combine(item.expense.date, time.min) <= cutoff

    for item in classified:
        expense = item.expense
        count = len(expense.participants)
        payer = expense.payer_id

        if payer != user_id and user_id in expense.participants:
            if cleared(payer, item):
                continue
            owed = share_for_rule(match_rule(expense, user_id), item.normalized_amount, count)
            balances[payer] = balances.get(payer, ZERO) + owed

        elif payer == user_id:
            for other in expense.participants:
                if other == user_id or cleared(other, item):
                    continue
                owed = share_for_rule(match_rule(expense, other), item.normalized_amount, count)
                balances[other] = balances.get(other, ZERO) - owed

    return {
        other: round_cents(amount)
        for other, amount in balances.items()
        if abs(amount) > BALANCE_TOLERANCE
    }


def summarize_balances(balances: Dict[int, Decimal]) -> Dict[str, Decimal]:
    """Totals for the balance cards: what the user owes, is owed, and the net."""
    you_owe = sum((amount for amount in balances.values() if amount > 0), ZERO)
    youre_owed = sum((-amount for amount in balances.values() if amount < 0), ZERO)
    return {
        "you_owe": you_owe,
        "youre_owed": youre_owed,
        "net": youre_owed - you_owe,
    }


def minimize_transfers(balances: List[Tuple[int, Decimal]]) -> List[Transfer]:
    """
    Minimize the number of transfers needed to settle debts.
    Balances are (user_id, net) with positive meaning the user should receive.
    Uses a greedy algorithm.
    """
    creditors = [(uid, bal) for uid, bal in balances if bal > 0]
    debtors = [(uid, -bal) for uid, bal in balances if bal < 0]

    # Largest amounts first; ties broken by user id for a stable result
    creditors.sort(key=lambda x: (-x[1], x[0]))
    debtors.sort(key=lambda x: (-x[1], x[0]))

    transfers = []
    cred_idx = 0
    debt_idx = 0

    while cred_idx < len(creditors) and debt_idx < len(debtors):
        creditor_id, cred_amount = creditors[cred_idx]
        debtor_id, debt_amount = debtors[debt_idx]

        transfer_amount = min(cred_amount, debt_amount)
        transfers.append(Transfer(debtor_id, creditor_id, transfer_amount))

        creditors[cred_idx] = (creditor_id, cred_amount - transfer_amount)
        debtors[debt_idx] = (debtor_id, debt_amount - transfer_amount)

        if creditors[cred_idx][1] == 0:
            cred_idx += 1
        if debtors[debt_idx][1] == 0:
            debt_idx += 1

    return transfers


def suggest_settle_up(balances: Dict[int, Decimal], user_id: int) -> List[Transfer]:
    """
    Transfers that clear the user's open balances.
    The user's own net position is the negated sum of the counterparties'.
    """
    # A counterparty the user owes is one who should receive
    positions = [(other, amount) for other, amount in balances.items()]
    own = -sum((amount for _, amount in positions), ZERO)
    if own:
        positions.append((user_id, own))
    return minimize_transfers(positions)
