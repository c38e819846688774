"""
Tests for balances and settle-up suggestions.
"""
from datetime import date, datetime
from decimal import Decimal

from divvy.models.settlement import Settlement, SettlementStatus
from divvy.services.settlement_service import (
    SettlementRecord, calculate_balances, last_settled_at, minimize_transfers,
    settlement_from_model, suggest_settle_up, summarize_balances
)
from divvy.services.share_service import attribute_all
from divvy.services.snapshot import ExpenseSnapshot, RateTable

ME = 1


def _expense(id, amount, payer, participants, day=date(2024, 3, 15), shares=None):
    return ExpenseSnapshot(
        id=id,
        date=day,
        amount=Decimal(amount),
        currency="USD",
        payer_id=payer,
        participants=participants,
        shares=shares or {},
    )


def _balances(expenses, settlements=()):
    classified = attribute_all(expenses, ME, "USD", RateTable())
    return calculate_balances(classified, list(settlements), ME)


class TestCalculateBalances:
    """Tests for per-counterparty balances."""
    
    def test_even_split_paid_by_someone_else(self):
        assert _balances([_expense("a", "90", 2, (1, 2, 3))]) == {2: Decimal("30.00")}
    
    def test_even_split_paid_by_me(self):
        assert _balances([_expense("a", "90", ME, (1, 2, 3))]) == {
            2: Decimal("-30.00"),
            3: Decimal("-30.00"),
        }
    
    def test_loan_is_repaid_in_full(self):
        loan = _expense("a", "100", ME, (1, 2), shares={1: Decimal(0), 2: Decimal("100")})
        assert _balances([loan]) == {2: Decimal("-100.00")}
    
    def test_balances_net_out(self):
        expenses = [
            _expense("a", "60", 2, (1, 2)),
            _expense("b", "60", ME, (1, 2)),
        ]
        assert _balances(expenses) == {}
    
    def test_expenses_before_settle_up_are_cleared(self):
        settled = SettlementRecord(from_user_id=ME, to_user_id=2, amount=Decimal("30"),
                                   completed_at=datetime(2024, 3, 10, 18, 0))
        expenses = [
            _expense("old", "90", 2, (1, 2, 3), day=date(2024, 3, 10)),
            _expense("new", "40", 2, (1, 2), day=date(2024, 3, 11)),
        ]
        assert _balances(expenses, [settled]) == {2: Decimal("20.00")}
    
    def test_settle_up_only_clears_that_pair(self):
        settled = SettlementRecord(from_user_id=3, to_user_id=ME, amount=Decimal("10"),
                                   completed_at=datetime(2024, 4, 1))
        expense = _expense("a", "90", 2, (1, 2, 3))
        assert _balances([expense], [settled]) == {2: Decimal("30.00")}


class TestSettlementRecords:
    
    def test_only_completed_settlements_count(self):
        pending = Settlement(from_user_id=1, to_user_id=2, amount=Decimal("5"), status=SettlementStatus.PENDING)
        done = Settlement(from_user_id=1, to_user_id=2, amount=Decimal("5"), status=SettlementStatus.COMPLETED,
                          completed_at=datetime(2024, 3, 1))
        assert settlement_from_model(pending) is None
        assert settlement_from_model(done).cutoff == datetime(2024, 3, 1)
    
    def test_latest_cutoff_in_either_direction(self):
        records = [
            SettlementRecord(1, 2, Decimal("5"), completed_at=datetime(2024, 1, 1)),
            SettlementRecord(2, 1, Decimal("5"), completed_at=datetime(2024, 2, 1),
                             settled_up_to_timestamp=datetime(2024, 2, 3)),
        ]
        assert last_settled_at(records, 1, 2) == datetime(2024, 2, 3)
        assert last_settled_at(records, 1, 3) is None


class TestSettleUp:
    """Tests for summaries and transfer suggestions."""
    
    def test_summary_totals(self):
        totals = summarize_balances({2: Decimal("30"), 3: Decimal("-50")})
        assert totals == {"you_owe": Decimal("30"), "youre_owed": Decimal("50"), "net": Decimal("20")}
    
    def test_minimize_transfers(self):
        transfers = minimize_transfers([(1, Decimal("50")), (2, Decimal("-30")), (3, Decimal("-20"))])
        assert [(t.from_user_id, t.to_user_id, t.amount) for t in transfers] == [
            (2, 1, Decimal("30")),
            (3, 1, Decimal("20")),
        ]
    
    def test_suggest_settle_up_includes_the_user(self):
        transfers = suggest_settle_up({2: Decimal("30"), 3: Decimal("-50")}, ME)
        assert [(t.from_user_id, t.to_user_id, t.amount) for t in transfers] == [
            (3, 2, Decimal("30")),
            (3, ME, Decimal("20")),
        ]
    
    def test_nothing_to_settle(self):
        assert suggest_settle_up({}, ME) == []
