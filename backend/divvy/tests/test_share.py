"""
Tests for share attribution.
"""
from datetime import date
from decimal import Decimal

import pytest

from divvy.services.share_service import AttributionRule, attribute, attribute_all, classify
from divvy.services.snapshot import ExpenseSnapshot, RateTable

ME = 1
HALF_RATE = RateTable(rates={"XTS": Decimal("2")}, base="USD")


def _expense(amount="90", payer=ME, participants=(1, 2, 3), shares=None, currency="USD", id="e1"):
    return ExpenseSnapshot(
        id=id,
        date=date(2024, 3, 1),
        amount=Decimal(amount),
        currency=currency,
        payer_id=payer,
        participants=participants,
        shares=shares or {},
    )


class TestClassify:
    """Tests for rule selection and shares in the original currency."""
    
    def test_personal_own(self):
        result = classify(_expense("120", payer=ME, participants=(ME,)), ME)
        assert result.rule == AttributionRule.PERSONAL_OWN
        assert result.share == Decimal("120")
    
    def test_personal_other(self):
        result = classify(_expense("120", payer=2, participants=(2,)), ME)
        assert result.rule == AttributionRule.PERSONAL_OTHER
        assert result.share == 0
    
    def test_personal_other_even_if_listed_as_only_participant(self):
        """Someone else paid for an expense recorded only against me."""
        result = classify(_expense("50", payer=2, participants=(ME,)), ME)
        assert result.rule == AttributionRule.PERSONAL_OTHER
    
    def test_lent(self):
        expense = _expense("100", payer=ME, participants=(ME, 2), shares={ME: Decimal(0), 2: Decimal("100")})
        result = classify(expense, ME)
        assert result.rule == AttributionRule.LENT
        assert result.share == 0
    
    def test_borrowed(self):
        expense = _expense("100", payer=2, participants=(ME, 2), shares={ME: Decimal("100"), 2: Decimal(0)})
        result = classify(expense, ME)
        assert result.rule == AttributionRule.BORROWED
        assert result.share == Decimal("100")
    
    def test_lending_wins_over_even_split(self):
        """A zero own share on a shared expense is a loan, not a split."""
        expense = _expense("90", payer=ME, participants=(ME, 2, 3), shares={ME: Decimal(0)})
        assert classify(expense, ME).rule == AttributionRule.LENT
    
    def test_even_split(self):
        result = classify(_expense("90"), ME)
        assert result.rule == AttributionRule.EVEN_SPLIT
        assert result.share == Decimal("30")
    
    def test_uneven_explicit_share_falls_through_to_even_split(self):
        expense = _expense("90", payer=2, participants=(ME, 2), shares={ME: Decimal("60"), 2: Decimal("30")})
        result = classify(expense, ME)
        assert result.rule == AttributionRule.EVEN_SPLIT
        assert result.share == Decimal("45")
    
    def test_not_involved(self):
        result = classify(_expense("90", payer=2, participants=(2, 3)), ME)
        assert result.rule == AttributionRule.NOT_INVOLVED
        assert result.share == 0
    
    def test_payer_outside_split_is_not_involved(self):
        result = classify(_expense("90", payer=ME, participants=(2, 3)), ME)
        assert result.rule == AttributionRule.NOT_INVOLVED


class TestAttribute:
    """Tests for shares in the display currency."""
    
    def test_even_split_of_ninety(self):
        assert attribute(_expense("90"), ME, "USD", RateTable()).share == Decimal("30.00")
    
    def test_borrowed_share_uses_converted_amount(self):
        """A full share of 100 XTS at 0.5 counts 50 in USD."""
        expense = _expense("100", payer=2, participants=(ME, 2), shares={ME: Decimal("100"), 2: Decimal(0)}, currency="XTS")
        classified = attribute(expense, ME, "USD", HALF_RATE)
        assert classified.normalized_amount == Decimal("50.00")
        assert classified.rule == AttributionRule.BORROWED
        assert classified.share == Decimal("50.00")
    
    def test_without_rates_shares_raw_amount(self):
        expense = _expense("100", payer=ME, participants=(ME,), currency="XTS")
        assert attribute(expense, ME, "USD", RateTable()).share == Decimal("100.00")
    
    def test_even_split_conserves_amount(self):
        """Per-head shares add back up to the amount within one cent."""
        expense = _expense("100", participants=(1, 2, 3))
        total = sum(attribute(expense, user, "USD", RateTable()).share for user in (1, 2, 3))
        assert abs(total - Decimal("100")) <= Decimal("0.01")
    
    def test_loan_symmetry(self):
        """Lender and borrower shares add up to the full amount."""
        expense = _expense("75", payer=1, participants=(1, 2), shares={1: Decimal(0), 2: Decimal("75")})
        lender = attribute(expense, 1, "USD", RateTable())
        borrower = attribute(expense, 2, "USD", RateTable())
        assert lender.rule == AttributionRule.LENT
        assert borrower.rule == AttributionRule.BORROWED
        assert lender.share + borrower.share == Decimal("75")
    
    def test_attribute_all_skips_invalid_amounts(self):
        expenses = [
            _expense("90", id="ok"),
            _expense("NaN", id="nan"),
            _expense("0", id="zero"),
            _expense("-4", id="negative"),
        ]
        classified = attribute_all(expenses, ME, "USD", RateTable())
        assert [c.expense.id for c in classified] == ["ok"]
    
    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "0"])
    def test_attribute_rejects_invalid_amounts(self, amount):
        from divvy.core.errors import InvalidAmountError
        with pytest.raises(InvalidAmountError) as info:
            attribute(_expense(amount, id="bad"), ME, "USD", RateTable())
        assert info.value.expense_id == "bad"
