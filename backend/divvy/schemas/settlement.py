"""
Pydantic schemas for balances and settle-up suggestions.
"""
from pydantic import BaseModel
from typing import List
from decimal import Decimal


class BalanceItem(BaseModel):
    """Schema for the balance with one housemate."""
    user_id: int
    amount: Decimal  # Positive: you owe them. Negative: they owe you.


class TransferItem(BaseModel):
    """Schema for a suggested settle-up transfer."""
    from_user_id: int
    to_user_id: int
    amount: Decimal


class BalanceSummaryResponse(BaseModel):
    """Schema for the balances page."""
    display_currency: str
    you_owe: Decimal
    youre_owed: Decimal
    net: Decimal
    balances: List[BalanceItem] = []
    transfers: List[TransferItem] = []
