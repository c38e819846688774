"""
Pydantic schemas for exchange rates.
"""
from pydantic import BaseModel
from typing import Dict, Optional
from datetime import datetime
from decimal import Decimal


class RateTableResponse(BaseModel):
    """Schema for the cached rate table."""
    base_currency: str  # 1 base_currency = rate units of each currency
    rates: Dict[str, Decimal]
    updated_at: Optional[datetime] = None
    hours_since_update: Optional[int] = None
    is_stale: bool
