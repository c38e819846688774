"""
Exchange rate model for currency conversion.
"""
from datetime import datetime
from sqlalchemy import Column, String, Numeric, DateTime, UniqueConstraint
from divvy.db.base import BaseModel


class ExchangeRate(BaseModel):
    """Latest rate for one currency pair (1 from_currency = rate to_currency)."""
    __tablename__ = "exchange_rates"
    
    from_currency = Column(String(3), nullable=False, default="USD")
    to_currency = Column(String(3), nullable=False, index=True)
    rate = Column(Numeric(20, 8), nullable=False)
    fetched_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    # Unique constraint: one row per currency pair, refreshed in place
    __table_args__ = (
        UniqueConstraint('from_currency', 'to_currency', name='uq_currency_pair'),
    )
