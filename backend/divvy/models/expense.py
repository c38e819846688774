"""
Expense model for tracking shared spending.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text, Boolean
from sqlalchemy.orm import relationship
from divvy.db.base import BaseModel


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"
    
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)  # In the original currency
    currency = Column(String(3), nullable=False, default="USD")
    category = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    icon = Column(String(16), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    last_recurring_date = Column(Date, nullable=True)  # Last month this recurring expense was copied
    
    # Relationships
    group = relationship("Group", back_populates="expenses")
    payer = relationship("User", foreign_keys=[paid_by], back_populates="expenses_paid")
    splits = relationship("ExpenseSplit", back_populates="expense", cascade="all, delete-orphan")


class ExpenseSplit(BaseModel):
    """One participant's recorded share of an expense."""
    __tablename__ = "expense_splits"
    
    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    share_amount = Column(Numeric(15, 2), nullable=False)  # In the expense's original currency
    
    # Relationships
    expense = relationship("Expense", back_populates="splits")
    user = relationship("User", back_populates="splits")
