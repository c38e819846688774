"""
User model holding the personal budget and display currency.
"""
from sqlalchemy import Column, String, Numeric
from sqlalchemy.orm import relationship
from divvy.db.base import BaseModel


class User(BaseModel):
    """User model with a monthly budget ceiling."""
    __tablename__ = "users"
    
    full_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    monthly_budget = Column(Numeric(15, 2), nullable=False, default=0)
    default_currency = Column(String(3), nullable=False, default="USD")  # Display currency
    
    # Relationships
    memberships = relationship("GroupMember", back_populates="user", cascade="all, delete-orphan")
    expenses_paid = relationship("Expense", foreign_keys="Expense.paid_by", back_populates="payer")
    splits = relationship("ExpenseSplit", back_populates="user", cascade="all, delete-orphan")
