"""
Settlement model recording repayments between group members.
"""
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
from divvy.db.base import BaseModel
import enum


class SettlementStatus(str, enum.Enum):
    """Settlement status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Settlement(BaseModel):
    """A payment from one member to another that clears earlier expenses."""
    __tablename__ = "settlements"
    
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(SQLEnum(SettlementStatus), default=SettlementStatus.PENDING, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    settled_up_to_timestamp = Column(DateTime, nullable=True)  # Expenses up to this moment are cleared
    
    # Relationships
    group = relationship("Group", back_populates="settlements")
