"""
Household group model.
"""
from sqlalchemy import Column, String, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from divvy.db.base import BaseModel


class Group(BaseModel):
    """Group of people sharing household expenses."""
    __tablename__ = "groups"
    
    name = Column(String(200), nullable=False)
    default_currency = Column(String(3), nullable=False, default="USD")
    
    # Relationships
    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="group", cascade="all, delete-orphan")
    settlements = relationship("Settlement", back_populates="group", cascade="all, delete-orphan")


class GroupMember(BaseModel):
    """Junction table for Group and User many-to-many relationship."""
    __tablename__ = "group_members"
    
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    
    # Relationships
    group = relationship("Group", back_populates="members")
    user = relationship("User", back_populates="memberships")
    
    __table_args__ = (
        UniqueConstraint('group_id', 'user_id', name='uq_group_member'),
    )
