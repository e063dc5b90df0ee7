"""
Shop Ledger System Models
Counters backing document numbering
"""
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from shopledger.core.database import Base


class SequenceRec(Base):
    """
    Named monotonic counter

    One row per document series (e.g. 'sale'). Readers take a row lock,
    increment last_value and commit, so numbers are never reused.
    """
    __tablename__ = "sequences"

    name = Column(String(30), primary_key=True, doc="Series name")
    last_value = Column(Integer, nullable=False, default=0, doc="Last number issued")
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    __table_args__ = (
        CheckConstraint('last_value >= 0', name='sequence_last_value'),
    )

    def __repr__(self):
        return f"<SequenceRec(name='{self.name}', last_value={self.last_value})>"
