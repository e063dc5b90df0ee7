"""
Shop Ledger Recovery Models
Recovery transaction log: one row per payment received against a sale
"""
from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shopledger.core.database import Base


class RecoveryTransaction(Base):
    """
    Recovery Transaction

    Amount is fixed at creation; only status and notes change afterwards.
    """
    __tablename__ = "recovery_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True, doc="Recovery ID")
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="RESTRICT"), nullable=False, doc="Sale ID")
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, doc="Customer ID")
    sale_number = Column(String(20), nullable=False, doc="Sale number (denormalized)")

    amount = Column(Numeric(12, 2), nullable=False, doc="Amount recovered")
    payment_method = Column(String(20), nullable=False, default='cash',
                            doc="Payment method: cash, card, bank_transfer, cheque, mixed")
    reference = Column(String(50), default='', doc="Payment reference")
    notes = Column(Text, default='', doc="Recovery notes")
    received_by = Column(String(50), nullable=False, doc="Staff member who received the payment")
    status = Column(String(10), nullable=False, default='confirmed', doc="Status: confirmed, pending, cancelled")
    recovery_date = Column(DateTime, nullable=False, doc="Date the payment was received")

    # Audit Trail
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    # Relationships
    sale = relationship("SaleRecord", back_populates="recoveries")
    customer = relationship("Customer")

    __table_args__ = (
        CheckConstraint('amount > 0', name='recovery_amount'),
        CheckConstraint(
            "payment_method IN ('cash', 'card', 'bank_transfer', 'cheque', 'mixed')",
            name='recovery_payment_method'
        ),
        CheckConstraint("status IN ('confirmed', 'pending', 'cancelled')", name='recovery_status'),
        Index('ix_recovery_sale', 'sale_id'),
        Index('ix_recovery_customer', 'customer_id'),
        Index('ix_recovery_status', 'status'),
        Index('ix_recovery_date', 'recovery_date'),
    )

    def __repr__(self):
        return f"<RecoveryTransaction(id={self.id}, sale='{self.sale_number}', amount={self.amount}, status='{self.status}')>"
