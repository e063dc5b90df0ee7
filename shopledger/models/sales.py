"""
Shop Ledger Sales Models
SQLAlchemy models for sales, sale lines and their ledger fields
"""
from sqlalchemy import (
    Column, String, Integer, Numeric, DateTime, Text,
    ForeignKey, CheckConstraint, Index, inspect
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shopledger.core.database import Base


class SaleRecord(Base):
    """
    Sale - unit of account for the recovery ledger

    Financial base fields are fixed when the sale is first stored. The ledger
    fields (total_recovered onward) are maintained by the reconciliation
    engine. Rows written before recovery tracking existed carry NULL in
    recovery_status, outstanding_amount, total_recovered and due_date.
    legacy_recovered keeps whatever such a row had already recovered, since
    no recovery log entries stand behind it.
    """
    __tablename__ = "sales"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True, doc="Sale ID")
    sale_number = Column(String(20), nullable=False, unique=True, doc="Sale number (SALE-NNNNNN)")

    # Parties
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, doc="Customer ID")
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), doc="Supplier ID")

    # Financial Base Fields
    subtotal = Column(Numeric(12, 2), nullable=False, default=0, doc="Sum of line totals")
    discount_type = Column(String(10), nullable=False, default='none', doc="Discount type: percentage, fixed, none")
    discount_value = Column(Numeric(12, 2), nullable=False, default=0, doc="Discount percentage or fixed amount")
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0, doc="Discount amount")
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0, doc="Tax rate percentage")
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0, doc="Tax amount")
    grand_total = Column(Numeric(12, 2), nullable=False, doc="Subtotal - discount + tax")
    total_profit = Column(Numeric(12, 2), nullable=False, default=0, doc="Profit over all lines")
    profit_margin = Column(Numeric(5, 2), nullable=False, default=0, doc="Profit as percentage of grand total")
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0, doc="Paid at the point of sale")
    change_due = Column(Numeric(12, 2), nullable=False, default=0, doc="Change returned to customer")
    payment_method = Column(String(20), default='cash', doc="Payment method at point of sale")
    payment_status = Column(String(10), doc="Payment status: paid, partial, pending")
    sale_status = Column(String(10), nullable=False, default='completed', doc="Sale status: completed, pending, cancelled")
    notes = Column(Text, doc="Sale notes")
    sale_date = Column(DateTime, nullable=False, doc="Sale date")

    # Recovery Ledger
    total_recovered = Column(Numeric(12, 2), doc="Legacy baseline plus sum of active recoveries")
    legacy_recovered = Column(Numeric(12, 2), doc="Recovered before the recovery log existed")
    outstanding_amount = Column(Numeric(12, 2), doc="Grand total not yet collected")
    recovery_status = Column(String(20), doc="Recovery status: unpaid, partially_paid, fully_paid, overdue")
    due_date = Column(DateTime, doc="Payment due date")
    last_recovery_date = Column(DateTime, doc="Date of the latest recovery")
    recovery_notes = Column(Text, doc="Dated recovery notes, one per line")

    # Optimistic concurrency counter
    version_id = Column(Integer, nullable=False, doc="Row version")

    # Audit Trail
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    # Relationships
    customer = relationship("Customer")
    supplier = relationship("Supplier")
    items = relationship("SaleItemRec", back_populates="sale", cascade="all, delete-orphan",
                         order_by="SaleItemRec.id")
    recoveries = relationship("RecoveryTransaction", back_populates="sale",
                              order_by="RecoveryTransaction.recovery_date.desc()")

    __mapper_args__ = {"version_id_col": version_id}

    # Table constraints
    __table_args__ = (
        CheckConstraint("discount_type IN ('percentage', 'fixed', 'none')", name='sale_discount_type'),
        CheckConstraint("payment_status IN ('paid', 'partial', 'pending')", name='sale_payment_status'),
        CheckConstraint(
            "recovery_status IN ('unpaid', 'partially_paid', 'fully_paid', 'overdue')",
            name='sale_recovery_status'
        ),
        CheckConstraint("sale_status IN ('completed', 'pending', 'cancelled')", name='sale_status'),
        CheckConstraint('tax_rate >= 0 AND tax_rate <= 100', name='sale_tax_rate'),
        CheckConstraint('amount_paid >= 0', name='sale_amount_paid'),
        CheckConstraint('outstanding_amount >= 0', name='sale_outstanding'),
        CheckConstraint('legacy_recovered >= 0', name='sale_legacy_recovered'),
        Index('ix_sales_customer', 'customer_id'),
        Index('ix_sales_recovery_status', 'recovery_status'),
        Index('ix_sales_due_date', 'due_date'),
        Index('ix_sales_sale_date', 'sale_date'),
    )

    @property
    def is_legacy(self) -> bool:
        """True for rows written before recovery tracking existed"""
        return self.recovery_status is None

    def apply_totals(self, totals):
        """
        Seed the financial base and ledger fields from a SaleTotalsResult.

        Only allowed before the row is first stored; later updates must never
        re-derive totals or the opening balance.
        """
        if inspect(self).has_identity:
            raise RuntimeError(f"Sale {self.sale_number} totals are fixed once stored")

        self.subtotal = totals.subtotal
        self.discount_amount = totals.discount_amount
        self.tax_amount = totals.tax_amount
        self.grand_total = totals.grand_total
        self.change_due = totals.change_due
        self.total_profit = totals.total_profit
        self.profit_margin = totals.profit_margin
        self.total_recovered = totals.total_recovered
        self.legacy_recovered = totals.total_recovered
        self.outstanding_amount = totals.outstanding_amount
        self.payment_status = totals.payment_status.value
        self.recovery_status = totals.recovery_status.value

    def __repr__(self):
        return f"<SaleRecord(sale_number='{self.sale_number}', outstanding={self.outstanding_amount})>"


class SaleItemRec(Base):
    """Sale line"""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, autoincrement=True, doc="Line ID")
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, doc="Sale ID")
    product_id = Column(Integer, nullable=False, doc="Product ID")
    product_name = Column(String(100), nullable=False, default='', doc="Product name at time of sale")
    quantity = Column(Integer, nullable=False, doc="Quantity sold")
    unit_price = Column(Numeric(12, 2), nullable=False, doc="Selling price per unit")
    actual_price = Column(Numeric(12, 2), nullable=False, default=0, doc="Cost price per unit")
    total = Column(Numeric(12, 2), nullable=False, doc="Quantity x unit price")
    profit_per_unit = Column(Numeric(12, 2), nullable=False, default=0, doc="Unit price - cost price")
    total_profit = Column(Numeric(12, 2), nullable=False, default=0, doc="Profit per unit x quantity")

    sale = relationship("SaleRecord", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity >= 1', name='sale_item_quantity'),
        CheckConstraint('unit_price >= 0', name='sale_item_unit_price'),
        Index('ix_sale_items_sale', 'sale_id'),
        Index('ix_sale_items_product', 'product_id'),
    )
