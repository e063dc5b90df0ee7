"""
Shop Ledger Price History Model
"""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from shopledger.core.database import Base


class CustomerPriceHistoryRec(Base):
    """Price a customer paid for a product on a given sale"""
    __tablename__ = "customer_price_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, doc="Customer ID")
    product_id = Column(Integer, nullable=False, doc="Product ID")
    price = Column(Numeric(12, 2), nullable=False, doc="Unit price charged")
    quantity = Column(Integer, nullable=False, doc="Quantity sold")
    total_amount = Column(Numeric(12, 2), nullable=False, doc="Line total")
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, doc="Sale ID")
    sale_date = Column(DateTime, nullable=False, doc="Sale date")

    created_at = Column(DateTime, server_default=func.current_timestamp())

    __table_args__ = (
        Index('ix_price_history_customer_product', 'customer_id', 'product_id', 'sale_date'),
    )
