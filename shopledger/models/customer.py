"""
Shop Ledger Party Models
Read models for customers and suppliers referenced by sales
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, CheckConstraint, Index
from sqlalchemy.sql import func
from shopledger.core.database import Base


class Customer(Base):
    """
    Customer master

    Maintained by the customer directory; the ledger only reads it.
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True, doc="Customer ID")
    name = Column(String(100), nullable=False, doc="Customer name")
    phone = Column(String(30), default='', doc="Phone number")
    email = Column(String(100), default='', doc="Email address")
    address = Column(Text, default='', doc="Postal address")
    status = Column(String(10), nullable=False, default='active', doc="Status: active, inactive")

    # Audit Trail
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name='customer_status'),
        Index('ix_customers_name', 'name'),
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"


class Supplier(Base):
    """Supplier master"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, autoincrement=True, doc="Supplier ID")
    name = Column(String(100), nullable=False, doc="Supplier name")
    phone = Column(String(30), default='', doc="Phone number")
    email = Column(String(100), default='', doc="Email address")
    address = Column(Text, default='', doc="Postal address")
    status = Column(String(10), nullable=False, default='active', doc="Status: active, inactive")

    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name='supplier_status'),
        Index('ix_suppliers_name', 'name'),
    )

    def __repr__(self):
        return f"<Supplier(id={self.id}, name='{self.name}')>"
