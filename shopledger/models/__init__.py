"""
Shop Ledger SQLAlchemy Models
"""

# Import all models to ensure they are registered with SQLAlchemy
from .system import SequenceRec
from .customer import Customer, Supplier
from .sales import SaleRecord, SaleItemRec
from .recovery import RecoveryTransaction
from .price_history import CustomerPriceHistoryRec

__all__ = [
    "SequenceRec",
    "Customer",
    "Supplier",
    "SaleRecord",
    "SaleItemRec",
    "RecoveryTransaction",
    "CustomerPriceHistoryRec",
]
