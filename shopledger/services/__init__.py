"""
Shop Ledger Business Services
"""

from .business_logic import SaleCalculationService, ledger_snapshot, classify_sale
from .customer_lookup import CustomerLookupService
from .sales.sale_entry import SaleEntryService, SaleCreationResult
from .sales.price_history import PriceHistorySink
from .recovery.reconciliation import BalanceReconciliationEngine, MigrationResult
from .recovery.recovery_entry import RecoveryService
from .recovery.recovery_inquiry import RecoveryInquiryService

__all__ = [
    "SaleCalculationService",
    "ledger_snapshot",
    "classify_sale",
    "CustomerLookupService",
    "SaleEntryService",
    "SaleCreationResult",
    "PriceHistorySink",
    "BalanceReconciliationEngine",
    "MigrationResult",
    "RecoveryService",
    "RecoveryInquiryService",
]
