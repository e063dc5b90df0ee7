"""
API Dependencies
Common dependencies for API endpoints
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from shopledger.core.config import settings
from shopledger.core.database import get_db
from shopledger.services.recovery.reconciliation import BalanceReconciliationEngine
from shopledger.services.recovery.recovery_entry import RecoveryService
from shopledger.services.recovery.recovery_inquiry import RecoveryInquiryService
from shopledger.services.sales.sale_entry import SaleEntryService


@dataclass
class Pagination:
    page: int
    limit: int


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page")
) -> Pagination:
    return Pagination(page=page, limit=limit)


def get_clock() -> Callable[[], datetime]:
    """
    Time source for ledger services.

    Overridden in tests to pin "now" for due-date and overdue checks.
    """
    return datetime.now


def get_sale_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> SaleEntryService:
    return SaleEntryService(db, clock=clock)


def get_recovery_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> RecoveryService:
    return RecoveryService(db, clock=clock)


def get_inquiry_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> RecoveryInquiryService:
    return RecoveryInquiryService(db, clock=clock)


def get_reconciliation_engine(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> BalanceReconciliationEngine:
    return BalanceReconciliationEngine(db, clock=clock)


__all__ = [
    "get_db",
    "Pagination",
    "get_pagination",
    "get_clock",
    "get_sale_service",
    "get_recovery_service",
    "get_inquiry_service",
    "get_reconciliation_engine",
]
