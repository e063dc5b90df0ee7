"""
Recovery Inquiry Service
Read-only ledger views: outstanding, overdue and fully paid sales, histories
and summaries
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from shopledger.core.config import settings
from shopledger.core.exceptions import NotFoundError
from shopledger.models.recovery import RecoveryTransaction
from shopledger.models.sales import SaleRecord
from shopledger.services.business_logic import (
    LedgerBucket, LedgerSnapshot, RecoveryStatus, RecoveryTransactionStatus, ZERO,
    classify_sale, days_overdue, ledger_snapshot, money
)
from shopledger.services.customer_lookup import CustomerLookupService


@dataclass
class SaleLedgerEntry:
    """A sale with its effective ledger state"""
    sale: SaleRecord
    snapshot: LedgerSnapshot
    days_overdue: int = 0


class RecoveryInquiryService:
    """
    Ledger views

    Every view classifies sales through ledger_snapshot(), so legacy rows are
    reported exactly as the backfill would store them. Candidate rows are
    narrowed in SQL by customer; bucketing, sorting and paging happen here.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.lookup = CustomerLookupService(db)

    def _entries(self, customer_id: Optional[int] = None, now: Optional[datetime] = None) -> List[SaleLedgerEntry]:
        now = now or self.clock()
        query = self.db.query(SaleRecord).options(
            joinedload(SaleRecord.customer), joinedload(SaleRecord.supplier)
        )
        if customer_id is not None:
            query = query.filter(SaleRecord.customer_id == customer_id)

        entries = []
        for sale in query.all():
            snapshot = ledger_snapshot(classify_sale(sale), now)
            overdue_days = 0
            if snapshot.bucket == LedgerBucket.OVERDUE:
                overdue_days = days_overdue(snapshot.due_date, now)
            entries.append(SaleLedgerEntry(sale=sale, snapshot=snapshot, days_overdue=overdue_days))
        return entries

    def list_outstanding(self, customer_id: Optional[int] = None, page: int = 1,
                         limit: int = settings.DEFAULT_PAGE_SIZE) -> Tuple[List[SaleLedgerEntry], int]:
        """Sales with a balance (overdue included), newest sale first"""
        entries = [
            entry for entry in self._entries(customer_id)
            if entry.snapshot.bucket in (LedgerBucket.OUTSTANDING, LedgerBucket.OVERDUE)
        ]
        entries.sort(key=lambda e: (e.sale.sale_date, e.sale.id), reverse=True)
        return paginate(entries, page, limit)

    def list_overdue(self, customer_id: Optional[int] = None) -> List[SaleLedgerEntry]:
        """Overdue sales, earliest due date first"""
        entries = [
            entry for entry in self._entries(customer_id)
            if entry.snapshot.bucket == LedgerBucket.OVERDUE
        ]
        entries.sort(key=lambda e: (e.snapshot.due_date, e.sale.id))
        return entries

    def list_fully_paid(self, customer_id: Optional[int] = None, page: int = 1,
                        limit: int = settings.DEFAULT_PAGE_SIZE) -> Tuple[List[SaleLedgerEntry], int]:
        entries = [
            entry for entry in self._entries(customer_id)
            if entry.snapshot.bucket == LedgerBucket.FULLY_PAID
        ]
        entries.sort(key=lambda e: (e.sale.sale_date, e.sale.id), reverse=True)
        return paginate(entries, page, limit)

    def get_sale_recovery_history(self, sale_id: int) -> List[RecoveryTransaction]:
        """Confirmed recoveries for a sale, newest first"""
        if self.db.get(SaleRecord, sale_id) is None:
            raise NotFoundError("Sale", sale_id)
        return (
            self.db.query(RecoveryTransaction)
            .options(joinedload(RecoveryTransaction.customer))
            .filter(
                RecoveryTransaction.sale_id == sale_id,
                RecoveryTransaction.status == RecoveryTransactionStatus.CONFIRMED.value
            )
            .order_by(RecoveryTransaction.recovery_date.desc(), RecoveryTransaction.id.desc())
            .all()
        )

    def list_recoveries(self, page: int = 1,
                        limit: int = settings.DEFAULT_PAGE_SIZE) -> Tuple[List[RecoveryTransaction], int]:
        """Confirmed recoveries across all sales, newest first"""
        query = self.db.query(RecoveryTransaction).filter(
            RecoveryTransaction.status == RecoveryTransactionStatus.CONFIRMED.value
        )
        total = query.count()
        recoveries = (
            query.options(joinedload(RecoveryTransaction.customer), joinedload(RecoveryTransaction.sale))
            .order_by(RecoveryTransaction.recovery_date.desc(), RecoveryTransaction.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return recoveries, total

    def get_customer_recovery_summary(self, customer_id: int) -> Dict:
        """
        Recovery statistics and open balance for one customer

        recovery_stats covers confirmed recoveries only.
        """
        customer = self.lookup.get_customer_summary(customer_id)

        recoveries = (
            self.db.query(RecoveryTransaction)
            .filter(
                RecoveryTransaction.customer_id == customer_id,
                RecoveryTransaction.status == RecoveryTransactionStatus.CONFIRMED.value
            )
            .order_by(RecoveryTransaction.recovery_date.desc(), RecoveryTransaction.id.desc())
            .all()
        )

        outstanding = [
            entry for entry in self._entries(customer_id)
            if entry.snapshot.bucket in (LedgerBucket.OUTSTANDING, LedgerBucket.OVERDUE)
        ]
        outstanding.sort(key=lambda e: (e.sale.sale_date, e.sale.id), reverse=True)

        return {
            "customer": customer,
            "recovery_stats": {
                "total_recovered": money(sum((r.amount for r in recoveries), ZERO)),
                "total_recoveries": len(recoveries),
                "last_recovery_date": recoveries[0].recovery_date if recoveries else None,
                "recoveries": [
                    {
                        "amount": money(r.amount),
                        "date": r.recovery_date,
                        "sale_number": r.sale_number,
                        "payment_method": r.payment_method,
                    }
                    for r in recoveries
                ],
            },
            "outstanding_sales": outstanding,
            "total_outstanding": money(sum((e.snapshot.outstanding_amount for e in outstanding), ZERO)),
        }

    def get_dashboard_summary(self) -> Dict:
        """Counts per recovery status, recent recoveries and the worst overdue sales"""
        entries = self._entries()

        counts = {status: 0 for status in RecoveryStatus}
        total_outstanding = ZERO
        for entry in entries:
            counts[entry.snapshot.recovery_status] += 1
            total_outstanding += entry.snapshot.outstanding_amount

        overdue = [e for e in entries if e.snapshot.bucket == LedgerBucket.OVERDUE]
        overdue.sort(key=lambda e: (e.snapshot.due_date, e.sale.id))

        recent, _ = self.list_recoveries(page=1, limit=settings.DASHBOARD_RECENT_RECOVERIES)

        return {
            "stats": {
                "total_outstanding": total_outstanding,
                "total_sales": len(entries),
                "unpaid_sales": counts[RecoveryStatus.UNPAID],
                "partially_paid_sales": counts[RecoveryStatus.PARTIALLY_PAID],
                "overdue_sales": counts[RecoveryStatus.OVERDUE],
                "fully_paid_sales": counts[RecoveryStatus.FULLY_PAID],
            },
            "recent_recoveries": recent,
            "overdue_sales": overdue[:settings.DASHBOARD_TOP_OVERDUE],
            "total_overdue": money(sum((e.snapshot.outstanding_amount for e in overdue), ZERO)),
        }


def paginate(items: List, page: int, limit: int) -> Tuple[List, int]:
    """Slice a sorted list; returns (page items, total count)"""
    start = (page - 1) * limit
    return items[start:start + limit], len(items)
