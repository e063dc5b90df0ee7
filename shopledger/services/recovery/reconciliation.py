"""
Balance Reconciliation Engine
Folds the recovery log into sale ledger fields and backfills legacy sales
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from shopledger.core.config import settings
from shopledger.core.database import ledger_transaction
from shopledger.core.exceptions import NotFoundError
from shopledger.core.logging import get_logger
from shopledger.models.recovery import RecoveryTransaction
from shopledger.models.sales import SaleRecord
from shopledger.services.business_logic import (
    ACTIVE_RECOVERY_STATUSES, RecoveryStatus, ZERO,
    classify_sale, default_due_date, derive_status, ledger_snapshot,
    money, outstanding_for
)

logger = get_logger("business")


@dataclass
class MigrationResult:
    """Outcome of a legacy backfill run"""
    total_processed: int
    updated: int
    dry_run: bool = False


class BalanceReconciliationEngine:
    """
    Ledger state of a sale

    Callers must hold the sale's keyed lock and run inside a
    ledger_transaction; the engine only reads and mutates rows.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock

    def lock_sale(self, sale_id: int) -> SaleRecord:
        """Re-read a sale under a row lock, discarding any stale identity-map copy"""
        sale = (
            self.db.query(SaleRecord)
            .filter(SaleRecord.id == sale_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        return sale

    def active_recovery_total(self, sale_id: int):
        total = (
            self.db.query(func.coalesce(func.sum(RecoveryTransaction.amount), 0))
            .filter(
                RecoveryTransaction.sale_id == sale_id,
                RecoveryTransaction.status.in_(ACTIVE_RECOVERY_STATUSES)
            )
            .scalar()
        )
        return money(total)

    def refold(self, sale: SaleRecord, now: Optional[datetime] = None) -> SaleRecord:
        """
        Recompute total_recovered, outstanding_amount and both statuses

        total_recovered is the legacy baseline plus the sum of the log, so
        repeated calls are harmless. A legacy sale becomes a current-format
        sale here, keeping what it had already recovered as its baseline.
        """
        now = now or self.clock()
        self.db.flush()

        if sale.legacy_recovered is None:
            sale.legacy_recovered = money(sale.total_recovered) if sale.is_legacy else ZERO
        total_recovered = money(sale.legacy_recovered) + self.active_recovery_total(sale.id)
        outstanding = outstanding_for(sale.grand_total, sale.amount_paid, total_recovered)
        if sale.due_date is None:
            sale.due_date = default_due_date(sale.sale_date)

        payment_status, recovery_status = derive_status(
            outstanding, sale.amount_paid, total_recovered, sale.due_date, now
        )

        sale.total_recovered = total_recovered
        sale.outstanding_amount = outstanding
        sale.payment_status = payment_status.value
        sale.recovery_status = recovery_status.value

        logger.debug(
            f"Refold {sale.sale_number}: recovered={total_recovered}, "
            f"outstanding={outstanding}, status={recovery_status.value}"
        )
        return sale

    def migrate_existing_sales(self, now: Optional[datetime] = None, dry_run: bool = False) -> MigrationResult:
        """
        Backfill ledger fields on sales created before recovery tracking

        Only rows with recovery_status IS NULL are touched, so a second run
        processes nothing.
        """
        now = now or self.clock()

        legacy_sales = (
            self.db.query(SaleRecord)
            .filter(SaleRecord.recovery_status.is_(None))
            .order_by(SaleRecord.id)
            .all()
        )
        total_processed = len(legacy_sales)

        if dry_run:
            logger.info(f"Legacy sale migration dry run: {total_processed} sales would be migrated")
            return MigrationResult(total_processed=total_processed, updated=0, dry_run=True)

        updated = 0
        with ledger_transaction(self.db, "Legacy sale migration"):
            for sale in legacy_sales:
                snapshot = ledger_snapshot(classify_sale(sale), now)
                sale.legacy_recovered = snapshot.total_recovered
                sale.total_recovered = snapshot.total_recovered
                sale.outstanding_amount = snapshot.outstanding_amount
                sale.payment_status = snapshot.payment_status.value
                sale.recovery_status = snapshot.recovery_status.value
                sale.due_date = snapshot.due_date
                updated += 1

        logger.info(f"Legacy sale migration: processed={total_processed}, updated={updated}")
        return MigrationResult(total_processed=total_processed, updated=updated)

    def mark_overdue_sales(self, now: Optional[datetime] = None) -> int:
        """
        Persist the overdue transition for current sales past their due date

        Returns:
            Number of sales moved to overdue
        """
        now = now or self.clock()

        candidates = (
            self.db.query(SaleRecord)
            .filter(
                SaleRecord.recovery_status.in_(
                    (RecoveryStatus.UNPAID.value, RecoveryStatus.PARTIALLY_PAID.value)
                ),
                SaleRecord.outstanding_amount > ZERO,
                SaleRecord.due_date.isnot(None),
                SaleRecord.due_date < now
            )
            .order_by(SaleRecord.id)
            .all()
        )

        marked = 0
        with ledger_transaction(self.db, "Mark overdue sales"):
            for sale in candidates:
                sale.recovery_status = RecoveryStatus.OVERDUE.value
                marked += 1

        if marked:
            logger.info(f"Marked {marked} sales overdue (grace period {settings.DEFAULT_DUE_DAYS} days)")
        return marked
