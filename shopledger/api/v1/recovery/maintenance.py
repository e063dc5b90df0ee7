"""Recovery ledger maintenance endpoints"""

from fastapi import APIRouter, Depends, Query

from shopledger.api.deps import get_reconciliation_engine
from shopledger.schemas.recovery import MarkOverdueResponse, MigrationResponse
from shopledger.services.recovery.reconciliation import BalanceReconciliationEngine

router = APIRouter()


@router.post("/migrate-existing-sales", response_model=MigrationResponse)
def migrate_existing_sales(
    dry_run: bool = Query(False, description="Count legacy sales without changing them"),
    engine: BalanceReconciliationEngine = Depends(get_reconciliation_engine)
):
    """
    Backfill ledger fields on sales created before recovery tracking.

    Safe to call repeatedly; migrated sales are skipped.
    """
    return engine.migrate_existing_sales(dry_run=dry_run)


@router.post("/mark-overdue", response_model=MarkOverdueResponse)
def mark_overdue_sales(
    engine: BalanceReconciliationEngine = Depends(get_reconciliation_engine)
):
    return MarkOverdueResponse(marked=engine.mark_overdue_sales())
