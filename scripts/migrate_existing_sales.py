#!/usr/bin/env python3
"""
Legacy Sale Migration Script
Backfills recovery ledger fields on sales recorded before recovery tracking
"""
import argparse
import sys

from shopledger.core.database import SessionLocal
from shopledger.core.exceptions import ShopLedgerException
from shopledger.core.logging import setup_logging, get_logger
from shopledger.services.recovery.reconciliation import BalanceReconciliationEngine

logger = get_logger("business")


def main() -> int:
    parser = argparse.ArgumentParser(description="Backfill ledger fields on legacy sales")
    parser.add_argument("--dry-run", action="store_true", help="Count legacy sales without changing them")
    parser.add_argument("--mark-overdue", action="store_true",
                        help="Also persist the overdue status for past-due sales")
    args = parser.parse_args()

    setup_logging()

    db = SessionLocal()
    try:
        engine = BalanceReconciliationEngine(db)
        result = engine.migrate_existing_sales(dry_run=args.dry_run)
        if args.dry_run:
            print(f"{result.total_processed} legacy sales would be migrated")
        else:
            print(f"Migrated {result.updated} of {result.total_processed} legacy sales")

        if args.mark_overdue and not args.dry_run:
            print(f"Marked {engine.mark_overdue_sales()} sales overdue")
    except ShopLedgerException as e:
        logger.error(f"Migration failed: {e}")
        return 1
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
