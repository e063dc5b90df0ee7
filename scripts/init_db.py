#!/usr/bin/env python3
"""
Shop Ledger Database Initialization Script
Creates the ledger tables and seeds the sale number sequence
"""
import argparse

from sqlalchemy import inspect

from shopledger.core.config import settings
from shopledger.core.database import SessionLocal, engine, init_db, ledger_transaction
from shopledger.core.logging import setup_logging, get_logger
from shopledger.models import SequenceRec
from shopledger.services.sales.sale_entry import SALE_SEQUENCE

logger = get_logger("database")


def init_database(start_at: int = 0):
    """Create missing tables and make sure the sale sequence row exists"""
    logger.info(f"Initializing database at {engine.url.render_as_string(hide_password=True)}")
    init_db()

    tables = sorted(inspect(engine).get_table_names())
    logger.info(f"Tables present: {', '.join(tables)}")

    db = SessionLocal()
    try:
        with ledger_transaction(db, "Sequence seeding"):
            sequence = db.get(SequenceRec, SALE_SEQUENCE)
            if sequence is None:
                db.add(SequenceRec(name=SALE_SEQUENCE, last_value=start_at))
                logger.info(f"Sale sequence created; next number is {settings.SALE_NUMBER_PREFIX}-{start_at + 1}")
            else:
                logger.info(f"Sale sequence already at {sequence.last_value}")
    finally:
        db.close()

    logger.info("Database initialization completed successfully")


def main():
    parser = argparse.ArgumentParser(description="Create Shop Ledger tables")
    parser.add_argument(
        "--start-at", type=int, default=0,
        help="Last sale number already issued, for stores moving over from another system"
    )
    args = parser.parse_args()

    setup_logging()
    init_database(start_at=args.start_at)


if __name__ == "__main__":
    main()
