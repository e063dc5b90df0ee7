"""
Recovery Entry Service
Records payments against a sale's outstanding balance and changes their status
"""
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from shopledger.core.database import ledger_transaction
from shopledger.core.exceptions import NotFoundError, ValidationError
from shopledger.core.locks import ledger_locks, sale_lock_key
from shopledger.core.logging import get_logger
from shopledger.models.recovery import RecoveryTransaction
from shopledger.models.sales import SaleRecord
from shopledger.services.business_logic import (
    PaymentMethod, RecoveryTransactionStatus, ZERO,
    append_note, classify_sale, ledger_snapshot, money
)
from shopledger.services.customer_lookup import CustomerLookupService
from shopledger.services.recovery.reconciliation import BalanceReconciliationEngine

logger = get_logger("business")


class RecoveryService:
    """
    Recovery entry

    Every balance change for a sale runs under that sale's keyed lock, with
    the sale row re-read under a row lock, inside one transaction.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.lookup = CustomerLookupService(db)
        self.engine = BalanceReconciliationEngine(db, clock)

    def add_recovery(self, recovery_data: Dict) -> RecoveryTransaction:
        """
        Record a payment against a sale

        Args:
            recovery_data: customer_id, sale_id, amount, payment_method,
                reference, notes, received_by

        Returns:
            The confirmed RecoveryTransaction
        """
        amount = self._validate_amount(recovery_data.get('amount'))
        received_by = (recovery_data.get('received_by') or '').strip()
        if not received_by:
            raise ValidationError("received_by is required")
        payment_method = self._validate_payment_method(recovery_data.get('payment_method', PaymentMethod.CASH))

        customer_id = recovery_data.get('customer_id')
        sale_id = recovery_data.get('sale_id')
        self.lookup.get_customer(customer_id)
        if self.db.get(SaleRecord, sale_id) is None:
            raise NotFoundError("Sale", sale_id)

        notes = (recovery_data.get('notes') or '').strip()

        with ledger_locks.hold(sale_lock_key(sale_id)):
            with ledger_transaction(self.db, f"Recovery for sale {sale_id}"):
                now = self.clock()
                sale = self.engine.lock_sale(sale_id)
                if sale.customer_id != customer_id:
                    raise ValidationError(f"Sale {sale.sale_number} does not belong to customer {customer_id}")

                outstanding = ledger_snapshot(classify_sale(sale), now).outstanding_amount
                if amount > outstanding:
                    raise ValidationError(
                        f"Recovery amount (${amount}) cannot exceed outstanding amount (${outstanding})"
                    )

                recovery = RecoveryTransaction(
                    sale_id=sale.id,
                    customer_id=customer_id,
                    sale_number=sale.sale_number,
                    amount=amount,
                    payment_method=payment_method.value,
                    reference=recovery_data.get('reference') or '',
                    notes=notes,
                    received_by=received_by,
                    status=RecoveryTransactionStatus.CONFIRMED.value,
                    recovery_date=now
                )
                self.db.add(recovery)

                self.engine.refold(sale, now)
                sale.last_recovery_date = now
                if notes:
                    sale.recovery_notes = append_note(sale.recovery_notes, now, f"Recovery ${amount}: {notes}")

        self.db.refresh(recovery)
        logger.info(
            f"Recovery {recovery.id} of {amount} on {recovery.sale_number} by {received_by}; "
            f"outstanding now {sale.outstanding_amount} ({sale.recovery_status})"
        )
        return recovery

    def update_recovery_status(self, recovery_id: int, new_status, notes: Optional[str] = None) -> RecoveryTransaction:
        """
        Change the status of a recovery and re-fold its sale

        Moving into or out of cancelled changes total_recovered; the sale's
        outstanding amount and statuses are recomputed either way. Restoring a
        cancelled recovery is refused if it would overpay the sale.
        """
        try:
            new_status = RecoveryTransactionStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid recovery status: {new_status}")

        existing = self.db.get(RecoveryTransaction, recovery_id)
        if existing is None:
            raise NotFoundError("Recovery", recovery_id)
        sale_id = existing.sale_id

        with ledger_locks.hold(sale_lock_key(sale_id)):
            with ledger_transaction(self.db, f"Status change for recovery {recovery_id}"):
                now = self.clock()
                recovery = (
                    self.db.query(RecoveryTransaction)
                    .filter(RecoveryTransaction.id == recovery_id)
                    .with_for_update()
                    .populate_existing()
                    .one()
                )
                sale = self.engine.lock_sale(sale_id)
                old_status = RecoveryTransactionStatus(recovery.status)

                if old_status == RecoveryTransactionStatus.CANCELLED and new_status != old_status:
                    outstanding = ledger_snapshot(classify_sale(sale), now).outstanding_amount
                    if money(recovery.amount) > outstanding:
                        raise ValidationError(
                            f"Cannot restore recovery {recovery_id}: amount (${money(recovery.amount)}) "
                            f"exceeds outstanding amount (${outstanding})"
                        )

                recovery.status = new_status.value
                if notes:
                    recovery.notes = notes

                if old_status != new_status:
                    self.engine.refold(sale, now)
                    if RecoveryTransactionStatus.CANCELLED in (old_status, new_status):
                        sale.recovery_notes = append_note(
                            sale.recovery_notes, now,
                            f"Recovery {recovery_id} ${money(recovery.amount)} {old_status.value} -> {new_status.value}"
                        )

        self.db.refresh(recovery)
        logger.info(
            f"Recovery {recovery_id} {old_status.value} -> {new_status.value}; "
            f"sale {sale.sale_number} outstanding {sale.outstanding_amount}"
        )
        return recovery

    def get_recovery(self, recovery_id: int) -> RecoveryTransaction:
        recovery = self.db.get(RecoveryTransaction, recovery_id)
        if recovery is None:
            raise NotFoundError("Recovery", recovery_id)
        return recovery

    @staticmethod
    def _validate_amount(amount) -> Decimal:
        if amount is None:
            raise ValidationError("amount is required")
        try:
            amount = money(amount)
        except ArithmeticError:
            raise ValidationError(f"Invalid amount: {amount}")
        if amount <= ZERO:
            raise ValidationError("Recovery amount must be greater than zero")
        return amount

    @staticmethod
    def _validate_payment_method(method) -> PaymentMethod:
        try:
            return PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Invalid payment method: {method}")

