"""
Tests for ledger calculations
Sale totals, status derivation and the dual-schema snapshot
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta

from shopledger.core.config import settings
from shopledger.services.business_logic import (
    CURRENCY_PRECISION, SaleCalculationService, CurrentSale, LegacySale, LedgerBucket,
    PaymentStatus, RecoveryStatus, derive_status,
    ledger_snapshot, money, outstanding_for, default_due_date, days_overdue
)

NOW = datetime(2024, 3, 15, 12, 0, 0)


def _line(quantity=1, unit_price="100.00", actual_price="0"):
    return {
        "product_id": 1,
        "product_name": "Item",
        "quantity": quantity,
        "unit_price": Decimal(unit_price),
        "actual_price": Decimal(actual_price),
    }


class TestSaleCalculation:
    """Test suite for SaleCalculationService"""

    def test_percentage_discount_then_tax(self):
        """Discount comes off the subtotal, tax applies to the discounted amount"""
        result = SaleCalculationService.calculate_sale(
            items=[_line(quantity=2, unit_price="50.00")],
            discount_type="percentage",
            discount_value=Decimal("10"),
            tax_rate=Decimal("5"),
            amount_paid=Decimal("0")
        )

        assert result.subtotal == Decimal("100.00")
        assert result.discount_amount == Decimal("10.00")
        assert result.tax_amount == Decimal("4.50")
        assert result.grand_total == Decimal("94.50")
        assert result.outstanding_amount == Decimal("94.50")

    def test_fixed_discount(self):
        result = SaleCalculationService.calculate_sale(
            items=[_line(unit_price="80.00")],
            discount_type="fixed",
            discount_value=Decimal("15"),
        )

        assert result.discount_amount == Decimal("15.00")
        assert result.grand_total == Decimal("65.00")

    def test_fixed_discount_capped_at_subtotal(self):
        result = SaleCalculationService.calculate_sale(
            items=[_line(unit_price="20.00")],
            discount_type="fixed",
            discount_value=Decimal("50"),
        )

        assert result.grand_total == Decimal("0.00")

    def test_overpayment_gives_change_and_zero_balance(self):
        result = SaleCalculationService.calculate_sale(
            items=[_line(unit_price="75.00")],
            amount_paid=Decimal("100.00")
        )

        assert result.change_due == Decimal("25.00")
        assert result.outstanding_amount == Decimal("0.00")
        assert result.payment_status == PaymentStatus.PAID
        assert result.recovery_status == RecoveryStatus.FULLY_PAID

    def test_partial_payment_status(self):
        result = SaleCalculationService.calculate_sale(items=[_line()], amount_paid=Decimal("40"))

        assert result.outstanding_amount == Decimal("60.00")
        assert result.payment_status == PaymentStatus.PARTIAL
        assert result.recovery_status == RecoveryStatus.PARTIALLY_PAID

    def test_unpaid_status(self):
        result = SaleCalculationService.calculate_sale(items=[_line()])

        assert result.payment_status == PaymentStatus.PENDING
        assert result.recovery_status == RecoveryStatus.UNPAID

    def test_profit_per_line_and_margin(self):
        result = SaleCalculationService.calculate_sale(
            items=[_line(quantity=4, unit_price="25.00", actual_price="20.00")]
        )

        line = result.lines[0]
        assert line.total == Decimal("100.00")
        assert line.profit_per_unit == Decimal("5.00")
        assert line.total_profit == Decimal("20.00")
        assert result.total_profit == Decimal("20.00")
        assert result.profit_margin == Decimal("20.00")

    def test_rounding_is_half_up(self):
        result = SaleCalculationService.calculate_sale(
            items=[_line(unit_price="10.05")],
            tax_rate=Decimal("5")
        )

        # 10.05 * 5% = 0.5025 -> 0.50
        assert result.tax_amount == Decimal("0.50")
        assert money(Decimal("0.125")) == Decimal("0.13")

    def test_precision_follows_settings(self):
        assert CURRENCY_PRECISION == Decimal(1).scaleb(-settings.CURRENCY_DECIMAL_PLACES)
        assert money("7").as_tuple().exponent == -settings.CURRENCY_DECIMAL_PLACES


class TestStatusDerivation:
    """Test suite for derive_status"""

    def test_zero_balance_with_payment_is_fully_paid(self):
        assert derive_status(Decimal("0"), Decimal("100"), Decimal("0")) == (
            PaymentStatus.PAID, RecoveryStatus.FULLY_PAID
        )

    def test_zero_balance_without_payment_is_not_fully_paid(self):
        """A zero-value sale nobody paid for stays unpaid"""
        payment_status, recovery_status = derive_status(Decimal("0"), Decimal("0"), Decimal("0"))
        assert recovery_status == RecoveryStatus.UNPAID
        assert payment_status == PaymentStatus.PENDING

    def test_past_due_with_balance_is_overdue(self):
        due = NOW - timedelta(days=1)
        payment_status, recovery_status = derive_status(Decimal("60"), Decimal("40"), Decimal("0"), due, NOW)

        assert recovery_status == RecoveryStatus.OVERDUE
        assert payment_status == PaymentStatus.PARTIAL

    def test_overdue_needs_now(self):
        due = NOW - timedelta(days=1)
        _, recovery_status = derive_status(Decimal("60"), Decimal("40"), Decimal("0"), due)
        assert recovery_status == RecoveryStatus.PARTIALLY_PAID

    def test_recovered_counts_as_payment(self):
        _, recovery_status = derive_status(Decimal("0"), Decimal("0"), Decimal("100"))
        assert recovery_status == RecoveryStatus.FULLY_PAID

    def test_outstanding_never_negative(self):
        assert outstanding_for(Decimal("100"), Decimal("80"), Decimal("50")) == Decimal("0.00")


class TestLedgerSnapshot:
    """Test suite for the dual-schema snapshot"""

    def _legacy(self, grand_total, amount_paid, payment_status=None, total_recovered=None, sale_date=NOW):
        return LegacySale(
            grand_total=Decimal(grand_total),
            amount_paid=Decimal(amount_paid),
            total_recovered=total_recovered,
            payment_status=payment_status,
            sale_date=sale_date,
            due_date=None
        )

    def test_legacy_fully_paid_without_migration(self):
        snapshot = ledger_snapshot(self._legacy("100", "100", "paid"), NOW)

        assert snapshot.is_legacy
        assert snapshot.outstanding_amount == Decimal("0")
        assert snapshot.recovery_status == RecoveryStatus.FULLY_PAID
        assert snapshot.bucket == LedgerBucket.FULLY_PAID

    def test_legacy_partial_from_amounts(self):
        snapshot = ledger_snapshot(self._legacy("100", "30"), NOW)

        assert snapshot.outstanding_amount == Decimal("70")
        assert snapshot.recovery_status == RecoveryStatus.PARTIALLY_PAID
        assert snapshot.payment_status == PaymentStatus.PARTIAL
        assert snapshot.bucket == LedgerBucket.OUTSTANDING

    def test_legacy_stale_paid_status_loses_to_balance(self):
        """The balance wins over a stored payment_status"""
        snapshot = ledger_snapshot(self._legacy("100", "50", "paid"), NOW)

        assert snapshot.recovery_status == RecoveryStatus.PARTIALLY_PAID
        assert snapshot.payment_status == PaymentStatus.PARTIAL

    def test_legacy_due_date_defaults_to_sale_date_plus_grace(self):
        snapshot = ledger_snapshot(self._legacy("100", "0"), NOW)
        assert snapshot.due_date == default_due_date(NOW)
        assert snapshot.due_date == NOW + timedelta(days=30)

    def test_legacy_overdue_override(self):
        old = NOW - timedelta(days=45)
        snapshot = ledger_snapshot(self._legacy("100", "0", sale_date=old), NOW)

        assert snapshot.recovery_status == RecoveryStatus.OVERDUE
        assert snapshot.bucket == LedgerBucket.OVERDUE

    def test_current_sale_becomes_overdue_at_read_time(self):
        view = CurrentSale(
            grand_total=Decimal("100"), amount_paid=Decimal("40"), total_recovered=Decimal("0"),
            outstanding_amount=Decimal("60"), payment_status="partial", recovery_status="partially_paid",
            sale_date=NOW - timedelta(days=40), due_date=NOW - timedelta(days=10)
        )
        snapshot = ledger_snapshot(view, NOW)

        assert snapshot.recovery_status == RecoveryStatus.OVERDUE
        assert snapshot.bucket == LedgerBucket.OVERDUE

    def test_current_fully_paid_ignores_due_date(self):
        view = CurrentSale(
            grand_total=Decimal("100"), amount_paid=Decimal("100"), total_recovered=Decimal("0"),
            outstanding_amount=Decimal("0"), payment_status="paid", recovery_status="fully_paid",
            sale_date=NOW - timedelta(days=90), due_date=NOW - timedelta(days=60)
        )
        snapshot = ledger_snapshot(view, NOW)

        assert snapshot.recovery_status == RecoveryStatus.FULLY_PAID
        assert snapshot.bucket == LedgerBucket.FULLY_PAID

    @pytest.mark.parametrize("grand_total,amount_paid,bucket", [
        ("100", "100", LedgerBucket.FULLY_PAID),
        ("100", "0", LedgerBucket.OUTSTANDING),
        ("0", "0", LedgerBucket.FULLY_PAID),
    ])
    def test_buckets_are_exclusive(self, grand_total, amount_paid, bucket):
        snapshot = ledger_snapshot(self._legacy(grand_total, amount_paid), NOW)
        assert snapshot.bucket == bucket

    def test_days_overdue(self):
        assert days_overdue(NOW - timedelta(days=3), NOW) == 3
        assert days_overdue(NOW + timedelta(days=3), NOW) == 0
        assert days_overdue(None, NOW) == 0
