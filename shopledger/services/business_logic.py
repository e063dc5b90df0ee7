"""
Shop Ledger Business Logic
Sale totals, balance derivation and recovery status rules
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Tuple, Optional, Union
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta

from shopledger.core.config import settings
from shopledger.core.logging import get_logger

logger = get_logger("business")

CURRENCY_PRECISION = Decimal(1).scaleb(-settings.CURRENCY_DECIMAL_PLACES)
ZERO = Decimal('0.00')
HUNDRED = Decimal('100')


def money(value) -> Decimal:
    """Coerce a number to a currency Decimal (CURRENCY_DECIMAL_PLACES, ROUND_HALF_UP)"""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    NONE = "none"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"


class RecoveryStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    FULLY_PAID = "fully_paid"
    OVERDUE = "overdue"


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class RecoveryTransactionStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    MIXED = "mixed"


class LedgerBucket(str, Enum):
    """Mutually exclusive view a sale falls into"""
    OUTSTANDING = "outstanding"
    OVERDUE = "overdue"
    FULLY_PAID = "fully_paid"


# Recoveries in these states count toward total_recovered
ACTIVE_RECOVERY_STATUSES = (
    RecoveryTransactionStatus.CONFIRMED.value,
    RecoveryTransactionStatus.PENDING.value,
)


@dataclass
class SaleLineResult:
    """Computed sale line"""
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    actual_price: Decimal
    total: Decimal
    profit_per_unit: Decimal
    total_profit: Decimal


@dataclass
class SaleTotalsResult:
    """Totals and opening ledger state of a new sale"""
    lines: List[SaleLineResult]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    change_due: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    total_recovered: Decimal
    outstanding_amount: Decimal
    payment_status: PaymentStatus
    recovery_status: RecoveryStatus


def outstanding_for(grand_total, amount_paid, total_recovered) -> Decimal:
    """outstanding = max(0, grand_total - amount_paid - total_recovered)"""
    return max(ZERO, money(grand_total) - money(amount_paid) - money(total_recovered))


def default_due_date(sale_date: datetime) -> datetime:
    return sale_date + timedelta(days=settings.DEFAULT_DUE_DAYS)


def is_past_due(due_date: Optional[datetime], now: Optional[datetime]) -> bool:
    return due_date is not None and now is not None and now > due_date


def derive_status(
    outstanding: Decimal,
    amount_paid: Decimal,
    total_recovered: Decimal,
    due_date: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> Tuple[PaymentStatus, RecoveryStatus]:
    """
    Derive (payment_status, recovery_status) from the balance

    fully_paid requires a zero balance and at least one payment, so a zero
    value sale nobody paid for stays unpaid. Passing ``now`` enables the
    overdue rule: a sale with a balance past its due date is overdue.
    """
    has_payment = money(amount_paid) > ZERO or money(total_recovered) > ZERO

    if outstanding <= ZERO:
        if has_payment:
            return PaymentStatus.PAID, RecoveryStatus.FULLY_PAID
        return PaymentStatus.PENDING, RecoveryStatus.UNPAID

    payment_status = PaymentStatus.PARTIAL if has_payment else PaymentStatus.PENDING
    if is_past_due(due_date, now):
        return payment_status, RecoveryStatus.OVERDUE
    if has_payment:
        return payment_status, RecoveryStatus.PARTIALLY_PAID
    return payment_status, RecoveryStatus.UNPAID


class SaleCalculationService:
    """
    Sale totals

    Applied in order: line totals, discount on subtotal, tax on the
    discounted amount, then the opening balance against the amount paid.
    """

    @staticmethod
    def calculate_line(
        product_id: int,
        product_name: str,
        quantity: int,
        unit_price: Decimal,
        actual_price: Decimal = ZERO
    ) -> SaleLineResult:
        unit_price = money(unit_price)
        actual_price = money(actual_price)
        total = money(unit_price * quantity)
        profit_per_unit = unit_price - actual_price

        return SaleLineResult(
            product_id=product_id,
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
            actual_price=actual_price,
            total=total,
            profit_per_unit=profit_per_unit,
            total_profit=money(profit_per_unit * quantity)
        )

    @staticmethod
    def calculate_discount(subtotal: Decimal, discount_type: DiscountType, discount_value: Decimal) -> Decimal:
        """
        Discount amount for the sale

        Percentage discounts are a share of the subtotal; fixed discounts are
        capped at the subtotal so the grand total never goes negative.
        """
        discount_type = DiscountType(discount_type)
        discount_value = money(discount_value)

        if discount_type == DiscountType.PERCENTAGE:
            return money(subtotal * discount_value / HUNDRED)
        if discount_type == DiscountType.FIXED:
            return min(discount_value, subtotal)
        return ZERO

    @staticmethod
    def calculate_sale(
        items: List[Dict],
        discount_type: DiscountType = DiscountType.NONE,
        discount_value: Decimal = ZERO,
        tax_rate: Decimal = ZERO,
        amount_paid: Decimal = ZERO
    ) -> SaleTotalsResult:
        """
        Calculate totals and opening ledger state for a new sale

        Args:
            items: Line dicts with product_id, product_name, quantity,
                unit_price and actual_price
            discount_type: percentage, fixed or none
            discount_value: Percentage or amount, depending on discount_type
            tax_rate: Tax percentage applied after discount
            amount_paid: Amount taken at the point of sale

        Returns:
            SaleTotalsResult; the overdue rule is not applied at creation
        """
        lines = [
            SaleCalculationService.calculate_line(
                product_id=item['product_id'],
                product_name=item.get('product_name', ''),
                quantity=int(item['quantity']),
                unit_price=item['unit_price'],
                actual_price=item.get('actual_price', ZERO)
            )
            for item in items
        ]

        subtotal = money(sum((line.total for line in lines), ZERO))
        discount_amount = SaleCalculationService.calculate_discount(subtotal, discount_type, discount_value)
        tax_amount = money((subtotal - discount_amount) * money(tax_rate) / HUNDRED)
        grand_total = subtotal - discount_amount + tax_amount

        amount_paid = money(amount_paid)
        change_due = max(ZERO, amount_paid - grand_total)
        outstanding = outstanding_for(grand_total, amount_paid, ZERO)
        payment_status, recovery_status = derive_status(outstanding, amount_paid, ZERO)

        total_profit = money(sum((line.total_profit for line in lines), ZERO))
        profit_margin = ZERO
        if grand_total > ZERO:
            profit_margin = money(total_profit / grand_total * HUNDRED)
            profit_margin = min(max(profit_margin, ZERO), HUNDRED)

        logger.debug(
            f"Sale calculation: subtotal={subtotal}, discount={discount_amount}, tax={tax_amount}, "
            f"total={grand_total}, paid={amount_paid}, outstanding={outstanding}"
        )

        return SaleTotalsResult(
            lines=lines,
            subtotal=subtotal,
            discount_amount=discount_amount,
            tax_amount=tax_amount,
            grand_total=grand_total,
            change_due=change_due,
            total_profit=total_profit,
            profit_margin=profit_margin,
            total_recovered=ZERO,
            outstanding_amount=outstanding,
            payment_status=payment_status,
            recovery_status=recovery_status
        )


# Dual-schema sale views

@dataclass(frozen=True)
class CurrentSale:
    """Sale written with native ledger fields"""
    grand_total: Decimal
    amount_paid: Decimal
    total_recovered: Decimal
    outstanding_amount: Decimal
    payment_status: Optional[str]
    recovery_status: str
    sale_date: datetime
    due_date: Optional[datetime]


@dataclass(frozen=True)
class LegacySale:
    """Sale written before recovery tracking; ledger fields may be missing"""
    grand_total: Decimal
    amount_paid: Decimal
    total_recovered: Optional[Decimal]
    payment_status: Optional[str]
    sale_date: datetime
    due_date: Optional[datetime]


SaleView = Union[CurrentSale, LegacySale]


@dataclass(frozen=True)
class LedgerSnapshot:
    """Effective ledger state of a sale at a point in time"""
    total_recovered: Decimal
    outstanding_amount: Decimal
    payment_status: PaymentStatus
    recovery_status: RecoveryStatus
    due_date: datetime
    bucket: LedgerBucket
    is_legacy: bool = False


def classify_sale(sale) -> SaleView:
    """Build the schema-appropriate view of a SaleRecord"""
    if sale.recovery_status is None or sale.outstanding_amount is None:
        return LegacySale(
            grand_total=money(sale.grand_total),
            amount_paid=money(sale.amount_paid),
            total_recovered=None if sale.total_recovered is None else money(sale.total_recovered),
            payment_status=sale.payment_status,
            sale_date=sale.sale_date,
            due_date=sale.due_date
        )
    return CurrentSale(
        grand_total=money(sale.grand_total),
        amount_paid=money(sale.amount_paid),
        total_recovered=money(sale.total_recovered),
        outstanding_amount=money(sale.outstanding_amount),
        payment_status=sale.payment_status,
        recovery_status=sale.recovery_status,
        sale_date=sale.sale_date,
        due_date=sale.due_date
    )


def _bucket_for(outstanding: Decimal, recovery_status: RecoveryStatus) -> LedgerBucket:
    if outstanding <= ZERO:
        return LedgerBucket.FULLY_PAID
    if recovery_status == RecoveryStatus.OVERDUE:
        return LedgerBucket.OVERDUE
    return LedgerBucket.OUTSTANDING


def _legacy_recovery_status(
    outstanding: Decimal,
    total_paid: Decimal,
    payment_status: Optional[str]
) -> RecoveryStatus:
    # balance first, stored payment_status only breaks ties
    if outstanding <= ZERO and total_paid > ZERO:
        return RecoveryStatus.FULLY_PAID
    if outstanding > ZERO:
        if payment_status == PaymentStatus.PARTIAL.value or total_paid > ZERO:
            return RecoveryStatus.PARTIALLY_PAID
        return RecoveryStatus.UNPAID
    # zero balance with nothing paid: a stored "paid" cannot make it fully_paid
    return RecoveryStatus.UNPAID


def ledger_snapshot(view: SaleView, now: Optional[datetime] = None) -> LedgerSnapshot:
    """
    Effective ledger state used by every view and by the legacy backfill

    Legacy sales are derived from grand_total and amounts paid. Current
    sales use their stored fields, with unpaid or partially paid sales
    reported as overdue once past due.
    """
    now = now or datetime.now()
    due_date = view.due_date or default_due_date(view.sale_date)

    if isinstance(view, LegacySale):
        recovered = view.total_recovered or ZERO
        total_paid = view.amount_paid + recovered
        outstanding = max(ZERO, view.grand_total - total_paid)
        recovery_status = _legacy_recovery_status(outstanding, total_paid, view.payment_status)
        if outstanding > ZERO and now > due_date:
            recovery_status = RecoveryStatus.OVERDUE

        if view.payment_status in {status.value for status in PaymentStatus}:
            payment_status = PaymentStatus(view.payment_status)
        else:
            payment_status, _ = derive_status(outstanding, view.amount_paid, recovered)
        # the balance wins over a stale stored payment_status
        if outstanding > ZERO and payment_status == PaymentStatus.PAID:
            payment_status = PaymentStatus.PARTIAL
        elif recovery_status == RecoveryStatus.FULLY_PAID:
            payment_status = PaymentStatus.PAID
        elif outstanding <= ZERO:
            payment_status = PaymentStatus.PENDING

        return LedgerSnapshot(
            total_recovered=recovered,
            outstanding_amount=outstanding,
            payment_status=payment_status,
            recovery_status=recovery_status,
            due_date=due_date,
            bucket=_bucket_for(outstanding, recovery_status),
            is_legacy=True
        )

    outstanding = view.outstanding_amount
    recovery_status = RecoveryStatus(view.recovery_status)
    if (
        recovery_status in (RecoveryStatus.UNPAID, RecoveryStatus.PARTIALLY_PAID)
        and outstanding > ZERO
        and now > due_date
    ):
        recovery_status = RecoveryStatus.OVERDUE

    if view.payment_status:
        payment_status = PaymentStatus(view.payment_status)
    else:
        payment_status, _ = derive_status(outstanding, view.amount_paid, view.total_recovered)

    return LedgerSnapshot(
        total_recovered=view.total_recovered,
        outstanding_amount=outstanding,
        payment_status=payment_status,
        recovery_status=recovery_status,
        due_date=due_date,
        bucket=_bucket_for(outstanding, recovery_status),
        is_legacy=False
    )


def days_overdue(due_date: Optional[datetime], now: datetime) -> int:
    if due_date is None or now <= due_date:
        return 0
    return (now - due_date).days


def append_note(existing: Optional[str], when: datetime, text: str) -> str:
    """Append a dated line to a notes column"""
    line = f"[{when.strftime('%Y-%m-%d')}] {text}"
    if existing:
        return f"{existing}\n{line}"
    return line
