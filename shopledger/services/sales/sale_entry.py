"""
Sale Entry Service
Creates sales with their opening ledger state and serves sale inquiries
"""
import warnings
from dataclasses import dataclass, asdict, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, joinedload

from shopledger.core.config import settings
from shopledger.core.database import ledger_transaction
from shopledger.core.exceptions import IntegrityWarning, NotFoundError, ValidationError
from shopledger.core.locks import ledger_locks, sale_lock_key, sequence_lock_key
from shopledger.core.logging import get_logger
from shopledger.models.customer import Customer
from shopledger.models.sales import SaleRecord, SaleItemRec
from shopledger.models.system import SequenceRec
from shopledger.services.business_logic import (
    DiscountType, PaymentMethod, SaleCalculationService, SaleStatus, ZERO, HUNDRED,
    classify_sale, default_due_date, ledger_snapshot, money
)
from shopledger.services.customer_lookup import CustomerLookupService
from shopledger.services.sales.price_history import PriceHistorySink

logger = get_logger("business")

SALE_SEQUENCE = "sale"


@dataclass
class SaleCreationResult:
    """A committed sale plus the outcome of its best-effort side effects"""
    sale: SaleRecord
    price_history_recorded: bool = True
    warnings: List[str] = field(default_factory=list)


class SaleEntryService:
    """
    Sale entry

    Totals and the opening balance are derived once, when the sale is first
    stored. Later edits (notes) never re-derive them.
    """

    def __init__(
        self,
        db: Session,
        price_history: Optional[PriceHistorySink] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.db = db
        self.clock = clock
        self.lookup = CustomerLookupService(db)
        self.price_history = price_history or PriceHistorySink(db)

    def create_sale(self, sale_data: Dict) -> SaleCreationResult:
        """
        Create a new sale

        Args:
            sale_data: customer_id, supplier_id, items, discount_type,
                discount_value, tax_rate, amount_paid, payment_method and
                optional notes, sale_status, sale_date, due_date

        Returns:
            SaleCreationResult; price history failures are reported in
            warnings and never undo the sale
        """
        items = sale_data.get('items') or []
        self._validate_sale(sale_data, items)

        customer = self.lookup.get_customer(sale_data.get('customer_id'))
        supplier = self.lookup.get_supplier(sale_data.get('supplier_id'))

        totals = SaleCalculationService.calculate_sale(
            items=items,
            discount_type=sale_data.get('discount_type') or DiscountType.NONE,
            discount_value=sale_data.get('discount_value') or ZERO,
            tax_rate=sale_data.get('tax_rate') or ZERO,
            amount_paid=sale_data.get('amount_paid') or ZERO
        )

        sale_date = sale_data.get('sale_date') or self.clock()
        due_date = sale_data.get('due_date') or default_due_date(sale_date)

        # Hold the series lock until commit so numbers are issued in commit order
        with ledger_locks.hold(sequence_lock_key(SALE_SEQUENCE)):
            with ledger_transaction(self.db, "Sale creation"):
                sale = SaleRecord(
                    sale_number=self._next_sale_number(),
                    customer_id=customer.id,
                    supplier_id=supplier.id,
                    discount_type=DiscountType(sale_data.get('discount_type') or DiscountType.NONE).value,
                    discount_value=money(sale_data.get('discount_value')),
                    tax_rate=money(sale_data.get('tax_rate')),
                    amount_paid=money(sale_data.get('amount_paid')),
                    payment_method=PaymentMethod(sale_data.get('payment_method') or PaymentMethod.CASH).value,
                    sale_status=SaleStatus(sale_data.get('sale_status') or SaleStatus.COMPLETED).value,
                    notes=sale_data.get('notes'),
                    sale_date=sale_date,
                    due_date=due_date
                )
                sale.apply_totals(totals)
                for line in totals.lines:
                    sale.items.append(SaleItemRec(**asdict(line)))
                self.db.add(sale)

        self.db.refresh(sale)
        logger.info(
            f"Sale {sale.sale_number} created for customer {customer.id}: total={sale.grand_total}, "
            f"paid={sale.amount_paid}, outstanding={sale.outstanding_amount} ({sale.recovery_status})"
        )

        history_warnings = self._record_price_history(sale)
        return SaleCreationResult(sale=sale, price_history_recorded=not history_warnings, warnings=history_warnings)

    def _record_price_history(self, sale: SaleRecord) -> List[str]:
        """Run the price-history sink; nothing it raises reaches the caller"""
        sale_number = sale.sale_number
        try:
            return self.price_history.record_price_history(sale)
        except Exception as e:
            self.db.rollback()
            message = f"Price history not recorded for sale {sale_number}: {e}"
            logger.warning(message, exc_info=True)
            warnings.warn(message, IntegrityWarning, stacklevel=3)
            return [message]

    def get_sale(self, sale_id: int) -> SaleRecord:
        sale = (
            self.db.query(SaleRecord)
            .options(joinedload(SaleRecord.items), joinedload(SaleRecord.customer), joinedload(SaleRecord.supplier))
            .filter(SaleRecord.id == sale_id)
            .first()
        )
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        return sale

    def update_sale_notes(self, sale_id: int, notes: str) -> SaleRecord:
        """Replace the sale notes; totals and ledger fields are left untouched"""
        with ledger_locks.hold(sale_lock_key(sale_id)):
            with ledger_transaction(self.db, f"Notes update for sale {sale_id}"):
                sale = (
                    self.db.query(SaleRecord)
                    .filter(SaleRecord.id == sale_id)
                    .with_for_update()
                    .populate_existing()
                    .first()
                )
                if sale is None:
                    raise NotFoundError("Sale", sale_id)
                sale.notes = notes

        self.db.refresh(sale)
        return sale

    def list_sales(self, filters: Optional[Dict] = None, page: int = 1,
                   limit: int = settings.DEFAULT_PAGE_SIZE) -> Tuple[List[SaleRecord], int]:
        """
        Filtered sale listing, newest first

        Supported filters: customer_id, supplier_id, start_date, end_date,
        recovery_status (effective, legacy rows included), sale_status,
        min_amount, max_amount.
        """
        filters = filters or {}
        query = self.db.query(SaleRecord).options(
            joinedload(SaleRecord.customer), joinedload(SaleRecord.supplier)
        )

        if filters.get('customer_id') is not None:
            query = query.filter(SaleRecord.customer_id == filters['customer_id'])
        if filters.get('supplier_id') is not None:
            query = query.filter(SaleRecord.supplier_id == filters['supplier_id'])
        if filters.get('start_date'):
            query = query.filter(SaleRecord.sale_date >= filters['start_date'])
        if filters.get('end_date'):
            query = query.filter(SaleRecord.sale_date <= filters['end_date'])
        if filters.get('sale_status'):
            query = query.filter(SaleRecord.sale_status == filters['sale_status'])
        if filters.get('min_amount') is not None:
            query = query.filter(SaleRecord.grand_total >= filters['min_amount'])
        if filters.get('max_amount') is not None:
            query = query.filter(SaleRecord.grand_total <= filters['max_amount'])

        query = query.order_by(SaleRecord.sale_date.desc(), SaleRecord.id.desc())

        recovery_status = filters.get('recovery_status')
        if recovery_status:
            # effective status needs the snapshot, so filter after loading
            now = self.clock()
            matching = [
                sale for sale in query.all()
                if ledger_snapshot(classify_sale(sale), now).recovery_status.value == recovery_status
            ]
            start = (page - 1) * limit
            return matching[start:start + limit], len(matching)

        total = query.count()
        sales = query.offset((page - 1) * limit).limit(limit).all()
        return sales, total

    def get_sales_statistics(self, start_date: Optional[datetime] = None,
                             end_date: Optional[datetime] = None) -> Dict:
        """
        Revenue, profit, top customers and daily figures for a date range

        Sales stored without profit figures fall back to the profit of their
        lines. Daily figures start at start_date, or STATISTICS_DAILY_DAYS
        days back when no start date is given.
        """
        line_profit = (
            select(func.sum(SaleItemRec.total_profit))
            .where(SaleItemRec.sale_id == SaleRecord.id)
            .correlate(SaleRecord)
            .scalar_subquery()
        )
        profit = func.coalesce(func.nullif(SaleRecord.total_profit, 0), line_profit, 0)
        margin = func.coalesce(
            func.nullif(SaleRecord.profit_margin, 0),
            case((SaleRecord.grand_total > 0, line_profit * HUNDRED / SaleRecord.grand_total), else_=0),
            0
        )

        def in_range(query, since):
            if since is not None:
                query = query.filter(SaleRecord.sale_date >= since)
            if end_date is not None:
                query = query.filter(SaleRecord.sale_date <= end_date)
            return query

        total_sales, revenue, avg_value, total_profit, avg_margin = in_range(
            self.db.query(
                func.count(SaleRecord.id),
                func.sum(SaleRecord.grand_total),
                func.avg(SaleRecord.grand_total),
                func.sum(profit),
                func.avg(margin),
            ),
            start_date
        ).one()

        spent = func.sum(SaleRecord.grand_total)
        top_customers = (
            in_range(
                self.db.query(Customer.id, Customer.name, spent, func.count(SaleRecord.id))
                .join(SaleRecord, SaleRecord.customer_id == Customer.id),
                start_date
            )
            .group_by(Customer.id, Customer.name)
            .order_by(spent.desc(), Customer.id)
            .limit(settings.STATISTICS_TOP_CUSTOMERS)
            .all()
        )

        day = func.date(SaleRecord.sale_date)
        daily_start = start_date or self.clock() - timedelta(days=settings.STATISTICS_DAILY_DAYS)
        daily_sales = (
            in_range(
                self.db.query(day, func.count(SaleRecord.id), func.sum(SaleRecord.grand_total), func.sum(profit)),
                daily_start
            )
            .group_by(day)
            .order_by(day)
            .all()
        )

        return {
            "total_sales": total_sales,
            "total_revenue": money(revenue),
            "avg_sale_value": money(avg_value),
            "total_profit": money(total_profit),
            "avg_profit_margin": money(avg_margin),
            "top_customers": [
                {
                    "customer": {"id": customer_id, "name": name},
                    "total_spent": money(customer_spent),
                    "total_sales": count,
                }
                for customer_id, name, customer_spent, count in top_customers
            ],
            "daily_sales": [
                {
                    "date": str(sale_day),
                    "total_sales": count,
                    "total_revenue": money(day_revenue),
                    "total_profit": money(day_profit),
                }
                for sale_day, count, day_revenue, day_profit in daily_sales
            ],
        }

    def get_customer_price_history(self, customer_id: int, product_id: int, limit: int = 10):
        self.lookup.get_customer(customer_id)
        return self.price_history.get_customer_price_history(customer_id, product_id, limit)

    def _next_sale_number(self) -> str:
        """Increment the sale series under a row lock; caller holds the series keyed lock"""
        sequence = (
            self.db.query(SequenceRec)
            .filter(SequenceRec.name == SALE_SEQUENCE)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if sequence is None:
            sequence = SequenceRec(name=SALE_SEQUENCE, last_value=0)
            self.db.add(sequence)

        sequence.last_value += 1
        self.db.flush()
        return f"{settings.SALE_NUMBER_PREFIX}-{sequence.last_value:0{settings.SALE_NUMBER_WIDTH}d}"

    @staticmethod
    def _validate_sale(sale_data: Dict, items: List[Dict]):
        """Raise ValidationError for the first violated constraint"""
        if sale_data.get('customer_id') is None:
            raise ValidationError("customer_id is required")
        if sale_data.get('supplier_id') is None:
            raise ValidationError("supplier_id is required")
        if not items:
            raise ValidationError("A sale needs at least one item")

        try:
            amount_paid = Decimal(str(sale_data.get('amount_paid') or 0))
            discount_value = Decimal(str(sale_data.get('discount_value') or 0))
            tax_rate = Decimal(str(sale_data.get('tax_rate') or 0))
        except InvalidOperation:
            raise ValidationError("amount_paid, discount_value and tax_rate must be numbers")

        if amount_paid < 0:
            raise ValidationError("amount_paid cannot be negative")
        if discount_value < 0:
            raise ValidationError("discount_value cannot be negative")
        if tax_rate < 0 or tax_rate > HUNDRED:
            raise ValidationError("tax_rate must be between 0 and 100")

        try:
            discount_type = DiscountType(sale_data.get('discount_type') or DiscountType.NONE)
        except ValueError:
            raise ValidationError(f"Invalid discount type: {sale_data.get('discount_type')}")
        if discount_type == DiscountType.PERCENTAGE and discount_value > HUNDRED:
            raise ValidationError("Percentage discount cannot exceed 100")

        try:
            PaymentMethod(sale_data.get('payment_method') or PaymentMethod.CASH)
            SaleStatus(sale_data.get('sale_status') or SaleStatus.COMPLETED)
        except ValueError as e:
            raise ValidationError(str(e))

        for index, item in enumerate(items, start=1):
            if item.get('product_id') is None:
                raise ValidationError(f"Item {index}: product_id is required")
            try:
                quantity = int(item.get('quantity', 0))
                unit_price = Decimal(str(item.get('unit_price', 0)))
                actual_price = Decimal(str(item.get('actual_price') or 0))
            except (ValueError, InvalidOperation):
                raise ValidationError(f"Item {index}: quantity and prices must be numbers")
            if quantity < 1:
                raise ValidationError(f"Item {index}: quantity must be at least 1")
            if unit_price < 0 or actual_price < 0:
                raise ValidationError(f"Item {index}: prices cannot be negative")
