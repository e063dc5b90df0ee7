"""Sale Schemas"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from shopledger.services.business_logic import (
    DiscountType, PaymentMethod, PaymentStatus, RecoveryStatus, SaleStatus, LedgerSnapshot
)


class PartySummary(BaseModel):
    """Customer or supplier as embedded in other responses"""
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# Request Schemas
class SaleItemCreate(BaseModel):
    product_id: int
    product_name: str = Field(default="", max_length=100)
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    actual_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class SaleCreate(BaseModel):
    customer_id: int
    supplier_id: int
    items: List[SaleItemCreate] = Field(..., min_length=1)
    discount_type: DiscountType = DiscountType.NONE
    discount_value: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    sale_status: SaleStatus = SaleStatus.COMPLETED
    notes: Optional[str] = None
    sale_date: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @field_validator('due_date')
    @classmethod
    def due_date_after_sale(cls, v, info):
        sale_date = info.data.get('sale_date')
        if v and sale_date and v < sale_date:
            raise ValueError('Due date cannot be before sale date')
        return v


class SaleNotesUpdate(BaseModel):
    notes: str = Field(..., max_length=2000)


# Response Schemas
class SaleItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    actual_price: Decimal
    total: Decimal
    profit_per_unit: Decimal
    total_profit: Decimal

    model_config = ConfigDict(from_attributes=True)


class SaleResponse(BaseModel):
    """
    Sale with its effective ledger state

    For legacy rows the ledger fields are derived, not stored; is_legacy
    tells the two apart.
    """
    id: int
    sale_number: str
    customer_id: int
    supplier_id: Optional[int] = None
    customer: Optional[PartySummary] = None
    supplier: Optional[PartySummary] = None

    subtotal: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    amount_paid: Decimal
    change_due: Decimal
    payment_method: Optional[str] = None
    sale_status: SaleStatus
    notes: Optional[str] = None
    sale_date: datetime

    payment_status: PaymentStatus
    recovery_status: RecoveryStatus
    total_recovered: Decimal
    outstanding_amount: Decimal
    due_date: datetime
    last_recovery_date: Optional[datetime] = None
    recovery_notes: Optional[str] = None
    is_legacy: bool = False
    days_overdue: int = 0

    items: List[SaleItemResponse] = []

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_ledger(cls, sale, snapshot: LedgerSnapshot, days_overdue: int = 0, include_items: bool = False):
        """Project a SaleRecord with ledger fields taken from its snapshot"""
        return cls(
            id=sale.id,
            sale_number=sale.sale_number,
            customer_id=sale.customer_id,
            supplier_id=sale.supplier_id,
            customer=PartySummary.model_validate(sale.customer) if sale.customer else None,
            supplier=PartySummary.model_validate(sale.supplier) if sale.supplier else None,
            subtotal=sale.subtotal,
            discount_type=sale.discount_type,
            discount_value=sale.discount_value,
            discount_amount=sale.discount_amount,
            tax_rate=sale.tax_rate,
            tax_amount=sale.tax_amount,
            grand_total=sale.grand_total,
            total_profit=sale.total_profit,
            profit_margin=sale.profit_margin,
            amount_paid=sale.amount_paid,
            change_due=sale.change_due,
            payment_method=sale.payment_method,
            sale_status=sale.sale_status,
            notes=sale.notes,
            sale_date=sale.sale_date,
            payment_status=snapshot.payment_status,
            recovery_status=snapshot.recovery_status,
            total_recovered=snapshot.total_recovered,
            outstanding_amount=snapshot.outstanding_amount,
            due_date=snapshot.due_date,
            last_recovery_date=sale.last_recovery_date,
            recovery_notes=sale.recovery_notes,
            is_legacy=snapshot.is_legacy,
            days_overdue=days_overdue,
            items=[SaleItemResponse.model_validate(item) for item in sale.items] if include_items else []
        )


class SaleCreateResponse(BaseModel):
    sale: SaleResponse
    price_history_recorded: bool
    warnings: List[str] = []


class PriceHistoryResponse(BaseModel):
    id: int
    customer_id: int
    product_id: int
    price: Decimal
    quantity: int
    total_amount: Decimal
    sale_id: int
    sale_date: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerSalesTotal(BaseModel):
    customer: PartySummary
    total_spent: Decimal
    total_sales: int


class DailySalesTotal(BaseModel):
    date: str
    total_sales: int
    total_revenue: Decimal
    total_profit: Decimal


class SalesStatisticsResponse(BaseModel):
    """Sale totals for a date range; daily_sales defaults to the recent window"""
    total_sales: int
    total_revenue: Decimal
    avg_sale_value: Decimal
    total_profit: Decimal
    avg_profit_margin: Decimal
    top_customers: List[CustomerSalesTotal]
    daily_sales: List[DailySalesTotal]
