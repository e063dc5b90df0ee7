"""Recovery Schemas"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from shopledger.services.business_logic import PaymentMethod, RecoveryTransactionStatus
from shopledger.schemas.sales import PartySummary, SaleResponse


class RecoveryCreate(BaseModel):
    customer_id: int
    sale_id: int
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    reference: str = Field(default="", max_length=50)
    notes: str = ""
    received_by: str = Field(..., min_length=1, max_length=50)

    @field_validator('received_by')
    @classmethod
    def received_by_not_blank(cls, v):
        if not v.strip():
            raise ValueError('received_by cannot be blank')
        return v.strip()


class RecoveryStatusUpdate(BaseModel):
    status: RecoveryTransactionStatus
    notes: Optional[str] = None


class SaleSummary(BaseModel):
    id: int
    sale_number: str
    grand_total: Decimal
    sale_date: datetime

    model_config = ConfigDict(from_attributes=True)


class RecoveryResponse(BaseModel):
    id: int
    sale_id: int
    customer_id: int
    sale_number: str
    amount: Decimal
    payment_method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    received_by: str
    status: RecoveryTransactionStatus
    recovery_date: datetime
    customer: Optional[PartySummary] = None
    sale: Optional[SaleSummary] = None

    model_config = ConfigDict(from_attributes=True)


class RecoveryLine(BaseModel):
    amount: Decimal
    date: datetime
    sale_number: str
    payment_method: str


class RecoveryStats(BaseModel):
    total_recovered: Decimal = Decimal("0.00")
    total_recoveries: int = 0
    last_recovery_date: Optional[datetime] = None
    recoveries: List[RecoveryLine] = []


class CustomerRecoverySummaryResponse(BaseModel):
    customer: PartySummary
    recovery_stats: RecoveryStats
    outstanding_sales: List[SaleResponse]
    total_outstanding: Decimal


class DashboardStats(BaseModel):
    total_outstanding: Decimal
    total_sales: int
    unpaid_sales: int
    partially_paid_sales: int
    overdue_sales: int
    fully_paid_sales: int


class DashboardSummaryResponse(BaseModel):
    stats: DashboardStats
    recent_recoveries: List[RecoveryResponse]
    overdue_sales: List[SaleResponse]
    total_overdue: Decimal


class MigrationResponse(BaseModel):
    total_processed: int
    updated: int
    dry_run: bool = False

    model_config = ConfigDict(from_attributes=True)


class MarkOverdueResponse(BaseModel):
    marked: int
