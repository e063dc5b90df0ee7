"""Sale entry and inquiry API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from datetime import datetime
from decimal import Decimal

from shopledger.api.deps import Pagination, get_pagination, get_sale_service, get_clock
from shopledger.core.exceptions import ValidationError
from shopledger.schemas.common import PaginatedResponse
from shopledger.schemas.sales import (
    SaleCreate, SaleCreateResponse, SaleNotesUpdate, SaleResponse, SalesStatisticsResponse
)
from shopledger.services.business_logic import RecoveryStatus, SaleStatus, classify_sale, ledger_snapshot
from shopledger.services.sales.sale_entry import SaleEntryService

router = APIRouter()


@router.post("", response_model=SaleCreateResponse, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: SaleCreate,
    service: SaleEntryService = Depends(get_sale_service),
    clock=Depends(get_clock)
):
    """
    Create a sale.

    Totals, the opening balance and the due date are derived here and never
    again. Price history is recorded afterwards; a failure there is reported
    in `warnings` and does not undo the sale.
    """
    result = service.create_sale(payload.model_dump())
    snapshot = ledger_snapshot(classify_sale(result.sale), clock())
    return SaleCreateResponse(
        sale=SaleResponse.from_ledger(result.sale, snapshot, include_items=True),
        price_history_recorded=result.price_history_recorded,
        warnings=result.warnings
    )


@router.get("", response_model=PaginatedResponse[SaleResponse])
def list_sales(
    customer_id: Optional[int] = Query(None, description="Filter by customer"),
    supplier_id: Optional[int] = Query(None, description="Filter by supplier"),
    start_date: Optional[datetime] = Query(None, description="Sales on or after this date"),
    end_date: Optional[datetime] = Query(None, description="Sales on or before this date"),
    recovery_status: Optional[RecoveryStatus] = Query(None, description="Effective recovery status"),
    sale_status: Optional[SaleStatus] = Query(None, description="Sale status"),
    min_amount: Optional[Decimal] = Query(None, ge=0, description="Minimum grand total"),
    max_amount: Optional[Decimal] = Query(None, ge=0, description="Maximum grand total"),
    pagination: Pagination = Depends(get_pagination),
    service: SaleEntryService = Depends(get_sale_service),
    clock=Depends(get_clock)
):
    filters = {
        "customer_id": customer_id,
        "supplier_id": supplier_id,
        "start_date": start_date,
        "end_date": end_date,
        "recovery_status": recovery_status.value if recovery_status else None,
        "sale_status": sale_status.value if sale_status else None,
        "min_amount": min_amount,
        "max_amount": max_amount,
    }
    sales, total = service.list_sales(filters, page=pagination.page, limit=pagination.limit)

    now = clock()
    items = [SaleResponse.from_ledger(sale, ledger_snapshot(classify_sale(sale), now)) for sale in sales]
    return PaginatedResponse[SaleResponse].build(items, total, pagination.page, pagination.limit)


@router.get("/statistics", response_model=SalesStatisticsResponse)
def get_sales_statistics(
    start_date: Optional[datetime] = Query(None, description="Sales on or after this date"),
    end_date: Optional[datetime] = Query(None, description="Sales on or before this date"),
    service: SaleEntryService = Depends(get_sale_service)
):
    """Revenue, profit, top customers and daily sales"""
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date cannot be before start_date")
    return service.get_sales_statistics(start_date, end_date)


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: int,
    service: SaleEntryService = Depends(get_sale_service),
    clock=Depends(get_clock)
):
    sale = service.get_sale(sale_id)
    return SaleResponse.from_ledger(sale, ledger_snapshot(classify_sale(sale), clock()), include_items=True)


@router.patch("/{sale_id}/notes", response_model=SaleResponse)
def update_sale_notes(
    sale_id: int,
    payload: SaleNotesUpdate,
    service: SaleEntryService = Depends(get_sale_service),
    clock=Depends(get_clock)
):
    """Update sale notes. Totals and ledger fields are not recalculated."""
    sale = service.update_sale_notes(sale_id, payload.notes)
    return SaleResponse.from_ledger(sale, ledger_snapshot(classify_sale(sale), clock()), include_items=True)
