"""Recovery ledger views: outstanding, overdue, fully paid and summaries"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from shopledger.api.deps import Pagination, get_pagination, get_inquiry_service
from shopledger.schemas.common import PaginatedResponse
from shopledger.schemas.recovery import (
    CustomerRecoverySummaryResponse, DashboardSummaryResponse, RecoveryResponse
)
from shopledger.schemas.sales import SaleResponse
from shopledger.services.recovery.recovery_inquiry import RecoveryInquiryService, SaleLedgerEntry

router = APIRouter()


def _sale_response(entry: SaleLedgerEntry) -> SaleResponse:
    return SaleResponse.from_ledger(entry.sale, entry.snapshot, days_overdue=entry.days_overdue)


@router.get("/outstanding", response_model=PaginatedResponse[SaleResponse])
def list_outstanding(
    customer_id: Optional[int] = Query(None, description="Filter by customer"),
    pagination: Pagination = Depends(get_pagination),
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    """Sales with an outstanding balance, overdue ones included"""
    entries, total = service.list_outstanding(customer_id, page=pagination.page, limit=pagination.limit)
    items = [_sale_response(entry) for entry in entries]
    return PaginatedResponse[SaleResponse].build(items, total, pagination.page, pagination.limit)


@router.get("/overdue", response_model=List[SaleResponse])
def list_overdue(
    customer_id: Optional[int] = Query(None, description="Filter by customer"),
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    return [_sale_response(entry) for entry in service.list_overdue(customer_id)]


@router.get("/fully-paid", response_model=PaginatedResponse[SaleResponse])
def list_fully_paid(
    customer_id: Optional[int] = Query(None, description="Filter by customer"),
    pagination: Pagination = Depends(get_pagination),
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    entries, total = service.list_fully_paid(customer_id, page=pagination.page, limit=pagination.limit)
    items = [_sale_response(entry) for entry in entries]
    return PaginatedResponse[SaleResponse].build(items, total, pagination.page, pagination.limit)


@router.get("/sale/{sale_id}/history", response_model=List[RecoveryResponse])
def get_sale_recovery_history(
    sale_id: int,
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    return [RecoveryResponse.model_validate(r) for r in service.get_sale_recovery_history(sale_id)]


@router.get("/customer/{customer_id}/summary", response_model=CustomerRecoverySummaryResponse)
def get_customer_recovery_summary(
    customer_id: int,
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    summary = service.get_customer_recovery_summary(customer_id)
    summary["outstanding_sales"] = [_sale_response(entry) for entry in summary["outstanding_sales"]]
    return summary


@router.get("/dashboard-summary", response_model=DashboardSummaryResponse)
def get_dashboard_summary(
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    """Status counts, the latest recoveries and the longest-overdue sales"""
    summary = service.get_dashboard_summary()
    summary["overdue_sales"] = [_sale_response(entry) for entry in summary["overdue_sales"]]
    summary["recent_recoveries"] = [RecoveryResponse.model_validate(r) for r in summary["recent_recoveries"]]
    return summary
