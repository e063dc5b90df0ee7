"""Recovery transaction API endpoints"""

from fastapi import APIRouter, Depends, status

from shopledger.api.deps import Pagination, get_pagination, get_recovery_service, get_inquiry_service
from shopledger.schemas.common import PaginatedResponse
from shopledger.schemas.recovery import RecoveryCreate, RecoveryResponse, RecoveryStatusUpdate
from shopledger.services.recovery.recovery_entry import RecoveryService
from shopledger.services.recovery.recovery_inquiry import RecoveryInquiryService

router = APIRouter()


@router.post("", response_model=RecoveryResponse, status_code=status.HTTP_201_CREATED)
def add_recovery(
    payload: RecoveryCreate,
    service: RecoveryService = Depends(get_recovery_service)
):
    """
    Record a payment against a sale.

    Rejected with 400 when the amount exceeds the sale's outstanding balance.
    """
    recovery = service.add_recovery(payload.model_dump())
    return RecoveryResponse.model_validate(recovery)


@router.get("", response_model=PaginatedResponse[RecoveryResponse])
def list_recoveries(
    pagination: Pagination = Depends(get_pagination),
    service: RecoveryInquiryService = Depends(get_inquiry_service)
):
    """Confirmed recoveries, newest first"""
    recoveries, total = service.list_recoveries(page=pagination.page, limit=pagination.limit)
    items = [RecoveryResponse.model_validate(recovery) for recovery in recoveries]
    return PaginatedResponse[RecoveryResponse].build(items, total, pagination.page, pagination.limit)


@router.get("/{recovery_id}", response_model=RecoveryResponse)
def get_recovery(
    recovery_id: int,
    service: RecoveryService = Depends(get_recovery_service)
):
    return RecoveryResponse.model_validate(service.get_recovery(recovery_id))


@router.put("/{recovery_id}/status", response_model=RecoveryResponse)
def update_recovery_status(
    recovery_id: int,
    payload: RecoveryStatusUpdate,
    service: RecoveryService = Depends(get_recovery_service)
):
    """
    Confirm, park or cancel a recovery.

    Cancelling returns the amount to the sale's outstanding balance;
    confirming a cancelled recovery takes it back out.
    """
    recovery = service.update_recovery_status(recovery_id, payload.status, payload.notes)
    return RecoveryResponse.model_validate(recovery)
