"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter
from shopledger.api.v1 import sales, recovery
from shopledger.schemas.common import ErrorResponse

api_router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Rejected by a ledger rule"},
        404: {"model": ErrorResponse, "description": "Unknown sale, recovery or customer"},
        409: {"model": ErrorResponse, "description": "Concurrent update to the same sale; retry"},
    }
)

# Sales routes
api_router.include_router(sales.price_history.router, prefix="/sales", tags=["sales"])
api_router.include_router(sales.entries.router, prefix="/sales", tags=["sales"])

# Recovery ledger routes; fixed paths before /recovery/{recovery_id}
api_router.include_router(recovery.ledger_views.router, prefix="/recovery", tags=["recovery-views"])
api_router.include_router(recovery.maintenance.router, prefix="/recovery", tags=["recovery-maintenance"])
api_router.include_router(recovery.recoveries.router, prefix="/recovery", tags=["recovery"])
