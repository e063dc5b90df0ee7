"""
Shop Ledger Pydantic Schemas
Request/Response models for the ledger API
"""

# Import all schemas to make them available
from .common import PaginatedResponse, ErrorResponse, HealthResponse
from .sales import (
    PartySummary, SaleItemCreate, SaleCreate, SaleNotesUpdate,
    SaleItemResponse, SaleResponse, SaleCreateResponse, PriceHistoryResponse,
    CustomerSalesTotal, DailySalesTotal, SalesStatisticsResponse
)
from .recovery import (
    RecoveryCreate, RecoveryStatusUpdate, SaleSummary, RecoveryResponse,
    RecoveryStats, CustomerRecoverySummaryResponse, DashboardStats,
    DashboardSummaryResponse, MigrationResponse, MarkOverdueResponse
)

__all__ = [
    "PaginatedResponse",
    "ErrorResponse",
    "HealthResponse",
    "PartySummary",
    "SaleItemCreate",
    "SaleCreate",
    "SaleNotesUpdate",
    "SaleItemResponse",
    "SaleResponse",
    "SaleCreateResponse",
    "PriceHistoryResponse",
    "CustomerSalesTotal",
    "DailySalesTotal",
    "SalesStatisticsResponse",
    "RecoveryCreate",
    "RecoveryStatusUpdate",
    "SaleSummary",
    "RecoveryResponse",
    "RecoveryStats",
    "CustomerRecoverySummaryResponse",
    "DashboardStats",
    "DashboardSummaryResponse",
    "MigrationResponse",
    "MarkOverdueResponse",
]
