"""
Shop Ledger Common Schemas
Shared Pydantic models for common API structures
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, List, Optional, Generic, TypeVar
from math import ceil

# Generic type for paginated responses
T = TypeVar('T')


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response model

    Used for all list endpoints that support pagination
    """
    data: List[T] = Field(..., description="Items for the current page")
    current_page: int = Field(..., alias="currentPage", description="Current page number (1-based)")
    total_pages: int = Field(..., alias="totalPages", description="Total number of pages")
    total_count: int = Field(..., alias="totalCount", description="Total number of items across all pages")
    has_more: bool = Field(..., alias="hasMore", description="Whether a later page exists")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "data": [],
                "currentPage": 1,
                "totalPages": 3,
                "totalCount": 120,
                "hasMore": True
            }
        }
    )

    @classmethod
    def build(cls, items: List[Any], total_count: int, page: int, limit: int):
        return cls(
            data=items,
            current_page=page,
            total_pages=ceil(total_count / limit) if limit else 0,
            total_count=total_count,
            has_more=(page - 1) * limit + len(items) < total_count
        )


class ErrorResponse(BaseModel):
    """
    Standard error response model

    Used for all API error responses
    """
    error: str = Field(..., description="Error type or category")
    detail: str = Field(..., description="Human-readable error message")
    type: Optional[str] = Field(None, description="Exception class")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "validation_error",
                "detail": "Recovery amount ($70.00) cannot exceed outstanding amount ($60.00)",
                "type": "ValidationError"
            }
        }
    )


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    debug: bool = False
