"""Customer price history API endpoints"""

from fastapi import APIRouter, Depends, Query
from typing import List

from shopledger.api.deps import get_sale_service
from shopledger.schemas.sales import PriceHistoryResponse
from shopledger.services.sales.sale_entry import SaleEntryService

router = APIRouter()


@router.get("/price-history/{customer_id}/{product_id}", response_model=List[PriceHistoryResponse])
def get_customer_price_history(
    customer_id: int,
    product_id: int,
    limit: int = Query(10, ge=1, le=100, description="Most recent entries to return"),
    service: SaleEntryService = Depends(get_sale_service)
):
    """Prices this customer paid for the product, most recent first"""
    history = service.get_customer_price_history(customer_id, product_id, limit)
    return [PriceHistoryResponse.model_validate(entry) for entry in history]
