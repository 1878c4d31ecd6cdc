"""
Sales API Endpoints.

Endpoints for ringing up sales and browsing recent invoices.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_sale_service
from api.models import SaleCreateRequest, SaleResponse
from repositories.sale_repository import MAX_SALES_PAGE
from services.sale_service import SaleService

router = APIRouter()


@router.post(
    "/sales",
    response_model=SaleResponse,
    status_code=201,
    summary="Create Sale",
    description="Reserve stock, price the sale, assign an invoice code and open its payment.",
)
def create_sale(request: SaleCreateRequest, service: SaleService = Depends(get_sale_service)):
    """
    Ring up a sale.

    **Process:**
    1. Validates the requested lines, payment method and discount
    2. Decrements stock for each line (fails on unknown product or insufficient stock)
    3. Computes subtotal, tax and total
    4. Assigns the next invoice code for the year (e.g. `INV-2024-0007`)
    5. Opens the payment: fully paid for cash/card/UPI, pending for credit,
       or partial when `paidAmount` is given

    **Failure (insufficient stock):**
    ```json
    {
      "error": "INSUFFICIENT_STOCK",
      "message": "Sale line 2 failed: Insufficient stock for Basmati Rice 5kg: requested 3, available 2",
      "line_index": 1,
      "reserved_lines": [{"product_id": "...", "name": "Toor Dal 1kg", "quantity": 2}],
      "stock_released": false,
      "status_code": 400
    }
    ```
    `reserved_lines` lists stock already decremented for earlier lines so it
    can be reconciled.
    """
    sale = service.create_sale(
        [line.model_dump() for line in request.products] if request.products is not None else None,
        payment_method=request.payment_method,
        customer=request.customer.model_dump() if request.customer else None,
        discount=request.discount,
        paid_amount=request.paid_amount,
    )
    return SaleResponse.from_domain(sale)


@router.get(
    "/sales",
    response_model=List[SaleResponse],
    summary="List Recent Sales",
    description="Most recent sales, newest first, at most 100.",
)
def list_sales(
    limit: int = Query(MAX_SALES_PAGE, ge=1, le=MAX_SALES_PAGE, description="Maximum number of sales to return"),
    service: SaleService = Depends(get_sale_service),
):
    return [SaleResponse.from_domain(sale) for sale in service.list_recent_sales(limit)]


@router.get("/sales/{sale_id}", response_model=SaleResponse, summary="Get Sale")
def get_sale(sale_id: str, service: SaleService = Depends(get_sale_service)):
    return SaleResponse.from_domain(service.get_sale(sale_id))


@router.post("/sales/{sale_id}/cancel", response_model=SaleResponse, summary="Cancel Sale")
def cancel_sale(sale_id: str, service: SaleService = Depends(get_sale_service)):
    """Move a completed sale to `cancelled`. Stock is not returned."""
    return SaleResponse.from_domain(service.cancel_sale(sale_id))


@router.post("/sales/{sale_id}/refund", response_model=SaleResponse, summary="Refund Sale")
def refund_sale(sale_id: str, service: SaleService = Depends(get_sale_service)):
    """Move a completed sale to `refunded`. Stock is not returned."""
    return SaleResponse.from_domain(service.refund_sale(sale_id))
