"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Request bodies accept both the camelCase names POS clients send
(`productId`, `paymentMethod`, ...) and snake_case.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.payment import PaymentRecord
from domain.sale import Sale


# ============================================================================
# Sale Models
# ============================================================================

class CustomerModel(BaseModel):
    """Customer details snapshotted onto the invoice."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class SaleLineRequestModel(BaseModel):
    """Single requested line: which product, how many."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(..., description="Units to sell, at least 1")


class SaleCreateRequest(BaseModel):
    """Request to ring up a sale."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "products": [
                    {"productId": "4a0c6c0e-8f0a-4d7e-9a51-2f3b1f0b6f11", "quantity": 2},
                    {"productId": "b7d5a0f4-3f0f-4a55-8a43-8c2f2d6c1e22", "quantity": 1},
                ],
                "paymentMethod": "cash",
                "customer": {"name": "Asha Rao", "phone": "9876543210"},
                "discount": "50.00",
            }
        },
    )

    # Optional here so a missing list reaches the service and comes back as a 400.
    products: Optional[List[SaleLineRequestModel]] = None
    payment_method: Optional[str] = Field(None, alias="paymentMethod")
    customer: Optional[CustomerModel] = None
    discount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = Field(None, alias="paidAmount")


class SaleLineResponse(BaseModel):
    product_id: str
    name: str
    price: Decimal
    cost_basis: Decimal
    quantity: int
    discount: Decimal


class SaleResponse(BaseModel):
    """A persisted sale."""
    sale_id: str
    invoice_code: str
    customer: CustomerModel
    items: List[SaleLineResponse]
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    payment_method: str
    status: str
    created_at: datetime

    @classmethod
    def from_domain(cls, sale: Sale) -> "SaleResponse":
        return cls(
            sale_id=sale.sale_id,
            invoice_code=sale.invoice_code,
            customer=CustomerModel(**sale.customer.to_dict()),
            items=[
                SaleLineResponse(
                    product_id=item.product_id,
                    name=item.name,
                    price=item.price,
                    cost_basis=item.cost_basis,
                    quantity=item.quantity,
                    discount=item.discount,
                )
                for item in sale.items
            ],
            subtotal=sale.subtotal,
            discount=sale.discount,
            tax=sale.tax,
            total=sale.total,
            payment_method=sale.payment_method.value,
            status=sale.status.value,
            created_at=sale.created_at,
        )


# ============================================================================
# Payment Models
# ============================================================================

class RecordPaymentRequest(BaseModel):
    """Money received against an open payment."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "amount": "500.00",
                "method": "upi",
                "transactionId": "UPI-20240611-0042",
                "notes": "First instalment",
            }
        },
    )

    # Optional so a missing amount is reported as INVALID_AMOUNT, not a schema error.
    amount: Optional[Decimal] = None
    method: Optional[str] = None
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    payment_id: str
    invoice_code: str
    customer: CustomerModel
    amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    progress: int
    method: str
    status: str
    due_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    transaction_ref: str
    notes: str
    created_at: datetime

    @classmethod
    def from_domain(cls, payment: PaymentRecord) -> "PaymentResponse":
        return cls(
            payment_id=payment.payment_id,
            invoice_code=payment.invoice_code,
            customer=CustomerModel(**payment.customer.to_dict()),
            amount=payment.amount,
            paid_amount=payment.paid_amount,
            balance=payment.balance,
            progress=payment.progress,
            method=payment.method.value,
            status=payment.status.value,
            due_date=payment.due_date,
            paid_date=payment.paid_date,
            transaction_ref=payment.transaction_ref,
            notes=payment.notes,
            created_at=payment.created_at,
        )


class PaymentStatsResponse(BaseModel):
    total_payments: int
    counts: Dict[str, int]
    total_amount: int
    paid_amount: int
    outstanding: int


# ============================================================================
# Report Models
# ============================================================================

class SalesReportSummary(BaseModel):
    total_sales: int
    total_amount: int
    total_items: int
    total_profit: int
    avg_order_value: int
    profit_margin: float


class SalesReportResponse(BaseModel):
    sales: List[SaleResponse]
    summary: SalesReportSummary


class PaymentsReportSummary(BaseModel):
    total_payments: int
    total_paid: int
    total_pending: int
    overdue: int
    overdue_amount: int
    by_method: Dict[str, int]


class PaymentsReportResponse(BaseModel):
    payments: List[PaymentResponse]
    summary: PaymentsReportSummary


class InventorySummary(BaseModel):
    total: int
    low_stock: int
    critical_stock: int
    out_of_stock: int
    inventory_value: int
    purchase_value: int
    potential_profit: int


class RevenueBlock(BaseModel):
    current: int
    change: float
    last_month: int
    today: int
    profit: int
    profit_margin: float


class SalesBlock(BaseModel):
    count: int
    today: int
    avg_order_value: int
    last_month_count: int


class PaymentsBlock(BaseModel):
    pending: int
    count: int
    outstanding: int
    overdue: int
    overdue_amount: int


class DashboardResponse(BaseModel):
    revenue: RevenueBlock
    sales: SalesBlock
    products: InventorySummary
    payments: PaymentsBlock


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "error": "INSUFFICIENT_STOCK",
                "message": "Sale line 1 failed: Insufficient stock for Basmati Rice 5kg: requested 3, available 2",
                "status_code": 400,
            }
        },
    )

    error: str
    message: str
    status_code: int
