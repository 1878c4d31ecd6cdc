"""
Payments API Endpoints.

Endpoints for settling payments against invoices.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_payment_service, parse_enum_query
from api.models import PaymentResponse, PaymentStatsResponse, RecordPaymentRequest
from domain.money import round_money
from domain.payment import PaymentStatus
from domain.sale import PaymentMethod
from services.aggregation_service import ReportWindow
from services.payment_service import PaymentService

router = APIRouter()


@router.get("/payments", response_model=List[PaymentResponse], summary="List Payments")
def list_payments(
    status: Optional[str] = Query(None, description="pending, partial, paid or overdue"),
    method: Optional[str] = Query(None, description="cash, card, upi or credit"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: PaymentService = Depends(get_payment_service),
):
    window = ReportWindow.from_dates(start_date, end_date)
    payments = service.list_payments(
        status=parse_enum_query(PaymentStatus, status, "status"),
        method=parse_enum_query(PaymentMethod, method, "method"),
        start=window.start,
        end=window.end,
    )
    return [PaymentResponse.from_domain(p) for p in payments]


@router.get("/payments/stats/summary", response_model=PaymentStatsResponse, summary="Payment Statistics")
def payment_stats(service: PaymentService = Depends(get_payment_service)):
    stats = service.payment_stats()
    return PaymentStatsResponse(
        total_payments=stats.total_payments,
        counts=stats.counts,
        total_amount=round_money(stats.total_amount),
        paid_amount=round_money(stats.paid_amount),
        outstanding=round_money(stats.outstanding),
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse, summary="Get Payment")
def get_payment(payment_id: str, service: PaymentService = Depends(get_payment_service)):
    return PaymentResponse.from_domain(service.get_payment(payment_id))


@router.post(
    "/payments/{payment_id}/pay",
    response_model=PaymentResponse,
    summary="Record Payment",
    description="Record a partial or full payment against an invoice.",
)
def record_payment(
    payment_id: str,
    request: RecordPaymentRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Add money received to a payment.

    The paid amount only grows. Status becomes `partial` while a balance
    remains and `paid` (with a paid date) once the invoice is covered.
    Notes are appended to the existing log.
    """
    payment = service.record_payment(
        payment_id,
        request.amount,
        method=request.method,
        transaction_ref=request.transaction_id,
        note=request.notes,
    )
    return PaymentResponse.from_domain(payment)


@router.post("/payments/{payment_id}/overdue", response_model=PaymentResponse, summary="Mark Payment Overdue")
def mark_overdue(payment_id: str, service: PaymentService = Depends(get_payment_service)):
    """Administrative override; the due date is not checked."""
    return PaymentResponse.from_domain(service.mark_overdue(payment_id))
