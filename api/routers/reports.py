"""
Reports API Endpoints.

Read-only financial summaries. Money is reported in whole currency units.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_aggregation_service, parse_enum_query
from api.models import (
    DashboardResponse,
    InventorySummary,
    PaymentResponse,
    PaymentsReportResponse,
    SaleResponse,
    SalesReportResponse,
)
from domain.payment import PaymentStatus
from domain.sale import PaymentMethod, SaleStatus
from services.aggregation_service import DEFAULT_REPORT_LIMIT, AggregationService, ReportWindow

router = APIRouter()


@router.get("/reports/dashboard", response_model=DashboardResponse, summary="Dashboard Summary")
def dashboard(service: AggregationService = Depends(get_aggregation_service)):
    """
    Month-to-date revenue, profit, sales counts, inventory valuation and
    outstanding payments.
    """
    return service.dashboard()


@router.get("/reports/sales", response_model=SalesReportResponse, summary="Sales Report")
def sales_report(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Inclusive"),
    customer: Optional[str] = Query(None, description="Matches customer name or phone"),
    status: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_REPORT_LIMIT, ge=1, le=1000),
    service: AggregationService = Depends(get_aggregation_service),
):
    sales, summary = service.sales_report(
        ReportWindow.from_dates(start_date, end_date),
        customer=customer,
        status=parse_enum_query(SaleStatus, status, "status"),
        limit=limit,
    )
    return {
        "sales": [SaleResponse.from_domain(sale) for sale in sales],
        "summary": summary.to_report(),
    }


@router.get("/reports/payments", response_model=PaymentsReportResponse, summary="Payments Report")
def payments_report(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Inclusive"),
    method: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_REPORT_LIMIT, ge=1, le=1000),
    service: AggregationService = Depends(get_aggregation_service),
):
    payments, summary = service.payments_report(
        ReportWindow.from_dates(start_date, end_date),
        method=parse_enum_query(PaymentMethod, method, "method"),
        status=parse_enum_query(PaymentStatus, status, "status"),
        limit=limit,
    )
    return {
        "payments": [PaymentResponse.from_domain(p) for p in payments],
        "summary": summary.to_report(),
    }


@router.get("/reports/inventory", response_model=InventorySummary, summary="Inventory Valuation")
def inventory_report(service: AggregationService = Depends(get_aggregation_service)):
    return service.inventory_valuation().to_report()
