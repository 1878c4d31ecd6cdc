"""
Tests for `services/aggregation_service.py`.

Uses a zero tax rate so expected revenue and profit can be read straight off
the line prices.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from config.settings import Settings
from domain.payment import PaymentStatus
from domain.product import Product
from domain.sale import SaleStatus
from services.aggregation_service import ReportWindow, summarize_sales, value_inventory
from services.engine import build_engine


@pytest.fixture
def reports_engine(stores, clock, catalog):
    engine = build_engine(Settings(tax_rate=Decimal("0")), stores, clock=clock)
    for product in catalog[:2]:
        engine.products.save_product(product)
    return engine


@pytest.fixture
def history(reports_engine, clock):
    """
    Last month:  rice x2 cash  (1000, profit 300)
    This month:  dal x5 credit (500, profit 150), unpaid
    Today:       rice x1 upi   (500, profit 150)
    """

    sales = reports_engine.sales
    clock.now = datetime(2024, 5, 20, 9, 0, 0, tzinfo=timezone.utc)
    last_month = sales.create_sale(
        [{"productId": "rice", "quantity": 2}], customer={"name": "Asha Rao", "phone": "9876543210"}
    )
    clock.now = datetime(2024, 6, 3, 9, 0, 0, tzinfo=timezone.utc)
    on_credit = sales.create_sale(
        [{"productId": "dal", "quantity": 5}], payment_method="credit", customer={"name": "Ravi Kumar"}
    )
    clock.now = datetime(2024, 6, 15, 10, 0, 0, tzinfo=timezone.utc)
    today = sales.create_sale([{"productId": "rice", "quantity": 1}], payment_method="upi")
    clock.now = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
    return last_month, on_credit, today


def test_value_inventory_uses_cost_basis_fallback() -> None:
    valuation = value_inventory(
        [
            Product("rice", "Rice", Decimal("500"), 17, Decimal("350")),
            Product("dal", "Dal", Decimal("100"), 45),
            Product("oil", "Oil", Decimal("180"), 0, Decimal("150")),
        ]
    )

    assert valuation.to_report() == {
        "total": 3,
        "low_stock": 1,
        "critical_stock": 1,
        "out_of_stock": 1,
        "inventory_value": 13000,
        "purchase_value": 9100,
        "potential_profit": 3900,
    }


def test_summarize_sales_of_nothing_is_zero() -> None:
    assert summarize_sales([]).to_report() == {
        "total_sales": 0,
        "total_amount": 0,
        "total_items": 0,
        "total_profit": 0,
        "avg_order_value": 0,
        "profit_margin": 0.0,
    }


def test_report_window_end_date_is_inclusive() -> None:
    window = ReportWindow.from_dates(date(2024, 6, 1), date(2024, 6, 15))

    assert window.contains(datetime(2024, 6, 15, 23, 59, 59, tzinfo=timezone.utc))
    assert not window.contains(datetime(2024, 6, 16, 0, 0, 0, tzinfo=timezone.utc))
    assert not window.contains(datetime(2024, 5, 31, 23, 59, 59, tzinfo=timezone.utc))


def test_dashboard(reports_engine, history) -> None:
    dashboard = reports_engine.reports.dashboard()

    assert dashboard["revenue"] == {
        "current": 1000,
        "change": 0.0,
        "last_month": 1000,
        "today": 500,
        "profit": 300,
        "profit_margin": 30.0,
    }
    assert dashboard["sales"] == {"count": 2, "today": 1, "avg_order_value": 500, "last_month_count": 1}
    assert dashboard["products"] == {
        "total": 2,
        "low_stock": 0,
        "critical_stock": 0,
        "out_of_stock": 0,
        "inventory_value": 13000,
        "purchase_value": 9100,
        "potential_profit": 3900,
    }
    assert dashboard["payments"] == {
        "pending": 500,
        "count": 1,
        "outstanding": 500,
        "overdue": 0,
        "overdue_amount": 0,
    }


def test_dashboard_is_idempotent(reports_engine, history) -> None:
    assert reports_engine.reports.dashboard() == reports_engine.reports.dashboard()


def test_dashboard_excludes_cancelled_sales(reports_engine, history) -> None:
    _, _, today = history
    reports_engine.sales.cancel_sale(today.sale_id)

    dashboard = reports_engine.reports.dashboard()

    assert dashboard["revenue"]["current"] == 500
    assert dashboard["revenue"]["change"] == -50.0
    assert dashboard["sales"]["today"] == 0


def test_dashboard_counts_overdue_by_due_date(reports_engine, history, clock) -> None:
    clock.now = datetime(2024, 7, 10, 12, 0, 0, tzinfo=timezone.utc)

    payments = reports_engine.reports.dashboard()["payments"]

    assert payments["overdue"] == 1
    assert payments["overdue_amount"] == 500


def test_marked_overdue_leaves_pending_block(reports_engine, history) -> None:
    [payment] = reports_engine.payments.list_payments(status=PaymentStatus.PENDING)
    reports_engine.payments.mark_overdue(payment.payment_id)

    payments = reports_engine.reports.dashboard()["payments"]

    assert payments["pending"] == 0
    assert payments["count"] == 0
    assert payments["outstanding"] == 500


def test_sales_report_filters(reports_engine, history) -> None:
    sales, summary = reports_engine.reports.sales_report(customer="asha")
    assert [s.customer.name for s in sales] == ["Asha Rao"]

    sales, _ = reports_engine.reports.sales_report(customer="98765")
    assert [s.customer.name for s in sales] == ["Asha Rao"]

    june = ReportWindow.from_dates(date(2024, 6, 1), date(2024, 6, 30))
    sales, summary = reports_engine.reports.sales_report(june)
    assert [s.invoice_code for s in sales] == ["INV-2024-0003", "INV-2024-0002"]
    assert summary.to_report() == {
        "total_sales": 2,
        "total_amount": 1000,
        "total_items": 6,
        "total_profit": 300,
        "avg_order_value": 500,
        "profit_margin": 30.0,
    }

    sales, _ = reports_engine.reports.sales_report(status=SaleStatus.CANCELLED)
    assert sales == []


def test_payments_report(reports_engine, history) -> None:
    payments, summary = reports_engine.reports.payments_report()

    assert len(payments) == 3
    assert summary.to_report() == {
        "total_payments": 3,
        "total_paid": 1500,
        "total_pending": 500,
        "overdue": 0,
        "overdue_amount": 0,
        "by_method": {"cash": 1000, "card": 0, "upi": 500, "credit": 0},
    }
