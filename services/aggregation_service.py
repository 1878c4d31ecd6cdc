"""
Aggregation service: read-only financial summaries for dashboards and reports.

Everything here folds already-persisted sales, payments and products; nothing
is written. All arithmetic runs on unrounded Decimals, and only the
`to_report()` renderings round money to whole units. Given the same data and
the same `now`, every method returns identical results.

Readers may see a snapshot slightly behind in-flight sales; reporting does
not need the strong consistency stock and balances get.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from domain.money import ZERO, money_sum, percentage, round_money, round_one_place
from domain.payment import PaymentRecord, PaymentStatus
from domain.product import Product
from domain.sale import PaymentMethod, Sale, SaleStatus
from domain.time import require_utc_timestamp, utc_now
from repositories.payment_repository import PaymentRepository
from repositories.product_repository import ProductRepository
from repositories.record_store import Op, any_of, where
from repositories.sale_repository import SaleRepository, created_between

DEFAULT_REPORT_LIMIT = 100


@dataclass(frozen=True, slots=True)
class ReportWindow:
    """Half-open [start, end) window; either bound may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @staticmethod
    def from_dates(start: Optional[date], end: Optional[date]) -> "ReportWindow":
        """Inclusive calendar dates (UTC) -> half-open window covering all of `end`."""

        return ReportWindow(
            start=datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None,
            end=datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc) if end else None,
        )

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True


@dataclass(frozen=True, slots=True)
class SalesSummary:
    count: int
    revenue: Decimal
    items_sold: int
    profit: Decimal

    @property
    def average_order_value(self) -> Decimal:
        return self.revenue / self.count if self.count else ZERO

    @property
    def profit_margin(self) -> Decimal:
        return percentage(self.profit, self.revenue)

    def to_report(self) -> Dict[str, Any]:
        return {
            "total_sales": self.count,
            "total_amount": round_money(self.revenue),
            "total_items": self.items_sold,
            "total_profit": round_money(self.profit),
            "avg_order_value": round_money(self.average_order_value),
            "profit_margin": round_one_place(self.profit_margin),
        }


@dataclass(frozen=True, slots=True)
class PaymentsSummary:
    count: int
    total_settled: Decimal
    outstanding: Decimal
    overdue_count: int
    overdue_amount: Decimal
    by_method: Dict[str, Decimal] = field(default_factory=dict)

    def to_report(self) -> Dict[str, Any]:
        return {
            "total_payments": self.count,
            "total_paid": round_money(self.total_settled),
            "total_pending": round_money(self.outstanding),
            "overdue": self.overdue_count,
            "overdue_amount": round_money(self.overdue_amount),
            "by_method": {method: round_money(value) for method, value in self.by_method.items()},
        }


@dataclass(frozen=True, slots=True)
class InventoryValuation:
    total_products: int
    low_stock: int
    critical_stock: int
    out_of_stock: int
    retail_value: Decimal
    cost_value: Decimal

    @property
    def potential_profit(self) -> Decimal:
        return self.retail_value - self.cost_value

    def to_report(self) -> Dict[str, Any]:
        return {
            "total": self.total_products,
            "low_stock": self.low_stock,
            "critical_stock": self.critical_stock,
            "out_of_stock": self.out_of_stock,
            "inventory_value": round_money(self.retail_value),
            "purchase_value": round_money(self.cost_value),
            "potential_profit": round_money(self.potential_profit),
        }


def summarize_sales(sales: Sequence[Sale]) -> SalesSummary:
    return SalesSummary(
        count=len(sales),
        revenue=money_sum(sale.total for sale in sales),
        items_sold=sum(sale.item_count for sale in sales),
        profit=money_sum(sale.profit for sale in sales),
    )


def summarize_payments(payments: Sequence[PaymentRecord], now: datetime) -> PaymentsSummary:
    """
    - total_settled: face amount of fully paid records
    - outstanding: balance over every record not yet paid (overdue included)
    - overdue: not paid and past due date, whatever the stored status says
    - by_method: money actually collected, per method
    """

    unpaid = [p for p in payments if p.status is not PaymentStatus.PAID]
    overdue = [p for p in payments if p.is_overdue_at(now)]
    return PaymentsSummary(
        count=len(payments),
        total_settled=money_sum(p.amount for p in payments if p.status is PaymentStatus.PAID),
        outstanding=money_sum(p.balance for p in unpaid),
        overdue_count=len(overdue),
        overdue_amount=money_sum(p.balance for p in overdue),
        by_method={
            method.value: money_sum(p.paid_amount for p in payments if p.method is method)
            for method in PaymentMethod
        },
    )


def value_inventory(products: Sequence[Product]) -> InventoryValuation:
    return InventoryValuation(
        total_products=len(products),
        low_stock=sum(1 for p in products if p.is_low_stock),
        critical_stock=sum(1 for p in products if p.is_critical_stock),
        out_of_stock=sum(1 for p in products if p.is_out_of_stock),
        retail_value=money_sum(p.price * p.stock for p in products),
        cost_value=money_sum(p.cost_basis * p.stock for p in products),
    )


def _start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _start_of_previous_month(moment: datetime) -> datetime:
    return _start_of_month(_start_of_month(moment) - timedelta(days=1))


class AggregationService:
    def __init__(
        self,
        sales: SaleRepository,
        payments: PaymentRepository,
        products: ProductRepository,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._sales = sales
        self._payments = payments
        self._products = products
        self._clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        moment = now if now is not None else self._clock()
        require_utc_timestamp("now", moment)
        return moment

    def completed_sales(self, window: ReportWindow) -> List[Sale]:
        filters: List[Any] = [where("status", Op.EQ, SaleStatus.COMPLETED.value)]
        filters.extend(created_between(window.start, window.end))
        return self._sales.list_sales(filters, limit=None)

    def inventory_valuation(self) -> InventoryValuation:
        return value_inventory(self._products.list_products())

    def outstanding_payments(self) -> List[PaymentRecord]:
        return self._payments.list_payments([where("status", Op.NEQ, PaymentStatus.PAID.value)])

    def dashboard(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Month-to-date financial summary.

        Revenue counts only completed sales. "pending" is the open balance of
        pending/partial payments; "outstanding" additionally includes
        payments marked overdue.
        """

        now = self._now(now)
        month_start = _start_of_month(now)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        current = summarize_sales(self.completed_sales(ReportWindow(start=month_start)))
        previous = summarize_sales(
            self.completed_sales(ReportWindow(start=_start_of_previous_month(now), end=month_start))
        )
        today = summarize_sales(self.completed_sales(ReportWindow(start=today_start)))

        change = percentage(current.revenue - previous.revenue, previous.revenue)

        unpaid = self.outstanding_payments()
        open_items = [p for p in unpaid if p.status in (PaymentStatus.PENDING, PaymentStatus.PARTIAL)]
        payments = summarize_payments(unpaid, now)

        return {
            "revenue": {
                "current": round_money(current.revenue),
                "change": round_one_place(change),
                "last_month": round_money(previous.revenue),
                "today": round_money(today.revenue),
                "profit": round_money(current.profit),
                "profit_margin": round_one_place(current.profit_margin),
            },
            "sales": {
                "count": current.count,
                "today": today.count,
                "avg_order_value": round_money(current.average_order_value),
                "last_month_count": previous.count,
            },
            "products": self.inventory_valuation().to_report(),
            "payments": {
                "pending": round_money(money_sum(p.balance for p in open_items)),
                "count": len(open_items),
                "outstanding": round_money(payments.outstanding),
                "overdue": payments.overdue_count,
                "overdue_amount": round_money(payments.overdue_amount),
            },
        }

    def sales_report(
        self,
        window: ReportWindow = ReportWindow(),
        *,
        customer: Optional[str] = None,
        status: Optional[SaleStatus] = None,
        limit: int = DEFAULT_REPORT_LIMIT,
    ) -> tuple[List[Sale], SalesSummary]:
        filters: List[Any] = list(created_between(window.start, window.end))
        if customer:
            filters.append(
                any_of(
                    where("customer.name", Op.ICONTAINS, customer),
                    where("customer.phone", Op.ICONTAINS, customer),
                )
            )
        if status is not None:
            filters.append(where("status", Op.EQ, status.value))
        sales = self._sales.list_sales(filters, limit=limit)
        return sales, summarize_sales(sales)

    def payments_report(
        self,
        window: ReportWindow = ReportWindow(),
        *,
        method: Optional[PaymentMethod] = None,
        status: Optional[PaymentStatus] = None,
        limit: int = DEFAULT_REPORT_LIMIT,
        now: Optional[datetime] = None,
    ) -> tuple[List[PaymentRecord], PaymentsSummary]:
        filters: List[Any] = list(created_between(window.start, window.end))
        if method is not None:
            filters.append(where("method", Op.EQ, method.value))
        if status is not None:
            filters.append(where("status", Op.EQ, status.value))
        payments = self._payments.list_payments(filters, limit=limit)
        return payments, summarize_payments(payments, self._now(now))


__all__ = [
    "AggregationService",
    "ReportWindow",
    "SalesSummary",
    "PaymentsSummary",
    "InventoryValuation",
    "summarize_sales",
    "summarize_payments",
    "value_inventory",
]
