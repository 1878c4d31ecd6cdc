"""
Settlement engine wiring.

Builds every repository and service exactly once and hands back a single
container. The API keeps that container on `app.state`; scripts and tests
build their own. Nothing is constructed per request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config.settings import Settings
from domain.time import utc_now
from repositories.client import Stores, create_stores
from repositories.payment_repository import PaymentRepository
from repositories.product_repository import ProductRepository
from repositories.sale_repository import SaleRepository
from services.aggregation_service import AggregationService
from services.invoice_sequencer import InvoiceSequencer
from services.payment_service import PaymentService
from services.sale_service import SaleService
from services.stock_ledger import StockLedger


@dataclass(frozen=True, slots=True)
class SettlementEngine:
    products: ProductRepository
    stock: StockLedger
    invoices: InvoiceSequencer
    sales: SaleService
    payments: PaymentService
    reports: AggregationService


def build_engine(
    settings: Settings,
    stores: Optional[Stores] = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> SettlementEngine:
    stores = stores if stores is not None else create_stores(settings)

    product_repo = ProductRepository(stores.products)
    sale_repo = SaleRepository(stores.sales)
    payment_repo = PaymentRepository(stores.payments)

    stock = StockLedger(product_repo, max_attempts=settings.stock_cas_attempts)
    invoices = InvoiceSequencer(sale_repo, clock=clock)
    payments = PaymentService(payment_repo, credit_days=settings.credit_days, clock=clock)
    sales = SaleService(
        sale_repo,
        product_repo,
        stock,
        invoices,
        payments,
        tax_rate=settings.tax_rate,
        release_stock_on_failure=settings.release_stock_on_failure,
        clock=clock,
    )
    reports = AggregationService(sale_repo, payment_repo, product_repo, clock=clock)

    return SettlementEngine(
        products=product_repo,
        stock=stock,
        invoices=invoices,
        sales=sales,
        payments=payments,
        reports=reports,
    )


__all__ = ["SettlementEngine", "build_engine"]
