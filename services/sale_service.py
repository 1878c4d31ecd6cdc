"""
Sale service: assembles, prices and persists sales.

Process for `create_sale`:
1. Validate the request (lines, payment method, discount, paid amount)
2. Pre-flight: every product exists and shows enough stock right now
3. Reserve stock line by line through the stock ledger (authoritative check)
4. Price: subtotal = sum(price * qty), tax = subtotal * tax_rate,
   total = subtotal + tax - discount
5. Under the invoice sequencer's year lock: take the next invoice code and
   persist the sale as `completed`
6. Open the sale's payment through the payment ledger

Multi-line creation is NOT one transaction. If line k fails, lines 1..k-1
stay decremented unless `release_stock_on_failure` is enabled, in which case
their stock is put back. Either way the raised SaleLineError names the
failing product, the reason, and the lines that had been reserved so an
operator can reconcile.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from domain.errors import (
    InsufficientStock,
    InvalidTransition,
    POSError,
    ProductNotFound,
    SaleLineError,
    SaleNotFound,
    StorageError,
    ValidationError,
)
from domain.money import money_sum
from domain.sale import PaymentMethod, Sale, SaleLineItem, SaleStatus
from domain.time import utc_now
from repositories.product_repository import ProductRepository
from repositories.sale_repository import MAX_SALES_PAGE, SaleRepository
from services.invoice_sequencer import InvoiceSequencer
from services.payment_service import PaymentService
from services.stock_ledger import StockLedger, StockReservation
from services.validation import (
    SaleLineRequest,
    validate_customer,
    validate_lines,
    validate_non_negative,
    validate_optional_non_negative,
    validate_payment_method,
)

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = Decimal("0.18")


def _new_id() -> str:
    return str(uuid.uuid4())


def compute_totals(
    items: Iterable[SaleLineItem], tax_rate: Decimal, discount: Decimal
) -> tuple[Decimal, Decimal, Decimal]:
    """Return (subtotal, tax, total), unrounded."""

    subtotal = money_sum(item.line_total for item in items)
    tax = subtotal * tax_rate
    return subtotal, tax, subtotal + tax - discount


class SaleService:
    def __init__(
        self,
        sales: SaleRepository,
        products: ProductRepository,
        stock: StockLedger,
        sequencer: InvoiceSequencer,
        payments: PaymentService,
        *,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        release_stock_on_failure: bool = False,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._sales = sales
        self._products = products
        self._stock = stock
        self._sequencer = sequencer
        self._payments = payments
        self._tax_rate = tax_rate
        self._release_on_failure = release_stock_on_failure
        self._clock = clock
        self._new_id = id_factory

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    def create_sale(
        self,
        line_requests: Optional[Iterable[Any]],
        payment_method: Any = None,
        customer: Any = None,
        discount: Any = None,
        paid_amount: Any = None,
    ) -> Sale:
        """
        Create a completed sale and its payment record.

        Raises:
            ValidationError: malformed request
            SaleLineError: a line failed (product missing / insufficient stock)
            StorageError: store failure
        """

        lines = validate_lines(line_requests)
        method = validate_payment_method(payment_method, default=PaymentMethod.CASH)
        snapshot = validate_customer(customer)
        sale_discount = validate_non_negative(discount, field="discount")
        paid = validate_optional_non_negative(paid_amount, field="paid_amount")

        self._preflight(lines, sale_discount)
        reservations = self._reserve_all(lines)

        items = tuple(
            SaleLineItem(
                product_id=r.product_id,
                name=r.name,
                price=r.price,
                cost_basis=r.cost_basis,
                quantity=r.quantity,
            )
            for r in reservations
        )
        subtotal, tax, total = compute_totals(items, self._tax_rate, sale_discount)
        if total < 0:
            # Prices moved between pre-flight and reservation.
            self._compensate(reservations)
            raise ValidationError("discount cannot exceed subtotal plus tax", field="discount")

        now = self._clock()
        try:
            with self._sequencer.issue(now) as invoice_code:
                sale = Sale(
                    sale_id=self._new_id(),
                    invoice_code=invoice_code,
                    customer=snapshot,
                    items=items,
                    subtotal=subtotal,
                    discount=sale_discount,
                    tax=tax,
                    total=total,
                    payment_method=method,
                    status=SaleStatus.COMPLETED,
                    created_at=now,
                )
                self._sales.record_sale(sale)
        except StorageError:
            logger.error("Sale persistence failed after reserving %d line(s)", len(reservations))
            self._compensate(reservations)
            raise

        logger.info("Sale created: %s, total %s", sale.invoice_code, sale.total)

        try:
            self._payments.open_payment(sale, paid)
        except POSError:
            logger.error("Sale %s persisted but its payment could not be opened", sale.invoice_code)
            raise

        return sale

    def _preflight(self, lines: List[SaleLineRequest], discount: Decimal) -> None:
        """
        Cheap read-only check before any stock is touched.

        Not authoritative (stock can still move before reservation) but it
        turns the common failures into errors with nothing to reconcile.
        """

        subtotal = Decimal("0")
        requested: Dict[str, int] = {}
        for index, line in enumerate(lines):
            product = self._products.get_product_by_id(line.product_id)
            if product is None:
                raise SaleLineError(
                    line_index=index,
                    cause=ProductNotFound(line.product_id),
                    reserved_lines=[],
                    stock_released=False,
                )
            # Lines repeating a product draw on the same stock.
            wanted = requested.get(product.product_id, 0) + line.quantity
            if wanted > product.stock:
                raise SaleLineError(
                    line_index=index,
                    cause=InsufficientStock(product.product_id, product.name, wanted, product.stock),
                    reserved_lines=[],
                    stock_released=False,
                )
            requested[product.product_id] = wanted
            subtotal += product.price * line.quantity

        if discount > subtotal + subtotal * self._tax_rate:
            raise ValidationError("discount cannot exceed subtotal plus tax", field="discount")

    def _reserve_all(self, lines: List[SaleLineRequest]) -> List[StockReservation]:
        reservations: List[StockReservation] = []
        for index, line in enumerate(lines):
            try:
                reservations.append(self._stock.reserve(line.product_id, line.quantity))
            except (ProductNotFound, InsufficientStock) as exc:
                released = self._compensate(reservations)
                if reservations and not released:
                    logger.warning(
                        "Sale aborted at line %d; stock left decremented for %s",
                        index + 1,
                        ", ".join(f"{r.name} x{r.quantity}" for r in reservations),
                    )
                raise SaleLineError(
                    line_index=index,
                    cause=exc,
                    reserved_lines=[r.to_dict() for r in reservations],
                    stock_released=released,
                ) from exc
            except StorageError:
                self._compensate(reservations)
                raise
        return reservations

    def _compensate(self, reservations: List[StockReservation]) -> bool:
        """Release reserved stock when enabled. Returns True if everything was put back."""

        if not self._release_on_failure or not reservations:
            return False
        released_all = True
        for reservation in reversed(reservations):
            try:
                self._stock.release(reservation)
            except POSError:
                logger.exception(
                    "Could not release %d of %s; manual reconciliation needed",
                    reservation.quantity,
                    reservation.product_id,
                )
                released_all = False
        return released_all

    def get_sale(self, sale_id: str) -> Sale:
        sale = self._sales.get_sale_by_id(sale_id)
        if sale is None:
            raise SaleNotFound(str(sale_id))
        return sale

    def list_recent_sales(self, limit: int = MAX_SALES_PAGE) -> List[Sale]:
        """Newest first, never more than MAX_SALES_PAGE."""

        return self._sales.list_recent_sales(limit)

    def cancel_sale(self, sale_id: str) -> Sale:
        return self._transition(sale_id, SaleStatus.CANCELLED)

    def refund_sale(self, sale_id: str) -> Sale:
        return self._transition(sale_id, SaleStatus.REFUNDED)

    def _transition(self, sale_id: str, status: SaleStatus) -> Sale:
        current = self.get_sale(sale_id)
        updated = current.with_status(status)
        if not self._sales.update_status_if(current.sale_id, current.status, status):
            latest = self.get_sale(sale_id)
            logger.warning(
                "Sale %s changed to %s before it could be marked %s",
                latest.invoice_code,
                latest.status.value,
                status.value,
            )
            raise InvalidTransition("sale", latest.status.value, status.value)
        logger.info("Sale %s marked %s", updated.invoice_code, status.value)
        return updated


__all__ = ["SaleService", "compute_totals", "DEFAULT_TAX_RATE"]
