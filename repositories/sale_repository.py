"""
Sale repository (persistence).

This module provides *only* persistence operations for the Sale domain
entity. It does not price, validate or number sales; it only inserts,
updates and fetches sale rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from domain.money import to_decimal
from domain.sale import CustomerSnapshot, PaymentMethod, Sale, SaleLineItem, SaleStatus
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.record_store import Filter, Op, RecordStore, where

# Hard cap on list endpoints.
MAX_SALES_PAGE: int = 100


def _row_to_customer(raw: Any) -> CustomerSnapshot:
    raw = raw or {}
    return CustomerSnapshot(
        name=str(raw.get("name") or CustomerSnapshot().name),
        phone=str(raw.get("phone") or ""),
        email=str(raw.get("email") or ""),
    )


def _row_to_item(raw: Mapping[str, Any]) -> SaleLineItem:
    return SaleLineItem(
        product_id=str(raw["product_id"]),
        name=str(raw["name"]),
        price=to_decimal(raw["price"], name="price"),
        cost_basis=to_decimal(raw["cost_basis"], name="cost_basis"),
        quantity=int(raw["quantity"]),
        discount=to_decimal(raw.get("discount"), name="discount"),
    )


def _row_to_sale(row: Mapping[str, Any]) -> Sale:
    """Convert a stored row into a Sale."""

    return Sale(
        sale_id=str(row["sale_id"]),
        invoice_code=str(row["invoice_code"]),
        customer=_row_to_customer(row.get("customer")),
        items=tuple(_row_to_item(item) for item in row["items"]),
        subtotal=to_decimal(row["subtotal"], name="subtotal"),
        discount=to_decimal(row.get("discount"), name="discount"),
        tax=to_decimal(row.get("tax"), name="tax"),
        total=to_decimal(row["total"], name="total"),
        payment_method=PaymentMethod(str(row["payment_method"])),
        status=SaleStatus(str(row.get("status") or SaleStatus.COMPLETED.value)),
        created_at=parse_utc_datetime(row["created_at_utc"]),
    )


def _sale_to_row(sale: Sale) -> dict[str, Any]:
    return {
        "sale_id": sale.sale_id,
        "invoice_code": sale.invoice_code,
        "customer": sale.customer.to_dict(),
        "items": [
            {
                "product_id": item.product_id,
                "name": item.name,
                "price": str(item.price),
                "cost_basis": str(item.cost_basis),
                "quantity": item.quantity,
                "discount": str(item.discount),
            }
            for item in sale.items
        ],
        "subtotal": str(sale.subtotal),
        "discount": str(sale.discount),
        "tax": str(sale.tax),
        "total": str(sale.total),
        "payment_method": sale.payment_method.value,
        "status": sale.status.value,
        "created_at_utc": to_iso_utc(sale.created_at, name="created_at"),
    }


def created_between(start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Any]:
    """Half-open [start, end) window on created_at_utc."""

    filters: List[Any] = []
    if start is not None:
        filters.append(where("created_at_utc", Op.GTE, to_iso_utc(start, name="start")))
    if end is not None:
        filters.append(where("created_at_utc", Op.LT, to_iso_utc(end, name="end")))
    return filters


class SaleRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def record_sale(self, sale: Sale) -> Sale:
        """Insert a new sale. Invoice-code uniqueness is enforced by the store schema."""

        self._store.save(_sale_to_row(sale))
        return sale

    def update_status_if(self, sale_id: str, expected: SaleStatus, status: SaleStatus) -> bool:
        """Set `status` only while the stored sale is still `expected`. False means another writer got there first."""

        return self._store.compare_and_set(str(sale_id), "status", expected.value, status.value)

    def get_sale_by_id(self, sale_id: str) -> Optional[Sale]:
        row = self._store.find_by_id(str(sale_id))
        return _row_to_sale(row) if row is not None else None

    def count_invoices_with_prefix(self, prefix: str) -> int:
        return self._store.count_where([where("invoice_code", Op.PREFIX, prefix)])

    def list_sales(self, filters: Filter = (), limit: Optional[int] = MAX_SALES_PAGE) -> List[Sale]:
        """Sales matching `filters`, newest first."""

        rows = self._store.find_many(filters, order_by="created_at_utc", descending=True, limit=limit)
        return [_row_to_sale(row) for row in rows]

    def list_recent_sales(self, limit: int = MAX_SALES_PAGE) -> List[Sale]:
        return self.list_sales(limit=min(max(limit, 1), MAX_SALES_PAGE))


__all__ = ["SaleRepository", "MAX_SALES_PAGE", "created_between"]
