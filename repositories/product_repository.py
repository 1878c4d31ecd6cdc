"""
Product repository (persistence).

Maps product rows to the Product domain entity. Catalog editing lives outside
the engine; this repository reads products and exposes the single stock
mutation primitive the stock ledger builds on.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from domain.money import to_decimal
from domain.product import Product
from repositories.record_store import Filter, RecordStore


def _row_to_product(row: Mapping[str, Any]) -> Product:
    purchase_price = row.get("purchase_price")
    threshold = row.get("low_stock_threshold")
    return Product(
        product_id=str(row["product_id"]),
        name=str(row["name"]),
        price=to_decimal(row["price"], name="price"),
        stock=int(row.get("stock") or 0),
        purchase_price=to_decimal(purchase_price, name="purchase_price")
        if purchase_price not in (None, "")
        else None,
        low_stock_threshold=int(threshold) if threshold is not None else 10,
        category=row.get("category"),
        unit=str(row.get("unit") or "pcs"),
    )


def _product_to_row(product: Product) -> dict[str, Any]:
    return {
        "product_id": product.product_id,
        "name": product.name,
        "price": str(product.price),
        "purchase_price": str(product.purchase_price) if product.purchase_price is not None else None,
        "stock": product.stock,
        "low_stock_threshold": product.low_stock_threshold,
        "category": product.category,
        "unit": product.unit,
    }


class ProductRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        row = self._store.find_by_id(str(product_id))
        return _row_to_product(row) if row is not None else None

    def list_products(self, filters: Filter = ()) -> List[Product]:
        return [_row_to_product(row) for row in self._store.find_many(filters, order_by="name")]

    def save_product(self, product: Product) -> Product:
        return _row_to_product(self._store.save(_product_to_row(product)))

    def decrement_stock_if_unchanged(self, product_id: str, expected: int, quantity: int) -> bool:
        """
        Conditionally write `expected - quantity` as the new stock.

        Returns False when the stored stock no longer equals `expected`
        (another writer got there first); the caller re-reads and re-checks.
        """

        return self._store.compare_and_set(str(product_id), "stock", expected, expected - quantity)

    def increment_stock_if_unchanged(self, product_id: str, expected: int, quantity: int) -> bool:
        return self._store.compare_and_set(str(product_id), "stock", expected, expected + quantity)


__all__ = ["ProductRepository"]
