"""
Tests for `services/stock_ledger.py`.

Stock never goes negative, failed reservations leave stock untouched, and
lost conditional updates are retried against fresh stock.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from domain.errors import InsufficientStock, ProductNotFound, StorageError, ValidationError
from domain.product import Product
from repositories.product_repository import ProductRepository
from services.stock_ledger import StockLedger


@pytest.fixture
def products(stores) -> ProductRepository:
    repo = ProductRepository(stores.products)
    repo.save_product(Product("rice", "Basmati Rice 5kg", Decimal("500"), 5, Decimal("350")))
    repo.save_product(Product("dal", "Toor Dal 1kg", Decimal("100"), 50))
    return repo


def test_reserve_decrements_and_snapshots_pricing(products: ProductRepository) -> None:
    reservation = StockLedger(products).reserve("dal", 3)

    assert reservation.remaining_stock == 47
    assert reservation.price == Decimal("100")
    assert reservation.cost_basis == Decimal("70")
    assert reservation.to_dict() == {"product_id": "dal", "name": "Toor Dal 1kg", "quantity": 3}
    assert products.get_product_by_id("dal").stock == 47


def test_insufficient_stock_leaves_stock_unchanged(products: ProductRepository) -> None:
    ledger = StockLedger(products)

    ledger.reserve("rice", 2)
    assert products.get_product_by_id("rice").stock == 3

    with pytest.raises(InsufficientStock) as exc_info:
        ledger.reserve("rice", 4)

    assert exc_info.value.requested == 4
    assert exc_info.value.available == 3
    assert products.get_product_by_id("rice").stock == 3


def test_unknown_product(products: ProductRepository) -> None:
    with pytest.raises(ProductNotFound):
        StockLedger(products).reserve("ghee", 1)


def test_quantity_must_be_positive(products: ProductRepository) -> None:
    with pytest.raises(ValidationError):
        StockLedger(products).reserve("rice", 0)


def test_concurrent_reservations_never_oversell(products: ProductRepository) -> None:
    ledger = StockLedger(products)

    def attempt(_: int) -> bool:
        try:
            ledger.reserve("dal", 3)
            return True
        except InsufficientStock:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(20)))

    # 50 units / 3 per sale -> 16 sales fit, 2 units left.
    assert results.count(True) == 16
    assert products.get_product_by_id("dal").stock == 2


class RacingProductRepository(ProductRepository):
    """Another writer takes one unit right before our first conditional write."""

    def __init__(self, store) -> None:
        super().__init__(store)
        self.raced = False

    def decrement_stock_if_unchanged(self, product_id: str, expected: int, quantity: int) -> bool:
        if not self.raced:
            self.raced = True
            product = self.get_product_by_id(product_id)
            self.save_product(product.with_stock(product.stock - 1))
        return super().decrement_stock_if_unchanged(product_id, expected, quantity)


def test_lost_conditional_update_is_retried_on_fresh_stock(stores, products: ProductRepository) -> None:
    racing = RacingProductRepository(stores.products)

    reservation = StockLedger(racing).reserve("dal", 2)

    assert racing.raced
    # 50 - 1 (other writer) - 2 (ours)
    assert reservation.remaining_stock == 47
    assert racing.get_product_by_id("dal").stock == 47


class AlwaysLosingProductRepository(ProductRepository):
    def __init__(self, store) -> None:
        super().__init__(store)
        self.attempts = 0

    def decrement_stock_if_unchanged(self, product_id: str, expected: int, quantity: int) -> bool:
        self.attempts += 1
        return False


def test_contention_gives_up_after_max_attempts(stores, products: ProductRepository) -> None:
    losing = AlwaysLosingProductRepository(stores.products)

    with pytest.raises(StorageError):
        StockLedger(losing, max_attempts=3).reserve("dal", 1)

    assert losing.attempts == 3
    assert losing.get_product_by_id("dal").stock == 50


def test_release_puts_stock_back(products: ProductRepository) -> None:
    ledger = StockLedger(products)
    reservation = ledger.reserve("rice", 4)

    ledger.release(reservation)

    assert products.get_product_by_id("rice").stock == 5


def test_max_attempts_must_be_positive(products: ProductRepository) -> None:
    with pytest.raises(ValueError):
        StockLedger(products, max_attempts=0)
