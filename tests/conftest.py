"""
Pytest configuration and shared fixtures.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules.
"""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import Settings  # noqa: E402
from domain.product import Product  # noqa: E402
from repositories.client import create_memory_stores  # noqa: E402
from services.engine import build_engine  # noqa: E402


class FixedClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def stores():
    return create_memory_stores()


@pytest.fixture
def catalog():
    return [
        Product("rice", "Basmati Rice 5kg", Decimal("500"), 20, Decimal("350")),
        # No purchase price: cost basis falls back to 70% of price.
        Product("dal", "Toor Dal 1kg", Decimal("100"), 50),
        Product("oil", "Sunflower Oil 1L", Decimal("180"), 5, Decimal("150")),
    ]


@pytest.fixture
def engine(stores, clock, catalog):
    engine = build_engine(Settings(), stores, clock=clock)
    for product in catalog:
        engine.products.save_product(product)
    return engine
