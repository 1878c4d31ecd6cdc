"""
Tests for `services/invoice_sequencer.py`.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from services.invoice_sequencer import format_invoice_code, year_prefix


def test_format_invoice_code() -> None:
    assert year_prefix(2024) == "INV-2024-"
    assert format_invoice_code(2024, 1) == "INV-2024-0001"
    assert format_invoice_code(2024, 42) == "INV-2024-0042"
    # Widens instead of wrapping past 9999.
    assert format_invoice_code(2024, 10000) == "INV-2024-10000"


def test_sequence_starts_at_one() -> None:
    with pytest.raises(ValueError):
        format_invoice_code(2024, 0)


def test_first_and_second_sale_of_the_year(engine) -> None:
    assert engine.invoices.next_code() == "INV-2024-0001"

    first = engine.sales.create_sale([{"productId": "dal", "quantity": 1}])
    second = engine.sales.create_sale([{"productId": "dal", "quantity": 1}])

    assert first.invoice_code == "INV-2024-0001"
    assert second.invoice_code == "INV-2024-0002"
    assert engine.invoices.next_code() == "INV-2024-0003"


def test_sequence_restarts_each_year(engine, clock) -> None:
    engine.sales.create_sale([{"productId": "dal", "quantity": 1}])

    clock.now = datetime(2025, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
    sale = engine.sales.create_sale([{"productId": "dal", "quantity": 1}])

    assert sale.invoice_code == "INV-2025-0001"


def test_next_code_requires_utc(engine) -> None:
    with pytest.raises(ValueError):
        engine.invoices.next_code(datetime(2024, 6, 15, 12, 0, 0))


def test_concurrent_sales_get_unique_consecutive_codes(engine) -> None:
    def ring_up(_: int) -> str:
        return engine.sales.create_sale([{"productId": "dal", "quantity": 1}]).invoice_code

    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(ring_up, range(25)))

    assert sorted(codes) == [format_invoice_code(2024, n) for n in range(1, 26)]
