"""
Invoice numbering.

Codes have the literal form INV-<yyyy>-<nnnn>: the calendar year (UTC) and
the 1-based position of the sale within that year, zero-padded to four
digits (wider once a year passes 9999 sales).

The sequence is derived from the count of stored sales carrying the year's
prefix, so count -> format -> insert must not interleave between callers.
`issue()` holds a per-year lock across that whole span; the store's unique
constraint on invoice_code is the backstop if a second process ever writes
to the same table.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from domain.time import require_utc_timestamp, utc_now
from repositories.sale_repository import SaleRepository
from services.locks import LockStripes

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"


def year_prefix(year: int) -> str:
    return f"{INVOICE_PREFIX}-{year:04d}-"


def format_invoice_code(year: int, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    return f"{year_prefix(year)}{sequence:04d}"


class InvoiceSequencer:
    def __init__(self, sales: SaleRepository, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._sales = sales
        self._clock = clock
        self._year_locks = LockStripes()

    def _lock_for(self, year: int) -> threading.Lock:
        return self._year_locks.for_key(year)

    def _peek(self, year: int) -> str:
        count = self._sales.count_invoices_with_prefix(year_prefix(year))
        return format_invoice_code(year, count + 1)

    def next_code(self, now: Optional[datetime] = None) -> str:
        """
        The code the next sale in `now`'s year would receive.

        Only the count is serialized here; callers that go on to insert a
        sale must use `issue()` instead so the insert happens under the lock.
        """

        year = self._year_of(now)
        with self._lock_for(year):
            return self._peek(year)

    @contextmanager
    def issue(self, now: Optional[datetime] = None) -> Iterator[str]:
        """
        Yield the next invoice code while holding the year's lock.

        The sale carrying the code must be persisted inside the `with` block.
        Store errors propagate unchanged as StorageError.
        """

        year = self._year_of(now)
        with self._lock_for(year):
            code = self._peek(year)
            logger.debug("Issuing invoice code %s", code)
            yield code

    def _year_of(self, now: Optional[datetime]) -> int:
        moment = now if now is not None else self._clock()
        require_utc_timestamp("now", moment)
        return moment.year


__all__ = ["InvoiceSequencer", "format_invoice_code", "year_prefix"]
