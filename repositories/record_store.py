"""
Generic record store interface.

The engine persists three entities (products, sales, payments) through this
interface only. A store holds one table of JSON-like rows keyed by a single
id column and supports:

- find_by_id(record_id)
- find_many(filters, order_by, descending, limit)
- count_where(filters)
- save(row)                       (insert-or-update by id)
- aggregate_sum(filters, field)
- compare_and_set(record_id, field, expected, new)

`compare_and_set` is the single conditional update the stock ledger relies
on: it writes `new` only if the stored value still equals `expected`, and
reports whether the write happened.

This module contains the interface and a thread-safe in-memory
implementation used for local runs and tests. The Supabase implementation
lives in `repositories.supabase_store`.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from domain.errors import StorageError
from domain.money import ZERO, to_decimal


class Op(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    PREFIX = "prefix"
    ICONTAINS = "icontains"


@dataclass(frozen=True, slots=True)
class Condition:
    """
    A single filter clause: `field <op> value`.

    Range operators (gt/gte/lt/lte) are meant for ISO timestamps and integer
    columns; decimal columns are stored as strings and do not order reliably.
    """

    field: str
    op: Op
    value: Any


def where(field: str, op: Op | str, value: Any) -> Condition:
    return Condition(field=field, op=Op(op), value=value)


def any_of(*conditions: Condition) -> "AnyOf":
    return AnyOf(conditions=tuple(conditions))


@dataclass(frozen=True, slots=True)
class AnyOf:
    """Disjunction of conditions (e.g. customer name OR phone matches)."""

    conditions: tuple[Condition, ...]


Filter = Sequence[Condition | AnyOf]


class RecordStore(Protocol):
    table: str
    id_field: str

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]: ...

    def find_many(
        self,
        filters: Filter = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...

    def count_where(self, filters: Filter = ()) -> int: ...

    def save(self, row: Mapping[str, Any]) -> Dict[str, Any]: ...

    def aggregate_sum(self, filters: Filter, field: str) -> Decimal: ...

    def compare_and_set(self, record_id: str, field: str, expected: Any, new: Any) -> bool: ...


def _matches(row: Mapping[str, Any], condition: Condition) -> bool:
    actual = row.get(condition.field)
    expected = condition.value
    op = condition.op

    if op is Op.EQ:
        return actual == expected
    if op is Op.NEQ:
        return actual != expected
    if op is Op.IN:
        return actual in expected
    if op is Op.PREFIX:
        return isinstance(actual, str) and actual.startswith(expected)
    if op is Op.ICONTAINS:
        return isinstance(actual, str) and expected.lower() in actual.lower()

    if actual is None:
        return False
    if op is Op.GT:
        return actual > expected
    if op is Op.GTE:
        return actual >= expected
    if op is Op.LT:
        return actual < expected
    if op is Op.LTE:
        return actual <= expected
    raise ValueError(f"Unsupported operator: {op!r}")


def matches_all(row: Mapping[str, Any], filters: Filter) -> bool:
    for clause in filters:
        if isinstance(clause, AnyOf):
            if not any(_matches(row, c) for c in clause.conditions):
                return False
        elif not _matches(row, clause):
            return False
    return True


def _nested_get(row: Mapping[str, Any], dotted: str) -> Any:
    value: Any = row
    for part in dotted.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


class InMemoryRecordStore:
    """
    Thread-safe in-memory table.

    Rows are deep-copied on the way in and out so callers can never mutate
    stored state without going through `save` or `compare_and_set`.
    Dotted field names ("customer.name") address nested mappings.
    """

    def __init__(self, table: str, id_field: str) -> None:
        self.table = table
        self.id_field = id_field
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def _flat(self, row: Mapping[str, Any], filters: Filter) -> Mapping[str, Any]:
        dotted = {
            c.field
            for clause in filters
            for c in (clause.conditions if isinstance(clause, AnyOf) else (clause,))
            if "." in c.field
        }
        if not dotted:
            return row
        flat = dict(row)
        for name in dotted:
            flat[name] = _nested_get(row, name)
        return flat

    def _select(self, filters: Filter) -> Iterable[Dict[str, Any]]:
        return [row for row in self._rows.values() if matches_all(self._flat(row, filters), filters)]

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(str(record_id))
            return copy.deepcopy(row) if row is not None else None

    def find_many(
        self,
        filters: Filter = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            rows = list(self._select(filters))
            if order_by is not None:
                rows.sort(
                    key=lambda r: (r.get(order_by) is not None, r.get(order_by)),
                    reverse=descending,
                )
            if limit is not None:
                rows = rows[:limit]
            return copy.deepcopy(rows)

    def count_where(self, filters: Filter = ()) -> int:
        with self._lock:
            return len(list(self._select(filters)))

    def save(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        record_id = row.get(self.id_field)
        if record_id is None:
            raise StorageError(f"{self.table}: row is missing {self.id_field}")
        with self._lock:
            self._rows[str(record_id)] = copy.deepcopy(dict(row))
            return copy.deepcopy(self._rows[str(record_id)])

    def aggregate_sum(self, filters: Filter, field: str) -> Decimal:
        with self._lock:
            return sum(
                (to_decimal(row.get(field), name=field) for row in self._select(filters)),
                ZERO,
            )

    def compare_and_set(self, record_id: str, field: str, expected: Any, new: Any) -> bool:
        with self._lock:
            row = self._rows.get(str(record_id))
            if row is None or row.get(field) != expected:
                return False
            row[field] = new
            return True


__all__ = [
    "Op",
    "Condition",
    "AnyOf",
    "Filter",
    "RecordStore",
    "InMemoryRecordStore",
    "where",
    "any_of",
    "matches_all",
]
