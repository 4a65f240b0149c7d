"""
In-process product store for local development and tests.

Evaluates :class:`Predicate` objects directly against dict records with
document-database semantics: array fields match on membership, range
bounds never match a missing value, and ascending sorts put nulls first.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from jewelry_store.models.filters import Constraint, ListingQuery, Op, Predicate, SortKey

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Predicate evaluation
# ---------------------------------------------------------------------------

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def constraint_matches(record: dict, constraint: Constraint) -> bool:
    value = record.get(constraint.field)
    op, expected = constraint.op, constraint.value

    if op is Op.EQ:
        return value == expected
    if op is Op.IN:
        return value in expected
    if op is Op.CONTAINS:
        return isinstance(value, list) and expected in value
    if op is Op.OVERLAPS:
        return isinstance(value, list) and any(item in value for item in expected)
    if op is Op.NOT_NULL:
        return value is not None
    if op is Op.RANGE:
        if not _is_number(value):
            return False
        if expected.gte is not None and value < expected.gte:
            return False
        if expected.lte is not None and value > expected.lte:
            return False
        return True
    if op is Op.ILIKE:
        return isinstance(value, str) and expected.lower() in value.lower()
    raise ValueError(f"Unsupported operator {op!r}")


def predicate_matches(record: dict, predicate: Predicate) -> bool:
    if not all(constraint_matches(record, c) for c in predicate.constraints):
        return False
    for group in predicate.any_of:
        if not any(
            all(constraint_matches(record, c) for c in branch)
            for branch in group.branches
        ):
            return False
    return True


def sort_records(records: list[dict], sort: tuple[SortKey, ...]) -> list[dict]:
    """Multi-key sort; applied least-significant key first so each pass is stable."""
    ordered = list(records)
    for key in reversed(sort):
        ordered.sort(
            key=lambda r, f=key.field: (r.get(f) is not None, r.get(f) if r.get(f) is not None else 0),
            reverse=key.descending,
        )
    return ordered


def _project(record: dict, fields: tuple[str, ...]) -> dict:
    if not fields:
        return copy.deepcopy(record)
    return {f: copy.deepcopy(record[f]) for f in fields if f in record}


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class InMemoryProductStore:
    """Dict-backed implementation of the ``ProductStore`` protocol."""

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        self._tables: dict[str, list[dict]] = {
            name: [copy.deepcopy(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self._lock = threading.Lock()

    @classmethod
    def from_seed_file(cls, path: str | Path) -> "InMemoryProductStore":
        """Load ``{"table": [records, ...]}`` from a JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        store = cls(data)
        logger.info(
            "Seeded in-memory store: %s",
            ", ".join(f"{name}={len(rows)}" for name, rows in store._tables.items()),
        )
        return store

    def _rows(self, table: str) -> list[dict]:
        return self._tables.setdefault(table, [])

    def find_page(self, query: ListingQuery) -> tuple[list[dict], int]:
        with self._lock:
            matched = [r for r in self._rows(query.table) if predicate_matches(r, query.predicate)]
        ordered = sort_records(matched, query.sort)
        window = ordered[query.skip: query.skip + query.limit]
        return [_project(r, query.fields) for r in window], len(matched)

    def find_one(self, table: str, predicate: Predicate) -> dict | None:
        with self._lock:
            for record in self._rows(table):
                if predicate_matches(record, predicate):
                    return copy.deepcopy(record)
        return None

    def get(self, table: str, record_id: str) -> dict | None:
        return self.find_one(table, Predicate((Constraint("id", Op.EQ, record_id),)))

    def insert(self, table: str, record: dict) -> dict:
        now = datetime.now(timezone.utc).isoformat()
        row = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **record}
        with self._lock:
            self._rows(table).append(row)
        return copy.deepcopy(row)

    def update(self, table: str, record_id: str, updates: dict) -> dict | None:
        with self._lock:
            for record in self._rows(table):
                if record.get("id") == record_id:
                    record.update(copy.deepcopy(updates))
                    return copy.deepcopy(record)
        return None

    def delete(self, table: str, record_id: str) -> dict | None:
        with self._lock:
            rows = self._rows(table)
            for index, record in enumerate(rows):
                if record.get("id") == record_id:
                    return rows.pop(index)
        return None
