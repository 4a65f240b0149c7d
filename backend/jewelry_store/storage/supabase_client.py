"""
Supabase client for the jewelry storefront. Handles all database
operations for the product collections.

Predicates from the filter builder are applied as chained PostgREST
filters; OR groups become ``or=(and(...),and(...))`` expressions.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from postgrest.exceptions import APIError
from supabase import create_client, Client

from jewelry_store.config import SUPABASE_URL, SUPABASE_SERVICE_KEY
from jewelry_store.errors import StoreError
from jewelry_store.models.filters import AnyOf, Constraint, ListingQuery, Op, Predicate

logger = logging.getLogger(__name__)

# PostgREST answers an offset past the last row with this code
RANGE_NOT_SATISFIABLE = "PGRST103"


@lru_cache(maxsize=1)
def get_client() -> Client:
    return create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)


# ---------------------------------------------------------------------------
# Filter translation
# ---------------------------------------------------------------------------

def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _quote(value) -> str:
    """Quote a value for use inside a PostgREST logic-tree expression."""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _filter_terms(constraint: Constraint) -> list[str]:
    """Render a constraint in the ``column.operator.value`` form used by ``or=``."""
    field, op, value = constraint.field, constraint.op, constraint.value
    if op is Op.EQ:
        return [f"{field}.eq.{_quote(value)}"]
    if op is Op.IN:
        return [f"{field}.in.({','.join(_quote(v) for v in value)})"]
    if op is Op.CONTAINS:
        return [f"{field}.cs.{{{_quote(value)}}}"]
    if op is Op.OVERLAPS:
        return [f"{field}.ov.{{{','.join(_quote(v) for v in value)}}}"]
    if op is Op.RANGE:
        terms = []
        if value.gte is not None:
            terms.append(f"{field}.gte.{value.gte}")
        if value.lte is not None:
            terms.append(f"{field}.lte.{value.lte}")
        return terms
    if op is Op.NOT_NULL:
        return [f"{field}.not.is.null"]
    if op is Op.ILIKE:
        return [f"{field}.ilike.{_quote(f'*{escape_like(value)}*')}"]
    raise ValueError(f"Unsupported operator {op!r}")


def or_expression(group: AnyOf) -> str:
    """``price in range OR sale_price in range`` -> ``and(price.gte.30,...),and(...)``."""
    branches = []
    for branch in group.branches:
        terms = [term for constraint in branch for term in _filter_terms(constraint)]
        branches.append(terms[0] if len(terms) == 1 else f"and({','.join(terms)})")
    return ",".join(branches)


def apply_predicate(query, predicate: Predicate):
    """Chain every constraint of *predicate* onto a postgrest request builder."""
    for constraint in predicate.constraints:
        field, op, value = constraint.field, constraint.op, constraint.value
        if op is Op.EQ:
            query = query.eq(field, value)
        elif op is Op.IN:
            query = query.in_(field, list(value))
        elif op is Op.CONTAINS:
            query = query.contains(field, [value])
        elif op is Op.OVERLAPS:
            query = query.overlaps(field, list(value))
        elif op is Op.RANGE:
            if value.gte is not None:
                query = query.gte(field, value.gte)
            if value.lte is not None:
                query = query.lte(field, value.lte)
        elif op is Op.NOT_NULL:
            query = query.not_.is_(field, "null")
        elif op is Op.ILIKE:
            query = query.ilike(field, f"%{escape_like(value)}%")
        else:
            raise ValueError(f"Unsupported operator {op!r}")

    for group in predicate.any_of:
        query = query.or_(or_expression(group))
    return query


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SupabaseProductStore:
    """``ProductStore`` backed by one Supabase table per product collection."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    def _count(self, table: str, predicate: Predicate) -> int:
        try:
            query = self.client.table(table).select("id", count="exact").limit(1)
            result = apply_predicate(query, predicate).execute()
        except Exception as exc:
            logger.error("Count on %s failed: %s", table, exc, exc_info=True)
            raise StoreError(f"Failed to query {table}") from exc
        return result.count or 0

    def find_page(self, query: ListingQuery) -> tuple[list[dict], int]:
        """
        Fetch one page and the exact match count in a single request.

        Ordering follows the sort keys with nulls first on ascending keys
        and last on descending ones.
        """
        columns = ",".join(query.fields) if query.fields else "*"
        request = self.client.table(query.table).select(columns, count="exact")
        request = apply_predicate(request, query.predicate)
        for key in query.sort:
            request = request.order(key.field, desc=key.descending, nullsfirst=not key.descending)
        request = request.range(query.skip, query.skip + query.limit - 1)

        try:
            result = request.execute()
        except APIError as exc:
            if exc.code == RANGE_NOT_SATISFIABLE:
                return [], self._count(query.table, query.predicate)
            logger.error("Listing query on %s failed: %s", query.table, exc, exc_info=True)
            raise StoreError(f"Failed to query {query.table}") from exc
        except Exception as exc:
            logger.error("Listing query on %s failed: %s", query.table, exc, exc_info=True)
            raise StoreError(f"Failed to query {query.table}") from exc

        return result.data or [], result.count or 0

    def find_one(self, table: str, predicate: Predicate) -> dict | None:
        try:
            query = apply_predicate(self.client.table(table).select("*"), predicate)
            result = query.limit(1).execute()
        except Exception as exc:
            logger.error("Lookup on %s failed: %s", table, exc, exc_info=True)
            raise StoreError(f"Failed to query {table}") from exc
        if result.data:
            return result.data[0]
        return None

    def get(self, table: str, record_id: str) -> dict | None:
        """Fetch a single row by its ID. Returns the row dict or None."""
        try:
            result = (
                self.client.table(table)
                .select("*")
                .eq("id", record_id)
                .execute()
            )
        except Exception as exc:
            logger.error("Fetching %s/%s failed: %s", table, record_id, exc, exc_info=True)
            raise StoreError(f"Failed to fetch from {table}") from exc
        if result.data:
            return result.data[0]
        return None

    def insert(self, table: str, record: dict) -> dict:
        """Insert a row, filtering out None values, and return the stored row."""
        row = {key: value for key, value in record.items() if value is not None}
        try:
            result = self.client.table(table).insert(row).execute()
        except Exception as exc:
            logger.error("Insert into %s failed: %s", table, exc, exc_info=True)
            raise StoreError(f"Failed to insert into {table}") from exc
        return result.data[0]

    def update(self, table: str, record_id: str, updates: dict) -> dict | None:
        """Apply a partial update to an existing row."""
        try:
            result = self.client.table(table).update(updates).eq("id", record_id).execute()
        except Exception as exc:
            logger.error("Update of %s/%s failed: %s", table, record_id, exc, exc_info=True)
            raise StoreError(f"Failed to update {table}") from exc
        if result.data:
            return result.data[0]
        return None

    def delete(self, table: str, record_id: str) -> dict | None:
        try:
            result = self.client.table(table).delete().eq("id", record_id).execute()
        except Exception as exc:
            logger.error("Delete of %s/%s failed: %s", table, record_id, exc, exc_info=True)
            raise StoreError(f"Failed to delete from {table}") from exc
        if result.data:
            return result.data[0]
        return None
