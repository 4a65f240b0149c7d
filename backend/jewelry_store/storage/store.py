"""Product store contract and backend selection."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Protocol

from jewelry_store.config import SEED_CATALOG_PATH, STORE_BACKEND
from jewelry_store.models.filters import ListingQuery, Predicate

logger = logging.getLogger(__name__)


class ProductStore(Protocol):
    """Read/write access to the per-collection product tables.

    Records are plain dicts keyed by column name; ``id`` is the primary key.
    """

    def find_page(self, query: ListingQuery) -> tuple[list[dict], int]:
        """Return one sorted page of matching records and the total match count."""
        ...

    def find_one(self, table: str, predicate: Predicate) -> dict | None: ...

    def get(self, table: str, record_id: str) -> dict | None: ...

    def insert(self, table: str, record: dict) -> dict: ...

    def update(self, table: str, record_id: str, updates: dict) -> dict | None: ...

    def delete(self, table: str, record_id: str) -> dict | None: ...


@lru_cache(maxsize=1)
def get_product_store() -> ProductStore:
    """Return the process-wide store selected by ``STORE_BACKEND``."""
    if STORE_BACKEND == "memory":
        from jewelry_store.storage.memory_store import InMemoryProductStore

        logger.info("Using in-memory product store (seed: %s)", SEED_CATALOG_PATH or "none")
        if SEED_CATALOG_PATH:
            return InMemoryProductStore.from_seed_file(SEED_CATALOG_PATH)
        return InMemoryProductStore()

    from jewelry_store.storage.supabase_client import SupabaseProductStore

    return SupabaseProductStore()
