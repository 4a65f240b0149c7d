"""Storefront search and type-ahead suggestion API routes."""

from fastapi import APIRouter, Depends, Query, Request

from jewelry_store.services import search
from jewelry_store.storage.store import ProductStore, get_product_store

router = APIRouter(prefix="/api/search", tags=["search"])


# --------------------------------------------------------------------------- #
# 1. Search across all collections
# --------------------------------------------------------------------------- #

@router.get("")
async def search_products(
    request: Request,
    store: ProductStore = Depends(get_product_store),
):
    """Search every collection.

    Query string: ``q``, ``category``, ``metal``, ``style``, ``shape`` and
    ``gemstoneType`` (comma separated), ``minPrice``/``maxPrice``,
    ``sortBy`` (relevance, price-low, price-high, newest), ``page``, ``limit``.
    """
    results = await search.search_products(store, dict(request.query_params))
    return results.model_dump(by_alias=True)


# --------------------------------------------------------------------------- #
# 2. Suggestions
# --------------------------------------------------------------------------- #

@router.get("/suggestions")
async def suggest_products(
    q: str = Query(default="", description="At least two characters"),
    store: ProductStore = Depends(get_product_store),
):
    suggestions = await search.suggest_products(store, q)
    return [suggestion.model_dump() for suggestion in suggestions]
