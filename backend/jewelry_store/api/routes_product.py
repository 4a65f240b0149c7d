"""Storefront product listing and detail API routes."""

from fastapi import APIRouter, Depends, Request

from jewelry_store.services import catalog
from jewelry_store.storage.store import ProductStore, get_product_store

router = APIRouter(prefix="/api/products", tags=["products"])


# --------------------------------------------------------------------------- #
# 1. Category listing
# --------------------------------------------------------------------------- #

@router.get("/{category}/{segment}")
async def list_products(
    category: str,
    segment: str,
    request: Request,
    store: ProductStore = Depends(get_product_store),
):
    """One page of a collection.

    *segment* is ``all``, a special segment such as ``natural`` or a
    prefixed facet such as ``shape-princess``. Facet, range, price,
    ``search``, ``sort``, ``page`` and ``limit`` come from the query string.
    """
    page = catalog.list_products(store, category, segment, dict(request.query_params))
    return page.model_dump(by_alias=True)


# --------------------------------------------------------------------------- #
# 2. Product detail
# --------------------------------------------------------------------------- #

@router.get("/{category}/detail/{identifier}")
async def get_product(
    category: str,
    identifier: str,
    store: ProductStore = Depends(get_product_store),
):
    """Return one available product by id or slug. Raises 404 if there is none."""
    return {"product": catalog.get_product(store, category, identifier)}
