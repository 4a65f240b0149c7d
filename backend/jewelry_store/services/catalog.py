"""
Catalog operations shared by the storefront and admin routes.

Listings run one store round-trip through the filter query builder;
admin writes validate the tagged input record, derive a slug and keep
hosted images in step with the product rows.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from jewelry_store.config import DEFAULT_SORT
from jewelry_store.errors import InvalidProductError, ProductNotFoundError, StoreError
from jewelry_store.models.filters import Constraint, Op, Pagination, Predicate, ProductPage
from jewelry_store.models.product import ProductInput, to_store_row
from jewelry_store.services.categories import CategoryConfig, get_category
from jewelry_store.services.query_builder import build_listing_query
from jewelry_store.services.slugs import looks_like_id, slug_source, unique_slug
from jewelry_store.storage import r2_client
from jewelry_store.storage.store import ProductStore

logger = logging.getLogger(__name__)

ADMIN_DEFAULT_SORT = "newest"


def first_image_url(images) -> str:
    for image in images or []:
        if image.get("url"):
            return image["url"]
    return ""


def product_image_url(record: dict, color: str | None = None) -> str:
    """Image for *record*: the metal-color image, then media images, then plain images."""
    by_color = record.get("metal_color_images") or {}
    return (
        (first_image_url(by_color.get(color)) if color else "")
        or first_image_url((record.get("media") or {}).get("images"))
        or first_image_url(record.get("images"))
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_products(
    store: ProductStore,
    category: str,
    segment: str,
    params: Mapping[str, str],
    storefront: bool = True,
) -> ProductPage:
    """One page of a collection, filtered by *segment* and the query *params*."""
    config = get_category(category)
    query = build_listing_query(
        config,
        segment,
        params,
        storefront=storefront,
        default_sort=DEFAULT_SORT if storefront else ADMIN_DEFAULT_SORT,
    )
    logger.debug(
        "Listing %s/%s filter=%s sort=%s",
        category,
        segment,
        query.predicate.to_mapping(),
        [(key.field, key.descending) for key in query.sort],
    )

    try:
        records, total = store.find_page(query)
    except StoreError as exc:
        raise StoreError(f"Failed to fetch {config.label}") from exc

    logger.info("Listing %s/%s matched %d records", category, segment, total)
    return ProductPage(
        products=records,
        pagination=Pagination.for_page(total, query.page, query.limit, len(records)),
    )


def _find_by_slug(store: ProductStore, config: CategoryConfig, slug: str) -> dict | None:
    return store.find_one(config.table, Predicate((Constraint("slug", Op.EQ, slug),)))


def get_product(
    store: ProductStore,
    category: str,
    identifier: str,
    storefront: bool = True,
) -> dict:
    """Resolve a product by id (UUID-shaped identifiers) or by exact slug.

    Storefront lookups treat unavailable products as missing.
    """
    config = get_category(category)
    try:
        if looks_like_id(identifier):
            record = store.get(config.table, identifier)
        else:
            record = _find_by_slug(store, config, identifier)
    except StoreError as exc:
        raise StoreError(f"Failed to fetch {config.label}") from exc

    if record is None:
        raise ProductNotFoundError(config.table, identifier)
    if storefront and not record.get(config.availability_field, True):
        raise ProductNotFoundError(config.table, identifier)
    return record


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------

_product_input = TypeAdapter(ProductInput)


def parse_product_input(category: str, payload: dict):
    """Validate an admin payload as the input record of *category*.

    A payload without ``kind`` is read as a record of the collection it
    was posted to.
    """
    config = get_category(category)
    try:
        product = _product_input.validate_python({"kind": config.key, **payload})
    except ValidationError as exc:
        raise InvalidProductError(
            f"Invalid {config.key} record: {exc.error_count()} validation error(s)",
            errors=exc.errors(include_url=False, include_context=False),
        ) from None
    return product


def _check_kind(category: str, product) -> CategoryConfig:
    config = get_category(category)
    if product.kind != config.key:
        raise InvalidProductError(
            f"A '{product.kind}' record cannot be stored in the '{config.key}' collection"
        )
    return config


def create_product(store: ProductStore, category: str, product) -> dict:
    """Insert a validated admin input record and return the stored row."""
    config = _check_kind(category, product)
    row = to_store_row(product)
    row["slug"] = unique_slug(
        slug_source(config.key, row),
        lambda slug: _find_by_slug(store, config, slug) is not None,
    )
    record = store.insert(config.table, row)
    logger.info("Created %s %s (slug %s)", config.key, record.get("id"), record.get("slug"))
    return record


def update_product(store: ProductStore, category: str, record_id: str, product) -> dict:
    """Replace a product's fields with a validated input record.

    The slug assigned on creation is kept so existing links stay valid.
    """
    config = _check_kind(category, product)
    existing = store.get(config.table, record_id)
    if existing is None:
        raise ProductNotFoundError(config.table, record_id)

    row = to_store_row(product)
    row["slug"] = existing.get("slug") or unique_slug(
        slug_source(config.key, row),
        lambda slug: _find_by_slug(store, config, slug) is not None,
    )
    row["updated_at"] = datetime.now(timezone.utc).isoformat()

    record = store.update(config.table, record_id, row)
    if record is None:
        raise ProductNotFoundError(config.table, record_id)
    logger.info("Updated %s %s", config.key, record_id)
    return record


def delete_product(store: ProductStore, category: str, record_id: str) -> dict:
    """Delete a product row, then its hosted images."""
    config = get_category(category)
    record = store.delete(config.table, record_id)
    if record is None:
        raise ProductNotFoundError(config.table, record_id)

    removed = r2_client.delete_product_images(record)
    logger.info("Deleted %s %s and %d image(s)", config.key, record_id, removed)
    return record
