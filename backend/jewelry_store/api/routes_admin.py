"""Admin back-office API routes: product CRUD per collection and image hosting."""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel

from jewelry_store.config import ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE
from jewelry_store.errors import InvalidProductError
from jewelry_store.services import catalog
from jewelry_store.services.categories import get_category
from jewelry_store.storage import r2_client
from jewelry_store.storage.store import ProductStore, get_product_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# --------------------------------------------------------------------------- #
# 1. Images
# --------------------------------------------------------------------------- #

@router.post("/images")
async def upload_image(
    file: UploadFile = File(...),
    category: str = Form(...),
):
    """Upload a product image as WebP and return its URL and public id."""
    config = get_category(category)
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidProductError(
            f"Unsupported image type '{file.content_type}'. "
            f"Allowed: {', '.join(ALLOWED_IMAGE_TYPES)}"
        )

    image_bytes = await file.read()
    if len(image_bytes) > MAX_IMAGE_SIZE:
        raise InvalidProductError(
            f"Image is larger than {MAX_IMAGE_SIZE // (1024 * 1024)} MB"
        )

    image = await asyncio.to_thread(r2_client.upload_product_image, image_bytes, config.key)
    logger.info("Uploaded %s image %s", config.key, image.public_id)
    return image.model_dump()


class ImageImportRequest(BaseModel):
    url: str
    category: str


@router.post("/images/import")
async def import_image(payload: ImageImportRequest):
    """Copy an image from an external URL onto the image host."""
    config = get_category(payload.category)
    image = await asyncio.to_thread(r2_client.import_product_image, payload.url, config.key)
    logger.info("Imported %s image %s from %s", config.key, image.public_id, payload.url)
    return image.model_dump()


@router.delete("/images/{public_id:path}")
async def delete_image(public_id: str):
    if not public_id.startswith("products/"):
        raise InvalidProductError(f"'{public_id}' is not a product image")
    await asyncio.to_thread(r2_client.delete_image, public_id)
    return {"deleted": public_id}


# --------------------------------------------------------------------------- #
# 2. Products
# --------------------------------------------------------------------------- #

@router.get("/{category}")
async def list_products(
    category: str,
    request: Request,
    store: ProductStore = Depends(get_product_store),
):
    """Admin listing: unavailable products included, newest first by default."""
    params = dict(request.query_params)
    segment = params.pop("segment", "all")
    page = catalog.list_products(store, category, segment, params, storefront=False)
    return page.model_dump(by_alias=True)


@router.post("/{category}", status_code=201)
async def create_product(
    category: str,
    payload: dict = Body(...),
    store: ProductStore = Depends(get_product_store),
):
    product = catalog.parse_product_input(category, payload)
    return {"product": catalog.create_product(store, category, product)}


@router.get("/{category}/{product_id}")
async def get_product(
    category: str,
    product_id: str,
    store: ProductStore = Depends(get_product_store),
):
    return {"product": catalog.get_product(store, category, product_id, storefront=False)}


@router.put("/{category}/{product_id}")
async def update_product(
    category: str,
    product_id: str,
    payload: dict = Body(...),
    store: ProductStore = Depends(get_product_store),
):
    """Replace a product with a complete, validated record."""
    product = catalog.parse_product_input(category, payload)
    return {"product": catalog.update_product(store, category, product_id, product)}


@router.delete("/{category}/{product_id}")
async def delete_product(
    category: str,
    product_id: str,
    store: ProductStore = Depends(get_product_store),
):
    """Delete a product and, best effort, the images it references."""
    record = catalog.delete_product(store, category, product_id)
    return {"deleted": record.get("id")}
