"""
Cloudflare R2 storage client for product images.

Handles image conversion (WebP), resizing, upload and deletion via the
R2-compatible S3 API. Admin uploads land under
``products/{category}/{uuid}.webp``; the object key doubles as the
``public_id`` stored on each product image.
"""

import io
import logging
import uuid
from functools import lru_cache

import boto3
import httpx
from botocore.config import Config
from PIL import Image

from jewelry_store.config import (
    CF_ACCOUNT_ID,
    MAX_IMAGE_SIDE,
    MAX_IMAGE_SIZE,
    R2_ACCESS_KEY,
    R2_SECRET_KEY,
    R2_BUCKET,
    R2_PUBLIC_URL,
)
from jewelry_store.errors import InvalidProductError
from jewelry_store.models.product import ImageRef

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Boto3 S3 client configured for Cloudflare R2
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_s3_client():
    # Created on first use; the endpoint is invalid until CF_ACCOUNT_ID is set
    return boto3.client(
        "s3",
        endpoint_url=f"https://{CF_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY,
        aws_secret_access_key=R2_SECRET_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


# ---------------------------------------------------------------------------
# Image helpers
# ---------------------------------------------------------------------------

def convert_to_webp(image_bytes: bytes, max_size: int = MAX_IMAGE_SIDE) -> bytes:
    """Open *image_bytes* with Pillow, resize so the longest side is at most
    *max_size* (maintaining aspect ratio), and return WebP-encoded bytes."""
    img = Image.open(io.BytesIO(image_bytes))
    img = img.convert("RGB")

    w, h = img.size
    if max(w, h) > max_size:
        scale = max_size / max(w, h)
        img = img.resize((int(w * scale), int(h * scale)), Image.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, format="WEBP", quality=85)
    buf.seek(0)
    return buf.read()


# ---------------------------------------------------------------------------
# R2 CRUD operations
# ---------------------------------------------------------------------------

def get_image_url(r2_key: str) -> str:
    """Return the public URL for an R2 object."""
    return f"{R2_PUBLIC_URL}/{r2_key}"


def upload_image(image_bytes: bytes, r2_key: str, content_type: str = "image/webp") -> str:
    """Upload *image_bytes* to R2 under *r2_key* and return the public URL."""
    try:
        get_s3_client().put_object(
            Bucket=R2_BUCKET,
            Key=r2_key,
            Body=image_bytes,
            ContentType=content_type,
        )
    except Exception as exc:
        logger.error("upload_image failed for key '%s': %s", r2_key, exc)
        raise
    return get_image_url(r2_key)


def delete_image(r2_key: str) -> None:
    """Delete an object from R2."""
    try:
        get_s3_client().delete_object(Bucket=R2_BUCKET, Key=r2_key)
    except Exception as exc:
        logger.error("delete_image failed for key '%s': %s", r2_key, exc)
        raise


# ---------------------------------------------------------------------------
# Product images
# ---------------------------------------------------------------------------

def upload_product_image(image_bytes: bytes, category: str) -> ImageRef:
    """Convert an admin upload to WebP and store it under the category prefix."""
    r2_key = f"products/{category}/{uuid.uuid4().hex}.webp"
    url = upload_image(convert_to_webp(image_bytes), r2_key)
    return ImageRef(url=url, public_id=r2_key)


def product_image_keys(record: dict) -> list[str]:
    """Collect the storage keys of every image and video a product references."""
    refs: list[dict] = list(record.get("images") or [])
    media = record.get("media") or {}
    refs.extend(media.get("images") or [])
    if media.get("video"):
        refs.append(media["video"])
    for color_images in (record.get("metal_color_images") or {}).values():
        refs.extend(color_images)
    keys = [ref.get("public_id") for ref in refs if ref.get("public_id")]
    return list(dict.fromkeys(keys))


def delete_product_images(record: dict) -> int:
    """Remove a deleted product's images. Failures are logged and skipped.

    Returns the number of objects removed.
    """
    removed = 0
    for r2_key in product_image_keys(record):
        try:
            delete_image(r2_key)
            removed += 1
        except Exception:
            logger.warning("Could not delete image '%s' for product %s", r2_key, record.get("id"))
    return removed


def import_product_image(url: str, category: str) -> ImageRef:
    """Download an image from *url* and host it like an admin upload."""
    try:
        response = httpx.get(url, timeout=15, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise InvalidProductError(
            f"HTTP {exc.response.status_code} downloading '{url}'"
        ) from exc
    except httpx.RequestError as exc:
        raise InvalidProductError(f"Could not download '{url}': {exc}") from exc

    if len(response.content) > MAX_IMAGE_SIZE:
        raise InvalidProductError(f"Image at '{url}' is too large")
    return upload_product_image(response.content, category)
