"""
Jewelry Store API - Main FastAPI Application Entry Point

Storefront catalog listings and search, custom ring composition, cart helpers and
the admin back-office, combined into a single FastAPI application.

Run with:
    uvicorn jewelry_store.api.main:app --host 0.0.0.0 --port 8000
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jewelry_store.api.routes_admin import router as admin_router
from jewelry_store.api.routes_cart import router as cart_router
from jewelry_store.api.routes_customize import router as customize_router
from jewelry_store.api.routes_product import router as product_router
from jewelry_store.api.routes_search import router as search_router
from jewelry_store.config import LOG_LEVEL
from jewelry_store.errors import (
    ComponentLookupError,
    CustomizationError,
    InvalidProductError,
    InvalidSelectionError,
    JewelryStoreError,
    MetalOptionNotFoundError,
    ProductNotFoundError,
    StoreError,
    UnknownCategoryError,
    WizardTransitionError,
)

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Jewelry Store API",
    description="Jewelry storefront catalog, ring customization and admin API",
    version="0.1.0",
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for MVP -- restrict in production)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

# Checked in order; subclasses come before their bases
ERROR_STATUS: list[tuple[type[JewelryStoreError], int]] = [
    (UnknownCategoryError, 404),
    (ProductNotFoundError, 404),
    (InvalidProductError, 400),
    (InvalidSelectionError, 400),
    (ComponentLookupError, 404),
    (MetalOptionNotFoundError, 422),
    (WizardTransitionError, 409),
    (StoreError, 500),
]

RING_DETAILS_ERROR = "Failed to load ring details"


def status_for(exc: JewelryStoreError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(JewelryStoreError)
async def jewelry_store_exception_handler(request: Request, exc: JewelryStoreError):
    """Map application errors onto status codes and JSON error bodies."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s: %s | Path: %s", type(exc).__name__, exc, request.url.path)
    else:
        logger.warning("%s: %s | Path: %s", type(exc).__name__, exc, request.url.path)

    if isinstance(exc, CustomizationError):
        # One message for every customization failure; the page offers "Go Back"
        content = {"error": RING_DETAILS_ERROR, "action": "go_back", "detail": str(exc)}
    else:
        content = {"error": str(exc)}
        if isinstance(exc, InvalidProductError) and exc.errors:
            content["details"] = exc.errors

    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return a generic JSON error response."""
    logger.exception("Unhandled %s | Path: %s", type(exc).__name__, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": type(exc).__name__,
            "message": "An unexpected error occurred.",
        },
    )


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(product_router)
app.include_router(search_router)
app.include_router(customize_router)
app.include_router(cart_router)
app.include_router(admin_router)


# ---------------------------------------------------------------------------
# Root & health-check endpoints
# ---------------------------------------------------------------------------
@app.get("/")
async def root():
    """Root endpoint returning basic API information."""
    return {
        "name": "Jewelry Store API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "healthy"}


# ---------------------------------------------------------------------------
# Convenience: run directly with `python -m jewelry_store.api.main`
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("jewelry_store.api.main:app", host="0.0.0.0", port=8000, reload=True)
