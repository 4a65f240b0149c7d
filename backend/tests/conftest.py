"""
Pytest configuration and fixtures for the jewelry store tests.
"""
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
os.environ["STORE_BACKEND"] = "memory"
os.environ["SEED_CATALOG_PATH"] = ""

from jewelry_store.storage.memory_store import InMemoryProductStore  # noqa: E402
from jewelry_store.storage.store import get_product_store  # noqa: E402

SEED_PATH = Path(__file__).resolve().parents[1] / "seed" / "catalog.json"


def gemstone_record(record_id: str, **overrides) -> dict:
    """A minimal available gemstone row."""
    record = {
        "id": record_id,
        "slug": f"gem-{record_id}",
        "sku": f"GEM-{record_id}",
        "type": "Sapphire",
        "source": "natural",
        "carat": 1.0,
        "shape": "Oval",
        "color": "Blue",
        "clarity": "VS",
        "price": 1000,
        "sale_price": None,
        "images": [],
        "is_available": True,
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    record.update(overrides)
    return record


@pytest.fixture
def store() -> InMemoryProductStore:
    """Store loaded with the seed catalog."""
    return InMemoryProductStore.from_seed_file(SEED_PATH)


@pytest.fixture
def empty_store() -> InMemoryProductStore:
    return InMemoryProductStore()


@pytest.fixture
def client(store):
    """TestClient whose routes read from the seeded in-memory store."""
    from jewelry_store.api.main import app

    app.dependency_overrides[get_product_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
