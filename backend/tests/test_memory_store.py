"""Tests for predicate evaluation and the in-memory product store."""
import pytest

from conftest import gemstone_record
from jewelry_store.models.filters import Bounds, Constraint, Op, Predicate, SortKey
from jewelry_store.services.categories import CATEGORIES
from jewelry_store.services.query_builder import build_listing_query
from jewelry_store.storage.memory_store import (
    InMemoryProductStore,
    constraint_matches,
    sort_records,
)


@pytest.fixture
def sale_store():
    """One gemstone priced 100, on sale for 40."""
    return InMemoryProductStore(
        {"gemstones": [gemstone_record("g1", price=100, sale_price=40)]}
    )


@pytest.mark.parametrize(
    "min_price, max_price, expected",
    [
        ("30", "50", 1),  # sale price in range
        ("60", "90", 0),  # neither price in range
        ("90", "110", 1),  # base price in range
    ],
)
def test_price_range_matches_base_or_sale_price(sale_store, min_price, max_price, expected):
    query = build_listing_query(
        CATEGORIES["gemstone"], "all", {"minPrice": min_price, "maxPrice": max_price}
    )
    records, total = sale_store.find_page(query)
    assert total == expected
    assert len(records) == expected


def test_null_sale_price_only_matches_on_base_price():
    store = InMemoryProductStore({"gemstones": [gemstone_record("g1", price=100)]})
    query = build_listing_query(
        CATEGORIES["gemstone"], "all", {"minPrice": "0", "maxPrice": "50"}
    )
    assert store.find_page(query) == ([], 0)


class TestConstraintMatches:
    def test_range_never_matches_missing_values(self):
        assert not constraint_matches({}, Constraint("carat", Op.RANGE, Bounds(gte=1)))
        assert not constraint_matches(
            {"carat": None}, Constraint("carat", Op.RANGE, Bounds(lte=3))
        )

    def test_range_is_inclusive(self):
        bounds = Bounds(gte=1, lte=2)
        assert constraint_matches({"carat": 1}, Constraint("carat", Op.RANGE, bounds))
        assert constraint_matches({"carat": 2}, Constraint("carat", Op.RANGE, bounds))

    def test_array_membership(self):
        record = {"metal_colors": ["Rose Gold", "White Gold"]}
        assert constraint_matches(record, Constraint("metal_colors", Op.CONTAINS, "White Gold"))
        assert not constraint_matches(record, Constraint("metal_colors", Op.CONTAINS, "Platinum"))
        assert constraint_matches(
            record, Constraint("metal_colors", Op.OVERLAPS, ("Platinum", "Rose Gold"))
        )

    def test_case_insensitive_search(self):
        assert constraint_matches(
            {"name": "Diamond Tennis Necklace"}, Constraint("name", Op.ILIKE, "TENNIS")
        )


def test_sort_puts_nulls_first_ascending_and_last_descending():
    records = [
        {"id": "a", "sale_price": 50},
        {"id": "b", "sale_price": None},
        {"id": "c", "sale_price": 20},
    ]
    ascending = sort_records(records, (SortKey("sale_price"), SortKey("id")))
    assert [r["id"] for r in ascending] == ["b", "c", "a"]

    descending = sort_records(records, (SortKey("sale_price", descending=True), SortKey("id")))
    assert [r["id"] for r in descending] == ["a", "c", "b"]


def test_find_page_projects_fields(store):
    query = build_listing_query(CATEGORIES["gemstone"], "all", {})
    records, _ = store.find_page(query)
    assert records
    assert all(set(record) <= set(query.fields) for record in records)
    assert "measurements" not in records[0]


class TestWrites:
    def test_insert_assigns_id_and_timestamps(self, empty_store):
        row = empty_store.insert("necklaces", {"name": "Pearl Strand"})
        assert row["id"]
        assert row["created_at"] == row["updated_at"]
        assert empty_store.get("necklaces", row["id"])["name"] == "Pearl Strand"

    def test_update_and_delete(self, empty_store):
        row = empty_store.insert("necklaces", {"name": "Pearl Strand"})

        updated = empty_store.update("necklaces", row["id"], {"name": "Pearl Choker"})
        assert updated["name"] == "Pearl Choker"

        deleted = empty_store.delete("necklaces", row["id"])
        assert deleted["id"] == row["id"]
        assert empty_store.get("necklaces", row["id"]) is None
        assert empty_store.delete("necklaces", row["id"]) is None

    def test_returned_records_are_copies(self, empty_store):
        row = empty_store.insert("necklaces", {"name": "Pearl Strand", "images": []})
        fetched = empty_store.find_one(
            "necklaces", Predicate((Constraint("id", Op.EQ, row["id"]),))
        )
        fetched["images"].append({"url": "x"})
        assert empty_store.get("necklaces", row["id"])["images"] == []
