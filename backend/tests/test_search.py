"""Tests for cross-collection search and type-ahead suggestions."""
import asyncio

import pytest

from conftest import gemstone_record
from jewelry_store.errors import StoreError
from jewelry_store.models.filters import Bounds, Op
from jewelry_store.services import search
from jewelry_store.services.search import (
    SOURCES,
    SearchRequest,
    build_search_query,
    relevance,
    search_terms,
)
from jewelry_store.storage.memory_store import InMemoryProductStore

HALO_ID = "5b7c1f0e-3a55-4c1e-9d3b-1f2a6c0e8a02"
SAPPHIRE_ID = "3f8a2b6c-1d4e-4a9b-b7c8-0d1e2f3a4b01"

SOURCE = {source.category: source for source in SOURCES}


def run_search(store, **params):
    return asyncio.run(search.search_products(store, params))


def suggest(store, query):
    return asyncio.run(search.suggest_products(store, query))


class FailingTableStore:
    """Delegates to *store* but fails every read of one table."""

    def __init__(self, store, table):
        self.store = store
        self.table = table

    def find_page(self, query):
        if query.table == self.table:
            raise StoreError(f"Failed to query {self.table}")
        return self.store.find_page(query)


# --------------------------------------------------------------------------- #
# Request parsing and per-collection queries
# --------------------------------------------------------------------------- #

def test_search_terms_add_synonyms_once():
    assert search_terms("Wedding Ring") == [
        "wedding", "bridal", "nuptial", "ring", "band", "solitaire", "halo", "setting",
    ]
    assert search_terms("  ") == []


def test_request_defaults_and_limits():
    request = SearchRequest.from_params({"limit": "500", "page": "0", "sortBy": "bogus"})
    assert (request.page, request.limit, request.sort_by) == (1, 100, "relevance")
    assert SearchRequest.from_params({}).limit == 20


def test_text_terms_become_an_or_group():
    query = build_search_query(SOURCE["necklace"], {}, Bounds(), ["tennis", "chain"], 50)

    (group,) = query.predicate.any_of
    assert group.key == "text"
    assert len(group.branches) == 2 * len(SOURCE["necklace"].text_fields)
    assert all(branch[0].op is Op.ILIKE for branch in group.branches)
    assert query.predicate.get("is_available").value is True


def test_facet_a_collection_lacks_rules_it_out():
    assert build_search_query(SOURCE["diamond"], {"metal": ("Platinum",)}, Bounds(), [], 50) is None
    ring_query = build_search_query(SOURCE["settings"], {"metal": ("Platinum",)}, Bounds(), [], 50)
    assert ring_query.predicate.get("metal_colors").op is Op.OVERLAPS


# --------------------------------------------------------------------------- #
# Search
# --------------------------------------------------------------------------- #

class TestSearchProducts:
    def test_empty_query_lists_every_available_product(self, store):
        results = run_search(store)

        # 5 ring metal options, 2 diamonds, 2 available gemstones, 1 necklace
        assert results.total_count == 10
        assert "Emerald" not in [hit.type for hit in results.products]
        assert results.has_more is False

    def test_rings_yield_one_hit_per_metal_option(self, store):
        results = run_search(store, q="ring")

        assert {hit.product_type for hit in results.products} == {"setting"}
        assert len(results.products) == 5
        assert f"{HALO_ID}-18K-Platinum" in [hit.id for hit in results.products]

    def test_text_match_on_a_stone(self, store):
        results = run_search(store, q="sapphire")

        (hit,) = results.products
        assert hit.product_id == SAPPHIRE_ID
        assert hit.title == "1.5ct Blue Sapphire"
        assert (hit.price, hit.sale_price) == (1950, 1950)

    def test_collection_word_lists_the_collection(self, store):
        results = run_search(store, q="diamond")

        assert results.total_count == 3
        # title starting with the query ranks first
        assert results.products[0].title == "Diamond Tennis Necklace"
        assert {hit.product_type for hit in results.products[1:]} == {"diamond"}

    def test_category_filter_and_price_sort(self, store):
        results = run_search(store, category="Diamond", sortBy="price-low")
        assert [hit.price for hit in results.products] == [1190, 5200]

        results = run_search(store, category="Diamond", sortBy="price-high")
        assert [hit.price for hit in results.products] == [5200, 1190]

    def test_metal_filter_keeps_matching_options_only(self, store):
        results = run_search(store, metal="Platinum")

        assert [hit.id for hit in results.products] == [f"{HALO_ID}-18K-Platinum"]
        assert results.products[0].metal_option.price == 1490

    def test_ring_price_range_applies_per_metal_option(self, store):
        results = run_search(store, category="Rings", minPrice="900", maxPrice="1200")
        assert sorted(hit.price for hit in results.products) == [980, 1150]

    def test_shape_and_gemstone_type_filters(self, store):
        princess = run_search(store, shape="Princess")
        assert {hit.product_type for hit in princess.products} == {"diamond", "gemstone"}
        assert princess.total_count == 2

        ruby = run_search(store, gemstoneType="Ruby")
        assert [hit.type for hit in ruby.products] == ["Ruby"]

    def test_facets_cover_all_hits(self, store):
        facets = run_search(store, limit="2").filters

        assert facets.categories == ["Diamond", "Gemstone", "Necklace", "Settings"]
        assert facets.metals == ["Platinum", "Rose Gold", "White Gold", "Yellow Gold"]
        assert facets.styles == ["Classic", "Vintage"]
        assert facets.shapes == ["Oval", "Princess", "Round"]
        assert facets.gemstone_types == ["Ruby", "Sapphire"]
        assert (facets.price_range.min, facets.price_range.max) == (650, 5200)

    def test_pagination(self, store):
        first = run_search(store, limit="4")
        last = run_search(store, limit="4", page="3")

        assert len(first.products) == 4
        assert first.has_more is True
        assert len(last.products) == 2
        assert last.has_more is False
        assert last.total_count == 10

    def test_failing_collection_is_left_out(self, store):
        results = run_search(FailingTableStore(store, "diamonds"))
        assert results.total_count == 8
        assert "diamond" not in {hit.product_type for hit in results.products}

    def test_search_text_is_matched_literally(self):
        store = InMemoryProductStore(
            {"gemstones": [gemstone_record("a", clarity="100% clean"), gemstone_record("b")]}
        )
        results = run_search(store, q="100%")
        assert [hit.product_id for hit in results.products] == ["a"]


def test_relevance_prefers_title_matches(store):
    results = run_search(store, q="tennis necklace")
    (hit,) = results.products
    assert relevance(hit, "diamond tennis necklace") == 100 + 50 + 25
    # title contains it, and so does the type
    assert relevance(hit, "tennis") == 25 + 10


# --------------------------------------------------------------------------- #
# Suggestions
# --------------------------------------------------------------------------- #

class TestSuggestions:
    def test_short_queries_give_nothing(self, store):
        assert suggest(store, "h") == []
        assert suggest(store, "  ") == []

    def test_ring_variants(self, store):
        suggestions = suggest(store, "halo")

        assert [s.name for s in suggestions] == [
            "Vintage Halo Setting - 18K White Gold",
            "Vintage Halo Setting - 18K Platinum",
        ]
        assert suggestions[0].id == f"{HALO_ID}-18K-White Gold-0"
        assert suggestions[1].price == 1490
        assert suggestions[1].metal.color == "Platinum"

    def test_stone_names_and_placeholder_image(self, store):
        (suggestion,) = suggest(store, "sapphire")

        assert suggestion.name == "1.5ct Sapphire Blue Oval"
        assert suggestion.price == 2400
        assert suggestion.product_type == "gemstone"
        assert suggestion.image_url

    def test_names_containing_the_query_come_first(self):
        store = InMemoryProductStore(
            {
                "diamonds": [
                    {
                        "id": "d1",
                        "slug": "d1",
                        "shape": "Round",
                        "carat": 1.0,
                        "color": "F",
                        "clarity": "VS2",
                        "type": "natural",
                        "price": 4000,
                        "images": [],
                        "is_available": True,
                    }
                ],
                "necklaces": [
                    {
                        "id": "n1",
                        "slug": "natural-pearl-strand",
                        "name": "Natural Pearl Strand",
                        "type": "Strand",
                        "price": 450,
                        "images": [],
                        "is_available": True,
                    }
                ],
            }
        )
        suggestions = suggest(store, "natural")

        assert [s.id for s in suggestions] == ["n1", "d1"]
        assert suggestions[1].image_url == "/images/engagement-section.png"


@pytest.mark.parametrize("query", ["ring", "diamond", ""])
def test_search_never_returns_unavailable_products(store, query):
    results = run_search(store, q=query)
    assert all(hit.is_available for hit in results.products)
