"""Tests for translating predicates into Supabase (PostgREST) requests."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from jewelry_store.errors import StoreError
from jewelry_store.services.categories import CATEGORIES
from jewelry_store.services.query_builder import build_listing_query
from jewelry_store.storage.supabase_client import (
    SupabaseProductStore,
    apply_predicate,
    or_expression,
)


class FakeRequest:
    """Records every chained builder call; ``execute`` replays queued results."""

    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    @property
    def not_(self):
        self.calls.append(("not_",))
        return self

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def make_store(request: FakeRequest) -> SupabaseProductStore:
    client = MagicMock()
    client.table.return_value = request
    return SupabaseProductStore(client=client)


def call_names(request: FakeRequest) -> list[str]:
    return [call[0] for call in request.calls]


def test_price_or_expression():
    query = build_listing_query(CATEGORIES["gemstone"], "all", {"minPrice": "30", "maxPrice": "50"})
    (group,) = query.predicate.any_of
    assert or_expression(group) == (
        "and(price.gte.30.0,price.lte.50.0),"
        "and(sale_price.not.is.null,sale_price.gte.30.0,sale_price.lte.50.0)"
    )


def test_single_sided_or_branches_are_not_wrapped():
    query = build_listing_query(CATEGORIES["gemstone"], "all", {"maxPrice": "50"})
    (group,) = query.predicate.any_of
    assert or_expression(group) == (
        "price.lte.50.0,and(sale_price.not.is.null,sale_price.lte.50.0)"
    )


def test_apply_predicate_chains_filters():
    query = build_listing_query(
        CATEGORIES["settings"],
        "metal-white",
        {"styles": "Vintage,Classic", "minPrice": "500", "search": "halo"},
    )
    request = apply_predicate(FakeRequest(), query.predicate)

    assert ("eq", ("is_active", True), {}) in request.calls
    assert ("contains", ("metal_colors", ["White Gold"]), {}) in request.calls
    assert ("overlaps", ("style", ["Vintage", "Classic"]), {}) in request.calls
    assert ("gte", ("base_price", 500.0), {}) in request.calls
    assert ("ilike", ("title", "%halo%"), {}) in request.calls
    assert "or_" not in call_names(request)


def test_search_text_wildcards_match_literally():
    query = build_listing_query(CATEGORIES["necklace"], "all", {"search": "50%_off"})
    request = apply_predicate(FakeRequest(), query.predicate)
    assert ("ilike", ("name", "%50\\%\\_off%"), {}) in request.calls


class TestFindPage:
    def test_one_request_with_exact_count(self):
        request = FakeRequest([SimpleNamespace(data=[{"id": "a"}], count=13)])
        store = make_store(request)
        query = build_listing_query(CATEGORIES["gemstone"], "shape-princess", {"page": "2"})

        records, total = store.find_page(query)

        assert (records, total) == ([{"id": "a"}], 13)
        select = request.calls[0]
        assert select[0] == "select"
        assert select[2] == {"count": "exact"}
        assert ("order", ("sale_price",), {"desc": False, "nullsfirst": True}) in request.calls
        assert ("order", ("id",), {"desc": False, "nullsfirst": True}) in request.calls
        assert ("range", (12, 23), {}) in request.calls

    def test_page_past_the_end_returns_empty_page_and_total(self):
        past_end = APIError(
            {"message": "Requested range not satisfiable", "code": "PGRST103", "hint": None, "details": None}
        )
        request = FakeRequest([past_end, SimpleNamespace(data=[], count=4)])
        store = make_store(request)
        query = build_listing_query(CATEGORIES["gemstone"], "all", {"page": "9"})

        assert store.find_page(query) == ([], 4)

    def test_failed_count_after_past_the_end_page_becomes_store_error(self):
        past_end = APIError(
            {"message": "Requested range not satisfiable", "code": "PGRST103", "hint": None, "details": None}
        )
        request = FakeRequest([past_end, ConnectionError("refused")])
        store = make_store(request)
        query = build_listing_query(CATEGORIES["gemstone"], "all", {"page": "9"})

        with pytest.raises(StoreError, match="Failed to query gemstones"):
            store.find_page(query)

    def test_client_failure_becomes_store_error(self):
        request = FakeRequest([ConnectionError("refused")])
        store = make_store(request)
        query = build_listing_query(CATEGORIES["gemstone"], "all", {})

        with pytest.raises(StoreError):
            store.find_page(query)


def test_insert_drops_none_values():
    request = FakeRequest([SimpleNamespace(data=[{"id": "new"}])])
    store = make_store(request)

    assert store.insert("gemstones", {"sku": "GEM-1", "sale_price": None}) == {"id": "new"}
    assert ("insert", ({"sku": "GEM-1"},), {}) in request.calls


def test_get_returns_none_when_missing():
    request = FakeRequest([SimpleNamespace(data=[])])
    store = make_store(request)
    assert store.get("gemstones", "missing") is None
