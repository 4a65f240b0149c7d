"""Tests for the filter query builder."""
import pytest

from jewelry_store.models.filters import Bounds, Constraint, Op, SortKey
from jewelry_store.services.categories import (
    CATEGORIES,
    PRICE_ASC,
    PRICE_DESC,
    get_category,
    metal_color,
    title_words,
)
from jewelry_store.errors import UnknownCategoryError
from jewelry_store.services.query_builder import (
    build_listing_query,
    parse_category_segment,
    parse_multi,
    parse_number,
)

GEMSTONE = CATEGORIES["gemstone"]
DIAMOND = CATEGORIES["diamond"]
SETTINGS = CATEGORIES["settings"]
WEDDING = CATEGORIES["wedding"]
NECKLACE = CATEGORIES["necklace"]


def constraints_on(query, field):
    return [c for c in query.predicate.constraints if c.field == field]


# --------------------------------------------------------------------------- #
# Segment parsing
# --------------------------------------------------------------------------- #

class TestParseCategorySegment:
    def test_prefix_value_is_title_cased(self):
        assert parse_category_segment(GEMSTONE.segment_rules, "type-lab-grown") == (
            "type",
            "Lab Grown",
        )

    def test_all_and_unknown_segments_yield_nothing(self):
        assert parse_category_segment(GEMSTONE.segment_rules, "all") is None
        assert parse_category_segment(GEMSTONE.segment_rules, "clarity-vs") is None

    def test_empty_value_after_prefix(self):
        assert parse_category_segment(GEMSTONE.segment_rules, "shape-") is None

    def test_rules_are_tried_in_order(self):
        # "stone-shape-" must not be read as a "style-" or "type-" segment
        assert parse_category_segment(SETTINGS.segment_rules, "stone-shape-oval") == (
            "compatible_stone_shapes",
            "Oval",
        )

    def test_diamond_grades_are_upper_cased(self):
        assert parse_category_segment(DIAMOND.segment_rules, "color-d") == ("color", "D")
        assert parse_category_segment(DIAMOND.segment_rules, "clarity-vvs1") == (
            "clarity",
            "VVS1",
        )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("white", "White Gold"),
        ("rose-gold", "Rose Gold"),
        ("two-tone-gold", "Two Tone Gold"),
        ("platinum", "Platinum"),
        ("palladium", "Palladium"),
    ],
)
def test_metal_color_transform(raw, expected):
    assert metal_color(raw) == expected


def test_title_words_keeps_inner_letters():
    assert title_words("mCKinley-style") == "MCKinley Style"


def test_unknown_category():
    with pytest.raises(UnknownCategoryError):
        get_category("watches")


# --------------------------------------------------------------------------- #
# Number parsing
# --------------------------------------------------------------------------- #

@pytest.mark.parametrize("raw", [None, "", "  ", "abc", "NaN", "nan", "inf", "-Infinity"])
def test_parse_number_rejects_unusable_input(raw):
    assert parse_number(raw) is None


def test_parse_number_accepts_decimals():
    assert parse_number(" 1.25 ") == 1.25


def test_parse_multi_drops_blanks():
    assert parse_multi("Ruby, ,Sapphire,") == ["Ruby", "Sapphire"]
    assert parse_multi(None) == []


# --------------------------------------------------------------------------- #
# Listing queries
# --------------------------------------------------------------------------- #

class TestBuildListingQuery:
    def test_shape_segment_on_gemstones(self):
        query = build_listing_query(GEMSTONE, "shape-princess", {})

        assert query.table == "gemstones"
        assert query.predicate.get("shape") == Constraint("shape", Op.EQ, "Princess")
        assert query.predicate.get("is_available") == Constraint("is_available", Op.EQ, True)
        assert query.sort == PRICE_ASC + (SortKey("id"),)
        assert (query.page, query.limit, query.skip) == (1, 12, 0)

    def test_default_facet_reads_bare_segment_as_type(self):
        query = build_listing_query(GEMSTONE, "blue-sapphire", {})
        assert query.predicate.get("type").value == "Blue Sapphire"

    def test_special_segments_win_over_default_facet(self):
        query = build_listing_query(GEMSTONE, "natural", {})
        assert query.predicate.get("source") == Constraint("source", Op.EQ, "natural")
        assert query.predicate.get("type") is None

    def test_wedding_subcategory_segment(self):
        query = build_listing_query(WEDDING, "womens", {})
        assert query.predicate.get("subcategory").value == "Women's Wedding Rings"
        assert query.predicate.get("is_active").value is True

    def test_explicit_parameter_replaces_segment_facet(self):
        query = build_listing_query(GEMSTONE, "type-ruby", {"types": "Sapphire,Emerald"})

        type_constraints = constraints_on(query, "type")
        assert type_constraints == [Constraint("type", Op.IN, ("Sapphire", "Emerald"))]
        assert query.predicate.to_mapping()["type"] == {"$in": ["Sapphire", "Emerald"]}

    def test_blank_parameter_keeps_segment_facet(self):
        query = build_listing_query(GEMSTONE, "type-ruby", {"types": " , "})
        assert query.predicate.get("type").value == "Ruby"

    def test_ring_array_facets(self):
        query = build_listing_query(SETTINGS, "metal-white", {})
        assert query.predicate.get("metal_colors") == Constraint(
            "metal_colors", Op.CONTAINS, "White Gold"
        )

        query = build_listing_query(SETTINGS, "metal-white", {"metalColors": "Platinum"})
        assert constraints_on(query, "metal_colors") == [
            Constraint("metal_colors", Op.OVERLAPS, ("Platinum",))
        ]

    def test_carat_range_with_one_side(self):
        query = build_listing_query(GEMSTONE, "all", {"minCarat": "1.5"})
        assert query.predicate.get("carat") == Constraint("carat", Op.RANGE, Bounds(gte=1.5))

    def test_price_range_is_an_or_group(self):
        query = build_listing_query(GEMSTONE, "all", {"minPrice": "30", "maxPrice": "50"})

        mapping = query.predicate.to_mapping()
        assert mapping["$or"] == [
            {"price": {"$gte": 30.0, "$lte": 50.0}},
            {"sale_price": {"$ne": None, "$gte": 30.0, "$lte": 50.0}},
        ]
        assert query.predicate.get("price") is None

    def test_ring_price_range_uses_base_price(self):
        query = build_listing_query(SETTINGS, "all", {"minPrice": "500"})
        assert query.predicate.get("base_price") == Constraint(
            "base_price", Op.RANGE, Bounds(gte=500.0)
        )
        assert query.predicate.any_of == ()

    def test_wedding_price_range_overlaps_metal_option_prices(self):
        query = build_listing_query(WEDDING, "all", {"minPrice": "1000", "maxPrice": "2000"})

        assert query.predicate.get("min_metal_price") == Constraint(
            "min_metal_price", Op.RANGE, Bounds(lte=2000.0)
        )
        assert query.predicate.get("max_metal_price") == Constraint(
            "max_metal_price", Op.RANGE, Bounds(gte=1000.0)
        )
        assert query.predicate.get("base_price") is None

    def test_wedding_price_sorts_use_metal_option_prices(self):
        assert build_listing_query(WEDDING, "all", {}).sort[0] == SortKey("min_metal_price")
        assert build_listing_query(WEDDING, "all", {"sort": "price-desc"}).sort[0] == SortKey(
            "max_metal_price", descending=True
        )

    def test_unparsable_bounds_are_ignored(self):
        query = build_listing_query(
            GEMSTONE, "all", {"minPrice": "abc", "minCarat": "NaN", "maxCarat": "inf"}
        )
        assert query.predicate.any_of == ()
        assert query.predicate.get("carat") is None
        assert "$or" not in query.predicate.to_mapping()

    def test_half_parsable_price_range(self):
        query = build_listing_query(GEMSTONE, "all", {"minPrice": "abc", "maxPrice": "50"})
        assert query.predicate.to_mapping()["$or"][0] == {"price": {"$lte": 50.0}}

    @pytest.mark.parametrize(
        "params, page, limit",
        [
            ({}, 1, 12),
            ({"page": "0"}, 1, 12),
            ({"page": "-3"}, 1, 12),
            ({"page": "x", "limit": "y"}, 1, 12),
            ({"limit": "500"}, 1, 100),
            ({"limit": "0"}, 1, 12),
            ({"page": "3", "limit": "10"}, 3, 10),
        ],
    )
    def test_page_window(self, params, page, limit):
        query = build_listing_query(GEMSTONE, "all", params)
        assert (query.page, query.limit) == (page, limit)
        assert query.skip == (page - 1) * limit

    def test_sort_tokens(self):
        assert build_listing_query(GEMSTONE, "all", {"sort": "price-desc"}).sort == (
            PRICE_DESC + (SortKey("id"),)
        )
        assert build_listing_query(GEMSTONE, "all", {"sort": "bogus"}).sort == (
            PRICE_ASC + (SortKey("id"),)
        )
        assert build_listing_query(SETTINGS, "all", {}).sort == (
            SortKey("base_price"),
            SortKey("id"),
        )

    def test_search_only_where_supported(self):
        query = build_listing_query(NECKLACE, "all", {"search": " tennis "})
        assert query.predicate.get("name") == Constraint("name", Op.ILIKE, "tennis")

        query = build_listing_query(GEMSTONE, "all", {"search": "ruby"})
        assert all(c.op is not Op.ILIKE for c in query.predicate.constraints)

    def test_admin_listing_skips_availability(self):
        query = build_listing_query(GEMSTONE, "all", {}, storefront=False, default_sort="newest")
        assert query.predicate.get("is_available") is None
        assert query.sort[0] == SortKey("created_at", descending=True)
