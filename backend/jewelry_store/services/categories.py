"""Filter configuration for every storefront product collection.

Each collection declares how a category path segment maps onto a facet,
which query-string parameters select facets or numeric ranges, how price
ranges are matched and which sort tokens it understands. The query builder
is generic; everything collection-specific lives in these tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from jewelry_store.config import NON_GOLD_METALS
from jewelry_store.errors import UnknownCategoryError
from jewelry_store.models.filters import SortKey

ValueTransform = Callable[[str], str]


# ---------------------------------------------------------------------------
# Segment value transforms
# ---------------------------------------------------------------------------

def title_words(raw: str) -> str:
    """``lab-grown`` -> ``Lab Grown``. Only the first letter of each token changes."""
    return " ".join(word[:1].upper() + word[1:] for word in raw.split("-") if word)


def upper_value(raw: str) -> str:
    """``vvs1`` -> ``VVS1`` (diamond color and clarity grades)."""
    return raw.upper()


def metal_color(raw: str) -> str:
    """``white`` -> ``White Gold``; ``platinum`` and ``two-tone-gold`` are kept as named."""
    color = title_words(raw)
    if "Gold" in color or color in NON_GOLD_METALS:
        return color
    return f"{color} Gold"


# ---------------------------------------------------------------------------
# Table types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SegmentRule:
    prefix: str
    field: str
    transform: ValueTransform = title_words


@dataclass(frozen=True)
class FacetParam:
    param: str
    field: str


@dataclass(frozen=True)
class RangeParam:
    min_param: str
    max_param: str
    field: str


PRICE_ASC = (SortKey("sale_price"), SortKey("price"))
PRICE_DESC = (SortKey("sale_price", descending=True), SortKey("price", descending=True))
NEWEST = (SortKey("created_at", descending=True),)

LOOSE_STONE_SORTS: dict[str, tuple[SortKey, ...]] = {
    "price-asc": PRICE_ASC,
    "price-desc": PRICE_DESC,
    "carat-asc": (SortKey("carat"),),
    "carat-desc": (SortKey("carat", descending=True),),
    "newest": NEWEST,
}

JEWELRY_SORTS: dict[str, tuple[SortKey, ...]] = {
    "price-asc": PRICE_ASC,
    "price-desc": PRICE_DESC,
    "name-asc": (SortKey("name"),),
    "name-desc": (SortKey("name", descending=True),),
    "newest": NEWEST,
}

RING_SORTS: dict[str, tuple[SortKey, ...]] = {
    "price-asc": (SortKey("base_price"),),
    "price-desc": (SortKey("base_price", descending=True),),
    "newest": NEWEST,
    "popular": (SortKey("is_featured", descending=True), SortKey("base_price")),
}

# Wedding rings are priced per metal option: cheapest option ascending,
# dearest option descending
WEDDING_SORTS: dict[str, tuple[SortKey, ...]] = {
    "price-asc": (SortKey("min_metal_price"),),
    "price-desc": (SortKey("max_metal_price", descending=True),),
    "newest": NEWEST,
}


@dataclass(frozen=True)
class CategoryConfig:
    """How one collection is stored, filtered, sorted and projected."""

    key: str
    table: str
    label: str
    availability_field: str
    segment_rules: tuple[SegmentRule, ...] = ()
    special_segments: dict[str, tuple[str, str]] = field(default_factory=dict)
    default_facet: SegmentRule | None = None
    facet_params: tuple[FacetParam, ...] = ()
    range_params: tuple[RangeParam, ...] = ()
    # Two fields (base, sale) -> OR group; one field -> plain range
    price_fields: tuple[str, ...] = ("price", "sale_price")
    # (lowest, highest) option price columns; the span must overlap the bounds
    price_span: tuple[str, str] | None = None
    array_fields: frozenset[str] = frozenset()
    sorts: dict[str, tuple[SortKey, ...]] = field(default_factory=dict)
    search_field: str | None = None
    fields: tuple[str, ...] = ()

    def sort_for(self, token: str | None, default: str) -> tuple[SortKey, ...]:
        """Resolve a sort token, falling back to *default*, then to price ascending."""
        if token and token in self.sorts:
            return self.sorts[token]
        return self.sorts.get(default, PRICE_ASC)


_RING_ARRAY_FIELDS = frozenset({"style", "type", "metal_colors", "finish_types"})

_RING_FIELDS = (
    "id", "slug", "title", "sku", "base_price", "metal_options",
    "metal_color_images", "media", "style", "type", "is_active", "is_featured",
    "created_at",
)


CATEGORIES: dict[str, CategoryConfig] = {
    "gemstone": CategoryConfig(
        key="gemstone",
        table="gemstones",
        label="gemstones",
        availability_field="is_available",
        special_segments={"natural": ("source", "natural"), "lab": ("source", "lab")},
        segment_rules=(
            SegmentRule("type-", "type"),
            SegmentRule("shape-", "shape"),
            SegmentRule("color-", "color"),
        ),
        # /ruby, /blue-sapphire -> type
        default_facet=SegmentRule("", "type"),
        facet_params=(
            FacetParam("types", "type"),
            FacetParam("shapes", "shape"),
            FacetParam("colors", "color"),
            FacetParam("clarities", "clarity"),
            FacetParam("cuts", "cut"),
            FacetParam("sources", "source"),
            FacetParam("origins", "origin"),
            FacetParam("treatments", "treatment"),
        ),
        range_params=(RangeParam("minCarat", "maxCarat", "carat"),),
        sorts=LOOSE_STONE_SORTS,
        fields=(
            "id", "slug", "sku", "type", "source", "carat", "shape", "color",
            "clarity", "cut", "origin", "treatment", "price", "sale_price",
            "images", "certificate_lab", "hardness", "is_available", "created_at",
        ),
    ),
    "diamond": CategoryConfig(
        key="diamond",
        table="diamonds",
        label="diamonds",
        availability_field="is_available",
        special_segments={"natural": ("type", "natural"), "lab": ("type", "lab")},
        segment_rules=(
            SegmentRule("shape-", "shape"),
            SegmentRule("color-", "color", upper_value),
            SegmentRule("clarity-", "clarity", upper_value),
            SegmentRule("fancy-", "fancy_color"),
        ),
        facet_params=(
            FacetParam("shapes", "shape"),
            FacetParam("colors", "color"),
            FacetParam("clarities", "clarity"),
            FacetParam("cuts", "cut"),
            FacetParam("types", "type"),
            FacetParam("polish", "polish"),
            FacetParam("symmetry", "symmetry"),
            FacetParam("fluorescence", "fluorescence"),
        ),
        range_params=(RangeParam("minCarat", "maxCarat", "carat"),),
        sorts=LOOSE_STONE_SORTS,
        fields=(
            "id", "slug", "sku", "price", "sale_price", "shape", "carat", "color",
            "fancy_color", "clarity", "cut", "polish", "symmetry", "fluorescence",
            "type", "images", "certificate_lab", "is_available", "created_at",
        ),
    ),
    "settings": CategoryConfig(
        key="settings",
        table="settings",
        label="settings",
        availability_field="is_active",
        segment_rules=(
            SegmentRule("style-", "style"),
            SegmentRule("metal-", "metal_colors", metal_color),
            SegmentRule("type-", "type"),
            SegmentRule("stone-shape-", "compatible_stone_shapes"),
        ),
        facet_params=(
            FacetParam("styles", "style"),
            FacetParam("types", "type"),
            FacetParam("metalColors", "metal_colors"),
            FacetParam("stoneShapes", "compatible_stone_shapes"),
        ),
        price_fields=("base_price",),
        array_fields=_RING_ARRAY_FIELDS | {"compatible_stone_shapes"},
        sorts=RING_SORTS,
        search_field="title",
        fields=_RING_FIELDS + (
            "sizes", "side_stone", "description", "can_accept_stone",
            "compatible_stone_shapes", "setting_height", "band_width",
        ),
    ),
    "wedding": CategoryConfig(
        key="wedding",
        table="wedding_rings",
        label="wedding rings",
        availability_field="is_active",
        special_segments={
            "womens": ("subcategory", "Women's Wedding Rings"),
            "women-s-wedding-rings": ("subcategory", "Women's Wedding Rings"),
            "mens": ("subcategory", "Men's Wedding Rings"),
            "men-s-wedding-rings": ("subcategory", "Men's Wedding Rings"),
            "matching-sets": ("subcategory", "His & Her Matching Sets"),
        },
        segment_rules=(
            SegmentRule("metal-", "metal_colors", metal_color),
            SegmentRule("style-", "style"),
        ),
        facet_params=(
            FacetParam("subcategories", "subcategory"),
            FacetParam("styles", "style"),
            FacetParam("types", "type"),
            FacetParam("metalColors", "metal_colors"),
            FacetParam("finishTypes", "finish_types"),
        ),
        price_span=("min_metal_price", "max_metal_price"),
        array_fields=_RING_ARRAY_FIELDS,
        sorts=WEDDING_SORTS,
        search_field="title",
        fields=_RING_FIELDS + (
            "subcategory", "sizes", "min_metal_price", "max_metal_price",
        ),
    ),
    "engagement": CategoryConfig(
        key="engagement",
        table="engagement_rings",
        label="engagement rings",
        availability_field="is_active",
        segment_rules=(
            SegmentRule("metal-", "metal_colors", metal_color),
            SegmentRule("style-", "style"),
        ),
        default_facet=SegmentRule("", "type"),
        facet_params=(
            FacetParam("styles", "style"),
            FacetParam("metalColors", "metal_colors"),
            FacetParam("types", "type"),
        ),
        price_fields=("base_price",),
        array_fields=_RING_ARRAY_FIELDS,
        sorts=RING_SORTS,
        search_field="title",
        fields=_RING_FIELDS + ("main_stone",),
    ),
    "necklace": CategoryConfig(
        key="necklace",
        table="necklaces",
        label="necklaces",
        availability_field="is_available",
        segment_rules=(
            SegmentRule("type-", "type"),
            SegmentRule("metal-", "metal"),
            SegmentRule("style-", "style"),
        ),
        facet_params=(
            FacetParam("types", "type"),
            FacetParam("metals", "metal"),
            FacetParam("styles", "style"),
            FacetParam("lengths", "length"),
        ),
        sorts=JEWELRY_SORTS,
        search_field="name",
        fields=(
            "id", "slug", "name", "sku", "price", "sale_price", "type", "length",
            "metal", "style", "images", "is_available", "created_at",
        ),
    ),
    "bracelet": CategoryConfig(
        key="bracelet",
        table="bracelets",
        label="bracelets",
        availability_field="is_available",
        segment_rules=(
            SegmentRule("type-", "type"),
            SegmentRule("metal-", "metal"),
            SegmentRule("style-", "style"),
        ),
        facet_params=(
            FacetParam("types", "type"),
            FacetParam("metals", "metal"),
            FacetParam("styles", "style"),
            FacetParam("closures", "closure"),
        ),
        range_params=(
            RangeParam("minLength", "maxLength", "length"),
            RangeParam("minWidth", "maxWidth", "width"),
        ),
        sorts=JEWELRY_SORTS,
        search_field="name",
        fields=(
            "id", "slug", "name", "sku", "price", "sale_price", "type", "closure",
            "metal", "style", "length", "width", "images", "is_available",
            "created_at",
        ),
    ),
    "earring": CategoryConfig(
        key="earring",
        table="earrings",
        label="earrings",
        availability_field="is_available",
        segment_rules=(
            SegmentRule("type-", "type"),
            SegmentRule("metal-", "metal"),
            SegmentRule("style-", "style"),
            SegmentRule("back-", "back_type"),
        ),
        facet_params=(
            FacetParam("types", "type"),
            FacetParam("metals", "metal"),
            FacetParam("styles", "style"),
            FacetParam("backTypes", "back_type"),
        ),
        sorts=JEWELRY_SORTS,
        search_field="name",
        fields=(
            "id", "slug", "name", "sku", "price", "sale_price", "type", "metal",
            "style", "back_type", "images", "is_available", "created_at",
        ),
    ),
    "mens-jewelry": CategoryConfig(
        key="mens-jewelry",
        table="mens_jewelry",
        label="men's jewelry",
        availability_field="is_available",
        segment_rules=(
            SegmentRule("type-", "type"),
            SegmentRule("metal-", "metal"),
            SegmentRule("style-", "style"),
            SegmentRule("finish-", "finish"),
        ),
        facet_params=(
            FacetParam("types", "type"),
            FacetParam("metals", "metal"),
            FacetParam("styles", "style"),
            FacetParam("finishes", "finish"),
            FacetParam("sizes", "size"),
        ),
        range_params=(
            RangeParam("minLength", "maxLength", "length"),
            RangeParam("minWidth", "maxWidth", "width"),
        ),
        sorts=JEWELRY_SORTS,
        search_field="name",
        fields=(
            "id", "slug", "name", "sku", "price", "sale_price", "type", "metal",
            "style", "finish", "size", "length", "width", "images", "is_available",
            "created_at",
        ),
    ),
}


def get_category(key: str) -> CategoryConfig:
    """Return the configuration for *key* or raise :class:`UnknownCategoryError`."""
    try:
        return CATEGORIES[key]
    except KeyError:
        raise UnknownCategoryError(key) from None
