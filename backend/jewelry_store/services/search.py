"""
Storefront search across every product collection.

Each collection gets its own predicate from :class:`FilterQueryBuilder`:
availability, the facet filters that collection carries and an OR group
matching the query terms (plus synonyms) case-insensitively against its
text columns. Collections are queried concurrently; their rows are
flattened into hits, one per metal option for rings, and the merged list
is sorted and paged in memory.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from pydantic import ValidationError

from jewelry_store.config import (
    MAX_PAGE_LIMIT,
    PLACEHOLDER_IMAGE,
    SEARCH_FETCH_LIMIT,
    SEARCH_PAGE_LIMIT,
    SUGGESTION_LIMIT,
    SUGGESTION_MIN_LENGTH,
)
from jewelry_store.errors import StoreError
from jewelry_store.models.cart import MetalSelection
from jewelry_store.models.filters import Bounds, ListingQuery, SortKey
from jewelry_store.models.product import MetalOption
from jewelry_store.models.search import (
    HitMetal,
    PriceRange,
    SearchFacets,
    SearchHit,
    SearchResults,
    Suggestion,
)
from jewelry_store.services.catalog import first_image_url, product_image_url
from jewelry_store.services.categories import NEWEST, get_category
from jewelry_store.services.query_builder import (
    FilterQueryBuilder,
    parse_bounds,
    parse_multi,
    parse_positive_int,
)
from jewelry_store.storage.store import ProductStore

logger = logging.getLogger(__name__)

SEARCH_SORTS = ("relevance", "price-low", "price-high", "newest")
FACET_PARAMS = ("metal", "style", "shape", "gemstoneType")

SYNONYMS: dict[str, tuple[str, ...]] = {
    "ring": ("band", "solitaire", "halo", "setting"),
    "rings": ("band", "solitaire", "halo", "setting"),
    "wedding": ("bridal", "nuptial"),
    "engagement": ("proposal", "bridal"),
    "diamond": ("brilliant", "ice"),
    "necklace": ("pendant", "choker", "chain", "lariat", "collar"),
    "choker": ("collar", "necklace"),
    "earring": ("stud", "hoop", "dangle"),
    "bracelet": ("bangle", "cuff"),
}


# ---------------------------------------------------------------------------
# Searchable collections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchSource:
    """How one collection takes part in search."""

    category: str
    product_type: str
    label: str
    # values of the ``category`` parameter that select this collection
    groups: frozenset[str]
    text_fields: tuple[str, ...]
    # search parameter -> column; given a parameter the collection lacks,
    # the collection is left out
    facets: dict[str, str] = field(default_factory=dict)
    # whole-query words that list the collection instead of matching text
    browse_terms: frozenset[str] = frozenset()
    per_metal_option: bool = False


_RING_FACETS = {"metal": "metal_colors", "style": "style"}
_JEWELRY_FACETS = {"metal": "metal", "style": "style"}
_JEWELRY_TEXT = ("name", "type", "metal", "style", "description")

SOURCES: tuple[SearchSource, ...] = (
    SearchSource(
        "settings", "setting", "Settings",
        frozenset({"Settings", "Rings"}),
        ("title", "description"),
        _RING_FACETS,
        frozenset({"setting", "settings"}),
        per_metal_option=True,
    ),
    SearchSource(
        "wedding", "wedding", "Wedding",
        frozenset({"Wedding", "Rings"}),
        ("title", "description", "subcategory"),
        _RING_FACETS,
        frozenset({
            "ring", "rings", "wedding ring", "wedding rings",
            "wedding band", "wedding bands",
        }),
        per_metal_option=True,
    ),
    SearchSource(
        "engagement", "engagement", "Engagement",
        frozenset({"Engagement", "Rings"}),
        ("title", "description"),
        _RING_FACETS,
        frozenset({"ring", "rings", "engagement ring", "engagement rings"}),
        per_metal_option=True,
    ),
    SearchSource(
        "diamond", "diamond", "Diamond",
        frozenset({"Diamond", "Diamonds"}),
        ("shape", "color", "clarity", "type"),
        {"shape": "shape"},
        frozenset({"diamond", "diamonds"}),
    ),
    SearchSource(
        "gemstone", "gemstone", "Gemstone",
        frozenset({"Gemstone", "Gemstones"}),
        ("type", "shape", "color", "clarity", "source"),
        {"shape": "shape", "gemstoneType": "type"},
        frozenset({"gemstone", "gemstones"}),
    ),
    SearchSource(
        "bracelet", "bracelet", "Bracelet",
        frozenset({"Bracelet", "Fine Jewellery"}),
        _JEWELRY_TEXT,
        _JEWELRY_FACETS,
        frozenset({"bracelet", "bracelets"}),
    ),
    SearchSource(
        "earring", "earring", "Earring",
        frozenset({"Earring", "Fine Jewellery"}),
        _JEWELRY_TEXT,
        _JEWELRY_FACETS,
        frozenset({"earring", "earrings"}),
    ),
    SearchSource(
        "necklace", "necklace", "Necklace",
        frozenset({"Necklace", "Fine Jewellery"}),
        _JEWELRY_TEXT,
        _JEWELRY_FACETS,
        frozenset({"necklace", "necklaces"}),
    ),
    SearchSource(
        "mens-jewelry", "mens-jewelry", "Men's Jewelry",
        frozenset({"Men's Jewelry", "Fine Jewellery"}),
        _JEWELRY_TEXT,
        _JEWELRY_FACETS,
        frozenset({"men's jewelry", "mens jewelry", "men's", "mens"}),
    ),
)


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchRequest:
    query: str = ""
    categories: tuple[str, ...] = ()
    facets: dict[str, tuple[str, ...]] = field(default_factory=dict)
    price: Bounds = Bounds()
    sort_by: str = "relevance"
    page: int = 1
    limit: int = SEARCH_PAGE_LIMIT

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "SearchRequest":
        facets = {name: tuple(parse_multi(params.get(name))) for name in FACET_PARAMS}
        sort_by = params.get("sortBy") or "relevance"
        limit = parse_positive_int(params.get("limit"), SEARCH_PAGE_LIMIT)
        if limit < 1:
            limit = SEARCH_PAGE_LIMIT
        return cls(
            query=(params.get("q") or "").strip(),
            categories=tuple(parse_multi(params.get("category"))),
            facets={name: values for name, values in facets.items() if values},
            price=parse_bounds(params, "minPrice", "maxPrice"),
            sort_by=sort_by if sort_by in SEARCH_SORTS else "relevance",
            page=max(parse_positive_int(params.get("page"), 1), 1),
            limit=min(limit, MAX_PAGE_LIMIT),
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def selects(self, source: SearchSource) -> bool:
        return not self.categories or bool(source.groups & set(self.categories))


def search_terms(query: str) -> list[str]:
    """Lower-cased query words followed by their synonyms, without repeats."""
    terms: list[str] = []
    for word in query.lower().split():
        for term in (word, *SYNONYMS.get(word, ())):
            if term not in terms:
                terms.append(term)
    return terms


def build_search_query(
    source: SearchSource,
    facets: Mapping[str, Sequence[str]],
    price: Bounds,
    terms: Sequence[str],
    limit: int,
) -> ListingQuery | None:
    """Predicate for one collection, or ``None`` when a facet rules it out."""
    config = get_category(source.category)
    builder = FilterQueryBuilder(config)
    for param, values in facets.items():
        column = source.facets.get(param)
        if column is None:
            return None
        builder.facet(column, values)
    # ring prices live on the metal options and are checked per hit
    if not source.per_metal_option:
        builder.price_within(price)
    builder.matches_text(source.text_fields, terms)
    return ListingQuery(
        table=config.table,
        predicate=builder.build(),
        sort=NEWEST + (SortKey("id"),),
        page=1,
        limit=limit,
    )


async def _fetch(store: ProductStore, source: SearchSource, query: ListingQuery) -> list[dict]:
    """Rows of one collection; a failing collection is left out of the results."""
    try:
        records, _ = await asyncio.to_thread(store.find_page, query)
    except StoreError as exc:
        logger.warning("Search skipped %s: %s", source.label, exc)
        return []
    return records


# ---------------------------------------------------------------------------
# Hits
# ---------------------------------------------------------------------------

def _within(value: float, bounds: Bounds) -> bool:
    if bounds.gte is not None and value < bounds.gte:
        return False
    if bounds.lte is not None and value > bounds.lte:
        return False
    return True


def _carat(value) -> str:
    if isinstance(value, (int, float)):
        return f"{value:g}"
    return str(value or "")


def metal_options(record: dict) -> list[MetalOption]:
    options = []
    for raw in record.get("metal_options") or []:
        try:
            options.append(MetalOption.model_validate(raw))
        except ValidationError:
            logger.warning("Skipping malformed metal option %r on %s", raw, record.get("id"))
    return options


def record_hits(
    source: SearchSource,
    record: dict,
    metals: Sequence[str] = (),
    price: Bounds = Bounds(),
) -> list[SearchHit]:
    """Flatten one stored row into search hits."""
    config = get_category(source.category)
    record_id = str(record.get("id"))
    common = {
        "product_id": record_id,
        "slug": record.get("slug"),
        "category": source.label,
        "product_type": source.product_type,
        "is_available": bool(record.get(config.availability_field, True)),
        "created_at": record.get("created_at"),
    }

    if source.per_metal_option:
        hits = []
        for option in metal_options(record):
            if metals and option.color not in metals:
                continue
            if not _within(option.price, price):
                continue
            hits.append(
                SearchHit(
                    id=f"{record_id}-{option.karat}-{option.color}",
                    title=record.get("title") or source.label,
                    price=option.price,
                    image=product_image_url(record, option.color),
                    description=record.get("description"),
                    metal_option=HitMetal(karat=option.karat, color=option.color, price=option.price),
                    style=record.get("style") or [],
                    **common,
                )
            )
        return hits

    carat = _carat(record.get("carat"))
    shape, color = record.get("shape"), record.get("color")
    clarity, stone_type = record.get("clarity"), record.get("type")
    if source.category == "diamond":
        title = f"{shape} {carat}ct {color} {clarity} Diamond"
        description = f"{carat} carat {shape} {color} {clarity} diamond"
    elif source.category == "gemstone":
        title = f"{carat}ct {color} {stone_type}"
        description = f"{carat} carat {color} {stone_type}"
    else:
        title = record.get("name") or source.label
        description = record.get("description")

    style = record.get("style")
    return [
        SearchHit(
            id=record_id,
            title=title,
            price=record.get("sale_price") or record.get("price") or 0,
            sale_price=record.get("sale_price"),
            image=first_image_url(record.get("images")),
            description=description,
            carat=record.get("carat"),
            shape=shape,
            color=color,
            clarity=clarity,
            type=stone_type,
            style=[style] if isinstance(style, str) else style or [],
            metal=record.get("metal"),
            gemstone_types=[g["type"] for g in record.get("gemstones") or [] if g.get("type")],
            **common,
        )
    ]


def relevance(hit: SearchHit, query: str) -> int:
    """Title matches weigh most, then category, type and description."""
    needle = query.lower()
    title = hit.title.lower()
    score = 0
    if title == needle:
        score += 100
    if title.startswith(needle):
        score += 50
    if needle in title:
        score += 25
    if needle in hit.category.lower():
        score += 10
    if hit.type and needle in hit.type.lower():
        score += 10
    if hit.description and needle in hit.description.lower():
        score += 5
    return score


def sort_hits(hits: list[SearchHit], sort_by: str, query: str) -> list[SearchHit]:
    if sort_by == "price-low":
        return sorted(hits, key=lambda hit: hit.price)
    if sort_by == "price-high":
        return sorted(hits, key=lambda hit: hit.price, reverse=True)
    if sort_by == "newest":
        return sorted(hits, key=lambda hit: hit.created_at or "", reverse=True)
    if not query:
        return list(hits)
    return sorted(hits, key=lambda hit: relevance(hit, query), reverse=True)


def collect_facets(hits: Sequence[SearchHit]) -> SearchFacets:
    categories: set[str] = set()
    metals: set[str] = set()
    styles: set[str] = set()
    shapes: set[str] = set()
    gemstone_types: set[str] = set()
    for hit in hits:
        categories.add(hit.category)
        if hit.metal_option:
            metals.add(hit.metal_option.color)
        if hit.metal:
            metals.add(hit.metal)
        styles.update(hit.style)
        if hit.shape:
            shapes.add(hit.shape)
        if hit.product_type == "gemstone" and hit.type:
            gemstone_types.add(hit.type)
        gemstone_types.update(hit.gemstone_types)

    prices = [hit.price for hit in hits]
    price_range = PriceRange()
    if prices:
        price_range = PriceRange(min=math.floor(min(prices)), max=math.ceil(max(prices)))
    return SearchFacets(
        categories=sorted(categories),
        metals=sorted(metals),
        styles=sorted(styles),
        shapes=sorted(shapes),
        gemstone_types=sorted(gemstone_types),
        price_range=price_range,
    )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def search_products(store: ProductStore, params: Mapping[str, str]) -> SearchResults:
    """Search every selected collection and return one merged, sorted page."""
    request = SearchRequest.from_params(params)
    terms = search_terms(request.query)
    whole_query = request.query.lower()

    jobs: list[tuple[SearchSource, ListingQuery]] = []
    for source in SOURCES:
        if not request.selects(source):
            continue
        query = build_search_query(
            source,
            request.facets,
            request.price,
            [] if whole_query in source.browse_terms else terms,
            SEARCH_FETCH_LIMIT,
        )
        if query is not None:
            jobs.append((source, query))

    batches = await asyncio.gather(*(_fetch(store, source, query) for source, query in jobs))

    metals = request.facets.get("metal", ())
    hits: list[SearchHit] = []
    for (source, _), records in zip(jobs, batches):
        for record in records:
            hits.extend(record_hits(source, record, metals, request.price))

    ordered = sort_hits(hits, request.sort_by, request.query)
    window = ordered[request.skip: request.skip + request.limit]
    logger.info(
        "Search q=%r matched %d hit(s) in %d collection(s)",
        request.query,
        len(hits),
        len(jobs),
    )
    return SearchResults(
        products=window,
        total_count=len(hits),
        page=request.page,
        limit=request.limit,
        has_more=request.skip + len(window) < len(hits),
        filters=collect_facets(hits),
    )


def record_suggestions(source: SearchSource, record: dict) -> list[Suggestion]:
    record_id = str(record.get("id"))
    slug = record.get("slug") or ""

    if source.per_metal_option:
        name = record.get("title") or record.get("name") or ""
        return [
            Suggestion(
                id=f"{record_id}-{option.karat}-{option.color}-{index}",
                name=f"{name} - {option.karat} {option.color}",
                slug=slug,
                product_type=source.product_type,
                image_url=product_image_url(record, option.color) or PLACEHOLDER_IMAGE,
                price=option.price,
                metal=MetalSelection(karat=option.karat, color=option.color),
            )
            for index, option in enumerate(metal_options(record))
        ]

    carat = _carat(record.get("carat"))
    if source.category == "diamond":
        name = (
            f"{carat}ct {record.get('shape')} {record.get('color')} "
            f"{record.get('clarity')} Diamond"
        )
    elif source.category == "gemstone":
        name = f"{carat}ct {record.get('type')} {record.get('color')} {record.get('shape')}"
    else:
        name = record.get("name") or record.get("title") or ""

    price = record.get("price") or record.get("base_price") or record.get("sale_price") or 0
    return [
        Suggestion(
            id=record_id,
            name=name,
            slug=slug,
            product_type=source.product_type,
            image_url=product_image_url(record) or PLACEHOLDER_IMAGE,
            price=price,
        )
    ]


async def suggest_products(store: ProductStore, query: str) -> list[Suggestion]:
    """Type-ahead suggestions; names containing *query* are listed first."""
    query = (query or "").strip()
    if len(query) < SUGGESTION_MIN_LENGTH:
        return []

    jobs = [
        (source, build_search_query(source, {}, Bounds(), [query], SUGGESTION_LIMIT))
        for source in SOURCES
    ]
    batches = await asyncio.gather(*(_fetch(store, source, q) for source, q in jobs))

    suggestions = [
        suggestion
        for (source, _), records in zip(jobs, batches)
        for record in records
        for suggestion in record_suggestions(source, record)
    ]
    needle = query.lower()
    suggestions.sort(key=lambda s: needle not in s.name.lower())
    return suggestions[:SUGGESTION_LIMIT]
