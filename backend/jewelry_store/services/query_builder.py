"""
Filter query builder for the storefront and admin product listings.

Turns a category path segment plus query-string parameters into a
:class:`ListingQuery`: a predicate, a sort specification and the page
window. Precedence rules:

    1. availability (storefront only)
    2. the constraint derived from the category segment
    3. explicit multi-select parameters, which replace (never merge with)
       a segment constraint on the same facet
    4. numeric ranges, the price OR group and free-text search

Unparsable numeric inputs are treated as absent rather than passed on.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from jewelry_store.config import DEFAULT_PAGE_LIMIT, DEFAULT_SORT, MAX_PAGE_LIMIT
from jewelry_store.models.filters import (
    AnyOf,
    Bounds,
    Constraint,
    ListingQuery,
    Op,
    Predicate,
    SortKey,
)
from jewelry_store.services.categories import CategoryConfig, SegmentRule


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_category_segment(
    prefix_table: Sequence[SegmentRule],
    segment: str,
) -> tuple[str, str] | None:
    """Map a category segment onto ``(facet, value)`` using *prefix_table*.

    Rules are tried in order; a rule with an empty prefix matches anything
    and therefore acts as the collection's default facet. ``"all"`` and
    segments that match no rule yield ``None``.
    """
    if not segment or segment == "all":
        return None
    for rule in prefix_table:
        if segment.startswith(rule.prefix):
            raw = segment[len(rule.prefix):]
            if not raw:
                return None
            return rule.field, rule.transform(raw)
    return None


def parse_number(raw: str | None) -> float | None:
    """Parse a numeric filter bound; blanks, garbage, NaN and infinities give ``None``."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def parse_positive_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def parse_multi(raw: str | None) -> list[str]:
    """Split a comma-separated multi-select value, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def parse_bounds(params: Mapping[str, str], min_param: str, max_param: str) -> Bounds:
    return Bounds(
        gte=parse_number(params.get(min_param)),
        lte=parse_number(params.get(max_param)),
    )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class FilterQueryBuilder:
    """Accumulates constraints for one collection.

    Constraints are kept in the order they were added. When the predicate
    is built, the most recent constraint on a field replaces any earlier
    one, which is how explicit facet parameters override the category
    segment.
    """

    def __init__(self, config: CategoryConfig, storefront: bool = True):
        self.config = config
        self._constraints: list[Constraint] = []
        self._any_of: list[AnyOf] = []
        if storefront:
            self.where(config.availability_field, Op.EQ, True)

    def where(self, field: str, op: Op, value=None) -> "FilterQueryBuilder":
        self._constraints.append(Constraint(field, op, value))
        return self

    def facet(self, field: str, values: str | Sequence[str]) -> "FilterQueryBuilder":
        """Constrain a facet to one value (a string) or any of several (a sequence)."""
        is_array = field in self.config.array_fields
        if isinstance(values, str):
            return self.where(field, Op.CONTAINS if is_array else Op.EQ, values)
        return self.where(field, Op.OVERLAPS if is_array else Op.IN, tuple(values))

    def within(self, field: str, bounds: Bounds) -> "FilterQueryBuilder":
        if not bounds.is_empty():
            self.where(field, Op.RANGE, bounds)
        return self

    def price_within(self, bounds: Bounds) -> "FilterQueryBuilder":
        """Match the base price, or a non-null sale price, against *bounds*.

        Collections priced per option instead match when the span of their
        option prices overlaps *bounds*.
        """
        if bounds.is_empty():
            return self
        if self.config.price_span is not None:
            low_field, high_field = self.config.price_span
            self.within(low_field, Bounds(lte=bounds.lte))
            return self.within(high_field, Bounds(gte=bounds.gte))
        if len(self.config.price_fields) == 1:
            return self.within(self.config.price_fields[0], bounds)
        base_field, sale_field = self.config.price_fields
        self._any_of.append(
            AnyOf(
                key="price",
                branches=(
                    (Constraint(base_field, Op.RANGE, bounds),),
                    (
                        Constraint(sale_field, Op.NOT_NULL),
                        Constraint(sale_field, Op.RANGE, bounds),
                    ),
                ),
            )
        )
        return self

    def matches_text(self, fields: Sequence[str], terms: Sequence[str]) -> "FilterQueryBuilder":
        """Match records where any of *fields* contains any of *terms*, ignoring case."""
        branches = tuple((Constraint(f, Op.ILIKE, term),) for term in terms for f in fields)
        if branches:
            self._any_of.append(AnyOf(key="text", branches=branches))
        return self

    def build(self) -> Predicate:
        latest: dict[str, Constraint] = {}
        for constraint in self._constraints:
            latest.pop(constraint.field, None)
            latest[constraint.field] = constraint
        groups: dict[str, AnyOf] = {}
        for group in self._any_of:
            groups.pop(group.key, None)
            groups[group.key] = group
        return Predicate(
            constraints=tuple(latest.values()),
            any_of=tuple(groups.values()),
        )


def build_listing_query(
    config: CategoryConfig,
    segment: str,
    params: Mapping[str, str],
    storefront: bool = True,
    default_sort: str = DEFAULT_SORT,
) -> ListingQuery:
    """Build the predicate, sort and page window for one listing request."""
    builder = FilterQueryBuilder(config, storefront=storefront)

    special = config.special_segments.get(segment)
    if special is not None:
        builder.facet(*special)
    else:
        prefix_table = config.segment_rules
        if config.default_facet is not None:
            prefix_table = prefix_table + (config.default_facet,)
        parsed = parse_category_segment(prefix_table, segment)
        if parsed is not None:
            builder.facet(*parsed)

    for facet in config.facet_params:
        values = parse_multi(params.get(facet.param))
        if values:
            builder.facet(facet.field, values)

    for range_param in config.range_params:
        builder.within(
            range_param.field,
            parse_bounds(params, range_param.min_param, range_param.max_param),
        )

    builder.price_within(parse_bounds(params, "minPrice", "maxPrice"))

    search = (params.get("search") or "").strip()
    if search and config.search_field:
        builder.where(config.search_field, Op.ILIKE, search)

    page = max(parse_positive_int(params.get("page"), 1), 1)
    limit = parse_positive_int(params.get("limit"), DEFAULT_PAGE_LIMIT)
    if limit < 1:
        limit = DEFAULT_PAGE_LIMIT
    limit = min(limit, MAX_PAGE_LIMIT)

    return ListingQuery(
        table=config.table,
        predicate=builder.build(),
        # id tie-breaker keeps repeated requests in the same order
        sort=config.sort_for(params.get("sort"), default_sort) + (SortKey("id"),),
        page=page,
        limit=limit,
        fields=config.fields,
    )
