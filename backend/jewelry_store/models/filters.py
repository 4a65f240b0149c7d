"""Query primitives produced by the filter builder and consumed by the stores.

A :class:`Predicate` is an ordered list of field constraints plus optional
OR groups. Stores translate it into their own query language; the
:meth:`Predicate.to_mapping` rendering is the plain document-filter form
(``{"type": {"$in": [...]}, "$or": [...]}``) used for logging and debugging.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Op(str, Enum):
    EQ = "eq"
    IN = "in"
    CONTAINS = "contains"  # array field holds the value
    OVERLAPS = "overlaps"  # array field shares at least one value
    RANGE = "range"
    NOT_NULL = "not_null"
    ILIKE = "ilike"  # case-insensitive substring


@dataclass(frozen=True)
class Bounds:
    """Inclusive numeric bounds; a missing side is simply not checked."""

    gte: float | None = None
    lte: float | None = None

    def is_empty(self) -> bool:
        return self.gte is None and self.lte is None


@dataclass(frozen=True)
class Constraint:
    field: str
    op: Op
    value: Any = None


@dataclass(frozen=True)
class AnyOf:
    """Records match when every constraint of at least one branch matches."""

    key: str
    branches: tuple[tuple[Constraint, ...], ...]


def _constraint_mapping(constraint: Constraint) -> Any:
    op, value = constraint.op, constraint.value
    if op in (Op.EQ, Op.CONTAINS):
        return value
    if op in (Op.IN, Op.OVERLAPS):
        return {"$in": list(value)}
    if op is Op.RANGE:
        bounds: dict[str, float] = {}
        if value.gte is not None:
            bounds["$gte"] = value.gte
        if value.lte is not None:
            bounds["$lte"] = value.lte
        return bounds
    if op is Op.NOT_NULL:
        return {"$ne": None}
    if op is Op.ILIKE:
        return {"$regex": re.escape(value), "$options": "i"}
    raise ValueError(f"Unsupported operator {op!r}")


def _conjunction_mapping(constraints: tuple[Constraint, ...]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for constraint in constraints:
        rendered = _constraint_mapping(constraint)
        existing = out.get(constraint.field)
        if isinstance(existing, dict) and isinstance(rendered, dict):
            out[constraint.field] = {**existing, **rendered}
        else:
            out[constraint.field] = rendered
    return out


@dataclass(frozen=True)
class Predicate:
    constraints: tuple[Constraint, ...] = ()
    any_of: tuple[AnyOf, ...] = ()

    def get(self, field_name: str) -> Constraint | None:
        """Return the constraint placed on *field_name*, if any."""
        for constraint in self.constraints:
            if constraint.field == field_name:
                return constraint
        return None

    def to_mapping(self) -> dict[str, Any]:
        mapping = _conjunction_mapping(self.constraints)
        groups = [
            [_conjunction_mapping(branch) for branch in group.branches]
            for group in self.any_of
        ]
        if len(groups) == 1:
            mapping["$or"] = groups[0]
        elif groups:
            mapping["$and"] = [{"$or": branches} for branches in groups]
        return mapping


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class ListingQuery:
    """Everything a store needs to answer one listing request."""

    table: str
    predicate: Predicate
    sort: tuple[SortKey, ...]
    page: int
    limit: int
    fields: tuple[str, ...] = field(default_factory=tuple)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


# ---------------------------------------------------------------------------
# API response shapes
# ---------------------------------------------------------------------------

class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    page: int
    limit: int
    total_pages: int = Field(serialization_alias="totalPages")
    has_more: bool = Field(serialization_alias="hasMore")

    @classmethod
    def for_page(cls, total: int, page: int, limit: int, returned: int) -> "Pagination":
        skip = (page - 1) * limit
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_more=skip + returned < total,
        )


class ProductPage(BaseModel):
    products: list[dict]
    pagination: Pagination
