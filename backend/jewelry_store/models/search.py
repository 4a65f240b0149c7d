"""Pydantic v2 models for cross-collection search results and suggestions."""

from pydantic import BaseModel, ConfigDict, Field

from jewelry_store.models.cart import MetalSelection


class HitMetal(BaseModel):
    karat: str
    color: str
    price: float


class SearchHit(BaseModel):
    """One buyable product; rings appear once per metal option."""

    id: str
    product_id: str
    title: str
    slug: str | None = None
    price: float
    sale_price: float | None = None
    image: str = ""
    category: str
    product_type: str
    description: str | None = None
    is_available: bool = True
    created_at: str | None = None
    metal_option: HitMetal | None = None
    carat: float | None = None
    shape: str | None = None
    color: str | None = None
    clarity: str | None = None
    type: str | None = None
    style: list[str] = []
    metal: str | None = None
    gemstone_types: list[str] = []


class PriceRange(BaseModel):
    min: int = 0
    max: int = 0


class SearchFacets(BaseModel):
    """Filter values available across every hit, before paging."""

    model_config = ConfigDict(populate_by_name=True)

    categories: list[str] = []
    metals: list[str] = []
    styles: list[str] = []
    shapes: list[str] = []
    gemstone_types: list[str] = Field(default=[], serialization_alias="gemstoneTypes")
    price_range: PriceRange = Field(default=PriceRange(), serialization_alias="priceRange")


class SearchResults(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    products: list[SearchHit]
    total_count: int = Field(serialization_alias="totalCount")
    page: int
    limit: int
    has_more: bool = Field(serialization_alias="hasMore")
    filters: SearchFacets


class Suggestion(BaseModel):
    id: str
    name: str
    slug: str = ""
    product_type: str
    image_url: str
    price: float
    metal: MetalSelection | None = None
