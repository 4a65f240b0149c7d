"""Pydantic v2 models for jewelry products.

Admin writes go through one explicit input model per collection, combined
into the :data:`ProductInput` union discriminated on ``kind``. Storefront
reads return plain store rows; the option models below are reused by the
customization composer to read ring records.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from jewelry_store.config import (
    DEFAULT_FINISH,
    DIAMOND_TYPES,
    FINISH_TYPES,
    GEMSTONE_SOURCES,
    GEMSTONE_TYPES,
    METAL_COLORS,
    METAL_KARATS,
    STONE_SHAPES,
    WEDDING_SUBCATEGORIES,
)


def _check_member(value: str | None, allowed: list[str], label: str) -> str | None:
    if value is not None and value not in allowed:
        raise ValueError(f"Invalid {label} '{value}'. Allowed: {', '.join(allowed)}")
    return value


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------

class ImageRef(BaseModel):
    """A hosted image: public URL plus the storage id used to delete it."""

    url: str
    public_id: str = ""


class VideoRef(BaseModel):
    url: str
    public_id: str = ""


class Media(BaseModel):
    images: list[ImageRef] = []
    video: VideoRef | None = None


class MetalOption(BaseModel):
    """One (karat, color) pricing variant of a ring."""

    karat: str
    color: str
    price: float = Field(ge=0)
    description: str | None = None
    finish_type: str | None = None
    width_mm: float | None = None
    total_carat_weight: float | None = None
    is_default: bool = False

    @field_validator("karat")
    @classmethod
    def karat_is_known(cls, v: str) -> str:
        return _check_member(v, METAL_KARATS, "metal karat")

    @field_validator("color")
    @classmethod
    def color_is_known(cls, v: str) -> str:
        return _check_member(v, METAL_COLORS, "metal color")

    @field_validator("finish_type", mode="before")
    @classmethod
    def blank_finish_is_none(cls, v):
        if v == "":
            return None
        return _check_member(v, FINISH_TYPES, "finish type")


class SizeOption(BaseModel):
    size: float
    is_available: bool = True
    additional_price: float = 0.0


class AccentStone(BaseModel):
    """A stone set into a necklace, bracelet, earring or men's piece."""

    type: str
    carat: float | None = None
    color: str | None = None
    clarity: str | None = None


class SideStone(BaseModel):
    type: str = ""
    number_of_stones: int = 0
    total_carat: float = 0
    shape: str = ""
    color: str = ""
    clarity: str = ""


class MainStone(BaseModel):
    type: str = ""
    gemstone_type: str = ""
    number_of_stones: int = 0
    carat_weight: float = 0
    shape: str = ""
    color: str = ""
    clarity: str = ""


# ---------------------------------------------------------------------------
# Loose stones and fine jewelry (price + optional sale price)
# ---------------------------------------------------------------------------

class PricedProductInput(BaseModel):
    """Fields shared by every collection priced with ``price``/``sale_price``."""

    sku: str = Field(min_length=1)
    product_number: str | None = None
    price: float = Field(ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    discount_percentage: float | None = Field(default=None, ge=0, le=100)
    images: list[ImageRef] = []
    is_available: bool = True
    description: str | None = None

    @model_validator(mode="after")
    def sale_below_price(self):
        if self.sale_price is not None and self.sale_price >= self.price:
            raise ValueError("sale_price must be lower than price")
        return self


class GemstoneInput(PricedProductInput):
    kind: Literal["gemstone"] = "gemstone"
    type: str
    source: str = "natural"
    carat: float = Field(gt=0)
    shape: str
    color: str
    clarity: str
    cut: str | None = None
    origin: str | None = None
    treatment: str | None = None
    measurements: str
    certificate_lab: str | None = None
    certificate_number: str | None = None
    refractive_index: float | None = None
    hardness: float

    @field_validator("type")
    @classmethod
    def type_is_known(cls, v: str) -> str:
        return _check_member(v, GEMSTONE_TYPES, "gemstone type")

    @field_validator("source")
    @classmethod
    def source_is_known(cls, v: str) -> str:
        return _check_member(v, GEMSTONE_SOURCES, "gemstone source")

    @field_validator("shape")
    @classmethod
    def shape_is_known(cls, v: str) -> str:
        return _check_member(v, STONE_SHAPES, "stone shape")


class DiamondInput(PricedProductInput):
    kind: Literal["diamond"] = "diamond"
    type: str
    carat: float = Field(gt=0)
    shape: str
    color: str
    fancy_color: str | None = None
    clarity: str
    cut: str | None = None
    polish: str | None = None
    symmetry: str | None = None
    fluorescence: str | None = None
    measurements: str
    treatment: str | None = None
    certificate_lab: str | None = None
    crown_angle: float | None = None
    crown_height: float | None = None
    pavilion_angle: float | None = None
    pavilion_depth: float | None = None

    @field_validator("type")
    @classmethod
    def type_is_known(cls, v: str) -> str:
        return _check_member(v, DIAMOND_TYPES, "diamond type")

    @field_validator("shape")
    @classmethod
    def shape_is_known(cls, v: str) -> str:
        return _check_member(v, STONE_SHAPES, "stone shape")


class JewelryInput(PricedProductInput):
    """Named fine-jewelry pieces (necklaces, bracelets, earrings, men's)."""

    name: str = Field(min_length=1)
    type: str
    metal: str
    style: str | None = None
    gemstones: list[AccentStone] = []
    certificate_lab: str | None = None
    certificate_number: str | None = None
    features: list[str] = []
    care_instructions: str | None = None


class NecklaceInput(JewelryInput):
    kind: Literal["necklace"] = "necklace"
    length: str | None = None
    chain_width: float | None = None
    clasp_type: str | None = None


class BraceletInput(JewelryInput):
    kind: Literal["bracelet"] = "bracelet"
    closure: str | None = None
    length: float = Field(gt=0)
    width: float | None = None
    adjustable: bool = False
    min_length: float | None = None
    max_length: float | None = None

    @model_validator(mode="after")
    def adjustable_range(self):
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError("min_length must not exceed max_length")
        return self


class EarringInput(JewelryInput):
    kind: Literal["earring"] = "earring"
    back_type: str | None = None
    length: float | None = None
    width: float | None = None


class MensJewelryInput(JewelryInput):
    kind: Literal["mens-jewelry"] = "mens-jewelry"
    finish: str | None = None
    size: str | None = None
    length: float | None = None
    width: float | None = None
    thickness: float | None = None
    weight: float | None = None


# ---------------------------------------------------------------------------
# Rings (base price + metal options + sizes)
# ---------------------------------------------------------------------------

class RingInput(BaseModel):
    title: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    category: str = "Engagement"
    style: list[str] = []
    type: list[str] = []
    base_price: float = Field(ge=0)
    metal_options: list[MetalOption] = Field(min_length=1)
    metal_color_images: dict[str, list[ImageRef]] = {}
    sizes: list[SizeOption] = Field(min_length=1)
    media: Media = Media()
    description: str | None = None
    is_active: bool = True
    is_featured: bool = False
    on_sale: bool = False
    original_price: float | None = None

    def store_row(self) -> dict:
        """Row for the store, with the array facets the listings filter on."""
        row = self.model_dump(exclude={"kind"})
        row["metal_colors"] = sorted({option.color for option in self.metal_options})
        row["finish_types"] = sorted(
            {option.finish_type or DEFAULT_FINISH for option in self.metal_options}
        )
        prices = [option.price for option in self.metal_options]
        row["min_metal_price"] = min(prices)
        row["max_metal_price"] = max(prices)
        return row


class SettingInput(RingInput):
    kind: Literal["settings"] = "settings"
    side_stone: SideStone = SideStone()
    can_accept_stone: bool = True
    compatible_stone_shapes: list[str] = []
    setting_height: float | None = None
    band_width: float | None = None


class WeddingRingInput(RingInput):
    kind: Literal["wedding"] = "wedding"
    category: str = "Wedding"
    subcategory: str
    main_stone: MainStone = MainStone()
    side_stone: SideStone = SideStone()

    @field_validator("subcategory")
    @classmethod
    def subcategory_is_known(cls, v: str) -> str:
        return _check_member(v, WEDDING_SUBCATEGORIES, "wedding subcategory")


class EngagementRingInput(RingInput):
    kind: Literal["engagement"] = "engagement"
    main_stone: MainStone = MainStone()
    side_stone: SideStone = SideStone()


ProductInput = Annotated[
    Union[
        GemstoneInput,
        DiamondInput,
        SettingInput,
        WeddingRingInput,
        EngagementRingInput,
        NecklaceInput,
        BraceletInput,
        EarringInput,
        MensJewelryInput,
    ],
    Field(discriminator="kind"),
]


def to_store_row(product: BaseModel) -> dict:
    """Flatten a validated input model into the row written to the store."""
    if isinstance(product, RingInput):
        return product.store_row()
    return product.model_dump(exclude={"kind"})
