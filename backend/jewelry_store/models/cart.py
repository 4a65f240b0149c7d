"""Pydantic v2 models for cart lines and customization provenance."""

from typing import Literal

from pydantic import BaseModel, Field


class MetalSelection(BaseModel):
    karat: str
    color: str


class StoneSnapshot(BaseModel):
    """The stone attributes shown when a custom ring is redisplayed."""

    type: Literal["diamond", "gemstone"]
    shape: str | None = None
    carat: float | None = None
    color: str | None = None
    clarity: str | None = None
    cut: str | None = None
    gemstone_type: str | None = None
    image: str = ""


class SettingSnapshot(BaseModel):
    style: str
    metal_type: str
    setting_type: str = "custom"


class CustomizationDetails(BaseModel):
    stone: StoneSnapshot
    setting: SettingSnapshot


class Customization(BaseModel):
    """Which setting, stone, metal and size produced a cart line's price."""

    is_customized: bool = True
    customization_type: Literal["setting-diamond", "setting-gemstone"]
    setting_id: str
    stone_type: Literal["diamond", "gemstone"]
    stone_id: str
    diamond_id: str | None = None
    gemstone_id: str | None = None
    metal_type: str
    size: float
    customization_details: CustomizationDetails


class CartLine(BaseModel):
    id: str
    title: str
    price: float
    quantity: int = Field(default=1, ge=1)
    image: str = ""
    metal_option: MetalSelection | None = None
    size: float | None = None
    product_type: str | None = None
    customization: Customization | None = None


class CartTotals(BaseModel):
    item_count: int
    subtotal: float


class CartMergeRequest(BaseModel):
    lines: list[CartLine] = []
    line: CartLine


class CartMergeResult(BaseModel):
    lines: list[CartLine]
    totals: CartTotals
