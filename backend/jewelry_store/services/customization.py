"""
Custom ring composition: a ring setting paired with a diamond or a gemstone.

The customization flow keeps all of its state in the page URL (``settingId``,
``diamondId`` or ``gemstoneId``, ``metal``, ``size``, ``start``).
:class:`CustomizationWizard` reads and writes that query string and enforces
which steps may follow which; :func:`compose_custom_ring` turns a finished
selection into a priced cart line.

Price of a custom ring::

    total = metal_option.price + stone.price + size_option.additional_price

The size term is 0 when the setting lists no option for the chosen size.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from urllib.parse import urlencode

from pydantic import BaseModel, ValidationError

from jewelry_store.errors import (
    ComponentLookupError,
    InvalidSelectionError,
    MetalOptionNotFoundError,
    StoreError,
    WizardTransitionError,
)
from jewelry_store.models.cart import (
    CartLine,
    Customization,
    CustomizationDetails,
    MetalSelection,
    SettingSnapshot,
    StoneSnapshot,
)
from jewelry_store.models.product import MetalOption, SizeOption
from jewelry_store.services.catalog import first_image_url, product_image_url
from jewelry_store.services.categories import get_category
from jewelry_store.services.query_builder import parse_number
from jewelry_store.storage.store import ProductStore

logger = logging.getLogger(__name__)

START_POINTS = ("setting", "diamond", "gemstone")
STONE_TYPES = ("diamond", "gemstone")

SETTING_LIST_PATH = "/settings/all"
STONE_LIST_PATHS = {"diamond": "/diamond/all", "gemstone": "/gemstone/all"}
COMPLETE_PATH = "/customize/complete"
CHECKOUT_PATH = "/checkout"


def _format_size(size: float) -> str:
    return f"{size:g}"


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CustomizationSelection:
    """What the shopper has picked so far."""

    setting_id: str | None = None
    diamond_id: str | None = None
    gemstone_id: str | None = None
    metal: str | None = None
    size: float | None = None
    start: str = "setting"

    @property
    def stone_type(self) -> str | None:
        if self.diamond_id:
            return "diamond"
        if self.gemstone_id:
            return "gemstone"
        return None

    @property
    def stone_id(self) -> str | None:
        return self.diamond_id or self.gemstone_id

    @property
    def has_setting(self) -> bool:
        return bool(self.setting_id and self.metal and self.size is not None)

    def validate(self) -> None:
        """Raise :class:`InvalidSelectionError` unless the selection can be priced."""
        if self.diamond_id and self.gemstone_id:
            raise InvalidSelectionError("Select either a diamond or a gemstone, not both")
        if not self.stone_id:
            raise InvalidSelectionError("A diamond or gemstone must be selected")
        if not self.setting_id:
            raise InvalidSelectionError("A setting must be selected")
        if not self.metal:
            raise InvalidSelectionError("A metal must be selected")
        if self.size is None:
            raise InvalidSelectionError("A ring size must be selected")

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "CustomizationSelection":
        start = params.get("start") or "setting"
        if start not in START_POINTS:
            raise InvalidSelectionError(f"Unknown starting point '{start}'")
        return cls(
            setting_id=params.get("settingId") or None,
            diamond_id=params.get("diamondId") or None,
            gemstone_id=params.get("gemstoneId") or None,
            metal=params.get("metal") or None,
            size=parse_number(params.get("size")),
            start=start,
        )

    def to_query(self) -> dict[str, str]:
        query: dict[str, str] = {}
        if self.setting_id:
            query["settingId"] = self.setting_id
        if self.diamond_id:
            query["diamondId"] = self.diamond_id
        if self.gemstone_id:
            query["gemstoneId"] = self.gemstone_id
        if self.metal:
            query["metal"] = self.metal
        if self.size is not None:
            query["size"] = _format_size(self.size)
        query["start"] = self.start
        return query


# ---------------------------------------------------------------------------
# Wizard
# ---------------------------------------------------------------------------

class WizardState(str, Enum):
    CHOOSING_SETTING = "choosing-setting"
    CHOOSING_STONE = "choosing-stone"
    REVIEWING_COMPLETE = "reviewing-complete"


class CustomizationWizard:
    """The three-step customization flow.

    The state follows from the selection and the entry point: a flow that
    started with a setting chooses the setting first and the stone second,
    a flow that started with a diamond or gemstone the other way round.
    Once both halves are chosen the ring is reviewed on the complete page.
    Going back from the review ("change setting" / "change stone") keeps
    the other half of the selection.
    """

    def __init__(self, selection: CustomizationSelection | None = None):
        selection = selection or CustomizationSelection()
        if selection.diamond_id and selection.gemstone_id:
            raise InvalidSelectionError("Select either a diamond or a gemstone, not both")
        if selection.start not in START_POINTS:
            raise InvalidSelectionError(f"Unknown starting point '{selection.start}'")
        self.selection = selection

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "CustomizationWizard":
        return cls(CustomizationSelection.from_query(params))

    def to_query(self) -> dict[str, str]:
        return self.selection.to_query()

    def __eq__(self, other) -> bool:
        if not isinstance(other, CustomizationWizard):
            return NotImplemented
        return self.selection == other.selection

    def __repr__(self) -> str:
        return f"CustomizationWizard({self.state.value}, {self.selection!r})"

    @property
    def state(self) -> WizardState:
        has_setting = self.selection.has_setting
        has_stone = self.selection.stone_id is not None
        if has_setting and has_stone:
            return WizardState.REVIEWING_COMPLETE
        if self.selection.start == "setting":
            return WizardState.CHOOSING_STONE if has_setting else WizardState.CHOOSING_SETTING
        return WizardState.CHOOSING_SETTING if has_stone else WizardState.CHOOSING_STONE

    def _require(self, action: str, state: WizardState) -> None:
        if self.state is not state:
            raise WizardTransitionError(
                f"Cannot {action} while {self.state.value.replace('-', ' ')}"
            )

    # -- transitions --------------------------------------------------------

    def select_setting(self, setting_id: str, metal: str, size: float) -> "CustomizationWizard":
        self._require("select a setting", WizardState.CHOOSING_SETTING)
        if not setting_id or not metal:
            raise InvalidSelectionError("A setting needs a metal and a size")
        self.selection = replace(
            self.selection, setting_id=setting_id, metal=metal, size=float(size)
        )
        return self

    def select_stone(self, stone_type: str, stone_id: str) -> "CustomizationWizard":
        self._require("select a stone", WizardState.CHOOSING_STONE)
        if stone_type not in STONE_TYPES:
            raise InvalidSelectionError(f"Unknown stone type '{stone_type}'")
        if not stone_id:
            raise InvalidSelectionError("A stone id is required")
        if self.selection.start in STONE_TYPES and stone_type != self.selection.start:
            raise WizardTransitionError(
                f"This ring was started from a {self.selection.start}, not a {stone_type}"
            )
        self.selection = replace(
            self.selection,
            diamond_id=stone_id if stone_type == "diamond" else None,
            gemstone_id=stone_id if stone_type == "gemstone" else None,
        )
        return self

    def change_setting(self) -> "CustomizationWizard":
        """Drop the setting; the stone becomes the entry point."""
        self._require("change the setting", WizardState.REVIEWING_COMPLETE)
        self.selection = replace(
            self.selection,
            setting_id=None,
            metal=None,
            size=None,
            start=self.selection.stone_type,
        )
        return self

    def change_stone(self) -> "CustomizationWizard":
        """Drop the stone; setting, metal and size are kept."""
        self._require("change the stone", WizardState.REVIEWING_COMPLETE)
        self.selection = replace(
            self.selection, diamond_id=None, gemstone_id=None, start="setting"
        )
        return self

    def complete(self) -> CustomizationSelection:
        self._require("complete the ring", WizardState.REVIEWING_COMPLETE)
        self.selection.validate()
        return self.selection

    # -- navigation ---------------------------------------------------------

    def next_path(self) -> str:
        state = self.state
        if state is WizardState.REVIEWING_COMPLETE:
            return COMPLETE_PATH
        if state is WizardState.CHOOSING_SETTING:
            return SETTING_LIST_PATH
        return STONE_LIST_PATHS.get(self.selection.start, STONE_LIST_PATHS["diamond"])

    def next_url(self) -> str:
        return f"{self.next_path()}?{urlencode(self.to_query())}"

    def current_step(self) -> int:
        state = self.state
        if state is WizardState.REVIEWING_COMPLETE:
            return 3
        first = (
            WizardState.CHOOSING_SETTING
            if self.selection.start == "setting"
            else WizardState.CHOOSING_STONE
        )
        return 1 if state is first else 2

    def step_labels(self) -> list[str]:
        selection = self.selection
        if selection.start == "setting":
            if selection.diamond_id:
                second = "Diamond Selected"
            elif selection.gemstone_id:
                second = "Gemstone Selected"
            else:
                second = "Select Stone"
            return ["Select Setting", second, "Complete Ring"]

        second = "Setting Selected" if selection.has_setting else "Select Setting"
        return [f"Select {selection.start.title()}", second, "Complete Ring"]


def change_links(selection: CustomizationSelection) -> dict[str, str]:
    """URLs for the "change setting" and "change stone" actions of the review page."""
    return {
        "change_setting": CustomizationWizard(selection).change_setting().next_url(),
        "change_stone": CustomizationWizard(selection).change_stone().next_url(),
    }


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------

class ComposedRing(BaseModel):
    setting_id: str
    stone_type: str
    stone_id: str
    metal_price: float
    stone_price: float
    size_price: float
    total_price: float
    line: CartLine
    setting: dict
    stone: dict


async def _fetch_component(store: ProductStore, category: str, record_id: str) -> dict:
    config = get_category(category)
    try:
        record = await asyncio.to_thread(store.get, config.table, record_id)
    except StoreError as exc:
        raise ComponentLookupError(f"Failed to fetch {category} '{record_id}'") from exc
    if record is None or not record.get(config.availability_field, True):
        raise ComponentLookupError(f"No available {category} '{record_id}'")
    return record


def find_metal_option(setting: dict, metal: str) -> MetalOption:
    """First metal option whose color (or ``"<karat> <color>"``) equals *metal*."""
    for option in setting.get("metal_options") or []:
        color = option.get("color")
        if metal in (color, f"{option.get('karat')} {color}"):
            try:
                return MetalOption.model_validate(option)
            except ValidationError as exc:
                raise ComponentLookupError(
                    f"Setting '{setting.get('id')}' has a malformed '{metal}' option"
                ) from exc
    raise MetalOptionNotFoundError(str(setting.get("id")), metal)


def find_size_option(setting: dict, size: float) -> SizeOption | None:
    """Size entry matching *size*; malformed entries are skipped."""
    for option in setting.get("sizes") or []:
        try:
            parsed = SizeOption.model_validate(option)
        except ValidationError:
            logger.warning("Skipping malformed size option %r on setting %s", option, setting.get("id"))
            continue
        if parsed.size == size:
            return parsed
    return None


def _stone_descriptor(stone_type: str, stone: dict) -> str:
    if stone_type == "diamond":
        return f"{stone.get('shape')} Diamond"
    return f"{stone.get('shape')} {stone.get('type')}"


def build_cart_line(
    selection: CustomizationSelection,
    setting: dict,
    stone: dict,
    metal_option: MetalOption,
    total_price: float,
) -> CartLine:
    stone_type = selection.stone_type
    stone_snapshot = StoneSnapshot(
        type=stone_type,
        shape=stone.get("shape"),
        carat=stone.get("carat"),
        color=stone.get("color"),
        clarity=stone.get("clarity"),
        cut=stone.get("cut"),
        gemstone_type=stone.get("type") if stone_type == "gemstone" else None,
        image=first_image_url(stone.get("images")),
    )
    customization = Customization(
        customization_type=f"setting-{stone_type}",
        setting_id=selection.setting_id,
        stone_type=stone_type,
        stone_id=selection.stone_id,
        diamond_id=selection.diamond_id,
        gemstone_id=selection.gemstone_id,
        metal_type=metal_option.color,
        size=selection.size,
        customization_details=CustomizationDetails(
            stone=stone_snapshot,
            setting=SettingSnapshot(
                style=setting.get("title", ""),
                metal_type=metal_option.color,
            ),
        ),
    )
    return CartLine(
        id=f"{selection.setting_id}-{selection.stone_id}",
        title=f"Custom {setting.get('title', '')} with {_stone_descriptor(stone_type, stone)}",
        price=total_price,
        quantity=1,
        image=product_image_url(setting, metal_option.color),
        metal_option=MetalSelection(karat=metal_option.karat, color=metal_option.color),
        size=selection.size,
        product_type="setting",
        customization=customization,
    )


async def compose_custom_ring(
    store: ProductStore, selection: CustomizationSelection
) -> ComposedRing:
    """Price a setting + stone combination and build its cart line.

    The selection is validated before anything is fetched. The setting and
    the stone are looked up concurrently and both must resolve.
    """
    selection.validate()
    stone_type = selection.stone_type

    setting, stone = await asyncio.gather(
        _fetch_component(store, "settings", selection.setting_id),
        _fetch_component(store, stone_type, selection.stone_id),
    )

    metal_option = find_metal_option(setting, selection.metal)
    size_option = find_size_option(setting, selection.size)
    size_price = size_option.additional_price if size_option else 0.0

    stone_price = stone.get("price")
    if stone_price is None:
        raise ComponentLookupError(f"{stone_type.title()} '{selection.stone_id}' has no price")
    stone_price = float(stone_price)

    total = round(metal_option.price + stone_price + size_price, 2)
    logger.info(
        "Composed %s-%s: metal %.2f + %s %.2f + size %.2f = %.2f",
        selection.setting_id,
        selection.stone_id,
        metal_option.price,
        stone_type,
        stone_price,
        size_price,
        total,
    )

    return ComposedRing(
        setting_id=selection.setting_id,
        stone_type=stone_type,
        stone_id=selection.stone_id,
        metal_price=metal_option.price,
        stone_price=stone_price,
        size_price=size_price,
        total_price=total,
        line=build_cart_line(selection, setting, stone, metal_option, total),
        setting=setting,
        stone=stone,
    )
