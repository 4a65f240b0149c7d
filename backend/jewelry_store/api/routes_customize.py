"""Custom ring (setting + stone) API routes.

Every route reads the customization flow from the query string
(``settingId``, ``diamondId`` or ``gemstoneId``, ``metal``, ``size``,
``start``); nothing about the flow is kept on the server.
"""

from fastapi import APIRouter, Body, Depends, Request

from jewelry_store.models.cart import CartLine
from jewelry_store.services.cart import cart_totals, merge_line
from jewelry_store.services.customization import (
    CHECKOUT_PATH,
    CustomizationWizard,
    change_links,
    compose_custom_ring,
)
from jewelry_store.storage.store import ProductStore, get_product_store

router = APIRouter(prefix="/api/customize", tags=["customize"])


def _steps(wizard: CustomizationWizard) -> list[dict]:
    current = wizard.current_step()
    steps = []
    for number, label in enumerate(wizard.step_labels(), start=1):
        if number < current:
            status = "completed"
        elif number == current:
            status = "current"
        else:
            status = "upcoming"
        steps.append({"step": number, "label": label, "status": status})
    return steps


@router.get("/state")
async def customization_state(request: Request):
    """Where the flow stands and which page comes next."""
    wizard = CustomizationWizard.from_query(dict(request.query_params))
    return {
        "state": wizard.state.value,
        "steps": _steps(wizard),
        "next_path": wizard.next_path(),
        "next_url": wizard.next_url(),
        "query": wizard.to_query(),
    }


@router.get("/complete")
async def complete_ring(
    request: Request,
    store: ProductStore = Depends(get_product_store),
):
    """Review page data: the composed price, its cart line and the change links."""
    wizard = CustomizationWizard.from_query(dict(request.query_params))
    selection = wizard.complete()
    ring = await compose_custom_ring(store, selection)
    return {
        "setting": ring.setting,
        "stone": ring.stone,
        "stone_type": ring.stone_type,
        "price": {
            "metal": ring.metal_price,
            "stone": ring.stone_price,
            "size": ring.size_price,
            "total": ring.total_price,
        },
        "line": ring.line.model_dump(),
        "links": change_links(selection),
        "steps": _steps(wizard),
    }


@router.post("/cart")
async def add_custom_ring_to_cart(
    request: Request,
    lines: list[CartLine] = Body(default=[], embed=True),
    store: ProductStore = Depends(get_product_store),
):
    """Add the finished ring to the supplied cart lines and send the shopper to checkout."""
    wizard = CustomizationWizard.from_query(dict(request.query_params))
    ring = await compose_custom_ring(store, wizard.complete())
    merged = merge_line(lines, ring.line)
    return {
        "line": ring.line.model_dump(),
        "lines": [line.model_dump() for line in merged],
        "totals": cart_totals(merged).model_dump(),
        "redirect": CHECKOUT_PATH,
    }
