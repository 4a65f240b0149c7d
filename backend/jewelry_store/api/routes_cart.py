"""Cart line API routes. The cart itself lives with the checkout client."""

from fastapi import APIRouter

from jewelry_store.models.cart import CartMergeRequest, CartMergeResult
from jewelry_store.services.cart import cart_totals, merge_line

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.post("/lines", response_model=CartMergeResult)
async def add_line(payload: CartMergeRequest):
    """Merge one line into the supplied lines and return them with totals."""
    lines = merge_line(payload.lines, payload.line)
    return CartMergeResult(lines=lines, totals=cart_totals(lines))
