"""Stateless cart-line helpers. Cart persistence belongs to the checkout client."""

from jewelry_store.models.cart import CartLine, CartTotals


def _same_line(a: CartLine, b: CartLine) -> bool:
    return (
        a.id == b.id
        and a.metal_option == b.metal_option
        and a.size == b.size
    )


def merge_line(lines: list[CartLine], line: CartLine) -> list[CartLine]:
    """Return a new line list with *line* added.

    A line with the same id, metal option and size has its quantity
    increased instead of being appended a second time.
    """
    merged = [existing.model_copy() for existing in lines]
    for index, existing in enumerate(merged):
        if _same_line(existing, line):
            merged[index] = existing.model_copy(
                update={"quantity": existing.quantity + line.quantity}
            )
            return merged
    merged.append(line.model_copy())
    return merged


def cart_totals(lines: list[CartLine]) -> CartTotals:
    return CartTotals(
        item_count=sum(line.quantity for line in lines),
        subtotal=round(sum(line.price * line.quantity for line in lines), 2),
    )
