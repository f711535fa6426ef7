"""Cart totals derived from cart lines."""
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from storefront.services.money import add, multiply, round_money

if TYPE_CHECKING:
    from .models import CartLine


@dataclass(frozen=True)
class CartTotals:
    """Subtotal and item count of a list of lines."""
    subtotal: Decimal
    item_count: int

    def to_dict(self) -> dict:
        # Rounded to cents for display only; subtotal itself stays exact
        return {"subtotal": str(round_money(self.subtotal)), "item_count": self.item_count}


def calculate_totals(lines: Iterable["CartLine"]) -> CartTotals:
    """
    Sum unit_price * quantity and quantity over all lines.

    Pure and exact: no rounding happens here. Every published cart derives
    its totals from this function, never from a precomputed subtotal.
    """
    subtotal = Decimal("0")
    item_count = 0
    for line in lines:
        subtotal = add(subtotal, multiply(line.unit_price, line.quantity))
        item_count += line.quantity
    return CartTotals(subtotal=subtotal, item_count=item_count)
