"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from storefront.services.money import multiply, parse_decimal, to_decimal

from .totals import calculate_totals


class CartOrigin(str, Enum):
    """Whether a cart lives in guest storage or on the server."""
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


@dataclass
class Product:
    """Catalog product as handed to add_item by the UI."""
    product_ref: str
    name: str = ""
    price: Decimal = Decimal("0")
    discount_price: Optional[Decimal] = None

    def __post_init__(self):
        self.price = to_decimal(self.price)
        if self.discount_price is not None:
            self.discount_price = to_decimal(self.discount_price)

    @property
    def effective_price(self) -> Decimal:
        """Discounted price if present, else list price."""
        return self.discount_price if self.discount_price is not None else self.price


@dataclass
class CartLine:
    """Single product line in the cart."""
    product_ref: str
    unit_price: Decimal
    quantity: int
    product_name: str = ""

    def __post_init__(self):
        if not self.product_ref or not isinstance(self.product_ref, str):
            raise ValueError("product_ref must be a non-empty string")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError("quantity must be a positive integer")
        self.unit_price = to_decimal(self.unit_price)

    @property
    def line_total(self) -> Decimal:
        """Total price for all units."""
        return multiply(self.unit_price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "product_ref": self.product_ref,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "product_name": self.product_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from dictionary.

        Raises KeyError/TypeError/ValueError on malformed data.
        """
        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise TypeError(f"quantity must be an integer, got {quantity!r}")
        return cls(
            product_ref=data["product_ref"],
            unit_price=parse_decimal(data.get("unit_price", 0)),
            quantity=quantity,
            product_name=data.get("product_name") or "",
        )


@dataclass
class Cart:
    """
    Shopping cart.

    subtotal and item_count are recomputed from lines on every access.
    """
    lines: List[CartLine] = field(default_factory=list)
    origin: CartOrigin = CartOrigin.GUEST

    @classmethod
    def empty(cls, origin: CartOrigin = CartOrigin.GUEST) -> "Cart":
        return cls(lines=[], origin=origin)

    @property
    def subtotal(self) -> Decimal:
        return calculate_totals(self.lines).subtotal

    @property
    def item_count(self) -> int:
        return calculate_totals(self.lines).item_count

    @property
    def is_guest(self) -> bool:
        return self.origin == CartOrigin.GUEST

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, product_ref: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.product_ref == product_ref), None)

    def copy_lines(self) -> List[CartLine]:
        """Detached copies, safe to mutate without touching the published cart."""
        return [replace(line) for line in self.lines]

    def to_dict(self) -> dict:
        """Snapshot layout used by the guest storage."""
        totals = calculate_totals(self.lines)
        return {
            "lines": [line.to_dict() for line in self.lines],
            **totals.to_dict(),
        }


def collapse_lines(lines: Iterable[CartLine]) -> List[CartLine]:
    """
    Merge lines sharing a product_ref by summing quantities.

    Keeps the order of first appearance; the latest unit price and
    non-empty name win.
    """
    merged: dict[str, CartLine] = {}
    for line in lines:
        existing = merged.get(line.product_ref)
        if existing is None:
            merged[line.product_ref] = replace(line)
            continue
        existing.quantity += line.quantity
        existing.unit_price = line.unit_price
        if line.product_name:
            existing.product_name = line.product_name
    return list(merged.values())
