"""
Cart Persistence Service Pydantic Models

Request bodies sent to and cart payloads received from the remote cart API.
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .models import Cart, CartLine, CartOrigin, collapse_lines


# ==================== REQUEST MODELS ====================

class AddItemRequest(BaseModel):
    product_id: str = Field(serialization_alias="productId")
    quantity: int = Field(ge=1)


class UpdateItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class MergeItem(BaseModel):
    product_id: str = Field(serialization_alias="productId")
    quantity: int = Field(ge=1)


class MergeRequest(BaseModel):
    items: List[MergeItem]


# ==================== RESPONSE MODELS ====================

class ServerProduct(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    price: Decimal = Decimal("0")
    discount_price: Optional[Decimal] = Field(default=None, validation_alias="discountPrice")


class ServerCartItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product: ServerProduct
    quantity: int = Field(ge=1)


class ServerCart(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: List[ServerCartItem] = Field(default_factory=list)

    def to_cart(self) -> Cart:
        """Build an authenticated Cart; server-sent totals are ignored."""
        lines = []
        for item in self.items:
            price = item.product.discount_price
            if price is None:
                price = item.product.price
            lines.append(
                CartLine(
                    product_ref=item.product.id,
                    unit_price=price,
                    quantity=item.quantity,
                    product_name=item.product.name,
                )
            )
        return Cart(lines=collapse_lines(lines), origin=CartOrigin.AUTHENTICATED)
