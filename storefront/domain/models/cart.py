from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CartLine(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)


class Cart(BaseModel):
    """Stored form of a cart: one cache entry under cart:{user_id}."""
    user_id: str
    items: List[CartLine] = []

    def line(self, product_id: str) -> Optional[CartLine]:
        return next((i for i in self.items if i.product_id == product_id), None)

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)


class CartLineView(BaseModel):
    product_id: str
    name: str
    price: Decimal
    image_url: str = ""
    quantity: int
    stock: int
    subtotal: Decimal


class CartView(BaseModel):
    """Cart joined with live product data at read time; never persisted."""
    items: List[CartLineView] = []
    subtotal: Decimal = Decimal("0")
    item_count: int = 0
